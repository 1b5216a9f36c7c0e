from __future__ import annotations

import importlib.util
import math
import random
import unittest


JAX_AVAILABLE = importlib.util.find_spec("jax") is not None


def _enable_x64(test: unittest.TestCase) -> None:
    import jax

    test.addCleanup(jax.config.update, "jax_enable_x64", jax.config.x64_enabled)
    jax.config.update("jax_enable_x64", True)


_SAMPLES = [0.0, -0.0, 1.0, -1.0, 0.5, 2.0, -3.0, 7.0, 42.0, math.inf, -math.inf, math.nan]


def _random_shape(rng: random.Random, *, min_rank: int = 0, max_rank: int = 3, max_dim: int = 4) -> tuple[int, ...]:
    return tuple(rng.randint(1, max_dim) for _ in range(rng.randint(min_rank, max_rank)))


def _same_data(got: list, want: list) -> bool:
    if len(got) != len(want):
        return False
    return all((g != g and w != w) or g == w for g, w in zip(got, want))


def _size(shape: tuple[int, ...]) -> int:
    return math.prod(shape)


@unittest.skipUnless(JAX_AVAILABLE, "jax is required for property tests")
class ShapeAlgorithmPropertyTests(unittest.TestCase):
    def setUp(self) -> None:
        self.rng = random.Random(1234)

    def _random_array(self, shape: tuple[int, ...], *, pool=None):
        from pervade_jax import Array

        pool = pool or [0.0, 1.0, 2.0, 3.0]
        return Array(shape, [self.rng.choice(pool) for _ in range(_size(shape))])

    def test_deshape_keeps_flat_order(self) -> None:
        from pervade_jax import deshape

        for _ in range(20):
            shape = _random_shape(self.rng)
            arr = self._random_array(shape)
            before = list(arr.data)
            deshape(arr)
            with self.subTest(shape=shape):
                self.assertEqual(arr.rank, 1)
                self.assertEqual(arr.shape, (_size(shape),))
                self.assertEqual(arr.data, before)

    def test_reverse_twice_is_identity(self) -> None:
        from pervade_jax import reverse

        for _ in range(20):
            shape = _random_shape(self.rng, min_rank=1)
            arr = self._random_array(shape, pool=list(range(100)))
            before = arr.copy()
            reverse(arr)
            reverse(arr)
            with self.subTest(shape=shape):
                self.assertEqual(arr, before)

    def test_transpose_round_trip(self) -> None:
        from pervade_jax import inverse_transpose, transpose

        for _ in range(20):
            shape = _random_shape(self.rng, min_rank=2, max_rank=4)
            arr = self._random_array(shape, pool=list(range(100)))
            before = arr.copy()
            transpose(arr)
            self.assertEqual(arr.shape, shape[1:] + shape[:1])
            inverse_transpose(arr)
            with self.subTest(shape=shape):
                self.assertEqual(arr, before)

    def test_inverse_bits_undoes_bits(self) -> None:
        from pervade_jax import Array, bits, inverse_bits

        shapes = [(), (4,), (2, 3), (0,), (2, 2, 2)]
        for shape in shapes:
            arr = Array(shape, [float(self.rng.randint(0, 1000)) for _ in range(_size(shape))])
            with self.subTest(shape=shape):
                self.assertEqual(inverse_bits(bits(arr)), arr)
        zeros = Array((3,), [0.0, 0.0, 0.0])
        self.assertEqual(inverse_bits(bits(zeros)), zeros)

    def test_rise_sorts_and_fall_reverses(self) -> None:
        from pervade_jax import Array, fall, rise
        from pervade_jax.values import row_cmp

        for _ in range(20):
            shape = _random_shape(self.rng, min_rank=1, max_dim=6)
            arr = self._random_array(shape, pool=_SAMPLES)
            rows = [arr.row_values(i) for i in range(arr.row_count)]
            with self.subTest(shape=shape):
                up = [rows[int(i)] for i in rise(arr).data]
                down = [rows[int(i)] for i in fall(arr).data]
                self.assertEqual(sorted(int(i) for i in rise(arr).data), list(range(arr.row_count)))
                for prev, cur in zip(up, up[1:]):
                    self.assertLessEqual(row_cmp(prev, cur), 0)
                for prev, cur in zip(down, down[1:]):
                    self.assertGreaterEqual(row_cmp(prev, cur), 0)

        letters = Array.char([self.rng.choice("abcde") for _ in range(30)])
        order = [letters.data[int(i)] for i in rise(letters).data]
        self.assertEqual(order, sorted(letters.data))

    def test_classify_agrees_with_deduplicate(self) -> None:
        from pervade_jax import classify, deduplicate
        from pervade_jax.values import row_key

        for _ in range(20):
            shape = _random_shape(self.rng, min_rank=1, max_dim=6)
            arr = self._random_array(shape, pool=[0.0, 1.0, math.nan])
            classes = [int(c) for c in classify(arr).data]
            deduped = arr.copy()
            deduplicate(deduped)
            with self.subTest(shape=shape):
                self.assertEqual(deduped.row_count, max(classes) + 1)
                for i in range(deduped.row_count):
                    first_row = arr.row_values(classes.index(i))
                    self.assertEqual(row_key(deduped.row_values(i)), row_key(first_row))


@unittest.skipUnless(JAX_AVAILABLE, "jax is required for property tests")
class PervasionPropertyTests(unittest.TestCase):
    def setUp(self) -> None:
        _enable_x64(self)
        self.rng = random.Random(99)

    def _compatible_pair(self):
        from pervade_jax import Array

        long_shape = _random_shape(self.rng, min_rank=1)
        short_shape = long_shape[: self.rng.randint(0, len(long_shape))]
        a = Array(short_shape, [float(self.rng.randint(-9, 9)) for _ in range(_size(short_shape))])
        b = Array(long_shape, [float(self.rng.randint(-9, 9)) for _ in range(_size(long_shape))])
        return (a, b) if self.rng.random() < 0.5 else (b, a)

    def test_result_shape_is_elementwise_max(self) -> None:
        from pervade_jax import add
        from pervade_jax.values import max_shape

        for _ in range(30):
            a, b = self._compatible_pair()
            with self.subTest(a=a.shape, b=b.shape):
                out = add(a, b)
                self.assertEqual(out.shape, max_shape(a.shape, b.shape))
                self.assertEqual(len(out.data), _size(out.shape))

    def test_operands_are_never_mutated(self) -> None:
        from pervade_jax import Context, ElementKind, sub

        ctx = Context({ElementKind.NUM: 0.0})
        for _ in range(20):
            a, b = self._compatible_pair()
            a_before, b_before = a.copy(), b.copy()
            sub(a, b, ctx)
            with self.subTest(a=a.shape, b=b.shape):
                self.assertEqual(a, a_before)
                self.assertEqual(b, b_before)

    def test_generic_engine_agrees_with_binary_engine(self) -> None:
        from pervade_jax import Context, ElementKind, bin_pervade, pervade_generic
        from pervade_jax.kernels import SUB
        from pervade_jax.pervade import InfalliblePervasiveFn

        impl = SUB.impl(ElementKind.NUM, ElementKind.NUM)
        f = InfalliblePervasiveFn(impl.fn, impl.output, name="sub")
        for _ in range(30):
            a, b = self._compatible_pair()
            with self.subTest(a=a.shape, b=b.shape):
                binary = bin_pervade(a, b, Context(), f, vectorize=False)
                shape, data = pervade_generic(a.shape, a.data, b.shape, b.data, Context(), f)
                self.assertEqual(binary.shape, shape)
                self.assertEqual(binary.data, data)

    def test_vector_path_agrees_on_random_shapes(self) -> None:
        from pervade_jax import Array, binary

        for name in ("add", "sub", "mul", "div", "modulus", "max", "min", "eq", "lt", "ge"):
            for _ in range(5):
                long_shape = _random_shape(self.rng, min_rank=1)
                short_shape = long_shape[: self.rng.randint(0, len(long_shape))]
                a = Array(short_shape, [self.rng.choice(_SAMPLES) for _ in range(_size(short_shape))])
                b = Array(long_shape, [self.rng.choice(_SAMPLES) for _ in range(_size(long_shape))])
                with self.subTest(kernel=name, a=a.shape, b=b.shape):
                    fast = binary(name, a, b, vectorize=True)
                    slow = binary(name, a, b, vectorize=False)
                    self.assertEqual(fast.shape, slow.shape)
                    self.assertTrue(_same_data(fast.data, slow.data))


if __name__ == "__main__":
    unittest.main()
