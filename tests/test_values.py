from __future__ import annotations

import importlib.util
import math
import unittest


JAX_AVAILABLE = importlib.util.find_spec("jax") is not None


@unittest.skipUnless(JAX_AVAILABLE, "jax is required for value-model tests")
class ArrayConstructionTests(unittest.TestCase):
    def test_nested_lists_infer_shape(self) -> None:
        from pervade_jax import Array, ElementKind

        arr = Array.num([[1, 2, 3], [4, 5, 6]])
        self.assertEqual(arr.shape, (2, 3))
        self.assertEqual(arr.data, [1.0, 2.0, 3.0, 4.0, 5.0, 6.0])
        self.assertEqual(arr.kind, ElementKind.NUM)
        self.assertEqual(arr.rank, 2)
        self.assertEqual(arr.row_len, 3)
        self.assertEqual(arr.row_count, 2)
        self.assertEqual(arr.flat_len, 6)

    def test_non_sequence_is_rank_zero(self) -> None:
        from pervade_jax import Array

        arr = Array.num(5)
        self.assertEqual(arr.shape, ())
        self.assertEqual(arr.tolist(), 5.0)
        self.assertEqual(arr.row_count, 1)

    def test_char_arrays_from_strings(self) -> None:
        from pervade_jax import Array, ElementKind

        word = Array.char("abc")
        self.assertEqual(word.shape, (3,))
        self.assertEqual(word.data, ["a", "b", "c"])
        self.assertEqual(word.kind, ElementKind.CHAR)

        letter = Array.char("a")
        self.assertEqual(letter.shape, ())

        grid = Array.char(["ab", "cd"])
        self.assertEqual(grid.shape, (2, 2))
        self.assertEqual(grid.tolist(), [["a", "b"], ["c", "d"]])

    def test_explicit_shape(self) -> None:
        from pervade_jax import Array

        arr = Array.byte([1, 2, 3, 4, 5, 6], shape=(3, 2))
        self.assertEqual(arr.tolist(), [[1, 2], [3, 4], [5, 6]])

    def test_data_length_must_match_shape(self) -> None:
        from pervade_jax import Array, ArrayShapeError

        with self.assertRaisesRegex(ArrayShapeError, r"\[2 × 2\] needs 4 elements, got 3"):
            Array((2, 2), [1.0, 2.0, 3.0])

    def test_ragged_input_is_rejected(self) -> None:
        from pervade_jax import Array, ArrayShapeError

        with self.assertRaises(ArrayShapeError):
            Array.num([[1, 2], [3]])

    def test_element_validation(self) -> None:
        from pervade_jax import Array

        cases = [
            lambda: Array.byte(256),
            lambda: Array.byte(1.5),
            lambda: Array.char([1]),
            lambda: Array.func([1.0]),
        ]
        for i, build in enumerate(cases):
            with self.subTest(case=i):
                with self.assertRaises(ValueError):
                    build()

    def test_copy_is_independent(self) -> None:
        from pervade_jax import Array

        arr = Array.num([1, 2])
        clone = arr.copy()
        clone.data[0] = 9.0
        self.assertEqual(arr.data, [1.0, 2.0])
        self.assertEqual(clone.shape, arr.shape)


@unittest.skipUnless(JAX_AVAILABLE, "jax is required for value-model tests")
class ShapeHelperTests(unittest.TestCase):
    def test_format_shape(self) -> None:
        from pervade_jax.values import format_shape

        self.assertEqual(format_shape((2, 3)), "[2 × 3]")
        self.assertEqual(format_shape((4,)), "[4]")
        self.assertEqual(format_shape(()), "[]")

    def test_max_shape(self) -> None:
        from pervade_jax.values import max_shape

        cases = [
            ((2, 1), (2, 3, 4), (2, 3, 4)),
            ((3,), (1,), (3,)),
            ((), (5,), (5,)),
            ((2, 5, 1), (2, 3), (2, 5, 1)),
        ]
        for a, b, want in cases:
            with self.subTest(a=a, b=b):
                self.assertEqual(max_shape(a, b), want)
                self.assertEqual(max_shape(b, a), want)

    def test_shape_prefixes_match(self) -> None:
        from pervade_jax import Array

        self.assertTrue(Array.num([1, 2]).shape_prefixes_match(Array.num([[1], [2]])))
        self.assertTrue(Array.num(1).shape_prefixes_match(Array.num([1, 2, 3])))
        self.assertFalse(Array.num([1, 2]).shape_prefixes_match(Array.num([1, 2, 3])))

    def test_rows_are_windows_over_the_data(self) -> None:
        from pervade_jax import Array
        from pervade_jax.values import RowView

        arr = Array.num([[1, 2], [3, 4], [5, 6]])
        rows = list(arr.rows())
        self.assertEqual(len(rows), 3)
        self.assertTrue(all(isinstance(row, RowView) for row in rows))
        self.assertIs(rows[1].base, arr.data)
        self.assertEqual([list(row.values()) for row in rows], [[1.0, 2.0], [3.0, 4.0], [5.0, 6.0]])
        self.assertEqual(rows[2].shape, (2,))
        # rows can be re-read
        self.assertEqual(len(list(arr.rows())), 3)

    def test_fill_to_shape(self) -> None:
        from pervade_jax import Array

        cases = [
            ([1, 2], (3,), [1, 2, 0]),
            ([[1], [2]], (2, 2), [1, 0, 2, 0]),
            ([1, 2], (2, 2), [1, 2, 0, 0]),
            ([[1, 2]], (3, 2), [1, 2, 0, 0, 0, 0]),
        ]
        for values, shape, want in cases:
            with self.subTest(values=values, shape=shape):
                arr = Array.num(values)
                arr.fill_to_shape(shape, 0.0)
                self.assertEqual(arr.shape, shape)
                self.assertEqual(arr.data, [float(v) for v in want])


@unittest.skipUnless(JAX_AVAILABLE, "jax is required for value-model tests")
class OrderingTests(unittest.TestCase):
    def test_numeric_total_order(self) -> None:
        from pervade_jax.values import array_cmp

        nan = math.nan
        cases = [
            (1.0, 2.0, -1),
            (2.0, 1.0, 1),
            (3, 3.0, 0),
            (-0.0, 0.0, 0),
            (nan, nan, 0),
            (nan, math.inf, 1),
            (-math.inf, nan, -1),
        ]
        for a, b, want in cases:
            with self.subTest(a=a, b=b):
                self.assertEqual(array_cmp(a, b), want)

    def test_cross_kind_order(self) -> None:
        from pervade_jax import Function
        from pervade_jax.values import array_cmp

        f = Function("f", lambda x: x)
        self.assertEqual(array_cmp(1000.0, "a"), -1)
        self.assertEqual(array_cmp("a", 7), 1)
        self.assertEqual(array_cmp("z", f), -1)
        self.assertEqual(array_cmp(f, 1.0), 1)
        self.assertEqual(array_cmp("a", "b"), -1)
        self.assertEqual(array_cmp(Function("b", abs), Function("a", abs)), 1)

    def test_row_cmp_is_lexicographic(self) -> None:
        from pervade_jax.values import row_cmp

        self.assertEqual(row_cmp([1.0, 2.0], [1.0, 3.0]), -1)
        self.assertEqual(row_cmp([2.0, 0.0], [1.0, 9.0]), 1)
        self.assertEqual(row_cmp([1.0, math.nan], [1.0, math.nan]), 0)

    def test_row_key_groups_nan(self) -> None:
        from pervade_jax.values import row_key

        self.assertEqual(row_key([1.0, math.nan]), row_key([1.0, float("nan")]))
        self.assertNotEqual(row_key([1.0, 2.0]), row_key([2.0, 1.0]))

    def test_format_element(self) -> None:
        from pervade_jax import Function
        from pervade_jax.values import format_element

        cases = [
            (3.0, "3"),
            (2.5, "2.5"),
            (math.nan, "NaN"),
            (math.inf, "∞"),
            (-math.inf, "-∞"),
            (7, "7"),
            ("x", "x"),
            (Function("double", lambda x: 2 * x), "double"),
        ]
        for value, want in cases:
            with self.subTest(value=value):
                self.assertEqual(format_element(value), want)


@unittest.skipUnless(JAX_AVAILABLE, "jax is required for value-model tests")
class FunctionAndContextTests(unittest.TestCase):
    def test_function_inverse(self) -> None:
        from pervade_jax import Function

        double = Function("double", lambda x: 2 * x, lambda x: x / 2)
        self.assertEqual(double(3.0), 6.0)
        inverse = double.inverse()
        assert inverse is not None
        self.assertEqual(inverse.name, "inv(double)")
        self.assertEqual(inverse(6.0), 3.0)
        self.assertEqual(inverse.inverse()(3.0), 6.0)
        self.assertIsNone(Function("id", lambda x: x).inverse())

    def test_context_fills(self) -> None:
        from pervade_jax import Context, ElementKind

        ctx = Context({ElementKind.NUM: 0, ElementKind.CHAR: " "})
        self.assertEqual(ctx.fill(ElementKind.NUM), 0.0)
        self.assertIsInstance(ctx.fill(ElementKind.NUM), float)
        self.assertEqual(ctx.fill(ElementKind.CHAR), " ")
        self.assertIsNone(ctx.fill(ElementKind.BYTE))

    def test_context_rejects_function_fill(self) -> None:
        from pervade_jax import Context, ElementKind, Function

        with self.assertRaises(ValueError):
            Context({ElementKind.FUNC: Function("f", abs)})

    def test_context_error_constructs_without_raising(self) -> None:
        from pervade_jax import ArrayDomainError, ArrayError, ArrayRuntimeError, Context

        ctx = Context()
        err = ctx.error("boom")
        self.assertIsInstance(err, ArrayRuntimeError)
        self.assertEqual(str(err), "boom")

        domain = ctx.error("bad", ArrayDomainError)
        self.assertIsInstance(domain, ArrayDomainError)
        self.assertIsInstance(domain, ArrayError)

    def test_fill_eligibility(self) -> None:
        from pervade_jax import ArrayFillError, ArrayShapeError

        self.assertTrue(ArrayFillError.fill_eligible)
        self.assertFalse(ArrayShapeError.fill_eligible)
        self.assertTrue(issubclass(ArrayFillError, ArrayShapeError))


if __name__ == "__main__":
    unittest.main()
