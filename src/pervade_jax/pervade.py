"""Pervasive application of scalar kernels across arrays of differing shape."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Callable, Iterator

import jax.numpy as jnp

from . import backend
from .context import Context
from .errors import ArrayFillError, ArrayShapeError
from .values import Array, Arrayish, ElementKind, format_shape, max_shape, shape_size

logger = logging.getLogger(__name__)


class PervasiveFn:
    """Two-argument kernel with a uniform ``call(a, b, ctx)`` contract."""

    name: str
    output: ElementKind
    vector: Callable[[jnp.ndarray, jnp.ndarray], jnp.ndarray] | None = None

    def call(self, a: object, b: object, ctx: Context) -> object:
        raise NotImplementedError


@dataclass(frozen=True)
class InfalliblePervasiveFn(PervasiveFn):
    """Kernel that cannot fail and does not need the context."""

    fn: Callable[[object, object], object]
    output: ElementKind
    name: str = ""
    vector: Callable[[jnp.ndarray, jnp.ndarray], jnp.ndarray] | None = field(default=None, compare=False)

    def call(self, a: object, b: object, ctx: Context) -> object:
        return self.fn(a, b)


@dataclass(frozen=True)
class FalliblePervasiveFn(PervasiveFn):
    """Kernel that may raise an array error built from the context."""

    fn: Callable[[object, object, Context], object]
    output: ElementKind
    name: str = ""

    def call(self, a: object, b: object, ctx: Context) -> object:
        return self.fn(a, b, ctx)


def _filled(arr: Array, ctx: Context, shape: tuple[int, ...], side: str) -> Array:
    fill = ctx.fill(arr.kind)
    if fill is None:
        return arr
    logger.debug("filling %s operand from %s to %s", side, format_shape(arr.shape), format_shape(shape))
    filled = arr.copy()
    filled.fill_to_shape(shape, fill)
    return filled


def _reconcile(a: Array, b: Array, ctx: Context) -> tuple[Array, Array]:
    # missing rows
    if a.row_count < b.row_count:
        a = _filled(a, ctx, (b.row_count, *a.shape[1:]), "left")
    elif a.row_count > b.row_count:
        b = _filled(b, ctx, (a.row_count, *b.shape[1:]), "right")
    if a.shape_prefixes_match(b):
        return a, b
    # missing dimensions
    if a.rank < b.rank:
        a = _filled(a, ctx, (b.row_count, *a.shape), "left")
    elif a.rank > b.rank:
        b = _filled(b, ctx, (a.row_count, *b.shape), "right")
    else:
        target = max_shape(a.shape, b.shape)
        if a.shape != target:
            a = _filled(a, ctx, target, "left")
        if b.shape != target:
            b = _filled(b, ctx, target, "right")
    if not a.shape_prefixes_match(b):
        raise ctx.error(
            f"Shapes {format_shape(a.shape)} and {format_shape(b.shape)} do not match",
            ArrayFillError,
        )
    return a, b


def _pervade_recursive(a: Arrayish, b: Arrayish, out: list, ctx: Context, f: PervasiveFn) -> None:
    a_shape = a.shape
    b_shape = b.shape
    if not a_shape and not b_shape:
        out.append(f.call(a.item(0), b.item(0), ctx))
    elif a_shape == b_shape:
        for x, y in zip(a.values(), b.values()):
            out.append(f.call(x, y, ctx))
    elif not a_shape:
        x = a.item(0)
        for y in b.values():
            out.append(f.call(x, y, ctx))
    elif not b_shape:
        y = b.item(0)
        for x in a.values():
            out.append(f.call(x, y, ctx))
    else:
        for a_row, b_row in zip(a.rows(), b.rows()):
            _pervade_recursive(a_row, b_row, out, ctx, f)


def _wants_vector_path(a: Array, b: Array, f: PervasiveFn, size: int, vectorize: bool | None) -> bool:
    if f.vector is None or not (a.kind.is_numeric and b.kind.is_numeric) or vectorize is False:
        return False
    if vectorize is None and not (size >= backend.VECTOR_MIN_SIZE and backend.vector_path_enabled()):
        return False
    if not backend.vector_exact(a, b):
        logger.debug("recursive path for %s: jitted kernels would not be exact", f.name)
        return False
    return True


def _pervade_vector(a: Array, b: Array, f: PervasiveFn, shape: tuple[int, ...]) -> list:
    rank = len(shape)
    kernel = backend.jitted_kernel(f"binary:{f.name}", f.vector)
    result = kernel(backend.to_jax(a, rank=rank), backend.to_jax(b, rank=rank))
    return backend.from_jax(jnp.broadcast_to(result, shape), f.output)


def bin_pervade(
    a: Array,
    b: Array,
    ctx: Context,
    f: PervasiveFn,
    *,
    vectorize: bool | None = None,
) -> Array:
    """Apply ``f`` element-wise across ``a`` and ``b``.

    Shapes whose prefixes disagree are first repaired with the context's fill
    values; operands needing repair are copied, never mutated. Scalars and
    shorter shapes broadcast over the trailing axes of the other operand. The
    result has the element-wise maximum shape of the (repaired) operands.

    ``vectorize`` forces (``True``) or forbids (``False``) the jitted
    ``jax.numpy`` path for number/byte operands; ``None`` decides by size.
    """
    if not a.shape_prefixes_match(b):
        a, b = _reconcile(a, b, ctx)
    shape = max_shape(a.shape, b.shape)
    if _wants_vector_path(a, b, f, shape_size(shape), vectorize):
        logger.debug("vector path for %s over %s", f.name, format_shape(shape))
        data = _pervade_vector(a, b, f, shape)
    else:
        data = []
        _pervade_recursive(a, b, data, ctx, f)
    return Array(shape, data, f.output)


def pervade_unary(
    x: Array,
    fn: Callable[[object], object],
    output: ElementKind,
    *,
    name: str = "",
    vector: Callable[[jnp.ndarray], jnp.ndarray] | None = None,
    vectorize: bool | None = None,
) -> Array:
    use_vector = vector is not None and x.kind.is_numeric
    if use_vector and vectorize is None:
        use_vector = x.flat_len >= backend.VECTOR_MIN_SIZE and backend.vector_path_enabled()
    elif vectorize is not None:
        use_vector = use_vector and vectorize
    if use_vector and not backend.vector_exact(x):
        logger.debug("recursive path for %s: jitted kernels would not be exact", name)
        use_vector = False
    if use_vector:
        kernel = backend.jitted_kernel(f"unary:{name}", vector)
        data = backend.from_jax(kernel(backend.to_jax(x)), output)
    else:
        data = [fn(v) for v in x.data]
    return Array(x.shape, data, output)


class PervasiveInput:
    """Flat operand of the generic engine: an owned list, a borrowed slice or an optional scalar."""

    def _window(self) -> tuple[Sequence[object], int, int]:
        raise NotImplementedError

    def __len__(self) -> int:
        _, start, stop = self._window()
        return stop - start

    def __iter__(self) -> Iterator[object]:
        base, start, stop = self._window()
        return (base[i] for i in range(start, stop))

    def only(self) -> object:
        base, start, stop = self._window()
        if start >= stop:
            raise IndexError("pervasive input is empty")
        return base[start]

    def chunks(self, size: int, count: int) -> Iterator["SliceInput"]:
        base, start, _ = self._window()
        for i in range(count):
            yield SliceInput(base, start + i * size, start + (i + 1) * size)


@dataclass(frozen=True)
class OwnedInput(PervasiveInput):
    items: list

    def _window(self) -> tuple[Sequence[object], int, int]:
        return self.items, 0, len(self.items)


@dataclass(frozen=True)
class SliceInput(PervasiveInput):
    base: Sequence[object]
    start: int = 0
    stop: int | None = None

    def _window(self) -> tuple[Sequence[object], int, int]:
        stop = len(self.base) if self.stop is None else self.stop
        return self.base, self.start, stop


_ABSENT = object()


@dataclass(frozen=True)
class ScalarInput(PervasiveInput):
    value: object = _ABSENT

    def _window(self) -> tuple[Sequence[object], int, int]:
        if self.value is _ABSENT:
            return (), 0, 0
        return (self.value,), 0, 1


def as_pervasive_input(value: object) -> PervasiveInput:
    if isinstance(value, PervasiveInput):
        return value
    if isinstance(value, list):
        return OwnedInput(value)
    if isinstance(value, tuple):
        return SliceInput(value)
    if value is None:
        return ScalarInput()
    return ScalarInput(value)


def _pervade_generic_recursive(
    a_shape: tuple[int, ...],
    a: PervasiveInput,
    b_shape: tuple[int, ...],
    b: PervasiveInput,
    out: list,
    start: int,
    ctx: Context,
    f: PervasiveFn,
) -> None:
    if a_shape == b_shape:
        for k, (x, y) in enumerate(zip(a, b)):
            out[start + k] = f.call(x, y, ctx)
        return
    if not b_shape:
        y = b.only()
        for k, x in enumerate(a):
            out[start + k] = f.call(x, y, ctx)
        return
    if not a_shape:
        x = a.only()
        for k, y in enumerate(b):
            out[start + k] = f.call(x, y, ctx)
        return
    cells = a_shape[0]
    if cells != b_shape[0]:
        raise ctx.error(
            f"Shapes {format_shape(a_shape)} and {format_shape(b_shape)} do not match",
            ArrayShapeError,
        )
    if cells == 0:
        return
    a_chunk = len(a) // cells
    b_chunk = len(b) // cells
    if len(a_shape) == 1:
        for k, (x, b_cell) in enumerate(zip(a, b.chunks(b_chunk, cells))):
            _pervade_generic_recursive((), ScalarInput(x), b_shape[1:], b_cell, out, start + k * b_chunk, ctx, f)
    elif len(b_shape) == 1:
        for k, (a_cell, y) in enumerate(zip(a.chunks(a_chunk, cells), b)):
            _pervade_generic_recursive(a_shape[1:], a_cell, (), ScalarInput(y), out, start + k * a_chunk, ctx, f)
    else:
        c_chunk = max(a_chunk, b_chunk)
        for k, (a_cell, b_cell) in enumerate(zip(a.chunks(a_chunk, cells), b.chunks(b_chunk, cells))):
            _pervade_generic_recursive(a_shape[1:], a_cell, b_shape[1:], b_cell, out, start + k * c_chunk, ctx, f)


def pervade_generic(
    a_shape: Sequence[int],
    a: object,
    b_shape: Sequence[int],
    b: object,
    ctx: Context,
    f: PervasiveFn,
    *,
    default: object = None,
) -> tuple[tuple[int, ...], list]:
    """Broadcast ``f`` over flat operands that have no fill value.

    Only scalar broadcasting and equal leading axes are accepted; any other
    mismatch is an ``ArrayShapeError``, as is an operand whose length is not
    the size of its shape (an absent scalar included). The output is
    pre-sized to the maximum shape and initialized with ``default``.
    """
    a_shape = tuple(a_shape)
    b_shape = tuple(b_shape)
    a_input = as_pervasive_input(a)
    b_input = as_pervasive_input(b)
    for shape, operand in ((a_shape, a_input), (b_shape, b_input)):
        if len(operand) != shape_size(shape):
            raise ctx.error(
                f"Operand of shape {format_shape(shape)} has {len(operand)} elements",
                ArrayShapeError,
            )
    c_shape = max_shape(a_shape, b_shape)
    out = [default] * shape_size(c_shape)
    _pervade_generic_recursive(a_shape, a_input, b_shape, b_input, out, 0, ctx, f)
    return c_shape, out
