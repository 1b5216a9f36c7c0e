"""Monadic shape algorithms over arrays of any element kind."""

from __future__ import annotations

import logging
import math
from functools import cmp_to_key

import jax.numpy as jnp

from . import backend
from .context import Context
from .errors import ArrayDomainError, ArrayNoInverseError, ArrayTypeError
from .values import Array, ElementKind, format_element, format_shape, row_cmp, row_key, shape_size

logger = logging.getLogger(__name__)


def _ctx(ctx: Context | None) -> Context:
    return ctx or Context()


def deshape(x: Array) -> None:
    x.shape = (x.flat_len,)


def _as_naturals(x: Array, ctx: Context, message: str) -> list[int]:
    if not x.kind.is_numeric or x.rank > 1:
        raise ctx.error(message, ArrayDomainError)
    naturals: list[int] = []
    for value in x.data:
        if not (math.isfinite(value) and value >= 0 and float(value).is_integer()):
            raise ctx.error(message, ArrayDomainError)
        naturals.append(int(value))
    return naturals


def range_(x: Array, ctx: Context | None = None) -> Array:
    """Every multi-index of the shape ``x`` in row-major order.

    A single natural ``n`` gives ``0 .. n-1``; a list of naturals gives an array
    of that shape with the index components as a trailing axis.
    """
    ctx = _ctx(ctx)
    shape = tuple(
        _as_naturals(x, ctx, "Range max should be a single natural number or a list of natural numbers")
    )
    out_shape = shape + (len(shape),) if len(shape) > 1 else shape
    if not shape:
        return Array((), [0.0], ElementKind.NUM)
    if 0 in shape:
        return Array(out_shape, [], ElementKind.NUM)
    count = len(shape) * shape_size(shape)
    if count > backend.MAX_ELEMENTS:
        raise ctx.error(
            f"Attempting to make a range from shape {format_shape(shape)} would "
            f"create an array with {count} elements, which is too large",
            ArrayDomainError,
        )
    grid = jnp.moveaxis(jnp.indices(shape), 0, -1)
    return Array(out_shape, [float(v) for v in jnp.ravel(grid).tolist()], ElementKind.NUM)


def first(x: Array, ctx: Context | None = None) -> Array:
    if not x.shape:
        raise _ctx(ctx).error("Cannot take first of a scalar", ArrayDomainError)
    if x.shape[0] == 0:
        raise _ctx(ctx).error("Cannot take first of an empty array", ArrayDomainError)
    return Array(x.shape[1:], x.data[: x.row_len], x.kind)


def last(x: Array, ctx: Context | None = None) -> Array:
    if not x.shape:
        raise _ctx(ctx).error("Cannot take last of a scalar", ArrayDomainError)
    if x.shape[0] == 0:
        raise _ctx(ctx).error("Cannot take last of an empty array", ArrayDomainError)
    return Array(x.shape[1:], x.data[len(x.data) - x.row_len :], x.kind)


def reverse(x: Array) -> None:
    if not x.shape or x.flat_len == 0:
        return
    row_count = x.row_count
    row_len = x.row_len
    data = x.data
    for i in range(row_count // 2):
        left = i * row_len
        right = (row_count - i - 1) * row_len
        # left block lies in the first half, right block in the second
        data[left : left + row_len], data[right : right + row_len] = (
            data[right : right + row_len],
            data[left : left + row_len],
        )


def transpose(x: Array) -> None:
    """Move the first axis to the end."""
    if x.rank < 2:
        return
    if x.shape[0] == 0:
        x.shape = x.shape[1:] + x.shape[:1]
        return
    row_len = x.row_len
    row_count = x.row_count
    data = x.data
    x.data = [data[i * row_len + j] for j in range(row_len) for i in range(row_count)]
    x.shape = x.shape[1:] + x.shape[:1]


def inverse_transpose(x: Array) -> None:
    """Move the last axis to the front."""
    if x.rank < 2:
        return
    if x.shape[0] == 0:
        x.shape = x.shape[-1:] + x.shape[:-1]
        return
    col_len = x.shape[-1]
    col_count = shape_size(x.shape[:-1])
    data = x.data
    x.data = [data[i * col_len + j] for j in range(col_len) for i in range(col_count)]
    x.shape = x.shape[-1:] + x.shape[:-1]


def _numeric_row_order(x: Array, *, descending: bool) -> list[int]:
    rows = jnp.asarray(x.data, dtype=jnp.float64).reshape(x.row_count, x.row_len)
    # -0.0 sorts equal to 0.0
    rows = jnp.where(rows == 0, 0.0, rows)
    if x.row_len == 1:
        order = jnp.argsort(rows[:, 0], stable=True)
    else:
        order = jnp.lexsort(rows[:, ::-1].T)
    if descending:
        order = jnp.flip(order, axis=0)
    return [int(i) for i in order.tolist()]


def _row_order(x: Array, *, descending: bool) -> list[int]:
    if x.kind.is_numeric and backend.x64_enabled() and not backend.has_tiny(x.data):
        return _numeric_row_order(x, descending=descending)
    logger.debug("comparison sort over %d %s rows", x.row_count, x.kind.value)
    rows = [x.row_values(i) for i in range(x.row_count)]
    if descending:
        key = cmp_to_key(lambda i, j: row_cmp(rows[j], rows[i]))
    else:
        key = cmp_to_key(lambda i, j: row_cmp(rows[i], rows[j]))
    return sorted(range(x.row_count), key=key)


def _indices(values: list[int]) -> Array:
    return Array((len(values),), [float(v) for v in values], ElementKind.NUM)


def rise(x: Array, ctx: Context | None = None) -> Array:
    """Permutation of row indices that sorts the rows ascending."""
    if x.rank == 0:
        raise _ctx(ctx).error("Cannot rise a scalar", ArrayDomainError)
    if x.flat_len == 0:
        return _indices([])
    return _indices(_row_order(x, descending=False))


def fall(x: Array, ctx: Context | None = None) -> Array:
    """Permutation of row indices that sorts the rows descending."""
    if x.rank == 0:
        raise _ctx(ctx).error("Cannot fall a scalar", ArrayDomainError)
    if x.flat_len == 0:
        return _indices([])
    return _indices(_row_order(x, descending=True))


def classify(x: Array, ctx: Context | None = None) -> Array:
    """Class of each row: the order in which its content was first seen."""
    if x.rank == 0:
        raise _ctx(ctx).error("Cannot classify a rank-0 array", ArrayDomainError)
    classes: dict[tuple, int] = {}
    classified = []
    for i in range(x.row_count):
        classified.append(classes.setdefault(row_key(x.row_values(i)), len(classes)))
    return _indices(classified)


def deduplicate(x: Array) -> None:
    if x.rank == 0:
        return
    seen: set[tuple] = set()
    deduped: list = []
    new_len = 0
    for i in range(x.row_count):
        values = x.row_values(i)
        key = row_key(values)
        if key not in seen:
            seen.add(key)
            deduped.extend(values)
            new_len += 1
    x.data = deduped
    x.shape = (new_len, *x.shape[1:])


def bits(x: Array, ctx: Context | None = None) -> Array:
    """Bits of each natural as a new trailing axis, bit ``i`` at index ``i``."""
    ctx = _ctx(ctx)
    if x.kind is ElementKind.BYTE:
        naturals = list(x.data)
    elif x.kind is ElementKind.NUM:
        naturals = []
        for n in x.data:
            if not (math.isfinite(n) and n >= 0 and n.is_integer()):
                raise ctx.error("Array must be a list of naturals", ArrayDomainError)
            naturals.append(int(n))
    else:
        raise ctx.error("Argument to bits must be an array of natural numbers", ArrayTypeError)
    if not naturals:
        return Array((*x.shape, 0), [], ElementKind.BYTE)
    max_bits = max(naturals).bit_length()
    data = [(n >> i) & 1 for n in naturals for i in range(max_bits)]
    return Array((*x.shape, max_bits), data, ElementKind.BYTE)


def inverse_bits(x: Array, ctx: Context | None = None) -> Array:
    """Numbers rebuilt from the bit strings along the last axis."""
    ctx = _ctx(ctx)
    if not x.kind.is_numeric:
        raise ctx.error("Argument to inverse_bits must be an array of naturals", ArrayTypeError)
    bools: list[int] = []
    for b in x.data:
        if b != 0 and b != 1:
            raise ctx.error("Array must be a list of booleans", ArrayDomainError)
        bools.append(int(b))
    if x.rank == 0:
        return Array((), [float(bools[0])], ElementKind.NUM)
    shape = x.shape[:-1]
    bit_string_len = x.shape[-1]
    data: list[float] = []
    for start in range(0, bit_string_len * shape_size(shape), bit_string_len or 1):
        n = 0
        for i, b in enumerate(bools[start : start + bit_string_len]):
            if b:
                n |= 1 << i
        data.append(float(n))
    if not bit_string_len:
        data = [0.0] * shape_size(shape)
    return Array(shape, data, ElementKind.NUM)


def parse_num(x: Array, ctx: Context | None = None) -> Array:
    ctx = _ctx(ctx)
    if x.kind is not ElementKind.CHAR or x.rank > 1:
        raise ctx.error("Parsed array must be a string", ArrayTypeError)
    text = "".join(x.data)
    if text != text.strip() or "_" in text:
        raise ctx.error(f"Cannot parse into number: {text!r}", ArrayDomainError)
    try:
        value = float(text)
    except ValueError:
        raise ctx.error(f"Cannot parse into number: {text!r}", ArrayDomainError) from None
    return Array((), [value], ElementKind.NUM)


def _inverses(x: Array, ctx: Context) -> list:
    if x.kind is not ElementKind.FUNC:
        raise ctx.error(f"Cannot invert {x.kind.value}", ArrayTypeError)
    inverses = []
    for f in x.data:
        inverse = f.inverse()
        if inverse is None:
            raise ctx.error(f"No inverse found for {format_element(f)}", ArrayNoInverseError)
        inverses.append(inverse)
    return inverses


def invert(x: Array, ctx: Context | None = None) -> Array:
    return Array(x.shape, _inverses(x, _ctx(ctx)), ElementKind.FUNC)


def under(x: Array, ctx: Context | None = None) -> tuple[Array, Array]:
    """Split each function into the function itself and the inverse that undoes it."""
    afters = _inverses(x, _ctx(ctx))
    return Array(x.shape, list(x.data), ElementKind.FUNC), Array(x.shape, afters, ElementKind.FUNC)
