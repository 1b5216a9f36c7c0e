"""Array value model: element kinds, owned arrays, row views and element ordering."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from itertools import product
from typing import Callable, ClassVar, Final, Iterator, Sequence

from .errors import ArrayShapeError


class ElementKind(str, Enum):
    NUM = "number"
    BYTE = "byte"
    CHAR = "character"
    FUNC = "function"

    @property
    def is_numeric(self) -> bool:
        return self in (ElementKind.NUM, ElementKind.BYTE)


@dataclass(frozen=True)
class Function:
    """First-class function value stored in function arrays."""

    name: str
    fn: Callable[..., object] = field(compare=False, repr=False)
    inverse_fn: Callable[..., object] | None = field(default=None, compare=False, repr=False)

    def __call__(self, *args):
        return self.fn(*args)

    def inverse(self) -> "Function | None":
        if self.inverse_fn is None:
            return None
        return Function(name=f"inv({self.name})", fn=self.inverse_fn, inverse_fn=self.fn)


def shape_size(shape: Sequence[int]) -> int:
    return math.prod(shape)


def format_shape(shape: Sequence[int]) -> str:
    return "[" + " × ".join(str(d) for d in shape) + "]"


def max_shape(a: Sequence[int], b: Sequence[int]) -> tuple[int, ...]:
    """Element-wise maximum of two shapes; the longer shape supplies the tail."""
    out = [max(x, y) for x, y in zip(a, b)]
    longer = a if len(a) >= len(b) else b
    out.extend(longer[len(out):])
    return tuple(out)


def _strides(shape: Sequence[int]) -> list[int]:
    strides = [1] * len(shape)
    for i in range(len(shape) - 2, -1, -1):
        strides[i] = strides[i + 1] * shape[i + 1]
    return strides


_KIND_RANK: Final[dict[type, int]] = {str: 1}


def _value_rank(value: object) -> int:
    if isinstance(value, Function):
        return 2
    return _KIND_RANK.get(type(value), 0)


def array_cmp(a: object, b: object) -> int:
    """Total order over element values, returning -1, 0 or 1.

    Numbers and bytes compare numerically with NaN equal to itself and greater
    than every number. Characters compare by code point, functions by name.
    Across kinds, numbers sort before characters and characters before functions.
    """
    a_rank = _value_rank(a)
    b_rank = _value_rank(b)
    if a_rank != b_rank:
        return -1 if a_rank < b_rank else 1
    if a_rank == 2:
        a, b = a.name, b.name
    elif a_rank == 0:
        a_nan = a != a
        b_nan = b != b
        if a_nan or b_nan:
            return (a_nan > b_nan) - (a_nan < b_nan)
    return (a > b) - (a < b)


def row_cmp(a: Sequence[object], b: Sequence[object]) -> int:
    for x, y in zip(a, b):
        ordering = array_cmp(x, y)
        if ordering:
            return ordering
    return 0


_NAN_KEY: Final = ("nan",)


def row_key(values: Sequence[object]) -> tuple:
    """Hashable key under which rows that compare equal collide."""
    return tuple(_NAN_KEY if isinstance(v, float) and v != v else v for v in values)


def format_element(value: object) -> str:
    if isinstance(value, Function):
        return value.name
    if isinstance(value, float):
        if value != value:
            return "NaN"
        if math.isinf(value):
            return "∞" if value > 0 else "-∞"
        if value.is_integer():
            return str(int(value))
    return str(value)


def coerce_element(kind: ElementKind, value: object) -> object:
    if kind is ElementKind.NUM:
        return float(value)
    if kind is ElementKind.BYTE:
        byte = int(value)
        if byte != value or not 0 <= byte <= 255:
            raise ValueError(f"byte elements must be integers in 0..255, got {value!r}")
        return byte
    if kind is ElementKind.CHAR:
        if not isinstance(value, str) or len(value) != 1:
            raise ValueError(f"character elements must be single codepoints, got {value!r}")
        return value
    if not isinstance(value, Function):
        raise ValueError(f"function elements must be Function values, got {type(value).__name__}")
    return value


def _flatten(value: object, kind: ElementKind) -> tuple[tuple[int, ...], list]:
    if isinstance(value, str) and len(value) != 1 and kind is ElementKind.CHAR:
        value = list(value)
    if not isinstance(value, (list, tuple)):
        return (), [coerce_element(kind, value)]
    if not value:
        return (0,), []
    parts = [_flatten(item, kind) for item in value]
    cell_shape = parts[0][0]
    if any(shape != cell_shape for shape, _ in parts):
        raise ArrayShapeError("Cannot build an array from rows of differing shapes")
    return (len(parts), *cell_shape), [item for _, flat in parts for item in flat]


class Arrayish:
    """Shape plus a flat window over a backing list.

    Implementations provide ``shape``, ``base`` and ``offset``; the window
    covers ``base[offset : offset + flat_len]``.
    """

    shape: tuple[int, ...]
    base: Sequence[object]
    offset: int

    @property
    def rank(self) -> int:
        return len(self.shape)

    @property
    def flat_len(self) -> int:
        return shape_size(self.shape)

    @property
    def row_len(self) -> int:
        return shape_size(self.shape[1:])

    @property
    def row_count(self) -> int:
        return self.shape[0] if self.shape else 1

    def item(self, index: int) -> object:
        return self.base[self.offset + index]

    def values(self) -> Iterator[object]:
        base = self.base
        return (base[i] for i in range(self.offset, self.offset + self.flat_len))

    def row_values(self, index: int) -> list:
        start = self.offset + index * self.row_len
        return list(self.base[start : start + self.row_len])

    def rows(self) -> Iterator["RowView"]:
        row_shape = self.shape[1:]
        step = max(self.row_len, 1)
        count = self.flat_len // step
        for i in range(count):
            yield RowView(row_shape, self.base, self.offset + i * step)

    def shape_prefixes_match(self, other: "Arrayish") -> bool:
        return all(a == b for a, b in zip(self.shape, other.shape))


@dataclass(frozen=True)
class RowView(Arrayish):
    """Borrowed sub-array: a shape over a window of another array's data."""

    shape: tuple[int, ...]
    base: Sequence[object]
    offset: int = 0


@dataclass
class Array(Arrayish):
    """Owned array: row-major flat ``data`` whose length is the product of ``shape``."""

    shape: tuple[int, ...]
    data: list
    kind: ElementKind = ElementKind.NUM
    offset: ClassVar[int] = 0

    def __post_init__(self) -> None:
        self.shape = tuple(int(d) for d in self.shape)
        if not isinstance(self.data, list):
            self.data = list(self.data)
        self.validate_shape()

    @property
    def base(self) -> list:
        return self.data

    @classmethod
    def of(cls, kind: ElementKind, values: object, shape: Sequence[int] | None = None) -> "Array":
        if shape is None:
            inferred, flat = _flatten(values, kind)
            return cls(inferred, flat, kind)
        if isinstance(values, str) and kind is ElementKind.CHAR:
            values = list(values)
        if not isinstance(values, (list, tuple)):
            values = [values]
        return cls(tuple(shape), [coerce_element(kind, v) for v in values], kind)

    @classmethod
    def num(cls, values: object, shape: Sequence[int] | None = None) -> "Array":
        return cls.of(ElementKind.NUM, values, shape)

    @classmethod
    def byte(cls, values: object, shape: Sequence[int] | None = None) -> "Array":
        return cls.of(ElementKind.BYTE, values, shape)

    @classmethod
    def char(cls, values: object, shape: Sequence[int] | None = None) -> "Array":
        return cls.of(ElementKind.CHAR, values, shape)

    @classmethod
    def func(cls, values: object, shape: Sequence[int] | None = None) -> "Array":
        return cls.of(ElementKind.FUNC, values, shape)

    def validate_shape(self) -> None:
        expected = shape_size(self.shape)
        if any(d < 0 for d in self.shape) or len(self.data) != expected:
            raise ArrayShapeError(
                f"Array of shape {format_shape(self.shape)} needs {expected} elements, got {len(self.data)}"
            )

    def copy(self) -> "Array":
        return Array(self.shape, list(self.data), self.kind)

    def tolist(self):
        if not self.shape:
            return self.data[0]

        def build(offset: int, dims: tuple[int, ...]):
            if len(dims) == 1:
                return self.data[offset : offset + dims[0]]
            step = shape_size(dims[1:])
            return [build(offset + i * step, dims[1:]) for i in range(dims[0])]

        return build(0, self.shape)

    def fill_to_shape(self, shape: Sequence[int], fill: object) -> None:
        """Grow in place to ``shape``, keeping existing elements at their indices.

        Missing leading axes are added with length 1 first; new positions hold ``fill``.
        """
        target = tuple(shape)
        current = self.shape
        while len(current) < len(target):
            current = (1, *current)
        if len(current) != len(target):
            raise ArrayShapeError(f"Cannot fill shape {format_shape(self.shape)} to {format_shape(target)}")
        if current == target:
            self.shape = current
            return
        new_data = [fill] * shape_size(target)
        keep = [min(c, t) for c, t in zip(current, target)]
        if all(keep):
            src_strides = _strides(current)
            dst_strides = _strides(target)
            run = keep[-1]
            for index in product(*(range(k) for k in keep[:-1])):
                src = sum(i * s for i, s in zip(index, src_strides))
                dst = sum(i * s for i, s in zip(index, dst_strides))
                new_data[dst : dst + run] = self.data[src : src + run]
        self.shape = target
        self.data = new_data
