"""Scalar kernel tables for pervasive operations.

Binary kernels receive their operands in stack order: ``fn(a, b)`` computes
``b op a`` (``SUB.num_num(3.0, 10.0) == 7.0``). Every numeric kernel follows
IEEE-754: division by zero, logarithms of non-positive values and domain
errors produce infinities or NaN rather than Python exceptions.
"""

from __future__ import annotations

import math
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Callable, Final

import jax.numpy as jnp

from .context import Context
from .errors import ArrayRuntimeError, ArrayTypeError
from .values import ElementKind, array_cmp

NUM: Final = ElementKind.NUM
BYTE: Final = ElementKind.BYTE
CHAR: Final = ElementKind.CHAR
FUNC: Final = ElementKind.FUNC

_KIND_ABBREVIATIONS: Final[dict[str, ElementKind]] = {"num": NUM, "byte": BYTE, "char": CHAR, "func": FUNC}


@dataclass(frozen=True)
class KernelImpl:
    fn: Callable[..., object]
    output: ElementKind


@dataclass(frozen=True)
class BinaryKernel:
    """All supported kind combinations of one binary operation.

    ``vector``, when present, reproduces every number/byte combination exactly
    on float64 ``jax.numpy`` arrays whose nonzero operands are no smaller in
    magnitude than ``backend.VECTOR_MIN_MAGNITUDE``.
    """

    name: str
    impls: Mapping[tuple[ElementKind, ElementKind], KernelImpl]
    message: Callable[[str, str], str]
    vector: Callable[[jnp.ndarray, jnp.ndarray], jnp.ndarray] | None = None

    def impl(self, a_kind: ElementKind, b_kind: ElementKind) -> KernelImpl | None:
        return self.impls.get((a_kind, b_kind))

    def error(self, a: str, b: str, ctx: Context) -> ArrayRuntimeError:
        return ctx.error(self.message(a, b), ArrayTypeError)

    def __getattr__(self, attr: str):
        # table entries by combination name, e.g. ``ADD.byte_char``
        a, sep, b = attr.partition("_")
        impl = self.impls.get((_KIND_ABBREVIATIONS.get(a), _KIND_ABBREVIATIONS.get(b))) if sep else None
        if impl is None:
            raise AttributeError(attr)
        return impl.fn


@dataclass(frozen=True)
class UnaryKernel:
    name: str
    impls: Mapping[ElementKind, KernelImpl]
    message: Callable[[str], str]
    vector: Callable[[jnp.ndarray], jnp.ndarray] | None = None

    def impl(self, kind: ElementKind) -> KernelImpl | None:
        return self.impls.get(kind)

    def error(self, a: str, ctx: Context) -> ArrayRuntimeError:
        return ctx.error(self.message(a), ArrayTypeError)

    def __getattr__(self, attr: str):
        kind = _KIND_ABBREVIATIONS.get(attr)
        impl = self.impls.get(kind) if kind is not None else None
        if impl is None:
            raise AttributeError(attr)
        return impl.fn


def _is_odd_integer(x: float) -> bool:
    return math.isfinite(x) and x.is_integer() and int(x) % 2 == 1


def _div(x: float, y: float) -> float:
    try:
        return x / y
    except ZeroDivisionError:
        if x != x or x == 0:
            return math.nan
        return math.copysign(math.inf, x) * math.copysign(1.0, y)


def _fmod(x: float, y: float) -> float:
    if y == 0 or x != x or y != y or math.isinf(x):
        return math.nan
    return math.fmod(x, y)


def _modulus(a: float, b: float) -> float:
    return _fmod(_fmod(b, a) + a, a)


def _pow(x: float, y: float) -> float:
    try:
        return math.pow(x, y)
    except OverflowError:
        return -math.inf if x < 0 and _is_odd_integer(y) else math.inf
    except ValueError:
        if x == 0:
            return math.copysign(math.inf, x) if _is_odd_integer(y) else math.inf
        return math.nan


def _ln(x: float) -> float:
    if x != x or x < 0:
        return math.nan
    if x == 0:
        return -math.inf
    return math.log(x)


def _log(a: float, b: float) -> float:
    return _div(_ln(b), _ln(a))


def _max(a, b):
    if a != a:
        return b
    if b != b:
        return a
    return b if a < b else a


def _min(a, b):
    if a != a:
        return b
    if b != b:
        return a
    return b if b < a else a


def _vector_max(a: jnp.ndarray, b: jnp.ndarray) -> jnp.ndarray:
    return jnp.where(jnp.isnan(a), b, jnp.where(jnp.isnan(b), a, jnp.where(a < b, b, a)))


def _vector_min(a: jnp.ndarray, b: jnp.ndarray) -> jnp.ndarray:
    return jnp.where(jnp.isnan(a), b, jnp.where(jnp.isnan(b), a, jnp.where(b < a, b, a)))


def _as_i64(x: float) -> int:
    if x != x:
        return 0
    if math.isinf(x):
        return 2**63 - 1 if x > 0 else -(2**63)
    return max(-(2**63), min(2**63 - 1, int(x)))


def _char_from_code(code: int) -> str:
    """Character for a code point, or NUL when the code point is not a valid character."""
    code &= 0xFFFFFFFF
    if code > 0x10FFFF or 0xD800 <= code <= 0xDFFF:
        return "\0"
    return chr(code)


def _shift_char(c: str, delta: int) -> str:
    return _char_from_code(ord(c) + delta)


def _numeric_impls(
    num_num: Callable[[float, float], object],
    byte_byte: Callable[[int, int], object] | None = None,
    *,
    output: ElementKind = NUM,
    byte_output: ElementKind = NUM,
) -> dict[tuple[ElementKind, ElementKind], KernelImpl]:
    if byte_byte is None:
        byte_byte = lambda a, b: num_num(float(a), float(b))
    return {
        (NUM, NUM): KernelImpl(num_num, output),
        (BYTE, BYTE): KernelImpl(byte_byte, byte_output),
        (BYTE, NUM): KernelImpl(lambda a, b: num_num(float(a), b), output),
        (NUM, BYTE): KernelImpl(lambda a, b: num_num(a, float(b)), output),
    }


ADD: Final = BinaryKernel(
    name="add",
    impls={
        **_numeric_impls(lambda a, b: b + a, lambda a, b: float(a) + float(b)),
        (NUM, CHAR): KernelImpl(lambda a, b: _shift_char(b, _as_i64(a)), CHAR),
        (CHAR, NUM): KernelImpl(lambda a, b: _shift_char(a, _as_i64(b)), CHAR),
        (BYTE, CHAR): KernelImpl(lambda a, b: _shift_char(b, a), CHAR),
        (CHAR, BYTE): KernelImpl(lambda a, b: _shift_char(a, b), CHAR),
    },
    message=lambda a, b: f"Cannot add {a} and {b}",
    vector=lambda a, b: b + a,
)

SUB: Final = BinaryKernel(
    name="sub",
    impls={
        **_numeric_impls(lambda a, b: b - a),
        (NUM, CHAR): KernelImpl(lambda a, b: _shift_char(b, -_as_i64(a)), CHAR),
        (BYTE, CHAR): KernelImpl(lambda a, b: _shift_char(b, -a), CHAR),
        (CHAR, CHAR): KernelImpl(lambda a, b: float(ord(b) - ord(a)), NUM),
    },
    message=lambda a, b: f"Cannot subtract {a} from {b}",
    vector=lambda a, b: b - a,
)

MUL: Final = BinaryKernel(
    name="mul",
    impls=_numeric_impls(lambda a, b: b * a),
    message=lambda a, b: f"Cannot multiply {a} and {b}",
    vector=lambda a, b: b * a,
)

DIV: Final = BinaryKernel(
    name="div",
    impls=_numeric_impls(lambda a, b: _div(b, a)),
    message=lambda a, b: f"Cannot divide {a} by {b}",
)

MODULUS: Final = BinaryKernel(
    name="modulus",
    impls=_numeric_impls(_modulus, lambda a, b: _fmod(float(b), float(a))),
    message=lambda a, b: f"Cannot take the modulus of {a} by {b}",
    vector=lambda a, b: jnp.fmod(jnp.fmod(b, a) + a, a),
)

POW: Final = BinaryKernel(
    name="pow",
    impls=_numeric_impls(lambda a, b: _pow(b, a)),
    message=lambda a, b: f"Cannot get the power of {a} to {b}",
)

LOG: Final = BinaryKernel(
    name="log",
    impls=_numeric_impls(_log),
    message=lambda a, b: f"Cannot get the log base {b} of {a}",
)

ATAN2: Final = BinaryKernel(
    name="atan2",
    impls=_numeric_impls(math.atan2),
    message=lambda a, b: f"Cannot get the atan2 of {a} and {b}",
)

MAX: Final = BinaryKernel(
    name="max",
    impls={
        **_numeric_impls(_max, _max, byte_output=BYTE),
        (CHAR, CHAR): KernelImpl(max, CHAR),
    },
    message=lambda a, b: f"Cannot get the max of {a} and {b}",
    vector=_vector_max,
)

MIN: Final = BinaryKernel(
    name="min",
    impls={
        **_numeric_impls(_min, _min, byte_output=BYTE),
        (CHAR, CHAR): KernelImpl(min, CHAR),
    },
    message=lambda a, b: f"Cannot get the min of {a} and {b}",
    vector=_vector_min,
)


def _vector_cmp(a: jnp.ndarray, b: jnp.ndarray) -> jnp.ndarray:
    """Sign of the total-order comparison of ``b`` against ``a`` (NaN greatest)."""
    a_nan = jnp.isnan(a)
    b_nan = jnp.isnan(b)
    less = (b < a) | (~b_nan & a_nan)
    greater = (b > a) | (b_nan & ~a_nan)
    return jnp.where(less, -1, jnp.where(greater, 1, 0))


def _unreachable_comparison(a: str, b: str) -> str:
    raise AssertionError(f"Comparisons cannot fail, failed to compare {a} and {b}")


_KIND_ORDER: Final[dict[ElementKind, int]] = {NUM: 0, BYTE: 0, CHAR: 1, FUNC: 2}


def _comparison(name: str, keep: Callable[[object], object]) -> BinaryKernel:
    """Comparison kernel that outputs 1 where ``keep(ordering of b against a)`` holds."""

    def always_greater(_a, _b) -> int:
        return int(keep(-1))

    def always_less(_a, _b) -> int:
        return int(keep(1))

    def generic(a, b) -> int:
        return int(keep(array_cmp(b, a)))

    impls: dict[tuple[ElementKind, ElementKind], KernelImpl] = {}
    for a_kind, a_order in _KIND_ORDER.items():
        for b_kind, b_order in _KIND_ORDER.items():
            if a_order == b_order:
                fn = generic
            elif a_order > b_order:
                fn = always_greater
            else:
                fn = always_less
            impls[(a_kind, b_kind)] = KernelImpl(fn, BYTE)
    return BinaryKernel(
        name=name,
        impls=impls,
        message=_unreachable_comparison,
        vector=lambda a, b: keep(_vector_cmp(a, b)),
    )


IS_EQ: Final = _comparison("eq", lambda ordering: ordering == 0)
IS_NE: Final = _comparison("ne", lambda ordering: ordering != 0)
IS_LT: Final = _comparison("lt", lambda ordering: ordering == -1)
IS_LE: Final = _comparison("le", lambda ordering: ordering != 1)
IS_GT: Final = _comparison("gt", lambda ordering: ordering == 1)
IS_GE: Final = _comparison("ge", lambda ordering: ordering != -1)

BINARY_KERNELS: Final[dict[str, BinaryKernel]] = {
    kernel.name: kernel
    for kernel in (ADD, SUB, MUL, DIV, MODULUS, POW, LOG, ATAN2, MAX, MIN, IS_EQ, IS_NE, IS_LT, IS_LE, IS_GT, IS_GE)
}


def _math_or_nan(fn: Callable[[float], float]) -> Callable[[float], float]:
    def wrapped(x: float) -> float:
        try:
            return fn(x)
        except ValueError:
            return math.nan

    return wrapped


def _sign(x: float) -> float:
    if x != x:
        return math.nan
    if x == 0:
        return 0.0
    return math.copysign(1.0, x)


def _sqrt(x: float) -> float:
    if x < 0:
        return math.nan
    return math.sqrt(x)


def _integral(fn: Callable[[float], int]) -> Callable[[float], float]:
    def wrapped(x: float) -> float:
        if not math.isfinite(x):
            return x
        return math.copysign(float(fn(x)), x)

    return wrapped


def _round_half_away(x: float) -> float:
    magnitude = abs(x)
    rounded = math.floor(magnitude)
    if magnitude - rounded >= 0.5:
        rounded += 1
    return float(rounded)


def _unary(
    name: str,
    num: Callable[[float], object],
    message: Callable[[str], str],
    *,
    byte: Callable[[int], object] | None = None,
    byte_output: ElementKind = NUM,
    vector: Callable[[jnp.ndarray], jnp.ndarray] | None = None,
) -> UnaryKernel:
    if byte is None:
        byte = lambda a: num(float(a))
    return UnaryKernel(
        name=name,
        impls={NUM: KernelImpl(num, NUM), BYTE: KernelImpl(byte, byte_output)},
        message=message,
        vector=vector,
    )


def _identity(a):
    return a


NOT: Final = _unary("not", lambda a: 1.0 - a, lambda a: f"Cannot take the logical not of {a}", vector=lambda x: 1.0 - x)
NEG: Final = _unary("neg", lambda a: -a, lambda a: f"Cannot negate {a}", vector=lambda x: -x)
ABS: Final = _unary(
    "abs",
    abs,
    lambda a: f"Cannot take the absolute value of {a}",
    byte=_identity,
    byte_output=BYTE,
    vector=jnp.abs,
)
SIGN: Final = _unary(
    "sign",
    _sign,
    lambda a: f"Cannot get the sign of {a}",
    byte=lambda a: int(a > 0),
    byte_output=BYTE,
    vector=lambda x: jnp.where(jnp.isnan(x), x, jnp.where(x == 0, 0.0, jnp.sign(x))),
)
SQRT: Final = _unary("sqrt", _sqrt, lambda a: f"Cannot take the square root of {a}", vector=jnp.sqrt)
SIN: Final = _unary("sin", _math_or_nan(math.sin), lambda a: f"Cannot get the sine of {a}")
COS: Final = _unary("cos", _math_or_nan(math.cos), lambda a: f"Cannot get the cosine of {a}")
TAN: Final = _unary("tan", _math_or_nan(math.tan), lambda a: f"Cannot get the tangent of {a}")
ASIN: Final = _unary("asin", _math_or_nan(math.asin), lambda a: f"Cannot get the arcsine of {a}")
ACOS: Final = _unary("acos", _math_or_nan(math.acos), lambda a: f"Cannot get the arccosine of {a}")
FLOOR: Final = _unary(
    "floor",
    _integral(math.floor),
    lambda a: f"Cannot get the floor of {a}",
    byte=_identity,
    byte_output=BYTE,
    vector=jnp.floor,
)
CEIL: Final = _unary(
    "ceil",
    _integral(math.ceil),
    lambda a: f"Cannot get the ceiling of {a}",
    byte=_identity,
    byte_output=BYTE,
    vector=jnp.ceil,
)
ROUND: Final = _unary(
    "round",
    _integral(_round_half_away),
    lambda a: f"Cannot get the rounded value of {a}",
    byte=_identity,
    byte_output=BYTE,
)

UNARY_KERNELS: Final[dict[str, UnaryKernel]] = {
    kernel.name: kernel
    for kernel in (NOT, NEG, ABS, SIGN, SQRT, SIN, COS, TAN, ASIN, ACOS, FLOOR, CEIL, ROUND)
}
