"""pervade-jax public API."""

from .context import Context
from .errors import (
    ArrayDomainError,
    ArrayError,
    ArrayFillError,
    ArrayNoInverseError,
    ArrayRuntimeError,
    ArrayShapeError,
    ArrayTypeError,
)
from .values import Array, ElementKind, Function
from .pervade import bin_pervade, pervade_generic
from .ops import (
    abs_,
    acos,
    add,
    asin,
    atan2,
    binary,
    ceil,
    cos,
    div,
    eq,
    floor,
    ge,
    gt,
    le,
    log,
    lt,
    max_,
    min_,
    modulus,
    mul,
    ne,
    neg,
    not_,
    pow_,
    round_,
    sign,
    sin,
    sqrt,
    sub,
    tan,
    unary,
)
from .monadic import (
    bits,
    classify,
    deduplicate,
    deshape,
    fall,
    first,
    invert,
    inverse_bits,
    inverse_transpose,
    last,
    parse_num,
    range_,
    reverse,
    rise,
    transpose,
    under,
)

__all__ = [
    "Array",
    "ArrayDomainError",
    "ArrayError",
    "ArrayFillError",
    "ArrayNoInverseError",
    "ArrayRuntimeError",
    "ArrayShapeError",
    "ArrayTypeError",
    "Context",
    "ElementKind",
    "Function",
    "abs_",
    "acos",
    "add",
    "asin",
    "atan2",
    "bin_pervade",
    "binary",
    "bits",
    "ceil",
    "classify",
    "cos",
    "deduplicate",
    "deshape",
    "div",
    "eq",
    "fall",
    "first",
    "floor",
    "ge",
    "gt",
    "inverse_bits",
    "inverse_transpose",
    "invert",
    "last",
    "le",
    "log",
    "lt",
    "max_",
    "min_",
    "modulus",
    "mul",
    "ne",
    "neg",
    "not_",
    "parse_num",
    "pervade_generic",
    "pow_",
    "range_",
    "reverse",
    "rise",
    "round_",
    "sign",
    "sin",
    "sqrt",
    "sub",
    "tan",
    "transpose",
    "unary",
    "under",
]
