"""Binary and unary pervasive operations dispatched on element kind."""

from __future__ import annotations

from .context import Context
from .kernels import BINARY_KERNELS, UNARY_KERNELS, BinaryKernel
from .pervade import FalliblePervasiveFn, InfalliblePervasiveFn, PervasiveFn, bin_pervade, pervade_generic, pervade_unary
from .values import Array, ElementKind, format_element


def _pervasive_fn(kernel: BinaryKernel, a_kind: ElementKind, b_kind: ElementKind, ctx: Context) -> PervasiveFn:
    impl = kernel.impl(a_kind, b_kind)
    if impl is not None:
        vector = kernel.vector if a_kind.is_numeric and b_kind.is_numeric else None
        return InfalliblePervasiveFn(impl.fn, impl.output, name=kernel.name, vector=vector)
    if a_kind is not b_kind:
        raise kernel.error(a_kind.value, b_kind.value, ctx)

    def fail(a: object, b: object, ctx: Context) -> object:
        raise kernel.error(format_element(a), format_element(b), ctx)

    return FalliblePervasiveFn(fail, a_kind, name=kernel.name)


def binary(name: str, a: Array, b: Array, ctx: Context | None = None, *, vectorize: bool | None = None) -> Array:
    """Apply the named binary kernel; ``a`` is the top-of-stack operand (``b op a``)."""
    try:
        kernel = BINARY_KERNELS[name]
    except KeyError:
        raise ValueError(f"Unknown binary operation {name!r}") from None
    ctx = ctx or Context()
    f = _pervasive_fn(kernel, a.kind, b.kind, ctx)
    if ElementKind.FUNC in (a.kind, b.kind):
        shape, data = pervade_generic(a.shape, a.data, b.shape, b.data, ctx, f)
        return Array(shape, data, f.output)
    return bin_pervade(a, b, ctx, f, vectorize=vectorize)


def unary(name: str, x: Array, ctx: Context | None = None, *, vectorize: bool | None = None) -> Array:
    try:
        kernel = UNARY_KERNELS[name]
    except KeyError:
        raise ValueError(f"Unknown unary operation {name!r}") from None
    impl = kernel.impl(x.kind)
    if impl is None:
        raise kernel.error(x.kind.value, ctx or Context())
    return pervade_unary(x, impl.fn, impl.output, name=kernel.name, vector=kernel.vector, vectorize=vectorize)


def add(a: Array, b: Array, ctx: Context | None = None, **kwargs) -> Array:
    return binary("add", a, b, ctx, **kwargs)


def sub(a: Array, b: Array, ctx: Context | None = None, **kwargs) -> Array:
    return binary("sub", a, b, ctx, **kwargs)


def mul(a: Array, b: Array, ctx: Context | None = None, **kwargs) -> Array:
    return binary("mul", a, b, ctx, **kwargs)


def div(a: Array, b: Array, ctx: Context | None = None, **kwargs) -> Array:
    return binary("div", a, b, ctx, **kwargs)


def modulus(a: Array, b: Array, ctx: Context | None = None, **kwargs) -> Array:
    return binary("modulus", a, b, ctx, **kwargs)


def pow_(a: Array, b: Array, ctx: Context | None = None, **kwargs) -> Array:
    return binary("pow", a, b, ctx, **kwargs)


def log(a: Array, b: Array, ctx: Context | None = None, **kwargs) -> Array:
    return binary("log", a, b, ctx, **kwargs)


def atan2(a: Array, b: Array, ctx: Context | None = None, **kwargs) -> Array:
    return binary("atan2", a, b, ctx, **kwargs)


def max_(a: Array, b: Array, ctx: Context | None = None, **kwargs) -> Array:
    return binary("max", a, b, ctx, **kwargs)


def min_(a: Array, b: Array, ctx: Context | None = None, **kwargs) -> Array:
    return binary("min", a, b, ctx, **kwargs)


def eq(a: Array, b: Array, ctx: Context | None = None, **kwargs) -> Array:
    return binary("eq", a, b, ctx, **kwargs)


def ne(a: Array, b: Array, ctx: Context | None = None, **kwargs) -> Array:
    return binary("ne", a, b, ctx, **kwargs)


def lt(a: Array, b: Array, ctx: Context | None = None, **kwargs) -> Array:
    return binary("lt", a, b, ctx, **kwargs)


def le(a: Array, b: Array, ctx: Context | None = None, **kwargs) -> Array:
    return binary("le", a, b, ctx, **kwargs)


def gt(a: Array, b: Array, ctx: Context | None = None, **kwargs) -> Array:
    return binary("gt", a, b, ctx, **kwargs)


def ge(a: Array, b: Array, ctx: Context | None = None, **kwargs) -> Array:
    return binary("ge", a, b, ctx, **kwargs)


def not_(x: Array, ctx: Context | None = None, **kwargs) -> Array:
    return unary("not", x, ctx, **kwargs)


def neg(x: Array, ctx: Context | None = None, **kwargs) -> Array:
    return unary("neg", x, ctx, **kwargs)


def abs_(x: Array, ctx: Context | None = None, **kwargs) -> Array:
    return unary("abs", x, ctx, **kwargs)


def sign(x: Array, ctx: Context | None = None, **kwargs) -> Array:
    return unary("sign", x, ctx, **kwargs)


def sqrt(x: Array, ctx: Context | None = None, **kwargs) -> Array:
    return unary("sqrt", x, ctx, **kwargs)


def sin(x: Array, ctx: Context | None = None, **kwargs) -> Array:
    return unary("sin", x, ctx, **kwargs)


def cos(x: Array, ctx: Context | None = None, **kwargs) -> Array:
    return unary("cos", x, ctx, **kwargs)


def tan(x: Array, ctx: Context | None = None, **kwargs) -> Array:
    return unary("tan", x, ctx, **kwargs)


def asin(x: Array, ctx: Context | None = None, **kwargs) -> Array:
    return unary("asin", x, ctx, **kwargs)


def acos(x: Array, ctx: Context | None = None, **kwargs) -> Array:
    return unary("acos", x, ctx, **kwargs)


def floor(x: Array, ctx: Context | None = None, **kwargs) -> Array:
    return unary("floor", x, ctx, **kwargs)


def ceil(x: Array, ctx: Context | None = None, **kwargs) -> Array:
    return unary("ceil", x, ctx, **kwargs)


def round_(x: Array, ctx: Context | None = None, **kwargs) -> Array:
    return unary("round", x, ctx, **kwargs)
