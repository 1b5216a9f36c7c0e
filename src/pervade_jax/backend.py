"""jax configuration, jitted-kernel cache and flat-data conversions.

The library never changes jax's global configuration. The vector path and the
jax sorts are used only when the host has enabled 64-bit mode, e.g. with
``jax.config.update("jax_enable_x64", True)`` or ``JAX_ENABLE_X64=1``.
"""

from __future__ import annotations

import logging
import os
import sys
from collections.abc import Iterable
from typing import Callable, Final

import jax
import jax.numpy as jnp

from .values import Arrayish, ElementKind

logger = logging.getLogger(__name__)

_USE_VECTOR_PATH: Final[bool] = os.environ.get("PERVADE_JAX_DISABLE_VECTOR_PATH", "0") != "1"
VECTOR_MIN_SIZE: Final[int] = max(1, int(os.environ.get("PERVADE_JAX_VECTOR_MIN_SIZE", "1024")))
MAX_ELEMENTS: Final[int] = max(0, int(os.environ.get("PERVADE_JAX_MAX_ELEMENTS", str(sys.maxsize))))

# Jitted CPU kernels flush subnormal operands and results to zero. Sums,
# differences and products of magnitudes at or above this bound stay normal.
VECTOR_MIN_MAGNITUDE: Final[float] = 2.0**-511

_JITTED_KERNELS: dict[str, Callable[..., jnp.ndarray]] = {}


def x64_enabled() -> bool:
    return jnp.asarray(0.0).dtype == jnp.float64


def vector_path_enabled() -> bool:
    # float32 would change results relative to the scalar kernels
    return _USE_VECTOR_PATH and x64_enabled()


def has_tiny(values: Iterable[object], bound: float = sys.float_info.min) -> bool:
    """True when some element is nonzero with magnitude below ``bound``."""
    return any(v != 0 and abs(v) < bound for v in values)


def vector_exact(*views: Arrayish) -> bool:
    """True when the jitted kernels reproduce the scalar kernels on ``views``."""
    return x64_enabled() and not any(has_tiny(view.values(), VECTOR_MIN_MAGNITUDE) for view in views)


def jitted_kernel(name: str, fn: Callable[..., jnp.ndarray]) -> Callable[..., jnp.ndarray]:
    kernel = _JITTED_KERNELS.get(name)
    if kernel is None:
        logger.debug("compiling vector kernel %s", name)
        kernel = jax.jit(fn)
        _JITTED_KERNELS[name] = kernel
    return kernel


def jitted_kernel_names() -> tuple[str, ...]:
    return tuple(sorted(_JITTED_KERNELS))


def to_jax(view: Arrayish, *, rank: int | None = None) -> jnp.ndarray:
    """Float64 array of the view's elements, padded with trailing unit axes up to ``rank``."""
    shape = view.shape
    if rank is not None and rank > len(shape):
        shape = shape + (1,) * (rank - len(shape))
    return jnp.asarray(list(view.values()), dtype=jnp.float64).reshape(shape)


def from_jax(result: jnp.ndarray, kind: ElementKind) -> list:
    values = jnp.ravel(result).tolist()
    if kind is ElementKind.BYTE:
        return [int(v) for v in values]
    return [float(v) for v in values]
