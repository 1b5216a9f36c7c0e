"""Structured error types for the array engine."""

from __future__ import annotations


class ArrayError(Exception):
    """Base class for structured pervade-jax errors."""


class ArrayRuntimeError(ArrayError):
    """Generic failure of an array operation."""


class ArrayShapeError(ArrayRuntimeError):
    """Two shapes could not be unified."""

    fill_eligible = False


class ArrayFillError(ArrayShapeError):
    """Shape mismatch that a retry with a different fill policy may still repair."""

    fill_eligible = True


class ArrayTypeError(ArrayRuntimeError):
    """No kernel is defined for the operand element kinds."""


class ArrayDomainError(ArrayRuntimeError):
    """Argument is outside the domain of the operation (rank, emptiness, naturals, size)."""


class ArrayNoInverseError(ArrayRuntimeError):
    """A function value has no defined inverse."""
