"""Evaluation context consumed by the array engine."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field

from .errors import ArrayRuntimeError
from .values import ElementKind, coerce_element


@dataclass(frozen=True)
class Context:
    """Per-call fill values and error construction.

    A kind without a fill value cannot take part in shape repair: mismatches in
    an operand of that kind stay mismatched and become errors.
    """

    fills: Mapping[ElementKind, object] = field(default_factory=dict)

    def __post_init__(self) -> None:
        fills: dict[ElementKind, object] = {}
        for kind, value in self.fills.items():
            kind = ElementKind(kind)
            if kind is ElementKind.FUNC:
                raise ValueError("function arrays have no fill value")
            fills[kind] = coerce_element(kind, value)
        object.__setattr__(self, "fills", fills)

    def fill(self, kind: ElementKind) -> object | None:
        return self.fills.get(kind)

    def error(self, message: str, cls: type[ArrayRuntimeError] = ArrayRuntimeError) -> ArrayRuntimeError:
        return cls(message)
