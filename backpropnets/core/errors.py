"""Error taxonomy shared by the matrix engine, network and model I/O."""

from __future__ import annotations

from typing import Sequence, Tuple

Shape = Tuple[int, int]


class BackpropNetsError(Exception):
    """Base class for every error raised by backpropnets."""


class InvalidShape(BackpropNetsError, ValueError):
    """Construction parameters describe an impossible shape or topology."""


class ShapeMismatch(BackpropNetsError, ValueError):
    """Operands of an operation have incompatible shapes."""

    def __init__(self, operation: str, shapes: Sequence[Shape], detail: str = "") -> None:
        self.operation = operation
        self.shapes = tuple(tuple(s) for s in shapes)
        rendered = " vs ".join(f"{r}x{c}" for r, c in self.shapes)
        message = f"{operation}: incompatible shapes {rendered}"
        if detail:
            message = f"{message} ({detail})"
        super().__init__(message)


class CorruptModel(BackpropNetsError, IOError):
    """A persisted model could not be decoded."""


__all__ = ["BackpropNetsError", "CorruptModel", "InvalidShape", "ShapeMismatch"]
