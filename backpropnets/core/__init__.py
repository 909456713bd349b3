"""Core numerical primitives for backpropnets."""

from . import activations, errors, matrix, types

__all__ = ["activations", "errors", "matrix", "types"]
