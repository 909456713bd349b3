"""Activation functions and their registry."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Dict, Iterable

import numpy as np

from .matrix import Matrix
from .types import Array

ArrayFn = Callable[[Array], Array]

_SIGMOID_LOW = np.finfo(np.float64).tiny
_SIGMOID_HIGH = np.nextafter(1.0, 0.0)


def identity(x: Array) -> Array:
    return x


def sigmoid(x: Array) -> Array:
    # Split by sign so large magnitudes never overflow ``exp``.
    out = np.empty_like(x, dtype=np.float64)
    pos = x >= 0
    out[pos] = 1.0 / (1.0 + np.exp(-x[pos]))
    exp_x = np.exp(x[~pos])
    out[~pos] = exp_x / (1.0 + exp_x)
    # Saturated values stay strictly inside the open unit interval.
    return np.clip(out, _SIGMOID_LOW, _SIGMOID_HIGH)


def relu(x: Array) -> Array:
    """Return the ReLU activation."""

    return np.maximum(x, 0.0)


def tanh(x: Array) -> Array:
    return np.tanh(x)


def _ones(x: Array) -> Array:
    return np.ones_like(x, dtype=np.float64)


def _sigmoid_deriv_from_output(y: Array) -> Array:
    return y * (1.0 - y)


def _relu_deriv(z: Array) -> Array:
    return (z > 0).astype(np.float64)


def _tanh_deriv_from_output(y: Array) -> Array:
    return 1.0 - y**2


@dataclass(frozen=True)
class Activation:
    """Element-wise transform with a matching derivative.

    ``output_space`` variants compute the derivative from the already
    evaluated activation ``a = f(z)``; the others use the pre-activation ``z``.
    """

    name: str
    fn: ArrayFn
    deriv: ArrayFn
    output_space: bool = False

    def apply(self, x: Matrix) -> Matrix:
        return x.map(self.fn)

    def derivative(self, z: Matrix, a: Matrix | None = None) -> Matrix:
        """Return ``f'(z)`` using whichever of ``z``/``a`` the variant needs."""

        if self.output_space:
            if a is None:
                a = self.apply(z)
            return a.map(self.deriv)
        return z.map(self.deriv)

    def derivative_at(self, x: Matrix) -> Matrix:
        return self.derivative(x, self.apply(x) if self.output_space else None)

    def __call__(self, x: Matrix) -> Matrix:
        return self.apply(x)

    def __repr__(self) -> str:
        return f"Activation({self.name!r})"


class ActivationRegistry:
    """Central registry of activation variants, addressed by tag."""

    def __init__(self) -> None:
        self._registry: Dict[str, Activation] = {}

    def register(self, activation: Activation, *aliases: str) -> Activation:
        for key in (activation.name, *aliases):
            self._registry[key] = activation
        return activation

    def get(self, name: "str | Activation") -> Activation:
        if isinstance(name, Activation):
            return name
        key = str(name).strip().lower()
        if key not in self._registry:
            available = ", ".join(self.names())
            raise KeyError(f"Unknown activation {name!r}. Available activations: {available}")
        return self._registry[key]

    def names(self) -> Iterable[str]:
        return sorted({act.name for act in self._registry.values()})


REGISTRY = ActivationRegistry()

IDENTITY = REGISTRY.register(Activation("identity", identity, _ones), "linear")
SIGMOID = REGISTRY.register(
    Activation("sigmoid", sigmoid, _sigmoid_deriv_from_output, output_space=True)
)
RELU = REGISTRY.register(Activation("relu", relu, _relu_deriv))
TANH = REGISTRY.register(Activation("tanh", tanh, _tanh_deriv_from_output, output_space=True))


def get_activation(name: "str | Activation") -> Activation:
    return REGISTRY.get(name)


__all__ = [
    "Activation",
    "ActivationRegistry",
    "IDENTITY",
    "RELU",
    "REGISTRY",
    "SIGMOID",
    "TANH",
    "get_activation",
    "identity",
    "relu",
    "sigmoid",
    "tanh",
]
