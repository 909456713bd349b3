"""Loss registry used by the trainer."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Dict, Iterable

import numpy as np

from ..core.errors import ShapeMismatch
from ..core.matrix import Matrix
from ..core.types import Array

LossFn = Callable[[Array, Array], tuple[float, Array]]


@dataclass(frozen=True)
class Loss:
    """Loss wrapper returning both the scalar loss and dL/dy."""

    name: str
    fn: LossFn

    def __call__(self, predictions: Matrix, targets: Matrix) -> tuple[float, Matrix]:
        if predictions.shape != targets.shape:
            raise ShapeMismatch(f"loss[{self.name}]", [predictions.shape, targets.shape])
        value, grad = self.fn(predictions.to_numpy(), targets.to_numpy())
        return value, Matrix.from_array(grad)


class LossRegistry:
    """Central registry for loss functions."""

    def __init__(self) -> None:
        self._registry: Dict[str, Loss] = {}

    def register(self, name: str, fn: LossFn) -> None:
        self._registry[name] = Loss(name, fn)

    def names(self) -> Iterable[str]:
        return sorted(self._registry)

    def resolve(self, name: str) -> Loss:
        if name not in self._registry:
            available = ", ".join(sorted(self._registry))
            raise KeyError(f"Unknown loss {name!r}. Available losses: {available}")
        return self._registry[name]

    get = resolve


REGISTRY = LossRegistry()


def _mse(pred: Array, target: Array) -> tuple[float, Array]:
    diff = pred - target
    loss = float(np.mean(np.square(diff)))
    return loss, diff


def _mae(pred: Array, target: Array) -> tuple[float, Array]:
    diff = pred - target
    loss = float(np.mean(np.abs(diff)))
    grad = np.sign(diff)
    return loss, grad


def _huber(pred: Array, target: Array, delta: float = 1.0) -> tuple[float, Array]:
    diff = pred - target
    abs_diff = np.abs(diff)
    quadratic = np.minimum(abs_diff, delta)
    linear = abs_diff - quadratic
    loss = float(np.mean(0.5 * quadratic**2 + delta * linear))
    grad = np.where(abs_diff <= delta, diff, delta * np.sign(diff))
    return loss, grad


def _bce(prob: Array, target: Array) -> tuple[float, Array]:
    # Outputs are already squashed; the error signal stays ``predicted - target``.
    eps = 1e-12
    clipped = np.clip(prob, eps, 1 - eps)
    loss = float(-np.mean(target * np.log(clipped) + (1 - target) * np.log(1 - clipped)))
    return loss, prob - target


REGISTRY.register("mse", _mse)
REGISTRY.register("mae", _mae)
REGISTRY.register("huber", _huber)
REGISTRY.register("bce", _bce)

MSE = REGISTRY.resolve("mse")

__all__ = ["Loss", "LossRegistry", "MSE", "REGISTRY"]
