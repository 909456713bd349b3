"""Core typing contracts for backpropnets."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Dict, List, Mapping

import numpy as np

if TYPE_CHECKING:  # pragma: no cover
    from .matrix import Matrix

Array = np.ndarray


@dataclass(frozen=True)
class ForwardState:
    """Everything the backward pass needs from one forward pass.

    ``pre_activations[i]`` and ``activations[i]`` belong to layer ``i``;
    ``inputs`` is the activation feeding layer 0.
    """

    inputs: "Matrix"
    pre_activations: List["Matrix"]
    activations: List["Matrix"]

    @property
    def output(self) -> "Matrix":
        return self.activations[-1]

    def layer_input(self, index: int) -> "Matrix":
        return self.inputs if index == 0 else self.activations[index - 1]


@dataclass(frozen=True)
class Gradients:
    """Per-layer weight and bias gradients covering ``samples`` rows."""

    weights: List["Matrix"]
    biases: List["Matrix"]
    samples: int

    def __add__(self, other: "Gradients") -> "Gradients":
        if len(self.weights) != len(other.weights):
            raise ValueError(
                f"Cannot combine gradients for {len(self.weights)} and {len(other.weights)} layers"
            )
        return Gradients(
            weights=[a.add(b) for a, b in zip(self.weights, other.weights)],
            biases=[a.add(b) for a, b in zip(self.biases, other.biases)],
            samples=self.samples + other.samples,
        )

    def scaled(self, factor: float) -> "Gradients":
        return Gradients(
            weights=[w.scale(factor) for w in self.weights],
            biases=[b.scale(factor) for b in self.biases],
            samples=self.samples,
        )

    def mean(self) -> "Gradients":
        """Turn summed gradients into per-sample averages."""

        return self.scaled(1.0 / max(1, self.samples))


@dataclass(frozen=True)
class EvaluationResult:
    """Scalar summary of a network on a labelled set."""

    loss: float
    accuracy: float
    bit_accuracy: float
    samples: int

    def as_dict(self) -> Dict[str, float]:
        return {
            "loss": float(self.loss),
            "accuracy": float(self.accuracy),
            "bit_accuracy": float(self.bit_accuracy),
        }


@dataclass(frozen=True)
class TrainingReport:
    """Evaluation record emitted every ``test_every`` epochs."""

    epoch: int
    loss: float
    accuracy: float
    metrics: Mapping[str, float] = field(default_factory=dict)
    elapsed: float = 0.0

    def as_dict(self) -> Dict[str, float]:
        payload = {"loss": float(self.loss), "accuracy": float(self.accuracy)}
        payload.update({k: float(v) for k, v in self.metrics.items()})
        return payload


@dataclass(frozen=True)
class RunResult:
    """Summary returned by :func:`backpropnets.training.pipelines.run_pipeline`."""

    epochs: int
    metrics_path: str
    manifest_path: str
    summary_path: str = ""
    model_path: str = ""
    final: Mapping[str, float] = field(default_factory=dict)


@dataclass(frozen=True)
class ModelDescription:
    """Topology of a feed-forward network."""

    layer_dims: List[int]
    activations: List[str]


__all__ = [
    "Array",
    "EvaluationResult",
    "ForwardState",
    "Gradients",
    "ModelDescription",
    "RunResult",
    "TrainingReport",
]
