"""Metric helpers for evaluation and training reports."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, Mapping

import numpy as np

from ..core.types import Array, EvaluationResult

THRESHOLD = 0.5


@dataclass(frozen=True)
class MetricResult:
    name: str
    value: float


def _binarize(values: Array) -> Array:
    return (values > THRESHOLD).astype(np.int64)


def compute_metric(name: str, predictions: Array, targets: Array) -> MetricResult:
    key = name.lower()
    preds = np.asarray(predictions, dtype=np.float64)
    targs = np.asarray(targets, dtype=np.float64)
    if preds.shape != targs.shape:
        raise ValueError(f"Metric {name!r} needs equal shapes, got {preds.shape} and {targs.shape}")
    if key == "mse":
        value = float(np.mean((preds - targs) ** 2))
    elif key == "accuracy":
        # A row counts only when every output lands on the right side of 0.5.
        hits = np.all(_binarize(preds) == _binarize(targs), axis=1)
        value = float(np.mean(hits))
    elif key == "bit_accuracy":
        value = float(np.mean(_binarize(preds) == _binarize(targs)))
    else:
        raise KeyError(f"Unknown metric: {name}")
    return MetricResult(name=key, value=value)


def compute_metrics(names: Iterable[str], predictions: Array, targets: Array) -> Mapping[str, float]:
    results: Dict[str, float] = {}
    for name in names:
        metric = compute_metric(name, predictions, targets)
        results[metric.name] = metric.value
    return results


def evaluation_summary(predictions: Array, targets: Array) -> EvaluationResult:
    """Summarise ``predictions`` against ``targets`` as an :class:`EvaluationResult`."""

    values = compute_metrics(["mse", "accuracy", "bit_accuracy"], predictions, targets)
    return EvaluationResult(
        loss=values["mse"],
        accuracy=values["accuracy"],
        bit_accuracy=values["bit_accuracy"],
        samples=int(np.asarray(predictions).shape[0]),
    )


__all__ = ["MetricResult", "compute_metric", "compute_metrics", "evaluation_summary"]
