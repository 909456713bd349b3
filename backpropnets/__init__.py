"""backpropnets public API."""

from . import model_io  # noqa: F401
from .core import activations  # noqa: F401
from .core import types  # noqa: F401
from .core.errors import BackpropNetsError, CorruptModel, InvalidShape, ShapeMismatch
from .core.matrix import Matrix
from .core.network import Layer, Network
from .model_io import load, save
from .training.pipelines import load_preset, presets, run_pipeline
from .training.trainer import Trainer, TrainerConfig, TrainerState, train

__all__ = [
    "BackpropNetsError",
    "CorruptModel",
    "InvalidShape",
    "Layer",
    "Matrix",
    "Network",
    "ShapeMismatch",
    "Trainer",
    "TrainerConfig",
    "TrainerState",
    "activations",
    "load",
    "load_preset",
    "model_io",
    "presets",
    "run_pipeline",
    "save",
    "train",
    "types",
]
