"""Run manifest: what was trained, on which data, with which settings."""

from __future__ import annotations

import json
import subprocess
import time
from pathlib import Path
from typing import TYPE_CHECKING, Dict, Mapping

import numpy as np

if TYPE_CHECKING:  # pragma: no cover
    from ..core.network import Network
    from ..data.registry import Dataset
    from ..training.trainer import TrainerConfig

MANIFEST_VERSION = 1


def git_sha() -> str:
    """Commit of the working tree, or ``"unknown"`` outside a git checkout."""

    try:
        proc = subprocess.run(
            ["git", "rev-parse", "HEAD"],
            capture_output=True,
            text=True,
            check=False,
        )
    except OSError:  # pragma: no cover - git binary missing
        return "unknown"
    return proc.stdout.strip() if proc.returncode == 0 else "unknown"


def describe_dataset(dataset: "Dataset") -> Dict[str, object]:
    return {
        "name": dataset.name,
        "splits": dataset.splits,
        "d_in": dataset.d_in,
        "d_out": dataset.d_out,
        "provenance": dict(dataset.provenance),
    }


def describe_network(network: "Network") -> Dict[str, object]:
    description = network.describe()
    return {
        "layer_dims": list(description.layer_dims),
        "activations": list(description.activations),
        "parameters": network.parameter_count(),
    }


def describe_trainer(config: "TrainerConfig") -> Dict[str, object]:
    return {
        "batch_size": config.batch_size,
        "epochs": config.epochs,
        "test_every": config.test_every,
        "learning_rate": config.learning_rate,
        "worker_count": config.worker_count,
        "seed": config.seed,
        "loss": config.loss,
    }


def write_manifest(
    path: str | Path,
    *,
    config: Mapping[str, object],
    dataset: "Dataset",
    network: "Network",
    trainer: "TrainerConfig",
    model_path: str = "",
) -> str:
    """Record the run configuration next to its metrics."""

    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    manifest = {
        "version": MANIFEST_VERSION,
        "git_sha": git_sha(),
        "generated_at": time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime()),
        "config": config,
        "dataset": describe_dataset(dataset),
        "model": describe_network(network),
        "trainer": describe_trainer(trainer),
        "model_file": model_path or None,
        "numpy": np.__version__,
    }
    path.write_text(json.dumps(manifest, indent=2))
    return str(path)


__all__ = ["describe_dataset", "describe_network", "describe_trainer", "git_sha", "write_manifest"]
