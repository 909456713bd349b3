"""Binary persistence of trained networks.

Models are stored as uncompressed ``.npz`` archives holding the topology,
activation tags and every layer's parameters as float64 arrays.  Nothing is
pickled, so loading a file never executes code.
"""

from __future__ import annotations

import zipfile
from pathlib import Path
from typing import BinaryIO, Mapping

import numpy as np

from .core.activations import get_activation
from .core.errors import CorruptModel
from .core.matrix import Matrix
from .core.network import Layer, Network
from .utils import get_logger

logger = get_logger(__name__)

FORMAT_TAG = "backpropnets-model"
FORMAT_VERSION = 1


def _payload(network: Network) -> Mapping[str, np.ndarray]:
    payload: dict[str, np.ndarray] = {
        "format": np.array(FORMAT_TAG),
        "version": np.array(FORMAT_VERSION, dtype=np.int64),
        "layer_dims": np.asarray(network.layer_dims, dtype=np.int64),
        "activations": np.array([layer.activation.name for layer in network.layers]),
    }
    payload.update(network.state_dict())
    return payload


def save(path: str | Path | BinaryIO, network: Network) -> Path | None:
    """Write ``network`` to ``path`` (a filesystem path or binary handle)."""

    payload = _payload(network)
    if hasattr(path, "write"):
        np.savez(path, **payload)  # type: ignore[arg-type]
        return None
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    with target.open("wb") as handle:
        np.savez(handle, **payload)
    logger.info("Saved %s to %s", network, target)
    return target


def _decode(archive: Mapping[str, np.ndarray]) -> Network:
    try:
        tag = str(archive["format"])
        version = int(archive["version"])
        dims = [int(d) for d in archive["layer_dims"]]
        tags = [str(a) for a in archive["activations"]]
    except KeyError as exc:
        raise CorruptModel(f"Model file is missing field {exc.args[0]!r}") from exc
    if tag != FORMAT_TAG:
        raise CorruptModel(f"Not a backpropnets model (format tag {tag!r})")
    if version != FORMAT_VERSION:
        raise CorruptModel(f"Unsupported model format version {version}")
    if len(dims) < 2 or len(tags) != len(dims) - 1 or min(dims) <= 0:
        raise CorruptModel(f"Topology {dims} does not match {len(tags)} activation tags")

    layers = []
    for idx, (in_dim, out_dim) in enumerate(zip(dims[:-1], dims[1:])):
        try:
            weights = np.asarray(archive[f"W{idx}"], dtype=np.float64)
            bias = np.asarray(archive[f"b{idx}"], dtype=np.float64)
        except KeyError as exc:
            raise CorruptModel(f"Model file is missing parameter {exc.args[0]!r}") from exc
        if weights.shape != (out_dim, in_dim) or bias.shape != (out_dim, 1):
            raise CorruptModel(
                f"Layer {idx} parameters have shapes {weights.shape}/{bias.shape}, "
                f"expected {(out_dim, in_dim)}/{(out_dim, 1)}"
            )
        try:
            activation = get_activation(tags[idx])
        except KeyError as exc:
            raise CorruptModel(str(exc)) from exc
        layers.append(
            Layer(
                weights=Matrix.from_array(weights),
                bias=Matrix.from_array(bias),
                activation=activation,
            )
        )
    return Network.from_layers(layers)


def load(path: str | Path | BinaryIO) -> Network:
    """Restore a network written by :func:`save`.

    Raises :class:`FileNotFoundError` for missing files and
    :class:`~backpropnets.core.errors.CorruptModel` for anything unreadable.
    """

    source = path if hasattr(path, "read") else Path(path)
    if isinstance(source, Path) and not source.exists():
        raise FileNotFoundError(f"No model file at {source}")
    try:
        with np.load(source, allow_pickle=False) as archive:  # type: ignore[arg-type]
            network = _decode(archive)
    except CorruptModel:
        raise
    except (zipfile.BadZipFile, EOFError, ValueError, OSError, AttributeError, TypeError) as exc:
        raise CorruptModel(f"Unreadable model file {path}: {exc}") from exc
    logger.debug("Loaded %s from %s", network, path)
    return network


__all__ = ["FORMAT_TAG", "FORMAT_VERSION", "load", "save"]
