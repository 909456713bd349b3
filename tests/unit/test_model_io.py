import io

import numpy as np
import pytest

from backpropnets import model_io
from backpropnets.core.errors import CorruptModel
from backpropnets.core.matrix import Matrix
from backpropnets.core.network import Network


def _trained_like_network():
    return Network(11, 4, [20, 20], ["relu", "sigmoid", "sigmoid"], seed=5)


def test_round_trip_is_bit_exact(tmp_path):
    net = _trained_like_network()
    path = model_io.save(tmp_path / "models" / "nn1.npz", net)
    assert path.exists()

    restored = model_io.load(path)
    assert restored.layer_dims == net.layer_dims
    assert restored.describe() == net.describe()
    original = net.state_dict()
    loaded = restored.state_dict()
    assert original.keys() == loaded.keys()
    for key in original:
        assert np.array_equal(original[key], loaded[key])

    sample = Matrix.from_array(np.random.default_rng(0).integers(0, 2, size=(8, 11)))
    assert restored.forward(sample) == net.forward(sample)


def test_round_trip_through_file_handle():
    net = Network(2, 1, [2], seed=0)
    buffer = io.BytesIO()
    assert model_io.save(buffer, net) is None
    buffer.seek(0)
    restored = model_io.load(buffer)
    assert restored.forward([[1.0, 0.0]]) == net.forward([[1.0, 0.0]])


def test_missing_file_raises_file_not_found(tmp_path):
    with pytest.raises(FileNotFoundError):
        model_io.load(tmp_path / "absent.npz")


def test_garbage_bytes_are_corrupt(tmp_path):
    path = tmp_path / "garbage.npz"
    path.write_bytes(b"definitely not a model")
    with pytest.raises(CorruptModel):
        model_io.load(path)


def test_truncated_file_is_corrupt(tmp_path):
    path = model_io.save(tmp_path / "full.npz", Network(3, 2, [4], seed=1))
    data = path.read_bytes()
    truncated = tmp_path / "truncated.npz"
    truncated.write_bytes(data[: len(data) // 2])
    with pytest.raises(CorruptModel):
        model_io.load(truncated)


def _write_archive(path, **overrides):
    net = Network(2, 1, [3], seed=0)
    payload = dict(model_io._payload(net))
    payload.update(overrides)
    for key in [k for k, v in overrides.items() if v is None]:
        payload.pop(key)
    with open(path, "wb") as handle:
        np.savez(handle, **payload)
    return path


@pytest.mark.parametrize(
    "overrides",
    [
        {"format": np.array("something-else")},
        {"version": np.array(99)},
        {"layer_dims": np.array([2, 3, 1, 5])},
        {"layer_dims": np.array([2, 0, 1])},
        {"activations": np.array(["sigmoid", "swish"])},
        {"W1": np.zeros((3, 1))},
        {"b0": None},
    ],
)
def test_inconsistent_archives_are_corrupt(tmp_path, overrides):
    path = _write_archive(tmp_path / "bad.npz", **overrides)
    with pytest.raises(CorruptModel):
        model_io.load(path)


def test_corrupt_model_is_an_io_error():
    assert issubclass(CorruptModel, IOError)
