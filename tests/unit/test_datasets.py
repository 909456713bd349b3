import numpy as np
import pytest

from backpropnets.core.errors import ShapeMismatch
from backpropnets.core.matrix import Matrix
from backpropnets.data import Dataset, available_datasets, get_dataset, register_dataset
from backpropnets.data import registry
from backpropnets.data.truth_tables import HAMMING_PARITY_GROUPS, bit_table, hamming_parity_bits


def test_builtin_datasets_registered():
    assert {"xor", "four_bit_xor", "hamming"} <= set(available_datasets())
    with pytest.raises(KeyError):
        get_dataset("mnist")


def test_xor_truth_table():
    ds = get_dataset("xor")
    assert ds.train_inputs.tolist() == [[0.0, 0.0], [0.0, 1.0], [1.0, 0.0], [1.0, 1.0]]
    assert ds.train_labels.tolist() == [[0.0], [1.0], [1.0], [0.0]]
    assert ds.test_inputs == ds.train_inputs


def test_four_bit_xor_is_parity():
    ds = get_dataset("four_bit_xor")
    inputs = ds.train_inputs.to_numpy()
    assert inputs.shape == (16, 4)
    assert np.array_equal(ds.train_labels.to_numpy()[:, 0], inputs.sum(axis=1) % 2)


def test_hamming_parity_bits_follow_groups():
    words = bit_table(11)
    bits = hamming_parity_bits(words)
    for p, group in enumerate(HAMMING_PARITY_GROUPS):
        expected = words[:, list(group)].sum(axis=1) % 2
        assert np.array_equal(bits[:, p], expected)
    # Single data bit set at position 3 flips the first three parity bits.
    word = np.zeros((1, 11))
    word[0, 3] = 1
    assert hamming_parity_bits(word).tolist() == [[1.0, 1.0, 1.0, 0.0]]


def test_hamming_split_is_disjoint_and_complete():
    ds = get_dataset("hamming", test_size=48, seed=0)
    assert ds.splits == {"train": 2000, "test": 48}
    assert (ds.d_in, ds.d_out) == (11, 4)
    train = {tuple(row) for row in ds.train_inputs}
    test = {tuple(row) for row in ds.test_inputs}
    assert not train & test
    assert len(train | test) == 2048
    again = get_dataset("hamming", test_size=48, seed=0)
    assert again.test_inputs == ds.test_inputs


def test_hamming_rejects_bad_test_size():
    with pytest.raises(ValueError):
        get_dataset("hamming", test_size=0)


@pytest.fixture
def isolated_registry(monkeypatch):
    monkeypatch.setattr(registry, "_REGISTRY", dict(registry._REGISTRY))
    return registry._REGISTRY


def test_register_custom_dataset(isolated_registry):
    @register_dataset("unit_identity")
    def _make(**_):
        m = Matrix.from_array([[0.0], [1.0]])
        return Dataset("unit_identity", m, m.copy(), m.copy(), m.copy())

    assert get_dataset("unit_identity").splits == {"train": 2, "test": 2}

    register_dataset("unit_broken", lambda **_: object())
    with pytest.raises(TypeError):
        get_dataset("unit_broken")
    assert {"unit_identity", "unit_broken"} <= set(isolated_registry)


def test_custom_datasets_do_not_leak_between_tests():
    assert "unit_identity" not in available_datasets()
    assert "unit_broken" not in available_datasets()


def test_dataset_rejects_unpaired_rows():
    with pytest.raises(ShapeMismatch):
        Dataset("bad", Matrix(3, 1), Matrix(2, 1), Matrix(1, 1), Matrix(1, 1))
