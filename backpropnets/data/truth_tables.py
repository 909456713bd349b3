"""In-memory truth-table datasets: XOR, 4-bit parity and the (11,4) Hamming code."""

from __future__ import annotations

import itertools

import numpy as np

from ..core.matrix import Matrix
from .registry import Dataset, register_dataset

# Data positions covered by each parity bit of the (11,4) layout.
HAMMING_PARITY_GROUPS = (
    (0, 1, 3, 4, 6, 8, 10),
    (0, 2, 3, 5, 6, 9, 10),
    (1, 2, 3, 7, 8, 9, 10),
    (4, 5, 6, 7, 8, 9, 10),
)


def bit_table(width: int) -> np.ndarray:
    """All ``2**width`` bit vectors in counting order, most significant first."""

    return np.array(list(itertools.product((0.0, 1.0), repeat=width)), dtype=np.float64)


def parity(bits: np.ndarray) -> np.ndarray:
    return (bits.sum(axis=1, keepdims=True) % 2).astype(np.float64)


@register_dataset("xor")
def make_xor(**_: object) -> Dataset:
    inputs = bit_table(2)
    labels = parity(inputs)
    return Dataset(
        name="xor",
        train_inputs=Matrix.from_array(inputs),
        train_labels=Matrix.from_array(labels),
        test_inputs=Matrix.from_array(inputs),
        test_labels=Matrix.from_array(labels),
        provenance={"type": "truth_table", "bits": 2},
    )


@register_dataset("four_bit_xor")
def make_four_bit_xor(**_: object) -> Dataset:
    inputs = bit_table(4)
    labels = parity(inputs)
    return Dataset(
        name="four_bit_xor",
        train_inputs=Matrix.from_array(inputs),
        train_labels=Matrix.from_array(labels),
        test_inputs=Matrix.from_array(inputs),
        test_labels=Matrix.from_array(labels),
        provenance={"type": "truth_table", "bits": 4},
    )


def hamming_parity_bits(words: np.ndarray) -> np.ndarray:
    """Four parity bits for every 11-bit row of ``words``."""

    words = np.asarray(words, dtype=np.int64)
    columns = [np.bitwise_xor.reduce(words[:, list(group)], axis=1) for group in HAMMING_PARITY_GROUPS]
    return np.stack(columns, axis=1).astype(np.float64)


@register_dataset("hamming")
def make_hamming(test_size: int = 48, seed: int | None = 0, **_: object) -> Dataset:
    """Every 11-bit word labelled with its four parity bits.

    ``test_size`` rows are drawn at random (without replacement) for the test
    split; the remaining rows form the training split.
    """

    words = bit_table(11)
    labels = hamming_parity_bits(words)
    total = words.shape[0]
    if not 0 < test_size < total:
        raise ValueError(f"test_size must be in (0, {total}), got {test_size}")
    order = np.random.default_rng(seed).permutation(total)
    test_idx, train_idx = order[:test_size], order[test_size:]
    return Dataset(
        name="hamming",
        train_inputs=Matrix.from_array(words[train_idx]),
        train_labels=Matrix.from_array(labels[train_idx]),
        test_inputs=Matrix.from_array(words[test_idx]),
        test_labels=Matrix.from_array(labels[test_idx]),
        provenance={"type": "hamming", "n": 11, "k": 4, "test_size": test_size, "seed": seed},
    )


__all__ = [
    "HAMMING_PARITY_GROUPS",
    "bit_table",
    "hamming_parity_bits",
    "make_four_bit_xor",
    "make_hamming",
    "make_xor",
    "parity",
]
