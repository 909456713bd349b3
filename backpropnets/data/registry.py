"""Dataset registry and the train/test data contract."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, MutableMapping

from ..core.errors import ShapeMismatch
from ..core.matrix import Matrix


@dataclass(frozen=True)
class Dataset:
    """Paired train/test matrices whose rows are independent samples.

    Attributes
    ----------
    train_inputs, train_labels:
        Rows used for gradient updates.
    test_inputs, test_labels:
        Rows used for periodic evaluation.  Small truth-table datasets reuse
        the training rows here.
    provenance:
        Free-form metadata recorded in run manifests.
    """

    name: str
    train_inputs: Matrix
    train_labels: Matrix
    test_inputs: Matrix
    test_labels: Matrix
    provenance: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        for split, inputs, labels in (
            ("train", self.train_inputs, self.train_labels),
            ("test", self.test_inputs, self.test_labels),
        ):
            if inputs.rows != labels.rows:
                raise ShapeMismatch(f"{self.name} {split}", [inputs.shape, labels.shape], "row counts differ")
        if self.train_inputs.cols != self.test_inputs.cols:
            raise ShapeMismatch(f"{self.name} inputs", [self.train_inputs.shape, self.test_inputs.shape])
        if self.train_labels.cols != self.test_labels.cols:
            raise ShapeMismatch(f"{self.name} labels", [self.train_labels.shape, self.test_labels.shape])

    @property
    def d_in(self) -> int:
        return self.train_inputs.cols

    @property
    def d_out(self) -> int:
        return self.train_labels.cols

    @property
    def splits(self) -> Dict[str, int]:
        return {"train": self.train_inputs.rows, "test": self.test_inputs.rows}


DatasetFactory = Callable[..., Dataset]


_REGISTRY: MutableMapping[str, DatasetFactory] = {}


def register_dataset(
    name: str | None = None,
    factory: DatasetFactory | None = None,
) -> Callable[[DatasetFactory], DatasetFactory] | DatasetFactory:
    """Register a dataset factory.

    ``register_dataset`` can be used both as a decorator::

        @register_dataset("xor")
        def make_xor(**kwargs):
            ...

    or directly::

        register_dataset("xor", make_xor)
    """

    def _decorator(func: DatasetFactory) -> DatasetFactory:
        _REGISTRY[str(name or func.__name__)] = func
        return func

    if factory is not None:
        return _decorator(factory)
    if name is None:
        raise TypeError("register_dataset requires a name when used without a decorator")
    return _decorator


def get_dataset(name: str, /, **options: Any) -> Dataset:
    """Build the dataset registered under ``name``."""

    if name not in _REGISTRY:
        available = ", ".join(available_datasets())
        raise KeyError(f"Unknown dataset: {name}. Available datasets: {available}")
    dataset = _REGISTRY[name](**options)
    if not isinstance(dataset, Dataset):
        raise TypeError(f"Factory for {name!r} returned {type(dataset).__name__}, expected Dataset")
    return dataset


def available_datasets() -> Iterable[str]:
    """Return the sorted list of available dataset identifiers."""

    return sorted(_REGISTRY)


__all__ = ["Dataset", "available_datasets", "get_dataset", "register_dataset"]
