"""Dense two-dimensional float64 matrices.

:class:`Matrix` wraps a ``numpy`` array with a fixed shape.  Every operation
except :meth:`Matrix.set`, :meth:`Matrix.randomize` and item assignment returns
a new matrix with its own storage, so matrices can be read concurrently by the
trainer's worker threads without defensive copies.
"""

from __future__ import annotations

from typing import Callable, Iterable, Iterator, List, Sequence, Tuple

import numpy as np

from .errors import InvalidShape, ShapeMismatch
from .types import Array

Shape = Tuple[int, int]


def _check_dims(rows: int, cols: int) -> None:
    for value in (rows, cols):
        if isinstance(value, bool) or not isinstance(value, (int, np.integer)):
            raise InvalidShape(f"Matrix dimensions must be integers, got {rows!r}x{cols!r}")
    if rows <= 0 or cols <= 0:
        raise InvalidShape(f"Matrix dimensions must be positive, got {rows}x{cols}")


class Matrix:
    """Dense ``rows x cols`` matrix of IEEE-754 doubles."""

    __slots__ = ("_data",)

    def __init__(self, rows: int, cols: int) -> None:
        _check_dims(rows, cols)
        self._data: Array = np.zeros((int(rows), int(cols)), dtype=np.float64)

    # ------------------------------------------------------------------
    # Construction

    @classmethod
    def create(cls, rows: int, cols: int) -> "Matrix":
        """Return a zero-filled ``rows x cols`` matrix."""

        return cls(rows, cols)

    @classmethod
    def from_array(cls, values: Array | Sequence[float] | Sequence[Sequence[float]]) -> "Matrix":
        """Copy ``values`` into a new matrix; 1-D input becomes a single row."""

        array = np.array(values, dtype=np.float64)
        if array.ndim == 1:
            array = array.reshape(1, -1)
        if array.ndim != 2:
            raise InvalidShape(f"Expected 1-D or 2-D values, got {array.ndim}-D")
        _check_dims(*array.shape)
        return cls._wrap(array)

    from_rows = from_array

    @classmethod
    def _wrap(cls, array: Array) -> "Matrix":
        # Takes ownership of ``array``; callers pass freshly computed arrays only.
        out = cls.__new__(cls)
        out._data = array
        return out

    # ------------------------------------------------------------------
    # Shape and element access

    @property
    def rows(self) -> int:
        return int(self._data.shape[0])

    @property
    def cols(self) -> int:
        return int(self._data.shape[1])

    @property
    def shape(self) -> Shape:
        return self.rows, self.cols

    def __getitem__(self, index: Tuple[int, int]) -> float:
        row, col = index
        return float(self._data[row, col])

    def __setitem__(self, index: Tuple[int, int], value: float) -> None:
        row, col = index
        self._data[row, col] = float(value)

    def __len__(self) -> int:
        return self.rows

    def __iter__(self) -> Iterator[List[float]]:
        for row in self._data:
            yield row.tolist()

    def to_numpy(self) -> Array:
        """Return an independent copy of the backing store."""

        return self._data.copy()

    def tolist(self) -> List[List[float]]:
        return self._data.tolist()

    def copy(self) -> "Matrix":
        return Matrix._wrap(self._data.copy())

    # ------------------------------------------------------------------
    # Mutating operations

    def set(self, values: "Matrix | Array | Sequence[Sequence[float]]") -> None:
        """Replace every element with ``values`` (same shape required)."""

        array = values._data if isinstance(values, Matrix) else np.asarray(values, dtype=np.float64)
        if array.ndim == 1 and self.rows == 1:
            array = array.reshape(1, -1)
        if array.shape != self.shape:
            raise ShapeMismatch("set", [self.shape, _shape_of(array)])
        self._data[...] = array

    def randomize(
        self,
        low: float = -1.0,
        high: float = 1.0,
        rng: np.random.Generator | None = None,
    ) -> None:
        """Fill with uniform samples from ``[low, high)``."""

        if not high > low:
            raise ValueError(f"randomize requires low < high, got [{low}, {high})")
        rng = rng if rng is not None else np.random.default_rng()
        self._data[...] = rng.uniform(low, high, size=self.shape)

    # ------------------------------------------------------------------
    # Pure operations

    def add(self, other: "Matrix") -> "Matrix":
        self._require_same_shape("add", other)
        return Matrix._wrap(self._data + other._data)

    def subtract(self, other: "Matrix") -> "Matrix":
        self._require_same_shape("subtract", other)
        return Matrix._wrap(self._data - other._data)

    def hadamard(self, other: "Matrix") -> "Matrix":
        self._require_same_shape("hadamard", other)
        return Matrix._wrap(self._data * other._data)

    def multiply(self, other: "Matrix") -> "Matrix":
        """Standard matrix product ``self @ other``."""

        if self.cols != other.rows:
            raise ShapeMismatch(
                "multiply", [self.shape, other.shape], "left cols must equal right rows"
            )
        return Matrix._wrap(self._data @ other._data)

    def transpose(self) -> "Matrix":
        return Matrix._wrap(self._data.T.copy())

    @property
    def T(self) -> "Matrix":
        return self.transpose()

    def scale(self, k: float) -> "Matrix":
        return Matrix._wrap(self._data * float(k))

    def map(self, fn: Callable, *, vectorized: bool = True) -> "Matrix":
        """Apply ``fn`` element-wise.

        ``fn`` is called once with the whole array when ``vectorized`` is true
        (numpy ufuncs, arithmetic lambdas); pass ``vectorized=False`` for plain
        scalar functions such as :func:`math.exp`.
        """

        if vectorized:
            result = np.asarray(fn(self._data.copy()), dtype=np.float64)
            if result.shape != self.shape:
                result = np.broadcast_to(result, self.shape).copy()
        else:
            result = np.vectorize(fn, otypes=[np.float64])(self._data)
        return Matrix._wrap(result)

    def add_row_vector(self, row: "Matrix") -> "Matrix":
        """Add a ``1 x cols`` row to every row of the matrix."""

        if row.rows != 1 or row.cols != self.cols:
            raise ShapeMismatch("add_row_vector", [self.shape, row.shape], "expected 1 x cols row")
        return Matrix._wrap(self._data + row._data)

    def sum_rows(self) -> "Matrix":
        """Column totals as a ``1 x cols`` row."""

        return Matrix._wrap(self._data.sum(axis=0, keepdims=True))

    def take_rows(self, indices: Iterable[int]) -> "Matrix":
        if not hasattr(indices, "__len__"):
            indices = list(indices)
        index = np.asarray(indices, dtype=np.intp)
        if index.size == 0:
            raise InvalidShape("take_rows requires at least one row index")
        return Matrix._wrap(self._data[index].copy())

    def split_rows(self, parts: int) -> List["Matrix"]:
        """Split into ``min(parts, rows)`` contiguous, near-equal row blocks."""

        if parts <= 0:
            raise ValueError(f"parts must be positive, got {parts}")
        parts = min(int(parts), self.rows)
        return [Matrix._wrap(chunk.copy()) for chunk in np.array_split(self._data, parts, axis=0)]

    # ------------------------------------------------------------------
    # Comparison

    def equals(self, other: "Matrix") -> bool:
        return self.shape == other.shape and bool(np.array_equal(self._data, other._data))

    def allclose(self, other: "Matrix", *, rtol: float = 1e-9, atol: float = 1e-12) -> bool:
        return self.shape == other.shape and bool(
            np.allclose(self._data, other._data, rtol=rtol, atol=atol)
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Matrix):
            return NotImplemented
        return self.equals(other)

    __hash__ = None  # type: ignore[assignment]

    # Operator sugar -----------------------------------------------------

    def __add__(self, other: "Matrix") -> "Matrix":
        return self.add(other)

    def __sub__(self, other: "Matrix") -> "Matrix":
        return self.subtract(other)

    def __matmul__(self, other: "Matrix") -> "Matrix":
        return self.multiply(other)

    def __mul__(self, other: "Matrix | float") -> "Matrix":
        if isinstance(other, Matrix):
            return self.hadamard(other)
        return self.scale(other)

    __rmul__ = __mul__

    def __repr__(self) -> str:
        return f"Matrix({self.rows}x{self.cols}, {self._data.tolist()!r})"

    # ------------------------------------------------------------------

    def _require_same_shape(self, operation: str, other: "Matrix") -> None:
        if self.shape != other.shape:
            raise ShapeMismatch(operation, [self.shape, other.shape])


def _shape_of(array: Array) -> Shape:
    if array.ndim == 2:
        return int(array.shape[0]), int(array.shape[1])
    if array.ndim == 1:
        return 1, int(array.shape[0])
    return int(array.size), 1


__all__ = ["Matrix"]
