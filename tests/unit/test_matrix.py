import math

import numpy as np
import pytest

from backpropnets.core.errors import InvalidShape, ShapeMismatch
from backpropnets.core.matrix import Matrix


def test_create_is_zero_filled():
    m = Matrix.create(2, 3)
    assert m.shape == (2, 3)
    assert np.array_equal(m.to_numpy(), np.zeros((2, 3)))


@pytest.mark.parametrize("rows,cols", [(0, 3), (3, 0), (-1, 2)])
def test_non_positive_dimensions_rejected(rows, cols):
    with pytest.raises(InvalidShape):
        Matrix(rows, cols)


@pytest.mark.parametrize("rows,cols", [(2.7, 3), (2, 3.0), (True, 2), ("2", 2)])
def test_non_integer_dimensions_rejected(rows, cols):
    with pytest.raises(InvalidShape):
        Matrix(rows, cols)


def test_numpy_integer_dimensions_accepted():
    assert Matrix(np.int64(2), np.int32(3)).shape == (2, 3)


def test_from_array_copies_and_promotes_vectors():
    source = np.array([1.0, 2.0, 3.0])
    m = Matrix.from_array(source)
    source[0] = 99.0
    assert m.shape == (1, 3)
    assert m[0, 0] == 1.0


def test_to_numpy_returns_independent_copy():
    m = Matrix.from_rows([[1.0, 2.0], [3.0, 4.0]])
    arr = m.to_numpy()
    arr[0, 0] = -5.0
    assert m[0, 0] == 1.0


def test_set_requires_matching_shape():
    m = Matrix(2, 2)
    m.set([[1, 2], [3, 4]])
    assert m.tolist() == [[1.0, 2.0], [3.0, 4.0]]
    with pytest.raises(ShapeMismatch) as excinfo:
        m.set([[1, 2, 3]])
    assert excinfo.value.operation == "set"
    assert excinfo.value.shapes == ((2, 2), (1, 3))


def test_randomize_respects_range_and_seed():
    a = Matrix(50, 4)
    b = Matrix(50, 4)
    a.randomize(-0.5, 0.25, np.random.default_rng(3))
    b.randomize(-0.5, 0.25, np.random.default_rng(3))
    values = a.to_numpy()
    assert values.min() >= -0.5 and values.max() < 0.25
    assert a.equals(b)
    with pytest.raises(ValueError):
        a.randomize(1.0, 1.0)


def test_elementwise_operations_are_pure():
    a = Matrix.from_rows([[1.0, 2.0], [3.0, 4.0]])
    b = Matrix.from_rows([[0.5, -1.0], [2.0, 0.0]])
    snapshot = a.to_numpy()
    assert a.add(b).tolist() == [[1.5, 1.0], [5.0, 4.0]]
    assert a.subtract(b).tolist() == [[0.5, 3.0], [1.0, 4.0]]
    assert a.hadamard(b).tolist() == [[0.5, -2.0], [6.0, 0.0]]
    assert a.scale(2).tolist() == [[2.0, 4.0], [6.0, 8.0]]
    assert np.array_equal(a.to_numpy(), snapshot)


@pytest.mark.parametrize("op", ["add", "subtract", "hadamard"])
def test_elementwise_shape_mismatch(op):
    a = Matrix(2, 3)
    b = Matrix(3, 2)
    with pytest.raises(ShapeMismatch):
        getattr(a, op)(b)


def test_multiply_matches_numpy():
    rng = np.random.default_rng(0)
    left = rng.normal(size=(3, 4))
    right = rng.normal(size=(4, 2))
    product = Matrix.from_array(left).multiply(Matrix.from_array(right))
    assert product.shape == (3, 2)
    assert np.allclose(product.to_numpy(), left @ right)


def test_multiply_rejects_inner_dimension_mismatch():
    with pytest.raises(ShapeMismatch) as excinfo:
        Matrix(2, 3).multiply(Matrix(2, 3))
    assert "multiply" in str(excinfo.value)


def test_transpose_twice_is_identity():
    m = Matrix.from_rows([[1.0, 2.0, 3.0], [4.0, 5.0, 6.0]])
    assert m.transpose().shape == (3, 2)
    assert m.T.T == m


def test_map_vectorized_and_scalar():
    m = Matrix.from_rows([[0.0, 1.0], [2.0, 3.0]])
    assert m.map(lambda x: x * 2).tolist() == [[0.0, 2.0], [4.0, 6.0]]
    exp = m.map(math.exp, vectorized=False)
    assert np.allclose(exp.to_numpy(), np.exp(m.to_numpy()))


def test_row_helpers():
    m = Matrix.from_rows([[1.0, 2.0], [3.0, 4.0], [5.0, 6.0]])
    assert m.sum_rows().tolist() == [[9.0, 12.0]]
    assert m.add_row_vector(Matrix.from_array([10.0, 20.0])).tolist()[0] == [11.0, 22.0]
    assert m.take_rows([2, 0]).tolist() == [[5.0, 6.0], [1.0, 2.0]]
    assert m.take_rows(i for i in (1,)).tolist() == [[3.0, 4.0]]
    with pytest.raises(InvalidShape):
        m.take_rows([])
    with pytest.raises(ShapeMismatch):
        m.add_row_vector(Matrix(1, 3))


def test_split_rows_clamps_parts_and_preserves_order():
    m = Matrix.from_array(np.arange(10, dtype=float).reshape(5, 2))
    blocks = m.split_rows(2)
    assert [b.rows for b in blocks] == [3, 2]
    assert Matrix.from_array(np.concatenate([b.to_numpy() for b in blocks])) == m
    assert len(m.split_rows(8)) == 5
    with pytest.raises(ValueError):
        m.split_rows(0)


def test_operator_sugar():
    a = Matrix.from_rows([[1.0, 2.0]])
    b = Matrix.from_rows([[3.0, 4.0]])
    assert (a + b).tolist() == [[4.0, 6.0]]
    assert (b - a).tolist() == [[2.0, 2.0]]
    assert (a * b).tolist() == [[3.0, 8.0]]
    assert (2 * a).tolist() == [[2.0, 4.0]]
    assert (a @ b.T).tolist() == [[11.0]]


def test_equality_and_unhashable():
    a = Matrix.from_rows([[1.0]])
    assert a == Matrix.from_rows([[1.0]])
    assert a != Matrix.from_rows([[1.0, 0.0]])
    assert a.allclose(Matrix.from_rows([[1.0 + 1e-13]]))
    with pytest.raises(TypeError):
        hash(a)


def test_transpose_of_product():
    rng = np.random.default_rng(5)
    a = Matrix.from_array(rng.normal(size=(3, 4)))
    b = Matrix.from_array(rng.normal(size=(4, 2)))
    assert a.multiply(b).transpose().allclose(b.transpose().multiply(a.transpose()))


def test_identity_map_preserves_values():
    m = Matrix.from_array(np.random.default_rng(6).normal(size=(4, 3)))
    mapped = m.map(lambda x: x)
    assert mapped == m
    mapped[0, 0] = 123.0
    assert m[0, 0] != 123.0
