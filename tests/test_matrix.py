"""
test_matrix.py
~~~~~~~~~~~~~~

Unit tests for the Matrix and Vector containers.
"""

import logging

import numpy as np
import pytest

from mini_cnn.matrix import Matrix, MatrixType, Size, Vector, VectorType


@pytest.fixture
def square():
    return Matrix([[1, 2], [3, 4]])


@pytest.mark.unit
class TestMatrixConstruction:
    """Initialization, fill types and value semantics."""

    def test_default_is_empty(self):
        m = Matrix()
        assert m.size == Size(0, 0)

    def test_init_replaces_buffer(self):
        m = Matrix()
        m.init(2, 3, MatrixType.ONES)
        assert m.size == Size(2, 3)
        assert m.sum() == 6.0

    def test_identity_fill(self):
        m = Matrix(3, 3, MatrixType.IDENTITY)
        assert m.trace() == 3.0
        assert m[0, 1] == 0.0

    def test_random_fill_in_range(self):
        m = Matrix(20, 20, MatrixType.RANDOM)
        assert -1.0 <= m.min() and m.max() < 1.0

    def test_ragged_rows_rejected(self):
        with pytest.raises(ValueError):
            Matrix([[1, 2], [3]])

    def test_copy_is_independent(self, square):
        clone = square.copy()
        clone[0, 0] = 100
        assert square[0, 0] == 1.0

    def test_view_is_read_only(self, square):
        view = square.view()
        with pytest.raises(ValueError):
            view.data[0, 0] = 5.0

    def test_from_array_copies(self):
        array = np.zeros((2, 2))
        m = Matrix.from_array(array)
        array[0, 0] = 1.0
        assert m[0, 0] == 0.0


@pytest.mark.unit
class TestMatrixAccess:
    """Bounds-checked element access."""

    def test_get_and_set(self, square):
        square[1, 0] = 9
        assert square[1, 0] == 9.0

    @pytest.mark.parametrize("index", [(2, 0), (0, 2), (-1, 0), (0, -1)])
    def test_out_of_range_raises(self, square, index):
        with pytest.raises(IndexError):
            square[index]


@pytest.mark.unit
class TestMatrixArithmetic:
    """Operators and the shape-mismatch policy."""

    def test_add_then_subtract_restores(self):
        a = Matrix(4, 3, MatrixType.RANDOM)
        b = Matrix(4, 3, MatrixType.RANDOM)
        assert ((a + b) - b).allclose(a)

    def test_inplace_operators(self, square):
        square += Matrix(2, 2, MatrixType.ONES)
        assert square == Matrix([[2, 3], [4, 5]])
        square -= Matrix(2, 2, MatrixType.ONES)
        assert square == Matrix([[1, 2], [3, 4]])

    def test_scalar_multiplication(self, square):
        assert square * 2 == Matrix([[2, 4], [6, 8]])
        assert 2 * square == Matrix([[2, 4], [6, 8]])

    def test_numpy_scalars(self, square):
        assert square * np.int64(2) == Matrix([[2, 4], [6, 8]])
        assert np.float32(2) * square == Matrix([[2, 4], [6, 8]])
        assert square / np.int64(2) == Matrix([[0.5, 1], [1.5, 2]])
        assert Vector([1, 2]) * np.int32(3) == Vector([3, 6])

    def test_matrix_product(self, square):
        other = Matrix([[5, 6], [7, 8]])
        assert square * other == Matrix([[19, 22], [43, 50]])
        assert square @ other == Matrix([[19, 22], [43, 50]])

    def test_matrix_vector_product(self, square):
        result = square @ Vector([1, 1])
        assert result == Vector([3, 7])

    def test_hadamard(self, square):
        assert Matrix.hadamard(square, square) == Matrix([[1, 4], [9, 16]])

    def test_add_mismatch_returns_zero_and_logs(self, square, caplog):
        with caplog.at_level(logging.ERROR, logger='mini_cnn.matrix'):
            result = square + Matrix(3, 3, MatrixType.ONES)
        assert result == Matrix(2, 2)
        assert "shape mismatch" in caplog.text
        assert "Matrix.__add__" in caplog.text

    def test_product_mismatch_returns_zero(self, square, caplog):
        with caplog.at_level(logging.ERROR, logger='mini_cnn.matrix'):
            result = square @ Matrix(3, 4, MatrixType.ONES)
        assert result == Matrix(2, 4)
        assert "2x2 vs 3x4" in caplog.text

    def test_inplace_mismatch_leaves_operand(self, square, caplog):
        with caplog.at_level(logging.ERROR, logger='mini_cnn.matrix'):
            square += Matrix(1, 1, MatrixType.ONES)
        assert square == Matrix([[1, 2], [3, 4]])


@pytest.mark.unit
class TestMatrixAlgebra:
    """Determinant, inverse, rank, norms and friends."""

    def test_determinant(self, square):
        assert square.determinant() == pytest.approx(-2.0)
        m = Matrix([[6, 1, 1], [4, -2, 5], [2, 8, 7]])
        assert m.determinant() == pytest.approx(-306.0)

    def test_determinant_non_square(self, caplog):
        with caplog.at_level(logging.ERROR, logger='mini_cnn.matrix'):
            assert Matrix(2, 3, MatrixType.ONES).determinant() == 0.0
        assert "square" in caplog.text

    def test_inverse(self):
        m = Matrix([[4, 7], [2, 6]])
        assert m.inverse().allclose(Matrix([[0.6, -0.7], [-0.2, 0.4]]))
        assert (m @ m.inverse()).allclose(Matrix(2, 2, MatrixType.IDENTITY))

    def test_singular_inverse_is_zero(self, caplog):
        with caplog.at_level(logging.ERROR, logger='mini_cnn.matrix'):
            result = Matrix([[1, 2], [2, 4]]).inverse()
        assert result == Matrix(2, 2)
        assert "singular" in caplog.text

    def test_rank(self):
        assert Matrix([[1, 2], [2, 4]]).rank() == 1
        assert Matrix(3, 3, MatrixType.IDENTITY).rank() == 3
        assert Matrix([[1, 2, 3], [4, 5, 6]]).rank() == 2

    def test_rank_of_empty_matrix(self, caplog):
        with caplog.at_level(logging.WARNING, logger='mini_cnn.matrix'):
            assert Matrix().rank() == 0
        assert "zero-size" in caplog.text

    def test_determinant_and_inverse_of_empty_matrix(self, caplog):
        with caplog.at_level(logging.ERROR, logger='mini_cnn.matrix'):
            assert Matrix().determinant() == 0.0
            assert Matrix().inverse() == Matrix(0, 0)
            assert Matrix().adjoint() == Matrix(0, 0)
        assert caplog.text.count("zero-size") == 3

    def test_one_by_one(self, caplog):
        m = Matrix([[5]])
        with caplog.at_level(logging.ERROR, logger='mini_cnn.matrix'):
            assert m.determinant() == pytest.approx(5.0)
            assert m.cofactor(0, 0) == pytest.approx(1.0)
            assert m.adjoint() == Matrix([[1]])
            assert m.inverse().allclose(Matrix([[0.2]]))
        assert caplog.text == ""

    def test_cofactors_and_adjoint(self, square):
        assert square.cofactor(0, 0) == pytest.approx(4.0)
        assert square.algebraic_cofactor(0, 1) == pytest.approx(-3.0)
        assert square.adjoint().allclose(Matrix([[4, -2], [-3, 1]]))

    def test_norms(self):
        m = Matrix([[1, -2], [3, 4]])
        assert m.one_norm() == 6.0
        assert m.frobenius_norm() == pytest.approx(np.sqrt(30))
        assert m.p_norm(1) == pytest.approx(10.0)

    def test_gaussian_elimination_is_upper_triangular(self):
        echelon = Matrix([[2, 1], [4, 3]]).gaussian_elimination()
        assert echelon.allclose(Matrix([[4, 3], [0, -0.5]]))

    def test_transpose_and_rot180(self):
        m = Matrix([[1, 2, 3], [4, 5, 6]])
        assert m.transpose() == Matrix([[1, 4], [2, 5], [3, 6]])
        assert m.rot180() == Matrix([[6, 5, 4], [3, 2, 1]])

    def test_quantification(self, square):
        assert square.sum() == 10.0
        assert square.average() == 2.5
        assert square.max() == 4.0
        assert square.min() == 1.0


@pytest.mark.unit
class TestVector:
    """Vector arithmetic and norms."""

    def test_fill_types(self):
        assert Vector(3, VectorType.ONES).sum() == 3.0
        assert Vector(3, VectorType.IDENTITY) == Vector([1, 0, 0])

    def test_arithmetic(self):
        a = Vector([1, 2, 3])
        b = Vector([4, 5, 6])
        assert a + b == Vector([5, 7, 9])
        assert b - a == Vector([3, 3, 3])
        assert a * b == Vector([4, 10, 18])
        assert a * 2 == Vector([2, 4, 6])

    def test_inner_and_outer_product(self):
        a = Vector([1, 2])
        b = Vector([3, 4, 5])
        assert Vector.inner_product(a, a) == 5.0
        assert Vector.outer_product(a, b) == Matrix([[3, 4, 5], [6, 8, 10]])

    def test_norms(self):
        v = Vector([3, -4])
        assert v.one_norm() == 7.0
        assert v.two_norm() == 5.0
        assert v.infinity_norm() == 4.0
        assert v.p_norm(2) == pytest.approx(5.0)

    def test_mismatch_returns_zero(self, caplog):
        with caplog.at_level(logging.ERROR, logger='mini_cnn.matrix'):
            result = Vector([1, 2]) + Vector([1, 2, 3])
        assert result == Vector(2)
        assert "Vector.__add__" in caplog.text

    def test_bounds_checked(self):
        with pytest.raises(IndexError):
            Vector(2)[2]

    def test_matrix_round_trip(self):
        m = Matrix([[1, 2], [3, 4]])
        v = Vector.from_matrix(m)
        assert v == Vector([1, 2, 3, 4])
        assert v.to_matrix().size == Size(4, 1)
