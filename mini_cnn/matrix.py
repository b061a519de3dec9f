"""
Dense Matrix and Vector containers for mini_cnn.
Fixed-shape float64 buffers with arithmetic, norms and linear algebra.
Shape mismatches are logged and answered with a zero result instead of raising.
"""
import logging
import numbers
from collections import namedtuple
from enum import Enum

import numpy as np

logger = logging.getLogger(__name__)

# Pivots below this magnitude are treated as zero
EPSILON = 1e-12


class Size(namedtuple('Size', ['m', 'n'])):
    """Rows (m) by columns (n)."""

    __slots__ = ()

    def __str__(self):
        return f"{self.m}x{self.n}"


class MatrixType(Enum):
    ZERO = 'zero'
    ONES = 'ones'
    RANDOM = 'random'
    IDENTITY = 'identity'


class VectorType(Enum):
    ZERO = 'zero'
    ONES = 'ones'
    RANDOM = 'random'
    IDENTITY = 'identity'


def random_value():
    """Uniform sample in [-1, 1) drawn from the global numpy state."""
    return float(np.random.uniform(-1.0, 1.0))


def _fill(shape, fill_type):
    if fill_type in (MatrixType.ZERO, VectorType.ZERO):
        return np.zeros(shape, dtype=np.float64)
    if fill_type in (MatrixType.ONES, VectorType.ONES):
        return np.ones(shape, dtype=np.float64)
    if fill_type in (MatrixType.RANDOM, VectorType.RANDOM):
        return np.random.uniform(-1.0, 1.0, size=shape).astype(np.float64)
    if fill_type in (MatrixType.IDENTITY, VectorType.IDENTITY):
        if len(shape) == 1:
            # Identity vector: first basis vector
            data = np.zeros(shape, dtype=np.float64)
            if shape[0] > 0:
                data[0] = 1.0
            return data
        return np.eye(shape[0], shape[1], dtype=np.float64)
    raise ValueError(f"Unknown fill type {fill_type}")


def _shape_error(op, left, right):
    logger.error("%s: shape mismatch %s vs %s", op, left, right)


class Matrix:
    """
    Row-major dense matrix of float64 values.

    Args:
        m: Number of rows, or a nested list of rows to copy
        n: Number of columns
        fill_type: MatrixType used to initialize the buffer
    """

    __array_ufunc__ = None

    def __init__(self, m=None, n=None, fill_type=MatrixType.ZERO):
        if m is None:
            self.data = np.zeros((0, 0), dtype=np.float64)
        elif isinstance(m, (list, tuple)):
            if any(len(row) != len(m[0]) for row in m):
                raise ValueError("All rows of a Matrix must have the same length")
            self.data = np.array(m, dtype=np.float64).reshape(len(m), len(m[0]) if m else 0)
        else:
            self.init(m, n, fill_type)

    def init(self, m, n, fill_type=MatrixType.ZERO):
        """Replace the buffer with a fresh (m, n) one."""
        if m < 0 or n < 0:
            raise ValueError(f"Matrix dimensions must be non-negative, got {m}x{n}")
        self.data = _fill((m, n), fill_type)
        return self

    @classmethod
    def from_array(cls, array):
        """Build a Matrix holding a copy of a 2D array."""
        array = np.asarray(array, dtype=np.float64)
        if array.ndim != 2:
            raise ValueError(f"Matrix needs a 2D array, got {array.ndim}D")
        out = cls()
        out.data = array.copy()
        return out

    @classmethod
    def _wrap(cls, array):
        out = cls()
        out.data = array
        return out

    # ------------------------------------------------------------------
    # Quantification
    # ------------------------------------------------------------------

    @property
    def rows(self):
        return self.data.shape[0]

    @property
    def cols(self):
        return self.data.shape[1]

    @property
    def shape(self):
        return self.data.shape

    @property
    def size(self):
        return Size(self.rows, self.cols)

    def get_size(self):
        return self.size

    def sum(self):
        return float(self.data.sum())

    def average(self):
        if self.data.size == 0:
            logger.warning("average: empty matrix")
            return 0.0
        return float(self.data.mean())

    def max(self):
        if self.data.size == 0:
            logger.warning("max: empty matrix")
            return 0.0
        return float(self.data.max())

    def min(self):
        if self.data.size == 0:
            logger.warning("min: empty matrix")
            return 0.0
        return float(self.data.min())

    # ------------------------------------------------------------------
    # Element access
    # ------------------------------------------------------------------

    def _check_index(self, idx):
        if not isinstance(idx, tuple) or len(idx) != 2:
            raise IndexError("Matrix index must be a (row, col) pair")
        i, j = idx
        if not (0 <= i < self.rows and 0 <= j < self.cols):
            raise IndexError(f"Index ({i}, {j}) out of range for {self.size} matrix")
        return i, j

    def __getitem__(self, idx):
        i, j = self._check_index(idx)
        return float(self.data[i, j])

    def __setitem__(self, idx, value):
        i, j = self._check_index(idx)
        self.data[i, j] = value

    # ------------------------------------------------------------------
    # Arithmetic
    # ------------------------------------------------------------------

    def _same_shape(self, other, op):
        if not isinstance(other, Matrix):
            return NotImplemented
        if self.shape != other.shape:
            _shape_error(op, self.size, other.size)
            return False
        return True

    def __add__(self, other):
        if isinstance(other, numbers.Real):
            return Matrix._wrap(self.data + other)
        ok = self._same_shape(other, 'Matrix.__add__')
        if ok is NotImplemented:
            return ok
        if not ok:
            return Matrix(self.rows, self.cols)
        return Matrix._wrap(self.data + other.data)

    def __sub__(self, other):
        if isinstance(other, numbers.Real):
            return Matrix._wrap(self.data - other)
        ok = self._same_shape(other, 'Matrix.__sub__')
        if ok is NotImplemented:
            return ok
        if not ok:
            return Matrix(self.rows, self.cols)
        return Matrix._wrap(self.data - other.data)

    def __iadd__(self, other):
        ok = self._same_shape(other, 'Matrix.__iadd__')
        if ok is NotImplemented:
            return ok
        if ok:
            self.data = self.data + other.data
        return self

    def __isub__(self, other):
        ok = self._same_shape(other, 'Matrix.__isub__')
        if ok is NotImplemented:
            return ok
        if ok:
            self.data = self.data - other.data
        return self

    def __mul__(self, other):
        if isinstance(other, numbers.Real):
            return Matrix._wrap(self.data * float(other))
        return self.__matmul__(other)

    def __rmul__(self, other):
        if isinstance(other, numbers.Real):
            return Matrix._wrap(self.data * float(other))
        return NotImplemented

    def __matmul__(self, other):
        if isinstance(other, Vector):
            if self.cols != other.size:
                _shape_error('Matrix.__matmul__', self.size, f"vector({other.size})")
                return Vector(self.rows)
            return Vector._wrap(self.data @ other.data)
        if isinstance(other, Matrix):
            if self.cols != other.rows:
                _shape_error('Matrix.__matmul__', self.size, other.size)
                return Matrix(self.rows, other.cols)
            return Matrix._wrap(self.data @ other.data)
        return NotImplemented

    def __truediv__(self, other):
        if isinstance(other, numbers.Real):
            if other == 0:
                logger.error("Matrix.__truediv__: division by zero")
                return Matrix(self.rows, self.cols)
            return Matrix._wrap(self.data / other)
        return NotImplemented

    def __neg__(self):
        return Matrix._wrap(-self.data)

    def __eq__(self, other):
        if not isinstance(other, Matrix):
            return NotImplemented
        return self.shape == other.shape and bool(np.array_equal(self.data, other.data))

    __hash__ = None

    @staticmethod
    def hadamard(first, second):
        """Elementwise product of two equally shaped matrices."""
        if first.shape != second.shape:
            _shape_error('Matrix.hadamard', first.size, second.size)
            return Matrix(first.rows, first.cols)
        return Matrix._wrap(first.data * second.data)

    def allclose(self, other, atol=1e-9):
        return self.shape == other.shape and bool(np.allclose(self.data, other.data, atol=atol))

    # ------------------------------------------------------------------
    # Advanced quantification
    # ------------------------------------------------------------------

    def _require_square(self, op):
        if self.rows != self.cols:
            logger.error("%s: matrix must be square, got %s", op, self.size)
            return False
        return True

    def _require_nonempty(self, op):
        if self.data.size == 0:
            logger.error("%s: zero-size matrix", op)
            return False
        return True

    def determinant(self):
        """Determinant through elimination with partial pivoting."""
        if not self._require_square('Matrix.determinant'):
            return 0.0
        if not self._require_nonempty('Matrix.determinant'):
            return 0.0
        return self._determinant()

    def _determinant(self):
        # The empty minor of a 1x1 matrix has determinant 1
        n = self.rows
        if n == 0:
            return 1.0
        a = self.data.copy()
        det = 1.0
        for col in range(n):
            pivot = col + int(np.argmax(np.abs(a[col:, col])))
            if abs(a[pivot, col]) < EPSILON:
                return 0.0
            if pivot != col:
                a[[col, pivot]] = a[[pivot, col]]
                det = -det
            det *= a[col, col]
            factors = a[col + 1:, col] / a[col, col]
            a[col + 1:, col:] -= np.outer(factors, a[col, col:])
        return float(det)

    def trace(self):
        if not self._require_square('Matrix.trace'):
            return 0.0
        return float(np.trace(self.data))

    def _minor(self, i, j):
        return Matrix._wrap(np.delete(np.delete(self.data, i, axis=0), j, axis=1))

    def cofactor(self, i, j):
        """Minor of element (i, j): determinant with row i and column j removed."""
        if not self._require_square('Matrix.cofactor'):
            return 0.0
        self._check_index((i, j))
        return self._minor(i, j)._determinant()

    def algebraic_cofactor(self, i, j):
        return (-1.0) ** (i + j) * self.cofactor(i, j)

    def rank(self):
        if self.data.size == 0:
            logger.warning("Matrix.rank: zero-size matrix")
            return 0
        echelon = self.gaussian_elimination().data
        return int(np.sum(np.any(np.abs(echelon) > 1e-9, axis=1)))

    def one_norm(self):
        """Maximum absolute column sum."""
        if self.data.size == 0:
            return 0.0
        return float(np.abs(self.data).sum(axis=0).max())

    def frobenius_norm(self):
        return float(np.sqrt((self.data ** 2).sum()))

    def p_norm(self, p):
        """Entrywise p-norm."""
        if p <= 0:
            logger.error("Matrix.p_norm: p must be positive, got %s", p)
            return 0.0
        return float((np.abs(self.data) ** p).sum() ** (1.0 / p))

    # ------------------------------------------------------------------
    # Transformation
    # ------------------------------------------------------------------

    def clear(self):
        self.data = np.zeros_like(self.data)
        return self

    def gaussian_elimination(self):
        """Row echelon form via partial pivoting."""
        a = self.data.copy()
        rows, cols = a.shape
        r = 0
        for c in range(cols):
            if r >= rows:
                break
            pivot = r + int(np.argmax(np.abs(a[r:, c])))
            if abs(a[pivot, c]) < EPSILON:
                a[r:, c] = 0.0
                continue
            if pivot != r:
                a[[r, pivot]] = a[[pivot, r]]
            factors = a[r + 1:, c] / a[r, c]
            a[r + 1:, c:] -= np.outer(factors, a[r, c:])
            a[r + 1:, c] = 0.0
            r += 1
        return Matrix._wrap(a)

    def transpose(self):
        return Matrix._wrap(self.data.T.copy())

    @property
    def T(self):
        return self.transpose()

    def adjoint(self):
        """Transpose of the matrix of algebraic cofactors."""
        if not self._require_square('Matrix.adjoint'):
            return Matrix(self.rows, self.cols)
        if not self._require_nonempty('Matrix.adjoint'):
            return Matrix(0, 0)
        n = self.rows
        if n == 1:
            return Matrix._wrap(np.ones((1, 1)))
        adj = np.zeros((n, n), dtype=np.float64)
        for i in range(n):
            for j in range(n):
                adj[j, i] = (-1.0) ** (i + j) * self._minor(i, j)._determinant()
        return Matrix._wrap(adj)

    def inverse(self):
        """Gauss-Jordan inverse. Singular input yields a zero matrix."""
        if not self._require_square('Matrix.inverse'):
            return Matrix(self.rows, self.cols)
        if not self._require_nonempty('Matrix.inverse'):
            return Matrix(0, 0)
        n = self.rows
        aug = np.hstack([self.data.copy(), np.eye(n)])
        for col in range(n):
            pivot = col + int(np.argmax(np.abs(aug[col:, col])))
            if abs(aug[pivot, col]) < EPSILON:
                logger.error("Matrix.inverse: matrix is singular")
                return Matrix(n, n)
            if pivot != col:
                aug[[col, pivot]] = aug[[pivot, col]]
            aug[col] /= aug[col, col]
            for row in range(n):
                if row != col:
                    aug[row] -= aug[row, col] * aug[col]
        return Matrix._wrap(aug[:, n:].copy())

    def rot180(self):
        return Matrix._wrap(self.data[::-1, ::-1].copy())

    def apply(self, fn):
        """Apply a vectorized function to every element."""
        return Matrix._wrap(np.asarray(fn(self.data), dtype=np.float64))

    def flatten(self):
        return Vector._wrap(self.data.reshape(-1).copy())

    def copy(self):
        return Matrix._wrap(self.data.copy())

    def view(self):
        """Read-only Matrix sharing this buffer."""
        data = self.data.view()
        data.flags.writeable = False
        return Matrix._wrap(data)

    def numpy(self):
        return self.data

    def __repr__(self):
        return f"Matrix(size={self.size}, data={self.data.tolist()})"


class Vector:
    """
    Dense float64 vector.

    Args:
        n: Length, or a list of values to copy
        fill_type: VectorType used to initialize the buffer
    """

    __array_ufunc__ = None

    def __init__(self, n=None, fill_type=VectorType.ZERO):
        if n is None:
            self.data = np.zeros(0, dtype=np.float64)
        elif isinstance(n, (list, tuple)):
            self.data = np.array(n, dtype=np.float64).reshape(-1)
        else:
            self.init(n, fill_type)

    def init(self, n, fill_type=VectorType.ZERO):
        if n < 0:
            raise ValueError(f"Vector length must be non-negative, got {n}")
        self.data = _fill((n,), fill_type)
        return self

    @classmethod
    def from_array(cls, array):
        out = cls()
        out.data = np.asarray(array, dtype=np.float64).reshape(-1).copy()
        return out

    @classmethod
    def from_matrix(cls, matrix):
        """Row-major flattening of a Matrix."""
        return matrix.flatten()

    @classmethod
    def _wrap(cls, array):
        out = cls()
        out.data = array
        return out

    @property
    def size(self):
        return self.data.shape[0]

    def __len__(self):
        return self.size

    def sum(self):
        return float(self.data.sum())

    def average(self):
        if self.size == 0:
            logger.warning("average: empty vector")
            return 0.0
        return float(self.data.mean())

    def max(self):
        if self.size == 0:
            logger.warning("max: empty vector")
            return 0.0
        return float(self.data.max())

    def min(self):
        if self.size == 0:
            logger.warning("min: empty vector")
            return 0.0
        return float(self.data.min())

    def argmax(self):
        return int(np.argmax(self.data))

    def _check_index(self, i):
        if not 0 <= i < self.size:
            raise IndexError(f"Index {i} out of range for vector of size {self.size}")
        return i

    def __getitem__(self, i):
        return float(self.data[self._check_index(i)])

    def __setitem__(self, i, value):
        self.data[self._check_index(i)] = value

    def _same_size(self, other, op):
        if not isinstance(other, Vector):
            return NotImplemented
        if self.size != other.size:
            _shape_error(op, self.size, other.size)
            return False
        return True

    def __add__(self, other):
        ok = self._same_size(other, 'Vector.__add__')
        if ok is NotImplemented:
            return ok
        if not ok:
            return Vector(self.size)
        return Vector._wrap(self.data + other.data)

    def __sub__(self, other):
        ok = self._same_size(other, 'Vector.__sub__')
        if ok is NotImplemented:
            return ok
        if not ok:
            return Vector(self.size)
        return Vector._wrap(self.data - other.data)

    def __iadd__(self, other):
        ok = self._same_size(other, 'Vector.__iadd__')
        if ok is NotImplemented:
            return ok
        if ok:
            self.data = self.data + other.data
        return self

    def __isub__(self, other):
        ok = self._same_size(other, 'Vector.__isub__')
        if ok is NotImplemented:
            return ok
        if ok:
            self.data = self.data - other.data
        return self

    def __mul__(self, other):
        if isinstance(other, numbers.Real):
            return Vector._wrap(self.data * float(other))
        if isinstance(other, Vector):
            return Vector.hadamard(self, other)
        return NotImplemented

    def __rmul__(self, other):
        if isinstance(other, numbers.Real):
            return Vector._wrap(self.data * float(other))
        return NotImplemented

    def __neg__(self):
        return Vector._wrap(-self.data)

    def __eq__(self, other):
        if not isinstance(other, Vector):
            return NotImplemented
        return self.size == other.size and bool(np.array_equal(self.data, other.data))

    __hash__ = None

    def allclose(self, other, atol=1e-9):
        return self.size == other.size and bool(np.allclose(self.data, other.data, atol=atol))

    @staticmethod
    def inner_product(first, second):
        if first.size != second.size:
            _shape_error('Vector.inner_product', first.size, second.size)
            return 0.0
        return float(np.dot(first.data, second.data))

    @staticmethod
    def hadamard(first, second):
        if first.size != second.size:
            _shape_error('Vector.hadamard', first.size, second.size)
            return Vector(first.size)
        return Vector._wrap(first.data * second.data)

    @staticmethod
    def outer_product(first, second):
        """first · secondᵀ as a Matrix."""
        return Matrix._wrap(np.outer(first.data, second.data))

    def one_norm(self):
        return float(np.abs(self.data).sum())

    def two_norm(self):
        return float(np.sqrt((self.data ** 2).sum()))

    def infinity_norm(self):
        if self.size == 0:
            return 0.0
        return float(np.abs(self.data).max())

    def p_norm(self, p):
        if p <= 0:
            logger.error("Vector.p_norm: p must be positive, got %s", p)
            return 0.0
        return float((np.abs(self.data) ** p).sum() ** (1.0 / p))

    def apply(self, fn):
        return Vector._wrap(np.asarray(fn(self.data), dtype=np.float64))

    def clear(self):
        self.data = np.zeros_like(self.data)
        return self

    def copy(self):
        return Vector._wrap(self.data.copy())

    def view(self):
        data = self.data.view()
        data.flags.writeable = False
        return Vector._wrap(data)

    def to_matrix(self):
        """Column matrix (n x 1)."""
        return Matrix._wrap(self.data.reshape(-1, 1).copy())

    def numpy(self):
        return self.data

    def __repr__(self):
        return f"Vector(size={self.size}, data={self.data.tolist()})"
