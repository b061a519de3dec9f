"""
LU decomposition of square matrices: Doolittle, Crout and Cholesky.
"""
import logging
from enum import Enum

import numpy as np

from .matrix import Matrix, EPSILON

logger = logging.getLogger(__name__)


class LUDMethod(Enum):
    DOOLITTLE = 'doolittle'
    CROUT = 'crout'
    CHOLESKY = 'cholesky'


def _zero_pair(n):
    return Matrix(n, n), Matrix(n, n)


def doolittle(matrix):
    """A = L·U with a unit lower triangular L."""
    n = matrix.rows
    a = matrix.data
    lower = np.eye(n)
    upper = np.zeros((n, n))
    for i in range(n):
        for k in range(i, n):
            upper[i, k] = a[i, k] - lower[i, :i] @ upper[:i, k]
        if abs(upper[i, i]) < EPSILON:
            logger.error("doolittle: zero pivot at row %d", i)
            return _zero_pair(n)
        for k in range(i + 1, n):
            lower[k, i] = (a[k, i] - lower[k, :i] @ upper[:i, i]) / upper[i, i]
    return Matrix.from_array(lower), Matrix.from_array(upper)


def crout(matrix):
    """A = L·U with a unit upper triangular U."""
    n = matrix.rows
    a = matrix.data
    lower = np.zeros((n, n))
    upper = np.eye(n)
    for j in range(n):
        for i in range(j, n):
            lower[i, j] = a[i, j] - lower[i, :j] @ upper[:j, j]
        if abs(lower[j, j]) < EPSILON:
            logger.error("crout: zero pivot at column %d", j)
            return _zero_pair(n)
        for i in range(j + 1, n):
            upper[j, i] = (a[j, i] - lower[j, :j] @ upper[:j, i]) / lower[j, j]
    return Matrix.from_array(lower), Matrix.from_array(upper)


def cholesky(matrix):
    """A = L·Lᵀ for symmetric positive-definite A. Returns (L, Lᵀ)."""
    n = matrix.rows
    a = matrix.data
    if not np.allclose(a, a.T):
        logger.error("cholesky: matrix is not symmetric")
        return _zero_pair(n)
    lower = np.zeros((n, n))
    for j in range(n):
        diag = a[j, j] - lower[j, :j] @ lower[j, :j]
        if diag <= EPSILON:
            logger.error("cholesky: matrix is not positive definite")
            return _zero_pair(n)
        lower[j, j] = np.sqrt(diag)
        for i in range(j + 1, n):
            lower[i, j] = (a[i, j] - lower[i, :j] @ lower[j, :j]) / lower[j, j]
    return Matrix.from_array(lower), Matrix.from_array(lower.T)


_METHODS = {
    LUDMethod.DOOLITTLE: doolittle,
    LUDMethod.CROUT: crout,
    LUDMethod.CHOLESKY: cholesky,
}


def lu_decompose(matrix, method=LUDMethod.DOOLITTLE):
    """
    Factor a square matrix into lower and upper triangular parts.

    Args:
        matrix: Square Matrix to factor
        method: LUDMethod selecting the factorization

    Returns:
        (L, U) pair of Matrix objects, zero matrices when the factorization fails
    """
    if matrix.rows != matrix.cols:
        logger.error("lu_decompose: matrix must be square, got %s", matrix.size)
        return Matrix(matrix.rows, matrix.cols), Matrix(matrix.rows, matrix.cols)
    return _METHODS[method](matrix)
