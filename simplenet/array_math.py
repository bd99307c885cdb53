"""
array_math.py
~~~~~~~~~~~~~

Pure vector and matrix operations on numpy arrays.

Every function returns a freshly allocated array and never mutates its
arguments. Binary operations validate operand shapes and raise
DimensionMismatch on disagreement. Unary operations never fail on shape;
domain errors such as the log of a non-positive entry propagate as
NaN/Infinity instead of raising.
"""

from typing import Any, Callable

import numpy as np

from simplenet.exceptions import DimensionMismatch


def as_array(x: Any) -> np.ndarray:
    """
    Convert an array-like to a float64 numpy array.

    Args:
        x: Nested sequence or array of numbers

    Returns:
        np.ndarray: Float array (may share memory with ``x``)

    Raises:
        DimensionMismatch: If ``x`` is ragged (rows of unequal length)
    """
    try:
        return np.asarray(x, dtype=np.float64)
    except ValueError as e:
        raise DimensionMismatch(f"Non-rectangular operand: {e}") from e


def as_vector(x: Any) -> np.ndarray:
    """Convert ``x`` to a 1-D float array, raising DimensionMismatch otherwise."""
    arr = as_array(x)
    if arr.ndim != 1:
        raise DimensionMismatch(f"Expected a vector, got shape {arr.shape}")
    return arr


def as_matrix(x: Any) -> np.ndarray:
    """
    Convert ``x`` to a 2-D float array.

    An empty sequence is accepted as a matrix with zero rows.
    """
    arr = as_array(x)
    if arr.ndim == 1 and arr.size == 0:
        return arr.reshape(0, 0)
    if arr.ndim != 2:
        raise DimensionMismatch(f"Expected a matrix, got shape {arr.shape}")
    return arr


def vector(length: int, value: float = 0.0) -> np.ndarray:
    """Vector of ``length`` entries all equal to ``value``."""
    return np.full(length, value, dtype=np.float64)


def matrix(rows: int, columns: int, value: float = 0.0) -> np.ndarray:
    """Matrix of shape ``rows x columns`` with every entry equal to ``value``."""
    return np.full((rows, columns), value, dtype=np.float64)


def _check_same_shape(x: np.ndarray, y: np.ndarray, op: str) -> None:
    if x.shape != y.shape:
        raise DimensionMismatch(
            f"Cannot {op} operands of shape {x.shape} and {y.shape}"
        )


def add(x: Any, y: Any) -> np.ndarray:
    """Element-wise sum of two equally shaped vectors or matrices."""
    x, y = as_array(x), as_array(y)
    _check_same_shape(x, y, 'add')
    return x + y


def sub(x: Any, y: Any) -> np.ndarray:
    """Element-wise difference ``x - y``."""
    x, y = as_array(x), as_array(y)
    _check_same_shape(x, y, 'subtract')
    return x - y


def had(x: Any, y: Any) -> np.ndarray:
    """Hadamard (element-wise) product."""
    x, y = as_array(x), as_array(y)
    _check_same_shape(x, y, 'multiply element-wise')
    return x * y


def div(x: Any, y: Any) -> np.ndarray:
    """Element-wise quotient ``x / y``; division by zero yields inf or NaN."""
    x, y = as_array(x), as_array(y)
    _check_same_shape(x, y, 'divide')
    with np.errstate(divide='ignore', invalid='ignore'):
        return x / y


def scale(s: float, x: Any) -> np.ndarray:
    """Multiply every entry of ``x`` by the scalar ``s``."""
    return float(s) * as_array(x)


def mul(m: Any, v: Any) -> np.ndarray:
    """
    Matrix-vector product ``m . v``.

    Args:
        m: Matrix of shape (rows, columns)
        v: Vector of length columns

    Returns:
        np.ndarray: Vector of length rows

    Raises:
        DimensionMismatch: If the column count of ``m`` differs from len(v)
    """
    m, v = as_matrix(m), as_vector(v)
    if m.shape[1] != v.shape[0]:
        raise DimensionMismatch(
            f"Cannot multiply matrix of shape {m.shape} "
            f"with vector of length {v.shape[0]}"
        )
    return m @ v


def trans(m: Any) -> np.ndarray:
    """Transpose of a matrix, as a new array."""
    return as_matrix(m).T.copy()


def outer(a: Any, b: Any) -> np.ndarray:
    """Outer product ``a . b^T`` of shape len(a) x len(b)."""
    return np.outer(as_vector(a), as_vector(b))


def map_values(fn: Callable[[float], float], x: Any) -> np.ndarray:
    """Apply the scalar function ``fn`` to every entry of ``x``."""
    x = as_array(x)
    if x.size == 0:
        return x.copy()
    return np.vectorize(fn, otypes=[np.float64])(x)


def log(x: Any) -> np.ndarray:
    """Natural logarithm of every entry."""
    with np.errstate(divide='ignore', invalid='ignore'):
        return np.log(as_array(x))


def exp(x: Any) -> np.ndarray:
    """Exponential of every entry; overflow yields inf."""
    with np.errstate(over='ignore'):
        return np.exp(as_array(x))


def sqr(x: Any) -> np.ndarray:
    """Square of every entry."""
    x = as_array(x)
    return x * x


def total(x: Any) -> float:
    """Sum of all entries of a vector or matrix."""
    return float(np.sum(as_array(x)))


def copy(x: Any) -> np.ndarray:
    """Deep copy of a vector or matrix."""
    return np.array(as_array(x), copy=True)
