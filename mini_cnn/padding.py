"""
Border padding for feature maps, shared by convolution and pooling layers.
"""
from enum import Enum

import numpy as np

from .matrix import Matrix, Size


class PaddingMethod(Enum):
    """Where the original data sits inside the padded canvas."""
    SURROUND = 'surround'
    LEFT_UP = 'left_up'
    LEFT_DOWN = 'left_down'
    RIGHT_UP = 'right_up'
    RIGHT_DOWN = 'right_down'


class PaddingNum(Enum):
    """Value written into the padded border."""
    ZERO_PADDING = 'zero'
    REPLICATE_PADDING = 'replicate'


def pad_width(method, pad_rows, pad_cols):
    """((top, bottom), (left, right)) for a placement."""
    if pad_rows < 0 or pad_cols < 0:
        raise ValueError(f"Padding must be non-negative, got ({pad_rows}, {pad_cols})")
    if method is PaddingMethod.SURROUND:
        return (pad_rows, pad_rows), (pad_cols, pad_cols)
    if method is PaddingMethod.LEFT_UP:
        return (0, pad_rows), (0, pad_cols)
    if method is PaddingMethod.LEFT_DOWN:
        return (pad_rows, 0), (0, pad_cols)
    if method is PaddingMethod.RIGHT_UP:
        return (0, pad_rows), (pad_cols, 0)
    if method is PaddingMethod.RIGHT_DOWN:
        return (pad_rows, 0), (pad_cols, 0)
    raise ValueError(f"Unknown padding method {method}")


def pad_array(array, method, fill, pad_rows, pad_cols):
    """pad() on a raw 2D numpy array."""
    width = pad_width(method, pad_rows, pad_cols)
    if pad_rows == 0 and pad_cols == 0:
        return np.array(array, dtype=np.float64)
    if fill is PaddingNum.ZERO_PADDING:
        return np.pad(array, width, mode='constant', constant_values=0.0)
    if fill is PaddingNum.REPLICATE_PADDING:
        if array.size == 0:
            return np.pad(array, width, mode='constant', constant_values=0.0)
        return np.pad(array, width, mode='edge')
    raise ValueError(f"Unknown padding fill {fill}")


def unpad_array(array, method, pad_rows, pad_cols):
    """Crop a padded 2D array back to the original region."""
    (top, bottom), (left, right) = pad_width(method, pad_rows, pad_cols)
    rows, cols = array.shape
    return array[top:rows - bottom, left:cols - right]


def unpad_gradient(array, method, fill, pad_rows, pad_cols):
    """
    Gradient w.r.t. the unpadded input, given the gradient w.r.t. the padded one.
    Zero fill drops the border. Replicate fill folds each border cell back
    onto the edge cell it was copied from.
    """
    (top, bottom), (left, right) = pad_width(method, pad_rows, pad_cols)
    grad = np.array(array, dtype=np.float64)
    rows, cols = grad.shape
    if fill is PaddingNum.REPLICATE_PADDING and rows > top + bottom and cols > left + right:
        if top:
            grad[top] += grad[:top].sum(axis=0)
        if bottom:
            grad[rows - bottom - 1] += grad[rows - bottom:].sum(axis=0)
        if left:
            grad[:, left] += grad[:, :left].sum(axis=1)
        if right:
            grad[:, cols - right - 1] += grad[:, cols - right:].sum(axis=1)
    return grad[top:rows - bottom, left:cols - right]


def pad(matrix, method=PaddingMethod.SURROUND, fill=PaddingNum.ZERO_PADDING,
        pad_rows=1, pad_cols=1):
    """
    Pad a matrix on a larger canvas.

    Args:
        matrix: Matrix to pad
        method: PaddingMethod anchoring the data (SURROUND grows every side,
            corner methods grow the two opposite sides only)
        fill: PaddingNum selecting zero or border-replicate filling
        pad_rows: Rows added per padded side
        pad_cols: Columns added per padded side

    Returns:
        New Matrix, the input is left untouched
    """
    return Matrix.from_array(pad_array(matrix.data, method, fill, pad_rows, pad_cols))


def unpad(matrix, method, pad_rows, pad_cols):
    return Matrix.from_array(unpad_array(matrix.data, method, pad_rows, pad_cols))


def padded_size(size, method, pad_rows, pad_cols):
    (top, bottom), (left, right) = pad_width(method, pad_rows, pad_cols)
    return Size(size[0] + top + bottom, size[1] + left + right)


def output_size(input_size, window_size, stride, method, pad_rows, pad_cols):
    """
    Spatial size produced by sliding a window over a padded input:
    floor((padded - window) / stride) + 1 on each axis.
    Non-positive results are returned as is; callers reject them.
    """
    padded = padded_size(input_size, method, pad_rows, pad_cols)
    return Size((padded.m - window_size[0]) // stride + 1,
                (padded.n - window_size[1]) // stride + 1)
