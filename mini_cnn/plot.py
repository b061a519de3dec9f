"""
Render matrices, feature maps and kernels with matplotlib.

Values are min-max normalized and written into the color channels picked by
a PlotMode. Layers are only touched through get_feature_all()/get_kernel_all().
"""
from enum import Enum

import matplotlib.pyplot as plt
import numpy as np

from .matrix import Matrix


class PlotMode(Enum):
    R = (0,)
    G = (1,)
    B = (2,)
    RG = (0, 1)
    GB = (1, 2)
    RB = (0, 2)
    RGB = (0, 1, 2)


def normalize(array):
    """Scale to [0, 1]. A constant array maps to zeros."""
    array = np.asarray(array, dtype=np.float64)
    low, high = array.min(), array.max()
    if high - low <= 0:
        return np.zeros_like(array)
    return (array - low) / (high - low)


def matrix_to_image(matrix, mode=PlotMode.RB, value_range=None):
    """
    HxWx3 float image of a matrix.

    Args:
        matrix: Matrix or 2D array
        mode: Channels that carry the value, the others stay 0
        value_range: (low, high) shared across several maps; None normalizes
            this matrix on its own
    """
    data = matrix.data if isinstance(matrix, Matrix) else np.asarray(matrix, dtype=np.float64)
    if value_range is None:
        scaled = normalize(data)
    else:
        low, high = value_range
        scaled = np.zeros_like(data) if high <= low else np.clip((data - low) / (high - low), 0.0, 1.0)
    image = np.zeros(data.shape + (3,), dtype=np.float64)
    for channel in mode.value:
        image[..., channel] = scaled
    return image


def plot_matrix(matrix, name='Figure1', mode=PlotMode.RB, ax=None):
    """Draw one matrix; returns the Figure."""
    if ax is None:
        fig, ax = plt.subplots()
    else:
        fig = ax.figure
    ax.imshow(matrix_to_image(matrix, mode), interpolation='nearest')
    ax.set_title(name)
    ax.axis('off')
    return fig


def plot_matrix_list(matrices, name='Figure1', mode=PlotMode.RB, normalize_together=False):
    """
    Draw a row of matrices in one figure.

    Args:
        matrices: Matrices to draw, one axes each
        name: Figure title
        mode: PlotMode channel selector
        normalize_together: Share one value range across all matrices
    """
    matrices = list(matrices)
    if not matrices:
        raise ValueError("plot_matrix_list needs at least one matrix")
    value_range = None
    if normalize_together:
        values = np.concatenate([np.asarray(m.data if isinstance(m, Matrix) else m).reshape(-1)
                                 for m in matrices])
        value_range = (values.min(), values.max())

    fig, axes = plt.subplots(1, len(matrices), figsize=(2 * len(matrices), 2), squeeze=False)
    for index, (ax, matrix) in enumerate(zip(axes[0], matrices)):
        ax.imshow(matrix_to_image(matrix, mode, value_range), interpolation='nearest')
        ax.set_title(str(index))
        ax.axis('off')
    fig.suptitle(name)
    return fig


def plot_layer(layer, what='feature', name=None, mode=PlotMode.RB):
    """Draw a layer's feature maps or kernels."""
    if what == 'feature':
        matrices = layer.get_feature_all()
    elif what == 'kernel':
        matrices = layer.get_kernel_all()
    else:
        raise ValueError(f"what must be 'feature' or 'kernel', got {what!r}")
    return plot_matrix_list(matrices, name or f"{type(layer).__name__} {what}s", mode)
