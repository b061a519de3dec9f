"""
test_plot.py
~~~~~~~~~~~~

Unit tests for matrix rendering. Figures use the Agg backend set in conftest.
"""

import numpy as np
import pytest

from mini_cnn import nn
from mini_cnn.matrix import Matrix, MatrixType
from mini_cnn.plot import PlotMode, matrix_to_image, normalize, plot_layer, plot_matrix, plot_matrix_list


@pytest.mark.unit
class TestMatrixToImage:
    """Normalization and channel selection."""

    def test_normalize(self):
        assert normalize(np.array([2.0, 4.0, 6.0])).tolist() == [0.0, 0.5, 1.0]
        assert normalize(np.ones(3)).tolist() == [0.0, 0.0, 0.0]

    def test_channels(self):
        image = matrix_to_image(Matrix([[0, 1]]), PlotMode.G)
        assert image.shape == (1, 2, 3)
        assert image[0, 1].tolist() == [0.0, 1.0, 0.0]
        image = matrix_to_image(Matrix([[0, 1]]), PlotMode.RGB)
        assert image[0, 1].tolist() == [1.0, 1.0, 1.0]

    def test_shared_value_range(self):
        image = matrix_to_image(Matrix([[1, 2]]), PlotMode.R, value_range=(0, 4))
        assert image[0, :, 0].tolist() == [0.25, 0.5]


@pytest.mark.unit
class TestPlotting:
    """Figure construction."""

    def test_plot_matrix(self, close_figures):
        fig = plot_matrix(Matrix(3, 3, MatrixType.RANDOM), name='kernel')
        assert fig.axes[0].get_title() == 'kernel'

    def test_plot_matrix_list(self, close_figures):
        fig = plot_matrix_list([Matrix(2, 2, MatrixType.RANDOM) for _ in range(3)],
                               normalize_together=True)
        assert len(fig.axes) == 3

    def test_empty_list_raises(self):
        with pytest.raises(ValueError):
            plot_matrix_list([])

    def test_plot_layer(self, close_figures):
        layer = nn.ConvolutionalLayer(nn.ConvLayerConfig((4, 4), (3, 3), 2))
        layer.forward([Matrix(4, 4, MatrixType.RANDOM)])
        assert len(plot_layer(layer, 'kernel').axes) == 2
        assert len(plot_layer(layer, 'feature').axes) == 2
        with pytest.raises(ValueError):
            plot_layer(layer, 'bias')
