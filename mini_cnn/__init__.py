"""
mini_cnn: A minimal convolutional neural network library.

This library implements dense matrix/vector algebra, convolution, pooling,
process, serialize and fully-connected layers with hand-derived backward
passes, and a mini-batch trainer, from scratch using only NumPy.
"""

from .matrix import Matrix, Vector, Size, MatrixType, VectorType
from .functional import Activation, Loss
from .padding import PaddingMethod, PaddingNum, pad
from . import functional as F
from . import nn
from . import optim
from .data import ImageSet, Sample
from .trainer import Pipeline, Trainer
from .config import TrainConfig, configure_logging

__version__ = '0.1.0'
__all__ = [
    'Matrix', 'Vector', 'Size', 'MatrixType', 'VectorType',
    'Activation', 'Loss', 'PaddingMethod', 'PaddingNum', 'pad',
    'F', 'nn', 'optim', 'ImageSet', 'Sample', 'Pipeline', 'Trainer',
    'TrainConfig', 'configure_logging',
]
