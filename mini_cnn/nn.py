"""
Neural network layers for mini_cnn.
Includes the Layer base class, ConvolutionalLayer, PoolingLayer, ProcessLayer,
SerializeLayer and the fully-connected Input/Hidden/Output layers.

Every layer runs a hand-derived forward and backward pass. Layers talk to each
other only through set_input/get_output and set_delta/get_delta; the caller
owns the order. Gradients land in two places: the per-call delta and the
batch accumulator (*_delta_sum) that update() consumes.
"""
import logging
from dataclasses import dataclass, replace
from enum import Enum

import numpy as np

from .functional import Activation, Loss
from .matrix import Matrix, MatrixType, Size, Vector, VectorType, random_value
from .padding import (
    PaddingMethod,
    PaddingNum,
    output_size,
    pad_array,
    padded_size,
    unpad_gradient,
)

logger = logging.getLogger(__name__)


def _pair(value):
    if isinstance(value, int):
        return (value, value)
    return tuple(value)


def _window_output_size(input_size, window_size, stride, padding, padding_method, kind):
    """Validate a sliding-window configuration and return its output size."""
    if stride < 1:
        raise ValueError(f"{kind}: stride must be >= 1, got {stride}")
    if min(input_size) < 1:
        raise ValueError(f"{kind}: input size must be positive, got {input_size}")
    if min(window_size) < 1:
        raise ValueError(f"{kind}: window size must be positive, got {window_size}")
    if min(padding) < 0:
        raise ValueError(f"{kind}: padding must be non-negative, got {padding}")
    out = output_size(input_size, window_size, stride, padding_method, *padding)
    if out.m < 1 or out.n < 1:
        raise ValueError(
            f"{kind}: input {input_size} with window {window_size}, stride {stride} "
            f"and padding {padding} gives invalid output size {out}"
        )
    return out


# ============================================================================
# Layer Configurations
# ============================================================================

@dataclass(frozen=True)
class ConvLayerConfig:
    """
    Configuration of a ConvolutionalLayer.

    Args:
        input_size: Size of every input feature map
        kernel_size: Size of every kernel
        kernel_num: Number of kernels (= number of output feature maps)
        stride: Step between kernel positions
        padding: Padding per side, int or (rows, cols)
        padding_method: Placement of the data on the padded canvas
        padding_num: Fill policy of the border
        activation: Activation applied by the ProcessLayer that follows
    """
    input_size: Size
    kernel_size: Size
    kernel_num: int
    stride: int = 1
    padding: tuple = 0
    padding_method: PaddingMethod = PaddingMethod.SURROUND
    padding_num: PaddingNum = PaddingNum.ZERO_PADDING
    activation: Activation = Activation.LINEAR

    def __post_init__(self):
        object.__setattr__(self, 'input_size', Size(*self.input_size))
        object.__setattr__(self, 'kernel_size', Size(*self.kernel_size))
        object.__setattr__(self, 'padding', _pair(self.padding))
        if self.kernel_num < 1:
            raise ValueError(f"ConvLayerConfig: kernel_num must be >= 1, got {self.kernel_num}")
        object.__setattr__(self, 'output_size', _window_output_size(
            self.input_size, self.kernel_size, self.stride,
            self.padding, self.padding_method, 'ConvLayerConfig'))


class PoolingMethod(Enum):
    MAX_POOLING = 'max'
    AVERAGE_POOLING = 'average'


@dataclass(frozen=True)
class PoolLayerConfig:
    """
    Configuration of a PoolingLayer.

    Args:
        input_size: Size of every input feature map
        pool_size: Size of the pooling window
        stride: Step between windows on both axes (defaults to the side of a
            square window; required for a non-square one)
        pooling_method: MAX_POOLING or AVERAGE_POOLING
        padding: Padding per side, int or (rows, cols)
        padding_method: Placement of the data on the padded canvas
        padding_num: Fill policy of the border
    """
    input_size: Size
    pool_size: Size
    stride: int = None
    pooling_method: PoolingMethod = PoolingMethod.MAX_POOLING
    padding: tuple = 0
    padding_method: PaddingMethod = PaddingMethod.SURROUND
    padding_num: PaddingNum = PaddingNum.ZERO_PADDING

    def __post_init__(self):
        object.__setattr__(self, 'input_size', Size(*self.input_size))
        object.__setattr__(self, 'pool_size', Size(*self.pool_size))
        object.__setattr__(self, 'padding', _pair(self.padding))
        if self.stride is None:
            # stride is shared by both axes
            if self.pool_size.m != self.pool_size.n:
                raise ValueError(
                    f"PoolLayerConfig: a non-square window {self.pool_size} needs an explicit stride"
                )
            object.__setattr__(self, 'stride', self.pool_size.m)
        object.__setattr__(self, 'output_size', _window_output_size(
            self.input_size, self.pool_size, self.stride,
            self.padding, self.padding_method, 'PoolLayerConfig'))


@dataclass(frozen=True)
class ProcessLayerConfig:
    """Input map size and the elementwise function a ProcessLayer applies."""
    input_size: Size
    activation: Activation = Activation.RELU

    def __post_init__(self):
        object.__setattr__(self, 'input_size', Size(*self.input_size))
        if min(self.input_size) < 1:
            raise ValueError(f"ProcessLayerConfig: input size must be positive, got {self.input_size}")


@dataclass(frozen=True)
class SerializeLayerConfig:
    """
    Configuration of a SerializeLayer.

    Args:
        serialize_size: Length of the flattened vector
        deserialize_size: Size of each feature map
    """
    serialize_size: int
    deserialize_size: Size

    def __post_init__(self):
        if isinstance(self.serialize_size, tuple):
            # Accept the (length, 1) column form as well
            object.__setattr__(self, 'serialize_size', int(np.prod(self.serialize_size)))
        object.__setattr__(self, 'deserialize_size', Size(*self.deserialize_size))
        map_len = self.deserialize_size.m * self.deserialize_size.n
        if map_len < 1 or self.serialize_size < 1 or self.serialize_size % map_len:
            raise ValueError(
                f"SerializeLayerConfig: length {self.serialize_size} is not a positive "
                f"multiple of the map size {self.deserialize_size}"
            )

    @property
    def map_count(self):
        return self.serialize_size // (self.deserialize_size.m * self.deserialize_size.n)


@dataclass(frozen=True)
class DenseLayerConfig:
    """
    Configuration of a fully-connected layer.

    Args:
        input_size: Length of the input vector
        output_size: Number of neurons
        activation: Activation applied to z = W·x + b
        loss: Loss used by the output layer
    """
    input_size: int
    output_size: int
    activation: Activation = Activation.SIGMOID
    loss: Loss = Loss.MSE

    def __post_init__(self):
        if self.input_size < 1 or self.output_size < 1:
            raise ValueError(
                f"DenseLayerConfig: sizes must be positive, got {self.input_size} -> {self.output_size}"
            )


# ============================================================================
# Base Layer
# ============================================================================

class Layer:
    """
    Base class for all layers.

    A layer keeps its parameters and its most recent input, output and deltas.
    It never keeps a reference to the layers around it.
    """

    def __init__(self):
        self._input = None
        self._output = None
        self._delta = None
        self._input_delta = None

    def set_input(self, x):
        raise NotImplementedError

    def forward_propagation(self):
        raise NotImplementedError

    def get_output(self):
        return self._output

    def set_delta(self, delta):
        raise NotImplementedError

    def backward_propagation(self):
        raise NotImplementedError

    def get_delta(self):
        """Gradient w.r.t. this layer's input, for the previous layer."""
        return self._input_delta

    def forward(self, x):
        """set_input + forward_propagation + get_output"""
        self.set_input(x)
        self.forward_propagation()
        return self.get_output()

    def __call__(self, x):
        return self.forward(x)

    def update(self, learning_rate):
        """Apply the accumulated gradients. Layers without parameters do nothing."""

    def zero_grad(self):
        """Reset per-call and batch gradient accumulators."""

    def merge_gradients(self, other):
        """Add another replica's batch accumulators into this layer."""

    def load_parameters(self, other):
        """Copy learnable parameters from another replica."""

    def parameters(self):
        return []


class FeatureMapLayer(Layer):
    """Layer whose input is a list of 2D feature maps."""

    def _check_maps(self, maps, size, op, count=None):
        if isinstance(maps, Matrix):
            maps = [maps]
        maps = list(maps)
        size = tuple(size)
        if count is not None and len(maps) != count:
            logger.error("%s: expected %d feature maps, got %d", op, count, len(maps))
            return [np.zeros(size) for _ in range(count)]
        checked = []
        for idx, fmap in enumerate(maps):
            data = fmap.data if isinstance(fmap, Matrix) else np.asarray(fmap, dtype=np.float64)
            if data.shape != size:
                logger.error("%s: feature map %d has shape %s, expected %s",
                             op, idx, data.shape, size)
                data = np.zeros(size)
            # Private read-only copy, later writes by the caller do not reach the layer
            data = np.array(data, dtype=np.float64)
            data.flags.writeable = False
            checked.append(data)
        return checked

    @staticmethod
    def _views(arrays):
        out = []
        for array in arrays:
            data = array.view()
            data.flags.writeable = False
            out.append(Matrix._wrap(data))
        return out


# ============================================================================
# Convolutional Layer
# ============================================================================

def correlate(x, kernel, stride, out_shape):
    """Valid cross-correlation of x with kernel at the given stride."""
    k_h, k_w = kernel.shape
    out_h, out_w = out_shape
    out = np.zeros((out_h, out_w), dtype=np.float64)
    for i in range(out_h):
        for j in range(out_w):
            h_start = i * stride
            w_start = j * stride
            out[i, j] = np.sum(x[h_start:h_start + k_h, w_start:w_start + k_w] * kernel)
    return out


def dilate(delta, stride):
    """Insert stride - 1 zeros between the entries of a delta map."""
    if stride == 1:
        return delta
    out_h, out_w = delta.shape
    dilated = np.zeros(((out_h - 1) * stride + 1, (out_w - 1) * stride + 1), dtype=np.float64)
    dilated[::stride, ::stride] = delta
    return dilated


class ConvNode:
    """
    One kernel of a ConvolutionalLayer together with its feature map and gradients.

    Args:
        kernel_size: Size of the kernel
        feature_size: Size of the produced feature map
    """

    def __init__(self, kernel_size, feature_size):
        self.kernel = Matrix(kernel_size[0], kernel_size[1], MatrixType.RANDOM)
        self.bias = random_value()
        self.feature = Matrix(feature_size[0], feature_size[1])

        self.kernel_delta = Matrix(kernel_size[0], kernel_size[1])
        self.bias_delta = 0.0

        self.kernel_delta_sum = Matrix(kernel_size[0], kernel_size[1])
        self.bias_delta_sum = 0.0

    def zero_grad(self):
        self.kernel_delta.clear()
        self.kernel_delta_sum.clear()
        self.bias_delta = 0.0
        self.bias_delta_sum = 0.0


class ConvolutionalLayer(FeatureMapLayer):
    """
    2D convolution (cross-correlation) layer with one ConvNode per kernel.

    Each kernel slides over every input map; the per-map responses are summed
    and the node bias is added. Output maps are left unactivated, a
    ProcessLayer applies the activation.

    Args:
        config: ConvLayerConfig
    """

    def __init__(self, config):
        super().__init__()
        self.config = config
        self.input_size = config.input_size
        self.kernel_size = config.kernel_size
        self.stride = config.stride
        self.padding = config.padding
        self.output_size = config.output_size
        self.nodes = [ConvNode(self.kernel_size, self.output_size) for _ in range(config.kernel_num)]
        self._padded = []

    @property
    def kernel_num(self):
        return len(self.nodes)

    def _pad(self, array):
        return pad_array(array, self.config.padding_method, self.config.padding_num, *self.padding)

    def set_input(self, x):
        maps = self._check_maps(x, self.input_size, 'ConvolutionalLayer.set_input')
        if not maps:
            logger.error("ConvolutionalLayer.set_input: no input feature maps")
            maps = [np.zeros(self.input_size)]
        self._input = maps

    def forward_propagation(self):
        if self._input is None:
            logger.error("ConvolutionalLayer.forward_propagation: no input set")
            return
        self._padded = [self._pad(x) for x in self._input]
        for node in self.nodes:
            feature = np.full(self.output_size, node.bias, dtype=np.float64)
            for x_padded in self._padded:
                feature += correlate(x_padded, node.kernel.data, self.stride, self.output_size)
            node.feature = Matrix._wrap(feature)
        self._output = self._views(node.feature.data for node in self.nodes)

    def set_delta(self, delta):
        self._delta = self._check_maps(delta, self.output_size,
                                       'ConvolutionalLayer.set_delta', count=self.kernel_num)

    def backward_propagation(self):
        if self._delta is None or not self._padded:
            logger.error("ConvolutionalLayer.backward_propagation: forward pass or delta missing")
            return
        k_h, k_w = self.kernel_size
        padded_shape = self._padded[0].shape
        grad_padded = np.zeros(padded_shape, dtype=np.float64)

        for node, delta in zip(self.nodes, self._delta):
            dilated = dilate(delta, self.stride)

            # dK[u, v] = sum_ij delta[i, j] * x_padded[i*s + u, j*s + v]
            kernel_delta = np.zeros((k_h, k_w), dtype=np.float64)
            for x_padded in self._padded:
                kernel_delta += correlate(x_padded, dilated, 1, (k_h, k_w))
            node.kernel_delta = Matrix._wrap(kernel_delta)
            node.bias_delta = float(delta.sum())
            node.kernel_delta_sum += node.kernel_delta
            node.bias_delta_sum += node.bias_delta

            # Full convolution of the dilated delta with the rotated kernel
            full = np.pad(dilated, ((k_h - 1, k_h - 1), (k_w - 1, k_w - 1)), mode='constant')
            span = (dilated.shape[0] + k_h - 1, dilated.shape[1] + k_w - 1)
            grad = correlate(full, node.kernel.rot180().data, 1, span)
            grad_padded[:span[0], :span[1]] += grad

        # The kernel is shared by every input map, so each map gets the same gradient
        grad_input = unpad_gradient(grad_padded, self.config.padding_method,
                                    self.config.padding_num, *self.padding)
        self._input_delta = self._views(grad_input.copy() for _ in self._input)

    def update(self, learning_rate):
        for node in self.nodes:
            node.kernel -= node.kernel_delta_sum * learning_rate
            node.bias -= learning_rate * node.bias_delta_sum

    def zero_grad(self):
        for node in self.nodes:
            node.zero_grad()

    def merge_gradients(self, other):
        for node, other_node in zip(self.nodes, other.nodes):
            node.kernel_delta_sum += other_node.kernel_delta_sum
            node.bias_delta_sum += other_node.bias_delta_sum

    def load_parameters(self, other):
        for node, other_node in zip(self.nodes, other.nodes):
            node.kernel = other_node.kernel.copy()
            node.bias = other_node.bias

    def parameters(self):
        return [node.kernel for node in self.nodes]

    def get_feature(self, index):
        return self.nodes[index].feature.view()

    def get_feature_all(self):
        return [node.feature.view() for node in self.nodes]

    def get_kernel(self, index):
        return self.nodes[index].kernel.view()

    def get_kernel_all(self):
        return [node.kernel.view() for node in self.nodes]

    def get_bias_all(self):
        return [node.bias for node in self.nodes]


# ============================================================================
# Pooling Layer
# ============================================================================

class PoolingLayer(FeatureMapLayer):
    """
    Downsamples each feature map with a max or average window.

    Max pooling remembers the flat position (in the padded map) of every
    window maximum so the backward pass can route the delta there.

    Args:
        config: PoolLayerConfig
    """

    def __init__(self, config):
        super().__init__()
        self.config = config
        self.input_size = config.input_size
        self.pool_size = config.pool_size
        self.stride = config.stride
        self.padding = config.padding
        self.pooling_method = config.pooling_method
        self.output_size = config.output_size
        self.padded_size = padded_size(self.input_size, config.padding_method, *self.padding)
        self._features = []
        self._max_index = []

    def set_input(self, x):
        self._input = self._check_maps(x, self.input_size, 'PoolingLayer.set_input')

    def forward_propagation(self):
        if self._input is None:
            logger.error("PoolingLayer.forward_propagation: no input set")
            return
        p_h, p_w = self.pool_size
        out_h, out_w = self.output_size
        features = []
        indices = []
        for x in self._input:
            x_padded = pad_array(x, self.config.padding_method, self.config.padding_num, *self.padding)
            out = np.zeros((out_h, out_w), dtype=np.float64)
            max_index = np.zeros((out_h, out_w), dtype=np.int64)
            for i in range(out_h):
                for j in range(out_w):
                    h_start = i * self.stride
                    w_start = j * self.stride
                    patch = x_padded[h_start:h_start + p_h, w_start:w_start + p_w]
                    if self.pooling_method is PoolingMethod.MAX_POOLING:
                        r, c = np.unravel_index(np.argmax(patch), patch.shape)
                        out[i, j] = patch[r, c]
                        max_index[i, j] = (h_start + r) * x_padded.shape[1] + (w_start + c)
                    else:
                        out[i, j] = patch.mean()
            features.append(out)
            indices.append(max_index)
        self._features = features
        self._max_index = indices if self.pooling_method is PoolingMethod.MAX_POOLING else []
        self._output = self._views(features)

    def set_delta(self, delta):
        self._delta = self._check_maps(delta, self.output_size, 'PoolingLayer.set_delta',
                                       count=len(self._input) if self._input is not None else None)

    def backward_propagation(self):
        if self._delta is None or self._input is None:
            logger.error("PoolingLayer.backward_propagation: forward pass or delta missing")
            return
        p_h, p_w = self.pool_size
        out_h, out_w = self.output_size
        grads = []
        for channel, delta in enumerate(self._delta):
            grad_padded = np.zeros(self.padded_size, dtype=np.float64)
            if self.pooling_method is PoolingMethod.MAX_POOLING:
                flat = grad_padded.reshape(-1)
                np.add.at(flat, self._max_index[channel].reshape(-1), delta.reshape(-1))
            else:
                share = 1.0 / (p_h * p_w)
                for i in range(out_h):
                    for j in range(out_w):
                        h_start = i * self.stride
                        w_start = j * self.stride
                        grad_padded[h_start:h_start + p_h, w_start:w_start + p_w] += delta[i, j] * share
            grads.append(unpad_gradient(grad_padded, self.config.padding_method,
                                        self.config.padding_num, *self.padding))
        self._input_delta = self._views(grads)

    def get_feature_all(self):
        return self._views(self._features)

    def get_max_index_all(self):
        return [index.copy() for index in self._max_index]


# ============================================================================
# Process Layer
# ============================================================================

class ProcessLayer(FeatureMapLayer):
    """
    Applies an elementwise function (ReLU, tanh, ...) to every feature map.
    The backward pass multiplies the incoming delta by the function's
    derivative at the stored input. No learnable parameters.

    Args:
        config: ProcessLayerConfig
    """

    def __init__(self, config):
        super().__init__()
        self.config = config
        self.input_size = config.input_size
        self.activation = config.activation

    def set_input(self, x):
        self._input = self._check_maps(x, self.input_size, 'ProcessLayer.set_input')

    def forward_propagation(self):
        if self._input is None:
            logger.error("ProcessLayer.forward_propagation: no input set")
            return
        self._output = self._views(self.activation.function(x) for x in self._input)

    def process(self, maps):
        return self.forward(maps)

    def set_delta(self, delta):
        self._delta = self._check_maps(delta, self.input_size, 'ProcessLayer.set_delta',
                                       count=len(self._input) if self._input is not None else None)

    def backward_propagation(self):
        if self._delta is None or self._input is None:
            logger.error("ProcessLayer.backward_propagation: forward pass or delta missing")
            return
        self._input_delta = self._views(
            self.activation.derivative(x) * delta for x, delta in zip(self._input, self._delta)
        )

    def deprocess(self, delta):
        self.set_delta(delta)
        self.backward_propagation()
        return self.get_delta()

    def get_feature_all(self):
        return list(self._output or [])


# ============================================================================
# Serialize Layer
# ============================================================================

class SerializeLayer(FeatureMapLayer):
    """
    Flattens feature maps into one column vector (forward) and splits a vector
    back into feature maps (backward). Maps are concatenated in list order,
    each in row-major order.

    Args:
        config: SerializeLayerConfig
    """

    def __init__(self, config):
        super().__init__()
        self.config = config
        self.serialize_size = config.serialize_size
        self.deserialize_size = config.deserialize_size

    def serialize(self, maps):
        arrays = self._check_maps(maps, self.deserialize_size, 'SerializeLayer.serialize')
        total = sum(a.size for a in arrays)
        if total != self.serialize_size:
            logger.error("SerializeLayer.serialize: total length %d, expected %d",
                         total, self.serialize_size)
            return Vector(self.serialize_size)
        return Vector._wrap(np.concatenate([a.reshape(-1) for a in arrays]))

    def deserialize(self, vector):
        m, n = self.deserialize_size
        data = vector.data if isinstance(vector, Vector) else np.asarray(vector, dtype=np.float64).reshape(-1)
        if data.size != self.serialize_size:
            logger.error("SerializeLayer.deserialize: vector length %d, expected %d",
                         data.size, self.serialize_size)
            return [Matrix(m, n) for _ in range(self.config.map_count)]
        return [Matrix.from_array(chunk.reshape(m, n))
                for chunk in np.split(data, self.config.map_count)]

    def set_input(self, x):
        self._input = x

    def forward_propagation(self):
        self._output = self.serialize(self._input if self._input is not None else []).view()

    def set_delta(self, delta):
        self._delta = delta

    def backward_propagation(self):
        delta = self._delta if self._delta is not None else Vector()
        self._input_delta = [m.view() for m in self.deserialize(delta)]


# ============================================================================
# Fully-Connected Layers
# ============================================================================

def _own_vector(value):
    """Flat copy of a Vector, Matrix or array-like that the layer can keep."""
    if isinstance(value, (Vector, Matrix)):
        value = value.data
    return Vector.from_array(value)


class FullyConnectedLayer(Layer):
    """
    Dense layer: z = W·x + b, a = activation(z).

    Args:
        config: DenseLayerConfig
    """

    def __init__(self, config):
        super().__init__()
        self.config = config
        self.input_size = config.input_size
        self.output_size = config.output_size
        self.activation = config.activation
        self.loss_function = config.loss

        self.weight = Matrix(self.output_size, self.input_size, MatrixType.RANDOM)
        self.bias = Vector(self.output_size, VectorType.RANDOM)

        self.weight_delta = Matrix(self.output_size, self.input_size)
        self.bias_delta = Vector(self.output_size)
        self.weight_delta_sum = Matrix(self.output_size, self.input_size)
        self.bias_delta_sum = Vector(self.output_size)

        self._z = Vector(self.output_size)
        self._local_delta = Vector(self.output_size)

    def set_activation_function(self, activation):
        self.activation = activation
        self.config = replace(self.config, activation=activation)

    def set_loss_function(self, loss):
        self.loss_function = loss
        self.config = replace(self.config, loss=loss)

    def set_input(self, x):
        x = _own_vector(x)
        if x.size != self.input_size:
            logger.error("%s.set_input: input length %d, expected %d",
                         type(self).__name__, x.size, self.input_size)
            x = Vector(self.input_size)
        self._input = x

    def forward_propagation(self):
        if self._input is None:
            logger.error("%s.forward_propagation: no input set", type(self).__name__)
            return
        self._z = self.weight @ self._input + self.bias
        self._output = self._z.apply(self.activation.function)

    def get_output(self):
        return self._output.view() if self._output is not None else None

    def get_z(self):
        return self._z.view()

    def set_delta(self, delta):
        delta = _own_vector(delta)
        if delta.size != self.output_size:
            logger.error("%s.set_delta: delta length %d, expected %d",
                         type(self).__name__, delta.size, self.output_size)
            delta = Vector(self.output_size)
        self._delta = delta

    def _output_error(self):
        """dL/da for this layer's output."""
        if self._delta is None:
            logger.error("%s.backward_propagation: no delta set", type(self).__name__)
            return Vector(self.output_size)
        return self._delta

    def backward_propagation(self):
        if self._input is None or self._output is None:
            logger.error("%s.backward_propagation: forward pass missing", type(self).__name__)
            return
        error = self._output_error()
        self._local_delta = error * self._z.apply(self.activation.derivative)

        self.weight_delta = Vector.outer_product(self._local_delta, self._input)
        self.bias_delta = self._local_delta.copy()
        self.weight_delta_sum += self.weight_delta
        self.bias_delta_sum += self.bias_delta

        self._input_delta = (self.weight.transpose() @ self._local_delta).view()

    def get_local_delta(self):
        return self._local_delta.view()

    def update(self, learning_rate):
        self.weight -= self.weight_delta_sum * learning_rate
        self.bias -= self.bias_delta_sum * learning_rate

    def zero_grad(self):
        self.weight_delta.clear()
        self.bias_delta.clear()
        self.weight_delta_sum.clear()
        self.bias_delta_sum.clear()

    def merge_gradients(self, other):
        self.weight_delta_sum += other.weight_delta_sum
        self.bias_delta_sum += other.bias_delta_sum

    def load_parameters(self, other):
        self.weight = other.weight.copy()
        self.bias = other.bias.copy()

    def parameters(self):
        return [self.weight, self.bias]


class InputLayer(FullyConnectedLayer):
    """First dense layer, fed by a SerializeLayer or raw features."""


class HiddenLayer(FullyConnectedLayer):
    """Dense layer between the input and output layers."""


class OutputLayer(FullyConnectedLayer):
    """
    Last dense layer. Its error comes from the loss against a target instead
    of from a following layer.
    """

    def __init__(self, config):
        super().__init__(config)
        self._target = None

    def set_target(self, target):
        target = _own_vector(target)
        if target.size != self.output_size:
            logger.error("OutputLayer.set_target: target length %d, expected %d",
                         target.size, self.output_size)
            target = Vector(self.output_size)
        self._target = target

    def _output_error(self):
        if self._target is None:
            logger.error("OutputLayer.backward_propagation: no target set")
            return Vector(self.output_size)
        return Vector._wrap(self.loss_function.gradient(self._output.data, self._target.data))

    def loss(self, target=None):
        """Scalar loss of the current output against target (or the stored target)."""
        if target is not None:
            self.set_target(target)
        if self._output is None or self._target is None:
            logger.error("OutputLayer.loss: forward pass or target missing")
            return 0.0
        return self.loss_function.function(self._output.data, self._target.data)
