"""
test_fully_connected.py
~~~~~~~~~~~~~~~~~~~~~~~

Unit tests for the dense Input/Hidden/Output layers and the SGD optimizer.
"""

import logging

import numpy as np
import pytest

from mini_cnn import nn, optim
from mini_cnn.functional import Activation, Loss
from mini_cnn.matrix import Matrix, Size, Vector


@pytest.fixture
def linear_output():
    """One linear neuron with unit weights and zero bias."""
    layer = nn.OutputLayer(nn.DenseLayerConfig(2, 1, Activation.LINEAR, Loss.MSE))
    layer.weight = Matrix([[1, 1]])
    layer.bias = Vector([0])
    return layer


@pytest.mark.unit
class TestFullyConnectedLayer:
    """Forward values, deltas and parameter updates."""

    def test_parameter_shapes(self):
        layer = nn.HiddenLayer(nn.DenseLayerConfig(6, 4))
        assert layer.weight.size == Size(4, 6)
        assert layer.bias.size == 4
        assert layer.activation is Activation.SIGMOID

    def test_forward(self, linear_output):
        out = linear_output.forward(Vector([2, 3]))
        assert out == Vector([5])
        assert linear_output.get_z() == Vector([5])

    def test_output_layer_backward(self, linear_output):
        linear_output.forward(Vector([2, 3]))
        linear_output.set_target(Vector([0]))
        assert linear_output.loss() == pytest.approx(12.5)
        linear_output.backward_propagation()
        assert linear_output.get_local_delta() == Vector([5])
        assert linear_output.weight_delta == Matrix([[10, 15]])
        assert linear_output.get_delta() == Vector([5, 5])

    def test_later_writes_to_input_are_not_seen(self, linear_output):
        x = Vector([2, 3])
        linear_output.forward(x)
        x[0] = 100
        target = Vector([0])
        linear_output.set_target(target)
        target[0] = 7
        linear_output.backward_propagation()
        assert linear_output.weight_delta == Matrix([[10, 15]])

    def test_later_writes_to_delta_are_not_seen(self):
        layer = nn.HiddenLayer(nn.DenseLayerConfig(2, 1, Activation.LINEAR))
        layer.weight = Matrix([[1, 1]])
        layer.bias = Vector([0])
        layer.forward(Vector([2, 3]))
        delta = Vector([1])
        layer.set_delta(delta)
        delta[0] = 50
        layer.backward_propagation()
        assert layer.weight_delta == Matrix([[2, 3]])

    def test_update_applies_accumulated_gradient(self, linear_output):
        linear_output.forward(Vector([2, 3]))
        linear_output.set_target(Vector([0]))
        linear_output.backward_propagation()
        linear_output.update(0.1)
        assert linear_output.weight.allclose(Matrix([[0, -0.5]]))
        assert linear_output.bias.allclose(Vector([-0.5]))

    def test_hidden_layer_uses_incoming_delta(self):
        layer = nn.HiddenLayer(nn.DenseLayerConfig(2, 2, Activation.RELU))
        layer.weight = Matrix([[1, 0], [0, 1]])
        layer.bias = Vector([0, 0])
        layer.forward(Vector([1, -1]))
        layer.set_delta(Vector([3, 3]))
        layer.backward_propagation()
        # The second unit is inactive, its delta is blocked
        assert layer.get_local_delta() == Vector([3, 0])
        assert layer.get_delta() == Vector([3, 0])

    def test_gradients_match_finite_difference(self):
        hidden = nn.HiddenLayer(nn.DenseLayerConfig(3, 4, Activation.TANH))
        output = nn.OutputLayer(nn.DenseLayerConfig(4, 2, Activation.SIGMOID, Loss.CROSS_ENTROPY))
        x = Vector([0.5, -0.2, 0.9])
        target = Vector([1, 0])

        def loss():
            output.forward(hidden.forward(x))
            return output.loss(target)

        loss()
        output.backward_propagation()
        hidden.set_delta(output.get_delta())
        hidden.backward_propagation()
        analytic = hidden.weight_delta.data.copy()

        eps = 1e-6
        for i in range(4):
            for j in range(3):
                hidden.weight.data[i, j] += eps
                plus = loss()
                hidden.weight.data[i, j] -= 2 * eps
                minus = loss()
                hidden.weight.data[i, j] += eps
                assert analytic[i, j] == pytest.approx((plus - minus) / (2 * eps), abs=1e-5)

    def test_input_length_mismatch_logs(self, caplog):
        layer = nn.InputLayer(nn.DenseLayerConfig(3, 2))
        with caplog.at_level(logging.ERROR, logger='mini_cnn.nn'):
            layer.forward(Vector([1, 2]))
        assert "InputLayer.set_input: input length 2, expected 3" in caplog.text
        assert layer.get_z().allclose(layer.bias)

    def test_builder_setters(self):
        layer = nn.OutputLayer(nn.DenseLayerConfig(2, 2))
        layer.set_activation_function(Activation.TANH)
        layer.set_loss_function(Loss.CROSS_ENTROPY)
        assert layer.config.activation is Activation.TANH
        assert layer.config.loss is Loss.CROSS_ENTROPY

    def test_invalid_config_raises(self):
        with pytest.raises(ValueError):
            nn.DenseLayerConfig(0, 3)

    def test_merge_and_load(self):
        first = nn.HiddenLayer(nn.DenseLayerConfig(2, 2))
        second = nn.HiddenLayer(nn.DenseLayerConfig(2, 2))
        second.weight_delta_sum = Matrix([[1, 1], [1, 1]])
        first.merge_gradients(second)
        assert first.weight_delta_sum == Matrix([[1, 1], [1, 1]])
        first.load_parameters(second)
        assert first.weight == second.weight
        assert first.weight is not second.weight


@pytest.mark.unit
class TestSGD:
    """Batch-mean scaling of the learning rate."""

    def test_step_divides_by_batch_size(self, linear_output):
        linear_output.forward(Vector([2, 3]))
        linear_output.set_target(Vector([0]))
        linear_output.backward_propagation()
        linear_output.backward_propagation()

        optimizer = optim.SGD([linear_output], learning_rate=0.1, batch_size=2)
        optimizer.step()
        assert linear_output.weight.allclose(Matrix([[0, -0.5]]))

        optimizer.zero_grad()
        assert linear_output.weight_delta_sum == Matrix(1, 2)

    def test_lr_alias(self):
        assert optim.SGD([], lr=0.3).learning_rate == 0.3

    def test_invalid_batch_size(self):
        with pytest.raises(ValueError):
            optim.SGD([], batch_size=0)
