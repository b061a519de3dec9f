"""
Functional operations for mini_cnn: activations, losses and their derivatives.

Every function works elementwise on numpy arrays. Activation derivatives take
the pre-activation input z, not the activated value.
"""
from enum import Enum

import numpy as np

LEAKY_RELU_SLOPE = 0.01
ELU_ALPHA = 1.0
CLIP_EPS = 1e-8


# ============================================================================
# Activation Functions
# ============================================================================

def linear(x):
    """Identity activation"""
    return np.asarray(x, dtype=np.float64)


def linear_derivative(x):
    return np.ones_like(x, dtype=np.float64)


def sigmoid(x):
    """Sigmoid activation: 1 / (1 + exp(-x))"""
    x = np.asarray(x, dtype=np.float64)
    # For numerical stability
    z = np.exp(-np.abs(x))
    return np.where(x >= 0, 1 / (1 + z), z / (1 + z))


def sigmoid_derivative(x):
    s = sigmoid(x)
    return s * (1 - s)


def relu(x):
    """ReLU activation: max(0, x)"""
    return np.maximum(0.0, np.asarray(x, dtype=np.float64))


def relu_derivative(x):
    # Subgradient 0 at x == 0
    return (np.asarray(x) > 0).astype(np.float64)


def leaky_relu(x):
    x = np.asarray(x, dtype=np.float64)
    return np.where(x > 0, x, LEAKY_RELU_SLOPE * x)


def leaky_relu_derivative(x):
    return np.where(np.asarray(x) > 0, 1.0, LEAKY_RELU_SLOPE)


def elu(x):
    x = np.asarray(x, dtype=np.float64)
    return np.where(x > 0, x, ELU_ALPHA * np.expm1(np.minimum(x, 0.0)))


def elu_derivative(x):
    x = np.asarray(x, dtype=np.float64)
    return np.where(x > 0, 1.0, ELU_ALPHA * np.exp(np.minimum(x, 0.0)))


def sinh(x):
    return np.sinh(np.asarray(x, dtype=np.float64))


def sinh_derivative(x):
    return np.cosh(np.asarray(x, dtype=np.float64))


def cosh(x):
    return np.cosh(np.asarray(x, dtype=np.float64))


def cosh_derivative(x):
    return np.sinh(np.asarray(x, dtype=np.float64))


def tanh(x):
    """Hyperbolic tangent activation"""
    return np.tanh(np.asarray(x, dtype=np.float64))


def tanh_derivative(x):
    return 1.0 - np.tanh(np.asarray(x, dtype=np.float64)) ** 2


def softplus(x):
    """log(1 + exp(x)), computed without overflow"""
    x = np.asarray(x, dtype=np.float64)
    return np.logaddexp(0.0, x)


def softplus_derivative(x):
    return sigmoid(x)


class Activation(Enum):
    """
    Closed set of activation kinds.
    Each member resolves to a (function, derivative) pair.
    """
    LINEAR = 'linear'
    SIGMOID = 'sigmoid'
    RELU = 'relu'
    LEAKY_RELU = 'leaky_relu'
    ELU = 'elu'
    SINH = 'sinh'
    COSH = 'cosh'
    TANH = 'tanh'
    SOFTPLUS = 'softplus'

    def function(self, x):
        return _ACTIVATIONS[self][0](x)

    def derivative(self, x):
        return _ACTIVATIONS[self][1](x)


_ACTIVATIONS = {
    Activation.LINEAR: (linear, linear_derivative),
    Activation.SIGMOID: (sigmoid, sigmoid_derivative),
    Activation.RELU: (relu, relu_derivative),
    Activation.LEAKY_RELU: (leaky_relu, leaky_relu_derivative),
    Activation.ELU: (elu, elu_derivative),
    Activation.SINH: (sinh, sinh_derivative),
    Activation.COSH: (cosh, cosh_derivative),
    Activation.TANH: (tanh, tanh_derivative),
    Activation.SOFTPLUS: (softplus, softplus_derivative),
}


# ============================================================================
# Loss Functions
# ============================================================================

def mse_loss(y_pred, y_true):
    """Squared error: 0.5 * sum((a - t)^2)"""
    diff = np.asarray(y_pred, dtype=np.float64) - np.asarray(y_true, dtype=np.float64)
    return float(0.5 * np.sum(diff * diff))


def mse_gradient(y_pred, y_true):
    return np.asarray(y_pred, dtype=np.float64) - np.asarray(y_true, dtype=np.float64)


def binary_cross_entropy(y_pred, y_true):
    """Binary cross-entropy summed over outputs"""
    # Clamp predictions for numerical stability
    p = np.clip(np.asarray(y_pred, dtype=np.float64), CLIP_EPS, 1 - CLIP_EPS)
    t = np.asarray(y_true, dtype=np.float64)
    return float(-np.sum(t * np.log(p) + (1 - t) * np.log(1 - p)))


def binary_cross_entropy_gradient(y_pred, y_true):
    p = np.clip(np.asarray(y_pred, dtype=np.float64), CLIP_EPS, 1 - CLIP_EPS)
    t = np.asarray(y_true, dtype=np.float64)
    return (p - t) / (p * (1 - p))


class Loss(Enum):
    """Closed set of loss kinds, each a (value, gradient w.r.t. prediction) pair."""
    MSE = 'mse'
    CROSS_ENTROPY = 'cross_entropy'

    def function(self, y_pred, y_true):
        return _LOSSES[self][0](y_pred, y_true)

    def gradient(self, y_pred, y_true):
        return _LOSSES[self][1](y_pred, y_true)


_LOSSES = {
    Loss.MSE: (mse_loss, mse_gradient),
    Loss.CROSS_ENTROPY: (binary_cross_entropy, binary_cross_entropy_gradient),
}


# ============================================================================
# Utility Functions
# ============================================================================

def _name_key(name):
    """'LeakyReLU', 'leaky-relu' and 'leaky_relu' all map to 'leakyrelu'."""
    return str(name).strip().lower().replace('-', '').replace('_', '')


def get_activation(name):
    """Resolve an Activation from a member or its name ('relu', 'ReLU', ...)."""
    if isinstance(name, Activation):
        return name
    key = _name_key(name)
    for member in Activation:
        if _name_key(member.value) == key:
            return member
    raise ValueError(f"Unknown activation '{name}'. "
                     f"Choose from {[m.value for m in Activation]}")


def get_loss(name):
    """Resolve a Loss from a member or its name."""
    if isinstance(name, Loss):
        return name
    key = _name_key(name)
    for member in Loss:
        if _name_key(member.value) == key:
            return member
    raise ValueError(f"Unknown loss '{name}'. Choose from {[m.value for m in Loss]}")
