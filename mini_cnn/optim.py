"""
Optimizers for mini_cnn.

Layers accumulate gradients into their *_delta_sum buffers during backward
propagation; an optimizer turns those sums into a parameter update.
"""


class Optimizer:
    """Base class for all optimizers"""

    def __init__(self, layers):
        self.layers = list(layers)

    def step(self):
        """Update parameters - to be implemented by subclasses"""
        raise NotImplementedError

    def zero_grad(self):
        """Reset the gradient accumulators of every layer"""
        for layer in self.layers:
            layer.zero_grad()


class SGD(Optimizer):
    """
    Mini-batch stochastic gradient descent.

    Args:
        layers: Layers to optimize
        learning_rate (or lr): Learning rate (step size)
        batch_size: Number of samples summed into the accumulators per step;
            the sum is divided by it so the step follows the batch mean
    """

    def __init__(self, layers, learning_rate=0.01, batch_size=1, lr=None):
        super().__init__(layers)
        self.learning_rate = lr if lr is not None else learning_rate
        if batch_size < 1:
            raise ValueError(f"batch_size must be >= 1, got {batch_size}")
        self.batch_size = batch_size

    def step(self):
        """Apply accumulated gradients to every layer"""
        scale = self.learning_rate / self.batch_size
        for layer in self.layers:
            layer.update(scale)
