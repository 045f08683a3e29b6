"""
activations.py
~~~~~~~~~~~~~~

Activation functions and their closed-form derivatives.

Every derivative takes the node's pre-activation sum, the same value that
was passed to the activation function itself. The backward pass calls
``derivative(node.sum)`` uniformly for every activation.
"""

from enum import Enum
from typing import Callable, Dict

import numpy as np


LEAKY_RELU_ALPHA = 0.01


def unit(x: float) -> float:
    return float(x)


def unit_derivative(x: float) -> float:
    return 1.0


def sigmoid(x: float) -> float:
    with np.errstate(over='ignore'):
        return float(1.0 / (1.0 + np.exp(-x)))


def sigmoid_derivative(x: float) -> float:
    s = sigmoid(x)
    return s * (1.0 - s)


def softplus(x: float) -> float:
    """ln(1 + e^x), evaluated without overflow for large x."""
    return float(np.logaddexp(0.0, x))


def softplus_derivative(x: float) -> float:
    return sigmoid(x)


def tanh(x: float) -> float:
    return float(np.tanh(x))


def tanh_derivative(x: float) -> float:
    t = tanh(x)
    return 1.0 - t * t


def relu(x: float) -> float:
    return 0.0 if x < 0 else float(x)


def relu_derivative(x: float) -> float:
    return 0.0 if x < 0 else 1.0


def leaky_relu(x: float, alpha: float = LEAKY_RELU_ALPHA) -> float:
    return float(x) if x > 0 else alpha * x


def leaky_relu_derivative(x: float, alpha: float = LEAKY_RELU_ALPHA) -> float:
    return 1.0 if x > 0 else alpha


class Activation(Enum):
    """
    The closed set of activation functions a layer can use.

    Each member is callable and carries its own derivative:

        >>> Activation.RELU(-2.0)
        0.0
        >>> Activation.RELU.derivative(3.0)
        1.0
    """

    UNIT = 'unit'
    SIGMOID = 'sigmoid'
    SOFTPLUS = 'softplus'
    TANH = 'tanh'
    RELU = 'relu'
    LEAKY_RELU = 'leaky_relu'

    def __call__(self, x: float) -> float:
        return _FUNCTIONS[self](x)

    def derivative(self, x: float) -> float:
        """Derivative of the activation evaluated at the pre-activation sum ``x``."""
        return _DERIVATIVES[self](x)

    @classmethod
    def from_name(cls, name: str) -> 'Activation':
        """
        Look up an activation by its name, case-insensitively.

        Args:
            name: Member value or name, e.g. ``'relu'`` or ``'LEAKY_RELU'``

        Returns:
            The matching Activation

        Raises:
            ValueError: If no activation has that name
        """
        if isinstance(name, cls):
            return name
        if not isinstance(name, str):
            raise ValueError(f"Activation name must be a string, got {name!r}")
        try:
            return cls(name.lower())
        except ValueError:
            valid = ', '.join(member.value for member in cls)
            raise ValueError(
                f"Unknown activation '{name}'. Valid activations: {valid}"
            ) from None


_FUNCTIONS: Dict[Activation, Callable[[float], float]] = {
    Activation.UNIT: unit,
    Activation.SIGMOID: sigmoid,
    Activation.SOFTPLUS: softplus,
    Activation.TANH: tanh,
    Activation.RELU: relu,
    Activation.LEAKY_RELU: leaky_relu,
}

_DERIVATIVES: Dict[Activation, Callable[[float], float]] = {
    Activation.UNIT: unit_derivative,
    Activation.SIGMOID: sigmoid_derivative,
    Activation.SOFTPLUS: softplus_derivative,
    Activation.TANH: tanh_derivative,
    Activation.RELU: relu_derivative,
    Activation.LEAKY_RELU: leaky_relu_derivative,
}
