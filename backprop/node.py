"""
node.py
~~~~~~~

A single weighted unit of a layer.
"""

from typing import Sequence

import numpy as np

from backprop.activations import Activation


class Node:
    """
    One unit computing ``activation(sum(inputs * weights) + bias)``.

    ``weights`` and ``bias`` are views into the owning network's tensors:
    ``weights`` is the row ``network.weights[layer][index]`` and ``bias`` the
    one-element row ``network.biases[layer][index]``. Updating the network's
    tensors in place changes what this node computes on its next call.
    """

    def __init__(
        self,
        index: int,
        weights: np.ndarray,
        bias: np.ndarray,
        activation: Activation = Activation.UNIT
    ):
        if weights is None:
            raise ValueError("weights must not be None")
        if bias is None:
            raise ValueError("bias must not be None")

        self.index = index
        self.weights = weights
        self.bias = bias
        self.activation = activation
        self.sum = 0.0
        self.output = 0.0

    def process_inputs(self, inputs: Sequence[float]) -> float:
        """
        Compute and cache the node's pre-activation sum and output.

        Args:
            inputs: One value per weight

        Returns:
            The activated output

        Raises:
            ValueError: If inputs is None
            IndexError: If the input width differs from the weight count
        """
        if inputs is None:
            raise ValueError("inputs must not be None")
        if len(inputs) != len(self.weights):
            raise IndexError(
                f"Input size {len(inputs)} does not match "
                f"weights size {len(self.weights)}"
            )

        self.sum = float(np.dot(inputs, self.weights) + self.bias[0])
        self.output = self.activation(self.sum)
        return self.output

    def derivative(self) -> float:
        """Activation derivative at the last computed sum."""
        return self.activation.derivative(self.sum)

    def __repr__(self) -> str:
        return (
            f"Node(index={self.index}, weights={self.weights.tolist()}, "
            f"bias={float(self.bias[0])}, activation={self.activation.value})"
        )
