"""
layer.py
~~~~~~~~

An ordered collection of nodes sharing one activation function.

Layers do not keep their own previous/next pointers. When a network wires
its layers it hands every layer the shared, ordered layer list, and the
links are resolved by position (``index - 1`` and ``index + 1``).
"""

from typing import List, Optional, Sequence

import numpy as np

from backprop.activations import Activation
from backprop.exceptions import TopologyError
from backprop.node import Node


class Layer:
    """
    A layer of nodes built from one slice of the network's tensors.

    Args:
        index: Position of the layer in the network
        weights: Array shaped ``(nodes, inputs)``; row ``j`` belongs to node ``j``
        biases: Array shaped ``(nodes, 1)``
        activation: Activation applied by every node in the layer
    """

    def __init__(
        self,
        index: int,
        weights: np.ndarray,
        biases: np.ndarray,
        activation: Activation = Activation.UNIT
    ):
        if weights is None:
            raise ValueError("weights must not be None")
        if biases is None:
            raise ValueError("biases must not be None")

        self.index = index
        self.activation = activation
        self.nodes: List[Node] = [
            Node(j, weights[j], biases[j], activation)
            for j in range(len(biases))
        ]
        self.inputs: np.ndarray = np.zeros(0)
        self.outputs: np.ndarray = np.zeros(len(self.nodes))
        self._chain: Optional[Sequence['Layer']] = None

    def __len__(self) -> int:
        return len(self.nodes)

    @property
    def input_size(self) -> int:
        return len(self.nodes[0].weights) if self.nodes else 0

    def forward(self, inputs: Sequence[float]) -> np.ndarray:
        """
        Run every node on ``inputs`` and return their outputs in node order.

        The inputs are cached for the backward pass.
        """
        self.inputs = np.asarray(inputs, dtype=float)
        self.outputs = np.array(
            [node.process_inputs(self.inputs) for node in self.nodes],
            dtype=float
        )
        return self.outputs

    # ------------------------------------------------------------------
    # Topology
    # ------------------------------------------------------------------

    def wire(self, chain: Sequence['Layer']) -> None:
        """
        Attach this layer to the network's ordered layer list.

        Raises:
            TopologyError: If the layer is already wired, or is not at
                its own index in ``chain``
        """
        if self._chain is not None:
            raise TopologyError(f"Layer {self.index} is already wired into a network")
        if self.index >= len(chain) or chain[self.index] is not self:
            raise TopologyError(f"Layer {self.index} is not at position {self.index}")
        self._chain = chain

    @property
    def is_input(self) -> bool:
        return self.index == 0

    @property
    def is_output(self) -> bool:
        return self.index == len(self._wired_chain()) - 1

    @property
    def previous_layer(self) -> 'Layer':
        chain = self._wired_chain()
        if self.index == 0:
            raise TopologyError("Input layer has no previous layer")
        return chain[self.index - 1]

    @previous_layer.setter
    def previous_layer(self, value: 'Layer') -> None:
        raise TopologyError("Layer links follow network order and cannot be assigned")

    @property
    def next_layer(self) -> 'Layer':
        chain = self._wired_chain()
        if self.index == len(chain) - 1:
            raise TopologyError("Output layer has no next layer")
        return chain[self.index + 1]

    @next_layer.setter
    def next_layer(self, value: 'Layer') -> None:
        raise TopologyError("Layer links follow network order and cannot be assigned")

    def _wired_chain(self) -> Sequence['Layer']:
        if self._chain is None:
            raise TopologyError(f"Layer {self.index} is not wired into a network")
        return self._chain

    def __repr__(self) -> str:
        return (
            f"Layer(index={self.index}, nodes={len(self.nodes)}, "
            f"activation={self.activation.value})"
        )
