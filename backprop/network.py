"""
network.py
~~~~~~~~~~

The network owns the weight and bias tensors and wires layers over them.

``weights[l]`` is a 2-D array shaped ``(nodes_l, inputs_l)`` and
``biases[l]`` a 2-D array shaped ``(nodes_l, 1)``. Every node holds row
views into these arrays, so the trainer can update them in place and the
next forward pass sees the new values.
"""

import logging
from typing import List, Optional, Sequence, Union

import numpy as np

from backprop.activations import Activation
from backprop.exceptions import ShapeMismatchError
from backprop.layer import Layer

# Configure module logger
logger = logging.getLogger(__name__)

ActivationSpec = Union[Activation, str]


def _as_tensor(array, name: str, index: int) -> np.ndarray:
    """Use float arrays as they are (shared) and convert anything else."""
    if array is None:
        raise ValueError(f"{name}[{index}] must not be None")
    if isinstance(array, np.ndarray) and array.dtype == np.float64:
        return array
    try:
        return np.asarray(array, dtype=float)
    except ValueError as e:
        raise ShapeMismatchError(f"{name}[{index}] is not rectangular: {e}") from e


class Network:
    """
    A feedforward network over externally allocated tensors.

    Args:
        weights: One ``(nodes, inputs)`` array per layer
        biases: One ``(nodes, 1)`` array per layer
        activations: One activation per layer; defaults to
            ``Activation.UNIT`` for every layer
        outputs: Optional per-layer output buffers, overwritten with each
            layer's output on every :meth:`predict`

    Raises:
        ValueError: If weights or biases is None
        ShapeMismatchError: If the tensors do not describe a consistent topology
    """

    def __init__(
        self,
        weights: Sequence[np.ndarray],
        biases: Sequence[np.ndarray],
        activations: Optional[Sequence[ActivationSpec]] = None,
        outputs: Optional[List[np.ndarray]] = None
    ):
        if weights is None:
            raise ValueError("weights must not be None")
        if biases is None:
            raise ValueError("biases must not be None")
        if len(weights) == 0:
            raise ShapeMismatchError("A network requires at least one layer")
        if activations is None:
            activations = [Activation.UNIT] * len(weights)

        if len(biases) != len(weights):
            raise ShapeMismatchError(
                f"Got {len(weights)} weight layers but {len(biases)} bias layers"
            )
        if len(activations) != len(weights):
            raise ShapeMismatchError(
                f"Got {len(weights)} layers but {len(activations)} activation functions"
            )

        self.weights: List[np.ndarray] = [
            _as_tensor(w, 'weights', i) for i, w in enumerate(weights)
        ]
        self.biases: List[np.ndarray] = [
            _as_tensor(b, 'biases', i) for i, b in enumerate(biases)
        ]
        self.activations: List[Activation] = [
            Activation.from_name(a) for a in activations
        ]
        self._validate_shapes()

        self.layers: List[Layer] = [
            Layer(i, w, b, a)
            for i, (w, b, a) in enumerate(
                zip(self.weights, self.biases, self.activations)
            )
        ]
        for layer in self.layers:
            layer.wire(self.layers)

        self.layer_outputs: List[np.ndarray] = (
            outputs if outputs is not None
            else [np.zeros(len(layer)) for layer in self.layers]
        )

        logger.debug(f"Wired network with sizes {self.sizes}")

    def _validate_shapes(self) -> None:
        for i, (w, b) in enumerate(zip(self.weights, self.biases)):
            if w.ndim != 2:
                raise ShapeMismatchError(
                    f"weights[{i}] must be 2-dimensional, got shape {w.shape}"
                )
            if b.ndim == 1:
                # A flat bias row per layer is reshaped to one bias per node
                b = b.reshape(-1, 1)
                self.biases[i] = b
            if b.ndim != 2 or b.shape[1] != 1:
                raise ShapeMismatchError(
                    f"biases[{i}] must be shaped (nodes, 1), got {b.shape}"
                )
            if b.shape[0] != w.shape[0]:
                raise ShapeMismatchError(
                    f"Layer {i} has {w.shape[0]} weight rows but {b.shape[0]} biases"
                )
            if w.shape[0] == 0:
                raise ShapeMismatchError(f"Layer {i} has no nodes")
            if w.shape[1] == 0:
                # Pass-through input layers are not supported
                raise ShapeMismatchError(
                    f"Layer {i} has empty weight rows; every layer needs at least one input"
                )
            if i > 0 and w.shape[1] != self.weights[i - 1].shape[0]:
                raise ShapeMismatchError(
                    f"Layer {i} expects {w.shape[1]} inputs but layer {i - 1} "
                    f"has {self.weights[i - 1].shape[0]} nodes"
                )

    @property
    def sizes(self) -> List[int]:
        """Input width followed by the node count of every layer."""
        return [self.input_size] + [len(layer) for layer in self.layers]

    @property
    def input_size(self) -> int:
        return self.weights[0].shape[1]

    @property
    def output_size(self) -> int:
        return len(self.layers[-1])

    @property
    def input_layer(self) -> Layer:
        return self.layers[0]

    @property
    def output_layer(self) -> Layer:
        return self.layers[-1]

    def predict(self, inputs: Sequence[float]) -> np.ndarray:
        """
        Run a full forward pass.

        Args:
            inputs: Input vector of length :attr:`input_size`

        Returns:
            Output vector of length :attr:`output_size`

        Raises:
            ValueError: If inputs is None
            IndexError: If the input width does not match the input layer
        """
        if inputs is None:
            raise ValueError("inputs must not be None")
        if len(inputs) != self.input_size:
            raise IndexError(
                f"Input size {len(inputs)} does not match "
                f"network input size {self.input_size}"
            )

        outputs = np.asarray(inputs, dtype=float)
        for i, layer in enumerate(self.layers):
            outputs = layer.forward(outputs)
            self.layer_outputs[i] = outputs
        return outputs

    def __repr__(self) -> str:
        activations = [a.value for a in self.activations]
        return f"Network(sizes={self.sizes}, activations={activations})"
