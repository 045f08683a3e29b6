"""
topology.py
~~~~~~~~~~~

Allocation and initialization of network tensors.

The builder produces zero-filled weight and bias tensors for an input size
and a sequence of layer sizes, can randomize the weights in place, and
hands copies of the tensors to new networks and trainers.
"""

import logging
from typing import Callable, List, Optional, Sequence, Tuple

import numpy as np

from backprop.activations import Activation
from backprop.losses import Loss, SUM_SQUARED_ERROR
from backprop.network import ActivationSpec, Network
from backprop.trainer import Trainer

# Configure module logger
logger = logging.getLogger(__name__)

Tensors = Tuple[List[np.ndarray], List[np.ndarray], List[Activation], List[np.ndarray]]


def build(
    input_size: int,
    layer_sizes: Sequence[int],
    activations: Optional[Sequence[ActivationSpec]] = None
) -> Tensors:
    """
    Allocate zero-initialized tensors for a network.

    Args:
        input_size: Width of the input vector
        layer_sizes: Node count of every layer, input layer first
        activations: One activation per layer (default: Unit everywhere)

    Returns:
        Tuple of (weights, biases, activations, outputs) where
        ``weights[l]`` is shaped ``(layer_sizes[l], previous width)``,
        ``biases[l]`` is shaped ``(layer_sizes[l], 1)`` and ``outputs[l]``
        is a zero output buffer of length ``layer_sizes[l]``

    Raises:
        ValueError: If a size is not a positive integer or the activation
            count does not match the layer count

    Example:
        >>> weights, biases, activations, outputs = build(2, [3, 1])
        >>> [w.shape for w in weights]
        [(3, 2), (1, 3)]
    """
    if not isinstance(input_size, (int, np.integer)) or input_size < 1:
        raise ValueError(f"input_size must be a positive integer, got {input_size!r}")
    if layer_sizes is None or len(layer_sizes) == 0:
        raise ValueError("layer_sizes must contain at least one layer")
    for size in layer_sizes:
        if not isinstance(size, (int, np.integer)) or size < 1:
            raise ValueError(f"Layer sizes must be positive integers, got {list(layer_sizes)}")

    if activations is None:
        activations = [Activation.UNIT] * len(layer_sizes)
    if len(activations) != len(layer_sizes):
        raise ValueError(
            f"Expected {len(layer_sizes)} activation functions, got {len(activations)}"
        )

    widths = [input_size] + list(layer_sizes[:-1])
    weights = [np.zeros((size, width)) for size, width in zip(layer_sizes, widths)]
    biases = [np.zeros((size, 1)) for size in layer_sizes]
    outputs = [np.zeros(size) for size in layer_sizes]
    resolved = [Activation.from_name(a) for a in activations]

    return weights, biases, resolved, outputs


def apply_to_weights(weights: Sequence[np.ndarray], func: Callable[[float], float]) -> None:
    """
    Replace every weight ``w`` with ``func(w)``, in place.

    Raises:
        ValueError: If weights or func is None
    """
    if weights is None:
        raise ValueError("weights must not be None")
    if func is None:
        raise ValueError("func must not be None")

    for layer_weights in weights:
        for index, value in np.ndenumerate(layer_weights):
            layer_weights[index] = func(value)


def randomize(
    weights: Sequence[np.ndarray],
    low: float,
    high: float,
    rng: Optional[np.random.Generator] = None
) -> None:
    """
    Fill every weight uniformly from ``[low, high]``, in place.

    Biases are not touched.

    Args:
        weights: Weight tensors to overwrite
        low: Lower bound
        high: Upper bound
        rng: Random generator (a fresh default generator if omitted)

    Raises:
        ValueError: If weights is None or ``low > high``
    """
    if weights is None:
        raise ValueError("weights must not be None")
    if low > high:
        raise ValueError(f"low must not exceed high, got [{low}, {high}]")

    rng = rng if rng is not None else np.random.default_rng()
    for layer_weights in weights:
        # uniform() draws from [low, high); clip keeps the bound closed
        # even when rounding lands on high
        layer_weights[...] = np.clip(
            rng.uniform(low, high, size=layer_weights.shape), low, high
        )


class NetworkBuilder:
    """
    Holds freshly allocated tensors for one topology.

    Example:
        >>> builder = NetworkBuilder(2, [4, 1], ['softplus', 'unit'])
        >>> builder.randomize_weights(-0.3, 0.3)
        >>> network = builder.create_network()
        >>> network.sizes
        [2, 4, 1]
    """

    def __init__(
        self,
        input_size: int,
        layer_sizes: Sequence[int],
        activations: Optional[Sequence[ActivationSpec]] = None
    ):
        self.input_size = input_size
        self.layer_sizes = list(layer_sizes) if layer_sizes is not None else None
        self.weights, self.biases, self.activations, self.outputs = build(
            input_size, layer_sizes, activations
        )

    def randomize_weights(
        self,
        low: float,
        high: float,
        rng: Optional[np.random.Generator] = None
    ) -> None:
        randomize(self.weights, low, high, rng)
        logger.debug(f"Randomized weights of {self.layer_sizes} in [{low}, {high}]")

    def create_network(self) -> Network:
        """
        Create a network over copies of the builder's tensors.

        Networks created from the same builder never share storage.
        """
        return Network(
            [w.copy() for w in self.weights],
            [b.copy() for b in self.biases],
            list(self.activations),
            [o.copy() for o in self.outputs]
        )

    def create_trainer(
        self,
        learning_rate: float = 0.01,
        loss: Loss = SUM_SQUARED_ERROR
    ) -> Trainer:
        """Create a network and a trainer bound to it."""
        return Trainer(self.create_network(), learning_rate=learning_rate, loss=loss)
