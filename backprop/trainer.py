"""
trainer.py
~~~~~~~~~~

Epoch training by backpropagation.

One epoch runs every sample of the batch forward through the network,
propagates the loss derivative backwards layer by layer, and sums the
resulting weight and bias gradients. After the last sample the summed
gradients are clipped and applied once, scaled by the learning rate and
divided by the batch size.

The backward pass is a single loop from the output layer to the input
layer. Hidden-layer errors are computed from the errors of the next layer,
which are always finished first, so no recursion is needed.
"""

import time
import logging
from typing import Any, Callable, Dict, List, Optional, Sequence

import numpy as np

from backprop.exceptions import ShapeMismatchError
from backprop.losses import Loss, SUM_SQUARED_ERROR
from backprop.network import Network
from backprop.sample import Sample

# Configure module logger
logger = logging.getLogger(__name__)

DEFAULT_LEARNING_RATE = 0.01
DEFAULT_GRADIENT_CLIP = 1.0


class Trainer:
    """
    Trains a network in place.

    Args:
        network: Network whose tensors are updated
        learning_rate: Step size of the weight update
        loss: Loss function pair used for the per-sample loss and its derivative
        clip: Accumulated gradients are clipped to ``[-clip, clip]`` before
            the update

    Attributes:
        weight_gradients: Per layer, an array shaped like the layer's weights
            holding the gradients summed over the current epoch
        bias_gradients: Per layer, one summed bias gradient per node
        node_errors: Per layer, the error of every node for the most
            recently propagated sample
        loss_history: Loss vector of every epoch run through :meth:`train`
    """

    def __init__(
        self,
        network: Network,
        learning_rate: float = DEFAULT_LEARNING_RATE,
        loss: Loss = SUM_SQUARED_ERROR,
        clip: float = DEFAULT_GRADIENT_CLIP
    ):
        if network is None:
            raise ValueError("network must not be None")
        if loss is None:
            raise ValueError("loss must not be None")
        if clip is None or clip <= 0:
            raise ValueError(f"clip must be a positive number, got {clip!r}")

        self.network = network
        self.learning_rate = learning_rate
        self.loss = loss
        self.clip = clip

        self.weight_gradients: List[np.ndarray] = []
        self.bias_gradients: List[np.ndarray] = []
        self.node_errors: List[np.ndarray] = []
        self.loss_history: List[np.ndarray] = []

    # ========================================================================
    # EPOCHS
    # ========================================================================

    def train_one_epoch(
        self,
        samples: Sequence[Sequence[float]],
        observed: Sequence[Sequence[float]]
    ) -> np.ndarray:
        """
        Run one epoch over a batch and update the network once.

        Args:
            samples: Input vectors
            observed: Expected output vector for every input

        Returns:
            Loss per output dimension, averaged over the batch

        Raises:
            ValueError: If samples, observed or an observation is None
            ShapeMismatchError: If the batch is empty, the counts differ,
                or an observation does not match the output width
        """
        if samples is None:
            raise ValueError("samples must not be None")
        if observed is None:
            raise ValueError("observed must not be None")
        if len(samples) == 0:
            raise ShapeMismatchError("Cannot train on an empty batch")
        if len(samples) != len(observed):
            raise ShapeMismatchError(
                f"Got {len(samples)} samples but {len(observed)} observations"
            )
        output_size = self.network.output_size
        for i, expected in enumerate(observed):
            if expected is None:
                raise ValueError(f"observed[{i}] must not be None")
            if len(expected) != output_size:
                raise ShapeMismatchError(
                    f"observed[{i}] has {len(expected)} values but the network "
                    f"has {output_size} outputs"
                )

        self.prepare_backpropagation()

        total_loss = np.zeros(self.network.output_size)
        for inputs, expected in zip(samples, observed):
            prediction = self.network.predict(inputs)
            total_loss = total_loss + self.loss.function([prediction], [expected])
            d_loss = self.loss.derivative([prediction], [expected])
            self.propagate_backwards(d_loss)

        self.update_weights_and_biases(len(samples))

        epoch_loss = total_loss / len(samples)
        logger.debug(f"Epoch over {len(samples)} samples, loss {epoch_loss.tolist()}")
        return epoch_loss

    def train_samples(self, samples: Sequence[Sample]) -> np.ndarray:
        """Run one epoch over task-selector samples."""
        if samples is None:
            raise ValueError("samples must not be None")
        return self.train_one_epoch(
            [s.inputs for s in samples],
            [s.observed for s in samples]
        )

    def train(
        self,
        samples: Sequence[Sequence[float]],
        observed: Sequence[Sequence[float]],
        epochs: int,
        callback: Optional[Callable[[Dict[str, Any]], None]] = None,
        yield_func: Optional[Callable[[], None]] = None
    ) -> List[np.ndarray]:
        """
        Run several full-batch epochs.

        Args:
            samples: Input vectors
            observed: Expected output vectors
            epochs: Number of epochs to run
            callback: Called after each epoch with a dict holding
                'epoch', 'total_epochs', 'loss' and 'elapsed_time'
            yield_func: Called between epochs so cooperative schedulers
                can run other tasks

        Returns:
            The loss vector of every epoch, in order
        """
        if not isinstance(epochs, (int, np.integer)) or epochs < 1:
            raise ValueError(f"epochs must be a positive integer, got {epochs!r}")

        logger.info(
            f"Training network {self.network.sizes} for {epochs} epochs "
            f"on {len(samples)} samples, lr={self.learning_rate}"
        )
        start = time.time()
        history = []

        for epoch in range(1, epochs + 1):
            loss = self.train_one_epoch(samples, observed)
            history.append(loss)
            self.loss_history.append(loss)

            if callback is not None:
                callback({
                    'epoch': epoch,
                    'total_epochs': epochs,
                    'loss': loss.tolist(),
                    'elapsed_time': time.time() - start
                })
            if yield_func is not None:
                yield_func()

        logger.info(
            f"Training finished in {time.time() - start:.2f}s, "
            f"final loss {history[-1].tolist()}"
        )
        return history

    # ========================================================================
    # BACKPROPAGATION
    # ========================================================================

    def prepare_backpropagation(self) -> None:
        """Allocate zeroed gradient accumulators for a new epoch."""
        self.weight_gradients = [np.zeros_like(w) for w in self.network.weights]
        self.bias_gradients = [np.zeros(len(layer)) for layer in self.network.layers]

    def propagate_backwards(self, d_loss: Sequence[float]) -> None:
        """
        Compute node errors for the last forward pass and add its gradients.

        Layers are processed from the output layer down to the input layer.
        An output node's error is its loss derivative. A hidden node's error
        is the sum of next-layer errors passed back through the next
        layer's activation derivatives and weights.

        Args:
            d_loss: Loss derivative per output node

        Raises:
            ShapeMismatchError: If d_loss does not match the output width
        """
        layers = self.network.layers
        if len(d_loss) != len(layers[-1]):
            raise ShapeMismatchError(
                f"Loss derivative has {len(d_loss)} values but the output "
                f"layer has {len(layers[-1])} nodes"
            )
        if not self.weight_gradients:
            self.prepare_backpropagation()

        self.node_errors = [np.zeros(len(layer)) for layer in layers]

        for layer_index in range(len(layers) - 1, -1, -1):
            layer = layers[layer_index]
            is_output = layer_index == len(layers) - 1

            for node_index in range(len(layer)):
                if is_output:
                    error = float(d_loss[node_index])
                else:
                    error = self._error_from_next_layer(layer_index, node_index)
                self.node_errors[layer_index][node_index] = error
                self._accumulate_node_gradients(layer_index, node_index, error)

    def _error_from_next_layer(self, layer_index: int, node_index: int) -> float:
        next_layer = self.network.layers[layer_index].next_layer
        next_errors = self.node_errors[layer_index + 1]

        error = 0.0
        for k, next_node in enumerate(next_layer.nodes):
            chain_factor = next_node.derivative() * next_node.weights[node_index]
            error += chain_factor * next_errors[k]
        return error

    def _accumulate_node_gradients(self, layer_index: int, node_index: int, error: float) -> None:
        layer = self.network.layers[layer_index]
        node = layer.nodes[node_index]
        local_gradient = error * node.derivative()

        inputs = layer.inputs
        width = len(node.weights)
        if len(inputs) < width:
            # Missing inputs count as 0
            inputs = np.concatenate([inputs, np.zeros(width - len(inputs))])

        self.weight_gradients[layer_index][node_index] += local_gradient * inputs[:width]
        self.bias_gradients[layer_index][node_index] += local_gradient

    # ========================================================================
    # UPDATE
    # ========================================================================

    def update_weights_and_biases(self, divisor: int = 1) -> None:
        """
        Apply the accumulated gradients to the network's tensors.

        Every gradient is clipped to ``[-clip, clip]``; an element whose
        gradient is NaN keeps its current value.

        Args:
            divisor: Batch size the summed gradients are averaged over
        """
        skipped = 0
        for weights, gradients in zip(self.network.weights, self.weight_gradients):
            skipped += self._apply_gradients(weights, gradients, divisor)
        for biases, gradients in zip(self.network.biases, self.bias_gradients):
            skipped += self._apply_gradients(biases[:, 0], gradients, divisor)

        if skipped:
            logger.debug(f"Skipped {skipped} parameter update(s) with NaN gradients")

    def _apply_gradients(self, target: np.ndarray, gradients: np.ndarray, divisor: int) -> int:
        valid = ~np.isnan(gradients)
        steps = np.clip(gradients, -self.clip, self.clip) * self.learning_rate / divisor
        target[valid] -= steps[valid]
        return int(gradients.size - np.count_nonzero(valid))
