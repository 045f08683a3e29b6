"""
backprop package
~~~~~~~~~~~~~~~~

Feedforward neural network engine trained with explicit backpropagation.
Contains the activation and loss libraries, the node/layer/network forward
model, the topology builder, the epoch trainer and the API server.
"""

from backprop.activations import Activation
from backprop.losses import Loss, SUM_SQUARED_ERROR, SUM_MEAN_SQUARED_ERROR
from backprop.network import Network
from backprop.topology import NetworkBuilder, build, randomize
from backprop.trainer import Trainer
from backprop.sample import Sample, Operation

__version__ = "1.0.0"

__all__ = [
    "Activation",
    "Loss",
    "SUM_SQUARED_ERROR",
    "SUM_MEAN_SQUARED_ERROR",
    "Network",
    "NetworkBuilder",
    "build",
    "randomize",
    "Trainer",
    "Sample",
    "Operation",
]
