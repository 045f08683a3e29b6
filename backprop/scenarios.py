"""
scenarios.py
~~~~~~~~~~~~

Small training problems with a recommended topology and learning rate.

Each scenario bundles everything needed to build and train a network:

    >>> scenario = get_scenario('linear')
    >>> trainer = scenario.create_trainer()
    >>> history = trainer.train(scenario.samples, scenario.observed, scenario.epochs)
"""

import logging
from typing import Callable, Dict, List, NamedTuple, Optional, Tuple

import numpy as np

from backprop.activations import Activation
from backprop.sample import Operation, Sample
from backprop.topology import NetworkBuilder
from backprop.trainer import Trainer

# Configure module logger
logger = logging.getLogger(__name__)


class Scenario(NamedTuple):
    name: str
    description: str
    input_size: int
    layer_sizes: List[int]
    activations: List[Activation]
    learning_rate: float
    epochs: int
    samples: List[List[float]]
    observed: List[List[float]]
    randomize: Optional[Tuple[float, float]] = None
    initial_weights: Optional[List[List[List[float]]]] = None
    seed: Optional[int] = None

    def create_builder(self) -> NetworkBuilder:
        """Allocate tensors for the scenario and apply its initialization."""
        builder = NetworkBuilder(self.input_size, self.layer_sizes, self.activations)
        if self.initial_weights is not None:
            for layer_weights, values in zip(builder.weights, self.initial_weights):
                layer_weights[...] = values
        elif self.randomize is not None:
            low, high = self.randomize
            builder.randomize_weights(low, high, np.random.default_rng(self.seed))
        return builder

    def create_trainer(self) -> Trainer:
        return self.create_builder().create_trainer(self.learning_rate)


def linear() -> Scenario:
    """A single Unit node learning ``y = 0.3 x + 0.3``."""
    return Scenario(
        name='linear',
        description='One input, one linear node: 0 -> 0.3, 1 -> 0.6',
        input_size=1,
        layer_sizes=[1],
        activations=[Activation.UNIT],
        learning_rate=0.1,
        epochs=500,
        samples=[[0.0], [1.0]],
        observed=[[0.3], [0.6]]
    )


def adder() -> Scenario:
    """A single Unit node with two inputs learning their sum."""
    return Scenario(
        name='adder',
        description='Two inputs, one linear node learning a + b',
        input_size=2,
        layer_sizes=[1],
        activations=[Activation.UNIT],
        learning_rate=0.025,
        epochs=2000,
        samples=[[5.0, 5.0], [2.0, 2.0]],
        observed=[[10.0], [4.0]]
    )


def statquest() -> Scenario:
    """
    The dosage example: low and high doses are ineffective, medium doses work.

    Starts from fixed weights so every run follows the same path.
    """
    return Scenario(
        name='statquest',
        description='One input, two SoftPlus nodes, one linear output: 0 -> 0, 0.5 -> 1, 1 -> 0',
        input_size=1,
        layer_sizes=[2, 1],
        activations=[Activation.SOFTPLUS, Activation.UNIT],
        learning_rate=0.1,
        epochs=5000,
        samples=[[0.0], [0.5], [1.0]],
        observed=[[0.0], [1.0], [0.0]],
        initial_weights=[[[2.74], [-1.13]], [[0.36, 0.63]]]
    )


def _operand_pairs(rng: np.random.Generator, count: int, low: float, high: float) -> np.ndarray:
    return rng.uniform(low, high, size=(count, 2))


def hypotenuse(seed: Optional[int] = None, sample_count: int = 100) -> Scenario:
    """Task-selector samples asking for ``sqrt(a^2 + b^2)``."""
    rng = np.random.default_rng(seed)
    samples = [
        Sample(a, b, Operation.HYPOT)
        for a, b in _operand_pairs(rng, sample_count, 0.0, 1.0)
    ]
    return Scenario(
        name='hypotenuse',
        description='Operands with a task selector, learning the hypotenuse',
        input_size=4,
        layer_sizes=[4, 1],
        activations=[Activation.SOFTPLUS, Activation.UNIT],
        learning_rate=0.05,
        epochs=2000,
        samples=[s.inputs for s in samples],
        observed=[s.observed for s in samples],
        randomize=(-0.5, 0.5),
        seed=seed
    )


def mixed(seed: Optional[int] = None, sample_count: int = 100) -> Scenario:
    """Task-selector samples alternating between addition and hypotenuse."""
    rng = np.random.default_rng(seed)
    operations = [Operation.ADD, Operation.HYPOT]
    samples = [
        Sample(a, b, operations[i % 2])
        for i, (a, b) in enumerate(_operand_pairs(rng, sample_count, 0.0, 1.0))
    ]
    return Scenario(
        name='mixed',
        description='Operands with a task selector, learning a + b or the hypotenuse',
        input_size=4,
        layer_sizes=[4, 1],
        activations=[Activation.SOFTPLUS, Activation.UNIT],
        learning_rate=0.05,
        epochs=2000,
        samples=[s.inputs for s in samples],
        observed=[s.observed for s in samples],
        randomize=(-0.5, 0.5),
        seed=seed
    )


def multiplier(seed: Optional[int] = None, sample_count: int = 250) -> Scenario:
    """
    Products of operands drawn from ``[-1, 1]``.

    The four corners of the square are always part of the batch.
    """
    rng = np.random.default_rng(seed)
    corners = [[-1.0, -1.0], [-1.0, 1.0], [1.0, -1.0], [1.0, 1.0]]
    pairs = corners + _operand_pairs(rng, max(sample_count - 4, 0), -1.0, 1.0).tolist()
    return Scenario(
        name='multiplier',
        description='Two inputs, two SoftPlus layers, learning a * b',
        input_size=2,
        layer_sizes=[4, 4, 1],
        activations=[Activation.SOFTPLUS, Activation.SOFTPLUS, Activation.UNIT],
        learning_rate=0.15,
        epochs=5000,
        samples=pairs,
        observed=[[a * b] for a, b in pairs],
        randomize=(-0.3, 0.3),
        seed=seed
    )


SCENARIOS: Dict[str, Callable[..., Scenario]] = {
    'linear': linear,
    'adder': adder,
    'statquest': statquest,
    'hypotenuse': hypotenuse,
    'mixed': mixed,
    'multiplier': multiplier,
}

_SEEDED = {'hypotenuse', 'mixed', 'multiplier'}


def get_scenario(name: str, seed: Optional[int] = None) -> Scenario:
    """
    Build a scenario by name.

    Args:
        name: One of :data:`SCENARIOS`
        seed: Seed for scenarios with random data; ignored by fixed ones

    Raises:
        ValueError: If the name is unknown
    """
    if name not in SCENARIOS:
        raise ValueError(
            f"Unknown scenario '{name}'. Valid scenarios: {', '.join(SCENARIOS)}"
        )
    if name in _SEEDED:
        return SCENARIOS[name](seed=seed)
    return SCENARIOS[name]()
