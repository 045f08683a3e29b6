"""
test_topology.py
~~~~~~~~~~~~~~~~

Unit tests for tensor allocation and randomization.
"""

import os
import sys

import numpy as np
import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from backprop.activations import Activation
from backprop.topology import NetworkBuilder, apply_to_weights, build, randomize
from backprop.trainer import Trainer


@pytest.mark.unit
class TestBuild:
    """Test zero-initialized tensor allocation."""

    def test_shapes(self):
        weights, biases, activations, outputs = build(3, [4, 2])

        assert [w.shape for w in weights] == [(4, 3), (2, 4)]
        assert [b.shape for b in biases] == [(4, 1), (2, 1)]
        assert [len(o) for o in outputs] == [4, 2]

    def test_zero_filled(self):
        weights, biases, _, outputs = build(2, [3, 1])

        for tensor in weights + biases + outputs:
            assert not tensor.any()

    def test_default_activations(self):
        _, _, activations, _ = build(2, [3, 1])
        assert activations == [Activation.UNIT, Activation.UNIT]

    def test_activation_names_are_resolved(self):
        _, _, activations, _ = build(2, [3, 1], ['softplus', Activation.UNIT])
        assert activations == [Activation.SOFTPLUS, Activation.UNIT]

    @pytest.mark.parametrize('input_size,layer_sizes', [
        (0, [1]),
        (-1, [1]),
        (2, []),
        (2, None),
        (2, [3, 0]),
        (2, [1.5]),
    ])
    def test_invalid_sizes(self, input_size, layer_sizes):
        with pytest.raises(ValueError):
            build(input_size, layer_sizes)

    def test_activation_count_mismatch(self):
        with pytest.raises(ValueError, match="activation"):
            build(2, [3, 1], ['unit'])


@pytest.mark.unit
class TestRandomize:
    """Test in-place weight randomization."""

    def test_weights_within_bounds(self):
        weights, biases, _, _ = build(5, [8, 8, 3])

        randomize(weights, -0.3, 0.3, np.random.default_rng(7))

        for w in weights:
            assert np.all(w >= -0.3)
            assert np.all(w <= 0.3)
        assert len(np.unique(np.concatenate([w.ravel() for w in weights]))) > 1

    def test_biases_untouched(self):
        builder = NetworkBuilder(2, [3, 1])
        builder.randomize_weights(-1.0, 1.0)

        for b in builder.biases:
            assert not b.any()

    def test_degenerate_range(self):
        weights, _, _, _ = build(2, [2])
        randomize(weights, 0.5, 0.5)
        np.testing.assert_array_equal(weights[0], np.full((2, 2), 0.5))

    def test_seeded_generator_is_reproducible(self):
        first, _, _, _ = build(2, [3])
        second, _, _, _ = build(2, [3])

        randomize(first, -1.0, 1.0, np.random.default_rng(3))
        randomize(second, -1.0, 1.0, np.random.default_rng(3))

        np.testing.assert_array_equal(first[0], second[0])

    def test_invalid_bounds(self):
        weights, _, _, _ = build(2, [2])
        with pytest.raises(ValueError):
            randomize(weights, 1.0, -1.0)

    def test_none_weights(self):
        with pytest.raises(ValueError):
            randomize(None, -1.0, 1.0)


@pytest.mark.unit
class TestApplyToWeights:
    """Test the element-wise weight transform."""

    def test_applies_function_in_place(self):
        weights, _, _, _ = build(2, [2, 1])
        apply_to_weights(weights, lambda w: w + 0.25)

        for w in weights:
            assert np.all(w == 0.25)

    def test_none_arguments(self):
        weights, _, _, _ = build(1, [1])
        with pytest.raises(ValueError):
            apply_to_weights(None, abs)
        with pytest.raises(ValueError):
            apply_to_weights(weights, None)


@pytest.mark.unit
class TestNetworkBuilder:
    """Test network and trainer creation from a builder."""

    def test_create_network_copies_tensors(self):
        builder = NetworkBuilder(2, [2, 1], ['tanh', 'unit'])
        builder.randomize_weights(-1.0, 1.0, np.random.default_rng(0))

        first = builder.create_network()
        second = builder.create_network()

        for a, b, source in zip(first.weights, second.weights, builder.weights):
            np.testing.assert_array_equal(a, source)
            assert not np.shares_memory(a, b)
            assert not np.shares_memory(a, source)

    def test_networks_are_isolated(self):
        builder = NetworkBuilder(1, [1])
        first = builder.create_network()
        second = builder.create_network()

        first.weights[0][0, 0] = 2.0

        assert second.predict([1.0])[0] == 0.0
        assert builder.weights[0][0, 0] == 0.0

    def test_create_trainer(self):
        builder = NetworkBuilder(2, [1])
        trainer = builder.create_trainer(learning_rate=0.05)

        assert isinstance(trainer, Trainer)
        assert trainer.learning_rate == 0.05
        assert trainer.network.sizes == [2, 1]
