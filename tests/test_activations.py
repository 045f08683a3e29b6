"""
test_activations.py
~~~~~~~~~~~~~~~~~~~

Unit tests for activation functions and their derivatives.
"""

import math
import os
import sys

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from backprop.activations import Activation, leaky_relu, leaky_relu_derivative


@pytest.mark.unit
class TestActivationValues:
    """Test activation outputs at known points."""

    def test_unit_is_identity(self):
        assert Activation.UNIT(3.5) == 3.5
        assert Activation.UNIT.derivative(-7.0) == 1.0

    def test_sigmoid_midpoint(self):
        assert Activation.SIGMOID(0.0) == 0.5
        assert Activation.SIGMOID.derivative(0.0) == 0.25

    def test_sigmoid_large_negative_does_not_overflow(self):
        """exp(1000) overflows to inf, which must give 0 rather than an error."""
        assert Activation.SIGMOID(-1000.0) == 0.0
        assert Activation.SIGMOID(1000.0) == 1.0

    def test_sigmoid_derivative_uses_pre_activation_sum(self):
        """The derivative at x is sigmoid(x) * (1 - sigmoid(x))."""
        x = 1.3
        s = 1.0 / (1.0 + math.exp(-x))
        assert Activation.SIGMOID.derivative(x) == pytest.approx(s * (1 - s))

    def test_softplus(self):
        assert Activation.SOFTPLUS(0.0) == pytest.approx(math.log(2.0))
        assert Activation.SOFTPLUS(1000.0) == pytest.approx(1000.0)
        assert Activation.SOFTPLUS.derivative(0.0) == 0.5

    def test_softplus_positive_infinity(self):
        assert Activation.SOFTPLUS(math.inf) == math.inf

    def test_tanh(self):
        assert Activation.TANH(0.0) == 0.0
        assert Activation.TANH.derivative(0.0) == 1.0
        assert Activation.TANH(0.5) == pytest.approx(math.tanh(0.5))

    def test_relu(self):
        assert Activation.RELU(-2.0) == 0.0
        assert Activation.RELU(3.0) == 3.0
        assert Activation.RELU.derivative(-1.0) == 0.0
        assert Activation.RELU.derivative(0.0) == 1.0
        assert Activation.RELU.derivative(2.0) == 1.0

    def test_leaky_relu(self):
        assert Activation.LEAKY_RELU(-2.0) == pytest.approx(-0.02)
        assert Activation.LEAKY_RELU(2.0) == 2.0
        assert Activation.LEAKY_RELU.derivative(-2.0) == 0.01
        assert Activation.LEAKY_RELU.derivative(2.0) == 1.0

    def test_leaky_relu_custom_alpha(self):
        assert leaky_relu(-2.0, alpha=0.1) == pytest.approx(-0.2)
        assert leaky_relu_derivative(-2.0, alpha=0.1) == 0.1

    @pytest.mark.parametrize('activation', list(Activation))
    def test_nan_propagates(self, activation):
        """NaN inputs produce NaN outputs for every activation."""
        assert math.isnan(activation(math.nan))


@pytest.mark.unit
class TestActivationDerivatives:
    """Test that every closed-form derivative matches a numerical one."""

    @pytest.mark.parametrize('activation', list(Activation))
    @pytest.mark.parametrize('x', [-1.5, 0.3, 2.0])
    def test_derivative_matches_central_difference(self, activation, x):
        h = 1e-6
        numerical = (activation(x + h) - activation(x - h)) / (2 * h)
        assert activation.derivative(x) == pytest.approx(numerical, abs=1e-6)


@pytest.mark.unit
class TestActivationLookup:
    """Test name-based lookup."""

    def test_from_name_is_case_insensitive(self):
        assert Activation.from_name('ReLU') is Activation.RELU
        assert Activation.from_name('leaky_relu') is Activation.LEAKY_RELU

    def test_from_name_accepts_member(self):
        assert Activation.from_name(Activation.TANH) is Activation.TANH

    def test_from_name_unknown(self):
        with pytest.raises(ValueError, match="Unknown activation"):
            Activation.from_name('swish')

    def test_from_name_rejects_non_string(self):
        with pytest.raises(ValueError):
            Activation.from_name(3)
