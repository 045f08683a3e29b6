"""
test_losses.py
~~~~~~~~~~~~~~

Unit tests for loss functions.
"""

import math
import os
import sys

import numpy as np
import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from backprop.exceptions import ShapeMismatchError
from backprop.losses import (
    SUM_MEAN_SQUARED_ERROR,
    SUM_SQUARED_ERROR,
    cross_entropy_loss,
    hinge_loss,
    huber_loss,
    squared_error,
    squared_error_derivative,
    sum_mean_squared_error,
    sum_mean_squared_error_derivative,
    sum_squared_error,
    sum_squared_error_derivative,
)


@pytest.mark.unit
class TestSquaredError:
    """Test per-vector squared error."""

    def test_values(self):
        np.testing.assert_array_equal(squared_error([1, 2], [0, 4]), [1, 4])

    def test_derivative(self):
        np.testing.assert_array_equal(squared_error_derivative([1, 2], [0, 4]), [2, -4])

    def test_length_mismatch(self):
        with pytest.raises(ShapeMismatchError):
            squared_error([1, 2], [1])

    def test_length_mismatch_is_value_error(self):
        with pytest.raises(ValueError):
            squared_error_derivative([1, 2, 3], [1])

    def test_none_arguments(self):
        with pytest.raises(ValueError, match="predicted"):
            squared_error(None, [1])
        with pytest.raises(ValueError, match="observed"):
            squared_error([1], None)

    def test_nan_observation(self):
        assert math.isnan(squared_error([1.0], [math.nan])[0])


@pytest.mark.unit
class TestBatchLosses:
    """Test losses reduced over a batch."""

    predicted = [[1.0, 2.0], [3.0, 4.0]]
    observed = [[0.0, 0.0], [1.0, 1.0]]

    def test_sum_squared_error(self):
        np.testing.assert_array_equal(
            sum_squared_error(self.predicted, self.observed), [5.0, 13.0]
        )

    def test_sum_squared_error_derivative(self):
        np.testing.assert_array_equal(
            sum_squared_error_derivative(self.predicted, self.observed), [6.0, 10.0]
        )

    def test_sum_mean_squared_error(self):
        np.testing.assert_array_equal(
            sum_mean_squared_error(self.predicted, self.observed), [2.5, 6.5]
        )
        np.testing.assert_array_equal(
            sum_mean_squared_error_derivative(self.predicted, self.observed), [3.0, 5.0]
        )

    def test_batch_count_mismatch(self):
        with pytest.raises(ShapeMismatchError):
            sum_squared_error(self.predicted, self.observed[:1])

    def test_width_mismatch(self):
        with pytest.raises(ShapeMismatchError):
            sum_squared_error([[1.0, 2.0]], [[1.0]])

    def test_empty_batch(self):
        with pytest.raises(ShapeMismatchError):
            sum_squared_error([], [])

    def test_accepts_numpy_rows(self):
        loss = sum_squared_error([np.array([1.0, 2.0])], [[1.0, 0.0]])
        np.testing.assert_array_equal(loss, [0.0, 4.0])

    def test_non_negative_for_finite_inputs(self):
        rng = np.random.default_rng(0)
        predicted = rng.normal(size=(20, 3)) * 100
        observed = rng.normal(size=(20, 3)) * 100
        assert np.all(sum_squared_error(predicted, observed) >= 0)
        assert np.all(squared_error(predicted[0], observed[0]) >= 0)

    def test_nan_observation_gives_nan(self):
        loss = sum_squared_error([[1.0]], [[math.nan]])
        assert math.isnan(loss[0])

    def test_presets(self):
        assert SUM_SQUARED_ERROR.function is sum_squared_error
        assert SUM_SQUARED_ERROR.derivative is sum_squared_error_derivative
        assert SUM_MEAN_SQUARED_ERROR.function is sum_mean_squared_error


@pytest.mark.unit
class TestScalarLosses:
    """Test cross entropy, hinge and Huber losses."""

    def test_cross_entropy(self):
        assert cross_entropy_loss([0.5, 0.5], [1, 0]) == pytest.approx(-math.log(0.5) / 2)

    def test_cross_entropy_clamps_zero_prediction(self):
        loss = cross_entropy_loss([0.0, 1.0], [1, 0])
        assert loss == pytest.approx(-math.log(1e-15) / 2)
        assert math.isfinite(loss)

    def test_hinge(self):
        assert hinge_loss([0.5, -2.0], [1, 1]) == pytest.approx(1.75)

    def test_huber(self):
        # 0.5 * 0.5^2 for the small residual, 1 * (3 - 0.5) for the large one
        assert huber_loss([0.0, 0.0], [0.5, 3.0]) == pytest.approx((0.125 + 2.5) / 2)

    def test_huber_custom_delta(self):
        assert huber_loss([0.0], [3.0], delta=5.0) == pytest.approx(4.5)

    def test_scalar_losses_check_length(self):
        for loss in (cross_entropy_loss, hinge_loss, huber_loss):
            with pytest.raises(ShapeMismatchError):
                loss([1.0, 2.0], [1.0])
