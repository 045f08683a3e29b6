"""
losses.py
~~~~~~~~~

Loss functions and their derivatives with respect to the predictions.

The per-vector functions take ``(predicted, observed)`` vectors and return one
value per output dimension. The batch functions take matrices shaped
``(samples, outputs)`` and reduce over the sample axis, still returning one
value per output dimension. A trainer is configured with a :class:`Loss`
pair of batch functions.
"""

from typing import Callable, NamedTuple, Sequence, Tuple

import numpy as np

from backprop.exceptions import ShapeMismatchError


Vector = Sequence[float]
Matrix = Sequence[Sequence[float]]
BatchLossFunction = Callable[[Matrix, Matrix], np.ndarray]


class Loss(NamedTuple):
    """A loss function paired with its derivative."""

    function: BatchLossFunction
    derivative: BatchLossFunction


def _as_vectors(predicted: Vector, observed: Vector) -> Tuple[np.ndarray, np.ndarray]:
    if predicted is None:
        raise ValueError("predicted must not be None")
    if observed is None:
        raise ValueError("observed must not be None")

    p = np.asarray(predicted, dtype=float).ravel()
    o = np.asarray(observed, dtype=float).ravel()
    if p.shape != o.shape:
        raise ShapeMismatchError(
            f"Arrays must be of the same length: "
            f"predicted has {p.size}, observed has {o.size}"
        )
    return p, o


def _as_batches(predicted: Matrix, observed: Matrix) -> Tuple[np.ndarray, np.ndarray]:
    if predicted is None:
        raise ValueError("predicted must not be None")
    if observed is None:
        raise ValueError("observed must not be None")
    if len(predicted) != len(observed):
        raise ShapeMismatchError(
            f"Arrays must be of the same length: "
            f"{len(predicted)} predictions, {len(observed)} observations"
        )
    if len(predicted) == 0:
        raise ShapeMismatchError("Cannot compute a loss over an empty batch")

    try:
        p = np.asarray(predicted, dtype=float)
        o = np.asarray(observed, dtype=float)
    except ValueError as e:
        raise ShapeMismatchError(f"Batches must be rectangular: {e}") from e

    p = p.reshape(len(predicted), -1)
    o = o.reshape(len(observed), -1)
    if p.shape != o.shape:
        raise ShapeMismatchError(
            f"Prediction shape {p.shape} does not match observation shape {o.shape}"
        )
    return p, o


# ============================================================================
# PER-VECTOR LOSSES
# ============================================================================

def squared_error(predicted: Vector, observed: Vector) -> np.ndarray:
    """
    Squared error per output dimension, ``(p - o)^2``.

    Args:
        predicted: Network output vector
        observed: Expected output vector of the same length

    Returns:
        Array with one loss value per dimension

    Raises:
        ShapeMismatchError: If the vectors differ in length
    """
    p, o = _as_vectors(predicted, observed)
    diff = p - o
    return diff * diff


def squared_error_derivative(predicted: Vector, observed: Vector) -> np.ndarray:
    """Derivative of :func:`squared_error` with respect to ``predicted``, ``2(p - o)``."""
    p, o = _as_vectors(predicted, observed)
    return 2.0 * (p - o)


def cross_entropy_loss(predicted: Vector, observed: Vector) -> float:
    """
    Mean cross entropy ``-sum(o * log(p)) / n``.

    Predictions are clamped to ``1e-15`` before taking the logarithm.
    """
    p, o = _as_vectors(predicted, observed)
    clamped = np.maximum(p, 1e-15)
    return float(-np.sum(o * np.log(clamped)) / p.size)


def hinge_loss(predicted: Vector, observed: Vector) -> float:
    """Mean hinge loss ``sum(max(0, 1 - o * p)) / n`` for labels in {-1, 1}."""
    p, o = _as_vectors(predicted, observed)
    return float(np.sum(np.maximum(0.0, 1.0 - o * p)) / p.size)


def huber_loss(predicted: Vector, observed: Vector, delta: float = 1.0) -> float:
    """
    Mean Huber loss.

    Quadratic (``0.5 * d^2``) for residuals with ``|d| <= delta`` and linear
    (``delta * (|d| - 0.5 * delta)``) beyond.
    """
    p, o = _as_vectors(predicted, observed)
    diff = np.abs(p - o)
    quadratic = 0.5 * diff * diff
    linear = delta * (diff - 0.5 * delta)
    return float(np.sum(np.where(diff <= delta, quadratic, linear)) / p.size)


# ============================================================================
# BATCH LOSSES
# ============================================================================

def sum_squared_error(predicted: Matrix, observed: Matrix) -> np.ndarray:
    """
    Sum of squared residuals over the batch, per output dimension.

    Args:
        predicted: Predictions shaped ``(samples, outputs)``
        observed: Observations shaped ``(samples, outputs)``

    Returns:
        Array of length ``outputs``

    Raises:
        ShapeMismatchError: If the batches differ in shape or are empty
    """
    p, o = _as_batches(predicted, observed)
    diff = p - o
    return np.sum(diff * diff, axis=0)


def sum_squared_error_derivative(predicted: Matrix, observed: Matrix) -> np.ndarray:
    """Derivative of :func:`sum_squared_error`, ``sum(2(p - o))`` per output dimension."""
    p, o = _as_batches(predicted, observed)
    return np.sum(2.0 * (p - o), axis=0)


def sum_mean_squared_error(predicted: Matrix, observed: Matrix) -> np.ndarray:
    """Mean of squared residuals over the batch, per output dimension."""
    return sum_squared_error(predicted, observed) / len(predicted)


def sum_mean_squared_error_derivative(predicted: Matrix, observed: Matrix) -> np.ndarray:
    return sum_squared_error_derivative(predicted, observed) / len(predicted)


SUM_SQUARED_ERROR = Loss(sum_squared_error, sum_squared_error_derivative)
SUM_MEAN_SQUARED_ERROR = Loss(sum_mean_squared_error, sum_mean_squared_error_derivative)
