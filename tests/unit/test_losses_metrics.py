import numpy as np
import pytest

from digitnet.core.activations import softmax
from digitnet.core.errors import ShapeMismatch
from digitnet.training.losses import cross_entropy_cost
from digitnet.training.metrics import (
    accuracy,
    compute_metrics,
    confusion_matrix,
    default_metrics,
    macro_f1,
)

Y = np.array(
    [
        [1.0, 0.0, 0.0, 1.0],
        [0.0, 1.0, 0.0, 0.0],
        [0.0, 0.0, 1.0, 0.0],
    ]
)


def test_cost_is_non_negative_for_softmax_outputs():
    rng = np.random.default_rng(0)
    aL = softmax(rng.standard_normal((3, 4)))
    assert cross_entropy_cost(aL, Y) >= 0.0


def test_cost_vanishes_for_perfect_prediction():
    assert cross_entropy_cost(Y.copy(), Y) == pytest.approx(0.0, abs=1e-12)


def test_cost_of_uniform_prediction_is_log_classes():
    aL = np.full((3, 4), 1.0 / 3.0)
    assert cross_entropy_cost(aL, Y) == pytest.approx(np.log(3.0))


def test_cost_is_finite_when_true_class_has_zero_probability():
    aL = np.roll(Y, 1, axis=0)
    cost = cross_entropy_cost(aL, Y)
    assert np.isfinite(cost)
    assert cost == pytest.approx(-np.log(1e-12))


def test_cost_rejects_mismatched_shapes():
    with pytest.raises(ShapeMismatch):
        cross_entropy_cost(np.ones((3, 3)) / 3, Y)


def test_accuracy_counts_matching_argmax_columns():
    aL = np.array(
        [
            [0.7, 0.1, 0.2, 0.1],
            [0.2, 0.8, 0.7, 0.1],
            [0.1, 0.1, 0.1, 0.8],
        ]
    )
    assert accuracy(aL, Y) == pytest.approx(0.5)
    assert accuracy(Y, Y) == 1.0
    with pytest.raises(ShapeMismatch):
        accuracy(aL[:, :2], Y)


def test_confusion_matrix_and_macro_f1():
    aL = np.array(
        [
            [0.7, 0.1, 0.2, 0.1],
            [0.2, 0.8, 0.7, 0.1],
            [0.1, 0.1, 0.1, 0.8],
        ]
    )
    cm = confusion_matrix(aL, Y)
    expected = np.array([[1, 0, 1], [0, 1, 0], [0, 1, 0]])
    assert np.array_equal(cm, expected)
    assert cm.sum() == 4
    assert macro_f1(Y, Y) == pytest.approx(1.0, abs=1e-6)
    assert 0.0 <= macro_f1(aL, Y) < 1.0


def test_compute_metrics_by_name():
    metrics = compute_metrics(default_metrics(num_classes=3), Y, Y)
    assert set(metrics) == {"loss", "accuracy", "macro_f1"}
    assert metrics["accuracy"] == 1.0
    with pytest.raises(KeyError):
        compute_metrics(["rmse"], Y, Y)
