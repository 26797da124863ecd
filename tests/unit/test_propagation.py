import numpy as np
import pytest

from digitnet.core.errors import MissingGradient, ShapeMismatch
from digitnet.core.model import Model
from digitnet.core.optim import update
from digitnet.core.propagation import backward, forward, predict
from digitnet.data.utils import one_hot
from digitnet.training.losses import cross_entropy_cost


def _model(sizes, acts, input_dim, seed=0, lr=0.05):
    return Model(sizes, acts, learning_rate=lr, input_dim=input_dim, rng=np.random.default_rng(seed))


def _batch(input_dim, num_classes, m, seed=0):
    rng = np.random.default_rng(seed)
    x = rng.standard_normal((input_dim, m))
    y = one_hot(rng.integers(0, num_classes, size=m), num_classes)
    return x, y


@pytest.mark.parametrize(
    "sizes, acts, input_dim, m",
    [
        ([3], ["softmax"], 4, 1),
        ([5, 4, 3], ["relu", "tanh", "softmax"], 6, 7),
        ([8, 10], ["sigmoid", "softmax"], 784, 3),
        ([6, 6, 2], ["softplus", "relu", "softmax"], 5, 11),
    ],
)
def test_forward_output_shape(sizes, acts, input_dim, m):
    model = _model(sizes, acts, input_dim)
    x, _ = _batch(input_dim, sizes[-1], m)
    aL, cache = forward(x, model)
    assert aL.shape == (sizes[-1], m)
    assert np.allclose(aL.sum(axis=0), 1.0)
    assert len(cache) == len(sizes)
    assert cache.a_prev[0] is x
    for idx, size in enumerate(sizes):
        assert cache.z[idx].shape == (size, m)


def test_forward_is_idempotent_and_does_not_mutate():
    model = _model([5, 3], ["relu", "softmax"], 4)
    x, _ = _batch(4, 3, 6)
    before = [p.weights.copy() for p in model.params]
    first, _ = forward(x, model)
    second, _ = forward(x, model)
    assert np.array_equal(first, second)
    for w, p in zip(before, model.params):
        assert np.array_equal(w, p.weights)
    assert model.grads == [None, None]


@pytest.mark.parametrize("x", [np.zeros((3, 2)), np.zeros(4), np.zeros((4, 2, 1))])
def test_forward_rejects_mismatched_inputs(x):
    model = _model([5, 3], ["relu", "softmax"], 4)
    with pytest.raises(ShapeMismatch):
        forward(x, model)


def test_backward_populates_gradients_matching_parameters():
    model = _model([5, 4, 3], ["relu", "sigmoid", "softmax"], 6)
    x, y = _batch(6, 3, 8)
    aL, cache = forward(x, model)
    backward(aL, y, cache, model)
    for params, grads in zip(model.params, model.grads):
        assert grads.d_weights.shape == params.weights.shape
        assert grads.d_bias.shape == params.bias.shape


def test_output_gradient_uses_closed_form():
    model = _model([3], ["softmax"], 2)
    x, y = _batch(2, 3, 4)
    aL, cache = forward(x, model)
    backward(aL, y, cache, model)
    expected_db = np.mean(aL - y, axis=1, keepdims=True)
    assert np.allclose(model.grads[0].d_bias, expected_db)
    assert np.allclose(model.grads[0].d_weights, (aL - y) @ x.T / 4)


def _numeric_gradients(model, x, y, h=1e-5):
    numeric = []
    for layer in model.params:
        grads = []
        for array in (layer.weights, layer.bias):
            approx = np.zeros_like(array)
            for idx in np.ndindex(array.shape):
                original = array[idx]
                array[idx] = original + h
                plus = cross_entropy_cost(forward(x, model)[0], y)
                array[idx] = original - h
                minus = cross_entropy_cost(forward(x, model)[0], y)
                array[idx] = original
                approx[idx] = (plus - minus) / (2 * h)
            grads.append(approx)
        numeric.append(grads)
    return numeric


@pytest.mark.parametrize(
    "sizes, acts",
    [
        ([4, 3], ["tanh", "softmax"]),
        ([4, 3], ["sigmoid", "softmax"]),
        ([4, 3], ["softplus", "softmax"]),
        ([5, 4, 3], ["relu", "tanh", "softmax"]),
    ],
)
def test_gradients_match_finite_differences(sizes, acts):
    model = _model(sizes, acts, input_dim=3, seed=4)
    x, y = _batch(3, sizes[-1], 5, seed=5)
    aL, cache = forward(x, model)
    backward(aL, y, cache, model)
    numeric = _numeric_gradients(model, x, y)
    for grads, (num_w, num_b) in zip(model.grads, numeric):
        assert np.allclose(grads.d_weights, num_w, atol=1e-5)
        assert np.allclose(grads.d_bias, num_b, atol=1e-5)


def test_one_gradient_step_decreases_cost():
    model = _model([4, 3], ["relu", "softmax"], input_dim=2, seed=1, lr=0.01)
    x, y = _batch(2, 3, 5, seed=2)
    aL, cache = forward(x, model)
    before = cross_entropy_cost(aL, y)
    backward(aL, y, cache, model)
    update(model)
    after = cross_entropy_cost(forward(x, model)[0], y)
    assert after < before


def test_backward_rejects_cache_from_another_batch():
    model = _model([4, 3], ["relu", "softmax"], 2)
    x, y = _batch(2, 3, 5)
    _, cache = forward(x[:, :3], model)
    aL, _ = forward(x, model)
    with pytest.raises(ShapeMismatch):
        backward(aL, y, cache, model)


def test_backward_rejects_mismatched_labels():
    model = _model([4, 3], ["relu", "softmax"], 2)
    x, y = _batch(2, 3, 5)
    aL, cache = forward(x, model)
    with pytest.raises(ShapeMismatch):
        backward(aL, y[:, :4], cache, model)
    cache.z.pop()
    with pytest.raises(ShapeMismatch):
        backward(aL, y, cache, model)


def test_update_applies_gradient_descent_in_place():
    model = _model([4, 3], ["relu", "softmax"], 2, lr=0.5)
    x, y = _batch(2, 3, 5)
    aL, cache = forward(x, model)
    backward(aL, y, cache, model)
    weights_ref = [p.weights for p in model.params]
    expected = [p.weights - 0.5 * g.d_weights for p, g in zip(model.params, model.grads)]
    expected_b = [p.bias - 0.5 * g.d_bias for p, g in zip(model.params, model.grads)]
    update(model)
    for ref, params, w, b in zip(weights_ref, model.params, expected, expected_b):
        assert params.weights is ref
        assert np.allclose(params.weights, w)
        assert np.allclose(params.bias, b)


def test_update_without_backward_raises_missing_gradient():
    model = _model([4, 3], ["relu", "softmax"], 2)
    with pytest.raises(MissingGradient, match="layer 0"):
        update(model)


def test_gradients_are_consumed_by_update():
    model = _model([4, 3], ["relu", "softmax"], 2)
    x, y = _batch(2, 3, 5)
    aL, cache = forward(x, model)
    backward(aL, y, cache, model)
    update(model)
    with pytest.raises(MissingGradient):
        update(model)


def test_predict_returns_classes_or_distribution():
    model = _model([5, 3], ["relu", "softmax"], 4)
    x, _ = _batch(4, 3, 6)
    probs = predict(x, model, probabilities=True)
    classes = predict(x, model)
    assert probs.shape == (3, 6)
    assert classes.shape == (6,)
    assert np.array_equal(classes, probs.argmax(axis=0))
