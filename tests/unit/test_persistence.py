import numpy as np
import pytest

from digitnet.core.model import Model
from digitnet.core.propagation import backward, forward, predict
from digitnet.data.utils import one_hot
from digitnet.persistence import load_model, save_model


def _trained_model():
    model = Model(
        [6, 4],
        ["tanh", "softmax"],
        learning_rate=0.2,
        batch_size=16,
        input_dim=5,
        rng=np.random.default_rng(0),
    )
    rng = np.random.default_rng(1)
    x = rng.standard_normal((5, 12))
    y = one_hot(rng.integers(0, 4, size=12), 4)
    aL, cache = forward(x, model)
    backward(aL, y, cache, model)
    return model, x


def test_round_trip_preserves_configuration_and_predictions(tmp_path):
    model, x = _trained_model()
    path = save_model(model, tmp_path / "models" / "digits.npz")
    assert path.exists()

    restored = load_model(path)
    assert restored.describe() == model.describe()
    assert np.allclose(predict(x, restored, probabilities=True), predict(x, model, probabilities=True))


def test_gradients_are_not_persisted(tmp_path):
    model, _ = _trained_model()
    assert model.grads[0] is not None
    restored = load_model(save_model(model, tmp_path / "m.npz"))
    assert restored.grads == [None, None]
    with np.load(tmp_path / "m.npz") as data:
        assert sorted(data.files) == ["W0", "W1", "__meta__", "b0", "b1"]


def test_save_appends_npz_suffix(tmp_path):
    model, _ = _trained_model()
    path = save_model(model, tmp_path / "model")
    assert path.name == "model.npz"


def test_load_rejects_missing_or_foreign_files(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_model(tmp_path / "absent.npz")
    foreign = tmp_path / "foreign.npz"
    np.savez(foreign, weights=np.zeros(3))
    with pytest.raises(ValueError):
        load_model(foreign)
