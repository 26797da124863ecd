"""Parameter store for the fully-connected digit classifier."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Mapping, MutableSequence, Sequence

import numpy as np

from .activations import Activation
from .errors import ShapeMismatch, UnsupportedActivation
from .types import Array, LayerGrads, LayerParams

DEFAULT_INPUT_DIM = 784


def he_init(
    layer_sizes: Sequence[int], input_dim: int, rng: np.random.Generator
) -> List[LayerParams]:
    """Sample He-scaled weights and zero biases for every layer."""

    params: List[LayerParams] = []
    prev = input_dim
    for size in layer_sizes:
        weights = rng.standard_normal((size, prev)) * np.sqrt(2.0 / prev)
        params.append(LayerParams(weights=weights, bias=np.zeros((size, 1))))
        prev = size
    return params


@dataclass
class Model:
    """Layer configuration, parameters and the transient gradients."""

    layer_sizes: Sequence[int]
    activations: Sequence[Activation | str]
    learning_rate: float = 0.05
    batch_size: int = 64
    input_dim: int = DEFAULT_INPUT_DIM
    rng: np.random.Generator | None = field(default=None, repr=False, compare=False)
    params: MutableSequence[LayerParams] = field(init=False, repr=False)
    grads: MutableSequence[LayerGrads | None] = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self.layer_sizes = [int(size) for size in self.layer_sizes]
        self.activations = [Activation.parse(kind) for kind in self.activations]
        self.learning_rate = float(self.learning_rate)
        self.batch_size = int(self.batch_size)
        self.input_dim = int(self.input_dim)
        self._validate()
        self.reset(self.rng)

    def _validate(self) -> None:
        if not self.layer_sizes:
            raise ValueError("layer_sizes must contain at least one layer")
        if any(size <= 0 for size in self.layer_sizes):
            raise ValueError(f"layer sizes must be positive, got {self.layer_sizes}")
        if len(self.activations) != len(self.layer_sizes):
            raise ValueError(
                f"expected {len(self.layer_sizes)} activations, got {len(self.activations)}"
            )
        if self.activations[-1] is not Activation.SOFTMAX:
            raise UnsupportedActivation(
                f"output layer must use softmax, got {self.activations[-1].value!r}"
            )
        if self.input_dim <= 0:
            raise ValueError("input_dim must be positive")
        if self.learning_rate <= 0:
            raise ValueError("learning_rate must be positive")
        if self.batch_size <= 0:
            raise ValueError("batch_size must be positive")

    @property
    def num_layers(self) -> int:
        return len(self.layer_sizes)

    @property
    def num_classes(self) -> int:
        return self.layer_sizes[-1]

    def reset(self, rng: np.random.Generator | None = None) -> None:
        """Re-draw the parameters and drop any gradients."""

        rng = rng if rng is not None else np.random.default_rng()
        self.params = he_init(self.layer_sizes, self.input_dim, rng)
        self.grads = [None] * self.num_layers

    def set_hyperparameters(
        self, *, learning_rate: float | None = None, batch_size: int | None = None
    ) -> None:
        """Change the step size or batch size of an existing model; parameters are kept."""

        if learning_rate is not None:
            if float(learning_rate) <= 0:
                raise ValueError("learning_rate must be positive")
            self.learning_rate = float(learning_rate)
        if batch_size is not None:
            if int(batch_size) <= 0:
                raise ValueError("batch_size must be positive")
            self.batch_size = int(batch_size)

    def fan_in(self, index: int) -> int:
        return self.input_dim if index == 0 else self.layer_sizes[index - 1]

    def param_shape(self, index: int) -> tuple[tuple[int, int], tuple[int, int]]:
        size = self.layer_sizes[index]
        return (size, self.fan_in(index)), (size, 1)

    def state_dict(self) -> Mapping[str, Array]:
        state = {}
        for idx, layer in enumerate(self.params):
            state[f"W{idx}"] = layer.weights.copy()
            state[f"b{idx}"] = layer.bias.copy()
        return state

    def load_state_dict(self, state: Mapping[str, Array]) -> None:
        loaded: List[LayerParams] = []
        for idx in range(self.num_layers):
            w_key, b_key = f"W{idx}", f"b{idx}"
            if w_key not in state or b_key not in state:
                raise KeyError(f"Missing parameters for layer {idx} in state dict")
            w_shape, b_shape = self.param_shape(idx)
            weights = np.array(state[w_key], dtype=np.float64)
            bias = np.array(state[b_key], dtype=np.float64)
            if weights.shape != w_shape or bias.shape != b_shape:
                raise ShapeMismatch(
                    f"layer {idx}: got W{weights.shape} b{bias.shape}, "
                    f"expected W{w_shape} b{b_shape}"
                )
            loaded.append(LayerParams(weights=weights, bias=bias))
        self.params = loaded
        self.grads = [None] * self.num_layers

    def parameter_count(self) -> int:
        return int(sum(p.weights.size + p.bias.size for p in self.params))

    def describe(self) -> Mapping[str, object]:
        return {
            "input_dim": self.input_dim,
            "layer_sizes": list(self.layer_sizes),
            "activations": [kind.value for kind in self.activations],
            "learning_rate": self.learning_rate,
            "batch_size": self.batch_size,
        }


__all__ = ["DEFAULT_INPUT_DIM", "Model", "he_init"]
