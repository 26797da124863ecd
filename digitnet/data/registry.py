"""Dataset registry and metadata contracts."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, MutableMapping

from ..core.types import Batch

SPLITS = ("train", "val", "test")


@dataclass(frozen=True)
class DatasetSpec:
    """Column-major train/val/test splits produced by a dataset factory.

    Attributes
    ----------
    name:
        Registry identifier of the dataset.
    splits:
        Mapping of split name to a :class:`Batch` whose ``inputs`` are
        ``(input_dim, m)`` and whose ``targets`` are one-hot ``(num_classes, m)``.
    num_classes:
        Number of label classes.
    provenance:
        Free-form metadata recorded in the run manifest.
    """

    name: str
    splits: Dict[str, Batch]
    num_classes: int
    provenance: Dict[str, Any] = field(default_factory=dict)

    @property
    def input_dim(self) -> int:
        return int(self.splits["train"].inputs.shape[0])

    def split(self, name: str) -> Batch:
        try:
            return self.splits[name]
        except KeyError as exc:
            raise KeyError(f"Dataset {self.name!r} has no split {name!r}") from exc

    def sizes(self) -> Dict[str, int]:
        return {name: batch.size for name, batch in self.splits.items()}


DatasetFactory = Callable[..., DatasetSpec]


_REGISTRY: MutableMapping[str, DatasetFactory] = {}


def register_dataset(
    name: str | None = None,
    factory: DatasetFactory | None = None,
) -> Callable[[DatasetFactory], DatasetFactory] | DatasetFactory:
    """Register a dataset factory, either directly or as a decorator::

        @register_dataset("mnist")
        def build_mnist(**kwargs):
            ...
    """

    def _decorator(func: DatasetFactory) -> DatasetFactory:
        _REGISTRY[str(name or func.__name__)] = func
        return func

    if factory is not None:
        return _decorator(factory)
    if name is None:
        raise TypeError("register_dataset requires a name when used without a decorator")
    return _decorator


def get_dataset(dataset: str, /, **options: Any) -> DatasetSpec:
    """Build the :class:`DatasetSpec` registered as ``dataset``."""

    if dataset not in _REGISTRY:
        available = ", ".join(sorted(_REGISTRY))
        raise KeyError(f"Unknown dataset {dataset!r}. Available datasets: {available}")
    spec = _REGISTRY[dataset](**options)
    _validate_spec(spec)
    return spec


def available_datasets() -> Iterable[str]:
    return sorted(_REGISTRY)


def _validate_spec(spec: DatasetSpec) -> None:
    if "train" not in spec.splits:
        raise ValueError(f"Dataset {spec.name!r} does not provide a train split")
    for split, batch in spec.splits.items():
        if split not in SPLITS:
            raise ValueError(f"Unknown split {split!r} in dataset {spec.name!r}")
        if batch.inputs.shape[1] != batch.targets.shape[1]:
            raise ValueError(f"Split {split!r} inputs and targets are not column-aligned")
        if batch.targets.shape[0] != spec.num_classes:
            raise ValueError(
                f"Split {split!r} has {batch.targets.shape[0]} label rows, "
                f"expected {spec.num_classes}"
            )


def resolve_path(path: str | Path) -> Path:
    resolved = Path(path).expanduser()
    if not resolved.exists():
        raise FileNotFoundError(f"Dataset file not found: {resolved}")
    return resolved


__all__ = [
    "DatasetSpec",
    "SPLITS",
    "available_datasets",
    "get_dataset",
    "register_dataset",
    "resolve_path",
]
