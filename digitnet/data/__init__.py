"""Dataset registry and providers."""

# Ensure built-in datasets register themselves when the package is imported.
from . import csv_digits as _csv_digits  # noqa: F401
from . import mnist as _mnist  # noqa: F401
from . import synthetic as _synthetic  # noqa: F401
from .registry import DatasetSpec, available_datasets, get_dataset, register_dataset
from .utils import one_hot

__all__ = [
    "DatasetSpec",
    "available_datasets",
    "get_dataset",
    "one_hot",
    "register_dataset",
]
