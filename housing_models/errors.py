"""Error taxonomy for the cleaning, partitioning and model-selection stages."""

from __future__ import annotations

from typing import Iterable

from sklearn.exceptions import ConvergenceWarning as _SklearnConvergenceWarning


class HousingModelError(ValueError):
    """Base class for fatal pipeline errors."""


class SchemaError(HousingModelError):
    """Raised when the raw table lacks columns the pipeline needs."""

    def __init__(self, missing: Iterable[str]):
        self.missing = sorted(missing)
        super().__init__(f"Raw table is missing required columns: {', '.join(self.missing)}")


class EmptyResultError(HousingModelError):
    """Raised when filtering removes every row."""


class InvalidFractionError(HousingModelError):
    """Raised when a train fraction lies outside the open interval (0, 1)."""


class EmptyGridError(HousingModelError):
    """Raised when a hyperparameter grid expands to zero combinations."""


class ModelSelectionError(HousingModelError):
    """Raised when no grid combination produced a defined cross-validated error."""


class ConvergenceWarning(_SklearnConvergenceWarning):
    """A fit stopped before converging; its fold error is left undefined."""
