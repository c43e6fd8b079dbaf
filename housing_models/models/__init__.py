"""Regressor families used by the model-selection harness."""

from .regressors import FAMILIES, FittedModel, TrainableRegressor, get_regressor

__all__ = ["FAMILIES", "FittedModel", "TrainableRegressor", "get_regressor"]
