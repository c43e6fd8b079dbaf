"""Error metrics for comparing fitted regressors."""

from __future__ import annotations

from typing import NamedTuple

import numpy as np
from sklearn.metrics import mean_absolute_error, mean_squared_error, median_absolute_error


class MetricReport(NamedTuple):
    method: str
    mse: float
    rmse: float
    mae: float
    mape: float
    medae: float


def mean_absolute_percentage_error(real, predicted) -> float:
    """Mean of ``|real - predicted| / |real|``; non-finite when any real value is zero."""

    real = np.asarray(real, dtype=float)
    predicted = np.asarray(predicted, dtype=float)
    with np.errstate(divide="ignore", invalid="ignore"):
        return float(np.mean(np.abs((real - predicted) / real)))


def report(real_values, predicted_values, name: str) -> MetricReport:
    """Compute the comparison metrics for one ``(real, predicted)`` pair."""

    real = np.asarray(real_values, dtype=float).ravel()
    predicted = np.asarray(predicted_values, dtype=float).ravel()
    if real.size == 0:
        raise ValueError("Cannot compute metrics on empty inputs")
    if real.shape != predicted.shape:
        raise ValueError(f"Length mismatch: {real.size} real values vs {predicted.size} predictions")

    mse = float(mean_squared_error(real, predicted))
    return MetricReport(
        method=name,
        mse=mse,
        rmse=float(np.sqrt(mse)),
        mae=float(mean_absolute_error(real, predicted)),
        mape=mean_absolute_percentage_error(real, predicted),
        medae=float(median_absolute_error(real, predicted)),
    )


def rmse(real_values, predicted_values) -> float:
    return float(np.sqrt(mean_squared_error(real_values, predicted_values)))
