"""Cross-validated hyperparameter selection for one regressor family."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Tuple, Union

import numpy as np
import pandas as pd
from sklearn.model_selection import KFold, ParameterGrid

from .errors import EmptyGridError, ModelSelectionError
from .feature_engineering import TARGET_COLUMN
from .logging_utils import get_logger
from .metrics import rmse
from .models import FittedModel, TrainableRegressor, get_regressor

logger = get_logger(__name__)


@dataclass(frozen=True)
class ModelFitResult:
    family: str
    params: Dict[str, Any]
    model: FittedModel
    cv_error: float
    cv_method: str


def expand_grid(grid: Mapping[str, Any]) -> List[Dict[str, Any]]:
    """Expand ``grid`` into its combinations; scalar values count as one-element lists."""

    if not grid:
        raise EmptyGridError("Hyperparameter grid is empty")

    normalised = {
        name: list(values) if isinstance(values, (list, tuple)) else [values]
        for name, values in grid.items()
    }
    empty = [name for name, values in normalised.items() if not values]
    if empty:
        raise EmptyGridError(f"Hyperparameter grid has no values for {', '.join(empty)}")
    return list(ParameterGrid(normalised))


def _display_value(value: Any) -> Any:
    if isinstance(value, (list, tuple, dict)):
        return str(value)
    return value


def _fold_error(
    regressor: TrainableRegressor,
    X: pd.DataFrame,
    y: np.ndarray,
    train_idx: np.ndarray,
    test_idx: np.ndarray,
    params: Dict[str, Any],
) -> float:
    """RMSE on the held-out fold, or NaN when the fit fails or does not converge."""

    try:
        fitted = regressor.fit(X.iloc[train_idx], y[train_idx], params)
        predictions = regressor.predict(fitted, X.iloc[test_idx])
    except Exception as exc:  # a failing combination is recorded, not raised
        logger.warning("%s fit with %s failed on a fold: %s", regressor.name, params, exc)
        return float("nan")

    if not fitted.converged:
        return float("nan")
    if not np.all(np.isfinite(predictions)):
        logger.warning("%s fit with %s produced non-finite predictions", regressor.name, params)
        return float("nan")
    return rmse(y[test_idx], predictions)


def _oob_error(
    regressor: TrainableRegressor,
    X: pd.DataFrame,
    y: np.ndarray,
    params: Dict[str, Any],
) -> Tuple[Union[FittedModel, None], float]:
    try:
        fitted, error = regressor.fit_oob(X, y, params)
    except Exception as exc:  # a failing combination is recorded, not raised
        logger.warning("%s out-of-bag fit with %s failed: %s", regressor.name, params, exc)
        return None, float("nan")
    return fitted, error


def evaluate(
    train_table: pd.DataFrame,
    family: Union[str, TrainableRegressor],
    grid: Mapping[str, Any],
    cv_folds: int,
    *,
    target_column: str = TARGET_COLUMN,
    seed: int = 42,
    use_oob: bool = False,
) -> Tuple[ModelFitResult, pd.DataFrame]:
    """Score every grid combination and refit the best one on the whole training table.

    Each combination is scored by the mean held-out RMSE over ``cv_folds``
    shuffled folds, or by out-of-bag RMSE when ``use_oob`` is set and the
    family supports it. Folds whose fit fails or does not converge are left
    undefined and ignored in the mean; a combination with no defined fold
    cannot be selected.

    Returns:
        The best ``ModelFitResult`` and a table with one row per combination.
    """

    combinations = expand_grid(grid)
    regressor = get_regressor(family, seed) if isinstance(family, str) else family
    oob = use_oob and regressor.supports_oob

    X = train_table.drop(columns=[target_column])
    y = train_table[target_column].to_numpy(dtype=float)
    kfold = None if oob else KFold(n_splits=cv_folds, shuffle=True, random_state=seed)

    rows = []
    oob_fits: Dict[int, FittedModel] = {}
    for index, params in enumerate(combinations):
        if oob:
            fitted, error = _oob_error(regressor, X, y, params)
            if fitted is not None:
                oob_fits[index] = fitted
            errors = np.array([error])
        else:
            errors = np.array([
                _fold_error(regressor, X, y, train_idx, test_idx, params)
                for train_idx, test_idx in kfold.split(X)
            ])

        defined = errors[np.isfinite(errors)]
        row = {name: _display_value(value) for name, value in params.items()}
        row.update({
            "cv_rmse": float(defined.mean()) if defined.size else float("nan"),
            "cv_rmse_std": float(defined.std()) if defined.size else float("nan"),
            "failed_folds": int(errors.size - defined.size),
            "method": "oob" if oob else "kfold",
        })
        rows.append(row)
        logger.info("%s %s -> cv_rmse=%.5f (%d failed)", regressor.name, params, row["cv_rmse"], row["failed_folds"])

    cv_error_table = pd.DataFrame(rows)
    valid = cv_error_table["cv_rmse"].notna()
    if not valid.any():
        raise ModelSelectionError(f"Every {regressor.name} combination failed cross-validation")

    best_index = int(cv_error_table.loc[valid, "cv_rmse"].idxmin())
    best_params = combinations[best_index]
    best_model = oob_fits.get(best_index)
    if best_model is None:
        best_model = regressor.fit(X, y, best_params)

    logger.info("Selected %s with %s", regressor.name, best_params)
    best_fit = ModelFitResult(
        family=regressor.name,
        params=best_params,
        model=best_model,
        cv_error=float(cv_error_table.loc[best_index, "cv_rmse"]),
        cv_method="oob" if oob else "kfold",
    )
    return best_fit, cv_error_table
