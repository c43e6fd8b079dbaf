"""Trainable regressor families behind a uniform fit/predict interface."""

from __future__ import annotations

import warnings
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple

import numpy as np
import pandas as pd
from sklearn.ensemble import GradientBoostingRegressor, RandomForestRegressor
from sklearn.exceptions import ConvergenceWarning as SklearnConvergenceWarning
from sklearn.linear_model import LinearRegression
from sklearn.neural_network import MLPRegressor

from ..errors import ConvergenceWarning
from ..logging_utils import get_logger
from ..metrics import rmse
from .pipelines import KerasModelHandle, build_keras_regressor
from .scaling import ContinuousRescaler, TargetRescaler

logger = get_logger(__name__)


@dataclass(frozen=True)
class FittedModel:
    family: str
    params: Dict[str, Any]
    estimator: Any
    feature_names: List[str]
    converged: bool = True
    x_scaler: Optional[ContinuousRescaler] = field(default=None, repr=False)
    y_scaler: Optional[TargetRescaler] = field(default=None, repr=False)


class TrainableRegressor:
    """Base family: ``fit(X, y, params) -> FittedModel`` and ``predict(fitted, X)``.

    Families with ``scaled = True`` rescale continuous inputs and the target to
    ``[0, 1]`` using the rows passed to ``fit`` and undo the target scaling on
    prediction.
    """

    name = "base"
    scaled = False
    supports_oob = False

    def __init__(self, seed: int = 42):
        self.seed = seed

    def _fit_estimator(self, X: pd.DataFrame, y: np.ndarray, params: Dict[str, Any]) -> Tuple[Any, bool]:
        raise NotImplementedError

    def _predict_estimator(self, estimator: Any, X: pd.DataFrame) -> np.ndarray:
        return np.asarray(estimator.predict(X), dtype=float).ravel()

    def fit(self, X: pd.DataFrame, y, params: Dict[str, Any]) -> FittedModel:
        x_scaler = y_scaler = None
        X_fit = X
        y_fit = np.asarray(y, dtype=float)
        if self.scaled:
            x_scaler = ContinuousRescaler().fit(X)
            y_scaler = TargetRescaler().fit(y_fit)
            X_fit = x_scaler.transform(X)
            y_fit = y_scaler.transform(y_fit)

        estimator, converged = self._fit_estimator(X_fit, y_fit, dict(params))
        if not converged:
            logger.warning("%s fit with %s did not converge", self.name, params)
            warnings.warn(ConvergenceWarning(f"{self.name} fit with {params} did not converge"))

        return FittedModel(
            family=self.name,
            params=dict(params),
            estimator=estimator,
            feature_names=list(X.columns),
            converged=converged,
            x_scaler=x_scaler,
            y_scaler=y_scaler,
        )

    def predict(self, fitted: FittedModel, X: pd.DataFrame) -> np.ndarray:
        X = X[fitted.feature_names]
        if fitted.x_scaler is not None:
            X = fitted.x_scaler.transform(X)
        predictions = self._predict_estimator(fitted.estimator, X)
        if fitted.y_scaler is not None:
            predictions = fitted.y_scaler.inverse_transform(predictions)
        return predictions


class SklearnRegressor(TrainableRegressor):
    """Family backed by a scikit-learn estimator class."""

    estimator_cls: Callable[..., Any] = LinearRegression
    seeded = True

    def _build(self, params: Dict[str, Any]):
        if self.seeded:
            params.setdefault("random_state", self.seed)
        return self.estimator_cls(**params)

    def _fit_estimator(self, X, y, params):
        estimator = self._build(params)
        with warnings.catch_warnings(record=True) as caught:
            warnings.simplefilter("always", SklearnConvergenceWarning)
            estimator.fit(X, y)
        converged = not any(issubclass(w.category, SklearnConvergenceWarning) for w in caught)
        return estimator, converged


class LinearFamily(SklearnRegressor):
    name = "linear"
    estimator_cls = LinearRegression
    seeded = False


class RandomForestFamily(SklearnRegressor):
    name = "random_forest"
    estimator_cls = RandomForestRegressor
    supports_oob = True

    def fit_oob(self, X: pd.DataFrame, y, params: Dict[str, Any]) -> Tuple[FittedModel, float]:
        """Fit once with bootstrap sampling and return the out-of-bag RMSE."""

        params = {**params, "oob_score": True, "bootstrap": True}
        fitted = self.fit(X, y, params)
        oob_predictions = fitted.estimator.oob_prediction_
        return fitted, rmse(np.asarray(y, dtype=float), oob_predictions)


class GradientBoostingFamily(SklearnRegressor):
    name = "gradient_boosting"
    estimator_cls = GradientBoostingRegressor


class MLPFamily(SklearnRegressor):
    """Feed-forward perceptron; non-convergence within ``max_iter`` is reported."""

    name = "mlp"
    estimator_cls = MLPRegressor
    scaled = True

    def _build(self, params):
        if "hidden_layer_sizes" in params:
            params["hidden_layer_sizes"] = tuple(int(u) for u in np.atleast_1d(params["hidden_layer_sizes"]))
        return super()._build(params)


class KerasNetworkFamily(TrainableRegressor):
    """Multi-layer backpropagation network trained with Keras."""

    name = "neural_network"
    scaled = True

    def _fit_estimator(self, X, y, params):
        from tensorflow import keras

        keras.utils.set_random_seed(self.seed)
        model = build_keras_regressor(X.shape[1], params)
        epochs = int(params.get("epochs", 100))
        batch_size = int(params.get("batch_size", 32))
        logger.debug("Training neural network: %d epochs, batch_size=%d", epochs, batch_size)
        history = model.fit(
            X.to_numpy().astype("float32"),
            np.asarray(y, dtype="float32"),
            epochs=epochs,
            batch_size=batch_size,
            verbose=0,
            callbacks=[keras.callbacks.TerminateOnNaN()],
        )
        losses = history.history.get("loss", [])
        converged = bool(losses) and bool(np.isfinite(losses[-1]))
        return KerasModelHandle(model), converged

    def _predict_estimator(self, estimator, X):
        return estimator.predict(X.to_numpy().astype("float32")).astype(float)


FAMILIES: Dict[str, Callable[[int], TrainableRegressor]] = {
    LinearFamily.name: LinearFamily,
    RandomForestFamily.name: RandomForestFamily,
    GradientBoostingFamily.name: GradientBoostingFamily,
    MLPFamily.name: MLPFamily,
    KerasNetworkFamily.name: KerasNetworkFamily,
}


def get_regressor(family: str, seed: int = 42) -> TrainableRegressor:
    if family not in FAMILIES:
        raise ValueError(f"Unsupported model family: {family}")
    return FAMILIES[family](seed)
