"""Keras network construction and a picklable model holder for the fit cache."""

from __future__ import annotations

import tempfile
from pathlib import Path
from typing import Any, Dict, Optional

import numpy as np


def build_keras_regressor(input_dim: int, hyperparameters: Dict[str, Any]):
    from tensorflow import keras
    from tensorflow.keras import layers

    hidden_units = hyperparameters.get("hidden_units", [32, 16])
    activation = hyperparameters.get("activation", "relu")
    dropout = float(hyperparameters.get("dropout", 0.0))
    learning_rate = float(hyperparameters.get("learning_rate", 0.001))

    model = keras.Sequential()
    model.add(layers.Input(shape=(input_dim,)))
    for units in hidden_units:
        model.add(layers.Dense(int(units), activation=activation))
        if dropout > 0:
            model.add(layers.Dropout(dropout))
    model.add(layers.Dense(1))

    optimizer = keras.optimizers.Adam(learning_rate=learning_rate)
    model.compile(optimizer=optimizer, loss="mse", metrics=["mae"])
    return model


class KerasModelHandle:
    """Holds a Keras model and pickles it as an in-memory ``.keras`` archive."""

    def __init__(self, model=None):
        self._model = model
        self._archive: Optional[bytes] = None

    def _ensure_model(self) -> None:
        if self._model is None:
            from tensorflow import keras

            with tempfile.TemporaryDirectory() as tmp_dir:
                path = Path(tmp_dir) / "model.keras"
                path.write_bytes(self._archive)
                self._model = keras.models.load_model(path)

    def predict(self, X: np.ndarray) -> np.ndarray:
        self._ensure_model()
        return self._model.predict(X, verbose=0).flatten()

    def __getstate__(self):
        state = self.__dict__.copy()
        if self._model is not None:
            with tempfile.TemporaryDirectory() as tmp_dir:
                path = Path(tmp_dir) / "model.keras"
                self._model.save(path)
                state["_archive"] = path.read_bytes()
        state["_model"] = None
        return state

    def __setstate__(self, state):
        self.__dict__.update(state)
