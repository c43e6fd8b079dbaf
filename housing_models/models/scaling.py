"""Min-max rescaling of continuous inputs and the target for gradient-trained networks."""

from __future__ import annotations

from typing import List, Optional

import numpy as np
import pandas as pd
from sklearn.preprocessing import MinMaxScaler


def continuous_columns(X: pd.DataFrame) -> List[str]:
    """Columns that are not 0/1 indicators."""

    columns = []
    for column in X.columns:
        values = X[column]
        if not values.isin([0, 1]).all():
            columns.append(column)
    return columns


class ContinuousRescaler:
    """Rescale continuous columns to ``[0, 1]`` with statistics from the fitting rows only."""

    def __init__(self, columns: Optional[List[str]] = None):
        self.columns = columns
        self._scaler: Optional[MinMaxScaler] = None

    def fit(self, X: pd.DataFrame) -> "ContinuousRescaler":
        if self.columns is None:
            self.columns = continuous_columns(X)
        if self.columns:
            self._scaler = MinMaxScaler().fit(X[self.columns].astype(float))
        return self

    def transform(self, X: pd.DataFrame) -> pd.DataFrame:
        out = X.astype(float)
        if self._scaler is not None:
            out[self.columns] = self._scaler.transform(X[self.columns].astype(float))
        return out

    def inverse_transform(self, X: pd.DataFrame) -> pd.DataFrame:
        out = X.astype(float)
        if self._scaler is not None:
            out[self.columns] = self._scaler.inverse_transform(X[self.columns].astype(float))
        return out


class TargetRescaler:
    def __init__(self):
        self._scaler = MinMaxScaler()

    def fit(self, y) -> "TargetRescaler":
        self._scaler.fit(np.asarray(y, dtype=float).reshape(-1, 1))
        return self

    def transform(self, y) -> np.ndarray:
        return self._scaler.transform(np.asarray(y, dtype=float).reshape(-1, 1)).ravel()

    def inverse_transform(self, y) -> np.ndarray:
        return self._scaler.inverse_transform(np.asarray(y, dtype=float).reshape(-1, 1)).ravel()
