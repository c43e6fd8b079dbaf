"""Feature table construction: cleaning, one-hot encoding and the log target."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Mapping, Sequence, Tuple

import mlflow
import numpy as np
import pandas as pd

from .cleaning import categorical_columns, category_order, clean
from .config import CleaningConfig
from .logging_utils import get_logger

logger = get_logger(__name__)

TARGET_COLUMN = "log_price_per_area"
_NON_FEATURE_COLUMNS = ["price_per_area", "trade_date"]


@dataclass(frozen=True)
class FeatureMetadata:
    numeric: List[str]
    categorical: List[str]
    feature_names: List[str]
    reference_levels: Dict[str, str]

    def to_dict(self) -> dict:
        return {
            "numeric": self.numeric,
            "categorical": self.categorical,
            "feature_names": self.feature_names,
            "reference_levels": self.reference_levels,
        }


def encode_categoricals(
    df: pd.DataFrame,
    columns: Sequence[str],
    orders: Mapping[str, Sequence[str]],
) -> Tuple[pd.DataFrame, Dict[str, str]]:
    """One-hot encode ``columns`` into k-1 integer indicators each.

    Categories follow the declared order in ``orders`` restricted to observed
    values; labels missing from the declared order are appended alphabetically.
    The first observed category is the dropped reference level.
    """

    df = df.copy()
    reference_levels: Dict[str, str] = {}
    for column in columns:
        observed = set(df[column].dropna().unique())
        declared = [label for label in orders.get(column, []) if label in observed]
        extra = sorted(observed - set(declared))
        categories = declared + extra
        df[column] = pd.Categorical(df[column], categories=categories)
        if categories:
            reference_levels[column] = categories[0]

    encoded = pd.get_dummies(df, columns=list(columns), drop_first=True, dtype=int)
    logger.info("Encoded %d categorical columns into %d features", len(columns), encoded.shape[1])
    return encoded, reference_levels


def transform_with_metadata(
    raw_table: pd.DataFrame,
    config: CleaningConfig,
) -> Tuple[pd.DataFrame, int, FeatureMetadata]:
    cleaned, rejected = clean(raw_table, config)

    categorical = categorical_columns(cleaned, config)
    orders = {column: category_order(column, config) for column in categorical}
    encoded, reference_levels = encode_categoricals(cleaned, categorical, orders)

    encoded[TARGET_COLUMN] = np.log(encoded["price_per_area"].astype(float))
    feature_table = encoded.drop(columns=[c for c in _NON_FEATURE_COLUMNS if c in encoded.columns])

    feature_names = [c for c in feature_table.columns if c != TARGET_COLUMN]
    numeric = [c for c in cleaned.columns if c not in categorical and c not in _NON_FEATURE_COLUMNS]
    metadata = FeatureMetadata(
        numeric=numeric,
        categorical=categorical,
        feature_names=feature_names,
        reference_levels=reference_levels,
    )
    return feature_table, rejected, metadata


def transform(raw_table: pd.DataFrame, config: CleaningConfig) -> Tuple[pd.DataFrame, int]:
    """Clean and encode ``raw_table``; return ``(feature_table, rejected_count)``."""

    feature_table, rejected, _ = transform_with_metadata(raw_table, config)
    return feature_table, rejected


def log_metadata_to_mlflow(feature_metadata: FeatureMetadata, rejected_count: int) -> None:
    if mlflow.active_run() is None:
        return

    mlflow.log_params(
        {
            "num_numeric_features": len(feature_metadata.numeric),
            "num_categorical_features": len(feature_metadata.categorical),
            "total_transformed_features": len(feature_metadata.feature_names),
            "rejected_rows": rejected_count,
        }
    )
    mlflow.log_dict(feature_metadata.to_dict(), "feature_engineering/feature_metadata.json")
