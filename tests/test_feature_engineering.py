from __future__ import annotations

import numpy as np
import pandas as pd

from housing_models.config import CleaningConfig
from housing_models.feature_engineering import (
    TARGET_COLUMN,
    encode_categoricals,
    transform,
    transform_with_metadata,
)


def _indicators(table: pd.DataFrame, column: str) -> list:
    return [c for c in table.columns if c.startswith(f"{column}_")]


def test_transform_returns_complete_numeric_table(raw_table):
    feature_table, rejected = transform(raw_table, CleaningConfig())

    assert rejected == 0
    assert len(feature_table) == 10
    assert TARGET_COLUMN in feature_table.columns
    assert "price_per_area" not in feature_table.columns
    assert "trade_date" not in feature_table.columns
    assert feature_table.notna().all().all()
    assert all(pd.api.types.is_numeric_dtype(dtype) for dtype in feature_table.dtypes)
    np.testing.assert_allclose(feature_table[TARGET_COLUMN], np.log(raw_table["price"].astype(float)))


def test_one_hot_emits_k_minus_one_indicators(raw_table):
    feature_table, _, metadata = transform_with_metadata(raw_table, CleaningConfig())

    # fixture districts: DongCheng (1), ChaoYang (7), HaiDian (8)
    district_columns = _indicators(feature_table, "district")
    assert sorted(district_columns) == ["district_ChaoYang", "district_HaiDian"]
    assert metadata.reference_levels["district"] == "DongCheng"

    indicator_sum = feature_table[district_columns].sum(axis=1)
    reference = (indicator_sum == 0).astype(int)
    assert ((indicator_sum + reference) == 1).all()


def test_indicators_are_binary(raw_table):
    feature_table, _, metadata = transform_with_metadata(raw_table, CleaningConfig())

    for column in metadata.categorical:
        for indicator in _indicators(feature_table, column):
            assert set(feature_table[indicator].unique()) <= {0, 1}


def test_every_categorical_loses_exactly_one_observed_level(raw_table):
    config = CleaningConfig()
    feature_table, _, metadata = transform_with_metadata(raw_table, config)

    assert set(metadata.categorical) == {
        "building_type",
        "renovation_condition",
        "building_structure",
        "elevator",
        "five_years_property",
        "subway",
        "district",
        "floor_level",
        "quarter",
    }
    assert metadata.reference_levels["quarter"] == "Q1"
    assert metadata.reference_levels["elevator"] == "No"
    assert len(_indicators(feature_table, "quarter")) == 3
    assert len(_indicators(feature_table, "renovation_condition")) == 3
    assert set(metadata.feature_names) == set(feature_table.columns) - {TARGET_COLUMN}


def test_encode_categoricals_appends_undeclared_labels_alphabetically():
    df = pd.DataFrame({"colour": ["red", "blue", "green", "amber"]})

    encoded, references = encode_categoricals(df, ["colour"], {"colour": ["green", "red"]})

    assert references == {"colour": "green"}
    assert list(encoded.columns) == ["colour_red", "colour_amber", "colour_blue"]
    assert encoded.loc[2].sum() == 0
