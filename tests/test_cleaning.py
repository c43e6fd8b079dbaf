from __future__ import annotations

import numpy as np
import pandas as pd
import pytest

from housing_models.cleaning import (
    apply_filters,
    category_order,
    clean,
    coerce_types,
    parse_floor,
    recode_categories,
    rename_and_drop,
)
from housing_models.config import UNRECOGNIZED, CleaningConfig
from housing_models.errors import EmptyResultError, SchemaError


def _prepared(raw, config):
    df = coerce_types(rename_and_drop(raw, config))
    return df


def test_missing_required_column_raises_schema_error(raw_table):
    with pytest.raises(SchemaError) as excinfo:
        clean(raw_table.drop(columns=["square"]), CleaningConfig())

    assert excinfo.value.missing == ["square"]


def test_null_construction_year_rows_are_rejected(raw_table):
    raw_table.loc[[2, 7], "constructionTime"] = np.nan

    cleaned, rejected = clean(raw_table, CleaningConfig())

    assert len(cleaned) == 8
    assert rejected == 2
    assert cleaned["building_age"].notna().all()


def test_price_threshold_keeps_rows_at_or_above_minimum(raw_table):
    raw = raw_table.head(4).copy()
    raw["price"] = [5000, 12000, 15000, 20000]

    cleaned, _ = clean(raw, CleaningConfig(min_price_per_area=10000))

    assert sorted(cleaned["price_per_area"].tolist()) == [12000, 15000, 20000]


def test_area_filter_is_an_open_interval(raw_table):
    raw = raw_table.head(4).copy()
    raw["square"] = [20, 20.5, 299.5, 300]

    cleaned, _ = clean(raw, CleaningConfig(area_min=20, area_max=300))

    assert sorted(cleaned["area"].tolist()) == [20.5, 299.5]


def test_date_window_then_target_year(raw_table):
    raw = raw_table.head(4).copy()
    raw["tradeTime"] = ["2009-06-01", "2012-06-01", "2016-06-01", "2017-06-01"]

    in_target_year, _ = clean(raw, CleaningConfig())
    in_window, _ = clean(raw, CleaningConfig(target_year=None))

    assert in_target_year["trade_date"].dt.year.tolist() == [2017]
    assert sorted(in_window["trade_date"].dt.year.tolist()) == [2012, 2016, 2017]


def test_filters_are_idempotent(raw_table):
    config = CleaningConfig()
    raw = raw_table.copy()
    raw.loc[0, "price"] = 500
    raw.loc[1, "square"] = 1000
    raw.loc[2, "tradeTime"] = "2015-01-01"
    df = _prepared(raw, config)

    once = apply_filters(df, config)
    twice = apply_filters(once, config)

    assert len(once) == 7
    pd.testing.assert_frame_equal(once, twice)


def test_filters_keep_missing_values_for_rejection(raw_table):
    config = CleaningConfig()
    raw = raw_table.copy()
    raw.loc[0, "square"] = np.nan

    filtered = apply_filters(_prepared(raw, config), config)
    cleaned, rejected = clean(raw, config)

    assert len(filtered) == 10
    assert len(cleaned) == 9
    assert rejected == 1


def test_everything_filtered_raises_empty_result(raw_table):
    with pytest.raises(EmptyResultError):
        clean(raw_table, CleaningConfig(min_price_per_area=10_000_000))


def test_everything_incomplete_raises_empty_result(raw_table):
    raw_table["constructionTime"] = "未知"
    with pytest.raises(EmptyResultError):
        clean(raw_table, CleaningConfig())


def test_unknown_codes_map_to_sentinel_and_are_rejected(raw_table):
    config = CleaningConfig()
    raw_table.loc[3, "buildingType"] = 9

    recoded = recode_categories(_prepared(raw_table, config), config.recode_tables)
    cleaned, rejected = clean(raw_table, config)

    assert recoded.loc[3, "building_type"] == UNRECOGNIZED
    assert recoded.loc[0, "building_type"] == "Tower"
    assert 3 not in cleaned.index
    assert rejected == 1


def test_parse_floor_splits_level_and_height():
    df = pd.DataFrame({"floor": ["高 26", "中 6", "未知 6", "钢混结构", None]})

    parsed = parse_floor(df, CleaningConfig().floor_levels)

    assert parsed["floor_level"].tolist()[:3] == ["high", "middle", UNRECOGNIZED]
    assert parsed["floor_level"].iloc[3:].isna().all()
    assert parsed["floor_count"].tolist()[:3] == [26, 6, 6]
    assert "floor" not in parsed.columns


def test_derived_columns(raw_table):
    cleaned, _ = clean(raw_table, CleaningConfig(reference_year=2018))
    row = raw_table.loc[0]

    assert cleaned.loc[0, "building_age"] == 2018 - int(row["constructionTime"])
    assert cleaned.loc[0, "total_rooms"] == row["livingRoom"] + row["bathRoom"]
    assert cleaned.loc[0, "quarter"] == "Q1"


def test_identifier_and_leakage_columns_are_dropped(raw_table):
    cleaned, _ = clean(raw_table, CleaningConfig())

    for column in ["url", "id", "Lng", "Lat", "Cid", "DOM", "followers", "total_price", "communityAverage"]:
        assert column not in cleaned.columns


def test_columns_outside_the_config_do_not_reject_rows(raw_table):
    raw_table["agent_note"] = "listed by agency"
    raw_table["viewings"] = [3, np.nan, 5, np.nan, 1, 2, np.nan, 4, 6, 7]

    cleaned, rejected = clean(raw_table, CleaningConfig())

    assert len(cleaned) == 10
    assert rejected == 0
    assert "agent_note" not in cleaned.columns
    assert "viewings" not in cleaned.columns


def test_merge_table_relabels_before_encoding(raw_table):
    raw_table["buildingStructure"] = [1, 2, 3, 4, 6, 1, 2, 3, 4, 6]
    config = CleaningConfig(merge_tables={"building_structure": {"Unknown": "Mixed", "Brick/Wood": "Mixed"}})

    cleaned, _ = clean(raw_table, config)

    assert set(cleaned["building_structure"]) == {"Mixed", "Brick/Concrete", "Steel/Concrete"}
    assert category_order("building_structure", config) == [
        "Mixed",
        "Brick/Concrete",
        "Steel",
        "Steel/Concrete",
    ]
