"""Cleaning steps for the raw transaction table: schema check, recoding, derivations and filters."""

from __future__ import annotations

from typing import Dict, List, Mapping, Tuple

import pandas as pd

from .config import UNRECOGNIZED, CleaningConfig
from .errors import EmptyResultError, SchemaError
from .logging_utils import get_logger

logger = get_logger(__name__)

_FLOOR_PATTERN = r"^\s*(?P<level>[^\d\s]+)\s*(?P<count>\d+)\s*$"


def required_raw_columns(config: CleaningConfig) -> List[str]:
    return list(config.rename_columns.keys())


def check_schema(raw: pd.DataFrame, config: CleaningConfig) -> None:
    missing = set(required_raw_columns(config)) - set(raw.columns)
    if missing:
        raise SchemaError(missing)


def modeling_columns(config: CleaningConfig) -> List[str]:
    """Renamed columns the pipeline keeps; everything else in the export is ignored."""

    dropped = set(config.drop_columns)
    return [column for column in config.rename_columns.values() if column not in dropped]


def rename_and_drop(raw: pd.DataFrame, config: CleaningConfig) -> pd.DataFrame:
    df = raw.rename(columns=config.rename_columns)
    keep = modeling_columns(config)
    ignored = [c for c in df.columns if c not in keep]
    if ignored:
        logger.debug("Ignoring %d unused columns: %s", len(ignored), ", ".join(map(str, ignored)))
    return df[keep]


def coerce_types(df: pd.DataFrame) -> pd.DataFrame:
    """Parse the trade date and force every remaining non-text column to numeric."""

    df = df.copy()
    if "trade_date" in df.columns:
        df["trade_date"] = pd.to_datetime(df["trade_date"], errors="coerce")

    text_columns = {"trade_date", "floor"}
    for column in df.columns:
        if column in text_columns:
            continue
        df[column] = pd.to_numeric(df[column], errors="coerce")
    return df


def recode_categories(df: pd.DataFrame, recode_tables: Mapping[str, Mapping[int, str]]) -> pd.DataFrame:
    """Map numeric codes to labels; codes outside a table become ``UNRECOGNIZED``."""

    df = df.copy()
    for column, table in recode_tables.items():
        if column not in df.columns:
            continue
        codes = pd.to_numeric(df[column], errors="coerce")
        labels = codes.map({float(code): label for code, label in table.items()})
        unknown = codes.notna() & labels.isna()
        if unknown.any():
            logger.warning("Column %s has %d rows with unrecognised codes", column, int(unknown.sum()))
        df[column] = labels.astype(object).where(~unknown, UNRECOGNIZED)
    return df


def parse_floor(df: pd.DataFrame, floor_levels: Mapping[str, str]) -> pd.DataFrame:
    """Split strings like ``"高 26"`` into ``floor_level`` and ``floor_count``."""

    if "floor" not in df.columns:
        return df

    df = df.copy()
    text = df["floor"].where(df["floor"].notna(), "").astype(str)
    parts = text.str.extract(_FLOOR_PATTERN)
    levels = parts["level"].map(dict(floor_levels))
    unknown = parts["level"].notna() & levels.isna()
    df["floor_level"] = levels.astype(object).where(~unknown, UNRECOGNIZED)
    df["floor_count"] = pd.to_numeric(parts["count"], errors="coerce").astype(float)
    return df.drop(columns=["floor"])


def add_derived_columns(df: pd.DataFrame, reference_year: int) -> pd.DataFrame:
    df = df.copy()
    df["building_age"] = reference_year - df["construction_year"]
    df["total_rooms"] = df["bedrooms"] + df["bathrooms"]
    df["quarter"] = df["trade_date"].dt.quarter.map(lambda q: f"Q{int(q)}", na_action="ignore")
    return df


def apply_filters(df: pd.DataFrame, config: CleaningConfig) -> pd.DataFrame:
    """Apply the price, area and date-window filters.

    Rows whose filter column is missing pass through so that
    ``drop_incomplete_rows`` counts them as rejected.
    """

    price = df["price_per_area"]
    area = df["area"]
    year = df["trade_date"].dt.year

    keep_price = (price >= config.min_price_per_area) | price.isna()
    keep_area = ((area > config.area_min) & (area < config.area_max)) | area.isna()
    keep_window = year.between(config.window_start, config.window_end) | year.isna()
    keep = keep_price & keep_area & keep_window
    if config.target_year is not None:
        keep &= (year == config.target_year) | year.isna()

    logger.info(
        "Filters removed %d rows (price=%d, area=%d, window=%d)",
        int((~keep).sum()),
        int((~keep_price).sum()),
        int((~keep_area).sum()),
        int((~keep_window).sum()),
    )
    return df.loc[keep]


def merge_categories(df: pd.DataFrame, merge_tables: Mapping[str, Mapping[str, str]]) -> pd.DataFrame:
    df = df.copy()
    for column, table in merge_tables.items():
        if column in df.columns and table:
            df[column] = df[column].replace(dict(table))
    return df


def drop_incomplete_rows(df: pd.DataFrame) -> Tuple[pd.DataFrame, int]:
    """Drop rows with any missing value; ``UNRECOGNIZED`` labels count as missing."""

    incomplete = df.isna().any(axis=1)
    label_columns = df.select_dtypes(include=["object", "category", "string"]).columns
    if len(label_columns):
        incomplete |= (df[label_columns] == UNRECOGNIZED).any(axis=1)

    rejected = int(incomplete.sum())
    if rejected:
        logger.info("Rejected %d rows with missing or unrecognised values", rejected)
    return df.loc[~incomplete], rejected


def clean(raw: pd.DataFrame, config: CleaningConfig) -> Tuple[pd.DataFrame, int]:
    """Run the cleaning steps in order and return ``(cleaned, rejected_count)``."""

    check_schema(raw, config)

    df = rename_and_drop(raw, config)
    df = coerce_types(df)
    df = recode_categories(df, config.recode_tables)
    df = parse_floor(df, config.floor_levels)
    df = add_derived_columns(df, config.reference_year)

    df = apply_filters(df, config)
    if df.empty:
        raise EmptyResultError("Price, area and date filters removed every row")

    df = merge_categories(df, config.merge_tables)
    df, rejected = drop_incomplete_rows(df)
    if df.empty:
        raise EmptyResultError(f"All rows were rejected as incomplete ({rejected} rows)")

    logger.info("Cleaning kept %d of %d raw rows", len(df), len(raw))
    return df, rejected


def category_order(column: str, config: CleaningConfig) -> List[str]:
    """Declared label order for ``column`` after merges, used to pick the reference level."""

    if column == "quarter":
        labels: List[str] = ["Q1", "Q2", "Q3", "Q4"]
    elif column == "floor_level":
        labels = list(config.floor_levels.values())
    else:
        labels = list(config.recode_tables.get(column, {}).values())

    merges: Dict[str, str] = dict(config.merge_tables.get(column, {}))
    ordered: List[str] = []
    for label in labels:
        merged = merges.get(label, label)
        if merged not in ordered:
            ordered.append(merged)
    return ordered


def categorical_columns(df: pd.DataFrame, config: CleaningConfig) -> List[str]:
    declared = list(config.recode_tables.keys()) + ["floor_level", "quarter"]
    return [column for column in declared if column in df.columns]
