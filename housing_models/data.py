"""Data access and persistence helpers."""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import mlflow
import pandas as pd

from .config import DataConfig
from .logging_utils import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class DatasetSummary:
    rows: int
    columns: int
    memory_mb: float
    null_counts: dict


def load_raw_data(config: DataConfig) -> pd.DataFrame:
    """Load the raw transaction export from disk."""

    data_path = config.raw_data_path
    if not data_path.exists():
        raise FileNotFoundError(f"Raw data not found at {data_path}")

    # Mixed-type columns (construction year, floor) must be read in one pass.
    df = pd.read_csv(data_path, encoding=config.encoding, low_memory=False)
    summary = summarise_dataframe(df)
    logger.info(
        "Loaded raw dataset with %s rows and %s columns from %s",
        summary.rows,
        summary.columns,
        data_path,
    )
    log_dataset_summary_to_mlflow(summary)
    return df


def summarise_dataframe(df: pd.DataFrame) -> DatasetSummary:
    """Generate summary statistics for a dataframe."""

    memory_mb = df.memory_usage(deep=True).sum() / (1024 ** 2)
    null_counts = {str(column): int(count) for column, count in df.isnull().sum().items()}
    return DatasetSummary(
        rows=df.shape[0],
        columns=df.shape[1],
        memory_mb=round(memory_mb, 3),
        null_counts=null_counts,
    )


def log_dataset_summary_to_mlflow(summary: DatasetSummary) -> None:
    """Log dataset metadata to the active MLflow run, if available."""

    if mlflow.active_run() is None:
        return

    mlflow.log_params({
        "data_rows": summary.rows,
        "data_columns": summary.columns,
        "data_memory_mb": summary.memory_mb,
    })
    mlflow.log_dict(summary.null_counts, "dataset/null_counts.json")


def save_feature_snapshot(feature_table: pd.DataFrame, rejected_count: int, path: Path) -> None:
    """Persist the encoded feature table so later runs can skip cleaning."""

    path.parent.mkdir(parents=True, exist_ok=True)
    snapshot = feature_table.copy()
    snapshot.attrs["rejected_count"] = int(rejected_count)
    snapshot.to_pickle(path)
    logger.info("Saved feature snapshot with %d rows to %s", len(snapshot), path)


def load_feature_snapshot(path: Path) -> Optional[tuple[pd.DataFrame, int]]:
    """Return ``(feature_table, rejected_count)`` from a snapshot, or ``None`` if absent."""

    if not path.exists():
        return None

    snapshot = pd.read_pickle(path)
    rejected_count = int(snapshot.attrs.get("rejected_count", 0))
    logger.info("Reusing feature snapshot with %d rows from %s", len(snapshot), path)
    return snapshot, rejected_count


def save_json_artifact(content: dict, path: Path) -> None:
    """Persist JSON content to disk."""

    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as handle:
        json.dump(content, handle, indent=2, default=str)

    logger.debug("Saved artifact to %s", path)
