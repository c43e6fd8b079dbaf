"""Run naming and the on-disk cache of model-selection results."""

from __future__ import annotations

import hashlib
import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Mapping, Optional, Sequence

import joblib
import pandas as pd

from .logging_utils import get_logger

logger = get_logger(__name__)


def build_run_name(template: str) -> str:
    return template.format(timestamp=datetime.now(timezone.utc).strftime("%Y%m%d_%H%M%S"))


def fit_signature(
    family: str,
    grid: Mapping[str, Any],
    *,
    cv_folds: int,
    seed: int,
    use_oob: bool,
    feature_names: Sequence[str],
    n_rows: int,
    data_hash: str = "",
) -> str:
    """Stable key for a family's selection result under one grid and training table.

    ``data_hash`` should come from ``table_fingerprint`` so that a different
    split of the same data never reuses a fit made on other rows.
    """

    payload = {
        "grid": grid,
        "cv_folds": cv_folds,
        "seed": seed,
        "use_oob": use_oob,
        "features": list(feature_names),
        "rows": n_rows,
        "data": data_hash,
    }
    digest = hashlib.sha1(json.dumps(payload, sort_keys=True, default=str).encode("utf-8")).hexdigest()
    return f"{family}-{digest[:16]}"


def table_fingerprint(table: pd.DataFrame) -> str:
    """SHA-1 over the row hashes of ``table``, index included."""

    row_hashes = pd.util.hash_pandas_object(table, index=True).to_numpy()
    return hashlib.sha1(row_hashes.tobytes()).hexdigest()


class FitCache:
    """joblib blobs under ``directory`` named by ``fit_signature`` keys."""

    def __init__(self, directory: Path):
        self.directory = Path(directory)

    def path_for(self, key: str) -> Path:
        return self.directory / f"{key}.joblib"

    def load(self, key: str) -> Optional[Any]:
        path = self.path_for(key)
        if not path.exists():
            return None
        logger.info("Loading cached fit %s", path)
        return joblib.load(path)

    def save(self, key: str, payload: Any) -> Path:
        path = self.path_for(key)
        path.parent.mkdir(parents=True, exist_ok=True)
        joblib.dump(payload, path)
        logger.debug("Saved fit to %s", path)
        return path
