"""Seeded train/test partitioning of the feature table."""

from __future__ import annotations

from typing import Tuple

import pandas as pd
from sklearn.model_selection import train_test_split

from .errors import EmptyResultError, InvalidFractionError
from .logging_utils import get_logger

logger = get_logger(__name__)


def split(
    feature_table: pd.DataFrame,
    train_fraction: float,
    seed: int,
) -> Tuple[pd.DataFrame, pd.DataFrame]:
    """Shuffle and split ``feature_table`` into disjoint train and test tables.

    The partition depends only on ``seed`` and the input row order.
    """

    if not 0 < train_fraction < 1:
        raise InvalidFractionError(f"train_fraction must lie in (0, 1), got {train_fraction}")
    if feature_table.empty:
        raise EmptyResultError("Cannot split an empty feature table")

    train_table, test_table = train_test_split(
        feature_table,
        train_size=train_fraction,
        random_state=seed,
        shuffle=True,
    )

    logger.info(
        "Created train/test split with train=%d rows, test=%d rows",
        len(train_table),
        len(test_table),
    )
    return train_table, test_table
