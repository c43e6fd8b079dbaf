from __future__ import annotations

import pandas as pd
import pytest

from housing_models.errors import InvalidFractionError
from housing_models.partition import split


def _table(rows: int = 50) -> pd.DataFrame:
    return pd.DataFrame({"x": range(rows), "y": [v * 2.0 for v in range(rows)]}, index=[f"r{i}" for i in range(rows)])


def test_split_is_disjoint_and_exhaustive():
    table = _table()

    train, test = split(table, 0.7, seed=42)

    assert set(train.index).isdisjoint(test.index)
    assert set(train.index) | set(test.index) == set(table.index)
    assert len(train) == 35
    assert len(test) == 15


def test_split_is_deterministic_for_a_seed():
    table = _table()

    first_train, first_test = split(table, 0.7, seed=7)
    second_train, second_test = split(table, 0.7, seed=7)

    pd.testing.assert_frame_equal(first_train, second_train)
    pd.testing.assert_frame_equal(first_test, second_test)


def test_split_changes_with_seed():
    table = _table()

    train_a, _ = split(table, 0.7, seed=1)
    train_b, _ = split(table, 0.7, seed=2)

    assert list(train_a.index) != list(train_b.index)


@pytest.mark.parametrize("fraction", [0, 1, -0.2, 1.5])
def test_split_rejects_fraction_outside_open_interval(fraction):
    with pytest.raises(InvalidFractionError):
        split(_table(), fraction, seed=42)
