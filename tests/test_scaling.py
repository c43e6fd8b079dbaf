from __future__ import annotations

import numpy as np
import pandas as pd
import pytest

from housing_models.models.scaling import ContinuousRescaler, TargetRescaler, continuous_columns


def _frame():
    return pd.DataFrame(
        {
            "area": [40.0, 80.0, 120.0, 160.0],
            "building_age": [2, 10, 25, 31],
            "district_HaiDian": [0, 1, 0, 1],
        }
    )


def test_continuous_columns_skip_indicators():
    assert continuous_columns(_frame()) == ["area", "building_age"]


def test_rescale_round_trip_recovers_values():
    frame = _frame()
    scaler = ContinuousRescaler().fit(frame)

    scaled = scaler.transform(frame)
    restored = scaler.inverse_transform(scaled)

    assert scaled["area"].min() == 0.0
    assert scaled["area"].max() == 1.0
    np.testing.assert_allclose(restored.to_numpy(), frame.to_numpy(dtype=float))
    pd.testing.assert_series_equal(scaled["district_HaiDian"], frame["district_HaiDian"].astype(float))


def test_held_out_rows_reuse_training_statistics():
    scaler = ContinuousRescaler().fit(_frame())
    held_out = pd.DataFrame({"area": [190.0], "building_age": [2], "district_HaiDian": [1]})

    scaled = scaler.transform(held_out)

    assert scaled.loc[0, "area"] == pytest.approx(1.25)
    assert scaled.loc[0, "building_age"] == 0.0


def test_target_round_trip():
    y = np.log(np.array([15_000.0, 42_000.0, 98_000.0]))
    scaler = TargetRescaler().fit(y)

    np.testing.assert_allclose(scaler.inverse_transform(scaler.transform(y)), y)
    np.testing.assert_allclose(scaler.transform(y)[[0, 2]], [0.0, 1.0])
