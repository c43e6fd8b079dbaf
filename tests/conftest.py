from __future__ import annotations

import numpy as np
import pandas as pd
import pytest


def make_raw_table(rows: int = 10, seed: int = 0) -> pd.DataFrame:
    """Raw export rows that all survive cleaning with the default configuration."""

    rng = np.random.default_rng(seed)
    districts = [1, 7, 8]
    floors = ["高 26", "中 6", "低 12", "底 2", "顶 18"]
    records = []
    for i in range(rows):
        area = 50.0 + (i * 7) % 120
        district = districts[i % len(districts)]
        price = 30000.0 + 8000.0 * districts.index(district) + 40.0 * area + rng.normal(0, 1500)
        records.append(
            {
                "url": f"https://example.com/{i}",
                "id": f"id{i}",
                "Lng": 116.4,
                "Lat": 39.9,
                "Cid": 1000 + i,
                "tradeTime": f"2017-{(i % 12) + 1:02d}-15",
                "DOM": 1.0,
                "followers": i,
                "totalPrice": round(price * area / 10000, 1),
                "price": round(price),
                "square": area,
                "livingRoom": 1 + i % 3,
                "drawingRoom": 1,
                "kitchen": 1,
                "bathRoom": 1 + i % 2,
                "floor": floors[i % len(floors)],
                "buildingType": [1, 3, 4][i % 3],
                "constructionTime": str(1990 + i % 25),
                "renovationCondition": 1 + i % 4,
                "buildingStructure": [2, 4, 6][i % 3],
                "ladderRatio": 0.333,
                "elevator": i % 2,
                "fiveYearsProperty": (i // 2) % 2,
                "subway": (i // 3) % 2,
                "district": district,
                "communityAverage": 60000.0,
            }
        )
    return pd.DataFrame(records)


@pytest.fixture
def raw_table() -> pd.DataFrame:
    return make_raw_table(10)


@pytest.fixture
def large_raw_table() -> pd.DataFrame:
    return make_raw_table(90, seed=1)
