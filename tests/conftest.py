import sys
from pathlib import Path

import pandas as pd
import pytest

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from tests.helpers import forecast_row  # noqa: E402


@pytest.fixture
def sales_records() -> pd.DataFrame:
    return pd.DataFrame(
        [
            {"id": "FOODS_1_019_CA_1_evaluation", "date": "2016-01-02", "sales": 3},
            {"id": "FOODS_1_019_TX_2_evaluation", "date": "2016-01-02", "sales": 4},
            {"id": "FOODS_1_019_CA_1_evaluation", "date": "2016-01-01", "sales": "2"},
            {"id": "FOODS_1_019_CA_1_evaluation", "date": "2016-01-03", "sales": "bad"},
            {"id": "HOBBIES_1_001_CA_1_evaluation", "date": "2016-01-01", "sales": 100},
        ]
    )


@pytest.fixture
def forecast_rows() -> pd.DataFrame:
    return pd.DataFrame(
        [
            forecast_row("FOODS_1_019_CA_1_evaluation", 1.0),
            forecast_row("FOODS_1_019_TX_2_evaluation", 2.0),
            forecast_row("FOODS_1_019_CA_1_validation", 5.0),
            forecast_row("HOBBIES_1_001_CA_1_evaluation", 9.0),
        ]
    )


@pytest.fixture
def dataset_dir(tmp_path) -> Path:
    """A small export with two stores selling FOODS_1_019."""
    pd.DataFrame(
        [
            {"id": "FOODS_1_019_CA_1_evaluation", "item_id": "FOODS_1_019", "dept_id": "FOODS_1",
             "cat_id": "FOODS", "store_id": "CA_1", "state_id": "CA"},
            {"id": "FOODS_1_019_TX_2_evaluation", "item_id": "FOODS_1_019", "dept_id": "FOODS_1",
             "cat_id": "FOODS", "store_id": "TX_2", "state_id": "TX"},
            {"id": "HOBBIES_1_001_CA_1_evaluation", "item_id": "HOBBIES_1_001", "dept_id": "HOBBIES_1",
             "cat_id": "HOBBIES", "store_id": "CA_1", "state_id": "CA"},
        ]
    ).to_csv(tmp_path / "item_master.csv", index=False)

    dates = list(pd.date_range("2016-04-18", "2016-05-22", freq="D").strftime("%Y-%m-%d"))
    rows = []
    for d in dates:
        rows.append({"id": "FOODS_1_019_CA_1_evaluation", "date": d, "sales": 1})
        rows.append({"id": "FOODS_1_019_TX_2_evaluation", "date": d, "sales": 2})
        rows.append({"id": "HOBBIES_1_001_CA_1_evaluation", "date": d, "sales": 7})
    rows.append({"id": "HOBBIES_1_001_CA_1_evaluation", "date": dates[0], "sales": "abc"})
    pd.DataFrame(rows).to_csv(tmp_path / "historical_90_days.csv", index=False)

    pd.DataFrame(
        [
            forecast_row("FOODS_1_019_CA_1_evaluation", 2.0),
            forecast_row("FOODS_1_019_TX_2_evaluation", 4.0),
        ]
    ).to_csv(tmp_path / "submission.csv", index=False)

    pd.DataFrame(
        {
            "date": dates,
            "d": [f"d_{1900 + i}" for i in range(len(dates))],
            "year": [2016.0] * len(dates),
            "month": [float(d[5:7]) for d in dates],
        }
    ).to_csv(tmp_path / "calendar.csv", index=False)

    monthly = []
    for year in (2015.0, 2016.0):
        for month in range(1, 13):
            for store in ("CA_1", "TX_2"):
                monthly.append(
                    {"id": f"FOODS_1_019_{store}_evaluation", "year": year,
                     "month": float(month), "sales": 10.0 * month}
                )
    pd.DataFrame(monthly).to_csv(tmp_path / "historical_monthly.csv", index=False)

    return tmp_path
