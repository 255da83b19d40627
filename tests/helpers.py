import pandas as pd


def forecast_row(item_id: str, value: float, horizon: int = 28) -> dict:
    return {"id": item_id, **{f"F{i}": value for i in range(1, horizon + 1)}}


def daily_series(values, start: str = "2016-01-01") -> pd.DataFrame:
    dates = pd.date_range(start, periods=len(values), freq="D").strftime("%Y-%m-%d")
    return pd.DataFrame({"date": list(dates), "sales": [float(v) for v in values]})


def forecast_points(values) -> pd.DataFrame:
    return pd.DataFrame(
        {
            "day": list(range(1, len(values) + 1)),
            "date": list(
                pd.date_range("2016-05-23", periods=len(values), freq="D").strftime("%Y-%m-%d")
            ),
            "forecast": [float(v) for v in values],
        }
    )
