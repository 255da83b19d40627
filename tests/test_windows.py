import pandas as pd

from core.windows import available_years, last_n_days, year_month_aggregate
from tests.helpers import daily_series


def test_last_n_days_bounds_window():
    series = daily_series(range(100))
    window = last_n_days(series, 90)
    assert len(window) == 90
    assert window["date"].iloc[0] == series["date"].iloc[10]
    assert window["date"].iloc[-1] == series["date"].iloc[-1]


def test_last_n_days_short_series_unchanged():
    series = daily_series([3, 1, 4, 1, 5])
    window = last_n_days(series, 90)
    pd.testing.assert_frame_equal(window, series)


def test_last_n_days_zero_or_empty():
    assert len(last_n_days(daily_series([1, 2, 3]), 0)) == 0
    assert len(last_n_days(daily_series([]), 28)) == 0


def test_year_month_aggregate_monthly_rows_calendar_order():
    monthly = pd.DataFrame(
        {
            "year": ["2011.0", "2011.0", "2011.0", "2012.0"],
            "month": [12, 1, 3, 1],
            "sales": [50, 10, 20, 999],
        }
    )
    yearly = year_month_aggregate(monthly, 2011)
    assert yearly["month"].tolist() == ["Jan", "Mar", "Dec"]
    assert yearly["sales"].tolist() == [10.0, 20.0, 50.0]


def test_year_month_aggregate_tolerates_float_year_argument():
    monthly = pd.DataFrame({"year": [2011], "month": [2], "sales": [4]})
    assert year_month_aggregate(monthly, "2011.0")["month"].tolist() == ["Feb"]
    assert year_month_aggregate(monthly, 2011.0)["sales"].tolist() == [4.0]


def test_year_month_aggregate_daily_series():
    series = pd.DataFrame(
        {
            "date": ["2015-12-31", "2016-01-01", "2016-01-02", "2016-02-01"],
            "sales": [100, 1, 2, 3],
        }
    )
    yearly = year_month_aggregate(series, 2016)
    assert yearly.to_dict("records") == [
        {"month": "Jan", "sales": 3.0},
        {"month": "Feb", "sales": 3.0},
    ]


def test_year_month_aggregate_missing_year():
    monthly = pd.DataFrame({"year": [2011], "month": [2], "sales": [4]})
    assert year_month_aggregate(monthly, 2014).empty
    assert year_month_aggregate(monthly, "not a year").empty


def test_available_years():
    monthly = pd.DataFrame({"year": ["2012.0", 2011, 2012], "month": [1, 1, 2], "sales": [1, 1, 1]})
    assert available_years(monthly) == [2011, 2012]
    assert available_years(daily_series([1, 2], start="2015-12-31")) == [2015, 2016]
