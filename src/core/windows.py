"""
Fixed time windows over a reconciled series.

- Last N days (90 for the recent-performance chart, 28 for the forecast baseline)
- Calendar-month totals for a selected year
"""

import calendar

import pandas as pd

from .parsers import coerce_quantities, coerce_years

MONTH_ABBR = [calendar.month_abbr[m] for m in range(1, 13)]
MONTH_NAMES = {calendar.month_abbr[m]: calendar.month_name[m] for m in range(1, 13)}

RECENT_WINDOW_DAYS = 90
BASELINE_WINDOW_DAYS = 28

YEARLY_COLUMNS = ["month", "sales"]


def last_n_days(series: pd.DataFrame, n: int, date_col: str = "date") -> pd.DataFrame:
    """
    Up to n most recent entries, oldest first.

    A series of n entries or fewer comes back whole and in order.
    """
    if n <= 0 or series is None or len(series) == 0:
        return series.iloc[0:0] if series is not None else pd.DataFrame()

    ordered = series.sort_values(date_col, kind="mergesort")
    return ordered.tail(n).reset_index(drop=True)


def _month_rows(series: pd.DataFrame, date_col: str) -> pd.DataFrame:
    """Year/month/sales rows from either a daily series or monthly rows."""
    if "year" in series.columns and "month" in series.columns:
        return pd.DataFrame(
            {
                "year": coerce_years(series["year"]),
                "month": coerce_years(series["month"]),
                "sales": coerce_quantities(series["sales"]).values,
            }
        )

    dates = pd.to_datetime(series[date_col], errors="coerce")
    return pd.DataFrame(
        {
            "year": dates.dt.year.astype("Int64"),
            "month": dates.dt.month.astype("Int64"),
            "sales": coerce_quantities(series["sales"]).values,
        }
    )


def year_month_aggregate(
    series: pd.DataFrame,
    year: int | float | str,
    date_col: str = "date",
) -> pd.DataFrame:
    """
    Monthly totals for one year, in calendar order (Jan..Dec).

    Only months present in the data are returned. The year (on either side
    of the comparison) is truncated toward zero, so "2011.0" matches 2011.

    Returns DataFrame with:
    - month (short name: "Jan", "Feb", ...)
    - sales
    """
    target = coerce_years(pd.Series([year])).iloc[0]
    if series is None or len(series) == 0 or pd.isna(target):
        return pd.DataFrame(columns=YEARLY_COLUMNS)

    rows = _month_rows(series, date_col).dropna(subset=["year", "month"])
    rows = rows[(rows["year"] == int(target)) & rows["month"].between(1, 12)]
    if len(rows) == 0:
        return pd.DataFrame(columns=YEARLY_COLUMNS)

    totals = rows.groupby("month", sort=True)["sales"].sum()
    return pd.DataFrame(
        {
            "month": [MONTH_ABBR[int(m) - 1] for m in totals.index],
            "sales": [float(v) for v in totals.values],
        }
    )


def available_years(series: pd.DataFrame, date_col: str = "date") -> list[int]:
    """Distinct years present in a daily series or monthly rows."""
    if series is None or len(series) == 0:
        return []
    years = _month_rows(series, date_col)["year"].dropna().unique()
    return sorted(int(y) for y in years)
