"""
Reusable parsers for the forecast dashboard's raw data formats.

These parsers handle the messy reality of exported sales data:
- Fully-qualified product ids carrying store, state and evaluation-set suffixes
- Quantities arriving as numbers, numeric strings, blanks or garbage
- Year fields exported as floats ("2011.0")
"""

from dataclasses import dataclass
from datetime import date, datetime
import logging

import numpy as np
import pandas as pd

logger = logging.getLogger(__name__)

BASE_ID_SEGMENTS = 3
EVALUATION_TAGS = ("evaluation", "validation")
# Anything this large in a year column is garbage, not a year
MAX_YEAR_MAGNITUDE = 1e9


def _is_missing(value) -> bool:
    return value is None or value is pd.NA or (isinstance(value, float) and np.isnan(value))


def normalize(identifier: str | None) -> str:
    """
    Reduce a fully-qualified product id to its base id.

    FOODS_1_019_CA_1_evaluation -> FOODS_1_019

    Never raises: ids with fewer than three segments come back with whatever
    segments they have, missing values come back as "".
    """
    if _is_missing(identifier):
        return ""

    parts = str(identifier).strip().split("_")
    return "_".join(parts[:BASE_ID_SEGMENTS])


@dataclass(frozen=True)
class ProductIdentifier:
    """Structured view of a fully-qualified product id."""

    base_id: str
    department_id: str
    category_id: str
    store_id: str
    state_id: str
    evaluation_tag: str = ""

    @property
    def full_id(self) -> str:
        parts = [self.base_id]
        if self.store_id:
            parts.append(self.store_id)
        if self.evaluation_tag:
            parts.append(self.evaluation_tag)
        return "_".join(parts)


def parse_identifier(identifier: str | None) -> ProductIdentifier:
    """
    Split a fully-qualified id into its components.

    FOODS_1_019_CA_1_evaluation ->
        base=FOODS_1_019, category=FOODS, department=FOODS_1,
        state=CA, store=CA_1, tag=evaluation

    Malformed ids produce empty fields rather than errors.
    """
    base_id = normalize(identifier)
    if not base_id:
        return ProductIdentifier("", "", "", "", "")

    parts = str(identifier).strip().split("_")
    base_parts = parts[:BASE_ID_SEGMENTS]
    rest = parts[BASE_ID_SEGMENTS:]

    category_id = base_parts[0]
    department_id = "_".join(base_parts[:2]) if len(base_parts) >= 2 else ""

    evaluation_tag = ""
    if rest and rest[-1].lower() in EVALUATION_TAGS:
        evaluation_tag = rest[-1].lower()
        rest = rest[:-1]

    state_id = rest[0] if rest else ""
    store_id = "_".join(rest[:2]) if len(rest) >= 2 else ""

    return ProductIdentifier(
        base_id=base_id,
        department_id=department_id,
        category_id=category_id,
        store_id=store_id,
        state_id=state_id,
        evaluation_tag=evaluation_tag,
    )


class IdentifierNormalizer:
    """
    Normalizes product ids so store-level rows can be matched to a product.

    Reusable: Yes - any dataset whose ids are "<base>_<store suffix>_<tag>".
    To extend: change `segments` if the base id has a different width.
    """

    def __init__(self, segments: int = BASE_ID_SEGMENTS):
        self.segments = segments

    def normalize(self, identifier: str | None) -> str:
        if self.segments == BASE_ID_SEGMENTS:
            return normalize(identifier)
        if _is_missing(identifier):
            return ""
        return "_".join(str(identifier).strip().split("_")[: self.segments])

    def normalize_series(self, series: pd.Series) -> pd.Series:
        """Normalize an entire pandas Series of ids."""
        return series.apply(self.normalize)


@dataclass(frozen=True)
class CoercionResult:
    """Coerced values plus how many raw values had to be replaced by zero."""

    values: pd.Series
    coerced_count: int


def coerce_quantity(value) -> float:
    """Coerce a single raw quantity to float; anything unusable becomes 0.0."""
    try:
        result = float(value)
    except (TypeError, ValueError):
        return 0.0
    if not np.isfinite(result):
        return 0.0
    return result


def coerce_quantities(series: pd.Series) -> CoercionResult:
    """
    Coerce a Series of raw quantities to floats.

    Missing, non-numeric and infinite values become 0 so they never reach a
    sum as NaN. The count lets callers tell coerced zeros from real zeros.
    """
    numeric = pd.to_numeric(series, errors="coerce").astype(float)
    bad = ~np.isfinite(numeric)
    coerced_count = int(bad.sum())
    if coerced_count:
        logger.debug("Coerced %d invalid quantities to 0", coerced_count)
    return CoercionResult(
        values=numeric.where(~bad, 0.0),
        coerced_count=coerced_count,
    )


def coerce_year(value) -> int | None:
    """Truncate a year-like value ("2011.0", 2011.7, "2011") to int."""
    try:
        year = float(value)
    except (TypeError, ValueError):
        return None
    if not np.isfinite(year) or abs(year) >= MAX_YEAR_MAGNITUDE:
        return None
    return int(year)


def coerce_years(series: pd.Series) -> pd.Series:
    """Vectorized coerce_year; unparseable values become <NA>."""
    numeric = pd.to_numeric(series, errors="coerce").astype(float)
    numeric = numeric.where(np.isfinite(numeric) & (numeric.abs() < MAX_YEAR_MAGNITUDE))
    return np.trunc(numeric).astype("Int64")


def parse_iso_date(value: str | date | datetime | None) -> date | None:
    """Parse an ISO calendar day; returns None for anything unparseable."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if pd.isna(value):
        return None
    try:
        return datetime.strptime(str(value).strip()[:10], "%Y-%m-%d").date()
    except ValueError:
        return None
