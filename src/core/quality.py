"""
Data quality checks for loaded sales, forecast and calendar rows.

The engine coerces bad values instead of failing; these checks make the
coercions visible so a coerced zero can be told apart from a real zero.
"""

from dataclasses import dataclass, field
from typing import Callable, Any
import pandas as pd

from .parsers import BASE_ID_SEGMENTS


@dataclass
class DataQualityIssue:
    """A single data quality issue found in the data."""

    column: str
    issue_type: str  # e.g., "missing", "non_numeric", "malformed_id", "missing_column"
    severity: str  # "critical", "warning", "info"
    count: int
    percentage: float
    sample_values: list[Any] = field(default_factory=list)
    description: str = ""


@dataclass
class DataQualityReport:
    """Summary report of data quality for a single data source."""

    source_name: str
    total_rows: int
    issues: list[DataQualityIssue] = field(default_factory=list)

    @property
    def critical_issues(self) -> list[DataQualityIssue]:
        return [i for i in self.issues if i.severity == "critical"]

    @property
    def warning_issues(self) -> list[DataQualityIssue]:
        return [i for i in self.issues if i.severity == "warning"]

    @property
    def has_critical_issues(self) -> bool:
        return len(self.critical_issues) > 0

    def count(self, issue_type: str) -> int:
        """Total affected rows for one issue type."""
        return sum(i.count for i in self.issues if i.issue_type == issue_type)

    def summary(self) -> dict:
        """Return a summary dict for display."""
        return {
            "source": self.source_name,
            "total_rows": self.total_rows,
            "critical": len(self.critical_issues),
            "warnings": len(self.warning_issues),
            "info": len([i for i in self.issues if i.severity == "info"]),
        }


def _pct(count: int, total: int) -> float:
    return (count / total) * 100 if total else 0.0


class DataQualityChecker:
    """
    Data quality checker for the dashboard's CSV sources.

    Checks for:
    - Missing values
    - Non-numeric quantities (coerced to 0 by the engine)
    - Ids too short to carry a base id
    - Missing required columns
    - Duplicate keys

    Extend by adding custom checks via add_check().
    """

    def __init__(self, source_name: str):
        self.source_name = source_name
        self._checks: list[Callable[[pd.DataFrame], list[DataQualityIssue]]] = []
        self._add_default_checks()

    def _add_default_checks(self):
        """Add default quality checks."""
        self.add_check(self._check_missing_values)

    def add_check(
        self, check_fn: Callable[[pd.DataFrame], list[DataQualityIssue]]
    ) -> "DataQualityChecker":
        """Add a custom check function. Returns self for chaining."""
        self._checks.append(check_fn)
        return self

    def _check_missing_values(self, df: pd.DataFrame) -> list[DataQualityIssue]:
        """Check for missing values in all columns."""
        issues = []
        for col in df.columns:
            missing = int(df[col].isna().sum())
            if missing > 0:
                pct = _pct(missing, len(df))
                severity = "critical" if pct > 20 else "warning" if pct > 5 else "info"
                issues.append(
                    DataQualityIssue(
                        column=col,
                        issue_type="missing",
                        severity=severity,
                        count=missing,
                        percentage=pct,
                        description=f"{missing:,} missing values ({pct:.1f}%)",
                    )
                )
        return issues

    def check_required_columns(
        self, columns: list[str], severity: str = "critical"
    ) -> "DataQualityChecker":
        """Flag required columns that aren't in the file."""

        def check(df: pd.DataFrame) -> list[DataQualityIssue]:
            absent = [c for c in columns if c not in df.columns]
            if not absent:
                return []
            return [
                DataQualityIssue(
                    column=", ".join(absent[:5]),
                    issue_type="missing_column",
                    severity=severity,
                    count=len(absent),
                    percentage=100.0,
                    sample_values=absent[:5],
                    description=f"{len(absent)} required column(s) not found",
                )
            ]

        self._checks.append(check)
        return self

    def check_numeric(
        self, column: str, severity: str = "warning"
    ) -> "DataQualityChecker":
        """Flag values present but not numeric (these become 0 downstream)."""

        def check(df: pd.DataFrame) -> list[DataQualityIssue]:
            if column not in df.columns:
                return []

            present = df[column].dropna()
            numeric = pd.to_numeric(present, errors="coerce")
            bad_mask = numeric.isna()
            bad = int(bad_mask.sum())
            if bad == 0:
                return []
            return [
                DataQualityIssue(
                    column=column,
                    issue_type="non_numeric",
                    severity=severity,
                    count=bad,
                    percentage=_pct(bad, len(df)),
                    sample_values=present[bad_mask].head(5).tolist(),
                    description=f"{bad:,} non-numeric values coerced to 0",
                )
            ]

        self._checks.append(check)
        return self

    def check_identifiers(
        self, column: str = "id", severity: str = "warning"
    ) -> "DataQualityChecker":
        """Flag ids with fewer segments than a base id needs."""

        def check(df: pd.DataFrame) -> list[DataQualityIssue]:
            if column not in df.columns:
                return []

            ids = df[column].dropna().astype(str).str.strip()
            short_mask = ids.str.split("_").str.len() < BASE_ID_SEGMENTS
            short = int(short_mask.sum())
            if short == 0:
                return []
            return [
                DataQualityIssue(
                    column=column,
                    issue_type="malformed_id",
                    severity=severity,
                    count=short,
                    percentage=_pct(short, len(df)),
                    sample_values=ids[short_mask].head(5).tolist(),
                    description=f"{short:,} ids have fewer than {BASE_ID_SEGMENTS} segments",
                )
            ]

        self._checks.append(check)
        return self

    def check_duplicates(
        self, key_columns: list[str], severity: str = "warning"
    ) -> "DataQualityChecker":
        """Add a duplicate check for the given columns."""

        def check(df: pd.DataFrame) -> list[DataQualityIssue]:
            if any(c not in df.columns for c in key_columns):
                return []
            dupes = int(df.duplicated(subset=key_columns, keep=False).sum())
            if dupes > 0:
                return [
                    DataQualityIssue(
                        column=", ".join(key_columns),
                        issue_type="duplicate",
                        severity=severity,
                        count=dupes,
                        percentage=_pct(dupes, len(df)),
                        description=f"{dupes:,} duplicate rows on key columns",
                    )
                ]
            return []

        self._checks.append(check)
        return self

    def check_negative(
        self, column: str, severity: str = "info"
    ) -> "DataQualityChecker":
        """Flag negative quantities (sales are expected to be >= 0)."""

        def check(df: pd.DataFrame) -> list[DataQualityIssue]:
            if column not in df.columns:
                return []

            values = pd.to_numeric(df[column], errors="coerce")
            negative_mask = values < 0
            negative = int(negative_mask.sum())
            if negative == 0:
                return []
            return [
                DataQualityIssue(
                    column=column,
                    issue_type="negative",
                    severity=severity,
                    count=negative,
                    percentage=_pct(negative, len(df)),
                    sample_values=df.loc[negative_mask, column].head(5).tolist(),
                    description=f"{negative:,} negative values",
                )
            ]

        self._checks.append(check)
        return self

    def run(self, df: pd.DataFrame) -> DataQualityReport:
        """Run all checks and return a quality report."""
        all_issues = []
        for check_fn in self._checks:
            all_issues.extend(check_fn(df))

        return DataQualityReport(
            source_name=self.source_name, total_rows=len(df), issues=all_issues
        )
