import pandas as pd

from core.parsers import (
    IdentifierNormalizer,
    coerce_quantities,
    coerce_quantity,
    coerce_year,
    coerce_years,
    normalize,
    parse_identifier,
    parse_iso_date,
)


def test_normalize_strips_store_and_tag():
    assert normalize("FOODS_1_019_CA_1_evaluation") == "FOODS_1_019"
    assert normalize("HOBBIES_2_150_WI_3_validation") == "HOBBIES_2_150"


def test_normalize_trims_whitespace():
    assert normalize("  FOODS_1_019_CA_1_evaluation \n") == "FOODS_1_019"


def test_normalize_is_idempotent_on_base_ids():
    for base in ["FOODS_1_019", "HOUSEHOLD_2_516", "HOBBIES_1_001"]:
        assert normalize(base) == base
        assert normalize(normalize(base)) == base


def test_normalize_degrades_on_malformed_ids():
    assert normalize("FOODS_1") == "FOODS_1"
    assert normalize("FOODS") == "FOODS"
    assert normalize("") == ""
    assert normalize(None) == ""
    assert normalize(float("nan")) == ""


def test_parse_identifier_components():
    ident = parse_identifier("FOODS_1_019_CA_1_evaluation")
    assert ident.base_id == "FOODS_1_019"
    assert ident.category_id == "FOODS"
    assert ident.department_id == "FOODS_1"
    assert ident.state_id == "CA"
    assert ident.store_id == "CA_1"
    assert ident.evaluation_tag == "evaluation"
    assert ident.full_id == "FOODS_1_019_CA_1_evaluation"


def test_parse_identifier_malformed_never_raises():
    ident = parse_identifier("FOODS")
    assert ident.base_id == "FOODS"
    assert ident.department_id == ""
    assert ident.store_id == ""

    empty = parse_identifier(None)
    assert empty.base_id == ""


def test_identifier_normalizer_series():
    series = pd.Series(["FOODS_1_019_CA_1_evaluation", "FOODS_1_019_TX_2_evaluation", None])
    result = IdentifierNormalizer().normalize_series(series)
    assert result.tolist() == ["FOODS_1_019", "FOODS_1_019", ""]


def test_coerce_quantities_counts_replacements():
    result = coerce_quantities(pd.Series([1, "2.5", None, "abc", float("inf")]))
    assert result.values.tolist() == [1.0, 2.5, 0.0, 0.0, 0.0]
    assert result.coerced_count == 3


def test_coerce_quantities_keeps_real_zeros_uncounted():
    result = coerce_quantities(pd.Series([0, 0.0, "0"]))
    assert result.values.tolist() == [0.0, 0.0, 0.0]
    assert result.coerced_count == 0


def test_coerce_quantity_scalar():
    assert coerce_quantity("3") == 3.0
    assert coerce_quantity(None) == 0.0
    assert coerce_quantity("n/a") == 0.0
    assert coerce_quantity(float("nan")) == 0.0


def test_coerce_year_truncates():
    assert coerce_year("2011.0") == 2011
    assert coerce_year(2011.9) == 2011
    assert coerce_year("x") is None
    assert coerce_years(pd.Series(["2011.0", 2012, "bad"])).tolist()[:2] == [2011, 2012]
    assert coerce_years(pd.Series(["bad"])).isna().all()


def test_out_of_range_years_become_missing():
    assert coerce_year("1e30") is None
    assert coerce_year(float("inf")) is None
    years = coerce_years(pd.Series([2011, "1e30", float("-inf")]))
    assert years.iloc[0] == 2011
    assert years.iloc[1:].isna().all()


def test_parse_iso_date():
    parsed = parse_iso_date("2016-05-22")
    assert (parsed.year, parsed.month, parsed.day) == (2016, 5, 22)
    assert parse_iso_date("2016-05-22 00:00:00").day == 22
    assert parse_iso_date("22/05/2016") is None
    assert parse_iso_date(None) is None
