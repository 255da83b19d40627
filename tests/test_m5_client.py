import pandas as pd
import pytest

from clients.m5_client import DataCache, M5DataLoader, filter_items, filter_options
from core.analysis import Volatility
from core.reconciliation import AggregationScope, MatchType


def test_missing_required_file_raises(tmp_path):
    loader = M5DataLoader(tmp_path)
    with pytest.raises(FileNotFoundError):
        loader.load_item_master()


def test_loads_are_cached_until_invalidated(dataset_dir):
    loader = M5DataLoader(dataset_dir)
    first = loader.load_item_master()
    assert loader.load_item_master() is first
    assert "item_master" in loader.cache

    loader.cache.invalidate("item_master")
    assert loader.load_item_master() is not first


def test_cache_can_be_shared(dataset_dir):
    cache = DataCache()
    items = M5DataLoader(dataset_dir, cache=cache).load_item_master()
    assert M5DataLoader(dataset_dir, cache=cache).load_item_master() is items
    cache.clear()
    assert len(cache) == 0


def test_boundary_coercion(dataset_dir):
    loader = M5DataLoader(dataset_dir)
    daily = loader.load_historical_90_days()
    assert daily["sales"].dtype == float
    assert loader.quality_reports["historical_90_days"].count("non_numeric") == 1

    monthly = loader.load_historical_monthly()
    assert set(monthly["year"].dropna().astype(int)) == {2015, 2016}

    calendar = loader.load_calendar()
    assert list(calendar.columns) == ["date", "d", "year", "month"]


def test_filter_items_and_cascading_options(dataset_dir):
    items = M5DataLoader(dataset_dir).load_item_master()

    assert len(filter_items(items, state="CA")) == 2
    assert len(filter_items(items, state="CA", category="FOODS")) == 1
    assert len(filter_items(items)) == 3

    options = filter_options(items, state="TX")
    assert options["state"] == ["CA", "TX"]
    assert options["store"] == ["TX_2"]
    assert options["item"] == ["FOODS_1_019"]


def test_model_performance_optional(dataset_dir):
    loader = M5DataLoader(dataset_dir)
    assert loader.load_model_performance() == {}

    pd.DataFrame(
        {
            "Model": ["Naive Baseline", "LightGBM (Tweedie)", "Broken"],
            "MAE_28": [1.0, 0.8, 0.5],
            "RMSE_28": [2.5, "1.9", "n/a"],
        }
    ).to_csv(dataset_dir / "model_evaluation_28day.csv", index=False)
    fresh = M5DataLoader(dataset_dir)
    assert fresh.load_model_performance() == {
        "Naive Baseline": 2.5,
        "LightGBM (Tweedie)": 1.9,
    }


def test_product_view_all_stores(dataset_dir):
    view = M5DataLoader(dataset_dir).load_product_view("FOODS_1_019")

    assert view.item["id"] == "FOODS_1_019_CA_1_evaluation"
    assert len(view.recent_sales) == 35
    assert set(view.recent_sales["sales"]) == {3.0}

    assert view.forecast.match_type == MatchType.ALL_STORES
    assert set(view.forecast.points["forecast"]) == {6.0}
    assert view.forecast.points["date"].iloc[0] == "2016-05-23"

    assert view.year == 2016
    assert view.years == [2015, 2016]
    assert view.yearly_sales["month"].tolist()[0] == "Jan"
    assert view.yearly_sales["sales"].tolist()[-1] == 240.0

    texts = [i.text for i in view.insights]
    assert "increase by 3.0 units/day" in texts[0]
    assert view.forecast_summary["volatility"] == Volatility.STABLE
    assert view.key_metrics["total_sales"] == 105.0


def test_product_view_single_store(dataset_dir):
    view = M5DataLoader(dataset_dir).load_product_view(
        "FOODS_1_019_TX_2_evaluation", year=2015, scope=AggregationScope.STORE
    )
    assert set(view.recent_sales["sales"]) == {2.0}
    assert view.forecast.match_type == MatchType.EXACT_ID
    assert set(view.forecast.points["forecast"]) == {4.0}
    assert view.year == 2015
    assert "100.0%" in view.insights[0].text


def test_product_without_forecast(dataset_dir):
    view = M5DataLoader(dataset_dir).load_product_view("HOBBIES_1_001")
    assert not view.forecast.available
    assert view.forecast_summary["forecast_days"] == 0
    assert view.insights
    assert all(i.category != "forecast" for i in view.insights)


def test_unknown_product(dataset_dir):
    assert M5DataLoader(dataset_dir).load_product_view("NOPE_1_001") is None


def test_blank_item_master_cells_are_not_filter_choices(tmp_path):
    pd.DataFrame(
        {
            "id": ["FOODS_1_019_CA_1_evaluation", "FOODS_1_020_TX_2_evaluation"],
            "item_id": ["FOODS_1_019", "FOODS_1_020"],
            "dept_id": ["FOODS_1", "FOODS_1"],
            "cat_id": [" FOODS ", "FOODS"],
            "store_id": ["CA_1", None],
            "state_id": ["CA", "TX"],
        }
    ).to_csv(tmp_path / "item_master.csv", index=False)

    items = M5DataLoader(tmp_path).load_item_master()
    options = filter_options(items)
    assert options["store"] == ["CA_1"]
    assert options["category"] == ["FOODS"]
    assert items["store_id"].isna().sum() == 1
