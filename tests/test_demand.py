import math
from datetime import date

import pytest

from bom_engine.config.settings import OrderingConfig
from bom_engine.ordering.demand import DayOfWeekStat, DemandModel
from bom_engine.product.core import MealPlanItem, SalesRecord

# Sunday; the 4-week window is (2024-03-03, 2024-03-31]
AS_OF = date(2024, 3, 31)


@pytest.fixture
def model():
    return DemandModel(OrderingConfig())


@pytest.fixture
def history():
    return [
        # Mondays: 10 (two lines), 20, 30, 40
        SalesRecord("P1", "Kimchi", 4, date(2024, 3, 4)),
        SalesRecord("P1", "Kimchi", 6, date(2024, 3, 4)),
        SalesRecord("P1", "Kimchi", 20, date(2024, 3, 11)),
        SalesRecord("P1", "Kimchi", 30, date(2024, 3, 18)),
        SalesRecord("P1", "Kimchi", 40, date(2024, 3, 25)),
        # Single Tuesday
        SalesRecord("P1", "Kimchi", 7, date(2024, 3, 5)),
        # Outside the window
        SalesRecord("P1", "Kimchi", 500, date(2024, 3, 3)),
        SalesRecord("P1", "Kimchi", 500, date(2024, 4, 1)),
        # No date
        SalesRecord("P1", "Kimchi", 500),
    ]


def test_window(model):
    assert model.window(AS_OF) == (date(2024, 3, 3), AS_OF)


def test_day_of_week_stats(model, history):
    stats = model.day_of_week_stats(history, AS_OF)

    assert [(s.day_of_week, s.product_code) for s in stats] == [(0, "P1"), (1, "P1")]

    monday = stats[0]
    assert monday.day_name == "Mon"
    assert monday.mean == 25.0
    assert monday.std_dev == 12.9
    assert monday.min == 10.0
    assert monday.max == 40.0
    assert monday.sample_count == 4
    assert monday.product_name == "Kimchi"

    tuesday = stats[1]
    assert tuesday.mean == 7.0
    assert tuesday.std_dev == 0.0
    assert tuesday.sample_count == 1


def test_day_of_week_stats_empty(model):
    assert model.day_of_week_stats([], AS_OF) == []


@pytest.fixture
def stats():
    return [
        DayOfWeekStat(0, "P1", "Kimchi", 25.0, 12.9, 10, 40, 4),
        DayOfWeekStat(1, "P1", "Kimchi", 7.0, 0.0, 7, 7, 1),
    ]


def test_forecast_horizon_from_history(model, stats):
    one_week = model.forecast_horizon(stats, date(2024, 4, 1), days=7)
    two_weeks = model.forecast_horizon(stats, date(2024, 4, 1), days=14)

    assert one_week["P1"].quantity == pytest.approx(32.0)
    assert one_week["P1"].std_dev == pytest.approx(12.9)
    assert one_week["P1"].days == 2
    assert two_weeks["P1"].quantity == pytest.approx(64.0)
    assert two_weeks["P1"].std_dev == pytest.approx(12.9 * math.sqrt(2))


def test_forecast_horizon_with_plan(model, stats):
    plan = [
        MealPlanItem(date(2024, 4, 1), "P1", "Kimchi"),
        MealPlanItem(date(2024, 4, 2), "P9", "New dish"),
        MealPlanItem(date(2024, 4, 3), "P9", "New dish", planned_qty=40),
        MealPlanItem(date(2024, 4, 20), "P1", "Kimchi"),
    ]

    demand = model.forecast_horizon(stats, date(2024, 4, 1), days=7, plan=plan)

    assert sorted(demand) == ["P1", "P9"]
    assert demand["P1"].quantity == pytest.approx(25.0)
    assert demand["P9"].quantity == pytest.approx(140.0)
    assert demand["P9"].std_dev == pytest.approx(math.sqrt(800))
    assert demand["P9"].product_name == "New dish"
