from datetime import date

import pytest

from bom_engine.analysis.master import build_master_lookup
from bom_engine.config.settings import OrderingConfig
from bom_engine.network.recipe_matrix import build_recipe_index
from bom_engine.numeric import STOCK_DAYS_SENTINEL
from bom_engine.ordering.demand import ProductDemand
from bom_engine.ordering.recommendation import (
    STATUS_LABELS,
    build_order_recommendation,
    classify_status,
)
from bom_engine.ordering.requirements import (
    OrderRequirementCalculator,
    OrderStatus,
    compute_safety_stock,
    compute_stock_days,
    round_order_quantity,
)
from bom_engine.product.core import BomRecipeRow, MaterialMasterEntry


@pytest.fixture
def config():
    return OrderingConfig()


@pytest.fixture
def calculator(config):
    return OrderRequirementCalculator(config)


def test_safety_stock_formula():
    assert compute_safety_stock(1.65, 10, 3) == 29
    assert compute_safety_stock(1.65, 0, 3) == 0
    assert compute_safety_stock(1.65, 10, 0) == 0


def test_safety_stock_monotonic_in_service_level_and_sigma():
    levels = [OrderingConfig(service_level=s).z_score for s in (90, 95, 97, 99)]
    by_level = [compute_safety_stock(z, 10, 3) for z in levels]
    by_sigma = [compute_safety_stock(1.65, s, 3) for s in (1, 5, 10, 50)]

    assert all(a < b for a, b in zip(by_level, by_level[1:]))
    assert by_sigma == sorted(by_sigma)


def test_round_order_quantity_examples():
    assert round_order_quantity(0, 50, 10) == 0
    assert round_order_quantity(-5, 50, 10) == 0
    assert round_order_quantity(7, 50, 10) == 50
    assert round_order_quantity(53, 50, 10) == 60
    assert round_order_quantity(123, 1, 25) == 125
    assert round_order_quantity(3.2, 1, 0) == 4
    assert round_order_quantity(0.3, 0.1, 0.1) == 0.3
    assert round_order_quantity(0.25, 0.1, 0.1) == 0.3


@pytest.mark.parametrize("moq", [1, 20, 75])
@pytest.mark.parametrize("pack", [1, 6, 25])
def test_round_order_quantity_respects_moq_and_pack(moq, pack):
    for net in (0.5, 1, 9.99, 10, 10.01, 99, 250.3):
        qty = round_order_quantity(net, moq, pack)
        assert qty % pack == 0
        assert qty >= moq
        assert qty >= net


def test_stock_days():
    assert compute_stock_days(10, 0) == STOCK_DAYS_SENTINEL
    assert compute_stock_days(30, 4) == 7.5


def test_calculate_item(calculator):
    master = MaterialMasterEntry("M1", "Cabbage", unit_price=100)

    item = calculator.calculate_item(
        master, 70, 10, current_stock=20, in_transit=10
    )

    assert item.lead_time == 2
    assert item.safety_days == 1
    assert item.safety_stock == 29
    assert item.total_requirement == 99
    assert item.available_stock == 30
    assert item.net_requirement == 69
    assert item.order_qty == 69
    assert item.estimated_cost == 6900
    assert item.avg_daily_consumption == 10.0
    assert item.stock_days == 3.0
    assert item.service_level == 95


def test_calculate_item_uses_material_lead_time(calculator):
    master = MaterialMasterEntry("M1", "Cabbage", lead_time=5, safety_days=0)

    item = calculator.calculate_item(master, 70, 10)

    # 1.65 * 10 * sqrt(5) = 36.9
    assert item.safety_stock == 37
    assert item.lead_time == 5


def test_calculate_item_covered_by_stock(calculator):
    master = MaterialMasterEntry("M1", "Cabbage", moq=50, packaging_unit=10)

    item = calculator.calculate_item(master, 70, 0, current_stock=100)

    assert item.net_requirement == 0
    assert item.order_qty == 0


@pytest.fixture
def recipe_index():
    return build_recipe_index(
        [
            BomRecipeRow("P1", "Kimchi", "M1", "Cabbage", 12, 100),
            BomRecipeRow("P2", "Stew", "M1", "Cabbage", 1, 10),
            BomRecipeRow("P2", "Stew", "M2", "Tofu", 2, 10),
        ]
    )


def test_explode_sums_demand_and_combines_sigma(calculator, recipe_index):
    demand = {
        "P1": ProductDemand("P1", "Kimchi", 100, 10, 7),
        "P2": ProductDemand("P2", "Stew", 50, 0, 7),
        "P9": ProductDemand("P9", "No recipe", 80, 5, 7),
    }

    exploded = calculator.explode(demand, recipe_index)

    assert sorted(exploded) == ["M1", "M2"]
    gross, sigma = exploded["M1"]
    assert gross == pytest.approx(17.0)
    assert sigma == pytest.approx(1.2)
    assert exploded["M2"] == (pytest.approx(10.0), pytest.approx(0.0))


def test_explode_sigma_excludes_loss_rate(calculator):
    index = build_recipe_index(
        [BomRecipeRow("P1", "Kimchi", "M1", "Cabbage", 12, 100, loss_rate=10)]
    )
    demand = {"P1": ProductDemand("P1", "Kimchi", 100, 10, 7)}

    gross, sigma = calculator.explode(demand, index)["M1"]

    assert gross == pytest.approx(13.2)
    assert sigma == pytest.approx(1.2)


def test_calculate_falls_back_to_recipe_names(calculator, recipe_index):
    master = build_master_lookup([MaterialMasterEntry("M1", "Napa cabbage", moq=20)])
    demand = {"P2": ProductDemand("P2", "Stew", 50, 0, 7)}

    items = {i.material_code: i for i in calculator.calculate(
        demand, recipe_index, master, inventory={"M2": 4}, in_transit={"M2": 1}
    )}

    assert items["M1"].material_name == "Napa cabbage"
    assert items["M1"].order_qty == 20
    assert items["M2"].material_name == "Tofu"
    assert items["M2"].available_stock == 5
    assert items["M2"].order_qty == 5


def test_recommendation_status_and_kpis(calculator, config):
    def item(code, stock):
        return calculator.calculate_item(
            MaterialMasterEntry(code, code, unit_price=1), 70, 10, current_stock=stock
        )

    calcs = [item("M4", 300), item("M3", 50), item("M2", 30), item("M1", 5)]

    rec = build_order_recommendation(calcs, config, date(2024, 4, 1))
    statuses = [(i.material_code, i.status) for i in rec.items]

    assert statuses == [
        ("M1", OrderStatus.SHORTAGE),
        ("M2", OrderStatus.URGENT),
        ("M3", OrderStatus.NORMAL),
        ("M4", OrderStatus.OVERSTOCK),
    ]
    assert rec.total_items == 4
    assert rec.urgent_items == 2
    assert rec.shortage_items == 1
    assert rec.total_estimated_cost == 94 + 69 + 49
    assert rec.delivery_date == date(2024, 4, 3)
    assert rec.target_period_end == date(2024, 4, 10)
    assert list(rec.by_category) == ["etc"]
    assert STATUS_LABELS[rec.items[0].status] == "Shortage"
    assert rec.items[0].status_message


def test_recommendation_empty(config):
    rec = build_order_recommendation([], config, date(2024, 4, 1))

    assert rec.total_items == 0
    assert rec.total_estimated_cost == 0
    assert rec.by_category == {}


@pytest.mark.parametrize(
    "stock, expected",
    [
        (28, OrderStatus.SHORTAGE),
        (29, OrderStatus.URGENT),
        (150, OrderStatus.URGENT),
    ],
)
def test_shortage_requires_stock_below_safety_stock(calculator, config, stock, expected):
    master = MaterialMasterEntry("M1", "Cabbage")
    item = calculator.calculate_item(master, 700, 10, current_stock=stock)

    assert item.safety_stock == 29
    assert item.stock_days < item.lead_time
    assert classify_status(item, config)[0] == expected


@pytest.mark.parametrize(
    "stock, expected",
    [
        (150, OrderStatus.NORMAL),
        (297, OrderStatus.NORMAL),
        (298, OrderStatus.OVERSTOCK),
    ],
)
def test_overstock_measured_against_total_requirement(calculator, config, stock, expected):
    master = MaterialMasterEntry("M1", "Cabbage")
    item = calculator.calculate_item(master, 70, 10, current_stock=stock)

    # total requirement 99, safety stock 29
    assert item.total_requirement == 99
    assert classify_status(item, config)[0] == expected
