import pytest

from bom_engine.analysis.consumption import compute_expected_consumption
from bom_engine.analysis.master import build_master_lookup
from bom_engine.analysis.variance import analyze_consumption_variance
from bom_engine.network.recipe_matrix import build_recipe_index
from bom_engine.product.core import (
    BomRecipeRow,
    MaterialMasterEntry,
    PriceBasis,
    PurchaseRecord,
    SalesRecord,
)


@pytest.fixture
def master():
    return build_master_lookup(
        [
            MaterialMasterEntry("M1", "Cabbage", unit_price=100),
            MaterialMasterEntry(" M3 ", "Salt", unit_price=0),
        ]
    )


@pytest.fixture
def recipe_index(master):
    rows = [
        BomRecipeRow("P1", "Kimchi", "M1", "Cabbage", 12, 100),
        BomRecipeRow("P1", "Kimchi", "M2", "Chili", 8, 100),
        BomRecipeRow("P2", "Stew", "M1", "Cabbage", 1, 10),
    ]
    return build_recipe_index(rows, master)


def test_expected_consumption_single_product(recipe_index, master):
    sales = [SalesRecord("P1", "Kimchi", 100)]

    expected = compute_expected_consumption(sales, recipe_index, master)
    by_code = {e.material_code: e for e in expected}

    assert by_code["M1"].expected_qty == pytest.approx(12.0)
    assert by_code["M2"].expected_qty == pytest.approx(8.0)
    assert [e.material_code for e in expected] == ["M1", "M2"]


def test_expected_consumption_breakdown_sums_to_total(recipe_index, master):
    sales = [
        SalesRecord("P1", "Kimchi", 60),
        SalesRecord("P1", "Kimchi", 40),
        SalesRecord("P2", "Stew", 50),
        SalesRecord("P9", "No recipe", 30),
        SalesRecord("", "Blank", 30),
    ]

    expected = compute_expected_consumption(sales, recipe_index, master)
    m1 = next(e for e in expected if e.material_code == "M1")

    assert m1.expected_qty == pytest.approx(17.0)
    assert [c.product_code for c in m1.breakdown] == ["P1", "P2"]
    assert sum(c.contribution_qty for c in m1.breakdown) == pytest.approx(m1.expected_qty)
    assert m1.breakdown[0].sales_qty == 100


def test_expected_consumption_empty_inputs(recipe_index):
    assert compute_expected_consumption([], recipe_index) == []
    assert compute_expected_consumption(
        [SalesRecord("P1", "Kimchi", 100)], build_recipe_index([])
    ) == []


def test_variance_decomposition(recipe_index, master):
    expected = compute_expected_consumption(
        [SalesRecord("P1", "Kimchi", 100)], recipe_index, master
    )
    purchases = [PurchaseRecord("M1", "Cabbage", 13.8, 1449)]

    result = analyze_consumption_variance(expected, purchases, master)

    assert result.analyzed_materials == 1
    item = result.items[0]
    assert item.material_code == "M1"
    assert item.expected_qty == 12.0
    assert item.qty_diff == pytest.approx(1.8)
    assert item.price_diff == pytest.approx(5.0)
    assert item.qty_variance == 180
    assert item.price_variance == 69
    assert item.total_variance == 249
    assert item.is_unfavorable
    assert not item.is_price_estimated
    assert item.standard_price.basis == PriceBasis.AUTHORITATIVE

    assert result.total_variance == result.total_price_variance + result.total_qty_variance
    assert result.unfavorable_count == 1
    assert result.favorable_count == 0


def test_variance_estimated_price_is_marked_and_counted(recipe_index, master):
    expected = compute_expected_consumption(
        [SalesRecord("P1", "Kimchi", 100)], recipe_index, master
    )
    purchases = [
        PurchaseRecord("M1", "Cabbage", 13.8, 1449),
        PurchaseRecord("M2", "Chili", 10, 500),
    ]

    result = analyze_consumption_variance(expected, purchases, master)
    m2 = next(i for i in result.items if i.material_code == "M2")

    assert m2.is_price_estimated
    assert m2.standard_price.price == pytest.approx(50.0)
    assert m2.price_variance == 0
    assert m2.qty_variance == 100
    assert result.estimated_price_count == 1
    assert result.estimated_price_variance == 100
    assert result.total_variance == 349
    # Largest absolute variance first
    assert [i.material_code for i in result.items] == ["M1", "M2"]


def test_variance_favorable_item(recipe_index, master):
    expected = compute_expected_consumption(
        [SalesRecord("P1", "Kimchi", 100)], recipe_index, master
    )
    result = analyze_consumption_variance(
        expected, [PurchaseRecord("M1", "Cabbage", 10, 1000)], master
    )

    item = result.items[0]
    assert item.total_variance == -200
    assert item.is_favorable
    assert result.favorable_count == 1


def test_variance_requires_both_sides(recipe_index, master):
    expected = compute_expected_consumption(
        [SalesRecord("P1", "Kimchi", 100)], recipe_index, master
    )

    assert analyze_consumption_variance(expected, [], master).analyzed_materials == 0
    assert analyze_consumption_variance([], [PurchaseRecord("M1", "", 1, 1)], master).items == ()
    unrelated = analyze_consumption_variance(
        expected, [PurchaseRecord("M7", "Other", 5, 50)], master
    )
    assert unrelated.analyzed_materials == 0
    assert unrelated.total_variance == 0


def test_master_lookup_cleans_codes_and_ignores_zero_prices(master):
    assert master.get("M3") is not None
    assert master.get("M3").material_code == "M3"
    assert "M3" not in master.prices
    assert master.price_source("M3", 7.5).is_estimated
    assert master.name_for("M1") == "Cabbage"
    assert master.name_for("M9") == "M9"
