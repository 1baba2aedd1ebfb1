"""Sales-driven expected material consumption."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass

from bom_engine.analysis.master import MasterLookup
from bom_engine.network.recipe_matrix import RecipeIndex
from bom_engine.product.core import SalesRecord, clean_code

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ConsumptionContribution:
    product_code: str
    product_name: str
    sales_qty: float
    unit_ratio: float
    contribution_qty: float


@dataclass(frozen=True)
class ExpectedConsumption:
    material_code: str
    material_name: str
    expected_qty: float
    breakdown: tuple[ConsumptionContribution, ...] = ()


@dataclass(frozen=True)
class ProductSales:
    product_code: str
    product_name: str
    quantity: float


def aggregate_sales(sales: Iterable[SalesRecord]) -> dict[str, ProductSales]:
    """Sums sold quantity per product code; rows without a code are dropped."""
    totals: dict[str, float] = {}
    names: dict[str, str] = {}
    for sale in sales:
        code = clean_code(sale.product_code)
        if not code:
            continue
        totals[code] = totals.get(code, 0.0) + float(sale.quantity or 0.0)
        if not names.get(code) and sale.product_name:
            names[code] = sale.product_name

    return {
        code: ProductSales(code, names.get(code) or code, qty)
        for code, qty in totals.items()
    }


def compute_expected_consumption(
    sales: Iterable[SalesRecord],
    recipe_index: RecipeIndex,
    master: MasterLookup | None = None,
) -> list[ExpectedConsumption]:
    """
    Expands realized sales through the recipe index.

    For every product with sales > 0 and every material in its recipe:
        unit_ratio = consumption_qty / production_batch_qty
        contribution = sales_qty * unit_ratio

    Returns one entry per material, largest expected quantity first.
    """
    product_sales = aggregate_sales(sales)
    if not product_sales or len(recipe_index) == 0:
        return []

    expected: dict[str, float] = {}
    names: dict[str, str] = {}
    breakdowns: dict[str, list[ConsumptionContribution]] = {}

    for product_code in recipe_index.product_codes:
        sold = product_sales.get(product_code)
        if sold is None or sold.quantity <= 0:
            continue

        for material_code, recipe in sorted(
            recipe_index.materials_for(product_code).items()
        ):
            unit_ratio = recipe.unit_ratio
            contribution = sold.quantity * unit_ratio

            expected[material_code] = expected.get(material_code, 0.0) + contribution
            breakdowns.setdefault(material_code, []).append(
                ConsumptionContribution(
                    product_code=product_code,
                    product_name=recipe.product_name or sold.product_name,
                    sales_qty=sold.quantity,
                    unit_ratio=unit_ratio,
                    contribution_qty=contribution,
                )
            )
            if material_code not in names:
                name = recipe.material_name
                if master is not None and (not name or name == material_code):
                    name = master.name_for(material_code)
                names[material_code] = name or material_code

    results = [
        ExpectedConsumption(
            material_code=code,
            material_name=names[code],
            expected_qty=qty,
            breakdown=tuple(breakdowns[code]),
        )
        for code, qty in expected.items()
    ]
    results.sort(key=lambda e: (-e.expected_qty, e.material_code))

    logger.debug(
        "Expected consumption for %d materials from %d sold products",
        len(results),
        len(product_sales),
    )
    return results
