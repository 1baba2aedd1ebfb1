"""
Consumption variance: expected (BOM x sales) vs actual (purchases).

The cost gap per material is split into
    price variance    = (actual avg price - standard price) * actual qty
    quantity variance = (actual qty - expected qty) * standard price
so that price + quantity variance == total variance.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass

from bom_engine.analysis.consumption import ConsumptionContribution, ExpectedConsumption
from bom_engine.analysis.master import MasterLookup
from bom_engine.numeric import pct, round_half_up, round_int, safe_div
from bom_engine.product.core import PriceSource, PurchaseRecord, clean_code

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PurchaseAggregate:
    material_code: str
    material_name: str
    quantity: float
    total_cost: float

    @property
    def average_price(self) -> float:
        return safe_div(self.total_cost, self.quantity)


@dataclass(frozen=True)
class VarianceItem:
    material_code: str
    material_name: str
    expected_qty: float
    # Unrounded expected quantity; expected_qty is the 2-decimal display value
    exact_expected_qty: float
    actual_qty: float
    qty_diff: float
    qty_diff_pct: float
    standard_price: PriceSource
    actual_avg_price: float
    price_diff: float
    price_diff_pct: float
    price_variance: int
    qty_variance: int
    total_variance: int
    breakdown: tuple[ConsumptionContribution, ...] = ()

    @property
    def is_favorable(self) -> bool:
        return self.total_variance < 0

    @property
    def is_unfavorable(self) -> bool:
        return self.total_variance > 0

    @property
    def is_price_estimated(self) -> bool:
        return self.standard_price.is_estimated


@dataclass(frozen=True)
class ConsumptionVarianceResult:
    items: tuple[VarianceItem, ...] = ()
    total_price_variance: int = 0
    total_qty_variance: int = 0
    total_variance: int = 0
    favorable_count: int = 0
    unfavorable_count: int = 0
    analyzed_materials: int = 0
    estimated_price_count: int = 0
    estimated_price_variance: int = 0


def aggregate_purchases(
    purchases: Iterable[PurchaseRecord],
) -> dict[str, PurchaseAggregate]:
    qty: dict[str, float] = {}
    cost: dict[str, float] = {}
    names: dict[str, str] = {}
    for p in purchases:
        code = clean_code(p.material_code)
        if not code:
            continue
        qty[code] = qty.get(code, 0.0) + float(p.quantity or 0.0)
        cost[code] = cost.get(code, 0.0) + float(p.total_cost or 0.0)
        if not names.get(code) and p.material_name:
            names[code] = p.material_name

    return {
        code: PurchaseAggregate(code, names.get(code) or code, qty[code], cost[code])
        for code in qty
    }


def build_variance_item(
    expected: ExpectedConsumption,
    actual: PurchaseAggregate,
    standard_price: PriceSource,
) -> VarianceItem:
    actual_avg_price = actual.average_price
    std_price = standard_price.price

    qty_diff = actual.quantity - expected.expected_qty
    price_diff = actual_avg_price - std_price

    # Each term is rounded on its own so the decomposition stays exact
    price_variance = round_int(price_diff * actual.quantity)
    qty_variance = round_int(qty_diff * std_price)

    return VarianceItem(
        material_code=expected.material_code,
        material_name=expected.material_name,
        expected_qty=round_half_up(expected.expected_qty, 2),
        exact_expected_qty=expected.expected_qty,
        actual_qty=actual.quantity,
        qty_diff=round_half_up(qty_diff, 2),
        qty_diff_pct=round_half_up(pct(qty_diff, expected.expected_qty), 1),
        standard_price=standard_price,
        actual_avg_price=actual_avg_price,
        price_diff=price_diff,
        price_diff_pct=round_half_up(pct(price_diff, std_price), 1),
        price_variance=price_variance,
        qty_variance=qty_variance,
        total_variance=price_variance + qty_variance,
        breakdown=expected.breakdown,
    )


def analyze_consumption_variance(
    expected: Iterable[ExpectedConsumption],
    purchases: Iterable[PurchaseRecord],
    master: MasterLookup,
) -> ConsumptionVarianceResult:
    """Reconciles every material that has both an expectation and purchases."""
    expected = list(expected)
    purchase_agg = aggregate_purchases(purchases)
    if not expected or not purchase_agg:
        return ConsumptionVarianceResult()

    items: list[VarianceItem] = []
    for exp in expected:
        actual = purchase_agg.get(exp.material_code)
        if actual is None:
            continue
        standard = master.price_source(exp.material_code, actual.average_price)
        items.append(build_variance_item(exp, actual, standard))

    items.sort(key=lambda i: (-abs(i.total_variance), i.material_code))

    total_price = sum(i.price_variance for i in items)
    total_qty = sum(i.qty_variance for i in items)
    estimated = [i for i in items if i.is_price_estimated]
    if estimated:
        logger.debug(
            "%d of %d materials use an estimated standard price",
            len(estimated),
            len(items),
        )

    return ConsumptionVarianceResult(
        items=tuple(items),
        total_price_variance=total_price,
        total_qty_variance=total_qty,
        total_variance=total_price + total_qty,
        favorable_count=sum(1 for i in items if i.is_favorable),
        unfavorable_count=sum(1 for i in items if i.is_unfavorable),
        analyzed_materials=len(items),
        estimated_price_count=len(estimated),
        estimated_price_variance=sum(i.total_variance for i in estimated),
    )
