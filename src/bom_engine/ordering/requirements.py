"""
Order requirement calculator.

For each material:
    safety stock      = Z * sigma * sqrt(L),  L = lead time + safety days
    total requirement = gross requirement + safety stock
    net requirement   = max(0, total - (current stock + in transit))
    order quantity    = net rounded up to MOQ and packaging unit
"""

from __future__ import annotations

import enum
import logging
import math
from collections.abc import Mapping
from dataclasses import dataclass

import numpy as np

from bom_engine.analysis.master import MasterLookup
from bom_engine.config.settings import OrderingConfig
from bom_engine.network.recipe_matrix import RecipeIndex
from bom_engine.numeric import STOCK_DAYS_SENTINEL, round_half_up, round_int
from bom_engine.ordering.demand import ProductDemand
from bom_engine.product.core import MaterialMasterEntry

logger = logging.getLogger(__name__)


class OrderStatus(enum.Enum):
    SHORTAGE = "shortage"
    URGENT = "urgent"
    NORMAL = "normal"
    OVERSTOCK = "overstock"


@dataclass(frozen=True)
class OrderCalculation:
    material_code: str
    material_name: str
    category: str
    unit: str
    gross_requirement: float
    safety_stock: int
    total_requirement: float
    current_stock: float
    in_transit: float
    available_stock: float
    net_requirement: float
    order_qty: float
    lead_time: int
    safety_days: int
    moq: float
    packaging_unit: float
    unit_price: float
    estimated_cost: int
    avg_daily_consumption: float
    std_dev: float
    stock_days: float
    service_level: int
    status: OrderStatus = OrderStatus.NORMAL
    status_message: str = ""


def compute_safety_stock(z_score: float, std_dev: float, lead_time_days: float) -> int:
    """round(Z * sigma * sqrt(L)); zero for non-positive inputs."""
    if std_dev <= 0 or lead_time_days <= 0:
        return 0
    return round_int(z_score * std_dev * math.sqrt(lead_time_days))


def round_order_quantity(
    net_requirement: float, moq: float, packaging_unit: float
) -> float:
    """
    Raises a positive net requirement to the MOQ, then up to a whole number
    of packages. The result is a multiple of the packaging unit and >= MOQ.
    """
    if net_requirement <= 0:
        return 0.0
    pack = packaging_unit if packaging_unit and packaging_unit > 0 else 1.0
    qty = max(net_requirement, moq or 0.0)
    return round_half_up(math.ceil(round_half_up(qty / pack, 6)) * pack, 6)


def compute_stock_days(available_stock: float, avg_daily_consumption: float) -> float:
    if avg_daily_consumption <= 0:
        return STOCK_DAYS_SENTINEL
    return round_half_up(available_stock / avg_daily_consumption, 1)


class OrderRequirementCalculator:
    """Explodes product demand through the BOM and sizes material orders."""

    def __init__(self, config: OrderingConfig) -> None:
        self.config = config

    def _default_master(self, code: str, name: str) -> MaterialMasterEntry:
        return MaterialMasterEntry(material_code=code, material_name=name)

    def explode(
        self, demand: Mapping[str, ProductDemand], recipe_index: RecipeIndex
    ) -> dict[str, tuple[float, float]]:
        """
        Material -> (gross requirement, sigma) for the horizon.

        gross = d @ R and sigma^2 = (s^2) @ (R0^2), where R0 is the recipe
        matrix without the loss rate. Product deviations are assumed independent.
        """
        product_ids = [p for p in sorted(demand) if p in recipe_index]
        material_ids = sorted(
            {m for p in product_ids for m in recipe_index.materials_for(p)}
        )
        if not product_ids or not material_ids:
            return {}

        matrix = recipe_index.unit_ratio_matrix(product_ids, material_ids)
        raw = recipe_index.unit_ratio_matrix(
            product_ids, material_ids, include_loss=False
        )
        qty_vec = np.array([demand[p].quantity for p in product_ids], dtype=np.float64)
        std_vec = np.array([demand[p].std_dev for p in product_ids], dtype=np.float64)

        gross = qty_vec @ matrix
        sigma = np.sqrt(np.square(std_vec) @ np.square(raw))

        return {
            m: (float(gross[j]), float(sigma[j])) for j, m in enumerate(material_ids)
        }

    def calculate_item(
        self,
        master: MaterialMasterEntry,
        gross_requirement: float,
        std_dev: float,
        current_stock: float = 0.0,
        in_transit: float = 0.0,
        horizon_days: int | None = None,
    ) -> OrderCalculation:
        cfg = self.config
        horizon = horizon_days or cfg.horizon_days
        lead_time = master.lead_time if master.lead_time is not None else cfg.default_lead_time
        safety_days = (
            master.safety_days if master.safety_days is not None else cfg.safety_days
        )

        gross = round_half_up(gross_requirement, 2)
        safety_stock = compute_safety_stock(cfg.z_score, std_dev, lead_time + safety_days)
        total = round_half_up(gross + safety_stock, 2)
        available = round_half_up(current_stock + in_transit, 2)
        net = max(0.0, round_half_up(total - available, 2))
        order_qty = round_order_quantity(net, master.moq, master.packaging_unit)
        avg_daily = round_half_up(gross / horizon, 2)

        return OrderCalculation(
            material_code=master.material_code,
            material_name=master.material_name or master.material_code,
            category=master.category,
            unit=master.unit,
            gross_requirement=gross,
            safety_stock=safety_stock,
            total_requirement=total,
            current_stock=current_stock,
            in_transit=in_transit,
            available_stock=available,
            net_requirement=net,
            order_qty=order_qty,
            lead_time=lead_time,
            safety_days=safety_days,
            moq=master.moq,
            packaging_unit=master.packaging_unit,
            unit_price=master.unit_price,
            estimated_cost=round_int(order_qty * master.unit_price),
            avg_daily_consumption=avg_daily,
            std_dev=round_half_up(std_dev, 2),
            stock_days=compute_stock_days(available, avg_daily),
            service_level=cfg.service_level,
        )

    def calculate(
        self,
        demand: Mapping[str, ProductDemand],
        recipe_index: RecipeIndex,
        master: MasterLookup,
        inventory: Mapping[str, float] | None = None,
        in_transit: Mapping[str, float] | None = None,
    ) -> list[OrderCalculation]:
        inventory = inventory or {}
        in_transit = in_transit or {}
        requirements = self.explode(demand, recipe_index)

        recipe_names: dict[str, str] = {}
        for product_code in recipe_index.product_codes:
            for material_code, entry in recipe_index.materials_for(product_code).items():
                recipe_names.setdefault(material_code, entry.material_name)

        items = []
        for material_code, (gross, sigma) in requirements.items():
            entry = master.get(material_code) or self._default_master(
                material_code, recipe_names.get(material_code, material_code)
            )
            items.append(
                self.calculate_item(
                    entry,
                    gross,
                    sigma,
                    current_stock=float(inventory.get(material_code, 0.0)),
                    in_transit=float(in_transit.get(material_code, 0.0)),
                )
            )

        logger.debug("Calculated order requirements for %d materials", len(items))
        return items
