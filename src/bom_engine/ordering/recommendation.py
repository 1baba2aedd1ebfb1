"""Order status classification and the recommendation summary."""

from __future__ import annotations

import dataclasses
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import date, timedelta

from bom_engine.config.settings import OrderingConfig
from bom_engine.ordering.requirements import OrderCalculation, OrderStatus

STATUS_ORDER = {
    OrderStatus.SHORTAGE: 0,
    OrderStatus.URGENT: 1,
    OrderStatus.NORMAL: 2,
    OrderStatus.OVERSTOCK: 3,
}

STATUS_LABELS = {
    OrderStatus.SHORTAGE: "Shortage",
    OrderStatus.URGENT: "Urgent",
    OrderStatus.NORMAL: "Normal",
    OrderStatus.OVERSTOCK: "Overstock",
}

UNCATEGORIZED = "etc"


@dataclass(frozen=True)
class OrderRecommendation:
    order_date: date
    delivery_date: date
    target_period_start: date
    target_period_end: date
    items: tuple[OrderCalculation, ...]
    total_items: int
    urgent_items: int
    shortage_items: int
    total_estimated_cost: int
    service_level: int
    forecast_weeks: int
    lead_time_days: int
    by_category: dict[str, tuple[OrderCalculation, ...]] = field(default_factory=dict)


def classify_status(
    item: OrderCalculation, config: OrderingConfig
) -> tuple[OrderStatus, str]:
    """
    shortage:  something must be ordered, on-hand stock is below safety stock
               and stock runs out within the lead time
    urgent:    something must be ordered and stock runs out within lead time + margin
    overstock: available stock exceeds a multiple of the total requirement
    """
    days = item.stock_days
    if (
        item.net_requirement > 0
        and item.current_stock < item.safety_stock
        and days < item.lead_time
    ):
        return OrderStatus.SHORTAGE, f"{days:.1f} days of stock - order immediately"
    if item.net_requirement > 0 and days < item.lead_time + config.urgent_margin_days:
        return OrderStatus.URGENT, f"{days:.1f} days of stock - order soon"
    if item.available_stock > item.total_requirement * config.overstock_multiple:
        return OrderStatus.OVERSTOCK, "overstocked"
    return OrderStatus.NORMAL, ""


def group_by_category(
    items: Iterable[OrderCalculation],
) -> dict[str, tuple[OrderCalculation, ...]]:
    grouped: dict[str, list[OrderCalculation]] = {}
    for item in items:
        grouped.setdefault(item.category or UNCATEGORIZED, []).append(item)
    return {cat: tuple(grouped[cat]) for cat in sorted(grouped)}


def build_order_recommendation(
    calculations: Iterable[OrderCalculation],
    config: OrderingConfig,
    order_date: date,
) -> OrderRecommendation:
    classified = []
    for calc in calculations:
        status, message = classify_status(calc, config)
        classified.append(
            dataclasses.replace(calc, status=status, status_message=message)
        )

    classified.sort(key=lambda i: (STATUS_ORDER[i.status], i.material_code))

    target_start = order_date + timedelta(days=config.default_lead_time)
    target_end = target_start + timedelta(days=config.horizon_days)

    return OrderRecommendation(
        order_date=order_date,
        delivery_date=target_start,
        target_period_start=target_start,
        target_period_end=target_end,
        items=tuple(classified),
        total_items=len(classified),
        urgent_items=sum(
            1
            for i in classified
            if i.status in (OrderStatus.URGENT, OrderStatus.SHORTAGE)
        ),
        shortage_items=sum(1 for i in classified if i.status == OrderStatus.SHORTAGE),
        total_estimated_cost=sum(i.estimated_cost for i in classified),
        service_level=config.service_level,
        forecast_weeks=config.forecast_weeks,
        lead_time_days=config.default_lead_time,
        by_category=group_by_category(classified),
    )
