"""Statistical reorder engine."""

from bom_engine.ordering.demand import DayOfWeekStat, DemandModel, ProductDemand
from bom_engine.ordering.recommendation import (
    STATUS_LABELS,
    OrderRecommendation,
    build_order_recommendation,
    classify_status,
)
from bom_engine.ordering.requirements import (
    OrderCalculation,
    OrderRequirementCalculator,
    OrderStatus,
    compute_safety_stock,
    round_order_quantity,
)

__all__ = [
    "STATUS_LABELS",
    "DayOfWeekStat",
    "DemandModel",
    "OrderCalculation",
    "OrderRecommendation",
    "OrderRequirementCalculator",
    "OrderStatus",
    "ProductDemand",
    "build_order_recommendation",
    "classify_status",
    "compute_safety_stock",
    "round_order_quantity",
]
