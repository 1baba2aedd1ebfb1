"""
Analysis orchestrator: runs the full engine over one input snapshot.

Variance side:  master + recipe index -> expected consumption -> variance
                -> anomalies; coverage + validation -> health score
Ordering side:  sales history -> day-of-week stats -> horizon demand
                -> BOM explosion -> order requirements -> recommendation
"""

from __future__ import annotations

import dataclasses
import enum
import logging
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Any

from bom_engine.analysis.anomaly import AnomalyReport, detect_consumption_anomalies
from bom_engine.analysis.consumption import (
    ExpectedConsumption,
    compute_expected_consumption,
)
from bom_engine.analysis.coverage import CoverageResult, compute_bom_coverage
from bom_engine.analysis.health import BomHealthScore, compute_bom_health
from bom_engine.analysis.master import build_master_lookup
from bom_engine.analysis.sop_code import BomValidationResult, validate_bom_rows
from bom_engine.analysis.variance import (
    ConsumptionVarianceResult,
    analyze_consumption_variance,
)
from bom_engine.config.loader import load_engine_config
from bom_engine.config.settings import OrderingConfig
from bom_engine.network.recipe_matrix import BatchConflict, build_recipe_index
from bom_engine.ordering.demand import DayOfWeekStat, DemandModel
from bom_engine.ordering.recommendation import (
    OrderRecommendation,
    build_order_recommendation,
)
from bom_engine.ordering.requirements import OrderRequirementCalculator
from bom_engine.sources.base import DataSource
from bom_engine.sources.snapshot import InputSnapshot, fetch_snapshot

logger = logging.getLogger(__name__)


def to_jsonable(value: Any) -> Any:
    """Recursively converts report objects to JSON-compatible structures."""
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return {f.name: to_jsonable(getattr(value, f.name)) for f in dataclasses.fields(value)}
    if isinstance(value, enum.Enum):
        return value.value
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, Mapping):
        return {str(k): to_jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_jsonable(v) for v in value]
    return value


@dataclass(frozen=True)
class AnalysisReport:
    as_of: date
    config: OrderingConfig
    expected_consumption: tuple[ExpectedConsumption, ...]
    variance: ConsumptionVarianceResult
    anomalies: AnomalyReport
    coverage: CoverageResult
    validation: BomValidationResult
    health: BomHealthScore
    batch_conflicts: tuple[BatchConflict, ...]
    day_of_week_stats: tuple[DayOfWeekStat, ...]
    recommendation: OrderRecommendation

    def to_dict(self) -> dict[str, Any]:
        return to_jsonable(self)


class Orchestrator:
    """Pure, synchronous pipeline over a frozen InputSnapshot."""

    def __init__(self, config: OrderingConfig | None = None) -> None:
        if config is None:
            config = OrderingConfig.from_dict(load_engine_config())
        self.config = config
        self.demand_model = DemandModel(config)
        self.calculator = OrderRequirementCalculator(config)

    def run(self, snapshot: InputSnapshot, as_of: date) -> AnalysisReport:
        cfg = self.config

        # 1. Reference data
        master = build_master_lookup(snapshot.materials)
        recipe_index = build_recipe_index(snapshot.bom, master)

        # 2. Consumption variance
        expected = compute_expected_consumption(snapshot.sales, recipe_index, master)
        variance = analyze_consumption_variance(expected, snapshot.purchases, master)
        anomalies = detect_consumption_anomalies(variance, cfg.anomaly_threshold_pct)

        # 3. Coverage, validation, health
        coverage = compute_bom_coverage(snapshot.bom, snapshot.sales, snapshot.purchases)
        validation = validate_bom_rows(snapshot.bom)
        health = compute_bom_health(coverage, validation, variance, anomalies)

        # 4. Statistical ordering
        stats = self.demand_model.day_of_week_stats(snapshot.sales, as_of)
        horizon_start = as_of + timedelta(days=cfg.default_lead_time)
        demand = self.demand_model.forecast_horizon(
            stats, horizon_start, cfg.horizon_days, plan=snapshot.meal_plan
        )
        calculations = self.calculator.calculate(
            demand,
            recipe_index,
            master,
            inventory=snapshot.inventory,
            in_transit=snapshot.in_transit,
        )
        recommendation = build_order_recommendation(calculations, cfg, as_of)

        logger.info(
            "Analysis %s: %d materials analysed, health %d, %d order lines "
            "(%d urgent, %d shortage)",
            as_of.isoformat(),
            variance.analyzed_materials,
            health.overall,
            recommendation.total_items,
            recommendation.urgent_items,
            recommendation.shortage_items,
        )

        return AnalysisReport(
            as_of=as_of,
            config=cfg,
            expected_consumption=tuple(expected),
            variance=variance,
            anomalies=anomalies,
            coverage=coverage,
            validation=validation,
            health=health,
            batch_conflicts=tuple(recipe_index.batch_conflicts),
            day_of_week_stats=tuple(stats),
            recommendation=recommendation,
        )

    def run_from_source(
        self, source: DataSource, as_of: date, timeout: float | None = None
    ) -> AnalysisReport:
        snapshot = fetch_snapshot(source, timeout=timeout)
        return self.run(snapshot, as_of)
