"""
Consumption anomaly detection on top of the variance analysis.

An item is flagged as overuse/underuse when its quantity deviation exceeds
the threshold, and as a price deviation when its unit price does.
Severity: high >= 30%, medium >= 15%, low otherwise.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass

from bom_engine.analysis.variance import ConsumptionVarianceResult, VarianceItem

DEFAULT_THRESHOLD_PCT = 10.0
HIGH_SEVERITY_PCT = 30.0
MEDIUM_SEVERITY_PCT = 15.0
TOP_N = 5


class AnomalyType(enum.Enum):
    OVERUSE = "overuse"
    UNDERUSE = "underuse"
    PRICE_DEVIATION = "price_deviation"


class Severity(enum.Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


@dataclass(frozen=True)
class AnomalyItem:
    material_code: str
    material_name: str
    anomaly_type: AnomalyType
    severity: Severity
    expected_consumption: float
    actual_consumption: float
    deviation_pct: float
    cost_impact: int


@dataclass(frozen=True)
class AnomalyReport:
    items: tuple[AnomalyItem, ...] = ()
    high_severity_count: int = 0
    overuse_count: int = 0
    underuse_count: int = 0
    price_anomaly_count: int = 0
    top_overuse: tuple[AnomalyItem, ...] = ()
    top_underuse: tuple[AnomalyItem, ...] = ()
    top_price_deviation: tuple[AnomalyItem, ...] = ()

    @property
    def total_anomalies(self) -> int:
        return len(self.items)


def classify_severity(deviation_pct: float) -> Severity:
    magnitude = abs(deviation_pct)
    if magnitude >= HIGH_SEVERITY_PCT:
        return Severity.HIGH
    if magnitude >= MEDIUM_SEVERITY_PCT:
        return Severity.MEDIUM
    return Severity.LOW


def _item_anomalies(item: VarianceItem, threshold_pct: float) -> list[AnomalyItem]:
    found = []

    if abs(item.qty_diff_pct) > threshold_pct:
        kind = AnomalyType.OVERUSE if item.qty_diff_pct > 0 else AnomalyType.UNDERUSE
        found.append(
            AnomalyItem(
                material_code=item.material_code,
                material_name=item.material_name,
                anomaly_type=kind,
                severity=classify_severity(item.qty_diff_pct),
                expected_consumption=item.expected_qty,
                actual_consumption=item.actual_qty,
                deviation_pct=item.qty_diff_pct,
                cost_impact=item.qty_variance,
            )
        )

    if abs(item.price_diff_pct) > threshold_pct:
        found.append(
            AnomalyItem(
                material_code=item.material_code,
                material_name=item.material_name,
                anomaly_type=AnomalyType.PRICE_DEVIATION,
                severity=classify_severity(item.price_diff_pct),
                expected_consumption=item.expected_qty,
                actual_consumption=item.actual_qty,
                deviation_pct=item.price_diff_pct,
                cost_impact=item.price_variance,
            )
        )

    return found


def _top(items: list[AnomalyItem], kind: AnomalyType) -> tuple[AnomalyItem, ...]:
    matching = [i for i in items if i.anomaly_type == kind]
    matching.sort(key=lambda i: (-abs(i.deviation_pct), i.material_code))
    return tuple(matching[:TOP_N])


def detect_consumption_anomalies(
    variance: ConsumptionVarianceResult,
    threshold_pct: float = DEFAULT_THRESHOLD_PCT,
) -> AnomalyReport:
    items: list[AnomalyItem] = []
    for variance_item in variance.items:
        items.extend(_item_anomalies(variance_item, threshold_pct))

    if not items:
        return AnomalyReport()

    items.sort(key=lambda i: (-abs(i.deviation_pct), i.material_code, i.anomaly_type.value))

    return AnomalyReport(
        items=tuple(items),
        high_severity_count=sum(1 for i in items if i.severity == Severity.HIGH),
        overuse_count=sum(1 for i in items if i.anomaly_type == AnomalyType.OVERUSE),
        underuse_count=sum(1 for i in items if i.anomaly_type == AnomalyType.UNDERUSE),
        price_anomaly_count=sum(
            1 for i in items if i.anomaly_type == AnomalyType.PRICE_DEVIATION
        ),
        top_overuse=_top(items, AnomalyType.OVERUSE),
        top_underuse=_top(items, AnomalyType.UNDERUSE),
        top_price_deviation=_top(items, AnomalyType.PRICE_DEVIATION),
    )
