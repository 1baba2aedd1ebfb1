"""Weighted 0-100 BOM health score."""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from bom_engine.analysis.anomaly import AnomalyReport
from bom_engine.analysis.coverage import CoverageResult
from bom_engine.analysis.sop_code import BomValidationResult
from bom_engine.analysis.variance import ConsumptionVarianceResult
from bom_engine.numeric import round_int

# Sub-score weights (sum to 1.0)
WEIGHTS = {
    "data_quality": 0.2,
    "coverage": 0.3,
    "variance": 0.3,
    "anomaly": 0.2,
}

# Average absolute quantity discrepancy that floors the variance score
VARIANCE_FLOOR_PCT = 30.0
# High-severity share of anomalies that floors the anomaly score (1 / 200 * 100)
ANOMALY_PENALTY = 200.0

EMPTY_SCORE = 100


@dataclass(frozen=True)
class BomHealthScore:
    overall: int
    data_quality: int
    coverage_score: int
    variance_score: int
    anomaly_score: int


def _clamp(score: float) -> int:
    return int(min(100, max(0, round_int(score))))


def variance_score(variance: ConsumptionVarianceResult | None) -> int:
    if variance is None or not variance.items:
        return EMPTY_SCORE
    standard = np.array(
        [i.exact_expected_qty for i in variance.items], dtype=np.float64
    )
    actual = np.array([i.actual_qty for i in variance.items], dtype=np.float64)
    # A zero standard quantity is compared against 1 instead
    standard = np.where(standard == 0, 1.0, standard)
    avg_abs_diff_pct = float(np.mean(np.abs((actual - standard) / standard) * 100))
    return _clamp(100 - (avg_abs_diff_pct / VARIANCE_FLOOR_PCT) * 100)


def anomaly_score(anomalies: AnomalyReport | None) -> int:
    if anomalies is None or not anomalies.items:
        return EMPTY_SCORE
    high_ratio = anomalies.high_severity_count / len(anomalies.items)
    return _clamp(100 - high_ratio * ANOMALY_PENALTY)


def compute_bom_health(
    coverage: CoverageResult,
    validation: BomValidationResult,
    variance: ConsumptionVarianceResult | None = None,
    anomalies: AnomalyReport | None = None,
) -> BomHealthScore:
    """
    Combines four sub-scores. A sub-score whose source dataset is empty
    is 100: missing evidence is not counted as a problem.
    """
    data_quality = (
        _clamp(validation.compliance) if validation.total_rows else EMPTY_SCORE
    )
    coverage_score = (
        _clamp(coverage.completeness_score) if coverage.total_products else EMPTY_SCORE
    )
    var_score = variance_score(variance)
    anom_score = anomaly_score(anomalies)

    overall = _clamp(
        data_quality * WEIGHTS["data_quality"]
        + coverage_score * WEIGHTS["coverage"]
        + var_score * WEIGHTS["variance"]
        + anom_score * WEIGHTS["anomaly"]
    )

    return BomHealthScore(
        overall=overall,
        data_quality=data_quality,
        coverage_score=coverage_score,
        variance_score=var_score,
        anomaly_score=anom_score,
    )
