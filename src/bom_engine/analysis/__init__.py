"""Consumption-variance and BOM health analysis."""

from bom_engine.analysis.anomaly import AnomalyReport, detect_consumption_anomalies
from bom_engine.analysis.consumption import (
    ExpectedConsumption,
    compute_expected_consumption,
)
from bom_engine.analysis.coverage import CoverageResult, compute_bom_coverage
from bom_engine.analysis.health import BomHealthScore, compute_bom_health
from bom_engine.analysis.master import MasterLookup, build_master_lookup
from bom_engine.analysis.sop_code import (
    BomValidationResult,
    parse_sop_code,
    validate_bom_rows,
)
from bom_engine.analysis.variance import (
    ConsumptionVarianceResult,
    VarianceItem,
    analyze_consumption_variance,
)

__all__ = [
    "AnomalyReport",
    "BomHealthScore",
    "BomValidationResult",
    "ConsumptionVarianceResult",
    "CoverageResult",
    "ExpectedConsumption",
    "MasterLookup",
    "VarianceItem",
    "analyze_consumption_variance",
    "build_master_lookup",
    "compute_bom_coverage",
    "compute_bom_health",
    "compute_expected_consumption",
    "detect_consumption_anomalies",
    "parse_sop_code",
    "validate_bom_rows",
]
