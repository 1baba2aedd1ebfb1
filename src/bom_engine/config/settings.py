"""Immutable, validated engine configuration."""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from typing import Any

# Service level (%) -> one-sided normal Z-score
SERVICE_LEVEL_Z_SCORES: dict[int, float] = {
    90: 1.28,
    95: 1.65,
    97: 1.88,
    99: 2.33,
}
DEFAULT_Z_SCORE = 1.65


def z_score_for(service_level: float) -> float:
    """Z-score for a service level; unrecognized levels fall back to 95%."""
    return SERVICE_LEVEL_Z_SCORES.get(int(service_level), DEFAULT_Z_SCORE)


@dataclass(frozen=True)
class OrderingConfig:
    """
    Parameters for one analysis/ordering run.

    Passed explicitly into every pipeline invocation; use replace() to try
    alternative settings (the result is validated again).
    """

    service_level: int = 95
    forecast_weeks: int = 4
    default_lead_time: int = 2
    safety_days: int = 1

    # Forecast horizon after the lead time
    horizon_days: int = 7
    # Planned items without sales history
    default_forecast_qty: float = 100.0
    default_forecast_std: float = 20.0

    # Status classification
    urgent_margin_days: int = 2
    overstock_multiple: float = 3.0

    anomaly_threshold_pct: float = 10.0

    def __post_init__(self) -> None:
        if self.service_level not in SERVICE_LEVEL_Z_SCORES:
            supported = ", ".join(str(s) for s in SERVICE_LEVEL_Z_SCORES)
            raise ValueError(
                f"Unsupported service level {self.service_level!r} "
                f"(supported: {supported})"
            )
        if self.forecast_weeks < 1:
            raise ValueError("forecast_weeks must be at least 1")
        if self.horizon_days < 1:
            raise ValueError("horizon_days must be at least 1")
        if self.default_lead_time < 0 or self.safety_days < 0:
            raise ValueError("Lead time and safety days cannot be negative")
        if self.urgent_margin_days < 0:
            raise ValueError("urgent_margin_days cannot be negative")
        if self.overstock_multiple <= 0:
            raise ValueError("overstock_multiple must be positive")
        if self.default_forecast_qty < 0 or self.default_forecast_std < 0:
            raise ValueError("Default forecast values cannot be negative")
        if self.anomaly_threshold_pct < 0:
            raise ValueError("anomaly_threshold_pct cannot be negative")

    @property
    def z_score(self) -> float:
        return SERVICE_LEVEL_Z_SCORES[self.service_level]

    @property
    def effective_lead_time(self) -> int:
        """Default L used for safety stock: lead time + safety days."""
        return self.default_lead_time + self.safety_days

    def replace(self, **changes: Any) -> OrderingConfig:
        return dataclasses.replace(self, **changes)

    @classmethod
    def from_dict(cls, config: dict[str, Any]) -> OrderingConfig:
        """Builds a config from the engine_config.json layout."""
        ordering = config.get("ordering", {})
        analysis = config.get("analysis", {})
        field_defaults = {f.name: f.default for f in dataclasses.fields(cls)}

        def pick(section: dict[str, Any], key: str, cast: type) -> Any:
            return cast(section.get(key, field_defaults[key]))

        return cls(
            service_level=pick(ordering, "service_level", int),
            forecast_weeks=pick(ordering, "forecast_weeks", int),
            default_lead_time=pick(ordering, "default_lead_time", int),
            safety_days=pick(ordering, "safety_days", int),
            horizon_days=pick(ordering, "horizon_days", int),
            default_forecast_qty=pick(ordering, "default_forecast_qty", float),
            default_forecast_std=pick(ordering, "default_forecast_std", float),
            urgent_margin_days=pick(ordering, "urgent_margin_days", int),
            overstock_multiple=pick(ordering, "overstock_multiple", float),
            anomaly_threshold_pct=pick(analysis, "anomaly_threshold_pct", float),
        )
