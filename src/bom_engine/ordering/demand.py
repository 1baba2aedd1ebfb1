"""
Statistical demand model: day-of-week sales statistics over a trailing
window of weeks, and the demand forecast they imply for a future horizon.

No smoothing, seasonality or trend: mean and standard deviation only.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date, timedelta

import pandas as pd

from bom_engine.config.settings import OrderingConfig
from bom_engine.numeric import round_half_up
from bom_engine.product.core import MealPlanItem, SalesRecord, clean_code

logger = logging.getLogger(__name__)

DAY_NAMES = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")


@dataclass(frozen=True)
class DayOfWeekStat:
    day_of_week: int  # 0 = Monday
    product_code: str
    product_name: str
    mean: float
    std_dev: float
    min: float
    max: float
    sample_count: int

    @property
    def day_name(self) -> str:
        return DAY_NAMES[self.day_of_week]


@dataclass(frozen=True)
class ProductDemand:
    """Forecast demand of one product over the horizon."""

    product_code: str
    product_name: str
    quantity: float
    std_dev: float
    days: int


class DemandModel:
    """Descriptive statistics of historical sales by (day of week, product)."""

    def __init__(self, config: OrderingConfig) -> None:
        self.config = config

    def window(self, as_of: date) -> tuple[date, date]:
        """(exclusive start, inclusive end) of the trailing history window."""
        return as_of - timedelta(days=7 * self.config.forecast_weeks), as_of

    def _sales_frame(self, sales: Iterable[SalesRecord], as_of: date) -> pd.DataFrame:
        start, end = self.window(as_of)
        rows = [
            {
                "sale_date": s.sale_date,
                "product_code": clean_code(s.product_code),
                "product_name": s.product_name or "",
                "quantity": float(s.quantity or 0.0),
            }
            for s in sales
            if s.sale_date is not None and clean_code(s.product_code)
        ]
        df = pd.DataFrame(
            rows, columns=["sale_date", "product_code", "product_name", "quantity"]
        )
        if df.empty:
            return df
        df["sale_date"] = pd.to_datetime(df["sale_date"])
        mask = (df["sale_date"] > pd.Timestamp(start)) & (
            df["sale_date"] <= pd.Timestamp(end)
        )
        return df.loc[mask]

    def day_of_week_stats(
        self, sales: Iterable[SalesRecord], as_of: date
    ) -> list[DayOfWeekStat]:
        """
        One sample per (date, product): multiple sales lines on the same day
        are summed first. std_dev is the sample standard deviation (ddof=1),
        0 when only one day was observed.
        """
        df = self._sales_frame(sales, as_of)
        if df.empty:
            return []

        daily = df.groupby(["sale_date", "product_code"], as_index=False)["quantity"].sum()
        daily["day_of_week"] = daily["sale_date"].dt.dayofweek

        agg = (
            daily.groupby(["day_of_week", "product_code"])["quantity"]
            .agg(
                mean_qty="mean",
                std_qty="std",
                min_qty="min",
                max_qty="max",
                samples="count",
            )
            .reset_index()
            .sort_values(["day_of_week", "product_code"])
        )
        agg["std_qty"] = agg["std_qty"].fillna(0.0)

        named = df.loc[df["product_name"] != ""]
        names = named.groupby("product_code")["product_name"].first().to_dict()

        stats = [
            DayOfWeekStat(
                day_of_week=int(row.day_of_week),
                product_code=str(row.product_code),
                product_name=names.get(row.product_code, row.product_code),
                mean=round_half_up(float(row.mean_qty), 1),
                std_dev=round_half_up(float(row.std_qty), 1),
                min=float(row.min_qty),
                max=float(row.max_qty),
                sample_count=int(row.samples),
            )
            for row in agg.itertuples(index=False)
        ]
        logger.debug("Computed %d day-of-week/product statistics", len(stats))
        return stats

    def forecast_horizon(
        self,
        stats: Iterable[DayOfWeekStat],
        start: date,
        days: int | None = None,
        plan: Iterable[MealPlanItem] | None = None,
    ) -> dict[str, ProductDemand]:
        """
        Sums expected demand per product over [start, start + days).

        Daily deviations are treated as independent: sigma = sqrt(sum sigma_d^2).
        With a plan, only planned (day, product) pairs are forecast; a planned
        product without history uses its planned quantity (or the configured
        default) and the default standard deviation.
        """
        days = days if days is not None else self.config.horizon_days
        end = start + timedelta(days=days)
        index = {(s.day_of_week, s.product_code): s for s in stats}

        qty: dict[str, float] = {}
        var: dict[str, float] = {}
        names: dict[str, str] = {}
        counts: dict[str, int] = {}

        def add(code: str, name: str, mean: float, std: float) -> None:
            qty[code] = qty.get(code, 0.0) + mean
            var[code] = var.get(code, 0.0) + std**2
            counts[code] = counts.get(code, 0) + 1
            names.setdefault(code, name or code)

        if plan is None:
            by_day: dict[int, list[DayOfWeekStat]] = {}
            for stat in index.values():
                by_day.setdefault(stat.day_of_week, []).append(stat)
            for offset in range(days):
                day = start + timedelta(days=offset)
                for stat in by_day.get(day.weekday(), []):
                    add(stat.product_code, stat.product_name, stat.mean, stat.std_dev)
        else:
            for item in plan:
                code = clean_code(item.product_code)
                if not code or not (start <= item.plan_date < end):
                    continue
                stat = index.get((item.plan_date.weekday(), code))
                if stat is not None:
                    add(code, stat.product_name, stat.mean, stat.std_dev)
                else:
                    planned = (
                        item.planned_qty
                        if item.planned_qty is not None
                        else self.config.default_forecast_qty
                    )
                    add(code, item.product_name, planned, self.config.default_forecast_std)

        return {
            code: ProductDemand(
                product_code=code,
                product_name=names[code],
                quantity=qty[code],
                std_dev=math.sqrt(var[code]),
                days=counts[code],
            )
            for code in sorted(qty)
        }
