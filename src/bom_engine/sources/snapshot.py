"""
Concurrent fan-out / fan-in of the raw datasets into a frozen snapshot.

The fetches have no ordering dependency on each other; they are issued in
parallel and all of them must complete before the engine runs.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Mapping
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

from bom_engine.product.core import (
    BomRecipeRow,
    MaterialMasterEntry,
    MealPlanItem,
    PurchaseRecord,
    SalesRecord,
)
from bom_engine.sources.base import DataSource

logger = logging.getLogger(__name__)


def _frozen(mapping: Mapping[str, float]) -> Mapping[str, float]:
    return MappingProxyType(dict(sorted(mapping.items())))


@dataclass(frozen=True)
class InputSnapshot:
    """Immutable inputs of one analysis run."""

    sales: tuple[SalesRecord, ...] = ()
    purchases: tuple[PurchaseRecord, ...] = ()
    bom: tuple[BomRecipeRow, ...] = ()
    materials: tuple[MaterialMasterEntry, ...] = ()
    inventory: Mapping[str, float] = field(default_factory=lambda: _frozen({}))
    in_transit: Mapping[str, float] = field(default_factory=lambda: _frozen({}))
    meal_plan: tuple[MealPlanItem, ...] | None = None

    @classmethod
    def from_parts(cls, **parts: Any) -> InputSnapshot:
        plan = parts.get("meal_plan")
        return cls(
            sales=tuple(parts.get("sales") or ()),
            purchases=tuple(parts.get("purchases") or ()),
            bom=tuple(parts.get("bom") or ()),
            materials=tuple(parts.get("materials") or ()),
            inventory=_frozen(parts.get("inventory") or {}),
            in_transit=_frozen(parts.get("in_transit") or {}),
            meal_plan=None if plan is None else tuple(plan),
        )


def fetch_snapshot(
    source: DataSource, timeout: float | None = None, max_workers: int = 7
) -> InputSnapshot:
    """
    Runs every fetch of `source` concurrently and joins the results.

    Any fetch error (or a timeout waiting for one) propagates; no partial
    snapshot is ever returned.
    A fetch still running at the deadline is abandoned to finish on its own
    worker thread.
    """
    fetches = {
        "sales": source.fetch_sales,
        "purchases": source.fetch_purchases,
        "bom": source.fetch_bom,
        "materials": source.fetch_materials,
        "inventory": source.fetch_inventory,
        "in_transit": source.fetch_in_transit,
        "meal_plan": source.fetch_meal_plan,
    }

    start = time.monotonic()
    deadline = None if timeout is None else start + timeout
    parts: dict[str, Any] = {}

    # Not a context manager: its exit would block on a hung fetch
    pool = ThreadPoolExecutor(max_workers=max_workers)
    try:
        futures = {name: pool.submit(fn) for name, fn in fetches.items()}
        for name, future in futures.items():
            remaining = None if deadline is None else max(0.0, deadline - time.monotonic())
            parts[name] = future.result(timeout=remaining)
    except BaseException:
        pool.shutdown(wait=False, cancel_futures=True)
        raise
    pool.shutdown()

    logger.info(
        "Fetched snapshot in %.2fs: %d sales, %d purchases, %d BOM rows, %d materials",
        time.monotonic() - start,
        len(parts["sales"]),
        len(parts["purchases"]),
        len(parts["bom"]),
        len(parts["materials"]),
    )
    return InputSnapshot.from_parts(**parts)
