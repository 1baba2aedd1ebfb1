"""
Directory-backed source: one table per dataset, Parquet or CSV.

Expected tables (snake_case columns):
    sales        product_code, product_name, quantity, sale_date
    purchases    material_code, material_name, quantity, total_cost
    bom          product_code, product_name, material_code, material_name,
                 consumption_qty, production_batch_qty, [loss_rate]
    materials    material_code, material_name, unit_price, [category, unit,
                 moq, packaging_unit, lead_time, safety_days, supplier_name]
    inventory    material_code, quantity                       (optional)
    open_orders  material_code, order_qty, received_qty, status (optional)
    meal_plan    plan_date, product_code, product_name, planned_qty (optional)
"""

from __future__ import annotations

import logging
from datetime import date
from pathlib import Path
from typing import Any

import pandas as pd
import pyarrow.parquet as pq

from bom_engine.product.core import (
    BomRecipeRow,
    MaterialMasterEntry,
    MealPlanItem,
    PurchaseRecord,
    SalesRecord,
    clean_code,
)
from bom_engine.sources.base import DataSource

logger = logging.getLogger(__name__)

CODE_COLUMNS = {"product_code": str, "material_code": str}

# Open orders in these states have been fully received
CLOSED_ORDER_STATUSES = {"received", "closed", "complete", "completed"}


def _num(value: Any, default: float = 0.0) -> float:
    if value is None or pd.isna(value):
        return default
    if isinstance(value, str):
        text = value.replace(",", "").strip()
        if not text:
            return default
        try:
            return float(text)
        except ValueError:
            return default
    return float(value)


def _opt_int(value: Any) -> int | None:
    if value is None or pd.isna(value) or value == "":
        return None
    return int(_num(value))


def _text(value: Any) -> str:
    if value is None or (not isinstance(value, str) and pd.isna(value)):
        return ""
    return str(value).strip()


def _date(value: Any) -> date | None:
    if value is None or (not isinstance(value, str) and pd.isna(value)):
        return None
    stamp = pd.to_datetime(str(value), errors="coerce")
    if pd.isna(stamp):
        return None
    return stamp.date()


def sales_from_frame(df: pd.DataFrame) -> list[SalesRecord]:
    return [
        SalesRecord(
            product_code=clean_code(r.get("product_code")),
            product_name=_text(r.get("product_name")),
            quantity=_num(r.get("quantity")),
            sale_date=_date(r.get("sale_date")),
        )
        for r in df.to_dict("records")
    ]


def purchases_from_frame(df: pd.DataFrame) -> list[PurchaseRecord]:
    return [
        PurchaseRecord(
            material_code=clean_code(r.get("material_code")),
            material_name=_text(r.get("material_name")),
            quantity=_num(r.get("quantity")),
            total_cost=_num(r.get("total_cost")),
        )
        for r in df.to_dict("records")
    ]


def bom_from_frame(df: pd.DataFrame) -> list[BomRecipeRow]:
    return [
        BomRecipeRow(
            product_code=clean_code(r.get("product_code")),
            product_name=_text(r.get("product_name")),
            material_code=clean_code(r.get("material_code")),
            material_name=_text(r.get("material_name")),
            consumption_qty=_num(r.get("consumption_qty")),
            production_batch_qty=_num(r.get("production_batch_qty")),
            loss_rate=_num(r.get("loss_rate")),
        )
        for r in df.to_dict("records")
    ]


def materials_from_frame(df: pd.DataFrame) -> list[MaterialMasterEntry]:
    return [
        MaterialMasterEntry(
            material_code=clean_code(r.get("material_code")),
            material_name=_text(r.get("material_name")),
            unit_price=_num(r.get("unit_price")),
            category=_text(r.get("category")) or "etc",
            unit=_text(r.get("unit")) or "g",
            moq=_num(r.get("moq"), 1.0),
            packaging_unit=_num(r.get("packaging_unit"), 1.0),
            lead_time=_opt_int(r.get("lead_time")),
            safety_days=_opt_int(r.get("safety_days")),
            supplier_name=_text(r.get("supplier_name")),
        )
        for r in df.to_dict("records")
    ]


def stock_from_frame(df: pd.DataFrame) -> dict[str, float]:
    stock: dict[str, float] = {}
    for r in df.to_dict("records"):
        code = clean_code(r.get("material_code"))
        if code:
            stock[code] = stock.get(code, 0.0) + _num(r.get("quantity"))
    return stock


def in_transit_from_frame(df: pd.DataFrame) -> dict[str, float]:
    """Pending quantity (ordered - received) of orders that are still open."""
    pending: dict[str, float] = {}
    for r in df.to_dict("records"):
        if _text(r.get("status")).lower() in CLOSED_ORDER_STATUSES:
            continue
        code = clean_code(r.get("material_code"))
        qty = _num(r.get("order_qty")) - _num(r.get("received_qty"))
        if code and qty > 0:
            pending[code] = pending.get(code, 0.0) + qty
    return pending


def meal_plan_from_frame(df: pd.DataFrame) -> list[MealPlanItem]:
    items = []
    for r in df.to_dict("records"):
        plan_date = _date(r.get("plan_date"))
        if plan_date is None:
            continue
        planned = r.get("planned_qty")
        items.append(
            MealPlanItem(
                plan_date=plan_date,
                product_code=clean_code(r.get("product_code")),
                product_name=_text(r.get("product_name")),
                planned_qty=None if planned is None or pd.isna(planned) else _num(planned),
            )
        )
    return items


class DirectorySource(DataSource):
    """Reads <name>.parquet (preferred) or <name>.csv from a directory."""

    def __init__(self, data_dir: str | Path) -> None:
        self.data_dir = Path(data_dir)

    def _read_table(self, name: str, required: bool = True) -> pd.DataFrame | None:
        parquet_path = self.data_dir / f"{name}.parquet"
        csv_path = self.data_dir / f"{name}.csv"

        if parquet_path.exists():
            df = pq.read_table(parquet_path).to_pandas()
        elif csv_path.exists():
            df = pd.read_csv(csv_path, dtype=CODE_COLUMNS, encoding="utf-8-sig")
        elif required:
            raise FileNotFoundError(
                f"No {name}.parquet or {name}.csv found in {self.data_dir}"
            )
        else:
            return None

        logger.debug("Loaded %d rows from %s", len(df), name)
        return df

    def fetch_sales(self) -> list[SalesRecord]:
        return sales_from_frame(self._read_table("sales"))

    def fetch_purchases(self) -> list[PurchaseRecord]:
        return purchases_from_frame(self._read_table("purchases"))

    def fetch_bom(self) -> list[BomRecipeRow]:
        return bom_from_frame(self._read_table("bom"))

    def fetch_materials(self) -> list[MaterialMasterEntry]:
        return materials_from_frame(self._read_table("materials"))

    def fetch_inventory(self) -> dict[str, float]:
        df = self._read_table("inventory", required=False)
        return {} if df is None else stock_from_frame(df)

    def fetch_in_transit(self) -> dict[str, float]:
        df = self._read_table("open_orders", required=False)
        return {} if df is None else in_transit_from_frame(df)

    def fetch_meal_plan(self) -> list[MealPlanItem] | None:
        df = self._read_table("meal_plan", required=False)
        return None if df is None else meal_plan_from_frame(df)
