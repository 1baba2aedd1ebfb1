"""Order recommendation export (CSV for spreadsheets, Parquet for pipelines)."""

import csv
from pathlib import Path
from typing import Any

import pyarrow as pa
import pyarrow.parquet as pq

from bom_engine.ordering.recommendation import STATUS_LABELS, OrderRecommendation
from bom_engine.ordering.requirements import OrderCalculation
from bom_engine.writers.base import BaseWriter

# (header, attribute) in export order
ORDER_COLUMNS = [
    ("Material Code", "material_code"),
    ("Material Name", "material_name"),
    ("Category", "category"),
    ("Unit", "unit"),
    ("Gross Requirement", "gross_requirement"),
    ("Safety Stock", "safety_stock"),
    ("Current Stock", "current_stock"),
    ("In Transit", "in_transit"),
    ("Net Requirement", "net_requirement"),
    ("Order Qty", "order_qty"),
    ("Unit Price", "unit_price"),
    ("Estimated Cost", "estimated_cost"),
    ("Lead Time", "lead_time"),
    ("MOQ", "moq"),
    ("Status", "status"),
]

ORDER_HEADERS = [header for header, _ in ORDER_COLUMNS]

ORDER_SCHEMA = pa.schema(
    [
        ("material_code", pa.string()),
        ("material_name", pa.string()),
        ("category", pa.string()),
        ("unit", pa.string()),
        ("gross_requirement", pa.float64()),
        ("safety_stock", pa.float64()),
        ("current_stock", pa.float64()),
        ("in_transit", pa.float64()),
        ("net_requirement", pa.float64()),
        ("order_qty", pa.float64()),
        ("unit_price", pa.float64()),
        ("estimated_cost", pa.float64()),
        ("lead_time", pa.int32()),
        ("moq", pa.float64()),
        ("status", pa.string()),
    ]
)


def order_row(item: OrderCalculation) -> dict[str, Any]:
    """Flat record of one order line; status is the display label."""
    row = {attr: getattr(item, attr) for _, attr in ORDER_COLUMNS}
    row["status"] = STATUS_LABELS[item.status]
    return row


class OrderRecommendationWriter(BaseWriter):
    """Writes the order lines of a recommendation to disk."""

    def __init__(self, output_dir: str | Path) -> None:
        self.output_dir = Path(output_dir)
        self.output_dir.mkdir(parents=True, exist_ok=True)

    def write(self, data: Any, destination: str) -> None:
        if destination.endswith(".parquet"):
            self.write_parquet(data, destination)
        else:
            self.write_csv(data, destination)

    def write_csv(self, recommendation: OrderRecommendation, filename: str) -> Path:
        """UTF-8 with BOM so spreadsheet tools detect the encoding."""
        filepath = self.output_dir / filename
        with open(filepath, "w", newline="", encoding="utf-8-sig") as f:
            writer = csv.writer(f)
            writer.writerow(ORDER_HEADERS)
            for item in recommendation.items:
                row = order_row(item)
                writer.writerow([row[attr] for _, attr in ORDER_COLUMNS])
        return filepath

    def write_parquet(self, recommendation: OrderRecommendation, filename: str) -> Path:
        filepath = self.output_dir / filename
        rows = [order_row(item) for item in recommendation.items]
        table = pa.Table.from_pylist(rows, schema=ORDER_SCHEMA)
        pq.write_table(table, filepath)
        return filepath
