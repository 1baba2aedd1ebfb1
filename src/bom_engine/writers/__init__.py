"""Output writers."""

from bom_engine.writers.base import BaseWriter
from bom_engine.writers.order_writer import (
    ORDER_HEADERS,
    OrderRecommendationWriter,
    order_row,
)
from bom_engine.writers.report_writer import ReportWriter, render_report

__all__ = [
    "BaseWriter",
    "ORDER_HEADERS",
    "OrderRecommendationWriter",
    "ReportWriter",
    "order_row",
    "render_report",
]
