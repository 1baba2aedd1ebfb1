import csv
import json
from datetime import date

import pyarrow.parquet as pq
import pytest

from bom_engine.config.settings import OrderingConfig
from bom_engine.ordering.requirements import OrderStatus
from bom_engine.pipeline.orchestrator import Orchestrator
from bom_engine.product.core import (
    BomRecipeRow,
    MaterialMasterEntry,
    PurchaseRecord,
    SalesRecord,
)
from bom_engine.sources.base import InMemorySource
from bom_engine.sources.snapshot import InputSnapshot
from bom_engine.writers.order_writer import ORDER_HEADERS, OrderRecommendationWriter
from bom_engine.writers.report_writer import ReportWriter, render_report

AS_OF = date(2024, 3, 31)
PRODUCT = "ZIP_P_1001"
MATERIAL = "ZIP_M_2034"


@pytest.fixture
def source():
    sales = [
        SalesRecord(PRODUCT, "Kimchi stew", qty, day)
        for qty, day in [
            (20, date(2024, 3, 4)),
            (30, date(2024, 3, 11)),
            (20, date(2024, 3, 18)),
            (30, date(2024, 3, 25)),
        ]
    ]
    return InMemorySource(
        sales=sales,
        purchases=[
            PurchaseRecord(MATERIAL, "Cabbage", 13.8, 1449),
            PurchaseRecord("ZIP_M_9999", "Unused", 1, 10),
        ],
        bom=[BomRecipeRow(PRODUCT, "Kimchi stew", MATERIAL, "Cabbage", 12, 100)],
        materials=[MaterialMasterEntry(MATERIAL, "Cabbage", unit_price=100)],
    )


@pytest.fixture
def snapshot(source):
    return InputSnapshot.from_parts(
        sales=source.sales,
        purchases=source.purchases,
        bom=source.bom,
        materials=source.materials,
    )


@pytest.fixture
def engine():
    return Orchestrator(OrderingConfig())


def test_pipeline_end_to_end(engine, snapshot):
    report = engine.run(snapshot, AS_OF)

    assert report.expected_consumption[0].expected_qty == pytest.approx(12.0)
    assert report.variance.total_variance == 249
    assert report.anomalies.overuse_count == 1
    assert report.coverage.completeness_score == 100
    assert [o.code for o in report.coverage.orphan_materials] == ["ZIP_M_9999"]
    assert report.validation.compliance == 100
    assert 0 <= report.health.overall <= 100

    monday = report.day_of_week_stats[0]
    assert monday.mean == 25.0
    assert monday.std_dev == 5.8

    rec = report.recommendation
    assert rec.total_items == 1
    line = rec.items[0]
    assert line.material_code == MATERIAL
    assert line.gross_requirement == 3.0
    assert line.safety_stock == 2
    assert line.order_qty == 5
    assert line.status == OrderStatus.SHORTAGE


def test_pipeline_is_idempotent(engine, source, snapshot):
    first = render_report(engine.run(snapshot, AS_OF))
    second = render_report(engine.run(snapshot, AS_OF))
    from_source = render_report(engine.run_from_source(source, AS_OF, timeout=5))

    assert first == second == from_source


def test_report_to_dict_is_json_ready(engine, snapshot):
    data = engine.run(snapshot, AS_OF).to_dict()

    assert data["as_of"] == "2024-03-31"
    assert data["config"]["service_level"] == 95
    assert data["variance"]["items"][0]["standard_price"]["basis"] == "authoritative"
    assert data["recommendation"]["items"][0]["status"] == "shortage"
    json.dumps(data)


def test_empty_snapshot(engine):
    report = engine.run(InputSnapshot(), AS_OF)

    assert report.expected_consumption == ()
    assert report.variance.analyzed_materials == 0
    assert report.coverage.completeness_score == 0
    assert report.health.overall == 100
    assert report.recommendation.total_items == 0


def test_order_csv_export(engine, snapshot, tmp_path):
    rec = engine.run(snapshot, AS_OF).recommendation

    path = OrderRecommendationWriter(tmp_path).write_csv(rec, "orders.csv")

    assert path.read_bytes().startswith(b"\xef\xbb\xbf")
    with open(path, newline="", encoding="utf-8-sig") as f:
        rows = list(csv.reader(f))
    assert rows[0] == ORDER_HEADERS
    assert rows[0][0] == "Material Code"
    assert rows[0][-1] == "Status"
    assert rows[1][0] == MATERIAL
    assert rows[1][-1] == "Shortage"
    assert len(rows) == 2


def test_order_parquet_export(engine, snapshot, tmp_path):
    rec = engine.run(snapshot, AS_OF).recommendation

    OrderRecommendationWriter(tmp_path).write(rec, "orders.parquet")
    table = pq.read_table(tmp_path / "orders.parquet")

    assert table.num_rows == 1
    assert table.column("status").to_pylist() == ["Shortage"]
    assert table.column("order_qty").to_pylist() == [5.0]


def test_report_writer(engine, snapshot, tmp_path):
    report = engine.run(snapshot, AS_OF)

    ReportWriter(tmp_path).write(report, "report.json")
    loaded = json.loads((tmp_path / "report.json").read_text(encoding="utf-8"))

    assert loaded["health"]["overall"] == report.health.overall
    assert loaded["recommendation"]["total_items"] == 1
