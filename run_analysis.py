"""
BOM Consumption-Variance & Reorder Engine Runner.

Usage:
    poetry run python run_analysis.py --data-dir data/input
    poetry run python run_analysis.py --data-dir data/input --as-of 2024-03-15
    poetry run python run_analysis.py --data-dir data/input --service-level 99
"""

import argparse
import logging
import time
from datetime import date

from bom_engine.config.loader import load_engine_config
from bom_engine.config.settings import OrderingConfig
from bom_engine.ordering.recommendation import STATUS_LABELS
from bom_engine.pipeline.orchestrator import Orchestrator
from bom_engine.sources.tabular import DirectorySource
from bom_engine.writers.order_writer import OrderRecommendationWriter
from bom_engine.writers.report_writer import ReportWriter


def main() -> None:
    """Run the consumption-variance analysis and order recommendation."""
    parser = argparse.ArgumentParser(
        description="BOM Consumption-Variance & Reorder Engine",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  poetry run python run_analysis.py --data-dir data/input --verbose
  poetry run python run_analysis.py --data-dir data/input --format parquet
        """,
    )

    parser.add_argument(
        "--data-dir",
        type=str,
        required=True,
        help="Directory holding sales/purchases/bom/materials tables (CSV or Parquet)",
    )
    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="Path to an engine_config.json (default: bundled config)",
    )
    parser.add_argument(
        "--as-of",
        type=date.fromisoformat,
        default=None,
        help="Order date, YYYY-MM-DD (default: today)",
    )
    parser.add_argument(
        "--service-level",
        type=int,
        choices=[90, 95, 97, 99],
        default=None,
        help="Override the configured service level",
    )
    parser.add_argument(
        "--output-dir",
        type=str,
        default="data/output",
        help="Directory for output artifacts",
    )
    parser.add_argument(
        "--format",
        type=str,
        choices=["csv", "parquet"],
        default="csv",
        help="Order export format (default: csv)",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="Seconds to wait for all input tables to load",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable debug logging",
    )

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    config = OrderingConfig.from_dict(load_engine_config(args.config))
    if args.service_level is not None:
        config = config.replace(service_level=args.service_level)
    as_of = args.as_of or date.today()

    print(
        f"Initializing engine (AsOf={as_of.isoformat()}, "
        f"ServiceLevel={config.service_level}%, Weeks={config.forecast_weeks})..."
    )

    engine = Orchestrator(config)
    start_time = time.time()
    report = engine.run_from_source(
        DirectorySource(args.data_dir), as_of, timeout=args.timeout
    )
    duration = time.time() - start_time
    print(f"\nAnalysis completed in {duration:.2f} seconds.")

    # Summary
    variance = report.variance
    health = report.health
    rec = report.recommendation
    print("\n=== Consumption Variance ===")
    print(f"Materials analysed:     {variance.analyzed_materials}")
    print(f"Price variance:         {variance.total_price_variance:,}")
    print(f"Quantity variance:      {variance.total_qty_variance:,}")
    print(f"Total variance:         {variance.total_variance:,}")
    print(
        f"Favorable/Unfavorable:  {variance.favorable_count}/{variance.unfavorable_count}"
    )
    if variance.estimated_price_count:
        print(
            f"Estimated prices:       {variance.estimated_price_count} items "
            f"({variance.estimated_price_variance:,} variance)"
        )
    print(f"Anomalies:              {report.anomalies.total_anomalies}")

    print("\n=== BOM Health ===")
    print(f"Overall:       {health.overall}")
    print(f"Data quality:  {health.data_quality}")
    print(f"Coverage:      {health.coverage_score}")
    print(f"Variance:      {health.variance_score}")
    print(f"Anomaly:       {health.anomaly_score}")

    print("\n=== Order Recommendation ===")
    print(
        f"Period {rec.target_period_start.isoformat()} to "
        f"{rec.target_period_end.isoformat()}"
    )
    print(f"Order lines:     {rec.total_items}")
    print(f"Urgent:          {rec.urgent_items}")
    print(f"Shortage:        {rec.shortage_items}")
    print(f"Estimated cost:  {rec.total_estimated_cost:,}")
    for item in rec.items[:10]:
        print(
            f"  [{STATUS_LABELS[item.status]:<9}] {item.material_code:<12} "
            f"{item.material_name:<24} order {item.order_qty:,.0f} {item.unit}"
        )

    # Artifacts
    print("\nGenerating Artifacts...")
    order_writer = OrderRecommendationWriter(args.output_dir)
    if args.format == "parquet":
        order_path = order_writer.write_parquet(rec, "order_recommendation.parquet")
    else:
        order_path = order_writer.write_csv(rec, "order_recommendation.csv")
    ReportWriter(args.output_dir).write(report, "analysis_report.json")
    print(f"Order recommendation saved to {order_path}")
    print(f"Analysis report saved to {args.output_dir}/analysis_report.json")


if __name__ == "__main__":
    main()
