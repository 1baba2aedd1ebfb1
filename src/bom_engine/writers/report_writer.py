"""JSON dump of a full analysis report."""

import json
from pathlib import Path
from typing import Any

from bom_engine.pipeline.orchestrator import AnalysisReport, to_jsonable
from bom_engine.writers.base import BaseWriter


def render_report(report: AnalysisReport) -> str:
    """Deterministic JSON text; identical reports render byte-identical."""
    return json.dumps(report.to_dict(), indent=2, ensure_ascii=False)


class ReportWriter(BaseWriter):
    """Writes analysis reports (or any report fragment) as JSON."""

    def __init__(self, output_dir: str | Path) -> None:
        self.output_dir = Path(output_dir)
        self.output_dir.mkdir(parents=True, exist_ok=True)

    def write(self, data: Any, destination: str) -> None:
        filepath = self.output_dir / destination
        if isinstance(data, AnalysisReport):
            text = render_report(data)
        else:
            text = json.dumps(to_jsonable(data), indent=2, ensure_ascii=False)
        with open(filepath, "w", encoding="utf-8") as f:
            f.write(text)
            f.write("\n")
