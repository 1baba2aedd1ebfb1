"""Input sources for the engine."""

from bom_engine.sources.base import DataSource, InMemorySource
from bom_engine.sources.snapshot import InputSnapshot, fetch_snapshot
from bom_engine.sources.tabular import DirectorySource

__all__ = [
    "DataSource",
    "DirectorySource",
    "InMemorySource",
    "InputSnapshot",
    "fetch_snapshot",
]
