"""Engine configuration."""

from bom_engine.config.loader import load_engine_config
from bom_engine.config.settings import (
    SERVICE_LEVEL_Z_SCORES,
    OrderingConfig,
    z_score_for,
)

__all__ = [
    "SERVICE_LEVEL_Z_SCORES",
    "OrderingConfig",
    "load_engine_config",
    "z_score_for",
]
