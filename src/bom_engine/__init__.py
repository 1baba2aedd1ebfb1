"""BOM consumption-variance and statistical reorder engine."""

__version__ = "0.1.0"
