"""Master data normalizer: code -> name / price lookups."""

from __future__ import annotations

import dataclasses
import logging
from collections.abc import Iterable
from dataclasses import dataclass, field

from bom_engine.product.core import MaterialMasterEntry, PriceSource, clean_code

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MasterLookup:
    """Lookup tables built once per analysis run."""

    names: dict[str, str] = field(default_factory=dict)
    prices: dict[str, float] = field(default_factory=dict)
    entries: dict[str, MaterialMasterEntry] = field(default_factory=dict)

    def name_for(self, code: str, default: str = "") -> str:
        return self.names.get(code) or default or code

    def price_source(self, code: str, fallback_price: float) -> PriceSource:
        """Master price when known, otherwise an estimated fallback."""
        price = self.prices.get(code)
        if price is not None:
            return PriceSource.authoritative(price)
        return PriceSource.estimated(fallback_price)

    def get(self, code: str) -> MaterialMasterEntry | None:
        return self.entries.get(code)


def build_master_lookup(entries: Iterable[MaterialMasterEntry]) -> MasterLookup:
    names: dict[str, str] = {}
    prices: dict[str, float] = {}
    by_code: dict[str, MaterialMasterEntry] = {}
    skipped = 0

    for entry in entries:
        code = clean_code(entry.material_code)
        if not code:
            skipped += 1
            continue
        if entry.material_code != code:
            entry = dataclasses.replace(entry, material_code=code)
        by_code[code] = entry
        if entry.material_name:
            names[code] = entry.material_name
        # Zero/negative prices are treated as "no standard price"
        if entry.unit_price and entry.unit_price > 0:
            prices[code] = float(entry.unit_price)

    if skipped:
        logger.debug("Skipped %d master rows without a material code", skipped)

    return MasterLookup(names=names, prices=prices, entries=by_code)
