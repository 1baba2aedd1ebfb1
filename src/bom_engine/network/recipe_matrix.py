"""BOM recipe index and its dense unit-ratio matrix."""

from __future__ import annotations

import logging
from collections import Counter
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import numpy as np

from bom_engine.product.core import BomRecipeRow, clean_code

if TYPE_CHECKING:
    from numpy.typing import NDArray

    from bom_engine.analysis.master import MasterLookup

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RecipeEntry:
    """Merged consumption rule for one (product, material) pair."""

    consumption_qty: float
    production_batch_qty: float
    material_name: str
    product_name: str
    loss_rate: float = 0.0

    @property
    def unit_ratio(self) -> float:
        """Material consumed per single unit of product."""
        return self.consumption_qty / self.production_batch_qty


@dataclass(frozen=True)
class BatchConflict:
    """Rows of one (product, material) pair that disagree on batch size."""

    product_code: str
    material_code: str
    batch_sizes: tuple[float, ...]
    chosen_batch_qty: float


@dataclass
class RecipeIndex:
    """
    Two-level map: product code -> material code -> RecipeEntry.
    """

    recipes: dict[str, dict[str, RecipeEntry]] = field(default_factory=dict)
    batch_conflicts: list[BatchConflict] = field(default_factory=list)
    skipped_rows: int = 0

    def __contains__(self, product_code: str) -> bool:
        return product_code in self.recipes

    def __len__(self) -> int:
        return len(self.recipes)

    def materials_for(self, product_code: str) -> dict[str, RecipeEntry]:
        return self.recipes.get(product_code, {})

    @property
    def product_codes(self) -> list[str]:
        return sorted(self.recipes)

    @property
    def material_codes(self) -> list[str]:
        codes: set[str] = set()
        for materials in self.recipes.values():
            codes.update(materials)
        return sorted(codes)

    def unit_ratio_matrix(
        self,
        product_ids: Sequence[str],
        material_ids: Sequence[str],
        include_loss: bool = True,
    ) -> NDArray[np.float64]:
        """Builds the Recipe Matrix R.

        Rows (i): Product index (the finished good)
        Cols (j): Material index (the ingredient)
        Value (R_ij): Quantity of j consumed per 1 unit of i
        """
        material_idx = {m: j for j, m in enumerate(material_ids)}
        matrix = np.zeros((len(product_ids), len(material_ids)), dtype=np.float64)

        for i, product_id in enumerate(product_ids):
            for material_id, entry in self.materials_for(product_id).items():
                j = material_idx.get(material_id)
                if j is None:
                    continue
                ratio = entry.unit_ratio
                if include_loss:
                    ratio *= 1 + entry.loss_rate / 100
                matrix[i, j] = ratio

        return matrix


def _choose_batch_size(batch_sizes: list[float]) -> float:
    """Most frequent batch size; ties go to the smallest value."""
    counts = Counter(batch_sizes)
    best_count = max(counts.values())
    return min(size for size, count in counts.items() if count == best_count)


def _is_usable(row: BomRecipeRow) -> bool:
    if not clean_code(row.product_code) or not clean_code(row.material_code):
        return False
    if not row.consumption_qty:
        return False
    return bool(row.production_batch_qty) and row.production_batch_qty > 0


def build_recipe_index(
    rows: Iterable[BomRecipeRow], master: MasterLookup | None = None
) -> RecipeIndex:
    """
    Groups BOM rows by product then material.

    Duplicate (product, material) rows are merged additively. When the
    duplicates disagree on batch size, the most frequent size is kept and
    the other rows are rescaled to it, so the merged unit ratio is the sum
    of the individual rows' unit ratios whatever the row order.
    """
    grouped: dict[tuple[str, str], list[BomRecipeRow]] = {}
    skipped = 0

    for row in rows:
        if not _is_usable(row):
            skipped += 1
            continue
        key = (clean_code(row.product_code), clean_code(row.material_code))
        grouped.setdefault(key, []).append(row)

    index = RecipeIndex(skipped_rows=skipped)

    for (product_code, material_code), pair_rows in sorted(grouped.items()):
        batch_sizes = [float(r.production_batch_qty) for r in pair_rows]
        chosen = _choose_batch_size(batch_sizes)

        consumption = 0.0
        for r in pair_rows:
            if r.production_batch_qty == chosen:
                consumption += r.consumption_qty
            else:
                consumption += r.consumption_qty * chosen / r.production_batch_qty

        if len(set(batch_sizes)) > 1:
            conflict = BatchConflict(
                product_code=product_code,
                material_code=material_code,
                batch_sizes=tuple(sorted(set(batch_sizes))),
                chosen_batch_qty=chosen,
            )
            index.batch_conflicts.append(conflict)
            logger.warning(
                "BOM %s -> %s has conflicting batch sizes %s; using %s",
                product_code,
                material_code,
                conflict.batch_sizes,
                chosen,
            )

        material_name = next((r.material_name for r in pair_rows if r.material_name), "")
        if not material_name:
            material_name = master.name_for(material_code) if master else material_code
        product_name = next(
            (r.product_name for r in pair_rows if r.product_name), product_code
        )

        index.recipes.setdefault(product_code, {})[material_code] = RecipeEntry(
            consumption_qty=consumption,
            production_batch_qty=chosen,
            material_name=material_name,
            product_name=product_name,
            loss_rate=max(float(r.loss_rate or 0.0) for r in pair_rows),
        )

    if skipped:
        logger.debug("Skipped %d BOM rows with missing codes or quantities", skipped)

    return index
