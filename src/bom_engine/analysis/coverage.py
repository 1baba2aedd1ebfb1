"""BOM coverage audit: sold products vs registered recipes vs purchases."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from bom_engine.numeric import pct, round_int
from bom_engine.product.core import (
    BomRecipeRow,
    PurchaseRecord,
    SalesRecord,
    clean_code,
)


@dataclass(frozen=True)
class CoveredProduct:
    code: str
    name: str
    material_count: int


@dataclass(frozen=True)
class CodeName:
    code: str
    name: str


@dataclass(frozen=True)
class CoverageResult:
    covered_products: tuple[CoveredProduct, ...] = ()
    uncovered_products: tuple[CodeName, ...] = ()
    orphan_materials: tuple[CodeName, ...] = ()
    total_products: int = 0
    total_covered: int = 0
    completeness_score: int = 0


def compute_bom_coverage(
    bom_rows: Iterable[BomRecipeRow],
    sales: Iterable[SalesRecord],
    purchases: Iterable[PurchaseRecord],
) -> CoverageResult:
    """
    A sold product is covered when it has at least one BOM material.
    A purchased material that appears in no BOM row is an orphan
    (its cost cannot be attributed to any product).
    """
    sold: dict[str, str] = {}
    for s in sales:
        code = clean_code(s.product_code)
        if code and not sold.get(code):
            sold[code] = s.product_name or code

    bom_products: dict[str, set[str]] = {}
    bom_materials: set[str] = set()
    for row in bom_rows:
        product_code = clean_code(row.product_code)
        material_code = clean_code(row.material_code)
        if material_code:
            bom_materials.add(material_code)
        if product_code and material_code:
            bom_products.setdefault(product_code, set()).add(material_code)

    purchased: dict[str, str] = {}
    for p in purchases:
        code = clean_code(p.material_code)
        if code and not purchased.get(code):
            purchased[code] = p.material_name or code

    covered: list[CoveredProduct] = []
    uncovered: list[CodeName] = []
    for code in sorted(sold):
        materials = bom_products.get(code)
        if materials:
            covered.append(CoveredProduct(code, sold[code], len(materials)))
        else:
            uncovered.append(CodeName(code, sold[code]))

    orphans = [
        CodeName(code, purchased[code])
        for code in sorted(purchased)
        if code not in bom_materials
    ]

    covered.sort(key=lambda c: (-c.material_count, c.code))

    return CoverageResult(
        covered_products=tuple(covered),
        uncovered_products=tuple(uncovered),
        orphan_materials=tuple(orphans),
        total_products=len(sold),
        total_covered=len(covered),
        completeness_score=round_int(pct(len(covered), len(sold))),
    )
