"""
SOP item-code parser and BOM row validation.

Code scheme: USAGE_CATEGORY_NUMBER, e.g. ZIP_M_2034
    usage:    ZIP (in-house kitchen lab), RES (store B2B), SAN (MES)
    category: M raw material, S sub-material, P product, H semi-finished,
              C merchandise, E other
    number:   integer; its thousands digit selects a number group
"""

from __future__ import annotations

import enum
from collections.abc import Iterable
from dataclasses import dataclass, field

from bom_engine.numeric import pct, round_int
from bom_engine.product.core import BomRecipeRow, clean_code

USAGE_LABELS = {
    "ZIP": "Kitchen lab",
    "RES": "Store B2B",
    "SAN": "MES",
}

CATEGORY_LABELS = {
    "M": "Raw material",
    "S": "Sub-material",
    "P": "Product",
    "H": "Semi-finished",
    "C": "Merchandise",
    "E": "Other",
}

# Raw/sub-material and merchandise groups
MATERIAL_NUMBER_GROUPS = {
    "1": "Agricultural",
    "2": "Seafood",
    "3": "Livestock",
    "4": "Processed (tax-exempt)",
    "5": "Processed (taxable)",
    "6": "Other",
}

ZIP_PRODUCT_NUMBER_GROUPS = {
    "0": "Main",
    "1": "Soup/stew",
    "2": "Frozen",
    "3": "Pancake/fish/sauce",
    "4": "Braised",
    "5": "Seasoned",
    "6": "Stir-fried",
    "7": "Kimchi/pickled",
    "8": "Cooking kit",
    "9": "Set/combo",
}

ETC_NUMBER_GROUPS = {
    "0": "Packaging",
    "1": "Consumables",
    "2": "Other",
}

UNKNOWN_GROUP = "Unknown"


@dataclass(frozen=True)
class ParsedSopCode:
    raw: str
    usage: str | None
    category: str | None
    number: int | None
    number_group: str
    errors: tuple[str, ...]

    @property
    def is_valid(self) -> bool:
        return (
            not self.errors
            and self.usage is not None
            and self.category is not None
            and self.number is not None
        )

    @property
    def usage_label(self) -> str:
        return USAGE_LABELS.get(self.usage or "", "")

    @property
    def category_label(self) -> str:
        return CATEGORY_LABELS.get(self.category or "", "")


def _number_group(usage: str | None, category: str | None, number: int) -> str:
    thousands = str(number // 1000)
    if category in ("M", "S", "C"):
        return MATERIAL_NUMBER_GROUPS.get(thousands, UNKNOWN_GROUP)
    if category == "P" and usage == "ZIP":
        return ZIP_PRODUCT_NUMBER_GROUPS.get(thousands, UNKNOWN_GROUP)
    if category == "P" and usage == "RES":
        return "Store product"
    if category == "H":
        return "Semi-finished"
    if category == "E":
        return ETC_NUMBER_GROUPS.get(thousands, UNKNOWN_GROUP)
    return ""


def parse_sop_code(code: str | None) -> ParsedSopCode:
    raw = clean_code(code)
    if not raw:
        return ParsedSopCode(raw, None, None, None, "", ("code is empty",))

    parts = raw.split("_")
    errors: list[str] = []

    usage: str | None = None
    if parts[0] in USAGE_LABELS:
        usage = parts[0]
    else:
        errors.append(f"invalid usage code: {parts[0]} (ZIP/RES/SAN expected)")

    category: str | None = None
    if len(parts) >= 2:
        if parts[1] in CATEGORY_LABELS:
            category = parts[1]
        else:
            errors.append(f"invalid category code: {parts[1]} (M/S/P/H/C/E expected)")
    else:
        errors.append("category code is missing")

    number: int | None = None
    number_group = ""
    if len(parts) >= 3:
        try:
            number = int(parts[2])
        except ValueError:
            errors.append(f"invalid number code: {parts[2]}")
        else:
            number_group = _number_group(usage, category, number)
    else:
        errors.append("number code is missing")

    return ParsedSopCode(raw, usage, category, number, number_group, tuple(errors))


class ValidationErrorType(enum.Enum):
    MISSING_PRODUCT_CODE = "missing_product_code"
    MISSING_MATERIAL_CODE = "missing_material_code"
    INVALID_CONSUMPTION_QTY = "invalid_consumption_qty"
    INVALID_BATCH_QTY = "invalid_batch_qty"
    PRODUCT_CODE_NONCONFORMING = "product_code_nonconforming"
    MATERIAL_CODE_NONCONFORMING = "material_code_nonconforming"


@dataclass(frozen=True)
class ValidationError:
    type: ValidationErrorType
    message: str


@dataclass(frozen=True)
class BomRowValidation:
    product_code: str
    product_name: str
    material_code: str
    material_name: str
    errors: tuple[ValidationError, ...] = ()

    @property
    def is_valid(self) -> bool:
        return not self.errors


@dataclass(frozen=True)
class BomValidationResult:
    details: tuple[BomRowValidation, ...] = ()
    valid_count: int = 0
    invalid_count: int = 0
    total_rows: int = 0
    compliance: int = 0
    error_summary: dict[str, int] = field(default_factory=dict)


def validate_bom_row(row: BomRecipeRow) -> BomRowValidation:
    product_code = clean_code(row.product_code)
    material_code = clean_code(row.material_code)
    errors: list[ValidationError] = []

    if not product_code:
        errors.append(
            ValidationError(ValidationErrorType.MISSING_PRODUCT_CODE, "product code missing")
        )
    if not material_code:
        errors.append(
            ValidationError(ValidationErrorType.MISSING_MATERIAL_CODE, "material code missing")
        )
    if not row.consumption_qty or row.consumption_qty <= 0:
        errors.append(
            ValidationError(
                ValidationErrorType.INVALID_CONSUMPTION_QTY,
                "consumption quantity missing or not positive",
            )
        )
    if not row.production_batch_qty or row.production_batch_qty <= 0:
        errors.append(
            ValidationError(
                ValidationErrorType.INVALID_BATCH_QTY,
                "production batch quantity missing or not positive",
            )
        )

    if product_code:
        parsed = parse_sop_code(product_code)
        if not parsed.is_valid:
            errors.append(
                ValidationError(
                    ValidationErrorType.PRODUCT_CODE_NONCONFORMING,
                    "product code not SOP-compliant: " + ", ".join(parsed.errors),
                )
            )
    if material_code:
        parsed = parse_sop_code(material_code)
        if not parsed.is_valid:
            errors.append(
                ValidationError(
                    ValidationErrorType.MATERIAL_CODE_NONCONFORMING,
                    "material code not SOP-compliant: " + ", ".join(parsed.errors),
                )
            )

    return BomRowValidation(
        product_code=product_code,
        product_name=row.product_name or "",
        material_code=material_code,
        material_name=row.material_name or "",
        errors=tuple(errors),
    )


def validate_bom_rows(rows: Iterable[BomRecipeRow]) -> BomValidationResult:
    """Validates every row; failures are tallied, never raised."""
    details = tuple(validate_bom_row(r) for r in rows)
    valid = sum(1 for d in details if d.is_valid)

    summary: dict[str, int] = {}
    for d in details:
        for err in d.errors:
            summary[err.type.value] = summary.get(err.type.value, 0) + 1

    return BomValidationResult(
        details=details,
        valid_count=valid,
        invalid_count=len(details) - valid,
        total_rows=len(details),
        compliance=round_int(pct(valid, len(details))),
        error_summary=dict(sorted(summary.items())),
    )
