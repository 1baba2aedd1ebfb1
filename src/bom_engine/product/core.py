import enum
from dataclasses import dataclass
from datetime import date


class PriceBasis(enum.Enum):
    AUTHORITATIVE = "authoritative"  # Master data unit price
    ESTIMATED = "estimated"  # Derived from the purchases being analysed


@dataclass(frozen=True)
class PriceSource:
    """
    A standard unit price together with where it came from.

    Estimated prices are self-referential (actual average purchase price),
    so price variance computed against them is always zero.
    """

    price: float
    basis: PriceBasis

    @classmethod
    def authoritative(cls, price: float) -> "PriceSource":
        return cls(price=price, basis=PriceBasis.AUTHORITATIVE)

    @classmethod
    def estimated(cls, price: float) -> "PriceSource":
        return cls(price=price, basis=PriceBasis.ESTIMATED)

    @property
    def is_estimated(self) -> bool:
        return self.basis == PriceBasis.ESTIMATED


@dataclass(frozen=True)
class MaterialMasterEntry:
    """
    Canonical reference data for a raw material / ingredient.
    """

    material_code: str
    material_name: str
    unit_price: float = 0.0

    # Ordering attributes
    category: str = "etc"
    unit: str = "g"
    moq: float = 1.0
    packaging_unit: float = 1.0
    lead_time: int | None = None  # None -> config default_lead_time
    safety_days: int | None = None  # None -> config safety_days
    supplier_name: str = ""


@dataclass(frozen=True)
class BomRecipeRow:
    """
    One product -> material consumption rule.

    consumption_qty of the material is used per production_batch_qty units
    of the product. loss_rate is a percentage applied when ordering.
    """

    product_code: str
    product_name: str
    material_code: str
    material_name: str
    consumption_qty: float
    production_batch_qty: float
    loss_rate: float = 0.0


@dataclass(frozen=True)
class SalesRecord:
    product_code: str
    product_name: str
    quantity: float
    sale_date: date | None = None


@dataclass(frozen=True)
class PurchaseRecord:
    material_code: str
    material_name: str
    quantity: float
    total_cost: float


@dataclass(frozen=True)
class MealPlanItem:
    """A product scheduled for a future day (the production/menu plan)."""

    plan_date: date
    product_code: str
    product_name: str = ""
    planned_qty: float | None = None


def clean_code(code: object) -> str:
    """Strips an identifier; None and NaN-like values become ''."""
    if code is None:
        return ""
    text = str(code).strip()
    if text.lower() in ("nan", "none"):
        return ""
    return text
