"""Base classes for engine input sources."""

from abc import ABC, abstractmethod
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field

from bom_engine.product.core import (
    BomRecipeRow,
    MaterialMasterEntry,
    MealPlanItem,
    PurchaseRecord,
    SalesRecord,
)


class DataSource(ABC):
    """
    Abstract provider of the raw datasets the engine consumes.

    Each fetch is independent of the others so they can run concurrently.
    """

    @abstractmethod
    def fetch_sales(self) -> list[SalesRecord]:
        pass

    @abstractmethod
    def fetch_purchases(self) -> list[PurchaseRecord]:
        pass

    @abstractmethod
    def fetch_bom(self) -> list[BomRecipeRow]:
        pass

    @abstractmethod
    def fetch_materials(self) -> list[MaterialMasterEntry]:
        pass

    def fetch_inventory(self) -> dict[str, float]:
        """Current on-hand stock per material code."""
        return {}

    def fetch_in_transit(self) -> dict[str, float]:
        """Ordered but not yet received quantity per material code."""
        return {}

    def fetch_meal_plan(self) -> list[MealPlanItem] | None:
        """Future production/menu plan; None means forecast from history alone."""
        return None


@dataclass
class InMemorySource(DataSource):
    """Serves pre-built records, e.g. from an upstream service or a test."""

    sales: Sequence[SalesRecord] = ()
    purchases: Sequence[PurchaseRecord] = ()
    bom: Sequence[BomRecipeRow] = ()
    materials: Sequence[MaterialMasterEntry] = ()
    inventory: Mapping[str, float] = field(default_factory=dict)
    in_transit: Mapping[str, float] = field(default_factory=dict)
    meal_plan: Sequence[MealPlanItem] | None = None

    def fetch_sales(self) -> list[SalesRecord]:
        return list(self.sales)

    def fetch_purchases(self) -> list[PurchaseRecord]:
        return list(self.purchases)

    def fetch_bom(self) -> list[BomRecipeRow]:
        return list(self.bom)

    def fetch_materials(self) -> list[MaterialMasterEntry]:
        return list(self.materials)

    def fetch_inventory(self) -> dict[str, float]:
        return dict(self.inventory)

    def fetch_in_transit(self) -> dict[str, float]:
        return dict(self.in_transit)

    def fetch_meal_plan(self) -> list[MealPlanItem] | None:
        return None if self.meal_plan is None else list(self.meal_plan)
