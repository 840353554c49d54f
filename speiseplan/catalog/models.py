"""
Speiseplan Data Models
======================

Pydantic models for canteens, meals and their vocabularies, plus the
immutable catalog snapshot that readers are handed.
"""

import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from types import MappingProxyType
from typing import Dict, Iterable, List, Mapping, Optional, Set, Tuple

from pydantic import AnyHttpUrl, BaseModel, Field

_WHITESPACE = re.compile(r"\s+")


def normalize_label(text: str) -> str:
    """Collapse runs of whitespace and trim."""
    return _WHITESPACE.sub(" ", text or "").strip()


class Ingredient(str, Enum):
    """General meal information, as labelled on the detail pages."""
    ALCOHOL = "Menü enthält Alkohol"
    BEEF = "Menü enthält Rindfleisch"
    PORK = "Menü enthält Schweinefleisch"
    GARLIC = "Menü enthält Knoblauch"
    NO_MEAT = "Menü enthält kein Fleisch"
    VEGETARIAN = "Menü ist vegetarisch"
    VEGAN = "Menü ist vegan"

    @classmethod
    def from_text(cls, text: str) -> Optional["Ingredient"]:
        """Map a list item label to a member, None when unknown."""
        return _INGREDIENTS_BY_LABEL.get(normalize_label(text))


class Allergen(str, Enum):
    """EU allergen declarations, keyed by the letter used on the menu."""
    A = "Glutenhaltiges Getreide (A)"
    B = "Krebstiere (B)"
    C = "Eier (C)"
    D = "Fisch (D)"
    E = "Erdnüsse (E)"
    F = "Soja (F)"
    G = "Milch/Milchzucker (Laktose) (G)"
    H = "Schalenfrüchte (H)"
    I = "Sellerie (I)"  # noqa: E741
    J = "Senf (J)"
    K = "Sesam (K)"
    L = "Sulfite (L)"
    M = "Lupine (M)"
    N = "Weichtiere (N)"

    @classmethod
    def from_text(cls, text: str) -> Optional["Allergen"]:
        """Map a list item label to a member, None when unknown."""
        return _ALLERGENS_BY_LABEL.get(normalize_label(text))


_INGREDIENTS_BY_LABEL: Dict[str, Ingredient] = {m.value: m for m in Ingredient}
_ALLERGENS_BY_LABEL: Dict[str, Allergen] = {m.value: m for m in Allergen}


class Canteen(BaseModel):
    """Dining facility. Two canteens are the same canteen if their names match."""
    name: str = Field(..., min_length=1, description="Canteen display name")
    address: str = Field(default="", description="Street address, not part of the feed")
    coordinates: Tuple[float, float] = Field(default=(0.0, 0.0), description="Latitude/longitude placeholder")

    def __eq__(self, other) -> bool:
        if not isinstance(other, Canteen):
            return NotImplemented
        return self.name == other.name

    def __hash__(self) -> int:
        return hash(self.name)

    def __str__(self) -> str:
        return f"Canteen({self.name})"


class PricePair(BaseModel):
    """Student price plus an optional employee price, in euros."""
    student: float = Field(..., description="Price for students")
    employee: Optional[float] = Field(default=None, description="Price for employees")

    def __str__(self) -> str:
        if self.employee is None:
            return f"{self.student:.2f} €"
        return f"{self.student:.2f} € / {self.employee:.2f} €"


class Meal(BaseModel):
    """One menu offering of a canteen on a given day."""
    id: int = Field(..., ge=0, description="Numeric ID taken from the detail link")
    name: str = Field(..., description="Meal name without the price suffix")
    price: Optional[PricePair] = Field(default=None, description="Prices, when the feed lists any")
    ingredients: Set[Ingredient] = Field(default_factory=set, description="General information and dietary flags")
    allergens: Set[Allergen] = Field(default_factory=set, description="Declared allergens")
    image_url: Optional[AnyHttpUrl] = Field(default=None, description="Meal photo")
    sold_out: bool = Field(default=False, description="Feed marks the meal as sold out")

    @property
    def is_vegan(self) -> bool:
        return Ingredient.VEGAN in self.ingredients

    @property
    def is_vegetarian(self) -> bool:
        return bool({Ingredient.VEGAN, Ingredient.VEGETARIAN} & self.ingredients)

    def __str__(self) -> str:
        return f"Meal({self.id}:{self.name[:50]})"


def _utc_min() -> datetime:
    return datetime.min.replace(tzinfo=timezone.utc)


@dataclass(frozen=True)
class CatalogSnapshot:
    """Immutable result of one successful feed ingestion.

    The canteen sequence and the per-canteen meal mapping always describe the
    same set of names.
    """

    canteens: Tuple[Canteen, ...] = ()
    meals_by_canteen: Mapping[str, Tuple[Meal, ...]] = field(
        default_factory=lambda: MappingProxyType({})
    )
    last_updated: datetime = field(default_factory=_utc_min)

    @classmethod
    def empty(cls) -> "CatalogSnapshot":
        """Snapshot that is stale from the start."""
        return cls()

    @classmethod
    def build(
        cls,
        canteens: Iterable[Canteen],
        meals_by_canteen: Mapping[str, List[Meal]],
        last_updated: datetime,
    ) -> "CatalogSnapshot":
        """Freeze in-progress ingestion results into a snapshot."""
        canteens = tuple(canteens)
        names = {c.name for c in canteens}
        if names != set(meals_by_canteen):
            raise ValueError("Canteens and meal groups disagree")

        frozen = {name: tuple(meals) for name, meals in meals_by_canteen.items()}
        return cls(
            canteens=canteens,
            meals_by_canteen=MappingProxyType(frozen),
            last_updated=last_updated,
        )

    @property
    def meal_count(self) -> int:
        return sum(len(meals) for meals in self.meals_by_canteen.values())

    def __str__(self) -> str:
        return (
            f"CatalogSnapshot({len(self.canteens)} canteens, "
            f"{self.meal_count} meals, {self.last_updated.isoformat()})"
        )
