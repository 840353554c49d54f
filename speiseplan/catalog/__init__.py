"""
Speiseplan Catalog
==================

Domain models and the in-memory snapshot store.
"""

from .models import Allergen, Canteen, CatalogSnapshot, Ingredient, Meal, PricePair
from .store import Catalog

__all__ = [
    "Allergen",
    "Canteen",
    "CatalogSnapshot",
    "Ingredient",
    "Meal",
    "PricePair",
    "Catalog",
]
