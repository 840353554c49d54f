"""
Speiseplan - Canteen Meal Catalog
=================================

Feed ingestion and detail enrichment for the Studentenwerk Dresden meal plan.

Main Components:
- Ingestion: RSS feed parsing and detail page scraping
- Catalog: In-memory canteen/meal snapshots with staleness-gated reads
- Processing: aiohttp transport and the host-facing service
- Configuration: Environment variables with Pydantic validation
"""

__version__ = "1.0.0"
__author__ = "Speiseplan Development Team"
__description__ = "Canteen meal plan ingestion and catalog"

from .config.settings import get_settings
from .catalog.models import Allergen, Canteen, CatalogSnapshot, Ingredient, Meal, PricePair
from .catalog.store import Catalog
from .processing.service import DetailResult, SpeiseplanService
from .utils.logging import configure_application_logging, get_logger_for_component
from .utils.exceptions import (
    CatalogError,
    DetailError,
    ErrorKind,
    IngestionError,
    OutdatedDataError,
    SpeiseplanError,
    UnknownCanteenError,
)

__all__ = [
    "get_settings",
    "Allergen",
    "Canteen",
    "CatalogSnapshot",
    "Ingredient",
    "Meal",
    "PricePair",
    "Catalog",
    "DetailResult",
    "SpeiseplanService",
    "configure_application_logging",
    "get_logger_for_component",
    "CatalogError",
    "DetailError",
    "ErrorKind",
    "IngestionError",
    "OutdatedDataError",
    "SpeiseplanError",
    "UnknownCanteenError",
]
