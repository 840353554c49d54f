"""
Speiseplan Ingestion Module
===========================

Feed and detail page parsing.

This module handles:
- Title and link parsing into prices and meal IDs
- RSS feed folding into canteens and meals
- Detail page scraping for photos, ingredients and allergens
"""

from .feed_ingestion import ingest_feed
from .detail_enrichment import enrich_meal
from .text_parsers import parse_id_from_link, parse_price_pair

__all__ = [
    "ingest_feed",
    "enrich_meal",
    "parse_id_from_link",
    "parse_price_pair",
]
