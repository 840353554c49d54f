"""
Feed Ingestion
==============

Turns the raw RSS listing into a catalog snapshot of canteens and their meals.

Each feed item carries the meal title (name plus prices), the canteen as
``author`` and a link to the meal's detail page. Items missing any of those are
skipped; the rest are grouped per canteen in feed order.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

import feedparser

from ..catalog.models import Canteen, CatalogSnapshot, Meal
from ..utils.exceptions import ErrorCode, ErrorKind, IngestionError
from ..utils.logging import get_feed_logger
from .text_parsers import is_sold_out, parse_id_from_link, parse_price_pair

logger = get_feed_logger()


def _entry_field(entry: Any, name: str) -> str:
    value = entry.get(name)
    if not value and name == "author":
        value = entry.get("author_detail", {}).get("name")
    return value.strip() if isinstance(value, str) else ""


def _required_fields(entry: Any) -> Optional[Tuple[str, str, str]]:
    title = _entry_field(entry, "title")
    author = _entry_field(entry, "author")
    link = _entry_field(entry, "link")
    if not (title and author and link):
        return None
    return title, author, link


def parse_feed(feed_bytes: bytes) -> Any:
    """Parse feed bytes, raising when nothing usable comes out.

    Raises:
        IngestionError: SERVER kind if the document cannot be parsed
    """
    feed_data = feedparser.parse(feed_bytes)

    if getattr(feed_data, "bozo", False):
        error_msg = f"Feed parse error: {feed_data.get('bozo_exception', 'Invalid XML structure')}"

        # Still try to process if we have entries
        if not feed_data.get("entries"):
            raise IngestionError(
                error_msg,
                kind=ErrorKind.SERVER,
                error_code=ErrorCode.FEED_PARSE_ERROR,
            )
        logger.warning(f"Feed has parse warnings but contains entries: {error_msg}")

    return feed_data


def ingest_feed(feed_bytes: bytes, now: Optional[datetime] = None) -> CatalogSnapshot:
    """Build a catalog snapshot from the meal feed.

    Args:
        feed_bytes: Raw RSS document
        now: Snapshot timestamp, defaults to the current UTC time

    Returns:
        Snapshot with one canteen per distinct author, meals in feed order

    Raises:
        IngestionError: SERVER kind if the document cannot be parsed
    """
    feed_data = parse_feed(feed_bytes)

    canteens: List[Canteen] = []
    meals_by_canteen: Dict[str, List[Meal]] = {}
    skipped = 0

    for entry in feed_data.entries:
        fields = _required_fields(entry)
        if fields is None:
            skipped += 1
            logger.debug(
                "Skipping feed item without title, author or link",
                extra={"entry_title": entry.get("title", "Unknown")},
            )
            continue

        title, author, link = fields
        name, price = parse_price_pair(title)
        meal = Meal(
            id=parse_id_from_link(link),
            name=name,
            price=price,
            sold_out=is_sold_out(title),
        )

        if author not in meals_by_canteen:
            canteens.append(Canteen(name=author))
            meals_by_canteen[author] = []

        meals_by_canteen[author].append(meal)

    snapshot = CatalogSnapshot.build(
        canteens,
        meals_by_canteen,
        last_updated=now or datetime.now(timezone.utc),
    )

    logger.info(
        f"Ingested {snapshot.meal_count} meals from {len(canteens)} canteens"
        + (f", skipped {skipped} incomplete items" if skipped else "")
    )
    return snapshot
