"""
Meal Catalog
============

Holds the most recent successfully ingested snapshot and serves staleness-gated
reads from it.

Writers swap whole snapshots under a lock; readers take one snapshot reference
and answer from it alone, so a read never mixes canteens and meals from two
different refreshes.
"""

import threading
from datetime import datetime, timedelta, timezone
from typing import Callable, List, Optional

from .models import Canteen, CatalogSnapshot, Meal
from ..utils.exceptions import OutdatedDataError, UnknownCanteenError
from ..utils.logging import get_catalog_logger

DEFAULT_STALE_WINDOW = timedelta(minutes=30)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Catalog:
    """In-memory store of canteens and meals."""

    def __init__(
        self,
        stale_window: timedelta = DEFAULT_STALE_WINDOW,
        clock: Callable[[], datetime] = utcnow,
    ):
        """Initialize an empty, already stale catalog.

        Args:
            stale_window: Age at which reads start failing
            clock: Source of the current time, injectable for tests
        """
        self.stale_window = stale_window
        self.clock = clock
        self.logger = get_catalog_logger()
        self._lock = threading.Lock()
        self._snapshot = CatalogSnapshot.empty()

    @property
    def snapshot(self) -> CatalogSnapshot:
        with self._lock:
            return self._snapshot

    @property
    def last_updated(self) -> datetime:
        return self.snapshot.last_updated

    def refresh(self, snapshot: CatalogSnapshot) -> None:
        """Replace the stored snapshot as a whole."""
        with self._lock:
            self._snapshot = snapshot

        self.logger.info(f"Catalog refreshed: {snapshot}")

    def is_stale(self, snapshot: Optional[CatalogSnapshot] = None) -> bool:
        """Whether the snapshot is at least ``stale_window`` old right now."""
        if snapshot is None:
            snapshot = self.snapshot
        return self.clock() - snapshot.last_updated >= self.stale_window

    def _fresh_snapshot(self) -> CatalogSnapshot:
        snapshot = self.snapshot
        if self.is_stale(snapshot):
            raise OutdatedDataError(last_updated=snapshot.last_updated)
        return snapshot

    def canteens(self) -> List[Canteen]:
        """List known canteens in feed order.

        Raises:
            OutdatedDataError: If the catalog is stale
        """
        return list(self._fresh_snapshot().canteens)

    def meals(self, canteen_name: str) -> List[Meal]:
        """List a canteen's meals in feed order.

        Raises:
            OutdatedDataError: If the catalog is stale
            UnknownCanteenError: If the canteen is not in the catalog
        """
        snapshot = self._fresh_snapshot()
        try:
            return list(snapshot.meals_by_canteen[canteen_name])
        except KeyError:
            raise UnknownCanteenError(canteen_name) from None
