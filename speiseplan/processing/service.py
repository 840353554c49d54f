"""
Speiseplan Service
==================

Host-facing operations: refresh the catalog from the feed, read canteens and
meals, and complete meals from their detail pages.

Transport failures are translated here into REQUEST (no response) or SERVER
(unusable response) errors before any parsing happens.
"""

import asyncio
from dataclasses import dataclass
from typing import List, Optional

import aiohttp

from ..catalog.models import Canteen, CatalogSnapshot, Meal
from ..catalog.store import Catalog
from ..config.settings import SpeiseplanSettings, get_settings
from ..ingestion.detail_enrichment import enrich_meal
from ..ingestion.feed_ingestion import ingest_feed
from ..utils.exceptions import (
    DetailError,
    ErrorCode,
    ErrorKind,
    IngestionError,
    SpeiseplanError,
    TransportError,
    handle_exception,
)
from ..utils.logging import PerformanceLogger, get_logger_for_component
from .fetcher import FetchResponse, HttpFetcher


def _body_problem(response: FetchResponse, what: str) -> str:
    if response.read_error:
        return f"Unreadable {what}: {response.read_error}"
    return f"Empty {what}"


@dataclass
class DetailResult:
    """Outcome of completing one meal from its detail page.

    ``error`` is a DetailError for fetch failures, or the converted error of
    anything unexpected raised while enriching.
    """

    meal: Meal
    error: Optional[SpeiseplanError] = None

    @property
    def success(self) -> bool:
        return self.error is None


class SpeiseplanService:
    """Catalog refresh and meal detail lookups."""

    def __init__(
        self,
        catalog: Optional[Catalog] = None,
        fetcher: Optional[HttpFetcher] = None,
        settings: Optional[SpeiseplanSettings] = None,
    ):
        """Initialize service.

        Args:
            catalog: Catalog to refresh and read, a new one if omitted
            fetcher: Transport, an HttpFetcher if omitted
            settings: Application settings (default from config)
        """
        self.settings = settings or get_settings()
        self.catalog = catalog or Catalog(stale_window=self.settings.catalog.stale_window)
        self.fetcher = fetcher or HttpFetcher(
            max_concurrent=self.settings.limits.max_concurrent_details,
            timeout=self.settings.limits.request_timeout,
        )
        self.logger = get_logger_for_component("service")

    @property
    def feed_url(self) -> str:
        return str(self.settings.feed.feed_url)

    async def refresh_catalog(self) -> CatalogSnapshot:
        """Fetch the feed and replace the catalog contents.

        Returns:
            The snapshot now held by the catalog

        Raises:
            IngestionError: REQUEST if the feed could not be reached, SERVER if
                the response or document is unusable. The catalog keeps its
                previous contents in both cases.
        """
        with PerformanceLogger(
            self.logger,
            "catalog refresh",
            slow_after=self.settings.limits.request_timeout / 2,
            feed_url=self.feed_url,
        ):
            try:
                response = await self.fetcher.fetch(self.feed_url)
            except TransportError as e:
                raise IngestionError(
                    f"Feed unreachable: {e.args[0]}", kind=ErrorKind.REQUEST, feed_url=self.feed_url,
                    error_code=e.error_code,
                ) from e

            if not response.ok:
                raise IngestionError(
                    f"HTTP {response.status}",
                    kind=ErrorKind.SERVER,
                    feed_url=self.feed_url,
                    error_code=ErrorCode.FEED_BAD_STATUS,
                )

            if not response.usable_body:
                raise IngestionError(
                    _body_problem(response, "feed body"),
                    kind=ErrorKind.SERVER,
                    feed_url=self.feed_url,
                    error_code=ErrorCode.FEED_EMPTY_BODY,
                )

            snapshot = ingest_feed(response.body, now=self.catalog.clock())
            self.catalog.refresh(snapshot)
            return snapshot

    def list_canteens(self) -> List[Canteen]:
        """Canteens of the current catalog, see Catalog.canteens."""
        return self.catalog.canteens()

    def list_meals(self, canteen_name: str) -> List[Meal]:
        """Meals of one canteen, see Catalog.meals."""
        return self.catalog.meals(canteen_name)

    async def fetch_meal_detail(
        self, meal: Meal, session: Optional[aiohttp.ClientSession] = None
    ) -> Meal:
        """Fetch a meal's detail page and return the completed meal.

        Raises:
            DetailError: REQUEST if the page could not be reached, SERVER if
                the response is unusable
        """
        url = self.settings.feed.detail_url(meal.id)

        try:
            response = await self.fetcher.fetch(url, session)
        except TransportError as e:
            raise DetailError(
                f"Detail page unreachable: {e.args[0]}", kind=ErrorKind.REQUEST, meal_id=meal.id
            ) from e

        if not response.ok:
            raise DetailError(
                f"HTTP {response.status} for {url}",
                kind=ErrorKind.SERVER,
                meal_id=meal.id,
                error_code=ErrorCode.DETAIL_BAD_STATUS,
            )

        if not response.usable_body:
            raise DetailError(
                _body_problem(response, f"detail page {url}"),
                kind=ErrorKind.SERVER,
                meal_id=meal.id,
                error_code=ErrorCode.DETAIL_EMPTY_BODY,
            )

        return enrich_meal(meal, response.body, settings=self.settings)

    async def fetch_meal_details(self, meals: List[Meal]) -> List[DetailResult]:
        """Complete many meals concurrently, bounded by max_concurrent_details.

        Args:
            meals: Meals to complete

        Returns:
            One DetailResult per meal, in input order. Failed lookups keep the
            original meal and carry the error.
        """
        if not meals:
            return []

        self.logger.info(f"Fetching details for {len(meals)} meals")
        semaphore = asyncio.Semaphore(self.settings.limits.max_concurrent_details)

        async with self.fetcher.get_session() as session:

            async def fetch_with_semaphore(meal: Meal) -> DetailResult:
                async with semaphore:
                    try:
                        return DetailResult(await self.fetch_meal_detail(meal, session))
                    except DetailError as e:
                        self.logger.warning(
                            f"Detail lookup failed for meal {meal.id}: {e}",
                            extra={"meal_id": meal.id},
                        )
                        return DetailResult(meal, error=e)
                    except Exception as e:
                        # One broken page must not cancel the other lookups
                        error = handle_exception(
                            e, self.logger, "meal detail lookup", {"meal_id": meal.id}
                        )
                        return DetailResult(meal, error=error)

            results = await asyncio.gather(*(fetch_with_semaphore(m) for m in meals))

        successful = sum(1 for r in results if r.success)
        self.logger.info(f"Detail fetch complete: {successful}/{len(results)} meals enriched")
        return list(results)
