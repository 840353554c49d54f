"""
PyTest Configuration and Fixtures
=================================

Shared fixtures for Speiseplan tests: sample feed and detail documents, a
controllable clock, and a fake transport that never touches the network.
"""

import asyncio
import os
import sys
from contextlib import asynccontextmanager
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Dict, Optional, Union

import pytest

# Add project root to Python path
sys.path.insert(0, str(Path(__file__).parent.parent))

# Set test environment variables before any imports
os.environ.setdefault("SPEISEPLAN_LOGGING__CONSOLE_LOGGING", "false")

from speiseplan.config.settings import SpeiseplanSettings  # noqa: E402
from speiseplan.processing.fetcher import FetchResponse  # noqa: E402
from speiseplan.utils.exceptions import TransportError  # noqa: E402


FEED_URL = "https://www.studentenwerk-dresden.de/feeds/speiseplan.rss"
DETAIL_URL = "https://www.studentenwerk-dresden.de/mensen/speiseplan/details-{id}.html"
IMAGE_BASE_URL = "https://bilderspeiseplan.studentenwerk-dresden.de"

SAMPLE_FEED = """<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0">
    <channel>
        <title>Speiseplan heute</title>
        <link>https://www.studentenwerk-dresden.de/mensen/speiseplan/</link>
        <description>Speiseplan des Studentenwerks Dresden</description>
        <item>
            <title>Pasta mit Tomatensoße (2,20 € / 3,90 €)</title>
            <link>https://www.studentenwerk-dresden.de/mensen/speiseplan/details-154452.html</link>
            <author>Alte Mensa</author>
            <pubDate>Mon, 24 Aug 2015 13:52:33 +0200</pubDate>
        </item>
        <item>
            <title>Gemüsesuppe (1,50 €)</title>
            <link>https://www.studentenwerk-dresden.de/mensen/speiseplan/details-154460.html</link>
            <author>Mensa Reichenbachstraße</author>
        </item>
        <item>
            <title>Schnitzel mit Pommes (ausverkauft)</title>
            <link>https://www.studentenwerk-dresden.de/mensen/speiseplan/details-154453.html</link>
            <author>Alte Mensa</author>
        </item>
        <item>
            <title>Eintopf ohne Mensa (1,80 €)</title>
            <link>https://www.studentenwerk-dresden.de/mensen/speiseplan/details-154499.html</link>
        </item>
        <item>
            <title>Salatbar</title>
            <link>https://www.studentenwerk-dresden.de/mensen/speiseplan/details-154470.html</link>
            <author>Mensa Siedepunkt</author>
        </item>
    </channel>
</rss>""".encode("utf-8")

EMPTY_FEED = b"""<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0">
    <channel>
        <title>Speiseplan heute</title>
        <link>https://www.studentenwerk-dresden.de/mensen/speiseplan/</link>
        <description>Heute geschlossen</description>
    </channel>
</rss>"""

MALFORMED_FEED = b"this is not a feed at all"

SAMPLE_DETAIL = """<!DOCTYPE html>
<html>
<head><meta charset="utf-8"><title>Pasta mit Tomatensoße</title></head>
<body>
    <div id="speiseplandetailslinks">
        <a id="essenfoto" href="/m18/201510/154452.jpg"><img src="/thumbs/154452.jpg"></a>
    </div>
    <div id="speiseplandetailsrechts">
        <h2>Allgemeine Informationen zur Speise:</h2>
        <ul>
            <li>Menü enthält Knoblauch</li>
            <li>Menü ist vegan</li>
        </ul>
        <h2>Infos zu enthaltenen Allergenen[2]:</h2>
        <ul>
            <li>Glutenhaltiges Getreide (A)</li>
            <li>Sellerie (I)</li>
        </ul>
        <h2>Weitere Informationen:</h2>
        <ul>
            <li>Menü enthält kein Fleisch</li>
        </ul>
    </div>
</body>
</html>""".encode("utf-8")


class FakeClock:
    """Callable clock that tests can move forward."""

    def __init__(self, now: Optional[datetime] = None):
        self.now = now or datetime(2015, 8, 24, 11, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


class FakeFetcher:
    """Transport stand-in serving canned responses per URL.

    Values may be a FetchResponse, raw bytes (served as HTTP 200), or an
    exception instance to raise.
    """

    def __init__(self, responses: Optional[Dict[str, Union[FetchResponse, bytes, Exception]]] = None):
        self.responses = dict(responses or {})
        self.requested = []
        self.in_flight = 0
        self.max_in_flight = 0

    @asynccontextmanager
    async def get_session(self):
        yield None

    async def fetch(self, url: str, session=None) -> FetchResponse:
        self.requested.append(url)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(0)
            value = self.responses.get(url)
            if value is None:
                return FetchResponse(url=url, status=404, body=b"")
            if isinstance(value, Exception):
                raise value
            if isinstance(value, bytes):
                return FetchResponse(url=url, status=200, body=value)
            return value
        finally:
            self.in_flight -= 1


@pytest.fixture
def settings():
    """Settings with the production endpoints and small limits."""
    return SpeiseplanSettings(
        feed={
            "feed_url": FEED_URL,
            "detail_url_template": DETAIL_URL,
            "image_base_url": IMAGE_BASE_URL,
        },
        limits={"request_timeout": 5, "max_concurrent_details": 2},
    )


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def fake_fetcher():
    return FakeFetcher({FEED_URL: SAMPLE_FEED})


@pytest.fixture
def sample_feed():
    return SAMPLE_FEED


@pytest.fixture
def sample_detail():
    return SAMPLE_DETAIL


@pytest.fixture
def unreachable():
    """Exception the fake transport raises for an unreachable host."""
    return TransportError("Connection refused", url=FEED_URL)


@pytest.fixture
def empty_feed():
    return EMPTY_FEED


@pytest.fixture
def malformed_feed():
    return MALFORMED_FEED
