"""
Detail Enrichment
=================

Scrapes a meal's detail page for its photo, general information and allergens.

The page lists its sections positionally as ``<h2>``/``<ul>`` pairs inside
``div#speiseplandetailsrechts``. Only the heading tells what a list means, so a
list is used only when the heading at the same position carries the expected
label. Unknown list entries are logged and dropped.
"""

from dataclasses import dataclass
from typing import Optional, Set, Type, Union
from urllib.parse import urljoin

from bs4 import BeautifulSoup
from pydantic import AnyHttpUrl, TypeAdapter, ValidationError

from ..catalog.models import Allergen, Ingredient, Meal, normalize_label
from ..config.settings import SpeiseplanSettings, get_settings
from ..utils.logging import get_detail_logger

DETAILS_CONTAINER_ID = "speiseplandetailsrechts"
IMAGE_ANCHOR_ID = "essenfoto"

_url_adapter = TypeAdapter(AnyHttpUrl)


@dataclass(frozen=True)
class DetailSection:
    """Positional list section of the detail page."""

    position: int
    label: str
    vocabulary: Type[Union[Ingredient, Allergen]]
    description: str


INGREDIENTS_SECTION = DetailSection(
    1, "Allgemeine Informationen zur Speise:", Ingredient, "ingredients"
)
ALLERGENS_SECTION = DetailSection(
    2, "Infos zu enthaltenen Allergenen[2]:", Allergen, "allergens"
)
# Dietary flags such as "vegan" live here and are kept with the ingredients.
FURTHER_INFO_SECTION = DetailSection(
    3, "Weitere Informationen:", Ingredient, "additional information"
)


def _nth_child(container, tag: str, position: int):
    if container is None:
        return None
    children = container.find_all(tag, recursive=False)
    return children[position - 1] if len(children) >= position else None


def _extract_image_url(soup: BeautifulSoup, base_url: str, logger) -> Optional[AnyHttpUrl]:
    anchor = soup.find("a", id=IMAGE_ANCHOR_ID)
    href = anchor.get("href") if anchor is not None else None
    if not href:
        return None

    try:
        return _url_adapter.validate_python(urljoin(base_url, href.strip()))
    except ValidationError:
        logger.warning(f"Invalid meal image link: {href!r}")
        return None


def _item_text(item, owner) -> str:
    """Text of a list item without the text of lists nested inside it."""
    return "".join(
        s for s in item.find_all(string=True) if s.find_parent(["ul", "ol"]) is owner
    )


def _extract_section(container, section: DetailSection, meal_id: int, logger) -> Set:
    heading = _nth_child(container, "h2", section.position)
    items = _nth_child(container, "ul", section.position)

    if heading is None or normalize_label(heading.get_text()) != section.label:
        logger.warning(f"Meal {meal_id} has no list of {section.description}")
        return set()

    found = set()
    if items is None:
        return found

    for item in items.find_all("li", recursive=False):
        text = _item_text(item, items)
        member = section.vocabulary.from_text(text)
        if member is None:
            logger.warning(
                f"Unknown {section.description} entry for meal {meal_id}: "
                f"{normalize_label(text)!r}"
            )
            continue
        found.add(member)

    return found


def enrich_meal(
    meal: Meal,
    detail_bytes: bytes,
    settings: Optional[SpeiseplanSettings] = None,
    logger=None,
) -> Meal:
    """Return a copy of ``meal`` completed from its detail page.

    Never raises: anything missing from the page leaves the field as it was
    and is reported through ``logger``.

    Args:
        meal: Meal as ingested from the feed
        detail_bytes: Raw HTML of the detail page
        settings: Settings providing the image base URL
        logger: Diagnostics sink, defaults to the component logger

    Returns:
        New Meal; the input meal is not modified
    """
    settings = settings or get_settings()
    logger = logger or get_detail_logger(meal.id)

    soup = BeautifulSoup(detail_bytes, "html.parser")
    container = soup.find("div", id=DETAILS_CONTAINER_ID)

    ingredients = set(meal.ingredients)
    allergens = set(meal.allergens)

    ingredients |= _extract_section(container, INGREDIENTS_SECTION, meal.id, logger)
    allergens |= _extract_section(container, ALLERGENS_SECTION, meal.id, logger)
    ingredients |= _extract_section(container, FURTHER_INFO_SECTION, meal.id, logger)

    update = {"ingredients": ingredients, "allergens": allergens}

    image_url = _extract_image_url(soup, str(settings.feed.image_base_url), logger)
    if image_url is not None:
        update["image_url"] = image_url

    return meal.model_copy(update=update, deep=True)
