"""
Unit Tests for Detail Enrichment
================================

Tests for heading-verified scraping of meal detail pages.
"""

import logging
from unittest.mock import Mock

import pytest

from speiseplan.catalog.models import Allergen, Ingredient, Meal, PricePair
from speiseplan.ingestion.detail_enrichment import enrich_meal


def _detail_page(*sections, image_href=None) -> bytes:
    """Build a detail page from (heading, [items]) pairs."""
    body = ""
    if image_href is not None:
        body += f'<a id="essenfoto" href="{image_href}"><img src="x.jpg"></a>'
    body += '<div id="speiseplandetailsrechts">'
    for heading, items in sections:
        body += f"<h2>{heading}</h2><ul>"
        body += "".join(f"<li>{item}</li>" for item in items)
        body += "</ul>"
    body += "</div>"
    return f'<html><head><meta charset="utf-8"></head><body>{body}</body></html>'.encode("utf-8")


@pytest.fixture
def meal():
    return Meal(id=154452, name="Pasta mit Tomatensoße", price=PricePair(student=2.2, employee=3.9))


class TestEnrichMeal:
    """Test cases for enrich_meal."""

    def test_full_page(self, meal, sample_detail, settings):
        logger = Mock()

        enriched = enrich_meal(meal, sample_detail, settings=settings, logger=logger)

        assert enriched.ingredients == {
            Ingredient.GARLIC,
            Ingredient.VEGAN,
            Ingredient.NO_MEAT,
        }
        assert enriched.allergens == {Allergen.A, Allergen.I}
        assert str(enriched.image_url) == (
            "https://bilderspeiseplan.studentenwerk-dresden.de/m18/201510/154452.jpg"
        )
        logger.warning.assert_not_called()

    def test_input_meal_is_untouched(self, meal, sample_detail, settings):
        enriched = enrich_meal(meal, sample_detail, settings=settings, logger=Mock())

        assert meal.ingredients == set()
        assert meal.allergens == set()
        assert meal.image_url is None
        assert enriched is not meal
        assert enriched.price is not meal.price
        assert (enriched.id, enriched.name, enriched.price) == (meal.id, meal.name, meal.price)

    def test_further_information_merges_into_ingredients(self, meal, settings):
        page = _detail_page(
            ("Allgemeine Informationen zur Speise:", ["Menü enthält Rindfleisch"]),
            ("Infos zu enthaltenen Allergenen[2]:", []),
            ("Weitere Informationen:", ["Menü ist vegetarisch"]),
        )

        enriched = enrich_meal(meal, page, settings=settings, logger=Mock())

        assert enriched.ingredients == {Ingredient.BEEF, Ingredient.VEGETARIAN}
        assert enriched.allergens == set()

    def test_wrong_first_heading(self, meal, settings):
        page = _detail_page(
            ("Zusatzstoffe:", ["Menü ist vegan"]),
            ("Infos zu enthaltenen Allergenen[2]:", ["Eier (C)", "Milch/Milchzucker (Laktose) (G)"]),
            ("Weitere Informationen:", []),
        )
        logger = Mock()

        enriched = enrich_meal(meal, page, settings=settings, logger=logger)

        assert enriched.ingredients == set()
        assert enriched.allergens == {Allergen.C, Allergen.G}
        assert logger.warning.call_count == 1
        message = logger.warning.call_args[0][0]
        assert "154452" in message
        assert "ingredients" in message

    def test_unknown_entries_are_skipped(self, meal, settings):
        page = _detail_page(
            ("Allgemeine Informationen zur Speise:", ["Menü enthält Insekten", "Menü ist vegan"]),
            ("Infos zu enthaltenen Allergenen[2]:", ["Unbekanntes Allergen (Z)", "Soja (F)"]),
            ("Weitere Informationen:", []),
        )
        logger = Mock()

        enriched = enrich_meal(meal, page, settings=settings, logger=logger)

        assert enriched.ingredients == {Ingredient.VEGAN}
        assert enriched.allergens == {Allergen.F}
        assert logger.warning.call_count == 2
        messages = " ".join(call[0][0] for call in logger.warning.call_args_list)
        assert "Menü enthält Insekten" in messages
        assert "Unbekanntes Allergen (Z)" in messages

    def test_missing_sections_are_reported(self, meal, settings):
        page = _detail_page(
            ("Allgemeine Informationen zur Speise:", ["Menü enthält Alkohol"]),
        )
        logger = Mock()

        enriched = enrich_meal(meal, page, settings=settings, logger=logger)

        assert enriched.ingredients == {Ingredient.ALCOHOL}
        # allergens and additional information headings are missing
        assert logger.warning.call_count == 2

    def test_page_without_container(self, meal, settings):
        logger = Mock()

        enriched = enrich_meal(meal, b"<html><body><p>Wartung</p></body></html>", settings=settings, logger=logger)

        assert enriched.ingredients == set()
        assert enriched.allergens == set()
        assert enriched.image_url is None
        assert logger.warning.call_count == 3

    def test_garbage_input_never_raises(self, meal, settings):
        enriched = enrich_meal(meal, b"\x00\xff<<<not html", settings=settings, logger=Mock())

        assert enriched.ingredients == set()

    def test_absent_image_is_silent(self, meal, sample_detail, settings):
        page = sample_detail.replace(b'id="essenfoto"', b'id="anderesfoto"')
        logger = Mock()

        enriched = enrich_meal(meal, page, settings=settings, logger=logger)

        assert enriched.image_url is None
        logger.warning.assert_not_called()

    def test_absolute_image_link(self, meal, settings):
        page = _detail_page(image_href="https://cdn.example.com/photo.jpg")

        enriched = enrich_meal(meal, page, settings=settings, logger=Mock())

        assert str(enriched.image_url) == "https://cdn.example.com/photo.jpg"

    def test_only_direct_list_items_are_mapped(self, meal, settings):
        page = _detail_page(
            (
                "Allgemeine Informationen zur Speise:",
                ["Menü ist vegan<ul><li>Hinweis: saisonal</li></ul>"],
            ),
            ("Infos zu enthaltenen Allergenen[2]:", []),
            ("Weitere Informationen:", []),
        )
        logger = Mock()

        enriched = enrich_meal(meal, page, settings=settings, logger=logger)

        assert enriched.ingredients == {Ingredient.VEGAN}
        logger.warning.assert_not_called()

    def test_whitespace_in_labels_is_normalized(self, meal, settings):
        page = _detail_page(
            ("  Allgemeine Informationen\n zur Speise: ", ["\n  Menü ist   vegan "]),
        )

        enriched = enrich_meal(meal, page, settings=settings, logger=Mock())

        assert enriched.ingredients == {Ingredient.VEGAN}

    def test_idempotent(self, meal, sample_detail, settings):
        first = enrich_meal(meal.model_copy(deep=True), sample_detail, settings=settings, logger=Mock())
        second = enrich_meal(meal.model_copy(deep=True), sample_detail, settings=settings, logger=Mock())
        again = enrich_meal(first, sample_detail, settings=settings, logger=Mock())

        assert first == second
        assert again.ingredients == first.ingredients
        assert again.allergens == first.allergens

    def test_default_logger_emits_warnings(self, meal, settings, caplog):
        page = _detail_page(("Falsche Überschrift", ["Menü ist vegan"]))

        with caplog.at_level(logging.WARNING, logger="speiseplan.detail_enrichment"):
            enrich_meal(meal, page, settings=settings)

        assert any(
            "Meal 154452 has no list of ingredients" in r.getMessage()
            for r in caplog.records
        )
