"""Tests for the field similarity comparators."""

import pytest

from promowatch.core.config.models import SimilarityConfig
from promowatch.core.detect.similarity import (
    SimilarityComparators,
    is_date_similar,
    is_price_similar,
    is_text_similar,
    text_similarity,
)


class TestTextSimilarity:
    def test_identical(self):
        assert text_similarity("abc", "abc") == 1.0
        assert text_similarity("", "") == 1.0

    def test_ratio(self):
        # kitten -> sitting is three edits over seven characters
        assert text_similarity("kitten", "sitting") == pytest.approx(1 - 3 / 7)

    def test_against_empty(self):
        assert text_similarity("abc", "") == 0.0

    def test_punctuation_is_similar(self):
        assert is_text_similar("Free breakfast for two", "Free breakfast for two!")

    def test_rewrite_is_not_similar(self):
        assert not is_text_similar("Free breakfast for two", "Free spa day for the family")

    def test_both_empty_are_similar(self):
        assert is_text_similar("", "")

    def test_custom_threshold(self):
        assert is_text_similar("kitten", "sitting", threshold=0.5)
        assert not is_text_similar("kitten", "sitting")


class TestPriceSimilarity:
    def test_rounding_is_similar(self):
        assert is_price_similar("$1,000.00", "$1,000.50")

    def test_formatting_is_similar(self):
        assert is_price_similar("$1,299", "$1299 per person")

    def test_real_change(self):
        assert not is_price_similar("$1,000", "$1,200")

    def test_range_compares_lowest(self):
        assert is_price_similar("$899-$1,599", "From $899")
        assert not is_price_similar("$899-$1,599", "$999-$1,599")

    def test_unparsable_falls_back_to_text(self):
        assert is_price_similar("Contact us for pricing", "Contact us for pricing.")
        assert not is_price_similar("Call for pricing", "Sold out")

    def test_one_side_unparsable(self):
        assert not is_price_similar("$1,299", "Call for pricing")

    def test_custom_tolerance(self):
        assert is_price_similar("$1,000", "$1,200", tolerance=0.25)


class TestDateSimilarity:
    def test_within_a_week(self):
        assert is_date_similar("03/15/2025", "03/18/2025")

    def test_exactly_seven_days(self):
        assert is_date_similar("03/15/2025", "03/22/2025")

    def test_real_change(self):
        assert not is_date_similar("03/15/2025", "06/2025")

    def test_mixed_formats(self):
        assert is_date_similar("March 15, 2025", "2025-03-16")

    def test_range_end_extension_is_a_change(self):
        assert not is_date_similar("03/01/2025 - 03/31/2025", "03/01/2025 - 06/30/2025")

    def test_range_shift_within_tolerance(self):
        assert is_date_similar("03/01/2025 - 03/31/2025", "03/03/2025 - 04/02/2025")

    def test_single_day_becoming_range_is_a_change(self):
        assert not is_date_similar("03/15/2025", "03/15/2025 - 03/20/2025")

    def test_unparsable_falls_back_to_text(self):
        assert is_date_similar("Limited dates", "Limited dates!")
        assert not is_date_similar("Year-round", "Seasonal")


class TestComparators:
    def test_for_field(self):
        comparators = SimilarityComparators()
        assert comparators.for_field("price") == comparators.price
        assert comparators.for_field("dates") == comparators.date
        assert comparators.for_field("title") == comparators.text
        assert comparators.for_field("perk") == comparators.text

    def test_uses_config(self):
        comparators = SimilarityComparators(
            SimilarityConfig(price_tolerance=0.25, date_tolerance_days=100)
        )
        assert comparators.price("$1,000", "$1,200")
        assert comparators.date("03/15/2025", "06/2025")
