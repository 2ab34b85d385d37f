"""
Field-specific similarity comparators.

Each predicate answers "are these two values close enough that the
difference is noise?" Used only by the materiality filter.
"""

from __future__ import annotations

from rapidfuzz.distance import Levenshtein

from ..config.models import SimilarityConfig
from ..normalize.parsing import parse_dates, parse_price


def text_similarity(a: str, b: str) -> float:
    """Edit-distance ratio in [0, 1]: 1 - levenshtein(a, b) / max(len(a), len(b), 1)."""
    if a == b:
        return 1.0
    distance = Levenshtein.distance(a, b)
    return 1.0 - distance / max(len(a), len(b), 1)


def is_text_similar(a: str, b: str, threshold: float = 0.85) -> bool:
    """Texts are similar when equal (including both empty) or above the ratio threshold."""
    if a == b:
        return True
    return text_similarity(a, b) >= threshold


def is_price_similar(
    a: str,
    b: str,
    tolerance: float = 0.01,
    *,
    text_threshold: float = 0.85,
) -> bool:
    """Prices are similar when their primary amounts differ by at most ``tolerance``.

    Ranges and "from $X" forms compare the lowest figure. When either side
    has no parsable amount, falls back to text similarity.
    """
    if a == b:
        return True

    first = parse_price(a).amount
    second = parse_price(b).amount
    if first is None or second is None:
        return is_text_similar(a, b, text_threshold)

    p1, p2 = float(first), float(second)
    return abs(p1 - p2) / max(p1, p2, 1.0) <= tolerance


def is_date_similar(
    a: str,
    b: str,
    tolerance_days: int = 7,
    *,
    text_threshold: float = 0.85,
) -> bool:
    """Dates are similar when every date moved by at most ``tolerance_days``.

    Dates are paired in order of appearance, so a range is compared on both
    its start and its end. Gaining or losing a date (a single day becoming a
    range) is not similar. When either side has no parsable date, falls back
    to text similarity.
    """
    if a == b:
        return True

    first = parse_dates(a).values
    second = parse_dates(b).values
    if not first or not second:
        return is_text_similar(a, b, text_threshold)
    if len(first) != len(second):
        return False

    return max(abs((x - y).days) for x, y in zip(first, second)) <= tolerance_days


class SimilarityComparators:
    """The three comparators bound to one set of thresholds."""

    def __init__(self, config: SimilarityConfig | None = None):
        self.config = config or SimilarityConfig()

    def text(self, a: str, b: str) -> bool:
        return is_text_similar(a, b, self.config.text_threshold)

    def price(self, a: str, b: str) -> bool:
        return is_price_similar(
            a, b, self.config.price_tolerance, text_threshold=self.config.text_threshold
        )

    def date(self, a: str, b: str) -> bool:
        return is_date_similar(
            a, b, self.config.date_tolerance_days, text_threshold=self.config.text_threshold
        )

    def for_field(self, name: str):
        """Comparator used for a promotion field."""
        if name == "price":
            return self.price
        if name == "dates":
            return self.date
        return self.text
