"""Normalization, parsing, and identity of extracted promotion data."""

from .text import (
    TextNormalizer,
    collapse_whitespace,
    filter_noise,
    get_default_normalizer,
    normalize_text,
)
from .parsing import (
    ParsedDates,
    ParsedPrice,
    parse_dates,
    parse_price,
)
from .identity import (
    assign_ids,
    generate_promotion_id,
    hash_string,
    history_key,
    state_key,
)

__all__ = [
    # Text
    "TextNormalizer",
    "collapse_whitespace",
    "filter_noise",
    "get_default_normalizer",
    "normalize_text",
    # Parsing
    "ParsedDates",
    "ParsedPrice",
    "parse_dates",
    "parse_price",
    # Identity
    "assign_ids",
    "generate_promotion_id",
    "hash_string",
    "history_key",
    "state_key",
]
