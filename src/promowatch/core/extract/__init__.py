"""Promotion extraction from fetched pages."""

from .base import (
    ExtractionError,
    ExtractionStrategy,
    FieldDraft,
    StructuredExtraction,
    TextFallbackExtraction,
)
from .html import (
    PromotionExtractor,
    element_text,
    parse_promotions,
    parse_text_block,
    probe_strategy,
    read_fields,
)

__all__ = [
    "ExtractionError",
    "ExtractionStrategy",
    "FieldDraft",
    "StructuredExtraction",
    "TextFallbackExtraction",
    "PromotionExtractor",
    "element_text",
    "parse_promotions",
    "parse_text_block",
    "probe_strategy",
    "read_fields",
]
