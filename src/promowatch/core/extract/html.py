"""
Promotion extraction from HTML.

Each element matched by the target selector is one promotion container.
Containers with recognizable field elements are read field by field;
anything else is parsed from its text with keyword regexes.
"""

from __future__ import annotations

import logging
import re
from typing import Iterable

from cssselect import SelectorError
from lxml import etree
from lxml import html as lxml_html
from lxml.html import HtmlElement
from thefuzz import fuzz

from ..config.models import DetectionConfig
from ..detect.models import Promotion
from ..normalize.identity import assign_ids
from ..normalize.text import TextNormalizer, collapse_whitespace
from .base import (
    ExtractionError,
    ExtractionStrategy,
    FieldDraft,
    StructuredExtraction,
    TextFallbackExtraction,
)


logger = logging.getLogger(__name__)

FUZZY_MATCH_THRESHOLD = 85
MIN_BLOCK_LENGTH = 10

FIELD_SELECTORS = {
    "title": ".title, .promotion-title, h1, h2, h3, .headline",
    "perk": ".perk, .benefit, .offer, .deal-text, p",
    "dates": ".dates, .validity, .valid-dates, .duration",
    "price": ".price, .cost, .rate, .amount",
}

FIELD_CLASS_HINTS = {
    "title": ("title", "headline", "heading", "name"),
    "perk": ("perk", "benefit", "offer", "deal", "description"),
    "dates": ("dates", "validity", "valid", "duration", "travel"),
    "price": ("price", "cost", "rate", "amount", "fare"),
}
# Generic selectors (bare <p>) last so specific fields claim their elements first
PROBE_ORDER = ("title", "dates", "price", "perk")

PRICE_PATTERN = re.compile(
    r"\$[\d,]+(?:\.\d{2})?\s*-\s*\$[\d,]+(?:\.\d{2})?"
    r"|from\s+\$[\d,]+(?:\.\d{2})?"
    r"|\$[\d,]+(?:\.\d{2})?",
    re.IGNORECASE,
)
DATES_PATTERN = re.compile(
    r"(?:valid|expires?|through|until|from|dates?)[:\s]+[^.!?]*(?:\d{4}|\d{1,2}/\d{1,2})",
    re.IGNORECASE,
)
PERK_PATTERN = re.compile(
    r"(?:free|complimentary|includes?|bonus|upgrade|perk)[:\s]+[^.!?]*",
    re.IGNORECASE,
)
FALLBACK_PATTERNS = {
    "price": PRICE_PATTERN,
    "dates": DATES_PATTERN,
    "perk": PERK_PATTERN,
}
BLOCK_SEPARATOR = re.compile(r"\n\s*\n")

# Block-level tags whose text starts a new line in the fallback text
BLOCK_TAGS = {
    "p", "div", "li", "br", "h1", "h2", "h3", "h4", "h5", "h6",
    "section", "article", "tr", "dt", "dd", "header", "footer",
}


class PromotionExtractor:
    """Extracts promotions from a page using a target CSS selector."""

    def __init__(
        self,
        config: DetectionConfig | None = None,
        normalizer: TextNormalizer | None = None,
    ):
        self.config = config or DetectionConfig()
        self.normalizer = normalizer or TextNormalizer(self.config.normalization)

    def extract(self, html: str, selector: str) -> list[Promotion]:
        """Parse promotions out of an HTML document.

        Args:
            html: Raw page HTML
            selector: CSS selector matching promotion containers

        Returns:
            Promotions in document order with snapshot-unique ids

        Raises:
            ExtractionError: If the document or selector cannot be processed
        """
        if not html or not html.strip():
            return []

        try:
            doc = lxml_html.fromstring(html)
        except (etree.ParserError, ValueError) as e:
            raise ExtractionError(f"Failed to parse HTML: {e}") from e

        try:
            containers = doc.cssselect(selector)
        except SelectorError as e:
            raise ExtractionError(f"Invalid selector {selector!r}: {e}") from e

        if not containers:
            logger.info("Selector %r matched no elements", selector)
            return []

        drafts: list[FieldDraft] = []
        for container in containers:
            strategy = probe_strategy(container)
            draft = self._clean(read_fields(strategy))
            if draft.title or draft.perk:
                drafts.append(draft)

        logger.debug("Extracted %d promotions from %d containers", len(drafts), len(containers))
        return self._to_promotions(drafts)

    def extract_text(self, text: str) -> list[Promotion]:
        """Parse promotions out of plain text, one per blank-line separated block."""
        drafts = []
        for block in BLOCK_SEPARATOR.split(text or ""):
            if len(block.strip()) <= MIN_BLOCK_LENGTH:
                continue
            draft = self._clean(parse_text_block(block))
            if draft.title or draft.perk:
                drafts.append(draft)
        return self._to_promotions(drafts)

    def _clean(self, draft: FieldDraft) -> FieldDraft:
        return FieldDraft(**{
            name: self.normalizer.clean(value) for name, value in draft.as_dict().items()
        })

    def _to_promotions(self, drafts: list[FieldDraft]) -> list[Promotion]:
        ids = assign_ids(
            (d.as_dict() for d in drafts),
            identity_fields=self.config.identity_fields,
            normalizer=self.normalizer,
        )
        return [Promotion(id=promo_id, **d.as_dict()) for promo_id, d in zip(ids, drafts)]


def probe_strategy(container: HtmlElement) -> ExtractionStrategy:
    """Pick the structured strategy when the container exposes any field element."""
    field_elements: dict[str, HtmlElement] = {}
    for name in PROBE_ORDER:
        element = _find_field_element(container, name, taken=field_elements.values())
        if element is not None:
            field_elements[name] = element

    if field_elements:
        return StructuredExtraction(container=container, field_elements=field_elements)
    return TextFallbackExtraction(text=element_text(container))


def read_fields(strategy: ExtractionStrategy) -> FieldDraft:
    """Raw field text for either strategy."""
    if isinstance(strategy, StructuredExtraction):
        return FieldDraft(**{
            name: collapse_whitespace(element.text_content())
            for name, element in strategy.field_elements.items()
        })
    return parse_text_block(strategy.text)


def parse_text_block(block: str) -> FieldDraft:
    """Pull fields out of free text: first line is the title, the rest by keyword."""
    lines = [collapse_whitespace(line) for line in block.splitlines()]
    lines = [line for line in lines if line]
    if not lines:
        return FieldDraft()

    # A one-line block is searched whole; otherwise the title line is skipped
    body = lines[1:] or lines
    fields = {name: "" for name in FALLBACK_PATTERNS}
    for line in body:
        for name, pattern in FALLBACK_PATTERNS.items():
            if fields[name]:
                continue
            match = pattern.search(line)
            if match:
                fields[name] = match.group(0).strip()

    return FieldDraft(title=lines[0], **fields)


def element_text(element: HtmlElement) -> str:
    """Text content with a line break at every block-level element boundary."""
    parts: list[str] = []
    _collect_text(element, parts)
    return "".join(parts).strip()


def _collect_text(node: HtmlElement, parts: list[str]) -> None:
    # Comments and processing instructions contribute only their tail
    if isinstance(node.tag, str):
        if node.tag in BLOCK_TAGS:
            parts.append("\n")
        if node.text:
            parts.append(node.text)
        for child in node:
            _collect_text(child, parts)
            if child.tail:
                parts.append(child.tail)
        if node.tag in BLOCK_TAGS:
            parts.append("\n")


def _find_field_element(
    container: HtmlElement,
    name: str,
    taken: Iterable[HtmlElement] = (),
) -> HtmlElement | None:
    """First unclaimed descendant matching the field selector, else one whose class fuzzy-matches."""
    taken = set(taken)
    for element in container.cssselect(FIELD_SELECTORS[name]):
        if element not in taken:
            return element

    hints = FIELD_CLASS_HINTS[name]
    for element in container.iterdescendants():
        if not isinstance(element.tag, str) or element in taken:
            continue
        for token in _class_tokens(element):
            if any(fuzz.ratio(token, hint) >= FUZZY_MATCH_THRESHOLD for hint in hints):
                return element
    return None


def _class_tokens(element: HtmlElement) -> list[str]:
    """Class names split on - and _, e.g. 'promo-price' -> ['promo', 'price']."""
    tokens = []
    for class_name in (element.get("class") or "").split():
        tokens.extend(t for t in re.split(r"[-_]", class_name.lower()) if t)
    return tokens


def parse_promotions(
    html: str,
    selector: str,
    *,
    config: DetectionConfig | None = None,
) -> list[Promotion]:
    """Extract promotions from HTML with a fresh extractor."""
    return PromotionExtractor(config).extract(html, selector)
