"""
Extraction data structures.

A container matched by the target selector is parsed with one of two
strategies, chosen by probing the container's markup:

- StructuredExtraction: the container has recognizable field elements
  (title/perk/dates/price by class name or tag)
- TextFallbackExtraction: no field elements; fields are pulled out of the
  container's plain text with regexes
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Union

from lxml.html import HtmlElement


class ExtractionError(Exception):
    """HTML or selector could not be processed."""


@dataclass
class FieldDraft:
    """Raw field text pulled from one container, before normalization."""

    title: str = ""
    perk: str = ""
    dates: str = ""
    price: str = ""

    @property
    def is_empty(self) -> bool:
        return not (self.title or self.perk or self.dates or self.price)

    def as_dict(self) -> dict[str, str]:
        return {
            "title": self.title,
            "perk": self.perk,
            "dates": self.dates,
            "price": self.price,
        }


@dataclass(frozen=True)
class StructuredExtraction:
    """Container whose fields are addressable elements."""

    container: HtmlElement
    field_elements: dict[str, HtmlElement] = field(default_factory=dict)


@dataclass(frozen=True)
class TextFallbackExtraction:
    """Container that only offers free text."""

    text: str


ExtractionStrategy = Union[StructuredExtraction, TextFallbackExtraction]
