"""
Text normalization for extracted promotion fields.

Two independent passes:
- normalize(): strips timestamps, tracking tokens, and incidental whitespace
- filter_noise(): strips promotional filler (urgency, disclaimers, social proof)

Neither pass touches prices, plain dates, or other semantic content.
"""

from __future__ import annotations

import re
from functools import lru_cache

from ..config.models import NormalizationConfig


WHITESPACE_PATTERN = re.compile(r"\s+")
# Punctuation left dangling after a removal, e.g. "Deal - " or "Deal ,"
DANGLING_SEPARATOR_PATTERN = re.compile(r"\s+([,;:])(?=\s|$)|\(\s*\)|\[\s*\]")
EDGE_EXCLAMATION_PATTERN = re.compile(r"^[\s!]*!\s*|\s*![\s!]*$")


def collapse_whitespace(text: str | None) -> str:
    """Collapse runs of whitespace (spaces, tabs, newlines) to one space and trim."""
    if not text:
        return ""
    return WHITESPACE_PATTERN.sub(" ", text).strip()


class TextNormalizer:
    """Applies the configured noise pattern tables to free text.

    Usage:
        normalizer = TextNormalizer(NormalizationConfig())
        normalizer.normalize("Free breakfast (updated 01/08/2025)  ")
        # -> "Free breakfast"
    """

    def __init__(self, config: NormalizationConfig | None = None):
        self.config = config or NormalizationConfig()
        self._normalize_patterns = [
            re.compile(pattern, re.IGNORECASE)
            for pattern in (*self.config.timestamp_patterns, *self.config.tracking_patterns)
        ]
        self._filler_patterns = [
            re.compile(pattern, re.IGNORECASE) for pattern in self.config.filler_patterns
        ]

    def normalize(self, raw: str | None) -> str:
        """Remove timestamps and tracking tokens, then collapse whitespace.

        Idempotent: normalize(normalize(x)) == normalize(x).
        """
        return self._to_fixed_point(raw, self._normalize_patterns, strip_exclamations=False)

    def filter_noise(self, raw: str | None) -> str:
        """Remove promotional filler phrases, then collapse whitespace.

        Idempotent: filter_noise(filter_noise(x)) == filter_noise(x).
        """
        return self._to_fixed_point(raw, self._filler_patterns, strip_exclamations=True)

    def clean(self, raw: str | None) -> str:
        """Apply both passes (normalization first)."""
        return self.filter_noise(self.normalize(raw))

    def _to_fixed_point(
        self,
        raw: str | None,
        patterns: list[re.Pattern[str]],
        *,
        strip_exclamations: bool,
    ) -> str:
        # Each productive pass removes at least one non-space character
        text = collapse_whitespace(raw)
        while True:
            result = self._apply(text, patterns, strip_exclamations)
            if result == text:
                return text
            text = result

    @staticmethod
    def _apply(
        text: str,
        patterns: list[re.Pattern[str]],
        strip_exclamations: bool,
    ) -> str:
        for pattern in patterns:
            text = pattern.sub(" ", text)
        text = DANGLING_SEPARATOR_PATTERN.sub(lambda m: m.group(1) or "", text)
        if strip_exclamations:
            text = EDGE_EXCLAMATION_PATTERN.sub("", text)
        return collapse_whitespace(text)


@lru_cache(maxsize=1)
def get_default_normalizer() -> TextNormalizer:
    """Shared normalizer built from the default pattern tables."""
    return TextNormalizer(NormalizationConfig())


def normalize_text(raw: str | None) -> str:
    """Normalize text with the default pattern tables."""
    return get_default_normalizer().normalize(raw)


def filter_noise(raw: str | None) -> str:
    """Filter promotional filler with the default pattern tables."""
    return get_default_normalizer().filter_noise(raw)
