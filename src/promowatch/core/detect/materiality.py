"""
Materiality filtering for change results.

Drops placeholder promotions and changes that only differ by noise
(rewording, price rounding, date jitter), then rebuilds the summary.
"""

from __future__ import annotations

import logging
import re
from functools import lru_cache

from ..config.models import PROMOTION_FIELDS, DetectionConfig
from ..normalize.text import TextNormalizer
from .diff import build_result
from .models import ChangeResult, Promotion, PromotionChange
from .similarity import SimilarityComparators


logger = logging.getLogger(__name__)

NO_MATERIAL_CHANGES = "No material changes detected"


class MaterialityFilter:
    """Decides which entries of a ChangeResult are worth reporting."""

    def __init__(
        self,
        config: DetectionConfig | None = None,
        normalizer: TextNormalizer | None = None,
    ):
        self.config = config or DetectionConfig()
        self.normalizer = normalizer or TextNormalizer(self.config.normalization)
        self.comparators = SimilarityComparators(self.config.similarity)
        self._noise_patterns = [
            re.compile(pattern, re.IGNORECASE)
            for pattern in self.config.materiality.noise_patterns
        ]

    def is_material_promotion(self, promotion: Promotion) -> bool:
        """A promotion is real content if it has a substantive title or perk
        and none of its fields look like placeholder text."""
        fields = {
            name: self.normalizer.normalize(value)
            for name, value in promotion.field_values().items()
        }

        min_length = self.config.materiality.min_field_length
        if len(fields["title"]) <= min_length and len(fields["perk"]) <= min_length:
            return False

        for value in fields.values():
            if value and any(pattern.search(value) for pattern in self._noise_patterns):
                return False

        return True

    def is_material_change(self, change: PromotionChange) -> bool:
        """A change is material if any field differs by more than its comparator tolerates."""
        for name in PROMOTION_FIELDS:
            before = self.normalizer.normalize(getattr(change.previous, name))
            after = self.normalizer.normalize(getattr(change.current, name))
            if not self.comparators.for_field(name)(before, after):
                return True
        return False

    def filter(self, result: ChangeResult) -> ChangeResult:
        """Return a new ChangeResult holding only the material entries."""
        added = [p for p in result.added if self.is_material_promotion(p)]
        removed = [p for p in result.removed if self.is_material_promotion(p)]
        changed = [c for c in result.changed if self.is_material_change(c)]

        dropped = (
            len(result.added) - len(added)
            + len(result.removed) - len(removed)
            + len(result.changed) - len(changed)
        )
        if dropped:
            logger.debug("Dropped %d non-material entries", dropped)

        return build_result(added, removed, changed, empty_message=NO_MATERIAL_CHANGES)


@lru_cache(maxsize=1)
def get_default_filter() -> MaterialityFilter:
    return MaterialityFilter(DetectionConfig())


def is_material_promotion(promotion: Promotion) -> bool:
    return get_default_filter().is_material_promotion(promotion)


def is_material_change(change: PromotionChange) -> bool:
    return get_default_filter().is_material_change(change)


def filter_material_changes(
    result: ChangeResult,
    *,
    materiality: MaterialityFilter | None = None,
) -> ChangeResult:
    """Filter a ChangeResult down to material changes (default config unless given)."""
    return (materiality or get_default_filter()).filter(result)
