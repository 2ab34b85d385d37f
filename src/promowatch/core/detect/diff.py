"""
Snapshot diffing for promotion lists.

Partitions two snapshots into added / removed / changed by id. Content
equality here is exact equality of normalized fields; deciding whether a
change matters is left to the materiality filter.
"""

from __future__ import annotations

from typing import Any, Iterable, Mapping

from ..config.models import PROMOTION_FIELDS
from ..normalize.text import TextNormalizer, get_default_normalizer
from .models import ChangeResult, Promotion, PromotionChange, to_promotions


NO_CHANGES = "No changes detected"


def detect_changes(
    current: Iterable[Promotion | Mapping[str, Any]],
    previous: Iterable[Promotion | Mapping[str, Any]],
    *,
    normalizer: TextNormalizer | None = None,
) -> ChangeResult:
    """Compare the current snapshot against the previous one.

    Args:
        current: Promotions from the latest scrape
        previous: Promotions from the last stored snapshot
        normalizer: Normalizer used for field equality

    Returns:
        ChangeResult; added/changed follow ``current`` order, removed
        follows ``previous`` order
    """
    normalizer = normalizer or get_default_normalizer()
    current_promos = to_promotions(current)
    previous_promos = to_promotions(previous)

    # dicts keep insertion order, so leftovers come out in previous order
    unmatched: dict[str, Promotion] = {}
    for promo in previous_promos:
        unmatched.setdefault(promo.id, promo)

    added: list[Promotion] = []
    changed: list[PromotionChange] = []

    for promo in current_promos:
        before = unmatched.pop(promo.id, None)
        if before is None:
            added.append(promo)
        elif not promotions_equal(before, promo, normalizer):
            changed.append(PromotionChange(previous=before, current=promo))

    removed = list(unmatched.values())

    return build_result(added, removed, changed)


def promotions_equal(a: Promotion, b: Promotion, normalizer: TextNormalizer | None = None) -> bool:
    """Exact equality of every normalized content field."""
    normalizer = normalizer or get_default_normalizer()
    return all(
        normalizer.normalize(getattr(a, name)) == normalizer.normalize(getattr(b, name))
        for name in PROMOTION_FIELDS
    )


def build_result(
    added: Iterable[Promotion],
    removed: Iterable[Promotion],
    changed: Iterable[PromotionChange],
    *,
    empty_message: str = NO_CHANGES,
) -> ChangeResult:
    """Assemble a ChangeResult and its summary from the three change sets."""
    added = tuple(added)
    removed = tuple(removed)
    changed = tuple(changed)
    return ChangeResult(
        has_changes=bool(added or removed or changed),
        added=added,
        removed=removed,
        changed=changed,
        summary=generate_summary(len(added), len(removed), len(changed), empty_message=empty_message),
    )


def _pluralize(count: int, singular: str, plural: str) -> str:
    return f"{count} {singular if count == 1 else plural}"


def generate_summary(
    added: int,
    removed: int,
    changed: int,
    *,
    empty_message: str = NO_CHANGES,
) -> str:
    """Describe the change counts in one sentence.

    >>> generate_summary(2, 1, 1)
    '2 new promotions, 1 promotion removed, and 1 promotion updated'
    """
    parts: list[str] = []
    if added:
        parts.append(_pluralize(added, "new promotion", "new promotions"))
    if removed:
        parts.append(_pluralize(removed, "promotion removed", "promotions removed"))
    if changed:
        parts.append(_pluralize(changed, "promotion updated", "promotions updated"))

    if not parts:
        return empty_message
    if len(parts) == 1:
        return parts[0]
    if len(parts) == 2:
        return f"{parts[0]} and {parts[1]}"
    return f"{', '.join(parts[:-1])}, and {parts[-1]}"
