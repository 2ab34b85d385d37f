"""
Stable identifiers for promotions and storage keys.

Promotion ids are content-addressed: a truncated SHA-256 over the
normalized identity fields. Markup or whitespace changes never change
an id; any semantic change to a hashed field does.
"""

from __future__ import annotations

import hashlib
from collections.abc import Iterable, Mapping, Sequence

from ..config.models import PROMOTION_FIELDS
from .text import TextNormalizer, get_default_normalizer


ID_LENGTH = 16
FIELD_SEPARATOR = "|"


def hash_string(value: str) -> str:
    """SHA-256 of a string, truncated to 16 hex characters."""
    return hashlib.sha256(value.encode("utf-8")).hexdigest()[:ID_LENGTH]


def generate_promotion_id(
    title: str | None,
    perk: str | None,
    dates: str | None,
    price: str | None,
    *,
    fields: Sequence[str] = PROMOTION_FIELDS,
    normalizer: TextNormalizer | None = None,
) -> str:
    """Generate a deterministic id from normalized promotion content.

    Args:
        title, perk, dates, price: Raw or normalized field text
        fields: Which fields participate in the hash (default: all four)
        normalizer: Normalizer to apply to each field first

    Returns:
        16-character hex id
    """
    normalizer = normalizer or get_default_normalizer()
    values = {"title": title, "perk": perk, "dates": dates, "price": price}
    content = FIELD_SEPARATOR.join(
        normalizer.normalize(values[name]) for name in PROMOTION_FIELDS if name in fields
    )
    return hash_string(content)


def assign_ids(
    drafts: Iterable[Mapping[str, str]],
    *,
    identity_fields: Sequence[str] = ("title",),
    normalizer: TextNormalizer | None = None,
) -> list[str]:
    """Compute snapshot-unique ids for a list of extracted field dicts.

    Ids are hashed over ``identity_fields``. When two drafts share an
    identity key, the later one falls back to a full-content hash, and if
    that also collides (an exact duplicate), to an ordinal suffix.
    """
    normalizer = normalizer or get_default_normalizer()
    ids: list[str] = []
    seen: set[str] = set()

    for draft in drafts:
        fields = {name: draft.get(name, "") or "" for name in PROMOTION_FIELDS}
        promo_id = generate_promotion_id(**fields, fields=identity_fields, normalizer=normalizer)

        if promo_id in seen:
            promo_id = generate_promotion_id(**fields, normalizer=normalizer)

        base_id = promo_id
        occurrence = 1
        while promo_id in seen:
            occurrence += 1
            promo_id = f"{base_id}-{occurrence}"

        seen.add(promo_id)
        ids.append(promo_id)

    return ids


def state_key(url: str) -> str:
    """Storage key for a target's current state."""
    return f"state:{hash_string(url)}"


def history_key(url: str, timestamp: str) -> str:
    """Storage key for a target's historical snapshot."""
    return f"hist:{hash_string(url)}:{timestamp}"
