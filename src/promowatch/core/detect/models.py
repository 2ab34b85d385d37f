"""
Promotion and change-result data structures.

All records are frozen; every stage of the pipeline returns new objects.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping

from ..config.models import PROMOTION_FIELDS


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    return value if isinstance(value, str) else str(value)


@dataclass(frozen=True)
class Promotion:
    """One promotional offer extracted from a page."""

    id: str = ""
    title: str = ""
    perk: str = ""
    dates: str = ""
    price: str = ""

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Promotion":
        """Build from a loose mapping; missing or None fields become empty strings."""
        return cls(
            id=_as_text(data.get("id")),
            **{name: _as_text(data.get(name)) for name in PROMOTION_FIELDS},
        )

    def field_values(self) -> dict[str, str]:
        """The four content fields (without the id)."""
        return {name: getattr(self, name) for name in PROMOTION_FIELDS}

    def to_dict(self) -> dict[str, str]:
        return {"id": self.id, **self.field_values()}


@dataclass(frozen=True)
class PromotionChange:
    """A promotion present in both snapshots with different content."""

    previous: Promotion
    current: Promotion

    @property
    def id(self) -> str:
        return self.current.id

    def changed_fields(self) -> list[str]:
        """Field names whose raw values differ."""
        return [
            name
            for name in PROMOTION_FIELDS
            if getattr(self.previous, name) != getattr(self.current, name)
        ]

    def to_dict(self) -> dict[str, Any]:
        return {"previous": self.previous.to_dict(), "current": self.current.to_dict()}


@dataclass(frozen=True)
class ChangeResult:
    """Outcome of comparing two promotion snapshots."""

    has_changes: bool = False
    added: tuple[Promotion, ...] = field(default_factory=tuple)
    removed: tuple[Promotion, ...] = field(default_factory=tuple)
    changed: tuple[PromotionChange, ...] = field(default_factory=tuple)
    summary: str = "No changes detected"

    @property
    def counts(self) -> dict[str, int]:
        return {
            "added": len(self.added),
            "removed": len(self.removed),
            "changed": len(self.changed),
        }

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for storage or JSON output."""
        return {
            "has_changes": self.has_changes,
            "added": [p.to_dict() for p in self.added],
            "removed": [p.to_dict() for p in self.removed],
            "changed": [c.to_dict() for c in self.changed],
            "summary": self.summary,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ChangeResult":
        return cls(
            has_changes=bool(data.get("has_changes", False)),
            added=to_promotions(data.get("added") or []),
            removed=to_promotions(data.get("removed") or []),
            changed=tuple(
                PromotionChange(
                    previous=Promotion.from_dict(c.get("previous") or {}),
                    current=Promotion.from_dict(c.get("current") or {}),
                )
                for c in data.get("changed") or []
            ),
            summary=_as_text(data.get("summary")),
        )


def to_promotions(items: Iterable[Promotion | Mapping[str, Any]]) -> tuple[Promotion, ...]:
    """Coerce a sequence of promotions or plain dicts into Promotion records."""
    return tuple(
        item if isinstance(item, Promotion) else Promotion.from_dict(item)
        for item in items
    )


def initial_result(summary: str = "Initial state captured") -> ChangeResult:
    """Result reported the first time a target is seen."""
    return ChangeResult(has_changes=False, summary=summary)
