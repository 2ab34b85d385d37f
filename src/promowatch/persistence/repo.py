"""
Repository pattern for database operations.

Provides target CRUD, current-state reads/writes, and the pruned
snapshot history used by the target runner.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Iterable, Sequence

import orjson
from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from ..core.config.models import PROMOTION_FIELDS, TargetConfig
from ..core.detect.models import Promotion, to_promotions
from ..core.normalize.identity import hash_string, history_key, state_key
from .models import Snapshot, Target, TargetState, utcnow


logger = logging.getLogger(__name__)

DEFAULT_HISTORY_KEEP = 5


def hash_promotions(promotions: Iterable[Promotion]) -> str:
    """Content hash of a promotion list (order-sensitive)."""
    payload = orjson.dumps([p.to_dict() for p in promotions])
    return hash_string(payload.decode("utf-8"))


def is_valid_promotion_data(data: Any) -> bool:
    """Stored promotion rows need a non-empty id and string fields."""
    if not isinstance(data, dict):
        return False
    if not all(isinstance(data.get(name), str) for name in ("id", *PROMOTION_FIELDS)):
        return False
    return bool(data["id"].strip())


@dataclass(frozen=True)
class StoredState:
    """A target's last recorded promotions."""

    url: str
    content_hash: str
    promotions: tuple[Promotion, ...]
    last_seen_at: datetime


@dataclass(frozen=True)
class StoredSnapshot:
    """One entry of a target's change history."""

    key: str
    content_hash: str
    promotions: tuple[Promotion, ...]
    summary: str | None
    taken_at: datetime


# =============================================================================
# State Repository
# =============================================================================


class StateRepository:
    """Targets, current state, and history for monitored pages."""

    def __init__(self, session: Session, history_keep: int = DEFAULT_HISTORY_KEEP):
        self.session = session
        self.history_keep = history_keep

    # -------------------------------------------------------------------------
    # Targets
    # -------------------------------------------------------------------------

    def get_target(self, url: str) -> Target | None:
        stmt = select(Target).where(Target.url == url)
        return self.session.execute(stmt).scalar_one_or_none()

    def list_targets(self, enabled_only: bool = False) -> Sequence[Target]:
        """Get all targets, ordered by URL."""
        stmt = select(Target)
        if enabled_only:
            stmt = stmt.where(Target.enabled == True)  # noqa: E712
        stmt = stmt.order_by(Target.url)
        return self.session.execute(stmt).scalars().all()

    def upsert_target(self, config: TargetConfig) -> tuple[Target, bool]:
        """Create or update a target keyed by URL.

        Returns:
            Tuple of (target, created) where created is True if new
        """
        existing = self.get_target(config.url)

        if existing:
            existing.selector = config.selector
            existing.name = config.name
            existing.notes = config.notes
            existing.enabled = config.enabled
            self.session.flush()
            return existing, False

        target = Target(
            url=config.url,
            selector=config.selector,
            name=config.name,
            notes=config.notes,
            enabled=config.enabled,
        )
        self.session.add(target)
        self.session.flush()
        return target, True

    def remove_target(self, url: str) -> bool:
        """Delete a target. State and history are left for delete_state/delete_history."""
        target = self.get_target(url)
        if target:
            self.session.delete(target)
            self.session.flush()
            return True
        return False

    # -------------------------------------------------------------------------
    # Current state
    # -------------------------------------------------------------------------

    def read_state(self, url: str) -> StoredState | None:
        """Last recorded state, or None when absent or invalid."""
        stmt = select(TargetState).where(TargetState.state_key == state_key(url))
        row = self.session.execute(stmt).scalar_one_or_none()
        if row is None:
            return None

        promotions = row.promotions
        if not isinstance(promotions, list) or not all(
            is_valid_promotion_data(p) for p in promotions
        ):
            logger.error("Invalid stored state for %s", url)
            return None
        if not row.content_hash:
            logger.error("Stored state for %s has no content hash", url)
            return None

        return StoredState(
            url=row.url,
            content_hash=row.content_hash,
            promotions=to_promotions(promotions),
            last_seen_at=row.last_seen_at,
        )

    def write_state(
        self,
        url: str,
        promotions: Sequence[Promotion],
        *,
        content_hash: str | None = None,
        seen_at: datetime | None = None,
    ) -> TargetState:
        """Replace the target's current state."""
        key = state_key(url)
        payload = [p.to_dict() for p in promotions]
        content_hash = content_hash or hash_promotions(promotions)
        seen_at = seen_at or utcnow()

        stmt = select(TargetState).where(TargetState.state_key == key)
        row = self.session.execute(stmt).scalar_one_or_none()
        if row is None:
            row = TargetState(state_key=key, url=url)
            self.session.add(row)

        row.content_hash = content_hash
        row.promotions = payload
        row.last_seen_at = seen_at
        self.session.flush()
        return row

    def delete_state(self, url: str) -> bool:
        result = self.session.execute(
            delete(TargetState).where(TargetState.state_key == state_key(url))
        )
        return bool(result.rowcount)

    # -------------------------------------------------------------------------
    # History
    # -------------------------------------------------------------------------

    def store_snapshot(
        self,
        url: str,
        promotions: Sequence[Promotion],
        *,
        content_hash: str | None = None,
        taken_at: datetime | None = None,
        summary: str | None = None,
    ) -> Snapshot:
        taken_at = taken_at or utcnow()
        snapshot = Snapshot(
            history_key=history_key(url, taken_at.isoformat()),
            url_hash=hash_string(url),
            url=url,
            content_hash=content_hash or hash_promotions(promotions),
            promotions=[p.to_dict() for p in promotions],
            summary=summary,
            taken_at=taken_at,
        )
        self.session.add(snapshot)
        self.session.flush()
        return snapshot

    def _snapshots_newest_first(self, url: str):
        return (
            select(Snapshot)
            .where(Snapshot.url_hash == hash_string(url))
            .order_by(Snapshot.taken_at.desc(), Snapshot.id.desc())
        )

    def get_snapshots(self, url: str, limit: int = DEFAULT_HISTORY_KEEP) -> list[StoredSnapshot]:
        """Most recent snapshots first; unreadable rows are skipped."""
        rows = self.session.execute(self._snapshots_newest_first(url).limit(limit)).scalars()

        snapshots = []
        for row in rows:
            if not isinstance(row.promotions, list) or not all(
                is_valid_promotion_data(p) for p in row.promotions
            ):
                logger.error("Skipping invalid snapshot %s", row.history_key)
                continue
            snapshots.append(StoredSnapshot(
                key=row.history_key,
                content_hash=row.content_hash,
                promotions=to_promotions(row.promotions),
                summary=row.summary,
                taken_at=row.taken_at,
            ))
        return snapshots

    def prune_snapshots(self, url: str, keep: int | None = None) -> int:
        """Delete all but the ``keep`` most recent snapshots.

        Returns:
            Number of snapshots deleted
        """
        keep = self.history_keep if keep is None else keep
        stale_ids = self.session.execute(
            self._snapshots_newest_first(url).with_only_columns(Snapshot.id).offset(keep)
        ).scalars().all()
        if not stale_ids:
            return 0

        self.session.execute(delete(Snapshot).where(Snapshot.id.in_(stale_ids)))
        self.session.flush()
        logger.debug("Pruned %d snapshots for %s", len(stale_ids), url)
        return len(stale_ids)

    def store_and_prune_snapshot(
        self,
        url: str,
        promotions: Sequence[Promotion],
        *,
        content_hash: str | None = None,
        taken_at: datetime | None = None,
        summary: str | None = None,
        keep: int | None = None,
    ) -> int:
        """Append a snapshot and prune history. Returns the number pruned."""
        self.store_snapshot(
            url,
            promotions,
            content_hash=content_hash,
            taken_at=taken_at,
            summary=summary,
        )
        return self.prune_snapshots(url, keep)

    def delete_history(self, url: str) -> int:
        result = self.session.execute(
            delete(Snapshot).where(Snapshot.url_hash == hash_string(url))
        )
        return result.rowcount or 0
