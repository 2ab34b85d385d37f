"""
SQLAlchemy ORM models for PromoWatch.

Defines the database schema:
- Targets: Monitored pages and their selectors
- TargetStates: Latest promotion snapshot per page
- Snapshots: Pruned history of snapshots that carried material changes
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from sqlalchemy import JSON, Boolean, DateTime, Index, Integer, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# =============================================================================
# Base Class
# =============================================================================


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    type_annotation_map = {
        dict[str, Any]: JSON,
        list[dict[str, Any]]: JSON,
    }


# =============================================================================
# Mixins
# =============================================================================


class TimestampMixin:
    """Mixin providing created_at and updated_at columns."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=utcnow,
        nullable=False,
    )
    updated_at: Mapped[datetime | None] = mapped_column(
        DateTime,
        default=None,
        onupdate=utcnow,
        nullable=True,
    )


# =============================================================================
# Target Model
# =============================================================================


class Target(Base, TimestampMixin):
    """A monitored page."""

    __tablename__ = "targets"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    url: Mapped[str] = mapped_column(String(2000), unique=True, nullable=False, index=True)
    selector: Mapped[str] = mapped_column(String(200), nullable=False)
    name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    notes: Mapped[str | None] = mapped_column(String(500), nullable=True)
    enabled: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    @property
    def display_name(self) -> str:
        return self.name or self.url

    def __repr__(self) -> str:
        return f"<Target(id={self.id}, url='{self.url}')>"


# =============================================================================
# State Model
# =============================================================================


class TargetState(Base, TimestampMixin):
    """Latest promotions seen on a page."""

    __tablename__ = "target_states"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    # state:<url hash>
    state_key: Mapped[str] = mapped_column(String(64), unique=True, nullable=False, index=True)
    url: Mapped[str] = mapped_column(String(2000), nullable=False)

    content_hash: Mapped[str] = mapped_column(String(64), nullable=False)
    promotions: Mapped[list[dict[str, Any]]] = mapped_column(JSON, nullable=False, default=list)
    last_seen_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)

    def __repr__(self) -> str:
        return f"<TargetState(state_key='{self.state_key}', promotions={len(self.promotions or [])})>"


# =============================================================================
# History Model
# =============================================================================


class Snapshot(Base):
    """Historical promotion snapshot, stored only when changes were reported."""

    __tablename__ = "snapshots"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    # hist:<url hash>:<ISO timestamp>
    history_key: Mapped[str] = mapped_column(String(128), nullable=False)
    url_hash: Mapped[str] = mapped_column(String(16), nullable=False)
    url: Mapped[str] = mapped_column(String(2000), nullable=False)

    content_hash: Mapped[str] = mapped_column(String(64), nullable=False)
    promotions: Mapped[list[dict[str, Any]]] = mapped_column(JSON, nullable=False, default=list)
    summary: Mapped[str | None] = mapped_column(Text, nullable=True)
    taken_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)

    __table_args__ = (
        Index("ix_snapshots_url_hash_taken", "url_hash", "taken_at"),
    )

    def __repr__(self) -> str:
        return f"<Snapshot(id={self.id}, history_key='{self.history_key}')>"
