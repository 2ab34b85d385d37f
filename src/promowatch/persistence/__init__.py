"""Database persistence layer."""

from .db import dispose_engine, drop_db, get_engine, get_session, init_db
from .models import Base, Snapshot, Target, TargetState
from .repo import StateRepository, StoredSnapshot, StoredState, hash_promotions

__all__ = [
    "dispose_engine",
    "drop_db",
    "get_engine",
    "get_session",
    "init_db",
    "Base",
    "Snapshot",
    "Target",
    "TargetState",
    "StateRepository",
    "StoredSnapshot",
    "StoredState",
    "hash_promotions",
]
