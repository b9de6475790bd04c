"""Persistence for commits, review activity, identities and velocity snapshots.

Modules:
- protocols: store interfaces the analytics engine depends on
- database: SQLite connection lifecycle and the snapshot cache
- sqlite_store: SQLite implementations of the store protocols
"""

from __future__ import annotations

from lookout_insights.storage.database import DEFAULT_DB_PATH, Database, SnapshotCache
from lookout_insights.storage.sqlite_store import (
    SqliteCommitStore,
    SqliteIdentityResolver,
    SqliteRepositoryStore,
    SqliteReviewStore,
)

__all__ = [
    "DEFAULT_DB_PATH",
    "Database",
    "SnapshotCache",
    "SqliteCommitStore",
    "SqliteIdentityResolver",
    "SqliteRepositoryStore",
    "SqliteReviewStore",
]
