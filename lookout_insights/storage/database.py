"""SQLite database lifecycle and the velocity snapshot cache.

One ``Database`` owns one ``sqlite3.Connection``. Every store in
``sqlite_store`` and the ``SnapshotCache`` borrow that connection, so closing
the database releases all of them together.

Schema:
  - repositories: repositories referenced by commits and pull requests
  - contributor_profiles / contributor_emails: identity merging
  - commits: classified commits, unique per (hash, repo_id)
  - velocity_snapshots: write-once weekly aggregates, unique per (scope, week)
  - github_pull_requests / github_reviews: code-host review activity
"""

from __future__ import annotations

import json
import logging
import sqlite3
from contextlib import contextmanager
from datetime import date
from pathlib import Path
from typing import Any, Iterable, Iterator, Optional, Sequence

from ..constants import CATEGORY_VALUES, PR_STATES
from ..core.utils import format_timestamp, parse_timestamp, utc_now
from ..exceptions import SchemaError, StorageError
from ..models import WeeklyVelocity, WeeklyVelocitySnapshot

logger = logging.getLogger(__name__)

DEFAULT_DB_PATH = Path.home() / ".local" / "share" / "lookout_insights" / "lookout.db"
MEMORY_PATH = ":memory:"

# Profile ids start at 1, so 0 is free to key the team aggregate
TEAM_SCOPE = 0

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_CATEGORY_CHECK = ", ".join(f"'{value}'" for value in CATEGORY_VALUES)
_PR_STATE_CHECK = ", ".join(f"'{value}'" for value in PR_STATES)

_SCHEMA = f"""
PRAGMA journal_mode = WAL;
PRAGMA synchronous = NORMAL;
PRAGMA foreign_keys = ON;

CREATE TABLE IF NOT EXISTS repositories (
    id          INTEGER PRIMARY KEY AUTOINCREMENT,
    name        TEXT NOT NULL UNIQUE,
    created_at  TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS contributor_profiles (
    id               INTEGER PRIMARY KEY AUTOINCREMENT,
    display_name     TEXT NOT NULL,
    github_username  TEXT,
    avatar_url       TEXT,
    is_excluded      INTEGER NOT NULL DEFAULT 0,
    created_at       TEXT NOT NULL
);

-- Emails are stored lower-cased; one email belongs to at most one profile
CREATE TABLE IF NOT EXISTS contributor_emails (
    email       TEXT PRIMARY KEY,
    profile_id  INTEGER NOT NULL,
    FOREIGN KEY(profile_id) REFERENCES contributor_profiles(id) ON DELETE CASCADE
);

CREATE TABLE IF NOT EXISTS commits (
    id             INTEGER PRIMARY KEY AUTOINCREMENT,
    hash           TEXT NOT NULL,
    repo_id        INTEGER NOT NULL,
    author_email   TEXT NOT NULL,
    author_name    TEXT NOT NULL DEFAULT '',
    timestamp      TEXT NOT NULL,
    message        TEXT NOT NULL DEFAULT '',
    is_merge       INTEGER NOT NULL DEFAULT 0,
    additions      INTEGER NOT NULL DEFAULT 0,
    deletions      INTEGER NOT NULL DEFAULT 0,
    files_changed  INTEGER NOT NULL DEFAULT 0,
    files_list     TEXT,
    category       TEXT NOT NULL DEFAULT 'other' CHECK(category IN ({_CATEGORY_CHECK})),
    FOREIGN KEY(repo_id) REFERENCES repositories(id) ON DELETE CASCADE,
    UNIQUE(hash, repo_id)
);

CREATE TABLE IF NOT EXISTS velocity_snapshots (
    id                  INTEGER PRIMARY KEY AUTOINCREMENT,
    scope_id            INTEGER NOT NULL,
    week_start          TEXT NOT NULL,
    commits             INTEGER NOT NULL DEFAULT 0,
    additions           INTEGER NOT NULL DEFAULT 0,
    deletions           INTEGER NOT NULL DEFAULT 0,
    files_changed       INTEGER NOT NULL DEFAULT 0,
    category_breakdown  TEXT NOT NULL DEFAULT '{{}}',
    created_at          TEXT NOT NULL,
    UNIQUE(scope_id, week_start)
);

CREATE TABLE IF NOT EXISTS github_pull_requests (
    id             INTEGER PRIMARY KEY AUTOINCREMENT,
    repo_id        INTEGER NOT NULL,
    number         INTEGER NOT NULL,
    title          TEXT NOT NULL DEFAULT '',
    author         TEXT NOT NULL,
    author_avatar  TEXT,
    state          TEXT NOT NULL CHECK(state IN ({_PR_STATE_CHECK})),
    created_at     TEXT NOT NULL,
    merged_at      TEXT,
    additions      INTEGER NOT NULL DEFAULT 0,
    deletions      INTEGER NOT NULL DEFAULT 0,
    changed_files  INTEGER NOT NULL DEFAULT 0,
    FOREIGN KEY(repo_id) REFERENCES repositories(id) ON DELETE CASCADE,
    UNIQUE(repo_id, number)
);

CREATE TABLE IF NOT EXISTS github_reviews (
    id               INTEGER PRIMARY KEY AUTOINCREMENT,
    repo_id          INTEGER NOT NULL,
    pr_number        INTEGER NOT NULL,
    reviewer         TEXT NOT NULL,
    reviewer_avatar  TEXT,
    state            TEXT NOT NULL,
    submitted_at     TEXT NOT NULL,
    body             TEXT,
    FOREIGN KEY(repo_id) REFERENCES repositories(id) ON DELETE CASCADE,
    UNIQUE(repo_id, pr_number, reviewer, submitted_at)
);

CREATE INDEX IF NOT EXISTS idx_commits_timestamp ON commits(timestamp);
CREATE INDEX IF NOT EXISTS idx_commits_author ON commits(author_email);
CREATE INDEX IF NOT EXISTS idx_emails_profile ON contributor_emails(profile_id);
CREATE INDEX IF NOT EXISTS idx_prs_created ON github_pull_requests(created_at);
CREATE INDEX IF NOT EXISTS idx_prs_state ON github_pull_requests(state);
CREATE INDEX IF NOT EXISTS idx_reviews_submitted ON github_reviews(submitted_at);
CREATE INDEX IF NOT EXISTS idx_reviews_pr ON github_reviews(repo_id, pr_number);
"""


# ---------------------------------------------------------------------------
# Database lifecycle
# ---------------------------------------------------------------------------


class Database:
    """Owner of the SQLite connection shared by every store.

    Usable as a context manager::

        with Database(path) as db:
            commits = SqliteCommitStore(db)
    """

    def __init__(self, path: Path | str = DEFAULT_DB_PATH) -> None:
        self.path = path
        self._conn: Optional[sqlite3.Connection] = None
        self._snapshot_cache: Optional[SnapshotCache] = None

    def open(self) -> "Database":
        """Open the connection and create the schema if needed."""
        if self._conn is not None:
            return self

        if str(self.path) != MEMORY_PATH:
            Path(self.path).parent.mkdir(parents=True, exist_ok=True)

        try:
            conn = sqlite3.connect(str(self.path))
            conn.row_factory = sqlite3.Row
            conn.executescript(_SCHEMA)
        except sqlite3.Error as exc:
            raise SchemaError(f"Failed to initialise database at {self.path}: {exc}", operation="open") from exc

        self._conn = conn
        logger.debug(f"Opened database at {self.path}")
        return self

    def close(self) -> None:
        if self._conn is None:
            return
        self._conn.close()
        self._conn = None
        self._snapshot_cache = None
        logger.debug(f"Closed database at {self.path}")

    @property
    def is_open(self) -> bool:
        return self._conn is not None

    @property
    def connection(self) -> sqlite3.Connection:
        if self._conn is None:
            raise StorageError("Database is not open", operation="connection")
        return self._conn

    @property
    def snapshot_cache(self) -> "SnapshotCache":
        """Snapshot cache bound to this connection's lifetime."""
        if self._snapshot_cache is None:
            self._snapshot_cache = SnapshotCache(self)
        return self._snapshot_cache

    def __enter__(self) -> "Database":
        return self.open()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def query(self, sql: str, params: Sequence[Any] = (), operation: str = "query") -> list[sqlite3.Row]:
        """Run a read query and return all rows."""
        try:
            return self.connection.execute(sql, tuple(params)).fetchall()
        except sqlite3.Error as exc:
            raise StorageError(f"{operation} failed: {exc}", operation=operation) from exc

    def query_one(self, sql: str, params: Sequence[Any] = (), operation: str = "query") -> Optional[sqlite3.Row]:
        try:
            return self.connection.execute(sql, tuple(params)).fetchone()
        except sqlite3.Error as exc:
            raise StorageError(f"{operation} failed: {exc}", operation=operation) from exc

    @contextmanager
    def transaction(self, operation: str = "write") -> Iterator[sqlite3.Connection]:
        """Run writes atomically, committing on success and rolling back on error."""
        conn = self.connection
        try:
            with conn:
                yield conn
        except sqlite3.Error as exc:
            raise StorageError(f"{operation} failed: {exc}", operation=operation) from exc

    def execute_many(self, sql: str, rows: Iterable[Sequence[Any]], operation: str = "write") -> int:
        """Run one statement per row inside a single transaction."""
        count = 0
        with self.transaction(operation) as conn:
            for row in rows:
                conn.execute(sql, tuple(row))
                count += 1
        return count


# ---------------------------------------------------------------------------
# Velocity snapshots
# ---------------------------------------------------------------------------


def _scope(profile_id: Optional[int]) -> int:
    return TEAM_SCOPE if profile_id is None else profile_id


def _ordered_breakdown(raw: Optional[str]) -> dict[str, int]:
    # Category order matches a freshly computed week
    stored = json.loads(raw or "{}")
    return {category: stored[category] for category in CATEGORY_VALUES if category in stored}


class SnapshotCache:
    """Write-once weekly velocity cache bound to a ``Database``.

    The engine only ever reads and fills it. Rebuilding a week requires an
    explicit ``invalidate`` or an overwriting ``put``.
    """

    def __init__(self, database: Database) -> None:
        self._db = database

    def get(self, profile_id: Optional[int], week_start: date) -> Optional[WeeklyVelocitySnapshot]:
        row = self._db.query_one(
            "SELECT * FROM velocity_snapshots WHERE scope_id = ? AND week_start = ?",
            (_scope(profile_id), week_start.isoformat()),
            operation="get_snapshot",
        )
        if row is None:
            return None

        velocity = WeeklyVelocity(
            week_start=date.fromisoformat(row["week_start"]),
            commits=row["commits"],
            additions=row["additions"],
            deletions=row["deletions"],
            files_changed=row["files_changed"],
            category_breakdown=_ordered_breakdown(row["category_breakdown"]),
        )
        return WeeklyVelocitySnapshot(
            profile_id=profile_id,
            velocity=velocity,
            created_at=parse_timestamp(row["created_at"]),
        )

    def put(self, snapshot: WeeklyVelocitySnapshot) -> None:
        velocity = snapshot.velocity
        created_at = snapshot.created_at or utc_now()
        with self._db.transaction("put_snapshot") as conn:
            conn.execute(
                """
                INSERT OR REPLACE INTO velocity_snapshots
                    (scope_id, week_start, commits, additions, deletions, files_changed,
                     category_breakdown, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    _scope(snapshot.profile_id),
                    velocity.week_start.isoformat(),
                    velocity.commits,
                    velocity.additions,
                    velocity.deletions,
                    velocity.files_changed,
                    json.dumps(velocity.category_breakdown),
                    format_timestamp(created_at),
                ),
            )
        logger.debug(f"Stored velocity snapshot scope={_scope(snapshot.profile_id)} week={velocity.week_start}")

    def invalidate(self, profile_id: Optional[int], week_start: Optional[date] = None) -> int:
        """Drop cached weeks for a profile (or the team), optionally just one week.

        Returns:
            Number of snapshots removed
        """
        sql = "DELETE FROM velocity_snapshots WHERE scope_id = ?"
        params: list[Any] = [_scope(profile_id)]
        if week_start is not None:
            sql += " AND week_start = ?"
            params.append(week_start.isoformat())

        with self._db.transaction("invalidate_snapshots") as conn:
            removed = conn.execute(sql, params).rowcount
        logger.info(f"Invalidated {removed} velocity snapshot(s) for scope={_scope(profile_id)}")
        return removed


__all__ = ["DEFAULT_DB_PATH", "MEMORY_PATH", "TEAM_SCOPE", "Database", "SnapshotCache"]
