"""SQLite implementations of the store protocols.

Every store borrows the connection of a shared ``Database``. Timestamps are
stored as fixed-width UTC strings so range filters compare lexically.
"""

from __future__ import annotations

import json
import logging
import sqlite3
from datetime import datetime
from typing import Dict, Iterable, Iterator, List, Optional, Sequence, Tuple

from ..core.utils import format_timestamp, parse_timestamp, utc_now
from ..exceptions import InvalidInputError
from ..models import (
    CommitCategory,
    CommitRecord,
    ContributorProfile,
    PullRequestRecord,
    Repository,
    ReviewRecord,
)
from .database import Database
from .protocols import PullRequestKey

logger = logging.getLogger(__name__)


def _placeholders(count: int) -> str:
    return ", ".join("?" for _ in range(count))


def _optional_timestamp(value: Optional[str]) -> Optional[datetime]:
    return parse_timestamp(value) if value else None


# ---------------------------------------------------------------------------
# Repositories
# ---------------------------------------------------------------------------


class SqliteRepositoryStore:
    def __init__(self, database: Database) -> None:
        self._db = database

    def resolve(self, name: str) -> int:
        """Return the id of ``name``, creating the repository on first sight."""
        cleaned = name.strip()
        if not cleaned:
            raise InvalidInputError("Repository name cannot be empty")

        row = self._db.query_one(
            "SELECT id FROM repositories WHERE name = ?", (cleaned,), operation="resolve_repository"
        )
        if row is not None:
            return row["id"]

        with self._db.transaction("create_repository") as conn:
            cursor = conn.execute(
                "INSERT INTO repositories (name, created_at) VALUES (?, ?)",
                (cleaned, format_timestamp(utc_now())),
            )
        logger.info(f"Registered repository {cleaned}")
        return cursor.lastrowid

    def all(self) -> List[Repository]:
        rows = self._db.query("SELECT id, name FROM repositories ORDER BY name", operation="list_repositories")
        return [Repository(id=row["id"], name=row["name"]) for row in rows]


# ---------------------------------------------------------------------------
# Commits
# ---------------------------------------------------------------------------

_COMMIT_UPSERT = """
INSERT INTO commits
    (hash, repo_id, author_email, author_name, timestamp, message, is_merge,
     additions, deletions, files_changed, files_list, category)
VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
ON CONFLICT(hash, repo_id) DO UPDATE SET
    author_email = excluded.author_email,
    author_name = excluded.author_name,
    timestamp = excluded.timestamp,
    message = excluded.message,
    is_merge = excluded.is_merge,
    additions = excluded.additions,
    deletions = excluded.deletions,
    files_changed = excluded.files_changed,
    files_list = excluded.files_list,
    category = excluded.category
"""


def _commit_params(record: CommitRecord) -> Tuple:
    return (
        record.hash,
        record.repo_id,
        record.author_email,
        record.author_name,
        format_timestamp(record.timestamp),
        record.message,
        int(record.is_merge),
        record.additions,
        record.deletions,
        record.files_changed,
        json.dumps(record.files) if record.files is not None else None,
        CommitCategory(record.category).value,
    )


def _row_to_commit(row: sqlite3.Row) -> CommitRecord:
    files_list = row["files_list"]
    return CommitRecord(
        hash=row["hash"],
        repo_id=row["repo_id"],
        author_email=row["author_email"],
        author_name=row["author_name"],
        timestamp=parse_timestamp(row["timestamp"]),
        message=row["message"],
        is_merge=bool(row["is_merge"]),
        additions=row["additions"],
        deletions=row["deletions"],
        files_changed=row["files_changed"],
        files=json.loads(files_list) if files_list else None,
        category=CommitCategory(row["category"]),
    )


class SqliteCommitStore:
    def __init__(self, database: Database) -> None:
        self._db = database

    def upsert(self, records: Iterable[CommitRecord]) -> int:
        count = self._db.execute_many(
            _COMMIT_UPSERT, (_commit_params(record) for record in records), operation="upsert_commits"
        )
        logger.debug(f"Upserted {count} commit(s)")
        return count

    def commits_between(
        self,
        start: datetime,
        end: datetime,
        emails: Optional[Sequence[str]] = None,
    ) -> List[CommitRecord]:
        sql = "SELECT * FROM commits WHERE timestamp >= ? AND timestamp < ?"
        params: List[object] = [format_timestamp(start), format_timestamp(end)]

        if emails is not None:
            if not emails:
                return []
            lowered = sorted({email.lower() for email in emails})
            sql += f" AND LOWER(author_email) IN ({_placeholders(len(lowered))})"
            params.extend(lowered)

        sql += " ORDER BY timestamp, hash"
        rows = self._db.query(sql, params, operation="commits_between")
        return [_row_to_commit(row) for row in rows]

    def all_commits(self) -> Iterator[CommitRecord]:
        rows = self._db.query("SELECT * FROM commits ORDER BY timestamp, hash", operation="all_commits")
        for row in rows:
            yield _row_to_commit(row)

    def update_category(self, hash: str, repo_id: int, category: CommitCategory) -> None:
        with self._db.transaction("update_category") as conn:
            conn.execute(
                "UPDATE commits SET category = ? WHERE hash = ? AND repo_id = ?",
                (CommitCategory(category).value, hash, repo_id),
            )


# ---------------------------------------------------------------------------
# Pull requests and reviews
# ---------------------------------------------------------------------------

_PR_UPSERT = """
INSERT INTO github_pull_requests
    (repo_id, number, title, author, author_avatar, state, created_at, merged_at,
     additions, deletions, changed_files)
VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
ON CONFLICT(repo_id, number) DO UPDATE SET
    title = excluded.title,
    author = excluded.author,
    author_avatar = excluded.author_avatar,
    state = excluded.state,
    created_at = excluded.created_at,
    merged_at = excluded.merged_at,
    additions = excluded.additions,
    deletions = excluded.deletions,
    changed_files = excluded.changed_files
"""

_REVIEW_UPSERT = """
INSERT INTO github_reviews
    (repo_id, pr_number, reviewer, reviewer_avatar, state, submitted_at, body)
VALUES (?, ?, ?, ?, ?, ?, ?)
ON CONFLICT(repo_id, pr_number, reviewer, submitted_at) DO UPDATE SET
    reviewer_avatar = excluded.reviewer_avatar,
    state = excluded.state,
    body = excluded.body
"""

_PR_COLUMNS = (
    "p.repo_id, p.number, p.title, p.author, p.author_avatar, p.state, p.created_at, "
    "p.merged_at, p.additions, p.deletions, p.changed_files"
)


def _row_to_pull_request(row: sqlite3.Row) -> PullRequestRecord:
    return PullRequestRecord(
        repo_id=row["repo_id"],
        number=row["number"],
        title=row["title"],
        author=row["author"],
        state=row["state"],
        created_at=parse_timestamp(row["created_at"]),
        merged_at=_optional_timestamp(row["merged_at"]),
        author_avatar=row["author_avatar"],
        additions=row["additions"],
        deletions=row["deletions"],
        changed_files=row["changed_files"],
    )


class SqliteReviewStore:
    def __init__(self, database: Database) -> None:
        self._db = database

    def upsert_pull_requests(self, records: Iterable[PullRequestRecord]) -> int:
        rows = (
            (
                pr.repo_id,
                pr.number,
                pr.title,
                pr.author,
                pr.author_avatar,
                pr.state,
                format_timestamp(pr.created_at),
                format_timestamp(pr.merged_at) if pr.merged_at else None,
                pr.additions,
                pr.deletions,
                pr.changed_files,
            )
            for pr in records
        )
        count = self._db.execute_many(_PR_UPSERT, rows, operation="upsert_pull_requests")
        logger.debug(f"Upserted {count} pull request(s)")
        return count

    def upsert_reviews(self, records: Iterable[ReviewRecord]) -> int:
        rows = (
            (
                review.repo_id,
                review.pr_number,
                review.reviewer,
                review.reviewer_avatar,
                review.state,
                format_timestamp(review.submitted_at),
                review.body,
            )
            for review in records
        )
        count = self._db.execute_many(_REVIEW_UPSERT, rows, operation="upsert_reviews")
        logger.debug(f"Upserted {count} review(s)")
        return count

    def reviews_between(
        self, start: datetime, end: datetime
    ) -> List[Tuple[ReviewRecord, PullRequestRecord]]:
        rows = self._db.query(
            f"""
            SELECT r.reviewer, r.reviewer_avatar, r.state AS review_state, r.submitted_at, r.body,
                   {_PR_COLUMNS}
            FROM github_reviews r
            JOIN github_pull_requests p ON r.repo_id = p.repo_id AND r.pr_number = p.number
            WHERE r.submitted_at >= ? AND r.submitted_at < ?
            ORDER BY r.submitted_at, r.id
            """,
            (format_timestamp(start), format_timestamp(end)),
            operation="reviews_between",
        )
        pairs = []
        for row in rows:
            review = ReviewRecord(
                repo_id=row["repo_id"],
                pr_number=row["number"],
                reviewer=row["reviewer"],
                state=row["review_state"],
                submitted_at=parse_timestamp(row["submitted_at"]),
                reviewer_avatar=row["reviewer_avatar"],
                body=row["body"],
            )
            pairs.append((review, _row_to_pull_request(row)))
        return pairs

    def pull_requests_created_between(self, start: datetime, end: datetime) -> List[PullRequestRecord]:
        rows = self._db.query(
            f"""
            SELECT {_PR_COLUMNS} FROM github_pull_requests p
            WHERE p.created_at >= ? AND p.created_at < ?
            ORDER BY p.created_at, p.id
            """,
            (format_timestamp(start), format_timestamp(end)),
            operation="pull_requests_created_between",
        )
        return [_row_to_pull_request(row) for row in rows]

    def pull_requests(self, state: Optional[str] = None) -> List[PullRequestRecord]:
        sql = f"SELECT {_PR_COLUMNS} FROM github_pull_requests p"
        params: Tuple = ()
        if state is not None:
            sql += " WHERE p.state = ?"
            params = (state,)
        rows = self._db.query(sql + " ORDER BY p.created_at, p.id", params, operation="pull_requests")
        return [_row_to_pull_request(row) for row in rows]

    def review_counts_by_pr(self) -> Dict[PullRequestKey, int]:
        rows = self._db.query(
            "SELECT repo_id, pr_number, COUNT(*) AS count FROM github_reviews GROUP BY repo_id, pr_number",
            operation="review_counts_by_pr",
        )
        return {(row["repo_id"], row["pr_number"]): row["count"] for row in rows}

    def first_review_times(self) -> Dict[PullRequestKey, datetime]:
        rows = self._db.query(
            """
            SELECT repo_id, pr_number, MIN(submitted_at) AS first_review_at
            FROM github_reviews GROUP BY repo_id, pr_number
            """,
            operation="first_review_times",
        )
        return {(row["repo_id"], row["pr_number"]): parse_timestamp(row["first_review_at"]) for row in rows}


# ---------------------------------------------------------------------------
# Identities
# ---------------------------------------------------------------------------


class SqliteIdentityResolver:
    """Contributor profiles and the email/login mappings derived from them."""

    def __init__(self, database: Database) -> None:
        self._db = database

    def add_profile(
        self,
        display_name: str,
        emails: Sequence[str],
        github_login: Optional[str] = None,
        avatar_url: Optional[str] = None,
        is_excluded: bool = False,
    ) -> ContributorProfile:
        """Create a profile and attach ``emails`` to it.

        An email already attached to another profile is moved to the new one.
        """
        name = display_name.strip()
        if not name:
            raise InvalidInputError("Display name cannot be empty")
        lowered = list(dict.fromkeys(email.strip().lower() for email in emails if email.strip()))

        with self._db.transaction("add_profile") as conn:
            cursor = conn.execute(
                """
                INSERT INTO contributor_profiles
                    (display_name, github_username, avatar_url, is_excluded, created_at)
                VALUES (?, ?, ?, ?, ?)
                """,
                (name, github_login, avatar_url, int(is_excluded), format_timestamp(utc_now())),
            )
            profile_id = cursor.lastrowid
            for email in lowered:
                previous = conn.execute(
                    "SELECT profile_id FROM contributor_emails WHERE email = ?", (email,)
                ).fetchone()
                if previous is not None:
                    logger.warning(f"Moving {email} from profile {previous['profile_id']} to {profile_id}")
                conn.execute(
                    "INSERT OR REPLACE INTO contributor_emails (email, profile_id) VALUES (?, ?)",
                    (email, profile_id),
                )

        logger.info(f"Created profile {profile_id} ({name}) with {len(lowered)} email(s)")
        return ContributorProfile(
            id=profile_id,
            display_name=name,
            emails=lowered,
            github_login=github_login,
            avatar_url=avatar_url,
            is_excluded=is_excluded,
        )

    def emails_for_profile(self, profile_id: int) -> List[str]:
        rows = self._db.query(
            "SELECT email FROM contributor_emails WHERE profile_id = ? ORDER BY email",
            (profile_id,),
            operation="emails_for_profile",
        )
        return [row["email"] for row in rows]

    def email_to_login(self) -> Dict[str, str]:
        rows = self._db.query(
            """
            SELECT ce.email, cp.github_username
            FROM contributor_emails ce
            JOIN contributor_profiles cp ON ce.profile_id = cp.id
            WHERE cp.github_username IS NOT NULL
            """,
            operation="email_to_login",
        )
        return {row["email"].lower(): row["github_username"] for row in rows}

    def login_to_display_name(self) -> Dict[str, str]:
        rows = self._db.query(
            """
            SELECT github_username, display_name FROM contributor_profiles
            WHERE github_username IS NOT NULL ORDER BY id
            """,
            operation="login_to_display_name",
        )
        return {row["github_username"].lower(): row["display_name"] for row in rows}

    def profiles(self) -> List[ContributorProfile]:
        rows = self._db.query(
            "SELECT * FROM contributor_profiles ORDER BY display_name, id", operation="profiles"
        )
        email_rows = self._db.query(
            "SELECT email, profile_id FROM contributor_emails ORDER BY email", operation="profiles"
        )
        emails: Dict[int, List[str]] = {}
        for row in email_rows:
            emails.setdefault(row["profile_id"], []).append(row["email"])

        return [
            ContributorProfile(
                id=row["id"],
                display_name=row["display_name"],
                emails=emails.get(row["id"], []),
                github_login=row["github_username"],
                avatar_url=row["avatar_url"],
                is_excluded=bool(row["is_excluded"]),
            )
            for row in rows
        ]


__all__ = [
    "SqliteCommitStore",
    "SqliteIdentityResolver",
    "SqliteRepositoryStore",
    "SqliteReviewStore",
]
