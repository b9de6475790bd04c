"""Import exported activity rows and keep stored categories current.

Rows arrive as JSON objects, either a JSON array or one object per line, as
produced by the VCS and code-host exporters. Each row is validated, commits
are classified, and everything is upserted so re-importing is harmless.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Type, TypeVar

from pydantic import BaseModel, ValidationError, field_validator

from .categorization import categorize_commit
from .config import ClassifierConfig
from .constants import PR_STATES, REVIEW_STATES
from .core.utils import parse_timestamp
from .exceptions import IngestError, InvalidInputError
from .models import CommitRecord, PullRequestRecord, ReviewRecord
from .storage.protocols import CommitStore, RepositoryStore, ReviewStore

logger = logging.getLogger(__name__)

RowModel = TypeVar("RowModel", bound=BaseModel)


def _timestamp(value: Any) -> datetime:
    try:
        return parse_timestamp(value)
    except InvalidInputError as exc:
        raise ValueError(str(exc)) from exc


class CommitRow(BaseModel):
    """One commit as exported from ``git log`` with numstat."""

    hash: str
    repo: str
    author_email: str
    date: datetime
    message: str
    author_name: str = ""
    is_merge: bool = False
    additions: int = 0
    deletions: int = 0
    files_changed: Optional[int] = None
    files: Optional[List[str]] = None

    @field_validator("hash", "repo", "author_email")
    @classmethod
    def validate_not_blank(cls, v: str, info) -> str:
        """Validate that identifying fields are not blank."""
        if not v.strip():
            raise ValueError(f"{info.field_name} cannot be empty")
        return v.strip()

    @field_validator("date", mode="before")
    @classmethod
    def validate_date(cls, v: Any) -> datetime:
        return _timestamp(v)

    @field_validator("additions", "deletions", "files_changed")
    @classmethod
    def validate_non_negative(cls, v: Optional[int], info) -> Optional[int]:
        """Validate that diff statistics are not negative."""
        if v is not None and v < 0:
            raise ValueError(f"{info.field_name} must be non-negative, got {v}")
        return v


class PullRequestRow(BaseModel):
    """One pull request from the code-host API."""

    repo: str
    number: int
    author: str
    state: str
    created_at: datetime
    title: str = ""
    merged_at: Optional[datetime] = None
    author_avatar: Optional[str] = None
    additions: int = 0
    deletions: int = 0
    changed_files: int = 0

    @field_validator("state", mode="before")
    @classmethod
    def validate_state(cls, v: Any) -> str:
        state = str(v).strip().lower()
        if state not in PR_STATES:
            raise ValueError(f"state must be one of {', '.join(PR_STATES)}, got {v!r}")
        return state

    @field_validator("created_at", "merged_at", mode="before")
    @classmethod
    def validate_timestamps(cls, v: Any) -> Optional[datetime]:
        if v is None or v == "":
            return None
        return _timestamp(v)


class ReviewRow(BaseModel):
    """One pull request review from the code-host API."""

    repo: str
    pr_number: int
    reviewer: str
    state: str
    submitted_at: datetime
    reviewer_avatar: Optional[str] = None
    body: Optional[str] = None

    @field_validator("state", mode="before")
    @classmethod
    def validate_state(cls, v: Any) -> str:
        state = str(v).strip().lower()
        if state not in REVIEW_STATES:
            raise ValueError(f"state must be one of {', '.join(REVIEW_STATES)}, got {v!r}")
        return REVIEW_STATES[state]

    @field_validator("submitted_at", mode="before")
    @classmethod
    def validate_submitted_at(cls, v: Any) -> datetime:
        return _timestamp(v)


def _validate_rows(model: Type[RowModel], rows: Iterable[Dict[str, Any]]) -> List[RowModel]:
    validated: List[RowModel] = []
    for index, row in enumerate(rows):
        if not isinstance(row, dict):
            raise IngestError(f"Row {index} is not a JSON object", row_index=index)
        try:
            validated.append(model.model_validate(row))
        except ValidationError as exc:
            details = "; ".join(
                f"{'.'.join(str(loc) for loc in error['loc'])}: {error['msg']}" for error in exc.errors()
            )
            raise IngestError(f"Row {index} is invalid: {details}", row_index=index) from exc
    return validated


def load_json_rows(path: Path) -> List[Dict[str, Any]]:
    """Read rows from a JSON array file or a JSON-lines file.

    Raises:
        IngestError: If the file cannot be read or parsed.
    """
    try:
        text = Path(path).read_text(encoding="utf-8")
    except OSError as exc:
        raise IngestError(f"Cannot read {path}: {exc}") from exc

    stripped = text.strip()
    if not stripped:
        return []

    if stripped.startswith("["):
        try:
            rows = json.loads(stripped)
        except json.JSONDecodeError as exc:
            raise IngestError(f"Invalid JSON in {path}: {exc}") from exc
        return list(rows)

    rows = []
    for line_number, line in enumerate(stripped.splitlines(), start=1):
        if not line.strip():
            continue
        try:
            rows.append(json.loads(line))
        except json.JSONDecodeError as exc:
            raise IngestError(f"Invalid JSON on line {line_number} of {path}: {exc}") from exc
    return rows


def ingest_commits(
    commit_store: CommitStore,
    repository_store: RepositoryStore,
    rows: Iterable[Dict[str, Any]],
    classifier: Optional[ClassifierConfig] = None,
) -> List[CommitRecord]:
    """Validate, classify and upsert exported commit rows.

    All rows are validated before anything is written, so a bad row leaves the
    store untouched.
    """
    classifier = classifier or ClassifierConfig()
    validated = _validate_rows(CommitRow, rows)
    repo_ids: Dict[str, int] = {}
    records: List[CommitRecord] = []

    for row in validated:
        if row.repo not in repo_ids:
            repo_ids[row.repo] = repository_store.resolve(row.repo)

        result = categorize_commit(
            row.message,
            row.files,
            row.is_merge,
            high_confidence=classifier.high_confidence,
            file_coverage=classifier.file_coverage,
        )
        files_changed = row.files_changed
        if files_changed is None:
            files_changed = len(row.files) if row.files else 0

        records.append(
            CommitRecord(
                hash=row.hash,
                repo_id=repo_ids[row.repo],
                author_email=row.author_email,
                author_name=row.author_name,
                timestamp=row.date,
                message=row.message,
                is_merge=row.is_merge,
                additions=row.additions,
                deletions=row.deletions,
                files_changed=files_changed,
                files=row.files,
                category=result.category,
            )
        )

    commit_store.upsert(records)
    logger.info(f"Ingested {len(records)} commit(s) across {len(repo_ids)} repository(ies)")
    return records


def ingest_pull_requests(
    review_store: ReviewStore,
    repository_store: RepositoryStore,
    rows: Iterable[Dict[str, Any]],
) -> List[PullRequestRecord]:
    validated = _validate_rows(PullRequestRow, rows)
    records = [
        PullRequestRecord(
            repo_id=repository_store.resolve(row.repo),
            number=row.number,
            title=row.title,
            author=row.author,
            state=row.state,
            created_at=row.created_at,
            merged_at=row.merged_at,
            author_avatar=row.author_avatar,
            additions=row.additions,
            deletions=row.deletions,
            changed_files=row.changed_files,
        )
        for row in validated
    ]
    review_store.upsert_pull_requests(records)
    logger.info(f"Ingested {len(records)} pull request(s)")
    return records


def ingest_reviews(
    review_store: ReviewStore,
    repository_store: RepositoryStore,
    rows: Iterable[Dict[str, Any]],
) -> List[ReviewRecord]:
    validated = _validate_rows(ReviewRow, rows)
    records = [
        ReviewRecord(
            repo_id=repository_store.resolve(row.repo),
            pr_number=row.pr_number,
            reviewer=row.reviewer,
            state=row.state,
            submitted_at=row.submitted_at,
            reviewer_avatar=row.reviewer_avatar,
            body=row.body,
        )
        for row in validated
    ]
    review_store.upsert_reviews(records)
    logger.info(f"Ingested {len(records)} review(s)")
    return records


def recategorize(commit_store: CommitStore, classifier: Optional[ClassifierConfig] = None) -> int:
    """Re-run the classifier over every stored commit.

    Returns:
        Number of commits whose category changed
    """
    classifier = classifier or ClassifierConfig()
    updated = 0
    for commit in commit_store.all_commits():
        result = categorize_commit(
            commit.message,
            commit.files,
            commit.is_merge,
            high_confidence=classifier.high_confidence,
            file_coverage=classifier.file_coverage,
        )
        if result.category != commit.category:
            commit_store.update_category(commit.hash, commit.repo_id, result.category)
            updated += 1
    logger.info(f"Recategorized {updated} commit(s)")
    return updated


__all__ = [
    "CommitRow",
    "PullRequestRow",
    "ReviewRow",
    "ingest_commits",
    "ingest_pull_requests",
    "ingest_reviews",
    "load_json_rows",
    "recategorize",
]
