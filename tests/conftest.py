from __future__ import annotations

from datetime import datetime, timezone
from typing import Callable, Iterator, List, Optional

import pytest

from lookout_insights.models import CommitCategory, CommitRecord
from lookout_insights.storage import (
    Database,
    SqliteCommitStore,
    SqliteIdentityResolver,
    SqliteRepositoryStore,
    SqliteReviewStore,
)

# Wednesday; the current week starts on Monday 2024-03-11.
NOW = datetime(2024, 3, 13, 12, 0, tzinfo=timezone.utc)


def fixed_clock() -> datetime:
    return NOW


@pytest.fixture
def database(tmp_path) -> Iterator[Database]:
    with Database(tmp_path / "lookout.db") as db:
        yield db


@pytest.fixture
def commit_store(database: Database) -> SqliteCommitStore:
    return SqliteCommitStore(database)


@pytest.fixture
def repository_store(database: Database) -> SqliteRepositoryStore:
    return SqliteRepositoryStore(database)


@pytest.fixture
def review_store(database: Database) -> SqliteReviewStore:
    return SqliteReviewStore(database)


@pytest.fixture
def identities(database: Database) -> SqliteIdentityResolver:
    return SqliteIdentityResolver(database)


@pytest.fixture
def make_commit(commit_store: SqliteCommitStore, repository_store: SqliteRepositoryStore) -> Callable[..., CommitRecord]:
    counter = {"n": 0}

    def factory(
        timestamp: datetime,
        author_email: str = "ana@example.com",
        category: CommitCategory = CommitCategory.FEATURE,
        repo: str = "acme/web",
        additions: int = 10,
        deletions: int = 2,
        files_changed: int = 1,
        message: str = "feat: something",
        files: Optional[List[str]] = None,
    ) -> CommitRecord:
        counter["n"] += 1
        record = CommitRecord(
            hash=f"c{counter['n']:04d}",
            repo_id=repository_store.resolve(repo),
            author_email=author_email,
            author_name=author_email.split("@")[0],
            timestamp=timestamp,
            message=message,
            additions=additions,
            deletions=deletions,
            files_changed=files_changed,
            files=files,
            category=category,
        )
        commit_store.upsert([record])
        return record

    return factory


@pytest.fixture
def clock() -> Callable[[], datetime]:
    return fixed_clock
