"""Store interfaces consumed by the analytics engine.

The analytics components only depend on these protocols. ``sqlite_store``
provides the reference implementation; anything with matching methods can be
passed in instead (tests use in-memory fakes where that is simpler).
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Dict, Iterable, Iterator, List, Optional, Protocol, Sequence, Tuple

from ..models import (
    CommitCategory,
    CommitRecord,
    ContributorProfile,
    PullRequestRecord,
    Repository,
    ReviewRecord,
    WeeklyVelocitySnapshot,
)

PullRequestKey = Tuple[int, int]
"""``(repo_id, number)`` identifying a pull request."""


class RepositoryStore(Protocol):
    def resolve(self, name: str) -> int:
        """Return the id for ``name``, creating the repository if unknown."""
        ...

    def all(self) -> List[Repository]:
        ...


class CommitStore(Protocol):
    def upsert(self, records: Iterable[CommitRecord]) -> int:
        """Insert or replace commits keyed by ``(hash, repo_id)``."""
        ...

    def commits_between(
        self,
        start: datetime,
        end: datetime,
        emails: Optional[Sequence[str]] = None,
    ) -> List[CommitRecord]:
        """Return commits in ``[start, end)``.

        ``emails=None`` disables the author filter; an empty sequence matches
        nothing.
        """
        ...

    def all_commits(self) -> Iterator[CommitRecord]:
        ...

    def update_category(self, hash: str, repo_id: int, category: CommitCategory) -> None:
        ...


class SnapshotStore(Protocol):
    def get(self, profile_id: Optional[int], week_start: date) -> Optional[WeeklyVelocitySnapshot]:
        ...

    def put(self, snapshot: WeeklyVelocitySnapshot) -> None:
        ...


class ReviewStore(Protocol):
    def upsert_pull_requests(self, records: Iterable[PullRequestRecord]) -> int:
        ...

    def upsert_reviews(self, records: Iterable[ReviewRecord]) -> int:
        ...

    def reviews_between(
        self, start: datetime, end: datetime
    ) -> List[Tuple[ReviewRecord, PullRequestRecord]]:
        """Return reviews submitted in ``[start, end)`` joined to their pull request."""
        ...

    def pull_requests_created_between(self, start: datetime, end: datetime) -> List[PullRequestRecord]:
        ...

    def pull_requests(self, state: Optional[str] = None) -> List[PullRequestRecord]:
        ...

    def review_counts_by_pr(self) -> Dict[PullRequestKey, int]:
        ...

    def first_review_times(self) -> Dict[PullRequestKey, datetime]:
        ...


class IdentityResolver(Protocol):
    def emails_for_profile(self, profile_id: int) -> List[str]:
        ...

    def email_to_login(self) -> Dict[str, str]:
        """Map lower-cased author emails to code-host logins."""
        ...

    def login_to_display_name(self) -> Dict[str, str]:
        """Map lower-cased code-host logins to profile display names."""
        ...

    def profiles(self) -> List[ContributorProfile]:
        ...


__all__ = [
    "CommitStore",
    "IdentityResolver",
    "PullRequestKey",
    "RepositoryStore",
    "ReviewStore",
    "SnapshotStore",
]
