"""Domain models shared across the lookout analytics engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, List, Optional


class CommitCategory(str, Enum):
    """Work-type label assigned to a commit."""

    FEATURE = "feature"
    BUGFIX = "bugfix"
    REFACTOR = "refactor"
    TEST = "test"
    DOCS = "docs"
    CHORE = "chore"
    MERGE = "merge"
    OTHER = "other"


class TrendDirection(str, Enum):
    """Week-over-week direction of commit volume."""

    UP = "up"
    DOWN = "down"
    STABLE = "stable"


@dataclass(slots=True)
class CategoryResult:
    """Outcome of classifying a single commit."""

    category: CommitCategory
    confidence: float
    reason: str

    def to_dict(self) -> Dict[str, object]:
        """Serialise the result for JSON output."""

        return {
            "category": self.category.value,
            "confidence": self.confidence,
            "reason": self.reason,
        }


@dataclass(slots=True)
class CategoryBreakdown:
    """Per-category commit counts derived from a set of commits."""

    feature: int = 0
    bugfix: int = 0
    refactor: int = 0
    test: int = 0
    docs: int = 0
    chore: int = 0
    merge: int = 0
    other: int = 0
    total: int = 0

    def increment(self, category: CommitCategory) -> None:
        """Add one commit to ``category``."""

        setattr(self, category.value, getattr(self, category.value) + 1)

    def counts(self) -> Dict[str, int]:
        """Return the per-category counts without ``total``."""

        return {category.value: getattr(self, category.value) for category in CommitCategory}

    @property
    def non_merge_total(self) -> int:
        return self.total - self.merge

    def to_dict(self) -> Dict[str, int]:
        payload = self.counts()
        payload["total"] = self.total
        return payload

    def as_percentages(self) -> Dict[str, str]:
        """Shortcut for :func:`format_breakdown_as_percentages`."""
        from .categorization import format_breakdown_as_percentages

        return format_breakdown_as_percentages(self)

    def summary(self) -> str:
        from .categorization import summarize_breakdown

        return summarize_breakdown(self)


@dataclass(slots=True)
class CommitRecord:
    """A commit persisted with its assigned category."""

    hash: str
    repo_id: int
    author_email: str
    author_name: str
    timestamp: datetime
    message: str
    is_merge: bool = False
    additions: int = 0
    deletions: int = 0
    files_changed: int = 0
    files: Optional[List[str]] = None
    category: CommitCategory = CommitCategory.OTHER

    def to_dict(self) -> Dict[str, object]:
        """Serialise the commit for JSON output."""

        payload: Dict[str, object] = {
            "hash": self.hash,
            "repo_id": self.repo_id,
            "author_email": self.author_email,
            "author_name": self.author_name,
            "timestamp": self.timestamp.isoformat(),
            "message": self.message,
            "is_merge": self.is_merge,
            "additions": self.additions,
            "deletions": self.deletions,
            "files_changed": self.files_changed,
            "category": self.category.value,
        }
        if self.files is not None:
            payload["files"] = list(self.files)
        return payload


@dataclass(slots=True)
class Repository:
    """Repository that commits and pull requests belong to."""

    id: int
    name: str


@dataclass(slots=True)
class ContributorProfile:
    """Display identity aggregating one or more author emails."""

    id: int
    display_name: str
    emails: List[str] = field(default_factory=list)
    github_login: Optional[str] = None
    avatar_url: Optional[str] = None
    is_excluded: bool = False

    def to_dict(self) -> Dict[str, object]:
        return {
            "id": self.id,
            "display_name": self.display_name,
            "emails": list(self.emails),
            "github_login": self.github_login,
            "avatar_url": self.avatar_url,
            "is_excluded": self.is_excluded,
        }


@dataclass(slots=True)
class PullRequestRecord:
    """Pull request row supplied by the code host."""

    repo_id: int
    number: int
    title: str
    author: str
    state: str
    created_at: datetime
    merged_at: Optional[datetime] = None
    author_avatar: Optional[str] = None
    additions: int = 0
    deletions: int = 0
    changed_files: int = 0

    @property
    def is_merged(self) -> bool:
        return self.state == "merged" or self.merged_at is not None


@dataclass(slots=True)
class ReviewRecord:
    """Review row supplied by the code host."""

    repo_id: int
    pr_number: int
    reviewer: str
    state: str
    submitted_at: datetime
    reviewer_avatar: Optional[str] = None
    body: Optional[str] = None


@dataclass(slots=True)
class WeeklyVelocity:
    """Commit aggregates for one Monday-aligned week."""

    week_start: date
    commits: int = 0
    additions: int = 0
    deletions: int = 0
    files_changed: int = 0
    category_breakdown: Dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, object]:
        return {
            "week_start": self.week_start.isoformat(),
            "commits": self.commits,
            "additions": self.additions,
            "deletions": self.deletions,
            "files_changed": self.files_changed,
            "category_breakdown": dict(self.category_breakdown),
        }


@dataclass(slots=True)
class WeeklyVelocitySnapshot:
    """Write-once cache entry for a week of velocity.

    ``profile_id`` of ``None`` denotes the team aggregate.
    """

    profile_id: Optional[int]
    velocity: WeeklyVelocity
    created_at: Optional[datetime] = None

    @property
    def week_start(self) -> date:
        return self.velocity.week_start


@dataclass(slots=True)
class VelocityMetrics:
    """Velocity for one week together with its trend against the prior week."""

    week_start: date
    commits_per_week: int
    additions: int
    deletions: int
    files_changed: int
    trend: TrendDirection = TrendDirection.STABLE
    trend_percent: float = 0.0
    category_breakdown: Dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, object]:
        return {
            "week_start": self.week_start.isoformat(),
            "commits_per_week": self.commits_per_week,
            "additions": self.additions,
            "deletions": self.deletions,
            "files_changed": self.files_changed,
            "trend": self.trend.value,
            "trend_percent": self.trend_percent,
            "category_breakdown": dict(self.category_breakdown),
        }


@dataclass(slots=True)
class TeamBenchmarks:
    """Anonymised weekly commit benchmarks across authors."""

    average: float = 0.0
    median: float = 0.0
    max: int = 0
    your_commits: int = 0
    your_rank: int = 0
    total_members: int = 0
    percentile: int = 0

    def to_dict(self) -> Dict[str, object]:
        return {
            "average": self.average,
            "median": self.median,
            "max": self.max,
            "your_commits": self.your_commits,
            "your_rank": self.your_rank,
            "total_members": self.total_members,
            "percentile": self.percentile,
        }


@dataclass(slots=True)
class AuthorActivity:
    """Commits attributed to a profile within one repository."""

    profile_id: int
    name: str
    commits: int


@dataclass(slots=True)
class RepoActivity:
    """Per-repository commit activity grouped by profile."""

    repo_id: int
    repo_name: str
    authors: List[AuthorActivity] = field(default_factory=list)

    def to_dict(self) -> Dict[str, object]:
        return {
            "repo_id": self.repo_id,
            "repo_name": self.repo_name,
            "authors": [
                {"profile_id": a.profile_id, "name": a.name, "commits": a.commits}
                for a in self.authors
            ],
        }


@dataclass(slots=True)
class CollaborationNode:
    """Participant in the review graph, keyed by code-host login."""

    id: str
    name: str
    avatar: Optional[str] = None
    reviews_given: int = 0
    reviews_received: int = 0
    prs_opened: int = 0
    prs_merged: int = 0
    commits: int = 0

    def to_dict(self) -> Dict[str, object]:
        return {
            "id": self.id,
            "name": self.name,
            "avatar": self.avatar,
            "reviews_given": self.reviews_given,
            "reviews_received": self.reviews_received,
            "prs_opened": self.prs_opened,
            "prs_merged": self.prs_merged,
            "commits": self.commits,
        }


@dataclass(slots=True)
class CollaborationEdge:
    """Directed reviewer to author interaction."""

    source: str
    target: str
    weight: int = 0
    reviews_given: int = 0
    prs_reviewed: List[int] = field(default_factory=list)

    def to_dict(self) -> Dict[str, object]:
        return {
            "from": self.source,
            "to": self.target,
            "weight": self.weight,
            "reviews_given": self.reviews_given,
            "prs_reviewed": list(self.prs_reviewed),
        }


@dataclass(slots=True)
class CollaborationGraph:
    """Nodes and edges built for a date range."""

    nodes: List[CollaborationNode] = field(default_factory=list)
    edges: List[CollaborationEdge] = field(default_factory=list)

    def to_dict(self) -> Dict[str, object]:
        return {
            "nodes": [node.to_dict() for node in self.nodes],
            "edges": [edge.to_dict() for edge in self.edges],
        }


@dataclass(slots=True)
class TopCollaborator:
    user: str
    avatar: Optional[str]
    interactions: int

    def to_dict(self) -> Dict[str, object]:
        return {"user": self.user, "avatar": self.avatar, "interactions": self.interactions}


@dataclass(slots=True)
class CollaborationStats:
    """Aggregate review counts for a date range."""

    total_reviews: int = 0
    total_reviewers: int = 0
    average_reviews_per_pr: float = 0.0
    top_reviewer: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, object]:
        return {
            "total_reviews": self.total_reviews,
            "total_reviewers": self.total_reviewers,
            "average_reviews_per_pr": self.average_reviews_per_pr,
            "top_reviewer": self.top_reviewer,
        }


@dataclass(slots=True)
class ReviewerStat:
    name: str
    avatar: Optional[str]
    reviews_given: int
    avg_response_time_hours: Optional[float]
    approval_rate: float

    def to_dict(self) -> Dict[str, object]:
        return {
            "name": self.name,
            "avatar": self.avatar,
            "reviews_given": self.reviews_given,
            "avg_response_time_hours": self.avg_response_time_hours,
            "approval_rate": self.approval_rate,
        }


@dataclass(slots=True)
class PendingReviewer:
    name: str
    avatar: Optional[str]
    pending_count: int

    def to_dict(self) -> Dict[str, object]:
        return {"name": self.name, "avatar": self.avatar, "pending_count": self.pending_count}


@dataclass(slots=True)
class EnhancedReviewMetrics:
    """Time, quality and health indicators for code review in a date range.

    Timing values are expressed in hours and are ``None`` when no usable
    samples exist.
    """

    avg_time_to_first_review: Optional[float] = None
    avg_time_to_merge: Optional[float] = None
    median_time_to_first_review: Optional[float] = None
    median_time_to_merge: Optional[float] = None

    approval_rate: float = 0.0
    changes_requested_rate: float = 0.0
    avg_review_rounds: float = 0.0

    self_merge_rate: float = 0.0
    stale_pr_count: int = 0
    review_load_balance: int = 100

    reviewer_stats: List[ReviewerStat] = field(default_factory=list)
    pending_reviewers: List[PendingReviewer] = field(default_factory=list)

    def to_dict(self) -> Dict[str, object]:
        return {
            "avg_time_to_first_review": self.avg_time_to_first_review,
            "avg_time_to_merge": self.avg_time_to_merge,
            "median_time_to_first_review": self.median_time_to_first_review,
            "median_time_to_merge": self.median_time_to_merge,
            "approval_rate": self.approval_rate,
            "changes_requested_rate": self.changes_requested_rate,
            "avg_review_rounds": self.avg_review_rounds,
            "self_merge_rate": self.self_merge_rate,
            "stale_pr_count": self.stale_pr_count,
            "review_load_balance": self.review_load_balance,
            "reviewer_stats": [stat.to_dict() for stat in self.reviewer_stats],
            "pending_reviewers": [pending.to_dict() for pending in self.pending_reviewers],
        }
