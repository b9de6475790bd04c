"""Weekly velocity aggregation and trending."""

from __future__ import annotations

import logging
from datetime import date, datetime, timedelta
from typing import Callable, List, Optional, Tuple

from ..categorization import calculate_breakdown
from ..constants import VELOCITY_THRESHOLDS
from ..core.utils import start_of_week, utc_now, week_bounds
from ..exceptions import InvalidInputError
from ..models import TrendDirection, VelocityMetrics, WeeklyVelocity, WeeklyVelocitySnapshot
from ..storage.protocols import CommitStore, IdentityResolver, SnapshotStore

logger = logging.getLogger(__name__)


class VelocityEngine:
    """Compute weekly commit velocity for a profile or the whole team.

    ``profile_id=None`` means the team: no author filter is applied. A profile
    without any email addresses has no commits attributed to it.

    Weeks are read through the snapshot cache and filled on a miss. The engine
    never rewrites a cached week on its own; ``save_velocity_snapshot`` is the
    explicit refresh path.
    """

    def __init__(
        self,
        commit_store: CommitStore,
        identity_resolver: IdentityResolver,
        snapshot_cache: SnapshotStore,
        clock: Optional[Callable[[], datetime]] = None,
        trend_threshold: float = VELOCITY_THRESHOLDS['trend_percent'],
    ) -> None:
        self.commit_store = commit_store
        self.identity_resolver = identity_resolver
        self.snapshot_cache = snapshot_cache
        self.clock = clock or utc_now
        self.trend_threshold = trend_threshold

    def current_week_start(self) -> date:
        return start_of_week(self.clock())

    def calculate_weekly_velocity(self, profile_id: Optional[int], week_start: date) -> WeeklyVelocity:
        """Aggregate commits in ``[week_start, week_start + 7 days)``."""
        velocity = WeeklyVelocity(week_start=week_start)

        emails: Optional[List[str]] = None
        if profile_id is not None:
            emails = self.identity_resolver.emails_for_profile(profile_id)
            if not emails:
                logger.debug(f"Profile {profile_id} has no emails; reporting an empty week")
                return velocity

        start, end = week_bounds(week_start)
        commits = self.commit_store.commits_between(start, end, emails)
        for commit in commits:
            velocity.commits += 1
            velocity.additions += commit.additions
            velocity.deletions += commit.deletions
            velocity.files_changed += commit.files_changed

        breakdown = calculate_breakdown(commit.category for commit in commits)
        velocity.category_breakdown = {
            category: count for category, count in breakdown.counts().items() if count
        }
        return velocity

    def save_velocity_snapshot(self, profile_id: Optional[int], week_start: date) -> WeeklyVelocity:
        """Recompute a week and overwrite its snapshot."""
        velocity = self.calculate_weekly_velocity(profile_id, week_start)
        self.snapshot_cache.put(
            WeeklyVelocitySnapshot(profile_id=profile_id, velocity=velocity, created_at=self.clock())
        )
        return velocity

    def get_weekly_velocity(self, profile_id: Optional[int], week_start: date) -> WeeklyVelocity:
        """Return a week from the cache, computing and storing it on a miss."""
        cached = self.snapshot_cache.get(profile_id, week_start)
        if cached is not None:
            return cached.velocity

        logger.debug(f"Snapshot miss for profile={profile_id} week={week_start}")
        return self.save_velocity_snapshot(profile_id, week_start)

    def get_velocity_trend(
        self,
        profile_id: Optional[int],
        weeks: int = VELOCITY_THRESHOLDS['default_weeks'],
    ) -> List[VelocityMetrics]:
        """Return ``weeks`` weeks ending with the current one, oldest first.

        Each week's trend compares its commit count with the week before it.
        The oldest week, and any week following an empty one, is ``stable``.
        """
        if weeks <= 0:
            raise InvalidInputError(f"weeks must be positive, got {weeks}")

        current = self.current_week_start()
        newest_first = [
            self.get_weekly_velocity(profile_id, current - timedelta(weeks=offset))
            for offset in range(weeks)
        ]

        metrics: List[VelocityMetrics] = []
        for index, velocity in enumerate(newest_first):
            older = newest_first[index + 1] if index + 1 < len(newest_first) else None
            trend, trend_percent = self._trend(velocity.commits, older.commits if older else None)
            metrics.append(
                VelocityMetrics(
                    week_start=velocity.week_start,
                    commits_per_week=velocity.commits,
                    additions=velocity.additions,
                    deletions=velocity.deletions,
                    files_changed=velocity.files_changed,
                    trend=trend,
                    trend_percent=trend_percent,
                    category_breakdown=dict(velocity.category_breakdown),
                )
            )

        metrics.reverse()
        return metrics

    def _trend(self, commits: int, previous: Optional[int]) -> Tuple[TrendDirection, float]:
        if not previous:
            return TrendDirection.STABLE, 0.0

        change = (commits - previous) / previous * 100
        if change > self.trend_threshold:
            return TrendDirection.UP, change
        if change < -self.trend_threshold:
            return TrendDirection.DOWN, change
        return TrendDirection.STABLE, change


__all__ = ["VelocityEngine"]
