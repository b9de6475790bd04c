"""Team benchmarks and per-repository activity."""

from __future__ import annotations

import logging
from collections import Counter
from datetime import date, datetime
from typing import Callable, Dict, List, Optional, Tuple

from ..core.utils import parse_date_range, round_half_up, start_of_week, utc_now, week_bounds
from ..models import AuthorActivity, ContributorProfile, RepoActivity, TeamBenchmarks
from ..storage.protocols import CommitStore, IdentityResolver, RepositoryStore
from .statistics import mean, median

logger = logging.getLogger(__name__)


class BenchmarkCalculator:
    """Rank authors against the team by commit volume."""

    def __init__(
        self,
        commit_store: CommitStore,
        identity_resolver: IdentityResolver,
        repository_store: RepositoryStore,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self.commit_store = commit_store
        self.identity_resolver = identity_resolver
        self.repository_store = repository_store
        self.clock = clock or utc_now

    def get_team_benchmarks(self, email: Optional[str] = None) -> TeamBenchmarks:
        """Benchmark commit counts per author email for the current week.

        Args:
            email: Author whose rank and percentile should be reported

        Returns:
            TeamBenchmarks; all zero when nobody committed this week
        """
        week_start: date = start_of_week(self.clock())
        start, end = week_bounds(week_start)

        counts = Counter(commit.author_email.lower() for commit in self.commit_store.commits_between(start, end))
        if not counts:
            logger.debug(f"No commits in week {week_start}; returning empty benchmarks")
            return TeamBenchmarks()

        ranking: List[Tuple[str, int]] = sorted(counts.items(), key=lambda item: (-item[1], item[0]))
        values = [count for _, count in ranking]

        benchmarks = TeamBenchmarks(
            average=round_half_up(mean(values) * 10) / 10,
            median=median(values),
            max=values[0],
            total_members=len(ranking),
        )

        if email:
            wanted = email.strip().lower()
            for index, (author, count) in enumerate(ranking, start=1):
                if author == wanted:
                    benchmarks.your_commits = count
                    benchmarks.your_rank = index
                    benchmarks.percentile = round_half_up((len(ranking) - index + 1) / len(ranking) * 100)
                    break
            else:
                logger.debug(f"{wanted} has no commits in week {week_start}")

        return benchmarks

    def get_activity_by_repo(self, date_from, date_to) -> List[RepoActivity]:
        """Commits per repository for each non-excluded profile.

        Commits whose author email is not attached to a profile are ignored.
        Repositories are ordered by name and authors by commit count.
        """
        start, end = parse_date_range(date_from, date_to)

        owners: Dict[str, ContributorProfile] = {}
        for profile in self.identity_resolver.profiles():
            if profile.is_excluded:
                continue
            for address in profile.emails:
                owners[address.lower()] = profile

        counts: Dict[int, Counter] = {}
        for commit in self.commit_store.commits_between(start, end):
            profile = owners.get(commit.author_email.lower())
            if profile is None:
                continue
            counts.setdefault(commit.repo_id, Counter())[profile.id] += 1

        profiles_by_id = {profile.id: profile for profile in owners.values()}
        activity: List[RepoActivity] = []
        for repository in sorted(self.repository_store.all(), key=lambda repo: (repo.name, repo.id)):
            per_profile = counts.get(repository.id)
            if not per_profile:
                continue
            authors = [
                AuthorActivity(profile_id=profile_id, name=profiles_by_id[profile_id].display_name, commits=total)
                for profile_id, total in per_profile.items()
            ]
            authors.sort(key=lambda author: (-author.commits, author.name, author.profile_id))
            activity.append(RepoActivity(repo_id=repository.id, repo_name=repository.name, authors=authors))

        return activity


__all__ = ["BenchmarkCalculator"]
