"""Reviewer/author collaboration graph and review health metrics."""

from __future__ import annotations

import logging
from collections import Counter
from datetime import datetime, timedelta
from typing import Callable, Dict, List, Optional, Tuple

from ..constants import DISPLAY_LIMITS, REVIEW_HEALTH_THRESHOLDS, REVIEW_STATES
from ..core.utils import hours_between, parse_date_range, utc_now
from ..models import (
    CollaborationEdge,
    CollaborationGraph,
    CollaborationNode,
    CollaborationStats,
    EnhancedReviewMetrics,
    PendingReviewer,
    PullRequestRecord,
    ReviewerStat,
    TopCollaborator,
)
from ..storage.protocols import CommitStore, IdentityResolver, ReviewStore
from .statistics import load_balance_score, mean, median, percent

logger = logging.getLogger(__name__)


class CollaborationAnalyzer:
    """Analyse who reviews whom and how healthy the review process is.

    Date ranges accept ISO dates or datetimes; a bare end date includes the
    whole day.
    """

    def __init__(
        self,
        review_store: ReviewStore,
        commit_store: CommitStore,
        identity_resolver: IdentityResolver,
        clock: Optional[Callable[[], datetime]] = None,
        stale_pr_days: int = REVIEW_HEALTH_THRESHOLDS['stale_pr_days'],
        reviewer_stats_limit: int = DISPLAY_LIMITS['reviewer_stats'],
        pending_reviewers_limit: int = DISPLAY_LIMITS['pending_reviewers'],
    ) -> None:
        self.review_store = review_store
        self.commit_store = commit_store
        self.identity_resolver = identity_resolver
        self.clock = clock or utc_now
        self.stale_pr_days = stale_pr_days
        self.reviewer_stats_limit = reviewer_stats_limit
        self.pending_reviewers_limit = pending_reviewers_limit

    def _display_namer(self) -> Callable[[str], str]:
        names = self.identity_resolver.login_to_display_name()
        return lambda login: names.get(login.lower(), login)

    # ------------------------------------------------------------------
    # Graph
    # ------------------------------------------------------------------

    def build_collaboration_graph(self, date_from, date_to) -> CollaborationGraph:
        """Build the reviewer -> author graph for a date range."""
        start, end = parse_date_range(date_from, date_to)
        display_name = self._display_namer()
        nodes: Dict[str, CollaborationNode] = {}

        def node_for(login: str, avatar: Optional[str]) -> CollaborationNode:
            node = nodes.get(login)
            if node is None:
                node = CollaborationNode(id=login, name=display_name(login), avatar=avatar)
                nodes[login] = node
            return node

        reviews = self.review_store.reviews_between(start, end)
        for review, pull_request in reviews:
            node_for(review.reviewer, review.reviewer_avatar).reviews_given += 1
            node_for(pull_request.author, pull_request.author_avatar).reviews_received += 1

        for pull_request in self.review_store.pull_requests_created_between(start, end):
            author = node_for(pull_request.author, pull_request.author_avatar)
            author.prs_opened += 1
            if pull_request.is_merged:
                author.prs_merged += 1

        # Commits only enrich people already present through review activity
        logins = self.identity_resolver.email_to_login()
        for commit in self.commit_store.commits_between(start, end):
            login = logins.get(commit.author_email.lower())
            if login and login in nodes:
                nodes[login].commits += 1

        edges: Dict[Tuple[str, str], CollaborationEdge] = {}
        for review, pull_request in reviews:
            if review.reviewer == pull_request.author:
                continue
            key = (review.reviewer, pull_request.author)
            edge = edges.get(key)
            if edge is None:
                edge = CollaborationEdge(source=review.reviewer, target=pull_request.author)
                edges[key] = edge
            edge.weight += 1
            edge.reviews_given += 1
            if review.pr_number not in edge.prs_reviewed:
                edge.prs_reviewed.append(review.pr_number)

        logger.debug(f"Collaboration graph: {len(nodes)} node(s), {len(edges)} edge(s)")
        return CollaborationGraph(nodes=list(nodes.values()), edges=list(edges.values()))

    def get_top_collaborators(
        self,
        date_from,
        date_to,
        limit: int = DISPLAY_LIMITS['top_collaborators'],
    ) -> List[TopCollaborator]:
        """People with the most reviews given plus received."""
        graph = self.build_collaboration_graph(date_from, date_to)
        ranked = sorted(
            graph.nodes,
            key=lambda node: node.reviews_given + node.reviews_received,
            reverse=True,
        )
        return [
            TopCollaborator(
                user=node.name,
                avatar=node.avatar,
                interactions=node.reviews_given + node.reviews_received,
            )
            for node in ranked[:limit]
        ]

    def get_collaboration_stats(self, date_from, date_to) -> CollaborationStats:
        start, end = parse_date_range(date_from, date_to)
        reviews = [review for review, _ in self.review_store.reviews_between(start, end)]
        if not reviews:
            return CollaborationStats()

        per_reviewer = Counter(review.reviewer for review in reviews)
        reviewed_prs = {(review.repo_id, review.pr_number) for review in reviews}
        # most_common keeps first-seen order among equal counts
        top_login, top_count = per_reviewer.most_common(1)[0]

        return CollaborationStats(
            total_reviews=len(reviews),
            total_reviewers=len(per_reviewer),
            average_reviews_per_pr=len(reviews) / len(reviewed_prs),
            top_reviewer={"name": self._display_namer()(top_login), "count": top_count},
        )

    # ------------------------------------------------------------------
    # Review health
    # ------------------------------------------------------------------

    def get_enhanced_review_metrics(self, date_from, date_to) -> EnhancedReviewMetrics:
        """Timing, quality and load indicators for code review.

        Durations that come out negative (clock skew, bad exports) are
        discarded. Stale and pending pull requests are judged against the
        current time, not the requested range.
        """
        start, end = parse_date_range(date_from, date_to)
        display_name = self._display_namer()
        review_counts = self.review_store.review_counts_by_pr()
        first_reviews = self.review_store.first_review_times()

        time_to_first_review: List[float] = []
        time_to_merge: List[float] = []
        merged_count = 0
        self_merged = 0

        for pull_request in self.review_store.pull_requests_created_between(start, end):
            key = (pull_request.repo_id, pull_request.number)
            first_review = first_reviews.get(key)
            if first_review is not None:
                hours = hours_between(pull_request.created_at, first_review)
                if hours >= 0:
                    time_to_first_review.append(hours)

            if pull_request.merged_at is not None:
                hours = hours_between(pull_request.created_at, pull_request.merged_at)
                if hours >= 0:
                    time_to_merge.append(hours)
                    merged_count += 1
                    if review_counts.get(key, 0) == 0:
                        self_merged += 1

        pairs = self.review_store.reviews_between(start, end)
        states = Counter(review.state for review, _ in pairs)
        rounds = Counter((review.repo_id, review.pr_number) for review, _ in pairs)

        metrics = EnhancedReviewMetrics(
            avg_time_to_first_review=mean(time_to_first_review),
            avg_time_to_merge=mean(time_to_merge),
            median_time_to_first_review=median(time_to_first_review),
            median_time_to_merge=median(time_to_merge),
            approval_rate=percent(states[REVIEW_STATES['approved']], len(pairs)),
            changes_requested_rate=percent(states[REVIEW_STATES['changes_requested']], len(pairs)),
            avg_review_rounds=mean(list(rounds.values())) or 0.0,
            self_merge_rate=percent(self_merged, merged_count),
        )

        open_prs = self.review_store.pull_requests(state="open")
        metrics.stale_pr_count = self._count_stale(open_prs, review_counts)
        metrics.review_load_balance = load_balance_score(
            list(Counter(review.reviewer for review, _ in pairs).values())
        )
        metrics.reviewer_stats = self._reviewer_stats(pairs, display_name)
        metrics.pending_reviewers = self._pending_reviewers(open_prs, review_counts, display_name)
        return metrics

    def _count_stale(self, open_prs: List[PullRequestRecord], review_counts: Dict) -> int:
        cutoff = self.clock() - timedelta(days=self.stale_pr_days)
        return sum(
            1
            for pull_request in open_prs
            if pull_request.created_at <= cutoff
            and review_counts.get((pull_request.repo_id, pull_request.number), 0) == 0
        )

    def _reviewer_stats(self, pairs, display_name: Callable[[str], str]) -> List[ReviewerStat]:
        grouped: Dict[str, Dict] = {}
        for review, pull_request in pairs:
            entry = grouped.setdefault(
                review.reviewer,
                {"avatar": review.reviewer_avatar, "count": 0, "approvals": 0, "response_hours": []},
            )
            entry["count"] += 1
            if review.state == REVIEW_STATES['approved']:
                entry["approvals"] += 1
            hours = hours_between(pull_request.created_at, review.submitted_at)
            if hours >= 0:
                entry["response_hours"].append(hours)

        ranked = sorted(grouped.items(), key=lambda item: item[1]["count"], reverse=True)
        return [
            ReviewerStat(
                name=display_name(login),
                avatar=entry["avatar"],
                reviews_given=entry["count"],
                avg_response_time_hours=mean(entry["response_hours"]),
                approval_rate=percent(entry["approvals"], entry["count"]),
            )
            for login, entry in ranked[: self.reviewer_stats_limit]
        ]

    def _pending_reviewers(
        self,
        open_prs: List[PullRequestRecord],
        review_counts: Dict,
        display_name: Callable[[str], str],
    ) -> List[PendingReviewer]:
        waiting: Dict[str, PendingReviewer] = {}
        for pull_request in open_prs:
            if review_counts.get((pull_request.repo_id, pull_request.number), 0):
                continue
            entry = waiting.get(pull_request.author)
            if entry is None:
                entry = PendingReviewer(
                    name=display_name(pull_request.author),
                    avatar=pull_request.author_avatar,
                    pending_count=0,
                )
                waiting[pull_request.author] = entry
            entry.pending_count += 1

        ranked = sorted(waiting.values(), key=lambda entry: entry.pending_count, reverse=True)
        return ranked[: self.pending_reviewers_limit]


__all__ = ["CollaborationAnalyzer"]
