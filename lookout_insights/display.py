"""Rich tables for rendering analytics results in the terminal."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from rich import box
from rich.markup import escape
from rich.table import Table

from .categorization import format_breakdown_as_percentages, summarize_breakdown
from .models import (
    CategoryBreakdown,
    CategoryResult,
    CollaborationGraph,
    CollaborationStats,
    ContributorProfile,
    EnhancedReviewMetrics,
    RepoActivity,
    TeamBenchmarks,
    TopCollaborator,
    VelocityMetrics,
    WeeklyVelocity,
)


def _hours(value: Optional[float]) -> str:
    return "-" if value is None else f"{value:.1f}h"


def _new_table(title: str) -> Table:
    return Table(title=title, box=box.ROUNDED, title_style="title", header_style="label")


def _key_value_table(title: str, rows: List[tuple[str, Any]]) -> Table:
    table = _new_table(title)
    table.add_column("Metric", style="label")
    table.add_column("Value", style="value", justify="right")
    for label, value in rows:
        table.add_row(label, escape(str(value)))
    return table


def category_result_table(message: str, result: CategoryResult) -> Table:
    return _key_value_table(
        "Commit category",
        [
            ("Message", message),
            ("Category", result.category.value),
            ("Confidence", f"{result.confidence:.2f}"),
            ("Reason", result.reason),
        ],
    )


def breakdown_table(breakdown: CategoryBreakdown) -> Table:
    """Counts per category with each non-merge share."""
    percentages = format_breakdown_as_percentages(breakdown)
    table = _new_table("Category breakdown")
    table.add_column("Category", style="label")
    table.add_column("Commits", justify="right")
    table.add_column("Share", justify="right", style="muted")
    for category, count in breakdown.counts().items():
        if count:
            table.add_row(category, str(count), percentages.get(category, ""))
    table.add_row("total", str(breakdown.total), "", style="accent")
    table.caption = summarize_breakdown(breakdown)
    return table


def velocity_trend_table(metrics: List[VelocityMetrics], title: str) -> Table:
    table = _new_table(title)
    table.add_column("Week", style="label")
    table.add_column("Commits", justify="right")
    table.add_column("+", justify="right", style="success")
    table.add_column("-", justify="right", style="danger")
    table.add_column("Files", justify="right")
    table.add_column("Trend", justify="right")

    for week in metrics:
        trend = week.trend.value
        table.add_row(
            week.week_start.isoformat(),
            str(week.commits_per_week),
            str(week.additions),
            str(week.deletions),
            str(week.files_changed),
            f"[{trend}]{trend} {week.trend_percent:+.0f}%[/]",
        )
    return table


def weekly_velocity_table(velocity: WeeklyVelocity, title: str) -> Table:
    rows = [
        ("Week", velocity.week_start.isoformat()),
        ("Commits", velocity.commits),
        ("Additions", velocity.additions),
        ("Deletions", velocity.deletions),
        ("Files changed", velocity.files_changed),
    ]
    rows.extend((f"  {category}", count) for category, count in sorted(velocity.category_breakdown.items()))
    return _key_value_table(title, rows)


def benchmarks_table(benchmarks: TeamBenchmarks, email: Optional[str]) -> Table:
    rows: List[tuple[str, Any]] = [
        ("Team members", benchmarks.total_members),
        ("Average commits", benchmarks.average),
        ("Median commits", benchmarks.median),
        ("Most commits", benchmarks.max),
    ]
    if email:
        rows.extend(
            [
                ("Your commits", benchmarks.your_commits),
                ("Your rank", benchmarks.your_rank or "-"),
                ("Percentile", f"{benchmarks.percentile}%"),
            ]
        )
    return _key_value_table("Team benchmarks (this week)", rows)


def activity_table(activity: List[RepoActivity]) -> Table:
    table = _new_table("Activity by repository")
    table.add_column("Repository", style="label")
    table.add_column("Contributor")
    table.add_column("Commits", justify="right")
    for repo in activity:
        for index, author in enumerate(repo.authors):
            table.add_row(escape(repo.repo_name) if index == 0 else "", escape(author.name), str(author.commits))
    return table


def collaboration_graph_tables(graph: CollaborationGraph) -> List[Table]:
    nodes = _new_table("People")
    for column in ("Login", "Name", "Given", "Received", "PRs", "Merged", "Commits"):
        nodes.add_column(column, justify="left" if column in ("Login", "Name") else "right")
    for node in graph.nodes:
        nodes.add_row(
            escape(node.id),
            escape(node.name),
            str(node.reviews_given),
            str(node.reviews_received),
            str(node.prs_opened),
            str(node.prs_merged),
            str(node.commits),
        )

    edges = _new_table("Reviews (reviewer -> author)")
    edges.add_column("Reviewer", style="label")
    edges.add_column("Author")
    edges.add_column("Reviews", justify="right")
    edges.add_column("PRs", style="muted")
    for edge in sorted(graph.edges, key=lambda item: item.weight, reverse=True):
        edges.add_row(
            escape(edge.source),
            escape(edge.target),
            str(edge.weight),
            ", ".join(f"#{number}" for number in edge.prs_reviewed),
        )
    return [nodes, edges]


def top_collaborators_table(collaborators: List[TopCollaborator]) -> Table:
    table = _new_table("Top collaborators")
    table.add_column("#", justify="right", style="muted")
    table.add_column("Name", style="label")
    table.add_column("Interactions", justify="right")
    for index, collaborator in enumerate(collaborators, start=1):
        table.add_row(str(index), escape(collaborator.user), str(collaborator.interactions))
    return table


def collaboration_stats_table(stats: CollaborationStats) -> Table:
    top = stats.top_reviewer
    return _key_value_table(
        "Collaboration summary",
        [
            ("Reviews", stats.total_reviews),
            ("Reviewers", stats.total_reviewers),
            ("Reviews per PR", f"{stats.average_reviews_per_pr:.1f}"),
            ("Top reviewer", f"{top['name']} ({top['count']})" if top else "-"),
        ],
    )


def review_metrics_tables(metrics: EnhancedReviewMetrics) -> List[Table]:
    summary = _key_value_table(
        "Review health",
        [
            ("Time to first review (avg)", _hours(metrics.avg_time_to_first_review)),
            ("Time to first review (median)", _hours(metrics.median_time_to_first_review)),
            ("Time to merge (avg)", _hours(metrics.avg_time_to_merge)),
            ("Time to merge (median)", _hours(metrics.median_time_to_merge)),
            ("Approval rate", f"{metrics.approval_rate:.0f}%"),
            ("Changes requested", f"{metrics.changes_requested_rate:.0f}%"),
            ("Review rounds per PR", f"{metrics.avg_review_rounds:.1f}"),
            ("Merged without review", f"{metrics.self_merge_rate:.0f}%"),
            ("Stale PRs", metrics.stale_pr_count),
            ("Load balance", f"{metrics.review_load_balance}/100"),
        ],
    )
    tables = [summary]

    if metrics.reviewer_stats:
        reviewers = _new_table("Reviewers")
        reviewers.add_column("Name", style="label")
        reviewers.add_column("Reviews", justify="right")
        reviewers.add_column("Avg response", justify="right")
        reviewers.add_column("Approvals", justify="right")
        for stat in metrics.reviewer_stats:
            reviewers.add_row(
                escape(stat.name),
                str(stat.reviews_given),
                _hours(stat.avg_response_time_hours),
                f"{stat.approval_rate:.0f}%",
            )
        tables.append(reviewers)

    if metrics.pending_reviewers:
        pending = _new_table("Waiting for review")
        pending.add_column("Author", style="label")
        pending.add_column("Open PRs", justify="right", style="warning")
        for entry in metrics.pending_reviewers:
            pending.add_row(escape(entry.name), str(entry.pending_count))
        tables.append(pending)

    return tables


def profiles_table(profiles: List[ContributorProfile]) -> Table:
    table = _new_table("Contributor profiles")
    table.add_column("ID", justify="right", style="muted")
    table.add_column("Name", style="label")
    table.add_column("Emails")
    table.add_column("Login")
    table.add_column("Excluded", justify="center")
    for profile in profiles:
        table.add_row(
            str(profile.id),
            escape(profile.display_name),
            escape(", ".join(profile.emails)),
            escape(profile.github_login or "-"),
            "yes" if profile.is_excluded else "",
        )
    return table


def config_tables(display: Dict[str, Dict[str, Any]]) -> List[Table]:
    return [
        _key_value_table(section, list(values.items()))
        for section, values in display.items()
    ]


__all__ = [
    "activity_table",
    "benchmarks_table",
    "breakdown_table",
    "category_result_table",
    "collaboration_graph_tables",
    "collaboration_stats_table",
    "config_tables",
    "profiles_table",
    "review_metrics_tables",
    "top_collaborators_table",
    "velocity_trend_table",
    "weekly_velocity_table",
]
