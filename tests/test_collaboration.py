from datetime import datetime, timezone

import pytest

from lookout_insights.analytics import CollaborationAnalyzer
from lookout_insights.analytics.statistics import load_balance_score, median
from lookout_insights.models import CollaborationStats, PullRequestRecord, ReviewRecord

RANGE = ("2024-03-01", "2024-03-10")


def _at(day: int, hour: int, month: int = 3) -> datetime:
    return datetime(2024, month, day, hour, tzinfo=timezone.utc)


def _pr(repo_id, number, author, created, state="open", merged=None) -> PullRequestRecord:
    return PullRequestRecord(
        repo_id=repo_id,
        number=number,
        title=f"PR {number}",
        author=author,
        state=state,
        created_at=created,
        merged_at=merged,
        author_avatar=f"https://avatars.example/{author}",
    )


def _review(repo_id, number, reviewer, state, submitted) -> ReviewRecord:
    return ReviewRecord(repo_id=repo_id, pr_number=number, reviewer=reviewer, state=state, submitted_at=submitted)


@pytest.fixture
def review_activity(review_store, repository_store, identities, make_commit) -> None:
    repo_id = repository_store.resolve("acme/web")
    review_store.upsert_pull_requests(
        [
            _pr(repo_id, 1, "ana", _at(4, 9), "merged", _at(5, 9)),
            _pr(repo_id, 2, "bob", _at(5, 9)),
            _pr(repo_id, 3, "ana", _at(6, 9), "merged", _at(6, 10)),
            _pr(repo_id, 4, "carl", _at(12, 9)),
            _pr(repo_id, 5, "carl", _at(20, 9, month=2)),
        ]
    )
    review_store.upsert_reviews(
        [
            _review(repo_id, 1, "bob", "approved", _at(4, 13)),
            _review(repo_id, 1, "carl", "commented", _at(4, 15)),
            # Self review stamped before the PR existed
            _review(repo_id, 2, "bob", "commented", _at(5, 8)),
            _review(repo_id, 2, "ana", "changes_requested", _at(5, 11)),
            _review(repo_id, 2, "ana", "approved", _at(6, 11)),
            # Pull request never imported
            _review(repo_id, 99, "carl", "approved", _at(6, 12)),
        ]
    )
    identities.add_profile("Ana Lopez", ["ana@x.io"], github_login="ana")
    identities.add_profile("Dave", ["dave@x.io"], github_login="dave")
    make_commit(_at(4, 10), author_email="ana@x.io")
    make_commit(_at(7, 10), author_email="ANA@x.io")
    make_commit(_at(7, 10), author_email="dave@x.io")


@pytest.fixture
def analyzer(review_store, commit_store, identities, clock) -> CollaborationAnalyzer:
    return CollaborationAnalyzer(review_store, commit_store, identities, clock=clock, reviewer_stats_limit=10)


def test_graph_nodes_and_edges(analyzer, review_activity) -> None:
    graph = analyzer.build_collaboration_graph(*RANGE)
    nodes = {node.id: node for node in graph.nodes}

    assert set(nodes) == {"ana", "bob", "carl"}
    assert nodes["ana"].name == "Ana Lopez"
    assert (nodes["ana"].reviews_given, nodes["ana"].reviews_received) == (2, 2)
    assert (nodes["bob"].reviews_given, nodes["bob"].reviews_received) == (2, 3)
    assert (nodes["carl"].reviews_given, nodes["carl"].reviews_received) == (1, 0)
    assert (nodes["ana"].prs_opened, nodes["ana"].prs_merged) == (2, 2)
    assert (nodes["bob"].prs_opened, nodes["bob"].prs_merged) == (1, 0)
    assert nodes["ana"].commits == 2
    assert nodes["ana"].avatar == "https://avatars.example/ana"

    edges = {(edge.source, edge.target): edge for edge in graph.edges}
    assert set(edges) == {("bob", "ana"), ("carl", "ana"), ("ana", "bob")}
    assert edges[("ana", "bob")].weight == 2
    assert edges[("ana", "bob")].prs_reviewed == [2]
    assert all(edge.source != edge.target for edge in graph.edges)


def test_graph_serialises_edges_with_from_and_to(analyzer, review_activity) -> None:
    payload = analyzer.build_collaboration_graph(*RANGE).to_dict()

    assert {"from": "carl", "to": "ana"} in [{"from": e["from"], "to": e["to"]} for e in payload["edges"]]


def test_top_collaborators(analyzer, review_activity) -> None:
    top = analyzer.get_top_collaborators(*RANGE, limit=2)

    assert [(entry.user, entry.interactions) for entry in top] == [("bob", 5), ("Ana Lopez", 4)]


def test_collaboration_stats(analyzer, review_activity) -> None:
    stats = analyzer.get_collaboration_stats(*RANGE)

    assert stats.total_reviews == 5
    assert stats.total_reviewers == 3
    assert stats.average_reviews_per_pr == pytest.approx(2.5)
    assert stats.top_reviewer == {"name": "bob", "count": 2}


def test_collaboration_stats_for_quiet_range(analyzer, review_activity) -> None:
    assert analyzer.get_collaboration_stats("2023-01-01", "2023-01-31") == CollaborationStats()


def test_enhanced_review_metrics(analyzer, review_activity) -> None:
    metrics = analyzer.get_enhanced_review_metrics(*RANGE)

    # The first review on PR 2 predates it and is discarded
    assert metrics.avg_time_to_first_review == pytest.approx(4.0)
    assert metrics.median_time_to_first_review == pytest.approx(4.0)
    assert metrics.avg_time_to_merge == pytest.approx(12.5)
    assert metrics.median_time_to_merge == pytest.approx(12.5)
    assert metrics.approval_rate == pytest.approx(40.0)
    assert metrics.changes_requested_rate == pytest.approx(20.0)
    assert metrics.avg_review_rounds == pytest.approx(2.5)
    assert metrics.self_merge_rate == pytest.approx(50.0)
    assert metrics.review_load_balance == 86


def test_stale_and_pending_ignore_the_requested_range(analyzer, review_activity) -> None:
    metrics = analyzer.get_enhanced_review_metrics("2023-01-01", "2023-01-31")

    assert metrics.stale_pr_count == 1
    assert [(entry.name, entry.pending_count) for entry in metrics.pending_reviewers] == [("carl", 2)]
    assert metrics.avg_time_to_merge is None
    assert metrics.approval_rate == 0.0


def test_reviewer_stats(analyzer, review_activity) -> None:
    stats = analyzer.get_enhanced_review_metrics(*RANGE).reviewer_stats

    assert [(stat.name, stat.reviews_given) for stat in stats] == [("bob", 2), ("Ana Lopez", 2), ("carl", 1)]
    bob, ana, carl = stats
    assert bob.avg_response_time_hours == pytest.approx(4.0)
    assert bob.approval_rate == pytest.approx(50.0)
    assert ana.avg_response_time_hours == pytest.approx(14.0)
    assert carl.avg_response_time_hours == pytest.approx(6.0)
    assert carl.approval_rate == 0.0


def test_stale_threshold_is_configurable(review_store, commit_store, identities, clock, review_activity) -> None:
    lenient = CollaborationAnalyzer(review_store, commit_store, identities, clock=clock, stale_pr_days=30)

    assert lenient.get_enhanced_review_metrics(*RANGE).stale_pr_count == 0


@pytest.mark.parametrize(
    ("counts", "expected"),
    [
        ([], 100),
        ([7], 100),
        ([10] * 5, 100),
        ([0, 0], 100),
    ],
)
def test_load_balance_extremes(counts, expected) -> None:
    assert load_balance_score(counts) == expected


def test_load_balance_penalises_a_single_heavy_reviewer() -> None:
    assert load_balance_score([1, 1, 1, 1, 50]) < 15
    assert 0 <= load_balance_score([1, 100]) <= 100


def test_median_of_even_length() -> None:
    assert median([2, 4, 6, 8]) == 5
    assert median([]) is None
