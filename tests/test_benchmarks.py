from datetime import datetime, timezone

import pytest

from lookout_insights.analytics import BenchmarkCalculator
from lookout_insights.exceptions import InvalidDateRangeError
from lookout_insights.models import TeamBenchmarks


def _at(day: int, hour: int = 9) -> datetime:
    return datetime(2024, 3, day, hour, tzinfo=timezone.utc)


@pytest.fixture
def calculator(commit_store, identities, repository_store, clock) -> BenchmarkCalculator:
    return BenchmarkCalculator(commit_store, identities, repository_store, clock=clock)


@pytest.fixture
def team_week(make_commit) -> None:
    for email, count in (("a@x.io", 2), ("b@x.io", 4), ("c@x.io", 6), ("d@x.io", 8)):
        for _ in range(count):
            make_commit(_at(12), author_email=email)
    # Last week's commits do not count
    make_commit(_at(5), author_email="a@x.io")


def test_team_benchmarks_summary(calculator, team_week) -> None:
    benchmarks = calculator.get_team_benchmarks()

    assert benchmarks.total_members == 4
    assert benchmarks.average == 5.0
    assert benchmarks.median == 5
    assert benchmarks.max == 8
    assert benchmarks.your_rank == 0


@pytest.mark.parametrize(
    ("email", "commits", "rank", "percentile"),
    [
        ("d@x.io", 8, 1, 100),
        ("c@x.io", 6, 2, 75),
        ("A@X.io", 2, 4, 25),
    ],
)
def test_rank_and_percentile(calculator, team_week, email, commits, rank, percentile) -> None:
    benchmarks = calculator.get_team_benchmarks(email)

    assert benchmarks.your_commits == commits
    assert benchmarks.your_rank == rank
    assert benchmarks.percentile == percentile


def test_unknown_author_has_no_rank(calculator, team_week) -> None:
    benchmarks = calculator.get_team_benchmarks("nobody@x.io")

    assert benchmarks.your_commits == 0
    assert benchmarks.your_rank == 0
    assert benchmarks.percentile == 0
    assert benchmarks.total_members == 4


def test_average_is_rounded_to_one_decimal(calculator, make_commit) -> None:
    make_commit(_at(12), author_email="a@x.io")
    make_commit(_at(12), author_email="b@x.io")
    make_commit(_at(12), author_email="c@x.io")
    make_commit(_at(12), author_email="c@x.io")

    assert calculator.get_team_benchmarks().average == 1.3


def test_empty_week_returns_zeroes(calculator, make_commit) -> None:
    make_commit(_at(4))

    assert calculator.get_team_benchmarks("a@x.io") == TeamBenchmarks()


def test_activity_by_repo_groups_profiled_authors(calculator, identities, make_commit) -> None:
    ana = identities.add_profile("Ana", ["ana@x.io"])
    bob = identities.add_profile("Bob", ["bob@x.io", "bob@home.net"])
    identities.add_profile("Eve", ["eve@x.io"], is_excluded=True)

    make_commit(_at(2), author_email="ana@x.io", repo="acme/web")
    make_commit(_at(3), author_email="ana@x.io", repo="acme/web")
    make_commit(_at(4), author_email="bob@x.io", repo="acme/web")
    make_commit(_at(5), author_email="BOB@home.net", repo="acme/web")
    make_commit(_at(13, hour=23), author_email="bob@x.io", repo="acme/web")
    make_commit(_at(6), author_email="eve@x.io", repo="acme/web")
    make_commit(_at(6), author_email="stranger@x.io", repo="acme/web")
    make_commit(_at(7), author_email="ana@x.io", repo="acme/api")
    make_commit(_at(14), author_email="ana@x.io", repo="acme/docs")

    activity = calculator.get_activity_by_repo("2024-03-01", "2024-03-13")

    assert [repo.repo_name for repo in activity] == ["acme/api", "acme/web"]
    assert [(author.profile_id, author.commits) for author in activity[0].authors] == [(ana.id, 1)]
    assert [(author.name, author.commits) for author in activity[1].authors] == [("Bob", 3), ("Ana", 2)]
    assert activity[1].authors[0].profile_id == bob.id


def test_activity_rejects_inverted_range(calculator) -> None:
    with pytest.raises(InvalidDateRangeError):
        calculator.get_activity_by_repo("2024-03-10", "2024-03-01")
