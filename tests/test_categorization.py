import logging

import pytest

from lookout_insights.categorization import (
    calculate_breakdown,
    categorize_by_files,
    categorize_by_message,
    categorize_commit,
    format_breakdown_as_percentages,
    summarize_breakdown,
)
from lookout_insights.models import CategoryBreakdown, CommitCategory


def test_conventional_prefix_wins_with_high_confidence() -> None:
    result = categorize_commit("feat: add OAuth login")

    assert result.category is CommitCategory.FEATURE
    assert result.confidence == 0.95
    assert result.reason == "Conventional commit prefix: feat"


def test_scoped_prefix_and_bracket_prefix() -> None:
    scoped = categorize_by_message("fix(api): handle empty payload")
    bracket = categorize_by_message("[docs] describe the import format")

    assert scoped.category is CommitCategory.BUGFIX
    assert scoped.confidence == 0.95
    assert bracket.category is CommitCategory.DOCS
    assert bracket.confidence == 0.90


def test_unknown_prefix_falls_through_to_keywords() -> None:
    result = categorize_commit("cleanup unused imports", ["src/a.ts", "src/b.ts"])

    assert result.category is CommitCategory.REFACTOR
    assert result.confidence == 0.6


def test_file_paths_replace_weak_message() -> None:
    result = categorize_commit("Update stuff", ["package-lock.json"])

    assert result.category is CommitCategory.CHORE
    assert result.confidence == 0.7
    assert result.reason.startswith("File path analysis: 1/1")


def test_strong_prefix_ignores_files() -> None:
    result = categorize_commit("feat: add fixtures", ["tests/test_login.py", "tests/conftest.py"])

    assert result.category is CommitCategory.FEATURE
    assert result.confidence == 0.95


def test_agreeing_signals_are_combined() -> None:
    result = categorize_commit("Resolve crash on startup", ["package.json"])

    assert result.category is CommitCategory.BUGFIX
    assert result.confidence == pytest.approx(0.825)
    assert result.reason.startswith("Combined: ")


def test_merge_flag_and_merge_message() -> None:
    flagged = categorize_commit("feat: add OAuth login", is_merge=True)
    message = categorize_commit("Merge branch 'main' into feature")

    assert flagged.category is CommitCategory.MERGE
    assert flagged.reason == "Merge commit flag"
    assert message.category is CommitCategory.MERGE
    assert message.confidence == 0.95


def test_missing_message_is_other() -> None:
    result = categorize_commit(None)

    assert result.category is CommitCategory.OTHER
    assert result.confidence == 0.5


def test_file_ties_go_to_first_seen_category() -> None:
    first = categorize_by_files(["docs/guide.txt", "Dockerfile"])
    second = categorize_by_files(["Dockerfile", "docs/guide.txt"])

    assert first is not None and first.category is CommitCategory.DOCS
    assert second is not None and second.category is CommitCategory.CHORE


def test_file_coverage_threshold() -> None:
    files = ["Dockerfile", "src/a.py", "src/b.py"]

    assert categorize_by_files(files) is None
    assert categorize_commit("misc", files).category is CommitCategory.OTHER

    lenient = categorize_commit("misc", files, file_coverage=0.3)
    assert lenient.category is CommitCategory.CHORE


def test_high_confidence_threshold_is_configurable() -> None:
    # Keyword result at 0.8 normally consults files; a lower bar keeps it.
    assert categorize_commit("simplify parser", ["tests/test_parser.py"]).category is CommitCategory.TEST
    kept = categorize_commit("simplify parser", ["tests/test_parser.py"], high_confidence=0.8)
    assert kept.category is CommitCategory.REFACTOR


def test_python_test_modules_are_tests() -> None:
    result = categorize_by_files(["test_parser.py"])

    assert result is not None
    assert result.category is CommitCategory.TEST


def test_breakdown_counts_and_percentages() -> None:
    breakdown = calculate_breakdown(["feature", "feature", CommitCategory.BUGFIX, "merge"])

    assert breakdown.total == 4
    assert sum(breakdown.counts().values()) == breakdown.total
    assert format_breakdown_as_percentages(breakdown) == {"feature": "67%", "bugfix": "33%"}
    assert summarize_breakdown(breakdown) == "67% feature work, 33% bug fixes"
    assert breakdown.as_percentages() == format_breakdown_as_percentages(breakdown)
    assert breakdown.summary() == summarize_breakdown(breakdown)


def test_breakdown_halves_round_up() -> None:
    breakdown = calculate_breakdown(["feature"] + ["bugfix"] * 7)

    # 12.5% and 87.5%
    assert format_breakdown_as_percentages(breakdown) == {"feature": "13%", "bugfix": "88%"}


def test_breakdown_edge_summaries() -> None:
    assert summarize_breakdown(CategoryBreakdown()) == "No commits"
    assert summarize_breakdown(calculate_breakdown(["merge", "merge"])) == "2 merge commits"
    assert format_breakdown_as_percentages(calculate_breakdown(["merge"])) == {"merge": "100%"}
    assert summarize_breakdown(calculate_breakdown(["other"] * 3)) == "3 commits"


def test_breakdown_rejects_unknown_category() -> None:
    with pytest.raises(ValueError):
        calculate_breakdown(["feature", "nonsense"])


def test_fallback_is_logged(caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.DEBUG, logger="lookout_insights.categorization")

    categorize_by_message("misc")

    assert "falling back to other" in caplog.text
