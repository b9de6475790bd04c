from __future__ import annotations

import json
from pathlib import Path
from typing import List

import pytest
from typer.testing import CliRunner

from lookout_insights import cli

runner = CliRunner()


@pytest.fixture
def workspace(tmp_path: Path) -> Path:
    return tmp_path


def _invoke(workspace: Path, args: List[str]):
    return runner.invoke(
        cli.app,
        ["--db", str(workspace / "lookout.db"), *args],
        env={"LOOKOUT_CONFIG": str(workspace / "config.toml")},
    )


def _write_rows(path: Path, rows: List[dict]) -> Path:
    path.write_text("\n".join(json.dumps(row) for row in rows), encoding="utf-8")
    return path


def test_categorize_outputs_json(workspace: Path) -> None:
    result = _invoke(workspace, ["categorize", "feat: add OAuth login", "--json"])

    assert result.exit_code == 0, result.output
    assert json.loads(result.stdout) == {
        "category": "feature",
        "confidence": 0.95,
        "reason": "Conventional commit prefix: feat",
    }


def test_categorize_uses_files(workspace: Path) -> None:
    result = _invoke(workspace, ["categorize", "Update stuff", "-f", "package-lock.json", "--json"])

    assert result.exit_code == 0, result.output
    assert json.loads(result.stdout)["category"] == "chore"


def test_categorize_renders_table(workspace: Path) -> None:
    result = _invoke(workspace, ["categorize", "Merge branch 'main'"])

    assert result.exit_code == 0, result.output
    assert "merge" in result.stdout


def test_import_then_breakdown(workspace: Path) -> None:
    rows = [
        {"hash": "a1", "repo": "acme/web", "author_email": "ana@x.io", "date": "2024-03-04T10:00:00Z",
         "message": "feat: add login"},
        {"hash": "a2", "repo": "acme/web", "author_email": "ana@x.io", "date": "2024-03-05T10:00:00Z",
         "message": "fix: login redirect"},
        {"hash": "a3", "repo": "acme/web", "author_email": "bob@x.io", "date": "2024-03-06T10:00:00Z",
         "message": "feat: add logout"},
        {"hash": "a4", "repo": "acme/web", "author_email": "bob@x.io", "date": "2024-04-01T10:00:00Z",
         "message": "docs: readme"},
    ]
    imported = _invoke(workspace, ["import", "commits", str(_write_rows(workspace / "commits.jsonl", rows))])
    assert imported.exit_code == 0, imported.output

    result = _invoke(workspace, ["breakdown", "--from", "2024-03-01", "--to", "2024-03-31", "--json"])

    assert result.exit_code == 0, result.output
    payload = json.loads(result.stdout)
    assert payload["counts"]["feature"] == 2
    assert payload["counts"]["bugfix"] == 1
    assert payload["counts"]["total"] == 3
    assert payload["percentages"] == {"feature": "67%", "bugfix": "33%"}
    assert payload["summary"] == "67% feature work, 33% bug fixes"


def test_breakdown_for_one_profile(workspace: Path) -> None:
    rows = [
        {"hash": "a1", "repo": "acme/web", "author_email": "ana@x.io", "date": "2024-03-04T10:00:00Z",
         "message": "feat: add login"},
        {"hash": "a2", "repo": "acme/web", "author_email": "bob@x.io", "date": "2024-03-05T10:00:00Z",
         "message": "fix: login redirect"},
    ]
    _invoke(workspace, ["import", "commits", str(_write_rows(workspace / "commits.jsonl", rows))])
    _invoke(workspace, ["profile", "add", "Bob", "--email", "bob@x.io"])

    listed = json.loads(_invoke(workspace, ["profile", "list", "--json"]).stdout)
    result = _invoke(
        workspace,
        ["breakdown", "--from", "2024-03-01", "--to", "2024-03-31", "--profile", str(listed[0]["id"]), "--json"],
    )

    assert result.exit_code == 0, result.output
    assert json.loads(result.stdout)["counts"]["total"] == 1


def test_invalid_import_exits_with_error(workspace: Path) -> None:
    path = _write_rows(workspace / "bad.jsonl", [{"hash": "a1", "repo": "acme/web"}])

    result = _invoke(workspace, ["import", "commits", str(path)])

    assert result.exit_code == 1
    assert "Import failed" in result.output


def test_inverted_range_exits_with_error(workspace: Path) -> None:
    result = _invoke(workspace, ["collab", "stats", "--from", "2024-03-10", "--to", "2024-03-01"])

    assert result.exit_code == 1
    assert "Error" in result.output


def test_collaboration_commands_on_empty_database(workspace: Path) -> None:
    stats = _invoke(workspace, ["collab", "stats", "--from", "2024-03-01", "--to", "2024-03-10", "--json"])
    reviews = _invoke(workspace, ["collab", "reviews", "--from", "2024-03-01", "--to", "2024-03-10", "--json"])
    graph = _invoke(workspace, ["collab", "graph", "--from", "2024-03-01", "--to", "2024-03-10", "--json"])

    assert json.loads(stats.stdout)["total_reviews"] == 0
    assert json.loads(reviews.stdout)["review_load_balance"] == 100
    assert json.loads(graph.stdout) == {"nodes": [], "edges": []}


def test_collab_top_rejects_non_positive_limit(workspace: Path) -> None:
    result = _invoke(workspace, ["collab", "top", "--from", "2024-03-01", "--to", "2024-03-10", "--limit", "0"])

    assert result.exit_code == 1


def test_velocity_commands(workspace: Path) -> None:
    rows = [
        {"hash": "a1", "repo": "acme/web", "author_email": "ana@x.io", "date": "2024-03-12T10:00:00Z",
         "message": "feat: add login", "additions": 7},
    ]
    _invoke(workspace, ["import", "commits", str(_write_rows(workspace / "commits.jsonl", rows))])

    snapshot = _invoke(workspace, ["velocity", "snapshot", "--week", "2024-03-13", "--json"])
    assert snapshot.exit_code == 0, snapshot.output
    week = json.loads(snapshot.stdout)
    assert week["week_start"] == "2024-03-11"
    assert week["commits"] == 1
    assert week["additions"] == 7

    trend = _invoke(workspace, ["velocity", "trend", "--weeks", "3", "--json"])
    assert trend.exit_code == 0, trend.output
    assert len(json.loads(trend.stdout)) == 3


def test_snapshot_refresh_picks_up_new_commits(workspace: Path) -> None:
    first = [{"hash": "a1", "repo": "acme/web", "author_email": "ana@x.io", "date": "2024-03-12T10:00:00Z",
              "message": "feat: add login"}]
    second = first + [{"hash": "a2", "repo": "acme/web", "author_email": "ana@x.io",
                       "date": "2024-03-13T10:00:00Z", "message": "fix: typo"}]
    _invoke(workspace, ["import", "commits", str(_write_rows(workspace / "first.jsonl", first))])
    _invoke(workspace, ["velocity", "snapshot", "--week", "2024-03-11"])
    _invoke(workspace, ["import", "commits", str(_write_rows(workspace / "second.jsonl", second))])

    cached = _invoke(workspace, ["velocity", "snapshot", "--week", "2024-03-11", "--json"])
    refreshed = _invoke(workspace, ["velocity", "snapshot", "--week", "2024-03-11", "--refresh", "--json"])

    assert json.loads(cached.stdout)["commits"] == 1
    assert json.loads(refreshed.stdout)["commits"] == 2


def test_benchmarks_and_activity(workspace: Path) -> None:
    benchmarks = _invoke(workspace, ["benchmarks", "--email", "ana@x.io", "--json"])
    activity = _invoke(workspace, ["activity", "--from", "2024-03-01", "--to", "2024-03-10", "--json"])

    assert benchmarks.exit_code == 0, benchmarks.output
    assert json.loads(benchmarks.stdout)["total_members"] == 0
    assert json.loads(activity.stdout) == []


def test_profile_add_and_list(workspace: Path) -> None:
    added = _invoke(workspace, ["profile", "add", "Ana", "-e", "Ana@x.io", "-e", "ana@home.net", "--github", "ana"])
    assert added.exit_code == 0, added.output

    profiles = json.loads(_invoke(workspace, ["profile", "list", "--json"]).stdout)

    assert profiles == [
        {
            "id": profiles[0]["id"],
            "display_name": "Ana",
            "emails": ["ana@home.net", "ana@x.io"],
            "github_login": "ana",
            "avatar_url": None,
            "is_excluded": False,
        }
    ]


def test_config_set_get_show(workspace: Path) -> None:
    updated = _invoke(workspace, ["config", "set", "analysis.default_weeks", "4"])
    assert updated.exit_code == 0, updated.output
    assert (workspace / "config.toml").exists()

    got = _invoke(workspace, ["config", "get", "analysis.default_weeks"])
    assert got.stdout.strip() == "analysis.default_weeks = 4"

    shown = json.loads(_invoke(workspace, ["config", "show", "--json"]).stdout)
    assert shown["analysis"]["default_weeks"] == 4

    trend = _invoke(workspace, ["velocity", "trend", "--json"])
    assert len(json.loads(trend.stdout)) == 4


def test_config_set_rejects_unknown_key(workspace: Path) -> None:
    result = _invoke(workspace, ["config", "set", "analysis.months", "4"])

    assert result.exit_code == 1
    assert "Invalid field" in result.output


def test_corrupt_config_is_reported(workspace: Path) -> None:
    (workspace / "config.toml").write_text("[analysis\n", encoding="utf-8")

    result = _invoke(workspace, ["breakdown", "--from", "2024-03-01", "--to", "2024-03-02"])

    assert result.exit_code == 1
    assert "Failed to parse" in result.output


def test_velocity_trend_rejects_zero_weeks(workspace: Path) -> None:
    result = _invoke(workspace, ["velocity", "trend", "--weeks", "0"])

    assert result.exit_code == 1
    assert "weeks must be positive" in result.output
