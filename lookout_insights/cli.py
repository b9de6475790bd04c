"""Command line interface for the lookout analytics toolkit."""

from __future__ import annotations

import json
import logging
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import date
from pathlib import Path
from typing import Any, Iterator, List, Optional

import typer

from .analytics import BenchmarkCalculator, CollaborationAnalyzer, VelocityEngine
from .categorization import (
    calculate_breakdown,
    categorize_commit,
    format_breakdown_as_percentages,
    summarize_breakdown,
)
from .config import CONFIG_FILE, Config
from .core.console import Console
from .core.logging_config import setup_logging
from .core.utils import parse_date_range, parse_timestamp, start_of_week
from .display import (
    activity_table,
    benchmarks_table,
    breakdown_table,
    category_result_table,
    collaboration_graph_tables,
    collaboration_stats_table,
    profiles_table,
    review_metrics_tables,
    top_collaborators_table,
    velocity_trend_table,
    weekly_velocity_table,
)
from .exceptions import InvalidInputError, LookoutError
from .ingest import ingest_commits, ingest_pull_requests, ingest_reviews, load_json_rows, recategorize
from .storage import (
    Database,
    SqliteCommitStore,
    SqliteIdentityResolver,
    SqliteRepositoryStore,
    SqliteReviewStore,
)

app = typer.Typer(help="Classify commits and analyse team velocity and code review health.")
import_app = typer.Typer(help="Import exported activity rows (JSON array or JSON lines)")
velocity_app = typer.Typer(help="Weekly velocity trends and snapshots")
collab_app = typer.Typer(help="Review collaboration and review health")
profile_app = typer.Typer(help="Manage contributor profiles")
config_app = typer.Typer(help="Manage configuration settings")
app.add_typer(import_app, name="import")
app.add_typer(velocity_app, name="velocity")
app.add_typer(collab_app, name="collab")
app.add_typer(profile_app, name="profile")
app.add_typer(config_app, name="config")

console = Console()
logger = logging.getLogger(__name__)

JSON_OPTION = typer.Option(False, "--json", help="Print machine-readable JSON instead of tables")
FROM_OPTION = typer.Option(..., "--from", help="Start date (YYYY-MM-DD)")
TO_OPTION = typer.Option(..., "--to", help="End date, inclusive (YYYY-MM-DD)")


@dataclass(slots=True)
class AppContext:
    """Settings resolved once per invocation and shared with subcommands."""

    config_path: Path
    database_path: Optional[str] = None

    def load_config(self) -> Config:
        return Config.load(self.config_path)


def _context(ctx: typer.Context) -> AppContext:
    if isinstance(ctx.obj, AppContext):
        return ctx.obj
    return AppContext(config_path=CONFIG_FILE)


def _emit_json(payload: Any) -> None:
    typer.echo(json.dumps(payload, indent=2, ensure_ascii=False))


@contextmanager
def _command_errors(context: str = "") -> Iterator[None]:
    """Turn domain errors into a printed message and exit code 1."""
    try:
        yield
    except LookoutError as exc:
        logger.debug(f"{type(exc).__name__}: {exc}")
        console.print_error(exc, context)
        raise typer.Exit(code=1) from exc


@contextmanager
def _session(ctx: typer.Context) -> Iterator[tuple[Config, Database]]:
    """Load configuration and open the database for one command."""
    settings = _context(ctx)
    config = settings.load_config()
    path = settings.database_path or config.storage.database_path
    with Database(Path(path).expanduser()) as database:
        yield config, database


def _resolve_profile_emails(database: Database, profile_id: Optional[int]) -> Optional[List[str]]:
    if profile_id is None:
        return None
    return SqliteIdentityResolver(database).emails_for_profile(profile_id)


@app.callback()
def main_callback(
    ctx: typer.Context,
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable verbose output for debugging",
    ),
    quiet: bool = typer.Option(
        False,
        "--quiet",
        "-q",
        help="Suppress non-essential output",
    ),
    config_path: Path = typer.Option(
        CONFIG_FILE,
        "--config",
        envvar="LOOKOUT_CONFIG",
        help="Configuration file to use",
    ),
    database_path: Optional[str] = typer.Option(
        None,
        "--db",
        envvar="LOOKOUT_DB",
        help="SQLite database (overrides storage.database_path)",
    ),
) -> None:
    """CLI entry-point callback for shared initialisation."""
    console.set_verbose(verbose)
    console.set_quiet(quiet)
    setup_logging(verbose=verbose, quiet=quiet)
    ctx.obj = AppContext(config_path=config_path, database_path=database_path)


# ---------------------------------------------------------------------------
# Classification
# ---------------------------------------------------------------------------


@app.command()
def categorize(
    ctx: typer.Context,
    message: str = typer.Argument(..., help="Commit message to classify"),
    files: Optional[List[str]] = typer.Option(None, "--file", "-f", help="Changed file path (repeatable)"),
    merge: bool = typer.Option(False, "--merge", help="Treat the commit as a merge"),
    as_json: bool = JSON_OPTION,
) -> None:
    """Classify a single commit message without touching the database.

    Examples:
        lookout categorize "feat: add OAuth login"
        lookout categorize "Update stuff" -f package-lock.json
    """
    with _command_errors():
        classifier = _context(ctx).load_config().classifier
    result = categorize_commit(
        message,
        files or None,
        merge,
        high_confidence=classifier.high_confidence,
        file_coverage=classifier.file_coverage,
    )
    if as_json:
        _emit_json(result.to_dict())
        return
    console.print(category_result_table(message, result))


@app.command(name="recategorize")
def recategorize_command(ctx: typer.Context) -> None:
    """Re-run the classifier over every stored commit."""
    with _command_errors("Recategorize failed:"), _session(ctx) as (config, database):
        updated = recategorize(SqliteCommitStore(database), config.classifier)
    console.print_success(f"✓ Updated {updated} commit(s)")


@app.command()
def breakdown(
    ctx: typer.Context,
    date_from: str = FROM_OPTION,
    date_to: str = TO_OPTION,
    profile: Optional[int] = typer.Option(None, "--profile", "-p", help="Limit to one contributor profile"),
    as_json: bool = JSON_OPTION,
) -> None:
    """Show the work-type mix of commits in a date range."""
    with _command_errors(), _session(ctx) as (_, database):
        start, end = parse_date_range(date_from, date_to)
        emails = _resolve_profile_emails(database, profile)
        commits = SqliteCommitStore(database).commits_between(start, end, emails)
        result = calculate_breakdown(commit.category for commit in commits)

    if as_json:
        payload = result.to_dict()
        _emit_json(
            {
                "counts": payload,
                "percentages": format_breakdown_as_percentages(result),
                "summary": summarize_breakdown(result),
            }
        )
        return
    console.print(breakdown_table(result))


# ---------------------------------------------------------------------------
# Import
# ---------------------------------------------------------------------------


@import_app.command("commits")
def import_commits(
    ctx: typer.Context,
    path: Path = typer.Argument(..., help="Exported commit rows"),
) -> None:
    """Classify and store commit rows.

    Required fields: hash, repo, author_email, date, message.
    """
    with _command_errors("Import failed:"), _session(ctx) as (config, database):
        rows = load_json_rows(path)
        records = ingest_commits(
            SqliteCommitStore(database),
            SqliteRepositoryStore(database),
            rows,
            config.classifier,
        )
    console.print_success(f"✓ Imported {len(records)} commit(s) from {path}")


@import_app.command("pull-requests")
def import_pull_requests(
    ctx: typer.Context,
    path: Path = typer.Argument(..., help="Exported pull request rows"),
) -> None:
    """Store pull request rows from the code host."""
    with _command_errors("Import failed:"), _session(ctx) as (_, database):
        records = ingest_pull_requests(
            SqliteReviewStore(database), SqliteRepositoryStore(database), load_json_rows(path)
        )
    console.print_success(f"✓ Imported {len(records)} pull request(s) from {path}")


@import_app.command("reviews")
def import_reviews(
    ctx: typer.Context,
    path: Path = typer.Argument(..., help="Exported review rows"),
) -> None:
    """Store pull request review rows from the code host."""
    with _command_errors("Import failed:"), _session(ctx) as (_, database):
        records = ingest_reviews(
            SqliteReviewStore(database), SqliteRepositoryStore(database), load_json_rows(path)
        )
    console.print_success(f"✓ Imported {len(records)} review(s) from {path}")


# ---------------------------------------------------------------------------
# Velocity and benchmarks
# ---------------------------------------------------------------------------


def _velocity_engine(config: Config, database: Database) -> VelocityEngine:
    return VelocityEngine(
        SqliteCommitStore(database),
        SqliteIdentityResolver(database),
        database.snapshot_cache,
        trend_threshold=config.analysis.trend_threshold_percent,
    )


def _scope_label(profile: Optional[int]) -> str:
    return "team" if profile is None else f"profile {profile}"


@velocity_app.command("trend")
def velocity_trend(
    ctx: typer.Context,
    profile: Optional[int] = typer.Option(None, "--profile", "-p", help="Profile id (default: whole team)"),
    weeks: Optional[int] = typer.Option(None, "--weeks", "-w", help="Number of weeks (default from config)"),
    as_json: bool = JSON_OPTION,
) -> None:
    """Show weekly commit velocity, oldest week first."""
    with _command_errors(), _session(ctx) as (config, database):
        engine = _velocity_engine(config, database)
        metrics = engine.get_velocity_trend(profile, weeks if weeks is not None else config.analysis.default_weeks)

    if as_json:
        _emit_json([week.to_dict() for week in metrics])
        return
    console.print(velocity_trend_table(metrics, f"Velocity ({_scope_label(profile)})"))


@velocity_app.command("snapshot")
def velocity_snapshot(
    ctx: typer.Context,
    profile: Optional[int] = typer.Option(None, "--profile", "-p", help="Profile id (default: whole team)"),
    week: Optional[str] = typer.Option(None, "--week", help="Any date inside the week (default: this week)"),
    refresh: bool = typer.Option(False, "--refresh", help="Recompute and overwrite the cached week"),
    as_json: bool = JSON_OPTION,
) -> None:
    """Show one cached week, optionally rebuilding it from stored commits."""
    with _command_errors(), _session(ctx) as (config, database):
        engine = _velocity_engine(config, database)
        week_start: date = start_of_week(parse_timestamp(week)) if week else engine.current_week_start()
        if refresh:
            velocity = engine.save_velocity_snapshot(profile, week_start)
            logger.info(f"Refreshed snapshot for {_scope_label(profile)} week {week_start}")
        else:
            velocity = engine.get_weekly_velocity(profile, week_start)

    if as_json:
        _emit_json(velocity.to_dict())
        return
    console.print(weekly_velocity_table(velocity, f"Week of {week_start.isoformat()} ({_scope_label(profile)})"))
    if refresh:
        console.print_success("✓ Snapshot refreshed")


@app.command()
def benchmarks(
    ctx: typer.Context,
    email: Optional[str] = typer.Option(None, "--email", "-e", help="Author email to rank"),
    as_json: bool = JSON_OPTION,
) -> None:
    """Compare commit counts across the team for the current week."""
    with _command_errors(), _session(ctx) as (_, database):
        calculator = BenchmarkCalculator(
            SqliteCommitStore(database), SqliteIdentityResolver(database), SqliteRepositoryStore(database)
        )
        result = calculator.get_team_benchmarks(email)

    if as_json:
        _emit_json(result.to_dict())
        return
    console.print(benchmarks_table(result, email))


@app.command()
def activity(
    ctx: typer.Context,
    date_from: str = FROM_OPTION,
    date_to: str = TO_OPTION,
    as_json: bool = JSON_OPTION,
) -> None:
    """Show commits per repository for each contributor profile."""
    with _command_errors(), _session(ctx) as (_, database):
        calculator = BenchmarkCalculator(
            SqliteCommitStore(database), SqliteIdentityResolver(database), SqliteRepositoryStore(database)
        )
        result = calculator.get_activity_by_repo(date_from, date_to)

    if as_json:
        _emit_json([repo.to_dict() for repo in result])
        return
    if not result:
        console.print_warning("No profiled activity in this range")
        return
    console.print(activity_table(result))


# ---------------------------------------------------------------------------
# Collaboration
# ---------------------------------------------------------------------------


def _collaboration_analyzer(config: Config, database: Database) -> CollaborationAnalyzer:
    return CollaborationAnalyzer(
        SqliteReviewStore(database),
        SqliteCommitStore(database),
        SqliteIdentityResolver(database),
        stale_pr_days=config.analysis.stale_pr_days,
        reviewer_stats_limit=config.analysis.reviewer_stats_limit,
        pending_reviewers_limit=config.analysis.pending_reviewers_limit,
    )


@collab_app.command("graph")
def collab_graph(
    ctx: typer.Context,
    date_from: str = FROM_OPTION,
    date_to: str = TO_OPTION,
    as_json: bool = JSON_OPTION,
) -> None:
    """Show who reviews whom."""
    with _command_errors(), _session(ctx) as (config, database):
        graph = _collaboration_analyzer(config, database).build_collaboration_graph(date_from, date_to)

    if as_json:
        _emit_json(graph.to_dict())
        return
    for table in collaboration_graph_tables(graph):
        console.print(table)


@collab_app.command("top")
def collab_top(
    ctx: typer.Context,
    date_from: str = FROM_OPTION,
    date_to: str = TO_OPTION,
    limit: Optional[int] = typer.Option(None, "--limit", "-l", help="Number of people (default from config)"),
    as_json: bool = JSON_OPTION,
) -> None:
    """Show the people with the most review interactions."""
    with _command_errors(), _session(ctx) as (config, database):
        if limit is not None and limit <= 0:
            raise InvalidInputError(f"limit must be positive, got {limit}")
        collaborators = _collaboration_analyzer(config, database).get_top_collaborators(
            date_from, date_to, limit or config.analysis.top_collaborators_limit
        )

    if as_json:
        _emit_json([collaborator.to_dict() for collaborator in collaborators])
        return
    console.print(top_collaborators_table(collaborators))


@collab_app.command("stats")
def collab_stats(
    ctx: typer.Context,
    date_from: str = FROM_OPTION,
    date_to: str = TO_OPTION,
    as_json: bool = JSON_OPTION,
) -> None:
    """Summarise review volume in a date range."""
    with _command_errors(), _session(ctx) as (config, database):
        stats = _collaboration_analyzer(config, database).get_collaboration_stats(date_from, date_to)

    if as_json:
        _emit_json(stats.to_dict())
        return
    console.print(collaboration_stats_table(stats))


@collab_app.command("reviews")
def collab_reviews(
    ctx: typer.Context,
    date_from: str = FROM_OPTION,
    date_to: str = TO_OPTION,
    as_json: bool = JSON_OPTION,
) -> None:
    """Show review timing, quality and load balance."""
    with _command_errors(), _session(ctx) as (config, database):
        metrics = _collaboration_analyzer(config, database).get_enhanced_review_metrics(date_from, date_to)

    if as_json:
        _emit_json(metrics.to_dict())
        return
    for table in review_metrics_tables(metrics):
        console.print(table)


# ---------------------------------------------------------------------------
# Profiles
# ---------------------------------------------------------------------------


@profile_app.command("add")
def profile_add(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Display name"),
    emails: List[str] = typer.Option(..., "--email", "-e", help="Author email (repeatable)"),
    github: Optional[str] = typer.Option(None, "--github", help="Code-host login"),
    avatar: Optional[str] = typer.Option(None, "--avatar", help="Avatar URL"),
    excluded: bool = typer.Option(False, "--excluded", help="Hide this person from activity reports"),
) -> None:
    """Group one or more author emails under a display name."""
    with _command_errors("Profile not created:"), _session(ctx) as (_, database):
        profile = SqliteIdentityResolver(database).add_profile(
            name, emails, github_login=github, avatar_url=avatar, is_excluded=excluded
        )
    console.print_success(f"✓ Created profile {profile.id}: {profile.display_name}")


@profile_app.command("list")
def profile_list(ctx: typer.Context, as_json: bool = JSON_OPTION) -> None:
    """List contributor profiles."""
    with _command_errors(), _session(ctx) as (_, database):
        profiles = SqliteIdentityResolver(database).profiles()

    if as_json:
        _emit_json([profile.to_dict() for profile in profiles])
        return
    if not profiles:
        console.print_warning("No profiles yet. Add one with: lookout profile add NAME --email ...")
        return
    console.print(profiles_table(profiles))


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


@config_app.command("show")
def show_config(ctx: typer.Context, as_json: bool = JSON_OPTION) -> None:
    """Display current configuration settings."""
    from ._cli.commands.config_command import ConfigCommand

    command = ConfigCommand(console, _context(ctx).config_path)
    command.show(as_json)


@config_app.command("set")
def config_set(
    ctx: typer.Context,
    key: str = typer.Argument(..., help="Configuration key in dot notation (e.g. analysis.default_weeks)"),
    value: str = typer.Argument(..., help="Value to set"),
) -> None:
    """Set a configuration value.

    Examples:
        lookout config set analysis.default_weeks 12
        lookout config set analysis.stale_pr_days 5
    """
    from ._cli.commands.config_command import ConfigCommand

    command = ConfigCommand(console, _context(ctx).config_path)
    command.set(key, value)


@config_app.command("get")
def config_get(
    ctx: typer.Context,
    key: str = typer.Argument(..., help="Configuration key in dot notation (e.g. analysis.default_weeks)"),
) -> None:
    """Get a configuration value.

    Examples:
        lookout config get storage.database_path
    """
    from ._cli.commands.config_command import ConfigCommand

    command = ConfigCommand(console, _context(ctx).config_path)
    command.get(key)
