import logging
from datetime import datetime, timezone

import pytest

from lookout_insights.exceptions import InvalidInputError, StorageError
from lookout_insights.storage import Database
from lookout_insights.storage.database import MEMORY_PATH


def _at(day: int, hour: int = 9) -> datetime:
    return datetime(2024, 3, day, hour, tzinfo=timezone.utc)


def test_closed_database_refuses_queries(tmp_path) -> None:
    database = Database(tmp_path / "nested" / "lookout.db")
    assert not database.is_open

    with pytest.raises(StorageError):
        database.query("SELECT 1")

    with database:
        assert database.is_open
        assert (tmp_path / "nested" / "lookout.db").exists()
    assert not database.is_open


def test_in_memory_database() -> None:
    with Database(MEMORY_PATH) as database:
        assert database.query_one("SELECT COUNT(*) AS n FROM commits")["n"] == 0


def test_bad_sql_is_wrapped(database) -> None:
    with pytest.raises(StorageError) as excinfo:
        database.query("SELECT * FROM nowhere", operation="probe")

    assert excinfo.value.operation == "probe"


def test_repositories_are_created_once(repository_store) -> None:
    first = repository_store.resolve("acme/web")

    assert repository_store.resolve(" acme/web ") == first
    assert repository_store.resolve("acme/api") != first
    assert [repo.name for repo in repository_store.all()] == ["acme/api", "acme/web"]

    with pytest.raises(InvalidInputError):
        repository_store.resolve("  ")


def test_commit_email_filter(commit_store, make_commit) -> None:
    make_commit(_at(4), author_email="Ana@x.io")
    make_commit(_at(5), author_email="bob@x.io")
    start, end = _at(1), _at(10)

    assert len(commit_store.commits_between(start, end)) == 2
    assert [c.author_email for c in commit_store.commits_between(start, end, ["ANA@X.IO"])] == ["Ana@x.io"]
    assert commit_store.commits_between(start, end, []) == []


def test_profiles_and_identity_maps(identities) -> None:
    ana = identities.add_profile("Ana", ["Ana@x.io", "ana@home.net", "ana@x.io"], github_login="AnaL")
    identities.add_profile("Bob", ["bob@x.io"])

    assert identities.emails_for_profile(ana.id) == ["ana@home.net", "ana@x.io"]
    assert identities.email_to_login() == {"ana@home.net": "AnaL", "ana@x.io": "AnaL"}
    assert identities.login_to_display_name() == {"anal": "Ana"}
    assert [profile.display_name for profile in identities.profiles()] == ["Ana", "Bob"]


def test_email_moves_to_newest_profile(identities) -> None:
    first = identities.add_profile("Ana", ["ana@x.io"])
    second = identities.add_profile("Ana L.", ["ana@x.io"])

    assert identities.emails_for_profile(first.id) == []
    assert identities.emails_for_profile(second.id) == ["ana@x.io"]


def test_blank_profile_name_is_rejected(identities) -> None:
    with pytest.raises(InvalidInputError):
        identities.add_profile("  ", ["ana@x.io"])


def test_email_move_is_logged(identities, caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.WARNING, logger="lookout_insights.storage.sqlite_store")
    first = identities.add_profile("Ana", ["ana@x.io"])

    second = identities.add_profile("Ana L.", ["ana@x.io"])

    assert f"Moving ana@x.io from profile {first.id} to {second.id}" in caplog.text
