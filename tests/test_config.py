from pathlib import Path

import pytest

from lookout_insights.config import Config
from lookout_insights.exceptions import ConfigurationError


def test_missing_file_gives_defaults(tmp_path: Path) -> None:
    config = Config.load(tmp_path / "absent.toml")

    assert config.analysis.default_weeks == 8
    assert config.analysis.stale_pr_days == 3
    assert config.classifier.high_confidence == 0.85
    assert config.classifier.file_coverage == 0.5


def test_dump_and_load_round_trip_with_backup(tmp_path: Path) -> None:
    path = tmp_path / "config.toml"
    config = Config()
    config.set_value("analysis.default_weeks", "12")
    config.set_value("classifier.file_coverage", "0.4")
    config.set_value("storage.database_path", str(tmp_path / "data.db"))
    config.dump(path)
    config.dump(path)

    loaded = Config.load(path)

    assert loaded.analysis.default_weeks == 12
    assert loaded.classifier.file_coverage == 0.4
    assert loaded.get_value("storage.database_path") == str(tmp_path / "data.db")
    assert len(list(tmp_path.glob("config.*.bak"))) == 1


@pytest.mark.parametrize(
    ("key", "value", "message"),
    [
        ("analysis", "1", "Invalid key format"),
        ("reports.default_weeks", "1", "Invalid section"),
        ("analysis.months", "1", "Invalid field"),
        ("analysis.default_weeks", "many", "Cannot convert"),
        ("analysis.default_weeks", "0", "must be positive"),
        ("classifier.high_confidence", "1.5", "between 0 and 1"),
        ("storage.database_path", "  ", "cannot be empty"),
    ],
)
def test_set_value_rejects_bad_input(key: str, value: str, message: str) -> None:
    config = Config()

    with pytest.raises(ConfigurationError, match=message):
        config.set_value(key, value)

    assert config.analysis.default_weeks == 8


def test_corrupt_file_raises(tmp_path: Path) -> None:
    path = tmp_path / "config.toml"
    path.write_text("[analysis\n", encoding="utf-8")

    with pytest.raises(ConfigurationError, match="Failed to parse"):
        Config.load(path)


def test_invalid_values_in_file_raise(tmp_path: Path) -> None:
    path = tmp_path / "config.toml"
    path.write_text("[analysis]\nstale_pr_days = -2\n", encoding="utf-8")

    with pytest.raises(ConfigurationError, match="Invalid configuration"):
        Config.load(path)


def test_display_dict_omits_version() -> None:
    display = Config().to_display_dict()

    assert set(display) == {"storage", "analysis", "classifier"}
