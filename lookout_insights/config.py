"""Configuration utilities for the lookout CLI."""

from __future__ import annotations

import shutil
import tomllib
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Dict

from pydantic import BaseModel, ValidationError, field_validator
from tomli_w import dump as toml_dump

from .constants import (
    CONFIDENCE,
    DISPLAY_LIMITS,
    FILE_COVERAGE_THRESHOLD,
    REVIEW_HEALTH_THRESHOLDS,
    VELOCITY_THRESHOLDS,
)
from .exceptions import ConfigurationError
from .storage.database import DEFAULT_DB_PATH

CONFIG_DIR = Path.home() / ".config" / "lookout_insights"
CONFIG_FILE = CONFIG_DIR / "config.toml"
CONFIG_VERSION = "1.0.0"


class StorageConfig(BaseModel):
    """Location of the SQLite database."""

    database_path: str = str(DEFAULT_DB_PATH)

    @field_validator("database_path")
    @classmethod
    def validate_path(cls, v: str) -> str:
        """Validate that a database path is given."""
        if not v.strip():
            raise ValueError("database_path cannot be empty")
        return v


class AnalysisConfig(BaseModel):
    """Defaults used when running analyses."""

    default_weeks: int = VELOCITY_THRESHOLDS['default_weeks']
    stale_pr_days: int = REVIEW_HEALTH_THRESHOLDS['stale_pr_days']
    trend_threshold_percent: float = VELOCITY_THRESHOLDS['trend_percent']
    reviewer_stats_limit: int = DISPLAY_LIMITS['reviewer_stats']
    pending_reviewers_limit: int = DISPLAY_LIMITS['pending_reviewers']
    top_collaborators_limit: int = DISPLAY_LIMITS['top_collaborators']

    @field_validator(
        "default_weeks",
        "stale_pr_days",
        "reviewer_stats_limit",
        "pending_reviewers_limit",
        "top_collaborators_limit",
    )
    @classmethod
    def validate_positive(cls, v: int, info) -> int:
        """Validate that numeric fields are positive."""
        if v <= 0:
            raise ValueError(f"{info.field_name} must be positive, got {v}")
        return v

    @field_validator("trend_threshold_percent")
    @classmethod
    def validate_threshold(cls, v: float) -> float:
        if v < 0:
            raise ValueError(f"trend_threshold_percent must be non-negative, got {v}")
        return v


class ClassifierConfig(BaseModel):
    """Thresholds governing when file paths are consulted."""

    high_confidence: float = CONFIDENCE['high_confidence']
    file_coverage: float = FILE_COVERAGE_THRESHOLD

    @field_validator("high_confidence", "file_coverage")
    @classmethod
    def validate_ratio(cls, v: float, info) -> float:
        """Validate that ratios fall within 0..1."""
        if not 0.0 <= v <= 1.0:
            raise ValueError(f"{info.field_name} must be between 0 and 1, got {v}")
        return v


@dataclass(slots=True)
class Config:
    """Top-level configuration container."""

    version: str = CONFIG_VERSION
    storage: StorageConfig = field(default_factory=StorageConfig)
    analysis: AnalysisConfig = field(default_factory=AnalysisConfig)
    classifier: ClassifierConfig = field(default_factory=ClassifierConfig)

    @classmethod
    def load(cls, path: Path = CONFIG_FILE) -> "Config":
        """Load configuration data from disk.

        Args:
            path: Optional override for the configuration file path.

        Returns:
            Config: The loaded configuration object, or defaults when missing.

        Raises:
            ConfigurationError: If configuration file is corrupted or invalid.
        """

        if not path.exists():
            return cls()

        try:
            with path.open("rb") as handle:
                raw: Dict[str, Any] = tomllib.load(handle)
        except (OSError, tomllib.TOMLDecodeError) as exc:
            raise ConfigurationError(f"Failed to parse configuration file: {exc}") from exc

        try:
            storage = StorageConfig(**raw.get("storage", {}))
            analysis = AnalysisConfig(**raw.get("analysis", {}))
            classifier = ClassifierConfig(**raw.get("classifier", {}))
        except ValidationError as exc:
            raise ConfigurationError(f"Invalid configuration: {exc}") from exc

        return cls(
            version=raw.get("version", CONFIG_VERSION),
            storage=storage,
            analysis=analysis,
            classifier=classifier,
        )

    def dump(self, path: Path = CONFIG_FILE, backup: bool = True) -> None:
        """Persist the configuration to disk.

        Args:
            path: Path to save the configuration file.
            backup: If True and config file exists, create a backup before overwriting.
        """

        path.parent.mkdir(parents=True, exist_ok=True)

        if backup and path.exists():
            timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
            backup_path = path.parent / f"{path.stem}.{timestamp}.bak"
            shutil.copy2(path, backup_path)

        with path.open("wb") as handle:
            toml_dump(self._payload(), handle)

    def _payload(self) -> Dict[str, Any]:
        return {
            "version": self.version,
            "storage": self.storage.model_dump(),
            "analysis": self.analysis.model_dump(),
            "classifier": self.classifier.model_dump(),
        }

    def to_display_dict(self) -> Dict[str, Any]:
        """Return a serialisable representation for display purposes."""

        payload = self._payload()
        payload.pop("version")
        return payload

    def _sections(self) -> Dict[str, BaseModel]:
        return {
            "storage": self.storage,
            "analysis": self.analysis,
            "classifier": self.classifier,
        }

    def _resolve(self, key: str) -> tuple[str, BaseModel, str]:
        parts = key.split(".")
        if len(parts) != 2:
            raise ConfigurationError(f"Invalid key format '{key}'. Expected format: section.field")

        section, field_name = parts
        sections = self._sections()
        if section not in sections:
            valid_sections = ", ".join(sections.keys())
            raise ConfigurationError(f"Invalid section '{section}'. Valid sections: {valid_sections}")

        config_obj = sections[section]
        if field_name not in type(config_obj).model_fields:
            valid_fields = ", ".join(type(config_obj).model_fields.keys())
            raise ConfigurationError(
                f"Invalid field '{field_name}' for section '{section}'. Valid fields: {valid_fields}"
            )
        return section, config_obj, field_name

    def set_value(self, key: str, value: str) -> None:
        """Set a configuration value using dot notation.

        Args:
            key: Configuration key in dot notation (e.g., 'analysis.default_weeks')
            value: Value to set (will be converted to appropriate type)

        Raises:
            ConfigurationError: If key is invalid or value cannot be converted
        """
        section, config_obj, field_name = self._resolve(key)
        field_type = type(config_obj).model_fields[field_name].annotation

        try:
            if field_type in (int, "int"):
                converted_value: Any = int(value)
            elif field_type in (float, "float"):
                converted_value = float(value)
            else:
                converted_value = value

            # Validate through a fresh model so field validators run
            current_data = config_obj.model_dump()
            current_data[field_name] = converted_value
            validated_model = type(config_obj).model_validate(current_data)
        except ValidationError as exc:
            error_msg = "; ".join(f"{'.'.join(str(loc) for loc in e['loc'])}: {e['msg']}" for e in exc.errors())
            raise ConfigurationError(f"Validation error for {key}: {error_msg}") from exc
        except (ValueError, TypeError) as exc:
            raise ConfigurationError(f"Cannot convert '{value}' to {field_type} for {key}") from exc

        setattr(self, section, validated_model)

    def get_value(self, key: str) -> Any:
        """Get a configuration value using dot notation.

        Raises:
            ConfigurationError: If key is invalid
        """
        _, config_obj, field_name = self._resolve(key)
        return getattr(config_obj, field_name)


__all__ = [
    "AnalysisConfig",
    "ClassifierConfig",
    "Config",
    "CONFIG_FILE",
    "StorageConfig",
]
