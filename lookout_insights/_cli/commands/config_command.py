"""Config command for the lookout CLI."""

from __future__ import annotations

import json
from pathlib import Path
from typing import TYPE_CHECKING

import typer

from lookout_insights.config import Config
from lookout_insights.display import config_tables
from lookout_insights.exceptions import ConfigurationError

if TYPE_CHECKING:
    from lookout_insights.core.console import Console


class ConfigCommand:
    """Handles configuration management commands."""

    def __init__(self, console: Console, path: Path):
        """Initialize the command.

        Args:
            console: Console instance for output
            path: Configuration file to read and write
        """
        self.console = console
        self.path = path

    def show(self, as_json: bool = False) -> None:
        """Display current configuration settings."""
        try:
            config = Config.load(self.path)
        except ConfigurationError as exc:
            self.console.print_error(exc)
            raise typer.Exit(code=1) from exc

        display = config.to_display_dict()
        if as_json:
            typer.echo(json.dumps(display, indent=2))
            return

        self.console.print(f"[muted]{self.path}[/]")
        for table in config_tables(display):
            self.console.print(table)

    def set(self, key: str, value: str) -> None:
        """Set a configuration value.

        Examples:
            lookout config set analysis.default_weeks 12
            lookout config set storage.database_path ~/work/lookout.db

        Raises:
            typer.Exit: If configuration update fails
        """
        try:
            config = Config.load(self.path)
            config.set_value(key, value)
            config.dump(self.path)
            self.console.print_success(f"✓ Configuration updated: {key} = {value}")
        except ConfigurationError as exc:
            self.console.print_error(exc)
            raise typer.Exit(code=1) from exc

    def get(self, key: str) -> None:
        """Get a configuration value.

        Raises:
            typer.Exit: If key not found
        """
        try:
            config = Config.load(self.path)
            value = config.get_value(key)
        except ConfigurationError as exc:
            self.console.print_error(exc)
            raise typer.Exit(code=1) from exc
        typer.echo(f"{key} = {value}")
