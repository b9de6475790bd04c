"""Rich console pre-configured for lookout output."""

from __future__ import annotations

from typing import Any

from rich.console import Console as RichConsole
from rich.markup import escape
from rich.theme import Theme

_default_theme = Theme(
    {
        "accent": "bold rgb(255,149,0)",
        "muted": "dim",
        "title": "bold rgb(120,200,255)",
        "label": "bold rgb(160,160,160)",
        "value": "rgb(240,240,240)",
        "success": "bold rgb(104,255,203)",
        "warning": "bold rgb(255,213,128)",
        "danger": "bold rgb(255,128,128)",
        "up": "bold green",
        "down": "bold red",
        "stable": "dim",
    }
)


class Console(RichConsole):
    """Rich console with verbose/quiet switches and message helpers."""

    def __init__(self, *args: Any, **kwargs: Any) -> None:  # noqa: D401 - mirror rich API
        theme = kwargs.pop("theme", None) or _default_theme
        super().__init__(*args, theme=theme, **kwargs)
        self._verbose = False
        self._quiet = False

    def set_verbose(self, verbose: bool) -> None:
        """Enable or disable verbose output."""
        self._verbose = verbose

    def set_quiet(self, quiet: bool) -> None:
        """Enable or disable quiet mode."""
        self._quiet = quiet

    def print(self, *args: Any, **kwargs: Any) -> None:
        """Print with respect to quiet mode."""
        if not self._quiet:
            super().print(*args, **kwargs)

    def print_error(self, error: Exception | str, context: str = "") -> None:
        """Print error message with consistent formatting.

        Errors are printed even in quiet mode.

        Args:
            error: Exception instance or error message string
            context: Optional context prefix (e.g., "Import failed:")
        """
        prefix = f"[danger]{context}[/]" if context else "[danger]Error:[/]"
        super().print(f"{prefix} {escape(str(error))}")

    def print_success(self, message: str) -> None:
        self.print(f"[success]{message}[/]")

    def print_warning(self, message: str) -> None:
        self.print(f"[warning]{message}[/]")


__all__ = ["Console"]
