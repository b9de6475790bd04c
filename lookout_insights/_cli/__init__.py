"""Command implementations backing the typer CLI."""
