"""Core helpers shared by the CLI and the analytics modules."""
