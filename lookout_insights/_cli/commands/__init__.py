"""Command classes invoked from ``lookout_insights.cli``."""
