"""Commit classification, velocity and code review analytics for engineering teams."""

__version__ = "0.1.0"
