"""Constants for the lookout analytics engine.

Constants are organised into two modules:
- categorization_rules: ordered rule tables and confidence levels used by the classifier
- analysis_thresholds: velocity, review health and display limits
"""

from __future__ import annotations

from lookout_insights.constants.analysis_thresholds import (
    DISPLAY_LIMITS,
    PR_STATES,
    REVIEW_HEALTH_THRESHOLDS,
    REVIEW_STATES,
    SECONDS_PER_HOUR,
    VELOCITY_THRESHOLDS,
)
from lookout_insights.constants.categorization_rules import (
    BRACKET_PREFIX_PATTERN,
    CATEGORY_VALUES,
    CONFIDENCE,
    CONVENTIONAL_PREFIX_PATTERN,
    CONVENTIONAL_PREFIXES,
    FILE_COVERAGE_THRESHOLD,
    FILE_PATH_PATTERNS,
    KEYWORD_PATTERNS,
    SUMMARY_LABELS,
)

__all__ = [
    "BRACKET_PREFIX_PATTERN",
    "CATEGORY_VALUES",
    "CONFIDENCE",
    "CONVENTIONAL_PREFIX_PATTERN",
    "CONVENTIONAL_PREFIXES",
    "DISPLAY_LIMITS",
    "FILE_COVERAGE_THRESHOLD",
    "FILE_PATH_PATTERNS",
    "KEYWORD_PATTERNS",
    "PR_STATES",
    "REVIEW_HEALTH_THRESHOLDS",
    "REVIEW_STATES",
    "SECONDS_PER_HOUR",
    "SUMMARY_LABELS",
    "VELOCITY_THRESHOLDS",
]
