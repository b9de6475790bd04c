"""Rule-based commit categorization.

Commits are classified from their message first. File paths are consulted only
when the message signal is weak, and a file signal either replaces the message
result (when it is stronger) or boosts its confidence (when both agree enough).
"""

from __future__ import annotations

import logging
from typing import Dict, Iterable, Optional, Sequence

from .constants import (
    BRACKET_PREFIX_PATTERN,
    CONFIDENCE,
    CONVENTIONAL_PREFIX_PATTERN,
    CONVENTIONAL_PREFIXES,
    FILE_COVERAGE_THRESHOLD,
    FILE_PATH_PATTERNS,
    KEYWORD_PATTERNS,
    SUMMARY_LABELS,
)
from .core.utils import round_half_up
from .models import CategoryBreakdown, CategoryResult, CommitCategory

logger = logging.getLogger(__name__)

__all__ = [
    "categorize_by_message",
    "categorize_by_files",
    "categorize_commit",
    "calculate_breakdown",
    "format_breakdown_as_percentages",
    "summarize_breakdown",
]


def categorize_by_message(message: Optional[str]) -> CategoryResult:
    """Categorize a commit from its message alone.

    Args:
        message: Raw commit message (may be empty)

    Returns:
        The first matching rule's category, or ``other`` at fallback confidence
    """
    raw = message or ""
    normalized = raw.strip().lower()

    if normalized.startswith("merge"):
        return CategoryResult(CommitCategory.MERGE, CONFIDENCE['merge'], "Merge commit detected")

    conventional = CONVENTIONAL_PREFIX_PATTERN.match(normalized)
    if conventional:
        prefix = conventional.group(1)
        if prefix in CONVENTIONAL_PREFIXES:
            return CategoryResult(
                CommitCategory(CONVENTIONAL_PREFIXES[prefix]),
                CONFIDENCE['conventional_prefix'],
                f"Conventional commit prefix: {prefix}",
            )

    bracket = BRACKET_PREFIX_PATTERN.match(normalized)
    if bracket:
        prefix = bracket.group(1)
        if prefix in CONVENTIONAL_PREFIXES:
            return CategoryResult(
                CommitCategory(CONVENTIONAL_PREFIXES[prefix]),
                CONFIDENCE['bracket_prefix'],
                f"Bracket prefix: {prefix}",
            )

    for pattern, category, confidence in KEYWORD_PATTERNS:
        if pattern.search(raw):
            return CategoryResult(
                CommitCategory(category),
                confidence,
                f"Keyword match: {pattern.pattern}",
            )

    logger.debug(f"No rule matched message {raw[:60]!r}; falling back to other")
    return CategoryResult(CommitCategory.OTHER, CONFIDENCE['fallback'], "No clear category detected")


def categorize_by_files(
    files: Optional[Sequence[str]],
    coverage: float = FILE_COVERAGE_THRESHOLD,
) -> Optional[CategoryResult]:
    """Categorize a commit from the paths it touches.

    Every file is tested against every path pattern; each match counts toward
    its category and raises that category's confidence to the highest seen.

    Returns:
        The dominant category when it covers at least ``coverage`` of the files,
        otherwise ``None``
    """
    if not files:
        return None

    # Insertion order decides ties between equally common categories
    matches: Dict[str, Dict[str, float]] = {}
    for path in files:
        for pattern, category, confidence in FILE_PATH_PATTERNS:
            if pattern.search(path):
                entry = matches.setdefault(category, {"count": 0, "confidence": 0.0})
                entry["count"] += 1
                entry["confidence"] = max(entry["confidence"], confidence)

    dominant: Optional[str] = None
    for category, entry in matches.items():
        if dominant is None or entry["count"] > matches[dominant]["count"]:
            dominant = category

    if dominant is None:
        return None

    count = int(matches[dominant]["count"])
    if count >= len(files) * coverage:
        return CategoryResult(
            CommitCategory(dominant),
            matches[dominant]["confidence"],
            f"File path analysis: {count}/{len(files)} files match {dominant}",
        )
    return None


def categorize_commit(
    message: Optional[str],
    files: Optional[Sequence[str]] = None,
    is_merge: bool = False,
    high_confidence: float = CONFIDENCE['high_confidence'],
    file_coverage: float = FILE_COVERAGE_THRESHOLD,
) -> CategoryResult:
    """Categorize a commit using its merge flag, message and file paths.

    Args:
        message: Commit message
        files: Optional list of changed file paths
        is_merge: Whether the commit has more than one parent
        high_confidence: Message confidence at which file paths are not consulted
        file_coverage: Share of files the dominant path category must cover

    Returns:
        CategoryResult with category, confidence and a diagnostic reason
    """
    if is_merge:
        return CategoryResult(CommitCategory.MERGE, CONFIDENCE['merge'], "Merge commit flag")

    message_result = categorize_by_message(message)
    if message_result.confidence >= high_confidence:
        return message_result

    file_result = categorize_by_files(files, file_coverage) if files else None
    if file_result is None:
        return message_result

    if file_result.confidence > message_result.confidence:
        return file_result

    if (
        file_result.confidence >= CONFIDENCE['combine_file_min']
        and message_result.confidence >= CONFIDENCE['combine_message_min']
    ):
        combined = (message_result.confidence + file_result.confidence) / 2 + CONFIDENCE['combine_bonus']
        return CategoryResult(
            message_result.category,
            min(CONFIDENCE['combine_cap'], combined),
            f"Combined: {message_result.reason} + {file_result.reason}",
        )

    return message_result


def calculate_breakdown(categories: Iterable[CommitCategory | str]) -> CategoryBreakdown:
    """Count commits per category in a single pass."""
    breakdown = CategoryBreakdown()
    for category in categories:
        breakdown.increment(CommitCategory(category))
        breakdown.total += 1
    return breakdown


def format_breakdown_as_percentages(breakdown: CategoryBreakdown) -> Dict[str, str]:
    """Express non-merge categories as rounded percentages of non-merge commits."""
    non_merge_total = breakdown.non_merge_total
    if non_merge_total == 0:
        return {CommitCategory.MERGE.value: "100%"}

    result: Dict[str, str] = {}
    for category in CommitCategory:
        if category is CommitCategory.MERGE:
            continue
        count = getattr(breakdown, category.value)
        if count > 0:
            result[category.value] = f"{round_half_up(count / non_merge_total * 100)}%"
    return result


def summarize_breakdown(breakdown: CategoryBreakdown) -> str:
    """Render a breakdown as prose, e.g. ``"60% feature work, 40% bug fixes"``."""
    non_merge_total = breakdown.non_merge_total
    if non_merge_total == 0:
        return f"{breakdown.merge} merge commits" if breakdown.merge > 0 else "No commits"

    parts = []
    for category, label in SUMMARY_LABELS:
        count = getattr(breakdown, category)
        if count:
            parts.append(f"{round_half_up(count / non_merge_total * 100)}% {label}")

    if not parts:
        return f"{non_merge_total} commits"
    return ", ".join(parts)
