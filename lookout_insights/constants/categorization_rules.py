"""Rule tables driving the commit classifier.

Every table is ordered. The classifier walks them top to bottom and the first
matching entry wins, so reordering entries changes classification results.
"""

from __future__ import annotations

import re
from types import MappingProxyType
from typing import Mapping, Pattern, Tuple

# Categories are referenced by value here to keep this module free of model imports.
CATEGORY_VALUES: Tuple[str, ...] = (
    "feature",
    "bugfix",
    "refactor",
    "test",
    "docs",
    "chore",
    "merge",
    "other",
)

# =============================================================================
# Confidence levels
# =============================================================================

CONFIDENCE = {
    'merge': 0.95,
    'conventional_prefix': 0.95,
    'bracket_prefix': 0.90,
    'fallback': 0.5,
    'high_confidence': 0.85,  # message results at or above this skip file analysis
    'combine_file_min': 0.7,
    'combine_message_min': 0.6,
    'combine_bonus': 0.1,
    'combine_cap': 0.95,
}

# Minimum share of files that must match the dominant category
FILE_COVERAGE_THRESHOLD = 0.5

# =============================================================================
# Conventional commit prefixes
# =============================================================================

CONVENTIONAL_PREFIXES: Mapping[str, str] = MappingProxyType({
    'feat': 'feature',
    'feature': 'feature',
    'add': 'feature',
    'fix': 'bugfix',
    'bugfix': 'bugfix',
    'hotfix': 'bugfix',
    'bug': 'bugfix',
    'refactor': 'refactor',
    'refact': 'refactor',
    'test': 'test',
    'tests': 'test',
    'spec': 'test',
    'docs': 'docs',
    'doc': 'docs',
    'readme': 'docs',
    'chore': 'chore',
    'build': 'chore',
    'ci': 'chore',
    'deps': 'chore',
    'dependency': 'chore',
    'dependencies': 'chore',
    'style': 'chore',
    'lint': 'chore',
    'format': 'chore',
    'perf': 'chore',
    'performance': 'chore',
    'optimize': 'refactor',
    'wip': 'other',
    'merge': 'merge',
    'revert': 'other',
})

CONVENTIONAL_PREFIX_PATTERN = re.compile(r'^(\w+)(?:\([^)]+\))?[:\s]')
BRACKET_PREFIX_PATTERN = re.compile(r'^\[(\w+)\]')

# =============================================================================
# Keyword patterns (message body scan)
# =============================================================================

KEYWORD_PATTERNS: Tuple[Tuple[Pattern[str], str, float], ...] = (
    # Feature keywords
    (re.compile(r'\b(implement|add|create|introduce|new)\b', re.IGNORECASE), 'feature', 0.7),
    (re.compile(r'\b(feature|enhancement)\b', re.IGNORECASE), 'feature', 0.8),

    # Bugfix keywords
    (re.compile(r'\b(fix|resolve|repair|correct|patch)\b', re.IGNORECASE), 'bugfix', 0.75),
    (re.compile(r'\b(bug|issue|error|crash|broken)\b', re.IGNORECASE), 'bugfix', 0.7),

    # Refactor keywords
    (re.compile(r'\b(refactor|restructure|reorganize|simplify)\b', re.IGNORECASE), 'refactor', 0.8),
    (re.compile(r'\b(improve|enhance|optimize)\b', re.IGNORECASE), 'refactor', 0.6),
    (re.compile(r'\b(move|rename|extract)\b', re.IGNORECASE), 'refactor', 0.6),
    (re.compile(r'\b(cleanup|clean up|unused)\b', re.IGNORECASE), 'refactor', 0.6),

    # Test keywords
    (re.compile(r'\b(test|spec|coverage)\b', re.IGNORECASE), 'test', 0.7),

    # Docs keywords
    (re.compile(r'\b(document|documentation|readme|comment)\b', re.IGNORECASE), 'docs', 0.8),
    (re.compile(r'\b(typo|spelling)\b', re.IGNORECASE), 'docs', 0.5),

    # Chore keywords
    (
        re.compile(r'\b(update|upgrade|bump)\s+(\w+\s+)?(version|dependency|package)', re.IGNORECASE),
        'chore',
        0.8,
    ),
    (re.compile(r'\b(config|configuration|setup)\b', re.IGNORECASE), 'chore', 0.6),
)

# =============================================================================
# File path patterns
# =============================================================================

FILE_PATH_PATTERNS: Tuple[Tuple[Pattern[str], str, float], ...] = (
    # Test files
    (re.compile(r'tests?/', re.IGNORECASE), 'test', 0.9),
    (re.compile(r'__tests__/', re.IGNORECASE), 'test', 0.9),
    (re.compile(r'\.test\.[jt]sx?$', re.IGNORECASE), 'test', 0.9),
    (re.compile(r'\.spec\.[jt]sx?$', re.IGNORECASE), 'test', 0.9),
    (re.compile(r'(^|/)test_[^/]+\.py$', re.IGNORECASE), 'test', 0.9),

    # Documentation files
    (re.compile(r'^docs?/', re.IGNORECASE), 'docs', 0.9),
    (re.compile(r'readme', re.IGNORECASE), 'docs', 0.85),
    (re.compile(r'\.md$', re.IGNORECASE), 'docs', 0.7),
    (re.compile(r'changelog', re.IGNORECASE), 'docs', 0.8),
    (re.compile(r'contributing', re.IGNORECASE), 'docs', 0.8),

    # Config/chore files
    (re.compile(r'^\.github/', re.IGNORECASE), 'chore', 0.85),
    (re.compile(r'^\.circleci/', re.IGNORECASE), 'chore', 0.85),
    (re.compile(r'^\.gitlab-ci', re.IGNORECASE), 'chore', 0.85),
    (re.compile(r'package(-lock)?\.json$', re.IGNORECASE), 'chore', 0.7),
    (re.compile(r'yarn\.lock$', re.IGNORECASE), 'chore', 0.8),
    (re.compile(r'dockerfile', re.IGNORECASE), 'chore', 0.75),
    (re.compile(r'docker-compose', re.IGNORECASE), 'chore', 0.75),
    (re.compile(r'\.(eslint|prettier|babel|tsconfig)', re.IGNORECASE), 'chore', 0.8),
)

# Human readable labels used by breakdown summaries (order matters)
SUMMARY_LABELS: Tuple[Tuple[str, str], ...] = (
    ('feature', 'feature work'),
    ('bugfix', 'bug fixes'),
    ('refactor', 'refactoring'),
    ('test', 'tests'),
    ('docs', 'documentation'),
    ('chore', 'chores'),
)
