"""Analysis thresholds and aggregation constants."""

from __future__ import annotations

# =============================================================================
# Velocity
# =============================================================================

VELOCITY_THRESHOLDS = {
    'default_weeks': 8,
    'trend_percent': 5.0,  # |change| above this is up/down, otherwise stable
    'days_per_week': 7,
}

# =============================================================================
# Review health
# =============================================================================

REVIEW_HEALTH_THRESHOLDS = {
    'stale_pr_days': 3,
    'load_balance_cv_weight': 50,
    'load_balance_max': 100,
    'load_balance_min': 0,
    'min_reviewers_for_balance': 2,
}

REVIEW_STATES = {
    'approved': 'approved',
    'changes_requested': 'changes_requested',
    'commented': 'commented',
    'dismissed': 'dismissed',
}

PR_STATES = ('open', 'closed', 'merged')

# =============================================================================
# Display limits
# =============================================================================

DISPLAY_LIMITS = {
    'reviewer_stats': 10,
    'pending_reviewers': 5,
    'top_collaborators': 5,
}

SECONDS_PER_HOUR = 3600
