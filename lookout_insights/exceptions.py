"""Custom exceptions for the lookout analytics engine."""

from __future__ import annotations


class LookoutError(Exception):
    """Base exception for all lookout analytics errors."""
    pass


# =============================================================================
# Configuration Errors
# =============================================================================


class ConfigurationError(LookoutError):
    """Raised when there's a configuration problem."""
    pass


# =============================================================================
# Storage Errors
# =============================================================================


class StorageError(LookoutError):
    """Raised when the relational store cannot be read or written."""

    def __init__(self, message: str, operation: str | None = None):
        """Initialize storage error.

        Args:
            message: Error message
            operation: Store operation that failed (e.g., 'upsert_commits')
        """
        super().__init__(message)
        self.operation = operation


class SchemaError(StorageError):
    """Raised when the database schema cannot be created or is unusable."""
    pass


# =============================================================================
# Ingestion Errors
# =============================================================================


class IngestError(LookoutError):
    """Raised when exported activity rows cannot be ingested."""

    def __init__(self, message: str, row_index: int | None = None):
        """Initialize ingest error.

        Args:
            message: Error message
            row_index: Zero-based index of the offending row, if known
        """
        super().__init__(message)
        self.row_index = row_index


# =============================================================================
# Validation Errors
# =============================================================================


class ValidationError(LookoutError):
    """Base exception for validation errors."""
    pass


class InvalidInputError(ValidationError):
    """Raised when user input is invalid."""
    pass


class InvalidDateRangeError(ValidationError):
    """Raised when date range is invalid."""
    pass
