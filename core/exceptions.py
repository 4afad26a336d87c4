"""
Custom exceptions for the sync pipeline with structured error context.

This module provides the exception hierarchy used from the source of truth
through validation to the Universe API. Each exception includes context
information for debugging and for the error message persisted back onto
the source record.

Exception Hierarchy:
    SyncException (base)
    ├── ConfigurationError (non-retryable)
    ├── SourceError
    │   ├── SourceFetchError
    │   └── PersistenceError
    ├── ValidationError
    │   └── DataFormatError
    ├── RemoteError
    │   ├── TransportError
    │   │   ├── RateLimitError
    │   │   └── AuthenticationError
    │   ├── RemoteApiError
    │   └── PublishError
    ├── BatchCatastrophicError
    └── RetryableError / NonRetryableError (mixins)
"""

from typing import Optional, Dict, Any, List
from datetime import datetime, timezone


class SyncException(Exception):
    """
    Base exception for all sync-related errors.

    Attributes:
        message: Human-readable error message
        context: Additional context information (record id, endpoint, etc.)
        original_exception: The original exception that was caught (if any)
    """

    def __init__(
        self,
        message: str,
        context: Optional[Dict[str, Any]] = None,
        original_exception: Optional[Exception] = None
    ):
        self.message = message
        self.context = context or {}
        self.original_exception = original_exception
        self.timestamp = datetime.now(timezone.utc)

        # Add timestamp to context
        self.context["error_timestamp"] = self.timestamp.isoformat()

        # Chain original exception if provided
        super().__init__(message)
        if original_exception:
            self.__cause__ = original_exception

    def __str__(self) -> str:
        """Format error message with context."""
        base_msg = f"{self.__class__.__name__}: {self.message}"

        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            base_msg += f" | Context: {context_str}"

        if self.original_exception:
            base_msg += f" | Caused by: {type(self.original_exception).__name__}: {str(self.original_exception)}"

        return base_msg

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/storage."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "context": self.context,
            "timestamp": self.timestamp.isoformat(),
            "original_error": str(self.original_exception) if self.original_exception else None
        }


# ============================================================================
# Retry Strategy Mixins
# ============================================================================

class RetryableError(SyncException):
    """
    Mixin for errors that should trigger retry logic.

    Use this for transient errors like:
    - Network timeouts and connection resets
    - Rate limiting (HTTP 429)
    - Service unavailable (HTTP 5xx)
    - API-level mutation errors reported by Universe
    """
    pass


class NonRetryableError(SyncException):
    """
    Mixin for errors that should NOT trigger retry logic.

    Use this for permanent errors like:
    - Missing configuration
    - Malformed source data that slipped past validation
    """
    pass


class ConfigurationError(NonRetryableError):
    """Raised when a required setting (credentials, table name) is missing."""
    pass


# ============================================================================
# Source-of-truth Errors
# ============================================================================

class SourceError(SyncException):
    """Base exception for source-of-truth (Airtable / CSV) failures."""
    pass


class SourceFetchError(SourceError):
    """
    Exception raised when candidate records cannot be fetched.

    This is a run-level failure: the run aborts before any record is touched.

    Context should include:
        - backend: airtable or csv
        - table_name / file_path
        - status_code: HTTP status code (if applicable)
    """
    pass


class PersistenceError(SourceError):
    """
    Exception raised when a status write-back fails.

    Logged by the status sink and never retried; the record's decided
    outcome is left unchanged.

    Context should include:
        - record_id: Source record identifier
        - fields: Names of the fields being written
    """
    pass


# ============================================================================
# Validation Errors
# ============================================================================

class ValidationError(SyncException):
    """
    Exception raised when a record fails the validation checklist.

    Context should include:
        - record_id: Source record identifier
        - errors: List of validation error messages
    """

    def __init__(
        self,
        message: str,
        errors: Optional[List[str]] = None,
        context: Optional[Dict[str, Any]] = None,
        original_exception: Optional[Exception] = None
    ):
        super().__init__(message, context, original_exception)
        self.errors = errors or []
        if self.errors:
            self.context["errors"] = self.errors


class DataFormatError(NonRetryableError, ValidationError):
    """Malformed field value detected while building a request payload."""
    pass


# ============================================================================
# Remote (Universe) Errors
# ============================================================================

class RemoteError(SyncException):
    """Base exception for Universe API failures."""
    pass


class TransportError(RetryableError, RemoteError):
    """
    Network or HTTP-level failure talking to a remote endpoint.

    Context should include:
        - url: The endpoint that failed
        - status_code: HTTP status code (if applicable)
        - response_body: Response body (truncated if large)
    """

    def __init__(
        self,
        message: str,
        context: Optional[Dict[str, Any]] = None,
        original_exception: Optional[Exception] = None,
        status_code: Optional[int] = None
    ):
        super().__init__(message, context, original_exception)
        self.status_code = status_code
        if status_code is not None:
            self.context["status_code"] = status_code


class RateLimitError(TransportError):
    """Rate limiting errors (HTTP 429) that should be retried with backoff."""

    def __init__(
        self,
        message: str,
        context: Optional[Dict[str, Any]] = None,
        original_exception: Optional[Exception] = None
    ):
        super().__init__(message, context, original_exception, status_code=429)


class RemoteApiError(RetryableError, RemoteError):
    """
    The transport call succeeded but Universe returned a non-empty error list.

    Attributes:
        api_errors: Error strings from the mutation payload or GraphQL response
    """

    def __init__(
        self,
        message: str,
        api_errors: Optional[List[str]] = None,
        context: Optional[Dict[str, Any]] = None,
        original_exception: Optional[Exception] = None
    ):
        super().__init__(message, context, original_exception)
        self.api_errors = api_errors or []


class AuthenticationError(TransportError):
    """
    The token endpoint rejected the client credentials (HTTP 400, 401, 403).

    Retried like any other transport failure of a create.
    """
    pass


class PublishError(RemoteError):
    """Failure in the optional post-creation publish step. Never fatal to a record."""
    pass


# ============================================================================
# Batch Errors
# ============================================================================

class BatchCatastrophicError(SyncException):
    """
    Exception raised when the batch dispatch itself fails.

    Not attributable to any single record: every record in the batch is
    marked as an error.

    Context should include:
        - batch_index: Zero-based batch position
        - batch_size: Number of records in the batch
    """
    pass
