"""
RecallCore Domain-Specific Exceptions
=====================================

This module defines a hierarchy of exceptions for consistent error handling
across the review scheduler.

Exception Hierarchy:
    RecallCoreError (base)
    └── IrrecoverableError (permanent, requires intervention)
        ├── ConfigurationError
        ├── ValidationError
        │   └── InvalidReviewDateError
        ├── DuplicateIdentifierError
        ├── QueueOrderingError
        ├── SnapshotError
        └── UnknownEventError

Usage Guidelines:
    - Events delivered in a state that does not handle them are ignored,
      never raised.
    - Raise exceptions for actual errors (duplicate ids, malformed input,
      broken ordering strategies).
    - Always include context in error messages.
    - Use error_code when surfacing errors to a host API.
"""

from typing import Any, Optional
from enum import Enum


class ErrorCategory(Enum):
    """Categories for error classification."""
    CONFIG = "CONFIG"
    VALIDATION = "VALIDATION"
    PROMPT = "PROMPT"
    QUEUE = "QUEUE"
    STORAGE = "STORAGE"
    SYSTEM = "SYSTEM"


class RecallCoreError(Exception):
    """
    Base exception for all RecallCore errors.

    Attributes:
        message: Human-readable error message
        error_code: Machine-readable error code for API responses
        context: Additional context about the error
        recoverable: Whether the error is potentially recoverable
    """

    error_code: str = "RECALL_CORE_ERROR"
    recoverable: bool = True
    category: ErrorCategory = ErrorCategory.SYSTEM

    def __init__(
        self,
        message: str,
        context: Optional[dict] = None,
        error_code: Optional[str] = None,
        recoverable: Optional[bool] = None
    ):
        super().__init__(message)
        self.message = message
        self.context = context or {}
        if error_code is not None:
            self.error_code = error_code
        if recoverable is not None:
            self.recoverable = recoverable

    def __str__(self) -> str:
        if self.context:
            return f"{self.message} | context={self.context}"
        return self.message

    def to_dict(self) -> dict:
        """Convert exception to dictionary for a JSON response."""
        result = {
            "error": self.message,
            "code": self.error_code,
            "recoverable": self.recoverable,
        }
        if self.context:
            result["context"] = self.context
        return result


class IrrecoverableError(RecallCoreError):
    """
    Base class for irrecoverable errors.

    Retrying the same call with the same input fails the same way:
    - Invalid configuration
    - Duplicate or malformed prompts
    - Ordering strategies that break the permutation contract
    """
    recoverable = False


# =============================================================================
# Configuration Errors
# =============================================================================

class ConfigurationError(IrrecoverableError):
    """Raised when configuration is invalid or missing."""
    error_code = "CONFIGURATION_ERROR"
    category = ErrorCategory.CONFIG

    def __init__(self, config_key: str, reason: str, context: Optional[dict] = None):
        ctx = {"config_key": config_key}
        if context:
            ctx.update(context)
        super().__init__(f"Configuration error for '{config_key}': {reason}", ctx)
        self.config_key = config_key


# =============================================================================
# Validation Errors
# =============================================================================

class ValidationError(IrrecoverableError):
    """Raised when input validation fails."""
    error_code = "VALIDATION_ERROR"
    category = ErrorCategory.VALIDATION

    def __init__(self, field: str, reason: str, value: Any = None, context: Optional[dict] = None):
        ctx = {"field": field}
        if value is not None:
            # Truncate large values
            value_str = str(value)
            if len(value_str) > 100:
                value_str = value_str[:100] + "..."
            ctx["value"] = value_str
        if context:
            ctx.update(context)
        super().__init__(f"Validation error for '{field}': {reason}", ctx)
        self.field = field
        self.reason = reason


class InvalidReviewDateError(ValidationError):
    """Raised when a next review date cannot be interpreted as a date."""
    error_code = "INVALID_REVIEW_DATE_ERROR"

    def __init__(self, value: Any, context: Optional[dict] = None):
        super().__init__(
            field="next_review_date",
            reason=f"cannot interpret {type(value).__name__} as a date",
            value=value,
            context=context,
        )


# =============================================================================
# Prompt Errors
# =============================================================================

class DuplicateIdentifierError(IrrecoverableError):
    """Raised when an add operation introduces an id that is already taken."""
    error_code = "DUPLICATE_IDENTIFIER_ERROR"
    category = ErrorCategory.PROMPT

    def __init__(self, prompt_id: str, source: str = "batch", context: Optional[dict] = None):
        ctx = {"prompt_id": prompt_id, "source": source}
        if context:
            ctx.update(context)
        super().__init__(f"Duplicate prompts with 'id': {prompt_id}", ctx)
        self.prompt_id = prompt_id
        self.source = source


# =============================================================================
# Queue Errors
# =============================================================================

class QueueOrderingError(IrrecoverableError):
    """Raised when an ordering strategy does not return a permutation of its input."""
    error_code = "QUEUE_ORDERING_ERROR"
    category = ErrorCategory.QUEUE

    def __init__(
        self,
        strategy: str,
        missing: Optional[list] = None,
        unexpected: Optional[list] = None,
        context: Optional[dict] = None,
    ):
        ctx = {
            "strategy": strategy,
            "missing": list(missing or []),
            "unexpected": list(unexpected or []),
        }
        if context:
            ctx.update(context)
        super().__init__(
            f"Ordering strategy '{strategy}' did not return a permutation of the due prompts",
            ctx,
        )
        self.strategy = strategy


# =============================================================================
# Snapshot Errors
# =============================================================================

class SnapshotError(IrrecoverableError):
    """Raised when a review snapshot cannot be read or restored."""
    error_code = "SNAPSHOT_ERROR"
    category = ErrorCategory.STORAGE

    def __init__(self, reason: str, context: Optional[dict] = None):
        super().__init__(f"Snapshot error: {reason}", context)
        self.reason = reason


# =============================================================================
# Event Errors
# =============================================================================

class UnknownEventError(IrrecoverableError, ValueError):
    """Raised when an event type is not part of the scheduler's vocabulary."""
    error_code = "UNKNOWN_EVENT_ERROR"
    category = ErrorCategory.VALIDATION

    def __init__(self, event_type: Any, supported_events: Optional[list] = None, context: Optional[dict] = None):
        ctx = {"event_type": str(event_type)}
        if supported_events:
            ctx["supported_events"] = supported_events
        if context:
            ctx.update(context)
        msg = f"Unknown event type '{event_type}'"
        if supported_events:
            msg += f". Supported: {', '.join(supported_events)}"
        super().__init__(msg, ctx)
        self.event_type = event_type


# =============================================================================
# Convenience Exports
# =============================================================================

__all__ = [
    # Base
    "RecallCoreError",
    "IrrecoverableError",
    "ErrorCategory",
    # Config
    "ConfigurationError",
    # Validation
    "ValidationError",
    "InvalidReviewDateError",
    # Prompts
    "DuplicateIdentifierError",
    # Queue
    "QueueOrderingError",
    # Snapshot
    "SnapshotError",
    # Events
    "UnknownEventError",
]
