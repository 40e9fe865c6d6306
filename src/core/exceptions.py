# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Error taxonomy for scope resolution and statistics.

This module defines the exception hierarchy shared by all domains:
- AccessError: Base exception for all access/statistics errors
- UnauthenticatedError: No resolvable caller
- UnauthorizedError: Caller role not allowed for the operation
- UpstreamError: Remote row store failure (aborts the whole operation)
- InconsistentDataError: Reference-data integrity violation
"""


class AccessError(Exception):
    """Base exception for all access and statistics errors.

    Attributes:
        message: Human-readable error description.
        details: Optional dictionary with additional error context.
    """

    def __init__(self, message: str, details: dict | None = None):
        """Initialize access error.

        Args:
            message: Human-readable error description.
            details: Optional dictionary with additional error context.
        """
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def __str__(self) -> str:
        """Return string representation with details if available."""
        if self.details:
            return f"{self.message} - Details: {self.details}"
        return self.message


class UnauthenticatedError(AccessError):
    """Raised when no caller can be resolved from the request."""

    pass


class UnauthorizedError(AccessError):
    """Raised when the caller's role does not allow the operation.

    Attributes:
        role: Role of the caller, if known.
    """

    def __init__(self, message: str, role: str | None = None, details: dict | None = None):
        """Initialize unauthorized error.

        Args:
            message: Human-readable error description.
            role: Role of the caller.
            details: Optional dictionary with additional error context.
        """
        super().__init__(message, details)
        self.role = role


class UpstreamError(AccessError):
    """Raised when a remote row store call fails.

    Upstream failures abort the requested operation; they are never
    mapped to an empty result.

    Attributes:
        original_error: The underlying exception, if any.
    """

    def __init__(
        self,
        message: str,
        original_error: Exception | None = None,
        details: dict | None = None,
    ):
        """Initialize upstream error.

        Args:
            message: Human-readable error description.
            original_error: The exception raised by the store or driver.
            details: Optional dictionary with additional error context.
        """
        super().__init__(message, details)
        self.original_error = original_error

    def __str__(self) -> str:
        """Return string representation including the original error."""
        base = super().__str__()
        if self.original_error:
            return f"{base}: {self.original_error}"
        return base


class InconsistentDataError(AccessError):
    """Raised when reference data violates an integrity rule.

    Statistics and scope computations absorb this condition and skip
    the offending node; only strict lookups raise it.
    """

    pass
