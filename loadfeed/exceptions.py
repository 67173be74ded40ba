"""Custom exceptions for the loadfeed templating engine.

All loadfeed-specific exceptions inherit from LoadfeedError for unified error handling.
Each exception preserves the original cause chain for debugging.

Loader and configuration errors are fatal at scenario initialization. Per-invocation
timeouts and status mismatches are never raised; they are reported as failed outcomes.
"""

from __future__ import annotations

from typing import Any


class LoadfeedError(Exception):
    """Base exception for all loadfeed errors.

    Attributes:
        message: Human-readable error description
        context: Optional dictionary with additional debugging context
        original_error: Original exception that caused this error (if any)
    """

    def __init__(
        self,
        message: str,
        *args: object,
        context: dict[str, Any] | None = None,
        original_error: Exception | None = None,
    ) -> None:
        super().__init__(message, *args)
        self.message = message
        self.context = context or {}
        self.original_error = original_error

    def __str__(self) -> str:
        """Return formatted error message with context if available."""
        base = self.message
        if self.context:
            ctx_str = ", ".join(f"{k}={v!r}" for k, v in self.context.items())
            base = f"{base} [{ctx_str}]"
        if self.original_error:
            base = f"{base} (caused by: {type(self.original_error).__name__}: {self.original_error})"
        return base

    def with_context(self, **kwargs: Any) -> "LoadfeedError":
        """Add context to this error and return self for chaining."""
        self.context.update(kwargs)
        return self


class ConfigurationError(LoadfeedError):
    """Raised when a scenario definition is invalid.

    Common causes:
    - Config file not found or invalid YAML
    - Missing required fields (e.g. url)
    - Unrecognized HTTP method or feed strategy
    - Invalid values (e.g. timeout_ms <= 0)
    """


class DataSourceError(LoadfeedError):
    """Base class for failures while loading test data."""


class DataSourceNotFoundError(DataSourceError):
    """Raised when a file-backed data source does not exist."""


class SchemaError(DataSourceError):
    """Raised when a CSV file has no header row or a query returns no columns."""


class EmptyResultError(DataSourceError):
    """Raised when a data source yields zero data rows.

    An empty record set is a configuration error, not a valid "no data" state.
    """


class UnsupportedSourceError(DataSourceError):
    """Raised when the source kind or database provider is not registered.

    The message always names the offending value and lists the supported set.
    """
