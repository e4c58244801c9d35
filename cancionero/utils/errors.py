"""Custom exception hierarchy for Cancionero.

All application exceptions inherit from :class:`CancioneroError`, which
carries an optional ``provider_name`` so error handlers can identify which
backing service (e.g. "mongodb", "socketio") caused the failure.

The hierarchy is organized by the layer that raises it:

    CancioneroError  (base -- catch-all for any cancionero error)
    +-- ValidationError          (bad or missing input fields -> 400)
    |   +-- InvalidArgumentError (malformed id / unknown status -> 400)
    +-- NotFoundError            (unknown document id -> 404)
    +-- UnauthorizedError        (missing / wrong admin key -> 401)
    +-- ConfigurationError       (startup / missing config -> 500)
    +-- StorageError             (database unavailable or failing -> 500)
    +-- CsvSchemaError           (catalog import: no artist/title columns)

The HTTP status for each class is decided in ``cancionero.api.middleware``;
the exceptions themselves stay transport-agnostic so the import CLI can
raise and catch the same types.
"""

from __future__ import annotations

from typing import Any


class CancioneroError(Exception):
    """Base exception for all Cancionero errors.

    Every subclass carries a human-readable ``message`` and an optional
    ``provider_name`` identifying which backing service triggered the
    error.  The ``__str__`` method prefixes the provider name in brackets
    for structured log output, e.g. ``[mongodb] Server selection timed out``.
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        provider_name: str | None = None,
    ) -> None:
        self._message = message
        self._provider_name = provider_name
        super().__init__(self._message)

    @property
    def message(self) -> str:
        return self._message

    @property
    def provider_name(self) -> str | None:
        return self._provider_name

    def __str__(self) -> str:
        if self._provider_name:
            return f"[{self._provider_name}] {self._message}"
        return self._message


# ---------------------------------------------------------------------------
# Client input errors
# ---------------------------------------------------------------------------


class ValidationError(CancioneroError):
    """Raised when request input fails validation.

    ``details`` is a list of ``{"field": ..., "message": ...}`` dicts, one
    per offending field, so the client can highlight every problem at once
    instead of fixing them one round-trip at a time.
    """

    def __init__(
        self,
        message: str = "Invalid input",
        details: list[dict[str, Any]] | None = None,
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)
        self._details = list(details or [])

    @property
    def details(self) -> list[dict[str, Any]]:
        return list(self._details)

    @property
    def fields(self) -> list[str]:
        """Names of the offending fields, in the order they were reported."""
        return [d["field"] for d in self._details if "field" in d]


class InvalidArgumentError(ValidationError):
    """Raised for a malformed identifier or an unrecognized enum value."""

    def __init__(
        self,
        message: str = "Invalid argument",
        details: list[dict[str, Any]] | None = None,
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, details=details, provider_name=provider_name)


class NotFoundError(CancioneroError):
    """Raised when an identifier does not resolve to an existing document."""

    def __init__(
        self,
        message: str = "Resource not found",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class UnauthorizedError(CancioneroError):
    """Raised when the admin credential is missing or does not match."""

    def __init__(
        self,
        message: str = "Unauthorized",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# Server-side errors
# ---------------------------------------------------------------------------


class ConfigurationError(CancioneroError):
    """Raised when configuration is invalid or missing."""

    def __init__(
        self,
        message: str = "Invalid or missing configuration",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class StorageError(CancioneroError):
    """Raised when the document database is unreachable or a write fails."""

    def __init__(
        self,
        message: str = "Storage operation failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# Catalog import errors
# ---------------------------------------------------------------------------


class CsvSchemaError(CancioneroError):
    """Raised when a catalog CSV has no usable artist/title columns.

    Fatal for the import: it is raised before any write reaches the store.
    """

    def __init__(
        self,
        message: str = "No artist/title columns detected in CSV",
        fields: list[str] | None = None,
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)
        self.fields = list(fields or [])
