"""kvcollections exception hierarchy.

This module defines traceable domain errors with clear boundaries.
Each subsystem raises a specific error type for debuggability.
"""

from __future__ import annotations


class KVCollectionsError(Exception):
    """Base exception for all kvcollections failures."""


class KVConfigError(KVCollectionsError):
    """Raised for invalid runtime configuration."""


class MissingCredentialError(KVConfigError):
    """Raised when one or more credential variables are unset or empty."""

    def __init__(self, missing_variables: tuple[str, ...]) -> None:
        self.missing_variables = missing_variables
        super().__init__(
            "Cloudflare credential environment variables not found: "
            f"{', '.join(missing_variables)}. "
            "Set each variable to a non-empty value and retry."
        )


class TransportError(KVCollectionsError):
    """Raised when the KV REST API answers with a non-success status."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        reason: str | None = None,
        key: str | None = None,
    ) -> None:
        self.status_code = status_code
        self.reason = reason
        self.key = key
        super().__init__(message)


class DocumentParseError(KVCollectionsError):
    """Raised for malformed document front matter."""


class CollectionRegistryError(KVCollectionsError):
    """Raised for invalid collection registration or lookup."""
