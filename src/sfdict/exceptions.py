from __future__ import annotations

from typing import Optional


class MissingCredentialsError(RuntimeError):
    """Raised when the required Salesforce env vars are not present."""

    def __init__(self, missing: list[str]):
        self.missing = missing
        super().__init__("Missing required environment variables: " + ", ".join(missing))


class SchemaResolutionError(RuntimeError):
    """Base class for failures while resolving the object set."""


class UserNotFound(SchemaResolutionError):
    """The username did not resolve to exactly one User record."""

    def __init__(self, username: str, matches: int = 0):
        self.username = username
        self.matches = matches
        super().__init__(f"User not found: {username!r} ({matches} matching records)")


class ObjectDescribeFailed(SchemaResolutionError):
    """Describe call for a single sObject failed."""

    def __init__(self, object_name: str, reason: Optional[str] = None):
        self.object_name = object_name
        msg = f"Could not describe object {object_name!r}"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)


class RowCountFailed(SchemaResolutionError):
    """COUNT() probe for an sObject failed; never treated as zero rows."""

    def __init__(self, object_name: str, reason: Optional[str] = None):
        self.object_name = object_name
        msg = f"Could not count rows of {object_name!r}"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)


class CatalogUnavailable(SchemaResolutionError):
    """Transient failure talking to the metadata / query endpoints."""

    def __init__(self, operation: str, reason: Optional[str] = None):
        self.operation = operation
        msg = f"Salesforce catalog unavailable during {operation}"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)
