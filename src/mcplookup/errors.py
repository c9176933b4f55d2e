"""Exception hierarchy for mcplookup.

All exceptions inherit from McpLookupError (single catch point).
Messages are written for the caller -- clear, actionable, no stack traces.
"""

from __future__ import annotations


class McpLookupError(Exception):
    """Base exception for all mcplookup errors."""


class InvalidQueryError(McpLookupError):
    """A discovery request is structurally malformed.

    ``field`` names the offending request field (dotted for nested fields,
    e.g. ``similar_to.threshold``).
    """

    def __init__(self, field: str, message: str) -> None:
        self.field = field
        super().__init__(f"Invalid '{field}': {message}")


class CatalogUnavailableError(McpLookupError):
    """The catalog store could not be read."""


class RecordError(McpLookupError):
    """A single catalog entry is unusable and must be skipped."""

    def __init__(self, key: str, message: str) -> None:
        self.key = key
        super().__init__(f"Unusable catalog record '{key}': {message}")


class CatalogFileError(McpLookupError):
    """A catalog file could not be loaded or parsed."""
