"""
Exceptions raised by the autocomplete system.

User input never raises: malformed selectors degrade to opaque nodes and
unexpected shapes produce no suggestions. These cover configuration,
data source and programming errors.
"""


class AutoCompleteError(Exception):
    """Base class for autocomplete errors."""


class UnknownConnectionError(AutoCompleteError):
    """The requested connection name is not configured."""

    def __init__(self, connection: str):
        super().__init__(f"Invalid connection name: {connection!r}")
        self.connection = connection


class SchemaSampleError(AutoCompleteError):
    """Sampling a collection failed."""


class UnknownTemplateError(AutoCompleteError, LookupError):
    """A '(typename)' placeholder has no replacement template."""
