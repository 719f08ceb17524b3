"""Core interfaces and models for the autocomplete system."""

from query_autocomplete.core.interfaces import (
    ISchemaSampler,
)
from query_autocomplete.core.models import (
    BsonKind,
    FieldProfile,
    Schema,
    Suggestion,
    SuggestionKind,
    Replacement,
    AutoCompleteConfig,
)
from query_autocomplete.core.exceptions import (
    AutoCompleteError,
    UnknownConnectionError,
    SchemaSampleError,
    UnknownTemplateError,
)

__all__ = [
    "ISchemaSampler",
    "BsonKind",
    "FieldProfile",
    "Schema",
    "Suggestion",
    "SuggestionKind",
    "Replacement",
    "AutoCompleteConfig",
    "AutoCompleteError",
    "UnknownConnectionError",
    "SchemaSampleError",
    "UnknownTemplateError",
]
