"""Selector parsing, suggestion and replacement components."""

from query_autocomplete.query.nodes import (
    NO_CURSOR,
    ArrayNode,
    KeyNode,
    ObjectNode,
    ParseNode,
    Property,
    SourceNode,
)
from query_autocomplete.query.parser import ExpressionParser, parse, slice_cursor
from query_autocomplete.query.replacer import Replacer, expand_template, replace
from query_autocomplete.query.suggest import Focus, SuggestionEngine, get_suggestions

__all__ = [
    "NO_CURSOR",
    "ArrayNode",
    "KeyNode",
    "ObjectNode",
    "ParseNode",
    "Property",
    "SourceNode",
    "ExpressionParser",
    "parse",
    "slice_cursor",
    "Replacer",
    "expand_template",
    "replace",
    "Focus",
    "SuggestionEngine",
    "get_suggestions",
]
