"""
Context-sensitive suggestions for MongoDB find selectors.

The selector structure is:

    {name: {$ne: 'John'}}
    ^      ^     ^
    |      |     +- value
    |      +- field expression
    +- find

Fields are suggested in the find context, operators in the field expression
context and values at value positions. Walking the parse tree to the cursor
(locate) does not need the schema; generating the candidates does.
"""

from typing import Any, List, Optional

from pydantic import BaseModel, Field

from query_autocomplete.core.models import (
    BsonKind,
    FieldProfile,
    Schema,
    Suggestion,
    SuggestionKind,
)
from query_autocomplete.query.nodes import NO_CURSOR, ArrayNode, ObjectNode, ParseNode
from query_autocomplete.search.fuzzy import FuzzyMatcher
from query_autocomplete.search.ngram import FieldCandidate, NGramIndex

LOGICAL_OPERATORS = ("$or", "$and", "$nor")
COMPARISON_OPERATORS = ("$eq", "$ne", "$gt", "$gte", "$lt", "$lte")
ARRAY_OPERATORS = ("$in", "$nin", "$all")
BASE_OPERATORS = COMPARISON_OPERATORS + ("$in", "$nin", "$not", "$type")

# Placeholder order for value suggestions
PLACEHOLDER_KINDS = (
    BsonKind.DOUBLE,
    BsonKind.STRING,
    BsonKind.OBJECT,
    BsonKind.ARRAY,
    BsonKind.BIN_DATA,
    BsonKind.OBJECT_ID,
    BsonKind.BOOL,
    BsonKind.DATE,
    BsonKind.NULL,
    BsonKind.REGEX,
    BsonKind.TIMESTAMP,
    BsonKind.LONG,
    BsonKind.MIN_KEY,
    BsonKind.MAX_KEY,
)

TYPE_NAMES = (
    "double", "string", "object", "array", "binData", "objectId", "bool", "date",
    "null", "regex", "javascript", "javascriptWithScope", "int", "timestamp",
    "long", "minKey", "maxKey", "number",
)

EXISTS_VALUES = ("true", "false")
MOD_HINT = "[divisor, remainder]"
SIZE_HINT = "(number)"
MAX_SUGGESTIONS = 5
SHORT_SEARCH = 3


class Focus(BaseModel):
    """
    What the cursor points at.

    target is "fields", "operators" or "values". path is the dotted prefix of
    the enclosing object for fields and the field path otherwise.
    """

    target: str
    kind: SuggestionKind
    search: str = ""
    path: str = ""
    context: Any  # node the suggestion applies to, kept by identity
    exclude: List[str] = Field(default_factory=list)
    choices: Optional[List[str]] = None
    filter_choices: bool = True


def format_number(value: float) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def escape(text: str) -> str:
    """Escape a string to put between quotes."""
    return text.replace("\\", "\\\\").replace("'", "\\'").replace('"', '\\"')


def _join(prefix: str, key: str) -> str:
    return f"{prefix}.{key}" if prefix else key


class SuggestionEngine:
    """
    Produces ranked completions for a parsed selector.

    Usage:
        engine = SuggestionEngine()
        suggestions = engine.get_suggestions(parse("{ag}", 3), schema)
    """

    def __init__(self, matcher: Optional[FuzzyMatcher] = None):
        self.matcher = matcher or FuzzyMatcher()

    def get_suggestions(self, tree: ParseNode, schema: Optional[Schema]) -> List[Suggestion]:
        """
        Suggest completions at the cursor.

        Returns an empty list when there is no schema, the root is not an
        object or nothing is focused.
        """
        if schema is None:
            return []

        focus = self.locate(tree)
        if focus is None:
            return []

        if focus.target == "fields":
            texts = self.suggest_fields(focus.search, schema, focus.path, focus.exclude)
            query = focus.search[focus.search.rfind(".") + 1:]
        elif focus.target == "operators":
            texts = self.suggest_operators(focus.search, schema.get(focus.path), focus.exclude)
            query = focus.search
        elif focus.choices is not None:
            texts = self._suggest_choices(focus.search, focus.choices, focus.filter_choices)
            query = focus.search.strip()
        else:
            texts = self.suggest_values(focus.search, schema.get(focus.path))
            query = focus.search.strip()

        return [
            Suggestion(
                text=text,
                kind=focus.kind,
                highlight=self.matcher.highlight(text, query),
                context=focus.context,
            )
            for text in texts
        ]

    def locate(self, tree: ParseNode) -> Optional[Focus]:
        """Walk the tree along the cursor to find what should be suggested."""
        if not isinstance(tree, ObjectNode):
            return None
        return self._locate_in_find(tree, "")

    def _locate_in_find(self, parsed: ObjectNode, prefix: str) -> Optional[Focus]:
        keys = parsed.key_names()

        if parsed.cursor == NO_CURSOR:
            return None
        if parsed.cursor == len(parsed.properties):
            return Focus(
                target="fields",
                kind=SuggestionKind.NEW_PROPERTY,
                path=prefix,
                context=parsed,
                exclude=keys,
            )

        prop = parsed.properties[parsed.cursor]
        key = prop.key.name if prop.key else ""
        value = prop.value

        if prop.key is not None and prop.key.cursor != NO_CURSOR:
            del keys[parsed.cursor]
            return Focus(
                target="fields",
                kind=SuggestionKind.FIELD,
                search=key[: prop.key.cursor],
                path=prefix,
                context=parsed,
                exclude=keys,
            )

        if key in LOGICAL_OPERATORS:
            # Each element is a find of its own
            if not isinstance(value, ArrayNode):
                return None
            element = value.focused
            if not isinstance(element, ObjectNode):
                return None
            return self._locate_in_find(element, prefix)

        path = _join(prefix, key)
        if isinstance(value, ArrayNode):
            return self._locate_array_value(value, path)
        if isinstance(value, ObjectNode):
            return self._locate_in_field_expression(value, path)
        return self._value_focus(value, path)

    def _locate_in_field_expression(self, parsed: ObjectNode, path: str) -> Optional[Focus]:
        keys = parsed.key_names()

        if any(not key.startswith("$") for key in keys):
            # Not an operator object, like {b: 2} in {a: {b: 2}}
            return self._value_focus(parsed, path)

        if parsed.cursor == NO_CURSOR:
            return None
        if parsed.cursor == len(parsed.properties):
            return Focus(
                target="operators",
                kind=SuggestionKind.NEW_PROPERTY,
                path=path,
                context=parsed,
                exclude=keys,
            )

        prop = parsed.properties[parsed.cursor]
        key = prop.key.name if prop.key else ""
        value = prop.value

        if prop.key is not None and prop.key.cursor != NO_CURSOR:
            del keys[parsed.cursor]
            return Focus(
                target="operators",
                kind=SuggestionKind.OPERATOR,
                search=key[: prop.key.cursor],
                path=path,
                context=parsed,
                exclude=keys,
            )

        if key in COMPARISON_OPERATORS:
            return self._value_focus(value, path)
        if key in ARRAY_OPERATORS:
            if not isinstance(value, ArrayNode):
                return None
            return self._locate_array_value(value, path)
        if key == "$not":
            if not isinstance(value, ObjectNode):
                return None
            return self._locate_in_field_expression(value, path)
        if key == "$exists":
            focus = self._value_focus(value, path)
            focus.choices = list(EXISTS_VALUES)
            focus.filter_choices = False
            return focus
        if key == "$type":
            focus = self._value_focus(value, path)
            quote = self._quote_for(focus.search)
            focus.choices = [quote + name + quote for name in TYPE_NAMES]
            return focus
        if key in ("$mod", "$size"):
            focus = self._value_focus(value, path)
            focus.choices = [MOD_HINT if key == "$mod" else SIZE_HINT]
            focus.filter_choices = False
            return focus
        if key == "$elemMatch":
            if not isinstance(value, ObjectNode):
                return None
            return self._locate_in_find(value, path)

        # Unknown operator
        return None

    def _locate_array_value(self, value: ArrayNode, path: str) -> Optional[Focus]:
        if value.cursor == NO_CURSOR:
            return None
        element = value.focused
        if element is None:
            # After the last element: insert a new one
            return Focus(target="values", kind=SuggestionKind.VALUE, path=path, context=value)
        return self._value_focus(element, path)

    @staticmethod
    def _value_focus(value: ParseNode, path: str) -> Focus:
        search = value.raw.strip()
        if search.endswith(","):
            search = search[:-1].rstrip()
        return Focus(
            target="values",
            kind=SuggestionKind.VALUE,
            search=search,
            path=path,
            context=value,
        )

    def suggest_fields(
        self,
        search: str,
        schema: Schema,
        prefix: str = "",
        exclude: Optional[List[str]] = None,
    ) -> List[str]:
        """
        Suggest field paths for a partially typed key.

        search="a.b", prefix="" -> paths under "a." matching "b"
        search="a", prefix="x" -> paths under "x." matching "a"

        Returns:
            Up to 5 texts relative to the enclosing object's prefix plus the
            typed dotted part
        """
        exclude = exclude or []
        last_dot = search.rfind(".")
        key_prefix = search[: last_dot + 1]
        path_prefix = (prefix + "." if prefix else "") + key_prefix
        object_prefix = prefix + "." if prefix else ""
        field = search[last_dot + 1:]

        candidates: List[FieldCandidate] = []
        if not path_prefix:
            candidates.extend(
                FieldCandidate.from_path(op) for op in LOGICAL_OPERATORS if op not in exclude
            )

        for path in schema.paths():
            if not path.startswith(path_prefix) or path == path_prefix:
                continue
            if path[len(object_prefix):] in exclude:
                continue
            candidates.append(FieldCandidate.from_path(path[len(path_prefix):]))

        field_lower = field.lower()
        if len(field) <= SHORT_SEARCH:
            matches = [
                candidate for candidate in candidates
                if any(term.startswith(field_lower) for term in candidate.terms)
            ]
            matches.sort(key=lambda c: (len(c.terms), c.text))
        else:
            scored = NGramIndex(candidates).search([field_lower])
            scored.sort(key=lambda m: (len(m.value.terms), -m.score))
            matches = [m.value for m in scored]

        return [candidate.text for candidate in matches[:MAX_SUGGESTIONS]]

    def suggest_operators(
        self,
        search: str,
        field_schema: Optional[FieldProfile],
        exclude: Optional[List[str]] = None,
    ) -> List[str]:
        """Suggest query operators applicable to a field."""
        exclude = exclude or []
        operators = list(BASE_OPERATORS)

        if field_schema is not None:
            if field_schema.nullable:
                operators.append("$exists")
            if field_schema.has(BsonKind.DOUBLE):
                operators.append("$mod")
            if field_schema.has(BsonKind.ARRAY) and field_schema.has(BsonKind.OBJECT):
                operators.append("$elemMatch")
            if field_schema.has(BsonKind.ARRAY):
                operators.extend(["$size", "$all"])

        if not search.startswith("$"):
            search = "$" + search

        matches = sorted(op for op in operators if op not in exclude and op.startswith(search))
        return matches[:MAX_SUGGESTIONS]

    def suggest_values(self, search: str, field_schema: Optional[FieldProfile]) -> List[str]:
        """
        Suggest sampled values, then one '(kind)' placeholder per observed kind.
        """
        if field_schema is None:
            return []

        search = search.strip()
        quote = self._quote_for(search)

        values: List[str] = []
        if field_schema.doubles is not None:
            values.extend(format_number(value) for value in field_schema.doubles)
        if field_schema.strings is not None:
            values.extend(quote + escape(value) + quote for value in field_schema.strings)
        if field_schema.has(BsonKind.BOOL):
            values.extend(EXISTS_VALUES)

        texts = self._prefix_filter(values, search)
        texts.extend(f"({kind.value})" for kind in PLACEHOLDER_KINDS if field_schema.has(kind))
        return texts

    def _suggest_choices(self, search: str, choices: List[str], filter_choices: bool) -> List[str]:
        if not filter_choices:
            return list(choices)
        return self._prefix_filter(choices, search.strip())

    @staticmethod
    def _prefix_filter(values: List[str], search: str) -> List[str]:
        search_lower = search.lower()
        matches = sorted({value for value in values if value.lower().startswith(search_lower)})
        return matches[:MAX_SUGGESTIONS]

    @staticmethod
    def _quote_for(search: str) -> str:
        search = search.strip()
        return '"' if search.startswith('"') else "'"


_default_engine = SuggestionEngine()


def get_suggestions(tree: ParseNode, schema: Optional[Schema]) -> List[Suggestion]:
    """Suggest completions with the shared engine."""
    return _default_engine.get_suggestions(tree, schema)
