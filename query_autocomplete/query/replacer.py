"""
Splice an accepted suggestion into the selector text.

Keys are replaced keeping the dotted prefix typed before the cursor and a
consistent quote style; new properties and array elements are inserted before
the container's closer; values replace the trimmed value span. The returned
cursor lands inside the inserted key name, or where the value template asks.
"""

import re
from typing import Any, Tuple, Union

import structlog

from query_autocomplete.core.exceptions import UnknownTemplateError
from query_autocomplete.core.models import Replacement, SuggestionKind
from query_autocomplete.query.nodes import NO_CURSOR, ArrayNode, KeyNode, ObjectNode
from query_autocomplete.query.parser import QUOTES
from query_autocomplete.query.suggest import escape

logger = structlog.get_logger(__name__)

CURSOR_MARK = "|"

# '|' marks where the cursor goes
TEMPLATES = {
    "(double)": "",
    "(number)": "",
    "(string)": "'|'",
    "(object)": "{|}",
    "(array)": "[|]",
    "(binData)": "BinData(0, '|')",
    "(objectId)": "ObjectId('|')",
    "(bool)": "true",
    "(date)": "ISODate('|')",
    "(null)": "null",
    "(regex)": "/|/",
    "(timestamp)": "Timestamp(|)",
    "(long)": "Long('|')",
    "(minKey)": "MinKey()",
    "(maxKey)": "MaxKey()",
}

_PLACEHOLDER = re.compile(r"^\(\w+\)$")
_BARE_KEY = re.compile(r"^[a-z_$][a-z0-9_$]*$", re.IGNORECASE)
_VALUE_SPAN = re.compile(r"^(\s*)(.*?)(\s*,?\s*)$", re.DOTALL)


def expand_template(text: str) -> Tuple[str, int]:
    """
    Resolve a value suggestion into (text to insert, cursor offset in it).

    Raises:
        UnknownTemplateError: For a '(typename)' without a template
    """
    if not _PLACEHOLDER.match(text):
        return text, len(text)

    template = TEMPLATES.get(text)
    if template is None:
        raise UnknownTemplateError(f"No replacement template for {text}")

    offset = template.find(CURSOR_MARK)
    if offset == -1:
        return template, len(template)
    return template.replace(CURSOR_MARK, "", 1), offset


class Replacer:
    """
    Applies suggestions to text.

    Usage:
        result = Replacer().replace(text, "age", SuggestionKind.FIELD, context)
    """

    def replace(
        self,
        base: str,
        suggestion: str,
        kind: Union[SuggestionKind, str],
        context: Any,
    ) -> Replacement:
        """
        Apply a suggestion.

        Args:
            base: The text the context node was parsed from
            suggestion: Accepted suggestion text
            kind: Suggestion kind
            context: ObjectNode for key kinds, value node (or ArrayNode to
                append to) for values

        Returns:
            New text and cursor
        """
        kind = SuggestionKind(kind)

        if kind is SuggestionKind.VALUE:
            if isinstance(context, ArrayNode) and context.focused is None:
                insert, offset = expand_template(suggestion)
                return self._insert(base, context, "[", "]", insert, offset)
            return self._replace_value(base, suggestion, context)

        if not isinstance(context, ObjectNode):
            logger.warning("Key suggestion without an object context", kind=kind.value)
            return Replacement(text=base, cursor=self._end_of(context))

        prop = context.focused
        if kind is SuggestionKind.NEW_PROPERTY or prop is None:
            return self._insert_property(base, context, suggestion)
        if prop.key is not None and prop.key.cursor != NO_CURSOR:
            return self._replace_key(base, prop.key, suggestion)

        logger.warning("Key suggestion without a focused key", kind=kind.value)
        return Replacement(text=base, cursor=self._end_of(context))

    def _replace_key(self, base: str, key: KeyNode, suggestion: str) -> Replacement:
        """
        Replace a key. With _ for blanks and | for the cursor:

            ___"ab.c|d.ef"xyz:
            key prefix ___"     name ab.cd.ef     key suffix "xyz:
            typed dotted prefix ab.  kept before the suggestion
        """
        raw, name = key.raw, key.name
        name_start = self._name_start(raw)
        key_prefix = raw[:name_start]
        key_suffix = raw[name_start + len(name):]
        typed = name[: key.cursor]
        name_prefix = typed[: typed.rfind(".") + 1]
        quote = key_prefix.strip()[:1]

        replacement = name_prefix + suggestion
        if _BARE_KEY.match(replacement):
            if quote:
                key_prefix = key_prefix[:-1]
            if key_suffix[:1] in QUOTES:
                key_suffix = key_suffix[1:]
            inserted = replacement
        else:
            if not quote:
                quote = "'"
                key_prefix += quote
            if key_suffix[:1] not in QUOTES:
                key_suffix = quote + key_suffix
            inserted = escape(replacement)
        if ":" not in key_suffix:
            key_suffix += ": "

        new_raw = key_prefix + inserted + key_suffix
        return Replacement(
            text=base[: key.start] + new_raw + base[key.start + len(raw):],
            cursor=key.start + len(key_prefix) + len(inserted),
        )

    def _insert_property(self, base: str, context: ObjectNode, name: str) -> Replacement:
        if _BARE_KEY.match(name):
            inserted = name
            offset = len(name)
        else:
            quote = self._quote_style(context)
            inserted = quote + escape(name) + quote
            offset = len(inserted) - 1
        return self._insert(base, context, "{", "}", inserted + ": ", offset)

    def _insert(
        self,
        base: str,
        container: Union[ObjectNode, ArrayNode],
        opener: str,
        closer: str,
        text: str,
        offset: int,
    ) -> Replacement:
        """Insert text as the last element of a container, before its closer."""
        end = container.start + len(container.raw)
        if isinstance(container, ObjectNode):
            last = container.properties[-1].value if container.properties else None
        else:
            last = container.values[-1] if container.values else None

        if last is None:
            after = container.start + container.raw.index(opener) + 1
            needs_comma = False
        else:
            after = min(last.start + len(last.raw), end)
            needs_comma = not last.raw.rstrip().endswith(",")

        tail = base[after:end]
        close_at = tail.find(closer)
        position = after + close_at if close_at != -1 else after + len(tail.rstrip())

        prefix = ""
        if needs_comma:
            prefix = ", "
        elif position > 0 and base[position - 1] == ",":
            prefix = " "

        return Replacement(
            text=base[:position] + prefix + text + base[position:],
            cursor=position + len(prefix) + offset,
        )

    def _replace_value(self, base: str, suggestion: str, context: Any) -> Replacement:
        match = _VALUE_SPAN.match(context.raw)
        lead, middle = match.group(1), match.group(2)
        insert, offset = expand_template(suggestion)

        start = context.start + len(lead)
        return Replacement(
            text=base[:start] + insert + base[start + len(middle):],
            cursor=start + offset,
        )

    @staticmethod
    def _name_start(raw: str) -> int:
        start = len(raw) - len(raw.lstrip())
        if raw[start:start + 1] in QUOTES:
            start += 1
        return start

    @staticmethod
    def _quote_style(context: ObjectNode) -> str:
        for prop in context.properties:
            if prop.key is not None:
                first = prop.key.raw.strip()[:1]
                if first in QUOTES:
                    return first
        return "'"

    @staticmethod
    def _end_of(node: Any) -> int:
        return node.start + len(node.raw)


_default_replacer = Replacer()


def replace(base: str, suggestion: str, kind: Union[SuggestionKind, str], context: Any) -> Replacement:
    """Apply a suggestion with the shared replacer."""
    return _default_replacer.replace(base, suggestion, kind, context)
