"""
Tolerant parser for partially typed query selectors.

Only a restricted grammar is understood: objects, arrays and opaque values.
Anything else is kept as a source span. The parser never raises; unclosed
delimiters and stray closers are recovered from, and the edit cursor is
relocated into every node the text is sliced into.
"""

import re
from typing import List, Optional

from query_autocomplete.query.nodes import (
    NO_CURSOR,
    ArrayNode,
    KeyNode,
    ObjectNode,
    ParseNode,
    Property,
    SourceNode,
)

ROOT = "root"
QUOTES = ("'", '"')
OPENERS = ("{", "[", "(", "'", '"')
CLOSER_TO_OPENER = {"}": "{", "]": "[", ")": "("}
OPENER_TO_CLOSER = {"{": "}", "[": "]", "(": ")", "'": "'", '"': '"'}

_NON_SPACE = re.compile(r"\S")
_OBJECT_CLOSED = re.compile(r"^(\s*\{)(.*)\}\s*,?$", re.DOTALL)
_OBJECT_OPEN = re.compile(r"^(\s*\{)(.*)$", re.DOTALL)
_ARRAY_CLOSED = re.compile(r"^(\s*\[)(.*)\]\s*,?$", re.DOTALL)
_ARRAY_OPEN = re.compile(r"^(\s*\[)(.*)$", re.DOTALL)


def slice_cursor(cursor: int, start: int, end: int) -> int:
    """
    Relocate a cursor into the window [start, end].

    Returns cursor - start when the cursor is inside the window (bounds
    included), otherwise -1.
    """
    if cursor == NO_CURSOR:
        return NO_CURSOR
    if start <= cursor <= end:
        return cursor - start
    return NO_CURSOR


class ExpressionParser:
    """
    Parses text plus an edit cursor into a ParseNode tree.

    Usage:
        tree = ExpressionParser().parse("{a: {$gt: 1}}", 5)
    """

    def parse(self, text: str, cursor: int) -> ParseNode:
        """
        Parse one value from text.

        Args:
            text: Raw text, possibly incomplete
            cursor: Caret offset in text (-1 or out of range for none)

        Returns:
            ObjectNode, ArrayNode or SourceNode
        """
        if cursor < 0:
            cursor = NO_CURSOR
        source = SourceNode(raw=text, cursor=cursor, start=0)
        return self.read_value(source)

    def read_value(self, source: SourceNode, use_stop_chars: bool = False) -> ParseNode:
        """
        Consume one value from the start of source.

        Delimiters are counted to find where the value ends; a top-level comma
        ends it too. Unclosed delimiters are not an error. When stop chars are
        on, a closer after the cursor that does not match the innermost open
        delimiter closes levels until its own opener, as in "{a: ['|], b: 2}".

        Args:
            source: Remaining text; advanced past the consumed value
            use_stop_chars: Apply the closer recovery described above

        Returns:
            The consumed value, promoted to an object or array when pure
        """
        raw = source.raw
        stack: List[str] = []
        mode = ROOT
        seems_pure = True
        first = ""

        i = 0
        while i < len(raw):
            c = raw[i]

            if mode != ROOT and c == OPENER_TO_CLOSER[mode]:
                mode = stack.pop()
            elif use_stop_chars and i >= source.cursor and mode != ROOT and c in CLOSER_TO_OPENER:
                target = CLOSER_TO_OPENER[c]
                while True:
                    mode = stack.pop()
                    if mode == ROOT or mode == target:
                        break
                if mode != ROOT:
                    mode = stack.pop()
            elif mode in QUOTES:
                if c == "\\":
                    i += 1
            elif c in OPENERS:
                if mode == ROOT and first:
                    # A second value at root, like "{a: 1} (x)"
                    seems_pure = False
                stack.append(mode)
                mode = c
                if not first:
                    first = c
            elif mode == ROOT and c == ",":
                break
            elif seems_pure and mode == ROOT and not c.isspace():
                seems_pure = False

            i += 1

        if not use_stop_chars and mode != ROOT and source.cursor != NO_CURSOR:
            return self.read_value(source, use_stop_chars=True)

        end = min(i + 1, len(raw))
        value = SourceNode(
            raw=raw[:end],
            cursor=slice_cursor(source.cursor, 0, i + 1),
            start=source.start,
        )
        self._advance(source, i + 1)

        if seems_pure and first == "{":
            return self._promote_object(value, closed=mode == ROOT) or value
        elif seems_pure and first == "[":
            return self._promote_array(value, closed=mode == ROOT) or value
        return value

    def read_key(self, source: SourceNode) -> Optional[KeyNode]:
        """
        Consume an object key and its ':' from the start of source.

        Keys may be bare (ended by ':') or quoted. Text between a closing
        quote and ':' is ignored, as 'x' in '"a"x: 2'. A key without ':'
        runs to the end of the text.

        Returns:
            The key, or None when only whitespace precedes ':' or the end
        """
        raw = source.raw
        mode = "start"
        name_start = -1
        name_end = -1

        i = 0
        while i < len(raw):
            c = raw[i]

            if mode == "start":
                if c.isspace():
                    pass
                elif c == ":":
                    break
                elif c in QUOTES:
                    mode = c
                    name_start = i + 1
                else:
                    mode = "bare"
                    name_start = i
            elif mode in QUOTES:
                if c == "\\":
                    i += 1
                elif c == mode:
                    mode = "end"
                    name_end = i
            elif mode == "bare":
                if c == ":":
                    name_end = i
                    break
            elif mode == "end":
                if c == ":":
                    break

            i += 1

        if name_start == -1:
            if i < len(raw):
                self._advance(source, i + 1)
            return None
        if name_end == -1:
            name_end = len(raw)

        key = KeyNode(
            raw=raw[: i + 1],
            start=source.start,
            name=raw[name_start:name_end],
            cursor=slice_cursor(source.cursor, name_start, name_end),
        )
        self._advance(source, i + 1)
        return key

    def _promote_object(self, source: SourceNode, closed: bool) -> Optional[ObjectNode]:
        body = self._body(source, _OBJECT_CLOSED if closed else _OBJECT_OPEN)
        if body is None:
            return None

        properties: List[Property] = []
        cursor = NO_CURSOR
        while _NON_SPACE.search(body.raw):
            had_cursor = body.cursor != NO_CURSOR
            key = self.read_key(body)
            value = self.read_value(body)
            properties.append(Property(key=key, value=value))
            if had_cursor and body.cursor == NO_CURSOR:
                cursor = len(properties) - 1

        if body.cursor != NO_CURSOR:
            cursor = len(properties)

        return ObjectNode(raw=source.raw, start=source.start, cursor=cursor, properties=properties)

    def _promote_array(self, source: SourceNode, closed: bool) -> Optional[ArrayNode]:
        body = self._body(source, _ARRAY_CLOSED if closed else _ARRAY_OPEN)
        if body is None:
            return None

        values: List[ParseNode] = []
        cursor = NO_CURSOR
        while _NON_SPACE.search(body.raw):
            had_cursor = body.cursor != NO_CURSOR
            values.append(self.read_value(body))
            if had_cursor and body.cursor == NO_CURSOR:
                cursor = len(values) - 1

        if body.cursor != NO_CURSOR:
            cursor = len(values)

        return ArrayNode(raw=source.raw, start=source.start, cursor=cursor, values=values)

    @staticmethod
    def _body(source: SourceNode, pattern: "re.Pattern[str]") -> Optional[SourceNode]:
        """Strip the opener (and closer) off a pure span."""
        match = pattern.match(source.raw)
        if match is None:
            return None

        before, inner = match.group(1), match.group(2)
        return SourceNode(
            raw=inner,
            cursor=slice_cursor(source.cursor, len(before), len(before) + len(inner)),
            start=source.start + len(before),
        )

    @staticmethod
    def _advance(source: SourceNode, count: int) -> None:
        source.cursor = slice_cursor(source.cursor, count, len(source.raw))
        source.raw = source.raw[count:]
        source.start += count


_default_parser = ExpressionParser()


def parse(text: str, cursor: int) -> ParseNode:
    """Parse text with the shared parser."""
    return _default_parser.parse(text, cursor)
