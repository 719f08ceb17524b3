"""
Schema inference from sampled documents.

Folds documents one at a time into a flat per-path type profile. Since
MongoDB is schemaless, the result is an approximation of the sampled data.
"""

import re
from datetime import datetime
from typing import Any, Dict, Iterable, Mapping, Optional

from bson.binary import Binary
from bson.int64 import Int64
from bson.max_key import MaxKey
from bson.min_key import MinKey
from bson.objectid import ObjectId
from bson.regex import Regex
from bson.timestamp import Timestamp

from query_autocomplete.core.models import BsonKind, Schema


def classify_value(value: Any) -> Optional[BsonKind]:
    """
    Map a decoded BSON value to its kind.

    Returns None for values the profile does not track (Decimal128, Code, ...).
    """
    # bool and Int64 are both int subclasses, check them first
    if isinstance(value, bool):
        return BsonKind.BOOL
    if isinstance(value, Int64):
        return BsonKind.LONG
    if isinstance(value, (int, float)):
        return BsonKind.DOUBLE
    if isinstance(value, str):
        return BsonKind.STRING
    if value is None:
        return BsonKind.NULL
    if isinstance(value, datetime):
        return BsonKind.DATE
    if isinstance(value, (Regex, re.Pattern)):
        return BsonKind.REGEX
    if isinstance(value, ObjectId):
        return BsonKind.OBJECT_ID
    if isinstance(value, (Binary, bytes)):
        return BsonKind.BIN_DATA
    if isinstance(value, Timestamp):
        return BsonKind.TIMESTAMP
    if isinstance(value, MinKey):
        return BsonKind.MIN_KEY
    if isinstance(value, MaxKey):
        return BsonKind.MAX_KEY
    if isinstance(value, (list, tuple)):
        return BsonKind.ARRAY
    if isinstance(value, Mapping):
        return BsonKind.OBJECT
    return None


class _ShapeNode:
    """Child names seen so far under one path, used to detect missing fields."""

    __slots__ = ("children",)

    def __init__(self):
        self.children: Optional[Dict[str, "_ShapeNode"]] = None


class SchemaProfiler:
    """
    Accumulates field profiles from documents.

    Usage:
        profiler = SchemaProfiler()
        profiler.add_many(documents)
        schema = profiler.build()
    """

    MAX_ENUM_VALUES = 10
    MAX_ENUM_STRING_LENGTH = 50

    def __init__(self):
        self._shape = _ShapeNode()
        self._flags: Dict[str, Dict[BsonKind, Any]] = {"": {}}
        self._count = 0

    @property
    def count(self) -> int:
        """Number of documents folded so far."""
        return self._count

    def add(self, document: Mapping[str, Any]) -> None:
        """Fold one top-level document into the profile."""
        self._count += 1
        self._visit_object(document, self._shape, "")

    def add_many(self, documents: Iterable[Mapping[str, Any]]) -> None:
        for document in documents:
            self.add(document)

    def build(self) -> Schema:
        """
        Freeze the accumulated profile.

        Returns:
            Immutable Schema keyed by dotted path (the root path is dropped)
        """
        fields = {}
        for path, flags in self._flags.items():
            if not path:
                continue
            fields[path] = {
                kind.value: list(value) if isinstance(value, list) else value
                for kind, value in flags.items()
            }
        return Schema.from_flags(fields, sampled=self._count)

    @staticmethod
    def _join(path: str, key: str) -> str:
        return f"{path}.{key}" if path else key

    def _visit_value(self, value: Any, shape: _ShapeNode, path: str) -> None:
        kind = classify_value(value)
        flags = self._flags[path]

        if kind is None:
            return
        elif kind is BsonKind.DOUBLE or kind is BsonKind.STRING:
            self._add_to_enum(flags, kind, value)
        elif kind is BsonKind.ARRAY:
            self._visit_array(value, shape, path)
        elif kind is BsonKind.OBJECT:
            self._visit_object(value, shape, path)
        else:
            flags[kind] = True

    def _visit_object(self, obj: Mapping[str, Any], shape: _ShapeNode, path: str) -> None:
        self._flags[path][BsonKind.OBJECT] = True

        had_children = True
        if shape.children is None:
            shape.children = {}
            had_children = False
        else:
            # Known children missing from this object
            for key in shape.children:
                if key not in obj:
                    self._flags[self._join(path, key)][BsonKind.NULL] = True

        for key, value in obj.items():
            key = str(key)
            child_path = self._join(path, key)
            child_flags = self._flags.setdefault(child_path, {})

            child = shape.children.get(key)
            if child is None:
                child = shape.children[key] = _ShapeNode()
                if had_children:
                    # New field in an object that was seen before
                    child_flags[BsonKind.NULL] = True

            self._visit_value(value, child, child_path)

    def _visit_array(self, values: Iterable[Any], shape: _ShapeNode, path: str) -> None:
        self._flags[path][BsonKind.ARRAY] = True

        if shape.children is None:
            shape.children = {}
        else:
            for key in shape.children:
                self._flags[self._join(path, key)][BsonKind.NULL] = True

        # Elements share the array's path
        for element in values:
            self._visit_value(element, shape, path)

    def _add_to_enum(self, flags: Dict[BsonKind, Any], kind: BsonKind, value: Any) -> None:
        current = flags.get(kind)

        if current is True:
            return
        if isinstance(value, str) and len(value) > self.MAX_ENUM_STRING_LENGTH:
            flags[kind] = True
            return
        if current is None:
            current = flags[kind] = []

        if value not in current:
            current.append(value)
            if len(current) > self.MAX_ENUM_VALUES:
                flags[kind] = True
