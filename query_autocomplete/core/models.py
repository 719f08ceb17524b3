"""
Shared data models for the autocomplete system.
"""

from enum import Enum
from typing import Any, Dict, FrozenSet, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field


class BsonKind(str, Enum):
    """Value kinds recorded per field while sampling."""

    DOUBLE = "double"
    STRING = "string"
    OBJECT = "object"
    ARRAY = "array"
    BIN_DATA = "binData"
    OBJECT_ID = "objectId"
    BOOL = "bool"
    DATE = "date"
    NULL = "null"
    REGEX = "regex"
    TIMESTAMP = "timestamp"
    LONG = "long"
    MIN_KEY = "minKey"
    MAX_KEY = "maxKey"


# Kinds whose observed values are enumerated
ENUMERABLE_KINDS = (BsonKind.DOUBLE, BsonKind.STRING)


class FieldProfile(BaseModel):
    """Type profile of one field path."""

    model_config = ConfigDict(frozen=True)

    kinds: FrozenSet[BsonKind] = frozenset()
    doubles: Optional[Tuple[float, ...]] = None  # None once not enumerable
    strings: Optional[Tuple[str, ...]] = None
    children: Dict[str, "FieldProfile"] = Field(default_factory=dict)

    def has(self, kind: BsonKind) -> bool:
        return kind in self.kinds

    @property
    def nullable(self) -> bool:
        return BsonKind.NULL in self.kinds

    @classmethod
    def from_flags(cls, flags: Dict[str, Any]) -> "FieldProfile":
        """
        Build a profile from the flag document form.

        Args:
            flags: Mapping like {"double": [10, 20], "string": True, "null": True}

        Returns:
            Equivalent FieldProfile (without children)
        """
        kinds = set()
        enums: Dict[str, Optional[Tuple[Any, ...]]] = {}
        for name, value in flags.items():
            kind = BsonKind(name)
            if not value:
                continue
            kinds.add(kind)
            if kind in ENUMERABLE_KINDS and isinstance(value, (list, tuple)):
                enums[kind.value] = tuple(value)

        return cls(
            kinds=frozenset(kinds),
            doubles=enums.get(BsonKind.DOUBLE.value),
            strings=enums.get(BsonKind.STRING.value),
        )

    def to_flags(self) -> Dict[str, Any]:
        """Inverse of from_flags."""
        flags: Dict[str, Any] = {}
        for kind in BsonKind:
            if kind not in self.kinds:
                continue
            if kind is BsonKind.DOUBLE and self.doubles is not None:
                flags[kind.value] = list(self.doubles)
            elif kind is BsonKind.STRING and self.strings is not None:
                flags[kind.value] = list(self.strings)
            else:
                flags[kind.value] = True
        return flags


class Schema(BaseModel):
    """Flat schema inferred from a sample: dotted path -> field profile."""

    model_config = ConfigDict(frozen=True)

    fields: Dict[str, FieldProfile] = Field(default_factory=dict)
    sampled: int = 0

    def get(self, path: str) -> Optional[FieldProfile]:
        return self.fields.get(path)

    def paths(self) -> List[str]:
        return list(self.fields.keys())

    @classmethod
    def from_flags(cls, fields: Dict[str, Dict[str, Any]], sampled: int = 0) -> "Schema":
        """
        Build a schema from {path: flags}, linking children by dotted path.
        """
        profiles = {path: FieldProfile.from_flags(flags) for path, flags in fields.items()}
        linked: Dict[str, FieldProfile] = {}

        # Deepest paths first so parents link already-linked children
        for path in sorted(profiles, key=lambda p: p.count("."), reverse=True):
            prefix = path + "."
            children = {
                child[len(prefix):]: linked[child]
                for child in linked
                if child.startswith(prefix) and "." not in child[len(prefix):]
            }
            linked[path] = profiles[path].model_copy(update={"children": children})

        return cls(fields={path: linked[path] for path in profiles}, sampled=sampled)

    def to_flags(self) -> Dict[str, Dict[str, Any]]:
        return {path: profile.to_flags() for path, profile in self.fields.items()}


class SuggestionKind(str, Enum):
    """What an accepted suggestion replaces."""

    FIELD = "field"
    OPERATOR = "operator"
    VALUE = "value"
    NEW_PROPERTY = "newProperty"


class Suggestion(BaseModel):
    """A single completion candidate."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    text: str
    kind: SuggestionKind
    highlight: List[str] = Field(default_factory=list)  # odd indexes are highlighted
    context: Optional[Any] = Field(default=None, exclude=True)


class Replacement(BaseModel):
    """Text after accepting a suggestion."""

    text: str
    cursor: int


class AutoCompleteConfig(BaseModel):
    """Configuration for the autocomplete service."""

    connections: Dict[str, str] = Field(default_factory=dict)
    sample_size: int = 1000
    sample_time_budget: float = 10.0
    schema_ttl_seconds: float = 3600.0
    log_level: str = "INFO"
    api_host: str = "0.0.0.0"
    api_port: int = 8000
