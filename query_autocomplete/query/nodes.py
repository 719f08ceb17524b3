"""
Parse tree nodes.

Every node keeps the exact raw substring it was read from, its absolute start
offset in the parsed text and a cursor. For source and key nodes the cursor is
an offset into raw; for object and array nodes it is an index into
properties/values (equal to their length when the cursor sits after the last
element). -1 means the edit cursor is not inside the node.
"""

from typing import List, Literal, Optional, Union

from pydantic import BaseModel, Field

NO_CURSOR = -1


class SourceNode(BaseModel):
    """Opaque span the parser did not promote."""

    type: Literal["source"] = "source"
    raw: str
    start: int = 0
    cursor: int = NO_CURSOR


class KeyNode(BaseModel):
    """Object key. raw spans leading whitespace up to and including ':'."""

    type: Literal["key"] = "key"
    raw: str
    start: int = 0
    cursor: int = NO_CURSOR
    name: str


class Property(BaseModel):
    key: Optional[KeyNode] = None
    value: "ParseNode"


class ObjectNode(BaseModel):
    type: Literal["object"] = "object"
    raw: str
    start: int = 0
    cursor: int = NO_CURSOR
    properties: List[Property] = Field(default_factory=list)

    @property
    def focused(self) -> Optional[Property]:
        """Property holding the cursor, if any."""
        if 0 <= self.cursor < len(self.properties):
            return self.properties[self.cursor]
        return None

    def key_names(self) -> List[str]:
        return [prop.key.name if prop.key else "" for prop in self.properties]


class ArrayNode(BaseModel):
    type: Literal["array"] = "array"
    raw: str
    start: int = 0
    cursor: int = NO_CURSOR
    values: List["ParseNode"] = Field(default_factory=list)

    @property
    def focused(self) -> Optional["ParseNode"]:
        if 0 <= self.cursor < len(self.values):
            return self.values[self.cursor]
        return None


ParseNode = Union[SourceNode, ObjectNode, ArrayNode]

Property.model_rebuild()
ObjectNode.model_rebuild()
ArrayNode.model_rebuild()
