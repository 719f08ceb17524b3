import pytest

from query_autocomplete.core.models import Schema

SCHEMA_FLAGS = {
    "name": {"string": ["Alice", "Bob", "alfred"]},
    "age": {"double": [30, 42.5], "null": True},
    "active": {"bool": True},
    "tags": {"array": True, "string": ["red", "blue"]},
    "address": {"object": True},
    "address.city": {"string": ["Paris", "Lyon"]},
    "address.country": {"string": ["FR"]},
    "created": {"date": True},
}


@pytest.fixture
def schema() -> Schema:
    return Schema.from_flags(SCHEMA_FLAGS, sampled=3)
