import pytest

from query_autocomplete.core.models import FieldProfile, BsonKind, SuggestionKind
from query_autocomplete.query import SuggestionEngine, get_suggestions, parse


@pytest.fixture
def engine():
    return SuggestionEngine()


def suggest(text, cursor, schema):
    return get_suggestions(parse(text, cursor), schema)


def texts(suggestions):
    return [s.text for s in suggestions]


def test_field_prefix(schema):
    suggestions = suggest("{ag}", 3, schema)

    assert texts(suggestions) == ["age"]
    assert suggestions[0].kind is SuggestionKind.FIELD
    assert suggestions[0].highlight == ["", "ag", "e"]


def test_nested_field_after_dot(schema):
    assert texts(suggest("{address.c}", 10, schema)) == ["city", "country"]


def test_long_search_uses_ngrams(schema):
    assert texts(suggest("{countr}", 7, schema)) == ["address.country"]


def test_new_property_excludes_used_keys(schema):
    suggestions = suggest("{age: 1, }", 9, schema)

    assert suggestions[0].kind is SuggestionKind.NEW_PROPERTY
    assert texts(suggestions) == ["$and", "$nor", "$or", "active", "address"]


def test_operator_prefix(schema):
    suggestions = suggest("{age: {$g}}", 9, schema)

    assert texts(suggestions) == ["$gt", "$gte"]
    assert suggestions[0].kind is SuggestionKind.OPERATOR


def test_operators_depend_on_field_kinds(engine, schema):
    assert "$exists" in engine.suggest_operators("$e", schema.get("age"))
    assert "$exists" not in engine.suggest_operators("$e", schema.get("name"))
    assert "$size" in engine.suggest_operators("s", schema.get("tags"))
    assert engine.suggest_operators("$", None, exclude=["$eq"])[0] == "$gt"


def test_values_and_placeholders(schema):
    suggestions = suggest("{name: }", 7, schema)

    assert texts(suggestions) == ["'Alice'", "'Bob'", "'alfred'", "(string)"]
    assert suggestions[0].kind is SuggestionKind.VALUE


def test_value_prefix_is_case_insensitive(schema):
    assert texts(suggest("{name: 'al}", 10, schema)) == ["'Alice'", "'alfred'", "(string)"]


def test_double_quote_style_is_kept(schema):
    assert texts(suggest('{address.city: "P}', 17, schema)) == ['"Paris"', "(string)"]


def test_numbers_and_null(schema):
    assert texts(suggest("{age: {$gt: }}", 12, schema)) == ["30", "42.5", "(double)", "(null)"]


def test_bool_values(schema):
    assert texts(suggest("{active: }", 9, schema)) == ["false", "true", "(bool)"]


def test_exists_values_are_fixed(schema):
    assert texts(suggest("{age: {$exists: t}}", 17, schema)) == ["true", "false"]


def test_type_values(schema):
    assert texts(suggest("{age: {$type: 'do}}", 17, schema)) == ["'double'"]


def test_array_values(schema):
    assert texts(suggest("{tags: {$in: ['r]}}", 15, schema)) == ["'red'", "(string)", "(array)"]
    assert texts(suggest("{tags: ['red', ]}", 15, schema)) == ["'blue'", "'red'", "(string)", "(array)"]


def test_logical_operator_elements_are_finds(schema):
    assert texts(suggest("{$or: [{na}]}", 10, schema)) == ["name"]


def test_elem_match(schema):
    schema_with_items = schema.model_copy(
        update={"fields": {**schema.fields, "items": FieldProfile(kinds=frozenset({BsonKind.ARRAY, BsonKind.OBJECT}))}}
    )

    assert "$elemMatch" in texts(suggest("{items: {$e}}", 11, schema_with_items))


def test_nothing_to_suggest(schema):
    assert suggest("[1, 2]", 1, schema) == []
    assert suggest("{a: 1}", -1, schema) == []
    assert suggest("{ag}", 3, None) == []
    assert suggest("{age: {$where: }}", 14, schema) == []


def test_locate_does_not_need_schema(engine):
    focus = engine.locate(parse("{age: {$g}}", 9))

    assert focus.target == "operators"
    assert focus.search == "$g"
    assert focus.path == "age"


def test_and_nor_elements_are_finds(schema):
    assert texts(suggest("{$and: [{age: 1}, {na}]}", 21, schema)) == ["name"]
    assert texts(suggest("{$nor: [{ac}]}", 11, schema)) == ["active"]


def test_not_holds_a_field_expression(schema):
    suggestions = suggest("{age: {$not: {$g}}}", 16, schema)

    assert texts(suggestions) == ["$gt", "$gte"]
    assert suggestions[0].kind is SuggestionKind.OPERATOR


def test_plain_sub_document_is_a_value(engine, schema):
    text = "{address: {city: 'P'}}"
    focus = engine.locate(parse(text, 19))

    assert focus.target == "values"
    assert focus.path == "address"
    assert focus.search == "{city: 'P'}"
    assert texts(suggest(text, 19, schema)) == ["(object)"]


def test_mod_and_size_hints(schema):
    assert texts(suggest("{age: {$mod: }}", 12, schema)) == ["[divisor, remainder]"]
    assert texts(suggest("{tags: {$size: }}", 14, schema)) == ["(number)"]


def test_long_value_still_suggests(schema):
    text = "{name: '" + "x" * 1200 + "'}"
    suggestions = suggest(text, len(text) - 2, schema)

    assert texts(suggestions) == ["(string)"]
    assert suggestions[0].highlight == ["(string)"]
