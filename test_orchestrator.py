import asyncio

import pytest
from pymongo.errors import ConfigurationError

from fakes import FakeSampler
from query_autocomplete import AutoCompleteOrchestrator
from query_autocomplete.adapters.mongodb import MongoSampler
from query_autocomplete.core.exceptions import SchemaSampleError, UnknownConnectionError
from query_autocomplete.core.models import Schema, SuggestionKind


async def wait_loaded(orchestrator, collection):
    for _ in range(200):
        if not orchestrator.cache.is_loading(("default", collection)):
            return
        await asyncio.sleep(0.01)


@pytest.mark.asyncio
async def test_get_schema_waits_and_caches(schema):
    sampler = FakeSampler(schema)
    orchestrator = AutoCompleteOrchestrator(sampler)

    assert await orchestrator.get_schema("default", "users", wait=True) is schema
    assert await orchestrator.get_schema("default", "users", wait=True) is schema
    assert sampler.calls == [("default", "users")]


@pytest.mark.asyncio
async def test_get_schema_propagates_failures():
    orchestrator = AutoCompleteOrchestrator(FakeSampler(error="down"))

    with pytest.raises(SchemaSampleError):
        await orchestrator.get_schema("default", "users", wait=True)


@pytest.mark.asyncio
async def test_unknown_connection(schema):
    orchestrator = AutoCompleteOrchestrator(FakeSampler(schema))

    with pytest.raises(UnknownConnectionError):
        await orchestrator.suggest("other", "users", "ag", 2)


@pytest.mark.asyncio
async def test_suggest_reports_loading_then_suggests(schema):
    orchestrator = AutoCompleteOrchestrator(FakeSampler(schema))

    first = await orchestrator.suggest("default", "users", "ag", 2)
    assert first == {"suggestions": [], "loading": True}

    await wait_loaded(orchestrator, "users")
    second = await orchestrator.suggest("default", "users", "ag", 2)

    assert second["loading"] is False
    assert [s.text for s in second["suggestions"]] == ["age"]


@pytest.mark.asyncio
async def test_failed_background_sample_is_not_loading():
    orchestrator = AutoCompleteOrchestrator(FakeSampler(error="down"))

    await orchestrator.suggest("default", "users", "ag", 2)
    await wait_loaded(orchestrator, "users")

    assert await orchestrator.suggest("default", "users", "ag", 2) == {"suggestions": [], "loading": True}
    await wait_loaded(orchestrator, "users")


def test_replace_works_on_the_selector_body(schema):
    orchestrator = AutoCompleteOrchestrator(FakeSampler(schema))

    result = orchestrator.replace("ag", 2, "age", SuggestionKind.FIELD)
    assert (result.text, result.cursor) == ("age: ", 3)

    result = orchestrator.replace("age: 1, ", 8, "name", "newProperty")
    assert (result.text, result.cursor) == ("age: 1, name: ", 12)

    result = orchestrator.replace("name: ", 6, "(string)", "value")
    assert (result.text, result.cursor) == ("name: ''", 7)


def test_replace_without_focus_is_a_no_op(schema):
    orchestrator = AutoCompleteOrchestrator(FakeSampler(schema))

    result = orchestrator.replace("age: 1", -1, "age", "field")
    assert (result.text, result.cursor) == ("age: 1", -1)


def test_close_closes_sampler():
    sampler = FakeSampler()
    AutoCompleteOrchestrator(sampler).close()

    assert sampler.closed


@pytest.mark.asyncio
async def test_unclosed_operator_object():
    schema = Schema.from_flags({"age": {"double": [10, 20]}})
    orchestrator = AutoCompleteOrchestrator(FakeSampler(schema))
    await orchestrator.get_schema("default", "users", wait=True)

    result = await orchestrator.suggest("default", "users", "age: {$g", 8)

    assert [s.text for s in result["suggestions"]] == ["$gt", "$gte"]
    assert all(s.kind is SuggestionKind.OPERATOR for s in result["suggestions"])


@pytest.mark.asyncio
async def test_background_connection_failure_is_not_loading():
    def client_factory(uri):
        raise ConfigurationError("bad uri")

    orchestrator = AutoCompleteOrchestrator(
        MongoSampler({"default": "mongodb+srv://nowhere"}, client_factory=client_factory)
    )

    assert await orchestrator.suggest("default", "users", "ag", 2) == {"suggestions": [], "loading": True}
    await wait_loaded(orchestrator, "users")

    assert not orchestrator.cache.is_loading(("default", "users"))


def test_replace_in_unclosed_body_keeps_outer_braces_out(schema):
    orchestrator = AutoCompleteOrchestrator(FakeSampler(schema))

    result = orchestrator.replace("tags: [1, ", 10, "2", "value")

    assert (result.text, result.cursor) == ("tags: [1, 2 ", 11)
