import asyncio

import pytest

from query_autocomplete.core.exceptions import SchemaSampleError
from query_autocomplete.core.models import Schema
from query_autocomplete.schema import SchemaCache

KEY = ("default", "users")


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


def make_fetch(schema=None, error=None):
    calls = []

    async def fetch():
        calls.append(1)
        if error is not None:
            raise error
        return schema

    fetch.calls = calls
    return fetch


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cache(clock):
    return SchemaCache(ttl_seconds=60, clock=clock)


@pytest.mark.asyncio
async def test_load_stores_schema(cache):
    schema = Schema.from_flags({"a": {"bool": True}}, sampled=1)
    fetch = make_fetch(schema)

    assert await cache.load(KEY, fetch) is schema
    assert cache.get(KEY) is schema
    assert await cache.load(KEY, fetch) is schema
    assert len(fetch.calls) == 1


@pytest.mark.asyncio
async def test_stale_schema_is_reloaded(cache, clock):
    first = Schema(sampled=1)
    second = Schema(sampled=2)

    await cache.load(KEY, make_fetch(first))
    clock.now = 61
    assert cache.get(KEY) is None
    assert await cache.load(KEY, make_fetch(second)) is second


@pytest.mark.asyncio
async def test_failed_fetch_clears_slot(cache):
    fetch = make_fetch(error=SchemaSampleError("boom"))

    assert await cache.load(KEY, fetch) is None
    assert not cache.is_loading(KEY)
    assert cache.get(KEY) is None


@pytest.mark.asyncio
async def test_request_loads_in_background(cache):
    schema = Schema(sampled=5)
    release = asyncio.Event()

    async def fetch():
        await release.wait()
        return schema

    assert cache.request(KEY, fetch) is None
    assert cache.is_loading(KEY)
    # A second request while loading does not start another fetch
    assert cache.request(KEY, fetch) is None
    assert await cache.load(KEY, fetch) is None

    release.set()
    for _ in range(5):
        await asyncio.sleep(0)

    assert not cache.is_loading(KEY)
    assert cache.request(KEY, fetch) is schema


@pytest.mark.asyncio
async def test_put_and_invalidate(cache):
    schema = Schema(sampled=3)

    cache.put(KEY, schema)
    assert cache.get(KEY) is schema

    cache.invalidate(KEY)
    assert cache.get(KEY) is None


@pytest.mark.asyncio
async def test_unexpected_error_clears_slot_and_propagates(cache):
    fetch = make_fetch(error=RuntimeError("boom"))

    with pytest.raises(RuntimeError):
        await cache.load(KEY, fetch)
    assert not cache.is_loading(KEY)


@pytest.mark.asyncio
async def test_background_crash_clears_slot(cache):
    fetch = make_fetch(error=RuntimeError("boom"))

    assert cache.request(KEY, fetch) is None
    for _ in range(5):
        await asyncio.sleep(0)
    assert not cache.is_loading(KEY)

    # The next request retries
    assert cache.request(KEY, fetch) is None
    for _ in range(5):
        await asyncio.sleep(0)
    assert len(fetch.calls) == 2
    assert not cache.is_loading(KEY)
