"""
Schema cache keyed by (connection, collection).

Each slot is absent, loading, or holds a schema stamped with the time it was
stored. Slots are only written by the load that moved them from absent (or
stale) to loading, so no locking is needed on a single event loop.
"""

import asyncio
import time
from typing import Awaitable, Callable, Dict, Optional, Set, Tuple, Union

import structlog

from query_autocomplete.core.exceptions import SchemaSampleError
from query_autocomplete.core.models import Schema

logger = structlog.get_logger(__name__)

CacheKey = Tuple[str, str]
Fetch = Callable[[], Awaitable[Schema]]


class _Loading:
    def __repr__(self) -> str:
        return "LOADING"


LOADING = _Loading()


class _Entry:
    __slots__ = ("schema", "stored_at")

    def __init__(self, schema: Schema, stored_at: float):
        self.schema = schema
        self.stored_at = stored_at


class SchemaCache:
    """
    Process-wide schema store with a freshness window.

    Args:
        ttl_seconds: How long a stored schema stays fresh
        clock: Monotonic time source, injectable for tests
    """

    def __init__(
        self,
        ttl_seconds: float = 3600.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._slots: Dict[CacheKey, Union[_Entry, _Loading]] = {}
        self._tasks: Set["asyncio.Task[Optional[Schema]]"] = set()

    def get(self, key: CacheKey) -> Optional[Schema]:
        """Return the fresh schema for key, or None if absent, loading or stale."""
        slot = self._slots.get(key)
        if isinstance(slot, _Entry) and self._is_fresh(slot):
            return slot.schema
        return None

    def is_loading(self, key: CacheKey) -> bool:
        return self._slots.get(key) is LOADING

    def put(self, key: CacheKey, schema: Schema) -> None:
        """Store a schema fetched outside of load()."""
        self._slots[key] = _Entry(schema, self._clock())

    def invalidate(self, key: CacheKey) -> None:
        """Drop a stored schema. An in-flight load is left alone."""
        if isinstance(self._slots.get(key), _Entry):
            del self._slots[key]

    async def load(self, key: CacheKey, fetch: Fetch) -> Optional[Schema]:
        """
        Return a fresh schema, fetching it if needed.

        Returns None while another load for the same key is in flight, or if
        sampling failed. Any failed fetch clears the slot so a later call
        retries; errors other than SchemaSampleError propagate.
        """
        slot = self._slots.get(key)
        if slot is LOADING:
            return None
        if isinstance(slot, _Entry) and self._is_fresh(slot):
            return slot.schema

        self._slots[key] = LOADING
        return await self._fill(key, fetch)

    def request(self, key: CacheKey, fetch: Fetch) -> Optional[Schema]:
        """
        Non-blocking lookup.

        Returns the fresh schema if there is one. Otherwise marks the slot as
        loading, starts a background load on the running event loop (unless
        one is in flight) and returns None.
        """
        schema = self.get(key)
        if schema is not None or self.is_loading(key):
            return schema

        self._slots[key] = LOADING
        task = asyncio.get_running_loop().create_task(self._fill(key, fetch))
        self._tasks.add(task)
        task.add_done_callback(self._on_task_done)
        return None

    async def _fill(self, key: CacheKey, fetch: Fetch) -> Optional[Schema]:
        logger.info("Sampling schema", connection=key[0], collection=key[1])
        try:
            schema = await fetch()
        except SchemaSampleError as e:
            self._slots.pop(key, None)
            logger.warning("Schema sampling failed", connection=key[0], collection=key[1], error=str(e))
            return None
        except Exception:
            self._slots.pop(key, None)
            raise

        self._slots[key] = _Entry(schema, self._clock())
        logger.info(
            "Schema loaded",
            connection=key[0],
            collection=key[1],
            sampled=schema.sampled,
            fields=len(schema.fields),
        )
        return schema

    def _on_task_done(self, task: "asyncio.Task[Optional[Schema]]") -> None:
        self._tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error("Background schema load crashed", error=repr(task.exception()))

    def _is_fresh(self, entry: _Entry) -> bool:
        return self._clock() - entry.stored_at < self.ttl_seconds
