"""
Autocomplete orchestrator - main entry point.

Coordinates schema sampling, caching, parsing, suggestion and replacement
behind one interface.
"""

import asyncio
from typing import Any, Dict, List, Optional, Union

import structlog

from query_autocomplete.core.exceptions import UnknownConnectionError
from query_autocomplete.core.interfaces import ISchemaSampler
from query_autocomplete.core.models import (
    AutoCompleteConfig,
    Replacement,
    Schema,
    Suggestion,
    SuggestionKind,
)
from query_autocomplete.query.parser import ExpressionParser
from query_autocomplete.query.replacer import Replacer
from query_autocomplete.query.suggest import SuggestionEngine
from query_autocomplete.schema.cache import SchemaCache

logger = structlog.get_logger(__name__)


class AutoCompleteOrchestrator:
    """
    Main orchestrator for selector autocompletion.

    The editor works on the body of the find object, so text passed to
    suggest() and replace() is wrapped in braces before parsing and unwrapped
    afterwards.
    """

    def __init__(
        self,
        sampler: ISchemaSampler,
        cache: Optional[SchemaCache] = None,
        parser: Optional[ExpressionParser] = None,
        engine: Optional[SuggestionEngine] = None,
        replacer: Optional[Replacer] = None,
    ):
        """
        Initialize orchestrator with a data source adapter.

        Args:
            sampler: Database-specific schema sampler
            cache: Schema cache (one-hour freshness by default)
            parser: Selector parser
            engine: Suggestion engine
            replacer: Suggestion replacer
        """
        self.sampler = sampler
        self.cache = cache or SchemaCache()
        self.parser = parser or ExpressionParser()
        self.engine = engine or SuggestionEngine()
        self.replacer = replacer or Replacer()

    @classmethod
    def from_mongodb(
        cls,
        connections: Dict[str, str],
        sample_size: int = 1000,
        time_budget: float = 10.0,
        schema_ttl_seconds: float = 3600.0,
    ) -> "AutoCompleteOrchestrator":
        """
        Create orchestrator for MongoDB.

        Args:
            connections: Connection name -> MongoDB URI with a default database
            sample_size: Number of documents sampled per collection
            time_budget: Seconds a sample may take
            schema_ttl_seconds: How long a sampled schema stays fresh

        Returns:
            Configured AutoCompleteOrchestrator for MongoDB
        """
        from query_autocomplete.adapters.mongodb import MongoSampler

        sampler = MongoSampler(connections, sample_size=sample_size, time_budget=time_budget)
        return cls(sampler=sampler, cache=SchemaCache(ttl_seconds=schema_ttl_seconds))

    @classmethod
    def from_config(cls, config: AutoCompleteConfig) -> "AutoCompleteOrchestrator":
        return cls.from_mongodb(
            connections=config.connections,
            sample_size=config.sample_size,
            time_budget=config.sample_time_budget,
            schema_ttl_seconds=config.schema_ttl_seconds,
        )

    async def get_schema(self, connection: str, collection: str, wait: bool = False) -> Optional[Schema]:
        """
        Get the schema of a collection.

        Args:
            connection: Configured connection name
            collection: Collection name
            wait: Sample now and propagate failures instead of loading in the
                background

        Returns:
            The schema, or None while it is loading (wait=False only)

        Raises:
            UnknownConnectionError: If the connection name is not configured
            SchemaSampleError: If sampling fails (wait=True only)
        """
        self._check_connection(connection)
        key = (connection, collection)

        if not wait:
            return self.cache.request(key, lambda: self._sample(connection, collection))

        schema = self.cache.get(key)
        if schema is None:
            schema = await self._sample(connection, collection)
            self.cache.put(key, schema)
        return schema

    async def suggest(self, connection: str, collection: str, text: str, cursor: int) -> Dict[str, Any]:
        """
        Suggest completions for a selector body.

        Args:
            connection: Configured connection name
            collection: Collection name
            text: Selector body, without the enclosing braces
            cursor: Caret offset in text

        Returns:
            Dictionary with suggestions and whether the schema is still loading
        """
        schema = await self.get_schema(connection, collection)
        if schema is None:
            loading = self.cache.is_loading((connection, collection))
            logger.debug("No schema yet", connection=connection, collection=collection, loading=loading)
            return {"suggestions": [], "loading": loading}

        tree = self.parser.parse(*self._wrap(text, cursor))
        suggestions: List[Suggestion] = self.engine.get_suggestions(tree, schema)
        logger.debug(
            "Suggestions computed",
            connection=connection,
            collection=collection,
            count=len(suggestions),
        )
        return {"suggestions": suggestions, "loading": False}

    def replace(
        self,
        text: str,
        cursor: int,
        suggestion: str,
        kind: Union[SuggestionKind, str],
    ) -> Replacement:
        """
        Apply an accepted suggestion to a selector body.

        The text is parsed again to find the node the suggestion applies to,
        so no state is kept between suggest() and replace().

        Returns:
            New body text and cursor; the input unchanged when nothing is
            focused at the cursor
        """
        wrapped, wrapped_cursor = self._wrap(text, cursor)
        focus = self.engine.locate(self.parser.parse(wrapped, wrapped_cursor))
        if focus is None:
            logger.info("Nothing to replace at cursor", cursor=cursor)
            return Replacement(text=text, cursor=cursor)

        result = self.replacer.replace(wrapped, suggestion, kind, focus.context)
        # Edits start after the wrapping '{' and end before the wrapping '}',
        # so both stay the first and last characters
        body = result.text[1:-1]
        return Replacement(text=body, cursor=min(max(result.cursor - 1, 0), len(body)))

    def close(self) -> None:
        close = getattr(self.sampler, "close", None)
        if close is not None:
            close()

    async def _sample(self, connection: str, collection: str) -> Schema:
        # pymongo blocks; keep the event loop free
        return await asyncio.to_thread(self.sampler.sample, connection, collection)

    def _check_connection(self, connection: str) -> None:
        if not self.sampler.has_connection(connection):
            raise UnknownConnectionError(connection)

    @staticmethod
    def _wrap(text: str, cursor: int):
        return "{" + text + "}", cursor + 1 if cursor >= 0 else cursor
