"""
MongoDB schema sampling.

Implements ISchemaSampler for MongoDB using a $sample aggregation.
"""

import time
from typing import Any, Callable, Dict, Optional

import structlog
from pymongo import MongoClient
from pymongo.collection import Collection
from pymongo.errors import PyMongoError

from query_autocomplete.core.exceptions import SchemaSampleError, UnknownConnectionError
from query_autocomplete.core.models import Schema
from query_autocomplete.schema.profiler import SchemaProfiler

logger = structlog.get_logger(__name__)


class MongoSampler:
    """
    Infers collection schemas by sampling documents.

    Implements the ISchemaSampler interface for MongoDB.
    Documents are folded into the profile as the cursor streams them; once the
    time budget is spent the documents seen so far make up the schema.
    """

    def __init__(
        self,
        connections: Dict[str, str],
        sample_size: int = 1000,
        time_budget: float = 10.0,
        client_factory: Callable[[str], Any] = MongoClient,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize MongoDB sampler.

        Args:
            connections: Connection name -> MongoDB URI (with a default database)
            sample_size: Number of documents to sample
            time_budget: Seconds to spend reading the sample
            client_factory: Builds a client from a URI
            clock: Monotonic time source
        """
        self.connections = connections
        self.sample_size = sample_size
        self.time_budget = time_budget
        self._client_factory = client_factory
        self._clock = clock
        self._clients: Dict[str, MongoClient] = {}

    def sample(self, connection: str, collection: str) -> Schema:
        """
        Sample a collection and infer its schema.

        Args:
            connection: Configured connection name
            collection: Collection name in the connection's default database

        Returns:
            Inferred Schema
        """
        target = self._get_collection(connection, collection)
        profiler = SchemaProfiler()
        started = self._clock()

        try:
            cursor = target.aggregate([{"$sample": {"size": self.sample_size}}])
            try:
                for document in cursor:
                    profiler.add(document)
                    if self._clock() - started > self.time_budget:
                        logger.info(
                            "Sample time budget spent",
                            connection=connection,
                            collection=collection,
                            sampled=profiler.count,
                        )
                        break
            finally:
                close = getattr(cursor, "close", None)
                if close is not None:
                    close()
        except PyMongoError as e:
            raise SchemaSampleError(f"Sampling '{collection}' on '{connection}' failed: {e}") from e

        return profiler.build()

    def has_connection(self, connection: str) -> bool:
        return connection in self.connections

    def close(self) -> None:
        """Close every open client."""
        for client in self._clients.values():
            client.close()
        self._clients.clear()

    def _get_collection(self, connection: str, collection: str) -> Collection:
        uri: Optional[str] = self.connections.get(connection)
        if uri is None:
            raise UnknownConnectionError(connection)

        client = self._clients.get(connection)
        if client is None:
            try:
                client = self._client_factory(uri)
            except PyMongoError as e:
                raise SchemaSampleError(f"Connection '{connection}' could not be opened: {e}") from e
            self._clients[connection] = client

        try:
            database = client.get_default_database()
        except PyMongoError as e:
            raise SchemaSampleError(f"Connection '{connection}' has no default database: {e}") from e

        return database[collection]
