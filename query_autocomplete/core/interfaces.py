"""
Abstract interfaces for database adapters.

These protocols define the contract that a data source adapter must implement
to feed schemas into the autocomplete system.
"""

from typing import Protocol

from query_autocomplete.core.models import Schema


class ISchemaSampler(Protocol):
    """
    Infer a schema by sampling a collection.

    Implementations draw a bounded random sample of documents and fold them
    through SchemaProfiler. They must tolerate heterogeneous documents.
    """

    def sample(self, connection: str, collection: str) -> Schema:
        """
        Sample a collection and return its inferred schema.

        Args:
            connection: Configured connection name
            collection: Collection name

        Returns:
            Inferred Schema

        Raises:
            UnknownConnectionError: If the connection name is not configured
            SchemaSampleError: If the data source fails
        """
        ...

    def has_connection(self, connection: str) -> bool:
        """Whether a connection name is configured."""
        ...

