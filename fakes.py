from query_autocomplete.core.exceptions import SchemaSampleError


class FakeSampler:
    """In-memory ISchemaSampler with a single "default" connection."""

    def __init__(self, schema=None, error=None):
        self.schema = schema
        self.error = error
        self.calls = []
        self.closed = False

    def has_connection(self, connection):
        return connection == "default"

    def sample(self, connection, collection):
        self.calls.append((connection, collection))
        if self.error is not None:
            raise SchemaSampleError(self.error)
        return self.schema

    def close(self):
        self.closed = True
