import itertools

import pytest
from pymongo.errors import ConfigurationError, OperationFailure

from query_autocomplete.adapters.mongodb import MongoSampler
from query_autocomplete.core.exceptions import SchemaSampleError, UnknownConnectionError


class FakeCursor:
    def __init__(self, documents):
        self._documents = documents
        self.closed = False

    def __iter__(self):
        return iter(self._documents)

    def close(self):
        self.closed = True


class FakeCollection:
    def __init__(self, documents, error=None):
        self.documents = documents
        self.error = error
        self.pipelines = []
        self.cursors = []

    def aggregate(self, pipeline, **kwargs):
        self.pipelines.append(pipeline)
        if self.error is not None:
            raise self.error
        cursor = FakeCursor(self.documents)
        self.cursors.append(cursor)
        return cursor


class FakeClient:
    def __init__(self, collection):
        self.collection = collection
        self.closed = False

    def get_default_database(self):
        return {"users": self.collection}

    def close(self):
        self.closed = True


def make_sampler(collection, **kwargs):
    client = FakeClient(collection)
    sampler = MongoSampler(
        {"default": "mongodb://localhost/test"},
        client_factory=lambda uri: client,
        **kwargs,
    )
    return sampler, client


def test_sample_builds_schema():
    collection = FakeCollection([{"name": "a"}, {"name": "b", "age": 3}])
    sampler, _ = make_sampler(collection, sample_size=50)

    schema = sampler.sample("default", "users")

    assert collection.pipelines == [[{"$sample": {"size": 50}}]]
    assert collection.cursors[0].closed
    assert schema.sampled == 2
    assert schema.get("name").strings == ("a", "b")
    assert schema.get("age").nullable


def test_time_budget_stops_sampling():
    collection = FakeCollection([{"i": i} for i in range(5)])
    clock = itertools.count().__next__
    sampler, _ = make_sampler(collection, time_budget=2.5, clock=clock)

    schema = sampler.sample("default", "users")

    assert schema.sampled == 3
    assert collection.cursors[0].closed


def test_unknown_connection():
    sampler, _ = make_sampler(FakeCollection([]))

    assert not sampler.has_connection("other")
    with pytest.raises(UnknownConnectionError):
        sampler.sample("other", "users")


def test_driver_errors_are_wrapped():
    sampler, _ = make_sampler(FakeCollection([], error=OperationFailure("boom")))

    with pytest.raises(SchemaSampleError):
        sampler.sample("default", "users")


def test_close_closes_clients():
    sampler, client = make_sampler(FakeCollection([]))
    sampler.sample("default", "users")

    sampler.close()
    assert client.closed


def test_client_errors_are_wrapped():
    def client_factory(uri):
        raise ConfigurationError("bad uri")

    sampler = MongoSampler({"default": "mongodb+srv://nowhere"}, client_factory=client_factory)

    with pytest.raises(SchemaSampleError):
        sampler.sample("default", "users")
    # A later call tries to connect again
    with pytest.raises(SchemaSampleError):
        sampler.sample("default", "users")
