"""MongoDB adapter for the autocomplete system."""

from query_autocomplete.adapters.mongodb.sampler import MongoSampler

__all__ = ["MongoSampler"]
