"""Schema inference and caching."""

from query_autocomplete.schema.profiler import SchemaProfiler, classify_value
from query_autocomplete.schema.cache import SchemaCache, LOADING

__all__ = ["SchemaProfiler", "classify_value", "SchemaCache", "LOADING"]
