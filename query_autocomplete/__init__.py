"""
Query Autocomplete - schema-aware completion for MongoDB find selectors.

Main entry point for creating autocomplete orchestrators.
"""

from query_autocomplete.orchestrator import AutoCompleteOrchestrator

__all__ = ["AutoCompleteOrchestrator"]
