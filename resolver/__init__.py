"""Resolver: project records from a data store -> named texts for chunking."""

from .store import ProjectDataStore, InMemoryProjectStore
from .supabase_store import SupabaseProjectStore
from .variable_resolver import VariableResolver, DEFAULT_VARIABLES

__all__ = [
    "ProjectDataStore",
    "InMemoryProjectStore",
    "SupabaseProjectStore",
    "VariableResolver",
    "DEFAULT_VARIABLES",
]
