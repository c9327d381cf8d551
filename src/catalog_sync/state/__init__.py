from catalog_sync.state.base import CandidateSource, CatalogStore, ProgressStore
from catalog_sync.state.json_store import JsonProgressStore
from catalog_sync.state.sqlite_store import SQLiteCatalogStore

__all__ = [
    "CandidateSource",
    "CatalogStore",
    "JsonProgressStore",
    "ProgressStore",
    "SQLiteCatalogStore",
]
