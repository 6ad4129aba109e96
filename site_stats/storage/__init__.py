"""
Durable storage for the stats documents.
"""

from .json_store import JsonDocumentStore
from .memory_store import InMemoryDocumentStore
from .locking import ThreadStatsLock, FileStatsLock
from .stores import StatsStores, create_json_stores, create_memory_stores

__all__ = [
    "JsonDocumentStore",
    "InMemoryDocumentStore",
    "ThreadStatsLock",
    "FileStatsLock",
    "StatsStores",
    "create_json_stores",
    "create_memory_stores",
]
