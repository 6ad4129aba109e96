"""
The three stats documents and the lock that guards them.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, Union

from ..errors import StorageError
from .json_store import JsonDocumentStore
from .locking import FileStatsLock, ThreadStatsLock
from .memory_store import InMemoryDocumentStore

logger = logging.getLogger(__name__)

DocumentStore = Union[JsonDocumentStore, InMemoryDocumentStore]
DefaultFactory = Callable[[], Dict[str, Any]]

COUNTERS_FILE = "stats.json"
VISITORS_FILE = "visits.json"
ONLINE_FILE = "online.json"
LOCK_FILE = "site_stats.lock"
HTACCESS_CONTENT = "Deny from all\n"


@dataclass
class StatsStores:
    """Counters, visitor ledger and online presence documents."""
    counters: DocumentStore
    visitors: DocumentStore
    online: DocumentStore
    lock: ThreadStatsLock

    def initialize(self) -> None:
        """Write defaults for any document that does not exist yet."""
        with self.lock:
            for store in (self.counters, self.visitors, self.online):
                if not store.exists():
                    store.save(store.default_factory())


def _protect_data_dir(data_dir: Path) -> None:
    """Deny web access to the data directory for servers that honour .htaccess."""
    htaccess = data_dir / ".htaccess"
    if htaccess.exists():
        return
    try:
        htaccess.write_text(HTACCESS_CONTENT, encoding='utf-8')
    except OSError as e:
        logger.warning(f"Could not write {htaccess}: {e}")


def create_json_stores(
    data_dir: Path,
    counters_default: DefaultFactory,
    visitors_default: DefaultFactory,
    online_default: DefaultFactory,
    lock_timeout: float = 5.0
) -> StatsStores:
    """Create file-backed stores under data_dir."""
    try:
        data_dir.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise StorageError(f"Cannot create data directory {data_dir}: {e}") from e
    _protect_data_dir(data_dir)

    return StatsStores(
        counters=JsonDocumentStore(data_dir / COUNTERS_FILE, counters_default),
        visitors=JsonDocumentStore(data_dir / VISITORS_FILE, visitors_default),
        online=JsonDocumentStore(data_dir / ONLINE_FILE, online_default),
        lock=FileStatsLock(data_dir / LOCK_FILE, timeout=lock_timeout)
    )


def create_memory_stores(
    counters_default: DefaultFactory,
    visitors_default: DefaultFactory,
    online_default: DefaultFactory,
    lock_timeout: float = 5.0
) -> StatsStores:
    """Create process-local stores, for tests and single-process embedding."""
    return StatsStores(
        counters=InMemoryDocumentStore(counters_default),
        visitors=InMemoryDocumentStore(visitors_default),
        online=InMemoryDocumentStore(online_default),
        lock=ThreadStatsLock(timeout=lock_timeout)
    )
