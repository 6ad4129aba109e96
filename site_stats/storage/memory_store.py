"""
In-memory document store with the same contract as the JSON store.
"""

import copy
import json
from typing import Any, Callable, Dict, Optional

from ..errors import StorageError


class InMemoryDocumentStore:
    """Keeps a deep copy of the last saved document."""

    def __init__(self, default_factory: Callable[[], Dict[str, Any]]):
        self.default_factory = default_factory
        self._data: Optional[Dict[str, Any]] = None
        self.save_count = 0

    def exists(self) -> bool:
        return self._data is not None

    def load(self) -> Dict[str, Any]:
        if self._data is None:
            return self.default_factory()
        return copy.deepcopy(self._data)

    def save(self, data: Dict[str, Any]) -> None:
        # Same serializability rules as the JSON backend
        try:
            json.dumps(data)
        except (TypeError, ValueError) as e:
            raise StorageError(f"Cannot serialize document: {e}") from e
        self._data = copy.deepcopy(data)
        self.save_count += 1
