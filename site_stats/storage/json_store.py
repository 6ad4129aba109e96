"""
JSON file document store.

One store per document. Writes go through a temporary file in the same
directory followed by ``os.replace``, so readers see either the old or the
new document, never a partial one.
"""

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Callable, Dict

from ..errors import StorageError

logger = logging.getLogger(__name__)


class JsonDocumentStore:
    """Load/save a single JSON object document."""

    def __init__(self, path: Path, default_factory: Callable[[], Dict[str, Any]]):
        """Initialize the store.

        Args:
            path: Location of the JSON document
            default_factory: Builds the value returned when the document is
                missing or corrupt
        """
        self.path = path
        self.default_factory = default_factory

    def exists(self) -> bool:
        return self.path.exists()

    def load(self) -> Dict[str, Any]:
        """Load the document.

        Returns the default value when the file is missing or does not hold a
        JSON object. Other I/O failures raise StorageError.
        """
        try:
            with open(self.path, 'r', encoding='utf-8') as f:
                content = f.read()
        except FileNotFoundError:
            return self.default_factory()
        except OSError as e:
            logger.error(f"Error reading {self.path}: {e}")
            raise StorageError(f"Cannot read {self.path.name}: {e}") from e

        try:
            data = json.loads(content)
        except json.JSONDecodeError:
            logger.warning(f"Corrupt document {self.path}, starting from defaults")
            return self.default_factory()

        if not isinstance(data, dict):
            logger.warning(f"Unexpected content in {self.path}, starting from defaults")
            return self.default_factory()
        return data

    def save(self, data: Dict[str, Any]) -> None:
        """Atomically replace the document. Raises StorageError on failure."""
        tmp_name = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                'w',
                encoding='utf-8',
                dir=str(self.path.parent),
                prefix=self.path.name + ".",
                suffix=".tmp",
                delete=False,
            ) as tmp:
                tmp_name = tmp.name
                json.dump(data, tmp, indent=2, ensure_ascii=False)
                tmp.flush()
                os.fsync(tmp.fileno())
            os.replace(tmp_name, self.path)
            tmp_name = None
        except (OSError, TypeError, ValueError) as e:
            logger.error(f"Error saving {self.path}: {e}")
            raise StorageError(f"Cannot write {self.path.name}: {e}") from e
        finally:
            if tmp_name and os.path.exists(tmp_name):
                os.unlink(tmp_name)
