"""
Local document storage.
One JSON document per key in a data directory, sharing a byte quota.
"""

import json
import logging
import os
from typing import Any, Dict

from coworking.errors import PersistenceError

logger = logging.getLogger(__name__)


class DocumentStorage:
    def __init__(self, directory: str, quota_bytes: int = 5 * 1024 * 1024):
        self.directory = directory
        self.quota_bytes = quota_bytes
        if not os.path.exists(directory):
            os.makedirs(directory)

    def _path(self, key: str) -> str:
        return os.path.join(self.directory, f"{key}.json")

    def _usage(self, excluding: str) -> int:
        total = 0
        for name in os.listdir(self.directory):
            if name.endswith(".json") and name != f"{excluding}.json":
                total += os.path.getsize(os.path.join(self.directory, name))
        return total

    def get_document(self, key: str) -> Dict[str, Any]:
        path = self._path(key)
        if not os.path.exists(path):
            return {}
        try:
            with open(path, encoding="utf-8") as fh:
                data = json.load(fh)
        except (OSError, ValueError) as e:
            logger.error(f"Could not read document {key}: {e}")
            raise PersistenceError(f"Failed to read {key}") from e
        if not isinstance(data, dict):
            raise PersistenceError(f"Document {key} is not a mapping")
        return data

    def set_document(self, key: str, document: Dict[str, Any]):
        try:
            text = json.dumps(document, sort_keys=True)
        except (TypeError, ValueError) as e:
            logger.error(f"Could not serialize document {key}: {e}")
            raise PersistenceError(f"Failed to serialize {key}") from e

        size = len(text.encode("utf-8"))
        if self._usage(excluding=key) + size > self.quota_bytes:
            logger.error(f"Storage quota exceeded writing {key} ({size} bytes)")
            raise PersistenceError(f"Storage quota exceeded while saving {key}")

        path = self._path(key)
        tmp_path = f"{path}.tmp"
        try:
            with open(tmp_path, "w", encoding="utf-8") as fh:
                fh.write(text)
            os.replace(tmp_path, path)
        except OSError as e:
            logger.error(f"Could not write document {key}: {e}")
            raise PersistenceError(f"Failed to save {key}") from e

    def remove_document(self, key: str):
        path = self._path(key)
        if not os.path.exists(path):
            return
        try:
            os.remove(path)
        except OSError as e:
            logger.error(f"Could not remove document {key}: {e}")
            raise PersistenceError(f"Failed to remove {key}") from e
