"""
Local key-value store with atomic writes and file locking.

Holds the portfolio, the watchlist and the analyst-rating cache in a single
JSON document, one top-level key per collection.
"""

from __future__ import annotations

import json
import logging
import os
import shutil
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional

from filelock import FileLock

from chartwallet.core.exceptions import StorageWriteError

logger = logging.getLogger(__name__)


class KeyValueStore:
    """
    JSON key-value store.
    - file lock for concurrent access (CLI + running feed)
    - atomic write for integrity
    - corrupted files are backed up and treated as empty
    """

    def __init__(self, path: str = "storage/chartwallet.json"):
        self._path = Path(path)
        self._lock = FileLock(f"{path}.lock")
        self._path.parent.mkdir(parents=True, exist_ok=True)

    @property
    def path(self) -> Path:
        return self._path

    def _atomic_write(self, data: Dict[str, Any]) -> None:
        """Atomic write with temp replace."""
        temp_path = self._path.with_suffix(".tmp")
        try:
            with open(temp_path, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2, ensure_ascii=False, default=str)
                f.flush()
                os.fsync(f.fileno())
            temp_path.replace(self._path)
        except OSError as exc:
            logger.error("[KeyValueStore] Atomic write failed: %s", exc)
            if temp_path.exists():
                temp_path.unlink()
            raise StorageWriteError(
                "Failed to write store", details={"path": str(self._path)}, cause=exc
            ) from exc

    def _load(self) -> Dict[str, Any]:
        if not self._path.exists() or self._path.stat().st_size == 0:
            return {}
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
            if isinstance(data, dict):
                return data
            logger.warning("[KeyValueStore] Root is not an object, ignoring")
        except (OSError, ValueError) as exc:
            logger.warning("[KeyValueStore] Load failed: %s", exc)
        self._backup_corrupted()
        return {}

    def _backup_corrupted(self) -> None:
        ts = datetime.now().strftime("%Y%m%d_%H%M%S")
        backup_path = self._path.with_name(self._path.name + f".bad.{ts}")
        try:
            shutil.copy2(self._path, backup_path)
            logger.error("[KeyValueStore] Corrupted store backed up to: %s", backup_path)
        except OSError as exc:
            logger.error("[KeyValueStore] Backup failed: %s", exc)

    def get(self, key: str, default: Optional[Any] = None) -> Any:
        with self._lock:
            return self._load().get(key, default)

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            data = self._load()
            data[key] = value
            self._atomic_write(data)

    def delete(self, key: str) -> bool:
        with self._lock:
            data = self._load()
            if key not in data:
                return False
            del data[key]
            self._atomic_write(data)
            return True

    def keys(self) -> list[str]:
        with self._lock:
            return list(self._load().keys())
