"""
Process-safe JSON snapshot file for a knowledge graph.

Commands that mutate the graph read, change and write the file inside one
exclusive lock, so two CLI processes never interleave their writes.
"""

import json
import logging
import tempfile
import threading
import time
from collections.abc import Callable
from pathlib import Path
from typing import Any

import portalocker

from .exceptions import ScholarGraphError

logger = logging.getLogger(__name__)

LOCK_TIMEOUT_SECONDS = 10.0


class SnapshotError(ScholarGraphError):
    """The snapshot file exists but cannot be read as a graph."""


class SnapshotFile:
    """JSON file holding ``KnowledgeGraphEngine.snapshot()`` output."""

    _locks_registry: dict[str, threading.RLock] = {}
    _locks_registry_guard = threading.Lock()

    def __init__(self, file_path: Path):
        self.file_path = Path(file_path)
        self.lock_path = self.file_path.with_suffix(self.file_path.suffix + '.lock')
        self._thread_lock = self._get_thread_lock(self.file_path)

    @property
    def exists(self) -> bool:
        return self.file_path.exists()

    def _acquire_lock(self, timeout: float = LOCK_TIMEOUT_SECONDS) -> Any:
        """Acquire exclusive lock on the snapshot file."""
        self.file_path.parent.mkdir(parents=True, exist_ok=True)
        start_time = time.time()
        lock_file = open(self.lock_path, 'w')

        while True:
            try:
                portalocker.lock(lock_file, portalocker.LOCK_EX | portalocker.LOCK_NB)
                return lock_file
            except (OSError, portalocker.exceptions.LockException) as exc:
                if time.time() - start_time > timeout:
                    lock_file.close()
                    raise TimeoutError(f"Lock timeout: {self.file_path}") from exc
                time.sleep(0.05)

    def _release_lock(self, lock_file: Any) -> None:
        portalocker.unlock(lock_file)
        lock_file.close()
        try:
            self.lock_path.unlink()
        except FileNotFoundError:
            # Another process already removed it.
            pass

    def _load_data(self) -> dict[str, Any] | None:
        if not self.file_path.exists():
            return None
        try:
            with open(self.file_path, encoding='utf-8') as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise SnapshotError(f"Corrupt graph file {self.file_path}: {e}") from e
        if not isinstance(data, dict):
            raise SnapshotError(f"Graph file {self.file_path} must hold a JSON object")
        return data

    def _save_data(self, data: dict[str, Any]) -> None:
        """Write through a temp file in the same directory, then replace."""
        self.file_path.parent.mkdir(parents=True, exist_ok=True)
        with tempfile.NamedTemporaryFile(
            'w', dir=str(self.file_path.parent), prefix=self.file_path.stem + '.',
            suffix='.tmp', delete=False, encoding='utf-8',
        ) as tf:
            json.dump(data, tf, indent=2, ensure_ascii=False)
            tmp_name = Path(tf.name)
        tmp_name.replace(self.file_path)

    def load(self) -> dict[str, Any] | None:
        """Current contents, or None when no graph has been saved yet."""
        with self._thread_lock:
            lock = self._acquire_lock()
            try:
                return self._load_data()
            finally:
                self._release_lock(lock)

    def save(self, data: dict[str, Any]) -> None:
        with self._thread_lock:
            lock = self._acquire_lock()
            try:
                self._save_data(data)
            finally:
                self._release_lock(lock)
        logger.debug("Saved graph to %s", self.file_path)

    def update_atomic(self, update_func: Callable[[dict[str, Any] | None], tuple[dict[str, Any] | None, Any]]) -> Any:
        """Atomically read, update, and write data.

        ``update_func`` receives the current data (None if absent) and returns
        ``(new_data, result)``; ``new_data`` of None leaves the file untouched.
        """
        with self._thread_lock:
            lock = self._acquire_lock()
            try:
                data = self._load_data()
                updated_data, result = update_func(data)
                if updated_data is not None:
                    self._save_data(updated_data)
                return result
            finally:
                self._release_lock(lock)

    @classmethod
    def _get_thread_lock(cls, file_path: Path) -> threading.RLock:
        """Return a re-entrant lock keyed by absolute file path string."""
        key = str(Path(file_path).resolve())
        with cls._locks_registry_guard:
            lk = cls._locks_registry.get(key)
            if lk is None:
                lk = threading.RLock()
                cls._locks_registry[key] = lk
            return lk
