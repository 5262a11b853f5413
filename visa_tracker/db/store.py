# visa_tracker/db/store.py
from __future__ import annotations

import copy
import json
import logging
import threading
from collections import defaultdict
from contextlib import nullcontext
from pathlib import Path
from typing import Any, ContextManager, Dict, Mapping, Protocol

from fastapi import Request

from ..core.errors import NotFound, ParseError, StorageIOError

log = logging.getLogger("db")

SETTINGS = "settings"
APPLICANTS = "applicants"
COLLECTIONS = (SETTINGS, APPLICANTS)


class DocumentStore(Protocol):
    """Whole-document storage; every put fully replaces the collection."""

    def get(self, collection: str) -> Any: ...

    def put(self, collection: str, value: Any) -> None: ...

    def replace(self, documents: Mapping[str, Any]) -> None: ...

    def exists(self, collection: str) -> bool: ...

    def lock(self, collection: str) -> ContextManager: ...


class _Locks:
    def __init__(self, enabled: bool):
        self.enabled = enabled
        self._locks: Dict[str, threading.Lock] = defaultdict(threading.Lock)

    def lock(self, collection: str) -> ContextManager:
        if not self.enabled:
            return nullcontext()
        return self._locks[collection]


class JsonFileStore(_Locks):
    """
    One pretty-printed JSON file per collection under data_dir.
    Writes are not atomic: a crash mid-write can leave a truncated file.
    """

    def __init__(self, data_dir: Path | str, locking: bool = False):
        super().__init__(locking)
        self.data_dir = Path(data_dir)

    def path_for(self, collection: str) -> Path:
        return self.data_dir / f"{collection}.json"

    def exists(self, collection: str) -> bool:
        return self.path_for(collection).is_file()

    def get(self, collection: str) -> Any:
        path = self.path_for(collection)
        try:
            raw = path.read_text(encoding="utf-8")
        except FileNotFoundError as e:
            raise NotFound(f"Collection '{collection}' does not exist.") from e
        except OSError as e:
            log.error("read failed for %s: %s", path, e)
            raise StorageIOError(f"Failed to read {collection}.") from e
        try:
            return json.loads(raw)
        except json.JSONDecodeError as e:
            log.error("corrupt JSON in %s: %s", path, e)
            raise ParseError(f"Failed to read {collection}.") from e

    def put(self, collection: str, value: Any) -> None:
        path = self.path_for(collection)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(json.dumps(value, indent=2, ensure_ascii=False), encoding="utf-8")
        except OSError as e:
            log.error("write failed for %s: %s", path, e)
            raise StorageIOError(f"Failed to save {collection}.") from e

    def replace(self, documents: Mapping[str, Any]) -> None:
        # sequential, no rollback if a later write fails
        for collection, value in documents.items():
            self.put(collection, value)


class MemoryStore(_Locks):
    """In-process store; values are deep-copied to mimic serialization."""

    def __init__(self, initial: Mapping[str, Any] | None = None, locking: bool = False):
        super().__init__(locking)
        self._data: Dict[str, Any] = {k: copy.deepcopy(v) for k, v in (initial or {}).items()}

    def exists(self, collection: str) -> bool:
        return collection in self._data

    def get(self, collection: str) -> Any:
        if collection not in self._data:
            raise NotFound(f"Collection '{collection}' does not exist.")
        return copy.deepcopy(self._data[collection])

    def put(self, collection: str, value: Any) -> None:
        self._data[collection] = copy.deepcopy(value)

    def replace(self, documents: Mapping[str, Any]) -> None:
        for collection, value in documents.items():
            self.put(collection, value)


def get_store(request: Request) -> DocumentStore:
    return request.app.state.store
