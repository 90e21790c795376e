"""
Persistence collaborator.

The pipeline talks to a document store through ``DocumentStore``: named
collections supporting find_all, find_by_id, upsert_by_id, delete_many
and count. Filters are Mongo-like dicts::

    {"category": "sports"}
    {"publishedAt": {"$lt": cutoff}}
    {"category": {"$in": ["sports", "health"]}}

Two implementations ship here: an in-memory store for tests and a JSON
file store backing the CLI.
"""

import copy
import json
import os
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Optional, Protocol

import structlog

from .errors import PersistenceError

logger = structlog.get_logger(__name__)


def _compare(op: str, actual: Any, expected: Any) -> bool:
    if op == "$ne":
        return actual != expected
    if op == "$in":
        return actual in expected
    if actual is None or expected is None:
        return False
    try:
        if op == "$lt":
            return actual < expected
        if op == "$lte":
            return actual <= expected
        if op == "$gt":
            return actual > expected
        if op == "$gte":
            return actual >= expected
    except TypeError:
        return False
    raise ValueError(f"Unsupported filter operator: {op}")


def matches_filter(document: dict, filter: Optional[dict]) -> bool:
    """Check a document against a Mongo-like filter."""
    for field_name, condition in (filter or {}).items():
        actual = document.get(field_name)
        if isinstance(condition, dict) and condition and all(k.startswith("$") for k in condition):
            if not all(_compare(op, actual, expected) for op, expected in condition.items()):
                return False
        elif actual != condition:
            return False
    return True


class DocumentCollection(Protocol):
    """One named collection of documents keyed by ``id``."""

    async def find_all(self, filter: Optional[dict] = None) -> list[dict]: ...

    async def find_by_id(self, id: str) -> Optional[dict]: ...

    async def upsert_by_id(self, id: str, data: dict) -> dict: ...

    async def delete_many(self, filter: Optional[dict] = None) -> int: ...

    async def count(self, filter: Optional[dict] = None) -> int: ...


class DocumentStore(Protocol):
    """Source of named collections."""

    def collection(self, name: str) -> DocumentCollection: ...


class InMemoryCollection:
    """Dict-backed collection. Documents are copied on the way in and out."""

    def __init__(
        self,
        name: str,
        documents: Optional[dict[str, dict]] = None,
        on_change: Optional[Callable[[], None]] = None,
        ensure_ready: Optional[Callable[[], None]] = None,
    ):
        self.name = name
        self._documents: dict[str, dict] = documents if documents is not None else {}
        self._on_change = on_change
        self._ensure_ready = ensure_ready

    def _ready(self) -> None:
        if self._ensure_ready:
            self._ensure_ready()

    def _changed(self) -> None:
        if self._on_change:
            self._on_change()

    async def find_all(self, filter: Optional[dict] = None) -> list[dict]:
        self._ready()
        return [copy.deepcopy(d) for d in self._documents.values() if matches_filter(d, filter)]

    async def find_by_id(self, id: str) -> Optional[dict]:
        self._ready()
        document = self._documents.get(id)
        return copy.deepcopy(document) if document is not None else None

    async def upsert_by_id(self, id: str, data: dict) -> dict:
        self._ready()
        document = {**self._documents.get(id, {}), **copy.deepcopy(data), "id": id}
        self._documents[id] = document
        self._changed()
        return copy.deepcopy(document)

    async def delete_many(self, filter: Optional[dict] = None) -> int:
        self._ready()
        doomed = [k for k, d in self._documents.items() if matches_filter(d, filter)]
        for key in doomed:
            del self._documents[key]
        if doomed:
            self._changed()
        return len(doomed)

    async def count(self, filter: Optional[dict] = None) -> int:
        self._ready()
        return sum(1 for d in self._documents.values() if matches_filter(d, filter))

    def __len__(self) -> int:
        return len(self._documents)


class InMemoryStore:
    """Process-local store, mainly for tests."""

    def __init__(self, data: Optional[dict[str, dict[str, dict]]] = None):
        self._data: dict[str, dict[str, dict]] = copy.deepcopy(data) if data else {}
        self._collections: dict[str, InMemoryCollection] = {}

    def _make_collection(self, name: str) -> InMemoryCollection:
        return InMemoryCollection(name, self._data.setdefault(name, {}))

    def collection(self, name: str) -> InMemoryCollection:
        if name not in self._collections:
            self._collections[name] = self._make_collection(name)
        return self._collections[name]


def _encode(value: Any) -> Any:
    if isinstance(value, datetime):
        return {"$date": value.isoformat()}
    if isinstance(value, dict):
        return {k: _encode(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_encode(v) for v in value]
    return value


def _decode(value: Any) -> Any:
    if isinstance(value, dict):
        if set(value) == {"$date"}:
            return datetime.fromisoformat(value["$date"])
        return {k: _decode(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_decode(v) for v in value]
    return value


class JsonFileStore(InMemoryStore):
    """
    Store persisted to a single JSON file.

    The file is read lazily on first access and rewritten after every
    mutation. Datetimes are kept as ``{"$date": iso}`` objects so range
    filters keep working after a reload.
    """

    def __init__(self, path: str):
        super().__init__()
        self.path = Path(path)
        self._loaded = False

    def _load(self) -> None:
        if self._loaded:
            return
        if self.path.exists():
            try:
                with open(self.path, "r", encoding="utf-8") as f:
                    raw = json.load(f)
            except (OSError, ValueError) as e:
                raise PersistenceError(f"Cannot read store {self.path}: {e}") from e
            for name, documents in _decode(raw).items():
                self._data.setdefault(name, {}).update(documents)
            logger.debug("store_loaded", path=str(self.path), collections=sorted(self._data))
        self._loaded = True

    def _save(self) -> None:
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(_encode(self._data), f, ensure_ascii=False, indent=2)
            os.replace(tmp_path, self.path)
        except OSError as e:
            raise PersistenceError(f"Cannot write store {self.path}: {e}") from e

    def _make_collection(self, name: str) -> InMemoryCollection:
        return InMemoryCollection(
            name,
            self._data.setdefault(name, {}),
            on_change=self._save,
            ensure_ready=self._load,
        )
