"""
Document store abstraction for Cloud Firestore and an in-memory test implementation.

Paths are slash-separated: documents have an even number of segments
(``users/{uid}``), collections an odd number (``users/{uid}/customers``).
Fields set to ``SERVER_TIMESTAMP`` are resolved by the store at write time.
"""

from __future__ import annotations

import copy
import threading
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Protocol, Tuple

from google.api_core import exceptions
from google.cloud import firestore
from google.cloud.firestore_v1 import SERVER_TIMESTAMP


class DocumentStore(Protocol):
    """Defines the operations the facade needs from the document database."""

    def get_document(self, path: str) -> Optional[dict]:
        ...

    def set_document(self, path: str, data: dict, *, merge: bool = False) -> None:
        ...

    def update_document(self, path: str, data: dict) -> None:
        ...

    def add_document(self, collection_path: str, data: dict) -> str:
        ...

    def delete_document(self, path: str) -> None:
        ...

    def list_documents(
        self,
        collection_path: str,
        *,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> List[Tuple[str, dict]]:
        ...


def _segments(path: str) -> List[str]:
    parts = [part for part in path.split("/") if part]
    if not parts:
        raise ValueError("Path must not be empty.")
    return parts


def _check_document_path(path: str) -> str:
    parts = _segments(path)
    if len(parts) % 2:
        raise ValueError(f"A document path needs an even number of segments: {path}")
    return "/".join(parts)


def _check_collection_path(path: str) -> str:
    parts = _segments(path)
    if not len(parts) % 2:
        raise ValueError(f"A collection path needs an odd number of segments: {path}")
    return "/".join(parts)


def _order_key(value: Any) -> Tuple:
    """
    Sort key following Firestore's cross-type ordering: null, booleans,
    numbers, timestamps, strings, bytes, arrays, maps.
    """
    if value is None:
        return (0,)
    if isinstance(value, bool):
        return (1, value)
    if isinstance(value, (int, float)):
        return (2, value)
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return (3, value)
    if isinstance(value, str):
        return (4, value)
    if isinstance(value, bytes):
        return (5, value)
    if isinstance(value, (list, tuple)):
        return (8, tuple(_order_key(item) for item in value))
    if isinstance(value, dict):
        return (
            9,
            tuple((key, _order_key(item)) for key, item in sorted(value.items())),
        )
    return (7, repr(value))


@dataclass
class InMemoryDocumentStore:
    """
    Test double for Firestore.

    Mirrors the Firestore behaviour the facade relies on: merge writes are deep,
    updating a missing document raises NotFound, deletes are idempotent and
    ordered listings skip documents that lack the ordering field. Field names
    given to update_document are taken literally, not as dotted field paths.
    """

    documents: Dict[str, dict] = field(default_factory=dict)

    def __post_init__(self):
        self._lock = threading.Lock()
        self._last_timestamp: Optional[datetime] = None

    def _server_timestamp(self) -> datetime:
        now = datetime.now(timezone.utc)
        if self._last_timestamp is not None and now <= self._last_timestamp:
            now = self._last_timestamp + timedelta(microseconds=1)
        self._last_timestamp = now
        return now

    def _resolve(self, value: Any, timestamp: datetime) -> Any:
        if value is SERVER_TIMESTAMP:
            return timestamp
        if isinstance(value, dict):
            return {key: self._resolve(item, timestamp) for key, item in value.items()}
        if isinstance(value, list):
            return [self._resolve(item, timestamp) for item in value]
        return copy.deepcopy(value)

    def _merge(self, target: dict, updates: dict) -> dict:
        merged = dict(target)
        for key, value in updates.items():
            if isinstance(value, dict) and isinstance(merged.get(key), dict):
                merged[key] = self._merge(merged[key], value)
            else:
                merged[key] = value
        return merged

    def get_document(self, path: str) -> Optional[dict]:
        path = _check_document_path(path)
        with self._lock:
            data = self.documents.get(path)
            return copy.deepcopy(data) if data is not None else None

    def set_document(self, path: str, data: dict, *, merge: bool = False) -> None:
        path = _check_document_path(path)
        with self._lock:
            resolved = self._resolve(data, self._server_timestamp())
            if merge and path in self.documents:
                resolved = self._merge(self.documents[path], resolved)
            self.documents[path] = resolved

    def update_document(self, path: str, data: dict) -> None:
        path = _check_document_path(path)
        with self._lock:
            if path not in self.documents:
                raise exceptions.NotFound(f"No document to update: {path}")
            resolved = self._resolve(data, self._server_timestamp())
            self.documents[path] = {**self.documents[path], **resolved}

    def add_document(self, collection_path: str, data: dict) -> str:
        collection_path = _check_collection_path(collection_path)
        doc_id = uuid.uuid4().hex
        with self._lock:
            self.documents[f"{collection_path}/{doc_id}"] = self._resolve(
                data, self._server_timestamp()
            )
        return doc_id

    def delete_document(self, path: str) -> None:
        path = _check_document_path(path)
        with self._lock:
            self.documents.pop(path, None)

    def list_documents(
        self,
        collection_path: str,
        *,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> List[Tuple[str, dict]]:
        collection_path = _check_collection_path(collection_path)
        with self._lock:
            items: List[Tuple[str, dict]] = []
            for path, data in self.documents.items():
                parent, _, doc_id = path.rpartition("/")
                if parent != collection_path:
                    continue
                if order_by and order_by not in data:
                    continue
                items.append((doc_id, copy.deepcopy(data)))
        if order_by:
            items.sort(
                key=lambda item: _order_key(item[1][order_by]), reverse=descending
            )
        if limit is not None:
            items = items[:limit]
        return items

    def reset(self) -> None:
        """Clear all stored data (useful in tests)."""
        with self._lock:
            self.documents.clear()
            self._last_timestamp = None


@dataclass
class FirestoreDocumentStore:
    """
    Cloud Firestore implementation backed by the synchronous client.

    Errors raised by the client (google.api_core exceptions) propagate unchanged.
    """

    client: firestore.Client

    def get_document(self, path: str) -> Optional[dict]:
        snapshot = self.client.document(path).get()
        if not snapshot.exists:
            return None
        return snapshot.to_dict()

    def set_document(self, path: str, data: dict, *, merge: bool = False) -> None:
        self.client.document(path).set(data, merge=merge)

    def update_document(self, path: str, data: dict) -> None:
        self.client.document(path).update(data)

    def add_document(self, collection_path: str, data: dict) -> str:
        _, doc_ref = self.client.collection(collection_path).add(data)
        return doc_ref.id

    def delete_document(self, path: str) -> None:
        self.client.document(path).delete()

    def list_documents(
        self,
        collection_path: str,
        *,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> List[Tuple[str, dict]]:
        query = self.client.collection(collection_path)
        if order_by:
            direction = (
                firestore.Query.DESCENDING if descending else firestore.Query.ASCENDING
            )
            query = query.order_by(order_by, direction=direction)
        if limit is not None:
            query = query.limit(limit)
        return [(snapshot.id, snapshot.to_dict()) for snapshot in query.stream()]
