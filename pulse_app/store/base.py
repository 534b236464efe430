"""Boundary contract for the realtime document store.

Architecture note:
    Every client (the host console and each participant) talks to the same
    document store and never to each other. The store pushes full snapshots
    on every create/update/delete, including the client's own pending write
    echoed before the authoritative version. Snapshots carry a generation
    number that only grows, so a client can discard anything older than what
    it already applied instead of trusting callback arrival order.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from concurrent.futures import Future
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Mapping


class StoreError(Exception):
    """A store operation failed."""


class DocumentNotFoundError(StoreError):
    """The addressed document does not exist."""


class DocumentExistsError(StoreError):
    """A create-only write found an existing document."""


class _ServerTimestamp:
    """Placeholder resolved to the store's clock when a write commits."""

    _instance: "_ServerTimestamp | None" = None

    def __new__(cls) -> "_ServerTimestamp":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "SERVER_TIMESTAMP"


SERVER_TIMESTAMP = _ServerTimestamp()


def join_path(*parts: str) -> str:
    return "/".join(part.strip("/") for part in parts)


def split_path(path: str) -> tuple[str, str]:
    """Split a document path into (collection path, document id)."""
    collection, _, document_id = path.rpartition("/")
    if not collection or not document_id:
        raise ValueError(f"Not a document path: {path!r}")
    return collection, document_id


@dataclass(frozen=True, slots=True)
class DocumentSnapshot:
    path: str
    data: Mapping[str, Any] | None
    generation: int
    has_pending_writes: bool = False

    @property
    def id(self) -> str:
        return self.path.rpartition("/")[2]

    @property
    def exists(self) -> bool:
        return self.data is not None


@dataclass(frozen=True, slots=True)
class QuerySnapshot:
    path: str
    documents: tuple[DocumentSnapshot, ...]
    generation: int
    has_pending_writes: bool = False

    def __len__(self) -> int:
        return len(self.documents)


DocumentCallback = Callable[[DocumentSnapshot], None]
QueryCallback = Callable[[QuerySnapshot], None]


@dataclass(slots=True)
class Subscription:
    """Handle returned by subscribe calls; idempotent to cancel."""

    _cancel: Callable[[], None]
    _active: bool = field(default=True, init=False)

    @property
    def active(self) -> bool:
        return self._active

    def unsubscribe(self) -> None:
        if not self._active:
            return
        self._active = False
        self._cancel()


class SnapshotGate:
    """Accept only snapshots whose generation is newer than the last accepted one."""

    def __init__(self) -> None:
        self._last_generation: int | None = None

    def accept(self, snapshot: DocumentSnapshot | QuerySnapshot) -> bool:
        if self._last_generation is not None and snapshot.generation <= self._last_generation:
            return False
        self._last_generation = snapshot.generation
        return True

    def reset(self) -> None:
        self._last_generation = None


class DocumentStore(ABC):
    """Realtime document store consumed by the synchronization glue."""

    @abstractmethod
    def subscribe_document(self, path: str, callback: DocumentCallback) -> Subscription:
        """Deliver the current snapshot now and again after every change."""

    @abstractmethod
    def subscribe_collection(
        self,
        path: str,
        callback: QueryCallback,
        order_by: str | None = None,
    ) -> Subscription:
        """Watch a collection; with ``order_by`` only documents carrying that field are included."""

    @abstractmethod
    def get_document(self, path: str) -> DocumentSnapshot: ...

    @abstractmethod
    def list_documents(self, path: str, order_by: str | None = None) -> list[DocumentSnapshot]: ...

    @abstractmethod
    def set_document(self, path: str, data: Mapping[str, Any]) -> Future[None]: ...

    @abstractmethod
    def create_document(self, path: str, data: Mapping[str, Any]) -> Future[None]:
        """Write only if absent; the future fails with ``DocumentExistsError`` otherwise."""

    @abstractmethod
    def update_document(self, path: str, fields: Mapping[str, Any]) -> Future[None]:
        """Merge fields; the future fails with ``DocumentNotFoundError`` when missing."""

    @abstractmethod
    def delete_document(self, path: str) -> Future[None]: ...

    @abstractmethod
    def new_document_id(self, collection_path: str) -> str: ...

    @abstractmethod
    def server_time(self) -> datetime:
        """Best estimate of the store's authoritative clock."""
