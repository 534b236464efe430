"""In-process realtime document store.

Used by the default single-machine setup (the host console and the
participant gateway share one process) and by the test-suite. Writes are
applied and pushed to watchers synchronously. With ``defer_commits`` enabled
a write is first echoed as a pending snapshot and only committed (and its
future resolved) on :meth:`MemoryDocumentStore.flush`, which reproduces the
latency-compensated behaviour of a hosted store.
"""

from __future__ import annotations

from collections import deque
from concurrent.futures import Future
import copy
from dataclasses import dataclass
from datetime import datetime
import logging
from threading import RLock
from typing import Any, Callable, Mapping
from uuid import uuid4

from pulse_app.core.clock import Clock, SystemClock
from pulse_app.store.base import (
    SERVER_TIMESTAMP,
    DocumentCallback,
    DocumentExistsError,
    DocumentNotFoundError,
    DocumentSnapshot,
    DocumentStore,
    QueryCallback,
    QuerySnapshot,
    StoreError,
    Subscription,
    split_path,
)

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class _CollectionWatcher:
    path: str
    callback: QueryCallback
    order_by: str | None


@dataclass(slots=True)
class _PendingCommit:
    path: str
    future: Future[None]


class MemoryDocumentStore(DocumentStore):
    """Thread-safe dictionary-backed store with push notifications."""

    def __init__(self, clock: Clock | None = None, *, defer_commits: bool = False) -> None:
        self._clock = clock or SystemClock()
        self._defer_commits = defer_commits
        self._documents: dict[str, dict[str, Any]] = {}
        self._document_watchers: dict[str, list[DocumentCallback]] = {}
        self._collection_watchers: list[_CollectionWatcher] = []
        self._pending: deque[_PendingCommit] = deque()
        self._pending_paths: dict[str, int] = {}
        self._generation = 0
        self._offline = False
        self._lock = RLock()

    # --- Subscriptions ---

    def subscribe_document(self, path: str, callback: DocumentCallback) -> Subscription:
        with self._lock:
            self._document_watchers.setdefault(path, []).append(callback)
            snapshot = self._document_snapshot(path)

        def cancel() -> None:
            with self._lock:
                watchers = self._document_watchers.get(path, [])
                if callback in watchers:
                    watchers.remove(callback)

        callback(snapshot)
        return Subscription(cancel)

    def subscribe_collection(
        self,
        path: str,
        callback: QueryCallback,
        order_by: str | None = None,
    ) -> Subscription:
        watcher = _CollectionWatcher(path=path, callback=callback, order_by=order_by)
        with self._lock:
            self._collection_watchers.append(watcher)
            snapshot = self._query_snapshot(path, order_by)

        def cancel() -> None:
            with self._lock:
                if watcher in self._collection_watchers:
                    self._collection_watchers.remove(watcher)

        callback(snapshot)
        return Subscription(cancel)

    # --- Reads ---

    def get_document(self, path: str) -> DocumentSnapshot:
        with self._lock:
            return self._document_snapshot(path)

    def list_documents(self, path: str, order_by: str | None = None) -> list[DocumentSnapshot]:
        with self._lock:
            return list(self._query_snapshot(path, order_by).documents)

    def new_document_id(self, collection_path: str) -> str:
        return uuid4().hex[:20]

    def server_time(self) -> datetime:
        return self._clock.now()

    # --- Writes ---

    def set_document(self, path: str, data: Mapping[str, Any]) -> Future[None]:
        def mutate(existing: dict[str, Any] | None) -> dict[str, Any] | None:
            return self._resolve(dict(data))

        return self._write(path, mutate)

    def create_document(self, path: str, data: Mapping[str, Any]) -> Future[None]:
        def mutate(existing: dict[str, Any] | None) -> dict[str, Any] | None:
            if existing is not None:
                raise DocumentExistsError(f"Document {path} already exists.")
            return self._resolve(dict(data))

        return self._write(path, mutate)

    def update_document(self, path: str, fields: Mapping[str, Any]) -> Future[None]:
        def mutate(existing: dict[str, Any] | None) -> dict[str, Any] | None:
            if existing is None:
                raise DocumentNotFoundError(f"Document {path} does not exist.")
            merged = dict(existing)
            merged.update(self._resolve(dict(fields)))
            return merged

        return self._write(path, mutate)

    def delete_document(self, path: str) -> Future[None]:
        return self._write(path, lambda existing: None)

    # --- Operational controls ---

    def set_offline(self, offline: bool) -> None:
        """While offline every write fails, as during a network outage."""
        with self._lock:
            self._offline = offline

    @property
    def pending_count(self) -> int:
        with self._lock:
            return len(self._pending)

    def flush(self) -> int:
        """Commit every deferred write in order and return how many were committed."""
        committed = 0
        while True:
            with self._lock:
                if not self._pending:
                    return committed
                pending = self._pending.popleft()
                remaining = self._pending_paths.get(pending.path, 1) - 1
                if remaining:
                    self._pending_paths[pending.path] = remaining
                else:
                    self._pending_paths.pop(pending.path, None)
                self._generation += 1
                deliveries = self._collect_deliveries(pending.path)
            self._deliver(deliveries)
            pending.future.set_result(None)
            committed += 1

    # --- Internals ---

    def _write(
        self,
        path: str,
        mutate: Callable[[dict[str, Any] | None], dict[str, Any] | None],
    ) -> Future[None]:
        split_path(path)
        future: Future[None] = Future()
        with self._lock:
            if self._offline:
                future.set_exception(StoreError(f"Store unavailable, write to {path} failed."))
                return future
            try:
                updated = mutate(self._documents.get(path))
            except StoreError as exc:
                future.set_exception(exc)
                return future
            if updated is None:
                self._documents.pop(path, None)
            else:
                self._documents[path] = updated
            self._generation += 1
            if self._defer_commits:
                self._pending.append(_PendingCommit(path=path, future=future))
                self._pending_paths[path] = self._pending_paths.get(path, 0) + 1
            deliveries = self._collect_deliveries(path)
        self._deliver(deliveries)
        if not self._defer_commits:
            future.set_result(None)
        return future

    def _resolve(self, data: dict[str, Any]) -> dict[str, Any]:
        now = self._clock.now()
        resolved: dict[str, Any] = {}
        for key, value in data.items():
            if value is SERVER_TIMESTAMP:
                resolved[key] = now
            elif isinstance(value, dict):
                resolved[key] = self._resolve(value)
            else:
                resolved[key] = value
        return resolved

    def _document_snapshot(self, path: str) -> DocumentSnapshot:
        data = self._documents.get(path)
        return DocumentSnapshot(
            path=path,
            data=copy.deepcopy(data) if data is not None else None,
            generation=self._generation,
            has_pending_writes=path in self._pending_paths,
        )

    def _query_snapshot(self, path: str, order_by: str | None) -> QuerySnapshot:
        prefix = path.rstrip("/") + "/"
        members = [
            doc_path
            for doc_path in self._documents
            if doc_path.startswith(prefix) and "/" not in doc_path[len(prefix):]
        ]
        if order_by is not None:
            members = [doc_path for doc_path in members if self._documents[doc_path].get(order_by) is not None]
            members.sort(key=lambda doc_path: (self._documents[doc_path][order_by], doc_path))
        else:
            members.sort()
        documents = tuple(self._document_snapshot(doc_path) for doc_path in members)
        return QuerySnapshot(
            path=path,
            documents=documents,
            generation=self._generation,
            has_pending_writes=any(document.has_pending_writes for document in documents),
        )

    def _collect_deliveries(self, path: str) -> list[Callable[[], None]]:
        deliveries: list[Callable[[], None]] = []
        document_snapshot = self._document_snapshot(path)
        for callback in list(self._document_watchers.get(path, [])):
            deliveries.append(lambda cb=callback: cb(document_snapshot))
        collection_path, _ = split_path(path)
        for watcher in list(self._collection_watchers):
            if watcher.path.rstrip("/") != collection_path:
                continue
            query_snapshot = self._query_snapshot(watcher.path, watcher.order_by)
            deliveries.append(lambda w=watcher, snap=query_snapshot: w.callback(snap))
        return deliveries

    @staticmethod
    def _deliver(deliveries: list[Callable[[], None]]) -> None:
        for deliver in deliveries:
            deliver()
