"""Cloud Firestore adapter for the document store boundary."""

from __future__ import annotations

from concurrent.futures import Future, ThreadPoolExecutor
from datetime import datetime
import itertools
import json
import logging
from threading import Lock
from typing import Any, Callable, Mapping

import firebase_admin
from firebase_admin import credentials, firestore as _firestore
from google.api_core import exceptions as google_exceptions
from google.cloud.firestore import Client as FirestoreClient

from pulse_app.core.clock import SystemClock
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
)

logger = logging.getLogger(__name__)

WRITE_WORKERS = 8


def init_firebase(service_account_json: str | None) -> None:
    """Initialise the default Firebase app once per process."""
    try:
        firebase_admin.get_app()
    except ValueError:
        if not service_account_json:
            raise RuntimeError("FIREBASE_SERVICE_ACCOUNT_JSON is not set")
        cred = credentials.Certificate(json.loads(service_account_json))
        firebase_admin.initialize_app(cred)


def get_db() -> FirestoreClient:
    """
    Return a Firestore client.
    """
    return _firestore.client()


def _to_firestore(data: Mapping[str, Any]) -> dict[str, Any]:
    converted: dict[str, Any] = {}
    for key, value in data.items():
        if value is SERVER_TIMESTAMP:
            converted[key] = _firestore.SERVER_TIMESTAMP
        elif isinstance(value, Mapping):
            converted[key] = _to_firestore(value)
        else:
            converted[key] = value
    return converted


class FirestoreDocumentStore(DocumentStore):
    """Document store backed by Firestore snapshot listeners.

    The admin SDK writes synchronously, so writes run on a small thread pool
    and are handed back as futures. Listener callbacks arrive on the SDK's
    watch thread; generations are assigned in arrival order per store.
    """

    def __init__(self, client: FirestoreClient) -> None:
        self._client = client
        self._executor = ThreadPoolExecutor(max_workers=WRITE_WORKERS, thread_name_prefix="firestore-write")
        self._generations = itertools.count(1)
        self._generation_lock = Lock()
        self._clock = SystemClock()

    @classmethod
    def from_service_account(cls, service_account_json: str | None) -> "FirestoreDocumentStore":
        init_firebase(service_account_json)
        return cls(get_db())

    def close(self) -> None:
        self._executor.shutdown(wait=False)

    def _next_generation(self) -> int:
        with self._generation_lock:
            return next(self._generations)

    # --- Subscriptions ---

    def subscribe_document(self, path: str, callback: DocumentCallback) -> Subscription:
        def on_snapshot(doc_snapshots, changes, read_time) -> None:
            generation = self._next_generation()
            for doc in doc_snapshots:
                callback(DocumentSnapshot(path=path, data=doc.to_dict() if doc.exists else None, generation=generation))

        watch = self._client.document(path).on_snapshot(on_snapshot)
        return Subscription(watch.unsubscribe)

    def subscribe_collection(
        self,
        path: str,
        callback: QueryCallback,
        order_by: str | None = None,
    ) -> Subscription:
        query = self._client.collection(path)
        if order_by is not None:
            query = query.order_by(order_by)

        def on_snapshot(doc_snapshots, changes, read_time) -> None:
            generation = self._next_generation()
            documents = tuple(
                DocumentSnapshot(path=f"{path}/{doc.id}", data=doc.to_dict(), generation=generation)
                for doc in doc_snapshots
            )
            callback(QuerySnapshot(path=path, documents=documents, generation=generation))

        watch = query.on_snapshot(on_snapshot)
        return Subscription(watch.unsubscribe)

    # --- Reads ---

    def get_document(self, path: str) -> DocumentSnapshot:
        doc = self._guard(lambda: self._client.document(path).get())
        return DocumentSnapshot(
            path=path,
            data=doc.to_dict() if doc.exists else None,
            generation=self._next_generation(),
        )

    def list_documents(self, path: str, order_by: str | None = None) -> list[DocumentSnapshot]:
        query = self._client.collection(path)
        if order_by is not None:
            query = query.order_by(order_by)
        docs = self._guard(lambda: list(query.stream()))
        generation = self._next_generation()
        return [DocumentSnapshot(path=f"{path}/{doc.id}", data=doc.to_dict(), generation=generation) for doc in docs]

    def new_document_id(self, collection_path: str) -> str:
        return self._client.collection(collection_path).document().id

    def server_time(self) -> datetime:
        # The admin SDK exposes no server clock; the local clock is the estimate.
        return self._clock.now()

    # --- Writes ---

    def set_document(self, path: str, data: Mapping[str, Any]) -> Future[None]:
        return self._submit(lambda: self._client.document(path).set(_to_firestore(data)))

    def create_document(self, path: str, data: Mapping[str, Any]) -> Future[None]:
        return self._submit(lambda: self._client.document(path).create(_to_firestore(data)))

    def update_document(self, path: str, fields: Mapping[str, Any]) -> Future[None]:
        return self._submit(lambda: self._client.document(path).update(_to_firestore(fields)))

    def delete_document(self, path: str) -> Future[None]:
        return self._submit(lambda: self._client.document(path).delete())

    def _submit(self, operation: Callable[[], Any]) -> Future[None]:
        def run() -> None:
            self._guard(operation)

        return self._executor.submit(run)

    @staticmethod
    def _guard(operation: Callable[[], Any]) -> Any:
        try:
            return operation()
        except google_exceptions.AlreadyExists as exc:
            raise DocumentExistsError(str(exc)) from exc
        except google_exceptions.NotFound as exc:
            raise DocumentNotFoundError(str(exc)) from exc
        except google_exceptions.GoogleAPICallError as exc:
            logger.warning("Firestore call failed: %s", exc)
            raise StoreError(str(exc)) from exc
