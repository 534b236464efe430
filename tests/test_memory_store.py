from concurrent.futures import Future

import pytest

from pulse_app.store.base import (
    SERVER_TIMESTAMP,
    DocumentExistsError,
    DocumentNotFoundError,
    DocumentSnapshot,
    QuerySnapshot,
    SnapshotGate,
    StoreError,
    split_path,
)
from pulse_app.store.memory_store import MemoryDocumentStore


def _error(future: Future) -> BaseException | None:
    return future.exception(timeout=0)


def test_subscribe_delivers_current_snapshot_then_changes(store):
    seen: list[DocumentSnapshot] = []
    subscription = store.subscribe_document("sessions/1111", seen.append)

    assert len(seen) == 1 and not seen[0].exists

    store.set_document("sessions/1111", {"state": "waiting"}).result()
    assert seen[-1].data == {"state": "waiting"}
    assert seen[-1].generation > seen[0].generation

    subscription.unsubscribe()
    subscription.unsubscribe()
    store.update_document("sessions/1111", {"state": "voting"})
    assert len(seen) == 2


def test_server_timestamp_resolves_to_store_clock(store, clock):
    store.set_document("sessions/1111", {"createdAt": SERVER_TIMESTAMP, "nested": {"at": SERVER_TIMESTAMP}})

    data = store.get_document("sessions/1111").data
    assert data["createdAt"] == clock.now()
    assert data["nested"]["at"] == clock.now()


def test_ordered_query_skips_documents_without_the_field(store):
    store.set_document("sessions/1111/questions/b", {"order": 1})
    store.set_document("sessions/1111/questions/a", {"order": 0})
    store.set_document("sessions/1111/questions/legacy", {"text": "old"})
    store.set_document("sessions/1111/questions/blank", {"order": None})
    store.set_document("sessions/1111/questions/c", {"order": 1})

    snapshots: list[QuerySnapshot] = []
    store.subscribe_collection("sessions/1111/questions", snapshots.append, order_by="order")

    assert [document.id for document in snapshots[-1].documents] == ["a", "b", "c"]
    assert len(store.list_documents("sessions/1111/questions")) == 5


def test_collection_watchers_ignore_subcollections(store):
    snapshots: list[QuerySnapshot] = []
    store.subscribe_collection("sessions", snapshots.append)

    store.set_document("sessions/1111/questions/a", {"order": 0})

    assert len(snapshots) == 1


def test_create_refuses_existing_document(store):
    store.create_document("sessions/1111/responses/q__u", {"answer": "A"}).result()

    failed = store.create_document("sessions/1111/responses/q__u", {"answer": "B"})

    assert isinstance(_error(failed), DocumentExistsError)
    assert store.get_document("sessions/1111/responses/q__u").data["answer"] == "A"


def test_update_of_missing_document_fails(store):
    assert isinstance(_error(store.update_document("sessions/9999", {"state": "voting"})), DocumentNotFoundError)


def test_offline_writes_fail_without_changing_data(store):
    store.set_document("sessions/1111", {"state": "waiting"})
    store.set_offline(True)

    failed = store.update_document("sessions/1111", {"state": "voting"})

    assert isinstance(_error(failed), StoreError)
    assert store.get_document("sessions/1111").data["state"] == "waiting"


def test_deferred_commits_echo_pending_writes_first(clock):
    store = MemoryDocumentStore(clock, defer_commits=True)
    seen: list[DocumentSnapshot] = []
    store.subscribe_document("sessions/1111", seen.append)

    future = store.set_document("sessions/1111", {"state": "waiting"})

    assert seen[-1].has_pending_writes and seen[-1].data == {"state": "waiting"}
    assert not future.done()
    assert store.pending_count == 1

    assert store.flush() == 1
    assert future.done() and future.exception() is None
    assert not seen[-1].has_pending_writes


def test_snapshot_gate_drops_older_generations():
    gate = SnapshotGate()
    newer = DocumentSnapshot(path="sessions/1", data={}, generation=5)
    older = DocumentSnapshot(path="sessions/1", data={}, generation=4)

    assert gate.accept(newer)
    assert not gate.accept(older)
    assert not gate.accept(newer)
    gate.reset()
    assert gate.accept(older)


def test_split_path_rejects_collection_paths():
    assert split_path("sessions/1111/questions/a") == ("sessions/1111/questions", "a")
    with pytest.raises(ValueError):
        split_path("sessions")
