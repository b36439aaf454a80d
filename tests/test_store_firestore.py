import threading
import time

import pytest

from foodz.core.errors import StoreError
from foodz.services.store.firestore import FirestoreDocumentStore


class FakeWatch:
    def __init__(self):
        self.is_active = True
        self.unsubscribed = False

    def unsubscribe(self):
        self.unsubscribed = True
        self.is_active = False


class FakeDocument:
    def __init__(self, doc_id, data):
        self.id = doc_id
        self._data = data

    def to_dict(self):
        return dict(self._data)


class FakeCollection:
    def __init__(self, watch):
        self.watch = watch
        self.callback = None

    def on_snapshot(self, callback):
        self.callback = callback
        return self.watch


class FakeClient:
    def __init__(self):
        self.watch = FakeWatch()
        self.ref = FakeCollection(self.watch)

    def collection(self, path):
        return self.ref


@pytest.fixture
def watch_client():
    return FakeClient()


@pytest.fixture
def firestore_store(watch_client):
    # Skips firebase app initialisation; only the live-query path is exercised
    store = FirestoreDocumentStore.__new__(FirestoreDocumentStore)
    store._watch_client = watch_client
    store.watch_poll_interval = 0.01
    return store


def test_snapshots_are_decoded(firestore_store, watch_client):
    received = []
    unsubscribe = firestore_store.subscribe(
        "restaurants/r1/orders", on_snapshot=received.append, on_error=lambda e: None
    )

    watch_client.ref.callback([FakeDocument("o1", {"total": 5.0})], [], None)

    assert received == [[{"total": 5.0, "id": "o1"}]]
    unsubscribe()


def test_watch_closed_by_server_is_reported_once(firestore_store, watch_client):
    errors = []
    reported = threading.Event()

    def on_error(error):
        errors.append(error)
        reported.set()

    unsubscribe = firestore_store.subscribe(
        "restaurants/r1/orders", on_snapshot=lambda docs: None, on_error=on_error
    )
    watch_client.watch.is_active = False

    assert reported.wait(timeout=2)
    time.sleep(0.05)
    assert len(errors) == 1
    assert isinstance(errors[0], StoreError)
    assert errors[0].message == "Live updates unavailable"
    unsubscribe()


def test_unsubscribe_stops_the_monitor(firestore_store, watch_client):
    errors = []
    unsubscribe = firestore_store.subscribe(
        "restaurants/r1/orders", on_snapshot=lambda docs: None, on_error=errors.append
    )

    unsubscribe()
    unsubscribe()
    time.sleep(0.05)

    assert watch_client.watch.unsubscribed
    assert errors == []


def test_snapshots_after_failure_are_dropped(firestore_store, watch_client):
    received, errors = [], []
    firestore_store.subscribe(
        "restaurants/r1/orders", on_snapshot=received.append, on_error=errors.append
    )

    class Broken:
        id = "bad"

        def to_dict(self):
            raise ValueError("undecodable")

    watch_client.ref.callback([Broken()], [], None)
    watch_client.ref.callback([FakeDocument("o1", {})], [], None)

    assert len(errors) == 1
    assert received == []
    watch_client.watch.unsubscribe()
