# tests/test_firestore_store.py

from __future__ import annotations

from types import SimpleNamespace
from typing import Any

import pytest
from google.api_core import exceptions as google_exceptions

from tasksync.core.errors import NotFoundError, SessionExpiredError, StoreError
from tasksync.core.ports import Identity
from tasksync.storage.firestore import FirestoreDocumentStore


class FakeDocRef:
    def __init__(self, client: FakeAsyncClient, path: str, doc_id: str) -> None:
        self.client = client
        self.path = path
        self.id = doc_id

    async def update(self, data: dict[str, Any]) -> None:
        self.client.calls.append(("update", self.path, self.id, data))
        if self.client.error is not None:
            raise self.client.error

    async def delete(self) -> None:
        self.client.calls.append(("delete", self.path, self.id))
        if self.client.error is not None:
            raise self.client.error


class FakeCollection:
    def __init__(self, client: FakeAsyncClient, path: str) -> None:
        self.client = client
        self.path = path

    async def add(self, data: dict[str, Any]) -> tuple[Any, Any]:
        self.client.calls.append(("add", self.path, data))
        if self.client.error is not None:
            raise self.client.error
        return object(), SimpleNamespace(id="generated-id")

    def document(self, doc_id: str) -> FakeDocRef:
        return FakeDocRef(self.client, self.path, doc_id)


class FakeAsyncClient:
    def __init__(self, credentials: Any) -> None:
        self.credentials = credentials
        self.calls: list[tuple[Any, ...]] = []
        self.error: Exception | None = None
        self.closed = False

    def collection(self, path: str) -> FakeCollection:
        return FakeCollection(self, path)

    async def close(self) -> None:
        self.closed = True


class FakeWatch:
    def __init__(self, callback) -> None:
        self.callback = callback
        self.unsubscribed = False

    def unsubscribe(self) -> None:
        self.unsubscribed = True


class FakeSyncClient:
    def __init__(self) -> None:
        self.watches: list[FakeWatch] = []
        self.closed = False

    def close(self) -> None:
        self.closed = True

    def collection(self, path: str) -> Any:
        def on_snapshot(callback):
            watch = FakeWatch(callback)
            self.watches.append(watch)
            return watch

        return SimpleNamespace(on_snapshot=on_snapshot)


@pytest.fixture()
def clients() -> dict[str, list[Any]]:
    return {"async": [], "sync": []}


@pytest.fixture()
def store(clients: dict[str, list[Any]]) -> FirestoreDocumentStore:
    def make_async(project_id: str, credentials: Any) -> FakeAsyncClient:
        assert project_id == "demo-project"
        client = FakeAsyncClient(credentials)
        clients["async"].append(client)
        return client

    def make_sync(project_id: str, credentials: Any) -> FakeSyncClient:
        client = FakeSyncClient()
        clients["sync"].append(client)
        return client

    return FirestoreDocumentStore(
        "demo-project",
        async_client_factory=make_async,
        sync_client_factory=make_sync,
    )


IDENTITY = Identity(uid="u1", id_token="tok-1")


@pytest.mark.asyncio
async def test_add_returns_generated_id_and_uses_user_token(store, clients) -> None:
    doc_id = await store.add_document("users/u1/tasks", {"name": "x"}, identity=IDENTITY)

    assert doc_id == "generated-id"
    client = clients["async"][0]
    assert client.credentials.token == "tok-1"
    assert client.calls == [("add", "users/u1/tasks", {"name": "x"})]


@pytest.mark.asyncio
async def test_client_is_reused_per_token(store, clients) -> None:
    await store.delete_document("users/u1/tasks", "a", identity=IDENTITY)
    await store.delete_document("users/u1/tasks", "b", identity=IDENTITY)
    assert len(clients["async"]) == 1

    refreshed = Identity(uid="u1", id_token="tok-2")
    await store.delete_document("users/u1/tasks", "c", identity=refreshed)
    assert len(clients["async"]) == 2
    assert clients["async"][1].credentials.token == "tok-2"
    assert clients["async"][0].closed
    assert not clients["async"][1].closed


@pytest.mark.asyncio
async def test_update_of_missing_document_is_not_found(store, clients) -> None:
    await store.delete_document("users/u1/tasks", "warmup", identity=IDENTITY)
    clients["async"][0].error = google_exceptions.NotFound("No document to update")

    with pytest.raises(NotFoundError):
        await store.update_document("users/u1/tasks", "gone", {"name": "x"}, identity=IDENTITY)

    # Deleting a missing document is still a success.
    await store.delete_document("users/u1/tasks", "gone", identity=IDENTITY)


@pytest.mark.asyncio
async def test_permission_denied_is_store_error(store, clients) -> None:
    await store.delete_document("users/u1/tasks", "warmup", identity=IDENTITY)
    clients["async"][0].error = google_exceptions.PermissionDenied("Missing or insufficient permissions.")

    with pytest.raises(StoreError, match="insufficient permissions") as exc_info:
        await store.add_document("users/u1/tasks", {}, identity=IDENTITY)
    assert not isinstance(exc_info.value, NotFoundError)

    with pytest.raises(StoreError):
        await store.update_document("users/u1/tasks", "a", {}, identity=IDENTITY)
    with pytest.raises(StoreError):
        await store.delete_document("users/u1/tasks", "a", identity=IDENTITY)


@pytest.mark.asyncio
async def test_rejected_token_is_session_expired(store, clients) -> None:
    await store.delete_document("users/u1/tasks", "warmup", identity=IDENTITY)
    clients["async"][0].error = google_exceptions.Unauthenticated("ID token expired")

    with pytest.raises(SessionExpiredError, match="ID token expired"):
        await store.add_document("users/u1/tasks", {}, identity=IDENTITY)
    with pytest.raises(SessionExpiredError):
        await store.update_document("users/u1/tasks", "a", {}, identity=IDENTITY)


@pytest.mark.asyncio
async def test_calls_without_token_fail(store) -> None:
    with pytest.raises(StoreError, match="Not signed in"):
        await store.add_document("users/u1/tasks", {}, identity=Identity(uid="u1"))


def test_watch_forwards_snapshots_and_unsubscribes(store, clients) -> None:
    snapshots: list[Any] = []
    errors: list[BaseException] = []

    unsubscribe = store.watch_collection(
        "users/u1/tasks", snapshots.append, errors.append, identity=IDENTITY
    )
    watch = clients["sync"][0].watches[0]

    docs = [
        SimpleNamespace(id="a", to_dict=lambda: {"name": "A"}),
        SimpleNamespace(id="b", to_dict=lambda: None),
    ]
    watch.callback(docs, [], None)

    assert snapshots == [[("a", {"name": "A"}), ("b", {})]]
    assert errors == []

    unsubscribe()
    assert watch.unsubscribed


def test_watch_reports_listener_failures(store, clients) -> None:
    errors: list[BaseException] = []

    def broken(_docs) -> None:
        raise ValueError("bad listener")

    store.watch_collection("users/u1/tasks", broken, errors.append, identity=IDENTITY)
    clients["sync"][0].watches[0].callback([], [], None)

    assert len(errors) == 1
    assert isinstance(errors[0], StoreError)


def test_missing_project_id_is_a_configuration_error() -> None:
    with pytest.raises(RuntimeError, match="project id"):
        FirestoreDocumentStore("")


def test_replaced_sync_client_stays_open_while_watched(store, clients) -> None:
    unsubscribe_old = store.watch_collection(
        "users/u1/tasks", lambda _docs: None, lambda _e: None, identity=IDENTITY
    )
    refreshed = Identity(uid="u1", id_token="tok-2")
    unsubscribe_new = store.watch_collection(
        "users/u1/tasks", lambda _docs: None, lambda _e: None, identity=refreshed
    )
    old, new = clients["sync"]

    assert not old.closed
    unsubscribe_old()
    assert old.watches[0].unsubscribed
    assert old.closed

    unsubscribe_new()
    unsubscribe_new()
    assert not new.closed


@pytest.mark.asyncio
async def test_aclose_closes_every_client(store, clients) -> None:
    await store.delete_document("users/u1/tasks", "a", identity=IDENTITY)
    await store.delete_document("users/u2/tasks", "a", identity=Identity(uid="u2", id_token="tok-u2"))
    store.watch_collection("users/u1/tasks", lambda _docs: None, lambda _e: None, identity=IDENTITY)

    await store.aclose()

    assert [c.closed for c in clients["async"]] == [True, True]
    assert [c.closed for c in clients["sync"]] == [True]

    # A later call opens a fresh client.
    await store.delete_document("users/u1/tasks", "b", identity=IDENTITY)
    assert len(clients["async"]) == 3
    assert not clients["async"][2].closed
