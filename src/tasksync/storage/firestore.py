# src/tasksync/storage/firestore.py

"""
Cloud Firestore document store.

- CRUD goes through firestore.AsyncClient (awaitable, runs on our event loop).
- Live queries use the synchronous Client's on_snapshot(): the SDK delivers
  snapshots on its own watch thread, callers must marshal them (Subscription
  does, via call_soon_threadsafe).
- Calls are authorized with the signed-in user's Firebase ID token, so
  Firestore security rules see the end user, not a service account.
- FIRESTORE_EMULATOR_HOST is honored by the SDK itself.

google.api_core errors never leak out: NotFound -> NotFoundError,
Unauthenticated -> SessionExpiredError, everything else -> StoreError.

Clients are cached per user and replaced when the ID token changes. A replaced
async client is closed right away; a replaced sync client stays open until its
last watch is unsubscribed. aclose() closes whatever is left.
"""

from __future__ import annotations

import inspect
import logging
from collections.abc import Callable
from typing import Any

from google.api_core import exceptions as google_exceptions
from google.auth import exceptions as auth_exceptions
from google.cloud import firestore
from google.oauth2.credentials import Credentials

from ..core.errors import NotFoundError, SessionExpiredError, StoreError
from ..core.ports import Document, Identity, SnapshotDocs

logger = logging.getLogger(__name__)

ClientFactory = Callable[[str, Credentials], Any]

_BACKEND_ERRORS = (google_exceptions.GoogleAPIError, auth_exceptions.GoogleAuthError)


def _default_async_client(project_id: str, credentials: Credentials) -> Any:
    return firestore.AsyncClient(project=project_id, credentials=credentials)


def _default_sync_client(project_id: str, credentials: Credentials) -> Any:
    return firestore.Client(project=project_id, credentials=credentials)


def _describe(exc: BaseException) -> str:
    msg = getattr(exc, "message", None) or str(exc)
    return f"{exc.__class__.__name__}: {msg}".strip()


def _store_error(exc: BaseException) -> StoreError:
    if isinstance(exc, google_exceptions.Unauthenticated):
        return SessionExpiredError(_describe(exc))
    return StoreError(_describe(exc))


class FirestoreDocumentStore:
    def __init__(
        self,
        project_id: str,
        *,
        async_client_factory: ClientFactory = _default_async_client,
        sync_client_factory: ClientFactory = _default_sync_client,
    ) -> None:
        if not project_id or not project_id.strip():
            raise RuntimeError(
                "Firebase project id is not set. Set TASKSYNC_FIREBASE_PROJECT_ID in your .env."
            )
        self._project_id = project_id.strip()
        self._async_client_factory = async_client_factory
        self._sync_client_factory = sync_client_factory
        # uid -> (id_token, client); a new token for the same user replaces the client.
        self._async_clients: dict[str, tuple[str, Any]] = {}
        self._sync_clients: dict[str, tuple[str, Any]] = {}
        # id(sync client) -> number of live watches on it.
        self._watch_counts: dict[int, int] = {}
        # Replaced sync clients waiting for their watches to stop, keyed by id().
        self._retired_sync: dict[int, Any] = {}

    # ---- clients ----

    @staticmethod
    def _token(identity: Identity) -> str:
        if not identity.id_token:
            raise StoreError("Not signed in: no ID token for Firestore requests.")
        return identity.id_token

    def _client(
        self,
        cache: dict[str, tuple[str, Any]],
        factory: ClientFactory,
        identity: Identity,
    ) -> tuple[Any, Any]:
        """Returns (client, replaced client or None)."""
        token = self._token(identity)
        cached = cache.get(identity.uid)
        if cached is not None and cached[0] == token:
            return cached[1], None
        try:
            client = factory(self._project_id, Credentials(token=token))
        except _BACKEND_ERRORS as e:
            raise _store_error(e) from e
        cache[identity.uid] = (token, client)
        logger.debug("Firestore client created uid=%s project=%s", identity.uid, self._project_id)
        return client, (cached[1] if cached is not None else None)

    async def _async(self, identity: Identity) -> Any:
        client, replaced = self._client(self._async_clients, self._async_client_factory, identity)
        if replaced is not None:
            await _close_async_client(replaced)
        return client

    def _sync(self, identity: Identity) -> Any:
        client, replaced = self._client(self._sync_clients, self._sync_client_factory, identity)
        if replaced is not None:
            if self._watch_counts.get(id(replaced)):
                self._retired_sync[id(replaced)] = replaced
            else:
                _close_sync_client(replaced)
        return client

    def _watch_stopped(self, client: Any) -> None:
        key = id(client)
        remaining = self._watch_counts.get(key, 1) - 1
        if remaining > 0:
            self._watch_counts[key] = remaining
            return
        self._watch_counts.pop(key, None)
        retired = self._retired_sync.pop(key, None)
        if retired is not None:
            _close_sync_client(retired)

    async def aclose(self) -> None:
        async_clients = [client for _token, client in self._async_clients.values()]
        sync_clients = [client for _token, client in self._sync_clients.values()]
        sync_clients.extend(self._retired_sync.values())
        self._async_clients.clear()
        self._sync_clients.clear()
        self._retired_sync.clear()
        self._watch_counts.clear()

        for client in async_clients:
            await _close_async_client(client)
        for client in sync_clients:
            _close_sync_client(client)

    # ---- DocumentStore ----

    async def add_document(self, path: str, data: Document, *, identity: Identity) -> str:
        collection = (await self._async(identity)).collection(path)
        try:
            _update_time, ref = await collection.add(data)
        except _BACKEND_ERRORS as e:
            raise _store_error(e) from e
        return str(ref.id)

    async def update_document(
        self,
        path: str,
        doc_id: str,
        data: Document,
        *,
        identity: Identity,
    ) -> None:
        ref = (await self._async(identity)).collection(path).document(doc_id)
        try:
            await ref.update(data)
        except google_exceptions.NotFound as e:
            raise NotFoundError(f"No document to update: {path}/{doc_id}") from e
        except _BACKEND_ERRORS as e:
            raise _store_error(e) from e

    async def delete_document(self, path: str, doc_id: str, *, identity: Identity) -> None:
        ref = (await self._async(identity)).collection(path).document(doc_id)
        try:
            await ref.delete()
        except google_exceptions.NotFound:
            # Firestore deletes are idempotent; an emulator may still answer 404.
            return
        except _BACKEND_ERRORS as e:
            raise _store_error(e) from e

    def watch_collection(
        self,
        path: str,
        on_snapshot: Callable[[SnapshotDocs], None],
        on_error: Callable[[BaseException], None],
        *,
        identity: Identity,
    ) -> Callable[[], None]:
        def _callback(docs: list[Any], _changes: Any, _read_time: Any) -> None:
            # Runs on the SDK watch thread.
            try:
                on_snapshot([(str(d.id), d.to_dict() or {}) for d in docs])
            except Exception as e:
                logger.exception("Snapshot callback failed path=%s", path)
                on_error(StoreError(_describe(e)))

        client = self._sync(identity)
        try:
            watch = client.collection(path).on_snapshot(_callback)
        except _BACKEND_ERRORS as e:
            raise _store_error(e) from e
        self._watch_counts[id(client)] = self._watch_counts.get(id(client), 0) + 1
        logger.debug("Firestore watch started path=%s", path)

        stopped = False

        def unsubscribe() -> None:
            nonlocal stopped
            if stopped:
                return
            stopped = True
            try:
                watch.unsubscribe()
            finally:
                self._watch_stopped(client)
            logger.debug("Firestore watch stopped path=%s", path)

        return unsubscribe


async def _close_async_client(client: Any) -> None:
    try:
        result = client.close()
        if inspect.isawaitable(result):
            await result
    except Exception:
        logger.warning("Failed to close Firestore async client.", exc_info=True)


def _close_sync_client(client: Any) -> None:
    try:
        client.close()
    except Exception:
        logger.warning("Failed to close Firestore client.", exc_info=True)
