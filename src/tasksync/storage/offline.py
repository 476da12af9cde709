# src/tasksync/storage/offline.py

from __future__ import annotations

import copy
import logging
import secrets
import string
from collections.abc import Callable

from ..core.errors import NotFoundError
from ..core.ports import Document, Identity, SnapshotDocs

logger = logging.getLogger(__name__)

_ID_ALPHABET = string.ascii_letters + string.digits

SnapshotCallback = Callable[[SnapshotDocs], None]
ErrorCallback = Callable[[BaseException], None]


def auto_id() -> str:
    """20-character document key, same shape as Firestore auto-ids."""
    return "".join(secrets.choice(_ID_ALPHABET) for _ in range(20))


class OfflineDocumentStore:
    """
    In-memory document store with live queries.

    - collections are keyed by their full path ("users/<uid>/tasks")
    - documents keep insertion order; snapshots list them in that order
    - every committed write re-emits the full collection to its watchers,
      and a new watcher immediately receives the current snapshot

    Snapshots are deep copies, so callers can never mutate stored state.
    """

    def __init__(self) -> None:
        self._collections: dict[str, dict[str, Document]] = {}
        self._watchers: dict[str, list[tuple[SnapshotCallback, ErrorCallback]]] = {}

    def count_documents(self, path: str) -> int:
        return len(self._collections.get(path, {}))

    def watcher_count(self, path: str) -> int:
        return len(self._watchers.get(path, []))

    async def add_document(self, path: str, data: Document, *, identity: Identity) -> str:
        docs = self._collections.setdefault(path, {})
        doc_id = auto_id()
        while doc_id in docs:
            doc_id = auto_id()
        docs[doc_id] = copy.deepcopy(data)
        logger.debug("Offline add path=%s id=%s", path, doc_id)
        self._notify(path)
        return doc_id

    async def update_document(
        self,
        path: str,
        doc_id: str,
        data: Document,
        *,
        identity: Identity,
    ) -> None:
        docs = self._collections.get(path, {})
        if doc_id not in docs:
            raise NotFoundError(f"No document to update: {path}/{doc_id}")
        docs[doc_id] = copy.deepcopy(data)
        logger.debug("Offline update path=%s id=%s", path, doc_id)
        self._notify(path)

    async def delete_document(self, path: str, doc_id: str, *, identity: Identity) -> None:
        docs = self._collections.get(path, {})
        if docs.pop(doc_id, None) is None:
            return
        logger.debug("Offline delete path=%s id=%s", path, doc_id)
        self._notify(path)

    def watch_collection(
        self,
        path: str,
        on_snapshot: SnapshotCallback,
        on_error: ErrorCallback,
        *,
        identity: Identity,
    ) -> Callable[[], None]:
        entry = (on_snapshot, on_error)
        self._watchers.setdefault(path, []).append(entry)
        on_snapshot(self._snapshot(path))

        def unsubscribe() -> None:
            watchers = self._watchers.get(path, [])
            if entry in watchers:
                watchers.remove(entry)

        return unsubscribe

    def _snapshot(self, path: str) -> SnapshotDocs:
        docs = self._collections.get(path, {})
        return [(doc_id, copy.deepcopy(data)) for doc_id, data in docs.items()]

    def _notify(self, path: str) -> None:
        for on_snapshot, on_error in list(self._watchers.get(path, [])):
            try:
                on_snapshot(self._snapshot(path))
            except Exception as e:
                logger.exception("Snapshot listener failed path=%s", path)
                on_error(e)
