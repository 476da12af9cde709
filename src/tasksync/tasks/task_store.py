# src/tasksync/tasks/task_store.py

from __future__ import annotations

import logging

from ..core.errors import NotFoundError, StoreError
from ..core.ports import DocumentStore, Identity, SnapshotDocs
from ..core.subscription import Subscription
from .task_models import Task

logger = logging.getLogger(__name__)


def tasks_collection_path(identity: Identity) -> str:
    """Per-user collection: users/{uid}/tasks."""
    uid = (identity.uid or "").strip()
    if not uid or "/" in uid:
        raise StoreError(f"Invalid user id for task collection: {identity.uid!r}")
    return f"users/{uid}/tasks"


class TaskStoreClient:
    """
    CRUD + live query over the signed-in user's task collection.

    Every call maps onto exactly one document-store call:
    - no caching, batching or retries
    - the collection path is derived from the identity passed in, on every call,
      so nothing survives a sign-out/sign-in cycle
    - failures propagate (StoreError / NotFoundError); nothing is swallowed
    """

    def __init__(self, store: DocumentStore) -> None:
        self._store = store

    def list(self, identity: Identity) -> Subscription[list[Task]]:
        """
        Live query: full task set now, then again after every change.
        Order inside a snapshot is whatever the backend delivers.
        """
        path = tasks_collection_path(identity)
        sub: Subscription[list[Task]] = Subscription(name=f"tasks-subscription:{path}")

        def on_snapshot(docs: SnapshotDocs) -> None:
            sub.push([Task.from_document(doc_id, data) for doc_id, data in docs])

        def on_error(exc: BaseException) -> None:
            logger.warning("Task live query failed path=%s: %s", path, exc)
            sub.fail(exc if isinstance(exc, StoreError) else StoreError(str(exc)))

        try:
            unsubscribe = self._store.watch_collection(path, on_snapshot, on_error, identity=identity)
        except BaseException:
            sub.close()
            raise
        sub.bind(unsubscribe)
        logger.debug("Task live query started path=%s", path)
        return sub

    async def add(self, identity: Identity, task: Task) -> Task:
        if not task.name or not task.name.strip():
            raise ValueError("task name is required")
        if not task.time_slot or not task.time_slot.strip():
            raise ValueError("time slot is required")

        path = tasks_collection_path(identity)
        doc_id = await self._store.add_document(path, task.to_document(), identity=identity)
        logger.info("Task added path=%s id=%s sub_tasks=%d", path, doc_id, len(task.sub_tasks))
        return task.with_id(doc_id)

    async def update(self, identity: Identity, task: Task) -> None:
        """Replace every field of an existing task."""
        path = tasks_collection_path(identity)
        if not task.id:
            raise NotFoundError("Task has no id (it was never created).")
        await self._store.update_document(path, task.id, task.to_document(), identity=identity)
        logger.info("Task updated path=%s id=%s completed=%s", path, task.id, task.is_completed)

    async def set_completed(self, identity: Identity, task: Task, completed: bool) -> Task:
        updated = task.with_completed(completed)
        await self.update(identity, updated)
        return updated

    async def delete(self, identity: Identity, task_id: str) -> None:
        """Remove a task. Deleting an id that no longer exists is not an error."""
        path = tasks_collection_path(identity)
        if not task_id:
            return
        await self._store.delete_document(path, task_id, identity=identity)
        logger.info("Task deleted path=%s id=%s", path, task_id)
