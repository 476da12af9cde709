# src/tasksync/cli/bootstrap.py

"""
Builds AppState: picks the Firebase or offline backend from settings and
registers everything that needs closing on exit in `resources`.
"""

from __future__ import annotations

import logging

from ..auth.firebase import FirebaseAuthProvider
from ..auth.offline import OfflineAuthProvider
from ..auth.session import AuthSession
from ..config import BACKEND_FIREBASE, BACKEND_OFFLINE, get_settings
from ..core.state import AppState
from ..storage.firestore import FirestoreDocumentStore
from ..storage.offline import OfflineDocumentStore
from ..tasks.task_store import TaskStoreClient

logger = logging.getLogger(__name__)


def _ensure_local_dirs(settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)


def _offline_state(settings) -> AppState:
    return AppState(
        settings=settings,
        backend_name=BACKEND_OFFLINE,
        auth=AuthSession(OfflineAuthProvider()),
        task_store=TaskStoreClient(OfflineDocumentStore()),
    )


def _firebase_state(settings) -> AppState:
    provider = FirebaseAuthProvider(
        settings.firebase_api_key or "",
        emulator_host=settings.firebase_auth_emulator_host,
        timeout_seconds=settings.http_timeout_seconds,
    )
    store = FirestoreDocumentStore(settings.firebase_project_id or "")
    return AppState(
        settings=settings,
        backend_name=BACKEND_FIREBASE,
        auth=AuthSession(provider),
        task_store=TaskStoreClient(store),
        resources=(provider, store),
    )


def create_initial_state(*, settings=None) -> AppState:
    """
    Create AppState from the provided settings.

    backend=firebase  -> Firebase, configuration errors propagate
    backend=offline   -> in-memory backend
    backend=auto      -> Firebase when configured, otherwise offline
    """
    if settings is None:
        settings = get_settings()

    _ensure_local_dirs(settings)

    if settings.backend == BACKEND_OFFLINE:
        logger.info("Using offline backend (in-memory, data is lost on exit).")
        return _offline_state(settings)

    if settings.backend == BACKEND_FIREBASE:
        return _firebase_state(settings)

    if not settings.firebase_configured:
        logger.warning(
            "Firebase is not configured (TASKSYNC_FIREBASE_API_KEY / TASKSYNC_FIREBASE_PROJECT_ID); "
            "falling back to the offline backend."
        )
        return _offline_state(settings)

    try:
        return _firebase_state(settings)
    except RuntimeError:
        logger.exception("Firebase backend setup failed; falling back to the offline backend.")
        return _offline_state(settings)


async def close_state(state: AppState) -> None:
    """Best-effort release of backend resources (no exceptions should escape)."""
    try:
        await state.auth.sign_out()
    except Exception:
        logger.debug("Sign-out on shutdown failed.", exc_info=True)
    for resource in state.resources:
        try:
            await resource.aclose()
        except Exception:
            logger.debug("Resource close failed: %r", resource, exc_info=True)
