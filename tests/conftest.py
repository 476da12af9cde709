# tests/conftest.py

from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace

import pytest

from tasksync.auth.offline import OfflineAuthProvider
from tasksync.auth.session import AuthSession
from tasksync.cli.bootstrap import create_initial_state
from tasksync.core.ports import Identity
from tasksync.core.state import AppState
from tasksync.storage.offline import OfflineDocumentStore
from tasksync.tasks.task_store import TaskStoreClient


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with bootstrap and the console view.

    We intentionally use a SimpleNamespace rather than importing real config,
    to keep unit tests isolated from the developer's .env.
    """
    return SimpleNamespace(
        app_name="tasksync-test",
        log_level="DEBUG",
        data_dir=tmp_path / "data",
        backend="offline",
        firebase_api_key=None,
        firebase_project_id=None,
        firebase_auth_emulator_host=None,
        http_timeout_seconds=5.0,
        firebase_configured=False,
    )


@pytest.fixture()
def state(settings: SimpleNamespace) -> AppState:
    """AppState wired by the real bootstrap with the offline backend."""
    return create_initial_state(settings=settings)


@pytest.fixture()
def auth() -> AuthSession:
    return AuthSession(OfflineAuthProvider())


@pytest.fixture()
def document_store() -> OfflineDocumentStore:
    # Real in-memory store: its snapshot semantics are part of what we test.
    return OfflineDocumentStore()


@pytest.fixture()
def task_store(document_store: OfflineDocumentStore) -> TaskStoreClient:
    return TaskStoreClient(document_store)


@pytest.fixture()
def identity() -> Identity:
    return Identity(uid="user-1", email="one@example.com", id_token="token-1", refresh_token="r-1")
