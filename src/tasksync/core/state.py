# src/tasksync/core/state.py

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from ..auth.session import AuthSession
from ..tasks.task_store import TaskStoreClient


@dataclass
class AppState:
    """Wired application services, shared by the CLI and the console view."""

    settings: Any
    backend_name: str

    auth: AuthSession
    task_store: TaskStoreClient

    # Objects with an async aclose() (HTTP clients), closed on shutdown.
    resources: tuple[Any, ...] = ()
