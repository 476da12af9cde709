# src/tasksync/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the core.

The auth session and the task store depend on Protocols instead of concrete
backends. This keeps Firebase swappable for the offline backend and makes
testing easier.
"""

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any, Protocol

Document = dict[str, Any]
# (document id, document fields), in backend order.
SnapshotDocs = list[tuple[str, Document]]


@dataclass(frozen=True, slots=True)
class Identity:
    """
    Signed-in user as issued by the authentication provider.

    Only `uid` selects data; the tokens authorize document-store calls and are
    kept out of repr so they never end up in logs. `expires_at` is the wall-clock
    time (epoch seconds) after which the provider rejects `id_token`.
    """

    uid: str
    email: str | None = None
    id_token: str | None = field(default=None, repr=False)
    refresh_token: str | None = field(default=None, repr=False)
    expires_at: float | None = field(default=None, repr=False, compare=False)


class AuthProvider(Protocol):
    """Identity provider (Firebase Auth or the offline stand-in)."""

    async def sign_in(self, email: str, password: str) -> Identity: ...
    async def sign_up(self, email: str, password: str) -> Identity: ...
    async def sign_out(self, identity: Identity) -> None: ...
    async def refresh(self, identity: Identity) -> Identity: ...


class DocumentStore(Protocol):
    """
    Collection-oriented document database.

    Paths are slash-separated collection paths ("users/<uid>/tasks").
    Every call is authorized as `identity`.
    """

    async def add_document(self, path: str, data: Document, *, identity: Identity) -> str: ...

    async def update_document(
            self,
            path: str,
            doc_id: str,
            data: Document,
            *,
            identity: Identity,
    ) -> None: ...

    async def delete_document(self, path: str, doc_id: str, *, identity: Identity) -> None: ...

    def watch_collection(
            self,
            path: str,
            on_snapshot: Callable[[SnapshotDocs], None],
            on_error: Callable[[BaseException], None],
            *,
            identity: Identity,
    ) -> Callable[[], None]:
        """Start a live query. Returns the unsubscribe callable."""
        ...
