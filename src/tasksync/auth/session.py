# src/tasksync/auth/session.py

"""
Auth session.

Wraps the identity provider and publishes "who is signed in" as a stream:
- sign_in / sign_up / sign_out are attempted exactly once per call (no retries),
- current_identity() hands out a Subscription that starts with the current
  state and then receives an event whenever the signed-in user changes.
"""

from __future__ import annotations

import logging

from ..core.errors import AuthError
from ..core.ports import AuthProvider, Identity
from ..core.subscription import Subscription

logger = logging.getLogger(__name__)


class AuthSession:
    def __init__(self, provider: AuthProvider) -> None:
        self._provider = provider
        self._identity: Identity | None = None
        self._subscribers: list[Subscription[Identity | None]] = []

    @property
    def current(self) -> Identity | None:
        return self._identity

    @property
    def is_authenticated(self) -> bool:
        return self._identity is not None

    # ---- operations ----

    async def sign_in(self, email: str, password: str) -> Identity:
        email, password = _clean_credentials(email, password)
        logger.debug("Sign-in attempt email=%s", email)
        identity = await self._provider.sign_in(email, password)
        logger.info("Signed in uid=%s", identity.uid)
        self._set_identity(identity)
        return identity

    async def sign_up(self, email: str, password: str) -> Identity:
        email, password = _clean_credentials(email, password)
        logger.debug("Sign-up attempt email=%s", email)
        identity = await self._provider.sign_up(email, password)
        logger.info("Account created uid=%s", identity.uid)
        self._set_identity(identity)
        return identity

    async def sign_out(self) -> None:
        """Terminate the session. Local state is cleared even if the provider call fails."""
        identity = self._identity
        if identity is None:
            return
        try:
            await self._provider.sign_out(identity)
        except Exception:
            logger.warning("Provider sign-out failed uid=%s", identity.uid, exc_info=True)
        finally:
            self._set_identity(None)
            logger.info("Signed out uid=%s", identity.uid)

    async def refresh(self) -> Identity:
        """
        Exchange the refresh token for a fresh id token.

        Same user, so no identity event is emitted; subscribers keep their
        current identity and later store calls pick up the new token.
        """
        identity = self._identity
        if identity is None:
            raise AuthError.from_code("TOKEN_EXPIRED")
        fresh = await self._provider.refresh(identity)
        if self._identity is identity:
            self._identity = fresh
        logger.debug("Token refreshed uid=%s", fresh.uid)
        return fresh

    # ---- stream ----

    def current_identity(self) -> Subscription[Identity | None]:
        sub: Subscription[Identity | None] = Subscription(name="identity-subscription")
        self._subscribers.append(sub)
        sub.bind(lambda: self._unsubscribe(sub))
        sub.push(self._identity)
        return sub

    def _unsubscribe(self, sub: Subscription[Identity | None]) -> None:
        if sub in self._subscribers:
            self._subscribers.remove(sub)

    def _set_identity(self, identity: Identity | None) -> None:
        previous = self._identity
        self._identity = identity

        prev_uid = previous.uid if previous else None
        new_uid = identity.uid if identity else None
        if prev_uid == new_uid:
            return

        for sub in list(self._subscribers):
            sub.push(identity)


def _clean_credentials(email: str, password: str) -> tuple[str, str]:
    email = (email or "").strip()
    password = (password or "").strip()
    if not email or not password:
        raise AuthError.from_code("EMPTY_INPUT")
    return email, password
