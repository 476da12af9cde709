# src/tasksync/auth/offline.py

from __future__ import annotations

import logging
import re
import secrets
import string
import time
from dataclasses import dataclass

from ..core.errors import AuthError
from ..core.ports import Identity

logger = logging.getLogger(__name__)

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
_UID_ALPHABET = string.ascii_letters + string.digits
MIN_PASSWORD_LENGTH = 6
# Firebase ID tokens live for one hour.
TOKEN_LIFETIME_SECONDS = 3600.0


@dataclass(slots=True)
class _Account:
    uid: str
    email: str
    password: str


class OfflineAuthProvider:
    """
    In-memory email/password provider used for demos when Firebase is not configured.

    Behavior mirrors the Firebase email/password provider closely enough for the
    app: same validation rules, same error codes/messages. Accounts live only
    for the lifetime of the process.
    """

    def __init__(self, *, token_lifetime_seconds: float = TOKEN_LIFETIME_SECONDS) -> None:
        self._accounts: dict[str, _Account] = {}
        self._token_lifetime = token_lifetime_seconds

    async def sign_in(self, email: str, password: str) -> Identity:
        account = self._accounts.get(email.lower())
        if account is None:
            raise AuthError.from_code("EMAIL_NOT_FOUND")
        if not secrets.compare_digest(account.password.encode(), password.encode()):
            raise AuthError.from_code("INVALID_PASSWORD")
        return self._issue(account)

    async def sign_up(self, email: str, password: str) -> Identity:
        if not _EMAIL_RE.match(email):
            raise AuthError.from_code("INVALID_EMAIL")
        if len(password) < MIN_PASSWORD_LENGTH:
            raise AuthError.from_code("WEAK_PASSWORD")
        key = email.lower()
        if key in self._accounts:
            raise AuthError.from_code("EMAIL_EXISTS")

        account = _Account(uid=_new_uid(), email=email, password=password)
        self._accounts[key] = account
        logger.debug("Offline account created uid=%s", account.uid)
        return self._issue(account)

    async def sign_out(self, identity: Identity) -> None:
        return

    async def refresh(self, identity: Identity) -> Identity:
        if not identity.refresh_token:
            raise AuthError.from_code("INVALID_REFRESH_TOKEN")
        return Identity(
            uid=identity.uid,
            email=identity.email,
            id_token=secrets.token_urlsafe(24),
            refresh_token=identity.refresh_token,
            expires_at=time.time() + self._token_lifetime,
        )

    def _issue(self, account: _Account) -> Identity:
        return Identity(
            uid=account.uid,
            email=account.email,
            id_token=secrets.token_urlsafe(24),
            refresh_token=secrets.token_urlsafe(24),
            expires_at=time.time() + self._token_lifetime,
        )


def _new_uid() -> str:
    # Firebase uids are 28 alphanumeric characters.
    return "".join(secrets.choice(_UID_ALPHABET) for _ in range(28))
