# src/tasksync/auth/firebase.py

"""
Firebase Authentication over its REST API (email/password provider).

Endpoints:
- identitytoolkit  accounts:signInWithPassword / accounts:signUp
- securetoken      token (refresh_token grant)

Both honor FIREBASE_AUTH_EMULATOR_HOST: requests are sent to
http://<host>/<service host>/... as the Firebase SDKs do.
"""

from __future__ import annotations

import logging
import time
from typing import Any

import httpx

from ..core.errors import AuthError
from ..core.ports import Identity

logger = logging.getLogger(__name__)

IDENTITY_TOOLKIT_HOST = "identitytoolkit.googleapis.com"
SECURE_TOKEN_HOST = "securetoken.googleapis.com"


class FirebaseAuthProvider:
    def __init__(
        self,
        api_key: str,
        *,
        emulator_host: str | None = None,
        timeout_seconds: float = 15.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        if not api_key or not api_key.strip():
            raise RuntimeError("Firebase API key is not set. Set TASKSYNC_FIREBASE_API_KEY in your .env.")
        self._api_key = api_key.strip()
        self._emulator_host = (emulator_host or "").strip() or None
        self._client = client or httpx.AsyncClient(timeout=httpx.Timeout(timeout_seconds))
        self._owns_client = client is None
        if self._emulator_host:
            logger.info("Firebase Auth emulator in use host=%s", self._emulator_host)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    # ---- urls ----

    def _base(self, service_host: str) -> str:
        if self._emulator_host:
            return f"http://{self._emulator_host}/{service_host}"
        return f"https://{service_host}"

    def _identity_url(self, method: str) -> str:
        return f"{self._base(IDENTITY_TOOLKIT_HOST)}/v1/accounts:{method}"

    def _token_url(self) -> str:
        return f"{self._base(SECURE_TOKEN_HOST)}/v1/token"

    # ---- AuthProvider ----

    async def sign_in(self, email: str, password: str) -> Identity:
        data = await self._post_json(
            self._identity_url("signInWithPassword"),
            {"email": email, "password": password, "returnSecureToken": True},
        )
        return _identity_from_account(data, email)

    async def sign_up(self, email: str, password: str) -> Identity:
        data = await self._post_json(
            self._identity_url("signUp"),
            {"email": email, "password": password, "returnSecureToken": True},
        )
        return _identity_from_account(data, email)

    async def sign_out(self, identity: Identity) -> None:
        # ID tokens are stateless bearer tokens; signing out is forgetting them.
        logger.debug("Firebase sign-out uid=%s", identity.uid)

    async def refresh(self, identity: Identity) -> Identity:
        if not identity.refresh_token:
            raise AuthError.from_code("INVALID_REFRESH_TOKEN")
        data = await self._post(
            self._token_url(),
            data={"grant_type": "refresh_token", "refresh_token": identity.refresh_token},
        )
        return Identity(
            uid=str(data.get("user_id") or identity.uid),
            email=identity.email,
            id_token=data.get("id_token"),
            refresh_token=data.get("refresh_token") or identity.refresh_token,
            expires_at=_expires_at(data.get("expires_in")),
        )

    # ---- transport ----

    async def _post_json(self, url: str, payload: dict[str, Any]) -> dict[str, Any]:
        return await self._post(url, json=payload)

    async def _post(self, url: str, **kwargs: Any) -> dict[str, Any]:
        try:
            resp = await self._client.post(url, params={"key": self._api_key}, **kwargs)
        except httpx.HTTPError as e:
            logger.info("Firebase Auth network error (%s)", e.__class__.__name__)
            raise AuthError.from_code("NETWORK_ERROR") from e

        try:
            body = resp.json()
        except ValueError:
            body = {}
        if not isinstance(body, dict):
            body = {}

        if resp.is_error:
            code = _error_code(body)
            logger.info("Firebase Auth rejected request status=%s code=%s", resp.status_code, code)
            raise AuthError.from_code(code)

        return body


def _error_code(body: dict[str, Any]) -> str:
    err = body.get("error")
    if isinstance(err, dict):
        return str(err.get("message") or "")
    if isinstance(err, str):
        # securetoken sometimes answers {"error": "invalid_grant", ...}
        return "INVALID_REFRESH_TOKEN" if err == "invalid_grant" else err
    return ""


def _identity_from_account(data: dict[str, Any], email: str) -> Identity:
    uid = str(data.get("localId") or "")
    if not uid:
        raise AuthError("Authentication response did not contain a user id.")
    return Identity(
        uid=uid,
        email=str(data.get("email") or email),
        id_token=data.get("idToken"),
        refresh_token=data.get("refreshToken"),
        expires_at=_expires_at(data.get("expiresIn")),
    )


def _expires_at(expires_in: Any) -> float | None:
    # Auth REST returns the token lifetime in seconds, as a string.
    try:
        seconds = float(expires_in)
    except (TypeError, ValueError):
        return None
    return time.time() + seconds
