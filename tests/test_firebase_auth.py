# tests/test_firebase_auth.py

from __future__ import annotations

import json
import time
from urllib.parse import parse_qs

import httpx
import pytest

from tasksync.auth.firebase import FirebaseAuthProvider
from tasksync.core.errors import AUTH_MESSAGES, AuthError
from tasksync.core.ports import Identity


def _provider(handler, **kwargs) -> FirebaseAuthProvider:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return FirebaseAuthProvider("test-key", client=client, **kwargs)


def _error(message: str) -> httpx.Response:
    return httpx.Response(400, json={"error": {"code": 400, "message": message, "errors": []}})


@pytest.mark.asyncio
async def test_sign_in_posts_password_grant_and_returns_identity() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(
            200,
            json={
                "localId": "uid-123",
                "email": "me@example.com",
                "idToken": "id-tok",
                "refreshToken": "ref-tok",
                "expiresIn": "3600",
                "registered": True,
            },
        )

    provider = _provider(handler)
    identity = await provider.sign_in("me@example.com", "secret1")

    assert identity == Identity(uid="uid-123", email="me@example.com", id_token="id-tok", refresh_token="ref-tok")
    assert identity.expires_at is not None
    assert 3500 < identity.expires_at - time.time() <= 3600
    request = seen[0]
    assert str(request.url).startswith(
        "https://identitytoolkit.googleapis.com/v1/accounts:signInWithPassword"
    )
    assert request.url.params["key"] == "test-key"
    assert json.loads(request.content) == {
        "email": "me@example.com",
        "password": "secret1",
        "returnSecureToken": True,
    }


@pytest.mark.asyncio
async def test_sign_up_uses_emulator_host_when_configured() -> None:
    urls: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        urls.append(str(request.url).split("?")[0])
        return httpx.Response(200, json={"localId": "u1", "idToken": "t", "refreshToken": "r"})

    provider = _provider(handler, emulator_host="127.0.0.1:9099")
    identity = await provider.sign_up("new@example.com", "secret1")

    assert identity.email == "new@example.com"
    assert urls == ["http://127.0.0.1:9099/identitytoolkit.googleapis.com/v1/accounts:signUp"]


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("provider_message", "expected"),
    [
        ("EMAIL_NOT_FOUND", AUTH_MESSAGES["EMAIL_NOT_FOUND"]),
        ("EMAIL_EXISTS", AUTH_MESSAGES["EMAIL_EXISTS"]),
        ("INVALID_LOGIN_CREDENTIALS", AUTH_MESSAGES["INVALID_LOGIN_CREDENTIALS"]),
        ("WEAK_PASSWORD : Password should be at least 6 characters", "Password should be at least 6 characters"),
        ("SOMETHING_NEW", "An error occurred"),
    ],
)
async def test_provider_errors_become_auth_errors(provider_message: str, expected: str) -> None:
    provider = _provider(lambda request: _error(provider_message))

    with pytest.raises(AuthError) as exc_info:
        await provider.sign_in("me@example.com", "secret1")

    assert exc_info.value.message == expected


@pytest.mark.asyncio
async def test_network_failure_is_an_auth_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    provider = _provider(handler)

    with pytest.raises(AuthError) as exc_info:
        await provider.sign_up("me@example.com", "secret1")

    assert exc_info.value.code == "NETWORK_ERROR"
    assert isinstance(exc_info.value.__cause__, httpx.ConnectError)


@pytest.mark.asyncio
async def test_refresh_uses_secure_token_endpoint() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.host == "securetoken.googleapis.com"
        form = parse_qs(request.content.decode())
        assert form == {"grant_type": ["refresh_token"], "refresh_token": ["old-r"]}
        return httpx.Response(
            200,
            json={"user_id": "u1", "id_token": "new-id", "refresh_token": "new-r", "expires_in": "3600"},
        )

    provider = _provider(handler)
    fresh = await provider.refresh(Identity(uid="u1", email="a@b.co", id_token="old-id", refresh_token="old-r"))

    assert fresh == Identity(uid="u1", email="a@b.co", id_token="new-id", refresh_token="new-r")
    assert fresh.expires_at is not None and fresh.expires_at > time.time()


@pytest.mark.asyncio
async def test_refresh_with_revoked_token() -> None:
    provider = _provider(lambda request: httpx.Response(400, json={"error": "invalid_grant"}))

    with pytest.raises(AuthError) as exc_info:
        await provider.refresh(Identity(uid="u1", refresh_token="r"))
    assert exc_info.value.code == "INVALID_REFRESH_TOKEN"


def test_missing_api_key_is_a_configuration_error() -> None:
    with pytest.raises(RuntimeError, match="API key"):
        FirebaseAuthProvider("  ")
