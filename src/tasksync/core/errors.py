# src/tasksync/core/errors.py

"""
Error taxonomy shared by the auth and store layers.

Every backend failure surfaces as one of these; nothing is swallowed below the
view layer. The view prints `friendly_error_message(err)` as-is.
"""

from __future__ import annotations

# Provider error codes -> the messages the Firebase client SDKs show to end users.
AUTH_MESSAGES: dict[str, str] = {
    "EMAIL_NOT_FOUND": (
        "There is no user record corresponding to this identifier. "
        "The user may have been deleted."
    ),
    "INVALID_PASSWORD": "The password is invalid or the user does not have a password.",
    "INVALID_LOGIN_CREDENTIALS": "The supplied auth credential is incorrect, malformed or has expired.",
    "EMAIL_EXISTS": "The email address is already in use by another account.",
    "WEAK_PASSWORD": "Password should be at least 6 characters",
    "INVALID_EMAIL": "The email address is badly formatted.",
    "MISSING_EMAIL": "An email address must be provided.",
    "MISSING_PASSWORD": "A password must be provided.",
    "EMPTY_INPUT": "Given String is empty or null",
    "USER_DISABLED": "The user account has been disabled by an administrator.",
    "TOO_MANY_ATTEMPTS_TRY_LATER": (
        "We have blocked all requests from this device due to unusual activity. Try again later."
    ),
    "OPERATION_NOT_ALLOWED": "The given sign-in provider is disabled for this Firebase project.",
    "TOKEN_EXPIRED": "The user's credential is no longer valid. The user must sign in again.",
    "INVALID_REFRESH_TOKEN": "The user's credential is no longer valid. The user must sign in again.",
    "NETWORK_ERROR": (
        "A network error (such as timeout, interrupted connection or unreachable host) has occurred."
    ),
}

DEFAULT_AUTH_MESSAGE = "An error occurred"


class TaskSyncError(RuntimeError):
    """Base class for every error the app surfaces to the user."""


class AuthError(TaskSyncError):
    """Sign-in / sign-up / refresh failure. `message` is meant to be shown verbatim."""

    def __init__(self, message: str, *, code: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.code = code

    @classmethod
    def from_code(cls, code: str, detail: str | None = None) -> "AuthError":
        """
        Build from a provider error code.

        Some codes carry their own explanation after " : "
        (e.g. "WEAK_PASSWORD : Password should be at least 6 characters");
        that explanation wins over the table.
        """
        code = (code or "").strip()
        if " : " in code:
            code, _, inline = code.partition(" : ")
            code = code.strip()
            detail = detail or inline.strip()
        message = detail or AUTH_MESSAGES.get(code) or DEFAULT_AUTH_MESSAGE
        return cls(message, code=code or None)


class StoreError(TaskSyncError):
    """Network/permission failure while talking to the document store."""


class NotFoundError(StoreError):
    """The document addressed by an update no longer exists."""


class SessionExpiredError(StoreError):
    """The store rejected the ID token (expired or revoked). A token refresh may fix it."""


def friendly_error_message(err: Exception) -> str:
    if isinstance(err, AuthError):
        return err.message
    if isinstance(err, NotFoundError):
        return f"Task no longer exists ({err})."
    if isinstance(err, SessionExpiredError):
        return f"Your session has expired, sign in again ({err})."
    if isinstance(err, StoreError):
        return f"Could not reach the task store: {err}"
    msg = str(err).strip()
    return msg or DEFAULT_AUTH_MESSAGE
