from __future__ import annotations

import hashlib
import hmac
import secrets
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Final, Protocol

from fastapi import HTTPException, Request, Security
from fastapi.security import APIKeyCookie
from starlette.responses import Response

from adminpanel_core.errors import AuthError

SESSION_COOKIE: Final[str] = "auth_token"

_session_cookie_scheme = APIKeyCookie(name=SESSION_COOKIE, auto_error=False)

# Tolerated clock skew for tokens stamped slightly in the future.
_MAX_SKEW_S: Final[int] = 60


class CredentialVerifier(Protocol):
    def verify(self, secret: str) -> bool: ...

    @property
    def configured(self) -> bool: ...


class StaticPasswordVerifier:
    """Compares login input against a single shared admin password."""

    def __init__(self, password: str | None) -> None:
        self._password = password or None

    @property
    def configured(self) -> bool:
        return self._password is not None

    def verify(self, secret: str) -> bool:
        if self._password is None:
            return False
        return secrets.compare_digest(secret.encode("utf-8"), self._password.encode("utf-8"))


@dataclass(frozen=True)
class SessionToken:
    value: str
    issued_at: int
    expires_at: int

    @property
    def max_age(self) -> int:
        return self.expires_at - self.issued_at


class SessionManager:
    """Issues and verifies opaque session tokens.

    Tokens look like ``<issued_at>.<nonce>.<hmac>``. They carry no identity, only
    proof that this process (or one sharing the secret) completed a login within
    ``max_age_s`` seconds.
    """

    def __init__(
        self,
        *,
        secret: bytes,
        max_age_s: int,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if not secret:
            raise ValueError("Session secret must not be empty")
        self._secret = secret
        self._max_age_s = max_age_s
        self._clock = clock

    @property
    def max_age_s(self) -> int:
        return self._max_age_s

    def _sign(self, payload: str) -> str:
        return hmac.new(self._secret, payload.encode("ascii"), hashlib.sha256).hexdigest()

    def issue(self) -> SessionToken:
        issued_at = int(self._clock())
        payload = f"{issued_at}.{secrets.token_hex(16)}"
        return SessionToken(
            value=f"{payload}.{self._sign(payload)}",
            issued_at=issued_at,
            expires_at=issued_at + self._max_age_s,
        )

    def verify(self, token: str | None) -> bool:
        if not token or not token.isascii():
            return False

        parts = token.split(".")
        if len(parts) != 3:
            return False
        issued_raw, nonce, signature = parts
        if not issued_raw.isdigit() or not nonce:
            return False

        expected = self._sign(f"{issued_raw}.{nonce}")
        if not hmac.compare_digest(expected, signature):
            return False

        age = int(self._clock()) - int(issued_raw)
        return -_MAX_SKEW_S <= age < self._max_age_s


def build_session_manager(secret: str | None, *, max_age_s: int) -> SessionManager:
    key = secret.encode("utf-8") if secret else secrets.token_bytes(32)
    return SessionManager(secret=key, max_age_s=max_age_s)


def set_session_cookie(response: Response, token: SessionToken, *, secure: bool) -> None:
    response.set_cookie(
        SESSION_COOKIE,
        token.value,
        httponly=True,
        samesite="lax",
        secure=secure,
        max_age=token.max_age,
    )


def clear_session_cookie(response: Response) -> None:
    response.delete_cookie(SESSION_COOKIE)


def is_exempt_path(path: str) -> bool:
    if path == "/healthz":
        return True
    if path == "/openapi.json":
        return True
    if path.startswith("/docs"):
        return True
    if path.startswith("/redoc"):
        return True
    if path == "/ui/login":
        return True
    if path == "/api/session":
        return True
    if path.startswith("/ui/static/"):
        return True
    return False


def is_authenticated(request: Request) -> bool:
    manager: SessionManager | None = getattr(request.app.state, "session_manager", None)
    if manager is None:
        return False
    return manager.verify(request.cookies.get(SESSION_COOKIE))


async def require_session(
    request: Request,
    session: str | None = Security(_session_cookie_scheme),  # noqa: B008
) -> None:
    """Require a valid session cookie for protected endpoints.

    The middleware rejects unauthenticated requests first; this dependency
    documents the cookie scheme in OpenAPI and guards routers used standalone.
    """

    manager: SessionManager | None = getattr(request.app.state, "session_manager", None)
    if manager is None:
        raise HTTPException(status_code=500, detail="Session manager not initialized")

    if not session or not manager.verify(session):
        raise AuthError("Unauthorized")
