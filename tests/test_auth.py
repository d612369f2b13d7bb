from __future__ import annotations

import pytest

from adminpanel_core.auth import SessionManager, StaticPasswordVerifier, is_exempt_path


class _Clock:
    def __init__(self, now: float) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


def test_issued_token_verifies_until_expiry() -> None:
    clock = _Clock(1_700_000_000)
    manager = SessionManager(secret=b"k" * 32, max_age_s=86400, clock=clock)

    token = manager.issue()
    assert token.max_age == 86400
    assert manager.verify(token.value)

    clock.now += 86399
    assert manager.verify(token.value)

    clock.now += 1
    assert not manager.verify(token.value)


def test_tampered_or_foreign_tokens_are_rejected() -> None:
    manager = SessionManager(secret=b"a" * 32, max_age_s=3600)
    other = SessionManager(secret=b"b" * 32, max_age_s=3600)

    token = manager.issue().value
    issued, nonce, sig = token.split(".")

    assert not other.verify(token)
    assert not manager.verify(f"{issued}.{nonce}.{'0' * len(sig)}")
    assert not manager.verify(f"{int(issued) - 10}.{nonce}.{sig}")


@pytest.mark.parametrize(
    "raw", [None, "", "authenticated", "a.b", "x.y.z", "1.2.3.4", "１２.n.sig", "1.n.sïg"]
)
def test_malformed_tokens_are_rejected(raw: str | None) -> None:
    manager = SessionManager(secret=b"s" * 32, max_age_s=3600)
    assert not manager.verify(raw)


def test_empty_secret_is_refused() -> None:
    with pytest.raises(ValueError):
        SessionManager(secret=b"", max_age_s=60)


def test_static_password_verifier() -> None:
    verifier = StaticPasswordVerifier("s3cret")
    assert verifier.configured
    assert verifier.verify("s3cret")
    assert not verifier.verify("S3CRET")
    assert not verifier.verify("")

    unset = StaticPasswordVerifier(None)
    assert not unset.configured
    assert not unset.verify("")


def test_exempt_paths() -> None:
    assert is_exempt_path("/healthz")
    assert is_exempt_path("/ui/login")
    assert is_exempt_path("/ui/static/app.css")
    assert is_exempt_path("/api/session")
    assert not is_exempt_path("/api/variables")
    assert not is_exempt_path("/api/health")
    assert not is_exempt_path("/ui")


def test_require_session_raises_auth_error_outside_the_middleware() -> None:
    from fastapi import Depends, FastAPI
    from fastapi.testclient import TestClient

    from adminpanel_core.auth import SESSION_COOKIE, require_session
    from adminpanel_core.errors import AuthError

    manager = SessionManager(secret=b"k" * 32, max_age_s=3600)
    app = FastAPI()
    app.state.session_manager = manager

    @app.get("/guarded", dependencies=[Depends(require_session)])
    async def guarded() -> dict[str, bool]:
        return {"ok": True}

    with TestClient(app) as client:
        with pytest.raises(AuthError):
            client.get("/guarded")

        client.cookies.set(SESSION_COOKIE, "forged.token.value")
        with pytest.raises(AuthError):
            client.get("/guarded")

        client.cookies.set(SESSION_COOKIE, manager.issue().value)
        assert client.get("/guarded").json() == {"ok": True}
