from __future__ import annotations

import logging
from datetime import UTC, datetime

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse

from adminpanel_core.api.deps import get_config, get_credential_verifier, get_session_manager
from adminpanel_core.api.models import LoginRequest, SessionInfo, ok
from adminpanel_core.auth import (
    CredentialVerifier,
    SessionManager,
    clear_session_cookie,
    set_session_cookie,
)
from adminpanel_core.config import CoreConfig

logger = logging.getLogger(__name__)

router = APIRouter(tags=["session"])


@router.post("/session", response_model=None)
async def session_login(
    payload: LoginRequest,
    verifier: CredentialVerifier = Depends(get_credential_verifier),  # noqa: B008
    manager: SessionManager = Depends(get_session_manager),  # noqa: B008
    config: CoreConfig = Depends(get_config),  # noqa: B008
) -> JSONResponse:
    if not payload.password:
        raise HTTPException(status_code=400, detail="Missing password")
    if not verifier.verify(payload.password):
        logger.warning("Rejected login attempt")
        raise HTTPException(status_code=401, detail="Invalid password")

    token = manager.issue()
    info = SessionInfo(
        authenticated=True,
        expires_at=datetime.fromtimestamp(token.expires_at, UTC).isoformat(),
    )
    resp = JSONResponse(content=ok(info).model_dump(mode="json"))
    set_session_cookie(resp, token, secure=config.auth.cookie_secure)
    return resp


@router.delete("/session", response_model=None)
async def session_logout() -> JSONResponse:
    resp = JSONResponse(content=ok(SessionInfo(authenticated=False)).model_dump(mode="json"))
    clear_session_cookie(resp)
    return resp
