from __future__ import annotations

from fastapi import HTTPException, Request

from adminpanel_core.auth import CredentialVerifier, SessionManager
from adminpanel_core.config import CoreConfig
from adminpanel_core.proxy import ProxyDispatcher


def get_dispatcher(request: Request) -> ProxyDispatcher:
    dispatcher = getattr(request.app.state, "dispatcher", None)
    if dispatcher is None:
        raise HTTPException(status_code=500, detail="Upstream dispatcher not initialized")
    return dispatcher


def get_session_manager(request: Request) -> SessionManager:
    manager = getattr(request.app.state, "session_manager", None)
    if manager is None:
        raise HTTPException(status_code=500, detail="Session manager not initialized")
    return manager


def get_credential_verifier(request: Request) -> CredentialVerifier:
    verifier = getattr(request.app.state, "credential_verifier", None)
    if verifier is None or not verifier.configured:
        raise HTTPException(status_code=500, detail="Admin password not configured")
    return verifier


def get_config(request: Request) -> CoreConfig:
    config = getattr(request.app.state, "adminpanel_config", None)
    if config is None:
        raise HTTPException(status_code=500, detail="Config not initialized")
    return config
