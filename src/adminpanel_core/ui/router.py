from __future__ import annotations

import logging
from pathlib import Path
from typing import Any
from urllib.parse import urlencode

from fastapi import APIRouter, Form, Request
from fastapi.responses import HTMLResponse, RedirectResponse
from fastapi.templating import Jinja2Templates
from starlette.responses import Response

from adminpanel_core.api.variables import prepare_value
from adminpanel_core.auth import clear_session_cookie, set_session_cookie
from adminpanel_core.coercion import render, value_type
from adminpanel_core.errors import ConfigError, GatewayError
from adminpanel_core.health import aggregate_health
from adminpanel_core.proxy import VARIABLES_PATH, ProxyDispatcher, ProxyResult, variable_path
from adminpanel_core.registry import ServiceId

logger = logging.getLogger(__name__)

BASE_DIR = Path(__file__).resolve().parent
TEMPLATES_DIR = BASE_DIR / "templates"
STATIC_DIR = BASE_DIR / "static"

templates = Jinja2Templates(directory=str(TEMPLATES_DIR))

router = APIRouter(prefix="/ui", tags=["ui"])


def _flash_from_request(request: Request) -> dict[str, Any] | None:
    msg = request.query_params.get("msg")
    if not msg:
        return None
    kind = request.query_params.get("kind") or ""
    return {"message": msg, "kind": kind}


def _redirect(url: str, *, msg: str, kind: str = "ok") -> RedirectResponse:
    return RedirectResponse(url=f"{url}?{urlencode({'msg': msg, 'kind': kind})}", status_code=303)


def _dispatcher(request: Request) -> ProxyDispatcher:
    return request.app.state.dispatcher


def _error_message(result: ProxyResult, default: str) -> str:
    body = result.body if isinstance(result.body, dict) else {}
    return str(body.get("error") or body.get("message") or default)


def _login_page(request: Request, *, error: str | None, status_code: int) -> HTMLResponse:
    return templates.TemplateResponse(
        request,
        "login.html",
        {
            "title": "Login • Admin Panel",
            "hide_nav": True,
            "flash": _flash_from_request(request),
            "error": error,
        },
        status_code=status_code,
    )


@router.get("/login", response_class=HTMLResponse)
async def ui_login(request: Request) -> HTMLResponse:
    return _login_page(request, error=None, status_code=200)


@router.post("/login", response_model=None)
async def ui_login_post(request: Request, password: str = Form("")) -> Response:
    verifier = getattr(request.app.state, "credential_verifier", None)
    if verifier is None or not verifier.configured:
        return _login_page(request, error="Admin password not configured", status_code=500)

    if not password:
        return _login_page(request, error="Missing password", status_code=400)

    if not verifier.verify(password):
        logger.warning("Rejected UI login attempt")
        return _login_page(request, error="Invalid password. Please try again.", status_code=401)

    token = request.app.state.session_manager.issue()
    resp = _redirect("/ui", msg="Logged in")
    set_session_cookie(resp, token, secure=request.app.state.adminpanel_config.auth.cookie_secure)
    return resp


@router.post("/logout")
async def ui_logout() -> RedirectResponse:
    resp = _redirect("/ui/login", msg="Logged out")
    clear_session_cookie(resp)
    return resp


@router.get("", response_class=HTMLResponse)
async def ui_dashboard(request: Request) -> HTMLResponse:
    snapshots = await aggregate_health(_dispatcher(request))
    config = request.app.state.adminpanel_config
    return templates.TemplateResponse(
        request,
        "dashboard.html",
        {
            "title": "Service Health • Admin Panel",
            "active": "health",
            "flash": _flash_from_request(request),
            "snapshots": snapshots,
            "poll_interval_s": config.health.poll_interval_s,
        },
    )


@router.get("/variables", response_class=HTMLResponse)
async def ui_variables(request: Request) -> HTMLResponse:
    editing = request.query_params.get("edit")
    error: str | None = None
    items: list[dict[str, Any]] = []

    try:
        result = await _dispatcher(request).forward(ServiceId.SHARED_VARIABLES, VARIABLES_PATH)
    except GatewayError as exc:
        result = None
        error = exc.message

    if result is not None:
        body = result.body if isinstance(result.body, dict) else {}
        if not result.ok:
            error = _error_message(result, "Failed to fetch all variables.")
        elif isinstance(body.get("variables"), list):
            for raw in body["variables"]:
                if not isinstance(raw, dict) or "name" not in raw:
                    continue
                value = raw.get("value")
                items.append(
                    {
                        "name": raw["name"],
                        "text": render(value),
                        "type": value_type(value),
                    }
                )
        else:
            logger.warning("Variables response has no 'variables' array: %r", result.body)

    return templates.TemplateResponse(
        request,
        "variables.html",
        {
            "title": "Variables • Admin Panel",
            "active": "variables",
            "flash": _flash_from_request(request),
            "items": items,
            "editing": editing,
            "error": error,
        },
    )


@router.post("/variables", response_model=None)
async def ui_variables_create(
    request: Request, name: str = Form(""), value: str = Form("")
) -> Response:
    name = name.strip()
    if not name or value == "":
        return _redirect("/ui/variables", msg="Name and value cannot be empty.", kind="error")

    try:
        result = await _dispatcher(request).forward(
            ServiceId.SHARED_VARIABLES,
            VARIABLES_PATH,
            "POST",
            {"name": name, "value": prepare_value(value)},
        )
    except ConfigError as exc:
        return _redirect("/ui/variables", msg=exc.message, kind="error")

    if not result.ok:
        msg = _error_message(result, "Failed to create variable.")
        return _redirect("/ui/variables", msg=msg, kind="error")
    return _redirect("/ui/variables", msg="Variable created successfully!")


@router.post("/variables/update", response_model=None)
async def ui_variables_update(
    request: Request, name: str = Form(""), value: str = Form("")
) -> Response:
    # The name is a form field; it may contain "/".
    name = name.strip()
    if not name:
        return _redirect("/ui/variables", msg="Variable name is required.", kind="error")
    if value == "":
        return _redirect("/ui/variables", msg="Value cannot be empty.", kind="error")

    try:
        result = await _dispatcher(request).forward(
            ServiceId.SHARED_VARIABLES,
            variable_path(name),
            "PUT",
            {"value": prepare_value(value)},
        )
    except ConfigError as exc:
        return _redirect("/ui/variables", msg=exc.message, kind="error")

    if not result.ok:
        msg = _error_message(result, "Failed to update variable.")
        return _redirect("/ui/variables", msg=msg, kind="error")
    return _redirect("/ui/variables", msg="Variable updated successfully!")
