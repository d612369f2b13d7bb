from __future__ import annotations

import logging
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, RedirectResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response
from starlette.staticfiles import StaticFiles

from adminpanel_core import __version__
from adminpanel_core.api.models import fail
from adminpanel_core.api.router import router as api_router
from adminpanel_core.auth import (
    CredentialVerifier,
    StaticPasswordVerifier,
    build_session_manager,
    is_authenticated,
    is_exempt_path,
)
from adminpanel_core.config import CoreConfig, load_core_config
from adminpanel_core.errors import AuthError, ConfigError, GatewayError
from adminpanel_core.proxy import ProxyDispatcher, build_upstream_client
from adminpanel_core.registry import UpstreamRegistry
from adminpanel_core.ui.router import STATIC_DIR as UI_STATIC_DIR
from adminpanel_core.ui.router import router as ui_router

logger = logging.getLogger(__name__)


def _status_to_code(status_code: int) -> str:
    if status_code == 401:
        return "unauthorized"
    if status_code == 403:
        return "forbidden"
    if status_code == 404:
        return "not_found"
    if status_code == 409:
        return "conflict"
    if status_code == 422:
        return "validation_error"
    if 400 <= status_code < 500:
        return "client_error"
    return "server_error"


def create_app(
    *,
    config: CoreConfig | None = None,
    credential_verifier: CredentialVerifier | None = None,
    upstream_transport: httpx.AsyncBaseTransport | None = None,
) -> FastAPI:
    @asynccontextmanager
    async def _lifespan(app: FastAPI):
        cfg = config if config is not None else load_core_config()

        logger.info("Admin panel gateway starting up")

        registry = UpstreamRegistry.from_config(cfg)
        client = build_upstream_client(cfg, transport=upstream_transport)

        app.state.adminpanel_config = cfg
        app.state.dispatcher = ProxyDispatcher(
            registry, client, api_key_header=cfg.proxy.api_key_header
        )
        app.state.session_manager = build_session_manager(
            cfg.auth.session_secret, max_age_s=cfg.auth.session_max_age_s
        )
        app.state.credential_verifier = (
            credential_verifier
            if credential_verifier is not None
            else StaticPasswordVerifier(cfg.auth.admin_password)
        )
        if not app.state.credential_verifier.configured:
            logger.warning("Admin password not configured; logins will be refused")

        try:
            yield
        finally:
            await client.aclose()

    app = FastAPI(title="Admin Panel Gateway", version=__version__, lifespan=_lifespan)

    class _SessionGuardMiddleware(BaseHTTPMiddleware):
        async def dispatch(self, request: Request, call_next) -> Response:
            path = request.url.path
            if is_exempt_path(path):
                return await call_next(request)

            if getattr(request.app.state, "session_manager", None) is None:
                return JSONResponse(
                    status_code=500,
                    content=fail(
                        code="internal_error",
                        message="Session manager not initialized",
                    ).model_dump(mode="json"),
                )

            if is_authenticated(request):
                return await call_next(request)

            # Browsers asking for a page get the login form instead of JSON.
            if request.method == "GET" and (path == "/" or path.startswith("/ui")):
                return RedirectResponse(url="/ui/login", status_code=302)

            denied = AuthError("Unauthorized")
            return JSONResponse(
                status_code=denied.status_code,
                content=fail(code=denied.code, message=denied.message).model_dump(mode="json"),
            )

    app.add_middleware(_SessionGuardMiddleware)

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        response = await call_next(request)
        logger.info(f"{request.method} {request.url.path} - {response.status_code}")
        return response

    @app.exception_handler(ConfigError)
    async def _config_error_handler(request: Request, exc: ConfigError) -> JSONResponse:
        logger.error("Configuration error: %s", exc.message)
        return JSONResponse(status_code=exc.status_code, content=exc.to_service_payload())

    @app.exception_handler(GatewayError)
    async def _gateway_error_handler(request: Request, exc: GatewayError) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content=fail(code=exc.code, message=exc.message, details=exc.details).model_dump(
                mode="json"
            ),
        )

    @app.exception_handler(RequestValidationError)
    async def _validation_error_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=422,
            content=fail(
                code="validation_error",
                message="Request validation failed",
                details=exc.errors(),
            ).model_dump(mode="json"),
        )

    @app.exception_handler(HTTPException)
    async def _http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content=fail(
                code=_status_to_code(exc.status_code),
                message=str(exc.detail),
            ).model_dump(mode="json"),
        )

    @app.exception_handler(StarletteHTTPException)
    async def _starlette_http_exception_handler(
        request: Request, exc: StarletteHTTPException
    ) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content=fail(
                code=_status_to_code(exc.status_code),
                message=exc.detail if isinstance(exc.detail, str) else "HTTP error",
            ).model_dump(mode="json"),
        )

    @app.exception_handler(Exception)
    async def _unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=500,
            content=fail(code="internal_error", message="Internal server error").model_dump(
                mode="json"
            ),
        )

    app.include_router(api_router)

    if UI_STATIC_DIR.is_dir():
        app.mount(
            "/ui/static",
            StaticFiles(directory=str(UI_STATIC_DIR)),
            name="ui-static",
        )
    else:
        logger.warning(
            "UI static directory is missing (%s); /ui/static will not be served",
            UI_STATIC_DIR,
        )
    app.include_router(ui_router)

    @app.get("/")
    async def root() -> RedirectResponse:
        return RedirectResponse(url="/ui", status_code=302)

    @app.get("/healthz")
    async def healthz() -> dict[str, str]:
        return {"status": "ok"}

    return app
