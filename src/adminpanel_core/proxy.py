from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Final
from urllib.parse import quote

import httpx
from starlette.responses import Response

from adminpanel_core.config import CoreConfig
from adminpanel_core.registry import CallKind, ServiceId, UpstreamRegistry

logger = logging.getLogger(__name__)

# Status for synthesized transport/parse failures; upstream-reported errors keep their own.
NETWORK_ERROR_STATUS: Final[int] = 502

VARIABLES_PATH: Final[str] = "/variables"
HEALTH_PATH: Final[str] = "/health"


def variable_path(name: str) -> str:
    return f"{VARIABLES_PATH}/{quote(name, safe='')}"


@dataclass(frozen=True)
class ProxyResult:
    service: str
    status_code: int
    # Parsed JSON body; None when the upstream sent no content.
    body: Any | None
    content: bytes = b""
    is_error: bool = False

    @property
    def ok(self) -> bool:
        return not self.is_error and 200 <= self.status_code < 300

    def to_response(self) -> Response:
        if self.content:
            return Response(
                content=self.content,
                status_code=self.status_code,
                media_type="application/json",
            )
        if self.body is None:
            return Response(status_code=self.status_code)
        return Response(
            content=json.dumps(self.body),
            status_code=self.status_code,
            media_type="application/json",
        )


def network_error(service_name: str, exc: Exception) -> ProxyResult:
    detail = str(exc) or exc.__class__.__name__
    return ProxyResult(
        service=service_name,
        status_code=NETWORK_ERROR_STATUS,
        body={
            "service": service_name,
            "status": "error",
            "error": f"Network error or service unreachable: {detail}",
        },
        is_error=True,
    )


def build_upstream_client(
    config: CoreConfig, *, transport: httpx.AsyncBaseTransport | None = None
) -> httpx.AsyncClient:
    return httpx.AsyncClient(timeout=config.proxy.timeout_s, transport=transport)


class ProxyDispatcher:
    """Forwards gateway calls to an upstream service and relays the result.

    Upstream status codes and JSON bodies are passed through untouched. Only
    transport failures, timeouts and unparsable bodies are replaced with a
    synthesized ``{"service", "status": "error", "error"}`` payload.
    """

    def __init__(
        self,
        registry: UpstreamRegistry,
        client: httpx.AsyncClient,
        *,
        api_key_header: str = "x-api-key",
    ) -> None:
        self._registry = registry
        self._client = client
        self._api_key_header = api_key_header

    @property
    def registry(self) -> UpstreamRegistry:
        return self._registry

    async def forward(
        self,
        service: ServiceId | str | None,
        path: str,
        method: str = "GET",
        body: Any | None = None,
        *,
        call: CallKind = "data",
    ) -> ProxyResult:
        descriptor = self._registry.resolve(service, call=call)
        url = f"{descriptor.base_url}{path}"

        headers = {"Content-Type": "application/json"}
        if descriptor.requires_api_key(call) and descriptor.api_key:
            headers[self._api_key_header] = descriptor.api_key

        logger.debug("Proxying %s %s to %s", method, path, descriptor.service_name)

        try:
            response = await self._client.request(method, url, headers=headers, json=body)
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            logger.error(
                "Error proxying %s %s for %s: %s",
                method,
                path,
                descriptor.service_name,
                exc,
            )
            return network_error(descriptor.service_name, exc)

        content = response.content
        if not content.strip():
            return ProxyResult(
                service=descriptor.service_name,
                status_code=response.status_code,
                body=None,
            )

        try:
            data = json.loads(content)
        except ValueError as exc:
            logger.error(
                "Unparsable response from %s for %s %s (status %s)",
                descriptor.service_name,
                method,
                path,
                response.status_code,
            )
            return network_error(descriptor.service_name, exc)

        return ProxyResult(
            service=descriptor.service_name,
            status_code=response.status_code,
            body=data,
            content=content,
        )
