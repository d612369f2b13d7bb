from __future__ import annotations

import asyncio
import logging
from datetime import UTC, datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from adminpanel_core.errors import ConfigError
from adminpanel_core.proxy import HEALTH_PATH, ProxyDispatcher, ProxyResult
from adminpanel_core.registry import UpstreamDescriptor

logger = logging.getLogger(__name__)

SnapshotStatus = Literal["healthy", "degraded", "error"]

CONNECTED = "connected"


class DependencyStatus(BaseModel):
    status: str
    error: str | None = None

    @property
    def connected(self) -> bool:
        return self.status == CONNECTED


class MemoryUsage(BaseModel):
    model_config = ConfigDict(extra="allow", coerce_numbers_to_str=True)

    total_mb: str | None = None
    free_mb: str | None = None
    used_mb: str | None = None
    used_percentage: str | None = None

    @property
    def used_percent(self) -> float | None:
        try:
            return float(self.used_percentage) if self.used_percentage is not None else None
        except ValueError:
            return None


class SystemLoad(BaseModel):
    model_config = ConfigDict(extra="allow")

    load_average_1min: float | None = None
    load_average_5min: float | None = None
    load_average_15min: float | None = None
    cpu_count: int | None = None
    memory_usage: MemoryUsage | None = None


class HealthSnapshot(BaseModel):
    service: str
    status: SnapshotStatus
    reported_status: str | None = None
    dependencies: dict[str, DependencyStatus] = Field(default_factory=dict)
    system_load: SystemLoad | None = None
    uptime: str | None = None
    timestamp: str
    error: str | None = None
    http_status: int | None = None


def _now_iso() -> str:
    return datetime.now(UTC).isoformat()


def _parse_dependencies(raw: Any) -> dict[str, DependencyStatus]:
    if not isinstance(raw, dict):
        return {}

    deps: dict[str, DependencyStatus] = {}
    for name, entry in raw.items():
        if isinstance(entry, dict):
            status = str(entry.get("status") or "unknown")
            error = entry.get("error")
            deps[str(name)] = DependencyStatus(
                status=status, error=str(error) if error is not None else None
            )
        elif isinstance(entry, str):
            deps[str(name)] = DependencyStatus(status=entry)
    return deps


def _parse_system_load(raw: Any) -> SystemLoad | None:
    if not isinstance(raw, dict):
        return None
    try:
        return SystemLoad.model_validate(raw)
    except ValidationError:
        logger.debug("Ignoring malformed system_load block: %r", raw)
        return None


def error_snapshot(service_name: str, message: str, *, http_status: int | None) -> HealthSnapshot:
    return HealthSnapshot(
        service=service_name,
        status="error",
        reported_status="error",
        timestamp=_now_iso(),
        error=message,
        http_status=http_status,
    )


def normalize_health(service_name: str, result: ProxyResult) -> HealthSnapshot:
    """Fold one upstream health response into a uniform snapshot.

    ``healthy`` requires the service's own status to say so and every dependency
    it reports to be connected; dependencies it omits are not counted against it.
    """

    body = result.body if isinstance(result.body, dict) else {}
    service = str(body.get("service") or service_name)

    if result.is_error or not (200 <= result.status_code < 300):
        message = body.get("error") or body.get("message") or f"HTTP {result.status_code}"
        snapshot = error_snapshot(service, str(message), http_status=result.status_code)
        # Keep whatever dependency detail a failing service still reports.
        snapshot.dependencies = _parse_dependencies(body.get("database_connections"))
        return snapshot

    if not body:
        return error_snapshot(
            service, "Empty or non-object health response", http_status=result.status_code
        )

    reported = str(body.get("status") or "unknown")
    dependencies = _parse_dependencies(body.get("database_connections"))

    if reported == "healthy" and all(d.connected for d in dependencies.values()):
        status: SnapshotStatus = "healthy"
    elif reported == "error":
        status = "error"
    else:
        status = "degraded"

    uptime = body.get("uptime")
    timestamp = body.get("timestamp")
    return HealthSnapshot(
        service=service,
        status=status,
        reported_status=reported,
        dependencies=dependencies,
        system_load=_parse_system_load(body.get("system_load")),
        uptime=str(uptime) if uptime is not None else None,
        timestamp=str(timestamp) if timestamp else _now_iso(),
        error=body.get("error") if isinstance(body.get("error"), str) else None,
        http_status=result.status_code,
    )


async def probe_service(
    dispatcher: ProxyDispatcher, descriptor: UpstreamDescriptor
) -> HealthSnapshot:
    try:
        result = await dispatcher.forward(descriptor.service_id, HEALTH_PATH, call="health")
    except ConfigError as exc:
        return error_snapshot(descriptor.service_name, exc.message, http_status=exc.status_code)
    return normalize_health(descriptor.service_name, result)


async def aggregate_health(dispatcher: ProxyDispatcher) -> list[HealthSnapshot]:
    """Probe every registered service concurrently; one failure never hides the others."""

    descriptors = dispatcher.registry.descriptors()
    return list(await asyncio.gather(*(probe_service(dispatcher, d) for d in descriptors)))
