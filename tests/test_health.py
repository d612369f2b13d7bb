from __future__ import annotations

from adminpanel_core.health import normalize_health
from adminpanel_core.proxy import ProxyResult


def _ok(body: object, status: int = 200) -> ProxyResult:
    return ProxyResult(service="svc", status_code=status, body=body)


def test_healthy_requires_every_declared_dependency_connected() -> None:
    body = {
        "status": "healthy",
        "database_connections": {
            "redis": {"status": "connected", "error": None},
            "postgres": {"status": "disconnected", "error": "timeout"},
        },
    }
    snap = normalize_health("svc", _ok(body))
    assert snap.status == "degraded"
    assert snap.reported_status == "healthy"
    assert snap.dependencies["postgres"].error == "timeout"
    assert not snap.dependencies["postgres"].connected


def test_omitted_dependencies_are_not_penalized() -> None:
    snap = normalize_health("plan-controller-service", _ok({"status": "healthy"}))
    assert snap.status == "healthy"
    assert snap.dependencies == {}
    assert snap.service == "plan-controller-service"
    assert snap.timestamp


def test_partial_dependency_set_can_be_healthy() -> None:
    body = {"status": "healthy", "database_connections": {"redis": {"status": "connected"}}}
    assert normalize_health("svc", _ok(body)).status == "healthy"


def test_non_healthy_status_is_degraded() -> None:
    snap = normalize_health("svc", _ok({"status": "starting"}))
    assert snap.status == "degraded"
    assert snap.reported_status == "starting"


def test_error_status_and_error_responses() -> None:
    assert normalize_health("svc", _ok({"status": "error", "error": "boom"})).status == "error"

    failed = normalize_health("svc", _ok({"msg": "down"}, status=503))
    assert failed.status == "error"
    assert failed.error == "HTTP 503"
    assert failed.http_status == 503

    synthesized = ProxyResult(
        service="svc",
        status_code=502,
        body={"service": "svc", "status": "error", "error": "Network error: x"},
        is_error=True,
    )
    snap = normalize_health("svc", synthesized)
    assert snap.status == "error"
    assert snap.error == "Network error: x"


def test_empty_or_non_object_body_is_error() -> None:
    assert normalize_health("svc", _ok(None, status=200)).status == "error"
    assert normalize_health("svc", _ok(["healthy"])).status == "error"


def test_system_load_is_parsed_leniently() -> None:
    body = {
        "status": "healthy",
        "system_load": {
            "load_average_1min": 0.42,
            "load_average_5min": 0.3,
            "cpu_count": 8,
            "memory_usage": {"total_mb": 16000, "used_mb": "8000", "used_percentage": "50.0"},
        },
    }
    snap = normalize_health("svc", _ok(body))
    assert snap.system_load is not None
    assert snap.system_load.cpu_count == 8
    assert snap.system_load.memory_usage is not None
    assert snap.system_load.memory_usage.total_mb == "16000"
    assert snap.system_load.memory_usage.used_percent == 50.0

    garbled = normalize_health("svc", _ok({"status": "healthy", "system_load": {"cpu_count": "x"}}))
    assert garbled.system_load is None
    assert garbled.status == "healthy"
