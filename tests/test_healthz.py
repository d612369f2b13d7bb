from __future__ import annotations

from fastapi.testclient import TestClient

from adminpanel_core.app import create_app


def test_healthz_ok(gateway_env) -> None:
    with TestClient(create_app()) as client:
        response = client.get("/healthz")
        assert response.status_code == 200
        assert response.json() == {"status": "ok"}


def test_docs_and_openapi_are_public(gateway_env) -> None:
    with TestClient(create_app()) as client:
        assert client.get("/docs").status_code == 200

        openapi = client.get("/openapi.json")
        assert openapi.status_code == 200
        schema = openapi.json()
        assert "/api/variables" in schema.get("paths", {})
        assert "security" in schema["paths"]["/api/variables"]["get"]
