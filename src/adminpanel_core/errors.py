from __future__ import annotations

from typing import Any


class GatewayError(Exception):
    """Base for errors the gateway converts into a structured JSON response."""

    status_code: int = 500
    code: str = "internal_error"

    def __init__(self, message: str, *, details: Any | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details


class AuthError(GatewayError):
    status_code = 401
    code = "unauthorized"


class UnknownServiceError(GatewayError):
    status_code = 400
    code = "client_error"

    def __init__(self, service: str | None) -> None:
        super().__init__("Invalid service specified", details={"service": service})
        self.service = service


class InputValidationError(GatewayError):
    status_code = 422
    code = "validation_error"


class ConfigError(GatewayError):
    """A required upstream setting is missing.

    Names the service and the environment variable, never the secret itself.
    """

    status_code = 500
    code = "config_error"

    def __init__(self, service_name: str, setting: str, env_name: str) -> None:
        super().__init__(f"{service_name} {setting} not configured (set {env_name})")
        self.service_name = service_name
        self.env_name = env_name

    def to_service_payload(self) -> dict[str, str]:
        return {"service": self.service_name, "status": "error", "error": self.message}
