from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import StrEnum
from typing import Literal

from adminpanel_core.config import CoreConfig, UpstreamConfig
from adminpanel_core.errors import ConfigError, UnknownServiceError

logger = logging.getLogger(__name__)

CallKind = Literal["data", "health"]


class ServiceId(StrEnum):
    SHARED_VARIABLES = "shared-variables"
    PLAN_CONTROLLER = "plan-controller"


@dataclass(frozen=True)
class UpstreamDescriptor:
    service_id: ServiceId
    service_name: str
    base_url: str | None
    api_key: str | None
    requires_api_key_for_health: bool
    requires_api_key_for_data: bool
    url_env: str
    api_key_env: str

    def requires_api_key(self, call: CallKind) -> bool:
        if call == "health":
            return self.requires_api_key_for_health
        return self.requires_api_key_for_data

    def __repr__(self) -> str:
        # Keep the key out of logs and tracebacks.
        key = "***" if self.api_key else None
        return (
            f"UpstreamDescriptor(service_id={self.service_id.value!r}, "
            f"base_url={self.base_url!r}, api_key={key!r})"
        )


def _descriptor(
    service_id: ServiceId,
    service_name: str,
    cfg: UpstreamConfig,
    *,
    env_prefix: str,
) -> UpstreamDescriptor:
    return UpstreamDescriptor(
        service_id=service_id,
        service_name=service_name,
        base_url=cfg.base_url,
        api_key=cfg.api_key,
        requires_api_key_for_health=cfg.requires_api_key_for_health,
        requires_api_key_for_data=cfg.requires_api_key_for_data,
        url_env=f"{env_prefix}_URL",
        api_key_env=f"{env_prefix}_API_KEY",
    )


class UpstreamRegistry:
    """Read-only mapping from service id to its upstream descriptor."""

    def __init__(self, descriptors: list[UpstreamDescriptor]) -> None:
        self._by_id = {d.service_id: d for d in descriptors}

    @classmethod
    def from_config(cls, config: CoreConfig) -> UpstreamRegistry:
        registry = cls(
            [
                _descriptor(
                    ServiceId.SHARED_VARIABLES,
                    "shared-variables-service",
                    config.upstreams.shared_variables,
                    env_prefix="SHARED_VARIABLES_SERVICE",
                ),
                _descriptor(
                    ServiceId.PLAN_CONTROLLER,
                    "plan-controller-service",
                    config.upstreams.plan_controller,
                    env_prefix="PLAN_CONTROLLER_SERVICE",
                ),
            ]
        )
        for d in registry.descriptors():
            if d.base_url is None:
                logger.warning("%s URL not configured (set %s)", d.service_name, d.url_env)
        return registry

    def descriptors(self) -> list[UpstreamDescriptor]:
        return list(self._by_id.values())

    def lookup(self, service: ServiceId | str | None) -> UpstreamDescriptor:
        """Resolve an identifier without checking configuration completeness."""

        try:
            service_id = ServiceId(service)
        except ValueError:
            raise UnknownServiceError(service) from None

        descriptor = self._by_id.get(service_id)
        if descriptor is None:
            raise UnknownServiceError(service)
        return descriptor

    def resolve(
        self, service: ServiceId | str | None, *, call: CallKind = "data"
    ) -> UpstreamDescriptor:
        descriptor = self.lookup(service)

        if descriptor.base_url is None:
            raise ConfigError(descriptor.service_name, "URL", descriptor.url_env)
        if descriptor.requires_api_key(call) and not descriptor.api_key:
            raise ConfigError(descriptor.service_name, "API key", descriptor.api_key_env)
        return descriptor
