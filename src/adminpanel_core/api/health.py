from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from starlette.responses import Response

from adminpanel_core.api.deps import get_dispatcher
from adminpanel_core.api.models import ApiResponse, ok
from adminpanel_core.health import HealthSnapshot, aggregate_health
from adminpanel_core.proxy import HEALTH_PATH, ProxyDispatcher

router = APIRouter(tags=["health"])


class HealthSummary(BaseModel):
    services: list[HealthSnapshot]


@router.get("/health", response_model=None)
async def health_proxy(
    service: str | None = Query(default=None, description="shared-variables or plan-controller"),
    dispatcher: ProxyDispatcher = Depends(get_dispatcher),  # noqa: B008
) -> Response:
    result = await dispatcher.forward(service, HEALTH_PATH, call="health")
    return result.to_response()


@router.get("/health/summary", response_model=ApiResponse[HealthSummary])
async def health_summary(
    dispatcher: ProxyDispatcher = Depends(get_dispatcher),  # noqa: B008
) -> ApiResponse[HealthSummary]:
    return ok(HealthSummary(services=await aggregate_health(dispatcher)))
