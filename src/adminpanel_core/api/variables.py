from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends
from starlette.responses import Response

from adminpanel_core.api.deps import get_dispatcher
from adminpanel_core.api.models import VariableValueRequest, VariableWriteRequest
from adminpanel_core.coercion import coerce
from adminpanel_core.errors import InputValidationError
from adminpanel_core.proxy import VARIABLES_PATH, ProxyDispatcher, variable_path
from adminpanel_core.registry import ServiceId

router = APIRouter(tags=["variables"])

SERVICE = ServiceId.SHARED_VARIABLES


def prepare_value(value: Any) -> Any:
    """Turn an incoming value into what gets stored upstream.

    Text is coerced; values that already arrive typed are forwarded as-is.
    """

    if isinstance(value, str):
        return coerce(value)
    return value


def _require_value(value: Any, *, message: str) -> None:
    if value is None or value == "":
        raise InputValidationError(message)


@router.get("/variables", response_model=None)
async def variables_list(
    dispatcher: ProxyDispatcher = Depends(get_dispatcher),  # noqa: B008
) -> Response:
    result = await dispatcher.forward(SERVICE, VARIABLES_PATH)
    return result.to_response()


@router.post("/variables", response_model=None)
async def variables_create(
    payload: VariableWriteRequest,
    dispatcher: ProxyDispatcher = Depends(get_dispatcher),  # noqa: B008
) -> Response:
    name = (payload.name or "").strip()
    if not name:
        raise InputValidationError("Name and value cannot be empty.")
    _require_value(payload.value, message="Name and value cannot be empty.")

    result = await dispatcher.forward(
        SERVICE,
        VARIABLES_PATH,
        "POST",
        {"name": name, "value": prepare_value(payload.value)},
    )
    return result.to_response()


@router.put("/variables", response_model=None)
async def variables_update_by_body(
    payload: VariableWriteRequest,
    dispatcher: ProxyDispatcher = Depends(get_dispatcher),  # noqa: B008
) -> Response:
    # Upstream has no update-by-body operation: address the item path and send
    # only the value.
    name = (payload.name or "").strip()
    if not name:
        raise InputValidationError("Variable name is required.")
    _require_value(payload.value, message="Value cannot be empty.")

    result = await dispatcher.forward(
        SERVICE,
        variable_path(name),
        "PUT",
        {"value": prepare_value(payload.value)},
    )
    return result.to_response()


@router.get("/variables/{name}", response_model=None)
async def variables_get(
    name: str,
    dispatcher: ProxyDispatcher = Depends(get_dispatcher),  # noqa: B008
) -> Response:
    result = await dispatcher.forward(SERVICE, variable_path(name))
    return result.to_response()


@router.put("/variables/{name}", response_model=None)
async def variables_update(
    name: str,
    payload: VariableValueRequest,
    dispatcher: ProxyDispatcher = Depends(get_dispatcher),  # noqa: B008
) -> Response:
    _require_value(payload.value, message="Value cannot be empty.")

    result = await dispatcher.forward(
        SERVICE,
        variable_path(name),
        "PUT",
        {"value": prepare_value(payload.value)},
    )
    return result.to_response()
