from __future__ import annotations

from typing import Any, Generic, TypeVar

from pydantic import BaseModel


class ApiError(BaseModel):
    code: str
    message: str
    details: Any | None = None


T = TypeVar("T")


class ApiResponse(BaseModel, Generic[T]):
    ok: bool
    data: T | None = None
    error: ApiError | None = None


def ok(data: T) -> ApiResponse[T]:
    return ApiResponse(ok=True, data=data)


def fail(*, code: str, message: str, details: Any | None = None) -> ApiResponse[None]:
    return ApiResponse(ok=False, error=ApiError(code=code, message=message, details=details))


class VariableWriteRequest(BaseModel):
    """Body of a create or collection-level update; the name travels in the body."""

    name: str | None = None
    value: Any | None = None


class VariableValueRequest(BaseModel):
    value: Any | None = None


class LoginRequest(BaseModel):
    password: str = ""


class SessionInfo(BaseModel):
    authenticated: bool
    expires_at: str | None = None
