from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class User(_CamelModel):
    id: int
    name: str
    email: str
    created_at: datetime
    updated_at: datetime | None = None


class UserPayload(BaseModel):
    # Both optional so missing fields reach the store's validation and get reported together.
    name: str | None = None
    email: str | None = None


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    pages: int


class UserResponse(BaseModel):
    success: bool = True
    data: User
    message: str | None = None


class UserListResponse(BaseModel):
    success: bool = True
    data: list[User]
    pagination: Pagination


class Stats(_CamelModel):
    total_users: int
    uptime: float
    memory_usage: dict[str, Any]
    timestamp: datetime


class StatsResponse(BaseModel):
    success: bool = True
    data: Stats


class ErrorResponse(BaseModel):
    success: bool = False
    error: str
    message: str | None = None
    details: list[str] | None = None
    timestamp: datetime | None = None
