from __future__ import annotations

import math

from fastapi import APIRouter, Depends, Query, Request

from userapi.api.errors import internal_errors
from userapi.models.schemas import ErrorResponse, Pagination, UserListResponse, UserPayload, UserResponse
from userapi.services.user_store import UserNotFound, UserStore

router = APIRouter(
    prefix="/api",
    tags=["users"],
    responses={
        400: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
    },
)


def get_user_store(request: Request) -> UserStore:
    return request.app.state.user_store


def _parse_user_id(raw: str) -> int:
    # An id that isn't a plain decimal integer can't name any record.
    if not (raw.isascii() and raw.isdigit()):
        raise UserNotFound(raw)
    return int(raw)


def _default_limit(request: Request) -> int:
    return request.app.state.settings.default_page_limit


@router.get("/users", response_model=UserListResponse, response_model_exclude_none=True)
def list_users(
    request: Request,
    page: int = Query(default=1, ge=1),
    limit: int | None = Query(default=None, ge=1),
    search: str | None = None,
    store: UserStore = Depends(get_user_store),
) -> UserListResponse:
    if limit is None:
        limit = _default_limit(request)
    with internal_errors("Failed to fetch users"):
        users, total = store.list_users(page=page, limit=limit, search=search)
    return UserListResponse(
        data=users,
        pagination=Pagination(page=page, limit=limit, total=total, pages=math.ceil(total / limit)),
    )


@router.get("/users/{user_id}", response_model=UserResponse, response_model_exclude_none=True)
def get_user(user_id: str, store: UserStore = Depends(get_user_store)) -> UserResponse:
    with internal_errors("Failed to fetch user"):
        user = store.get(_parse_user_id(user_id))
    return UserResponse(data=user)


@router.post("/users", status_code=201, response_model=UserResponse, response_model_exclude_none=True)
def create_user(payload: UserPayload, store: UserStore = Depends(get_user_store)) -> UserResponse:
    with internal_errors("Failed to create user"):
        user = store.create(name=payload.name, email=payload.email)
    return UserResponse(data=user, message="User created successfully")


@router.put("/users/{user_id}", response_model=UserResponse, response_model_exclude_none=True)
def update_user(user_id: str, payload: UserPayload, store: UserStore = Depends(get_user_store)) -> UserResponse:
    with internal_errors("Failed to update user"):
        user = store.update(_parse_user_id(user_id), name=payload.name, email=payload.email)
    return UserResponse(data=user, message="User updated successfully")


@router.delete("/users/{user_id}", response_model=UserResponse, response_model_exclude_none=True)
def delete_user(user_id: str, store: UserStore = Depends(get_user_store)) -> UserResponse:
    with internal_errors("Failed to delete user"):
        user = store.delete(_parse_user_id(user_id))
    return UserResponse(data=user, message="User deleted successfully")
