"""HTTP routes for user records and the admin pages."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import datetime
from pathlib import Path
from typing import AsyncIterator, Dict, Optional

from fastapi import FastAPI, HTTPException, Request, Response, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import HTMLResponse, JSONResponse
from fastapi.staticfiles import StaticFiles
from jinja2 import TemplateError
from pydantic import BaseModel, ConfigDict

from .models import User
from .store import InvalidUserIdError, UserStore, UserStoreError, current_timestamp
from .templates import STARTUP_TEMPLATES, TemplateCache

logger = logging.getLogger("useradmin.service")


class UserCreateRequest(BaseModel):
    """Body accepted by the registration and admin-add routes."""

    model_config = ConfigDict(extra="ignore")

    username: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None


class UserUpdateRequest(BaseModel):
    model_config = ConfigDict(extra="ignore")

    username: Optional[str] = None
    email: Optional[str] = None


class UserResponse(BaseModel):
    id: str
    username: Optional[str] = None
    email: Optional[str] = None
    created: Optional[datetime] = None


def user_to_response(user: User) -> UserResponse:
    return UserResponse(
        id=user.id,
        username=user.username,
        email=user.email,
        created=user.created,
    )


def user_to_view(user: User) -> Dict[str, object]:
    """Template context for a single user; the password is never exposed."""

    return {
        "id": user.id,
        "username": user.username or "",
        "email": user.email or "",
        "created": user.created,
    }


def create_app(
    *,
    store: UserStore,
    templates: Optional[TemplateCache] = None,
    static_dir: Optional[Path] = None,
    close_store_on_shutdown: bool = False,
) -> FastAPI:
    """Create the user administration application around an existing store."""

    if templates is None:
        templates = TemplateCache()
    templates.preload(STARTUP_TEMPLATES)

    @asynccontextmanager
    async def lifespan(_: FastAPI) -> AsyncIterator[None]:
        yield
        if close_store_on_shutdown:
            logger.info("Closing document store connection")
            store.close()

    app = FastAPI(
        title="User Administration",
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
        lifespan=lifespan,
    )
    app.state.store = store
    app.state.templates = templates

    if static_dir is not None and static_dir.is_dir():
        app.mount("/static", StaticFiles(directory=str(static_dir)), name="static")
    elif static_dir is not None:
        logger.warning("Static directory %s does not exist; /static is disabled", static_dir)

    def _insert_user(payload: UserCreateRequest) -> Response:
        user = store.create_user(
            username=payload.username,
            email=payload.email,
            password=payload.password,
            created=current_timestamp(),
        )
        return Response(
            status_code=status.HTTP_201_CREATED,
            headers={"Location": str(app.url_path_for("get_user", user_id=user.id))},
        )

    @app.get("/", response_class=HTMLResponse, name="home")
    def home(request: Request):
        return templates.render(request, "index.html")

    @app.get(
        "/user/{user_id}",
        response_model=UserResponse,
        response_model_exclude_none=True,
        name="get_user",
    )
    def get_user(user_id: str) -> UserResponse:
        try:
            user = store.get_user(user_id)
        except InvalidUserIdError:
            logger.debug("Rejected malformed user id %r", user_id)
            user = None
        if user is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
        return user_to_response(user)

    @app.post("/register", status_code=status.HTTP_201_CREATED, name="register")
    def register(payload: UserCreateRequest) -> Response:
        return _insert_user(payload)

    @app.delete("/delete/{user_id}", name="delete_user")
    def delete_user(user_id: str) -> Response:
        try:
            store.delete_user(user_id)
        except InvalidUserIdError:
            logger.debug("Rejected malformed user id %r", user_id)
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid ID")
        return Response(status_code=status.HTTP_200_OK)

    @app.get("/admin", response_class=HTMLResponse, name="admin")
    def admin(request: Request):
        users = [user_to_view(user) for user in store.list_users()]
        return templates.render(request, "admin.html", {"users": users})

    @app.get("/admin/add", response_class=HTMLResponse, name="admin_add_form")
    def admin_add_form(request: Request):
        return templates.render(request, "admin_add.html")

    @app.post("/admin/add", status_code=status.HTTP_201_CREATED, name="admin_add_user")
    def admin_add_user(payload: UserCreateRequest) -> Response:
        return _insert_user(payload)

    @app.get("/admin/edit/{user_id}", response_class=HTMLResponse, name="admin_edit_form")
    def admin_edit_form(request: Request, user_id: str):
        try:
            user = store.get_user(user_id)
        except InvalidUserIdError:
            logger.debug("Rejected malformed user id %r", user_id)
            user = None
        if user is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
        return templates.render(request, "admin_edit.html", {"user": user_to_view(user)})

    @app.put("/admin/edit/{user_id}", name="admin_edit_user")
    def admin_edit_user(user_id: str, payload: UserUpdateRequest) -> Response:
        updates = payload.model_dump(exclude_unset=True, exclude_none=True)
        try:
            store.update_user_profile(user_id, **updates)
        except InvalidUserIdError:
            logger.debug("Rejected malformed user id %r", user_id)
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid ID")
        return Response(status_code=status.HTTP_200_OK)

    @app.exception_handler(RequestValidationError)
    async def handle_bad_body(request: Request, exc: RequestValidationError):
        logger.debug("Rejected request body for %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"detail": "Bad Request", "errors": jsonable_encoder(exc.errors())},
        )

    @app.exception_handler(UserStoreError)
    async def handle_store_error(request: Request, exc: UserStoreError):
        logger.error("Store failure during %s %s", request.method, request.url.path, exc_info=exc)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"detail": "Internal Server Error"},
        )

    @app.exception_handler(TemplateError)
    async def handle_template_error(request: Request, exc: TemplateError):
        logger.error("Failed to render page for %s", request.url.path, exc_info=exc)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"detail": "Internal Server Error"},
        )

    return app


__all__ = [
    "UserCreateRequest",
    "UserResponse",
    "UserUpdateRequest",
    "create_app",
    "user_to_response",
    "user_to_view",
]
