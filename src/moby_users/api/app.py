"""FastAPI application factory."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from fastapi import APIRouter, Body, FastAPI, Request, status
from fastapi.responses import JSONResponse

from moby_users.api.models import MigrateUserRequest
from moby_users.app_logging import configure_logging
from moby_users.containers import AppContainer
from moby_users.domain.errors import (
    ConflictError,
    NotFoundError,
    StoreError,
    ValidationError,
)
from moby_users.services.users import UserService

_logger = logging.getLogger(__name__)

router = APIRouter()


def _user_service(request: Request) -> UserService:
    container: AppContainer = request.app.state.container
    return container.user_service


def _require_query(value: str | None, name: str) -> str:
    if not value:
        raise ValidationError(f"The '{name}' query parameter is required.")
    return value


@router.post("/migrateUser", status_code=status.HTTP_201_CREATED)
async def migrate_user(body: MigrateUserRequest, request: Request) -> dict[str, object]:
    """Create an app user from the active payroll and link its projects."""
    result = await _user_service(request).migrate_user(
        body.email, body.first_name, body.last_name, body.picture_url
    )
    return {
        "message": f"User {body.email} migrated and projects linked.",
        "newUserId": result.record.id,
        "projectsCreated": result.projects_created,
        "fields": result.record.fields,
    }


@router.get("/user")
async def get_user(request: Request, email: str | None = None) -> dict[str, object]:
    """Return the raw app user record for an email."""
    address = _require_query(email, "email")
    record = await _user_service(request).check_user_exists(address)
    if record is None:
        raise NotFoundError(f"User {address} not found in the users table.")
    return {"id": record.id, "fields": record.fields}


@router.put("/user")
async def update_user(
    request: Request,
    email: str | None = None,
    payload: dict[str, Any] = Body(...),  # noqa: B008
) -> dict[str, object]:
    """Apply a partial update and return the denormalized record."""
    address = _require_query(email, "email")
    record = await _user_service(request).update_user(address, payload)
    return {
        "message": f"User {address} updated.",
        "id": record.id,
        "fields": record.fields,
    }


@router.get("/user/profile")
async def get_user_profile(
    request: Request, email: str | None = None
) -> dict[str, object]:
    """Return the full user profile with linked records expanded."""
    address = _require_query(email, "email")
    profile = await _user_service(request).get_user_by_email(address)
    return profile.to_dto()


@router.get("/user/fullName")
async def get_user_full_name(
    request: Request, email: str | None = None
) -> dict[str, str]:
    """Return the user's full name."""
    address = _require_query(email, "email")
    return {"fullName": await _user_service(request).get_user_full_name(address)}


@router.get("/checkEmail")
async def check_email(request: Request, email: str | None = None) -> bool:
    """Return whether the email is in the active payroll."""
    address = _require_query(email, "email")
    return await _user_service(request).check_email_in_legacy(address)


@router.get("/getalluser")
async def list_users(request: Request) -> list[dict[str, object]]:
    """Return every app user."""
    users = await _user_service(request).list_users()
    return [user.to_dto() for user in users]


@router.get("/getallreferent")
async def list_referents(request: Request) -> list[dict[str, object]]:
    """Return users flagged as referents."""
    users = await _user_service(request).list_referents()
    return [user.to_dto() for user in users]


@router.get("/getallpartner")
async def list_partners(request: Request) -> list[dict[str, object]]:
    """Return users flagged as talent partners."""
    users = await _user_service(request).list_partners()
    return [user.to_dto() for user in users]


@router.get("/tecno")
async def list_by_technology(
    request: Request, tec: str | None = None
) -> list[dict[str, object]]:
    """Return users whose current technology contains ``tec``."""
    term = _require_query(tec, "tec")
    users = await _user_service(request).list_by_technology(term)
    return [user.to_dto() for user in users]


def create_app(container: AppContainer) -> FastAPI:
    """Create a FastAPI app configured with dependencies."""
    configure_logging()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        yield
        await app.state.container.close_resources()

    app = FastAPI(lifespan=lifespan)
    app.state.container = container

    # Both prefixes are served by existing clients.
    app.include_router(router, prefix="/api/airtable/records")
    app.include_router(router, prefix="/api/airtable")

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    @app.exception_handler(ValidationError)
    async def validation_error(request: Request, exc: ValidationError) -> JSONResponse:
        _logger.info("Rejected %s %s: %s", request.method, request.url.path, exc)
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST, content={"error": str(exc)}
        )

    @app.exception_handler(ConflictError)
    async def conflict(request: Request, exc: ConflictError) -> JSONResponse:
        _logger.info("Conflict on %s %s: %s", request.method, request.url.path, exc)
        return JSONResponse(
            status_code=status.HTTP_409_CONFLICT, content={"error": str(exc)}
        )

    @app.exception_handler(NotFoundError)
    async def not_found(request: Request, exc: NotFoundError) -> JSONResponse:
        _logger.info("Not found on %s %s: %s", request.method, request.url.path, exc)
        return JSONResponse(
            status_code=status.HTTP_404_NOT_FOUND, content={"error": str(exc)}
        )

    @app.exception_handler(StoreError)
    async def store_error(request: Request, exc: StoreError) -> JSONResponse:
        _logger.error(
            "Record store failure on %s %s (status=%s): %s",
            request.method,
            request.url.path,
            exc.status_code,
            exc,
        )
        return JSONResponse(
            status_code=status.HTTP_502_BAD_GATEWAY,
            content={"error": "The record store is unavailable."},
        )

    return app
