"""
FastAPI application entry point.

Configures logging, middleware, routes, and exception handlers.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import DataError, IntegrityError, StatementError
from sqlalchemy.orm.exc import StaleDataError
from starlette.exceptions import HTTPException as StarletteHTTPException

from planboard.core.config import settings
from planboard.core.exceptions import AppError
from planboard.schemas.common import ErrorBody, ErrorResponse

logger = logging.getLogger(__name__)

_STATUS_CODE_NAMES: dict[int, str] = {
    400: "VALIDATION",
    401: "UNAUTHENTICATED",
    403: "ACCESS_DENIED",
    404: "NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
    409: "CONFLICT",
    429: "RATE_LIMITED",
}


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    logging.basicConfig(
        level=settings.LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logger.info("Starting Planboard API in %s mode", settings.ENVIRONMENT)
    yield
    logger.info("Shutting down Planboard API")


app = FastAPI(
    title="Planboard API",
    description="Multi-tenant project and task management",
    version="1.0.0",
    docs_url="/api/docs" if settings.DEBUG else None,
    redoc_url="/api/redoc" if settings.DEBUG else None,
    openapi_url="/api/openapi.json" if settings.DEBUG else None,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["*"],
)


def error_response(status_code: int, message: str, code: str) -> JSONResponse:
    body = ErrorResponse(error=ErrorBody(message=message, status_code=status_code, code=code))
    return JSONResponse(status_code=status_code, content=body.model_dump(by_alias=True))


# ---------------------------------------------------------------------------
# Exception handlers
# ---------------------------------------------------------------------------

@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("Request failed: %s %s: %r", request.method, request.url.path, exc)
    return error_response(exc.status_code, exc.message, exc.code)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    code = _STATUS_CODE_NAMES.get(exc.status_code, "HTTP_ERROR")
    return error_response(exc.status_code, str(exc.detail), code)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    messages = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
        messages.append(f"{location}: {error.get('msg')}" if location else str(error.get("msg")))
    message = "; ".join(messages) or "Invalid request"
    return error_response(status.HTTP_400_BAD_REQUEST, message, "VALIDATION")


@app.exception_handler(IntegrityError)
async def integrity_error_handler(request: Request, exc: IntegrityError) -> JSONResponse:
    logger.warning("Integrity error on %s %s: %s", request.method, request.url.path, exc.orig)
    return error_response(status.HTTP_409_CONFLICT, "Resource conflicts with existing data", "CONFLICT")


@app.exception_handler(StaleDataError)
async def stale_data_handler(request: Request, exc: StaleDataError) -> JSONResponse:
    return error_response(
        status.HTTP_409_CONFLICT,
        "The resource was modified by another request",
        "VERSION_CONFLICT",
    )


@app.exception_handler(DataError)
@app.exception_handler(StatementError)
async def statement_error_handler(request: Request, exc: StatementError) -> JSONResponse:
    logger.warning("Rejected statement on %s %s: %s", request.method, request.url.path, exc)
    return error_response(status.HTTP_400_BAD_REQUEST, "Invalid data for this operation", "VALIDATION")


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    message = str(exc) if settings.DEBUG else "Internal server error"
    return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, message, "INTERNAL")


@app.get("/health", tags=["Health"])
async def health_check() -> dict[str, str]:
    return {
        "status": "ok",
        "environment": settings.ENVIRONMENT,
        "version": "1.0.0",
    }


from planboard.routers import (  # noqa: E402
    activity,
    attachments,
    auth,
    comments,
    labels,
    notifications,
    projects,
    tasks,
    users,
    websocket,
)

app.include_router(auth.router, prefix="/api/auth", tags=["Auth"])
app.include_router(users.router, prefix="/api/users", tags=["Users"])
app.include_router(projects.router, prefix="/api", tags=["Projects"])
app.include_router(tasks.router, prefix="/api", tags=["Tasks"])
app.include_router(labels.router, prefix="/api", tags=["Labels"])
app.include_router(comments.router, prefix="/api", tags=["Comments"])
app.include_router(attachments.router, prefix="/api", tags=["Attachments"])
app.include_router(activity.router, prefix="/api", tags=["Activity"])
app.include_router(notifications.router, prefix="/api", tags=["Notifications"])
app.include_router(websocket.router, prefix="/api", tags=["WebSocket"])
