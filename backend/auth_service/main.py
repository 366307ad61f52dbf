"""FastAPI application entrypoint for the auth service.

Sets up the application, middleware, error handlers and routes and
provides a lifespan context manager that initializes the database on
startup and disposes the engine on shutdown.
"""

import asyncio
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from auth_service.api.deps import get_token_rotator, get_token_issuer
from auth_service.api.routes.auth import router as auth_router
from auth_service.api.routes.health import router as health_router
from auth_service.config.config import settings
from auth_service.core.errors import (
    AuthServiceError,
    InternalError,
    InvalidInput,
    error_payload,
    resolve_error_code,
)
from auth_service.core.logging import logger
from auth_service.db.session import AsyncSessionLocal, engine, initialize_database


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context to run startup and shutdown routines.

    On startup this creates the tables, retrying a few times if the DB
    isn't ready yet, then purges refresh tokens that expired while the
    service was down.

    Yields:
        None: Control is returned to FastAPI while the app is running.
    """

    logger.info("Starting up")

    max_retries = 5
    for attempt in range(max_retries):
        try:
            await initialize_database()
            break
        except Exception as e:
            if attempt < max_retries - 1:
                logger.warning(
                    "Database connection attempt {} failed: {}. Retrying..",
                    attempt + 1,
                    e,
                )
                await asyncio.sleep(2)
            else:
                logger.exception(
                    "Failed to create database tables after {} attempts", max_retries
                )
                raise

    async with AsyncSessionLocal() as db:
        await get_token_rotator(get_token_issuer()).purge_expired(db)

    yield

    logger.info("Shutting down")
    await engine.dispose()


app = FastAPI(title="auth-service", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _error_response(status_code: int, code: str, message: str) -> JSONResponse:
    headers = None
    if status_code == status.HTTP_401_UNAUTHORIZED:
        headers = {"WWW-Authenticate": "Bearer"}
    return JSONResponse(
        status_code=status_code, content=error_payload(code, message), headers=headers
    )


@app.exception_handler(AuthServiceError)
async def handle_auth_service_error(request: Request, exc: AuthServiceError) -> JSONResponse:
    # The class name is the only trace of which check failed.
    logger.info(
        "[{}] {} path={} status={}",
        exc.code,
        type(exc).__name__,
        request.url.path,
        exc.status_code,
    )
    return _error_response(exc.status_code, exc.code, exc.message)


@app.exception_handler(RequestValidationError)
async def handle_request_validation_error(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    logger.info("[{}] path={} errors={}", InvalidInput.code, request.url.path, exc.errors())
    return _error_response(
        status.HTTP_400_BAD_REQUEST, InvalidInput.code, "Email and password are required"
    )


@app.exception_handler(StarletteHTTPException)
async def handle_http_exception(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    message = exc.detail if isinstance(exc.detail, str) else "Request failed"
    return _error_response(exc.status_code, resolve_error_code(exc.status_code), message)


@app.exception_handler(Exception)
async def handle_unhandled_exception(request: Request, exc: Exception) -> JSONResponse:
    logger.opt(exception=exc).error("Unhandled error path={}", request.url.path)
    return _error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR, InternalError.code, InternalError.message
    )


app.include_router(health_router)
app.include_router(auth_router, prefix="/api")


if __name__ == "__main__":
    uvicorn.run("auth_service.main:app", host="0.0.0.0", port=8000, reload=True)
