from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from redis.exceptions import RedisError
from sqlalchemy.exc import OperationalError, SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from vidtube import schemas
from vidtube.api.router import api_router
from vidtube.config import get_settings
from vidtube.db import check_database_connection, init_db
from vidtube.exceptions import ApiError
from vidtube.logging_config import setup_logging
from vidtube.redis_client import get_redis_client

logger = logging.getLogger(__name__)
settings = get_settings()

app = FastAPI(
    title="VidTube API",
    version="1.0.0",
    description="Video sharing backend with FastAPI, Postgres, Redis and Cloudinary.",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization"],
)

app.include_router(api_router)


def error_response(status_code: int, message: str, errors: list | None = None) -> JSONResponse:
    body = schemas.ErrorResponse(status_code=status_code, message=message, errors=errors or [])
    return JSONResponse(status_code=status_code, content=body.model_dump(by_alias=True, mode="json"))


@app.on_event("startup")
def on_startup() -> None:
    setup_logging()
    if check_database_connection():
        try:
            init_db()
        except SQLAlchemyError as exc:
            logger.warning("Database initialization failed: %s", exc)
    else:
        logger.warning("Database unreachable at startup; tables were not created.")

    try:
        get_redis_client().ping()
        logger.info("Redis connection established.")
    except RedisError as exc:
        logger.warning("Redis connection failed: %s", exc)


@app.exception_handler(ApiError)
async def api_error_handler(request: Request, exc: ApiError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("API error: %s", exc.message, extra={"path": request.url.path, "errors": exc.errors})
    else:
        logger.info("Request rejected: %s", exc.message, extra={"path": request.url.path, "status": exc.status_code})
    return error_response(exc.status_code, exc.message, exc.errors)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = jsonable_encoder(exc.errors())
    logger.warning("Request validation failed", extra={"path": request.url.path, "errors": errors})
    return error_response(400, "Request validation failed", errors)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return error_response(exc.status_code, str(exc.detail))


@app.exception_handler(SQLAlchemyError)
async def sqlalchemy_exception_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.error("Database error occurred", exc_info=True)
    if isinstance(exc, OperationalError):
        return error_response(503, "Database is temporarily unavailable. Please try again later.")
    return error_response(500, "A database error occurred. Please try again.")


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unexpected error occurred")
    return error_response(500, "Internal Server Error")


@app.get("/health")
def health_check() -> dict[str, str]:
    return {"status": "ok"}


@app.get("/")
def root() -> dict[str, str]:
    return {"message": "API is running", "docs": "/docs", "health": "/health"}
