from __future__ import annotations

import uuid
from typing import Any

from fastapi import status


class ApiError(Exception):
    def __init__(
        self,
        status_code: int,
        message: str = "Something went wrong",
        errors: list[Any] | None = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.message = message
        self.errors = errors or []


class BadRequestError(ApiError):
    def __init__(self, message: str, errors: list[Any] | None = None):
        super().__init__(status.HTTP_400_BAD_REQUEST, message, errors)


class UnauthorizedError(ApiError):
    def __init__(self, message: str = "Authentication required", errors: list[Any] | None = None):
        super().__init__(status.HTTP_401_UNAUTHORIZED, message, errors)


class ForbiddenError(ApiError):
    def __init__(self, message: str, errors: list[Any] | None = None):
        super().__init__(status.HTTP_403_FORBIDDEN, message, errors)


class NotFoundError(ApiError):
    def __init__(self, message: str, errors: list[Any] | None = None):
        super().__init__(status.HTTP_404_NOT_FOUND, message, errors)


class ConflictError(ApiError):
    def __init__(self, message: str, errors: list[Any] | None = None):
        super().__init__(status.HTTP_409_CONFLICT, message, errors)


class StorageError(ApiError):
    def __init__(self, message: str, errors: list[Any] | None = None):
        super().__init__(status.HTTP_500_INTERNAL_SERVER_ERROR, message, errors)


class IdentityProviderError(ApiError):
    def __init__(self, message: str, errors: list[Any] | None = None):
        super().__init__(status.HTTP_500_INTERNAL_SERVER_ERROR, message, errors)


def parse_id(value: str | uuid.UUID | None, label: str) -> uuid.UUID:
    if isinstance(value, uuid.UUID):
        return value
    if not value:
        raise BadRequestError(f"Invalid {label} ID format")
    try:
        return uuid.UUID(str(value))
    except ValueError as exc:
        raise BadRequestError(f"Invalid {label} ID format") from exc
