from __future__ import annotations

import logging
from typing import Annotated

from fastapi import Depends, Request

from vidtube import models
from vidtube.deps import DbDep, IdentityDep
from vidtube.exceptions import UnauthorizedError
from vidtube.services.users import resolve_user

logger = logging.getLogger(__name__)

SESSION_COOKIE = "__session"


def session_token(request: Request) -> str | None:
    header = request.headers.get("Authorization")
    if header and header.lower().startswith("bearer "):
        token = header[7:].strip()
        if token:
            return token
    return request.cookies.get(SESSION_COOKIE) or None


def get_session_subject(request: Request, provider: IdentityDep) -> str | None:
    token = session_token(request)
    if token is None:
        return None
    return provider.verify_session_token(token)


def get_current_user(
    db: DbDep,
    provider: IdentityDep,
    subject: Annotated[str | None, Depends(get_session_subject)],
) -> models.User:
    if subject is None:
        raise UnauthorizedError("Unauthorized: No valid session found")
    return resolve_user(db, provider, subject)


def get_optional_user(request: Request, db: DbDep, provider: IdentityDep) -> models.User | None:
    token = session_token(request)
    if token is None:
        return None
    try:
        subject = provider.verify_session_token(token)
    except UnauthorizedError:
        logger.debug("Ignoring invalid session on public route")
        return None
    return resolve_user(db, provider, subject)


CurrentUser = Annotated[models.User, Depends(get_current_user)]
OptionalUser = Annotated[models.User | None, Depends(get_optional_user)]
