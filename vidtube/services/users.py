from __future__ import annotations

import logging
import re
import uuid

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from vidtube import crud, models
from vidtube.exceptions import IdentityProviderError, NotFoundError, parse_id
from vidtube.services.identity import IdentityProvider, ProviderProfile

logger = logging.getLogger(__name__)

_HANDLE_CHARS = re.compile(r"[^a-z0-9_]+")


def resolve_user(db: Session, provider: IdentityProvider, subject_id: str) -> models.User:
    user = crud.get_user_by_clerk_id(db, subject_id)
    if user is not None:
        return user

    profile = provider.fetch_profile(subject_id)
    user = build_user(db, profile)
    db.add(user)
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        # Two first requests for the same identity raced; the other insert won.
        existing = crud.get_user_by_clerk_id(db, subject_id)
        if existing is not None:
            return existing
        if not crud.username_taken(db, user.username):
            logger.error("User creation failed", extra={"subject_id": subject_id, "error": str(exc)})
            raise IdentityProviderError(f"Could not create local user for {subject_id}") from exc

        logger.info("Username %s already taken; synthesizing one", user.username)
        user = _copy_with_username(user, synthesize_username(db, subject_id))
        db.add(user)
        try:
            db.commit()
        except IntegrityError as retry_exc:
            db.rollback()
            logger.error("User creation failed", extra={"subject_id": subject_id, "error": str(retry_exc)})
            raise IdentityProviderError(f"Could not create local user for {subject_id}") from retry_exc

    db.refresh(user)
    logger.info("Created local user", extra={"subject_id": subject_id, "user_id": str(user.id)})
    return user


def _copy_with_username(user: models.User, username: str) -> models.User:
    return models.User(
        clerk_id=user.clerk_id,
        username=username,
        email=user.email,
        fullname=user.fullname,
        avatar_url=user.avatar_url,
    )


def build_user(db: Session, profile: ProviderProfile) -> models.User:
    subject_id = profile.subject_id
    email = profile.email or f"{subject_id}@example.com"
    names = " ".join(part for part in (profile.first_name, profile.last_name) if part)
    fullname = names or profile.username or f"User {subject_id}"
    return models.User(
        clerk_id=subject_id,
        username=profile.username or synthesize_username(db, subject_id),
        email=email,
        fullname=fullname,
        avatar_url=profile.image_url or "",
    )


def synthesize_username(db: Session, subject_id: str) -> str:
    base = _HANDLE_CHARS.sub("", subject_id.lower())[-12:] or uuid.uuid4().hex[:12]
    candidate = f"user_{base}"
    suffix = 1
    while crud.username_taken(db, candidate):
        suffix += 1
        candidate = f"user_{base}{suffix}"
    return candidate


def get_channel(db: Session, channel_id: str) -> models.User:
    channel = crud.get_user(db, parse_id(channel_id, "channel"))
    if channel is None:
        raise NotFoundError("Channel user not found")
    return channel


def get_profile(db: Session, user_id: str) -> tuple[models.User, list[models.Video]]:
    user = crud.get_user(db, parse_id(user_id, "user"))
    if user is None:
        raise NotFoundError("User not found")
    return user, crud.latest_videos_for_owner(db, user.id, limit=5)
