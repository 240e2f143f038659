from __future__ import annotations

import logging
import uuid
from pathlib import Path
from typing import Any

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from vidtube import crud, models
from vidtube.exceptions import BadRequestError, NotFoundError, StorageError, parse_id
from vidtube.services.storage import CloudStorage, derive_thumbnail_url

logger = logging.getLogger(__name__)

UPDATABLE_VIDEO_FIELDS = {"title", "description"}


def get_video_or_404(db: Session, video_id: str | uuid.UUID) -> models.Video:
    video = crud.get_video(db, parse_id(video_id, "video"))
    if video is None:
        raise NotFoundError("Video not found")
    return video


def upload_video(
    db: Session,
    storage: CloudStorage,
    owner: models.User,
    title: str | None,
    description: str | None,
    video_path: Path | None,
    thumbnail_path: Path | None,
) -> models.Video:
    if video_path is None:
        raise BadRequestError("No video file uploaded")
    if not title or not title.strip():
        raise BadRequestError("Title is required")

    video_asset = storage.upload(video_path)
    if not video_asset:
        raise StorageError("Failed to upload video to cloud storage")

    thumbnail_url: str | None = None
    thumbnail_public_id: str | None = None
    if thumbnail_path is not None:
        thumbnail_asset = storage.upload(thumbnail_path)
        if thumbnail_asset:
            thumbnail_url = thumbnail_asset.get("secure_url")
            thumbnail_public_id = thumbnail_asset.get("public_id")
        else:
            logger.warning("Thumbnail upload failed; continuing without thumbnail")
    elif video_asset.get("resource_type") == "video":
        thumbnail_url = derive_thumbnail_url(video_asset["secure_url"])

    duration = video_asset.get("duration")
    if not isinstance(duration, (int, float)) or isinstance(duration, bool) or duration <= 0:
        logger.error(
            "Uploaded asset has no usable duration; removing remote copies",
            extra={"public_id": video_asset.get("public_id"), "duration": duration},
        )
        storage.delete(video_asset.get("public_id"), resource_type="video")
        if thumbnail_public_id:
            storage.delete(thumbnail_public_id)
        raise StorageError("Could not get valid duration from uploaded video")

    video = models.Video(
        title=title.strip(),
        description=description.strip() if description else None,
        video_url=video_asset["secure_url"],
        video_public_id=video_asset.get("public_id"),
        thumbnail_url=thumbnail_url,
        thumbnail_public_id=thumbnail_public_id,
        owner_id=owner.id,
        duration=float(duration),
        views=0,
    )
    db.add(video)
    db.commit()
    logger.info("Video uploaded", extra={"video_id": str(video.id), "owner_id": str(owner.id)})
    return get_video_or_404(db, video.id)


def update_video(db: Session, owner: models.User, video_id: str, updates: dict[str, Any] | None) -> models.Video:
    parsed_id = parse_id(video_id, "video")
    if not updates:
        raise BadRequestError("No updates provided")
    if not set(updates) <= UPDATABLE_VIDEO_FIELDS:
        raise BadRequestError("Invalid video updates: Only title and description are allowed")
    if "title" in updates and (not isinstance(updates["title"], str) or not updates["title"].strip()):
        raise BadRequestError("Title cannot be empty")
    if "description" in updates and updates["description"] is not None and not isinstance(updates["description"], str):
        raise BadRequestError("Description must be a string")

    video = crud.get_owned_video(db, parsed_id, owner.id)
    if video is None:
        raise NotFoundError("Video not found or you are not the owner")

    if "title" in updates:
        video.title = updates["title"].strip()
    if "description" in updates:
        video.description = updates["description"].strip() if updates["description"] else None
    db.commit()
    return get_video_or_404(db, parsed_id)


def delete_video(db: Session, storage: CloudStorage, owner: models.User, video_id: str) -> None:
    parsed_id = parse_id(video_id, "video")
    video = crud.get_owned_video(db, parsed_id, owner.id)
    if video is None:
        raise NotFoundError("Video not found or you are not the owner")

    if video.video_public_id:
        if not storage.delete(video.video_public_id, resource_type="video"):
            logger.warning("Failed to delete video %s from cloud storage", video.video_public_id)
    else:
        logger.warning("Video %s has no cloud public id; skipping cloud deletion", parsed_id)

    if video.thumbnail_public_id and not storage.delete(video.thumbnail_public_id):
        logger.warning("Failed to delete thumbnail %s from cloud storage", video.thumbnail_public_id)

    # Comments, reactions, playlist entries, watch-later, history and view rows go with it.
    db.delete(video)
    db.commit()
    logger.info("Video deleted", extra={"video_id": str(parsed_id), "owner_id": str(owner.id)})


def increment_views(db: Session, video_id: uuid.UUID) -> None:
    db.execute(update(models.Video).where(models.Video.id == video_id).values(views=models.Video.views + 1))


def register_view(db: Session, video: models.Video, viewer: models.User) -> bool:
    if crud.get_view(db, viewer.id, video.id) is not None:
        return False
    video_id = video.id
    db.add(models.View(user_id=viewer.id, video_id=video_id))
    try:
        db.flush()
    except IntegrityError:
        # A concurrent first view by the same user already counted.
        db.rollback()
        return False
    increment_views(db, video_id)
    db.commit()
    return True


def register_anonymous_view(db: Session, video: models.Video) -> None:
    increment_views(db, video.id)
    db.commit()


def videos_by_ids(db: Session, raw_ids: Any) -> list[models.Video]:
    if raw_ids is None or not isinstance(raw_ids, list):
        raise BadRequestError("An array of video IDs is required in the request body.")
    try:
        video_ids = [uuid.UUID(str(item)) for item in raw_ids]
    except ValueError as exc:
        raise BadRequestError("All provided video IDs must be valid ID formats.") from exc
    return crud.get_videos_by_ids(db, video_ids)
