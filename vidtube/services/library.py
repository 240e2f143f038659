from __future__ import annotations

import logging
import uuid

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from vidtube import crud, models
from vidtube.exceptions import ConflictError, NotFoundError, parse_id
from vidtube.services.videos import get_video_or_404

logger = logging.getLogger(__name__)

ALREADY_SAVED = "Video is already in your Watch Later list"


def add_to_history(db: Session, user: models.User, video_id: str) -> tuple[models.WatchHistory, bool]:
    video = get_video_or_404(db, video_id)
    user_id, parsed_id = user.id, video.id
    entry = crud.get_history_entry(db, user_id, parsed_id)
    if entry is None:
        entry = models.WatchHistory(user_id=user_id, video_id=parsed_id)
        db.add(entry)
        try:
            db.commit()
        except IntegrityError:
            # Lost a race with another request recording the same watch.
            db.rollback()
            entry = crud.get_history_entry(db, user_id, parsed_id)
            if entry is None:
                raise
        else:
            db.refresh(entry)
            return entry, True

    # A repeat watch refreshes the existing row.
    entry.watched_at = models.utcnow()
    db.commit()
    db.refresh(entry)
    return entry, False


def list_history(db: Session, user: models.User) -> list[models.WatchHistory]:
    return crud.list_history(db, user.id)


def remove_from_history(db: Session, user: models.User, video_id: str) -> None:
    entry = crud.get_history_entry(db, user.id, parse_id(video_id, "video"))
    if entry is None:
        raise NotFoundError("Video not found in watch history")
    db.delete(entry)
    db.commit()


def add_to_watch_later(db: Session, user: models.User, video_id: str) -> list[uuid.UUID]:
    video = get_video_or_404(db, video_id)
    if crud.get_watch_later_entry(db, user.id, video.id) is not None:
        raise ConflictError(ALREADY_SAVED)
    db.add(models.WatchLaterEntry(user_id=user.id, video_id=video.id))
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise ConflictError(ALREADY_SAVED) from exc
    db.expire(user)
    return user.watch_later


def list_watch_later(db: Session, user: models.User) -> list[models.Video]:
    ids = user.watch_later
    videos = {video.id: video for video in crud.get_videos_by_ids(db, ids)}
    return [videos[item] for item in ids if item in videos]


def remove_from_watch_later(db: Session, user: models.User, video_id: str) -> uuid.UUID:
    parsed_id = parse_id(video_id, "video")
    entry = crud.get_watch_later_entry(db, user.id, parsed_id)
    if entry is None:
        logger.debug("Watch later entry already absent", extra={"video_id": str(parsed_id)})
        return parsed_id
    db.delete(entry)
    db.commit()
    db.expire(user)
    return parsed_id
