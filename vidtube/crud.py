from __future__ import annotations

import math
import uuid
from typing import Any

from sqlalchemy import desc, func, or_, select
from sqlalchemy.orm import Session, selectinload
from sqlalchemy.sql import Select

from vidtube import models

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 10
MAX_LIMIT = 100


def normalize_paging(page: int | None, limit: int | None) -> tuple[int, int]:
    page = page if page and page > 0 else DEFAULT_PAGE
    limit = limit if limit and limit > 0 else DEFAULT_LIMIT
    return page, min(limit, MAX_LIMIT)


def paginate(db: Session, stmt: Select, page: int, limit: int) -> dict[str, Any]:
    total_docs = db.scalar(select(func.count()).select_from(stmt.order_by(None).subquery())) or 0
    docs = list(db.scalars(stmt.offset((page - 1) * limit).limit(limit)).all())
    total_pages = math.ceil(total_docs / limit) if limit else 0
    return {
        "docs": docs,
        "total_docs": total_docs,
        "total_pages": total_pages,
        "page": page,
        "limit": limit,
        "has_next_page": page < total_pages,
        "has_prev_page": page > 1,
        "next_page": page + 1 if page < total_pages else None,
        "prev_page": page - 1 if page > 1 else None,
    }


def _video_query() -> Select:
    return select(models.Video).options(
        selectinload(models.Video.owner),
        selectinload(models.Video.reactions),
        selectinload(models.Video.comments),
    )


def get_user(db: Session, user_id: uuid.UUID) -> models.User | None:
    return db.get(models.User, user_id)


def get_user_by_clerk_id(db: Session, clerk_id: str) -> models.User | None:
    return db.scalars(select(models.User).where(models.User.clerk_id == clerk_id)).first()


def username_taken(db: Session, username: str) -> bool:
    stmt = select(func.count()).select_from(models.User).where(models.User.username == username)
    return (db.scalar(stmt) or 0) > 0


def get_video(db: Session, video_id: uuid.UUID) -> models.Video | None:
    return db.scalars(_video_query().where(models.Video.id == video_id)).first()


def get_owned_video(db: Session, video_id: uuid.UUID, owner_id: uuid.UUID) -> models.Video | None:
    stmt = _video_query().where(models.Video.id == video_id, models.Video.owner_id == owner_id)
    return db.scalars(stmt).first()


def list_videos(db: Session, page: int, limit: int, search: str | None = None) -> dict[str, Any]:
    stmt = _video_query().order_by(desc(models.Video.created_at))
    if search:
        term = search.strip().lower()
        stmt = stmt.where(
            or_(
                func.lower(models.Video.title).contains(term, autoescape=True),
                func.lower(func.coalesce(models.Video.description, "")).contains(term, autoescape=True),
            )
        )
    return paginate(db, stmt, page, limit)


def list_videos_by_owner(db: Session, owner_id: uuid.UUID, page: int, limit: int) -> dict[str, Any]:
    stmt = _video_query().where(models.Video.owner_id == owner_id).order_by(desc(models.Video.created_at))
    return paginate(db, stmt, page, limit)


def get_videos_by_ids(db: Session, video_ids: list[uuid.UUID]) -> list[models.Video]:
    if not video_ids:
        return []
    stmt = _video_query().where(models.Video.id.in_(video_ids))
    return list(db.scalars(stmt).all())


def latest_videos_for_owner(db: Session, owner_id: uuid.UUID, limit: int = 5) -> list[models.Video]:
    stmt = (
        select(models.Video)
        .options(selectinload(models.Video.owner))
        .where(models.Video.owner_id == owner_id)
        .order_by(desc(models.Video.created_at))
        .limit(limit)
    )
    return list(db.scalars(stmt).all())


def get_reaction(db: Session, user_id: uuid.UUID, video_id: uuid.UUID) -> models.Reaction | None:
    return db.get(models.Reaction, (user_id, video_id))


def get_subscription(
    db: Session,
    subscriber_id: uuid.UUID,
    channel_id: uuid.UUID,
) -> models.Subscription | None:
    return db.get(models.Subscription, (subscriber_id, channel_id))


def list_subscribers(db: Session, channel_id: uuid.UUID) -> list[models.User]:
    stmt = (
        select(models.User)
        .join(models.Subscription, models.Subscription.subscriber_id == models.User.id)
        .where(models.Subscription.channel_id == channel_id)
        .order_by(models.Subscription.created_at)
    )
    return list(db.scalars(stmt).all())


def get_comment(db: Session, comment_id: uuid.UUID) -> models.Comment | None:
    stmt = (
        select(models.Comment)
        .options(selectinload(models.Comment.owner))
        .where(models.Comment.id == comment_id)
    )
    return db.scalars(stmt).first()


def list_comments(db: Session, video_id: uuid.UUID) -> list[models.Comment]:
    stmt = (
        select(models.Comment)
        .options(selectinload(models.Comment.owner))
        .where(models.Comment.video_id == video_id)
        .order_by(models.Comment.created_at)
    )
    return list(db.scalars(stmt).all())


def get_owned_playlist(db: Session, playlist_id: uuid.UUID, owner_id: uuid.UUID) -> models.Playlist | None:
    stmt = (
        select(models.Playlist)
        .options(
            selectinload(models.Playlist.owner),
            selectinload(models.Playlist.entries)
            .selectinload(models.PlaylistVideo.video)
            .selectinload(models.Video.owner),
        )
        .where(models.Playlist.id == playlist_id, models.Playlist.owner_id == owner_id)
    )
    return db.scalars(stmt).first()


def list_playlists(db: Session, owner_id: uuid.UUID) -> list[models.Playlist]:
    stmt = (
        select(models.Playlist)
        .options(selectinload(models.Playlist.entries))
        .where(models.Playlist.owner_id == owner_id)
        .order_by(desc(models.Playlist.created_at))
    )
    return list(db.scalars(stmt).all())


def get_history_entry(db: Session, user_id: uuid.UUID, video_id: uuid.UUID) -> models.WatchHistory | None:
    stmt = select(models.WatchHistory).where(
        models.WatchHistory.user_id == user_id,
        models.WatchHistory.video_id == video_id,
    )
    return db.scalars(stmt).first()


def list_history(db: Session, user_id: uuid.UUID) -> list[models.WatchHistory]:
    stmt = (
        select(models.WatchHistory)
        .options(selectinload(models.WatchHistory.video).selectinload(models.Video.owner))
        .where(models.WatchHistory.user_id == user_id)
        .order_by(desc(models.WatchHistory.watched_at))
    )
    return list(db.scalars(stmt).all())


def get_watch_later_entry(db: Session, user_id: uuid.UUID, video_id: uuid.UUID) -> models.WatchLaterEntry | None:
    return db.get(models.WatchLaterEntry, (user_id, video_id))


def get_view(db: Session, user_id: uuid.UUID, video_id: uuid.UUID) -> models.View | None:
    stmt = select(models.View).where(models.View.user_id == user_id, models.View.video_id == video_id)
    return db.scalars(stmt).first()


def list_subscriptions(db: Session, subscriber_id: uuid.UUID) -> list[models.User]:
    stmt = (
        select(models.User)
        .join(models.Subscription, models.Subscription.channel_id == models.User.id)
        .where(models.Subscription.subscriber_id == subscriber_id)
        .order_by(models.Subscription.created_at)
    )
    return list(db.scalars(stmt).all())
