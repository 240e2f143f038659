from __future__ import annotations

import logging
import uuid
from typing import Any

from sqlalchemy.orm import Session

from vidtube import crud, models
from vidtube.exceptions import BadRequestError, NotFoundError, parse_id
from vidtube.services.videos import get_video_or_404

logger = logging.getLogger(__name__)

NOT_OWNED = "Playlist not found or you are not the owner"


def _clean_name(name: Any, message: str) -> str:
    if not isinstance(name, str) or not name.strip():
        raise BadRequestError(message)
    return name.strip()


def _owned_playlist(db: Session, owner: models.User, playlist_id: str | uuid.UUID) -> models.Playlist:
    playlist = crud.get_owned_playlist(db, parse_id(playlist_id, "playlist"), owner.id)
    if playlist is None:
        raise NotFoundError(NOT_OWNED)
    return playlist


def create_playlist(db: Session, owner: models.User, name: Any) -> models.Playlist:
    playlist = models.Playlist(name=_clean_name(name, "Playlist name is required"), owner_id=owner.id)
    db.add(playlist)
    db.commit()
    logger.info("Playlist created", extra={"playlist_id": str(playlist.id), "owner_id": str(owner.id)})
    return _owned_playlist(db, owner, playlist.id)


def get_playlist(db: Session, owner: models.User, playlist_id: str) -> models.Playlist:
    return _owned_playlist(db, owner, playlist_id)


def update_playlist(db: Session, owner: models.User, playlist_id: str, updates: Any) -> models.Playlist:
    parse_id(playlist_id, "playlist")
    if not isinstance(updates, dict) or not updates or set(updates) != {"name"}:
        raise BadRequestError("Invalid updates: Only name is allowed")
    name = _clean_name(updates["name"], "Playlist name cannot be empty")

    playlist = _owned_playlist(db, owner, playlist_id)
    playlist.name = name
    db.commit()
    return _owned_playlist(db, owner, playlist_id)


def delete_playlist(db: Session, owner: models.User, playlist_id: str) -> None:
    playlist = _owned_playlist(db, owner, playlist_id)
    db.delete(playlist)
    db.commit()
    logger.info("Playlist deleted", extra={"playlist_id": str(playlist_id), "owner_id": str(owner.id)})


def add_video(db: Session, owner: models.User, playlist_id: str, video_id: str | None) -> tuple[models.Playlist, bool]:
    parsed_playlist = parse_id(playlist_id, "playlist")
    if not video_id:
        raise BadRequestError("Video ID is required")
    parsed_video = parse_id(video_id, "video")

    playlist = _owned_playlist(db, owner, parsed_playlist)
    video = get_video_or_404(db, parsed_video)
    if video.id in playlist.video_ids:
        return playlist, False

    playlist.entries.append(models.PlaylistVideo(video_id=video.id))
    db.commit()
    return _owned_playlist(db, owner, parsed_playlist), True


def remove_video(db: Session, owner: models.User, playlist_id: str, video_id: str) -> tuple[models.Playlist, bool]:
    parsed_playlist = parse_id(playlist_id, "playlist")
    parsed_video = parse_id(video_id, "video")

    playlist = _owned_playlist(db, owner, parsed_playlist)
    entry = next((item for item in playlist.entries if item.video_id == parsed_video), None)
    if entry is None:
        return playlist, False

    playlist.entries.remove(entry)
    playlist.entries.reorder()
    db.commit()
    return _owned_playlist(db, owner, parsed_playlist), True


def list_playlists(db: Session, owner: models.User) -> list[models.Playlist]:
    return crud.list_playlists(db, owner.id)
