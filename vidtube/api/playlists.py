from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Body
from fastapi.responses import JSONResponse

from vidtube import schemas
from vidtube.auth import CurrentUser
from vidtube.deps import DbDep
from vidtube.services import playlists

router = APIRouter()


def _detail(playlist: Any) -> schemas.PlaylistDetailOut:
    return schemas.PlaylistDetailOut.model_validate(playlist)


@router.post("/create")
def create_playlist(payload: schemas.PlaylistCreate, user: CurrentUser, db: DbDep) -> JSONResponse:
    playlist = playlists.create_playlist(db, user, payload.name)
    return schemas.respond(_detail(playlist), "Playlist created successfully", 201)


@router.get("/{playlist_id}")
def get_playlist(playlist_id: str, user: CurrentUser, db: DbDep) -> JSONResponse:
    playlist = playlists.get_playlist(db, user, playlist_id)
    return schemas.respond(_detail(playlist), "Playlist fetched successfully")


@router.patch("/update/{playlist_id}")
def update_playlist(
    playlist_id: str,
    user: CurrentUser,
    db: DbDep,
    updates: Any = Body(default=None),
) -> JSONResponse:
    playlist = playlists.update_playlist(db, user, playlist_id, updates)
    return schemas.respond(_detail(playlist), "Playlist updated successfully")


@router.delete("/delete/{playlist_id}")
def delete_playlist(playlist_id: str, user: CurrentUser, db: DbDep) -> JSONResponse:
    playlists.delete_playlist(db, user, playlist_id)
    return schemas.respond(None, "Playlist deleted successfully")


@router.post("/{playlist_id}/videos")
def add_video(playlist_id: str, payload: schemas.PlaylistAddVideo, user: CurrentUser, db: DbDep) -> JSONResponse:
    playlist, added = playlists.add_video(db, user, playlist_id, payload.video_id)
    message = "Video added to playlist successfully" if added else "Video already in playlist"
    return schemas.respond(_detail(playlist), message)


@router.post("/{playlist_id}/videos/{video_id}")
def remove_video(playlist_id: str, video_id: str, user: CurrentUser, db: DbDep) -> JSONResponse:
    playlist, removed = playlists.remove_video(db, user, playlist_id, video_id)
    message = "Video removed from playlist successfully" if removed else "Video not found in playlist"
    return schemas.respond(_detail(playlist), message)
