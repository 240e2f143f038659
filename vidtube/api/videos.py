from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Body, File, Form, Query, Request, UploadFile
from fastapi.responses import JSONResponse

from vidtube import crud, schemas
from vidtube.auth import CurrentUser, OptionalUser
from vidtube.config import get_settings
from vidtube.deps import CatalogDep, DbDep, StorageDep
from vidtube.exceptions import parse_id
from vidtube.services import interactions, videos
from vidtube.services.uploads import staged_files

logger = logging.getLogger(__name__)
settings = get_settings()

router = APIRouter()


def _video_page(page: dict[str, Any]) -> dict[str, Any]:
    return schemas.Page[schemas.VideoOut].model_validate(page).model_dump(by_alias=True, mode="json")


@router.get("")
@router.get("/", include_in_schema=False)
def list_videos(
    db: DbDep,
    catalog: CatalogDep,
    page: int = Query(default=1),
    limit: int = Query(default=10),
    search: str | None = Query(default=None),
) -> JSONResponse:
    page, limit = crud.normalize_paging(page, limit)
    cached = catalog.get(page, limit, search)
    if cached is not None:
        return schemas.respond(cached, "Videos fetched successfully")

    result = _video_page(crud.list_videos(db, page, limit, search))
    catalog.put(page, limit, search, result)
    return schemas.respond(result, "Videos fetched successfully")


@router.get("/user/{user_id}")
def list_user_videos(
    user_id: str,
    db: DbDep,
    page: int = Query(default=1),
    limit: int = Query(default=10),
) -> JSONResponse:
    owner_id = parse_id(user_id, "user")
    page, limit = crud.normalize_paging(page, limit)
    result = _video_page(crud.list_videos_by_owner(db, owner_id, page, limit))
    return schemas.respond(result, "User videos fetched successfully")


@router.post("/videosbyId")
def get_videos_by_ids(payload: schemas.VideosByIdsRequest, db: DbDep) -> JSONResponse:
    found = videos.videos_by_ids(db, payload.video_ids)
    data = [schemas.VideoOut.model_validate(video) for video in found]
    return schemas.respond(data, "Videos fetched successfully")


@router.get("/me/liked-videos")
def liked_videos(user: CurrentUser) -> JSONResponse:
    return schemas.respond(user.liked_videos, "Liked videos fetched successfully")


@router.post("/upload")
def upload_video(
    user: CurrentUser,
    db: DbDep,
    catalog: CatalogDep,
    storage: StorageDep,
    video_file: UploadFile | None = File(default=None, alias="videoFile"),
    thumbnail_file: UploadFile | None = File(default=None, alias="thumbnailFile"),
    title: str | None = Form(default=None),
    description: str | None = Form(default=None),
) -> JSONResponse:
    with staged_files(
        settings.upload_temp_dir,
        settings.max_upload_bytes,
        video_file,
        thumbnail_file,
    ) as (video_path, thumbnail_path):
        video = videos.upload_video(db, storage, user, title, description, video_path, thumbnail_path)

    catalog.clear()
    return schemas.respond(schemas.VideoOut.model_validate(video), "Video uploaded successfully", 201)


@router.get("/{video_id}/comments")
def list_comments(video_id: str, db: DbDep) -> JSONResponse:
    comments = interactions.list_comments(db, video_id)
    data = [schemas.CommentOut.model_validate(comment) for comment in comments]
    return schemas.respond(data, "Comments fetched successfully")


@router.post("/{video_id}/comments")
def add_comment(
    video_id: str,
    payload: schemas.CommentRequest,
    user: CurrentUser,
    db: DbDep,
    catalog: CatalogDep,
) -> JSONResponse:
    comment = interactions.add_comment(db, user, video_id, payload.content)
    catalog.clear()
    return schemas.respond(schemas.CommentOut.model_validate(comment), "Comment added successfully", 201)


@router.patch("/comments/{comment_id}")
def update_comment(
    comment_id: str,
    payload: schemas.CommentRequest,
    user: CurrentUser,
    db: DbDep,
) -> JSONResponse:
    comment = interactions.update_comment(db, user, comment_id, payload.content)
    return schemas.respond(schemas.CommentOut.model_validate(comment), "Comment updated successfully")


@router.delete("/comments/{comment_id}")
def delete_comment(comment_id: str, user: CurrentUser, db: DbDep, catalog: CatalogDep) -> JSONResponse:
    deleted_id = interactions.delete_comment(db, user, comment_id)
    catalog.clear()
    data = schemas.DeletedComment(deleted_comment_id=deleted_id)
    return schemas.respond(data, "Comment deleted successfully")


def _react(
    db: DbDep,
    catalog: CatalogDep,
    user: CurrentUser,
    video_id: str,
    payload: schemas.ReactionRequest | None,
    allowed: tuple[str, ...],
) -> JSONResponse:
    action = payload.action if payload else None
    result = interactions.set_reaction(db, user, video_id, action, allowed=allowed)
    if not result.changed:
        # Redundant toggles are reported, not raised.
        return schemas.respond(None, result.message, 400)
    catalog.clear()
    state = schemas.ReactionState(is_liked=result.is_liked, is_disliked=result.is_disliked)
    return schemas.respond(state, result.message)


@router.api_route("/{video_id}/likes", methods=["POST", "DELETE"])
def toggle_like(
    video_id: str,
    user: CurrentUser,
    db: DbDep,
    catalog: CatalogDep,
    payload: schemas.ReactionRequest | None = None,
) -> JSONResponse:
    return _react(db, catalog, user, video_id, payload, ("like", "unlike"))


@router.api_route("/{video_id}/dislikes", methods=["POST", "DELETE"])
def toggle_dislike(
    video_id: str,
    user: CurrentUser,
    db: DbDep,
    catalog: CatalogDep,
    payload: schemas.ReactionRequest | None = None,
) -> JSONResponse:
    return _react(db, catalog, user, video_id, payload, ("dislike", "undislike"))


@router.get("/{video_id}")
def get_video(
    video_id: str,
    request: Request,
    viewer: OptionalUser,
    db: DbDep,
    catalog: CatalogDep,
) -> JSONResponse:
    video = videos.get_video_or_404(db, video_id)
    cookie_name = f"viewed-{video.id}"
    set_view_cookie = False
    counted = False

    if viewer is not None:
        counted = videos.register_view(db, video, viewer)
    elif not request.cookies.get(cookie_name):
        videos.register_anonymous_view(db, video)
        counted = set_view_cookie = True
    if counted:
        # Cached catalog pages carry view counts.
        catalog.clear()

    video = videos.get_video_or_404(db, video.id)
    response = schemas.respond(schemas.VideoOut.model_validate(video), "Video fetched successfully")
    if set_view_cookie:
        response.set_cookie(
            cookie_name,
            "true",
            max_age=settings.view_cookie_max_age_seconds,
            httponly=True,
            samesite="lax",
        )
    return response


@router.put("/{video_id}")
def update_video(
    video_id: str,
    user: CurrentUser,
    db: DbDep,
    catalog: CatalogDep,
    updates: dict[str, Any] | None = Body(default=None),
) -> JSONResponse:
    video = videos.update_video(db, user, video_id, updates)
    catalog.clear()
    return schemas.respond(schemas.VideoOut.model_validate(video), "Video updated successfully")


@router.delete("/{video_id}")
def delete_video(
    video_id: str,
    user: CurrentUser,
    db: DbDep,
    catalog: CatalogDep,
    storage: StorageDep,
) -> JSONResponse:
    videos.delete_video(db, storage, user, video_id)
    catalog.clear()
    return schemas.respond(None, "Video deleted successfully")
