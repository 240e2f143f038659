from __future__ import annotations

from datetime import datetime
from typing import Any, Generic, Literal, TypeVar
from uuid import UUID

from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

T = TypeVar("T")

ReactionAction = Literal["like", "unlike", "dislike", "undislike"]


class CamelModel(BaseModel):
    model_config = ConfigDict(
        from_attributes=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )


class ApiResponse(CamelModel, Generic[T]):
    status_code: int
    data: T | None = None
    message: str = "Success"
    success: bool = True


class ErrorResponse(CamelModel):
    status_code: int
    data: None = None
    message: str
    success: bool = False
    errors: list[Any] = Field(default_factory=list)


def envelope(data: Any, message: str = "Success", status_code: int = 200) -> ApiResponse[Any]:
    return ApiResponse(status_code=status_code, data=data, message=message, success=status_code < 400)


def respond(data: Any = None, message: str = "Success", status_code: int = 200) -> JSONResponse:
    body = envelope(data, message, status_code).model_dump(by_alias=True, mode="json")
    return JSONResponse(status_code=status_code, content=body)


class Page(CamelModel, Generic[T]):
    docs: list[T]
    total_docs: int
    total_pages: int
    page: int
    limit: int
    has_next_page: bool
    has_prev_page: bool
    next_page: int | None
    prev_page: int | None


class OwnerOut(CamelModel):
    id: UUID
    username: str
    fullname: str | None = None
    avatar_url: str | None = None


class UserOut(CamelModel):
    id: UUID
    clerk_id: str
    username: str
    email: str
    fullname: str | None
    avatar_url: str | None
    subscribed_channels: list[UUID]
    subscribed_by_channels: list[UUID]
    liked_videos: list[UUID]
    disliked_videos: list[UUID]
    watch_later: list[UUID]
    created_at: datetime
    updated_at: datetime


class VideoSummaryOut(CamelModel):
    id: UUID
    title: str
    thumbnail_url: str | None
    duration: float
    views: int
    owner: OwnerOut | None = None
    created_at: datetime


class VideoOut(CamelModel):
    id: UUID
    title: str
    description: str | None
    video_url: str
    video_public_id: str | None
    thumbnail_url: str | None
    thumbnail_public_id: str | None
    owner: OwnerOut
    views: int
    likes: list[UUID]
    dislikes: list[UUID]
    comments: list[UUID]
    duration: float
    created_at: datetime
    updated_at: datetime

    @field_validator("comments", mode="before")
    @classmethod
    def comment_ids(cls, value: Any) -> list[Any]:
        return [getattr(item, "id", item) for item in value or []]


class CommentOut(CamelModel):
    id: UUID
    video_id: UUID
    owner: OwnerOut
    content: str
    created_at: datetime
    updated_at: datetime


class PlaylistOut(CamelModel):
    id: UUID
    name: str
    owner_id: UUID
    video_ids: list[UUID]
    created_at: datetime
    updated_at: datetime


class PlaylistDetailOut(PlaylistOut):
    owner: OwnerOut
    videos: list[VideoSummaryOut]


class WatchHistoryOut(CamelModel):
    id: UUID
    user_id: UUID
    video_id: UUID
    video: VideoSummaryOut | None = None
    watched_at: datetime


class ProfileOut(CamelModel):
    user: OwnerOut
    latest_videos: list[VideoSummaryOut]


class ReactionState(CamelModel):
    is_liked: bool
    is_disliked: bool


class SubscriptionState(CamelModel):
    is_subscribed: bool


class DeletedComment(CamelModel):
    deleted_comment_id: UUID


class ReactionRequest(CamelModel):
    action: str | None = None


class CommentRequest(CamelModel):
    content: Any = None


class PlaylistCreate(CamelModel):
    name: Any = None


class PlaylistAddVideo(CamelModel):
    video_id: str | None = None


class VideosByIdsRequest(CamelModel):
    video_ids: Any = None
