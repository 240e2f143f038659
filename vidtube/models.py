from __future__ import annotations

import uuid
from datetime import UTC, datetime

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.ext.orderinglist import ordering_list
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.types import Uuid

from vidtube.db import Base

LIKE = "like"
DISLIKE = "dislike"


def utcnow() -> datetime:
    return datetime.now(UTC)


class User(Base):
    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    clerk_id: Mapped[str] = mapped_column(String(128), unique=True, nullable=False, index=True)
    username: Mapped[str] = mapped_column(String(128), unique=True, nullable=False)
    email: Mapped[str] = mapped_column(String(320), unique=True, nullable=False)
    fullname: Mapped[str | None] = mapped_column(String(256), nullable=True)
    avatar_url: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        server_default=func.now(),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        onupdate=utcnow,
        server_default=func.now(),
    )

    videos: Mapped[list["Video"]] = relationship(back_populates="owner")
    reactions: Mapped[list["Reaction"]] = relationship(back_populates="user", order_by="Reaction.created_at")
    following: Mapped[list["Subscription"]] = relationship(
        foreign_keys="Subscription.subscriber_id",
        back_populates="subscriber",
        cascade="all, delete-orphan",
        order_by="Subscription.created_at",
    )
    followers: Mapped[list["Subscription"]] = relationship(
        foreign_keys="Subscription.channel_id",
        back_populates="channel",
        order_by="Subscription.created_at",
    )
    watch_later_entries: Mapped[list["WatchLaterEntry"]] = relationship(
        back_populates="user",
        cascade="all, delete-orphan",
        order_by="WatchLaterEntry.added_at",
    )

    @property
    def liked_videos(self) -> list[uuid.UUID]:
        return [item.video_id for item in self.reactions if item.kind == LIKE]

    @property
    def disliked_videos(self) -> list[uuid.UUID]:
        return [item.video_id for item in self.reactions if item.kind == DISLIKE]

    @property
    def subscribed_channels(self) -> list[uuid.UUID]:
        return [item.channel_id for item in self.following]

    @property
    def subscribed_by_channels(self) -> list[uuid.UUID]:
        return [item.subscriber_id for item in self.followers]

    @property
    def watch_later(self) -> list[uuid.UUID]:
        return [item.video_id for item in self.watch_later_entries]


class Video(Base):
    __tablename__ = "videos"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    title: Mapped[str] = mapped_column(String(1024), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    video_url: Mapped[str] = mapped_column(String(2048), nullable=False)
    video_public_id: Mapped[str | None] = mapped_column(String(512), nullable=True)
    thumbnail_url: Mapped[str | None] = mapped_column(String(2048), nullable=True)
    thumbnail_public_id: Mapped[str | None] = mapped_column(String(512), nullable=True)
    owner_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    views: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    duration: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        server_default=func.now(),
        index=True,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        onupdate=utcnow,
        server_default=func.now(),
    )

    owner: Mapped["User"] = relationship(back_populates="videos")
    reactions: Mapped[list["Reaction"]] = relationship(
        back_populates="video",
        cascade="all, delete-orphan",
        order_by="Reaction.created_at",
    )
    comments: Mapped[list["Comment"]] = relationship(
        back_populates="video",
        cascade="all, delete-orphan",
        order_by="Comment.created_at",
    )
    playlist_entries: Mapped[list["PlaylistVideo"]] = relationship(
        back_populates="video",
        cascade="all, delete-orphan",
    )
    watch_later_entries: Mapped[list["WatchLaterEntry"]] = relationship(
        back_populates="video",
        cascade="all, delete-orphan",
    )
    history_entries: Mapped[list["WatchHistory"]] = relationship(
        back_populates="video",
        cascade="all, delete-orphan",
    )
    view_records: Mapped[list["View"]] = relationship(
        back_populates="video",
        cascade="all, delete-orphan",
    )

    @property
    def likes(self) -> list[uuid.UUID]:
        return [item.user_id for item in self.reactions if item.kind == LIKE]

    @property
    def dislikes(self) -> list[uuid.UUID]:
        return [item.user_id for item in self.reactions if item.kind == DISLIKE]


class Reaction(Base):
    __tablename__ = "video_reactions"
    __table_args__ = (CheckConstraint("kind IN ('like', 'dislike')", name="ck_video_reactions_kind"),)

    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        primary_key=True,
    )
    video_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("videos.id", ondelete="CASCADE"),
        primary_key=True,
        index=True,
    )
    kind: Mapped[str] = mapped_column(String(16), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        server_default=func.now(),
    )

    user: Mapped["User"] = relationship(back_populates="reactions")
    video: Mapped["Video"] = relationship(back_populates="reactions")


class Subscription(Base):
    __tablename__ = "subscriptions"
    __table_args__ = (CheckConstraint("subscriber_id <> channel_id", name="ck_subscriptions_not_self"),)

    subscriber_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        primary_key=True,
    )
    channel_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        primary_key=True,
        index=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        server_default=func.now(),
    )

    subscriber: Mapped["User"] = relationship(foreign_keys=[subscriber_id], back_populates="following")
    channel: Mapped["User"] = relationship(foreign_keys=[channel_id], back_populates="followers")


class Comment(Base):
    __tablename__ = "comments"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    video_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("videos.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    owner_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    content: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        server_default=func.now(),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        onupdate=utcnow,
        server_default=func.now(),
    )

    video: Mapped["Video"] = relationship(back_populates="comments")
    owner: Mapped["User"] = relationship()


class Playlist(Base):
    __tablename__ = "playlists"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(256), nullable=False)
    owner_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        server_default=func.now(),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        onupdate=utcnow,
        server_default=func.now(),
    )

    owner: Mapped["User"] = relationship()
    entries: Mapped[list["PlaylistVideo"]] = relationship(
        back_populates="playlist",
        cascade="all, delete-orphan",
        order_by="PlaylistVideo.position",
        collection_class=ordering_list("position"),
    )

    @property
    def video_ids(self) -> list[uuid.UUID]:
        return [entry.video_id for entry in self.entries]

    @property
    def videos(self) -> list["Video"]:
        return [entry.video for entry in self.entries]


class PlaylistVideo(Base):
    __tablename__ = "playlist_videos"

    playlist_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("playlists.id", ondelete="CASCADE"),
        primary_key=True,
    )
    video_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("videos.id", ondelete="CASCADE"),
        primary_key=True,
        index=True,
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    playlist: Mapped["Playlist"] = relationship(back_populates="entries")
    video: Mapped["Video"] = relationship(back_populates="playlist_entries")


class WatchHistory(Base):
    __tablename__ = "watch_history"
    __table_args__ = (UniqueConstraint("user_id", "video_id", name="uq_watch_history_user_video"),)

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    video_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("videos.id", ondelete="CASCADE"),
        nullable=False,
    )
    watched_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        server_default=func.now(),
        index=True,
    )

    video: Mapped["Video"] = relationship(back_populates="history_entries")


class WatchLaterEntry(Base):
    __tablename__ = "watch_later"

    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        primary_key=True,
    )
    video_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("videos.id", ondelete="CASCADE"),
        primary_key=True,
    )
    added_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        server_default=func.now(),
    )

    user: Mapped["User"] = relationship(back_populates="watch_later_entries")
    video: Mapped["Video"] = relationship(back_populates="watch_later_entries")


class View(Base):
    __tablename__ = "views"
    __table_args__ = (UniqueConstraint("user_id", "video_id", name="uq_views_user_video"),)

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=True,
    )
    video_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("videos.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        server_default=func.now(),
    )

    video: Mapped["Video"] = relationship(back_populates="view_records")
