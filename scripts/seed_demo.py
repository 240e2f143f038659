from __future__ import annotations

import argparse
import json
import sys
from dataclasses import dataclass

from sqlalchemy import create_engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from vidtube import crud, models, schemas
from vidtube.config import get_settings
from vidtube.db import Base
from vidtube.formatting import format_duration


@dataclass
class UserSeed:
    clerk_id: str
    username: str
    fullname: str


@dataclass
class VideoSeed:
    owner: str
    title: str
    description: str
    video_url: str
    duration_seconds: float


USERS: list[UserSeed] = [
    UserSeed(clerk_id="user_demo_alice", username="alice", fullname="Alice Demo"),
    UserSeed(clerk_id="user_demo_bob", username="bob", fullname="Bob Demo"),
]

SAMPLE_BASE = "https://res.cloudinary.com/demo/video/upload"

VIDEOS: list[VideoSeed] = [
    VideoSeed(
        owner="alice",
        title="Intro",
        description="A two minute welcome to the channel.",
        video_url=f"{SAMPLE_BASE}/dog.mp4",
        duration_seconds=125,
    ),
    VideoSeed(
        owner="alice",
        title="Editing Basics",
        description="Cutting, trimming and exporting clips.",
        video_url=f"{SAMPLE_BASE}/elephants.mp4",
        duration_seconds=654,
    ),
    VideoSeed(
        owner="bob",
        title="Street Food Tour",
        description="Late night snacks around the old town.",
        video_url=f"{SAMPLE_BASE}/sea_turtle.mp4",
        duration_seconds=3725,
    ),
]


def seed_users(db: Session) -> dict[str, models.User]:
    users: dict[str, models.User] = {}
    for seed in USERS:
        user = crud.get_user_by_clerk_id(db, seed.clerk_id)
        if user is None:
            user = models.User(
                clerk_id=seed.clerk_id,
                username=seed.username,
                email=f"{seed.username}@example.com",
                fullname=seed.fullname,
                avatar_url="",
            )
            db.add(user)
        users[seed.username] = user
    db.flush()
    return users


def seed_videos(db: Session, users: dict[str, models.User]) -> int:
    created = 0
    for seed in VIDEOS:
        owner = users[seed.owner]
        if any(video.title == seed.title for video in owner.videos):
            continue
        db.add(
            models.Video(
                title=seed.title,
                description=seed.description,
                video_url=seed.video_url,
                thumbnail_url=seed.video_url.rsplit(".", 1)[0] + ".jpg",
                owner_id=owner.id,
                duration=seed.duration_seconds,
                views=0,
            )
        )
        created += 1
    return created


def print_catalog(db: Session, limit: int) -> None:
    page = crud.list_videos(db, 1, limit)
    for video in page["docs"]:
        print(f"{format_duration(video.duration):>8}  {video.title}  ({video.owner.username})")
    summary = schemas.Page[schemas.VideoSummaryOut].model_validate(page)
    print(json.dumps(summary.model_dump(by_alias=True, mode="json", exclude={"docs"}), indent=2))


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Seed demo users and videos, then print the catalog.")
    parser.add_argument("--database-url", default=get_settings().database_url, help="SQLAlchemy database URL")
    parser.add_argument("--limit", type=int, default=10, help="Catalog page size to print")
    return parser.parse_args()


def main() -> int:
    args = parse_args()
    engine = create_engine(args.database_url)

    try:
        Base.metadata.create_all(engine)
        with Session(engine) as db:
            users = seed_users(db)
            created = seed_videos(db, users)
            db.commit()
            print(f"Seeded {len(users)} users and {created} new videos.")
            print_catalog(db, args.limit)
    except SQLAlchemyError as exc:
        print(f"Seeding failed: {exc}", file=sys.stderr)
        return 1

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
