from __future__ import annotations

import fnmatch
import os
from collections.abc import Callable, Iterator
from pathlib import Path
from typing import Any

os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:///:memory:")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from vidtube import crud, models  # noqa: F401
from vidtube.api import videos as videos_api
from vidtube.db import Base, get_db
from vidtube.deps import get_cloud_storage, get_identity, get_redis
from vidtube.exceptions import IdentityProviderError, UnauthorizedError
from vidtube.main import app
from vidtube.services.identity import ProviderProfile


class FakeRedis:
    def __init__(self) -> None:
        self.store: dict[str, str] = {}

    def ping(self) -> bool:
        return True

    def get(self, key: str) -> str | None:
        return self.store.get(key)

    def setex(self, key: str, ttl_seconds: int, value: str) -> bool:
        self.store[key] = value
        return True

    def scan_iter(self, match: str = "*") -> Iterator[str]:
        return iter([key for key in list(self.store) if fnmatch.fnmatch(key, match)])

    def delete(self, *keys: str) -> int:
        removed = 0
        for key in keys:
            if self.store.pop(key, None) is not None:
                removed += 1
        return removed


class FakeStorage:
    def __init__(self) -> None:
        self.uploaded: list[dict[str, Any]] = []
        self.deleted: list[tuple[str, str]] = []
        self.duration: Any = 125.0
        self.fail_upload = False

    def upload(self, local_path: str | Path) -> dict[str, Any] | None:
        if self.fail_upload:
            return None
        number = len(self.uploaded) + 1
        if Path(local_path).suffix.lower() in (".jpg", ".jpeg", ".png"):
            asset = {
                "secure_url": f"https://res.cloudinary.com/demo/image/upload/v1/thumb{number}.jpg",
                "public_id": f"thumb{number}",
                "resource_type": "image",
            }
        else:
            asset = {
                "secure_url": f"https://res.cloudinary.com/demo/video/upload/v1/clip{number}.mp4",
                "public_id": f"clip{number}",
                "resource_type": "video",
                "duration": self.duration,
            }
        self.uploaded.append(asset)
        return asset

    def delete(self, public_id: str | None, resource_type: str = "image") -> bool:
        self.deleted.append((public_id or "", resource_type))
        return True


class FakeIdentity:
    """Treats the bearer token as the subject id; the token "invalid" is rejected."""

    def __init__(self) -> None:
        self.lookups: list[str] = []
        self.unreachable: set[str] = set()

    def verify_session_token(self, token: str) -> str:
        if token == "invalid":
            raise UnauthorizedError("Invalid or expired session")
        return token

    def fetch_profile(self, subject_id: str) -> ProviderProfile:
        self.lookups.append(subject_id)
        if subject_id in self.unreachable:
            raise IdentityProviderError(f"Failed to retrieve user details from authentication provider ({subject_id}).")
        handle = subject_id.removeprefix("user_")
        return ProviderProfile(
            subject_id=subject_id,
            username=handle,
            email=f"{handle}@example.com",
            first_name=handle.title(),
            last_name="Tester",
            image_url=f"https://img.example.com/{handle}.png",
        )


def bearer(subject: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {subject}"}


@pytest.fixture()
def engine() -> Iterator[Engine]:
    engine = create_engine(
        "sqlite+pysqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture()
def db_session(engine: Engine) -> Iterator[Session]:
    with Session(engine) as db:
        yield db


@pytest.fixture()
def fake_redis() -> FakeRedis:
    return FakeRedis()


@pytest.fixture()
def storage() -> FakeStorage:
    return FakeStorage()


@pytest.fixture()
def identity() -> FakeIdentity:
    return FakeIdentity()


@pytest.fixture()
def client(
    engine: Engine,
    fake_redis: FakeRedis,
    storage: FakeStorage,
    identity: FakeIdentity,
    tmp_path: Path,
    monkeypatch: pytest.MonkeyPatch,
) -> Iterator[TestClient]:
    testing_session = sessionmaker(bind=engine, autoflush=False)

    def override_db() -> Iterator[Session]:
        db = testing_session()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_db
    app.dependency_overrides[get_redis] = lambda: fake_redis
    app.dependency_overrides[get_cloud_storage] = lambda: storage
    app.dependency_overrides[get_identity] = lambda: identity
    monkeypatch.setattr(videos_api.settings, "upload_temp_dir", str(tmp_path / "temp"))

    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture()
def auth() -> Callable[[str], dict[str, str]]:
    return bearer


@pytest.fixture()
def upload_video(client: TestClient) -> Callable[..., dict[str, Any]]:
    def _upload(subject: str, title: str = "Intro", **extra: Any) -> dict[str, Any]:
        response = client.post(
            "/api/v1/videos/upload",
            data={"title": title, "description": extra.get("description", f"About {title}")},
            files={"videoFile": (f"{title.lower().replace(' ', '-')}.mp4", b"fake-video-bytes", "video/mp4")},
            headers=bearer(subject),
        )
        assert response.status_code == 201, response.text
        return response.json()["data"]

    return _upload


@pytest.fixture()
def stale_lookup(monkeypatch: pytest.MonkeyPatch) -> Callable[[str], None]:
    """Make one crud lookup miss a single time, as a request that lost an insert race would see it."""

    def _patch(name: str) -> None:
        real = getattr(crud, name)
        state = {"missed": False}

        def lookup(*args: Any) -> Any:
            if not state["missed"]:
                state["missed"] = True
                return None
            return real(*args)

        monkeypatch.setattr(crud, name, lookup)

    return _patch
