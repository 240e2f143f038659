from __future__ import annotations

import logging
import time
from collections.abc import Callable
from contextlib import ExitStack
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import httpx
from tenacity import Retrying, retry_if_exception_type, stop_after_attempt, wait_exponential

logger = logging.getLogger(__name__)

API_PREFIX = "/api/v1"

CacheKey = tuple[Any, ...]


class ClientError(Exception):
    """An error envelope (or a transport failure) surfaced to the caller."""

    def __init__(self, status_code: int | None, message: str, errors: list[Any] | None = None):
        super().__init__(message)
        self.status_code = status_code
        self.message = message
        self.errors = errors or []


class ResponseCache:
    """In-memory TTL cache keyed by resource tuples such as ("video", id)."""

    def __init__(self, ttl_seconds: float = 300.0, clock: Callable[[], float] = time.monotonic):
        self.ttl_seconds = ttl_seconds
        self.clock = clock
        self._entries: dict[CacheKey, tuple[float, Any]] = {}

    def get(self, key: CacheKey) -> Any | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        expires_at, value = entry
        if self.clock() >= expires_at:
            del self._entries[key]
            return None
        return value

    def set(self, key: CacheKey, value: Any, ttl_seconds: float | None = None) -> None:
        now = self.clock()
        self.prune(now)
        ttl = self.ttl_seconds if ttl_seconds is None else ttl_seconds
        self._entries[key] = (now + ttl, value)

    def prune(self, now: float | None = None) -> int:
        now = self.clock() if now is None else now
        expired = [key for key, (expires_at, _) in self._entries.items() if now >= expires_at]
        for key in expired:
            del self._entries[key]
        return len(expired)

    def __len__(self) -> int:
        return len(self._entries)

    def invalidate(self, *prefixes: CacheKey) -> int:
        """Drop every key that starts with one of the given prefixes."""
        doomed = [
            key for key in self._entries
            if any(key[: len(prefix)] == prefix for prefix in prefixes)
        ]
        for key in doomed:
            del self._entries[key]
        return len(doomed)

    def clear(self) -> None:
        self._entries.clear()

    def __contains__(self, key: CacheKey) -> bool:
        return self.get(key) is not None


@dataclass
class InteractionStore:
    """The signed-in user's interaction sets, updated optimistically ahead of the server."""

    liked: set[str] = field(default_factory=set)
    disliked: set[str] = field(default_factory=set)
    subscribed: set[str] = field(default_factory=set)
    watch_later: set[str] = field(default_factory=set)

    def load(self, user: dict[str, Any]) -> None:
        self.liked = {str(item) for item in user.get("likedVideos") or []}
        self.disliked = {str(item) for item in user.get("dislikedVideos") or []}
        self.subscribed = {str(item) for item in user.get("subscribedChannels") or []}
        self.watch_later = {str(item) for item in user.get("watchLater") or []}

    def snapshot(self) -> tuple[frozenset[str], ...]:
        return (
            frozenset(self.liked),
            frozenset(self.disliked),
            frozenset(self.subscribed),
            frozenset(self.watch_later),
        )

    def restore(self, snapshot: tuple[frozenset[str], ...]) -> None:
        liked, disliked, subscribed, watch_later = snapshot
        self.liked = set(liked)
        self.disliked = set(disliked)
        self.subscribed = set(subscribed)
        self.watch_later = set(watch_later)

    def apply_reaction(self, video_id: str, action: str) -> None:
        video_id = str(video_id)
        if action == "like":
            self.liked.add(video_id)
            self.disliked.discard(video_id)
        elif action == "unlike":
            self.liked.discard(video_id)
        elif action == "dislike":
            self.disliked.add(video_id)
            self.liked.discard(video_id)
        elif action == "undislike":
            self.disliked.discard(video_id)
        else:
            raise ValueError(f"Unknown reaction action: {action}")

    def set_subscribed(self, channel_id: str, subscribed: bool) -> None:
        if subscribed:
            self.subscribed.add(str(channel_id))
        else:
            self.subscribed.discard(str(channel_id))

    def set_watch_later(self, video_id: str, present: bool) -> None:
        if present:
            self.watch_later.add(str(video_id))
        else:
            self.watch_later.discard(str(video_id))


class VidtubeClient:
    """HTTP client for the /api/v1 surface.

    Reads go through a TTL cache and are retried on transport errors. Mutations are sent once
    and drop the cache entries they make stale.
    """

    def __init__(
        self,
        http: httpx.Client | None = None,
        *,
        base_url: str = "http://localhost:5000",
        token: str | None = None,
        cache: ResponseCache | None = None,
        store: InteractionStore | None = None,
        read_attempts: int = 3,
        retry_wait: Any = None,
    ):
        self.http = http or httpx.Client(base_url=base_url, timeout=30.0)
        self.token = token
        self.cache = cache if cache is not None else ResponseCache()
        self.store = store or InteractionStore()
        self._retrying = Retrying(
            stop=stop_after_attempt(read_attempts),
            wait=retry_wait or wait_exponential(multiplier=0.5, max=4),
            retry=retry_if_exception_type(httpx.TransportError),
            reraise=True,
        )

    def close(self) -> None:
        self.http.close()

    def __enter__(self) -> VidtubeClient:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def _headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.token}"} if self.token else {}

    def _send(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        return self.http.request(method, f"{API_PREFIX}{path}", headers=self._headers(), **kwargs)

    @staticmethod
    def _unwrap(response: httpx.Response) -> Any:
        try:
            body = response.json()
        except ValueError as exc:
            raise ClientError(response.status_code, f"Unexpected response: {response.text[:200]}") from exc

        if response.is_error or not body.get("success", False):
            raise ClientError(
                body.get("statusCode", response.status_code),
                body.get("message") or response.reason_phrase,
                body.get("errors"),
            )
        return body.get("data")

    def _read(
        self,
        key: CacheKey | None,
        path: str,
        params: dict[str, Any] | None = None,
        *,
        method: str = "GET",
        json: Any = None,
    ) -> Any:
        if key is not None:
            cached = self.cache.get(key)
            if cached is not None:
                return cached
        try:
            response = self._retrying(self._send, method, path, params=params, json=json)
        except httpx.TransportError as exc:
            logger.warning("Read failed after retries", extra={"path": path, "error": str(exc)})
            raise ClientError(None, f"Network error: {exc}") from exc

        data = self._unwrap(response)
        if key is not None and data is not None:
            self.cache.set(key, data)
        return data

    def _mutate(self, method: str, path: str, invalidates: tuple[CacheKey, ...] = (), **kwargs: Any) -> Any:
        try:
            response = self._send(method, path, **kwargs)
        except httpx.TransportError as exc:
            raise ClientError(None, f"Network error: {exc}") from exc
        try:
            return self._unwrap(response)
        finally:
            # Even a rejected mutation may have raced a server-side change.
            self.cache.invalidate(*invalidates)

    # Reads

    def list_videos(self, page: int = 1, limit: int = 10, search: str | None = None) -> dict[str, Any]:
        params: dict[str, Any] = {"page": page, "limit": limit}
        if search:
            params["search"] = search
        return self._read(("catalog", page, limit, search or ""), "/videos", params)

    def user_videos(self, user_id: str, page: int = 1, limit: int = 10) -> dict[str, Any]:
        return self._read(
            ("user-videos", str(user_id), page, limit),
            f"/videos/user/{user_id}",
            {"page": page, "limit": limit},
        )

    def get_video(self, video_id: str) -> dict[str, Any]:
        return self._read(("video", str(video_id)), f"/videos/{video_id}")

    def get_comments(self, video_id: str) -> list[dict[str, Any]]:
        return self._read(("comments", str(video_id)), f"/videos/{video_id}/comments")

    def videos_by_ids(self, video_ids: list[str]) -> list[dict[str, Any]]:
        ids = [str(item) for item in video_ids]
        # A lookup, not a mutation: POST only because the ids travel in the body.
        return self._read(("videos-by-id", *ids), "/videos/videosbyId", method="POST", json={"videoIds": ids})

    def me(self) -> dict[str, Any]:
        user = self._read(("me",), "/users/me")
        self.store.load(user)
        return user

    def liked_videos(self) -> list[str]:
        return self._read(("liked",), "/videos/me/liked-videos")

    def subscriptions(self) -> list[dict[str, Any]]:
        return self._read(("subscriptions",), "/users/me/subscriptions")

    def channel_subscribers(self, channel_id: str) -> list[dict[str, Any]]:
        return self._read(("subscribers", str(channel_id)), f"/users/{channel_id}/subscribers")

    def profile(self, user_id: str) -> dict[str, Any]:
        return self._read(("profile", str(user_id)), f"/users/profile/{user_id}")

    def my_playlists(self) -> list[dict[str, Any]]:
        return self._read(("playlists",), "/users/me/playlists")

    def get_playlist(self, playlist_id: str) -> dict[str, Any]:
        return self._read(("playlist", str(playlist_id)), f"/playlists/{playlist_id}")

    def history(self) -> list[dict[str, Any]]:
        return self._read(("history",), "/users/history")

    def watch_later(self) -> list[dict[str, Any]]:
        return self._read(("later",), "/users/later")

    # Videos

    def upload_video(
        self,
        title: str,
        video_path: str | Path,
        description: str | None = None,
        thumbnail_path: str | Path | None = None,
    ) -> dict[str, Any]:
        with ExitStack() as stack:
            files = {"videoFile": (Path(video_path).name, stack.enter_context(open(video_path, "rb")))}
            if thumbnail_path is not None:
                files["thumbnailFile"] = (Path(thumbnail_path).name, stack.enter_context(open(thumbnail_path, "rb")))
            form = {"title": title}
            if description is not None:
                form["description"] = description
            return self._mutate(
                "POST",
                "/videos/upload",
                invalidates=(("catalog",), ("user-videos",)),
                data=form,
                files=files,
            )

    def update_video(self, video_id: str, **updates: Any) -> dict[str, Any]:
        return self._mutate(
            "PUT",
            f"/videos/{video_id}",
            invalidates=(("video", str(video_id)), ("videos-by-id",), ("catalog",), ("user-videos",)),
            json=updates,
        )

    def delete_video(self, video_id: str) -> None:
        self._mutate(
            "DELETE",
            f"/videos/{video_id}",
            invalidates=(
                ("video", str(video_id)),
                ("comments", str(video_id)),
                ("videos-by-id",),
                ("catalog",),
                ("user-videos",),
                ("playlist",),
                ("playlists",),
                ("liked",),
                ("me",),
                ("history",),
                ("later",),
            ),
        )

    # Interactions

    def react(self, video_id: str, action: str) -> dict[str, Any]:
        """Send like/unlike/dislike/undislike, updating the local store first."""
        endpoint = "likes" if action in ("like", "unlike") else "dislikes"
        method = "POST" if action in ("like", "dislike") else "DELETE"
        before = self.store.snapshot()
        self.store.apply_reaction(video_id, action)
        try:
            return self._mutate(
                method,
                f"/videos/{video_id}/{endpoint}",
                invalidates=(
                    ("video", str(video_id)),
                    ("videos-by-id",),
                    ("catalog",),
                    ("user-videos",),
                    ("me",),
                    ("liked",),
                ),
                json={"action": action},
            )
        except ClientError:
            self.store.restore(before)
            raise

    def toggle_subscription(self, channel_id: str) -> bool:
        currently = str(channel_id) in self.store.subscribed
        before = self.store.snapshot()
        self.store.set_subscribed(channel_id, not currently)
        try:
            state = self._mutate(
                "POST",
                f"/users/{channel_id}/{'unsubscribe' if currently else 'subscribe'}",
                invalidates=(("subscriptions",), ("subscribers", str(channel_id)), ("profile", str(channel_id)), ("me",)),
            )
        except ClientError:
            self.store.restore(before)
            raise
        subscribed = bool(state.get("isSubscribed"))
        # Both routes toggle, so trust the server's answer over the guess.
        self.store.set_subscribed(channel_id, subscribed)
        return subscribed

    def add_comment(self, video_id: str, content: str) -> dict[str, Any]:
        return self._mutate(
            "POST",
            f"/videos/{video_id}/comments",
            invalidates=(
                ("comments", str(video_id)),
                ("video", str(video_id)),
                ("videos-by-id",),
                ("catalog",),
            ),
            json={"content": content},
        )

    def update_comment(self, comment_id: str, content: str) -> dict[str, Any]:
        return self._mutate(
            "PATCH",
            f"/videos/comments/{comment_id}",
            invalidates=(("comments",),),
            json={"content": content},
        )

    def delete_comment(self, comment_id: str) -> dict[str, Any]:
        return self._mutate(
            "DELETE",
            f"/videos/comments/{comment_id}",
            invalidates=(("comments",), ("video",), ("videos-by-id",), ("catalog",)),
        )

    # Playlists

    def create_playlist(self, name: str) -> dict[str, Any]:
        return self._mutate("POST", "/playlists/create", invalidates=(("playlists",),), json={"name": name})

    def rename_playlist(self, playlist_id: str, name: str) -> dict[str, Any]:
        return self._mutate(
            "PATCH",
            f"/playlists/update/{playlist_id}",
            invalidates=(("playlist", str(playlist_id)), ("playlists",)),
            json={"name": name},
        )

    def delete_playlist(self, playlist_id: str) -> None:
        self._mutate(
            "DELETE",
            f"/playlists/delete/{playlist_id}",
            invalidates=(("playlist", str(playlist_id)), ("playlists",)),
        )

    def add_to_playlist(self, playlist_id: str, video_id: str) -> dict[str, Any]:
        return self._mutate(
            "POST",
            f"/playlists/{playlist_id}/videos",
            invalidates=(("playlist", str(playlist_id)), ("playlists",)),
            json={"videoId": str(video_id)},
        )

    def remove_from_playlist(self, playlist_id: str, video_id: str) -> dict[str, Any]:
        return self._mutate(
            "POST",
            f"/playlists/{playlist_id}/videos/{video_id}",
            invalidates=(("playlist", str(playlist_id)), ("playlists",)),
        )

    # Library

    def add_to_watch_later(self, video_id: str) -> list[str]:
        before = self.store.snapshot()
        self.store.set_watch_later(video_id, True)
        try:
            return self._mutate("POST", f"/users/later/{video_id}", invalidates=(("later",), ("me",)))
        except ClientError:
            self.store.restore(before)
            raise

    def remove_from_watch_later(self, video_id: str) -> dict[str, Any]:
        before = self.store.snapshot()
        self.store.set_watch_later(video_id, False)
        try:
            return self._mutate("DELETE", f"/users/later/{video_id}", invalidates=(("later",), ("me",)))
        except ClientError:
            self.store.restore(before)
            raise

    def add_to_history(self, video_id: str) -> dict[str, Any]:
        return self._mutate("POST", f"/users/history/{video_id}", invalidates=(("history",),))

    def remove_from_history(self, video_id: str) -> None:
        self._mutate("DELETE", f"/users/history/{video_id}", invalidates=(("history",),))
