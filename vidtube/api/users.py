from __future__ import annotations

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from vidtube import crud, schemas
from vidtube.auth import CurrentUser
from vidtube.deps import DbDep
from vidtube.services import interactions, library, playlists
from vidtube.services.users import get_channel, get_profile

router = APIRouter()


@router.get("/me")
def current_user(user: CurrentUser) -> JSONResponse:
    return schemas.respond(schemas.UserOut.model_validate(user), "User fetched successfully")


@router.get("/me/subscriptions")
def my_subscriptions(user: CurrentUser, db: DbDep) -> JSONResponse:
    channels = crud.list_subscriptions(db, user.id)
    data = [schemas.OwnerOut.model_validate(channel) for channel in channels]
    return schemas.respond(data, "Subscriptions fetched successfully")


@router.get("/me/playlists")
def my_playlists(user: CurrentUser, db: DbDep) -> JSONResponse:
    data = [schemas.PlaylistOut.model_validate(item) for item in playlists.list_playlists(db, user)]
    return schemas.respond(data, "Playlists fetched successfully")


@router.get("/profile/{user_id}")
def user_profile(user_id: str, user: CurrentUser, db: DbDep) -> JSONResponse:
    profile_user, latest = get_profile(db, user_id)
    data = schemas.ProfileOut(
        user=schemas.OwnerOut.model_validate(profile_user),
        latest_videos=[schemas.VideoSummaryOut.model_validate(video) for video in latest],
    )
    return schemas.respond(data, "User profile fetched successfully")


@router.get("/history")
def watch_history(user: CurrentUser, db: DbDep) -> JSONResponse:
    data = [schemas.WatchHistoryOut.model_validate(entry) for entry in library.list_history(db, user)]
    return schemas.respond(data, "Watch history fetched successfully")


@router.post("/history/{video_id}")
def add_history(video_id: str, user: CurrentUser, db: DbDep) -> JSONResponse:
    entry, created = library.add_to_history(db, user, video_id)
    data = schemas.WatchHistoryOut.model_validate(entry)
    if created:
        return schemas.respond(data, "Video added to watch history", 201)
    return schemas.respond(data, "Watch history updated")


@router.delete("/history/{video_id}")
def remove_history(video_id: str, user: CurrentUser, db: DbDep) -> JSONResponse:
    library.remove_from_history(db, user, video_id)
    return schemas.respond(None, "Video removed from watch history")


@router.get("/later")
def watch_later(user: CurrentUser, db: DbDep) -> JSONResponse:
    data = [schemas.VideoOut.model_validate(video) for video in library.list_watch_later(db, user)]
    return schemas.respond(data, "Watch later list fetched successfully")


@router.post("/later/{video_id}")
def add_watch_later(video_id: str, user: CurrentUser, db: DbDep) -> JSONResponse:
    ids = library.add_to_watch_later(db, user, video_id)
    return schemas.respond(ids, "Video added to Watch Later", 201)


@router.delete("/later/{video_id}")
def remove_watch_later(video_id: str, user: CurrentUser, db: DbDep) -> JSONResponse:
    removed = library.remove_from_watch_later(db, user, video_id)
    return schemas.respond({"videoId": removed}, "Video removed from Watch Later")


@router.get("/{channel_id}/subscribers")
def channel_subscribers(channel_id: str, user: CurrentUser, db: DbDep) -> JSONResponse:
    channel = get_channel(db, channel_id)
    data = [schemas.OwnerOut.model_validate(item) for item in crud.list_subscribers(db, channel.id)]
    return schemas.respond(data, "Subscribers fetched successfully")


def _toggle(db: DbDep, user: CurrentUser, channel_id: str) -> JSONResponse:
    subscribed = interactions.toggle_subscription(db, user, channel_id)
    message = "Subscribed successfully" if subscribed else "Unsubscribed successfully"
    return schemas.respond(schemas.SubscriptionState(is_subscribed=subscribed), message)


@router.post("/{channel_id}/subscribe")
def subscribe(channel_id: str, user: CurrentUser, db: DbDep) -> JSONResponse:
    return _toggle(db, user, channel_id)


@router.post("/{channel_id}/unsubscribe")
def unsubscribe(channel_id: str, user: CurrentUser, db: DbDep) -> JSONResponse:
    return _toggle(db, user, channel_id)
