from __future__ import annotations

import uuid
from datetime import datetime

from vidtube.formatting import format_duration

ALICE = "user_alice"
BOB = "user_bob"


def _create_playlist(client, auth, subject, name="Favorites"):
    response = client.post("/api/v1/playlists/create", json={"name": name}, headers=auth(subject))
    assert response.status_code == 201
    return response.json()["data"]


def test_create_playlist_requires_name(client, auth) -> None:
    assert client.post("/api/v1/playlists/create", json={"name": "  "}, headers=auth(ALICE)).status_code == 400
    assert client.post("/api/v1/playlists/create", json={}, headers=auth(ALICE)).status_code == 400

    playlist = _create_playlist(client, auth, ALICE, " Road trip ")
    assert playlist["name"] == "Road trip"
    assert playlist["videoIds"] == []
    assert playlist["owner"]["username"] == "alice"


def test_adding_twice_does_not_duplicate(client, auth, upload_video) -> None:
    video = upload_video(ALICE, "Song")
    playlist = _create_playlist(client, auth, ALICE)
    url = f"/api/v1/playlists/{playlist['id']}/videos"

    first = client.post(url, json={"videoId": video["id"]}, headers=auth(ALICE))
    assert first.status_code == 200
    assert first.json()["message"] == "Video added to playlist successfully"
    assert first.json()["data"]["videoIds"] == [video["id"]]

    second = client.post(url, json={"videoId": video["id"]}, headers=auth(ALICE))
    assert second.status_code == 200
    assert second.json()["success"] is True
    assert second.json()["message"] == "Video already in playlist"
    assert second.json()["data"]["videoIds"] == [video["id"]]


def test_add_video_validation(client, auth) -> None:
    playlist = _create_playlist(client, auth, ALICE)
    url = f"/api/v1/playlists/{playlist['id']}/videos"

    assert client.post(url, json={}, headers=auth(ALICE)).status_code == 400
    assert client.post(url, json={"videoId": "bogus"}, headers=auth(ALICE)).status_code == 400
    missing = client.post(url, json={"videoId": str(uuid.uuid4())}, headers=auth(ALICE))
    assert missing.status_code == 404
    assert missing.json()["message"] == "Video not found"


def test_playlist_keeps_insertion_order(client, auth, upload_video) -> None:
    first = upload_video(ALICE, "One")
    second = upload_video(ALICE, "Two")
    third = upload_video(ALICE, "Three")
    playlist = _create_playlist(client, auth, ALICE)
    url = f"/api/v1/playlists/{playlist['id']}/videos"
    for video in (first, second, third):
        client.post(url, json={"videoId": video["id"]}, headers=auth(ALICE))

    removed = client.post(f"{url}/{first['id']}", headers=auth(ALICE)).json()["data"]
    assert removed["videoIds"] == [second["id"], third["id"]]

    client.post(url, json={"videoId": first["id"]}, headers=auth(ALICE))
    detail = client.get(f"/api/v1/playlists/{playlist['id']}", headers=auth(ALICE)).json()["data"]
    assert [video["title"] for video in detail["videos"]] == ["Two", "Three", "One"]


def test_removing_absent_video_is_informational(client, auth, upload_video) -> None:
    video = upload_video(ALICE, "Song")
    playlist = _create_playlist(client, auth, ALICE)
    client.post(f"/api/v1/playlists/{playlist['id']}/videos", json={"videoId": video["id"]}, headers=auth(ALICE))
    remove_url = f"/api/v1/playlists/{playlist['id']}/videos/{video['id']}"

    first = client.post(remove_url, headers=auth(ALICE))
    assert first.json()["message"] == "Video removed from playlist successfully"
    assert first.json()["data"]["videoIds"] == []

    second = client.post(remove_url, headers=auth(ALICE))
    assert second.status_code == 200
    assert second.json()["message"] == "Video not found in playlist"


def test_playlist_update_rules(client, auth) -> None:
    playlist = _create_playlist(client, auth, ALICE)
    url = f"/api/v1/playlists/update/{playlist['id']}"

    renamed = client.patch(url, json={"name": "Chill"}, headers=auth(ALICE))
    assert renamed.status_code == 200
    assert renamed.json()["data"]["name"] == "Chill"

    extra_key = client.patch(url, json={"name": "Loud", "videoIds": []}, headers=auth(ALICE))
    assert extra_key.status_code == 400
    assert extra_key.json()["message"] == "Invalid updates: Only name is allowed"
    assert client.patch(url, json={}, headers=auth(ALICE)).status_code == 400

    blank = client.patch(url, json={"name": " "}, headers=auth(ALICE))
    assert blank.status_code == 400
    assert blank.json()["message"] == "Playlist name cannot be empty"

    detail = client.get(f"/api/v1/playlists/{playlist['id']}", headers=auth(ALICE)).json()["data"]
    assert detail["name"] == "Chill"


def test_playlists_are_hidden_from_other_users(client, auth, upload_video) -> None:
    video = upload_video(ALICE, "Song")
    playlist = _create_playlist(client, auth, ALICE)
    playlist_id = playlist["id"]

    responses = [
        client.get(f"/api/v1/playlists/{playlist_id}", headers=auth(BOB)),
        client.patch(f"/api/v1/playlists/update/{playlist_id}", json={"name": "Mine"}, headers=auth(BOB)),
        client.delete(f"/api/v1/playlists/delete/{playlist_id}", headers=auth(BOB)),
        client.post(f"/api/v1/playlists/{playlist_id}/videos", json={"videoId": video["id"]}, headers=auth(BOB)),
    ]
    for response in responses:
        assert response.status_code == 404
        assert response.json()["message"] == "Playlist not found or you are not the owner"


def test_delete_playlist_and_list_mine(client, auth) -> None:
    keep = _create_playlist(client, auth, ALICE, "Keep")
    drop = _create_playlist(client, auth, ALICE, "Drop")
    _create_playlist(client, auth, BOB, "Other")

    deleted = client.delete(f"/api/v1/playlists/delete/{drop['id']}", headers=auth(ALICE))
    assert deleted.status_code == 200

    mine = client.get("/api/v1/users/me/playlists", headers=auth(ALICE)).json()["data"]
    assert [item["id"] for item in mine] == [keep["id"]]
    assert client.get(f"/api/v1/playlists/{drop['id']}", headers=auth(ALICE)).status_code == 404


def test_history_keeps_one_row_per_video(client, auth, upload_video) -> None:
    video = upload_video(ALICE, "Lecture")
    url = f"/api/v1/users/history/{video['id']}"

    first = client.post(url, headers=auth(BOB))
    assert first.status_code == 201
    second = client.post(url, headers=auth(BOB))
    assert second.status_code == 200
    assert second.json()["message"] == "Watch history updated"

    history = client.get("/api/v1/users/history", headers=auth(BOB)).json()["data"]
    assert len(history) == 1
    assert history[0]["video"]["title"] == "Lecture"
    assert history[0]["id"] == first.json()["data"]["id"]
    assert datetime.fromisoformat(second.json()["data"]["watchedAt"]) > datetime.fromisoformat(
        first.json()["data"]["watchedAt"]
    )


def test_history_is_ordered_newest_first_and_removable(client, auth, upload_video) -> None:
    older = upload_video(ALICE, "Older")
    newer = upload_video(ALICE, "Newer")
    client.post(f"/api/v1/users/history/{older['id']}", headers=auth(BOB))
    client.post(f"/api/v1/users/history/{newer['id']}", headers=auth(BOB))

    history = client.get("/api/v1/users/history", headers=auth(BOB)).json()["data"]
    assert [entry["videoId"] for entry in history] == [newer["id"], older["id"]]

    assert client.delete(f"/api/v1/users/history/{older['id']}", headers=auth(BOB)).status_code == 200
    again = client.delete(f"/api/v1/users/history/{older['id']}", headers=auth(BOB))
    assert again.status_code == 404
    assert again.json()["message"] == "Video not found in watch history"


def test_watch_later_rejects_duplicates(client, auth, upload_video) -> None:
    video = upload_video(ALICE, "Later")
    url = f"/api/v1/users/later/{video['id']}"

    added = client.post(url, headers=auth(BOB))
    assert added.status_code == 201
    assert added.json()["data"] == [video["id"]]

    duplicate = client.post(url, headers=auth(BOB))
    assert duplicate.status_code == 409
    assert duplicate.json()["message"] == "Video is already in your Watch Later list"

    listed = client.get("/api/v1/users/later", headers=auth(BOB)).json()["data"]
    assert [item["id"] for item in listed] == [video["id"]]

    removed = client.delete(url, headers=auth(BOB))
    assert removed.status_code == 200
    assert removed.json()["data"] == {"videoId": video["id"]}
    assert client.delete(url, headers=auth(BOB)).status_code == 200
    assert client.get("/api/v1/users/later", headers=auth(BOB)).json()["data"] == []


def test_watch_later_requires_existing_video(client, auth) -> None:
    response = client.post(f"/api/v1/users/later/{uuid.uuid4()}", headers=auth(BOB))
    assert response.status_code == 404


def test_walkthrough_scenario(client, auth, upload_video) -> None:
    user = client.get("/api/v1/users/me", headers=auth(ALICE)).json()["data"]
    video = upload_video(ALICE, "Intro")
    assert format_duration(video["duration"]) == "2:05"

    client.post(f"/api/v1/videos/{video['id']}/likes", json={"action": "like"}, headers=auth(ALICE))
    liked = client.get(f"/api/v1/videos/{video['id']}", headers=auth(ALICE)).json()["data"]
    me = client.get("/api/v1/users/me", headers=auth(ALICE)).json()["data"]
    assert liked["likes"] == [user["id"]]
    assert me["likedVideos"] == [video["id"]]

    client.post(f"/api/v1/videos/{video['id']}/dislikes", json={"action": "dislike"}, headers=auth(ALICE))
    disliked = client.get(f"/api/v1/videos/{video['id']}", headers=auth(ALICE)).json()["data"]
    assert disliked["likes"] == []
    assert disliked["dislikes"] == [user["id"]]

    playlist = _create_playlist(client, auth, ALICE, "Favorites")
    added = client.post(
        f"/api/v1/playlists/{playlist['id']}/videos",
        json={"videoId": video["id"]},
        headers=auth(ALICE),
    ).json()["data"]
    assert added["videoIds"] == [video["id"]]

    remove_url = f"/api/v1/playlists/{playlist['id']}/videos/{video['id']}"
    assert client.post(remove_url, headers=auth(ALICE)).json()["data"]["videoIds"] == []
    second = client.post(remove_url, headers=auth(ALICE))
    assert second.status_code == 200
    assert second.json()["message"] == "Video not found in playlist"


def test_history_lost_to_concurrent_insert_updates_the_row(client, auth, upload_video, stale_lookup) -> None:
    video = upload_video(ALICE, "Lecture")
    url = f"/api/v1/users/history/{video['id']}"
    client.post(url, headers=auth(BOB))

    stale_lookup("get_history_entry")
    raced = client.post(url, headers=auth(BOB))
    assert raced.status_code == 200
    assert raced.json()["message"] == "Watch history updated"
    assert len(client.get("/api/v1/users/history", headers=auth(BOB)).json()["data"]) == 1


def test_watch_later_lost_to_concurrent_insert_is_conflict(client, auth, upload_video, stale_lookup) -> None:
    video = upload_video(ALICE, "Later")
    url = f"/api/v1/users/later/{video['id']}"
    client.post(url, headers=auth(BOB))

    stale_lookup("get_watch_later_entry")
    raced = client.post(url, headers=auth(BOB))
    assert raced.status_code == 409
    assert raced.json()["message"] == "Video is already in your Watch Later list"
