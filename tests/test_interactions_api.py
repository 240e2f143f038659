from __future__ import annotations

import uuid

ALICE = "user_alice"
BOB = "user_bob"


def _react(client, auth, subject, video_id, action, method="POST"):
    endpoint = "likes" if action in ("like", "unlike") else "dislikes"
    return client.request(
        method,
        f"/api/v1/videos/{video_id}/{endpoint}",
        json={"action": action},
        headers=auth(subject),
    )


def test_like_then_dislike_is_mutually_exclusive(client, auth, upload_video) -> None:
    video = upload_video(ALICE, "Clip")
    bob_id = client.get("/api/v1/users/me", headers=auth(BOB)).json()["data"]["id"]

    liked = _react(client, auth, BOB, video["id"], "like")
    assert liked.status_code == 200
    assert liked.json()["data"] == {"isLiked": True, "isDisliked": False}

    state = client.get(f"/api/v1/videos/{video['id']}", headers=auth(BOB)).json()["data"]
    assert state["likes"] == [bob_id]
    assert client.get("/api/v1/videos/me/liked-videos", headers=auth(BOB)).json()["data"] == [video["id"]]

    disliked = _react(client, auth, BOB, video["id"], "dislike")
    assert disliked.json()["data"] == {"isLiked": False, "isDisliked": True}

    state = client.get(f"/api/v1/videos/{video['id']}", headers=auth(BOB)).json()["data"]
    assert state["likes"] == []
    assert state["dislikes"] == [bob_id]
    me = client.get("/api/v1/users/me", headers=auth(BOB)).json()["data"]
    assert me["likedVideos"] == []
    assert me["dislikedVideos"] == [video["id"]]


def test_redundant_reaction_is_informational(client, auth, upload_video) -> None:
    video = upload_video(ALICE, "Clip")
    _react(client, auth, BOB, video["id"], "like")

    again = _react(client, auth, BOB, video["id"], "like")
    assert again.status_code == 400
    assert again.json() == {
        "statusCode": 400,
        "data": None,
        "message": "Video already liked",
        "success": False,
    }

    not_disliked = _react(client, auth, BOB, video["id"], "undislike", method="DELETE")
    assert not_disliked.status_code == 400
    assert not_disliked.json()["message"] == "Video not disliked"


def test_unlike_clears_the_reaction(client, auth, upload_video) -> None:
    video = upload_video(ALICE, "Clip")
    _react(client, auth, BOB, video["id"], "like")

    response = _react(client, auth, BOB, video["id"], "unlike", method="DELETE")
    assert response.status_code == 200
    assert response.json()["message"] == "Video unliked successfully"
    assert client.get(f"/api/v1/videos/{video['id']}").json()["data"]["likes"] == []


def test_reaction_validates_action_and_video(client, auth, upload_video) -> None:
    video = upload_video(ALICE, "Clip")

    wrong = client.post(f"/api/v1/videos/{video['id']}/likes", json={"action": "dislike"}, headers=auth(BOB))
    assert wrong.status_code == 400
    assert wrong.json()["message"] == 'Invalid action. Must be "like" or "unlike"'

    missing = _react(client, auth, BOB, str(uuid.uuid4()), "like")
    assert missing.status_code == 404


def test_subscribe_then_unsubscribe_restores_both_sides(client, auth) -> None:
    alice = client.get("/api/v1/users/me", headers=auth(ALICE)).json()["data"]
    bob = client.get("/api/v1/users/me", headers=auth(BOB)).json()["data"]

    subscribed = client.post(f"/api/v1/users/{alice['id']}/subscribe", headers=auth(BOB))
    assert subscribed.status_code == 200
    assert subscribed.json()["data"] == {"isSubscribed": True}

    bob_now = client.get("/api/v1/users/me", headers=auth(BOB)).json()["data"]
    alice_now = client.get("/api/v1/users/me", headers=auth(ALICE)).json()["data"]
    assert bob_now["subscribedChannels"] == [alice["id"]]
    assert alice_now["subscribedByChannels"] == [bob["id"]]

    subscribers = client.get(f"/api/v1/users/{alice['id']}/subscribers", headers=auth(BOB)).json()["data"]
    assert [item["username"] for item in subscribers] == ["bob"]
    channels = client.get("/api/v1/users/me/subscriptions", headers=auth(BOB)).json()["data"]
    assert [item["id"] for item in channels] == [alice["id"]]

    unsubscribed = client.post(f"/api/v1/users/{alice['id']}/unsubscribe", headers=auth(BOB))
    assert unsubscribed.json()["data"] == {"isSubscribed": False}

    bob_after = client.get("/api/v1/users/me", headers=auth(BOB)).json()["data"]
    alice_after = client.get("/api/v1/users/me", headers=auth(ALICE)).json()["data"]
    assert bob_after["subscribedChannels"] == bob["subscribedChannels"] == []
    assert alice_after["subscribedByChannels"] == alice["subscribedByChannels"] == []


def test_subscribe_route_toggles(client, auth) -> None:
    alice = client.get("/api/v1/users/me", headers=auth(ALICE)).json()["data"]
    url = f"/api/v1/users/{alice['id']}/subscribe"
    assert client.post(url, headers=auth(BOB)).json()["data"]["isSubscribed"] is True
    assert client.post(url, headers=auth(BOB)).json()["data"]["isSubscribed"] is False


def test_cannot_subscribe_to_self_or_missing_channel(client, auth) -> None:
    alice = client.get("/api/v1/users/me", headers=auth(ALICE)).json()["data"]

    own = client.post(f"/api/v1/users/{alice['id']}/subscribe", headers=auth(ALICE))
    assert own.status_code == 400
    assert own.json()["message"] == "Cannot subscribe to your own channel"

    missing = client.post(f"/api/v1/users/{uuid.uuid4()}/subscribe", headers=auth(ALICE))
    assert missing.status_code == 404
    assert missing.json()["message"] == "Channel user not found"


def test_comment_lifecycle(client, auth, upload_video) -> None:
    video = upload_video(ALICE, "Talk")
    url = f"/api/v1/videos/{video['id']}/comments"

    created = client.post(url, json={"content": "  First!  "}, headers=auth(BOB))
    assert created.status_code == 201
    comment = created.json()["data"]
    assert comment["content"] == "First!"
    assert comment["owner"]["username"] == "bob"

    client.post(url, json={"content": "Second"}, headers=auth(ALICE))
    listed = client.get(url).json()["data"]
    assert [item["content"] for item in listed] == ["First!", "Second"]
    assert len(client.get(f"/api/v1/videos/{video['id']}").json()["data"]["comments"]) == 2

    edit_url = f"/api/v1/videos/comments/{comment['id']}"
    forbidden = client.patch(edit_url, json={"content": "Hacked"}, headers=auth(ALICE))
    assert forbidden.status_code == 403
    assert forbidden.json()["message"] == "You do not have permission to update this comment"

    edited = client.patch(edit_url, json={"content": "Edited"}, headers=auth(BOB))
    assert edited.json()["data"]["content"] == "Edited"

    assert client.delete(edit_url, headers=auth(ALICE)).status_code == 403
    deleted = client.delete(edit_url, headers=auth(BOB))
    assert deleted.status_code == 200
    assert deleted.json()["data"] == {"deletedCommentId": comment["id"]}
    assert [item["content"] for item in client.get(url).json()["data"]] == ["Second"]

    gone = client.delete(edit_url, headers=auth(BOB))
    assert gone.status_code == 404
    assert gone.json()["message"] == "Comment not found"


def test_comment_requires_content(client, auth, upload_video) -> None:
    video = upload_video(ALICE, "Talk")
    url = f"/api/v1/videos/{video['id']}/comments"

    assert client.post(url, json={"content": "   "}, headers=auth(BOB)).status_code == 400
    assert client.post(url, json={}, headers=auth(BOB)).status_code == 400
    missing_video = client.post(f"/api/v1/videos/{uuid.uuid4()}/comments", json={"content": "hi"}, headers=auth(BOB))
    assert missing_video.status_code == 404


def test_profile_shows_latest_five_videos(client, auth, upload_video) -> None:
    for number in range(7):
        upload_video(ALICE, f"Episode {number}")
    alice_id = client.get("/api/v1/users/me", headers=auth(ALICE)).json()["data"]["id"]

    profile = client.get(f"/api/v1/users/profile/{alice_id}", headers=auth(BOB)).json()["data"]
    assert profile["user"]["username"] == "alice"
    assert "email" not in profile["user"]
    assert [video["title"] for video in profile["latestVideos"]] == [f"Episode {n}" for n in range(6, 1, -1)]


def test_first_request_creates_local_user_from_provider(client, auth, identity) -> None:
    me = client.get("/api/v1/users/me", headers=auth("user_dana")).json()["data"]
    assert me["clerkId"] == "user_dana"
    assert me["username"] == "dana"
    assert me["email"] == "dana@example.com"
    assert me["fullname"] == "Dana Tester"

    client.get("/api/v1/users/me", headers=auth("user_dana"))
    assert identity.lookups == ["user_dana"]


def test_provider_failure_is_server_error(client, auth, identity) -> None:
    identity.unreachable.add("user_ghost")
    response = client.get("/api/v1/users/me", headers=auth("user_ghost"))
    assert response.status_code == 500
    assert "authentication provider" in response.json()["message"]


def test_reaction_lost_to_concurrent_insert_is_redundant(client, auth, upload_video, stale_lookup) -> None:
    video = upload_video(ALICE, "Clip")
    _react(client, auth, BOB, video["id"], "like")

    stale_lookup("get_reaction")
    raced = _react(client, auth, BOB, video["id"], "like")
    assert raced.status_code == 400
    assert raced.json()["message"] == "Video already liked"
    assert len(client.get(f"/api/v1/videos/{video['id']}").json()["data"]["likes"]) == 1


def test_subscription_lost_to_concurrent_insert_stays_subscribed(client, auth, stale_lookup) -> None:
    alice = client.get("/api/v1/users/me", headers=auth(ALICE)).json()["data"]
    url = f"/api/v1/users/{alice['id']}/subscribe"
    client.post(url, headers=auth(BOB))

    stale_lookup("get_subscription")
    raced = client.post(url, headers=auth(BOB))
    assert raced.status_code == 200
    assert raced.json()["data"] == {"isSubscribed": True}
    assert client.get("/api/v1/users/me", headers=auth(BOB)).json()["data"]["subscribedChannels"] == [alice["id"]]
