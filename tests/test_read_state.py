"""Read pointers and unread counts."""

from __future__ import annotations

from fastapi.testclient import TestClient

from huddle.models import ChannelRead


def _unread(client: TestClient, account, channel_id: int) -> int:
    response = client.get(f"/api/channels/{channel_id}", headers=account.headers)
    assert response.status_code == 200, response.text
    return response.json()["unread_count"]


def _listed_unread(client: TestClient, account) -> dict[int, int]:
    response = client.get("/api/channels", headers=account.headers)
    assert response.status_code == 200, response.text
    return {channel["id"]: channel["unread_count"] for channel in response.json()}


def test_thread_scenario_counts_only_top_level_messages(client, make_user, make_channel, post_message):
    alice = make_user("Alice")
    bob = make_user("Bob")
    channel = make_channel(alice, "eng")
    assert channel["member_count"] == 1

    parent = post_message(alice, channel["id"], "M1")
    first_reply = client.post(
        f"/api/messages/{parent['id']}/reply", json={"content": "R1"}, headers=alice.headers
    )
    assert first_reply.status_code == 201, first_reply.text
    second_reply = client.post(
        f"/api/messages/{parent['id']}/reply", json={"content": "R2"}, headers=alice.headers
    )
    assert second_reply.status_code == 201, second_reply.text

    joined = client.post(f"/api/channels/{channel['id']}/join", headers=bob.headers)
    assert joined.status_code == 200
    assert joined.json()["unread_count"] == 1
    assert _listed_unread(client, bob) == {channel["id"]: 1}

    marked = client.post(
        f"/api/channels/{channel['id']}/read",
        json={"message_id": parent["id"]},
        headers=bob.headers,
    )
    assert marked.status_code == 200, marked.text
    assert marked.json() == {
        "success": True,
        "channel_id": channel["id"],
        "last_read_message_id": parent["id"],
        "unread_count": 0,
    }
    assert _unread(client, bob, channel["id"]) == 0

    deleted = client.delete(f"/api/messages/{first_reply.json()['id']}", headers=alice.headers)
    assert deleted.status_code == 204

    refreshed = client.get(f"/api/messages/{parent['id']}", headers=bob.headers)
    assert refreshed.status_code == 200
    assert refreshed.json()["reply_count"] == 1


def test_replies_to_read_parent_do_not_raise_unread(client, make_user, make_channel, post_message):
    alice = make_user("Alice")
    bob = make_user("Bob")
    channel = make_channel(alice, "general", bob)
    parent = post_message(alice, channel["id"], "parent")

    client.post(
        f"/api/channels/{channel['id']}/read", json={"message_id": parent["id"]}, headers=bob.headers
    )
    for index in range(3):
        post_message(alice, channel["id"], f"reply {index}", thread_id=parent["id"])

    assert _unread(client, bob, channel["id"]) == 0


def test_channel_without_pointer_counts_everything(client, make_user, make_channel, post_message):
    alice = make_user("Alice")
    bob = make_user("Bob")
    channel = make_channel(alice, "random", bob)
    for index in range(4):
        post_message(alice, channel["id"], f"message {index}")

    assert _unread(client, bob, channel["id"]) == 4


def test_deleted_messages_are_not_unread(client, make_user, make_channel, post_message):
    alice = make_user("Alice")
    bob = make_user("Bob")
    channel = make_channel(alice, "ops", bob)
    kept = post_message(alice, channel["id"], "kept")
    removed = post_message(alice, channel["id"], "removed")

    assert _unread(client, bob, channel["id"]) == 2
    client.delete(f"/api/messages/{removed['id']}", headers=alice.headers)
    assert _unread(client, bob, channel["id"]) == 1
    assert kept["id"] < removed["id"]


def test_mark_read_rejects_message_from_other_channel(client, make_user, make_channel, post_message):
    alice = make_user("Alice")
    first = make_channel(alice, "first")
    second = make_channel(alice, "second")
    foreign = post_message(alice, second["id"], "elsewhere")

    response = client.post(
        f"/api/channels/{first['id']}/read",
        json={"message_id": foreign["id"]},
        headers=alice.headers,
    )
    assert response.status_code == 404
    assert response.json()["code"] == "not_found"


def test_mark_read_accepts_backward_moves(client, make_user, make_channel, post_message, db_session):
    alice = make_user("Alice")
    bob = make_user("Bob")
    channel = make_channel(alice, "design", bob)
    older = post_message(alice, channel["id"], "older")
    newer = post_message(alice, channel["id"], "newer")

    forward = client.post(
        f"/api/channels/{channel['id']}/read", json={"message_id": newer["id"]}, headers=bob.headers
    )
    assert forward.json()["unread_count"] == 0

    backward = client.post(
        f"/api/channels/{channel['id']}/read", json={"message_id": older["id"]}, headers=bob.headers
    )
    assert backward.status_code == 200
    assert backward.json()["last_read_message_id"] == older["id"]
    assert backward.json()["unread_count"] == 1

    rows = db_session.query(ChannelRead).filter_by(user_id=bob.id, channel_id=channel["id"]).all()
    assert len(rows) == 1


def test_mark_read_requires_membership(client, make_user, make_channel, post_message):
    alice = make_user("Alice")
    mallory = make_user("Mallory")
    channel = make_channel(alice, "secret-plans")
    message = post_message(alice, channel["id"], "hello")

    response = client.post(
        f"/api/channels/{channel['id']}/read",
        json={"message_id": message["id"]},
        headers=mallory.headers,
    )
    assert response.status_code == 403
    assert response.json()["code"] == "not_member"


def test_viewing_latest_page_advances_pointer_forward_only(
    client, make_user, make_channel, post_message
):
    alice = make_user("Alice")
    bob = make_user("Bob")
    channel = make_channel(alice, "updates", bob)
    messages = [post_message(alice, channel["id"], f"update {index}") for index in range(5)]

    listing = client.get(
        f"/api/channels/{channel['id']}/messages", params={"limit": 2}, headers=bob.headers
    )
    assert listing.status_code == 200
    assert _unread(client, bob, channel["id"]) == 0

    client.post(
        f"/api/channels/{channel['id']}/read",
        json={"message_id": messages[1]["id"]},
        headers=bob.headers,
    )
    older_page = client.get(
        f"/api/channels/{channel['id']}/messages",
        params={"limit": 2, "cursor": messages[3]["id"]},
        headers=bob.headers,
    )
    assert older_page.status_code == 200
    assert _unread(client, bob, channel["id"]) == 3
