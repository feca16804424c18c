"""Direct messages between users."""

from __future__ import annotations


def _send(client, sender, recipient, content: str) -> dict:
    response = client.post(
        "/api/dms",
        json={"to_user_id": recipient.id, "content": content},
        headers=sender.headers,
    )
    assert response.status_code == 201, response.text
    return response.json()


def test_conversation_listing_and_unread(client, make_user):
    alice = make_user("Alice")
    bob = make_user("Bob")
    carol = make_user("Carol")

    _send(client, alice, bob, "hi bob")
    _send(client, alice, bob, "are you there?")
    latest = _send(client, carol, bob, "lunch?")

    conversations = client.get("/api/dms", headers=bob.headers).json()
    assert [item["user"]["id"] for item in conversations] == [carol.id, alice.id]
    assert [item["unread_count"] for item in conversations] == [1, 2]
    assert conversations[0]["last_message"]["id"] == latest["id"]

    marked = client.post(f"/api/dms/{alice.id}/read", headers=bob.headers)
    assert marked.json() == {"marked_as_read": 2}
    again = client.post(f"/api/dms/{alice.id}/read", headers=bob.headers)
    assert again.json() == {"marked_as_read": 0}


def test_reading_history_marks_incoming_as_read(client, make_user):
    alice = make_user("Alice")
    bob = make_user("Bob")
    for index in range(3):
        _send(client, alice, bob, f"ping {index}")
    _send(client, bob, alice, "pong")

    history = client.get(f"/api/dms/{alice.id}", params={"limit": 2}, headers=bob.headers).json()
    assert [message["content"] for message in history["messages"]] == ["pong", "ping 2"]
    assert history["has_more"] is True
    assert history["messages"][1]["read_at"] is not None

    conversations = client.get("/api/dms", headers=bob.headers).json()
    assert conversations[0]["unread_count"] == 0


def test_cannot_message_self_or_unknown_user(client, make_user):
    alice = make_user("Alice")

    to_self = client.post(
        "/api/dms", json={"to_user_id": alice.id, "content": "me"}, headers=alice.headers
    )
    assert to_self.status_code == 400

    unknown = client.post(
        "/api/dms", json={"to_user_id": 9999, "content": "hello?"}, headers=alice.headers
    )
    assert unknown.status_code == 404


def test_only_sender_can_delete(client, make_user):
    alice = make_user("Alice")
    bob = make_user("Bob")
    message = _send(client, alice, bob, "oops")

    assert client.delete(f"/api/dms/messages/{message['id']}", headers=bob.headers).status_code == 403
    assert client.delete(f"/api/dms/messages/{message['id']}", headers=alice.headers).status_code == 204
    assert client.delete(f"/api/dms/messages/{message['id']}", headers=alice.headers).status_code == 404

    history = client.get(f"/api/dms/{alice.id}", headers=bob.headers).json()
    assert history["messages"] == []
    assert client.get("/api/dms", headers=bob.headers).json() == []
