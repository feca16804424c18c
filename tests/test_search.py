"""Message search."""

from __future__ import annotations

import pytest

from huddle.core.errors import InvalidInput
from huddle.search import MessageSearchFilters, MessageSearchService


def test_search_is_scoped_to_member_channels(client, make_user, make_channel, post_message):
    alice = make_user("Alice")
    bob = make_user("Bob")
    shared = make_channel(alice, "shared", bob)
    private = make_channel(alice, "alice-only")
    visible = post_message(alice, shared["id"], "Deploy window opens at noon")
    post_message(alice, private["id"], "deploy secrets")

    response = client.get("/api/search", params={"q": "deploy"}, headers=bob.headers)
    assert response.status_code == 200, response.text
    assert [message["id"] for message in response.json()["messages"]] == [visible["id"]]


def test_search_excludes_deleted_messages(client, make_user, make_channel, post_message):
    alice = make_user("Alice")
    channel = make_channel(alice, "search")
    kept = post_message(alice, channel["id"], "incident report")
    removed = post_message(alice, channel["id"], "incident draft")
    client.delete(f"/api/messages/{removed['id']}", headers=alice.headers)

    body = client.get("/api/search", params={"q": "incident"}, headers=alice.headers).json()
    assert [message["id"] for message in body["messages"]] == [kept["id"]]


def test_search_treats_wildcards_literally(client, make_user, make_channel, post_message):
    alice = make_user("Alice")
    channel = make_channel(alice, "literal")
    percent = post_message(alice, channel["id"], "100% done")
    post_message(alice, channel["id"], "100 done")

    body = client.get("/api/search", params={"q": "0%"}, headers=alice.headers).json()
    assert [message["id"] for message in body["messages"]] == [percent["id"]]


def test_search_rejects_short_queries(client, make_user):
    alice = make_user("Alice")

    response = client.get("/api/search", params={"q": "a"}, headers=alice.headers)
    assert response.status_code == 400


def test_search_pagination_and_filters(client, make_user, make_channel, post_message):
    alice = make_user("Alice")
    bob = make_user("Bob")
    channel = make_channel(alice, "paging", bob)
    ids = [post_message(alice, channel["id"], f"status {index}")["id"] for index in range(3)]
    from_bob = post_message(bob, channel["id"], "status from bob")

    first = client.get(
        "/api/search", params={"q": "status", "limit": 2}, headers=alice.headers
    ).json()
    assert [message["id"] for message in first["messages"]] == [from_bob["id"], ids[2]]
    assert first["has_more"] is True

    rest = client.get(
        "/api/search",
        params={"q": "status", "limit": 2, "cursor": first["next_cursor"]},
        headers=alice.headers,
    ).json()
    assert [message["id"] for message in rest["messages"]] == [ids[1], ids[0]]
    assert rest["has_more"] is False

    by_bob = client.get(
        "/api/search", params={"q": "status", "author_id": bob.id}, headers=alice.headers
    ).json()
    assert [message["id"] for message in by_bob["messages"]] == [from_bob["id"]]


def test_service_filters_by_attachment(db_session):
    service = MessageSearchService(db_session)

    with pytest.raises(InvalidInput):
        service.search(1, " x ", limit=10)

    page = service.search(1, "anything", limit=10, filters=MessageSearchFilters(has_files=True))
    assert page.items == []
    assert page.has_more is False
