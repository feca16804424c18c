"""Emoji reactions."""

from __future__ import annotations

import pytest

from huddle.core.errors import InvalidInput
from huddle.services.reactions import normalize_emoji, summarize


class DummyReaction:
    def __init__(self, emoji: str, user_id: int) -> None:
        self.emoji = emoji
        self.user_id = user_id


def test_duplicate_reaction_conflicts_but_other_user_succeeds(
    client, make_user, make_channel, post_message
):
    alice = make_user("Alice")
    bob = make_user("Bob")
    channel = make_channel(alice, "reactions", bob)
    message = post_message(alice, channel["id"], "ship it")
    url = f"/api/messages/{message['id']}/reactions"

    first = client.post(url, json={"emoji": "fire"}, headers=alice.headers)
    assert first.status_code == 201, first.text
    assert first.json()["emoji"] == "fire"

    duplicate = client.post(url, json={"emoji": "fire"}, headers=alice.headers)
    assert duplicate.status_code == 409
    assert duplicate.json()["code"] == "already_exists"

    second = client.post(url, json={"emoji": "fire"}, headers=bob.headers)
    assert second.status_code == 201

    summary = client.get(url, headers=bob.headers).json()
    assert summary == [
        {"emoji": "fire", "count": 2, "reacted": True, "user_ids": [alice.id, bob.id]}
    ]


def test_remove_reaction(client, make_user, make_channel, post_message):
    alice = make_user("Alice")
    channel = make_channel(alice, "cleanup-reactions")
    message = post_message(alice, channel["id"], "hello")
    url = f"/api/messages/{message['id']}/reactions"

    client.post(url, json={"emoji": "wave"}, headers=alice.headers)
    removed = client.delete(f"{url}/wave", headers=alice.headers)
    assert removed.status_code == 204
    assert client.get(url, headers=alice.headers).json() == []

    missing = client.delete(f"{url}/wave", headers=alice.headers)
    assert missing.status_code == 404


def test_reactions_require_membership(client, make_user, make_channel, post_message):
    alice = make_user("Alice")
    outsider = make_user("Outsider")
    channel = make_channel(alice, "members-only")
    message = post_message(alice, channel["id"], "hi")

    response = client.post(
        f"/api/messages/{message['id']}/reactions", json={"emoji": "fire"}, headers=outsider.headers
    )
    assert response.status_code == 403


def test_message_payload_groups_reactions(client, make_user, make_channel, post_message):
    alice = make_user("Alice")
    bob = make_user("Bob")
    channel = make_channel(alice, "grouped", bob)
    message = post_message(alice, channel["id"], "vote")
    url = f"/api/messages/{message['id']}/reactions"
    client.post(url, json={"emoji": "+1"}, headers=alice.headers)
    client.post(url, json={"emoji": "+1"}, headers=bob.headers)
    client.post(url, json={"emoji": "-1"}, headers=bob.headers)

    body = client.get(f"/api/messages/{message['id']}", headers=alice.headers).json()
    assert [(item["emoji"], item["count"], item["reacted"]) for item in body["reactions"]] == [
        ("+1", 2, True),
        ("-1", 1, False),
    ]


def test_summarize_preserves_first_reacted_order():
    reactions = [DummyReaction("b", 1), DummyReaction("a", 2), DummyReaction("b", 3)]

    summary = summarize(reactions, viewer_id=3)

    assert [entry["emoji"] for entry in summary] == ["b", "a"]
    assert summary[0]["count"] == 2
    assert summary[0]["reacted"] is True
    assert summary[1]["reacted"] is False


@pytest.mark.parametrize("emoji", ["", "   ", "x" * 33, None])
def test_normalize_emoji_rejects_bad_values(emoji):
    with pytest.raises(InvalidInput):
        normalize_emoji(emoji)
