"""Threads, edits, soft deletes and pins."""

from __future__ import annotations

import pytest

from huddle.core.errors import Forbidden, MessageNotFound, NestedThread, NotMember, ParentNotFound
from huddle.models import Channel, ChannelMember, File, Message, Reaction, User
from huddle.services import threads


@pytest.fixture()
def users(db_session):
    alice = User(email="alice@example.com", name="Alice", hashed_password="hashed")
    bob = User(email="bob@example.com", name="Bob", hashed_password="hashed")
    db_session.add_all([alice, bob])
    db_session.commit()
    return alice, bob


@pytest.fixture()
def channel(db_session, users):
    alice, _ = users
    channel = Channel(name="eng", created_by_id=alice.id)
    channel.members.append(ChannelMember(user_id=alice.id))
    db_session.add(channel)
    db_session.commit()
    return channel


@pytest.fixture()
def parent(db_session, channel, users):
    alice, _ = users
    message = Message(channel_id=channel.id, author_id=alice.id, content="parent")
    db_session.add(message)
    db_session.commit()
    return message


def test_reply_inherits_parent_channel(db_session, users, parent):
    alice, _ = users

    created = threads.reply(db_session, parent.id, alice.id, "first reply  ")

    assert created.thread_id == parent.id
    assert created.channel_id == parent.channel_id
    assert created.content == "first reply"
    assert threads.reply_count(db_session, parent.id) == 1


def test_reply_to_reply_is_nested_thread_even_for_non_members(db_session, users, parent):
    alice, bob = users
    child = threads.reply(db_session, parent.id, alice.id, "child")

    with pytest.raises(NestedThread):
        threads.reply(db_session, child.id, alice.id, "grandchild")
    with pytest.raises(NestedThread):
        threads.reply(db_session, child.id, bob.id, "grandchild")


def test_reply_requires_visible_parent_and_membership(db_session, users, parent):
    alice, bob = users

    with pytest.raises(NotMember):
        threads.reply(db_session, parent.id, bob.id, "let me in")
    with pytest.raises(ParentNotFound):
        threads.reply(db_session, 9999, alice.id, "nobody home")

    threads.soft_delete_message(db_session, parent.id, alice.id)
    with pytest.raises(ParentNotFound):
        threads.reply(db_session, parent.id, alice.id, "too late")


def test_reply_statistics_ignore_deleted_replies(db_session, users, parent):
    alice, _ = users
    first = threads.reply(db_session, parent.id, alice.id, "one")
    threads.reply(db_session, parent.id, alice.id, "two")

    threads.soft_delete_message(db_session, first.id, alice.id)

    stats = threads.reply_statistics(db_session, [parent.id])
    count, last_reply_at = stats[parent.id]
    assert count == 1
    assert last_reply_at is not None
    page = threads.thread_replies(db_session, parent.id, limit=10)
    assert [message.content for message in page.items] == ["two"]


def test_soft_delete_keeps_reactions_and_files(db_session, users, parent):
    alice, _ = users
    reaction = Reaction(message_id=parent.id, user_id=alice.id, emoji="fire")
    attachment = File(
        uploader_id=alice.id,
        message_id=parent.id,
        file_name="notes.txt",
        content_type="text/plain",
        file_size=4,
        storage_path="user_1/notes.txt",
    )
    db_session.add_all([reaction, attachment])
    db_session.commit()

    threads.soft_delete_message(db_session, parent.id, alice.id)

    assert db_session.get(Message, parent.id).deleted_at is not None
    assert db_session.get(Reaction, reaction.id) is not None
    assert db_session.get(File, attachment.id).message_id == parent.id


def test_only_author_can_edit_or_delete(db_session, users, channel, parent):
    _, bob = users
    db_session.add(ChannelMember(channel_id=channel.id, user_id=bob.id))
    db_session.commit()

    with pytest.raises(Forbidden):
        threads.edit_message(db_session, parent.id, bob.id, "hijacked")
    with pytest.raises(Forbidden):
        threads.soft_delete_message(db_session, parent.id, bob.id)


def test_deleted_message_rejects_further_mutations(db_session, users, parent):
    alice, _ = users
    threads.soft_delete_message(db_session, parent.id, alice.id)

    with pytest.raises(MessageNotFound):
        threads.soft_delete_message(db_session, parent.id, alice.id)
    with pytest.raises(MessageNotFound):
        threads.edit_message(db_session, parent.id, alice.id, "revived")
    with pytest.raises(MessageNotFound):
        threads.set_pinned(db_session, parent.id, alice.id, True)


def test_edit_sets_edited_at(db_session, users, parent):
    alice, _ = users

    edited = threads.edit_message(db_session, parent.id, alice.id, "updated")

    assert edited.content == "updated"
    assert edited.edited_at is not None


def test_pin_is_idempotent(db_session, users, parent):
    alice, _ = users

    pinned = threads.set_pinned(db_session, parent.id, alice.id, True)
    first_pinned_at = pinned.pinned_at
    again = threads.set_pinned(db_session, parent.id, alice.id, True)

    assert again.pinned_at == first_pinned_at
    assert again.pinned_by_id == alice.id

    unpinned = threads.set_pinned(db_session, parent.id, alice.id, False)
    assert unpinned.pinned_at is None
    assert unpinned.pinned_by_id is None


def test_thread_endpoint_lists_replies_oldest_first(client, make_user, make_channel, post_message):
    alice = make_user("Alice")
    bob = make_user("Bob")
    channel = make_channel(alice, "threads", bob)
    parent = post_message(alice, channel["id"], "question")
    for index in range(3):
        post_message(bob, channel["id"], f"answer {index}", thread_id=parent["id"])

    first_page = client.get(
        f"/api/messages/{parent['id']}/thread", params={"limit": 2}, headers=alice.headers
    )
    assert first_page.status_code == 200, first_page.text
    body = first_page.json()
    assert body["parent"]["reply_count"] == 3
    assert [reply["content"] for reply in body["replies"]] == ["answer 0", "answer 1"]
    assert body["has_more"] is True

    second_page = client.get(
        f"/api/messages/{parent['id']}/thread",
        params={"limit": 2, "cursor": body["next_cursor"]},
        headers=alice.headers,
    )
    assert [reply["content"] for reply in second_page.json()["replies"]] == ["answer 2"]
    assert second_page.json()["has_more"] is False


def test_nested_reply_over_http_returns_nested_thread(client, make_user, make_channel, post_message):
    alice = make_user("Alice")
    outsider = make_user("Outsider")
    channel = make_channel(alice, "nesting")
    parent = post_message(alice, channel["id"], "top")
    child = post_message(alice, channel["id"], "child", thread_id=parent["id"])

    response = client.post(
        f"/api/messages/{child['id']}/reply", json={"content": "nope"}, headers=outsider.headers
    )
    assert response.status_code == 400
    assert response.json()["code"] == "nested_thread"


def test_thread_id_from_other_channel_is_rejected(client, make_user, make_channel, post_message):
    alice = make_user("Alice")
    first = make_channel(alice, "alpha")
    second = make_channel(alice, "beta")
    parent = post_message(alice, first["id"], "in alpha")

    response = client.post(
        f"/api/channels/{second['id']}/messages",
        json={"content": "wrong room", "thread_id": parent["id"]},
        headers=alice.headers,
    )
    assert response.status_code == 404


def test_deleted_messages_leave_listings(client, make_user, make_channel, post_message):
    alice = make_user("Alice")
    channel = make_channel(alice, "cleanup")
    kept = post_message(alice, channel["id"], "keep me")
    gone = post_message(alice, channel["id"], "delete me")

    assert client.delete(f"/api/messages/{gone['id']}", headers=alice.headers).status_code == 204

    listing = client.get(f"/api/channels/{channel['id']}/messages", headers=alice.headers)
    assert [message["id"] for message in listing.json()["messages"]] == [kept["id"]]
    assert client.get(f"/api/messages/{gone['id']}", headers=alice.headers).status_code == 404
    assert client.delete(f"/api/messages/{gone['id']}", headers=alice.headers).status_code == 404


def test_pins_listing(client, make_user, make_channel, post_message):
    alice = make_user("Alice")
    channel = make_channel(alice, "pins")
    message = post_message(alice, channel["id"], "remember this")

    pinned = client.post(f"/api/messages/{message['id']}/pin", headers=alice.headers)
    assert pinned.status_code == 200
    assert pinned.json()["pinned_by"]["id"] == alice.id

    pins = client.get(f"/api/channels/{channel['id']}/pins", headers=alice.headers)
    assert [item["id"] for item in pins.json()] == [message["id"]]

    client.delete(f"/api/messages/{message['id']}/pin", headers=alice.headers)
    assert client.get(f"/api/channels/{channel['id']}/pins", headers=alice.headers).json() == []
