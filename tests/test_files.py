"""File uploads, attachment rules and access checks."""

from __future__ import annotations

from huddle.config import get_settings


def _upload(client, account, content: bytes = b"hello", *, name="notes.txt", content_type="text/plain", **data):
    return client.post(
        "/api/files",
        files={"file": (name, content, content_type)},
        data={key: str(value) for key, value in data.items()},
        headers=account.headers,
    )


def test_upload_and_download(client, make_user, media_root):
    alice = make_user("Alice")

    response = _upload(client, alice, b"release notes")
    assert response.status_code == 201, response.text
    record = response.json()
    assert record["file_name"] == "notes.txt"
    assert record["file_size"] == len(b"release notes")
    assert record["message_id"] is None
    assert record["download_url"] == f"/api/files/{record['id']}/download"
    assert any(media_root.rglob("*.txt"))

    download = client.get(record["download_url"], headers=alice.headers)
    assert download.status_code == 200
    assert download.content == b"release notes"

    listing = client.get("/api/files", headers=alice.headers).json()
    assert [item["id"] for item in listing["files"]] == [record["id"]]


def test_disallowed_content_type_is_rejected(client, make_user):
    alice = make_user("Alice")

    response = _upload(client, alice, b"MZ", name="tool.exe", content_type="application/x-msdownload")
    assert response.status_code == 400
    assert response.json()["code"] == "invalid_input"


def test_oversized_upload_is_rejected(client, make_user, monkeypatch, media_root):
    monkeypatch.setattr(get_settings(), "max_upload_size", 8)
    alice = make_user("Alice")

    response = _upload(client, alice, b"123456789")
    assert response.status_code == 413
    assert not any(path.is_file() for path in media_root.rglob("*"))


def test_file_attaches_to_one_message_only(client, make_user, make_channel, post_message):
    alice = make_user("Alice")
    channel = make_channel(alice, "attachments")
    record = _upload(client, alice).json()

    message = post_message(alice, channel["id"], "see attached", file_ids=[record["id"]])
    assert [item["id"] for item in message["files"]] == [record["id"]]

    second = client.post(
        f"/api/channels/{channel['id']}/messages",
        json={"content": "again", "file_ids": [record["id"]]},
        headers=alice.headers,
    )
    assert second.status_code == 400
    assert second.json()["detail"] == "Invalid file IDs or files already attached"


def test_cannot_attach_someone_elses_file(client, make_user, make_channel):
    alice = make_user("Alice")
    bob = make_user("Bob")
    channel = make_channel(alice, "sharing", bob)
    record = _upload(client, alice).json()

    response = client.post(
        f"/api/channels/{channel['id']}/messages",
        json={"content": "stolen", "file_ids": [record["id"]]},
        headers=bob.headers,
    )
    assert response.status_code == 400

    history = client.get(f"/api/channels/{channel['id']}/messages", headers=bob.headers).json()
    assert history["messages"] == []


def test_file_visibility_follows_channel_membership(client, make_user, make_channel, post_message):
    alice = make_user("Alice")
    bob = make_user("Bob")
    outsider = make_user("Outsider")
    channel = make_channel(alice, "visibility", bob)
    record = _upload(client, alice).json()
    message = post_message(alice, channel["id"], "file", file_ids=[record["id"]])

    assert client.get(f"/api/files/{record['id']}", headers=bob.headers).status_code == 200
    assert client.get(f"/api/files/{record['id']}", headers=outsider.headers).status_code == 403

    client.delete(f"/api/messages/{message['id']}", headers=alice.headers)
    still_there = client.get(f"/api/files/{record['id']}", headers=bob.headers)
    assert still_there.status_code == 200
    assert still_there.json()["message_id"] == message["id"]


def test_upload_directly_onto_message(client, make_user, make_channel, post_message):
    alice = make_user("Alice")
    outsider = make_user("Outsider")
    channel = make_channel(alice, "direct-upload")
    message = post_message(alice, channel["id"], "target")

    attached = _upload(client, alice, message_id=message["id"])
    assert attached.status_code == 201
    assert attached.json()["message_id"] == message["id"]

    rejected = _upload(client, outsider, message_id=message["id"])
    assert rejected.status_code == 403


def test_only_uploader_deletes_file(client, make_user, media_root):
    alice = make_user("Alice")
    bob = make_user("Bob")
    record = _upload(client, alice).json()

    assert client.delete(f"/api/files/{record['id']}", headers=bob.headers).status_code == 403
    assert client.delete(f"/api/files/{record['id']}", headers=alice.headers).status_code == 204
    assert client.get(f"/api/files/{record['id']}", headers=alice.headers).status_code == 404
    assert not any(path.is_file() for path in media_root.rglob("*"))
