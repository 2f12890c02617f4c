from datetime import datetime, timezone

import pytest

pytest.importorskip("fastapi")
from fastapi.testclient import TestClient

import ghosty.main as m
from ghosty import config

ALICE = "aaaaaaaa-0000-0000-0000-000000000001"
BOB = "bbbbbbbb-0000-0000-0000-000000000002"
MALLORY = "cccccccc-0000-0000-0000-000000000003"
CONVERSATION = "dddddddd-0000-0000-0000-000000000004"
NOBODY = "eeeeeeee-0000-0000-0000-000000000005"


def _client(monkeypatch):
    class _DummyResult:
        rowcount = 0

        def mappings(self):
            return self

        def first(self):
            return None

        def all(self):
            return []

        def scalar(self):
            return 0

    class _DummySession:
        def __enter__(self):
            return self

        def __exit__(self, exc_type, exc, tb):
            return False

        def execute(self, *args, **kwargs):
            return _DummyResult()

        def commit(self):
            return None

    monkeypatch.setattr(m, "check_settings", lambda: None)
    monkeypatch.setattr(m, "wait_for_db", lambda *args, **kwargs: None)
    monkeypatch.setattr(m, "run_migrations", lambda *args, **kwargs: None)
    monkeypatch.setattr(m.repo, "SessionLocal", lambda: _DummySession())
    monkeypatch.setattr(config, "JWT_SECRET", "test-secret-key-for-testing-only")
    return TestClient(m.app)


def _install_store(monkeypatch):
    store = {
        "users": {uid: {"id": uid} for uid in (ALICE, BOB, MALLORY)},
        "messages": {},
        "blocks": set(),
        "seq": 0,
    }

    def create_chat_message(conversation_id, sender_id, receiver_id, message):
        store["seq"] += 1
        row = {
            "id": f"00000000-0000-0000-0000-{store['seq']:012d}",
            "conversation_id": conversation_id,
            "sender_id": sender_id,
            "receiver_id": receiver_id,
            "message": message,
            "is_read": False,
            "read_at": None,
            "created_at": datetime(2026, 3, 1, 12, store["seq"], tzinfo=timezone.utc),
        }
        store["messages"][row["id"]] = row
        return dict(row)

    def list_conversation_messages(conversation_id, limit):
        rows = [dict(r) for r in store["messages"].values() if r["conversation_id"] == conversation_id]
        return sorted(rows, key=lambda r: r["created_at"])[:limit]

    def mark_conversation_read(conversation_id, user_id):
        updated = 0
        for row in store["messages"].values():
            if row["conversation_id"] == conversation_id and row["receiver_id"] == user_id and not row["is_read"]:
                row["is_read"] = True
                row["read_at"] = datetime.now(timezone.utc)
                updated += 1
        return updated

    def block_exists_between(a, b):
        return (a, b) in store["blocks"] or (b, a) in store["blocks"]

    monkeypatch.setattr(m.repo, "get_user_by_id", lambda uid: store["users"].get(uid))
    monkeypatch.setattr(m.repo, "create_chat_message", create_chat_message)
    monkeypatch.setattr(m.repo, "list_conversation_messages", list_conversation_messages)
    monkeypatch.setattr(m.repo, "get_chat_message", lambda mid: store["messages"].get(mid))
    monkeypatch.setattr(m.repo, "delete_chat_message", lambda mid: store["messages"].pop(mid, None))
    monkeypatch.setattr(m.repo, "mark_conversation_read", mark_conversation_read)
    monkeypatch.setattr(m.repo, "block_exists_between", block_exists_between)
    return store


def _send(client, sender=ALICE, receiver=BOB, message="hello there"):
    return client.post(
        "/api/chats",
        json={"conversationId": CONVERSATION, "senderId": sender, "receiverId": receiver, "message": message},
    )


def test_send_message_validation(monkeypatch):
    client = _client(monkeypatch)
    _install_store(monkeypatch)

    res = client.post("/api/chats", json={"senderId": ALICE, "receiverId": BOB, "message": "hi"})
    assert res.status_code == 400
    assert res.json()["detail"] == "Missing required fields"

    assert _send(client, message="   ").json()["detail"] == "Message cannot be empty"
    assert _send(client, message="x" * 5001).json()["detail"] == "Message too long"
    assert _send(client, receiver=NOBODY).status_code == 404
    res = _send(client, receiver="nobody")
    assert res.status_code == 400
    assert res.json()["detail"] == "Invalid receiverId"


def test_send_and_list_messages(monkeypatch):
    client = _client(monkeypatch)
    _install_store(monkeypatch)

    res = _send(client, message="  hi bob  ")
    assert res.status_code == 201
    msg = res.json()["message"]
    assert msg["message"] == "hi bob"
    assert msg["isRead"] is False
    _send(client, sender=BOB, receiver=ALICE, message="hey alice")

    res = client.get(f"/api/chats?conversationId={CONVERSATION}&userId={ALICE}")
    assert res.status_code == 200
    body = res.json()
    assert body["count"] == 2
    assert [x["message"] for x in body["messages"]] == ["hi bob", "hey alice"]

    res = client.get(f"/api/chats?conversationId={CONVERSATION}&userId={MALLORY}")
    assert res.status_code == 403

    assert client.get(f"/api/chats?userId={ALICE}").status_code == 400
    assert client.get(f"/api/chats?conversationId={CONVERSATION}&userId={ALICE}&limit=0").status_code == 400


def test_blocked_users_cannot_message(monkeypatch):
    client = _client(monkeypatch)
    store = _install_store(monkeypatch)
    store["blocks"].add((BOB, ALICE))

    res = _send(client)
    assert res.status_code == 403
    assert res.json()["detail"] == "Cannot send message. One user has blocked the other."
    assert store["messages"] == {}


def test_only_sender_can_delete_message(monkeypatch):
    client = _client(monkeypatch)
    store = _install_store(monkeypatch)
    message_id = _send(client).json()["message"]["id"]

    res = client.request("DELETE", f"/api/chats/{message_id}", json={"userId": BOB})
    assert res.status_code == 403
    assert res.json()["detail"] == "Unauthorized: You can only delete your own messages"
    assert message_id in store["messages"]

    res = client.request("DELETE", f"/api/chats/{message_id}", json={"userId": ALICE})
    assert res.status_code == 200
    assert message_id not in store["messages"]

    res = client.request("DELETE", f"/api/chats/{message_id}", json={"userId": ALICE})
    assert res.status_code == 404


def test_mark_read_only_touches_receiver_messages(monkeypatch):
    client = _client(monkeypatch)
    store = _install_store(monkeypatch)
    _send(client)
    _send(client, message="second")
    _send(client, sender=BOB, receiver=ALICE, message="reply")

    res = client.post("/api/chats/read", json={"conversationId": CONVERSATION, "userId": BOB})
    assert res.status_code == 200
    assert res.json()["updated"] == 2
    unread = [r["message"] for r in store["messages"].values() if not r["is_read"]]
    assert unread == ["reply"]

    res = client.post("/api/chats/read", json={"conversationId": CONVERSATION, "userId": BOB})
    assert res.json()["updated"] == 0


def test_malformed_ids_rejected_before_queries(monkeypatch):
    client = _client(monkeypatch)
    store = _install_store(monkeypatch)

    res = client.request("DELETE", "/api/chats/abc", json={"userId": ALICE})
    assert res.status_code == 400
    assert res.json()["detail"] == "Invalid message id"

    res = client.get(f"/api/chats?conversationId=abc&userId={ALICE}")
    assert res.status_code == 400
    assert res.json()["detail"] == "Invalid conversationId"

    res = client.post("/api/chats/read", json={"conversationId": CONVERSATION, "userId": "alice"})
    assert res.status_code == 400
    assert store["messages"] == {}
