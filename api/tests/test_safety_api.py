from datetime import datetime, timezone

import pytest

pytest.importorskip("fastapi")
from fastapi.testclient import TestClient

import ghosty.main as m
from ghosty import config

ALICE = "aaaaaaaa-0000-0000-0000-000000000001"
BOB = "bbbbbbbb-0000-0000-0000-000000000002"
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
        "users": {
            ALICE: {"id": ALICE, "username": "alice", "is_restricted": False, "report_count": 0},
            BOB: {"id": BOB, "username": "bob", "is_restricted": False, "report_count": 0},
        },
        "blocks": {},
        "reports": [],
        "swipes": {},
        "chats_cleared": [],
        "seq": 0,
    }

    def _next_id(prefix):
        store["seq"] += 1
        return f"{prefix}-{store['seq']}"

    def create_block(blocker_id, blocked_id, reason):
        if (blocker_id, blocked_id) in store["blocks"]:
            return None
        row = {
            "id": _next_id("blk"),
            "blocker_id": blocker_id,
            "blocked_id": blocked_id,
            "reason": reason,
            "created_at": datetime.now(timezone.utc),
        }
        store["blocks"][(blocker_id, blocked_id)] = row
        return dict(row)

    def delete_block(block_id):
        for key, row in list(store["blocks"].items()):
            if row["id"] == block_id:
                del store["blocks"][key]

    def list_blocks(user_id, limit, offset):
        rows = [dict(r) for (blocker, _), r in store["blocks"].items() if blocker == user_id]
        return rows[offset:offset + limit], len(rows)

    def delete_chats_between(a, b):
        store["chats_cleared"].append((a, b))
        return 3

    def find_report_since(reporter_id, reported_id, since):
        return next(
            (
                r
                for r in store["reports"]
                if r["reporter_id"] == reporter_id and r["reported_user_id"] == reported_id and r["created_at"] >= since
            ),
            None,
        )

    def create_report(reporter_id, reported_id, reason, description):
        store["users"][reported_id]["report_count"] += 1
        row = {
            "id": _next_id("rep"),
            "reporter_id": reporter_id,
            "reported_user_id": reported_id,
            "reason": reason,
            "description": description,
            "status": "pending",
            "created_at": datetime.now(timezone.utc),
        }
        store["reports"].append(row)
        return {**row, "reported_user_report_count": store["users"][reported_id]["report_count"]}

    def list_reports_for_user(user_id, report_type, status=None):
        def include(r):
            created = r["reporter_id"] == user_id
            received = r["reported_user_id"] == user_id
            wanted = {"created": created, "received": received, "all": created or received}[report_type]
            return wanted and (status is None or r["status"] == status)

        return [dict(r) for r in store["reports"] if include(r)]

    def get_swipe(user_id, target_id):
        return store["swipes"].get((user_id, target_id))

    def create_swipe(user_id, target_id, action):
        row = {"id": _next_id("sw"), "user_id": user_id, "target_user_id": target_id, "action": action}
        store["swipes"][(user_id, target_id)] = row
        return dict(row)

    def update_swipe(swipe_id, action):
        for row in store["swipes"].values():
            if row["id"] == swipe_id:
                row["action"] = action
                return dict(row)
        return None

    def list_swipes(user_id, action=None, limit=50):
        rows = [dict(r) for (uid, _), r in store["swipes"].items() if uid == user_id]
        return [r for r in rows if action is None or r["action"] == action][:limit]

    monkeypatch.setattr(m.repo, "get_user_by_id", lambda uid: store["users"].get(uid))
    monkeypatch.setattr(m.repo, "get_block", lambda a, b: store["blocks"].get((a, b)))
    monkeypatch.setattr(m.repo, "create_block", create_block)
    monkeypatch.setattr(m.repo, "delete_block", delete_block)
    monkeypatch.setattr(m.repo, "list_blocks", list_blocks)
    monkeypatch.setattr(m.repo, "delete_chats_between", delete_chats_between)
    monkeypatch.setattr(m.repo, "find_report_since", find_report_since)
    monkeypatch.setattr(m.repo, "create_report", create_report)
    monkeypatch.setattr(m.repo, "list_reports_for_user", list_reports_for_user)
    monkeypatch.setattr(m.repo, "get_swipe", get_swipe)
    monkeypatch.setattr(m.repo, "create_swipe", create_swipe)
    monkeypatch.setattr(m.repo, "update_swipe", update_swipe)
    monkeypatch.setattr(m.repo, "list_swipes", list_swipes)
    return store


def test_block_validation(monkeypatch):
    client = _client(monkeypatch)
    _install_store(monkeypatch)

    assert client.post("/api/blocks", json={"blockerId": ALICE}).status_code == 400
    res = client.post("/api/blocks", json={"blockerId": ALICE, "blockedId": ALICE})
    assert res.json()["detail"] == "You cannot block yourself"
    res = client.post("/api/blocks", json={"blockerId": ALICE, "blockedId": NOBODY})
    assert res.status_code == 404
    assert res.json()["detail"] == "User to block not found"
    res = client.post("/api/blocks", json={"blockerId": ALICE, "blockedId": "ghost"})
    assert res.status_code == 400
    assert res.json()["detail"] == "Invalid blockedId"


def test_block_clears_chats_and_is_visible_both_ways(monkeypatch):
    client = _client(monkeypatch)
    store = _install_store(monkeypatch)

    res = client.post("/api/blocks", json={"blockerId": ALICE, "blockedId": BOB, "reason": "<rude>"})
    assert res.status_code == 201
    assert res.json()["block"]["reason"] == "rude"
    assert "bob" in res.json()["message"]
    assert store["chats_cleared"] == [(ALICE, BOB)]

    res = client.post("/api/blocks", json={"blockerId": ALICE, "blockedId": BOB})
    assert res.status_code == 400
    assert res.json()["detail"] == "User is already blocked"

    mine = client.get(f"/api/blocks/check?userId={ALICE}&otherUserId={BOB}").json()["blockStatus"]
    assert mine["isBlocked"] is True
    assert mine["blockedBy"] == "you"
    theirs = client.get(f"/api/blocks/check?userId={BOB}&otherUserId={ALICE}").json()["blockStatus"]
    assert theirs["blockedBy"] == "them"
    assert theirs["canSendMessages"] is False


def test_block_survives_chat_cleanup_failure(monkeypatch):
    client = _client(monkeypatch)
    store = _install_store(monkeypatch)

    def broken_cleanup(a, b):
        raise RuntimeError("chats table locked")

    monkeypatch.setattr(m.repo, "delete_chats_between", broken_cleanup)
    res = client.post("/api/blocks", json={"blockerId": ALICE, "blockedId": BOB})
    assert res.status_code == 201
    assert (ALICE, BOB) in store["blocks"]


def test_unblock_and_list_blocks(monkeypatch):
    client = _client(monkeypatch)
    store = _install_store(monkeypatch)
    client.post("/api/blocks", json={"blockerId": ALICE, "blockedId": BOB})

    res = client.get(f"/api/blocks?userId={ALICE}&page=1&limit=10")
    assert res.status_code == 200
    body = res.json()
    assert len(body["blocks"]) == 1
    assert body["pagination"] == {"page": 1, "limit": 10, "total": 1, "totalPages": 1}
    assert client.get(f"/api/blocks?userId={ALICE}&limit=51").status_code == 400

    res = client.delete(f"/api/blocks?blockerId={ALICE}&blockedId={BOB}")
    assert res.status_code == 200
    assert store["blocks"] == {}
    assert client.delete(f"/api/blocks?blockerId={ALICE}&blockedId={BOB}").status_code == 404

    status = client.get(f"/api/blocks/check?userId={ALICE}&otherUserId={BOB}").json()["blockStatus"]
    assert status["isBlocked"] is False
    assert status["canSendMessages"] is True


def test_report_validation(monkeypatch):
    client = _client(monkeypatch)
    store = _install_store(monkeypatch)

    res = client.post("/api/reports", json={"reporterId": ALICE, "reportedUserId": BOB, "reason": "rude"})
    assert res.json()["detail"] == "Invalid report reason"

    res = client.post("/api/reports", json={"reporterId": ALICE, "reportedUserId": BOB, "reason": "other"})
    assert res.status_code == 400
    assert res.json()["detail"] == 'Description is required when reason is "other"'

    res = client.post("/api/reports", json={"reporterId": ALICE, "reportedUserId": ALICE, "reason": "spam"})
    assert res.json()["detail"] == "You cannot report yourself"

    store["users"][ALICE]["is_restricted"] = True
    res = client.post("/api/reports", json={"reporterId": ALICE, "reportedUserId": BOB, "reason": "spam"})
    assert res.status_code == 403
    assert store["reports"] == []


def test_report_once_per_day_and_counts(monkeypatch):
    client = _client(monkeypatch)
    store = _install_store(monkeypatch)

    res = client.post(
        "/api/reports",
        json={"reporterId": ALICE, "reportedUserId": BOB, "reason": "other", "description": "sent <spam> links"},
    )
    assert res.status_code == 201
    body = res.json()
    assert body["reportedUserReportCount"] == 1
    assert body["report"]["description"] == "sent spam links"
    assert body["report"]["status"] == "pending"

    res = client.post("/api/reports", json={"reporterId": ALICE, "reportedUserId": BOB, "reason": "spam"})
    assert res.status_code == 429
    assert store["users"][BOB]["report_count"] == 1

    # A report filed before today does not count against the limit.
    store["reports"][0]["created_at"] = datetime(2020, 1, 1, tzinfo=timezone.utc)
    res = client.post("/api/reports", json={"reporterId": ALICE, "reportedUserId": BOB, "reason": "spam"})
    assert res.status_code == 201
    assert res.json()["reportedUserReportCount"] == 2


def test_list_reports_by_direction(monkeypatch):
    client = _client(monkeypatch)
    _install_store(monkeypatch)
    client.post("/api/reports", json={"reporterId": ALICE, "reportedUserId": BOB, "reason": "spam"})

    assert client.get(f"/api/reports?userId={ALICE}").json()["count"] == 1
    assert client.get(f"/api/reports?userId={ALICE}&type=received").json()["count"] == 0
    assert client.get(f"/api/reports?userId={BOB}&type=received").json()["count"] == 1
    assert client.get(f"/api/reports?userId={BOB}&type=all&status=resolved").json()["count"] == 0
    assert client.get(f"/api/reports?userId={BOB}&type=sideways").status_code == 400


def test_swipe_records_then_updates(monkeypatch):
    client = _client(monkeypatch)
    store = _install_store(monkeypatch)

    res = client.post("/api/swipes", json={"userId": ALICE, "targetUserId": BOB, "action": "superlike"})
    assert res.status_code == 400
    res = client.post("/api/swipes", json={"userId": ALICE, "targetUserId": ALICE, "action": "like"})
    assert res.json()["detail"] == "Cannot swipe on yourself"

    res = client.post("/api/swipes", json={"userId": ALICE, "targetUserId": BOB, "action": "skip"})
    assert res.status_code == 201
    assert res.json()["swipe"]["action"] == "skip"

    res = client.post("/api/swipes", json={"userId": ALICE, "targetUserId": BOB, "action": "like"})
    assert res.status_code == 200
    assert res.json()["message"] == "Swipe updated"
    assert len(store["swipes"]) == 1

    res = client.get(f"/api/swipes?userId={ALICE}&action=like")
    assert res.json()["count"] == 1
    assert res.json()["swipes"][0]["targetUserId"] == BOB
    assert client.get(f"/api/swipes?userId={ALICE}&action=skip").json()["count"] == 0
