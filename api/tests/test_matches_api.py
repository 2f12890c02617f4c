from datetime import datetime, timezone

import pytest

pytest.importorskip("fastapi")
from fastapi.testclient import TestClient

import ghosty.main as m
from ghosty import config

ME = "11111111-1111-1111-1111-111111111111"
GONE = "22222222-2222-2222-2222-222222222222"
FRIEND = "33333333-3333-3333-3333-333333333333"


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


def _install_store(monkeypatch, matches, profiles=(), users=()):
    calls = []

    def list_matches_for_user(user_id):
        calls.append(user_id)
        return [dict(r) for r in matches]

    monkeypatch.setattr(m.repo, "list_matches_for_user", list_matches_for_user)
    monkeypatch.setattr(m.repo, "get_profiles_by_user_ids", lambda ids: [p for p in profiles if p["user_id"] in ids])
    monkeypatch.setattr(m.repo, "get_users_by_ids", lambda ids: [u for u in users if u["id"] in ids])
    return calls


def test_orphaned_match_returns_placeholder_card(monkeypatch):
    client = _client(monkeypatch)
    _install_store(
        monkeypatch,
        [{"id": "a1a1a1a1-0000-0000-0000-000000000001", "user1_id": GONE, "user2_id": ME,
          "matched_at": datetime(2026, 2, 14, tzinfo=timezone.utc)}],
    )

    res = client.get(f"/api/matches?userId={ME}")
    assert res.status_code == 200
    body = res.json()
    assert body["total"] == 1
    assert len(body["matches"]) == 1
    item = body["matches"][0]
    assert item["matchId"] == "a1a1a1a1-0000-0000-0000-000000000001"
    card = item["user"]
    assert card["userId"] == GONE
    assert card["anonymousName"] == "Anonymous"
    assert card["age"] == 0
    assert card["university"] == "University"
    assert card["avatar"] == "👤"
    assert card["isVerified"] is False


def test_matches_carry_public_cards_newest_first(monkeypatch):
    client = _client(monkeypatch)
    _install_store(
        monkeypatch,
        [
            {"id": "a1a1a1a1-0000-0000-0000-000000000001", "user1_id": ME, "user2_id": GONE,
             "matched_at": datetime(2026, 2, 1, tzinfo=timezone.utc)},
            {"id": "a1a1a1a1-0000-0000-0000-000000000002", "user1_id": FRIEND, "user2_id": ME,
             "matched_at": datetime(2026, 2, 20, tzinfo=timezone.utc)},
        ],
        profiles=[{"user_id": FRIEND, "anonymous_name": "QuietFox412", "gender": "Female", "age": 21,
                   "university": "Chula", "interests": ["film"], "is_verified": True}],
        users=[{"id": FRIEND, "username": "fox", "verification_status": "verified"}],
    )

    body = client.get(f"/api/matches?userId={ME}").json()
    assert body["total"] == 2
    first = body["matches"][0]["user"]
    assert first["anonymousName"] == "QuietFox412"
    assert first["avatar"] == "👩"
    assert first["interests"] == ["film"]
    assert first["verificationStatus"] == "verified"
    assert body["matches"][1]["user"]["userId"] == GONE


def test_no_matches_is_empty_list(monkeypatch):
    client = _client(monkeypatch)
    _install_store(monkeypatch, [])

    res = client.get(f"/api/matches?userId={ME}")
    assert res.status_code == 200
    assert res.json() == {"matches": [], "total": 0}


def test_matches_require_a_valid_user_id(monkeypatch):
    client = _client(monkeypatch)
    calls = _install_store(monkeypatch, [])

    res = client.get("/api/matches")
    assert res.status_code == 400
    assert res.json()["detail"] == "userId is required"

    res = client.get("/api/matches?userId=abc")
    assert res.status_code == 400
    assert res.json()["detail"] == "Invalid userId"
    assert calls == []
