import json
import uuid
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import text
from sqlalchemy.exc import IntegrityError

from ghosty.database import SessionLocal


def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


def _row(row: Any) -> dict[str, Any] | None:
    return dict(row) if row else None


# ---------------------------------------------------------------------------
# users
# ---------------------------------------------------------------------------


def create_user(email: str, password_hash: str, activation_token: str, activation_token_expires: datetime) -> dict[str, Any] | None:
    user_id = str(uuid.uuid4())
    try:
        with SessionLocal() as db:
            db.execute(
                text(
                    """
                    INSERT INTO users (id, email, password_hash, email_verified, activation_token, activation_token_expires, registration_type)
                    VALUES (CAST(:id AS uuid), :email, :password_hash, false, :activation_token, :activation_token_expires, 'email')
                    """
                ),
                {
                    "id": user_id,
                    "email": email,
                    "password_hash": password_hash,
                    "activation_token": activation_token,
                    "activation_token_expires": activation_token_expires,
                },
            )
            db.commit()
    except IntegrityError:
        return None
    return get_user_by_id(user_id)


def create_simple_user(username: str, password_hash: str, gender: str) -> dict[str, Any] | None:
    user_id = str(uuid.uuid4())
    try:
        with SessionLocal() as db:
            db.execute(
                text(
                    """
                    INSERT INTO users (id, username, password_hash, email, email_verified, registration_type, verification_status, gender)
                    VALUES (CAST(:id AS uuid), :username, :password_hash, NULL, false, 'simple', 'unverified', :gender)
                    """
                ),
                {"id": user_id, "username": username, "password_hash": password_hash, "gender": gender},
            )
            db.commit()
    except IntegrityError:
        return None
    return get_user_by_id(user_id)


def get_user_by_id(user_id: str) -> dict[str, Any] | None:
    with SessionLocal() as db:
        row = db.execute(text("SELECT * FROM users WHERE id=CAST(:id AS uuid)"), {"id": user_id}).mappings().first()
    return _row(row)


def get_user_by_email(email: str) -> dict[str, Any] | None:
    with SessionLocal() as db:
        row = db.execute(text("SELECT * FROM users WHERE email=:email"), {"email": email}).mappings().first()
    return _row(row)


def get_user_by_username(username: str) -> dict[str, Any] | None:
    with SessionLocal() as db:
        row = db.execute(
            text("SELECT * FROM users WHERE LOWER(username)=LOWER(:username)"),
            {"username": username},
        ).mappings().first()
    return _row(row)


def get_user_by_activation_token(token: str) -> dict[str, Any] | None:
    with SessionLocal() as db:
        row = db.execute(
            text("SELECT * FROM users WHERE activation_token=:token"),
            {"token": token},
        ).mappings().first()
    return _row(row)


def get_users_by_ids(user_ids: list[str]) -> list[dict[str, Any]]:
    if not user_ids:
        return []
    with SessionLocal() as db:
        rows = db.execute(
            text(
                """
                SELECT id, username, email, verification_status, is_restricted, is_admin
                FROM users
                WHERE id::text = ANY(:ids)
                """
            ),
            {"ids": [str(u) for u in user_ids]},
        ).mappings().all()
    return [dict(r) for r in rows]


def set_activation_token(user_id: str, token: str, expires_at: datetime) -> None:
    with SessionLocal() as db:
        db.execute(
            text(
                """
                UPDATE users
                SET activation_token=:token, activation_token_expires=:expires_at, updated_at=NOW()
                WHERE id=CAST(:id AS uuid)
                """
            ),
            {"id": user_id, "token": token, "expires_at": expires_at},
        )
        db.commit()


def activate_user(user_id: str) -> bool:
    with SessionLocal() as db:
        result = db.execute(
            text(
                """
                UPDATE users
                SET email_verified=true, activation_token=NULL, activation_token_expires=NULL, updated_at=NOW()
                WHERE id=CAST(:id AS uuid)
                """
            ),
            {"id": user_id},
        )
        db.commit()
    return bool(result.rowcount)


def set_user_verification_status(user_id: str, status: str) -> dict[str, Any] | None:
    with SessionLocal() as db:
        row = db.execute(
            text(
                """
                UPDATE users
                SET verification_status=:status, updated_at=NOW()
                WHERE id=CAST(:id AS uuid)
                RETURNING id, verification_status
                """
            ),
            {"id": user_id, "status": status},
        ).mappings().first()
        db.commit()
    return _row(row)


def set_user_restricted(user_id: str, restricted: bool) -> dict[str, Any] | None:
    with SessionLocal() as db:
        row = db.execute(
            text(
                """
                UPDATE users
                SET is_restricted=:restricted, updated_at=NOW()
                WHERE id=CAST(:id AS uuid)
                RETURNING id, username, is_restricted
                """
            ),
            {"id": user_id, "restricted": restricted},
        ).mappings().first()
        db.commit()
    return _row(row)


def update_user_details(
    user_id: str,
    *,
    full_name: str | None,
    birthday: Any,
    gender: str | None,
    university_name: str | None,
    faculty: str | None,
) -> dict[str, Any] | None:
    with SessionLocal() as db:
        row = db.execute(
            text(
                """
                UPDATE users
                SET full_name=:full_name,
                    birthday=:birthday,
                    gender=:gender,
                    university_name=:university_name,
                    faculty=:faculty,
                    updated_at=NOW()
                WHERE id=CAST(:id AS uuid)
                RETURNING id, full_name, birthday, gender, university_name, faculty
                """
            ),
            {
                "id": user_id,
                "full_name": full_name,
                "birthday": birthday,
                "gender": gender,
                "university_name": university_name,
                "faculty": faculty,
            },
        ).mappings().first()
        db.commit()
    return _row(row)


def list_users_admin(
    *,
    search: str | None = None,
    verification_status: str | None = None,
    limit: int = 50,
    offset: int = 0,
) -> tuple[list[dict[str, Any]], int]:
    params = {
        "search": f"%{search.lower()}%" if search else None,
        "status": verification_status,
        "limit": limit,
        "offset": offset,
    }
    where = """
        WHERE (CAST(:search AS text) IS NULL
               OR LOWER(COALESCE(u.username, '')) LIKE :search
               OR LOWER(COALESCE(u.email, '')) LIKE :search
               OR LOWER(COALESCE(p.anonymous_name, '')) LIKE :search)
          AND (CAST(:status AS text) IS NULL OR u.verification_status = :status)
    """
    with SessionLocal() as db:
        rows = db.execute(
            text(
                f"""
                SELECT u.id, u.username, u.email, u.email_verified, u.registration_type,
                       u.verification_status, u.is_admin, u.is_restricted, u.report_count,
                       u.created_at, p.anonymous_name, p.university, p.faculty
                FROM users u
                LEFT JOIN profiles p ON p.user_id = u.id
                {where}
                ORDER BY u.created_at DESC
                LIMIT :limit OFFSET :offset
                """
            ),
            params,
        ).mappings().all()
        total = db.execute(
            text(f"SELECT COUNT(1) FROM users u LEFT JOIN profiles p ON p.user_id = u.id {where}"),
            params,
        ).scalar() or 0
    return [dict(r) for r in rows], int(total)


def admin_stats() -> dict[str, int]:
    with SessionLocal() as db:
        total_users = db.execute(text("SELECT COUNT(1) FROM users")).scalar() or 0
        verified_users = db.execute(text("SELECT COUNT(1) FROM users WHERE verification_status='verified'")).scalar() or 0
        pending = db.execute(text("SELECT COUNT(1) FROM users WHERE verification_status='pending'")).scalar() or 0
        restricted = db.execute(text("SELECT COUNT(1) FROM users WHERE is_restricted")).scalar() or 0
        total_reports = db.execute(text("SELECT COUNT(1) FROM reports")).scalar() or 0
        active_chats = db.execute(text("SELECT COUNT(DISTINCT conversation_id) FROM chats")).scalar() or 0
    return {
        "total_users": int(total_users),
        "verified_users": int(verified_users),
        "pending_verifications": int(pending),
        "restricted_users": int(restricted),
        "total_reports": int(total_reports),
        "active_chats": int(active_chats),
    }


def create_admin_action(
    *,
    admin_id: str | None,
    action_type: str,
    target_user_id: str | None = None,
    details: dict[str, Any] | None = None,
) -> dict[str, Any] | None:
    with SessionLocal() as db:
        row = db.execute(
            text(
                """
                INSERT INTO admin_actions (id, admin_id, action_type, target_user_id, details)
                VALUES (
                  CAST(:id AS uuid),
                  CAST(NULLIF(:admin_id, '') AS uuid),
                  :action_type,
                  CAST(NULLIF(:target_user_id, '') AS uuid),
                  CAST(:details AS jsonb)
                )
                RETURNING id, admin_id, action_type, target_user_id, details, created_at
                """
            ),
            {
                "id": str(uuid.uuid4()),
                "admin_id": admin_id or "",
                "action_type": action_type,
                "target_user_id": target_user_id or "",
                "details": json.dumps(details or {}, default=str),
            },
        ).mappings().first()
        db.commit()
    return _row(row)


# ---------------------------------------------------------------------------
# profiles
# ---------------------------------------------------------------------------

_PROFILE_COLUMNS = (
    "anonymous_name",
    "avatar",
    "real_name",
    "date_of_birth",
    "age",
    "gender",
    "university",
    "faculty",
    "bio",
    "interests",
    "preferences_age_min",
    "preferences_age_max",
    "preferences_gender",
    "preferences_interests",
    "preferences_hopes",
    "is_public",
    "is_verified",
    "profile_completed",
)
_PROFILE_JSON_COLUMNS = {"interests", "preferences_gender", "preferences_interests"}


def _profile_params(fields: dict[str, Any]) -> dict[str, Any]:
    params: dict[str, Any] = {}
    for col in _PROFILE_COLUMNS:
        if col not in fields:
            continue
        value = fields[col]
        params[col] = json.dumps(value or []) if col in _PROFILE_JSON_COLUMNS else value
    return params


def _profile_value_sql(col: str) -> str:
    return f"CAST(:{col} AS jsonb)" if col in _PROFILE_JSON_COLUMNS else f":{col}"


def get_profile_by_user_id(user_id: str) -> dict[str, Any] | None:
    with SessionLocal() as db:
        row = db.execute(
            text("SELECT * FROM profiles WHERE user_id=CAST(:user_id AS uuid)"),
            {"user_id": user_id},
        ).mappings().first()
    return _row(row)


def get_profiles_by_user_ids(user_ids: list[str]) -> list[dict[str, Any]]:
    if not user_ids:
        return []
    with SessionLocal() as db:
        rows = db.execute(
            text(
                """
                SELECT user_id, anonymous_name, avatar, age, gender, university, faculty, bio, interests, is_verified
                FROM profiles
                WHERE user_id::text = ANY(:ids)
                """
            ),
            {"ids": [str(u) for u in user_ids]},
        ).mappings().all()
    return [dict(r) for r in rows]


def anonymous_name_exists(anonymous_name: str) -> bool:
    with SessionLocal() as db:
        row = db.execute(
            text("SELECT 1 FROM profiles WHERE anonymous_name=:name LIMIT 1"),
            {"name": anonymous_name},
        ).first()
    return bool(row)


def create_profile(user_id: str, fields: dict[str, Any]) -> dict[str, Any] | None:
    """Insert a profile row. Returns None when a unique constraint rejects it."""
    params = _profile_params(fields)
    columns = ["user_id", *params.keys()]
    values = ["CAST(:user_id AS uuid)", *[_profile_value_sql(c) for c in params]]
    params["user_id"] = user_id
    try:
        with SessionLocal() as db:
            row = db.execute(
                text(
                    f"""
                    INSERT INTO profiles ({", ".join(columns)})
                    VALUES ({", ".join(values)})
                    RETURNING *
                    """
                ),
                params,
            ).mappings().first()
            db.commit()
    except IntegrityError:
        return None
    return _row(row)


def update_profile(user_id: str, fields: dict[str, Any]) -> dict[str, Any] | None:
    """Update the given profile columns. Returns None when a unique constraint rejects it."""
    params = _profile_params(fields)
    if not params:
        return get_profile_by_user_id(user_id)
    assignments = [f"{c}={_profile_value_sql(c)}" for c in params]
    params["user_id"] = user_id
    try:
        with SessionLocal() as db:
            row = db.execute(
                text(
                    f"""
                    UPDATE profiles
                    SET {", ".join(assignments)}, updated_at=NOW()
                    WHERE user_id=CAST(:user_id AS uuid)
                    RETURNING *
                    """
                ),
                params,
            ).mappings().first()
            db.commit()
    except IntegrityError:
        return None
    return _row(row)


def set_profile_verified(user_id: str, is_verified: bool = True) -> None:
    with SessionLocal() as db:
        db.execute(
            text(
                """
                UPDATE profiles
                SET is_verified=:is_verified, updated_at=NOW()
                WHERE user_id=CAST(:user_id AS uuid)
                """
            ),
            {"user_id": user_id, "is_verified": is_verified},
        )
        db.commit()


# ---------------------------------------------------------------------------
# verification_files
# ---------------------------------------------------------------------------


def get_active_verification(user_id: str, file_type: str) -> dict[str, Any] | None:
    with SessionLocal() as db:
        row = db.execute(
            text(
                """
                SELECT id, status
                FROM verification_files
                WHERE user_id=CAST(:user_id AS uuid)
                  AND file_type=:file_type
                  AND status IN ('pending', 'approved')
                ORDER BY CASE status WHEN 'approved' THEN 0 ELSE 1 END, created_at DESC
                LIMIT 1
                """
            ),
            {"user_id": user_id, "file_type": file_type},
        ).mappings().first()
    return _row(row)


def create_verification_file(
    *,
    user_id: str,
    file_type: str,
    file_path: str,
    file_name: str,
    file_size: int,
    mime_type: str,
) -> dict[str, Any]:
    with SessionLocal() as db:
        row = db.execute(
            text(
                """
                INSERT INTO verification_files (id, user_id, file_type, file_path, file_name, file_size, mime_type, status)
                VALUES (CAST(:id AS uuid), CAST(:user_id AS uuid), :file_type, :file_path, :file_name, :file_size, :mime_type, 'pending')
                RETURNING *
                """
            ),
            {
                "id": str(uuid.uuid4()),
                "user_id": user_id,
                "file_type": file_type,
                "file_path": file_path,
                "file_name": file_name,
                "file_size": file_size,
                "mime_type": mime_type,
            },
        ).mappings().first()
        db.commit()
    return dict(row)


def list_verification_files(user_id: str) -> list[dict[str, Any]]:
    with SessionLocal() as db:
        rows = db.execute(
            text(
                """
                SELECT id, file_type, status, created_at, reviewed_at, rejection_reason
                FROM verification_files
                WHERE user_id=CAST(:user_id AS uuid)
                ORDER BY created_at DESC
                """
            ),
            {"user_id": user_id},
        ).mappings().all()
    return [dict(r) for r in rows]


def get_verification_file(verification_id: str) -> dict[str, Any] | None:
    with SessionLocal() as db:
        row = db.execute(
            text("SELECT * FROM verification_files WHERE id=CAST(:id AS uuid)"),
            {"id": verification_id},
        ).mappings().first()
    return _row(row)


def review_verification_file(
    verification_id: str,
    *,
    status: str,
    reviewed_by: str | None,
    rejection_reason: str | None = None,
) -> dict[str, Any] | None:
    """Move a pending row to a terminal status. Returns None if it was no longer pending."""
    with SessionLocal() as db:
        row = db.execute(
            text(
                """
                UPDATE verification_files
                SET status=:status,
                    rejection_reason=:rejection_reason,
                    reviewed_at=:reviewed_at,
                    reviewed_by=CAST(NULLIF(:reviewed_by, '') AS uuid)
                WHERE id=CAST(:id AS uuid) AND status='pending'
                RETURNING *
                """
            ),
            {
                "id": verification_id,
                "status": status,
                "rejection_reason": rejection_reason,
                "reviewed_at": _now_utc(),
                "reviewed_by": reviewed_by or "",
            },
        ).mappings().first()
        db.commit()
    return _row(row)


def reset_verification_to_pending(verification_id: str) -> None:
    with SessionLocal() as db:
        db.execute(
            text(
                """
                UPDATE verification_files
                SET status='pending', rejection_reason=NULL, reviewed_at=NULL, reviewed_by=NULL
                WHERE id=CAST(:id AS uuid)
                """
            ),
            {"id": verification_id},
        )
        db.commit()


def list_verification_files_admin(status: str | None = None) -> list[dict[str, Any]]:
    with SessionLocal() as db:
        rows = db.execute(
            text(
                """
                SELECT vf.id, vf.user_id, vf.file_type, vf.file_name, vf.file_size, vf.mime_type,
                       vf.status, vf.rejection_reason, vf.reviewed_at, vf.reviewed_by, vf.created_at,
                       u.username, u.email, u.verification_status,
                       p.anonymous_name, p.university, p.faculty
                FROM verification_files vf
                JOIN users u ON u.id = vf.user_id
                LEFT JOIN profiles p ON p.user_id = vf.user_id
                WHERE (CAST(:status AS text) IS NULL OR vf.status = :status)
                ORDER BY vf.created_at DESC
                """
            ),
            {"status": status},
        ).mappings().all()
    return [dict(r) for r in rows]


# ---------------------------------------------------------------------------
# matches
# ---------------------------------------------------------------------------


def list_matches_for_user(user_id: str) -> list[dict[str, Any]]:
    with SessionLocal() as db:
        rows = db.execute(
            text(
                """
                SELECT id, user1_id, user2_id, matched_at
                FROM matches
                WHERE user1_id=CAST(:user_id AS uuid) OR user2_id=CAST(:user_id AS uuid)
                ORDER BY matched_at DESC
                """
            ),
            {"user_id": user_id},
        ).mappings().all()
    return [dict(r) for r in rows]


# ---------------------------------------------------------------------------
# chats
# ---------------------------------------------------------------------------


def list_conversation_messages(conversation_id: str, limit: int = 50) -> list[dict[str, Any]]:
    with SessionLocal() as db:
        rows = db.execute(
            text(
                """
                SELECT id, conversation_id, sender_id, receiver_id, message, is_read, read_at, created_at
                FROM chats
                WHERE conversation_id=CAST(:conversation_id AS uuid)
                ORDER BY created_at ASC
                LIMIT :limit
                """
            ),
            {"conversation_id": conversation_id, "limit": limit},
        ).mappings().all()
    return [dict(r) for r in rows]


def create_chat_message(conversation_id: str, sender_id: str, receiver_id: str, message: str) -> dict[str, Any]:
    with SessionLocal() as db:
        row = db.execute(
            text(
                """
                INSERT INTO chats (id, conversation_id, sender_id, receiver_id, message)
                VALUES (CAST(:id AS uuid), CAST(:conversation_id AS uuid), CAST(:sender_id AS uuid), CAST(:receiver_id AS uuid), :message)
                RETURNING id, conversation_id, sender_id, receiver_id, message, is_read, created_at
                """
            ),
            {
                "id": str(uuid.uuid4()),
                "conversation_id": conversation_id,
                "sender_id": sender_id,
                "receiver_id": receiver_id,
                "message": message,
            },
        ).mappings().first()
        db.commit()
    return dict(row)


def get_chat_message(message_id: str) -> dict[str, Any] | None:
    with SessionLocal() as db:
        row = db.execute(
            text("SELECT id, conversation_id, sender_id, receiver_id FROM chats WHERE id=CAST(:id AS uuid)"),
            {"id": message_id},
        ).mappings().first()
    return _row(row)


def delete_chat_message(message_id: str) -> int:
    with SessionLocal() as db:
        result = db.execute(text("DELETE FROM chats WHERE id=CAST(:id AS uuid)"), {"id": message_id})
        db.commit()
    return int(result.rowcount or 0)


def mark_conversation_read(conversation_id: str, receiver_id: str) -> int:
    with SessionLocal() as db:
        result = db.execute(
            text(
                """
                UPDATE chats
                SET is_read=true, read_at=:read_at
                WHERE conversation_id=CAST(:conversation_id AS uuid)
                  AND receiver_id=CAST(:receiver_id AS uuid)
                  AND is_read=false
                """
            ),
            {"conversation_id": conversation_id, "receiver_id": receiver_id, "read_at": _now_utc()},
        )
        db.commit()
    return int(result.rowcount or 0)


def delete_chats_between(user_a: str, user_b: str) -> int:
    with SessionLocal() as db:
        result = db.execute(
            text(
                """
                DELETE FROM chats
                WHERE (sender_id=CAST(:a AS uuid) AND receiver_id=CAST(:b AS uuid))
                   OR (sender_id=CAST(:b AS uuid) AND receiver_id=CAST(:a AS uuid))
                """
            ),
            {"a": user_a, "b": user_b},
        )
        db.commit()
    return int(result.rowcount or 0)


# ---------------------------------------------------------------------------
# blocks
# ---------------------------------------------------------------------------


def get_block(blocker_id: str, blocked_id: str) -> dict[str, Any] | None:
    with SessionLocal() as db:
        row = db.execute(
            text(
                """
                SELECT id, blocker_id, blocked_id, reason, created_at
                FROM blocks
                WHERE blocker_id=CAST(:blocker_id AS uuid) AND blocked_id=CAST(:blocked_id AS uuid)
                """
            ),
            {"blocker_id": blocker_id, "blocked_id": blocked_id},
        ).mappings().first()
    return _row(row)


def create_block(blocker_id: str, blocked_id: str, reason: str | None = None) -> dict[str, Any] | None:
    try:
        with SessionLocal() as db:
            row = db.execute(
                text(
                    """
                    INSERT INTO blocks (id, blocker_id, blocked_id, reason)
                    VALUES (CAST(:id AS uuid), CAST(:blocker_id AS uuid), CAST(:blocked_id AS uuid), :reason)
                    RETURNING id, blocker_id, blocked_id, reason, created_at
                    """
                ),
                {"id": str(uuid.uuid4()), "blocker_id": blocker_id, "blocked_id": blocked_id, "reason": reason},
            ).mappings().first()
            db.commit()
    except IntegrityError:
        return None
    return _row(row)


def delete_block(block_id: str) -> int:
    with SessionLocal() as db:
        result = db.execute(text("DELETE FROM blocks WHERE id=CAST(:id AS uuid)"), {"id": block_id})
        db.commit()
    return int(result.rowcount or 0)


def list_blocks(blocker_id: str, *, limit: int = 20, offset: int = 0) -> tuple[list[dict[str, Any]], int]:
    with SessionLocal() as db:
        rows = db.execute(
            text(
                """
                SELECT b.id, b.blocker_id, b.blocked_id, b.reason, b.created_at,
                       u.username AS blocked_username, u.gender AS blocked_gender,
                       p.anonymous_name AS blocked_anonymous_name
                FROM blocks b
                LEFT JOIN users u ON u.id = b.blocked_id
                LEFT JOIN profiles p ON p.user_id = b.blocked_id
                WHERE b.blocker_id=CAST(:blocker_id AS uuid)
                ORDER BY b.created_at DESC
                LIMIT :limit OFFSET :offset
                """
            ),
            {"blocker_id": blocker_id, "limit": limit, "offset": offset},
        ).mappings().all()
        total = db.execute(
            text("SELECT COUNT(1) FROM blocks WHERE blocker_id=CAST(:blocker_id AS uuid)"),
            {"blocker_id": blocker_id},
        ).scalar() or 0
    return [dict(r) for r in rows], int(total)


def block_exists_between(user_a: str, user_b: str) -> bool:
    with SessionLocal() as db:
        row = db.execute(
            text(
                """
                SELECT 1
                FROM blocks
                WHERE (blocker_id=CAST(:a AS uuid) AND blocked_id=CAST(:b AS uuid))
                   OR (blocker_id=CAST(:b AS uuid) AND blocked_id=CAST(:a AS uuid))
                LIMIT 1
                """
            ),
            {"a": user_a, "b": user_b},
        ).first()
    return bool(row)


# ---------------------------------------------------------------------------
# reports
# ---------------------------------------------------------------------------


def find_report_since(reporter_id: str, reported_user_id: str, since: datetime) -> dict[str, Any] | None:
    with SessionLocal() as db:
        row = db.execute(
            text(
                """
                SELECT id, created_at
                FROM reports
                WHERE reporter_id=CAST(:reporter_id AS uuid)
                  AND reported_user_id=CAST(:reported_user_id AS uuid)
                  AND created_at >= :since
                LIMIT 1
                """
            ),
            {"reporter_id": reporter_id, "reported_user_id": reported_user_id, "since": since},
        ).mappings().first()
    return _row(row)


def create_report(reporter_id: str, reported_user_id: str, reason: str, description: str | None) -> dict[str, Any]:
    with SessionLocal() as db:
        row = db.execute(
            text(
                """
                INSERT INTO reports (id, reporter_id, reported_user_id, reason, description, status)
                VALUES (CAST(:id AS uuid), CAST(:reporter_id AS uuid), CAST(:reported_user_id AS uuid), :reason, :description, 'pending')
                RETURNING id, reporter_id, reported_user_id, reason, description, status, created_at
                """
            ),
            {
                "id": str(uuid.uuid4()),
                "reporter_id": reporter_id,
                "reported_user_id": reported_user_id,
                "reason": reason,
                "description": description,
            },
        ).mappings().first()
        count = db.execute(
            text(
                """
                UPDATE users
                SET report_count=report_count + 1
                WHERE id=CAST(:id AS uuid)
                RETURNING report_count
                """
            ),
            {"id": reported_user_id},
        ).scalar()
        db.commit()
    out = dict(row)
    out["reported_user_report_count"] = int(count or 0)
    return out


def list_reports_for_user(user_id: str, *, report_type: str = "created", status: str | None = None) -> list[dict[str, Any]]:
    with SessionLocal() as db:
        rows = db.execute(
            text(
                """
                SELECT id, reporter_id, reported_user_id, reason, description, status, created_at, reviewed_at
                FROM reports
                WHERE (
                    (:report_type IN ('created', 'all') AND reporter_id=CAST(:user_id AS uuid))
                    OR (:report_type IN ('received', 'all') AND reported_user_id=CAST(:user_id AS uuid))
                  )
                  AND (CAST(:status AS text) IS NULL OR status = :status)
                ORDER BY created_at DESC
                """
            ),
            {"user_id": user_id, "report_type": report_type, "status": status},
        ).mappings().all()
    return [dict(r) for r in rows]


def list_reports_admin(status: str | None = None) -> list[dict[str, Any]]:
    with SessionLocal() as db:
        rows = db.execute(
            text(
                """
                SELECT r.id, r.reporter_id, r.reported_user_id, r.reason, r.description, r.status,
                       r.admin_notes, r.reviewed_by, r.reviewed_at, r.created_at,
                       ru.username AS reporter_username,
                       tu.username AS reported_username,
                       tu.report_count AS reported_report_count,
                       tu.is_restricted AS reported_is_restricted
                FROM reports r
                LEFT JOIN users ru ON ru.id = r.reporter_id
                LEFT JOIN users tu ON tu.id = r.reported_user_id
                WHERE (CAST(:status AS text) IS NULL OR r.status = :status)
                ORDER BY r.created_at DESC
                """
            ),
            {"status": status},
        ).mappings().all()
    return [dict(r) for r in rows]


def update_report_status(report_id: str, *, status: str, admin_notes: str | None, reviewed_by: str | None) -> dict[str, Any] | None:
    with SessionLocal() as db:
        row = db.execute(
            text(
                """
                UPDATE reports
                SET status=:status,
                    admin_notes=COALESCE(:admin_notes, admin_notes),
                    reviewed_by=CAST(NULLIF(:reviewed_by, '') AS uuid),
                    reviewed_at=:reviewed_at
                WHERE id=CAST(:id AS uuid)
                RETURNING id, reported_user_id, status, admin_notes, reviewed_at
                """
            ),
            {
                "id": report_id,
                "status": status,
                "admin_notes": admin_notes,
                "reviewed_by": reviewed_by or "",
                "reviewed_at": _now_utc(),
            },
        ).mappings().first()
        db.commit()
    return _row(row)


# ---------------------------------------------------------------------------
# swipes
# ---------------------------------------------------------------------------


def get_swipe(user_id: str, target_user_id: str) -> dict[str, Any] | None:
    with SessionLocal() as db:
        row = db.execute(
            text(
                """
                SELECT id, user_id, target_user_id, action, created_at
                FROM swipes
                WHERE user_id=CAST(:user_id AS uuid) AND target_user_id=CAST(:target_user_id AS uuid)
                """
            ),
            {"user_id": user_id, "target_user_id": target_user_id},
        ).mappings().first()
    return _row(row)


def create_swipe(user_id: str, target_user_id: str, action: str) -> dict[str, Any]:
    with SessionLocal() as db:
        row = db.execute(
            text(
                """
                INSERT INTO swipes (id, user_id, target_user_id, action)
                VALUES (CAST(:id AS uuid), CAST(:user_id AS uuid), CAST(:target_user_id AS uuid), :action)
                RETURNING id, user_id, target_user_id, action, created_at
                """
            ),
            {"id": str(uuid.uuid4()), "user_id": user_id, "target_user_id": target_user_id, "action": action},
        ).mappings().first()
        db.commit()
    return dict(row)


def update_swipe(swipe_id: str, action: str) -> dict[str, Any] | None:
    with SessionLocal() as db:
        row = db.execute(
            text(
                """
                UPDATE swipes
                SET action=:action, created_at=NOW()
                WHERE id=CAST(:id AS uuid)
                RETURNING id, user_id, target_user_id, action, created_at
                """
            ),
            {"id": swipe_id, "action": action},
        ).mappings().first()
        db.commit()
    return _row(row)


def list_swipes(user_id: str, *, action: str | None = None, limit: int = 50) -> list[dict[str, Any]]:
    with SessionLocal() as db:
        rows = db.execute(
            text(
                """
                SELECT id, user_id, target_user_id, action, created_at
                FROM swipes
                WHERE user_id=CAST(:user_id AS uuid)
                  AND (CAST(:action AS text) IS NULL OR action = :action)
                ORDER BY created_at DESC
                LIMIT :limit
                """
            ),
            {"user_id": user_id, "action": action, "limit": limit},
        ).mappings().all()
    return [dict(r) for r in rows]


def upsert_admin_user(username: str, password_hash: str, email: str | None = None) -> dict[str, Any]:
    with SessionLocal() as db:
        row = db.execute(
            text(
                """
                INSERT INTO users (id, username, email, password_hash, email_verified, registration_type, verification_status, is_admin)
                VALUES (CAST(:id AS uuid), :username, :email, :password_hash, true, 'simple', 'verified', true)
                ON CONFLICT (username) DO UPDATE
                SET password_hash=EXCLUDED.password_hash,
                    is_admin=true,
                    is_restricted=false,
                    updated_at=NOW()
                RETURNING id, username, email, is_admin
                """
            ),
            {"id": str(uuid.uuid4()), "username": username, "email": email, "password_hash": password_hash},
        ).mappings().first()
        db.commit()
    return dict(row)
