import logging
import math
from datetime import datetime, timezone
from typing import Any

from fastapi import APIRouter, HTTPException

from .. import repo
from ..http_helpers import require_query, require_uuid, sanitize_input
from ..schemas import BlockOut, ReportOut

logger = logging.getLogger(__name__)

router = APIRouter()

REPORT_REASONS = ("inappropriate_content", "harassment", "fake_profile", "spam", "underage", "other")
REPORT_LIST_TYPES = ("created", "received", "all")
REPORT_STATUSES = ("pending", "reviewed", "resolved", "dismissed")


def _start_of_today() -> datetime:
    return datetime.now(timezone.utc).replace(hour=0, minute=0, second=0, microsecond=0)


@router.post("/blocks", status_code=201)
def block_user(payload: dict[str, Any]) -> dict[str, Any]:
    blocker_id = str(payload.get("blockerId") or "").strip()
    blocked_id = str(payload.get("blockedId") or "").strip()
    if not blocker_id or not blocked_id:
        raise HTTPException(status_code=400, detail="Missing blockerId or blockedId")
    blocker_id = require_uuid(blocker_id, "blockerId")
    blocked_id = require_uuid(blocked_id, "blockedId")
    if blocker_id == blocked_id:
        raise HTTPException(status_code=400, detail="You cannot block yourself")
    reason = sanitize_input(payload.get("reason")) or None

    if not repo.get_user_by_id(blocker_id):
        raise HTTPException(status_code=404, detail="User not found")
    blocked = repo.get_user_by_id(blocked_id)
    if not blocked:
        raise HTTPException(status_code=404, detail="User to block not found")
    if repo.get_block(blocker_id, blocked_id):
        raise HTTPException(status_code=400, detail="User is already blocked")

    row = repo.create_block(blocker_id, blocked_id, reason)
    if not row:
        raise HTTPException(status_code=400, detail="User is already blocked")

    try:
        removed = repo.delete_chats_between(blocker_id, blocked_id)
        logger.info(f"[safety] block removed chats count={removed} blocker_id={blocker_id}")
    except Exception:
        logger.exception(f"[safety] chat cleanup failed blocker_id={blocker_id} blocked_id={blocked_id}")

    name = blocked.get("username") or "this user"
    return {
        "success": True,
        "message": f"You have blocked {name}. They will no longer be able to contact you.",
        "block": BlockOut.model_validate(row).dump(),
    }


@router.delete("/blocks")
def unblock_user(blockerId: str | None = None, blockedId: str | None = None) -> dict[str, Any]:
    if not blockerId or not blockedId:
        raise HTTPException(status_code=400, detail="Missing blockerId or blockedId")
    block = repo.get_block(require_uuid(blockerId, "blockerId"), require_uuid(blockedId, "blockedId"))
    if not block:
        raise HTTPException(status_code=404, detail="Block not found")
    repo.delete_block(str(block["id"]))
    return {"success": True, "message": "User unblocked successfully"}


@router.get("/blocks")
def list_blocks(userId: str | None = None, page: int = 1, limit: int = 20) -> dict[str, Any]:
    user_id = require_uuid(require_query(userId, "userId"), "userId")
    if page < 1 or limit < 1 or limit > 50:
        raise HTTPException(status_code=400, detail="Invalid pagination parameters")
    rows, total = repo.list_blocks(user_id, limit=limit, offset=(page - 1) * limit)
    return {
        "success": True,
        "blocks": [BlockOut.model_validate(r).dump() for r in rows],
        "pagination": {
            "page": page,
            "limit": limit,
            "total": total,
            "totalPages": math.ceil(total / limit),
        },
    }


@router.get("/blocks/check")
def check_block(userId: str | None = None, otherUserId: str | None = None) -> dict[str, Any]:
    user_id = require_uuid(require_query(userId, "userId"), "userId")
    other_id = require_uuid(require_query(otherUserId, "otherUserId"), "otherUserId")

    status: dict[str, Any] = {
        "isBlocked": False,
        "blockedBy": None,
        "reason": None,
        "blockedAt": None,
        "canSendMessages": True,
    }
    mine = repo.get_block(user_id, other_id)
    theirs = None if mine else repo.get_block(other_id, user_id)
    found = mine or theirs
    if found:
        status = {
            "isBlocked": True,
            "blockedBy": "you" if mine else "them",
            "reason": found.get("reason"),
            "blockedAt": found.get("created_at"),
            "canSendMessages": False,
        }
    return {"success": True, "blockStatus": status}


@router.post("/reports", status_code=201)
def create_report(payload: dict[str, Any]) -> dict[str, Any]:
    reporter_id = str(payload.get("reporterId") or "").strip()
    reported_id = str(payload.get("reportedUserId") or "").strip()
    reason = str(payload.get("reason") or "").strip()
    description = sanitize_input(payload.get("description")) or None
    if not reporter_id or not reported_id:
        raise HTTPException(status_code=400, detail="Missing reporterId or reportedUserId")
    reporter_id = require_uuid(reporter_id, "reporterId")
    reported_id = require_uuid(reported_id, "reportedUserId")
    if reason not in REPORT_REASONS:
        raise HTTPException(status_code=400, detail="Invalid report reason")
    if reason == "other" and not description:
        raise HTTPException(status_code=400, detail='Description is required when reason is "other"')

    reporter = repo.get_user_by_id(reporter_id)
    if not reporter:
        raise HTTPException(status_code=404, detail="Reporter not found")
    if reporter.get("is_restricted"):
        raise HTTPException(status_code=403, detail="Your account is restricted and cannot create reports")
    if not repo.get_user_by_id(reported_id):
        raise HTTPException(status_code=404, detail="Reported user not found")
    if reporter_id == reported_id:
        raise HTTPException(status_code=400, detail="You cannot report yourself")

    if repo.find_report_since(reporter_id, reported_id, _start_of_today()):
        raise HTTPException(
            status_code=429,
            detail="You have already reported this user today. Please wait 24 hours before reporting again.",
        )

    row = repo.create_report(reporter_id, reported_id, reason, description)
    logger.info(f"[safety] report created id={row['id']} reported_user_id={reported_id} reason={reason}")
    return {
        "success": True,
        "message": "Report submitted successfully. Our team will review it shortly.",
        "report": ReportOut.model_validate(row).dump(),
        "reportedUserReportCount": row.get("reported_user_report_count", 0),
    }


@router.get("/reports")
def list_reports(userId: str | None = None, type: str = "created", status: str | None = None) -> dict[str, Any]:
    user_id = require_uuid(require_query(userId, "userId"), "userId")
    if type not in REPORT_LIST_TYPES:
        raise HTTPException(status_code=400, detail="type must be one of: created, received, all")
    if status is not None and status not in REPORT_STATUSES:
        raise HTTPException(status_code=400, detail="Invalid report status")
    rows = repo.list_reports_for_user(user_id, report_type=type, status=status)
    return {"success": True, "reports": [ReportOut.model_validate(r).dump() for r in rows], "count": len(rows)}
