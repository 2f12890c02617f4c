import logging
from typing import Any

from fastapi import APIRouter, HTTPException, Response

from .. import repo
from ..http_helpers import require_query, require_uuid
from ..schemas import MatchItem, SwipeOut
from ..services.match_assembler import list_matches

logger = logging.getLogger(__name__)

router = APIRouter()

SWIPE_ACTIONS = ("like", "skip")


@router.get("/matches")
def get_matches(userId: str | None = None) -> dict[str, Any]:
    user_id = require_uuid(require_query(userId, "userId"), "userId")
    items = list_matches(user_id)
    return {"matches": [MatchItem.model_validate(i).dump() for i in items], "total": len(items)}


@router.post("/swipes", status_code=201)
def record_swipe(payload: dict[str, Any], response: Response) -> dict[str, Any]:
    user_id = str(payload.get("userId") or "").strip()
    target_id = str(payload.get("targetUserId") or "").strip()
    action = str(payload.get("action") or "").strip()
    if not user_id or not target_id:
        raise HTTPException(status_code=400, detail="Missing userId or targetUserId")
    user_id = require_uuid(user_id, "userId")
    target_id = require_uuid(target_id, "targetUserId")
    if action not in SWIPE_ACTIONS:
        raise HTTPException(status_code=400, detail='Action must be either "skip" or "like"')
    if user_id == target_id:
        raise HTTPException(status_code=400, detail="Cannot swipe on yourself")
    if not repo.get_user_by_id(user_id) or not repo.get_user_by_id(target_id):
        raise HTTPException(status_code=404, detail="One or both users not found")

    existing = repo.get_swipe(user_id, target_id)
    if existing:
        row = repo.update_swipe(str(existing["id"]), action)
        response.status_code = 200
        message = "Swipe updated"
    else:
        row = repo.create_swipe(user_id, target_id, action)
        message = "Swipe recorded"
    logger.info(f"[swipes] {message.lower()} user_id={user_id} target_user_id={target_id} action={action}")
    return {"success": True, "message": message, "swipe": SwipeOut.model_validate(row).dump()}


@router.get("/swipes")
def get_swipes(userId: str | None = None, action: str = "all", limit: int = 50) -> dict[str, Any]:
    user_id = require_uuid(require_query(userId, "userId"), "userId")
    if action not in (*SWIPE_ACTIONS, "all"):
        raise HTTPException(status_code=400, detail='Action must be "skip", "like" or "all"')
    if limit < 1 or limit > 100:
        raise HTTPException(status_code=400, detail="limit must be between 1 and 100")
    rows = repo.list_swipes(user_id, action=None if action == "all" else action, limit=limit)
    return {"success": True, "swipes": [SwipeOut.model_validate(r).dump() for r in rows], "count": len(rows)}
