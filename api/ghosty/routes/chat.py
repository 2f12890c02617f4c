import logging
from typing import Any

from fastapi import APIRouter, HTTPException

from .. import repo
from ..http_helpers import require_query, require_uuid
from ..schemas import ChatMessageOut

logger = logging.getLogger(__name__)

router = APIRouter()

MESSAGE_MAX_CHARS = 5000


def _limit(value: int | None, default: int = 50, maximum: int = 100) -> int:
    if value is None:
        return default
    if value < 1 or value > maximum:
        raise HTTPException(status_code=400, detail=f"limit must be between 1 and {maximum}")
    return value


@router.get("/chats")
def list_messages(conversationId: str | None = None, userId: str | None = None, limit: int | None = None) -> dict[str, Any]:
    conversation_id = require_uuid(require_query(conversationId, "conversationId"), "conversationId")
    user_id = require_uuid(require_query(userId, "userId"), "userId")
    if not repo.get_user_by_id(user_id):
        raise HTTPException(status_code=404, detail="User not found")

    rows = repo.list_conversation_messages(conversation_id, _limit(limit))
    if rows and not any(user_id in (str(r.get("sender_id")), str(r.get("receiver_id"))) for r in rows):
        raise HTTPException(status_code=403, detail="You are not a participant in this conversation")
    messages = [ChatMessageOut.model_validate(r).dump() for r in rows]
    return {"success": True, "messages": messages, "count": len(messages)}


@router.post("/chats", status_code=201)
def send_message(payload: dict[str, Any]) -> dict[str, Any]:
    conversation_id = str(payload.get("conversationId") or "").strip()
    sender_id = str(payload.get("senderId") or "").strip()
    receiver_id = str(payload.get("receiverId") or "").strip()
    message = str(payload.get("message") or "").strip()
    if not conversation_id or not sender_id or not receiver_id:
        raise HTTPException(status_code=400, detail="Missing required fields")
    conversation_id = require_uuid(conversation_id, "conversationId")
    sender_id = require_uuid(sender_id, "senderId")
    receiver_id = require_uuid(receiver_id, "receiverId")
    if not message:
        raise HTTPException(status_code=400, detail="Message cannot be empty")
    if len(message) > MESSAGE_MAX_CHARS:
        raise HTTPException(status_code=400, detail="Message too long")

    if not repo.get_user_by_id(sender_id) or not repo.get_user_by_id(receiver_id):
        raise HTTPException(status_code=404, detail="One or both users not found")
    if repo.block_exists_between(sender_id, receiver_id):
        raise HTTPException(status_code=403, detail="Cannot send message. One user has blocked the other.")

    row = repo.create_chat_message(conversation_id, sender_id, receiver_id, message)
    logger.info(f"[chat] message sent id={row['id']} conversation_id={conversation_id}")
    return {"success": True, "message": ChatMessageOut.model_validate(row).dump()}


@router.delete("/chats/{message_id}")
def delete_message(message_id: str, payload: dict[str, Any]) -> dict[str, Any]:
    user_id = str(payload.get("userId") or "").strip()
    if not user_id:
        raise HTTPException(status_code=400, detail="Missing required fields")
    message_id = require_uuid(message_id, "message id")
    user_id = require_uuid(user_id, "userId")

    row = repo.get_chat_message(message_id)
    if not row:
        raise HTTPException(status_code=404, detail="Message not found")
    if str(row.get("sender_id")) != user_id:
        logger.warning(f"[chat] delete denied id={message_id} user_id={user_id}")
        raise HTTPException(status_code=403, detail="Unauthorized: You can only delete your own messages")

    repo.delete_chat_message(message_id)
    return {"success": True, "message": "Message deleted successfully"}


@router.post("/chats/read")
def mark_read(payload: dict[str, Any]) -> dict[str, Any]:
    conversation_id = str(payload.get("conversationId") or "").strip()
    user_id = str(payload.get("userId") or "").strip()
    if not conversation_id or not user_id:
        raise HTTPException(status_code=400, detail="Missing required fields")
    conversation_id = require_uuid(conversation_id, "conversationId")
    user_id = require_uuid(user_id, "userId")
    updated = repo.mark_conversation_read(conversation_id, user_id)
    return {"success": True, "message": "Messages marked as read", "updated": updated}
