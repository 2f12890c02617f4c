import logging
import time
from typing import Any

from fastapi import HTTPException

from ghosty import config, repo
from ghosty.services.compensation import CompensationLog
from ghosty.services.state_machine import USER_STATUS_FOR_REVIEW, InvalidTransition, transition_status
from ghosty.services.storage import StorageError, get_storage

logger = logging.getLogger(__name__)

FILE_TYPES = ("facebook_screenshot", "student_id", "academic_document")
FILE_TYPE_ALIASES = {
    "screenshot": "facebook_screenshot",
    "student-id": "student_id",
    "academic-document": "academic_document",
}
_MIME_EXTENSIONS = {
    "image/jpeg": "jpg",
    "image/jpg": "jpg",
    "image/png": "png",
    "application/pdf": "pdf",
}


def normalize_file_type(file_type: str | None) -> str | None:
    ft = (file_type or "").strip()
    ft = FILE_TYPE_ALIASES.get(ft, ft)
    return ft if ft in FILE_TYPES else None


def validate_file(content_type: str | None, size: int) -> str | None:
    allowed = config.VERIFICATION_ALLOWED_MIME_TYPES
    if (content_type or "").lower() not in allowed:
        return f"File type not allowed. Accepted types: {', '.join(allowed)}"
    if size > config.VERIFICATION_MAX_FILE_MB * 1024 * 1024:
        return f"File size must be less than {config.VERIFICATION_MAX_FILE_MB}MB"
    if size <= 0:
        return "Uploaded file is empty"
    return None


def file_extension(file_name: str | None, content_type: str | None) -> str:
    name = (file_name or "").strip()
    if "." in name:
        ext = name.rsplit(".", 1)[1].lower()
        if ext.isalnum():
            return ext
    return _MIME_EXTENSIONS.get((content_type or "").lower(), "bin")


def build_storage_path(user_id: str, file_type: str, ext: str, now_ms: int | None = None) -> str:
    millis = now_ms if now_ms is not None else int(time.time() * 1000)
    return f"verification/{user_id}/{user_id}_{file_type}_{millis}.{ext}"


def submit_verification(
    *,
    user_id: str,
    file_type: str,
    file_name: str | None,
    content_type: str | None,
    data: bytes,
) -> dict[str, Any]:
    ft = normalize_file_type(file_type)
    if ft is None:
        raise HTTPException(status_code=400, detail="Invalid file type")

    problem = validate_file(content_type, len(data))
    if problem:
        raise HTTPException(status_code=400, detail=problem)

    if not repo.get_profile_by_user_id(user_id):
        raise HTTPException(status_code=404, detail="Profile not found. Please create your profile first.")

    active = repo.get_active_verification(user_id, ft)
    if active:
        if active.get("status") == "approved":
            raise HTTPException(status_code=409, detail="This document type has already been approved")
        raise HTTPException(
            status_code=409,
            detail="You already have a pending verification request for this document type",
        )

    storage = get_storage()
    bucket = config.VERIFICATION_BUCKET
    path = build_storage_path(user_id, ft, file_extension(file_name, content_type))
    steps = CompensationLog("verification")

    try:
        storage.save(bucket, path, data, (content_type or "").lower())
    except StorageError as exc:
        logger.error(f"[verification] upload failed user_id={user_id} path={path} err={exc}")
        raise HTTPException(status_code=500, detail="Failed to upload file") from exc
    steps.record("upload", lambda: storage.remove(bucket, path))

    try:
        row = repo.create_verification_file(
            user_id=user_id,
            file_type=ft,
            file_path=path,
            file_name=file_name or path.rsplit("/", 1)[-1],
            file_size=len(data),
            mime_type=(content_type or "").lower(),
        )
    except Exception as exc:
        logger.error(f"[verification] insert failed user_id={user_id} path={path} err={exc}")
        failed = steps.rollback()
        if failed:
            logger.error(f"[verification] orphaned upload bucket={bucket} path={path}")
        raise HTTPException(status_code=500, detail="Failed to save verification request") from exc

    if not repo.set_user_verification_status(user_id, "pending"):
        logger.warning(f"[verification] user status not updated user_id={user_id}")

    logger.info(f"[verification] submitted id={row['id']} user_id={user_id} type={ft}")
    return row


def verification_status(user_id: str) -> dict[str, Any]:
    rows = repo.list_verification_files(user_id)
    is_verified = any(r.get("status") == "approved" for r in rows)
    if is_verified:
        profile = repo.get_profile_by_user_id(user_id)
        if profile and not profile.get("is_verified"):
            repo.set_profile_verified(user_id, True)
            logger.info(f"[verification] profile marked verified user_id={user_id}")
    return {"verifications": rows, "is_verified": is_verified}


def review_verification(
    *,
    verification_id: str,
    action: str,
    admin_id: str | None,
    reason: str | None = None,
) -> dict[str, Any]:
    if action not in {"approve", "reject"}:
        raise HTTPException(status_code=400, detail='Invalid action. Must be "approve" or "reject"')

    current = repo.get_verification_file(verification_id)
    if not current:
        raise HTTPException(status_code=404, detail="Verification not found")

    try:
        target = transition_status(str(current.get("status")), action)
    except InvalidTransition as exc:
        raise HTTPException(
            status_code=400,
            detail=f"Cannot {action} verification with status: {current.get('status')}",
        ) from exc

    updated = repo.review_verification_file(
        verification_id,
        status=target,
        reviewed_by=admin_id,
        rejection_reason=(reason or None) if target == "rejected" else None,
    )
    if not updated:
        # Another reviewer won the race.
        raise HTTPException(status_code=400, detail=f"Cannot {action} verification with status: already reviewed")

    user_id = str(current["user_id"])
    steps = CompensationLog("verification")
    steps.record("review", lambda: repo.reset_verification_to_pending(verification_id))
    try:
        user_row = repo.set_user_verification_status(user_id, USER_STATUS_FOR_REVIEW[target])
        if not user_row:
            raise LookupError(f"user {user_id} not found")
    except Exception as exc:
        logger.error(f"[verification] user status update failed id={verification_id} user_id={user_id} err={exc}")
        steps.rollback()
        raise HTTPException(status_code=500, detail="Failed to update user verification status") from exc

    if target == "approved":
        repo.set_profile_verified(user_id, True)

    repo.create_admin_action(
        admin_id=admin_id,
        action_type=f"verification_{target}",
        target_user_id=user_id,
        details={"verificationId": verification_id, "fileType": current.get("file_type"), "reason": reason},
    )
    logger.info(f"[verification] {target} id={verification_id} user_id={user_id} admin_id={admin_id}")
    return updated


def document_url(verification_id: str) -> dict[str, Any]:
    row = repo.get_verification_file(verification_id)
    if not row:
        raise HTTPException(status_code=404, detail="Verification not found")
    path = str(row.get("file_path") or "")
    if not path:
        raise HTTPException(status_code=404, detail="Verification file not found")
    url = get_storage().signed_url(config.VERIFICATION_BUCKET, path, config.SIGNED_URL_TTL_SECONDS)
    return {
        "url": url,
        "expires_in": config.SIGNED_URL_TTL_SECONDS,
        "file_name": row.get("file_name"),
        "mime_type": row.get("mime_type"),
    }
