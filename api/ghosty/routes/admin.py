import logging
from typing import Any

from fastapi import APIRouter, Depends, HTTPException

from .. import repo
from ..auth.admin_deps import AdminIdentity, require_admin
from ..http_helpers import require_query, require_uuid, sanitize_input
from ..schemas import AdminReportOut, AdminStats, AdminUserOut, AdminVerificationItem
from ..services import verification as verification_service
from ..services.state_machine import VERIFICATION_STATUSES

logger = logging.getLogger(__name__)

router = APIRouter()

USER_ACTIONS = ("restrict", "unrestrict", "approve")
USER_VERIFICATION_STATUSES = ("unverified", "pending", "verified", "rejected")
REPORT_STATUSES = ("pending", "reviewed", "resolved", "dismissed")


@router.get("/admin/verifications")
def admin_list_verifications(status: str | None = None, admin: AdminIdentity = Depends(require_admin)) -> dict[str, Any]:
    if status is not None and status not in VERIFICATION_STATUSES:
        raise HTTPException(status_code=400, detail="Invalid verification status")
    rows = repo.list_verification_files_admin(status)
    return {
        "success": True,
        "verifications": [AdminVerificationItem.model_validate(r).dump() for r in rows],
        "count": len(rows),
    }


@router.post("/admin/verifications")
def admin_review_verification(payload: dict[str, Any], admin: AdminIdentity = Depends(require_admin)) -> dict[str, Any]:
    verification_id = str(payload.get("verificationId") or "").strip()
    action = str(payload.get("action") or "").strip()
    if not verification_id or not action:
        raise HTTPException(status_code=400, detail="Missing required fields: action, verificationId")
    verification_id = require_uuid(verification_id, "verificationId")
    reason = sanitize_input(payload.get("reason")) or None

    row = verification_service.review_verification(
        verification_id=verification_id,
        action=action,
        admin_id=admin.user_id,
        reason=reason,
    )
    past = "approved" if action == "approve" else "rejected"
    return {
        "success": True,
        "message": f"Verification {past} successfully",
        "verification": AdminVerificationItem.model_validate(row).dump(),
    }


@router.get("/admin/verifications/document")
def admin_verification_document(verificationId: str | None = None, admin: AdminIdentity = Depends(require_admin)) -> dict[str, Any]:
    verification_id = require_uuid(require_query(verificationId, "verificationId"), "verificationId")
    out = verification_service.document_url(verification_id)
    logger.info(f"[admin] document url issued verification_id={verification_id} admin_id={admin.user_id}")
    return {
        "success": True,
        "url": out["url"],
        "expiresIn": out["expires_in"],
        "fileName": out["file_name"],
        "mimeType": out["mime_type"],
    }


@router.get("/admin/stats")
def admin_stats(admin: AdminIdentity = Depends(require_admin)) -> dict[str, Any]:
    return {"success": True, "stats": AdminStats.model_validate(repo.admin_stats()).dump()}


@router.get("/admin/users")
def admin_list_users(
    search: str | None = None,
    verificationStatus: str | None = None,
    page: int = 1,
    limit: int = 50,
    admin: AdminIdentity = Depends(require_admin),
) -> dict[str, Any]:
    if verificationStatus is not None and verificationStatus not in USER_VERIFICATION_STATUSES:
        raise HTTPException(status_code=400, detail="Invalid verification status")
    if page < 1 or limit < 1 or limit > 200:
        raise HTTPException(status_code=400, detail="Invalid pagination parameters")
    rows, total = repo.list_users_admin(
        search=(search or "").strip() or None,
        verification_status=verificationStatus,
        limit=limit,
        offset=(page - 1) * limit,
    )
    return {
        "success": True,
        "users": [AdminUserOut.model_validate(r).dump() for r in rows],
        "total": total,
        "page": page,
        "limit": limit,
    }


@router.patch("/admin/users")
def admin_update_user(payload: dict[str, Any], admin: AdminIdentity = Depends(require_admin)) -> dict[str, Any]:
    user_id = str(payload.get("userId") or "").strip()
    action = str(payload.get("action") or "").strip()
    notes = sanitize_input(payload.get("notes")) or None
    if not user_id or action not in USER_ACTIONS:
        raise HTTPException(status_code=400, detail="userId and a valid action (restrict, unrestrict, approve) are required")
    user_id = require_uuid(user_id, "userId")

    target = repo.get_user_by_id(user_id)
    if not target:
        raise HTTPException(status_code=404, detail="User not found")

    if action == "restrict":
        if target.get("is_admin"):
            raise HTTPException(status_code=403, detail="Cannot restrict admin users")
        repo.set_user_restricted(user_id, True)
        message = "User restricted successfully"
    elif action == "unrestrict":
        repo.set_user_restricted(user_id, False)
        message = "User unrestricted successfully"
    else:
        repo.set_user_verification_status(user_id, "verified")
        repo.set_profile_verified(user_id, True)
        message = "User approved successfully"

    repo.create_admin_action(
        admin_id=admin.user_id,
        action_type=f"user_{action}",
        target_user_id=user_id,
        details={"notes": notes},
    )
    logger.info(f"[admin] user {action} user_id={user_id} admin_id={admin.user_id}")
    return {"success": True, "message": message}


@router.get("/admin/reports")
def admin_list_reports(status: str | None = None, admin: AdminIdentity = Depends(require_admin)) -> dict[str, Any]:
    if status is not None and status not in REPORT_STATUSES:
        raise HTTPException(status_code=400, detail="Invalid report status")
    rows = repo.list_reports_admin(status)
    return {"success": True, "reports": [AdminReportOut.model_validate(r).dump() for r in rows], "count": len(rows)}


@router.patch("/admin/reports")
def admin_update_report(payload: dict[str, Any], admin: AdminIdentity = Depends(require_admin)) -> dict[str, Any]:
    report_id = str(payload.get("reportId") or "").strip()
    status = str(payload.get("status") or "").strip()
    if not report_id or status not in REPORT_STATUSES:
        raise HTTPException(status_code=400, detail="reportId and a valid status are required")
    report_id = require_uuid(report_id, "reportId")
    notes = sanitize_input(payload.get("adminNotes")) or None

    row = repo.update_report_status(report_id, status=status, admin_notes=notes, reviewed_by=admin.user_id)
    if not row:
        raise HTTPException(status_code=404, detail="Report not found")

    repo.create_admin_action(
        admin_id=admin.user_id,
        action_type=f"report_{status}",
        target_user_id=str(row.get("reported_user_id") or "") or None,
        details={"reportId": report_id, "adminNotes": notes},
    )
    logger.info(f"[admin] report {status} report_id={report_id} admin_id={admin.user_id}")
    return {"success": True, "message": "Report updated successfully", "report": {"id": str(row["id"]), "status": row["status"]}}
