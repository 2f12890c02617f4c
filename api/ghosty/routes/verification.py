from typing import Any

from fastapi import APIRouter, File, Form, HTTPException, UploadFile

from ..http_helpers import require_query, require_uuid
from ..schemas import VerificationItem
from ..services import verification as verification_service

router = APIRouter()


@router.post("/verification", status_code=201)
async def submit_verification(
    userId: str | None = Form(default=None),
    fileType: str | None = Form(default=None),
    file: UploadFile | None = File(default=None),
) -> dict[str, Any]:
    if not userId or not fileType or file is None:
        raise HTTPException(status_code=400, detail="User ID, file type, and file are required")
    user_id = require_uuid(userId, "User ID")

    data = await file.read()
    row = verification_service.submit_verification(
        user_id=user_id,
        file_type=fileType,
        file_name=file.filename,
        content_type=file.content_type,
        data=data,
    )
    return {
        "success": True,
        "message": "Verification document uploaded successfully! Your request is pending review.",
        "verification": VerificationItem.model_validate(row).dump(),
    }


@router.get("/verification")
def get_verification_status(userId: str | None = None) -> dict[str, Any]:
    user_id = require_uuid(require_query(userId, "User ID"), "User ID")
    result = verification_service.verification_status(user_id)
    return {
        "verifications": [VerificationItem.model_validate(r).dump() for r in result["verifications"]],
        "isVerified": result["is_verified"],
    }
