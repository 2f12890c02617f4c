from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass

from fastapi import HTTPException, Request

from ghosty import repo
from ghosty.auth.security import decode_access_token

logger = logging.getLogger(__name__)

SESSION_COOKIE_NAME = "ghosty_session"
ADMIN_REQUIRED_DETAIL = "Admin access required"


@dataclass(frozen=True)
class AdminIdentity:
    user_id: str
    username: str | None
    email: str | None


def _extract_bearer(authorization: str | None) -> str | None:
    if not authorization:
        return None
    parts = authorization.split(" ", 1)
    if len(parts) != 2 or parts[0].lower() != "bearer" or not parts[1].strip():
        return None
    return parts[1].strip()


def token_from_request(request: Request) -> str | None:
    bearer = _extract_bearer(request.headers.get("Authorization"))
    if bearer:
        return bearer
    cookie = (request.cookies.get(SESSION_COOKIE_NAME) or "").strip()
    if cookie:
        return cookie
    header = (request.headers.get("X-Auth-Token") or "").strip()
    return header or None


def verify_admin_from_request(request: Request) -> AdminIdentity | None:
    """Resolve the admin behind a request, or None.

    The token must verify, carry ``isAdmin`` and belong to a user that is
    still flagged as admin.
    """
    token = token_from_request(request)
    if not token:
        return None
    try:
        payload = decode_access_token(token)
    except HTTPException:
        return None
    if payload.get("isAdmin") is not True:
        return None
    user_id = str(payload.get("userId") or payload.get("sub") or "").strip()
    try:
        uuid.UUID(user_id)
    except ValueError:
        return None
    user = repo.get_user_by_id(user_id)
    if not user or not bool(user.get("is_admin")):
        return None
    return AdminIdentity(
        user_id=str(user["id"]),
        username=user.get("username"),
        email=user.get("email"),
    )


def require_admin(request: Request) -> AdminIdentity:
    admin = verify_admin_from_request(request)
    if admin is None:
        client = request.client.host if request.client else "-"
        logger.warning(f"[AUTH_FAILURE] admin access denied path={request.url.path} client={client}")
        raise HTTPException(status_code=403, detail=ADMIN_REQUIRED_DETAIL)
    return admin

