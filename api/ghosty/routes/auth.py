import logging
from datetime import datetime, timezone
from typing import Any

from fastapi import APIRouter, HTTPException
from fastapi.responses import JSONResponse, RedirectResponse

from .. import config, repo
from ..auth.security import create_access_token, create_activation_token, hash_password, verify_password
from ..http_helpers import (
    SIMPLE_GENDERS,
    normalize_email,
    password_problem,
    sanitize_input,
    validate_email,
    validate_username,
)
from ..services import mailer
from ..services.anonymous_identity import generate_avatar

logger = logging.getLogger(__name__)

router = APIRouter()


def _user_out(user: dict[str, Any]) -> dict[str, Any]:
    return {
        "id": str(user["id"]),
        "username": user.get("username"),
        "email": user.get("email"),
        "emailVerified": bool(user.get("email_verified")),
        "registrationType": user.get("registration_type"),
        "verificationStatus": user.get("verification_status"),
        "fullName": user.get("full_name"),
        "birthday": user.get("birthday"),
        "gender": user.get("gender"),
        "universityName": user.get("university_name"),
        "faculty": user.get("faculty"),
        "reportCount": int(user.get("report_count") or 0),
        "isRestricted": bool(user.get("is_restricted")),
        "isAdmin": bool(user.get("is_admin")),
        "createdAt": user.get("created_at"),
    }


def _activation_redirect(path_and_query: str) -> RedirectResponse:
    return RedirectResponse(url=f"{config.APP_URL}{path_and_query}", status_code=302)


def _as_aware(value: Any) -> datetime | None:
    if value is None:
        return None
    if isinstance(value, str):
        value = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value


@router.post("/auth/register", status_code=201)
def register(payload: dict[str, Any]) -> Any:
    raw_email = payload.get("email")
    password = payload.get("password")
    if not raw_email or not password:
        raise HTTPException(status_code=400, detail="Email and password are required")

    email = normalize_email(str(raw_email))
    if not validate_email(email):
        raise HTTPException(status_code=400, detail="Invalid email format")
    problem = password_problem(str(password))
    if problem:
        raise HTTPException(status_code=400, detail=problem)

    existing = repo.get_user_by_email(email)
    if existing:
        if existing.get("email_verified"):
            raise HTTPException(status_code=409, detail="An account with this email already exists")
        token, expires_at = create_activation_token()
        repo.set_activation_token(str(existing["id"]), token, expires_at)
        try:
            mailer.send_activation_email(email, token)
        except mailer.EmailDeliveryError as exc:
            logger.error(f"[auth] activation resend failed email={email} err={exc}")
            raise HTTPException(status_code=500, detail="Failed to send activation email") from exc
        logger.info(f"[auth] activation resent user_id={existing['id']}")
        return JSONResponse(
            status_code=200,
            content={"message": "Activation email resent. Please check your inbox.", "userId": str(existing["id"])},
        )

    token, expires_at = create_activation_token()
    user = repo.create_user(email, hash_password(str(password)), token, expires_at)
    if not user:
        # Lost a race against a concurrent registration of the same email.
        raise HTTPException(status_code=409, detail="An account with this email already exists")
    user_id = str(user["id"])
    logger.info(f"[auth] registered user_id={user_id}")

    try:
        mailer.send_activation_email(email, token)
    except mailer.EmailDeliveryError as exc:
        logger.error(f"[auth] activation email failed user_id={user_id} err={exc}")
        return {
            "message": "Account created but failed to send activation email. Please contact support.",
            "userId": user_id,
        }
    return {
        "message": "Registration successful! Please check your email to activate your account.",
        "userId": user_id,
    }


@router.get("/auth/activate")
def activate(token: str | None = None) -> RedirectResponse:
    if not token:
        return _activation_redirect("/register?error=invalid_token")
    try:
        user = repo.get_user_by_activation_token(token)
        if not user:
            return _activation_redirect("/register?error=invalid_token")

        expires_at = _as_aware(user.get("activation_token_expires"))
        if expires_at and expires_at < datetime.now(timezone.utc):
            return _activation_redirect("/register?error=token_expired")

        if user.get("email_verified"):
            return _activation_redirect("/register?success=already_verified")

        if not repo.activate_user(str(user["id"])):
            logger.error(f"[auth] activation update failed user_id={user['id']}")
            return _activation_redirect("/register?error=activation_failed")
    except Exception:
        logger.exception("[auth] activation error")
        return _activation_redirect("/register?error=server_error")

    logger.info(f"[auth] activated user_id={user['id']}")
    return _activation_redirect(f"/register/profile?userId={user['id']}&verified=true")


@router.post("/auth/login")
def login(payload: dict[str, Any]) -> dict[str, Any]:
    identifier = str(payload.get("email") or payload.get("username") or "").strip()
    password = str(payload.get("password") or "")
    if not identifier or not password:
        raise HTTPException(status_code=400, detail="Email or username and password are required")

    if "@" in identifier:
        user = repo.get_user_by_email(normalize_email(identifier))
    else:
        user = repo.get_user_by_username(identifier)
    if not user or not verify_password(password, str(user.get("password_hash") or "")):
        logger.info(f"[auth] login failed identifier={identifier}")
        raise HTTPException(status_code=401, detail="Invalid credentials")

    if user.get("is_restricted"):
        raise HTTPException(status_code=403, detail="Your account has been restricted. Please contact support.")
    if user.get("registration_type") == "email" and not user.get("email_verified"):
        raise HTTPException(status_code=403, detail="Please activate your account via the email link before logging in.")

    token = create_access_token(
        user_id=str(user["id"]),
        username=user.get("username"),
        verification_status=str(user.get("verification_status") or "unverified"),
        is_admin=bool(user.get("is_admin")),
        registration_type=str(user.get("registration_type") or "email"),
    )
    logger.info(f"[auth] login ok user_id={user['id']}")
    return {"success": True, "message": "Login successful", "token": token, "user": _user_out(user)}


@router.post("/register/simple", status_code=201)
def register_simple(payload: dict[str, Any]) -> dict[str, Any]:
    username = validate_username(sanitize_input(payload.get("username")))
    password = str(payload.get("password") or "")
    if len(password) < 6:
        raise HTTPException(status_code=400, detail="Password must be at least 6 characters")
    gender = str(payload.get("gender") or "")
    if gender not in SIMPLE_GENDERS:
        raise HTTPException(status_code=400, detail="Please select your gender")

    if repo.get_user_by_username(username):
        raise HTTPException(status_code=409, detail="Username already taken")

    user = repo.create_simple_user(username, hash_password(password), gender)
    if not user:
        raise HTTPException(status_code=409, detail="Username already taken")
    user_id = str(user["id"])

    try:
        profile = repo.create_profile(
            user_id,
            {
                "anonymous_name": username,
                "avatar": generate_avatar(gender),
                "gender": gender,
                "is_public": True,
                "is_verified": False,
            },
        )
    except Exception:
        logger.exception(f"[auth] simple registration profile insert failed user_id={user_id}")
        profile = None
    if not profile:
        logger.warning(f"[auth] simple registration profile not created user_id={user_id}")

    logger.info(f"[auth] simple registration user_id={user_id}")
    return {
        "message": "Account created successfully!",
        "userId": user_id,
        "username": user.get("username"),
        "registrationType": "simple",
    }
