import logging
from typing import Any

from fastapi import APIRouter, HTTPException

from .. import config, repo
from ..http_helpers import (
    as_string_list,
    calculate_age,
    date_of_birth_problem,
    parse_date,
    parse_profile_preferences,
    require_query,
    require_uuid,
    sanitize_input,
    validate_bio,
    validate_profile_gender,
)
from ..schemas import EditableProfile, PublicProfile
from ..services.anonymous_identity import AnonymousNameExhausted, generate_avatar, reserve_anonymous_name
from ..services.compensation import CompensationLog

logger = logging.getLogger(__name__)

router = APIRouter()

_REQUIRED_CREATE_FIELDS = ("userId", "realName", "dateOfBirth", "gender", "university", "faculty", "bio")
_USER_DETAIL_FIELDS = ("full_name", "birthday", "gender", "university_name", "faculty")


def _insert_with_generated_name(user_id: str, fields: dict[str, Any]) -> dict[str, Any]:
    def insert(name: str) -> dict[str, Any] | None:
        row = repo.create_profile(user_id, {**fields, "anonymous_name": name})
        if row is None and repo.get_profile_by_user_id(user_id):
            raise HTTPException(status_code=409, detail="Profile already exists for this user")
        return row

    try:
        return reserve_anonymous_name(
            repo.anonymous_name_exists,
            insert,
            max_attempts=config.ANONYMOUS_NAME_MAX_ATTEMPTS,
        )
    except AnonymousNameExhausted as exc:
        logger.error(f"[profile] anonymous name generation exhausted user_id={user_id}")
        raise HTTPException(status_code=500, detail=str(exc)) from exc


@router.post("/profile", status_code=201)
def create_profile(payload: dict[str, Any]) -> dict[str, Any]:
    if any(not payload.get(k) for k in _REQUIRED_CREATE_FIELDS):
        raise HTTPException(status_code=400, detail="All required fields must be provided")

    user_id = require_uuid(str(payload["userId"]), "User ID")
    user = repo.get_user_by_id(user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    if not user.get("email_verified"):
        raise HTTPException(status_code=403, detail="Email must be verified before creating profile")
    if repo.get_profile_by_user_id(user_id):
        raise HTTPException(status_code=409, detail="Profile already exists for this user")

    birth = parse_date(payload.get("dateOfBirth"))
    problem = date_of_birth_problem(birth)
    if problem:
        raise HTTPException(status_code=400, detail=problem)

    gender = str(payload.get("gender"))
    validate_profile_gender(gender)

    bio = sanitize_input(payload.get("bio"))
    validate_bio(bio)

    fields: dict[str, Any] = {
        "avatar": generate_avatar(gender),
        "real_name": sanitize_input(payload.get("realName")),
        "date_of_birth": birth,
        "age": calculate_age(birth),
        "gender": gender,
        "university": sanitize_input(payload.get("university")),
        "faculty": sanitize_input(payload.get("faculty")),
        "bio": bio,
        "interests": as_string_list(payload.get("interests")),
        "is_public": True,
        "is_verified": False,
        "profile_completed": True,
        **parse_profile_preferences(payload),
    }
    row = _insert_with_generated_name(user_id, fields)
    logger.info(f"[profile] created user_id={user_id} anonymous_name={row.get('anonymous_name')}")
    return {"message": "Profile created successfully!", "profile": PublicProfile.from_row(row).dump()}


@router.get("/profile")
def get_own_profile(userId: str | None = None) -> dict[str, Any]:
    user_id = require_uuid(require_query(userId, "User ID"), "User ID")
    row = repo.get_profile_by_user_id(user_id)
    if not row:
        raise HTTPException(status_code=404, detail="Profile not found")
    return {"profile": PublicProfile.from_row(row).dump()}


@router.get("/profile/edit")
def get_profile_for_edit(userId: str | None = None) -> dict[str, Any]:
    user_id = require_uuid(require_query(userId, "User ID"), "User ID")
    user = repo.get_user_by_id(user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    profile = repo.get_profile_by_user_id(user_id)
    if not profile:
        return {"user": {"id": str(user["id"]), "fullName": user.get("full_name")}, "profile": None}
    return {
        "user": {"id": str(user["id"]), "fullName": user.get("full_name")},
        "profile": EditableProfile.from_rows(profile, user).dump(),
    }


@router.put("/profile/edit")
def update_profile(payload: dict[str, Any]) -> dict[str, Any]:
    user_id = str(payload.get("userId") or "").strip()
    if not user_id:
        raise HTTPException(status_code=400, detail="User ID is required")
    user_id = require_uuid(user_id, "User ID")
    user = repo.get_user_by_id(user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    existing = repo.get_profile_by_user_id(user_id)

    user_fields = {k: user.get(k) for k in _USER_DETAIL_FIELDS}
    profile_fields: dict[str, Any] = {}

    if "fullName" in payload:
        user_fields["full_name"] = sanitize_input(payload.get("fullName")) or None
        profile_fields["real_name"] = user_fields["full_name"]
    if "birthday" in payload:
        birth = parse_date(payload.get("birthday"))
        problem = date_of_birth_problem(birth)
        if problem:
            raise HTTPException(status_code=400, detail=problem)
        user_fields["birthday"] = birth
        profile_fields["date_of_birth"] = birth
        profile_fields["age"] = calculate_age(birth)
    if "gender" in payload:
        gender = str(payload.get("gender") or "")
        validate_profile_gender(gender)
        user_fields["gender"] = gender
        profile_fields["gender"] = gender
    if "universityName" in payload:
        user_fields["university_name"] = sanitize_input(payload.get("universityName")) or None
        profile_fields["university"] = user_fields["university_name"]
    if "faculty" in payload:
        user_fields["faculty"] = sanitize_input(payload.get("faculty")) or None
        profile_fields["faculty"] = user_fields["faculty"]
    if "bio" in payload:
        bio = sanitize_input(payload.get("bio"))
        validate_bio(bio)
        profile_fields["bio"] = bio
    if "interests" in payload:
        profile_fields["interests"] = as_string_list(payload.get("interests"))
    if "preferences" in payload:
        profile_fields.update(parse_profile_preferences(payload))
    if "isPublic" in payload:
        profile_fields["is_public"] = bool(payload.get("isPublic"))
    if payload.get("avatar"):
        profile_fields["avatar"] = sanitize_input(payload.get("avatar"))

    new_name = sanitize_input(payload.get("anonymousName"))
    if new_name and (not existing or new_name != existing.get("anonymous_name")):
        if repo.anonymous_name_exists(new_name):
            raise HTTPException(status_code=409, detail="Anonymous name already taken")
        profile_fields["anonymous_name"] = new_name

    previous = {k: user.get(k) for k in _USER_DETAIL_FIELDS}
    steps = CompensationLog("profile")
    if not repo.update_user_details(user_id, **user_fields):
        raise HTTPException(status_code=500, detail="Failed to update user data")
    steps.record("user", lambda: repo.update_user_details(user_id, **previous))

    try:
        if existing:
            row = repo.update_profile(user_id, profile_fields)
        elif "anonymous_name" in profile_fields:
            row = repo.create_profile(user_id, {"avatar": generate_avatar(user_fields["gender"]), **profile_fields})
        else:
            row = _insert_with_generated_name(
                user_id,
                {"avatar": generate_avatar(user_fields["gender"]), **profile_fields},
            )
    except HTTPException:
        steps.rollback()
        raise
    except Exception as exc:
        logger.error(f"[profile] profile write failed user_id={user_id} err={exc}")
        steps.rollback()
        raise HTTPException(status_code=500, detail="Failed to update profile data") from exc

    if row is None:
        steps.rollback()
        raise HTTPException(status_code=409, detail="Anonymous name already taken")

    logger.info(f"[profile] updated user_id={user_id} fields={sorted(profile_fields)}")
    return {
        "success": True,
        "message": "Profile updated successfully",
        "profile": EditableProfile.from_rows(row, {**user, **user_fields}).dump(),
    }


@router.get("/profile/{user_id}")
def get_public_profile(user_id: str) -> dict[str, Any]:
    user_id = require_uuid(user_id, "User ID")
    if not repo.get_user_by_id(user_id):
        raise HTTPException(status_code=404, detail="User not found")
    row = repo.get_profile_by_user_id(user_id)
    if not row or row.get("is_public") is False:
        raise HTTPException(status_code=404, detail="Profile not found")
    return {"profile": PublicProfile.from_row(row).dump()}
