import re
import uuid
from datetime import date, datetime
from typing import Any

from fastapi import HTTPException

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
USERNAME_RE = re.compile(r"^[a-zA-Z0-9_]{3,20}$")

PROFILE_GENDERS = ("Male", "Female", "Non-binary", "Other")
SIMPLE_GENDERS = ("Male", "Female")

BIO_MIN_CHARS = 20
BIO_MAX_CHARS = 500
MIN_AGE = 18
MAX_AGE = 100


def sanitize_input(value: Any) -> str:
    """Trim and drop angle brackets from free text."""
    if value is None:
        return ""
    return re.sub(r"[<>]", "", str(value)).strip()


def normalize_email(email: str) -> str:
    return sanitize_input(email).lower()


def normalize_username(username: str) -> str:
    return username.strip().lower()


def validate_email(email: str) -> bool:
    return bool(EMAIL_RE.match(email)) and len(email) <= 254


def password_problem(password: str) -> str | None:
    if len(password) < 8:
        return "Password must be at least 8 characters long"
    if not re.search(r"[A-Z]", password):
        return "Password must contain at least one uppercase letter"
    if not re.search(r"[a-z]", password):
        return "Password must contain at least one lowercase letter"
    if not re.search(r"[0-9]", password):
        return "Password must contain at least one number"
    return None


def validate_username(username: str) -> str:
    if not USERNAME_RE.fullmatch(username.strip()):
        raise HTTPException(
            status_code=400,
            detail="Username must be 3-20 characters and contain only letters, numbers and underscores",
        )
    return normalize_username(username)


def parse_date(value: Any) -> date | None:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    raw = str(value).strip()
    try:
        return date.fromisoformat(raw[:10])
    except ValueError:
        return None


def calculate_age(birth: date, today: date | None = None) -> int:
    today = today or date.today()
    age = today.year - birth.year
    if (today.month, today.day) < (birth.month, birth.day):
        age -= 1
    return age


def date_of_birth_problem(birth: date | None, today: date | None = None) -> str | None:
    if birth is None:
        return "Invalid date of birth"
    age = calculate_age(birth, today)
    if age < MIN_AGE:
        return "You must be at least 18 years old to use Ghosty"
    if age > MAX_AGE:
        return "Invalid date of birth"
    return None


def validate_age_range(age_min: int, age_max: int) -> bool:
    return MIN_AGE <= age_min <= age_max <= MAX_AGE


def as_string_list(value: Any) -> list[str]:
    if value is None:
        return []
    if not isinstance(value, list):
        raise HTTPException(status_code=400, detail="Expected an array of strings")
    out: list[str] = []
    for item in value:
        s = sanitize_input(item)
        if s:
            out.append(s)
    return out


def as_int(value: Any, default: int) -> int:
    if value is None or value == "":
        return default
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise HTTPException(status_code=400, detail="Invalid age preference range") from exc


def parse_profile_preferences(payload: dict[str, Any]) -> dict[str, Any]:
    """Read the optional preference block shared by create and edit."""
    prefs = payload.get("preferences") or {}
    if not isinstance(prefs, dict):
        raise HTTPException(status_code=400, detail="preferences must be an object")
    age_range = prefs.get("ageRange") or {}
    if not isinstance(age_range, dict):
        raise HTTPException(status_code=400, detail="Invalid age preference range")
    age_min = as_int(age_range.get("min"), MIN_AGE)
    age_max = as_int(age_range.get("max"), 35)
    if not validate_age_range(age_min, age_max):
        raise HTTPException(status_code=400, detail="Invalid age preference range")
    return {
        "preferences_age_min": age_min,
        "preferences_age_max": age_max,
        "preferences_gender": as_string_list(prefs.get("gender")),
        "preferences_interests": as_string_list(prefs.get("interests")),
        "preferences_hopes": sanitize_input(prefs.get("hopes")),
    }


def validate_bio(bio: str) -> None:
    if not (BIO_MIN_CHARS <= len(bio) <= BIO_MAX_CHARS):
        raise HTTPException(status_code=400, detail="Bio must be between 20 and 500 characters")


def validate_profile_gender(gender: str) -> None:
    if gender not in PROFILE_GENDERS:
        raise HTTPException(status_code=400, detail="Invalid gender selection")


def require_query(value: str | None, name: str) -> str:
    v = (value or "").strip()
    if not v:
        raise HTTPException(status_code=400, detail=f"{name} is required")
    return v


def require_uuid(value: str | None, name: str) -> str:
    """Reject ids the database would fail to cast to uuid."""
    v = str(value or "").strip()
    try:
        return str(uuid.UUID(v))
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=f"Invalid {name}") from exc
