from datetime import datetime, timezone
from typing import Any, Callable

from ghosty import repo

PLACEHOLDER_NAME = "Anonymous"
PLACEHOLDER_TEXT = "Not specified"
PLACEHOLDER_UNIVERSITY = "University"
PLACEHOLDER_BIO = "No bio yet"

_NEVER = datetime.min.replace(tzinfo=timezone.utc)


def match_avatar(gender: str | None) -> str:
    if not gender:
        return "👤"
    g = gender.strip().lower()
    if g == "male":
        return "🧑"
    if g == "female":
        return "👩"
    return "🙋"


def other_user_id(match: dict[str, Any], user_id: str) -> str:
    if str(match.get("user1_id")) == str(user_id):
        return str(match.get("user2_id"))
    return str(match.get("user1_id"))


def build_match_user(other_id: str, profile: dict[str, Any] | None, user: dict[str, Any] | None) -> dict[str, Any]:
    profile = profile or {}
    user = user or {}
    name = profile.get("anonymous_name") or user.get("username") or PLACEHOLDER_NAME
    user_status = user.get("verification_status")
    return {
        "id": other_id,
        "user_id": other_id,
        "anonymous_name": name,
        "avatar": match_avatar(profile.get("gender")),
        "age": profile.get("age") or 0,
        "gender": profile.get("gender") or PLACEHOLDER_TEXT,
        "university": profile.get("university") or PLACEHOLDER_UNIVERSITY,
        "faculty": profile.get("faculty") or PLACEHOLDER_TEXT,
        "bio": profile.get("bio") or PLACEHOLDER_BIO,
        "interests": list(profile.get("interests") or []),
        "is_verified": bool(profile.get("is_verified")) or user_status == "verified",
        "verification_status": user_status or "unverified",
    }


def assemble_matches(
    user_id: str,
    matches: list[dict[str, Any]],
    profiles: list[dict[str, Any]],
    users: list[dict[str, Any]],
) -> list[dict[str, Any]]:
    profile_by_user = {str(p.get("user_id")): p for p in profiles}
    user_by_id = {str(u.get("id")): u for u in users}
    out = []
    for m in matches:
        oid = other_user_id(m, user_id)
        out.append(
            {
                "match_id": str(m.get("id")),
                "matched_at": m.get("matched_at"),
                "user": build_match_user(oid, profile_by_user.get(oid), user_by_id.get(oid)),
            }
        )
    return out


def list_matches(
    user_id: str,
    *,
    fetch_matches: Callable[[str], list[dict[str, Any]]] | None = None,
    fetch_profiles: Callable[[list[str]], list[dict[str, Any]]] | None = None,
    fetch_users: Callable[[list[str]], list[dict[str, Any]]] | None = None,
) -> list[dict[str, Any]]:
    """Matches for ``user_id`` newest first, each with the other side's public card."""
    fetch_matches = fetch_matches or repo.list_matches_for_user
    fetch_profiles = fetch_profiles or repo.get_profiles_by_user_ids
    fetch_users = fetch_users or repo.get_users_by_ids

    matches = fetch_matches(user_id)
    if not matches:
        return []
    # rows without matched_at go last
    matches = sorted(matches, key=lambda m: m.get("matched_at") or _NEVER, reverse=True)
    other_ids = sorted({other_user_id(m, user_id) for m in matches})
    profiles = fetch_profiles(other_ids)
    users = fetch_users(other_ids)
    return assemble_matches(user_id, matches, profiles, users)
