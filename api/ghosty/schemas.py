from datetime import date, datetime
from typing import Annotated, Any

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field
from pydantic.alias_generators import to_camel


def _as_str(value: Any) -> str | None:
    return None if value is None else str(value)


IdStr = Annotated[str, BeforeValidator(_as_str)]
OptionalIdStr = Annotated[str | None, BeforeValidator(_as_str)]


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def dump(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True)


class AgeRange(CamelModel):
    min: int = 18
    max: int = 35


class Preferences(CamelModel):
    age_range: AgeRange = Field(default_factory=AgeRange)
    gender: list[str] = Field(default_factory=list)
    interests: list[str] = Field(default_factory=list)
    hopes: str = ""


class PublicProfile(CamelModel):
    id: IdStr
    user_id: IdStr
    anonymous_name: str
    avatar: str | None = None
    age: int | None = None
    gender: str | None = None
    university: str | None = None
    faculty: str | None = None
    bio: str | None = None
    interests: list[str] = Field(default_factory=list)
    preferences: Preferences = Field(default_factory=Preferences)
    is_verified: bool = False
    is_public: bool = True
    profile_completed: bool = False
    created_at: datetime | None = None

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "PublicProfile":
        return cls(
            id=row.get("id"),
            user_id=row.get("user_id"),
            anonymous_name=row.get("anonymous_name") or "",
            avatar=row.get("avatar"),
            age=row.get("age"),
            gender=row.get("gender"),
            university=row.get("university"),
            faculty=row.get("faculty"),
            bio=row.get("bio"),
            interests=list(row.get("interests") or []),
            preferences=Preferences(
                age_range=AgeRange(
                    min=row.get("preferences_age_min") or 18,
                    max=row.get("preferences_age_max") or 35,
                ),
                gender=list(row.get("preferences_gender") or []),
                interests=list(row.get("preferences_interests") or []),
                hopes=row.get("preferences_hopes") or "",
            ),
            is_verified=bool(row.get("is_verified")),
            is_public=row.get("is_public") is not False,
            profile_completed=bool(row.get("profile_completed")),
            created_at=row.get("created_at"),
        )


class EditableProfile(PublicProfile):
    """Owner view used by the edit form; includes private fields."""

    real_name: str | None = None
    date_of_birth: date | None = None
    full_name: str | None = None
    university_name: str | None = None

    @classmethod
    def from_rows(cls, profile: dict[str, Any], user: dict[str, Any] | None) -> "EditableProfile":
        base = PublicProfile.from_row(profile).model_dump()
        user = user or {}
        return cls(
            **base,
            real_name=profile.get("real_name"),
            date_of_birth=profile.get("date_of_birth"),
            full_name=user.get("full_name"),
            university_name=user.get("university_name"),
        )


class MatchUser(CamelModel):
    id: IdStr
    user_id: IdStr
    anonymous_name: str
    avatar: str
    age: int
    gender: str
    university: str
    faculty: str
    bio: str
    interests: list[str]
    is_verified: bool
    verification_status: str


class MatchItem(CamelModel):
    match_id: IdStr
    matched_at: datetime | None = None
    user: MatchUser


class VerificationItem(CamelModel):
    id: IdStr
    file_type: str
    status: str
    created_at: datetime | None = None
    reviewed_at: datetime | None = None
    rejection_reason: str | None = None


class AdminVerificationItem(VerificationItem):
    user_id: IdStr
    file_name: str | None = None
    file_size: int | None = None
    mime_type: str | None = None
    reviewed_by: OptionalIdStr = None
    username: str | None = None
    email: str | None = None
    anonymous_name: str | None = None
    university: str | None = None
    faculty: str | None = None
    verification_status: str | None = None


class ChatMessageOut(CamelModel):
    id: IdStr
    conversation_id: IdStr
    sender_id: IdStr
    receiver_id: IdStr
    message: str
    is_read: bool = False
    read_at: datetime | None = None
    created_at: datetime | None = None


class BlockOut(CamelModel):
    id: IdStr
    blocker_id: IdStr
    blocked_id: IdStr
    reason: str | None = None
    created_at: datetime | None = None
    blocked_username: str | None = None
    blocked_anonymous_name: str | None = None
    blocked_gender: str | None = None


class ReportOut(CamelModel):
    id: IdStr
    reporter_id: IdStr
    reported_user_id: IdStr
    reason: str
    description: str | None = None
    status: str
    created_at: datetime | None = None
    reviewed_at: datetime | None = None


class AdminReportOut(ReportOut):
    admin_notes: str | None = None
    reviewed_by: OptionalIdStr = None
    reporter_username: str | None = None
    reported_username: str | None = None
    reported_report_count: int | None = None
    reported_is_restricted: bool | None = None


class SwipeOut(CamelModel):
    id: IdStr
    user_id: IdStr
    target_user_id: IdStr
    action: str
    created_at: datetime | None = None


class AdminUserOut(CamelModel):
    id: IdStr
    username: str | None = None
    email: str | None = None
    email_verified: bool = False
    registration_type: str | None = None
    verification_status: str
    is_admin: bool = False
    is_restricted: bool = False
    report_count: int = 0
    created_at: datetime | None = None
    anonymous_name: str | None = None
    university: str | None = None
    faculty: str | None = None


class AdminStats(CamelModel):
    total_users: int
    verified_users: int
    pending_verifications: int
    restricted_users: int
    total_reports: int
    active_chats: int
