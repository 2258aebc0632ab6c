from datetime import datetime, timezone
from typing import Any, Optional

from pydantic import BaseModel, field_validator

from .models import CLUB_ROLES


def _naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    # Timestamps are stored as naive UTC.
    if value is not None and value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def _required_text(value: str) -> str:
    cleaned = value.strip() if isinstance(value, str) else ""
    if not cleaned:
        raise ValueError("must not be empty")
    return cleaned


class UserOut(BaseModel):
    id: int
    email: str
    name: str
    global_role: str
    department: Optional[str] = None
    academic_year: Optional[str] = None
    created_at: datetime


class RegisterRequest(BaseModel):
    email: str
    password: str
    name: str

    @field_validator("email", "name")
    @classmethod
    def must_not_be_empty(cls, value: str):
        return _required_text(value)

    @field_validator("password")
    @classmethod
    def password_not_blank(cls, value: str):
        # Hashed exactly as typed; login compares the raw value.
        if not value.strip():
            raise ValueError("must not be empty")
        return value


class LoginRequest(BaseModel):
    email: str
    password: str


class TokenOut(BaseModel):
    token: str
    user: UserOut


class ProfileUpdate(BaseModel):
    name: Optional[str] = None
    department: Optional[str] = None
    academic_year: Optional[str] = None


class MembershipOut(BaseModel):
    id: int
    user_id: int
    club_id: int
    club_role: str
    created_at: datetime
    club_name: Optional[str] = None


class ActivitySummary(BaseModel):
    events_registered: int
    events_organized: int
    events_approved: int


class ProfileOut(UserOut):
    memberships: list[MembershipOut]
    activity_summary: ActivitySummary


class ClubCreate(BaseModel):
    name: str
    description: Optional[str] = None
    head_user_id: Optional[int] = None

    @field_validator("name")
    @classmethod
    def must_not_be_empty(cls, value: str):
        return _required_text(value)


class ClubOut(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    created_at: datetime
    member_count: int = 0


class RosterEntry(BaseModel):
    membership_id: int
    user_id: int
    name: str
    email: str
    club_role: str
    department: Optional[str] = None
    academic_year: Optional[str] = None


class RoleRequestOut(BaseModel):
    id: int
    user_id: int
    club_id: int
    requested_role: str
    status: str
    created_at: datetime
    reviewed_at: Optional[datetime] = None
    reviewed_by_id: Optional[int] = None


class RoleRequestReview(BaseModel):
    approve: bool


class MemberRoleUpdate(BaseModel):
    role: str

    @field_validator("role")
    @classmethod
    def validate_role(cls, value: str):
        normalized = value.strip().upper()
        if normalized not in CLUB_ROLES:
            raise ValueError("role must be MEMBER, ORGANIZER or HEAD")
        return normalized


class EventCreate(BaseModel):
    title: str
    description: Optional[str] = None
    location: Optional[str] = None
    start_date: datetime
    end_date: datetime
    registration_deadline: Optional[datetime] = None
    min_team_size: Optional[int] = None
    max_team_size: Optional[int] = None
    fee: Optional[float] = None
    budget_estimate: Optional[float] = None
    club_ids: list[int]

    @field_validator("title")
    @classmethod
    def title_not_empty(cls, value: str):
        return _required_text(value)

    @field_validator("start_date", "end_date", "registration_deadline")
    @classmethod
    def normalize_dates(cls, value):
        return _naive_utc(value)

    @field_validator("club_ids")
    @classmethod
    def needs_a_club(cls, value: list[int]):
        if not value:
            raise ValueError("must contain at least one club")
        return list(dict.fromkeys(value))


class EventOut(BaseModel):
    id: int
    title: str
    description: Optional[str] = None
    location: Optional[str] = None
    start_date: datetime
    end_date: datetime
    registration_deadline: Optional[datetime] = None
    min_team_size: Optional[int] = None
    max_team_size: Optional[int] = None
    fee: Optional[float] = None
    budget_estimate: Optional[float] = None
    status: str
    rejection_reason: Optional[str] = None
    created_by_id: int
    created_at: datetime
    club_ids: list[int] = []


class ReviewRequest(BaseModel):
    approve: bool
    reason: Optional[str] = None


class ResourceCreate(BaseModel):
    name: str
    type: str = "ROOM"
    capacity: Optional[int] = None
    requires_approval: bool = True
    auto_approve: bool = False
    active: bool = True

    @field_validator("name")
    @classmethod
    def must_not_be_empty(cls, value: str):
        return _required_text(value)


class ResourceUpdate(BaseModel):
    type: Optional[str] = None
    capacity: Optional[int] = None
    requires_approval: Optional[bool] = None
    auto_approve: Optional[bool] = None
    active: Optional[bool] = None


class ResourceOut(BaseModel):
    id: int
    name: str
    type: str
    capacity: Optional[int] = None
    requires_approval: bool
    auto_approve: bool
    active: bool


class BookingCreate(BaseModel):
    event_id: int
    resource_id: int
    start_time: datetime
    end_time: datetime

    @field_validator("start_time", "end_time")
    @classmethod
    def normalize_times(cls, value):
        return _naive_utc(value)


class BookingOut(BaseModel):
    id: int
    resource_id: int
    event_id: int
    start_time: datetime
    end_time: datetime
    approved: bool
    rejected: bool
    rejection_reason: Optional[str] = None
    created_at: datetime


class PendingBookingOut(BookingOut):
    event_title: str
    resource_name: str


class EventDetail(EventOut):
    bookings: list[BookingOut] = []
    registration_count: int = 0


class RegistrationCreate(BaseModel):
    event_id: int


class RegistrationOut(BaseModel):
    id: int
    event_id: int
    user_id: int
    department: Optional[str] = None
    academic_year: Optional[str] = None
    created_at: datetime
    event: Optional[EventOut] = None


class NotificationOut(BaseModel):
    id: int
    type: str
    category: str
    message: str
    read: bool
    read_at: Optional[datetime] = None
    created_at: datetime


class MarkAllRead(BaseModel):
    before: Optional[datetime] = None

    @field_validator("before")
    @classmethod
    def normalize_before(cls, value):
        return _naive_utc(value)


class AuditLogOut(BaseModel):
    id: int
    user_id: int
    user_email: Optional[str] = None
    action: str
    entity_type: str
    entity_id: int
    metadata: dict[str, Any] = {}
    created_at: datetime


class PendingAttention(BaseModel):
    pending_event_approvals: int
    pending_bookings: int
    clubs_inactive_60_days: int


class NamedCount(BaseModel):
    id: int
    name: str
    count: int


class AnalyticsSummary(BaseModel):
    events_per_club: list[NamedCount]
    bookings_per_resource: list[NamedCount]
    registrations: int
