import json
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from .models import AuditLog, Booking, Club, Event, EventClub, Membership, Registration, User
from .schemas import (
    AuditLogOut,
    BookingOut,
    ClubOut,
    EventDetail,
    EventOut,
    MembershipOut,
    RegistrationOut,
)


def event_club_ids(db: Session, event_id: int) -> list[int]:
    return list(
        db.execute(
            select(EventClub.club_id).where(EventClub.event_id == event_id).order_by(EventClub.club_id)
        )
        .scalars()
        .all()
    )


def serialize_event(db: Session, event: Event) -> EventOut:
    out = EventOut.model_validate(event, from_attributes=True)
    out.club_ids = event_club_ids(db, event.id)
    return out


def serialize_booking(booking: Booking) -> BookingOut:
    return BookingOut.model_validate(booking, from_attributes=True)


def event_detail(db: Session, event: Event) -> EventDetail:
    bookings = (
        db.execute(
            select(Booking).where(Booking.event_id == event.id).order_by(Booking.start_time.asc())
        )
        .scalars()
        .all()
    )
    registration_count = (
        db.execute(
            select(func.count(Registration.id)).where(Registration.event_id == event.id)
        ).scalar()
        or 0
    )
    base = serialize_event(db, event)
    return EventDetail(
        **base.model_dump(),
        bookings=[serialize_booking(b) for b in bookings],
        registration_count=registration_count,
    )


def club_summary(db: Session, club: Club) -> ClubOut:
    member_count = (
        db.execute(
            select(func.count(Membership.id)).where(Membership.club_id == club.id)
        ).scalar()
        or 0
    )
    return ClubOut(
        id=club.id,
        name=club.name,
        description=club.description,
        created_at=club.created_at,
        member_count=member_count,
    )


def serialize_membership(membership: Membership, club: Optional[Club] = None) -> MembershipOut:
    out = MembershipOut.model_validate(membership, from_attributes=True)
    if club is not None:
        out.club_name = club.name
    return out


def serialize_registration(
    db: Session, registration: Registration, event: Optional[Event] = None
) -> RegistrationOut:
    out = RegistrationOut.model_validate(registration, from_attributes=True)
    if event is not None:
        out.event = serialize_event(db, event)
    return out


def serialize_audit_log(log: AuditLog, user: Optional[User] = None) -> AuditLogOut:
    try:
        metadata = json.loads(log.details) if log.details else {}
    except ValueError:
        metadata = {}
    return AuditLogOut(
        id=log.id,
        user_id=log.user_id,
        user_email=user.email if user else None,
        action=log.action,
        entity_type=log.entity_type,
        entity_id=log.entity_id,
        metadata=metadata,
        created_at=log.created_at,
    )
