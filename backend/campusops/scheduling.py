"""Resource booking: conflict detection and the approval policy.

Two overlap rules are in play and they answer different questions. Both live
on ``Booking`` and are used directly as SQL filters here:

* ``Booking.collides_with`` gates a new request. Touching endpoints count as
  a collision and pending bookings block as well as approved ones, so nothing
  can be double-allocated while a review is open.
* ``Booking.overlaps`` is the strict rule used at review time to find the
  approved bookings that actually overlap, both to refuse an approval and to
  explain a rejection.
"""

import logging
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.orm import Session

from .deps import ensure_owner_or_admin
from .errors import Conflict, NotFound, ResourceInactive, ValidationFailed
from .models import Booking, Event, Resource, User

logger = logging.getLogger(__name__)

DEFAULT_REJECTION_REASON = "Not specified"


def is_auto_approved(resource: Resource) -> bool:
    return bool(resource.auto_approve or not resource.requires_approval)


def find_colliding_booking(
    db: Session, resource_id: int, start: datetime, end: datetime
) -> Booking | None:
    return (
        db.execute(
            select(Booking).where(
                Booking.resource_id == resource_id,
                Booking.rejected == False,  # noqa: E712
                Booking.collides_with(start, end),
            )
        )
        .scalars()
        .first()
    )


def find_approved_conflicts(db: Session, booking: Booking) -> list[tuple[Booking, Event]]:
    rows = db.execute(
        select(Booking, Event)
        .join(Event, Event.id == Booking.event_id)
        .where(
            Booking.resource_id == booking.resource_id,
            Booking.id != booking.id,
            Booking.approved == True,  # noqa: E712
            Booking.overlaps(booking.start_time, booking.end_time),
        )
        .order_by(Booking.start_time.asc())
    ).all()
    return [(other, event) for other, event in rows]


def format_slot(start: datetime, end: datetime) -> str:
    if start.date() == end.date():
        return f"{start:%Y-%m-%d %H:%M} - {end:%H:%M}"
    return f"{start:%Y-%m-%d %H:%M} - {end:%Y-%m-%d %H:%M}"


def describe_conflicts(conflicts: list[tuple[Booking, Event]]) -> str:
    if not conflicts:
        return ""
    parts = [f"{event.title} ({format_slot(other.start_time, other.end_time)})" for other, event in conflicts]
    return "Conflicts with approved bookings: " + "; ".join(parts)


def build_rejection_reason(reason: str | None, conflicts: list[tuple[Booking, Event]]) -> str:
    text = (reason or "").strip()
    explanation = describe_conflicts(conflicts)
    if text and explanation:
        return f"{text.rstrip('.')}. {explanation}"
    return text or explanation or DEFAULT_REJECTION_REASON


def request_booking(
    db: Session,
    user: User,
    event_id: int,
    resource_id: int,
    start: datetime,
    end: datetime,
) -> Booking:
    if end <= start:
        raise ValidationFailed("endTime must be after startTime")

    event = db.get(Event, event_id)
    if not event:
        raise NotFound("Event")
    ensure_owner_or_admin(user, event.created_by_id)

    # Row lock serializes concurrent requests for the same resource until commit.
    resource = db.execute(
        select(Resource).where(Resource.id == resource_id).with_for_update()
    ).scalar_one_or_none()
    if not resource:
        raise NotFound("Resource")
    if not resource.active:
        raise ResourceInactive()

    existing = find_colliding_booking(db, resource_id, start, end)
    if existing:
        logger.info(
            "Booking for resource %s at %s-%s blocked by booking %s",
            resource_id, start, end, existing.id,
        )
        raise Conflict("Time slot conflict")

    booking = Booking(
        event_id=event_id,
        resource_id=resource_id,
        start_time=start,
        end_time=end,
        approved=is_auto_approved(resource),
    )
    db.add(booking)
    db.flush()
    db.refresh(booking)
    logger.info(
        "Booking %s created for event %s on resource %s (approved=%s)",
        booking.id, event_id, resource_id, booking.approved,
    )
    return booking


def review_booking(db: Session, booking: Booking, approve: bool, reason: str | None = None) -> Booking:
    conflicts = find_approved_conflicts(db, booking)
    if approve:
        if conflicts:
            raise Conflict("Booking overlaps an approved booking on this resource")
        booking.approved = True
        booking.rejected = False
        booking.rejection_reason = None
    else:
        booking.approved = False
        booking.rejected = True
        booking.rejection_reason = build_rejection_reason(reason, conflicts)
    db.flush()
    logger.info("Booking %s reviewed (approve=%s)", booking.id, approve)
    return booking
