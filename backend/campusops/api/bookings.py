from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.orm import Session

from ..deps import ensure_admin, ensure_owner_or_admin, get_db, get_user
from ..errors import NotFound
from ..models import Booking, Event, Resource, User
from ..scheduling import format_slot, request_booking, review_booking
from ..schemas import BookingCreate, BookingOut, PendingBookingOut, ReviewRequest
from ..services import serialize_booking
from ..side_effects import emit_audit_log, emit_notification

router = APIRouter()


@router.get("/api/bookings/pending", response_model=list[PendingBookingOut])
def pending_bookings(db: Session = Depends(get_db), user: User = Depends(get_user)):
    ensure_admin(user)
    rows = db.execute(
        select(Booking, Event, Resource)
        .join(Event, Event.id == Booking.event_id)
        .join(Resource, Resource.id == Booking.resource_id)
        .where(Booking.approved == False, Booking.rejected == False)  # noqa: E712
        .order_by(Booking.created_at.desc())
    ).all()
    return [
        PendingBookingOut(
            **serialize_booking(booking).model_dump(),
            event_title=event.title,
            resource_name=resource.name,
        )
        for booking, event, resource in rows
    ]


@router.get("/api/bookings/event/{event_id}", response_model=list[BookingOut])
def event_bookings(event_id: int, db: Session = Depends(get_db), user: User = Depends(get_user)):
    event = db.get(Event, event_id)
    if not event:
        raise NotFound("Event")
    ensure_owner_or_admin(user, event.created_by_id)
    bookings = (
        db.execute(select(Booking).where(Booking.event_id == event_id).order_by(Booking.start_time.asc()))
        .scalars()
        .all()
    )
    return [serialize_booking(b) for b in bookings]


@router.post("/api/bookings", response_model=BookingOut)
def create_booking(
    payload: BookingCreate,
    db: Session = Depends(get_db),
    user: User = Depends(get_user),
):
    booking = request_booking(
        db,
        user,
        event_id=payload.event_id,
        resource_id=payload.resource_id,
        start=payload.start_time,
        end=payload.end_time,
    )
    return serialize_booking(booking)


@router.post("/api/bookings/{booking_id}/review", response_model=BookingOut)
def review(
    booking_id: int,
    payload: ReviewRequest,
    db: Session = Depends(get_db),
    user: User = Depends(get_user),
):
    ensure_admin(user)
    booking = db.get(Booking, booking_id)
    if not booking:
        raise NotFound("Booking")
    event = db.get(Event, booking.event_id)
    resource = db.get(Resource, booking.resource_id)

    booking = review_booking(db, booking, payload.approve, payload.reason)
    db.commit()

    slot = format_slot(booking.start_time, booking.end_time)
    if booking.approved:
        action = "BOOKING_APPROVED"
        message = f'Booking of {resource.name} for "{event.title}" ({slot}) was approved.'
    else:
        action = "BOOKING_REJECTED"
        message = (
            f'Booking of {resource.name} for "{event.title}" ({slot}) was rejected: '
            f"{booking.rejection_reason}"
        )
    emit_notification(db, event.created_by_id, action, "Bookings", message)
    emit_audit_log(
        db,
        user.id,
        action,
        "Booking",
        booking.id,
        {"approve": payload.approve, "reason": booking.rejection_reason},
    )
    return serialize_booking(booking)
