import logging
from datetime import datetime

from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..deps import get_db, get_user
from ..errors import NotFound, ValidationFailed
from ..lifecycle import EventStatus
from ..models import Event, Registration, User
from ..schemas import RegistrationCreate, RegistrationOut
from ..services import serialize_registration

logger = logging.getLogger(__name__)

router = APIRouter()


def _existing(db: Session, event_id: int, user_id: int) -> Registration | None:
    return db.execute(
        select(Registration).where(
            Registration.event_id == event_id,
            Registration.user_id == user_id,
        )
    ).scalar_one_or_none()


@router.get("/api/registrations/me", response_model=list[RegistrationOut])
def my_registrations(db: Session = Depends(get_db), user: User = Depends(get_user)):
    rows = db.execute(
        select(Registration, Event)
        .join(Event, Event.id == Registration.event_id)
        .where(Registration.user_id == user.id)
        .order_by(Registration.created_at.desc())
    ).all()
    return [serialize_registration(db, reg, event) for reg, event in rows]


@router.post("/api/registrations", response_model=RegistrationOut)
def register(
    payload: RegistrationCreate,
    db: Session = Depends(get_db),
    user: User = Depends(get_user),
):
    event = db.get(Event, payload.event_id)
    if not event:
        raise NotFound("Event")
    if event.status != EventStatus.PUBLISHED.value:
        raise ValidationFailed("Only PUBLISHED events are open for registration")
    if event.registration_deadline and datetime.utcnow() > event.registration_deadline:
        raise ValidationFailed("The registration deadline has passed")

    existing = _existing(db, event.id, user.id)
    if existing:
        return serialize_registration(db, existing, event)

    registration = Registration(
        event_id=event.id,
        user_id=user.id,
        department=user.department,
        academic_year=user.academic_year,
    )
    db.add(registration)
    try:
        db.flush()
    except IntegrityError:
        # Lost a race with a concurrent registration for the same pair.
        db.rollback()
        existing = _existing(db, payload.event_id, user.id)
        if existing is None:
            raise
        return serialize_registration(db, existing, db.get(Event, payload.event_id))
    db.refresh(registration)
    logger.info("User %s registered for event %s", user.id, event.id)
    return serialize_registration(db, registration, event)


@router.delete("/api/registrations/by-event/{event_id}")
def unregister(event_id: int, db: Session = Depends(get_db), user: User = Depends(get_user)):
    registration = _existing(db, event_id, user.id)
    if not registration:
        raise NotFound("Registration")
    db.delete(registration)
    return {"ok": True}
