import logging

from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.orm import Session

from ..deps import ensure_admin, ensure_club_role_in_any, ensure_owner_or_admin, get_db, get_user
from ..errors import NotFound, ValidationFailed
from ..lifecycle import EventAction, EventStatus, apply_transition
from ..models import Club, Event, EventClub, User
from ..schemas import EventCreate, EventDetail, EventOut, ReviewRequest
from ..services import event_detail, serialize_event
from ..side_effects import emit_audit_log, emit_notification

logger = logging.getLogger(__name__)

router = APIRouter()


def _load_event(db: Session, event_id: int) -> Event:
    event = db.get(Event, event_id)
    if not event:
        raise NotFound("Event")
    return event


@router.post("/api/events", response_model=EventOut)
def create_event(
    payload: EventCreate,
    db: Session = Depends(get_db),
    user: User = Depends(get_user),
):
    if payload.end_date < payload.start_date:
        raise ValidationFailed("end_date must not be before start_date")

    found = set(db.execute(select(Club.id).where(Club.id.in_(payload.club_ids))).scalars().all())
    if len(found) != len(payload.club_ids):
        raise NotFound("Club")
    ensure_club_role_in_any(db, user, payload.club_ids, {"ORGANIZER", "HEAD"})

    data = payload.model_dump(exclude={"club_ids"})
    event = Event(**data, status=EventStatus.DRAFT.value, created_by_id=user.id)
    db.add(event)
    db.flush()
    db.add_all([EventClub(event_id=event.id, club_id=club_id) for club_id in payload.club_ids])
    db.flush()
    db.refresh(event)
    logger.info("Event %s created by user %s", event.id, user.id)
    return serialize_event(db, event)


@router.get("/api/events", response_model=list[EventOut])
def my_events(db: Session = Depends(get_db), user: User = Depends(get_user)):
    events = (
        db.execute(
            select(Event).where(Event.created_by_id == user.id).order_by(Event.created_at.desc())
        )
        .scalars()
        .all()
    )
    return [serialize_event(db, event) for event in events]


@router.get("/api/events/public", response_model=list[EventOut])
def published_events(db: Session = Depends(get_db)):
    events = (
        db.execute(
            select(Event)
            .where(Event.status == EventStatus.PUBLISHED.value)
            .order_by(Event.start_date.asc())
        )
        .scalars()
        .all()
    )
    return [serialize_event(db, event) for event in events]


@router.get("/api/events/pending", response_model=list[EventOut])
def pending_events(db: Session = Depends(get_db), user: User = Depends(get_user)):
    ensure_admin(user)
    events = (
        db.execute(
            select(Event)
            .where(Event.status == EventStatus.SUBMITTED.value)
            .order_by(Event.updated_at.asc())
        )
        .scalars()
        .all()
    )
    return [serialize_event(db, event) for event in events]


@router.get("/api/events/{event_id}", response_model=EventDetail)
def get_event(event_id: int, db: Session = Depends(get_db), user: User = Depends(get_user)):
    event = _load_event(db, event_id)
    ensure_owner_or_admin(user, event.created_by_id)
    return event_detail(db, event)


@router.post("/api/events/{event_id}/submit", response_model=EventOut)
def submit_event(event_id: int, db: Session = Depends(get_db), user: User = Depends(get_user)):
    event = _load_event(db, event_id)
    ensure_owner_or_admin(user, event.created_by_id)
    event.status = apply_transition(event.status, EventAction.SUBMIT).value
    db.flush()
    db.refresh(event)
    logger.info("Event %s submitted by user %s", event.id, user.id)
    return serialize_event(db, event)


@router.post("/api/events/{event_id}/review", response_model=EventOut)
def review_event(
    event_id: int,
    payload: ReviewRequest,
    db: Session = Depends(get_db),
    user: User = Depends(get_user),
):
    ensure_admin(user)
    event = _load_event(db, event_id)
    if payload.approve:
        target = apply_transition(event.status, EventAction.APPROVE)
        reason = None
    else:
        target = apply_transition(event.status, EventAction.REJECT)
        reason = (payload.reason or "").strip()
        if not reason:
            raise ValidationFailed("reason is required when rejecting an event")

    event.status = target.value
    event.rejection_reason = reason
    db.commit()
    logger.info("Event %s %s by admin %s", event.id, target.value, user.id)

    if payload.approve:
        message = f'Your event "{event.title}" was approved.'
    else:
        message = f'Your event "{event.title}" was rejected: {reason}'
    emit_notification(db, event.created_by_id, f"EVENT_{target.value}", "Events", message)
    emit_audit_log(
        db,
        user.id,
        f"EVENT_{target.value}",
        "Event",
        event.id,
        {"approve": payload.approve, "reason": reason},
    )
    return serialize_event(db, event)


@router.post("/api/events/{event_id}/publish", response_model=EventOut)
def publish_event(event_id: int, db: Session = Depends(get_db), user: User = Depends(get_user)):
    event = _load_event(db, event_id)
    ensure_owner_or_admin(user, event.created_by_id)
    event.status = apply_transition(event.status, EventAction.PUBLISH).value
    db.flush()
    db.refresh(event)
    logger.info("Event %s published by user %s", event.id, user.id)
    return serialize_event(db, event)
