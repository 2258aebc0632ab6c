from datetime import date, datetime, time, timedelta

from fastapi import APIRouter, Depends
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from ..deps import ensure_admin, get_db, get_user
from ..lifecycle import EventStatus
from ..models import AuditLog, Booking, Club, Event, EventClub, Registration, Resource, User
from ..schemas import AnalyticsSummary, AuditLogOut, NamedCount, PendingAttention
from ..services import serialize_audit_log

router = APIRouter()


@router.get("/api/audit/recent", response_model=list[AuditLogOut])
def recent_audit_logs(
    limit: int = 50,
    db: Session = Depends(get_db),
    user: User = Depends(get_user),
):
    ensure_admin(user)
    rows = db.execute(
        select(AuditLog, User)
        .outerjoin(User, User.id == AuditLog.user_id)
        .order_by(AuditLog.created_at.desc(), AuditLog.id.desc())
        .limit(max(1, min(limit, 50)))
    ).all()
    return [serialize_audit_log(log, actor) for log, actor in rows]


@router.get("/api/analytics/pending-attention", response_model=PendingAttention)
def pending_attention(db: Session = Depends(get_db), user: User = Depends(get_user)):
    ensure_admin(user)
    sixty_days_ago = datetime.utcnow() - timedelta(days=60)
    pending_events = (
        db.execute(
            select(func.count(Event.id)).where(Event.status == EventStatus.SUBMITTED.value)
        ).scalar()
        or 0
    )
    pending_bookings = (
        db.execute(
            select(func.count(Booking.id)).where(
                Booking.approved == False,  # noqa: E712
                Booking.rejected == False,  # noqa: E712
            )
        ).scalar()
        or 0
    )
    total_clubs = db.execute(select(func.count(Club.id))).scalar() or 0
    active_clubs = (
        db.execute(
            select(func.count(func.distinct(EventClub.club_id)))
            .select_from(EventClub)
            .join(Event, Event.id == EventClub.event_id)
            .where(Event.start_date >= sixty_days_ago)
        ).scalar()
        or 0
    )
    return PendingAttention(
        pending_event_approvals=pending_events,
        pending_bookings=pending_bookings,
        clubs_inactive_60_days=max(0, total_clubs - active_clubs),
    )


@router.get("/api/analytics/summary", response_model=AnalyticsSummary)
def summary(
    start: date | None = None,
    end: date | None = None,
    db: Session = Depends(get_db),
    user: User = Depends(get_user),
):
    ensure_admin(user)
    # Whole days, inclusive; an item counts when it overlaps the range at all.
    range_start = datetime.combine(start, time.min) if start else None
    range_end = datetime.combine(end, time.max) if end else None

    events_stmt = (
        select(Club.id, Club.name, func.count(EventClub.id))
        .join(EventClub, EventClub.club_id == Club.id)
        .join(Event, Event.id == EventClub.event_id)
    )
    bookings_stmt = select(Resource.id, Resource.name, func.count(Booking.id)).join(
        Booking, Booking.resource_id == Resource.id
    )
    registrations_stmt = select(func.count(Registration.id))
    if range_end is not None:
        events_stmt = events_stmt.where(Event.start_date <= range_end)
        bookings_stmt = bookings_stmt.where(Booking.start_time <= range_end)
        registrations_stmt = registrations_stmt.where(Registration.created_at <= range_end)
    if range_start is not None:
        events_stmt = events_stmt.where(Event.end_date >= range_start)
        bookings_stmt = bookings_stmt.where(Booking.end_time >= range_start)
        registrations_stmt = registrations_stmt.where(Registration.created_at >= range_start)

    events_per_club = db.execute(events_stmt.group_by(Club.id, Club.name).order_by(Club.name)).all()
    bookings_per_resource = db.execute(
        bookings_stmt.group_by(Resource.id, Resource.name).order_by(Resource.name)
    ).all()
    return AnalyticsSummary(
        events_per_club=[NamedCount(id=i, name=n, count=c) for i, n, c in events_per_club],
        bookings_per_resource=[NamedCount(id=i, name=n, count=c) for i, n, c in bookings_per_resource],
        registrations=db.execute(registrations_stmt).scalar() or 0,
    )
