from datetime import datetime

from fastapi import APIRouter, Depends
from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from ..deps import get_db, get_user
from ..errors import NotFound, PermissionDenied
from ..models import Notification, User
from ..schemas import MarkAllRead, NotificationOut

router = APIRouter()

CATEGORIES = {"Events", "Bookings", "System"}


@router.get("/api/notifications/me", response_model=list[NotificationOut])
def my_notifications(
    category: str | None = None,
    db: Session = Depends(get_db),
    user: User = Depends(get_user),
):
    stmt = select(Notification).where(Notification.user_id == user.id)
    if category in CATEGORIES:
        stmt = stmt.where(Notification.category == category)
    items = db.execute(stmt.order_by(Notification.created_at.desc(), Notification.id.desc())).scalars().all()
    return [NotificationOut.model_validate(n, from_attributes=True) for n in items]


@router.get("/api/notifications/me/unread-count")
def unread_count(db: Session = Depends(get_db), user: User = Depends(get_user)):
    count = (
        db.execute(
            select(func.count(Notification.id)).where(
                Notification.user_id == user.id,
                Notification.read == False,  # noqa: E712
            )
        ).scalar()
        or 0
    )
    return {"count": count}


@router.patch("/api/notifications/{notification_id}/read", response_model=NotificationOut)
def mark_read(notification_id: int, db: Session = Depends(get_db), user: User = Depends(get_user)):
    notification = db.get(Notification, notification_id)
    if not notification:
        raise NotFound("Notification")
    if notification.user_id != user.id:
        raise PermissionDenied()
    notification.read = True
    notification.read_at = datetime.utcnow()
    db.flush()
    db.refresh(notification)
    return NotificationOut.model_validate(notification, from_attributes=True)


@router.post("/api/notifications/me/mark-all-read")
def mark_all_read(
    payload: MarkAllRead | None = None,
    db: Session = Depends(get_db),
    user: User = Depends(get_user),
):
    stmt = update(Notification).where(
        Notification.user_id == user.id,
        Notification.read == False,  # noqa: E712
    )
    if payload is not None and payload.before is not None:
        stmt = stmt.where(Notification.created_at <= payload.before)
    result = db.execute(stmt.values(read=True, read_at=datetime.utcnow()))
    return {"updated": result.rowcount}
