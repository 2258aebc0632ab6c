from fastapi import APIRouter, Depends
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from ..deps import get_db, get_user
from ..lifecycle import EventStatus
from ..models import Club, Event, Membership, Registration, User
from ..schemas import ActivitySummary, ProfileOut, ProfileUpdate, UserOut
from ..services import serialize_membership

router = APIRouter()


def _count(db: Session, stmt) -> int:
    return db.execute(stmt).scalar() or 0


@router.get("/api/users/me", response_model=ProfileOut)
def me(db: Session = Depends(get_db), user: User = Depends(get_user)):
    rows = db.execute(
        select(Membership, Club)
        .join(Club, Club.id == Membership.club_id)
        .where(Membership.user_id == user.id)
        .order_by(Club.name.asc())
    ).all()
    summary = ActivitySummary(
        events_registered=_count(
            db, select(func.count(Registration.id)).where(Registration.user_id == user.id)
        ),
        events_organized=_count(
            db, select(func.count(Event.id)).where(Event.created_by_id == user.id)
        ),
        # Published events went through approval too.
        events_approved=_count(
            db,
            select(func.count(Event.id)).where(
                Event.created_by_id == user.id,
                Event.status.in_([EventStatus.APPROVED.value, EventStatus.PUBLISHED.value]),
            ),
        ),
    )
    base = UserOut.model_validate(user, from_attributes=True)
    return ProfileOut(
        **base.model_dump(),
        memberships=[serialize_membership(m, club) for m, club in rows],
        activity_summary=summary,
    )


@router.patch("/api/users/me", response_model=UserOut)
def update_me(
    payload: ProfileUpdate,
    db: Session = Depends(get_db),
    user: User = Depends(get_user),
):
    for field, value in payload.model_dump(exclude_unset=True).items():
        if isinstance(value, str):
            value = value.strip() or None
        if field == "name" and not value:
            continue
        setattr(user, field, value)
    db.flush()
    db.refresh(user)
    return UserOut.model_validate(user, from_attributes=True)
