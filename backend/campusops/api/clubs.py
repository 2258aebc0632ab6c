import logging

from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.orm import Session

from ..deps import ensure_admin, ensure_club_role, get_db, get_membership, get_user
from ..errors import Conflict, NotFound
from ..models import Club, Membership, User
from ..role_requests import pending_requests, request_organizer, review_request
from ..schemas import (
    ClubCreate,
    ClubOut,
    MemberRoleUpdate,
    MembershipOut,
    RoleRequestOut,
    RoleRequestReview,
    RosterEntry,
)
from ..services import club_summary, serialize_membership
from ..side_effects import emit_audit_log, emit_notification

logger = logging.getLogger(__name__)

router = APIRouter()


def _load_club(db: Session, club_id: int) -> Club:
    club = db.get(Club, club_id)
    if not club:
        raise NotFound("Club")
    return club


@router.get("/api/clubs", response_model=list[ClubOut])
def list_clubs(db: Session = Depends(get_db), user: User = Depends(get_user)):
    clubs = db.execute(select(Club).order_by(Club.name.asc())).scalars().all()
    return [club_summary(db, club) for club in clubs]


@router.post("/api/clubs", response_model=ClubOut)
def create_club(
    payload: ClubCreate,
    db: Session = Depends(get_db),
    user: User = Depends(get_user),
):
    ensure_admin(user)
    existing = db.execute(select(Club).where(Club.name == payload.name)).scalar_one_or_none()
    if existing:
        raise Conflict("A club with this name already exists")
    if payload.head_user_id is not None and not db.get(User, payload.head_user_id):
        raise NotFound("User")

    club = Club(name=payload.name, description=payload.description)
    db.add(club)
    db.flush()
    if payload.head_user_id is not None:
        db.add(Membership(club_id=club.id, user_id=payload.head_user_id, club_role="HEAD"))
        db.flush()
    logger.info("Club %s created by admin %s", club.id, user.id)
    return club_summary(db, club)


@router.get("/api/clubs/me", response_model=list[MembershipOut])
def my_memberships(db: Session = Depends(get_db), user: User = Depends(get_user)):
    rows = db.execute(
        select(Membership, Club)
        .join(Club, Club.id == Membership.club_id)
        .where(Membership.user_id == user.id)
        .order_by(Club.name.asc())
    ).all()
    return [serialize_membership(membership, club) for membership, club in rows]


@router.post("/api/clubs/{club_id}/join", response_model=MembershipOut)
def join_club(club_id: int, db: Session = Depends(get_db), user: User = Depends(get_user)):
    club = _load_club(db, club_id)
    membership = get_membership(db, club_id, user.id)
    if membership is None:
        membership = Membership(club_id=club_id, user_id=user.id, club_role="MEMBER")
        db.add(membership)
        db.flush()
        db.refresh(membership)
    return serialize_membership(membership, club)


@router.post("/api/clubs/{club_id}/leave")
def leave_club(club_id: int, db: Session = Depends(get_db), user: User = Depends(get_user)):
    membership = get_membership(db, club_id, user.id)
    if not membership:
        raise NotFound("Membership")
    db.delete(membership)
    return {"ok": True}


@router.get("/api/clubs/{club_id}/members", response_model=list[RosterEntry])
def club_roster(club_id: int, db: Session = Depends(get_db), user: User = Depends(get_user)):
    _load_club(db, club_id)
    ensure_club_role(db, user, club_id, {"ORGANIZER", "HEAD"})
    rows = db.execute(
        select(Membership, User)
        .join(User, User.id == Membership.user_id)
        .where(Membership.club_id == club_id)
        .order_by(User.name.asc())
    ).all()
    return [
        RosterEntry(
            membership_id=membership.id,
            user_id=member.id,
            name=member.name,
            email=member.email,
            club_role=membership.club_role,
            department=member.department,
            academic_year=member.academic_year,
        )
        for membership, member in rows
    ]


@router.post("/api/clubs/{club_id}/request-organizer", response_model=RoleRequestOut)
def request_organizer_role(club_id: int, db: Session = Depends(get_db), user: User = Depends(get_user)):
    request = request_organizer(db, user, club_id)
    return RoleRequestOut.model_validate(request, from_attributes=True)


@router.get("/api/clubs/{club_id}/role-requests", response_model=list[RoleRequestOut])
def list_role_requests(club_id: int, db: Session = Depends(get_db), user: User = Depends(get_user)):
    return [
        RoleRequestOut.model_validate(r, from_attributes=True)
        for r in pending_requests(db, user, club_id)
    ]


@router.patch("/api/clubs/{club_id}/role-requests/{request_id}", response_model=RoleRequestOut)
def decide_role_request(
    club_id: int,
    request_id: int,
    payload: RoleRequestReview,
    db: Session = Depends(get_db),
    user: User = Depends(get_user),
):
    _load_club(db, club_id)
    request = review_request(db, user, club_id, request_id, payload.approve)
    db.commit()

    club = db.get(Club, club_id)
    if payload.approve:
        message = f"You are now an {request.requested_role.lower()} of {club.name}."
    else:
        message = f"Your {request.requested_role.lower()} request for {club.name} was declined."
    emit_notification(db, request.user_id, f"ROLE_REQUEST_{request.status}", "System", message)
    emit_audit_log(
        db,
        user.id,
        f"ROLE_REQUEST_{request.status}",
        "RoleRequest",
        request.id,
        {"approve": payload.approve, "club_id": club_id, "user_id": request.user_id},
    )
    return RoleRequestOut.model_validate(request, from_attributes=True)


@router.patch("/api/clubs/{club_id}/members/{membership_id}/role", response_model=MembershipOut)
def set_member_role(
    club_id: int,
    membership_id: int,
    payload: MemberRoleUpdate,
    db: Session = Depends(get_db),
    user: User = Depends(get_user),
):
    club = _load_club(db, club_id)
    ensure_club_role(db, user, club_id, {"HEAD"})
    membership = db.get(Membership, membership_id)
    if not membership or membership.club_id != club_id:
        raise NotFound("Membership")

    previous = membership.club_role
    membership.club_role = payload.role
    db.commit()
    logger.info(
        "Membership %s in club %s changed %s -> %s by user %s",
        membership.id, club_id, previous, payload.role, user.id,
    )
    emit_audit_log(
        db,
        user.id,
        "MEMBER_ROLE_CHANGED",
        "Membership",
        membership.id,
        {"from": previous, "to": payload.role, "club_id": club_id},
    )
    return serialize_membership(membership, club)
