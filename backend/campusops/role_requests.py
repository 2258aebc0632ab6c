"""Members asking to become club organizers, and heads deciding on it."""

import logging
from datetime import datetime
from enum import Enum

from sqlalchemy import select
from sqlalchemy.orm import Session

from .deps import ensure_club_role, get_membership
from .errors import Conflict, NotFound, PermissionDenied
from .models import Club, RoleRequest, User

logger = logging.getLogger(__name__)


class RoleRequestState(str, Enum):
    NONE = "NONE"
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


def state_of(request: RoleRequest | None) -> RoleRequestState:
    if request is None:
        return RoleRequestState.NONE
    return RoleRequestState(request.status)


def on_request(state: RoleRequestState) -> RoleRequestState:
    if state is RoleRequestState.PENDING:
        raise Conflict("A role request is already pending")
    if state is RoleRequestState.APPROVED:
        raise Conflict("Role request already approved")
    return RoleRequestState.PENDING


def on_review(state: RoleRequestState, approve: bool) -> RoleRequestState:
    if state is not RoleRequestState.PENDING:
        raise Conflict("Role request already reviewed")
    return RoleRequestState.APPROVED if approve else RoleRequestState.REJECTED


def find_request(db: Session, club_id: int, user_id: int) -> RoleRequest | None:
    return db.execute(
        select(RoleRequest).where(
            RoleRequest.club_id == club_id,
            RoleRequest.user_id == user_id,
        )
    ).scalar_one_or_none()


def request_organizer(db: Session, user: User, club_id: int) -> RoleRequest:
    if not db.get(Club, club_id):
        raise NotFound("Club")
    membership = get_membership(db, club_id, user.id)
    if membership is None or membership.club_role != "MEMBER":
        raise PermissionDenied()

    request = find_request(db, club_id, user.id)
    target = on_request(state_of(request))
    if request is None:
        request = RoleRequest(user_id=user.id, club_id=club_id, requested_role="ORGANIZER")
        db.add(request)
    request.status = target.value
    request.requested_role = "ORGANIZER"
    request.created_at = datetime.utcnow()
    request.reviewed_at = None
    request.reviewed_by_id = None
    db.flush()
    db.refresh(request)
    logger.info("User %s requested ORGANIZER in club %s", user.id, club_id)
    return request


def pending_requests(db: Session, user: User, club_id: int) -> list[RoleRequest]:
    if not db.get(Club, club_id):
        raise NotFound("Club")
    ensure_club_role(db, user, club_id, {"HEAD"})
    return list(
        db.execute(
            select(RoleRequest)
            .where(RoleRequest.club_id == club_id, RoleRequest.status == RoleRequestState.PENDING.value)
            .order_by(RoleRequest.created_at.asc())
        )
        .scalars()
        .all()
    )


def review_request(db: Session, user: User, club_id: int, request_id: int, approve: bool) -> RoleRequest:
    ensure_club_role(db, user, club_id, {"HEAD"})
    request = db.get(RoleRequest, request_id)
    if not request or request.club_id != club_id:
        raise NotFound("Role request")

    target = on_review(state_of(request), approve)
    if target is RoleRequestState.APPROVED:
        membership = get_membership(db, club_id, request.user_id)
        if membership is None:
            raise NotFound("Membership")
        membership.club_role = request.requested_role
    request.status = target.value
    request.reviewed_at = datetime.utcnow()
    request.reviewed_by_id = user.id
    db.flush()
    db.refresh(request)
    logger.info("Role request %s in club %s marked %s by user %s", request.id, club_id, target.value, user.id)
    return request
