import logging
from typing import Iterable

from fastapi import Depends, Header, HTTPException
from sqlalchemy import select
from sqlalchemy.orm import Session

from .auth_utils import decode_token
from .db import get_session
from .errors import PermissionDenied
from .models import Membership, User

logger = logging.getLogger(__name__)


def get_db():
    with get_session() as session:
        yield session


def get_user(
    authorization: str | None = Header(default=None),
    db: Session = Depends(get_db),
) -> User:
    if not authorization or not authorization.lower().startswith("bearer "):
        raise HTTPException(status_code=401, detail="Unauthorized")

    user_id = decode_token(authorization.split(" ", 1)[1].strip())
    if user_id is None:
        raise HTTPException(status_code=401, detail="Invalid token")

    # The token proves identity only; the role comes from the current row.
    user = db.get(User, user_id)
    if not user:
        raise HTTPException(status_code=401, detail="User not found")
    return user


def get_membership(db: Session, club_id: int, user_id: int) -> Membership | None:
    return db.execute(
        select(Membership).where(
            Membership.club_id == club_id,
            Membership.user_id == user_id,
        )
    ).scalar_one_or_none()


def has_club_role(db: Session, user: User, club_id: int, allowed_roles: Iterable[str]) -> bool:
    if user.is_admin:
        return True
    membership = get_membership(db, club_id, user.id)
    return membership is not None and membership.club_role in set(allowed_roles)


def ensure_admin(user: User) -> None:
    if not user.is_admin:
        logger.warning("Admin check failed for user %s", user.id)
        raise PermissionDenied()


def ensure_club_role(db: Session, user: User, club_id: int, allowed_roles: Iterable[str]) -> None:
    if not has_club_role(db, user, club_id, allowed_roles):
        logger.warning("Club role check failed for user %s in club %s", user.id, club_id)
        raise PermissionDenied()


def ensure_club_role_in_any(
    db: Session, user: User, club_ids: Iterable[int], allowed_roles: Iterable[str]
) -> None:
    """Pass when the user holds an allowed role in at least one of the clubs."""

    if user.is_admin:
        return
    club_ids = list(club_ids)
    memberships = (
        db.execute(
            select(Membership).where(
                Membership.user_id == user.id,
                Membership.club_id.in_(club_ids),
            )
        )
        .scalars()
        .all()
    )
    allowed = set(allowed_roles)
    if not any(m.club_role in allowed for m in memberships):
        logger.warning("User %s lacks %s in clubs %s", user.id, sorted(allowed), club_ids)
        raise PermissionDenied()


def ensure_owner_or_admin(user: User, created_by_id: int) -> None:
    if user.is_admin or user.id == created_by_id:
        return
    raise PermissionDenied()
