from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import select
from sqlalchemy.orm import Session

from ..auth_utils import create_token, hash_password, verify_password
from ..deps import get_db
from ..errors import Conflict
from ..models import User
from ..schemas import LoginRequest, RegisterRequest, TokenOut, UserOut

router = APIRouter()


@router.post("/api/auth/register", response_model=UserOut)
def register(payload: RegisterRequest, db: Session = Depends(get_db)):
    email = payload.email.lower()

    existing = db.execute(select(User).where(User.email == email)).scalar_one_or_none()
    if existing:
        raise Conflict("Email already in use")

    user = User(
        email=email,
        name=payload.name,
        password_hash=hash_password(payload.password),
        global_role="STUDENT",
    )
    db.add(user)
    db.flush()
    db.refresh(user)
    return UserOut.model_validate(user, from_attributes=True)


@router.post("/api/auth/login", response_model=TokenOut)
def login(payload: LoginRequest, db: Session = Depends(get_db)):
    email = payload.email.strip().lower()
    user = db.execute(select(User).where(User.email == email)).scalar_one_or_none()
    if not user or not verify_password(payload.password, user.password_hash):
        raise HTTPException(status_code=401, detail="Invalid credentials")
    return TokenOut(
        token=create_token(user.id),
        user=UserOut.model_validate(user, from_attributes=True),
    )
