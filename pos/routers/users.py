# pos/routers/users.py
import logging
from fastapi import APIRouter, Depends
from sqlalchemy import select, delete
from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError
from typing import List

from pos.db import get_db
from pos.deps import Principal, admin_only
from pos.errors import ConflictError, NotFoundError, ValidationError
from pos.util.security import hash_pw
from pos.models.core import User, UserRole, Order
from pos.schemas.common import UserIn, UserOut, UserUpdate, PasswordReset

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin/users", tags=["users"])


def _get_user(db: Session, user_id: str) -> User:
    u = db.get(User, user_id)
    if not u:
        raise NotFoundError("user not found")
    return u


def _ensure_username_free(db: Session, username: str, exclude_id: str | None = None):
    q = select(User.id).where(User.username == username)
    if exclude_id:
        q = q.where(User.id != exclude_id)
    if db.execute(q).first():
        raise ConflictError("username already exists")


# ── Users ───────────────────────────────────────────────────────────────────

@router.get("/", response_model=List[UserOut], summary="List users")
def list_users(db: Session = Depends(get_db), who: Principal = Depends(admin_only)):
    users = db.execute(select(User).order_by(User.created_at.desc())).scalars().all()
    return [UserOut.from_model(u) for u in users]


@router.post("/", response_model=UserOut, status_code=201)
def create_user(body: UserIn, db: Session = Depends(get_db), who: Principal = Depends(admin_only)):
    username = body.username.strip()
    _ensure_username_free(db, username)
    u = User(
        username=username,
        pass_hash=hash_pw(body.password),
        role=UserRole(body.role),
        active=body.active,
    )
    db.add(u)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ConflictError("username already exists")
    db.refresh(u)
    logger.info("user created by %s: %s (%s)", who.username, u.username, u.role.value)
    return UserOut.from_model(u)


@router.put("/{user_id}", response_model=UserOut, summary="Update username, role or active flag")
def update_user(user_id: str, body: UserUpdate, db: Session = Depends(get_db), who: Principal = Depends(admin_only)):
    u = _get_user(db, user_id)
    if body.username is not None:
        username = body.username.strip()
        _ensure_username_free(db, username, exclude_id=user_id)
        u.username = username
    if body.role is not None:
        u.role = UserRole(body.role)
    if body.active is not None:
        if user_id == who.id and not body.active:
            raise ValidationError("cannot deactivate your own account")
        u.active = body.active
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ConflictError("username already exists")
    db.refresh(u)
    logger.info("user updated by %s: %s", who.username, u.id)
    return UserOut.from_model(u)


@router.post("/{user_id}/password", summary="Reset another user's password")
def reset_password(user_id: str, body: PasswordReset, db: Session = Depends(get_db), who: Principal = Depends(admin_only)):
    if user_id == who.id:
        raise ValidationError("cannot reset your own password here")
    u = _get_user(db, user_id)
    u.pass_hash = hash_pw(body.new_password)
    db.commit()
    logger.info("password reset by %s for %s", who.username, u.id)
    return {"success": True}


@router.delete("/{user_id}")
def delete_user(user_id: str, db: Session = Depends(get_db), who: Principal = Depends(admin_only)):
    if user_id == who.id:
        raise ValidationError("cannot delete your own account")
    _get_user(db, user_id)
    used = db.execute(select(Order.id).where(Order.cashier_id == user_id).limit(1)).first()
    if used:
        raise ConflictError("user is recorded on existing orders; deactivate instead")
    db.execute(delete(User).where(User.id == user_id))
    db.commit()
    logger.info("user deleted by %s: %s", who.username, user_id)
    return {"success": True, "id": user_id}
