import logging
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import select
from sqlalchemy.orm import Session
from pos.schemas.common import LoginIn, Token, UserOut
from pos.util.security import create_token, verify_pw
from pos.models.core import User
from pos.db import get_db
from pos.deps import Principal, require_auth

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])

@router.post("/login", response_model=Token)
def login(body: LoginIn, db: Session = Depends(get_db)):
    user = db.execute(
        select(User).where(User.username == body.username.strip(), User.active.is_(True))
    ).scalar_one_or_none()
    if not user or not verify_pw(user.pass_hash, body.password):
        logger.warning("login failed for %r", body.username)
        raise HTTPException(status_code=401, detail="Invalid credentials")
    logger.info("login: %s (%s)", user.username, user.role.value)
    return Token(access_token=create_token(user.id, user.username, user.role.value), user=UserOut.from_model(user))

@router.get("/me", response_model=UserOut)
def me(who: Principal = Depends(require_auth), db: Session = Depends(get_db)):
    return UserOut.from_model(db.get(User, who.id))
