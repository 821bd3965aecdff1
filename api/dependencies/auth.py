from typing import Optional, Sequence
from fastapi import Depends, HTTPException, status, Request
from jose import JWTError, jwt
from sqlalchemy.orm import Session
from database.db import SessionLocal
from database.models.auth_models import User, SubscriptionTier
import logging
import os

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"
SECRET_KEY = os.getenv("AUTH_SECRET")
EXPECTED_AUD = os.getenv("EXPECTED_AUD")  # Optional audience check

SESSION_COOKIE = "annobib_session"

if not SECRET_KEY:
    raise ValueError("CRITICAL: AUTH_SECRET is not set in environment variables. Authentication cannot proceed.")


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def _extract_token(request: Request) -> Optional[str]:
    token = request.cookies.get(SESSION_COOKIE)
    if token:
        return token

    auth_header = request.headers.get("Authorization")
    if auth_header and auth_header.startswith("Bearer "):
        return auth_header.split(" ", 1)[1]
    return None


async def get_current_user(request: Request, db: Session = Depends(get_db)) -> User:
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Authentication required",
        headers={"WWW-Authenticate": "Bearer"},
    )

    token = _extract_token(request)
    if not token:
        raise credentials_exception

    opts = {"verify_aud": bool(EXPECTED_AUD)}
    try:
        payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM], audience=EXPECTED_AUD, options=opts)
    except JWTError:
        raise credentials_exception

    user_id: Optional[str] = payload.get("sub")
    if user_id is None:
        raise credentials_exception

    user = db.query(User).filter(User.id == user_id).first()
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return user


async def get_optional_user(request: Request, db: Session = Depends(get_db)) -> Optional[User]:
    """Same as get_current_user, but anonymous callers get None instead of a 401."""
    try:
        return await get_current_user(request, db)
    except HTTPException:
        return None


def require_tier(user: User, required_tiers: Sequence[SubscriptionTier]) -> None:
    allowed = [t.value for t in required_tiers]
    if user.subscription_tier not in allowed:
        logger.info(f"Tier check failed for user {user.id}: has {user.subscription_tier}, needs {allowed}")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"This feature requires a {' or '.join(allowed)} subscription",
        )


async def require_light_or_pro_tier(current_user: User = Depends(get_current_user)) -> User:
    require_tier(current_user, [SubscriptionTier.LIGHT, SubscriptionTier.PRO])
    return current_user
