"""Auth dependency: extract session from cookie, resolve user."""

from typing import Optional

from fastapi import Cookie, Depends, HTTPException
from sqlalchemy.orm import Session as DBSession

from server.db.models import User
from server.dependencies import get_db_session
from server.services import auth_service

SESSION_COOKIE = "vault_session"
SESSION_MAX_AGE = 60 * 60 * 24 * 7  # 7 days


def get_current_user_optional(
    vault_session: Optional[str] = Cookie(None, alias=SESSION_COOKIE),
    db: DBSession = Depends(get_db_session),
) -> Optional[User]:
    """Return current user or None if not authenticated."""
    if not vault_session:
        return None
    return auth_service.get_user_by_session(db, vault_session)


def get_current_user(
    user: Optional[User] = Depends(get_current_user_optional),
) -> User:
    """Require authenticated user. Raises 401 if not logged in."""
    if user is None:
        raise HTTPException(status_code=401, detail="Not authenticated")
    return user
