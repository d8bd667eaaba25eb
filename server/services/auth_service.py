"""Authentication service: register, login, cookie-session management."""

import hashlib
import logging
import secrets
from datetime import datetime, timedelta, timezone
from typing import Optional

from argon2 import PasswordHasher
from argon2.exceptions import VerificationError, InvalidHashError
from sqlalchemy.orm import Session as DBSession

from server.db.models import Session, User
from server.services import profile_service
from vault.errors import ValidationError

logger = logging.getLogger("vault.auth")

ph = PasswordHasher()

SESSION_TTL_HOURS = 24 * 7


def normalize_email(email: str) -> str:
    return email.lower().strip()


def hash_token(token: str) -> str:
    return hashlib.sha256(token.encode()).hexdigest()


def register_user(db: DBSession, email: str, password: str) -> User:
    """Create a user and an empty profile. Raises ValidationError if the email is taken."""
    email = normalize_email(email)
    if db.query(User).filter(User.email == email).first():
        raise ValidationError("Email already registered")
    user = User(email=email, password_hash=ph.hash(password))
    db.add(user)
    db.flush()
    profile_service.get_profile(db, user.id)
    logger.info("Registered user %s", user.id)
    return user


def authenticate(db: DBSession, email: str, password: str) -> Optional[User]:
    user = db.query(User).filter(User.email == normalize_email(email)).first()
    if user is None or not verify_password(password, user.password_hash):
        return None
    return user


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return ph.verify(password_hash, password)
    except (VerificationError, InvalidHashError):
        return False


def create_session(db: DBSession, user_id: str, ttl_hours: int = SESSION_TTL_HOURS) -> str:
    """Create a session row and return the raw token for the cookie. Only its hash is stored."""
    token = secrets.token_urlsafe(32)
    db.add(Session(
        user_id=user_id,
        token_hash=hash_token(token),
        expires_at=datetime.now(timezone.utc) + timedelta(hours=ttl_hours),
    ))
    db.flush()
    return token


def get_user_by_session(db: DBSession, token: Optional[str]) -> Optional[User]:
    """Return the user for a live session token, else None."""
    if not token:
        return None
    sess = db.query(Session).filter(
        Session.token_hash == hash_token(token),
        Session.expires_at > datetime.now(timezone.utc),
    ).first()
    if sess is None:
        return None
    return db.get(User, sess.user_id)


def logout_session(db: DBSession, token: Optional[str]) -> bool:
    """Delete the session for token. Returns True if one existed."""
    if not token:
        return False
    return db.query(Session).filter(Session.token_hash == hash_token(token)).delete() > 0
