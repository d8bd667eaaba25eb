"""Database layer: SQLAlchemy models and session."""

from server.db.models import (
    AssetRow,
    Base,
    CategoryRow,
    GradeRow,
    ItemRow,
    Profile,
    Session,
    StudySessionRow,
    User,
)
from server.db.session import get_db, init_db

__all__ = [
    "AssetRow",
    "Base",
    "CategoryRow",
    "GradeRow",
    "ItemRow",
    "Profile",
    "Session",
    "StudySessionRow",
    "User",
    "get_db",
    "init_db",
]
