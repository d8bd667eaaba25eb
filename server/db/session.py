"""Database engine and session management."""

from collections.abc import Generator
from contextlib import contextmanager
from typing import Dict

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session as DBSession, sessionmaker

from server.config import Settings
from server.db.models import Base


# One engine and session factory per database URL
_engines: Dict[str, Engine] = {}
_factories: Dict[str, sessionmaker] = {}


def get_engine(settings: Settings) -> Engine:
    url = settings.database_url
    engine = _engines.get(url)
    if engine is None:
        if url.startswith("sqlite"):
            engine = create_engine(url, connect_args={"check_same_thread": False})
        else:
            engine = create_engine(url, pool_pre_ping=True)
        _engines[url] = engine
    return engine


def get_session_factory(settings: Settings) -> sessionmaker:
    url = settings.database_url
    factory = _factories.get(url)
    if factory is None:
        factory = sessionmaker(autocommit=False, autoflush=False, bind=get_engine(settings))
        _factories[url] = factory
    return factory


@contextmanager
def get_db(settings: Settings) -> Generator[DBSession, None, None]:
    """Session scope: commit on success, roll back on any exception."""
    session = get_session_factory(settings)()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def reset_engine() -> None:
    """Dispose every cached engine. Use between tests for isolation."""
    for engine in _engines.values():
        engine.dispose()
    _engines.clear()
    _factories.clear()


def init_db(settings: Settings) -> None:
    """Create all tables that do not exist yet."""
    Base.metadata.create_all(bind=get_engine(settings))
