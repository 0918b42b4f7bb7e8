import logging
from contextlib import contextmanager

from sqlalchemy import create_engine, event
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from .config import settings
from .errors import StoreError

logger = logging.getLogger(__name__)


def is_memory_sqlite(database_url: str) -> bool:
    return database_url in ("sqlite://", "sqlite:///:memory:") or "mode=memory" in database_url


def build_engine(database_url: str):
    connect_args = {}
    engine_args = {}
    if database_url.startswith("sqlite"):
        # check_same_thread=False is required for SQLite, list reads run on worker threads
        connect_args["check_same_thread"] = False
    if is_memory_sqlite(database_url):
        # One shared connection, otherwise every worker thread sees its own empty database
        engine_args["poolclass"] = StaticPool

    engine = create_engine(database_url, connect_args=connect_args, **engine_args)

    if database_url.startswith("sqlite"):
        @event.listens_for(engine, "connect")
        def _enable_foreign_keys(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

    return engine


def build_session_factory(engine):
    # Objects handed to the presenter outlive their session
    return sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)


@contextmanager
def session_scope(session_factory):
    """Open a session; database failures leave as ``StoreError``."""
    session = session_factory()
    try:
        yield session
    except SQLAlchemyError as exc:
        session.rollback()
        logger.exception("Store operation failed")
        raise StoreError() from exc
    finally:
        session.close()


engine = build_engine(settings.database_url)

SessionLocal = build_session_factory(engine)

Base = declarative_base()


# Dependency to get the session factory; the service opens its own sessions
def get_session_factory():
    return SessionLocal
