"""
SQLAlchemy engine and session management
"""

import logging
from functools import wraps

from sqlalchemy import create_engine, event
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import declarative_base, sessionmaker, Session

from allocator.core.exceptions import PersistenceError

logger = logging.getLogger(__name__)

Base = declarative_base()


class Database:
    """Owns the engine and session factory for one application instance"""

    def __init__(self, url: str):
        is_sqlite = url.startswith("sqlite")
        # SQLite connections are shared across FastAPI's worker threads
        self.engine = create_engine(
            url,
            connect_args={"check_same_thread": False} if is_sqlite else {},
            pool_pre_ping=True,
        )
        if is_sqlite:
            event.listen(self.engine, "connect", _enable_sqlite_foreign_keys)
        self.SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=self.engine)

    def create_all(self) -> None:
        Base.metadata.create_all(bind=self.engine)

    def drop_all(self) -> None:
        Base.metadata.drop_all(bind=self.engine)

    def session(self) -> Session:
        return self.SessionLocal()

    def dispose(self) -> None:
        self.engine.dispose()


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def transactional(func):
    """
    Run a repository method inside one transaction.

    The wrapped method must live on an object exposing ``db: Session``.
    The session is committed when the method returns and rolled back when
    it raises. Storage errors surface as PersistenceError; domain
    exceptions raised inside the method propagate unchanged.
    """
    @wraps(func)
    def wrapper(self, *args, **kwargs):
        try:
            result = func(self, *args, **kwargs)
            self.db.commit()
            return result
        except SQLAlchemyError as e:
            logger.error(f"Transaction failed in {func.__name__}: {e}", exc_info=True)
            self.db.rollback()
            raise PersistenceError() from e
        except Exception:
            self.db.rollback()
            raise

    return wrapper
