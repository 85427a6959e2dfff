"""Database connection and session management"""
import logging
from contextlib import contextmanager
from typing import Generator, Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.exc import SQLAlchemyError

from listening_patterns.models.db import Base
from listening_patterns.config import settings

logger = logging.getLogger(__name__)

class Database:
    """Database connection and session manager"""

    def __init__(self):
        """Initialize database manager state"""
        self._engine = None
        self._SessionLocal = None

    def init(self, url: Optional[str] = None, **engine_kwargs) -> None:
        """
        Initialize database connection and create tables.

        Args:
            url: SQLAlchemy URL, defaults to the DATABASE_URL setting
            engine_kwargs: Extra keyword arguments for create_engine (e.g. poolclass)
        """
        try:
            self._engine = create_engine(url or settings.DATABASE_URL, **engine_kwargs)
            Base.metadata.create_all(self._engine)
            self._SessionLocal = sessionmaker(bind=self._engine)
            logger.info(f"Database initialized successfully ({self._engine.dialect.name})")
        except SQLAlchemyError as e:
            logger.error(f"Database initialization failed: {e}")
            raise

    @property
    def engine(self) -> Engine:
        if not self._engine:
            raise RuntimeError("Database not initialized. Call init() first.")
        return self._engine

    @contextmanager
    def session(self) -> Generator[Session, None, None]:
        """Provide a transactional scope around a series of operations"""
        if not self._SessionLocal:
            raise RuntimeError("Database not initialized. Call init() first.")

        session = self._SessionLocal()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def get_session(self) -> Session:
        """Get a new database session"""
        if not self._SessionLocal:
            raise RuntimeError("Database not initialized. Call init() first.")
        return self._SessionLocal()

    def dispose(self) -> None:
        """
        Clean up database connections.
        Should be called during application shutdown.
        """
        if self._engine:
            self._engine.dispose()
            self._engine = None
            self._SessionLocal = None

# Global database instance
db = Database()
