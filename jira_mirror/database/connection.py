"""
Database Connection Module
Handles connection pooling and session management using SQLAlchemy.
"""

import os
from contextlib import contextmanager
from typing import Generator, Optional

from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import QueuePool, StaticPool

from jira_mirror.config_manager import ConfigManager
from jira_mirror.database.models import Base
from jira_mirror.utils.logger import get_logger

logger = get_logger(__name__)


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    """Turn on foreign key enforcement for every new SQLite connection."""
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


class DatabaseConnection:
    """Manages database connections with connection pooling."""

    def __init__(self, url: Optional[str] = None):
        """
        Initialize the engine.

        Args:
            url: SQLAlchemy URL. Read from configuration when omitted.
        """
        self._engine: Engine = None
        self._session_factory = None
        self._initialize_engine(url)

    def _initialize_engine(self, url: Optional[str]) -> None:
        """Create SQLAlchemy engine with connection pooling."""
        db_config = {}
        if url is None:
            db_config = ConfigManager().get_database_config()
            url = self._build_connection_url(db_config)

        echo = os.getenv('SQL_ECHO', 'false').lower() == 'true'

        if url.startswith('sqlite'):
            # A single shared connection keeps in-memory databases visible across sessions
            self._engine = create_engine(
                url,
                poolclass=StaticPool,
                connect_args={'check_same_thread': False},
                echo=echo
            )
            event.listen(self._engine, 'connect', _enable_sqlite_foreign_keys)
        else:
            logger.info(f"Initializing database connection to {self._engine_label(url)}")
            self._engine = create_engine(
                url,
                poolclass=QueuePool,
                pool_size=db_config.get('pool_size', 5),
                max_overflow=db_config.get('max_overflow', 10),
                pool_timeout=db_config.get('pool_timeout', 30),
                pool_pre_ping=True,  # Enable connection health checks
                echo=echo
            )

        self._session_factory = sessionmaker(bind=self._engine, expire_on_commit=False)

        logger.info("Database engine initialized successfully")

    @staticmethod
    def _build_connection_url(db_config: dict) -> str:
        """Build PostgreSQL connection URL from config."""
        if db_config.get('url'):
            return db_config['url']

        host = db_config.get('host') or 'localhost'
        port = db_config.get('port') or 5432
        name = db_config.get('name') or 'jira_mirror'
        user = db_config.get('user') or 'jira_sync'
        password = db_config.get('password') or ''

        return f"postgresql+psycopg2://{user}:{password}@{host}:{port}/{name}"

    @staticmethod
    def _engine_label(url: str) -> str:
        """Connection target without credentials, for logging."""
        return url.rsplit('@', 1)[-1]

    @property
    def engine(self) -> Engine:
        """Get the SQLAlchemy engine."""
        return self._engine

    def create_all(self) -> None:
        """Create any missing tables."""
        Base.metadata.create_all(self._engine)

    def get_session(self) -> Session:
        """Create a new database session."""
        return self._session_factory()

    @contextmanager
    def session_scope(self) -> Generator[Session, None, None]:
        """
        Provide a transactional scope around a series of operations.

        Usage:
            with db.session_scope() as session:
                session.query(...)
        """
        session = self.get_session()
        try:
            yield session
            session.commit()
        except Exception as e:
            session.rollback()
            logger.debug(f"Database session rolled back: {e}")
            raise
        finally:
            session.close()

    def check_connection(self) -> bool:
        """
        Check if database connection is healthy.

        Returns:
            bool: True if connection is healthy, False otherwise.
        """
        try:
            with self._engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            logger.debug("Database connection health check passed")
            return True
        except Exception as e:
            logger.error(f"Database connection health check failed: {e}")
            return False

    def dispose(self) -> None:
        """Dispose of the connection pool."""
        if self._engine:
            self._engine.dispose()
            logger.info("Database connection pool disposed")


_default_db: Optional[DatabaseConnection] = None


# Convenience function for getting database connection
def get_db() -> DatabaseConnection:
    """Get the shared database connection instance."""
    global _default_db
    if _default_db is None:
        _default_db = DatabaseConnection()
    return _default_db


# Convenience context manager
@contextmanager
def get_session() -> Generator[Session, None, None]:
    """
    Convenience function to get a database session.

    Usage:
        with get_session() as session:
            session.query(...)
    """
    db = get_db()
    with db.session_scope() as session:
        yield session
