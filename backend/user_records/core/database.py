import logging
from typing import Optional

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import DBAPIError, SQLAlchemyError
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from user_records.core.config import Settings, settings as default_settings
from user_records.core.exceptions import DatabaseConnectionError

logger = logging.getLogger(__name__)

# Base class for all database models
# All models inherit from this to get SQLAlchemy ORM functionality
Base = declarative_base()


class Database:
    """
    Connection handle for a single database session.

    Holds the connection settings, owns one engine and one session for the
    lifetime of the process, and releases both in close(). Use it as a
    context manager to get the release on every exit path:

        with Database(settings) as db:
            db.authenticate()
            ...
    """

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or default_settings
        self._engine: Optional[Engine] = None
        self._session_factory: Optional[sessionmaker] = None
        self._session: Optional[Session] = None
        self.closed = False

    @classmethod
    def open(cls, settings: Optional[Settings] = None) -> "Database":
        """Create a handle and build its engine right away"""
        database = cls(settings)
        database.engine
        return database

    @property
    def url(self):
        return self.settings.database_url()

    @property
    def engine(self) -> Engine:
        if self.closed:
            raise DatabaseConnectionError("Database connection is closed")
        if self._engine is None:
            url = self.url
            kwargs = {"echo": self.settings.SQL_ECHO}
            # In-memory SQLite lives inside one connection, so the pool must hand out
            # that same connection every time or each checkout sees an empty database
            if url.get_backend_name() == "sqlite" and url.database in (None, "", ":memory:"):
                kwargs["connect_args"] = {"check_same_thread": False}
                kwargs["poolclass"] = StaticPool
            self._engine = create_engine(url, **kwargs)
            # autocommit=False: Changes require explicit commit
            # autoflush=False: Don't auto-flush before queries
            self._session_factory = sessionmaker(autocommit=False, autoflush=False, bind=self._engine)
            logger.debug(f"Engine created for {url.render_as_string(hide_password=True)}")
        return self._engine

    @property
    def session(self) -> Session:
        """The single session shared by every operation of this handle"""
        if self._session is None:
            self.engine
            self._session = self._session_factory()
        return self._session

    def authenticate(self) -> None:
        """
        Verify the connection is live by running a trivial query.

        Raises DatabaseConnectionError when the credentials are rejected or the
        host cannot be reached.
        """
        try:
            with self.engine.connect() as connection:
                connection.execute(text("SELECT 1"))
        except DBAPIError as e:
            # OperationalError / InterfaceError both derive from DBAPIError
            raise DatabaseConnectionError(
                f"Unable to connect to {self.url.render_as_string(hide_password=True)}: {e.orig}"
            ) from e
        except SQLAlchemyError as e:
            raise DatabaseConnectionError(f"Unable to connect: {str(e)}") from e

    def close(self) -> None:
        """Release the session and the engine. Safe to call more than once."""
        if self.closed:
            return
        self.closed = True
        if self._session is not None:
            self._session.close()
            self._session = None
        if self._engine is not None:
            self._engine.dispose()
            self._engine = None
        self._session_factory = None

    def __enter__(self) -> "Database":
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        self.close()


def get_db(database: Database):
    """
    Yield the session of a database handle and close the handle afterwards.

    Generator form of the `with Database(...)` block for callers that drive
    cleanup through a generator (e.g. pytest fixtures).
    """
    try:
        yield database.session
    finally:
        # Always close, even if the caller raised an exception
        database.close()
