"""Relational store connection, session management and explicit transactions."""

from __future__ import annotations

import logging
import time
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from typing import Any

from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine, Result
from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.errors import StorageError

logger = logging.getLogger(__name__)

MAX_CONNECTION_ATTEMPTS = 3
CONNECTION_TIMEOUT = 30


def _enable_sqlite_foreign_keys(dbapi_connection: Any, _record: Any) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def _build_engine(url: str, connect_timeout: int, echo: bool) -> Engine:
    if url.startswith("sqlite"):
        # In-memory SQLite must share one connection across the thread pool.
        engine = create_engine(
            url,
            echo=echo,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
        event.listen(engine, "connect", _enable_sqlite_foreign_keys)
        return engine
    return create_engine(
        url,
        pool_pre_ping=True,
        echo=echo,
        connect_args={"connect_timeout": connect_timeout},
    )


@contextmanager
def storage_errors(action: str) -> Iterator[None]:
    """Re-raise driver/ORM failures as StorageError naming the failed action."""
    try:
        yield
    except SQLAlchemyError as e:
        raise StorageError(f"Failed to {action}: {e}") from e


class Database:
    """
    Shared gateway to the store: one engine (connection pool) per process.

    Built once at startup and handed to repositories. Each unit of work opens
    its own short-lived session; transactions are explicit via transaction().
    """

    def __init__(
        self,
        url: str,
        *,
        connect_timeout: int = CONNECTION_TIMEOUT,
        max_attempts: int = MAX_CONNECTION_ATTEMPTS,
        echo: bool = False,
    ) -> None:
        self.engine = _build_engine(url, connect_timeout, echo)
        self.max_attempts = max_attempts
        self._session_factory = sessionmaker(
            autocommit=False, autoflush=False, expire_on_commit=False, bind=self.engine
        )
        self._connected = False

    def connect(self) -> None:
        """
        Establish the first connection, retrying with linear backoff.

        Retries only apply here; once the store has been reached, later
        failures surface per query as StorageError.
        """
        attempts = 0
        while True:
            attempts += 1
            try:
                with self.engine.connect() as conn:
                    conn.execute(text("SELECT 1"))
                self._connected = True
                return
            except OperationalError as e:
                if attempts >= self.max_attempts:
                    raise StorageError(
                        f"Failed to establish database connection after {attempts} attempts: {e}"
                    ) from e
                delay = attempts * 2
                logger.warning(
                    "Database connection attempt %s failed, retrying in %ss: %s",
                    attempts,
                    delay,
                    e,
                )
                time.sleep(delay)

    def _ensure_connected(self) -> None:
        if not self._connected:
            self.connect()

    @contextmanager
    def session(self) -> Iterator[Session]:
        """Yield a session and close it when done; the caller commits."""
        self._ensure_connected()
        db = self._session_factory()
        try:
            yield db
        finally:
            db.close()

    @contextmanager
    def transaction(self) -> Iterator[Session]:
        """Begin, commit on success, roll back on any error. No nesting."""
        with self.session() as db:
            try:
                yield db
                db.commit()
            except Exception:
                db.rollback()
                raise

    def execute(self, sql: str, params: Mapping[str, Any] | None = None) -> Result:
        """Run one parameterized statement in its own transaction."""
        self._ensure_connected()
        try:
            with self.engine.begin() as conn:
                result = conn.execute(text(sql), dict(params or {}))
                # Buffer rows so the result outlives the connection.
                return result.freeze()() if result.returns_rows else result
        except SQLAlchemyError as e:
            raise StorageError(f"Database query execution failed: {e}") from e

    def check_connected(self) -> bool:
        """Run a trivial query to verify the database is reachable."""
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            return True
        except SQLAlchemyError:
            return False

    def dispose(self) -> None:
        self.engine.dispose()
        self._connected = False
