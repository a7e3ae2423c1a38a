"""
auth/store.py -- SQLAlchemy Core persistence layer for users and refresh tokens.

Pattern: Repository + Data Mapper. SessionStore is the repository;
_row_to_user / _row_to_refresh_token are the mappers. Services never touch
SQL directly.

Security:
  All queries use bound parameters. No f-strings in SQL.

  refresh_tokens.token is UNIQUE. With 256 bits of entropy a collision is not
  expected, so there is no retry loop -- the constraint is the backstop and a
  violation surfaces as StorageError.

  mark_refresh_token_revoked() only touches rows whose revoked_at IS NULL, so
  revoked_at is written at most once and never cleared.

Errors:
  Every SQLAlchemyError is re-raised as StorageError so callers can tell
  "the database is down" apart from "the credentials are wrong". The one
  exception is a duplicate email on insert/update, which becomes EmailTaken.

Timestamps are stored as ISO 8601 UTC strings (core.clock.to_iso).
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime
from uuid import UUID, uuid4

from sqlalchemy import (
    Boolean,
    Column,
    ForeignKey,
    MetaData,
    String,
    Table,
    Text,
    create_engine,
    event,
)
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from auth.errors import EmailTaken, StorageError
from auth.models import RefreshToken, User
from core.clock import Clock, from_iso, to_iso, utc_now

logger = logging.getLogger("chirpy.auth")

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_users = Table(
    "users",
    _metadata,
    Column("id", String(36), primary_key=True),
    Column("email", String(320), nullable=False, unique=True),
    Column("hashed_password", Text, nullable=False),
    Column("created_at", String(32), nullable=False),
    Column("updated_at", String(32), nullable=False),
    Column("is_chirpy_red", Boolean, nullable=False, server_default="0"),
)

_refresh_tokens = Table(
    "refresh_tokens",
    _metadata,
    Column("token", String(64), primary_key=True),  # hex, unique by PK
    Column("user_id", String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True),
    Column("created_at", String(32), nullable=False),
    Column("updated_at", String(32), nullable=False),
    Column("expires_at", String(32), nullable=False),
    Column("revoked_at", String(32)),  # NULL = not revoked
)


# ---------------------------------------------------------------------------
# WAL mode
# ---------------------------------------------------------------------------


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode so readers do not block during writes.

    Set per-connection because SQLite PRAGMAs are not inherited by new
    connections from the pool.
    """
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class SessionStore:
    """Repository for User and RefreshToken entities.

    Usage:
        store = SessionStore("sqlite:///:memory:")
        user = store.create_user(User(email="a@b.com", hashed_password=digest))
        store.close()
    """

    def __init__(self, db_url: str, clock: Clock = utc_now) -> None:
        connect_args: dict = {}
        if db_url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
        self._clock = clock
        self.engine: Engine = create_engine(db_url, connect_args=connect_args)
        if db_url.startswith("sqlite") and ":memory:" not in db_url and "mode=memory" not in db_url:
            event.listen(self.engine, "connect", _set_wal_mode)
        with self._guard("create schema"):
            _metadata.create_all(self.engine)

    @contextmanager
    def _guard(self, operation: str, unique_email: bool = False) -> Iterator[None]:
        try:
            yield
        except IntegrityError as exc:
            if unique_email:
                raise EmailTaken("email already registered") from exc
            logger.error("Storage failure during %s: %s", operation, exc.__class__.__name__)
            raise StorageError(f"{operation}: {exc}") from exc
        except SQLAlchemyError as exc:
            logger.error("Storage failure during %s: %s", operation, exc.__class__.__name__)
            raise StorageError(f"{operation}: {exc}") from exc

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------

    def create_user(self, user: User) -> User:
        """Insert a new user and return it with id and timestamps filled in.

        Raises EmailTaken if the email is already registered.
        """
        now = to_iso(self._clock())
        user_id = user.id or uuid4()
        with self._guard("create user", unique_email=True), self.engine.connect() as conn:
            conn.execute(
                _users.insert().values(
                    id=str(user_id),
                    email=user.email,
                    hashed_password=user.hashed_password,
                    created_at=now,
                    updated_at=now,
                    is_chirpy_red=user.is_chirpy_red,
                )
            )
            conn.commit()
        return self.get_by_id(user_id)

    def get_by_email(self, email: str) -> User | None:
        """Look up a user by exact email (case-sensitive). Returns None if not found."""
        with self._guard("get user by email"), self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.email == email)).fetchone()
        return _row_to_user(row) if row is not None else None

    def get_by_id(self, user_id: UUID) -> User | None:
        with self._guard("get user by id"), self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.id == str(user_id))).fetchone()
        return _row_to_user(row) if row is not None else None

    def update_credentials(self, user_id: UUID, email: str, hashed_password: str) -> User | None:
        """Replace email and password hash together. Returns None if user_id is unknown."""
        with self._guard("update user", unique_email=True), self.engine.connect() as conn:
            result = conn.execute(
                _users.update()
                .where(_users.c.id == str(user_id))
                .values(email=email, hashed_password=hashed_password, updated_at=to_iso(self._clock()))
            )
            conn.commit()
        if result.rowcount == 0:
            return None
        return self.get_by_id(user_id)

    def upgrade_user(self, user_id: UUID) -> bool:
        """Set is_chirpy_red. Returns False if user_id is unknown; upgrading twice is a no-op."""
        with self._guard("upgrade user"), self.engine.connect() as conn:
            result = conn.execute(
                _users.update()
                .where(_users.c.id == str(user_id))
                .values(is_chirpy_red=True, updated_at=to_iso(self._clock()))
            )
            conn.commit()
        return result.rowcount > 0

    def delete_all_users(self) -> int:
        """Delete every user and every refresh token. Dev reset only.

        Tokens go first so the foreign key holds even where the engine does
        not enforce ON DELETE CASCADE (SQLite without PRAGMA foreign_keys).
        """
        with self._guard("delete users"), self.engine.connect() as conn:
            conn.execute(_refresh_tokens.delete())
            result = conn.execute(_users.delete())
            conn.commit()
        return result.rowcount

    # ------------------------------------------------------------------
    # Refresh tokens
    # ------------------------------------------------------------------

    def insert_refresh_token(self, row: RefreshToken) -> RefreshToken:
        now = self._clock()
        with self._guard("insert refresh token"), self.engine.connect() as conn:
            conn.execute(
                _refresh_tokens.insert().values(
                    token=row.token,
                    user_id=str(row.user_id),
                    created_at=to_iso(now),
                    updated_at=to_iso(now),
                    expires_at=to_iso(row.expires_at),
                    revoked_at=to_iso(row.revoked_at) if row.revoked_at else None,
                )
            )
            conn.commit()
        row.created_at = now
        row.updated_at = now
        return row

    def get_refresh_token(self, token: str) -> RefreshToken | None:
        with self._guard("get refresh token"), self.engine.connect() as conn:
            row = conn.execute(_refresh_tokens.select().where(_refresh_tokens.c.token == token)).fetchone()
        return _row_to_refresh_token(row) if row is not None else None

    def mark_refresh_token_revoked(self, token: str, when: datetime) -> bool:
        """Stamp revoked_at on a live token. False if unknown or already revoked."""
        stamp = to_iso(when)
        with self._guard("revoke refresh token"), self.engine.connect() as conn:
            result = conn.execute(
                _refresh_tokens.update()
                .where((_refresh_tokens.c.token == token) & (_refresh_tokens.c.revoked_at.is_(None)))
                .values(revoked_at=stamp, updated_at=stamp)
            )
            conn.commit()
        return result.rowcount > 0

    def purge_expired_refresh_tokens(self, now: datetime) -> int:
        """Delete rows whose expires_at has passed. Returns the number removed.

        ISO 8601 strings in one fixed UTC format sort chronologically, so the
        comparison can run in SQL.
        """
        with self._guard("purge refresh tokens"), self.engine.connect() as conn:
            result = conn.execute(_refresh_tokens.delete().where(_refresh_tokens.c.expires_at <= to_iso(now)))
            conn.commit()
        return result.rowcount

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mappers (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_user(row) -> User:
    return User(
        id=UUID(row.id),
        email=row.email,
        hashed_password=row.hashed_password,
        created_at=from_iso(row.created_at),
        updated_at=from_iso(row.updated_at),
        is_chirpy_red=bool(row.is_chirpy_red),
    )


def _row_to_refresh_token(row) -> RefreshToken:
    return RefreshToken(
        token=row.token,
        user_id=UUID(row.user_id),
        created_at=from_iso(row.created_at),
        updated_at=from_iso(row.updated_at),
        expires_at=from_iso(row.expires_at),
        revoked_at=from_iso(row.revoked_at),
    )
