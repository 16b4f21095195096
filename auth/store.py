"""
auth/store.py -- SQLAlchemy Core persistence layer for account entities.

Pattern: Repository + Data Mapper. UserStore is the repository;
_row_to_user / _row_to_session are the mappers. Service and route code never
touches SQL directly.

This is the raw record store. It does not trim input and, apart from
get_active_by_username(), it does not filter soft-deleted rows -- that policy
lives in auth/directory.py.

Security:
  All queries use bound parameters. No f-strings in SQL.

  UNIQUE(username) and UNIQUE(email) are enforced by the database, across
  active and soft-deleted rows alike. The directory's exists_by_*() pre-check
  is only the fast path for a friendly error; two concurrent registrations
  racing past it still collide here with IntegrityError.

  SQLite treats NULL values as distinct in UNIQUE constraints, so any number
  of rows may have a NULL email. Registration always requires an email.

DB path: auth/gatekeeper.db unless DATABASE_URL says otherwise.

Layer rule: no imports from api/.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import Column, Integer, MetaData, String, Table, Text, create_engine, event, func, or_, select
from sqlalchemy.engine import Engine

from auth.models import Session, User

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_users = Table(
    "users",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("username", String(255), nullable=False, unique=True),
    Column("password", Text),
    Column("email", String(255), unique=True),
    Column("phone", String(32), index=True),  # not unique
    Column("is_delete", Integer),  # NULL/0 = active, 1 = soft-deleted
    Column("created_at", String(32), nullable=False),
    Column("updated_at", String(32), nullable=False),
)

_sessions = Table(
    "sessions",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("jti", String(64), nullable=False, unique=True),
    Column("user_id", Integer, nullable=False, index=True),
    Column("created_at", String(32), nullable=False),
    Column("expires_at", String(32), nullable=False),
    Column("is_active", Integer, nullable=False, server_default="1"),
)


# ---------------------------------------------------------------------------
# WAL mode
# ---------------------------------------------------------------------------


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode for concurrent read safety.

    Set per-connection because SQLite PRAGMAs are not inherited by new
    connections from the pool.
    """
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _active_clause():
    return or_(_users.c.is_delete.is_(None), _users.c.is_delete == 0)


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class UserStore:
    """Repository for User and Session records.

    Usage:
        store = UserStore()
        user_id = store.insert_user(User(username="alice", password="pw", email="a@example.com", ...))
        user = store.get_by_id(user_id)
        store.close()
    """

    def __init__(self, db_url: str) -> None:
        connect_args: dict = {}
        if db_url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
        self.engine: Engine = create_engine(db_url, connect_args=connect_args)
        if db_url.startswith("sqlite"):
            event.listen(self.engine, "connect", _set_wal_mode)
        _metadata.create_all(self.engine)

    # ------------------------------------------------------------------
    # User queries
    # ------------------------------------------------------------------

    def count_users(self) -> int:
        """Count every user record, soft-deleted ones included."""
        with self.engine.connect() as conn:
            result = conn.execute(select(func.count()).select_from(_users)).scalar()
        return result or 0

    def insert_user(self, user: User) -> int:
        """Insert a new user and return its assigned database ID.

        Timestamps and the deleted flag are written exactly as given; the
        directory layer fills defaults before calling.

        Raises sqlalchemy.exc.IntegrityError if the username or email is
        already taken by any record, deleted or not.
        """
        with self.engine.connect() as conn:
            result = conn.execute(
                _users.insert().values(
                    username=user.username,
                    password=user.password,
                    email=user.email,
                    phone=user.phone,
                    is_delete=user.deleted,
                    created_at=user.created_at,
                    updated_at=user.updated_at,
                )
            )
            conn.commit()
            return result.inserted_primary_key[0]

    def save_user(self, user: User) -> bool:
        """Overwrite the stored row for user.id with every field of user.

        No partial merge happens here. Returns True if a row was updated,
        False if user.id was not found.
        """
        with self.engine.connect() as conn:
            result = conn.execute(
                _users.update()
                .where(_users.c.id == user.id)
                .values(
                    username=user.username,
                    password=user.password,
                    email=user.email,
                    phone=user.phone,
                    is_delete=user.deleted,
                    created_at=user.created_at,
                    updated_at=user.updated_at,
                )
            )
            conn.commit()
        return result.rowcount > 0

    def get_by_id(self, user_id: int) -> User | None:
        """Look up a user by primary key, deleted or not. Returns None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.id == user_id)).fetchone()
        return _row_to_user(row) if row is not None else None

    def get_by_username(self, username: str) -> User | None:
        """Look up a user by exact username (case-sensitive), deleted or not."""
        with self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.username == username)).fetchone()
        return _row_to_user(row) if row is not None else None

    def get_active_by_username(self, username: str) -> User | None:
        """Look up a user by exact username, skipping soft-deleted rows."""
        with self.engine.connect() as conn:
            row = conn.execute(
                _users.select().where((_users.c.username == username) & _active_clause())
            ).fetchone()
        return _row_to_user(row) if row is not None else None

    def get_by_email(self, email: str) -> User | None:
        """Look up a user by exact email, deleted or not."""
        with self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.email == email)).fetchone()
        return _row_to_user(row) if row is not None else None

    def get_by_phone(self, phone: str) -> User | None:
        """Look up the oldest user with this phone number, deleted or not.

        Phone numbers are not unique; the lowest id wins.
        """
        with self.engine.connect() as conn:
            row = conn.execute(
                _users.select().where(_users.c.phone == phone).order_by(_users.c.id).limit(1)
            ).fetchone()
        return _row_to_user(row) if row is not None else None

    def exists_by_username(self, username: str) -> bool:
        with self.engine.connect() as conn:
            row = conn.execute(select(_users.c.id).where(_users.c.username == username).limit(1)).fetchone()
        return row is not None

    def exists_by_email(self, email: str) -> bool:
        with self.engine.connect() as conn:
            row = conn.execute(select(_users.c.id).where(_users.c.email == email).limit(1)).fetchone()
        return row is not None

    def list_users(self) -> list[User]:
        """Return every user record ordered by id, soft-deleted ones included."""
        with self.engine.connect() as conn:
            rows = conn.execute(_users.select().order_by(_users.c.id)).fetchall()
        return [_row_to_user(r) for r in rows]

    # ------------------------------------------------------------------
    # Session queries
    # ------------------------------------------------------------------

    def create_session(self, session: Session) -> int:
        """Insert a session row and return its ID."""
        with self.engine.connect() as conn:
            result = conn.execute(
                _sessions.insert().values(
                    jti=session.jti,
                    user_id=session.user_id,
                    created_at=session.created_at or _now_iso(),
                    expires_at=session.expires_at,
                    is_active=1 if session.is_active else 0,
                )
            )
            conn.commit()
            return result.inserted_primary_key[0]

    def get_session(self, jti: str) -> Session | None:
        """Look up a session by its token id, active or not."""
        with self.engine.connect() as conn:
            row = conn.execute(_sessions.select().where(_sessions.c.jti == jti)).fetchone()
        return _row_to_session(row) if row is not None else None

    def revoke_session(self, jti: str) -> bool:
        """Deactivate one session. Returns True if an active session was revoked."""
        with self.engine.connect() as conn:
            result = conn.execute(
                _sessions.update()
                .where((_sessions.c.jti == jti) & (_sessions.c.is_active == 1))
                .values(is_active=0)
            )
            conn.commit()
        return result.rowcount > 0

    def revoke_sessions_for_user(self, user_id: int) -> int:
        """Deactivate every active session of a user. Returns how many were revoked."""
        with self.engine.connect() as conn:
            result = conn.execute(
                _sessions.update()
                .where((_sessions.c.user_id == user_id) & (_sessions.c.is_active == 1))
                .values(is_active=0)
            )
            conn.commit()
        return result.rowcount

    def purge_sessions(self, now: str) -> int:
        """Delete revoked sessions and sessions whose expiry is at or before `now`.

        `now` is an ISO-8601 UTC string in the same format the rows are
        written with, so the comparison is a plain string comparison.
        Returns the number of rows removed.
        """
        with self.engine.connect() as conn:
            result = conn.execute(
                _sessions.delete().where((_sessions.c.is_active == 0) | (_sessions.c.expires_at <= now))
            )
            conn.commit()
        return result.rowcount

    # ------------------------------------------------------------------
    # Maintenance
    # ------------------------------------------------------------------

    def ping(self) -> bool:
        """Return True if the database answers a trivial query."""
        with self.engine.connect() as conn:
            return conn.execute(select(1)).scalar() == 1

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mappers (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_user(row) -> User:
    return User(
        id=row.id,
        username=row.username,
        password=row.password,
        email=row.email,
        phone=row.phone,
        deleted=row.is_delete,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _row_to_session(row) -> Session:
    return Session(
        id=row.id,
        jti=row.jti,
        user_id=row.user_id,
        created_at=row.created_at,
        expires_at=row.expires_at,
        is_active=bool(row.is_active),
    )
