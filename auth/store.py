"""
auth/store.py -- SQLAlchemy Core persistence layer for accounts.

Pattern: Repository + Data Mapper. AccountStore is the repository;
_row_to_account is the mapper. Service and route code never touches SQL.

Uniqueness:
  UNIQUE(email) and UNIQUE(biometric_fingerprint) are enforced in SQL, not
  only in code. The service checks before it writes, but two concurrent
  requests can both pass that check; the constraint is what guarantees the
  invariant. create() and update() surface a violation as
  sqlalchemy.exc.IntegrityError for the caller to map.

  SQLite, PostgreSQL and MySQL all treat NULLs as distinct in a UNIQUE index,
  so any number of accounts without an enrolled biometric key can coexist.

Absent vs failure:
  find_* return None when no row matches. Any other SQLAlchemyError is a
  storage failure and propagates.

Security:
  All queries use bound parameters. No f-strings in SQL.

Layer rule: no imports from api/.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, MetaData, String, Table, Text, create_engine, event, func, select
from sqlalchemy.engine import Engine

from auth.models import Account
from core.config import get_settings

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_accounts = Table(
    "accounts",
    _metadata,
    Column("id", String(32), primary_key=True),
    Column("email", String(255), nullable=False, unique=True),
    Column("name", String(255), nullable=False),
    Column("password_hash", Text, nullable=False),
    Column("biometric_key_encrypted", Text),  # NULL until enrolled
    Column("biometric_fingerprint", String(64), unique=True),  # HMAC-SHA256 hex, NULL until enrolled
    Column("created_at", String(32), nullable=False),
    Column("updated_at", String(32), nullable=False),
)

# Columns update() is allowed to touch. id, email, password_hash and
# created_at are immutable after creation.
_MUTABLE_FIELDS = frozenset({"name", "biometric_key_encrypted", "biometric_fingerprint"})


# ---------------------------------------------------------------------------
# WAL mode
# ---------------------------------------------------------------------------


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode for concurrent read safety.

    Set per-connection because SQLite PRAGMAs are not inherited by new
    connections from the pool.
    """
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class AccountStore:
    """Repository for Account records.

    Usage:
        store = AccountStore("sqlite:///:memory:")
        account = store.create(Account(email="a@x.com", name="Alice", password_hash=h))
        store.find_by_email("a@x.com")
        store.close()
    """

    def __init__(self, db_url: str | None = None) -> None:
        db_url = db_url or get_settings().database_url
        connect_args: dict = {}
        if db_url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
        self.engine: Engine = create_engine(db_url, connect_args=connect_args)
        if db_url.startswith("sqlite"):
            event.listen(self.engine, "connect", _set_wal_mode)
        _metadata.create_all(self.engine)

    def create(self, account: Account) -> Account:
        """Insert a new account and return it with id and timestamps assigned.

        Biometric fields are always written as NULL: enrollment goes through
        update(). Raises IntegrityError if the email already exists.
        """
        now = _now_iso()
        account_id = uuid.uuid4().hex
        with self.engine.begin() as conn:
            conn.execute(
                _accounts.insert().values(
                    id=account_id,
                    email=account.email,
                    name=account.name,
                    password_hash=account.password_hash,
                    biometric_key_encrypted=None,
                    biometric_fingerprint=None,
                    created_at=now,
                    updated_at=now,
                )
            )
        return Account(
            id=account_id,
            email=account.email,
            name=account.name,
            password_hash=account.password_hash,
            created_at=now,
            updated_at=now,
        )

    def find_by_email(self, email: str) -> Account | None:
        """Look up an account by exact email (case-sensitive). Returns None if not found."""
        return self._find_one(_accounts.c.email == email)

    def find_by_id(self, account_id: str) -> Account | None:
        return self._find_one(_accounts.c.id == account_id)

    def find_by_fingerprint(self, fingerprint: str) -> Account | None:
        """Look up an account by biometric fingerprint. O(1) via the UNIQUE index."""
        return self._find_one(_accounts.c.biometric_fingerprint == fingerprint)

    def update(self, account_id: str, **fields) -> Account | None:
        """Update mutable fields on an existing account and bump updated_at.

        Returns the updated account, or None if account_id was not found.
        Raises IntegrityError if a new fingerprint collides with another row,
        ValueError for field names outside the mutable set.
        """
        unknown = set(fields) - _MUTABLE_FIELDS
        if unknown:
            raise ValueError(f"Cannot update account fields: {sorted(unknown)!r}")
        with self.engine.begin() as conn:
            result = conn.execute(
                _accounts.update().where(_accounts.c.id == account_id).values(updated_at=_now_iso(), **fields)
            )
            if result.rowcount == 0:
                return None
            row = conn.execute(select(_accounts).where(_accounts.c.id == account_id)).fetchone()
        return _row_to_account(row) if row is not None else None

    def count(self) -> int:
        """Return the number of accounts. Used by the health check as a cheap round-trip."""
        with self.engine.connect() as conn:
            result = conn.execute(select(func.count()).select_from(_accounts)).scalar()
        return result or 0

    def close(self) -> None:
        self.engine.dispose()

    def _find_one(self, clause) -> Account | None:
        with self.engine.connect() as conn:
            row = conn.execute(select(_accounts).where(clause)).fetchone()
        return _row_to_account(row) if row is not None else None


# ---------------------------------------------------------------------------
# Row mapper (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_account(row) -> Account:
    return Account(
        id=row.id,
        email=row.email,
        name=row.name,
        password_hash=row.password_hash,
        biometric_key_encrypted=row.biometric_key_encrypted,
        biometric_fingerprint=row.biometric_fingerprint,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )
