"""
auth/store.py -- SQLAlchemy Core persistence layer for user accounts.

Pattern: Repository + Data Mapper.
UserStore is the repository; _row_to_user is the mapper. Service and route
code never touches SQL directly.

Selective reads:
  The secret columns (hashed_password and both one-time code pairs) are left
  out of the default SELECT. Callers ask for them explicitly with
  with_password=True or with_codes=<CodePurpose>, so only the operation that
  needs a secret ever loads it.

Code pairs:
  store_code() writes hash and issued_at in one UPDATE. consume_code() is a
  compare-and-swap: the UPDATE only matches while the stored hash still equals
  the hash the caller verified, so two concurrent consumers of the same code
  cannot both succeed. The purpose-specific effect (verified=1 or a new
  password hash) rides in the same statement as the clear.

Security:
  All queries use bound parameters. No f-strings in SQL.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, Integer, MetaData, String, Table, Text, create_engine, event, select, text
from sqlalchemy.engine import Engine

from auth.models import CodePurpose, User

_DEFAULT_DB_URL = "sqlite:///gatekeeper.db"

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_users = Table(
    "users",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("email", String(255), nullable=False, unique=True),
    Column("hashed_password", Text, nullable=False),
    Column("verified", Boolean, nullable=False, server_default="0"),
    Column("verification_code_hash", String(64)),  # HMAC-SHA256 hex
    Column("verification_code_issued_at", String(32)),
    Column("reset_code_hash", String(64)),  # HMAC-SHA256 hex
    Column("reset_code_issued_at", String(32)),
    Column("created_at", String(32), nullable=False),
    Column("updated_at", String(32), nullable=False),
)

_PUBLIC_COLUMNS = (
    _users.c.id,
    _users.c.email,
    _users.c.verified,
    _users.c.created_at,
    _users.c.updated_at,
)

_CODE_COLUMNS = {
    CodePurpose.EMAIL_VERIFICATION: (_users.c.verification_code_hash, _users.c.verification_code_issued_at),
    CodePurpose.PASSWORD_RESET: (_users.c.reset_code_hash, _users.c.reset_code_issued_at),
}


# ---------------------------------------------------------------------------
# Connection setup
# ---------------------------------------------------------------------------


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode so readers do not block behind a writer."""
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


def make_engine(db_url: str, timeout: float = 5.0) -> Engine:
    """Create an engine with a bounded lock wait on SQLite.

    The sqlite3 `timeout` caps how long a statement waits on a locked
    database before raising OperationalError, so a stuck writer surfaces as
    a server error instead of hanging the request.
    """
    connect_args: dict = {}
    if db_url.startswith("sqlite"):
        connect_args["check_same_thread"] = False
        connect_args["timeout"] = timeout
    engine = create_engine(db_url, connect_args=connect_args)
    if db_url.startswith("sqlite") and ":memory:" not in db_url and "mode=memory" not in db_url:
        event.listen(engine, "connect", _set_wal_mode)
    return engine


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class UserStore:
    """Repository for User records.

    Usage:
        store = UserStore()
        uid = store.create_user(User(email="a@a.com", hashed_password=hasher.hash("Abc123!")))
        user = store.get_by_email("a@a.com", with_password=True)
        store.close()
    """

    def __init__(self, db_url: str = _DEFAULT_DB_URL, timeout: float = 5.0) -> None:
        self.engine: Engine = make_engine(db_url, timeout=timeout)
        _metadata.create_all(self.engine)

    def ping(self) -> bool:
        """Return True if the database answers a trivial query."""
        with self.engine.connect() as conn:
            return conn.execute(text("SELECT 1")).scalar() == 1

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def _select(self, with_password: bool, with_codes: CodePurpose | None):
        columns = list(_PUBLIC_COLUMNS)
        if with_password:
            columns.append(_users.c.hashed_password)
        if with_codes is not None:
            columns.extend(_CODE_COLUMNS[with_codes])
        return select(*columns)

    def get_by_email(
        self,
        email: str,
        *,
        with_password: bool = False,
        with_codes: CodePurpose | None = None,
    ) -> User | None:
        """Look up a user by normalized email. Returns None if not found."""
        stmt = self._select(with_password, with_codes).where(_users.c.email == email)
        with self.engine.connect() as conn:
            row = conn.execute(stmt).fetchone()
        return _row_to_user(row) if row is not None else None

    def get_by_id(
        self,
        user_id: int,
        *,
        with_password: bool = False,
        with_codes: CodePurpose | None = None,
    ) -> User | None:
        """Look up a user by primary key. Returns None if not found."""
        stmt = self._select(with_password, with_codes).where(_users.c.id == user_id)
        with self.engine.connect() as conn:
            row = conn.execute(stmt).fetchone()
        return _row_to_user(row) if row is not None else None

    def get_emails(self, user_ids: list[int]) -> dict[int, str]:
        """Return {user_id: email} for the given ids. Unknown ids are skipped."""
        if not user_ids:
            return {}
        stmt = select(_users.c.id, _users.c.email).where(_users.c.id.in_(sorted(set(user_ids))))
        with self.engine.connect() as conn:
            rows = conn.execute(stmt).fetchall()
        return {row.id: row.email for row in rows}

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create_user(self, user: User) -> int:
        """Insert a new user and return its assigned ID.

        Raises sqlalchemy.exc.IntegrityError if the email already exists.
        The service checks first for a friendly error; the UNIQUE constraint
        catches the race where two signups pass that check together.
        """
        now = _now_iso()
        with self.engine.connect() as conn:
            result = conn.execute(
                _users.insert().values(
                    email=user.email,
                    hashed_password=user.hashed_password,
                    verified=bool(user.verified),
                    created_at=now,
                    updated_at=now,
                )
            )
            conn.commit()
            return result.inserted_primary_key[0]

    def update_password(self, user_id: int, hashed_password: str) -> bool:
        """Replace the password hash. Returns False if user_id was not found."""
        with self.engine.connect() as conn:
            result = conn.execute(
                _users.update()
                .where(_users.c.id == user_id)
                .values(hashed_password=hashed_password, updated_at=_now_iso())
            )
            conn.commit()
        return result.rowcount > 0

    def store_code(self, user_id: int, purpose: CodePurpose, code_hash: str, issued_at: str) -> bool:
        """Write a code pair, overwriting any outstanding code of that purpose."""
        hash_col, issued_col = _CODE_COLUMNS[purpose]
        with self.engine.connect() as conn:
            result = conn.execute(
                _users.update()
                .where(_users.c.id == user_id)
                .values({hash_col: code_hash, issued_col: issued_at, _users.c.updated_at: _now_iso()})
            )
            conn.commit()
        return result.rowcount > 0

    def consume_code(self, user_id: int, purpose: CodePurpose, expected_hash: str, **effects) -> bool:
        """Clear a code pair and apply `effects` only if the stored hash still matches.

        Accepted effects: verified, hashed_password.

        Returns True if this call consumed the code. False means the code was
        already consumed or replaced between the caller's check and this write.
        """
        unknown = set(effects) - {"verified", "hashed_password"}
        if unknown:
            raise ValueError(f"Unknown consume effects: {unknown!r}")
        hash_col, issued_col = _CODE_COLUMNS[purpose]
        values = {hash_col: None, issued_col: None, _users.c.updated_at: _now_iso()}
        values.update({_users.c[name]: value for name, value in effects.items()})
        with self.engine.connect() as conn:
            result = conn.execute(
                _users.update().where((_users.c.id == user_id) & (hash_col == expected_hash)).values(values)
            )
            conn.commit()
        return result.rowcount > 0

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mapper (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_user(row) -> User:
    # Secret columns are only present when the caller selected them.
    fields = row._mapping
    return User(
        id=fields["id"],
        email=fields["email"],
        verified=bool(fields["verified"]),
        created_at=fields["created_at"],
        updated_at=fields["updated_at"],
        hashed_password=fields.get("hashed_password"),
        verification_code_hash=fields.get("verification_code_hash"),
        verification_code_issued_at=fields.get("verification_code_issued_at"),
        reset_code_hash=fields.get("reset_code_hash"),
        reset_code_issued_at=fields.get("reset_code_issued_at"),
    )
