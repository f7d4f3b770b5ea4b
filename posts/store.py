"""
posts/store.py -- SQLAlchemy-backed persistence layer for posts.

Uses SQLAlchemy Core (not ORM) so the Post dataclass in posts/models.py stays
the authoritative domain representation. Swapping SQLite for PostgreSQL is a
connection string change.

Pattern: Repository + Data Mapper. PostStore is the repository, _row_to_post
the mapper. Route handlers never touch SQL directly.

Ownership is not checked here -- the store writes whatever it is told.
Routes load the post, call auth.guard.authorize_owner(), then write.

Usage:
    store = PostStore()
    post_id = store.create_post(Post(title="Hello", description="First post body", user_id=1))
    page = store.list_posts(page=1)
    store.update_post(post_id, title="Hello again")
    store.delete_post(post_id)
    store.close()
"""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import Column, Integer, MetaData, String, Table, Text, func, select
from sqlalchemy.engine import Engine

from auth.store import make_engine
from posts.models import Post

_DEFAULT_DB_URL = "sqlite:///gatekeeper.db"
_DEFAULT_PER_PAGE = 10

# SQLite INTEGER is a signed 64-bit value; larger Python ints overflow the driver.
_MIN_ROW_INT = -(2**63)
_MAX_ROW_INT = 2**63 - 1

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

metadata = MetaData()

_posts = Table(
    "posts",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("title", String(50), nullable=False),
    Column("description", Text, nullable=False),
    Column("user_id", Integer, nullable=False, index=True),
    Column("created_at", String(32), nullable=False),
    Column("updated_at", String(32), nullable=False),
)

_UPDATABLE_FIELDS = {"title", "description"}


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _fits_row_int(value: int) -> bool:
    return _MIN_ROW_INT <= value <= _MAX_ROW_INT


def page_offset(page: Optional[int], per_page: int) -> int:
    """Translate a 1-based page number to a row offset. Anything <= 1 is the first page."""
    if page is None or page <= 1:
        return 0
    return (page - 1) * per_page


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class PostStore:
    def __init__(self, db_url: str = _DEFAULT_DB_URL, timeout: float = 5.0) -> None:
        self.engine: Engine = make_engine(db_url, timeout=timeout)
        metadata.create_all(self.engine)

    def create_post(self, post: Post) -> int:
        """Insert a post and return its ID."""
        now = _now_iso()
        with self.engine.connect() as conn:
            result = conn.execute(
                _posts.insert().values(
                    title=post.title,
                    description=post.description,
                    user_id=post.user_id,
                    created_at=now,
                    updated_at=now,
                )
            )
            conn.commit()
            return result.inserted_primary_key[0]

    def get_post(self, post_id: int) -> Optional[Post]:
        """Fetch a single post by ID. Returns None if not found."""
        if not _fits_row_int(post_id):
            return None
        with self.engine.connect() as conn:
            row = conn.execute(_posts.select().where(_posts.c.id == post_id)).fetchone()
        return _row_to_post(row) if row is not None else None

    def list_posts(self, page: Optional[int] = 1, per_page: int = _DEFAULT_PER_PAGE) -> list[Post]:
        """Return one page of posts, newest first.

        created_at ties (two inserts in the same microsecond) fall back to
        id descending so paging is stable.

        A page whose offset does not fit a SQLite integer lies past any
        possible last page and is empty.
        """
        offset = page_offset(page, per_page)
        if not _fits_row_int(offset):
            return []
        stmt = (
            _posts.select()
            .order_by(_posts.c.created_at.desc(), _posts.c.id.desc())
            .offset(offset)
            .limit(per_page)
        )
        with self.engine.connect() as conn:
            rows = conn.execute(stmt).fetchall()
        return [_row_to_post(r) for r in rows]

    def count_posts(self) -> int:
        with self.engine.connect() as conn:
            return conn.execute(select(func.count()).select_from(_posts)).scalar() or 0

    def update_post(self, post_id: int, **fields) -> bool:
        """Update title and/or description. Returns False if post_id was not found.

        Unknown field names raise ValueError -- column names never come from
        request input unchecked.
        """
        unknown = set(fields) - _UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Unknown post fields: {unknown!r}")
        if not fields or not _fits_row_int(post_id):
            return False
        fields["updated_at"] = _now_iso()
        with self.engine.connect() as conn:
            result = conn.execute(_posts.update().where(_posts.c.id == post_id).values(**fields))
            conn.commit()
        return result.rowcount > 0

    def delete_post(self, post_id: int) -> bool:
        """Delete a post. Returns True if a row was removed."""
        if not _fits_row_int(post_id):
            return False
        with self.engine.connect() as conn:
            result = conn.execute(_posts.delete().where(_posts.c.id == post_id))
            conn.commit()
        return result.rowcount > 0

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mapper
# ---------------------------------------------------------------------------


def _row_to_post(row) -> Post:
    return Post(
        id=row.id,
        title=row.title,
        description=row.description,
        user_id=row.user_id,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )
