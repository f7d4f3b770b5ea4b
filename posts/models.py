"""
posts/models.py -- Domain dataclass for posts.

Pure data container with zero logic. Persistence lives in posts/store.py,
ownership checks in auth/guard.py.
"""

from dataclasses import dataclass
from typing import Optional


@dataclass
class Post:
    """A short piece of content owned by exactly one user.

    user_id is the owner reference compared by authorize_owner().
    owner_email is filled by the route layer for list/detail responses; the
    store never joins against users.

    id is None before the record is written to the database.
    """

    title: str
    description: str
    user_id: int
    id: Optional[int] = None
    owner_email: Optional[str] = None
    created_at: str = ""  # ISO 8601, set by store on insert
    updated_at: str = ""  # ISO 8601, set by store on every write
