"""
auth/guard.py -- Ownership authorization for owned resources.

A resource is any object with a `user_id` attribute naming its owner. Update
and delete routes call authorize_owner() after loading the resource and
before mutating it. Reads are public and never pass through here.

Layer rule: no imports from api/, posts/, mail/, or core/.
"""

from __future__ import annotations

from typing import Protocol

from auth.errors import Forbidden


class Owned(Protocol):
    user_id: int


def authorize_owner(resource: Owned, acting_user_id: int | None, action: str = "modify") -> None:
    """Raise Forbidden unless acting_user_id owns the resource.

    An absent actor (None) is always denied, even if the resource somehow
    carries a None owner.
    """
    if acting_user_id is None or resource.user_id is None or resource.user_id != acting_user_id:
        raise Forbidden(f"Unauthorized to {action} this resource")
