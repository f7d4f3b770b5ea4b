"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container). Stores and services do the work;
these own the shape, plus one field selector for the per-purpose code pair.

Layer rule: no imports from api/, posts/, mail/, or core/.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class CodePurpose(str, Enum):
    """Which one-time code pair on the user record a code belongs to."""

    EMAIL_VERIFICATION = "email_verification"
    PASSWORD_RESET = "password_reset"


@dataclass
class User:
    """A persisted account.

    Secret columns are loaded only on request (see UserStore.get_by_email):
    hashed_password and the code pairs stay None on a default read, so a
    User that leaves the service layer never carries them by accident.

    Each code pair is written and cleared together -- a hash without its
    issued_at timestamp (or the reverse) is never stored.
    """

    email: str
    id: int | None = None
    verified: bool = False
    hashed_password: str | None = None
    verification_code_hash: str | None = None
    verification_code_issued_at: str | None = None  # ISO 8601 UTC
    reset_code_hash: str | None = None
    reset_code_issued_at: str | None = None  # ISO 8601 UTC
    created_at: str | None = None
    updated_at: str | None = None

    def code_pair(self, purpose: CodePurpose) -> tuple[str | None, str | None]:
        """Return (code_hash, issued_at) for the given purpose."""
        if purpose is CodePurpose.EMAIL_VERIFICATION:
            return self.verification_code_hash, self.verification_code_issued_at
        return self.reset_code_hash, self.reset_code_issued_at


@dataclass(frozen=True)
class SessionClaims:
    """Decoded, verified contents of a session token."""

    user_id: int
    email: str
    verified: bool
    expires_at: datetime


@dataclass(frozen=True)
class SignInResult:
    user: User
    token: str
    expires_in: int  # seconds
