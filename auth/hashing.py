"""
auth/hashing.py -- Password hashing (bcrypt) and one-time code hashing (HMAC).

Security design decisions:
  Passwords: bcrypt used directly rather than through passlib. passlib's
       wrap-bug detection builds a password longer than 72 bytes, which
       bcrypt 4.x rejects. The cost factor (log-rounds) is a constructor
       argument so the service can tune it from Settings.bcrypt_rounds.

  One-time codes: HMAC-SHA256(CODE_SECRET, code). Deterministic, so a freshly
       submitted code can be re-hashed and compared with the stored value.
       A six-digit code has tiny entropy; the key is what stops someone holding
       a DB dump from enumerating all one million candidates offline.

Both hashers take their secrets and parameters at construction. Nothing here
reads configuration.

Layer rule: no imports from api/, posts/, mail/, or core/.
"""

from __future__ import annotations

import hashlib
import hmac

import bcrypt


class PasswordHasher:
    """bcrypt hashing with a fixed work factor."""

    def __init__(self, rounds: int = 12) -> None:
        self.rounds = rounds
        self._dummy_hash: str | None = None

    def hash(self, password: str) -> str:
        """Return a bcrypt hash of the given plaintext password.

        Passwords longer than 72 bytes are truncated by bcrypt. The API layer
        caps password length well below that.
        """
        return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=self.rounds)).decode("utf-8")

    def verify(self, password: str, hashed: str | None) -> bool:
        """Return True if the plaintext password matches the bcrypt hash.

        checkpw compares in constant time. A missing or malformed stored hash
        returns False rather than raising.
        """
        if not hashed:
            return False
        try:
            return bcrypt.checkpw(password.encode("utf-8"), hashed.encode("utf-8"))
        except ValueError:
            return False

    def verify_dummy(self, password: str) -> bool:
        """Burn one verification against a throwaway hash.

        Signin calls this when the email is unknown, so response time does
        not reveal whether the account exists. The dummy hash is built on
        first use with the same rounds as real hashes.
        """
        if self._dummy_hash is None:
            self._dummy_hash = self.hash("gatekeeper_timing_dummy")
        self.verify(password, self._dummy_hash)
        return False


class CodeHasher:
    """Keyed one-way hash for one-time codes."""

    def __init__(self, secret: str) -> None:
        if not secret:
            raise ValueError("CodeHasher requires a non-empty secret.")
        self._key = secret.encode("utf-8")

    def hash(self, code: str) -> str:
        """Return HMAC-SHA256(secret, code) as a hex string."""
        return hmac.new(self._key, code.encode("utf-8"), hashlib.sha256).hexdigest()

    def matches(self, code: str, stored_hash: str) -> bool:
        """Re-hash the submitted code and compare in constant time."""
        return hmac.compare_digest(self.hash(code), stored_hash)
