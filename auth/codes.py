"""
auth/codes.py -- One-time code engine for email verification and password reset.

Lifecycle per (user, purpose):

    Absent --issue()--> Issued --consume()--> Absent   (success: effect applied)
                          |
                          +-- wrong code ---> Issued   (no change, retry allowed)
                          +-- ttl elapsed --> Expired  (fresh issue required)

Issue:
  A six-digit code is drawn with `secrets`, mailed to the user, and only once
  the mail server reports the address as accepted is its HMAC hash stored
  with the issue time. A failed or refused dispatch stores nothing, so the
  user never holds a record of a code they did not receive. A new issue
  overwrites the previous pair, which retires the old code.

Check (in this order):
  1. pair present            else InvalidCode
  2. now - issued_at < ttl   else CodeExpired  (the boundary itself is expired)
  3. HMAC(submitted) matches else InvalidCode

Consume:
  After the check passes, the store clears the pair and applies the effect
  in one conditional UPDATE keyed on the hash just verified. If another
  request consumed or replaced the code in between, the UPDATE matches no
  row and this request fails with InvalidCode.

Layer rule: no imports from api/, posts/, or core/.
"""

from __future__ import annotations

import logging
import secrets
from collections.abc import Callable
from datetime import datetime, timedelta, timezone

from auth.errors import AlreadyVerified, CodeExpired, InvalidCode, ServerError
from auth.hashing import CodeHasher, PasswordHasher
from auth.models import CodePurpose, User
from auth.store import UserStore
from mail.sender import Mailer, MailDeliveryError
from mail.templates import password_reset_email, verification_email

logger = logging.getLogger("gatekeeper.codes")

_CODE_MIN = 100_000
_CODE_SPAN = 900_000  # codes are uniform over 100000..999999

_TEMPLATES = {
    CodePurpose.EMAIL_VERIFICATION: verification_email,
    CodePurpose.PASSWORD_RESET: password_reset_email,
}


def generate_code() -> str:
    """Return a fresh six-digit numeric code."""
    return str(_CODE_MIN + secrets.randbelow(_CODE_SPAN))


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _parse_issued_at(value: str) -> datetime:
    issued = datetime.fromisoformat(value)
    if issued.tzinfo is None:
        # Naive timestamp -- assume UTC
        issued = issued.replace(tzinfo=timezone.utc)
    return issued


class OneTimeCodeEngine:
    """Issue, check and consume one-time codes against the user store."""

    def __init__(
        self,
        store: UserStore,
        code_hasher: CodeHasher,
        password_hasher: PasswordHasher,
        mailer: Mailer,
        ttl_seconds: int = 300,
        clock: Callable[[], datetime] = _utcnow,
        code_factory: Callable[[], str] = generate_code,
    ) -> None:
        self.store = store
        self.code_hasher = code_hasher
        self.password_hasher = password_hasher
        self.mailer = mailer
        self.ttl = timedelta(seconds=ttl_seconds)
        self.clock = clock
        self.code_factory = code_factory

    # ------------------------------------------------------------------
    # Issue
    # ------------------------------------------------------------------

    def issue(self, user: User, purpose: CodePurpose) -> str:
        """Mail a new code to the user and store its hash. Returns the plaintext code.

        Raises ServerError if dispatch fails or the address is not accepted.
        """
        code = self.code_factory()
        subject, body = _TEMPLATES[purpose](code, int(self.ttl.total_seconds()) // 60)
        try:
            receipt = self.mailer.send(user.email, subject, body)
        except MailDeliveryError as exc:
            logger.warning("Code dispatch failed (purpose=%s user_id=%s)", purpose.value, user.id)
            raise ServerError(detail=str(exc)) from exc

        if user.email not in receipt.accepted:
            logger.warning("Mail server did not accept address (purpose=%s user_id=%s)", purpose.value, user.id)
            raise ServerError(detail="Mail server did not accept the recipient address.")

        issued_at = self.clock().isoformat()
        self.store.store_code(user.id, purpose, self.code_hasher.hash(code), issued_at)
        logger.info("Issued %s code for user_id=%s", purpose.value, user.id)
        return code

    # ------------------------------------------------------------------
    # Check / consume
    # ------------------------------------------------------------------

    def check(self, user: User, purpose: CodePurpose, submitted: str) -> str:
        """Validate a submitted code against the user's stored pair.

        `user` must have been loaded with with_codes=purpose. Returns the
        stored hash (the compare-and-swap key for consumption).
        """
        code_hash, issued_at = user.code_pair(purpose)
        if not code_hash or not issued_at:
            raise InvalidCode()

        elapsed = self.clock() - _parse_issued_at(issued_at)
        if elapsed >= self.ttl:
            raise CodeExpired()

        if not self.code_hasher.matches(str(submitted), code_hash):
            raise InvalidCode()
        return code_hash

    def consume_verification(self, user: User, submitted: str) -> None:
        """Mark the user verified if the email-verification code checks out."""
        if user.verified:
            raise AlreadyVerified()
        purpose = CodePurpose.EMAIL_VERIFICATION
        expected = self.check(user, purpose, submitted)
        if not self.store.consume_code(user.id, purpose, expected, verified=True):
            logger.info("Verification code for user_id=%s was consumed concurrently", user.id)
            raise InvalidCode()
        logger.info("User verified: user_id=%s", user.id)

    def consume_reset(self, user: User, submitted: str, new_password: str) -> None:
        """Replace the password if the password-reset code checks out."""
        purpose = CodePurpose.PASSWORD_RESET
        expected = self.check(user, purpose, submitted)
        new_hash = self.password_hasher.hash(new_password)
        if not self.store.consume_code(user.id, purpose, expected, hashed_password=new_hash):
            logger.info("Reset code for user_id=%s was consumed concurrently", user.id)
            raise InvalidCode()
        logger.info("Password reset for user_id=%s", user.id)
