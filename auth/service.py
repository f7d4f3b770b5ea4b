"""
auth/service.py -- Account operations: signup, signin, verification, password flows.

AuthService is the operation boundary of the authentication engine. Routes
call one method per request; each method either returns a typed result or
raises an AuthError subclass (auth/errors.py). Store and mail failures are
converted to ServerError here, so nothing else escapes to the transport
layer as an unhandled fault.

Construction:
  AuthService.from_settings() is the only place secrets enter the engine.
  The signing secret goes to SessionTokens, the code secret to CodeHasher,
  and the bcrypt cost to PasswordHasher. The algorithms never read
  configuration themselves.

Enumeration:
  signin answers "Invalid email or password" for both an unknown email and a
  wrong password, and burns a dummy bcrypt check for the unknown case so the
  two take the same time. The code flows answer "User not found" for an
  unknown email.

Layer rule: no imports from api/ or posts/.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from auth.codes import OneTimeCodeEngine
from auth.errors import AlreadyVerified, DuplicateAccount, Forbidden, InvalidCredentials, NotFound, ServerError
from auth.hashing import CodeHasher, PasswordHasher
from auth.models import CodePurpose, SessionClaims, SignInResult, User
from auth.store import UserStore
from auth.tokens import SessionTokens
from core.config import Settings
from mail.sender import Mailer

logger = logging.getLogger("gatekeeper.auth")


def normalize_email(email: str) -> str:
    return email.strip().lower()


@contextmanager
def _server_errors() -> Iterator[None]:
    """Convert store failures inside the block into ServerError."""
    try:
        yield
    except SQLAlchemyError as exc:
        logger.exception("Record store failure")
        raise ServerError(detail=str(exc.__class__.__name__)) from exc
    except ValueError as exc:
        # bcrypt raises ValueError for invalid salts/rounds
        logger.exception("Hashing failure")
        raise ServerError(detail=str(exc)) from exc


class AuthService:
    def __init__(
        self,
        store: UserStore,
        passwords: PasswordHasher,
        tokens: SessionTokens,
        codes: OneTimeCodeEngine,
    ) -> None:
        self.store = store
        self.passwords = passwords
        self.tokens = tokens
        self.codes = codes

    @classmethod
    def from_settings(cls, settings: Settings, store: UserStore, mailer: Mailer) -> "AuthService":
        """Wire the engine from configuration, threading each secret to its one consumer."""
        passwords = PasswordHasher(rounds=settings.bcrypt_rounds)
        tokens = SessionTokens(settings.secret_key, expire_seconds=settings.token_expire_seconds)
        codes = OneTimeCodeEngine(
            store=store,
            code_hasher=CodeHasher(settings.code_secret),
            password_hasher=passwords,
            mailer=mailer,
            ttl_seconds=settings.code_ttl_seconds,
        )
        return cls(store=store, passwords=passwords, tokens=tokens, codes=codes)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _require_user(self, email: str, **select) -> User:
        user = self.store.get_by_email(normalize_email(email), **select)
        if user is None:
            raise NotFound()
        return user

    # ------------------------------------------------------------------
    # Signup / signin
    # ------------------------------------------------------------------

    def signup(self, email: str, password: str) -> User:
        """Create an unverified account. Returns the public user (no secrets)."""
        email = normalize_email(email)
        with _server_errors():
            if self.store.get_by_email(email) is not None:
                raise DuplicateAccount()
            hashed = self.passwords.hash(password)
            try:
                user_id = self.store.create_user(User(email=email, hashed_password=hashed))
            except IntegrityError as exc:
                # A concurrent signup won the UNIQUE(email) race
                raise DuplicateAccount() from exc
            created = self.store.get_by_id(user_id)
        if created is None:
            raise ServerError(detail="User not found after write.")
        logger.info("User signed up: user_id=%s", user_id)
        return created

    def signin(self, email: str, password: str) -> SignInResult:
        """Check credentials and mint a session token."""
        with _server_errors():
            user = self.store.get_by_email(normalize_email(email), with_password=True)
        if user is None:
            self.passwords.verify_dummy(password)
            raise InvalidCredentials()
        if not self.passwords.verify(password, user.hashed_password):
            logger.info("Failed signin for user_id=%s", user.id)
            raise InvalidCredentials()

        token = self.tokens.issue(user)
        user.hashed_password = None
        logger.info("User signed in: user_id=%s", user.id)
        return SignInResult(user=user, token=token, expires_in=self.tokens.expire_seconds)

    # ------------------------------------------------------------------
    # Email verification
    # ------------------------------------------------------------------

    def send_verification_code(self, email: str) -> None:
        with _server_errors():
            user = self._require_user(email)
            if user.verified:
                raise AlreadyVerified()
            self.codes.issue(user, CodePurpose.EMAIL_VERIFICATION)

    def verify_verification_code(self, email: str, code: str) -> None:
        with _server_errors():
            user = self._require_user(email, with_codes=CodePurpose.EMAIL_VERIFICATION)
            self.codes.consume_verification(user, code)

    # ------------------------------------------------------------------
    # Password change / reset
    # ------------------------------------------------------------------

    def change_password(self, claims: SessionClaims, old_password: str, new_password: str) -> None:
        """Replace the password for the signed-in user after checking the old one.

        Gated on the token's verified claim: a user who verified after signing
        in must sign in again to pick up the new claim.
        """
        if not claims.verified:
            raise Forbidden("User not verified")
        with _server_errors():
            user = self.store.get_by_id(claims.user_id, with_password=True)
            if user is None:
                raise NotFound()
            if not self.passwords.verify(old_password, user.hashed_password):
                raise InvalidCredentials("Invalid old password")
            self.store.update_password(user.id, self.passwords.hash(new_password))
        logger.info("Password changed for user_id=%s", user.id)

    def send_forgot_password_code(self, email: str) -> None:
        with _server_errors():
            user = self._require_user(email)
            self.codes.issue(user, CodePurpose.PASSWORD_RESET)

    def verify_forgot_password_code(self, email: str, code: str, new_password: str) -> None:
        with _server_errors():
            user = self._require_user(email, with_codes=CodePurpose.PASSWORD_RESET)
            self.codes.consume_reset(user, code, new_password)
