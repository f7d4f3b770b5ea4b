"""
auth/tokens.py -- Session token issue and verification (JWT) plus cookie helpers.

Security design decisions:
  JWT: python-jose with HS256. Tokens are signed with the signing secret and
       carry the user id (sub), email, verified flag, iat and exp. Integrity
       and expiry are the only guarantees. There is no server-side session
       record, so a token stays valid until exp even if the account changes
       afterwards.

  Failures are typed: an elapsed exp raises TokenExpired, anything else
       (bad signature, garbage, missing claims) raises InvalidToken. The
       transport layer turns both into 401.

  Transport: the bearer value is "Bearer <token>". It is read from the
       Authorization header or the Authorization cookie depending on the
       client hint (see auth/dependencies.py). parse_bearer() is the single
       place that splits the scheme off.

Layer rule: no imports from api/, posts/, mail/, or core/.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone

from jose import ExpiredSignatureError, JWTError, jwt

from auth.errors import InvalidToken, TokenExpired
from auth.models import SessionClaims, User

logger = logging.getLogger("gatekeeper.auth")

_ALGORITHM = "HS256"
_BEARER_PREFIX = "Bearer "


class SessionTokens:
    """Mint and verify signed, expiring session tokens."""

    def __init__(self, secret: str, expire_seconds: int = 8 * 3600, algorithm: str = _ALGORITHM) -> None:
        if not secret:
            raise ValueError("SessionTokens requires a non-empty signing secret.")
        self._secret = secret
        self.expire_seconds = expire_seconds
        self.algorithm = algorithm

    def issue(self, user: User, now: datetime | None = None) -> str:
        """Encode a signed JWT for the user. Stateless -- nothing is stored."""
        issued = now or datetime.now(timezone.utc)
        payload = {
            "sub": str(user.id),
            "email": user.email,
            "verified": bool(user.verified),
            "iat": int(issued.timestamp()),
            "exp": int((issued + timedelta(seconds=self.expire_seconds)).timestamp()),
        }
        return jwt.encode(payload, self._secret, algorithm=self.algorithm)

    def verify(self, token: str) -> SessionClaims:
        """Decode and verify a JWT. Raises TokenExpired or InvalidToken."""
        try:
            payload = jwt.decode(token, self._secret, algorithms=[self.algorithm])
        except ExpiredSignatureError as exc:
            raise TokenExpired() from exc
        except JWTError as exc:
            raise InvalidToken() from exc

        try:
            return SessionClaims(
                user_id=int(payload["sub"]),
                email=str(payload["email"]),
                verified=bool(payload["verified"]),
                expires_at=datetime.fromtimestamp(int(payload["exp"]), tz=timezone.utc),
            )
        except (KeyError, TypeError, ValueError) as exc:
            logger.warning("Rejected token with missing or malformed claims")
            raise InvalidToken() from exc


def parse_bearer(value: str | None) -> str:
    """Return the token from a "Bearer <token>" value. Raises InvalidToken otherwise."""
    if not value or not value.startswith(_BEARER_PREFIX):
        raise InvalidToken()
    token = value[len(_BEARER_PREFIX) :].strip()
    if not token:
        raise InvalidToken()
    return token


# ---------------------------------------------------------------------------
# Cookie helpers
# ---------------------------------------------------------------------------


def set_auth_cookie(response, token: str, cookie_name: str, max_age: int, secure: bool) -> None:
    """Write "Bearer <token>" as the session cookie on the response.

    httponly and secure both follow SECURE_COOKIES: browsers in local dev can
    still read the cookie, production deployments get the locked-down form.
    samesite="lax" keeps the cookie off cross-site POSTs. max_age matches the
    JWT expiry so both lapse together.
    """
    response.set_cookie(
        cookie_name,
        value=f"{_BEARER_PREFIX}{token}",
        httponly=secure,
        samesite="lax",
        secure=secure,
        max_age=max_age,
    )


def clear_auth_cookie(response, cookie_name: str) -> None:
    response.delete_cookie(cookie_name)
