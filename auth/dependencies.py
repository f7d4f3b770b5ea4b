"""
auth/dependencies.py -- FastAPI Depends() helpers for authentication.

Token transport follows the client hint:
  - `client: not-browser` header -> Authorization: Bearer <token> header
  - anything else (browsers)     -> Authorization cookie holding "Bearer <token>"

Both converge on SessionClaims after SessionTokens.verify(). Verification is
stateless: the claims are trusted until exp, no database lookup happens here.

try_get_claims() is the soft variant (returns None when no token was sent).
get_current_claims() raises Unauthorized / InvalidToken / TokenExpired,
which api/main.py renders as 401.

Layer rule: no imports from api/, posts/, or core/.
  auth/dependencies.py may import from fastapi (for Request) because this
  module is part of the FastAPI dependency injection system.
"""

from __future__ import annotations

from fastapi import Request

from auth.errors import Unauthorized
from auth.models import SessionClaims
from auth.tokens import parse_bearer

_NON_BROWSER_HINT = "not-browser"


def read_bearer(request: Request) -> str | None:
    """Return the raw "Bearer <token>" value from the transport the client declared."""
    if request.headers.get("client") == _NON_BROWSER_HINT:
        return request.headers.get("Authorization")
    return request.cookies.get(request.app.state.settings.auth_cookie_name)


def try_get_claims(request: Request) -> SessionClaims | None:
    """Verify the presented token if there is one. Returns None when none was sent.

    A token that is present but bad still raises -- a client holding an expired
    session should be told so rather than treated as anonymous.
    """
    value = read_bearer(request)
    if not value:
        return None
    tokens = request.app.state.auth_service.tokens
    return tokens.verify(parse_bearer(value))


def get_current_claims(request: Request) -> SessionClaims:
    """Require authentication.

    Use as a FastAPI dependency:
        @router.post("/protected")
        def route(claims: SessionClaims = Depends(get_current_claims)): ...
    """
    claims = try_get_claims(request)
    if claims is None:
        raise Unauthorized()
    return claims
