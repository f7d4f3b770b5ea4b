"""
auth/errors.py -- Typed failures raised by the authentication engine.

Every domain failure is an AuthError subclass carrying a stable machine code,
the HTTP status the transport layer should use, and a fixed human message.
api/main.py renders all of them through one exception handler, so route code
raises and never builds error responses by hand.

Only ServerError carries a `detail` (the underlying cause). Every other class
uses a fixed, non-leaking message.

Layer rule: no imports from api/, posts/, mail/, or core/.
"""

from __future__ import annotations


class AuthError(Exception):
    """Base class for all domain failures."""

    code = "error"
    status_code = 400
    default_message = "Request failed."

    def __init__(self, message: str | None = None, detail: str | None = None) -> None:
        self.message = message or self.default_message
        self.detail = detail
        super().__init__(self.message)


class ValidationFailed(AuthError):
    code = "validation_error"
    default_message = "Request validation failed."


class DuplicateAccount(ValidationFailed):
    default_message = "User already exists"


class NotFound(AuthError):
    code = "not_found"
    status_code = 404
    default_message = "User not found"


class InvalidCredentials(AuthError):
    code = "invalid_credentials"
    default_message = "Invalid email or password"


class AlreadyVerified(AuthError):
    code = "already_verified"
    default_message = "User already verified"


class InvalidCode(AuthError):
    code = "invalid_code"
    default_message = "Invalid code"


class CodeExpired(AuthError):
    code = "code_expired"
    default_message = "Code expired"


class Unauthorized(AuthError):
    code = "unauthorized"
    status_code = 401
    default_message = "Authentication required."


class Forbidden(AuthError):
    code = "forbidden"
    status_code = 403
    default_message = "Forbidden"


class TokenExpired(AuthError):
    code = "token_expired"
    status_code = 401
    default_message = "Session expired. Sign in again."


class InvalidToken(AuthError):
    code = "invalid_token"
    status_code = 401
    default_message = "Invalid token."


class ServerError(AuthError):
    code = "server_error"
    status_code = 500
    default_message = "Server error"
