"""
API request and response models for Gatekeeper REST endpoints.

These Pydantic v2 models define the HTTP transport contract. They are
intentionally separate from the dataclasses in auth/models.py and
posts/models.py, which own the internal domain representation. Route
handlers map between the two.

Input rules (applied before any engine code runs):
  email        5-60 chars, valid address, top-level domain .com or .net,
               stripped and lower-cased
  passwords    ^[a-zA-Z0-9@#$_!%^&*]+$, at most 72 chars (bcrypt's limit)
  codes        six digits; JSON numbers and strings are both accepted
  post title   3-50 chars; description 10-500 chars

Every response body carries `success` and `message` so clients can branch on
one field regardless of endpoint.
"""

from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator, model_validator

from auth.models import User
from posts.models import Post

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

PASSWORD_PATTERN = r"^[a-zA-Z0-9@#$_!%^&*]+$"
CODE_PATTERN = r"^\d{6}$"
ALLOWED_TLDS = ("com", "net")


def _check_email(value: str) -> str:
    value = value.strip().lower()
    if not 5 <= len(value) <= 60:
        raise ValueError("email must be between 5 and 60 characters")
    if value.rsplit(".", 1)[-1] not in ALLOWED_TLDS:
        raise ValueError("email domain must end in .com or .net")
    return value


def _check_code(value: Union[int, str]) -> str:
    # Codes arrive as JSON numbers from some clients; keep them as strings.
    if isinstance(value, bool):
        raise ValueError("code must be six digits")
    return str(value).strip()


# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------


class _EmailBody(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    email: EmailStr

    @field_validator("email", mode="after")
    @classmethod
    def normalize_email(cls, value: str) -> str:
        return _check_email(value)


class CredentialsRequest(_EmailBody):
    """Request body for POST /auth/signup and POST /auth/signin."""

    password: str = Field(min_length=1, max_length=72, pattern=PASSWORD_PATTERN)


class SendCodeRequest(_EmailBody):
    """Request body for POST /auth/send-verification-code and /auth/send-forgot-password-code."""


class VerifyCodeRequest(_EmailBody):
    """Request body for POST /auth/verify-verification-code."""

    provided_code: str = Field(alias="providedCode", pattern=CODE_PATTERN)

    model_config = ConfigDict(str_strip_whitespace=True, populate_by_name=True)

    @field_validator("provided_code", mode="before")
    @classmethod
    def code_to_str(cls, value):
        return _check_code(value)


class ResetPasswordRequest(VerifyCodeRequest):
    """Request body for POST /auth/verify-forgot-password-code."""

    new_password: str = Field(alias="newPassword", min_length=1, max_length=72, pattern=PASSWORD_PATTERN)


class ChangePasswordRequest(BaseModel):
    """Request body for PATCH /auth/change-password."""

    model_config = ConfigDict(populate_by_name=True)

    old_password: str = Field(alias="oldPassword", min_length=1, max_length=72, pattern=PASSWORD_PATTERN)
    new_password: str = Field(alias="newPassword", min_length=1, max_length=72, pattern=PASSWORD_PATTERN)


class PostCreate(BaseModel):
    """Request body for POST /posts."""

    model_config = ConfigDict(str_strip_whitespace=True)

    title: str = Field(min_length=3, max_length=50)
    description: str = Field(min_length=10, max_length=500)


class PostUpdate(BaseModel):
    """Request body for PUT /posts/{post_id}. At least one field is required."""

    model_config = ConfigDict(str_strip_whitespace=True)

    title: Optional[str] = Field(default=None, min_length=3, max_length=50)
    description: Optional[str] = Field(default=None, min_length=10, max_length=500)

    @model_validator(mode="after")
    def require_one_field(self) -> "PostUpdate":
        if self.title is None and self.description is None:
            raise ValueError("at least one of title or description is required")
        return self


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------


class MessageResponse(BaseModel):
    """Bare success acknowledgement."""

    model_config = ConfigDict(frozen=True)

    success: bool = True
    message: str


class UserOut(BaseModel):
    """Public view of a user. Never carries a password or code hash."""

    model_config = ConfigDict(frozen=True)

    id: int
    email: str
    verified: bool
    created_at: str

    @classmethod
    def from_user(cls, user: User) -> "UserOut":
        return cls(id=user.id, email=user.email, verified=user.verified, created_at=user.created_at or "")


class SignupResponse(MessageResponse):
    data: UserOut


class SigninResponse(MessageResponse):
    token: str
    token_type: str = "bearer"
    expires_in: int


class PostOut(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    title: str
    description: str
    user_id: int
    owner_email: Optional[str] = None
    created_at: str
    updated_at: str

    @classmethod
    def from_post(cls, post: Post) -> "PostOut":
        return cls(
            id=post.id,
            title=post.title,
            description=post.description,
            user_id=post.user_id,
            owner_email=post.owner_email,
            created_at=post.created_at,
            updated_at=post.updated_at,
        )


class PostResponse(MessageResponse):
    data: PostOut


class PostListResponse(MessageResponse):
    data: list[PostOut]
    page: int
    per_page: int
    total: int


class ErrorDetail(BaseModel):
    """Machine-readable error payload."""

    model_config = ConfigDict(frozen=True)

    code: str
    message: str
    detail: Optional[str] = None


class ErrorResponse(BaseModel):
    """Top-level error envelope returned on 4xx/5xx responses."""

    model_config = ConfigDict(frozen=True)

    success: bool = False
    error: ErrorDetail


class HealthResponse(BaseModel):
    """Response for GET /api/v1/health."""

    model_config = ConfigDict(frozen=True)

    status: str = "healthy"
    version: str
    components: dict[str, str]
