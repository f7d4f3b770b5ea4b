"""
api/routes/v1/auth.py -- Account and session REST endpoints.

Routes:
  POST  /api/v1/auth/signup                       -- create an unverified account
  POST  /api/v1/auth/signin                       -- password login; token in body + cookie
  POST  /api/v1/auth/signout                      -- clears the session cookie
  POST  /api/v1/auth/send-verification-code       -- mail an email-verification code
  PATCH /api/v1/auth/verify-verification-code     -- consume it; marks the account verified
  PATCH /api/v1/auth/change-password              -- requires auth + verified token
  POST  /api/v1/auth/send-forgot-password-code    -- mail a password-reset code
  PATCH /api/v1/auth/verify-forgot-password-code  -- consume it and set a new password

Handlers are plain `def`, not `async def`. FastAPI runs them in its worker
threadpool, so a bcrypt hash or an SMTP round-trip blocks one worker thread
instead of the event loop.

Failures are raised as AuthError subclasses by AuthService and rendered by the
handler in api/main.py. Nothing here builds an error body.

Security:
  Cache-Control: no-store on signin responses (the body carries a token).
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from api.models import (
    ChangePasswordRequest,
    CredentialsRequest,
    MessageResponse,
    ResetPasswordRequest,
    SendCodeRequest,
    SigninResponse,
    SignupResponse,
    UserOut,
    VerifyCodeRequest,
)
from auth.dependencies import get_current_claims
from auth.models import SessionClaims
from auth.service import AuthService
from auth.tokens import clear_auth_cookie, set_auth_cookie

# Auth policy:
# - signup, signin, signout:              public
# - send-/verify-verification-code:       public (email identifies the account)
# - send-/verify-forgot-password-code:    public (email identifies the account)
# - change-password:                      requires auth (get_current_claims) + verified claim
router = APIRouter(prefix="/auth")


def _service(request: Request) -> AuthService:
    return request.app.state.auth_service


# ---------------------------------------------------------------------------
# Signup / signin / signout
# ---------------------------------------------------------------------------


@router.post("/signup", response_model=SignupResponse, status_code=201)
def signup(request: Request, body: CredentialsRequest) -> SignupResponse:
    """Create an account. The new account is unverified until a code is consumed."""
    user = _service(request).signup(body.email, body.password)
    return SignupResponse(message="User created successfully", data=UserOut.from_user(user))


@router.post("/signin", response_model=SigninResponse)
def signin(request: Request, body: CredentialsRequest) -> JSONResponse:
    """Authenticate with email and password; return the token and set the cookie.

    Unknown email and wrong password produce the same invalid_credentials error.
    """
    settings = request.app.state.settings
    result = _service(request).signin(body.email, body.password)
    resp = JSONResponse(
        status_code=200,
        content=SigninResponse(
            message="User signed in successfully",
            token=result.token,
            expires_in=result.expires_in,
        ).model_dump(),
    )
    set_auth_cookie(
        resp,
        result.token,
        cookie_name=settings.auth_cookie_name,
        max_age=result.expires_in,
        secure=settings.secure_cookies,
    )
    resp.headers["Cache-Control"] = "no-store"
    return resp


@router.post("/signout", response_model=MessageResponse)
async def signout(request: Request) -> JSONResponse:
    """Clear the session cookie. The token itself stays valid until it expires."""
    resp = JSONResponse(content=MessageResponse(message="User logged out successfully").model_dump())
    clear_auth_cookie(resp, request.app.state.settings.auth_cookie_name)
    return resp


# ---------------------------------------------------------------------------
# Email verification
# ---------------------------------------------------------------------------


@router.post("/send-verification-code", response_model=MessageResponse)
def send_verification_code(request: Request, body: SendCodeRequest) -> MessageResponse:
    _service(request).send_verification_code(body.email)
    return MessageResponse(message="Verification code sent successfully")


@router.patch("/verify-verification-code", response_model=MessageResponse)
def verify_verification_code(request: Request, body: VerifyCodeRequest) -> MessageResponse:
    _service(request).verify_verification_code(body.email, body.provided_code)
    return MessageResponse(message="User verified successfully")


# ---------------------------------------------------------------------------
# Password change / reset
# ---------------------------------------------------------------------------


@router.patch("/change-password", response_model=MessageResponse)
def change_password(
    request: Request,
    body: ChangePasswordRequest,
    claims: SessionClaims = Depends(get_current_claims),
) -> MessageResponse:
    _service(request).change_password(claims, body.old_password, body.new_password)
    return MessageResponse(message="Password changed successfully")


@router.post("/send-forgot-password-code", response_model=MessageResponse)
def send_forgot_password_code(request: Request, body: SendCodeRequest) -> MessageResponse:
    _service(request).send_forgot_password_code(body.email)
    return MessageResponse(message="Forgot password code sent successfully")


@router.patch("/verify-forgot-password-code", response_model=MessageResponse)
def verify_forgot_password_code(request: Request, body: ResetPasswordRequest) -> MessageResponse:
    _service(request).verify_forgot_password_code(body.email, body.provided_code, body.new_password)
    return MessageResponse(message="Password changed successfully")
