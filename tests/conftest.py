"""
tests/conftest.py -- Shared test fixtures for Gatekeeper tests.

This module provides:
  - RecordingMailer: in-memory Mailer that records messages and can fail on demand
  - _make_test_stores(): creates isolated in-memory DBs for users + posts
  - _patch_lifespan(): wires test stores and the fake mailer into app.state
  - api_client: TestClient over the real app with isolated stores
  - helpers to drive a full signup -> verify -> signin through the API

Design: Named shared-memory SQLite URIs (not plain :memory:) are required
because TestClient runs route handlers in a thread pool. Plain :memory: DBs
are per-connection and would present a blank schema to each worker thread.
The named URI format (file:name?mode=memory&cache=shared&uri=true) shares
one in-memory instance across all connections in the same process.

DEBUG and BCRYPT_ROUNDS must be set before any core/auth import so
get_settings() auto-generates both secrets and hashes at bcrypt's floor cost.
"""

from __future__ import annotations

import os
import re
from collections.abc import Generator
from contextlib import asynccontextmanager
from dataclasses import dataclass, field

# CRITICAL: Set before any auth/core import so get_settings() can
# auto-generate SECRET_KEY and CODE_SECRET instead of raising ValueError.
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("BCRYPT_ROUNDS", "4")

import pytest
from fastapi.testclient import TestClient

from api.main import app
from auth.service import AuthService
from auth.store import UserStore
from core.config import get_settings
from mail.sender import MailDeliveryError, MailReceipt
from posts.store import PostStore

_CODE_RE = re.compile(r">(\d{6})<")

# ---------------------------------------------------------------------------
# Fake mailer
# ---------------------------------------------------------------------------


@dataclass
class SentMail:
    to: str
    subject: str
    html: str

    @property
    def code(self) -> str:
        match = _CODE_RE.search(self.html)
        assert match, "No six-digit code found in mail body"
        return match.group(1)


@dataclass
class RecordingMailer:
    """Mailer double. `fail` raises MailDeliveryError, `refuse` returns an empty accepted list."""

    sent: list[SentMail] = field(default_factory=list)
    fail: bool = False
    refuse: bool = False

    def send(self, to: str, subject: str, html: str) -> MailReceipt:
        if self.fail:
            raise MailDeliveryError("SMTP delivery failed: connection refused")
        if self.refuse:
            return MailReceipt(accepted=[], rejected=[to])
        self.sent.append(SentMail(to=to, subject=subject, html=html))
        return MailReceipt(accepted=[to])

    def last_code_for(self, email: str) -> str:
        for mail in reversed(self.sent):
            if mail.to == email:
                return mail.code
        raise AssertionError(f"No mail sent to {email}")


@pytest.fixture
def mailer() -> RecordingMailer:
    return RecordingMailer()


# ---------------------------------------------------------------------------
# Store helpers
# ---------------------------------------------------------------------------


def _make_test_stores(db_suffix: str) -> tuple[UserStore, PostStore]:
    """Create isolated named shared-memory SQLite stores for test isolation.

    Both stores point at the same named database, like production where they
    share DATABASE_URL.

    Args:
        db_suffix: Unique string appended to the DB name so test modules
                   don't share state (e.g. 'auth', 'posts').
    """
    url = f"sqlite:///file:test_gatekeeper_{db_suffix}?mode=memory&cache=shared&uri=true"
    return UserStore(db_url=url), PostStore(db_url=url)


def _patch_lifespan(user_store: UserStore, post_store: PostStore, mailer: RecordingMailer):
    """Return an async context manager that replaces the real lifespan.

    Wires pre-created test stores and the recording mailer into app.state so
    TestClient routes see isolated test DBs and no real SMTP server is
    contacted.
    """

    @asynccontextmanager
    async def test_lifespan(app):
        settings = get_settings()
        app.state.settings = settings
        app.state.user_store = user_store
        app.state.post_store = post_store
        app.state.mailer = mailer
        app.state.auth_service = AuthService.from_settings(settings, user_store, mailer)
        yield

    return test_lifespan


# ---------------------------------------------------------------------------
# API fixtures
# ---------------------------------------------------------------------------


@dataclass
class ApiHarness:
    client: TestClient
    mailer: RecordingMailer
    user_store: UserStore
    post_store: PostStore


def _start_harness(db_suffix: str) -> Generator[ApiHarness, None, None]:
    user_store, post_store = _make_test_stores(db_suffix)
    fake_mailer = RecordingMailer()
    app.router.lifespan_context = _patch_lifespan(user_store, post_store, fake_mailer)

    with TestClient(app, raise_server_exceptions=True) as client:
        yield ApiHarness(client=client, mailer=fake_mailer, user_store=user_store, post_store=post_store)

    post_store.close()
    user_store.close()


@pytest.fixture(scope="module")
def api_client(request) -> Generator[ApiHarness, None, None]:
    """Yield an ApiHarness for API integration tests, one per test module.

    The TestClient uses the real FastAPI app with a patched lifespan so
    tests hit real route handlers but use isolated in-memory stores.
    Tests share the module's database, so each one signs up its own email.
    """
    yield from _start_harness(request.module.__name__.rsplit(".", 1)[-1])


# ---------------------------------------------------------------------------
# Flow helpers
# ---------------------------------------------------------------------------

DEFAULT_PASSWORD = "Abc123!"

NON_BROWSER = {"client": "not-browser"}


def bearer(token: str) -> dict[str, str]:
    """Headers for a non-browser client presenting a token."""
    return {**NON_BROWSER, "Authorization": f"Bearer {token}"}


def signup(h: ApiHarness, email: str, password: str = DEFAULT_PASSWORD):
    return h.client.post("/api/v1/auth/signup", json={"email": email, "password": password})


def signin(h: ApiHarness, email: str, password: str = DEFAULT_PASSWORD):
    return h.client.post("/api/v1/auth/signin", json={"email": email, "password": password})


def verified_user(h: ApiHarness, email: str, password: str = DEFAULT_PASSWORD) -> str:
    """Sign up, verify via the mailed code and sign in. Returns the session token."""
    assert signup(h, email, password).status_code == 201
    assert h.client.post("/api/v1/auth/send-verification-code", json={"email": email}).status_code == 200
    code = h.mailer.last_code_for(email)
    resp = h.client.patch("/api/v1/auth/verify-verification-code", json={"email": email, "providedCode": code})
    assert resp.status_code == 200, resp.text
    resp = signin(h, email, password)
    assert resp.status_code == 200, resp.text
    return resp.json()["token"]


def unverified_user(h: ApiHarness, email: str, password: str = DEFAULT_PASSWORD) -> str:
    """Sign up and sign in without verifying. Returns the session token."""
    assert signup(h, email, password).status_code == 201
    resp = signin(h, email, password)
    assert resp.status_code == 200, resp.text
    return resp.json()["token"]
