"""Test fixtures — in-memory accounts, fake collaborators, optional Postgres.

Learn: Testing pattern for the Bizdesk API:

1. Identity flows run against MemoryAccountStore, swapped in through
   app.dependency_overrides, so most tests need no database at all.
2. Google verification and the LLM are replaced by fakes. Nothing in
   the default suite touches the network.
3. Catalog and SqlAccountStore tests need a real Postgres. They run
   only when BIZDESK_TEST_DATABASE_URL is set, using the savepoint
   pattern: every commit() becomes a SAVEPOINT and the outer
   transaction is rolled back after the test.
"""

import os
import uuid

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from bizdesk.api.deps import (
    get_account_store,
    get_completion_provider,
    get_identity_verifier,
    get_reset_code_sender,
)
from bizdesk.auth.dependencies import get_token_service
from bizdesk.auth.google import FederatedAuthError, FederatedIdentity
from bizdesk.auth.jwt import TokenService
from bizdesk.auth.roles import Role
from bizdesk.config import settings
from bizdesk.db.engine import build_engine, get_db
from bizdesk.db.models import Base
from bizdesk.main import app
from bizdesk.stores.accounts import MemoryAccountStore

TEST_DB_URL = os.environ.get("BIZDESK_TEST_DATABASE_URL")

TEST_SECRET = "test-secret-0123456789abcdef0123456789abcdef"


# ─── Fakes ──────────────────────────────────────────────


class FakeVerifier:
    """IdentityVerifier that accepts only the assertions it was given."""

    def __init__(self):
        self.identities: dict[str, FederatedIdentity] = {}

    def add(self, assertion: str, email: str, name: str = "Google User") -> None:
        self.identities[assertion] = FederatedIdentity(
            email=email, name=name, subject=f"sub-{assertion}"
        )

    async def verify(self, assertion: str) -> FederatedIdentity:
        try:
            return self.identities[assertion]
        except KeyError:
            raise FederatedAuthError("Unknown assertion")


class RecordingCodeSender:
    """ResetCodeSender that keeps every code it was asked to deliver."""

    def __init__(self):
        self.sent: list[tuple[str, str]] = []

    async def send(self, account, code: str) -> None:
        self.sent.append((str(account.id), code))

    @property
    def last_code(self) -> str:
        return self.sent[-1][1]


class ScriptedProvider:
    """CompletionProvider keyed on a fragment of the framed prompt.

    `script` maps a lowercase fragment (e.g. "sales director") to either
    a reply string or an exception to raise. Prompts matching nothing
    get a generic reply.
    """

    def __init__(self, script=None):
        self.script = script or {}
        self.prompts: list[str] = []

    async def complete(self, prompt: str) -> str:
        self.prompts.append(prompt)
        lowered = prompt.lower()
        for fragment, outcome in self.script.items():
            if fragment in lowered:
                if isinstance(outcome, Exception):
                    raise outcome
                return outcome
        return "A considered answer."


# ─── Unit fixtures ──────────────────────────────────────


@pytest.fixture(autouse=True)
def fast_bcrypt(monkeypatch):
    """Minimum bcrypt work factor so hashing doesn't dominate the suite."""
    monkeypatch.setattr(settings, "bcrypt_rounds", 4)


@pytest.fixture()
def store():
    return MemoryAccountStore()


@pytest.fixture()
def verifier():
    return FakeVerifier()


@pytest.fixture()
def code_sender():
    return RecordingCodeSender()


@pytest.fixture()
def llm():
    return ScriptedProvider()


@pytest.fixture()
def token_service():
    return TokenService(TEST_SECRET)


@pytest.fixture()
def make_token():
    """Issue a session token the running app will accept."""

    def _make(role: Role = Role.USER, account_id=None, name: str = "Test User", now=None):
        return get_token_service().issue(
            str(account_id or uuid.uuid4()), name, role, now=now
        )

    return _make


# ─── HTTP client ────────────────────────────────────────


@pytest_asyncio.fixture()
async def client(store, verifier, code_sender, llm):
    """HTTP client with storage and external services overridden.

    Learn: Auth is NOT overridden here — requests carry real session
    tokens, so the 401/403 paths are exercised for real. ASGITransport
    does not run the lifespan, so Redis is never initialised and the
    rate limiter lets everything through.
    """
    app.dependency_overrides[get_account_store] = lambda: store
    app.dependency_overrides[get_identity_verifier] = lambda: verifier
    app.dependency_overrides[get_reset_code_sender] = lambda: code_sender
    app.dependency_overrides[get_completion_provider] = lambda: llm

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


# ─── Postgres (optional) ────────────────────────────────


@pytest_asyncio.fixture()
async def db_session():
    """Per-test session with automatic rollback via savepoints."""
    if not TEST_DB_URL:
        pytest.skip("BIZDESK_TEST_DATABASE_URL not set")

    engine = build_engine(TEST_DB_URL, pooled=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with engine.connect() as conn:
        trans = await conn.begin()
        session = AsyncSession(
            bind=conn,
            expire_on_commit=False,
            join_transaction_mode="create_savepoint",
        )
        try:
            yield session
        finally:
            await session.close()
            await trans.rollback()
    await engine.dispose()


@pytest_asyncio.fixture()
async def db_client(db_session):
    """HTTP client whose get_db yields the rollback-wrapped session."""

    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
