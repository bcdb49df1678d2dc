"""Identity service — registration, login, Google sign-in, password reset.

Learn: This is the only code that writes password hashes, roles or
reset codes. Its collaborators are injected so tests can swap them:
- store: AccountStore (SQL in production, in-memory in tests)
- tokens: TokenService (signs 7-day session tokens)
- verifier: IdentityVerifier (Google ID token check)
- code_sender: ResetCodeSender (out-of-band delivery of reset codes)
- clock: returns the current UTC time

Every failing path raises before any write, so a failed login or a
failed reset-code redemption leaves the account untouched.
"""

import secrets
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Optional, Protocol

import structlog

from bizdesk.auth.google import FederatedAuthError, IdentityVerifier
from bizdesk.auth.jwt import TokenService
from bizdesk.auth.password import NoCredential, hash_password, verify_password
from bizdesk.auth.roles import Role
from bizdesk.db.models import Account, default_okrs, default_pomodoro_stats
from bizdesk.schemas.account import AccountRead
from bizdesk.stores.accounts import (
    AccountStore,
    DuplicateIdentifierError,
    is_email,
    normalize_identifier,
)

logger = structlog.get_logger()

RESET_CODE_LENGTH = 6

PROFILE_FIELDS = frozenset({
    "name",
    "company_name",
    "company_size",
    "position",
    "results",
    "okrs_data",
    "calendar_events",
    "pomodoro_stats",
})

# Profile columns that are NOT NULL in the accounts table.
REQUIRED_PROFILE_FIELDS = frozenset({
    "name",
    "results",
    "okrs_data",
    "calendar_events",
    "pomodoro_stats",
})


class DuplicateAccountError(Exception):
    """Raised when registering an identifier that already exists."""


class AccountNotFoundError(Exception):
    """Raised when no account matches the identifier."""


class InvalidCredentialError(Exception):
    """Raised on a wrong password, or when the account has no password."""


class InvalidAssertionError(Exception):
    """Raised when a federated identity token fails verification."""


class InvalidResetCodeError(Exception):
    """Raised when a reset code is wrong, expired, or already used."""


class ResetCodeSender(Protocol):
    async def send(self, account: Account, code: str) -> None:
        ...


class LogResetCodeSender:
    """Development sender — writes the code to the log.

    Learn: Real delivery (SMS / email) is an external service. Until one
    is wired in, the code is only logged in debug mode so it never ends
    up in production logs.
    """

    def __init__(self, debug: bool = False):
        self.debug = debug

    async def send(self, account: Account, code: str) -> None:
        if self.debug:
            logger.info("identity.reset_code_issued", account_id=str(account.id), code=code)
        else:
            logger.info("identity.reset_code_issued", account_id=str(account.id))


@dataclass
class AuthResult:
    account: AccountRead
    token: str


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def generate_reset_code() -> str:
    """Uniformly random 6-digit string, zero-padded."""
    return f"{secrets.randbelow(10 ** RESET_CODE_LENGTH):0{RESET_CODE_LENGTH}d}"


class IdentityService:
    """Account lifecycle and session issuance."""

    def __init__(
        self,
        store: AccountStore,
        tokens: TokenService,
        verifier: IdentityVerifier,
        code_sender: ResetCodeSender,
        clock: Callable[[], datetime] = _utcnow,
        reset_code_ttl: timedelta = timedelta(minutes=10),
    ):
        self.store = store
        self.tokens = tokens
        self.verifier = verifier
        self.code_sender = code_sender
        self.clock = clock
        self.reset_code_ttl = reset_code_ttl

    # ─── Register ───────────────────────────────────────

    async def register(
        self,
        name: str,
        phone: str,
        password: str,
        profile: Optional[dict[str, Any]] = None,
    ) -> AuthResult:
        phone = normalize_identifier(phone)
        if not phone or is_email(phone):
            raise ValueError("A phone number is required to register with a password")
        if await self.store.find_by_identifier(phone):
            raise DuplicateAccountError("An account with this phone number already exists")

        account = self._new_account(
            name=name,
            phone=phone,
            password_hash=hash_password(password).value,
            profile=profile,
        )
        try:
            account = await self.store.insert(account)
        except DuplicateIdentifierError:
            raise DuplicateAccountError("An account with this phone number already exists")

        logger.info("identity.registered", account_id=str(account.id))
        return self._session_for(account)

    # ─── Login ──────────────────────────────────────────

    async def login(self, identifier: str, password: str) -> AuthResult:
        account = await self.store.find_by_identifier(identifier)
        if account is None:
            raise AccountNotFoundError("No account found for this identifier")

        credential = account.credential
        if isinstance(credential, NoCredential):
            logger.info("identity.login_without_password", account_id=str(account.id))
            raise InvalidCredentialError("This account has no password; sign in with Google")
        if not verify_password(password, credential):
            logger.info("identity.login_failed", account_id=str(account.id))
            raise InvalidCredentialError("Incorrect password")

        return self._session_for(account)

    # ─── Google sign-in ─────────────────────────────────

    async def federated_login(self, assertion: str) -> AuthResult:
        """Verify a Google ID token; create the account on first sign-in."""
        try:
            identity = await self.verifier.verify(assertion)
        except FederatedAuthError as e:
            logger.info("identity.assertion_rejected", error=str(e))
            raise InvalidAssertionError(str(e))

        email = normalize_identifier(identity.email)
        account = await self.store.find_by_identifier(email)
        if account is None:
            account = self._new_account(
                name=identity.name,
                email=email,
                password_hash=None,
            )
            try:
                account = await self.store.insert(account)
            except DuplicateIdentifierError:
                # Lost a race with a concurrent first sign-in; use theirs.
                account = await self.store.find_by_identifier(email)
                if account is None:
                    raise
            else:
                logger.info("identity.federated_account_created", account_id=str(account.id))

        return self._session_for(account)

    # ─── Password reset ─────────────────────────────────

    async def request_reset_code(self, identifier: str) -> None:
        account = await self.store.find_by_identifier(identifier)
        if account is None:
            raise AccountNotFoundError("No account found for this identifier")

        code = generate_reset_code()
        account.reset_code = code
        account.reset_code_expires_at = self.clock() + self.reset_code_ttl
        await self.store.save(account)

        await self.code_sender.send(account, code)

    async def redeem_reset_code(
        self, identifier: str, code: str, new_password: str
    ) -> None:
        """Set a new password using a pending reset code. Single use."""
        account = await self.store.find_by_identifier(identifier)
        if account is None or not code:
            raise InvalidResetCodeError("Invalid or expired reset code")

        new_hash = hash_password(new_password)
        consumed = await self.store.consume_reset_code(
            account.id, code, self.clock(), new_hash.value
        )
        if not consumed:
            logger.info("identity.reset_code_rejected", account_id=str(account.id))
            raise InvalidResetCodeError("Invalid or expired reset code")

        logger.info("identity.password_reset", account_id=str(account.id))

    # ─── Profile / admin ────────────────────────────────

    async def get_account(self, account_id: str) -> AccountRead:
        account = await self._load(account_id)
        return AccountRead.model_validate(account)

    async def update_profile(
        self, account_id: str, fields: dict[str, Any]
    ) -> AccountRead:
        """Apply profile fields.

        Anything outside PROFILE_FIELDS is refused, and so is a null for a
        required field. Nothing is written when either check fails.
        """
        unknown = set(fields) - PROFILE_FIELDS
        if unknown:
            raise ValueError(f"Fields not editable: {', '.join(sorted(unknown))}")
        nulls = {k for k, v in fields.items() if v is None} & REQUIRED_PROFILE_FIELDS
        if nulls:
            raise ValueError(f"Fields may not be null: {', '.join(sorted(nulls))}")

        account = await self._load(account_id)
        for key, value in fields.items():
            setattr(account, key, value)
        account = await self.store.save(account)
        return AccountRead.model_validate(account)

    async def list_accounts(self) -> list[Account]:
        return await self.store.list_all()

    async def set_role(self, identifier: str, role: Role) -> AccountRead:
        account = await self.store.find_by_identifier(identifier)
        if account is None:
            raise AccountNotFoundError("No account found for this identifier")
        account.role = role
        account = await self.store.save(account)
        logger.info("identity.role_changed", account_id=str(account.id), role=role.value)
        return AccountRead.model_validate(account)

    # ─── Helpers ────────────────────────────────────────

    async def _load(self, account_id: str) -> Account:
        try:
            key = uuid.UUID(str(account_id))
        except ValueError:
            raise AccountNotFoundError("Account not found")
        account = await self.store.get(key)
        if account is None:
            raise AccountNotFoundError("Account not found")
        return account

    def _session_for(self, account: Account) -> AuthResult:
        token = self.tokens.issue(
            str(account.id), account.name, account.role, now=self.clock()
        )
        return AuthResult(account=AccountRead.model_validate(account), token=token)

    def _new_account(
        self,
        *,
        name: str,
        phone: Optional[str] = None,
        email: Optional[str] = None,
        password_hash: Optional[str],
        profile: Optional[dict[str, Any]] = None,
    ) -> Account:
        profile = profile or {}
        return Account(
            id=uuid.uuid4(),
            name=name,
            phone=phone,
            email=email,
            password_hash=password_hash,
            role=Role.USER,
            reset_code=None,
            reset_code_expires_at=None,
            company_name=profile.get("company_name"),
            company_size=profile.get("company_size"),
            position=profile.get("position"),
            subscription_tier="free",
            results={},
            okrs_data=default_okrs(),
            calendar_events=[],
            pomodoro_stats=default_pomodoro_stats(),
        )
