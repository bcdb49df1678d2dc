"""Account store — persistence boundary for identity data.

Learn: The identity service never touches the database directly. It
talks to an AccountStore, which guarantees two things per record:
1. Phone and email are unique (insert fails with DuplicateIdentifierError)
2. Reset-code redemption is a compare-and-set: the hash is replaced and
   both reset fields cleared in one step, only if the code still matches
   and has not expired. Two concurrent redemptions cannot both succeed.

Two implementations:
- SqlAccountStore: SQLAlchemy async session (production)
- MemoryAccountStore: dict-backed, for tests and local experiments
"""

import secrets
import uuid
from datetime import datetime
from typing import Optional, Protocol

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from bizdesk.db.models import Account, utcnow


class DuplicateIdentifierError(Exception):
    """Raised when an insert would duplicate a phone or email."""


UNIQUE_VIOLATION = "23505"


def is_unique_violation(error: IntegrityError) -> bool:
    """True only for a unique-constraint breach, not NOT NULL or FK failures."""
    orig = error.orig
    code = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    if code:
        return code == UNIQUE_VIOLATION
    return "unique constraint" in str(orig).lower()


def is_email(identifier: str) -> bool:
    return "@" in identifier


def normalize_identifier(identifier: str) -> str:
    """Emails are case-insensitive; phone numbers are kept as given."""
    identifier = identifier.strip()
    return identifier.lower() if is_email(identifier) else identifier


class AccountStore(Protocol):
    async def get(self, account_id: uuid.UUID) -> Optional[Account]:
        ...

    async def find_by_identifier(self, identifier: str) -> Optional[Account]:
        ...

    async def insert(self, account: Account) -> Account:
        ...

    async def save(self, account: Account) -> Account:
        ...

    async def consume_reset_code(
        self,
        account_id: uuid.UUID,
        code: str,
        now: datetime,
        new_password_hash: str,
    ) -> bool:
        ...

    async def list_all(self) -> list[Account]:
        ...


class SqlAccountStore:
    """AccountStore over an AsyncSession. Every write commits."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get(self, account_id: uuid.UUID) -> Optional[Account]:
        return await self.db.get(Account, account_id)

    async def find_by_identifier(self, identifier: str) -> Optional[Account]:
        identifier = normalize_identifier(identifier)
        column = Account.email if is_email(identifier) else Account.phone
        result = await self.db.execute(select(Account).where(column == identifier))
        return result.scalars().first()

    async def insert(self, account: Account) -> Account:
        return await self._commit(account)

    async def save(self, account: Account) -> Account:
        return await self._commit(account)

    async def _commit(self, account: Account) -> Account:
        self.db.add(account)
        try:
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            if not is_unique_violation(e):
                raise
            raise DuplicateIdentifierError("Phone or email already registered") from e
        await self.db.refresh(account)
        return account

    async def consume_reset_code(
        self,
        account_id: uuid.UUID,
        code: str,
        now: datetime,
        new_password_hash: str,
    ) -> bool:
        stmt = (
            update(Account)
            .where(
                Account.id == account_id,
                Account.reset_code == code,
                Account.reset_code_expires_at > now,
            )
            .values(
                password_hash=new_password_hash,
                reset_code=None,
                reset_code_expires_at=None,
                updated_at=now,
            )
            .execution_options(synchronize_session="fetch")
        )
        result = await self.db.execute(stmt)
        await self.db.commit()
        return result.rowcount == 1

    async def list_all(self) -> list[Account]:
        result = await self.db.execute(select(Account).order_by(Account.created_at))
        return list(result.scalars().all())


class MemoryAccountStore:
    """Dict-backed AccountStore.

    Single event loop, and no awaits inside a check-then-write, so each
    method is atomic with respect to other coroutines.
    """

    def __init__(self):
        self._accounts: dict[uuid.UUID, Account] = {}

    def __len__(self) -> int:
        return len(self._accounts)

    async def get(self, account_id: uuid.UUID) -> Optional[Account]:
        return self._accounts.get(account_id)

    async def find_by_identifier(self, identifier: str) -> Optional[Account]:
        identifier = normalize_identifier(identifier)
        attr = "email" if is_email(identifier) else "phone"
        for account in self._accounts.values():
            if getattr(account, attr) == identifier:
                return account
        return None

    async def insert(self, account: Account) -> Account:
        self._check_unique(account)
        if account.id is None:
            account.id = uuid.uuid4()
        now = utcnow()
        account.created_at = account.created_at or now
        account.updated_at = now
        self._accounts[account.id] = account
        return account

    async def save(self, account: Account) -> Account:
        self._check_unique(account)
        account.updated_at = utcnow()
        self._accounts[account.id] = account
        return account

    async def consume_reset_code(
        self,
        account_id: uuid.UUID,
        code: str,
        now: datetime,
        new_password_hash: str,
    ) -> bool:
        account = self._accounts.get(account_id)
        if (
            account is None
            or account.reset_code is None
            or account.reset_code_expires_at is None
            or not secrets.compare_digest(account.reset_code.encode(), code.encode())
            or now >= account.reset_code_expires_at
        ):
            return False
        account.password_hash = new_password_hash
        account.reset_code = None
        account.reset_code_expires_at = None
        account.updated_at = now
        return True

    async def list_all(self) -> list[Account]:
        return sorted(self._accounts.values(), key=lambda a: a.created_at)

    def _check_unique(self, account: Account) -> None:
        for other in self._accounts.values():
            if other.id == account.id:
                continue
            if account.phone and other.phone == account.phone:
                raise DuplicateIdentifierError("Phone already registered")
            if account.email and other.email == account.email:
                raise DuplicateIdentifierError("Email already registered")
