"""Password hashing utilities.

Learn: Uses bcrypt for secure password hashing. bcrypt automatically
handles salting and is resistant to rainbow table attacks.
The work factor comes from settings (default 12, ~100ms per hash).

Accounts created through Google sign-in have no password at all.
Instead of passing a nullable hash around, the stored value is read
as a Credential: either PasswordHash or NoCredential. Callers must
handle both cases explicitly before comparing anything.
"""

from dataclasses import dataclass
from typing import Optional, Union

import bcrypt

from bizdesk.config import settings


@dataclass(frozen=True)
class PasswordHash:
    """A stored bcrypt hash ("$2b$...")."""

    value: str


@dataclass(frozen=True)
class NoCredential:
    """Account has no password (federated-only)."""


Credential = Union[PasswordHash, NoCredential]


def credential_from_hash(password_hash: Optional[str]) -> Credential:
    """Lift a nullable DB column into a Credential."""
    if password_hash:
        return PasswordHash(password_hash)
    return NoCredential()


def hash_password(password: str, rounds: Optional[int] = None) -> PasswordHash:
    """Hash a password with bcrypt.

    Learn: bcrypt includes a random salt automatically and produces
    hashes starting with "$2b$". Passwords are truncated to 72 bytes
    (bcrypt's limit).
    """
    pw_bytes = password.encode("utf-8")[:72]
    salt = bcrypt.gensalt(rounds=rounds or settings.bcrypt_rounds)
    return PasswordHash(bcrypt.hashpw(pw_bytes, salt).decode("utf-8"))


def verify_password(password: str, password_hash: PasswordHash) -> bool:
    """Verify a password against its hash."""
    try:
        pw_bytes = password.encode("utf-8")[:72]
        hash_bytes = password_hash.value.encode("utf-8")
        return bcrypt.checkpw(pw_bytes, hash_bytes)
    except (ValueError, TypeError):
        return False
