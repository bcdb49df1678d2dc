"""JWT session tokens.

Learn: JWT (JSON Web Token) provides stateless authentication.
A session token carries the account id, display name and role, and
is valid for a fixed window (7 days by default) from issuance.
Nothing is persisted — validity is decided by signature + expiry alone.

Expiry is checked here against an explicit `now` rather than by PyJWT's
own clock, so verification is a pure function of (token, key, time).
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt

from bizdesk.auth.roles import Role
from bizdesk.config import Settings


class TokenError(Exception):
    """Raised when a token is missing, malformed or badly signed."""


class TokenExpiredError(TokenError):
    """Raised when a token's validity window has passed."""


@dataclass(frozen=True)
class Claims:
    account_id: str
    name: str
    role: Role
    issued_at: datetime
    expires_at: datetime


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TokenService:
    """Issues and verifies signed session tokens.

    The secret is handed in once (from Settings) and never changes
    for the lifetime of the instance.
    """

    def __init__(
        self,
        secret: str,
        algorithm: str = "HS256",
        lifetime: timedelta = timedelta(days=7),
    ):
        self._secret = secret
        self._algorithm = algorithm
        self.lifetime = lifetime

    @classmethod
    def from_settings(cls, cfg: Settings) -> "TokenService":
        return cls(
            secret=cfg.jwt_secret,
            algorithm=cfg.jwt_algorithm,
            lifetime=timedelta(days=cfg.session_token_expire_days),
        )

    def issue(
        self,
        account_id: str,
        name: str,
        role: Role,
        now: Optional[datetime] = None,
    ) -> str:
        """Create a signed token expiring `lifetime` after `now`."""
        issued = now or _utcnow()
        payload = {
            "sub": account_id,
            "name": name,
            "role": role.value,
            "iat": int(issued.timestamp()),
            "exp": int((issued + self.lifetime).timestamp()),
        }
        return jwt.encode(payload, self._secret, algorithm=self._algorithm)

    def verify(self, token: str, now: Optional[datetime] = None) -> Claims:
        """Verify and decode a token.

        Raises TokenExpiredError past expiry, TokenError for anything
        else wrong with the token.
        """
        if not token:
            raise TokenError("Missing token")
        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[self._algorithm],
                options={
                    "verify_exp": False,
                    "verify_iat": False,
                    "verify_nbf": False,
                    "require": ["sub", "name", "role", "iat", "exp"],
                },
            )
        except jwt.InvalidTokenError as e:
            raise TokenError(f"Invalid token: {e}")

        try:
            role = Role.parse(payload["role"])
            issued_at = datetime.fromtimestamp(int(payload["iat"]), tz=timezone.utc)
            expires_at = datetime.fromtimestamp(int(payload["exp"]), tz=timezone.utc)
        except (ValueError, TypeError) as e:
            raise TokenError(f"Invalid token: {e}")

        if (now or _utcnow()) >= expires_at:
            raise TokenExpiredError("Token has expired")

        return Claims(
            account_id=str(payload["sub"]),
            name=str(payload["name"]),
            role=role,
            issued_at=issued_at,
            expires_at=expires_at,
        )
