"""Google sign-in — ID token verification.

Learn: The frontend runs Google's sign-in flow and sends us the ID token
(a JWT signed by Google with RS256). We verify it ourselves with PyJWT:
1. Fetch Google's public signing keys (JWKS, cached by PyJWKClient)
2. Check signature, audience (our OAuth client id), issuer and expiry
3. Require a verified email — that email is the account identity

PyJWKClient does blocking HTTP, so key lookup runs in a worker thread.
"""

import asyncio
from dataclasses import dataclass
from typing import Optional, Protocol

import jwt
import structlog

from bizdesk.config import Settings

logger = structlog.get_logger()

GOOGLE_ISSUERS = ("accounts.google.com", "https://accounts.google.com")


class FederatedAuthError(Exception):
    """Raised when an identity assertion cannot be verified."""


@dataclass(frozen=True)
class FederatedIdentity:
    email: str
    name: str
    subject: str


class IdentityVerifier(Protocol):
    async def verify(self, assertion: str) -> FederatedIdentity:
        ...


class GoogleIdentityVerifier:
    """Verifies Google ID tokens against Google's published JWKS."""

    def __init__(self, client_id: str, jwks_client: jwt.PyJWKClient):
        self.client_id = client_id
        self._jwks = jwks_client

    @classmethod
    def from_settings(cls, cfg: Settings) -> "GoogleIdentityVerifier":
        return cls(
            client_id=cfg.google_client_id,
            jwks_client=jwt.PyJWKClient(cfg.google_jwks_url, cache_keys=True),
        )

    async def verify(self, assertion: str) -> FederatedIdentity:
        if not assertion:
            raise FederatedAuthError("Missing identity token")
        if not self.client_id:
            raise FederatedAuthError("Google sign-in is not configured")

        try:
            signing_key = await asyncio.to_thread(
                self._jwks.get_signing_key_from_jwt, assertion
            )
            payload = jwt.decode(
                assertion,
                signing_key.key,
                algorithms=["RS256"],
                audience=self.client_id,
                options={"require": ["iss", "aud", "exp", "sub"]},
            )
        except jwt.PyJWKClientError as e:
            logger.warning("google.jwks_error", error=str(e))
            raise FederatedAuthError(f"Could not load signing key: {e}")
        except jwt.InvalidTokenError as e:
            raise FederatedAuthError(f"Invalid identity token: {e}")

        if payload.get("iss") not in GOOGLE_ISSUERS:
            raise FederatedAuthError("Unexpected token issuer")

        email: Optional[str] = payload.get("email")
        if not email or payload.get("email_verified") not in (True, "true"):
            raise FederatedAuthError("Identity token has no verified email")

        return FederatedIdentity(
            email=email.strip().lower(),
            name=payload.get("name") or email.split("@", 1)[0],
            subject=str(payload["sub"]),
        )
