"""FastAPI auth dependencies.

Learn: These are used as Depends() in route handlers to extract and
validate the caller's identity from the request.

Two layers:
1. get_current_user — bearer session token → Claims (401 if missing/bad)
2. require_role(Role.ADMIN) — capability gate on top (403 on mismatch)

The gate is a route dependency, so FastAPI resolves it before the
handler body runs. A rejected request never reaches the handler.
"""

from functools import lru_cache
from typing import Callable, Optional

from fastapi import Depends, Header, HTTPException

from bizdesk.auth.jwt import Claims, TokenError, TokenExpiredError, TokenService
from bizdesk.auth.roles import Role
from bizdesk.config import settings


class ForbiddenError(Exception):
    """Raised when an authenticated caller lacks the required capability."""


@lru_cache(maxsize=1)
def get_token_service() -> TokenService:
    """Process-wide token service, built once from settings."""
    return TokenService.from_settings(settings)


def authorize(claims: Claims, capability: Role) -> None:
    """Raise ForbiddenError unless the caller's role matches the capability."""
    if not isinstance(capability, Role):
        raise ValueError(f"Unknown capability: {capability!r}")
    if claims.role is not capability:
        raise ForbiddenError(f"Requires {capability.value} role")


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=401,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_user_optional(
    authorization: Optional[str] = Header(None),
    tokens: TokenService = Depends(get_token_service),
) -> Optional[Claims]:
    """Resolve the caller's claims, or None when no bearer token is sent.

    Learn: The "soft" dependency. A token that IS sent but is invalid
    still fails with 401 — only a missing header yields None.
    """
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise _unauthorized("Malformed Authorization header")

    try:
        return tokens.verify(token.strip())
    except TokenExpiredError:
        raise _unauthorized("Session has expired")
    except TokenError as e:
        raise _unauthorized(str(e))


async def get_current_user(
    claims: Optional[Claims] = Depends(get_current_user_optional),
) -> Claims:
    """Resolve the caller's claims (required — 401 if no auth)."""
    if claims is None:
        raise _unauthorized("Authentication required")
    return claims


def require_role(capability: Role) -> Callable:
    """Build a dependency that admits only callers holding `capability`."""

    async def _gate(claims: Claims = Depends(get_current_user)) -> Claims:
        try:
            authorize(claims, capability)
        except ForbiddenError as e:
            raise HTTPException(status_code=403, detail=str(e))
        return claims

    return _gate
