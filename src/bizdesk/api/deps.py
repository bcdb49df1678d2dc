"""Service providers for route handlers.

Learn: Every collaborator a route needs comes through one of these
Depends() functions, so tests can replace any of them with
app.dependency_overrides (in-memory store, fake verifier, fake LLM).
Stateless, config-derived collaborators are built once per process.
"""

from datetime import timedelta
from functools import lru_cache

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from bizdesk.auth.dependencies import get_token_service
from bizdesk.auth.google import GoogleIdentityVerifier, IdentityVerifier
from bizdesk.auth.jwt import TokenService
from bizdesk.config import settings
from bizdesk.db.engine import get_db
from bizdesk.services.catalog_service import CatalogService
from bizdesk.services.identity_service import (
    IdentityService,
    LogResetCodeSender,
    ResetCodeSender,
)
from bizdesk.services.llm import CompletionProvider, GeminiProvider
from bizdesk.services.market_data import MarketDataClient
from bizdesk.services.multi_agent import MultiAgentOrchestrator
from bizdesk.stores.accounts import AccountStore, SqlAccountStore


def get_account_store(db: AsyncSession = Depends(get_db)) -> AccountStore:
    return SqlAccountStore(db)


@lru_cache(maxsize=1)
def get_identity_verifier() -> IdentityVerifier:
    return GoogleIdentityVerifier.from_settings(settings)


@lru_cache(maxsize=1)
def get_reset_code_sender() -> ResetCodeSender:
    return LogResetCodeSender(debug=settings.debug)


def get_identity_service(
    store: AccountStore = Depends(get_account_store),
    tokens: TokenService = Depends(get_token_service),
    verifier: IdentityVerifier = Depends(get_identity_verifier),
    code_sender: ResetCodeSender = Depends(get_reset_code_sender),
) -> IdentityService:
    return IdentityService(
        store=store,
        tokens=tokens,
        verifier=verifier,
        code_sender=code_sender,
        reset_code_ttl=timedelta(minutes=settings.reset_code_expire_minutes),
    )


@lru_cache(maxsize=1)
def get_completion_provider() -> CompletionProvider:
    return GeminiProvider.from_settings(settings)


def get_orchestrator(
    provider: CompletionProvider = Depends(get_completion_provider),
) -> MultiAgentOrchestrator:
    return MultiAgentOrchestrator(
        provider=provider,
        total_timeout=settings.agent_total_timeout_seconds,
    )


def get_catalog_service(db: AsyncSession = Depends(get_db)) -> CatalogService:
    return CatalogService(db)


@lru_cache(maxsize=1)
def get_market_client() -> MarketDataClient:
    return MarketDataClient.from_settings(settings)
