"""Completion provider — Gemini over plain HTTP.

Learn: The business chat only needs "prompt in, text out", so the
provider interface is a single async method. GeminiProvider calls the
REST generateContent endpoint with httpx; the request timeout here is
per call and independent of the orchestrator's overall deadline.

Any transport error, non-2xx status, or response without a text part
becomes a CompletionError. There are no retries at this layer.
"""

from typing import Optional, Protocol

import httpx
import structlog

from bizdesk.config import Settings

logger = structlog.get_logger()


class CompletionError(Exception):
    """Raised when the upstream model call fails or returns garbage."""


class CompletionProvider(Protocol):
    async def complete(self, prompt: str) -> str:
        ...


class GeminiProvider:
    """Google Gemini generateContent client."""

    def __init__(
        self,
        api_key: str,
        model: str = "gemini-pro",
        api_url: str = "https://generativelanguage.googleapis.com/v1beta/models",
        timeout: float = 60.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key
        self.model = model
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    @classmethod
    def from_settings(cls, cfg: Settings) -> "GeminiProvider":
        return cls(
            api_key=cfg.gemini_api_key,
            model=cfg.gemini_model,
            api_url=cfg.gemini_api_url,
            timeout=cfg.agent_call_timeout_seconds,
        )

    @property
    def endpoint(self) -> str:
        return f"{self.api_url}/{self.model}:generateContent"

    async def complete(self, prompt: str) -> str:
        if not self.api_key:
            raise CompletionError("Gemini API key is not configured")

        body = {"contents": [{"parts": [{"text": prompt}]}]}
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout, transport=self._transport
            ) as client:
                resp = await client.post(
                    self.endpoint, params={"key": self.api_key}, json=body
                )
                resp.raise_for_status()
                data = resp.json()
        except httpx.HTTPStatusError as e:
            logger.warning(
                "llm.upstream_status",
                status=e.response.status_code,
                body=e.response.text[:500],
            )
            raise CompletionError(f"Gemini returned HTTP {e.response.status_code}")
        except httpx.HTTPError as e:
            raise CompletionError(f"Gemini request failed: {e!r}")
        except ValueError:
            raise CompletionError("Gemini returned a non-JSON body")

        try:
            text = data["candidates"][0]["content"]["parts"][0]["text"]
        except (KeyError, IndexError, TypeError):
            raise CompletionError("Gemini response has no text part")
        if not isinstance(text, str):
            raise CompletionError("Gemini response has no text part")
        return text
