"""Business chat — one question, several expert personas, one answer.

Learn: The user's prompt is prefixed with each persona's instruction
(marketing, sales, finance) and sent to the completion provider.
The pipeline is a structured fan-out / join:

    launch one task per persona
        └─ wait (FIRST_EXCEPTION, total deadline)
              ├─ all succeeded → concatenate in persona order
              ├─ any failed    → cancel the rest, UpstreamFailureError
              └─ deadline hit  → cancel the rest, UpstreamFailureError

A partial analysis (say, marketing + finance without sales) is never
returned. If the caller goes away (client disconnect, outer timeout),
the cancellation reaches compose() and every in-flight call is
cancelled before it returns.
"""

import asyncio
from dataclasses import dataclass
from typing import Optional, Sequence

import structlog

from bizdesk.services.llm import CompletionProvider

logger = structlog.get_logger()

SECTION_DIVIDER = "\n\n---\n\n"


@dataclass(frozen=True)
class Persona:
    key: str
    label: str
    instruction: str

    def frame(self, prompt: str) -> str:
        return f"{self.instruction}\n\nQuestion: {prompt}"


DEFAULT_PERSONAS: tuple[Persona, ...] = (
    Persona(
        key="marketing",
        label="Marketing Director's Analysis",
        instruction=(
            "You are an expert, professional marketing director. When analysing "
            "a business, focus only on marketing strategy, advertising channels, "
            "branding and customer acquisition. Answer in a professional tone."
        ),
    ),
    Persona(
        key="sales",
        label="Sales Director's Analysis",
        instruction=(
            "You are an experienced sales director. When analysing a business, "
            "look only at sales processes, conversion rates, sales team "
            "management and revenue forecasting. Answer in a professional tone."
        ),
    ),
    Persona(
        key="finance",
        label="Finance Director's Analysis",
        instruction=(
            "You are a meticulous finance director. When analysing a business, "
            "consider only costs, budgeting, profitability and return on "
            "investment (ROI). Answer in a professional tone."
        ),
    ),
)


@dataclass(frozen=True)
class PersonaAnswer:
    persona: Persona
    text: str


@dataclass(frozen=True)
class AggregateAnswer:
    sections: tuple[PersonaAnswer, ...]

    @property
    def text(self) -> str:
        return SECTION_DIVIDER.join(
            f"**{s.persona.label}:**\n{s.text.strip()}" for s in self.sections
        )


class EmptyPromptError(ValueError):
    """Raised when the prompt is empty or whitespace."""


class UpstreamFailureError(Exception):
    """Raised when one or more persona calls failed or did not finish."""

    def __init__(self, failed: Sequence[str], reason: str = "failed"):
        self.failed = list(failed)
        self.reason = reason
        super().__init__(f"Persona call(s) {reason}: {', '.join(self.failed)}")


async def _cancel_all(tasks: Sequence[asyncio.Task]) -> None:
    for task in tasks:
        if not task.done():
            task.cancel()
    await asyncio.gather(*tasks, return_exceptions=True)


class MultiAgentOrchestrator:
    """Runs every persona concurrently and joins the results."""

    def __init__(
        self,
        provider: CompletionProvider,
        personas: Sequence[Persona] = DEFAULT_PERSONAS,
        total_timeout: Optional[float] = 90.0,
    ):
        if not personas:
            raise ValueError("At least one persona is required")
        self.provider = provider
        self.personas = tuple(personas)
        self.total_timeout = total_timeout

    async def compose(self, prompt: str) -> AggregateAnswer:
        if not prompt or not prompt.strip():
            raise EmptyPromptError("Prompt must not be empty")

        tasks = [
            asyncio.create_task(
                self.provider.complete(persona.frame(prompt)),
                name=f"persona:{persona.key}",
            )
            for persona in self.personas
        ]
        try:
            _, pending = await asyncio.wait(
                tasks,
                timeout=self.total_timeout,
                return_when=asyncio.FIRST_EXCEPTION,
            )
        finally:
            # Also runs when compose() itself is cancelled.
            stragglers = [t for t in tasks if not t.done()]
            if stragglers:
                await _cancel_all(stragglers)

        failed = []
        for persona, task in zip(self.personas, tasks):
            if task in pending:
                continue
            # A provider that cancels itself counts as a failure.
            error = asyncio.CancelledError() if task.cancelled() else task.exception()
            if error is not None:
                logger.warning(
                    "multi_agent.persona_failed",
                    persona=persona.key,
                    error=repr(error),
                )
                failed.append(persona.key)

        if failed:
            raise UpstreamFailureError(failed)
        if pending:
            unfinished = [
                p.key for p, t in zip(self.personas, tasks) if t in pending
            ]
            logger.warning(
                "multi_agent.timeout",
                personas=unfinished,
                timeout=self.total_timeout,
            )
            raise UpstreamFailureError(unfinished, reason="timed out")

        return AggregateAnswer(
            sections=tuple(
                PersonaAnswer(persona=p, text=t.result())
                for p, t in zip(self.personas, tasks)
            )
        )
