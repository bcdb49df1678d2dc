"""Business chat API.

- POST /business-chat → marketing, sales and finance answers, merged

400 on an empty prompt, 500 when any persona call fails (no partial
answer is returned).
"""

from fastapi import APIRouter, Depends, HTTPException

from bizdesk.api.deps import get_orchestrator
from bizdesk.schemas.chat import ChatRequest, ChatResponse, PersonaSection
from bizdesk.services.multi_agent import (
    EmptyPromptError,
    MultiAgentOrchestrator,
    UpstreamFailureError,
)

router = APIRouter()


@router.post("/business-chat", response_model=ChatResponse)
async def business_chat(
    body: ChatRequest,
    orchestrator: MultiAgentOrchestrator = Depends(get_orchestrator),
):
    try:
        answer = await orchestrator.compose(body.prompt)
    except EmptyPromptError:
        raise HTTPException(status_code=400, detail="Prompt must not be empty")
    except UpstreamFailureError as e:
        raise HTTPException(
            status_code=500,
            detail={
                "message": "The AI analysis could not be completed",
                "failed_personas": e.failed,
            },
        )

    return ChatResponse(
        response=answer.text,
        sections=[
            PersonaSection(persona=s.persona.key, label=s.persona.label, text=s.text)
            for s in answer.sections
        ],
    )
