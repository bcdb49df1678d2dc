"""Pydantic schemas for the business chat."""

from pydantic import BaseModel


class ChatRequest(BaseModel):
    prompt: str = ""


class PersonaSection(BaseModel):
    persona: str
    label: str
    text: str


class ChatResponse(BaseModel):
    response: str
    sections: list[PersonaSection]
