"""Pydantic schemas for the knowledge library, reviews and market data.

Learn: Separate "Create" schemas (input) from "Read" schemas (output).
ArticleUpdate has every field optional — only the fields present in
the request body are applied (model_dump(exclude_unset=True)).
"""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field


# ─── Articles ───────────────────────────────────────────

class ArticleCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=300)
    category: str = Field(..., min_length=1, max_length=100)
    format: str = Field(..., min_length=1, max_length=50)
    summary: str = Field(..., min_length=1)
    tags: list[str] = Field(default_factory=list)
    content: list[Any] = Field(default_factory=list)


class ArticleUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=300)
    category: Optional[str] = Field(None, min_length=1, max_length=100)
    format: Optional[str] = Field(None, min_length=1, max_length=50)
    summary: Optional[str] = Field(None, min_length=1)
    tags: Optional[list[str]] = None
    content: Optional[list[Any]] = None


class ArticleRead(BaseModel):
    id: int
    title: str
    category: str
    format: str
    summary: str
    tags: list[str]
    content: list[Any]
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


# ─── Reviews ────────────────────────────────────────────

class ReviewFeature(BaseModel):
    feature: str
    value: str


class ReviewCreate(BaseModel):
    product_name: str = Field(..., min_length=1, max_length=200)
    category: str = Field(..., min_length=1, max_length=100)
    logo_url: Optional[str] = None
    summary: Optional[str] = None
    overall_score: Optional[float] = Field(None, ge=0, le=10)
    pros: list[str] = Field(default_factory=list)
    cons: list[str] = Field(default_factory=list)
    video_url: Optional[str] = None
    features: list[ReviewFeature] = Field(default_factory=list)
    full_review: Optional[str] = None


class ReviewRead(ReviewCreate):
    id: int
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class ReviewGroup(BaseModel):
    category: str
    items: list[ReviewRead]


# ─── Market data ────────────────────────────────────────

class PriceItem(BaseModel):
    name: Optional[str] = None
    price: Any
    change: Any = None
    unit: Optional[str] = None


class PricesRead(BaseModel):
    gold: list[PriceItem]
    currency: list[PriceItem]
