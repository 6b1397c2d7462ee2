"""Pydantic schemas."""
from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel


class ChatRequest(BaseModel):
    """Chat request schema. ``query`` is checked by the pipeline (400 when missing)."""
    query: Optional[str] = None
    top_k: int = 8
    min_similarity: float = 0.0


class Source(BaseModel):
    """Document or log cited by a generated answer."""
    id: str
    title: str
    occurred_at: Optional[str] = None


class ChatResponse(BaseModel):
    """Chat response schema."""
    answer: str
    sources: List[Source] = []


class IngestRequest(BaseModel):
    """Only index logs at or after ``since`` when given."""
    since: Optional[datetime] = None


class IngestResponse(BaseModel):
    logs: int
    chunks: int


class HealthResponse(BaseModel):
    status: str
    private_mode: bool
    chunks: Optional[int] = None
    llm_status: Optional[str] = None


class ErrorResponse(BaseModel):
    """Body of every failed request."""
    error: str
