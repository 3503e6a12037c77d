"""
Pydantic schemas for idea endpoints.
"""
from pydantic import BaseModel, Field
from typing import Any, List, Literal, Optional

class IdeaCreateIn(BaseModel):
    """
    Request model for submitting an idea.
    At least one of rawText / voiceUrl must be non-empty (checked by the pipeline).
    """
    title: str
    rawText: Optional[str] = None
    voiceUrl: Optional[str] = None  # data:audio/...;base64,...
    userNotes: Optional[str] = None
    analyze: bool = False  # Run the evaluation right after creation

class IdeaNotesIn(BaseModel):
    userNotes: Optional[str] = None

class EvaluationOut(BaseModel):
    problem: str
    audience: str
    competitors: List[str] = Field(default_factory=list)
    potential: str
    score: int
    recommendation: Literal["pursue", "maybe", "shelve"]
    model: Optional[str] = None
    rawResponse: Optional[Any] = None

class IdeaOut(BaseModel):
    id: str
    title: str
    rawText: str
    userNotes: Optional[str] = None
    status: Literal["pending", "analyzed", "archived"]
    evaluation: Optional[EvaluationOut] = None
    createdAt: Optional[str] = None
    updatedAt: Optional[str] = None
