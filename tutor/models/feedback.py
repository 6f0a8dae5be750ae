"""
Feedback Models

Step-by-step analysis of a single student answer: which steps went wrong,
what kind of mistake each one is, and the guidance shown back to the student.
"""

from typing import List, Literal, Optional, get_args
from pydantic import BaseModel, Field


ErrorType = Literal["calculation", "conceptual", "procedural", "unknown"]

ERROR_TYPES: tuple[str, ...] = get_args(ErrorType)


class StepAnalysis(BaseModel):
    """The answer split into steps, with 0-based indices of wrong and right ones."""

    steps: List[str]
    correct_steps: List[int] = Field(default_factory=list)
    incorrect_steps: List[int] = Field(default_factory=list)


class ErrorAnalysis(BaseModel):
    error_type: ErrorType
    step: int = Field(description="1-based step number")
    location: str
    misconception: Optional[str] = None
    reasoning: str


class FeedbackAnalysis(BaseModel):
    """Feedback shown to the student for one answer."""

    has_error: bool
    error_analyses: List[ErrorAnalysis] = Field(default_factory=list)
    misconception: Optional[str] = None
    guidance: str
    encouragement: str
    next_steps: List[str] = Field(default_factory=list)


class FeedbackResult(BaseModel):
    """Feedback plus the raw review it was built from."""

    feedback: FeedbackAnalysis
    analysis: str
