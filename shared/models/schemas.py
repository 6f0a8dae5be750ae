"""Pydantic API request/response schemas."""
from pydantic import BaseModel, Field
from typing import List, Optional

from tutor.models.feedback import FeedbackAnalysis
from tutor.models.messages import Message


class ChatRequest(BaseModel):
    """Request for the next tutor reply."""
    messages: List[Message] = Field(description="Conversation so far, oldest first")
    session_id: Optional[str] = None
    problem_context: Optional[str] = Field(default=None, description="Problem statement, used verbatim")


class ChatResponse(BaseModel):
    """Tutor reply plus the decisions that shaped it."""
    message: str
    session_id: Optional[str] = None
    state: str
    strategy: Optional[str] = None
    regeneration_path: str = "none"


class FeedbackRequest(BaseModel):
    """A student's worked answer to review step by step."""
    student_response: str = ""
    problem_context: str = ""


class FeedbackResponse(BaseModel):
    feedback: FeedbackAnalysis
    analysis: str = Field(description="Raw step-by-step review from the completion service")
