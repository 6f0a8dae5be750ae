"""Feedback API endpoint."""
import logging

from fastapi import APIRouter, Depends, HTTPException

from config import Settings, get_settings
from shared.models.schemas import FeedbackRequest, FeedbackResponse
from shared.services.llm_service import LLMService
from shared.utils.exceptions import CompletionUnavailableException, InvalidRequestException
from tutor.api.chat import get_llm_service
from tutor.exceptions import GenerationError
from tutor.services.feedback_analyzer import FeedbackAnalyzer

logger = logging.getLogger(__name__)

router = APIRouter(tags=["feedback"])


def get_feedback_analyzer(
    settings: Settings = Depends(get_settings),
    llm_service: LLMService = Depends(get_llm_service),
) -> FeedbackAnalyzer:
    return FeedbackAnalyzer(
        llm_service,
        temperature=settings.feedback_temperature,
        max_tokens=settings.feedback_max_tokens,
        timeout_seconds=settings.request_timeout_seconds,
    )


@router.post("/chat/feedback", response_model=FeedbackResponse)
async def feedback(request: FeedbackRequest, analyzer: FeedbackAnalyzer = Depends(get_feedback_analyzer)):
    """Review a student's worked answer step by step."""
    if not request.student_response.strip() or not request.problem_context.strip():
        raise InvalidRequestException(
            "Student response and problem context are required"
        ).to_http_exception()

    try:
        result = await analyzer.analyze(request.student_response, request.problem_context)
    except GenerationError as e:
        logger.error(f"Feedback analysis failed ({e.category}): {e.message}")
        raise CompletionUnavailableException(e.category, e, failure="Failed to analyze feedback").to_http_exception()
    except Exception as e:
        logger.exception(f"Unexpected feedback error: {e}")
        raise HTTPException(
            status_code=500,
            detail={"error": "Failed to analyze feedback", "message": str(e) or "An unexpected error occurred"},
        )

    return FeedbackResponse(feedback=result.feedback, analysis=result.analysis)
