"""Chat API endpoints."""
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Request

from config import Settings, get_settings
from shared.models.schemas import ChatRequest, ChatResponse
from shared.services.llm_service import LLMService
from shared.services.secrets_service import SecretsService
from shared.utils.exceptions import (
    CompletionUnavailableException,
    InvalidRequestException,
    ServerConfigurationException,
)
from tutor.exceptions import GenerationError, InvalidTranscriptError, SecretRetrievalError
from tutor.models.pipeline_logs import PipelineLogEntry, PipelineTraceStore
from tutor.orchestration.orchestrator import TutoringPipeline

logger = logging.getLogger(__name__)

router = APIRouter(tags=["chat"])


def get_secrets_service(request: Request) -> SecretsService:
    """Secrets service built once at startup and stored on the app."""
    secrets_service = getattr(request.app.state, "secrets_service", None)
    if secrets_service is None:
        raise ServerConfigurationException("Secrets service is not initialized").to_http_exception()
    return secrets_service


def get_trace_store(request: Request) -> PipelineTraceStore:
    """Trace store built once at startup and shared by every pipeline."""
    trace_store = getattr(request.app.state, "trace_store", None)
    if trace_store is None:
        raise ServerConfigurationException("Trace store is not initialized").to_http_exception()
    return trace_store


def resolve_api_key(settings: Settings, secrets_service: SecretsService) -> str:
    if settings.use_secrets_manager:
        return secrets_service.get_openai_api_key(settings.openai_secret_name)
    if not settings.openai_api_key:
        raise SecretRetrievalError("OPENAI_API_KEY", "not set")
    return settings.openai_api_key


def get_llm_service(
    settings: Settings = Depends(get_settings),
    secrets_service: SecretsService = Depends(get_secrets_service),
) -> LLMService:
    """Build a completion client for one request with the current (cached) credential."""
    try:
        api_key = resolve_api_key(settings, secrets_service)
    except SecretRetrievalError as e:
        logger.error(f"Could not resolve OpenAI API key: {e}")
        raise ServerConfigurationException(
            "OpenAI API key is not configured. Please check the server configuration."
        ).to_http_exception()

    return LLMService(
        api_key,
        model_id=settings.llm_model,
        max_retries=settings.llm_max_retries,
        timeout=settings.request_timeout_seconds,
    )


def get_pipeline(
    settings: Settings = Depends(get_settings),
    llm_service: LLMService = Depends(get_llm_service),
    trace_store: PipelineTraceStore = Depends(get_trace_store),
) -> TutoringPipeline:
    return TutoringPipeline(llm_service, settings=settings, trace_store=trace_store)


@router.post("/chat", response_model=ChatResponse)
async def chat(request: ChatRequest, pipeline: TutoringPipeline = Depends(get_pipeline)):
    """Produce the next Socratic tutor reply for the conversation."""
    try:
        result = await pipeline.process_turn(
            request.messages,
            problem_context=request.problem_context,
            conversation_id=request.session_id,
        )
    except InvalidTranscriptError as e:
        raise InvalidRequestException(f"Messages array is required: {e.reason}").to_http_exception()
    except GenerationError as e:
        logger.error(f"Chat generation failed ({e.category}): {e.message}")
        raise CompletionUnavailableException(e.category, e).to_http_exception()
    except Exception as e:
        logger.exception(f"Unexpected chat error: {e}")
        raise HTTPException(
            status_code=500,
            detail={"error": "Failed to process chat request", "message": str(e) or "An unexpected error occurred"},
        )

    return ChatResponse(
        message=result.response,
        session_id=request.session_id,
        state=result.state,
        strategy=result.strategy,
        regeneration_path=result.regeneration_path,
    )


@router.get("/chat/traces/{conversation_id}", response_model=List[PipelineLogEntry])
async def get_traces(
    conversation_id: str,
    turn_id: Optional[str] = None,
    event_type: Optional[str] = None,
    trace_store: PipelineTraceStore = Depends(get_trace_store),
):
    """Pipeline events recorded for a conversation, oldest first."""
    return trace_store.get_logs(conversation_id, turn_id=turn_id, event_type=event_type)
