"""
Tutoring Pipeline

Per-turn flow: state classifier -> strategy selector -> prompt assembler ->
response finalizer. Steps run strictly in sequence for one invocation;
separate conversations share nothing but the trace store.
"""

import json
import time
import uuid
import asyncio
import logging
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field

from config import Settings, get_settings
from shared.services.llm_service import LLMService, LLMServiceError, categorize_llm_error
from tutor.agents.state_classifier import StateClassifier
from tutor.exceptions import GenerationError, InvalidTranscriptError
from tutor.models.messages import Message
from tutor.models.pipeline_logs import PipelineLogEntry, PipelineTraceStore
from tutor.models.tutoring_state import DetectedState, StrategyConfig
from tutor.orchestration.response_finalizer import ResponseFinalizer
from tutor.prompts.adaptive_prompt import build_adaptive_prompt
from tutor.prompts.tutor_prompts import FALLBACK_SYSTEM_PROMPT
from tutor.services.strategy_selector import select_strategy

logger = logging.getLogger("tutor.orchestrator")


class TurnResult(BaseModel):
    """Result of processing a turn."""
    conversation_id: str = Field(description="Conversation the turn was traced under")
    turn_id: str
    response: str = Field(description="Finalized tutor reply")
    state: str = Field(description="Detected student state")
    confidence: float = Field(description="Classifier confidence")
    strategy: Optional[str] = Field(default=None, description="Selected strategy, None when the fallback prompt was used")
    hint_level: Optional[str] = Field(default=None)
    regeneration_path: str = Field(default="none")
    extra_calls: int = Field(default=0)
    duration_ms: int = Field(default=0)


class TutoringPipeline:
    """
    Adaptive tutoring decision pipeline.

    Classification and strategy selection always degrade gracefully; only
    completion-service failures while drafting the reply reach the caller,
    as a GenerationError tagged with a category.
    """

    def __init__(
        self,
        llm_service: LLMService,
        settings: Optional[Settings] = None,
        classifier: Optional[StateClassifier] = None,
        finalizer: Optional[ResponseFinalizer] = None,
        trace_store: Optional[PipelineTraceStore] = None,
    ):
        self.llm = llm_service
        self.settings = settings or get_settings()
        self.classifier = classifier or StateClassifier(
            llm_service,
            temperature=self.settings.classifier_temperature,
            max_tokens=self.settings.classifier_max_tokens,
            use_llm=self.settings.use_llm_state_detection,
            timeout_seconds=self.settings.request_timeout_seconds,
        )
        self.finalizer = finalizer or ResponseFinalizer(temperature=self.settings.tutor_temperature)
        self.trace_store = trace_store if trace_store is not None else PipelineTraceStore()

    def _log_event(
        self,
        conversation_id: str,
        turn_id: str,
        stage: str,
        event_type: str,
        input_summary: Optional[str] = None,
        output: Optional[Dict[str, Any]] = None,
        duration_ms: Optional[int] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.trace_store.add_log(PipelineLogEntry(
            conversation_id=conversation_id,
            turn_id=turn_id,
            stage=stage,
            event_type=event_type,
            input_summary=input_summary,
            output=output,
            duration_ms=duration_ms,
            metadata=metadata or {},
        ))

    async def process_turn(
        self,
        transcript: List[Message],
        problem_context: Optional[str] = None,
        conversation_id: Optional[str] = None,
    ) -> TurnResult:
        """
        Produce the tutor reply for the latest student message.

        Raises:
            InvalidTranscriptError: If the transcript is empty
            GenerationError: If the completion service fails while drafting
        """
        if not transcript:
            raise InvalidTranscriptError("transcript is empty")

        start_time = time.time()
        conversation_id = conversation_id or str(uuid.uuid4())
        turn_id = f"turn_{uuid.uuid4().hex[:8]}"
        last_content = transcript[-1].content

        logger.info(f"Turn started: {turn_id} for conversation {conversation_id}")
        self._log_event(
            conversation_id, turn_id, "orchestrator", "turn_started",
            input_summary=f"{transcript[-1].role}: {last_content[:100]}{'...' if len(last_content) > 100 else ''}",
            metadata={"transcript_length": len(transcript), "has_problem_context": bool(problem_context)},
        )

        state = await self.classifier.classify(transcript, problem_context)
        self._log_event(
            conversation_id, turn_id, "classifier", "state_detected",
            output={"state": state.state, "confidence": state.confidence, "evidence": list(state.evidence)},
        )

        strategy, prompt = self._build_prompt(state, transcript, problem_context, conversation_id, turn_id)

        try:
            finalized = await self.finalizer.finalize(self._produce_draft, prompt, transcript)
        except GenerationError as e:
            duration_ms = int((time.time() - start_time) * 1000)
            logger.error(json.dumps({
                "step": "TURN",
                "status": "failed",
                "turn_id": turn_id,
                "category": e.category,
                "error": e.message,
                "duration_ms": duration_ms,
            }))
            self._log_event(
                conversation_id, turn_id, "finalizer", "turn_failed",
                duration_ms=duration_ms,
                metadata={"category": e.category, "error": e.message},
            )
            raise

        duration_ms = int((time.time() - start_time) * 1000)
        self._log_event(
            conversation_id, turn_id, "finalizer", "draft_finalized",
            output={
                "regeneration_path": finalized.regeneration_path,
                "extra_calls": finalized.extra_calls,
                "accuracy_issues": finalized.accuracy_issues,
                "compliance_reason": finalized.compliance_reason,
            },
            duration_ms=duration_ms,
        )
        logger.info(json.dumps({
            "step": "TURN",
            "status": "complete",
            "turn_id": turn_id,
            "state": state.state,
            "strategy": strategy.name if strategy else None,
            "regeneration_path": finalized.regeneration_path,
            "duration_ms": duration_ms,
        }))

        return TurnResult(
            conversation_id=conversation_id,
            turn_id=turn_id,
            response=finalized.text,
            state=state.state,
            confidence=state.confidence,
            strategy=strategy.name if strategy else None,
            hint_level=strategy.hint_level if strategy else None,
            regeneration_path=finalized.regeneration_path,
            extra_calls=finalized.extra_calls,
            duration_ms=duration_ms,
        )

    def _build_prompt(
        self,
        state: DetectedState,
        transcript: List[Message],
        problem_context: Optional[str],
        conversation_id: str,
        turn_id: str,
    ) -> tuple[Optional[StrategyConfig], str]:
        """Select a strategy and assemble the system prompt, or fall back to the base rules."""
        try:
            strategy = select_strategy(state)
            prompt = build_adaptive_prompt(state, strategy, transcript, problem_context)
        except Exception as e:
            logger.error(f"Adaptive prompt assembly failed, using fallback prompt: {e}")
            self._log_event(
                conversation_id, turn_id, "assembler", "fallback_prompt",
                metadata={"error": str(e)},
            )
            return None, FALLBACK_SYSTEM_PROMPT

        self._log_event(
            conversation_id, turn_id, "selector", "strategy_selected",
            output={
                "strategy": strategy.name,
                "hint_level": strategy.hint_level,
                "question_style": strategy.question_style,
                "tone": strategy.tone,
            },
            metadata={"prompt_length": len(prompt)},
        )
        return strategy, prompt

    async def _produce_draft(self, messages: List[Dict[str, str]], temperature: float) -> str:
        """Single completion call with the request timeout applied."""
        loop = asyncio.get_running_loop()
        call = loop.run_in_executor(
            None,
            lambda: self.llm.complete(
                messages,
                temperature=temperature,
                max_tokens=self.settings.max_tokens,
            ),
        )
        try:
            return await asyncio.wait_for(call, timeout=self.settings.request_timeout_seconds)
        except asyncio.TimeoutError as e:
            raise GenerationError(
                f"Completion timed out after {self.settings.request_timeout_seconds}s",
                category="network",
                stage="draft",
            ) from e
        except LLMServiceError as e:
            raise GenerationError(str(e), category=e.category, stage="draft") from e
        except Exception as e:
            raise GenerationError(str(e), category=categorize_llm_error(e), stage="draft") from e
