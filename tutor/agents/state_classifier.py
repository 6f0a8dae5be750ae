"""
State Classifier

Detects the student's learning state for the current turn. The LLM-assisted
path asks the completion service for a STATE / CONFIDENCE / EVIDENCE answer;
whenever that path fails for any reason the deterministic heuristic in
tutor.utils.state_utils is used instead, so classification never surfaces an
error to the caller.
"""

import re
import json
import time
import asyncio
import logging
from typing import Optional

from shared.services.llm_service import LLMService, categorize_llm_error
from shared.utils.constants import DEFAULT_PARSED_CONFIDENCE, NO_EVIDENCE
from tutor.exceptions import ClassificationError
from tutor.models.messages import Message, create_user_message, to_completion_messages
from tutor.models.tutoring_state import ConversationContext, DetectedState, coerce_state_name
from tutor.prompts.classifier_prompts import STATE_ANALYSIS_PROMPT, STATE_ANALYST_SYSTEM_PROMPT
from tutor.utils.prompt_utils import format_messages_for_analysis
from tutor.utils.state_utils import extract_conversation_context, fallback_state_detection


logger = logging.getLogger("tutor.classifier")


STATE_LINE = re.compile(r"^\s*STATE:\s*(\w+)", re.IGNORECASE | re.MULTILINE)
CONFIDENCE_LINE = re.compile(r"^\s*CONFIDENCE:\s*([0-9]*\.?[0-9]+)", re.IGNORECASE | re.MULTILINE)
EVIDENCE_BLOCK = re.compile(r"^\s*EVIDENCE:[ \t]*(.*(?:\n(?!\s*\n).*)*)", re.IGNORECASE | re.MULTILINE)
BULLET_PREFIX = re.compile(r"^\s*(?:[-*•]|\d+[.)])\s*")


def build_analysis_prompt(
    transcript: list[Message],
    problem_context: Optional[str],
    context: ConversationContext,
) -> str:
    """Render the user-side analysis prompt for the state analyst."""
    problem_section = f"PROBLEM CONTEXT: {problem_context}\n\n" if problem_context else ""
    return STATE_ANALYSIS_PROMPT.render(
        turn_count=context.turn_count,
        conversation_length=context.conversation_length,
        student_sentiment=context.student_sentiment,
        problem_type=context.problem_type or "unknown",
        recent_messages=format_messages_for_analysis(transcript),
        problem_section=problem_section,
    )


def _parse_evidence(analysis: str) -> tuple[str, ...]:
    match = EVIDENCE_BLOCK.search(analysis)
    if not match:
        return (NO_EVIDENCE,)
    items = []
    for line in match.group(1).split("\n"):
        item = BULLET_PREFIX.sub("", line).strip()
        if item:
            items.append(item)
    return tuple(items) or (NO_EVIDENCE,)


def parse_state_analysis(analysis: str, context: ConversationContext) -> DetectedState:
    """
    Parse the analyst's reply into a DetectedState.

    Never raises: an unknown or missing state becomes ready_to_learn, a
    missing confidence becomes 0.7 and out-of-range values are clamped.
    """
    state_match = STATE_LINE.search(analysis or "")
    confidence_match = CONFIDENCE_LINE.search(analysis or "")

    state = coerce_state_name(state_match.group(1) if state_match else None)
    try:
        confidence = float(confidence_match.group(1)) if confidence_match else DEFAULT_PARSED_CONFIDENCE
    except ValueError:
        confidence = DEFAULT_PARSED_CONFIDENCE

    return DetectedState(
        state=state,
        confidence=confidence,
        evidence=_parse_evidence(analysis or ""),
        context=context,
    )


class StateClassifier:
    """
    Facade over the two classification paths.

    Only `asyncio.CancelledError` escapes `classify`; every other failure on
    the LLM path is logged and answered by the heuristic.
    """

    def __init__(
        self,
        llm_service: Optional[LLMService],
        temperature: float = 0.3,
        max_tokens: int = 500,
        use_llm: bool = True,
        timeout_seconds: Optional[float] = None,
    ):
        self.llm = llm_service
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.use_llm = use_llm and llm_service is not None
        self.timeout_seconds = timeout_seconds

    async def classify(
        self,
        transcript: list[Message],
        problem_context: Optional[str] = None,
    ) -> DetectedState:
        context = extract_conversation_context(transcript)

        if not self.use_llm:
            return fallback_state_detection(transcript, context)

        start_time = time.time()
        try:
            analysis = await self._request_analysis(transcript, problem_context, context)
            detected = parse_state_analysis(analysis, context)
            logger.info(json.dumps({
                "step": "STATE_DETECTION",
                "status": "complete",
                "path": "llm",
                "state": detected.state,
                "confidence": detected.confidence,
                "duration_ms": int((time.time() - start_time) * 1000),
            }))
            return detected
        except asyncio.CancelledError:
            raise
        except Exception as e:
            category = "network" if isinstance(e, asyncio.TimeoutError) else categorize_llm_error(e)
            detected = fallback_state_detection(transcript, context)
            logger.warning(json.dumps({
                "step": "STATE_DETECTION",
                "status": "fallback",
                "path": "heuristic",
                "category": category,
                "error": str(e),
                "state": detected.state,
                "duration_ms": int((time.time() - start_time) * 1000),
            }))
            return detected

    async def _request_analysis(
        self,
        transcript: list[Message],
        problem_context: Optional[str],
        context: ConversationContext,
    ) -> str:
        prompt = build_analysis_prompt(transcript, problem_context, context)
        messages = to_completion_messages(
            [create_user_message(prompt)],
            system_prompt=STATE_ANALYST_SYSTEM_PROMPT,
        )

        loop = asyncio.get_running_loop()
        call = loop.run_in_executor(
            None,
            lambda: self.llm.complete(
                messages,
                temperature=self.temperature,
                max_tokens=self.max_tokens,
            ),
        )
        if self.timeout_seconds:
            analysis = await asyncio.wait_for(call, timeout=self.timeout_seconds)
        else:
            analysis = await call

        if not analysis.strip():
            raise ClassificationError("State analysis reply was empty")
        return analysis
