"""
Response Finalizer

Turns an assembled prompt into the final tutor reply, issuing at most one
corrective regeneration per gate:

    INITIAL --draft D0--> ACCURACY_CHECKED --> COMPLIANCE_CHECKED --> DONE

The accuracy gate may replace D0 with D1 (rechecked once, for logging only).
The compliance gate checks the current draft and may replace it with one
rephrased draft that is accepted as-is. Completion failures propagate.
"""

import json
import logging
from enum import Enum
from typing import Awaitable, Callable, Optional

from pydantic import BaseModel, Field

from shared.utils.constants import EMPTY_REPLY_FALLBACK, MAX_REGENERATIONS
from tutor.models.messages import Message, last_message_by_role, to_completion_messages
from tutor.models.tutoring_state import RegenerationPath
from tutor.prompts.correction_prompts import (
    SELF_CORRECTION_PROMPT,
    SOCRATIC_REPHRASE_PROMPT,
    STUDENT_CORRECTION_PROMPT,
)
from tutor.services.response_validator import (
    check_method_compliance,
    student_pointed_out_inaccuracy,
    validate_response_quality,
)


logger = logging.getLogger("tutor.finalizer")


DraftProducer = Callable[[list[dict[str, str]], float], Awaitable[str]]


class FinalizerStage(str, Enum):
    INITIAL = "initial"
    ACCURACY_CHECKED = "accuracy_checked"
    COMPLIANCE_CHECKED = "compliance_checked"
    DONE = "done"


class FinalizedResponse(BaseModel):
    """Final reply plus which corrections were applied to reach it."""

    text: str
    regeneration_path: RegenerationPath = "none"
    extra_calls: int = Field(default=0, ge=0, le=MAX_REGENERATIONS)
    accuracy_issues: list[str] = Field(default_factory=list)
    compliance_reason: Optional[str] = None


def build_accuracy_correction(transcript: list[Message], issues: list[str]) -> str:
    """Acknowledge the student's correction if they made one, else self-correct."""
    last_student = last_message_by_role(transcript, "user")
    student_text = last_student.content if last_student else ""
    if student_pointed_out_inaccuracy(student_text):
        return STUDENT_CORRECTION_PROMPT.render(student_message=student_text)
    return SELF_CORRECTION_PROMPT.render(issue=issues[0])


def _regeneration_path(accuracy_fixed: bool, compliance_fixed: bool) -> str:
    if accuracy_fixed and compliance_fixed:
        return "accuracy_and_compliance"
    if accuracy_fixed:
        return "accuracy"
    if compliance_fixed:
        return "compliance"
    return "none"


class ResponseFinalizer:
    """Bounded draft/check/regenerate walk over the two validation gates."""

    def __init__(self, temperature: float = 0.7):
        self.temperature = temperature

    async def finalize(
        self,
        draft_producer: DraftProducer,
        assembled_prompt: str,
        transcript: list[Message],
    ) -> FinalizedResponse:
        base_messages = to_completion_messages(transcript, system_prompt=assembled_prompt)

        stage = FinalizerStage.INITIAL
        draft = ""
        extra_calls = 0
        accuracy_fixed = False
        compliance_fixed = False
        accuracy_issues: list[str] = []
        compliance_reason: Optional[str] = None

        while stage != FinalizerStage.DONE:
            if stage == FinalizerStage.INITIAL:
                draft = await draft_producer(base_messages, self.temperature) or EMPTY_REPLY_FALLBACK
                quality = validate_response_quality(draft)
                if not quality.is_valid:
                    accuracy_issues = quality.issues
                    correction = build_accuracy_correction(transcript, quality.issues)
                    draft = await self._regenerate(draft_producer, base_messages, draft, correction)
                    extra_calls += 1
                    accuracy_fixed = True
                    self._log_accuracy(quality.issues, validate_response_quality(draft).issues)
                stage = FinalizerStage.ACCURACY_CHECKED

            elif stage == FinalizerStage.ACCURACY_CHECKED:
                compliance = check_method_compliance(draft)
                if not compliance.is_valid:
                    compliance_reason = compliance.reason
                    draft = await self._regenerate(
                        draft_producer, base_messages, draft, SOCRATIC_REPHRASE_PROMPT
                    )
                    extra_calls += 1
                    compliance_fixed = True
                    logger.warning(json.dumps({
                        "step": "COMPLIANCE_GATE",
                        "status": "regenerated",
                        "reason": compliance.reason,
                    }))
                stage = FinalizerStage.COMPLIANCE_CHECKED

            elif stage == FinalizerStage.COMPLIANCE_CHECKED:
                stage = FinalizerStage.DONE

        return FinalizedResponse(
            text=draft,
            regeneration_path=_regeneration_path(accuracy_fixed, compliance_fixed),
            extra_calls=extra_calls,
            accuracy_issues=accuracy_issues,
            compliance_reason=compliance_reason,
        )

    async def _regenerate(
        self,
        draft_producer: DraftProducer,
        base_messages: list[dict[str, str]],
        draft: str,
        instruction: str,
    ) -> str:
        """One corrective call; an empty reply keeps the previous draft."""
        messages = base_messages + [
            {"role": "assistant", "content": draft},
            {"role": "user", "content": instruction},
        ]
        regenerated = await draft_producer(messages, self.temperature)
        return regenerated or draft

    def _log_accuracy(self, issues: list[str], remaining: list[str]) -> None:
        logger.warning(json.dumps({
            "step": "ACCURACY_GATE",
            "status": "regenerated",
            "issues": issues,
            "still_inaccurate": bool(remaining),
        }))
