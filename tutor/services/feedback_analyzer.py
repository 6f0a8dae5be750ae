"""
Feedback Analyzer

Step-by-step review of one student answer. The completion service is asked
for a STEPS / ERRORS / MISCONCEPTIONS / CORRECT PARTS breakdown; the pure
functions below turn that reply, plus pattern checks on the answer itself,
into a FeedbackAnalysis with guidance, encouragement and next steps.

Every function except FeedbackAnalyzer.analyze is deterministic and
side-effect free.
"""

import re
import json
import time
import asyncio
import logging
from typing import List, NamedTuple, Optional

from shared.services.llm_service import LLMService, LLMServiceError, categorize_llm_error
from tutor.exceptions import GenerationError
from tutor.models.feedback import (
    ERROR_TYPES,
    ErrorAnalysis,
    FeedbackAnalysis,
    FeedbackResult,
    StepAnalysis,
)
from tutor.models.messages import create_user_message, to_completion_messages
from tutor.prompts.feedback_prompts import FEEDBACK_ANALYSIS_PROMPT, FEEDBACK_ANALYST_SYSTEM_PROMPT


logger = logging.getLogger("tutor.feedback")


NUMBERED_LINE = re.compile(r"^\s*\d+[.)]\s*(.+?)\s*$", re.MULTILINE)
BULLET_PREFIX = re.compile(r"^\s*(?:[-*•]|\d+[.)])\s*")
EMPTY_ITEM = re.compile(r"^(none|n/a|nothing)\b", re.IGNORECASE)
STEP_REFERENCE = re.compile(r"step\s*(\d+)\s*:\s*(.*)$", re.IGNORECASE)
TYPED_ERROR = re.compile(r"^\[?([a-z]+)\]?(?:\s+error)?\s*[-:]\s*(.*)$", re.IGNORECASE)

_HEADERS = r"(?:STEPS?|ERRORS?|MISCONCEPTIONS?|CORRECT PARTS?)"


def _section_pattern(header: str) -> re.Pattern:
    return re.compile(
        rf"^\s*{header}:(.*?)(?=^\s*{_HEADERS}:|\Z)",
        re.IGNORECASE | re.MULTILINE | re.DOTALL,
    )


STEPS_SECTION = _section_pattern("STEPS?")
ERRORS_SECTION = _section_pattern("ERRORS?")
MISCONCEPTIONS_SECTION = _section_pattern("MISCONCEPTIONS?")
CORRECT_SECTION = _section_pattern("CORRECT PARTS?")


CALCULATION_PATTERNS = [
    re.compile(r"\d+\s*[+\-*/]\s*\d+\s*=\s*\d+"),
    re.compile(r"calculation|arithmetic|compute|calculate"),
    re.compile(r"\b\d+\s*[+\-*/=]"),
]
CONCEPTUAL_LOCATION = re.compile(r"concept|understand|meaning|definition|principle")
CONCEPTUAL_RESPONSE = re.compile(r"doesn't make sense|confused|wrong idea")
PROCEDURAL_LOCATION = re.compile(r"method|approach|procedure|process|steps|algorithm")
PROCEDURAL_RESPONSE = re.compile(r"wrong way|incorrect method|should use")

# Checked in order; the first matching misconception wins.
MISCONCEPTION_PATTERNS = {
    "negative-signs": [
        re.compile(r"negative.*negative.*positive", re.IGNORECASE),
        re.compile(r"-.*-.*\+"),
        re.compile(r"subtracting.*negative", re.IGNORECASE),
    ],
    "order-of-operations": [
        re.compile(r"left.*right", re.IGNORECASE),
        re.compile(r"order.*operations", re.IGNORECASE),
        re.compile(r"pemdas", re.IGNORECASE),
        re.compile(r"bodmas", re.IGNORECASE),
    ],
    "fractions": [
        re.compile(r"add.*numerator.*denominator", re.IGNORECASE),
        re.compile(r"multiply.*fractions", re.IGNORECASE),
    ],
    "equations": [
        re.compile(r"move.*side", re.IGNORECASE),
        re.compile(r"change.*sign", re.IGNORECASE),
    ],
}

NO_ERROR_GUIDANCE = "Great work! You're on the right track."
GUIDANCE_BY_ERROR_TYPE = {
    "calculation": (
        "I notice there might be a calculation error. Let's check your arithmetic step by step. "
        "What operation are you performing here?"
    ),
    "conceptual": (
        "It looks like there might be a misunderstanding of the concept. Let's think about what "
        "this problem is really asking. Can you explain what you understand so far?"
    ),
    "procedural": (
        "Your approach might need adjustment. Let's think about what method would work best here. "
        "What strategies have you learned for this type of problem?"
    ),
}
DEFAULT_GUIDANCE = "Let's review this step together. Can you walk me through what you're thinking?"

NO_ERROR_ENCOURAGEMENT = "Excellent thinking! You're making great progress."
ENCOURAGEMENTS = (
    "Don't worry - mistakes help us learn! Let's work through this together.",
    "You're on the right track! Let's figure this out step by step.",
    "Great effort! Every mistake is a learning opportunity.",
    "I appreciate your persistence! Let's tackle this together.",
)

NO_ERROR_NEXT_STEPS = ["Continue with the next step", "Review your work", "Check your final answer"]
NEXT_STEPS_BY_ERROR_TYPE = {
    "calculation": [
        "Double-check your arithmetic",
        "Review the operation you're performing",
        "Verify each calculation step",
    ],
    "conceptual": [
        "Review the core concept",
        "Think about what the problem is asking",
        "Consider similar problems you've solved",
    ],
    "procedural": [
        "Consider alternative approaches",
        "Review the steps you've learned",
        "Think about what method fits this problem",
    ],
}


class ReportedError(NamedTuple):
    step: int
    error_type: Optional[str]
    description: str


class AnalysisSections(NamedTuple):
    """The completion service's review, split by section header."""

    steps: List[str]
    errors: List[ReportedError]
    misconceptions: List[str]
    correct_parts: List[str]


# ─── Parsing ──────────────────────────────────────────────────────────

def parse_steps(response: str) -> List[str]:
    """
    Split an answer into steps: numbered lines first, then non-empty lines,
    else the whole answer as one step.
    """
    numbered = NUMBERED_LINE.findall(response)
    if len(numbered) > 1:
        return numbered

    lines = [line.strip() for line in response.split("\n") if line.strip()]
    if len(lines) > 1:
        return lines

    return [response.strip()]


def _section_items(pattern: re.Pattern, analysis: str) -> List[str]:
    match = pattern.search(analysis)
    if not match:
        return []
    items = []
    for line in match.group(1).split("\n"):
        item = BULLET_PREFIX.sub("", line).strip()
        if item and not EMPTY_ITEM.match(item):
            items.append(item)
    return items


def _parse_error_line(line: str) -> Optional[ReportedError]:
    reference = STEP_REFERENCE.search(line)
    if not reference:
        return None
    step = int(reference.group(1))
    rest = reference.group(2).strip()

    typed = TYPED_ERROR.match(rest)
    if typed and typed.group(1).lower() in ERROR_TYPES:
        return ReportedError(step, typed.group(1).lower(), typed.group(2).strip())
    return ReportedError(step, None, rest)


def parse_analysis_sections(analysis: Optional[str]) -> AnalysisSections:
    """Never raises; missing sections come back empty."""
    analysis = analysis or ""
    errors = []
    for item in _section_items(ERRORS_SECTION, analysis):
        reported = _parse_error_line(item)
        if reported:
            errors.append(reported)

    return AnalysisSections(
        steps=_section_items(STEPS_SECTION, analysis),
        errors=errors,
        misconceptions=_section_items(MISCONCEPTIONS_SECTION, analysis),
        correct_parts=_section_items(CORRECT_SECTION, analysis),
    )


# ─── Classification ───────────────────────────────────────────────────

def classify_error(error_location: str, student_response: str) -> str:
    """Map an error to calculation, conceptual, procedural or unknown."""
    location = error_location.lower()
    response = student_response.lower()

    if any(pattern.search(location) for pattern in CALCULATION_PATTERNS):
        return "calculation"
    if CONCEPTUAL_LOCATION.search(location) or CONCEPTUAL_RESPONSE.search(response):
        return "conceptual"
    if PROCEDURAL_LOCATION.search(location) or PROCEDURAL_RESPONSE.search(response):
        return "procedural"
    return "unknown"


def detect_misconception(error_location: str, student_response: str) -> Optional[str]:
    for misconception, patterns in MISCONCEPTION_PATTERNS.items():
        for pattern in patterns:
            if pattern.search(student_response) or pattern.search(error_location):
                return misconception
    return None


def analyze_steps(student_response: str, sections: Optional[AnalysisSections] = None) -> StepAnalysis:
    """
    Steps of the answer with the reviewed ones marked.

    Without a review every step is left unmarked.
    """
    if sections is None:
        return StepAnalysis(steps=parse_steps(student_response))

    steps = sections.steps or parse_steps(student_response)
    incorrect = sorted({e.step - 1 for e in sections.errors if 1 <= e.step <= len(steps)})
    correct = [i for i in range(len(steps)) if i not in incorrect]
    return StepAnalysis(steps=steps, correct_steps=correct, incorrect_steps=incorrect)


# ─── Feedback text ────────────────────────────────────────────────────

def generate_guidance(error_analyses: List[ErrorAnalysis]) -> str:
    if not error_analyses:
        return NO_ERROR_GUIDANCE
    return GUIDANCE_BY_ERROR_TYPE.get(error_analyses[0].error_type, DEFAULT_GUIDANCE)


def generate_encouragement(error_count: int) -> str:
    """Encouragement line; rotates through the set as the error count grows."""
    if error_count == 0:
        return NO_ERROR_ENCOURAGEMENT
    return ENCOURAGEMENTS[(error_count - 1) % len(ENCOURAGEMENTS)]


def generate_next_steps(error_analyses: List[ErrorAnalysis]) -> List[str]:
    if not error_analyses:
        return list(NO_ERROR_NEXT_STEPS)

    primary = error_analyses[0]
    steps = list(NEXT_STEPS_BY_ERROR_TYPE.get(primary.error_type, []))
    if primary.misconception:
        steps.append(f"Address the misconception: {primary.misconception}")
    return steps


def analyze_feedback(student_response: str, ai_analysis: Optional[str] = None) -> FeedbackAnalysis:
    """
    Build feedback for one answer from the review's reported errors.

    The review's misconceptions are appended to the guidance and its correct
    parts to the encouragement.
    """
    sections = parse_analysis_sections(ai_analysis)
    step_analysis = analyze_steps(student_response, sections)

    error_analyses = []
    for reported in sections.errors:
        index = reported.step - 1
        step_text = step_analysis.steps[index] if 0 <= index < len(step_analysis.steps) else ""
        location = reported.description or step_text
        error_type = reported.error_type or classify_error(f"{step_text} {reported.description}", student_response)
        reasoning = f"Error detected in step {reported.step}"
        if reported.description:
            reasoning += f": {reported.description}"

        error_analyses.append(ErrorAnalysis(
            error_type=error_type,
            step=reported.step,
            location=location,
            misconception=detect_misconception(location, student_response),
            reasoning=reasoning,
        ))

    guidance = generate_guidance(error_analyses)
    if sections.misconceptions:
        guidance += (
            f"\n\nI noticed a potential misconception: {'; '.join(sections.misconceptions)}. "
            "Let's address this together."
        )

    encouragement = generate_encouragement(len(error_analyses))
    if sections.correct_parts:
        encouragement += f" Great job on: {'; '.join(sections.correct_parts)}"

    return FeedbackAnalysis(
        has_error=bool(error_analyses),
        error_analyses=error_analyses,
        misconception=error_analyses[0].misconception if error_analyses else None,
        guidance=guidance,
        encouragement=encouragement,
        next_steps=generate_next_steps(error_analyses),
    )


# ─── Service ──────────────────────────────────────────────────────────

class FeedbackAnalyzer:
    """Requests a step-by-step review and turns it into student feedback."""

    def __init__(
        self,
        llm_service: LLMService,
        temperature: float = 0.3,
        max_tokens: int = 1000,
        timeout_seconds: Optional[float] = None,
    ):
        self.llm = llm_service
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.timeout_seconds = timeout_seconds

    async def analyze(self, student_response: str, problem_context: str) -> FeedbackResult:
        """
        Raises:
            GenerationError: If the completion service fails or times out
        """
        start_time = time.time()
        analysis = await self._request_analysis(student_response, problem_context)
        feedback = analyze_feedback(student_response, analysis)

        logger.info(json.dumps({
            "step": "FEEDBACK_ANALYSIS",
            "status": "complete",
            "has_error": feedback.has_error,
            "error_count": len(feedback.error_analyses),
            "misconception": feedback.misconception,
            "duration_ms": int((time.time() - start_time) * 1000),
        }))
        return FeedbackResult(feedback=feedback, analysis=analysis)

    async def _request_analysis(self, student_response: str, problem_context: str) -> str:
        prompt = FEEDBACK_ANALYSIS_PROMPT.render(
            student_response=student_response,
            problem_context=problem_context,
        )
        messages = to_completion_messages(
            [create_user_message(prompt)],
            system_prompt=FEEDBACK_ANALYST_SYSTEM_PROMPT,
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
        try:
            if self.timeout_seconds:
                return await asyncio.wait_for(call, timeout=self.timeout_seconds)
            return await call
        except asyncio.TimeoutError as e:
            raise GenerationError(
                f"Feedback analysis timed out after {self.timeout_seconds}s",
                category="network",
                stage="feedback",
            ) from e
        except LLMServiceError as e:
            raise GenerationError(str(e), category=e.category, stage="feedback") from e
        except Exception as e:
            raise GenerationError(str(e), category=categorize_llm_error(e), stage="feedback") from e
