"""
Tutoring State Models

Value objects produced per turn by the decision pipeline: the derived
conversation context, the detected student state, the selected strategy and
the validation results for a draft reply.
"""

from typing import Literal, Optional, get_args
from pydantic import BaseModel, ConfigDict, Field, field_validator

from shared.utils.constants import DEFAULT_STUDENT_STATE


StudentStateName = Literal[
    "knowledge_gap",
    "stuck",
    "confused",
    "making_progress",
    "frustrated",
    "ready_to_learn",
]
StrategyName = Literal[
    "method_discovery",
    "progressive_hints",
    "clarification_first",
    "encouragement_challenge",
    "empathy_simplification",
    "deep_exploration",
]
HintLevel = Literal["none", "subtle", "moderate", "concrete"]
QuestionStyle = Literal["discovery", "probing", "clarifying", "challenging"]
Tone = Literal["encouraging", "supportive", "challenging", "empathic"]
Sentiment = Literal["positive", "neutral", "negative"]
ProblemType = Literal["quadratic_equation", "linear_equation", "geometry", "fractions"]
RegenerationPath = Literal["none", "accuracy", "compliance", "accuracy_and_compliance"]

STUDENT_STATES: tuple[str, ...] = get_args(StudentStateName)
STRATEGY_NAMES: tuple[str, ...] = get_args(StrategyName)
HINT_LEVELS: tuple[str, ...] = get_args(HintLevel)  # ordered by directness


def hint_level_rank(level: str) -> int:
    """Position on the none < subtle < moderate < concrete scale."""
    return HINT_LEVELS.index(level)


def coerce_state_name(value: object) -> str:
    """Normalize a raw state label; anything unrecognized becomes ready_to_learn."""
    if isinstance(value, str):
        normalized = value.strip().lower()
        if normalized in STUDENT_STATES:
            return normalized
    return DEFAULT_STUDENT_STATE


class ConversationContext(BaseModel):
    """Counters derived from the transcript for one classification call."""

    model_config = ConfigDict(frozen=True)

    turn_count: int = Field(default=0, ge=0, description="Number of student messages")
    problem_type: Optional[ProblemType] = Field(default=None, description="Topic inferred from the transcript")
    recent_errors: tuple[str, ...] = Field(
        default=(), description="Recent assistant messages mentioning an error, most recent last"
    )
    student_sentiment: Sentiment = Field(default="neutral")
    conversation_length: int = Field(default=0, ge=0, description="Total message count")


class DetectedState(BaseModel):
    """Classified student state for the current turn."""

    model_config = ConfigDict(frozen=True)

    state: StudentStateName = Field(default=DEFAULT_STUDENT_STATE)
    confidence: float = Field(default=0.6, description="How sure the classifier is, clamped to [0, 1]")
    evidence: tuple[str, ...] = Field(default=(), description="Short justifications, in order")
    context: ConversationContext = Field(default_factory=ConversationContext)

    @field_validator("state", mode="before")
    @classmethod
    def _coerce_state(cls, value):
        return coerce_state_name(value)

    @field_validator("confidence", mode="before")
    @classmethod
    def _clamp_confidence(cls, value):
        try:
            confidence = float(value)
        except (TypeError, ValueError):
            return 0.0
        if confidence != confidence:  # NaN
            return 0.0
        return max(0.0, min(1.0, confidence))


class StrategyConfig(BaseModel):
    """Behavioral parameters for the tutor reply."""

    model_config = ConfigDict(frozen=True)

    name: StrategyName
    approach: str = Field(description="Human-readable rationale")
    instructions: str = Field(description="Directive text block for the tutor prompt")
    hint_level: HintLevel
    question_style: QuestionStyle
    tone: Tone


class ComplianceResult(BaseModel):
    """Outcome of the Socratic-method compliance check."""

    is_valid: bool
    reason: Optional[str] = None


class AccuracyResult(BaseModel):
    """Outcome of the mathematical-accuracy check."""

    is_valid: bool
    issues: list[str] = Field(default_factory=list)
    suggestions: list[str] = Field(default_factory=list)
