"""
Adaptive Prompt Assembler

Builds the single system prompt for a tutor turn from the detected state,
the selected strategy and the recent transcript. Pure: no I/O.

Block order:
    1. Base Socratic rules
    2. Current context + selected strategy
    3. Adaptive instructions (+ knowledge-gap / frustration augmentations)
       and response requirements
    4. Recent conversation (+ problem statement)
    5. Closing reminder
"""

from typing import Optional

from shared.utils.constants import FRUSTRATION_TURN_THRESHOLD
from tutor.models.messages import Message
from tutor.models.tutoring_state import DetectedState, StrategyConfig
from tutor.prompts.tutor_prompts import (
    ADAPTIVE_INSTRUCTIONS_HEADER,
    BASE_SOCRATIC_INSTRUCTIONS,
    CLOSING_REMINDER,
    CONTEXT_SECTION_TEMPLATE,
    CONVERSATION_SECTION_TEMPLATE,
    FRUSTRATION_ESCALATION_TEMPLATE,
    HINT_LEVEL_DESCRIPTIONS,
    KNOWLEDGE_GAP_CONTINUITY,
    PROBLEM_SECTION_TEMPLATE,
    QUESTION_STYLE_DESCRIPTIONS,
    RESPONSE_REQUIREMENTS_TEMPLATE,
    TONE_DESCRIPTIONS,
)
from tutor.utils.prompt_utils import summarize_recent_conversation


HELP_REQUEST_MARKERS = ("don't know", "tell me")


def count_help_request_evidence(evidence: tuple[str, ...]) -> int:
    """Evidence items that mention "don't know" or "tell me" language."""
    return sum(
        1 for item in evidence
        if any(marker in item.lower() for marker in HELP_REQUEST_MARKERS)
    )


def build_context_section(state: DetectedState, strategy: StrategyConfig) -> str:
    problem_type = state.context.problem_type
    return CONTEXT_SECTION_TEMPLATE.render(
        state=state.state,
        confidence_pct=round(state.confidence * 100),
        evidence="; ".join(state.evidence),
        turn_count=state.context.turn_count,
        sentiment=state.context.student_sentiment,
        problem_type_line=f"\n- Problem Type: {problem_type}" if problem_type else "",
        strategy_name=strategy.name,
        approach=strategy.approach,
        hint_level=strategy.hint_level,
        question_style=strategy.question_style,
        tone=strategy.tone,
    )


def build_adaptive_instructions(state: DetectedState, strategy: StrategyConfig) -> str:
    """Strategy directive with the state-specific augmentations and requirements."""
    sections = [f"{ADAPTIVE_INSTRUCTIONS_HEADER}\n{strategy.instructions}"]

    if state.state == "knowledge_gap":
        sections.append(KNOWLEDGE_GAP_CONTINUITY)

    if state.state == "frustrated":
        turn_count = state.context.turn_count
        sections.append(FRUSTRATION_ESCALATION_TEMPLATE.render(
            turn_count=turn_count,
            help_requests=count_help_request_evidence(state.evidence),
            turn_threshold="3+" if turn_count >= FRUSTRATION_TURN_THRESHOLD else "2+",
        ))

    sections.append(RESPONSE_REQUIREMENTS_TEMPLATE.render(
        hint_description=HINT_LEVEL_DESCRIPTIONS[strategy.hint_level],
        question_description=QUESTION_STYLE_DESCRIPTIONS[strategy.question_style],
        tone_description=TONE_DESCRIPTIONS[strategy.tone],
    ))
    return "\n\n".join(sections)


def build_conversation_section(transcript: list[Message], problem_context: Optional[str] = None) -> str:
    section = CONVERSATION_SECTION_TEMPLATE.render(
        conversation_summary=summarize_recent_conversation(transcript),
    )
    if problem_context:
        section += "\n\n" + PROBLEM_SECTION_TEMPLATE.render(problem_context=problem_context)
    return section


def build_adaptive_prompt(
    state: DetectedState,
    strategy: StrategyConfig,
    transcript: list[Message],
    problem_context: Optional[str] = None,
) -> str:
    """Assemble the tutor system prompt. Always ends with the closing reminder."""
    return "\n\n".join([
        BASE_SOCRATIC_INSTRUCTIONS,
        build_context_section(state, strategy),
        build_adaptive_instructions(state, strategy),
        build_conversation_section(transcript, problem_context),
        CLOSING_REMINDER,
    ])
