"""
Strategy Selector

Maps a detected student state to a tutoring strategy with concrete
behavioral parameters. A total table lookup: unknown states resolve to
deep_exploration instead of raising.
"""

import logging

from shared.utils.constants import DEFAULT_STRATEGY, HINT_ESCALATION_TURN_THRESHOLD
from tutor.models.tutoring_state import DetectedState, StrategyConfig
from tutor.prompts.strategy_prompts import (
    CLARIFICATION_FIRST_INSTRUCTIONS,
    DEEP_EXPLORATION_INSTRUCTIONS,
    EMPATHY_SIMPLIFICATION_INSTRUCTIONS,
    ENCOURAGEMENT_CHALLENGE_INSTRUCTIONS,
    METHOD_DISCOVERY_INSTRUCTIONS,
    PROGRESSIVE_HINTS_INSTRUCTIONS,
)

logger = logging.getLogger("tutor.strategy")


STATE_TO_STRATEGY = {
    "knowledge_gap": "method_discovery",
    "stuck": "progressive_hints",
    "confused": "clarification_first",
    "making_progress": "encouragement_challenge",
    "frustrated": "empathy_simplification",
    "ready_to_learn": "deep_exploration",
}


# Static fields per strategy; progressive_hints is completed per turn.
STRATEGY_CONFIGS = {
    "method_discovery": {
        "approach": "Address the specific knowledge gap through guided discovery, maintaining conversation continuity",
        "instructions": METHOD_DISCOVERY_INSTRUCTIONS,
        "hint_level": "subtle",
        "question_style": "discovery",
        "tone": "encouraging",
    },
    "progressive_hints": {
        "approach": "Escalate hints gradually, ask probing questions to understand where they're stuck",
        "question_style": "probing",
        "tone": "supportive",
    },
    "clarification_first": {
        "approach": "Clarify problem understanding before attempting to solve",
        "instructions": CLARIFICATION_FIRST_INSTRUCTIONS,
        "hint_level": "none",
        "question_style": "clarifying",
        "tone": "supportive",
    },
    "encouragement_challenge": {
        "approach": "Celebrate progress, then introduce next challenge",
        "instructions": ENCOURAGEMENT_CHALLENGE_INSTRUCTIONS,
        "hint_level": "subtle",
        "question_style": "challenging",
        "tone": "encouraging",
    },
    "empathy_simplification": {
        "approach": "Acknowledge frustration, provide more direct guidance while still engaging student",
        "instructions": EMPATHY_SIMPLIFICATION_INSTRUCTIONS,
        "hint_level": "concrete",
        "question_style": "clarifying",
        "tone": "empathic",
    },
    "deep_exploration": {
        "approach": "Guide through conceptual understanding with discovery questions",
        "instructions": DEEP_EXPLORATION_INSTRUCTIONS,
        "hint_level": "subtle",
        "question_style": "discovery",
        "tone": "encouraging",
    },
}


def progressive_hint_level(turn_count: int) -> str:
    """Hint level for a stuck student: moderate from the third turn on."""
    return "moderate" if turn_count >= HINT_ESCALATION_TURN_THRESHOLD else "subtle"


def get_strategy_config(strategy_name: str, state: DetectedState) -> StrategyConfig:
    """Build the full config for a strategy, applying the turn-dependent overrides."""
    if strategy_name not in STRATEGY_CONFIGS:
        strategy_name = DEFAULT_STRATEGY
    fields = dict(STRATEGY_CONFIGS[strategy_name])

    if strategy_name == "progressive_hints":
        turn_count = state.context.turn_count
        hint_level = progressive_hint_level(turn_count)
        fields["hint_level"] = hint_level
        fields["instructions"] = PROGRESSIVE_HINTS_INSTRUCTIONS.render(
            turn_count=turn_count,
            hint_level=hint_level,
        )

    return StrategyConfig(name=strategy_name, **fields)


def select_strategy(state: DetectedState) -> StrategyConfig:
    """Select the tutoring strategy for a detected state. Never raises on unknown states."""
    state_name = getattr(state, "state", None)
    strategy_name = STATE_TO_STRATEGY.get(state_name, DEFAULT_STRATEGY)
    if state_name not in STATE_TO_STRATEGY:
        logger.warning(f"Unknown student state {state_name!r}, using {DEFAULT_STRATEGY}")
    return get_strategy_config(strategy_name, state)
