"""
Tests for tutor/services/strategy_selector.py

Covers the state -> strategy table, hint escalation for stuck students and
safe handling of unknown states.
"""

import pytest

from tutor.models.messages import create_assistant_message, create_user_message
from tutor.models.tutoring_state import ConversationContext, DetectedState, STRATEGY_NAMES, STUDENT_STATES
from tutor.services.strategy_selector import (
    STATE_TO_STRATEGY,
    STRATEGY_CONFIGS,
    get_strategy_config,
    select_strategy,
)
from tutor.utils.state_utils import extract_conversation_context, fallback_state_detection


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _make_state(state="ready_to_learn", turn_count=1):
    return DetectedState(
        state=state,
        confidence=0.8,
        evidence=("test",),
        context=ConversationContext(turn_count=turn_count, conversation_length=turn_count * 2),
    )


class _UnknownState:
    """Stand-in with a state value outside the enum."""
    state = "daydreaming"
    context = ConversationContext()


# ---------------------------------------------------------------------------
# Tables
# ---------------------------------------------------------------------------

class TestTables:
    def test_every_state_has_a_strategy(self):
        assert set(STATE_TO_STRATEGY) == set(STUDENT_STATES)

    def test_every_strategy_has_a_config(self):
        assert set(STRATEGY_CONFIGS) == set(STRATEGY_NAMES)


# ---------------------------------------------------------------------------
# select_strategy
# ---------------------------------------------------------------------------

class TestSelectStrategy:
    @pytest.mark.parametrize("state,strategy", [
        ("knowledge_gap", "method_discovery"),
        ("stuck", "progressive_hints"),
        ("confused", "clarification_first"),
        ("making_progress", "encouragement_challenge"),
        ("frustrated", "empathy_simplification"),
        ("ready_to_learn", "deep_exploration"),
    ])
    def test_mapping(self, state, strategy):
        assert select_strategy(_make_state(state)).name == strategy

    def test_stuck_early_gets_subtle_hints(self):
        config = select_strategy(_make_state("stuck", turn_count=2))
        assert config.hint_level == "subtle"

    def test_stuck_from_third_turn_gets_moderate_hints(self):
        config = select_strategy(_make_state("stuck", turn_count=3))
        assert config.hint_level == "moderate"
        assert "turn 3" in config.instructions
        assert "moderate hints" in config.instructions

    def test_unknown_state_resolves_to_deep_exploration(self):
        config = select_strategy(_UnknownState())
        assert config.name == "deep_exploration"

    def test_none_state_resolves_to_deep_exploration(self):
        assert select_strategy(None).name == "deep_exploration"

    def test_static_fields(self):
        config = select_strategy(_make_state("confused"))
        assert config.hint_level == "none"
        assert config.question_style == "clarifying"
        assert config.tone == "supportive"


class TestGetStrategyConfig:
    def test_unknown_name_falls_back(self):
        assert get_strategy_config("shout_louder", _make_state()).name == "deep_exploration"

    def test_static_strategy_ignores_turn_count(self):
        early = get_strategy_config("method_discovery", _make_state(turn_count=1))
        late = get_strategy_config("method_discovery", _make_state(turn_count=9))
        assert early == late


# ---------------------------------------------------------------------------
# End-to-end with the heuristic detector
# ---------------------------------------------------------------------------

class TestWithHeuristicDetector:
    def test_repeated_dont_know_leads_to_empathy(self):
        transcript = []
        for question in ["What do you see?", "What is x?", "What could we try?", "Any idea?"]:
            transcript.append(create_user_message("I don't know"))
            transcript.append(create_assistant_message(question))
        transcript = transcript[:-1]

        state = fallback_state_detection(transcript, extract_conversation_context(transcript))
        config = select_strategy(state)

        assert state.state == "frustrated"
        assert config.name == "empathy_simplification"
        assert config.hint_level == "concrete"
        assert config.tone == "empathic"

    def test_first_turn_problem_leads_to_deep_exploration(self):
        transcript = [create_user_message("Solve: 2x + 5 = 13")]
        state = fallback_state_detection(transcript, extract_conversation_context(transcript))
        config = select_strategy(state)

        assert state.state == "ready_to_learn"
        assert config.name == "deep_exploration"
