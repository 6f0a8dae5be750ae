"""
Tests for tutor/orchestration/orchestrator.py

The LLM service is a MagicMock whose `complete` is scripted per test; the
trace store is a fresh instance so events can be asserted per turn.
"""

import time
import asyncio
import threading
import pytest
from unittest.mock import MagicMock, patch

from openai import APITimeoutError

from config import Settings
from shared.services.llm_service import LLMService, LLMServiceError
from tutor.exceptions import GenerationError, InvalidTranscriptError
from tutor.models.messages import create_assistant_message, create_user_message
from tutor.models.pipeline_logs import PipelineTraceStore
from tutor.orchestration.orchestrator import TurnResult, TutoringPipeline
from tutor.prompts.tutor_prompts import FALLBACK_SYSTEM_PROMPT


GOOD = "What do you think we could do to both sides?"


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _make_settings(**overrides):
    values = {
        "openai_api_key": "sk-test",
        "use_llm_state_detection": False,
        "request_timeout_seconds": 5.0,
    }
    values.update(overrides)
    return Settings(**values)


def _make_llm(*replies):
    llm = MagicMock()
    llm.complete.side_effect = list(replies)
    return llm


def _make_pipeline(llm, **settings_overrides):
    store = PipelineTraceStore()
    pipeline = TutoringPipeline(llm, settings=_make_settings(**settings_overrides), trace_store=store)
    return pipeline, store


def _make_transcript(*texts):
    transcript = []
    for i, text in enumerate(texts):
        factory = create_user_message if i % 2 == 0 else create_assistant_message
        transcript.append(factory(text))
    return transcript


# ---------------------------------------------------------------------------
# Happy path
# ---------------------------------------------------------------------------

class TestProcessTurn:
    @pytest.mark.asyncio
    async def test_first_turn(self):
        llm = _make_llm(GOOD)
        pipeline, store = _make_pipeline(llm)

        result = await pipeline.process_turn(_make_transcript("Solve: 2x + 5 = 13"), conversation_id="c1")

        assert isinstance(result, TurnResult)
        assert result.response == GOOD
        assert result.state == "ready_to_learn"
        assert result.strategy == "deep_exploration"
        assert result.hint_level == "subtle"
        assert result.regeneration_path == "none"
        assert result.extra_calls == 0
        assert llm.complete.call_count == 1

    @pytest.mark.asyncio
    async def test_adaptive_prompt_is_the_system_message(self):
        llm = _make_llm(GOOD)
        pipeline, _ = _make_pipeline(llm)

        await pipeline.process_turn(_make_transcript("I'm stuck"), problem_context="2x + 5 = 13")

        messages = llm.complete.call_args.args[0]
        assert messages[0]["role"] == "system"
        assert "- Strategy: progressive_hints" in messages[0]["content"]
        assert "PROBLEM CONTEXT:\n2x + 5 = 13" in messages[0]["content"]
        assert messages[1] == {"role": "user", "content": "I'm stuck"}

    @pytest.mark.asyncio
    async def test_completion_uses_tutor_settings(self):
        llm = _make_llm(GOOD)
        pipeline, _ = _make_pipeline(llm, tutor_temperature=0.5, max_tokens=321)

        await pipeline.process_turn(_make_transcript("hi"))

        assert llm.complete.call_args.kwargs == {"temperature": 0.5, "max_tokens": 321}

    @pytest.mark.asyncio
    async def test_llm_state_detection_makes_extra_call(self):
        llm = _make_llm("STATE: making_progress\nCONFIDENCE: 0.9\nEVIDENCE: correct step", GOOD)
        pipeline, _ = _make_pipeline(llm, use_llm_state_detection=True)

        result = await pipeline.process_turn(_make_transcript("So x = 4?"))

        assert result.state == "making_progress"
        assert result.strategy == "encouragement_challenge"
        assert llm.complete.call_count == 2
        classifier_call = llm.complete.call_args_list[0]
        assert classifier_call.kwargs["temperature"] == 0.3

    @pytest.mark.asyncio
    async def test_classifier_failure_falls_back_to_heuristic(self):
        llm = _make_llm(LLMServiceError("boom", category="unknown"), GOOD)
        pipeline, _ = _make_pipeline(llm, use_llm_state_detection=True)

        result = await pipeline.process_turn(_make_transcript("I'm confused"))

        assert result.state == "confused"
        assert result.response == GOOD

    @pytest.mark.asyncio
    async def test_regeneration_path_reported(self):
        llm = _make_llm("The answer is 4.", GOOD)
        pipeline, _ = _make_pipeline(llm)

        result = await pipeline.process_turn(_make_transcript("Solve: 2x + 5 = 13"))

        assert result.response == GOOD
        assert result.regeneration_path == "compliance"
        assert result.extra_calls == 1


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------

class TestProcessTurnErrors:
    @pytest.mark.asyncio
    async def test_empty_transcript_rejected(self):
        pipeline, _ = _make_pipeline(_make_llm())
        with pytest.raises(InvalidTranscriptError):
            await pipeline.process_turn([])

    @pytest.mark.asyncio
    @pytest.mark.parametrize("category", ["auth", "rate_limit", "network", "unknown"])
    async def test_generation_error_carries_category(self, category):
        llm = _make_llm(LLMServiceError("failed", category=category))
        pipeline, store = _make_pipeline(llm)

        with pytest.raises(GenerationError) as exc_info:
            await pipeline.process_turn(_make_transcript("hi"), conversation_id="c-err")

        assert exc_info.value.category == category
        assert exc_info.value.stage == "draft"
        assert [log.event_type for log in store.get_logs("c-err", event_type="turn_failed")] == ["turn_failed"]

    @pytest.mark.asyncio
    async def test_unexpected_error_is_categorized(self):
        llm = _make_llm(RuntimeError("Incorrect API key provided"))
        pipeline, _ = _make_pipeline(llm)

        with pytest.raises(GenerationError) as exc_info:
            await pipeline.process_turn(_make_transcript("hi"))
        assert exc_info.value.category == "auth"

    @pytest.mark.asyncio
    async def test_timeout_becomes_network_error(self):
        llm = MagicMock()
        llm.complete.side_effect = lambda *args, **kwargs: time.sleep(0.5) or GOOD
        pipeline, _ = _make_pipeline(llm, request_timeout_seconds=0.05)

        with pytest.raises(GenerationError) as exc_info:
            await pipeline.process_turn(_make_transcript("hi"))
        assert exc_info.value.category == "network"

    @pytest.mark.asyncio
    async def test_drafts_on_the_running_loop(self):
        pipeline, _ = _make_pipeline(_make_llm(GOOD))
        with patch("asyncio.get_event_loop", side_effect=AssertionError("deprecated loop lookup")):
            result = await pipeline.process_turn(_make_transcript("hi"))
        assert result.response == GOOD

    @pytest.mark.asyncio
    async def test_timeout_stops_completion_retries(self):
        with patch("shared.services.llm_service.OpenAI") as mock_openai_cls:
            create = mock_openai_cls.return_value.chat.completions.create

            def slow_timeout(**kwargs):
                time.sleep(0.3)
                raise APITimeoutError(request=MagicMock())

            create.side_effect = slow_timeout
            llm = LLMService("sk-test", max_retries=3, initial_retry_delay=0.05, timeout=0.2)
            pipeline, _ = _make_pipeline(llm, request_timeout_seconds=0.2)

            with pytest.raises(GenerationError) as exc_info:
                await pipeline.process_turn(_make_transcript("hi"))
            assert exc_info.value.category == "network"

            # give the worker thread time to finish its attempt
            await asyncio.sleep(0.5)

        assert create.call_count == 1

    @pytest.mark.asyncio
    async def test_cancellation_propagates_without_regeneration(self):
        started = threading.Event()

        def slow_reply(*args, **kwargs):
            started.set()
            time.sleep(0.3)
            return "The answer is 4."

        llm = MagicMock()
        llm.complete.side_effect = slow_reply
        pipeline, store = _make_pipeline(llm)

        task = asyncio.create_task(pipeline.process_turn(_make_transcript("hi"), conversation_id="c-cancel"))
        while not started.is_set():
            await asyncio.sleep(0.01)
        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task

        await asyncio.sleep(0.4)
        assert llm.complete.call_count == 1
        assert store.get_logs("c-cancel", event_type="draft_finalized") == []

    @pytest.mark.asyncio
    async def test_assembly_failure_uses_fallback_prompt(self):
        llm = _make_llm(GOOD)
        pipeline, store = _make_pipeline(llm)

        with patch(
            "tutor.orchestration.orchestrator.build_adaptive_prompt",
            side_effect=RuntimeError("template broke"),
        ):
            result = await pipeline.process_turn(_make_transcript("hi"), conversation_id="c-fb")

        assert result.strategy is None
        assert llm.complete.call_args.args[0][0] == {"role": "system", "content": FALLBACK_SYSTEM_PROMPT}
        assert store.get_logs("c-fb", event_type="fallback_prompt")


# ---------------------------------------------------------------------------
# Trace events
# ---------------------------------------------------------------------------

class TestTraceEvents:
    @pytest.mark.asyncio
    async def test_events_in_order(self):
        llm = _make_llm(GOOD)
        pipeline, store = _make_pipeline(llm)

        await pipeline.process_turn(_make_transcript("Solve: 2x + 5 = 13"), conversation_id="c-trace")

        events = [log.event_type for log in store.get_logs("c-trace")]
        assert events == ["turn_started", "state_detected", "strategy_selected", "draft_finalized"]
        turn_ids = {log.turn_id for log in store.get_logs("c-trace")}
        assert len(turn_ids) == 1

    @pytest.mark.asyncio
    async def test_conversation_id_generated_when_missing(self):
        llm = _make_llm(GOOD)
        pipeline, store = _make_pipeline(llm)

        result = await pipeline.process_turn(_make_transcript("hi"))

        assert result.conversation_id
        assert result.turn_id.startswith("turn_")
        events = store.get_logs(result.conversation_id, turn_id=result.turn_id)
        assert [log.event_type for log in events][-1] == "draft_finalized"

    @pytest.mark.asyncio
    async def test_anonymous_conversations_do_not_accumulate(self):
        llm = MagicMock()
        llm.complete.return_value = GOOD
        store = PipelineTraceStore(max_conversations=10)
        pipeline = TutoringPipeline(llm, settings=_make_settings(), trace_store=store)

        results = [await pipeline.process_turn(_make_transcript("hi")) for _ in range(50)]

        assert store.get_logs(results[0].conversation_id) == []
        assert store.get_logs(results[-1].conversation_id)


class TestSharedFixtures:
    @pytest.mark.asyncio
    async def test_dont_know_after_tutor_question(self, sample_transcript, mock_llm_service):
        pipeline = TutoringPipeline(mock_llm_service, settings=_make_settings(), trace_store=PipelineTraceStore())

        result = await pipeline.process_turn(sample_transcript, problem_context="2x + 5 = 13")

        assert result.state == "knowledge_gap"
        assert result.strategy == "method_discovery"
        assert result.response == mock_llm_service.complete.return_value
