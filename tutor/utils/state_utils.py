"""
State detection utilities.

Deterministic, pattern-based helpers used to derive the conversation context
and to classify the student's state when the LLM-assisted path is unavailable.
Everything here is pure and safe to call without network access.
"""

import re
from typing import Optional

from shared.utils.constants import (
    CONFIDENCE_CONFUSED,
    CONFIDENCE_DEFAULT,
    CONFIDENCE_FRUSTRATED,
    CONFIDENCE_FRUSTRATED_DONT_KNOW,
    CONFIDENCE_KNOWLEDGE_GAP,
    CONFIDENCE_KNOWLEDGE_GAP_NEGATION,
    CONFIDENCE_STUCK,
    FRUSTRATION_NEGATIVE_TURN_THRESHOLD,
    FRUSTRATION_TURN_THRESHOLD,
    HELP_REQUEST_THRESHOLD,
    RECENT_ERROR_WINDOW,
    RECENT_STUDENT_WINDOW,
)
from tutor.models.messages import Message, last_message_by_role, user_messages
from tutor.models.tutoring_state import ConversationContext, DetectedState


DONT_KNOW_PATTERN = re.compile(r"don'?t know|dont know|not sure|no idea", re.IGNORECASE)
TELL_ME_PATTERN = re.compile(r"tell me|just tell|please tell", re.IGNORECASE)

NEGATIVE_WORDS = (
    "can't", "too hard", "impossible", "frustrated", "frustrating", "frustrate",
    "don't understand", "stuck", "not sure", "i don't know", "dont know",
    "tell me", "just tell", "please tell", "tell me now", "give me",
    "i dont know", "no idea", "give up",
)
POSITIVE_WORDS = ("great", "thanks", "yes", "got it", "understand", "makes sense", "i see", "ah")

FRUSTRATION_PHRASES = ("frustrated", "frustrating", "tell me now", "just tell")
SIMPLE_NEGATIONS = ("no", "nope", "not really")
KNOWLEDGE_CHECK_PHRASES = ("do you remember", "do you know", "are you familiar", "have you learned", "recall")
DONT_KNOW_PHRASES = ("don't know", "not aware", "dont know", "no idea", "not sure", "i don't remember")
STUCK_PHRASES = ("stuck", "can't proceed")
CONFUSED_PHRASES = ("don't understand", "confused")

# First match wins
PROBLEM_TYPE_KEYWORDS = (
    ("quadratic_equation", ("quadratic", "x²")),
    ("linear_equation", ("linear", "slope")),
    ("geometry", ("area", "perimeter")),
    ("fractions", ("fraction", "divide")),
)


def _normalize(text: str) -> str:
    return text.replace("’", "'").lower()


def detect_sentiment(message: str) -> str:
    """Classify a single student message as positive, neutral or negative."""
    lower = _normalize(message)

    dont_know_count = len(DONT_KNOW_PATTERN.findall(lower))
    tell_me_count = len(TELL_ME_PATTERN.findall(lower))
    if dont_know_count >= HELP_REQUEST_THRESHOLD or tell_me_count >= HELP_REQUEST_THRESHOLD:
        return "negative"

    if any(word in lower for word in NEGATIVE_WORDS):
        return "negative"

    if any(word in lower for word in POSITIVE_WORDS):
        return "positive"

    return "neutral"


def detect_problem_type(transcript: list[Message]) -> Optional[str]:
    """Infer the problem topic from keywords anywhere in the transcript."""
    all_text = " ".join(msg.content for msg in transcript).lower()
    for problem_type, keywords in PROBLEM_TYPE_KEYWORDS:
        if any(keyword in all_text for keyword in keywords):
            return problem_type
    return None


def extract_conversation_context(transcript: list[Message]) -> ConversationContext:
    """Derive the per-turn counters the classifier, selector and assembler read."""
    students = user_messages(transcript)

    recent_errors = tuple(
        msg.content
        for msg in transcript[-RECENT_ERROR_WINDOW:]
        if msg.role == "assistant" and "error" in msg.content.lower()
    )

    last_student = students[-1].content if students else ""

    return ConversationContext(
        turn_count=len(students),
        problem_type=detect_problem_type(transcript),
        recent_errors=recent_errors,
        student_sentiment=detect_sentiment(last_student),
        conversation_length=len(transcript),
    )


def count_help_requests(messages: list[str]) -> tuple[int, int]:
    """Number of messages with "don't know"-style and "tell me"-style language."""
    dont_know = sum(1 for msg in messages if DONT_KNOW_PATTERN.search(msg))
    tell_me = sum(1 for msg in messages if TELL_ME_PATTERN.search(msg))
    return dont_know, tell_me


def fallback_state_detection(
    transcript: list[Message],
    context: ConversationContext,
) -> DetectedState:
    """
    Pattern-based state detection.

    Rules are evaluated in priority order over the last student message and
    the last three student messages; the first rule that fires wins.
    """
    students = user_messages(transcript)
    last_student = _normalize(students[-1].content) if students else ""
    recent_students = [_normalize(msg.content) for msg in students[-RECENT_STUDENT_WINDOW:]]

    previous_tutor = last_message_by_role(transcript, "assistant")
    previous_tutor_text = _normalize(previous_tutor.content) if previous_tutor else ""

    dont_know_count, tell_me_count = count_help_requests(recent_students)
    turn_count = context.turn_count

    # 1. Frustration
    if (
        any(phrase in last_student for phrase in FRUSTRATION_PHRASES)
        or (
            turn_count >= FRUSTRATION_TURN_THRESHOLD
            and (dont_know_count >= HELP_REQUEST_THRESHOLD or tell_me_count >= HELP_REQUEST_THRESHOLD)
        )
        or (turn_count >= FRUSTRATION_NEGATIVE_TURN_THRESHOLD and context.student_sentiment == "negative")
    ):
        return DetectedState(
            state="frustrated",
            confidence=CONFIDENCE_FRUSTRATED,
            evidence=(
                f"Turn count: {turn_count}",
                f"Multiple \"I don't know\" or \"tell me\" requests: {dont_know_count + tell_me_count}",
                f"Sentiment: {context.student_sentiment}",
            ),
            context=context,
        )

    # 2. "no" in answer to a knowledge check
    if last_student.strip() in SIMPLE_NEGATIONS and any(
        phrase in previous_tutor_text for phrase in KNOWLEDGE_CHECK_PHRASES
    ):
        return DetectedState(
            state="knowledge_gap",
            confidence=CONFIDENCE_KNOWLEDGE_GAP_NEGATION,
            evidence=('Student responded "no" to knowledge question',),
            context=context,
        )

    # 3. "don't know" language
    if any(phrase in last_student for phrase in DONT_KNOW_PHRASES):
        if turn_count >= FRUSTRATION_TURN_THRESHOLD:
            return DetectedState(
                state="frustrated",
                confidence=CONFIDENCE_FRUSTRATED_DONT_KNOW,
                evidence=("Multiple turns with \"I don't know\" responses",),
                context=context,
            )
        return DetectedState(
            state="knowledge_gap",
            confidence=CONFIDENCE_KNOWLEDGE_GAP,
            evidence=("Student expressed lack of knowledge",),
            context=context,
        )

    # 4. Stuck
    if any(phrase in last_student for phrase in STUCK_PHRASES):
        return DetectedState(
            state="stuck",
            confidence=CONFIDENCE_STUCK,
            evidence=("Student expressed being stuck",),
            context=context,
        )

    # 5. Confused
    if any(phrase in last_student for phrase in CONFUSED_PHRASES):
        return DetectedState(
            state="confused",
            confidence=CONFIDENCE_CONFUSED,
            evidence=("Student expressed confusion",),
            context=context,
        )

    return DetectedState(
        state="ready_to_learn",
        confidence=CONFIDENCE_DEFAULT,
        evidence=("No specific indicators detected",),
        context=context,
    )
