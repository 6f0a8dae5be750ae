"""
Prompt construction utilities.

Provides reusable functions for formatting conversation history for the
state analysis prompt and the tutor system prompt.
"""

import json
from typing import TYPE_CHECKING

from shared.utils.constants import (
    CLASSIFIER_TRUNCATE_CHARS,
    CLASSIFIER_WINDOW,
    PROMPT_TRUNCATE_CHARS,
    PROMPT_WINDOW,
)
from tutor.prompts.tutor_prompts import CONVERSATION_START, TUTOR_NAME

if TYPE_CHECKING:
    from tutor.models.messages import Message


ROLE_LABELS = {"user": "Student"}
DEFAULT_ROLE_LABEL = TUTOR_NAME


def truncate_text(text: str, max_length: int = 500, suffix: str = "...") -> str:
    """Keep the first max_length characters, marking the cut with suffix."""
    if len(text) <= max_length:
        return text
    return text[:max_length] + suffix


def summarize_recent_conversation(
    messages: list["Message"],
    max_messages: int = PROMPT_WINDOW,
    max_chars: int = PROMPT_TRUNCATE_CHARS,
) -> str:
    """Numbered, role-labelled rendering of the last few messages."""
    recent = messages[-max_messages:] if max_messages > 0 else []
    if not recent:
        return CONVERSATION_START

    lines = []
    for index, msg in enumerate(recent, start=1):
        role = ROLE_LABELS.get(msg.role, DEFAULT_ROLE_LABEL)
        lines.append(f"{index}. {role}: {truncate_text(msg.content, max_chars)}")

    return "Recent conversation:\n" + "\n".join(lines)


def format_messages_for_analysis(
    messages: list["Message"],
    max_messages: int = CLASSIFIER_WINDOW,
    max_chars: int = CLASSIFIER_TRUNCATE_CHARS,
) -> str:
    """JSON rendering of the last few messages, each cut to max_chars."""
    recent = messages[-max_messages:] if max_messages > 0 else []
    payload = [
        {"role": msg.role, "content": msg.content[:max_chars]}
        for msg in recent
    ]
    return json.dumps(payload, indent=2, ensure_ascii=False)
