"""
Message Models

Models for transcript messages and the completion-service message format.
"""

from typing import Literal, Optional
from pydantic import BaseModel, Field


Role = Literal["user", "assistant", "system"]


class Message(BaseModel):
    """Individual message in a conversation transcript."""

    role: Role = Field(description="Role of the message sender")
    content: str = Field(description="Message content text")


# Factory Functions

def create_user_message(content: str) -> Message:
    return Message(role="user", content=content)


def create_assistant_message(content: str) -> Message:
    return Message(role="assistant", content=content)


def create_system_message(content: str) -> Message:
    return Message(role="system", content=content)


def user_messages(transcript: list[Message]) -> list[Message]:
    """Student turns only, in order."""
    return [msg for msg in transcript if msg.role == "user"]


def last_message_by_role(transcript: list[Message], role: Role) -> Optional[Message]:
    for msg in reversed(transcript):
        if msg.role == role:
            return msg
    return None


def to_completion_messages(
    transcript: list[Message],
    system_prompt: Optional[str] = None,
) -> list[dict[str, str]]:
    """
    Build the completion-service message list.

    The system prompt, if given, is the only system message; transcript
    entries that are not from the student are sent as assistant turns.
    """
    messages = []
    if system_prompt is not None:
        messages.append({"role": "system", "content": system_prompt})
    for msg in transcript:
        role = "user" if msg.role == "user" else "assistant"
        messages.append({"role": role, "content": msg.content})
    return messages
