"""
Correction Prompt Templates

Follow-up user turns sent to the completion service when a draft reply
fails the accuracy or method-compliance gate.
"""

from tutor.prompts.templates import PromptTemplate


STUDENT_CORRECTION_PROMPT = PromptTemplate(
    """A student correctly pointed out that your previous response was inaccurate. They said: "{student_message}". Acknowledge their correction immediately and provide an accurate explanation. Be precise and mathematically correct.""",
    name="student_correction",
)


SELF_CORRECTION_PROMPT = PromptTemplate(
    """Your response contains a mathematically inaccurate analogy or definition. The issue: {issue}. Please correct this and provide an accurate explanation. Use precise mathematical definitions.""",
    name="self_correction",
)


SOCRATIC_REPHRASE_PROMPT = (
    "Please rephrase your response to ask guiding questions instead of providing direct answers. "
    "Focus on helping the student discover the solution themselves."
)
