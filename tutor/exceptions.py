"""
Custom Exception Hierarchy for Tutor Module

Exception Hierarchy:
    TutorAgentError (base)
    ├── LLMError
    │   └── GenerationError
    ├── ClassificationError
    ├── PipelineError
    │   └── InvalidTranscriptError
    ├── PromptError
    │   └── PromptTemplateError
    └── SecretRetrievalError
"""

from typing import Literal, Optional


ErrorCategory = Literal["auth", "rate_limit", "network", "unknown"]


class TutorAgentError(Exception):
    """Base exception for all tutor agent errors."""

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


# LLM Errors

class LLMError(TutorAgentError):
    """Base exception for LLM-related errors."""
    pass


class GenerationError(LLMError):
    """
    Raised when the completion service fails while producing a tutor reply.

    Not recoverable inside the pipeline; the category tells the caller which
    user-facing message to show.
    """

    def __init__(
        self,
        message: str,
        category: ErrorCategory = "unknown",
        stage: Optional[str] = None,
    ):
        super().__init__(message, details={"category": category, "stage": stage})
        self.category = category
        self.stage = stage


class ClassificationError(TutorAgentError):
    """Raised when the LLM-assisted state detection path fails."""
    pass


# Pipeline Errors

class PipelineError(TutorAgentError):
    """Base exception for pipeline input errors."""
    pass


class InvalidTranscriptError(PipelineError):
    """Raised when the transcript cannot be processed."""

    def __init__(self, reason: str):
        message = f"Invalid transcript: {reason}"
        super().__init__(message)
        self.reason = reason


# Prompt Errors

class PromptError(TutorAgentError):
    """Base exception for prompt-related errors."""
    pass


class PromptTemplateError(PromptError):
    """Raised when prompt template rendering fails."""

    def __init__(self, template_name: str, missing_vars: list[str]):
        message = f"Prompt template '{template_name}' missing variables: {', '.join(missing_vars)}"
        super().__init__(message)
        self.template_name = template_name
        self.missing_vars = missing_vars


# Credential Errors

class SecretRetrievalError(TutorAgentError):
    """Raised when no usable credential can be resolved for a secret."""

    def __init__(self, secret_name: str, reason: str):
        message = f"Failed to retrieve secret {secret_name}: {reason}"
        super().__init__(message)
        self.secret_name = secret_name
        self.reason = reason
