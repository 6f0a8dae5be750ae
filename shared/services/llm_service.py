"""
LLM Service: centralized interface for all completion-service calls.

The primary entry point is `complete()`, which takes an ordered list of
role-tagged messages and returns the generated text. Failures are raised as
`LLMServiceError` tagged with a category (auth, rate_limit, network, unknown)
so callers can decide what to tell the student.
"""

import json
import time
from typing import Any, Dict, List, Optional
from openai import (
    OpenAI,
    OpenAIError,
    RateLimitError,
    APITimeoutError,
    APIConnectionError,
    AuthenticationError,
    PermissionDeniedError,
)
import logging

logger = logging.getLogger(__name__)


_AUTH_MARKERS = ("api key", "authentication", "unauthorized", "401")
_RATE_LIMIT_MARKERS = ("rate limit", "429", "quota")
_NETWORK_MARKERS = ("network", "fetch", "connection", "timed out", "timeout")

MIN_ATTEMPT_TIMEOUT = 0.1  # seconds; floor for the per-attempt HTTP timeout


def categorize_llm_error(error: BaseException) -> str:
    """
    Map a completion-service failure to auth, rate_limit, network or unknown.

    Known OpenAI exception types are checked first; anything else is matched
    on its message text.
    """
    if isinstance(error, LLMServiceError):
        return error.category
    if isinstance(error, (AuthenticationError, PermissionDeniedError)):
        return "auth"
    if isinstance(error, RateLimitError):
        return "rate_limit"
    if isinstance(error, (APITimeoutError, APIConnectionError, TimeoutError)):
        return "network"

    message = str(error).lower()
    if any(marker in message for marker in _AUTH_MARKERS):
        return "auth"
    if any(marker in message for marker in _RATE_LIMIT_MARKERS):
        return "rate_limit"
    if any(marker in message for marker in _NETWORK_MARKERS):
        return "network"
    return "unknown"


class LLMService:
    """
    Service for making completion calls with retry logic and error handling.

    Rate-limit and timeout failures are retried with exponential backoff up to
    `max_retries` attempts, all within one `timeout` budget per `complete()`
    call; every other failure is raised immediately. The SDK client does not
    retry on its own.
    """

    def __init__(
        self,
        api_key: str,
        *,
        model_id: str = "gpt-4",
        max_retries: int = 3,
        initial_retry_delay: float = 1.0,
        timeout: float = 60,
    ):
        self.client = OpenAI(api_key=api_key, timeout=timeout, max_retries=0)
        self.max_retries = max_retries
        self.initial_retry_delay = initial_retry_delay
        self.timeout = timeout
        self.model_id = model_id

    # ─── Primary entry point ───────────────────────────────────────────

    def complete(
        self,
        messages: List[Dict[str, str]],
        temperature: float = 0.7,
        max_tokens: int = 1000,
    ) -> str:
        """Call OpenAI Chat Completions with role-tagged messages. Returns raw text."""
        logger.info(json.dumps({
            "step": "LLM_CALL",
            "status": "starting",
            "model": self.model_id,
            "params": {
                "temperature": temperature,
                "max_tokens": max_tokens,
                "message_count": len(messages),
            }
        }))

        deadline = time.time() + self.timeout

        def _api_call():
            response = self.client.chat.completions.create(
                model=self.model_id,
                messages=messages,
                temperature=temperature,
                max_tokens=max_tokens,
                timeout=max(deadline - time.time(), MIN_ATTEMPT_TIMEOUT),
            )
            if not response.choices:
                return ""
            return response.choices[0].message.content or ""

        return self._execute_with_retry(_api_call, self.model_id, deadline=deadline)

    # ─── Helpers ──────────────────────────────────────────────────────

    def _execute_with_retry(self, api_call_fn, model_name: str, deadline: Optional[float] = None) -> Any:
        """
        Execute API call with exponential backoff retry logic.

        No new attempt starts once the backoff would run past `deadline`
        (a `time.time()` value); the last error is raised instead.
        """
        last_error = None
        delay = self.initial_retry_delay
        start_time = time.time()
        attempts = 0

        for attempt in range(self.max_retries):
            if attempt > 0:
                if deadline is not None and time.time() + delay >= deadline:
                    logger.warning(f"{model_name} request budget exhausted after {attempt} attempts, not retrying")
                    break
                time.sleep(delay)
                delay *= 2
            attempts = attempt + 1
            try:
                result = api_call_fn()
                duration_ms = int((time.time() - start_time) * 1000)

                logger.info(json.dumps({
                    "step": "LLM_CALL",
                    "status": "complete",
                    "model": model_name,
                    "output": {"response_length": len(str(result)) if result else 0},
                    "duration_ms": duration_ms,
                    "attempts": attempt + 1
                }))

                if attempt > 0:
                    logger.info(f"{model_name} call succeeded on attempt {attempt + 1}")
                return result

            except RateLimitError as e:
                last_error = e
                logger.warning(f"{model_name} rate limit hit (attempt {attempt + 1}/{self.max_retries})")

            except APITimeoutError as e:
                last_error = e
                logger.warning(f"{model_name} timeout (attempt {attempt + 1}/{self.max_retries})")

            except OpenAIError as e:
                category = categorize_llm_error(e)
                logger.error(f"{model_name} API error ({category}): {str(e)}")
                raise LLMServiceError(
                    f"{model_name} API error: {str(e)}",
                    category=category,
                    model_name=model_name,
                    attempts=attempt + 1,
                ) from e

            except Exception as e:
                category = categorize_llm_error(e)
                logger.error(f"{model_name} unexpected error ({category}): {str(e)}")
                raise LLMServiceError(
                    f"{model_name} unexpected error: {str(e)}",
                    category=category,
                    model_name=model_name,
                    attempts=attempt + 1,
                ) from e

        duration_ms = int((time.time() - start_time) * 1000)
        category = categorize_llm_error(last_error)
        logger.info(json.dumps({
            "step": "LLM_CALL",
            "status": "failed",
            "model": model_name,
            "category": category,
            "error": str(last_error),
            "duration_ms": duration_ms,
            "attempts": attempts
        }))
        raise LLMServiceError(
            f"{model_name} failed after {attempts} attempts. Last error: {str(last_error)}",
            category=category,
            model_name=model_name,
            attempts=attempts,
        ) from last_error


class LLMServiceError(Exception):
    """Custom exception for LLM service errors, tagged with a failure category."""

    def __init__(
        self,
        message: str,
        category: str = "unknown",
        model_name: Optional[str] = None,
        attempts: Optional[int] = None,
    ):
        super().__init__(message)
        self.category = category
        self.model_name = model_name
        self.attempts = attempts
