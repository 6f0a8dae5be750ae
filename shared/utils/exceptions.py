"""Custom exception hierarchy for better error handling."""
from fastapi import HTTPException, status


class MathSageException(Exception):
    """Base exception for all application errors."""
    pass


class CompletionUnavailableException(MathSageException):
    """Raised when the completion service cannot produce a tutor reply."""

    _RESPONSES = {
        "auth": (
            status.HTTP_401_UNAUTHORIZED,
            "Authentication failed",
            "The tutor service credentials are invalid. Please ask the operator to check the configuration.",
        ),
        "rate_limit": (
            status.HTTP_429_TOO_MANY_REQUESTS,
            "Rate limit exceeded",
            "Too many requests. Please try again in a moment.",
        ),
        "network": (
            status.HTTP_503_SERVICE_UNAVAILABLE,
            "Network error",
            "Failed to reach the tutor service. Please try again.",
        ),
    }

    def __init__(self, category: str, original_error: Exception, failure: str = "Failed to process chat request"):
        self.category = category
        self.original_error = original_error
        self.failure = failure
        super().__init__(f"Completion service error ({category}): {str(original_error)}")

    def to_http_exception(self) -> HTTPException:
        if self.category in self._RESPONSES:
            status_code, error, message = self._RESPONSES[self.category]
        else:
            status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
            error = self.failure
            message = str(self.original_error) or "An unexpected error occurred"
        return HTTPException(
            status_code=status_code,
            detail={"error": error, "message": message, "category": self.category},
        )


class InvalidRequestException(MathSageException):
    """Raised when a chat request body cannot be processed."""

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(reason)

    def to_http_exception(self) -> HTTPException:
        return HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"error": self.reason},
        )


class ServerConfigurationException(MathSageException):
    """Raised when the service is missing required configuration."""

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(reason)

    def to_http_exception(self) -> HTTPException:
        return HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error": "Server configuration error", "message": self.reason},
        )
