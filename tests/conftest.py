"""Pytest configuration and shared fixtures."""
import pytest

from config import reset_settings
from tutor.models.messages import create_assistant_message, create_user_message


@pytest.fixture(autouse=True)
def _fresh_settings():
    """Each test sees settings built from its own environment."""
    reset_settings()
    yield
    reset_settings()


@pytest.fixture
def sample_transcript():
    """A short linear-equation conversation ending on a student turn."""
    return [
        create_user_message("Solve: 2x + 5 = 13"),
        create_assistant_message("What could we do to both sides to start isolating x?"),
        create_user_message("I don't know"),
    ]


@pytest.fixture
def mock_llm_service(mocker):
    """LLM service double returning a Socratic reply without API calls."""
    service = mocker.Mock()
    service.complete.return_value = "What do you notice about the 5 on the left side?"
    return service
