"""
Tests for shared/api/health.py
"""

import pytest
from unittest.mock import patch
from fastapi import FastAPI
from fastapi.testclient import TestClient

from config import Settings
from shared.api.health import router


@pytest.fixture
def client():
    app = FastAPI()
    app.include_router(router)
    return TestClient(app)


class TestReadRoot:

    def test_health_check(self, client):
        settings = Settings(openai_api_key="sk-test", environment="staging", llm_model="gpt-4o")
        with patch("shared.api.health.get_settings", return_value=settings):
            resp = client.get("/")

        assert resp.status_code == 200
        assert resp.json() == {
            "status": "ok",
            "service": "MathSage Tutor Backend",
            "version": "1.0.0",
            "environment": "staging",
            "model": "gpt-4o",
        }
