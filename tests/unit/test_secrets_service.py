"""
Unit tests for shared/services/secrets_service.py

Covers secret value normalization, API key extraction from JSON secrets,
the TTL cache and the Secrets Manager lookup with its fallbacks. The boto3
client is always a Mock.
"""

import json
import threading
import pytest
from unittest.mock import Mock, patch

from botocore.exceptions import ClientError

from shared.services.secrets_service import (
    SecretCache,
    SecretsService,
    extract_api_key,
    normalize_secret_value,
)
from tutor.exceptions import SecretRetrievalError


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

class _FakeClock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now


def _make_client(secret_string=None, secret_binary=None, error=None):
    client = Mock()
    if error is not None:
        client.get_secret_value.side_effect = error
    else:
        response = {}
        if secret_string is not None:
            response["SecretString"] = secret_string
        if secret_binary is not None:
            response["SecretBinary"] = secret_binary
        client.get_secret_value.return_value = response
    return client


def _make_client_error(code="ResourceNotFoundException"):
    return ClientError({"Error": {"Code": code, "Message": "not found"}}, "GetSecretValue")


def _make_service(client, environment="production", ttl=300, clock=None):
    cache = SecretCache(ttl_seconds=ttl, clock=clock or _FakeClock())
    return SecretsService(cache, region="us-east-1", environment=environment, client=client)


# ---------------------------------------------------------------------------
# normalize_secret_value / extract_api_key
# ---------------------------------------------------------------------------

class TestNormalizeSecretValue:
    def test_strips_bom_and_whitespace(self):
        assert normalize_secret_value("\ufeff  sk-abc \n") == "sk-abc"

    def test_plain_value_unchanged(self):
        assert normalize_secret_value("sk-abc") == "sk-abc"

    def test_empty_passthrough(self):
        assert normalize_secret_value("") == ""


class TestExtractApiKey:
    def test_plaintext(self):
        assert extract_api_key("sk-plain") == "sk-plain"

    def test_json_string_literal(self):
        assert extract_api_key('"sk-quoted"') == "sk-quoted"

    @pytest.mark.parametrize("field", ["apiKey", "api_key", "OPENAI_API_KEY", "openai_api_key", "value", "key"])
    def test_json_object_known_fields(self, field):
        assert extract_api_key(json.dumps({field: "sk-field"})) == "sk-field"

    def test_json_object_prefers_earlier_field(self):
        secret = json.dumps({"key": "sk-later", "apiKey": "sk-first"})
        assert extract_api_key(secret) == "sk-first"

    def test_json_object_falls_back_to_first_value(self):
        assert extract_api_key(json.dumps({"something": "sk-first-value"})) == "sk-first-value"

    def test_json_object_without_string_value_raises(self):
        with pytest.raises(ValueError):
            extract_api_key(json.dumps({"something": 123}))

    def test_bom_prefixed_json(self):
        assert extract_api_key("\ufeff" + json.dumps({"apiKey": " sk-bom "})) == "sk-bom"


# ---------------------------------------------------------------------------
# SecretCache
# ---------------------------------------------------------------------------

class TestSecretCache:
    def test_get_missing_returns_none(self):
        assert SecretCache().get("missing") is None

    def test_set_then_get(self):
        cache = SecretCache(clock=_FakeClock())
        cache.set("k", "v")
        assert cache.get("k") == "v"

    def test_entry_expires_after_ttl(self):
        clock = _FakeClock()
        cache = SecretCache(ttl_seconds=300, clock=clock)
        cache.set("k", "v")

        clock.now += 299
        assert cache.get("k") == "v"

        clock.now += 2
        assert cache.get("k") is None

    def test_get_or_fetch_calls_fetch_once_while_fresh(self):
        cache = SecretCache(clock=_FakeClock())
        fetch = Mock(return_value="fetched")

        assert cache.get_or_fetch("k", fetch) == "fetched"
        assert cache.get_or_fetch("k", fetch) == "fetched"
        fetch.assert_called_once()

    def test_get_or_fetch_refetches_after_expiry(self):
        clock = _FakeClock()
        cache = SecretCache(ttl_seconds=10, clock=clock)
        fetch = Mock(side_effect=["first", "second"])

        assert cache.get_or_fetch("k", fetch) == "first"
        clock.now += 11
        assert cache.get_or_fetch("k", fetch) == "second"

    def test_fetch_error_is_not_cached(self):
        cache = SecretCache(clock=_FakeClock())
        fetch = Mock(side_effect=[ValueError("boom"), "ok"])

        with pytest.raises(ValueError):
            cache.get_or_fetch("k", fetch)
        assert cache.get_or_fetch("k", fetch) == "ok"

    def test_clear_single_and_all(self):
        cache = SecretCache(clock=_FakeClock())
        cache.set("a", "1")
        cache.set("b", "2")

        cache.clear("a")
        assert cache.get("a") is None
        assert cache.get("b") == "2"

        cache.clear()
        assert cache.get("b") is None

    def test_concurrent_writers(self):
        cache = SecretCache(clock=_FakeClock())

        def writer(n):
            for i in range(200):
                cache.set(f"key-{n}-{i % 5}", str(i))
                cache.get(f"key-{n}-{i % 5}")

        threads = [threading.Thread(target=writer, args=(n,)) for n in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        for n in range(8):
            assert cache.get(f"key-{n}-4") == "199"


# ---------------------------------------------------------------------------
# SecretsService
# ---------------------------------------------------------------------------

class TestSecretsService:
    def test_fetches_and_caches(self):
        client = _make_client(secret_string=json.dumps({"apiKey": "sk-remote"}))
        service = _make_service(client)

        assert service.get_secret("openai/mathsage") == "sk-remote"
        assert service.get_secret("openai/mathsage") == "sk-remote"
        client.get_secret_value.assert_called_once_with(SecretId="openai/mathsage")

    def test_binary_secret(self):
        client = _make_client(secret_binary=b"\xef\xbb\xbfsk-binary\n")
        service = _make_service(client)
        assert service.get_secret("bin") == "sk-binary"

    def test_development_env_shortcut(self, monkeypatch):
        monkeypatch.setenv("OPENAI_API_KEY", " sk-env ")
        client = _make_client(secret_string="sk-remote")
        service = _make_service(client, environment="development")

        assert service.get_openai_api_key("openai/mathsage") == "sk-env"
        client.get_secret_value.assert_not_called()

    def test_production_ignores_env_when_fetch_succeeds(self, monkeypatch):
        monkeypatch.setenv("OPENAI_API_KEY", "sk-env")
        client = _make_client(secret_string="sk-remote")
        service = _make_service(client, environment="production")

        assert service.get_openai_api_key("openai/mathsage") == "sk-remote"

    def test_env_fallback_on_client_error(self, monkeypatch):
        monkeypatch.setenv("OPENAI_API_KEY", "sk-env")
        client = _make_client(error=_make_client_error())
        service = _make_service(client, environment="production")

        assert service.get_openai_api_key("openai/mathsage") == "sk-env"

    def test_raises_when_nothing_usable(self, monkeypatch):
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)
        client = _make_client(error=_make_client_error())
        service = _make_service(client, environment="production")

        with pytest.raises(SecretRetrievalError) as exc_info:
            service.get_openai_api_key("openai/mathsage")
        assert exc_info.value.secret_name == "openai/mathsage"

    def test_empty_secret_raises(self, monkeypatch):
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)
        client = _make_client()
        service = _make_service(client, environment="production")

        with pytest.raises(SecretRetrievalError):
            service.get_secret("empty", "OPENAI_API_KEY")

    @patch("shared.services.secrets_service.boto3")
    def test_client_created_lazily_with_region(self, mock_boto3):
        cache = SecretCache(clock=_FakeClock())
        service = SecretsService(cache, region="eu-west-1", environment="production")
        mock_boto3.client.assert_not_called()

        mock_boto3.client.return_value = _make_client(secret_string="sk-lazy")
        assert service.get_secret("name") == "sk-lazy"
        mock_boto3.client.assert_called_once_with("secretsmanager", region_name="eu-west-1")
