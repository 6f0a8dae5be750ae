"""
AWS Secrets Manager client for the completion-service credential.

Secrets are cached in an injected `SecretCache` so concurrent requests do not
refetch the credential on every turn. Falls back to environment variables for
local development.
"""
import json
import os
import threading
import time
import logging
from typing import Callable, Dict, Optional, Tuple

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from tutor.exceptions import SecretRetrievalError

logger = logging.getLogger(__name__)

# Field names tried, in order, when a secret is stored as a JSON object
API_KEY_FIELDS = ("apiKey", "api_key", "OPENAI_API_KEY", "openai_api_key", "value", "key")

BOM = "\ufeff"


def normalize_secret_value(raw_value: str) -> str:
    """Remove a leading UTF-8 BOM and surrounding whitespace."""
    if not raw_value or not isinstance(raw_value, str):
        return raw_value
    if raw_value.startswith(BOM):
        raw_value = raw_value[len(BOM):]
    return raw_value.strip()


def extract_api_key(secret_string: str) -> str:
    """
    Turn a raw SecretString into a usable credential.

    Accepts plaintext, a JSON string literal, or a JSON object holding the key
    under one of API_KEY_FIELDS (first value as a last resort).
    """
    cleaned = normalize_secret_value(secret_string)
    try:
        parsed = json.loads(cleaned)
    except (json.JSONDecodeError, TypeError):
        return cleaned

    if isinstance(parsed, str):
        return normalize_secret_value(parsed)

    if isinstance(parsed, dict):
        raw_key = next((parsed[name] for name in API_KEY_FIELDS if parsed.get(name)), None)
        if raw_key is None and parsed:
            raw_key = next(iter(parsed.values()))
        if not raw_key or not isinstance(raw_key, str):
            raise ValueError(
                f"No valid API key found in secret JSON object. "
                f"Available keys: {', '.join(parsed.keys())}"
            )
        return normalize_secret_value(raw_key)

    return normalize_secret_value(str(parsed))


class SecretCache:
    """Thread-safe key -> value cache with a fixed time-to-live."""

    def __init__(self, ttl_seconds: float = 300, clock: Callable[[], float] = time.monotonic):
        self._ttl = ttl_seconds
        self._clock = clock
        self._entries: Dict[str, Tuple[str, float]] = {}
        self._lock = threading.Lock()

    @property
    def ttl_seconds(self) -> float:
        return self._ttl

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            value, expires_at = entry
            if expires_at <= self._clock():
                del self._entries[key]
                return None
            return value

    def set(self, key: str, value: str) -> None:
        with self._lock:
            self._entries[key] = (value, self._clock() + self._ttl)

    def get_or_fetch(self, key: str, fetch_fn: Callable[[], str]) -> str:
        """Return the cached value, or call fetch_fn and cache its result."""
        cached = self.get(key)
        if cached is not None:
            return cached
        # Fetch outside the lock; two racing fetches both write the same secret.
        value = fetch_fn()
        self.set(key, value)
        return value

    def clear(self, key: Optional[str] = None) -> None:
        with self._lock:
            if key is None:
                self._entries.clear()
            else:
                self._entries.pop(key, None)


class SecretsService:
    """
    Resolves secrets from AWS Secrets Manager.

    AWS credentials are auto-detected from:
    1. Environment variables (AWS_ACCESS_KEY_ID, AWS_SECRET_ACCESS_KEY)
    2. ~/.aws/credentials file
    3. IAM role (when running on AWS)
    """

    def __init__(
        self,
        cache: SecretCache,
        region: str = "us-east-1",
        environment: str = "development",
        client=None,
    ):
        self.cache = cache
        self.region = region
        self.environment = environment
        self._client = client

    @property
    def client(self):
        if self._client is None:
            self._client = boto3.client("secretsmanager", region_name=self.region)
            logger.info(f"Secrets Manager client initialized for region: {self.region}")
        return self._client

    def get_secret(self, secret_name: str, env_var_fallback: Optional[str] = None) -> str:
        """
        Get a secret value, preferring the cache.

        In development an environment variable short-circuits the lookup. If
        Secrets Manager fails, the environment variable is used as a fallback.

        Raises:
            SecretRetrievalError: If no usable value can be found
        """
        cached = self.cache.get(secret_name)
        if cached is not None:
            return cached

        if self.environment == "development" and env_var_fallback:
            env_value = os.environ.get(env_var_fallback)
            if env_value:
                logger.info(f"Using environment variable {env_var_fallback} for local development")
                return normalize_secret_value(env_value)

        try:
            return self.cache.get_or_fetch(secret_name, lambda: self._fetch(secret_name))
        except (ClientError, BotoCoreError, ValueError) as e:
            logger.error(f"Error fetching secret {secret_name}: {e}")
            if env_var_fallback:
                env_value = os.environ.get(env_var_fallback)
                if env_value:
                    logger.warning(f"Using environment variable fallback: {env_var_fallback}")
                    return normalize_secret_value(env_value)
            raise SecretRetrievalError(secret_name, str(e)) from e

    def get_openai_api_key(self, secret_name: str) -> str:
        """Get the OpenAI API key, falling back to OPENAI_API_KEY."""
        return self.get_secret(secret_name, "OPENAI_API_KEY")

    def _fetch(self, secret_name: str) -> str:
        response = self.client.get_secret_value(SecretId=secret_name)

        if response.get("SecretString"):
            secret_value = extract_api_key(response["SecretString"])
        elif response.get("SecretBinary"):
            binary = response["SecretBinary"]
            if isinstance(binary, (bytes, bytearray)):
                binary = binary.decode("utf-8")
            secret_value = normalize_secret_value(binary)
        else:
            raise ValueError("Secret value is empty")

        if not secret_value:
            raise ValueError(f"Secret value is empty or invalid for {secret_name}")

        logger.info(f"Successfully retrieved secret: {secret_name}")
        return secret_value
