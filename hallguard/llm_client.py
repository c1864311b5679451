"""Chat-completion client for the optional draft rewriter."""

from __future__ import annotations

import logging
import os
import random
import time
from dataclasses import dataclass

from hallguard.config import env_flag

log = logging.getLogger(__name__)

RETRYABLE_STATUS = frozenset({408, 409, 429, 500, 502, 503, 504})
RETRYABLE_NAMES = ("RateLimitError", "APITimeoutError", "APIConnectionError", "InternalServerError")


class LLMServiceError(RuntimeError):
    """Raised when a draft request fails after retries."""


@dataclass(frozen=True)
class LLMResponse:
    text: str
    input_tokens: int
    output_tokens: int


def is_transient(exc: Exception) -> bool:
    if getattr(exc, "status_code", None) in RETRYABLE_STATUS:
        return True
    if any(marker in type(exc).__name__ for marker in RETRYABLE_NAMES):
        return True
    body = str(exc).lower()
    return "rate limit" in body or "too many requests" in body or "timeout" in body


def backoff_delay(attempt: int, base: float, ceiling: float) -> float:
    base = max(0.1, base)
    return min(max(base, ceiling), base * (2**attempt)) + random.uniform(0.0, base)  # nosec B311


class LLMClient:
    """One OpenAI-style chat endpoint plus a model name.

    Subclasses build ``self._client`` and set ``self.model``; ``generate``
    retries transient failures with exponential backoff.
    """

    provider: str = "base"
    model: str = ""
    _client = None

    def _request(self, prompt: str, system: str, max_tokens: int | None) -> dict:
        from hallguard.config import GENERATION_TEMPERATURE

        kwargs: dict = {
            "model": self.model,
            "messages": self._messages(prompt, system),
            "temperature": GENERATION_TEMPERATURE,
        }
        if max_tokens is not None:
            kwargs["max_tokens"] = max_tokens
        return kwargs

    def _messages(self, prompt: str, system: str) -> list[dict[str, str]]:
        messages = [{"role": "system", "content": system}] if system else []
        messages.append({"role": "user", "content": prompt})
        return messages

    def _complete(self, kwargs: dict):
        from hallguard.config import LLM_BACKOFF_BASE_S, LLM_BACKOFF_MAX_S, LLM_MAX_RETRIES

        attempts = max(1, LLM_MAX_RETRIES + 1)
        for attempt in range(1, attempts + 1):
            try:
                return self._client.chat.completions.create(**kwargs)
            except Exception as exc:
                if attempt == attempts or not is_transient(exc):
                    raise LLMServiceError(
                        f"{self.provider} draft request failed ({attempt}/{attempts}): {exc}"
                    ) from exc
                log.warning("%s transient error on attempt %d/%d: %s", self.provider, attempt, attempts, exc)
                time.sleep(backoff_delay(attempt - 1, LLM_BACKOFF_BASE_S, LLM_BACKOFF_MAX_S))
        raise LLMServiceError(f"{self.provider} draft request made no attempt.")

    def generate(self, prompt: str, *, system: str = "", max_tokens: int | None = None) -> LLMResponse:
        resp = self._complete(self._request(prompt, system, max_tokens))
        usage = resp.usage
        return LLMResponse(
            text=resp.choices[0].message.content or "",
            input_tokens=getattr(usage, "prompt_tokens", 0) if usage else 0,
            output_tokens=getattr(usage, "completion_tokens", 0) if usage else 0,
        )


class OpenAIClient(LLMClient):
    """OpenAI API or any OpenAI-compatible server via ``OPENAI_BASE_URL``."""

    provider = "openai"

    def __init__(self) -> None:
        from openai import OpenAI

        from hallguard.config import OPENAI_API_KEY, OPENAI_BASE_URL, OPENAI_MODEL

        if not OPENAI_API_KEY:
            raise ValueError("OPENAI_API_KEY is required when LLM_PROVIDER=openai.")
        self._client = OpenAI(base_url=OPENAI_BASE_URL or None, api_key=OPENAI_API_KEY)
        self.model = OPENAI_MODEL


class AzureOpenAIClient(LLMClient):
    provider = "azure_openai"

    def __init__(self) -> None:
        from openai import AzureOpenAI

        from hallguard.config import AZURE_API_KEY, AZURE_API_VERSION, AZURE_ENDPOINT, AZURE_MODEL

        if not AZURE_API_KEY or not AZURE_ENDPOINT:
            raise ValueError("AZURE_API_KEY and AZURE_ENDPOINT are required when LLM_PROVIDER=azure_openai.")
        self._client = AzureOpenAI(
            api_version=AZURE_API_VERSION,
            azure_endpoint=AZURE_ENDPOINT,
            api_key=AZURE_API_KEY,
        )
        self.model = AZURE_MODEL

    def _request(self, prompt: str, system: str, max_tokens: int | None) -> dict:
        if not self.model.startswith("o"):
            return super()._request(prompt, system, max_tokens)
        # Reasoning deployments reject temperature and take max_completion_tokens.
        kwargs: dict = {"model": self.model, "messages": self._messages(prompt, system)}
        if max_tokens is not None:
            kwargs["max_completion_tokens"] = max_tokens
        return kwargs


def get_llm_client() -> LLMClient | None:
    """Return the configured client, or None when drafts must use the template."""
    from hallguard.config import LLM_PROVIDER

    if env_flag("OFFLINE_MODE"):
        return None

    provider = os.getenv("LLM_PROVIDER", LLM_PROVIDER).strip().lower()
    if provider in {"", "none", "template"}:
        return None
    if provider == "openai":
        return OpenAIClient()
    if provider == "azure_openai":
        return AzureOpenAIClient()
    raise ValueError(f"Unknown LLM_PROVIDER={provider!r}")
