"""Text generation with rate limiting, a hard timeout and one rate-limit retry."""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FuturesTimeoutError
from functools import lru_cache
from typing import Any, Optional, Protocol

import google.generativeai as genai
from openai import OpenAI

from pagecopy.config import Settings, TierConfig
from pagecopy.errors import (
    AuthenticationError,
    GenerationTimeoutError,
    ProviderError,
    RateLimitError,
    classify_error,
)
from pagecopy.generation.rate_limiter import RateLimiter

logger = logging.getLogger(__name__)


class TextBackend(Protocol):
    def complete(self, prompt: str, tier_config: TierConfig) -> str:
        ...


@lru_cache(maxsize=None)
def _configure_gemini(api_key: str) -> None:
    genai.configure(api_key=api_key)


class GeminiBackend:
    """Calls Gemini through ``google-generativeai``."""

    def __init__(self, api_key: Optional[str]) -> None:
        if not api_key:
            raise AuthenticationError("GOOGLE_API_KEY must be set to call Gemini.")
        self._api_key = api_key

    def complete(self, prompt: str, tier_config: TierConfig) -> str:
        _configure_gemini(self._api_key)
        model = genai.GenerativeModel(
            tier_config.model_name,
            generation_config={
                "temperature": tier_config.temperature,
                "max_output_tokens": tier_config.max_tokens,
            },
        )
        response = model.generate_content(prompt)
        try:
            text = response.text
        except ValueError:
            # .text raises when the candidate was blocked or carries no parts
            return ""
        return text or ""


class OpenAIBackend:
    """Calls the OpenAI chat completions API."""

    def __init__(self, api_key: Optional[str], client: Optional[Any] = None) -> None:
        if client is None:
            if not api_key:
                raise AuthenticationError("OPENAI_API_KEY must be set to call OpenAI models.")
            client = OpenAI(api_key=api_key)
        self._client = client

    def complete(self, prompt: str, tier_config: TierConfig) -> str:
        response = self._client.chat.completions.create(
            model=tier_config.model_name,
            messages=[{"role": "user", "content": prompt}],
            temperature=tier_config.temperature,
            max_tokens=tier_config.max_tokens,
        )
        content = response.choices[0].message.content
        if isinstance(content, list):
            return "".join(getattr(part, "text", "") for part in content)
        return content or ""


def build_backend(settings: Settings) -> TextBackend:
    if settings.provider == "openai":
        return OpenAIBackend(settings.openai_api_key)
    if settings.provider == "gemini":
        return GeminiBackend(settings.google_api_key)
    raise RuntimeError(f"Unknown PAGECOPY_PROVIDER {settings.provider!r}; expected 'gemini' or 'openai'")


class GenerationProvider:
    """Gates every call through a :class:`RateLimiter` and bounds it in time.

    Rate-limit failures are retried once after the limiter's backoff; every
    other failure is raised as a classified :class:`GenerationError`.
    """

    def __init__(
        self,
        backend: TextBackend,
        rate_limiter: Optional[RateLimiter] = None,
        timeout_seconds: float = 240.0,
    ) -> None:
        self.backend = backend
        self.rate_limiter = rate_limiter or RateLimiter()
        self.timeout_seconds = timeout_seconds

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "GenerationProvider":
        settings = settings or Settings.from_env()
        return cls(
            build_backend(settings),
            RateLimiter.from_settings(settings.rate_limit),
            settings.timeout_seconds,
        )

    def _call_with_timeout(self, prompt: str, tier_config: TierConfig) -> str:
        executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="pagecopy-generate")
        try:
            future = executor.submit(self.backend.complete, prompt, tier_config)
            try:
                return future.result(timeout=self.timeout_seconds)
            except FuturesTimeoutError as exc:
                raise GenerationTimeoutError(
                    f"{tier_config.model_name} did not answer within {self.timeout_seconds:.0f}s"
                ) from exc
        finally:
            # The abandoned call keeps its thread; nothing waits for it
            executor.shutdown(wait=False)

    def _attempt(self, prompt: str, tier_config: TierConfig) -> str:
        self.rate_limiter.wait_if_needed()
        try:
            return self._call_with_timeout(prompt, tier_config)
        except Exception as exc:
            classified = classify_error(exc)
            if classified is exc:
                raise
            raise classified from exc

    def generate_text(self, prompt: str, tier_config: TierConfig, operation_id: str = "default") -> str:
        logger.debug(
            "Generating with %s (%s) for %s: prompt %d chars",
            tier_config.model_name,
            tier_config.tier.value,
            operation_id,
            len(prompt),
        )
        try:
            text = self._attempt(prompt, tier_config)
        except RateLimitError as err:
            self.rate_limiter.handle_rate_limit_error(err, operation_id)
            text = self._attempt(prompt, tier_config)

        self.rate_limiter.reset_retry_attempts(operation_id)
        if not isinstance(text, str):
            raise ProviderError(f"{tier_config.model_name} returned a non-text payload")
        return text


__all__ = [
    "GeminiBackend",
    "GenerationProvider",
    "OpenAIBackend",
    "TextBackend",
    "build_backend",
]
