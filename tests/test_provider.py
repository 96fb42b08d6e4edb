import threading

import pytest

from pagecopy.config import Settings, Tier, TierConfig
from pagecopy.errors import (
    AuthenticationError,
    GenerationTimeoutError,
    ModelUnavailableError,
    ProviderError,
    RateLimitError,
)
from pagecopy.generation.provider import (
    GeminiBackend,
    OpenAIBackend,
    build_backend,
)

from conftest import FakeBackend, HTTPError

FAST = TierConfig(Tier.FAST, "gemini-2.5-flash")


def test_returns_backend_text_and_passes_tier_config(make_provider):
    backend = FakeBackend("hello")
    provider = make_provider(backend)

    assert provider.generate_text("prompt", FAST, "op") == "hello"
    assert backend.calls == [("prompt", FAST)]


def test_rate_limit_is_retried_once_after_backoff(clock, limiter, make_provider):
    backend = FakeBackend(HTTPError("Too Many Requests", status_code=429), "second time lucky")
    provider = make_provider(backend)

    assert provider.generate_text("prompt", FAST, "op") == "second time lucky"
    assert len(backend.calls) == 2
    assert 30.0 in clock.sleeps
    # success resets the operation's backoff
    assert limiter.retry_attempts("op") == 0


def test_second_rate_limit_propagates(make_provider):
    backend = FakeBackend(HTTPError("Too Many Requests", status_code=429))
    provider = make_provider(backend)

    with pytest.raises(RateLimitError):
        provider.generate_text("prompt", FAST, "op")
    assert len(backend.calls) == 2


def test_auth_failure_is_not_retried(make_provider):
    backend = FakeBackend(HTTPError("Unauthorized", status_code=401))
    provider = make_provider(backend)

    with pytest.raises(AuthenticationError) as excinfo:
        provider.generate_text("prompt", FAST, "op")
    assert len(backend.calls) == 1
    assert isinstance(excinfo.value.__cause__, HTTPError)


def test_gemini_invalid_key_message_is_an_auth_failure(make_provider):
    backend = FakeBackend(ValueError("400 API key not valid. Please pass a valid API key."))

    with pytest.raises(AuthenticationError):
        make_provider(backend).generate_text("prompt", FAST)


def test_unknown_model_is_model_unavailable(make_provider):
    backend = FakeBackend(HTTPError("models/gemini-9 is not found", status_code=404))

    with pytest.raises(ModelUnavailableError):
        make_provider(backend).generate_text("prompt", FAST)


def test_other_failures_become_provider_errors(make_provider):
    backend = FakeBackend(RuntimeError("boom"))

    with pytest.raises(ProviderError, match="boom"):
        make_provider(backend).generate_text("prompt", FAST)


def test_slow_call_is_abandoned_after_timeout(make_provider):
    release = threading.Event()

    def slow(prompt):
        release.wait(2.0)
        return "too late"

    provider = make_provider(FakeBackend(slow), timeout_seconds=0.05)
    try:
        with pytest.raises(GenerationTimeoutError):
            provider.generate_text("prompt", FAST, "op")
    finally:
        release.set()


def test_every_call_goes_through_the_rate_limiter(limiter, make_provider):
    provider = make_provider(FakeBackend("ok"))

    for _ in range(3):
        provider.generate_text("prompt", FAST)

    assert limiter.current_request_count() == 3


def test_missing_keys_fail_as_auth_errors():
    with pytest.raises(AuthenticationError):
        GeminiBackend(None)
    with pytest.raises(AuthenticationError):
        OpenAIBackend(None)


def test_build_backend_follows_provider_setting():
    assert isinstance(build_backend(Settings(provider="gemini", google_api_key="k")), GeminiBackend)
    assert isinstance(build_backend(Settings(provider="openai", openai_api_key="k")), OpenAIBackend)
    with pytest.raises(RuntimeError):
        build_backend(Settings(provider="other"))


def test_openai_backend_sends_tier_parameters():
    class Completions:
        def __init__(self):
            self.kwargs = None

        def create(self, **kwargs):
            self.kwargs = kwargs

            class Message:
                content = "hi there"

            class Choice:
                message = Message()

            class Response:
                choices = [Choice()]

            return Response()

    completions = Completions()

    class Client:
        class chat:
            pass

    Client.chat.completions = completions
    backend = OpenAIBackend(None, client=Client())

    assert backend.complete("prompt", TierConfig(Tier.QUALITY, "gpt-4.1", 0.3, 1000)) == "hi there"
    assert completions.kwargs["model"] == "gpt-4.1"
    assert completions.kwargs["temperature"] == 0.3
    assert completions.kwargs["max_tokens"] == 1000
