import json
import random
import re
from typing import Any, Callable, List, Optional, Tuple, Union

import pytest

from pagecopy.config import BatchSettings, RateLimitSettings, Settings, Tier, TierConfig
from pagecopy.generation.models import AudienceConfig, SemanticType, SlotFieldDefinition
from pagecopy.generation.provider import GenerationProvider
from pagecopy.generation.rate_limiter import RateLimiter


class FakeClock:
    """Simulated monotonic clock; ``sleep`` advances it and records the delay."""

    def __init__(self, start: float = 0.0) -> None:
        self.now = start
        self.sleeps: List[float] = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


Step = Union[str, BaseException, Callable[[str], str]]


class FakeBackend:
    """TextBackend replaying scripted steps: text, an exception to raise, or a callable of the prompt."""

    def __init__(self, *steps: Step) -> None:
        self.steps = list(steps)
        self.calls: List[Tuple[str, TierConfig]] = []

    def complete(self, prompt: str, tier_config: TierConfig) -> str:
        self.calls.append((prompt, tier_config))
        step = self.steps.pop(0) if len(self.steps) > 1 else self.steps[0]
        if isinstance(step, BaseException):
            raise step
        if callable(step):
            return step(prompt)
        return step


class ScriptedProvider:
    """Stands in for GenerationProvider; records (tier, operation_id) per call."""

    def __init__(self, *steps: Step) -> None:
        self.steps = list(steps)
        self.calls: List[Tuple[Tier, str]] = []
        self.prompts: List[str] = []

    def generate_text(self, prompt: str, tier_config: TierConfig, operation_id: str = "default") -> str:
        self.calls.append((tier_config.tier, operation_id))
        self.prompts.append(prompt)
        step = self.steps.pop(0) if len(self.steps) > 1 else self.steps[0]
        if isinstance(step, BaseException):
            raise step
        if callable(step):
            return step(prompt)
        return step


class HTTPError(Exception):
    """Mimics SDK exceptions that carry an HTTP status."""

    def __init__(self, message: str, status_code: Optional[int] = None, response: Any = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.response = response


_FIELD_LINE = re.compile(r'^\d+\. "([^"]+)"', re.MULTILINE)


def echo_slots(skip: Tuple[str, ...] = ()) -> Callable[[str], str]:
    """Responder answering a bulk-map prompt with one value per required id."""

    def respond(prompt: str) -> str:
        ids = _FIELD_LINE.findall(prompt.split("**REQUIRED SLOT IDs:**", 1)[1])
        return json.dumps({slot_id: f"copy for {slot_id}" for slot_id in ids if slot_id not in skip})

    return respond


def make_fields(count: int, prefix: str = "slot") -> List[SlotFieldDefinition]:
    return [
        SlotFieldDefinition(id=f"{prefix}_{i}", label=f"Paragraph {i}: Slot {i}", semantic_type=SemanticType.PARAGRAPH)
        for i in range(1, count + 1)
    ]


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def limiter(clock: FakeClock) -> RateLimiter:
    return RateLimiter(clock=clock, sleep=clock.sleep, rng=random.Random(0), max_jitter=0.0)


@pytest.fixture
def settings() -> Settings:
    return Settings(
        rate_limit=RateLimitSettings(max_jitter=0.0),
        batching=BatchSettings(batch_size=25, inter_batch_delay=0.0),
    )


@pytest.fixture
def audience() -> AudienceConfig:
    return AudienceConfig(
        product_name="Creatine Gummies",
        main_keyword="creatine for women",
        age_range="25-44",
        gender="women",
        country="United States",
        tone="educational",
        pain_points=["low energy", "slow recovery"],
    )


@pytest.fixture
def make_provider(limiter: RateLimiter):
    def build(backend: FakeBackend, timeout_seconds: float = 5.0) -> GenerationProvider:
        return GenerationProvider(backend, limiter, timeout_seconds=timeout_seconds)

    return build
