"""Environment-driven configuration for the copy generation pipeline."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from dotenv import load_dotenv


class Tier(str, Enum):
    QUALITY = "quality"
    FAST = "fast"


@dataclass(frozen=True)
class TierConfig:
    tier: Tier
    model_name: str
    temperature: float = 0.7
    max_tokens: int = 8192


@dataclass(frozen=True)
class RateLimitSettings:
    max_requests_per_minute: int = 50
    max_requests_per_second: float = 2.0
    noise_threshold: float = 0.2
    base_delay: float = 30.0
    max_delay: float = 300.0
    backoff_cap: int = 5
    max_jitter: float = 1.0
    default_retry_after: float = 0.0


@dataclass(frozen=True)
class BatchSettings:
    batch_size: int = 25
    inter_batch_delay: float = 0.5


@dataclass(frozen=True)
class DetectorSettings:
    marker_attribute: str = "data-slot"
    min_paragraph_length: int = 10
    max_container_children: int = 10
    max_block_paragraphs: int = 3
    min_block_text_length: int = 40
    max_heading_like_length: int = 80
    id_text_length: int = 50
    max_id_length: int = 40


@dataclass(frozen=True)
class Settings:
    provider: str = "gemini"
    google_api_key: Optional[str] = None
    openai_api_key: Optional[str] = None
    quality_tier: TierConfig = field(
        default_factory=lambda: TierConfig(Tier.QUALITY, "gemini-2.5-pro", 0.7, 8192)
    )
    fast_tier: TierConfig = field(
        default_factory=lambda: TierConfig(Tier.FAST, "gemini-2.5-flash", 0.7, 8192)
    )
    timeout_seconds: float = 240.0
    rate_limit: RateLimitSettings = field(default_factory=RateLimitSettings)
    batching: BatchSettings = field(default_factory=BatchSettings)
    detector: DetectorSettings = field(default_factory=DetectorSettings)

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from the process environment (and a local .env file).

        Env:
          - PAGECOPY_PROVIDER: "gemini" (default) or "openai"
          - GOOGLE_API_KEY (or legacy GOOGLE_AI_API_KEY), OPENAI_API_KEY
          - PAGECOPY_QUALITY_MODEL / PAGECOPY_FAST_MODEL: model names per tier
          - PAGECOPY_QUALITY_TEMPERATURE / PAGECOPY_FAST_TEMPERATURE
          - PAGECOPY_QUALITY_MAX_TOKENS / PAGECOPY_FAST_MAX_TOKENS
          - PAGECOPY_TIMEOUT_SECONDS: hard wall-clock limit per call (default 240)
          - PAGECOPY_BATCH_SIZE / PAGECOPY_BATCH_DELAY_SECONDS
          - PAGECOPY_MAX_REQUESTS_PER_MINUTE / PAGECOPY_MAX_REQUESTS_PER_SECOND
        """
        load_dotenv()
        provider = (_get_env("PAGECOPY_PROVIDER", "gemini") or "gemini").lower()
        default_quality = "gpt-4.1" if provider == "openai" else "gemini-2.5-pro"
        default_fast = "gpt-4.1-mini" if provider == "openai" else "gemini-2.5-flash"

        quality = TierConfig(
            tier=Tier.QUALITY,
            model_name=_get_env("PAGECOPY_QUALITY_MODEL", default_quality) or default_quality,
            temperature=_get_float("PAGECOPY_QUALITY_TEMPERATURE", 0.7),
            max_tokens=_get_int("PAGECOPY_QUALITY_MAX_TOKENS", 8192),
        )
        fast = TierConfig(
            tier=Tier.FAST,
            model_name=_get_env("PAGECOPY_FAST_MODEL", default_fast) or default_fast,
            temperature=_get_float("PAGECOPY_FAST_TEMPERATURE", 0.7),
            max_tokens=_get_int("PAGECOPY_FAST_MAX_TOKENS", 8192),
        )
        rate_limit = RateLimitSettings(
            max_requests_per_minute=_get_int("PAGECOPY_MAX_REQUESTS_PER_MINUTE", 50),
            max_requests_per_second=_get_float("PAGECOPY_MAX_REQUESTS_PER_SECOND", 2.0),
            base_delay=_get_float("PAGECOPY_RETRY_BASE_DELAY_SECONDS", 30.0),
            max_delay=_get_float("PAGECOPY_RETRY_MAX_DELAY_SECONDS", 300.0),
        )
        batching = BatchSettings(
            batch_size=_get_int("PAGECOPY_BATCH_SIZE", 25),
            inter_batch_delay=_get_float("PAGECOPY_BATCH_DELAY_SECONDS", 0.5),
        )
        detector = DetectorSettings(
            min_paragraph_length=_get_int("PAGECOPY_MIN_PARAGRAPH_LENGTH", 10),
            max_container_children=_get_int("PAGECOPY_MAX_CONTAINER_CHILDREN", 10),
        )
        return cls(
            provider=provider,
            google_api_key=_get_env("GOOGLE_API_KEY") or _get_env("GOOGLE_AI_API_KEY"),
            openai_api_key=_get_env("OPENAI_API_KEY"),
            quality_tier=quality,
            fast_tier=fast,
            timeout_seconds=_get_float("PAGECOPY_TIMEOUT_SECONDS", 240.0),
            rate_limit=rate_limit,
            batching=batching,
            detector=detector,
        )


def _get_env(name: str, default: Optional[str] = None) -> Optional[str]:
    return os.environ.get(name, default)


def _get_int(name: str, default: int) -> int:
    raw = _get_env(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise RuntimeError(f"{name} must be an integer, got {raw!r}") from exc


def _get_float(name: str, default: float) -> float:
    raw = _get_env(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise RuntimeError(f"{name} must be a number, got {raw!r}") from exc


__all__ = [
    "BatchSettings",
    "DetectorSettings",
    "RateLimitSettings",
    "Settings",
    "Tier",
    "TierConfig",
]
