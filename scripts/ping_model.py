#!/usr/bin/env python3
"""Quick CLI to sanity check model connectivity through the generation provider."""

from __future__ import annotations

import argparse
import sys
import time
from dataclasses import replace
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from pagecopy.config import Settings, Tier
from pagecopy.errors import GenerationError
from pagecopy.generation.provider import GenerationProvider


def main() -> int:
    parser = argparse.ArgumentParser(description="Ping a model with a simple prompt.")
    parser.add_argument("model", nargs="?", help="Model name; defaults to the configured tier model")
    parser.add_argument("--tier", choices=[t.value for t in Tier], default=Tier.FAST.value)
    parser.add_argument(
        "--prompt",
        default="Say hello and identify yourself.",
        help="Text prompt to send to the model.",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=120,
        help="Request timeout in seconds (default: 120).",
    )
    args = parser.parse_args()

    settings = replace(Settings.from_env(), timeout_seconds=args.timeout)
    tier_config = settings.quality_tier if args.tier == Tier.QUALITY.value else settings.fast_tier
    if args.model:
        tier_config = replace(tier_config, model_name=args.model)

    try:
        provider = GenerationProvider.from_settings(settings)
        start = time.perf_counter()
        text = provider.generate_text(args.prompt, tier_config, "ping")
    except GenerationError as exc:
        print(f"Generation failed ({exc.kind.value}): {exc}", file=sys.stderr)
        return 1
    elapsed = time.perf_counter() - start

    print(f"Provider: {settings.provider}")
    print(f"Model: {tier_config.model_name}")
    print(f"Elapsed: {elapsed:.2f}s")
    print("Response:\n")
    print(text)
    return 0


if __name__ == "__main__":
    sys.exit(main())
