#!/usr/bin/env python3
"""Run the whole pipeline: detect slots, write the narrative, map it to the slots."""

import argparse
import json
import logging
import os
import sys
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from dotenv import load_dotenv
from pydantic import ValidationError

from pagecopy.agents.copy_orchestrator.orchestrator import CopyOrchestrator
from pagecopy.agents.template_detection import build_manifest, detect_slots
from pagecopy.config import Settings
from pagecopy.generation.models import AudienceConfig


def main() -> int:
    load_dotenv()
    logging.basicConfig(level=os.environ.get("PAGECOPY_LOG_LEVEL", "INFO").upper())

    parser = argparse.ArgumentParser(description="Generate page copy for an HTML template from a product brief.")
    parser.add_argument("brief", help="JSON file with the product/audience brief")
    parser.add_argument("template", help="HTML template to fill")
    parser.add_argument("--instructions", help="Extra narrative instructions")
    parser.add_argument("--out", help="Write the JSON result here instead of stdout")
    args = parser.parse_args()

    try:
        audience = AudienceConfig.model_validate_json(Path(args.brief).read_text(encoding="utf-8"))
    except ValidationError as exc:
        print(f"Invalid brief: {exc}", file=sys.stderr)
        return 2

    settings = Settings.from_env()
    detection = detect_slots(Path(args.template).read_text(encoding="utf-8"), settings.detector)
    fields = build_manifest(detection.slots)
    if not fields:
        print("No text slots detected in template", file=sys.stderr)
        return 2

    result = CopyOrchestrator(settings=settings).generate_complete(audience, fields, args.instructions)
    output = json.dumps(result.model_dump(mode="json", by_alias=True, exclude_none=True), indent=2)
    if args.out:
        Path(args.out).write_text(output, encoding="utf-8")
    else:
        print(output)

    if not result.success:
        error = result.narrative.error or (result.mapping.error if result.mapping else None)
        print(f"Generation incomplete: {error}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
