import argparse
import json
import sys
from pathlib import Path

# Ensure project root is on path
PROJECT_ROOT = Path(__file__).resolve().parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from dotenv import load_dotenv

from pagecopy.agents.template_detection import build_manifest, detect_slots
from pagecopy.config import Settings


def main() -> int:
    load_dotenv()
    parser = argparse.ArgumentParser(description="Print the slot manifest detected in an HTML template")
    parser.add_argument("html_path", help="Path to the HTML template")
    parser.add_argument("--marked-out", help="Write the marked HTML to this path")
    parser.add_argument("--manifest", action="store_true", help="Print mapping fields (images dropped)")
    args = parser.parse_args()

    html = Path(args.html_path).read_text(encoding="utf-8")
    result = detect_slots(html, Settings.from_env().detector)

    if args.marked_out:
        Path(args.marked_out).write_text(result.marked_html, encoding="utf-8")
    if args.manifest:
        payload = [field.model_dump(mode="json", by_alias=True, exclude_none=True) for field in build_manifest(result.slots)]
    else:
        payload = [slot.model_dump(mode="json", by_alias=True) for slot in result.slots]
    print(json.dumps(payload, indent=2))
    print(f"{len(result.slots)} slots detected", file=sys.stderr)
    return 0


if __name__ == "__main__":
    sys.exit(main())
