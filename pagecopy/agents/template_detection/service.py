"""Entry points for slot detection and mapping-manifest construction."""

from __future__ import annotations

from typing import Iterable, List, Optional

from pagecopy.config import DetectorSettings
from pagecopy.generation.models import SemanticType, SlotFieldDefinition

from .detector import SlotDetector
from .schemas import ContentRegion, DetectionResult


def detect_slots(html: str, settings: Optional[DetectorSettings] = None) -> DetectionResult:
    """Mark the editable regions of ``html`` and return them as a manifest.

    Existing markers are cleared first, so running this on its own output
    yields the same slots.
    """
    return SlotDetector(settings).detect(html)


def build_manifest(regions: Iterable[ContentRegion]) -> List[SlotFieldDefinition]:
    # Images are swapped by src downstream, never written by the model
    return [
        SlotFieldDefinition(id=region.id, label=region.label, semantic_type=region.semantic_type)
        for region in regions
        if region.semantic_type is not SemanticType.IMAGE
    ]
