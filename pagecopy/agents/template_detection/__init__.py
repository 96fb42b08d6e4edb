"""Structural detection of editable content regions in HTML templates."""

from .service import build_manifest, detect_slots

__all__ = ["build_manifest", "detect_slots"]
