"""Flask blueprint exposing the copy orchestrator and slot detection as JSON endpoints."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Tuple, Type, TypeVar

from flask import Blueprint, current_app, jsonify, request
from pydantic import BaseModel, ValidationError

from pagecopy.agents.template_detection.service import build_manifest, detect_slots
from pagecopy.config import Settings
from pagecopy.generation.models import (
    BulkMapRequest,
    NarrativeRequest,
    RegenerateRequest,
    SingleSlotRequest,
)

from .orchestrator import CopyOrchestrator

logger = logging.getLogger(__name__)

copy_bp = Blueprint("copy", __name__, url_prefix="/api")

_EXTENSION_KEY = "pagecopy.orchestrator"

ModelT = TypeVar("ModelT", bound=BaseModel)


def _orchestrator() -> CopyOrchestrator:
    """One orchestrator (and so one rate limiter) per app, built on first use."""

    orchestrator = current_app.extensions.get(_EXTENSION_KEY)
    if orchestrator is None:
        orchestrator = CopyOrchestrator(settings=_settings())
        current_app.extensions[_EXTENSION_KEY] = orchestrator
    return orchestrator


def _settings() -> Settings:
    settings = current_app.config.get("PAGECOPY_SETTINGS")
    return settings if isinstance(settings, Settings) else Settings.from_env()


def _payload() -> Dict[str, Any]:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def _with_audience(payload: Dict[str, Any]) -> Dict[str, Any]:
    # Flat briefs (productName, tone, ... at the top level) are accepted too
    if "audience" in payload or "userConfig" in payload:
        audience = payload.get("audience", payload.get("userConfig"))
        return {**payload, "audience": audience}
    return {**payload, "audience": payload}


def _parse(model: Type[ModelT], payload: Dict[str, Any]) -> Tuple[Optional[ModelT], Optional[Any]]:
    try:
        return model.model_validate(payload), None
    except ValidationError as exc:
        errors = exc.errors(include_url=False, include_context=False, include_input=False)
        return None, (jsonify({"error": "Invalid request", "details": errors}), 400)


def _failure(error: str, details: Optional[str], **extra: Any):
    body: Dict[str, Any] = {"error": error, "details": details or "Unknown error"}
    body.update({key: value for key, value in extra.items() if value is not None})
    return jsonify(body), 500


@copy_bp.post("/narrative")
def generate_narrative():
    parsed, error = _parse(NarrativeRequest, _with_audience(_payload()))
    if error:
        return error
    try:
        result = _orchestrator().generate_narrative(parsed.audience, parsed.narrative_instructions)
    except Exception as exc:
        logger.exception("Narrative generation crashed")
        return _failure("Failed to generate core narrative", str(exc))
    if not result.success:
        return _failure("Failed to generate core narrative", result.error, errorKind=getattr(result.error_kind, "value", None))
    return jsonify(result.model_dump(mode="json", by_alias=True, exclude_none=True))


@copy_bp.post("/map-narrative-to-slots")
def map_narrative_to_slots():
    payload = _with_audience(_payload())
    if "fields" not in payload and payload.get("html"):
        detection = detect_slots(payload["html"], _settings().detector)
        payload["fields"] = [field.model_dump() for field in build_manifest(detection.slots)]
    if "narrative" not in payload and "coreNarrative" in payload:
        payload["narrative"] = payload["coreNarrative"]

    parsed, error = _parse(BulkMapRequest, payload)
    if error:
        return error
    try:
        result = _orchestrator().map_narrative_to_slots(parsed.fields, parsed.narrative, parsed.audience)
    except Exception as exc:
        logger.exception("Narrative mapping crashed")
        return _failure("Failed to map narrative to slots", str(exc))
    if not result.success:
        return _failure(
            "Failed to map narrative to slots",
            result.error,
            slots=result.slots or None,
            slotErrors=result.slot_errors,
        )
    return jsonify(result.model_dump(mode="json", by_alias=True, exclude_none=True))


def _slot_endpoint(model: Type[ModelT], action: str):
    payload = _with_audience(_payload())
    if "narrative" not in payload and "coreNarrative" in payload:
        payload["narrative"] = payload["coreNarrative"]
    parsed, error = _parse(model, payload)
    if error:
        return error
    try:
        orchestrator = _orchestrator()
        if isinstance(parsed, RegenerateRequest):
            result = orchestrator.regenerate_slot(
                parsed.narrative,
                parsed.field,
                parsed.audience,
                parsed.regeneration_instructions,
            )
        else:
            result = orchestrator.generate_slot(parsed.narrative, parsed.field, parsed.audience)
    except Exception as exc:
        logger.exception("Slot %s crashed", action)
        return _failure(f"Failed to {action} slot", str(exc))
    if not result.success:
        return _failure(f"Failed to {action} slot", result.error, errorKind=getattr(result.error_kind, "value", None))
    return jsonify(result.model_dump(mode="json", by_alias=True, exclude_none=True))


@copy_bp.post("/generate-slot")
def generate_slot():
    return _slot_endpoint(SingleSlotRequest, "generate")


@copy_bp.post("/regenerate-slot")
def regenerate_slot():
    return _slot_endpoint(RegenerateRequest, "regenerate")


@copy_bp.post("/detect-slots")
def detect_template_slots():
    html = _payload().get("html")
    if not isinstance(html, str) or not html.strip():
        return jsonify({"error": "Invalid request", "details": "html is required"}), 400
    try:
        result = detect_slots(html, _settings().detector)
    except Exception as exc:
        logger.exception("Slot detection crashed")
        return _failure("Failed to detect slots", str(exc))
    return jsonify(result.model_dump(mode="json", by_alias=True))


__all__ = ["copy_bp"]
