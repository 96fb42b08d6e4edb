"""Core orchestration logic: narrative first, then slot mapping."""

from __future__ import annotations

import logging
from typing import Dict, List, Optional, Sequence, Union

from pagecopy.config import Settings, TierConfig
from pagecopy.errors import ErrorKind, GenerationError, ProviderError
from pagecopy.generation.batching import BatchCoordinator
from pagecopy.generation.markup import strip_markup
from pagecopy.generation.models import (
    AudienceConfig,
    BulkMapRequest,
    CompleteResult,
    GenerationRequest,
    MappingResult,
    NarrativeRequest,
    NarrativeResult,
    RegenerateRequest,
    SemanticType,
    SingleSlotRequest,
    SlotFieldDefinition,
    SlotResult,
)
from pagecopy.generation.provider import GenerationProvider

from .prompts import (
    build_bulk_map_prompt,
    build_narrative_prompt,
    build_regenerate_prompt,
    build_single_slot_prompt,
)

logger = logging.getLogger(__name__)

FRIENDLY_ERRORS: Dict[ErrorKind, str] = {
    ErrorKind.RATE_LIMIT: (
        "API rate limit exceeded. The request was retried with backoff; "
        "please wait a moment and try again."
    ),
    ErrorKind.TIMEOUT: "Request timed out. The narrative might be too long. Please try again.",
    ErrorKind.AUTH: "API authentication failed. Please check that the API key is set correctly.",
    ErrorKind.NOT_FOUND: "AI model not found. Please check that your API key has access to the configured model.",
}


def friendly_error(error: GenerationError) -> str:
    message = FRIENDLY_ERRORS.get(error.kind)
    if message:
        return message
    text = str(error).strip()
    if text and len(text) < 500:
        return text
    return f"Unexpected {type(error).__name__}. Check server logs for details."


class CopyOrchestrator:
    """Ties prompts, provider, parser and batching into the copy workflows.

    Results are returned, not raised: every failure ends up as ``success=False``
    with a message on the result object.
    """

    def __init__(
        self,
        provider: Optional[GenerationProvider] = None,
        settings: Optional[Settings] = None,
        coordinator: Optional[BatchCoordinator] = None,
    ) -> None:
        self.settings = settings or Settings.from_env()
        self.provider = provider or GenerationProvider.from_settings(self.settings)
        self.coordinator = coordinator or BatchCoordinator(
            self.provider,
            self.settings.fast_tier,
            build_bulk_map_prompt,
            batch_size=self.settings.batching.batch_size,
            inter_batch_delay=self.settings.batching.inter_batch_delay,
        )

    @property
    def quality_tier(self) -> TierConfig:
        return self.settings.quality_tier

    @property
    def fast_tier(self) -> TierConfig:
        return self.settings.fast_tier

    def generate_narrative(
        self,
        audience: AudienceConfig,
        narrative_instructions: Optional[str] = None,
    ) -> NarrativeResult:
        prompt = build_narrative_prompt(audience, narrative_instructions)
        last_error: Optional[GenerationError] = None

        for tier_config in (self.quality_tier, self.fast_tier):
            try:
                text = self.provider.generate_text(prompt, tier_config, "narrative")
            except GenerationError as exc:
                last_error = exc
                logger.warning(
                    "Narrative generation failed on %s (%s): %s",
                    tier_config.model_name,
                    exc.kind.value,
                    exc,
                )
                continue
            narrative = text.strip()
            if not narrative:
                last_error = ProviderError(f"{tier_config.model_name} returned an empty narrative")
                logger.warning("Empty narrative from %s", tier_config.model_name)
                continue
            logger.info(
                "Narrative generated with %s (%d words)",
                tier_config.model_name,
                len(narrative.split()),
            )
            return NarrativeResult(narrative=narrative, success=True, tier=tier_config.tier)

        if last_error is None:
            last_error = ProviderError("Narrative generation did not run")
        return NarrativeResult(
            success=False,
            error=friendly_error(last_error),
            error_kind=last_error.kind,
        )

    def map_narrative_to_slots(
        self,
        fields: Sequence[SlotFieldDefinition],
        narrative: str,
        audience: AudienceConfig,
    ) -> MappingResult:
        if not narrative or not narrative.strip():
            return MappingResult(success=False, error="Narrative must not be empty")

        usable: List[SlotFieldDefinition] = []
        for field in fields:
            if field.semantic_type is SemanticType.IMAGE:
                logger.warning("Dropping image slot %s from the mapping manifest", field.id)
                continue
            usable.append(field)
        if not usable:
            return MappingResult(success=False, error="No text slots to fill")

        seen: set = set()
        duplicates: List[str] = []
        for field in usable:
            if field.id in seen and field.id not in duplicates:
                duplicates.append(field.id)
            seen.add(field.id)
        if duplicates:
            return MappingResult(success=False, error=f"Duplicate slot ids: {', '.join(duplicates)}")

        logger.info("Mapping narrative (%d chars) to %d slots", len(narrative), len(usable))
        result = self.coordinator.map_fields(usable, narrative.strip(), audience)
        if result.slot_errors:
            result.error = f"{len(result.slot_errors)} of {len(usable)} slots could not be filled"
        return result

    def _single_slot(self, prompt: str, field: SlotFieldDefinition, operation_id: str) -> SlotResult:
        try:
            raw = self.provider.generate_text(prompt, self.fast_tier, operation_id)
        except GenerationError as exc:
            logger.error("Slot %s failed (%s): %s", field.id, exc.kind.value, exc)
            return SlotResult(slot_id=field.id, success=False, error=friendly_error(exc), error_kind=exc.kind)
        content = strip_markup(raw)
        if not content:
            return SlotResult(
                slot_id=field.id,
                success=False,
                error="AI returned an empty response. Please try again.",
                error_kind=ErrorKind.OTHER,
            )
        return SlotResult(slot_id=field.id, content=content, success=True)

    def generate_slot(
        self,
        narrative: str,
        field: SlotFieldDefinition,
        audience: AudienceConfig,
    ) -> SlotResult:
        prompt = build_single_slot_prompt(narrative, field, audience)
        return self._single_slot(prompt, field, f"generate-slot-{field.id}")

    def regenerate_slot(
        self,
        narrative: str,
        field: SlotFieldDefinition,
        audience: AudienceConfig,
        regeneration_instructions: Optional[str] = None,
    ) -> SlotResult:
        prompt = build_regenerate_prompt(narrative, field, audience, regeneration_instructions)
        return self._single_slot(prompt, field, f"regenerate-slot-{field.id}")

    def generate_complete(
        self,
        audience: AudienceConfig,
        fields: Sequence[SlotFieldDefinition],
        narrative_instructions: Optional[str] = None,
    ) -> CompleteResult:
        """Narrative, then mapping; a failed narrative stops the pipeline."""

        narrative = self.generate_narrative(audience, narrative_instructions)
        if not narrative.success:
            return CompleteResult(narrative=narrative, success=False)
        mapping = self.map_narrative_to_slots(fields, narrative.narrative, audience)
        return CompleteResult(narrative=narrative, mapping=mapping, success=mapping.success)

    def run(self, request: GenerationRequest) -> Union[NarrativeResult, MappingResult, SlotResult]:
        if isinstance(request, NarrativeRequest):
            return self.generate_narrative(request.audience, request.narrative_instructions)
        if isinstance(request, BulkMapRequest):
            return self.map_narrative_to_slots(request.fields, request.narrative, request.audience)
        if isinstance(request, SingleSlotRequest):
            return self.generate_slot(request.narrative, request.field, request.audience)
        if isinstance(request, RegenerateRequest):
            return self.regenerate_slot(
                request.narrative,
                request.field,
                request.audience,
                request.regeneration_instructions,
            )
        raise TypeError(f"Unsupported request type: {type(request).__name__}")


__all__ = ["CopyOrchestrator", "friendly_error"]
