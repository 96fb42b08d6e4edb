"""Sequential, failure-isolated bulk mapping of a slot manifest."""

from __future__ import annotations

import logging
import time
from typing import Callable, Dict, List, Sequence

from pagecopy.config import TierConfig
from pagecopy.errors import GenerationError, ResponseParseError
from pagecopy.generation.models import AudienceConfig, MappingResult, SlotFieldDefinition
from pagecopy.generation.provider import GenerationProvider
from pagecopy.generation.response_parser import ParseStrategy, normalize_slot_value, parse_slot_response

logger = logging.getLogger(__name__)

EMPTY_RESPONSE_ERROR = "AI returned empty response for this batch"
PARSE_FAILURE_ERROR = "Failed to parse AI response as JSON"
MISSING_SLOT_ERROR = "Slot not found in AI response"

PromptFactory = Callable[[str, Sequence[SlotFieldDefinition], AudienceConfig], str]


def split_batches(fields: Sequence[SlotFieldDefinition], batch_size: int) -> List[List[SlotFieldDefinition]]:
    """Order-preserving chunks of at most ``batch_size`` fields."""

    if batch_size <= 0:
        raise ValueError("batch_size must be positive")
    return [list(fields[i : i + batch_size]) for i in range(0, len(fields), batch_size)]


class BatchCoordinator:
    def __init__(
        self,
        provider: GenerationProvider,
        tier_config: TierConfig,
        prompt_factory: PromptFactory,
        *,
        batch_size: int = 25,
        inter_batch_delay: float = 0.5,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.provider = provider
        self.tier_config = tier_config
        self.prompt_factory = prompt_factory
        self.batch_size = batch_size
        self.inter_batch_delay = inter_batch_delay
        self._sleep = sleep

    def map_fields(
        self,
        fields: Sequence[SlotFieldDefinition],
        narrative: str,
        audience: AudienceConfig,
    ) -> MappingResult:
        """Fill every field from ``narrative``; each id lands in ``slots`` or ``slot_errors``."""

        batches = split_batches(fields, self.batch_size)
        slots: Dict[str, str] = {}
        errors: Dict[str, str] = {}

        for number, batch in enumerate(batches, start=1):
            if number > 1 and self.inter_batch_delay > 0:
                self._sleep(self.inter_batch_delay)
            logger.info("Mapping batch %d/%d (%d fields)", number, len(batches), len(batch))
            batch_slots, batch_errors = self._run_batch(number, batch, narrative, audience)
            slots.update(batch_slots)
            errors.update(batch_errors)
            logger.info(
                "Batch %d/%d completed: %d slots, %d errors",
                number,
                len(batches),
                len(batch_slots),
                len(batch_errors),
            )

        if errors:
            logger.warning("%d of %d slots failed: %s", len(errors), len(fields), ", ".join(errors))
        # Manifest order, not batch arrival order
        ordered = {field.id: slots[field.id] for field in fields if field.id in slots}
        return MappingResult(
            slots=ordered,
            success=not errors,
            slot_errors=errors or None,
        )

    def _run_batch(
        self,
        number: int,
        batch: List[SlotFieldDefinition],
        narrative: str,
        audience: AudienceConfig,
    ):
        prompt = self.prompt_factory(narrative, batch, audience)
        operation_id = f"map-narrative-batch-{number}"

        try:
            raw = self.provider.generate_text(prompt, self.tier_config, operation_id)
        except GenerationError as exc:
            logger.error("Batch %d failed at the provider: %s", number, exc)
            return {}, {field.id: str(exc) for field in batch}

        if not raw or not raw.strip():
            return {}, {field.id: EMPTY_RESPONSE_ERROR for field in batch}

        try:
            outcome = parse_slot_response(raw)
        except ResponseParseError:
            logger.error("Batch %d response could not be parsed (%d chars)", number, len(raw))
            return {}, {field.id: PARSE_FAILURE_ERROR for field in batch}
        if outcome.strategy is not ParseStrategy.DIRECT:
            logger.warning("Batch %d response needed the %s strategy", number, outcome.strategy.value)

        slots: Dict[str, str] = {}
        errors: Dict[str, str] = {}
        for field in batch:
            value = normalize_slot_value(outcome.data.get(field.id))
            if value is None:
                errors[field.id] = MISSING_SLOT_ERROR
            else:
                slots[field.id] = value
        return slots, errors


__all__ = [
    "BatchCoordinator",
    "EMPTY_RESPONSE_ERROR",
    "MISSING_SLOT_ERROR",
    "PARSE_FAILURE_ERROR",
    "split_batches",
]
