"""Rate-limited text generation, batching and response parsing."""

from .batching import BatchCoordinator, split_batches
from .models import (
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
from .provider import GenerationProvider
from .rate_limiter import RateLimiter
from .response_parser import ParseOutcome, ParseStrategy, parse_slot_response

__all__ = [
    "AudienceConfig",
    "BatchCoordinator",
    "BulkMapRequest",
    "CompleteResult",
    "GenerationProvider",
    "GenerationRequest",
    "MappingResult",
    "NarrativeRequest",
    "NarrativeResult",
    "ParseOutcome",
    "ParseStrategy",
    "RateLimiter",
    "RegenerateRequest",
    "SemanticType",
    "SingleSlotRequest",
    "SlotFieldDefinition",
    "SlotResult",
    "split_batches",
    "parse_slot_response",
]
