"""Pydantic models shared by the prompt builders, orchestrator and HTTP API."""

from __future__ import annotations

from enum import Enum
from typing import Annotated, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from pagecopy.config import Tier
from pagecopy.errors import ErrorKind


class SemanticType(str, Enum):
    HEADLINE = "headline"
    SUBHEADLINE = "subheadline"
    PARAGRAPH = "paragraph"
    LIST = "list"
    CTA = "cta"
    IMAGE = "image"


class _Model(BaseModel):
    """Accepts snake_case or camelCase input; dumps camelCase with ``by_alias``."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class SlotFieldDefinition(_Model):
    """One editable slot of a template that needs generated text."""

    id: str = Field(min_length=1, description="Slot id, unique within a manifest.")
    label: str = Field(default="", description="Human-readable label, e.g. 'Headline 1: Free Shipping'.")
    semantic_type: SemanticType = SemanticType.PARAGRAPH
    max_length: Optional[int] = Field(default=None, gt=0)
    instructions: Optional[str] = None
    description: Optional[str] = None


class AudienceConfig(_Model):
    """Product brief plus audience/tone targeting for every prompt kind."""

    product_name: str = ""
    main_keyword: str = ""
    age_range: str = "all"
    gender: str = "all"
    country: Optional[str] = None
    target_regions: List[str] = Field(default_factory=list)
    state: Optional[str] = Field(default=None, description="Legacy single region; folded into target_regions.")
    tone: str = "professional"
    pain_points: List[str] = Field(default_factory=list)

    @field_validator("target_regions", "pain_points")
    @classmethod
    def _drop_blank(cls, values: List[str]) -> List[str]:
        return [v.strip() for v in values if v and v.strip()]

    @model_validator(mode="after")
    def _fold_legacy_state(self) -> "AudienceConfig":
        if not self.target_regions and self.state and self.state.strip():
            self.target_regions = [self.state.strip()]
        return self


class NarrativeRequest(_Model):
    kind: Literal["narrative"] = "narrative"
    audience: AudienceConfig
    narrative_instructions: Optional[str] = None


class SingleSlotRequest(_Model):
    kind: Literal["single_slot"] = "single_slot"
    audience: AudienceConfig
    narrative: str = Field(min_length=1)
    field: SlotFieldDefinition


class BulkMapRequest(_Model):
    kind: Literal["bulk_map"] = "bulk_map"
    audience: AudienceConfig
    narrative: str = Field(min_length=1)
    fields: List[SlotFieldDefinition]


class RegenerateRequest(_Model):
    kind: Literal["regenerate"] = "regenerate"
    audience: AudienceConfig
    narrative: str = Field(min_length=1)
    field: SlotFieldDefinition
    regeneration_instructions: Optional[str] = None


GenerationRequest = Annotated[
    Union[NarrativeRequest, SingleSlotRequest, BulkMapRequest, RegenerateRequest],
    Field(discriminator="kind"),
]


class NarrativeResult(_Model):
    narrative: str = ""
    success: bool
    error: Optional[str] = None
    error_kind: Optional[ErrorKind] = None
    tier: Optional[Tier] = None


class SlotResult(_Model):
    slot_id: str
    content: str = ""
    success: bool
    error: Optional[str] = None
    error_kind: Optional[ErrorKind] = None


class MappingResult(_Model):
    """Content map plus per-slot failures; partial success is a normal outcome."""

    slots: Dict[str, str] = Field(default_factory=dict)
    success: bool
    error: Optional[str] = None
    slot_errors: Optional[Dict[str, str]] = None


class CompleteResult(_Model):
    narrative: NarrativeResult
    mapping: Optional[MappingResult] = None
    success: bool


__all__ = [
    "AudienceConfig",
    "BulkMapRequest",
    "CompleteResult",
    "GenerationRequest",
    "MappingResult",
    "NarrativeRequest",
    "NarrativeResult",
    "RegenerateRequest",
    "SemanticType",
    "SingleSlotRequest",
    "SlotFieldDefinition",
    "SlotResult",
]
