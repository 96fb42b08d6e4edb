"""Pydantic schemas for detected content regions and marked templates."""

from __future__ import annotations

from typing import List

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from pagecopy.generation.models import SemanticType


class ContentRegion(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str = Field(description="Value of the marker attribute on the source element")
    semantic_type: SemanticType
    label: str = Field(description="Tiered label, e.g. 'Headline 1: Free Shipping'")


class DetectionResult(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    marked_html: str
    slots: List[ContentRegion] = Field(default_factory=list)
