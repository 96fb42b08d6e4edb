"""Prompt text used to steer the copy orchestrator LLM calls."""

from __future__ import annotations

from typing import List, Optional, Sequence

from pagecopy.generation.models import (
    AudienceConfig,
    BulkMapRequest,
    GenerationRequest,
    NarrativeRequest,
    RegenerateRequest,
    SemanticType,
    SingleSlotRequest,
    SlotFieldDefinition,
)

TONE_INSTRUCTIONS = {
    "serious": "Use a serious, professional, and authoritative tone.",
    "educational": "Use an educational, informative, and helpful tone.",
    "cheerful": "Use a cheerful, upbeat, and positive tone.",
    "direct": "Use a direct, straightforward, and no-nonsense tone.",
}
DEFAULT_TONE_INSTRUCTION = "Use a professional tone."

TONE_ADJUSTMENTS = {
    "serious": "more serious and authoritative",
    "educational": "more educational and informative",
    "cheerful": "more cheerful and upbeat",
    "direct": "more direct and straightforward",
}

SLOT_TYPE_INSTRUCTIONS = {
    SemanticType.HEADLINE: "Write a compelling headline (one line, under 80 characters) that captures the main hook from the core narrative.",
    SemanticType.SUBHEADLINE: "Write a supporting subheadline (one line) that expands on the headline.",
    SemanticType.PARAGRAPH: "Write a full paragraph of several sentences that summarizes or extracts key points from the core narrative.",
    SemanticType.LIST: "Extract 3-8 key points from the core narrative as a list, one item per line.",
    SemanticType.CTA: "Write a clear, action-oriented call-to-action (one line).",
}
DEFAULT_SLOT_INSTRUCTION = "Extract relevant content from the core narrative."

_HEADING_HINT = "[STRUCTURE: {kind} - must be ONE LINE only. Do NOT include paragraph text.]"
_LIST_HINT = (
    "[STRUCTURE: This is a LIST - format as one item per line. Each line should be a complete "
    "bullet point. Extract 3-8 key points from the narrative. REQUIRED - you must provide content for this slot.]"
)
_PARAGRAPH_HINT = (
    "[STRUCTURE: This is a PARAGRAPH - must be a FULL PARAGRAPH with multiple sentences. This is NOT a heading.]"
)
_CONTENT_BLOCK_HINT = (
    "[STRUCTURE: This is a CONTENT BLOCK - extract multiple sentences or a full paragraph from the narrative "
    "that fits this section. REQUIRED - you must provide content for this slot.]"
)
_CTA_HINT = "[STRUCTURE: This is a LINK / CALL TO ACTION - one short, action-oriented line.]"

# Label prefixes written by the slot detector, most specific first
_LABEL_HINTS = (
    ("headline ", _HEADING_HINT.format(kind="This is the main HEADLINE")),
    ("subheadline ", _HEADING_HINT.format(kind="This is a SUBHEADLINE supporting the headline")),
    ("section header ", _HEADING_HINT.format(kind="This is a SECTION HEADER")),
    ("minor header ", _HEADING_HINT.format(kind="This is a HEADING")),
    ("paragraph ", _PARAGRAPH_HINT),
    ("list ", _LIST_HINT),
    ("content block ", _CONTENT_BLOCK_HINT),
    ("link ", _CTA_HINT),
)

_TYPE_HINTS = {
    SemanticType.HEADLINE: _HEADING_HINT.format(kind="This is a HEADLINE"),
    SemanticType.SUBHEADLINE: _HEADING_HINT.format(kind="This is a SUBHEADLINE"),
    SemanticType.PARAGRAPH: _PARAGRAPH_HINT,
    SemanticType.CTA: _CTA_HINT,
}

PLAIN_TEXT_RULE = (
    "**CRITICAL: DO NOT include HTML tags in your response.** Return ONLY plain text content. "
    'The template already has the HTML structure. For example, return "My Heading Text" NOT "<h1>My Heading Text</h1>".'
)


def _join_regions(regions: Sequence[str]) -> str:
    if len(regions) == 1:
        return regions[0]
    if len(regions) == 2:
        return f"{regions[0]} and {regions[1]}"
    return f"{', '.join(regions[:-1])}, and {regions[-1]}"


def _audience_descriptors(audience: AudienceConfig) -> List[str]:
    parts: List[str] = []
    if audience.age_range and audience.age_range != "all":
        parts.append(f"age range {audience.age_range}")
    if audience.gender and audience.gender != "all":
        parts.append(audience.gender)
    if audience.country:
        parts.append(audience.country)
    if audience.target_regions:
        parts.append(", ".join(audience.target_regions))
    return parts


def _audience_line(audience: AudienceConfig) -> str:
    line = f"**Target Audience:** {audience.age_range or 'all'} {audience.gender or 'all'}"
    if audience.country:
        line += f" in {audience.country}"
    if audience.target_regions:
        line += f" (psychographic profile: {', '.join(audience.target_regions)})"
    return line


def _psychographic_reminder(audience: AudienceConfig) -> str:
    if not audience.target_regions:
        return ""
    return (
        "\n**Psychographic Targeting:** Adapt tone, metaphors, and priorities to match the cultural mindset "
        f"and values typical of {', '.join(audience.target_regions)}. DO NOT mention city names, landmarks, "
        "or state names. Focus on values and mindset, not geography.\n"
    )


def psychographic_block(regions: Sequence[str]) -> str:
    """Regional targeting as values and mindset, never as place names."""

    if not regions:
        return "**AUDIENCE:** General audience."
    profile = _join_regions(regions)
    return f"""**PSYCHOGRAPHIC TARGETING (CRITICAL - NOT GEOGRAPHIC):**
The target audience fits the psychographic profile typical of {profile}. Analyze the sociology, lifestyle values, and cultural mindset associated with this profile, then adapt the copy's tone, metaphors, and priorities accordingly.

**What to DO:**
- Adjust the tone to match these psychographic traits (more direct for fast-paced regions, more value-focused for cost-conscious regions, more aspirational for status-driven regions)
- Use metaphors and examples that resonate with these values
- Prioritize messaging that aligns with their cultural mindset

**What NOT to DO (STRICT PROHIBITION):**
- DO NOT mention specific city names
- DO NOT mention specific landmarks, local businesses, or regional institutions
- DO NOT mention the region name itself unless absolutely necessary for context
- DO NOT use niche local expressions or regional slang
- DO NOT create content that would alienate customers from other regions

**Goal:** The copy should resonate with this psychographic profile while remaining welcoming to a national audience."""


def tone_instruction(tone: str) -> str:
    return TONE_INSTRUCTIONS.get((tone or "").lower(), DEFAULT_TONE_INSTRUCTION)


def build_narrative_prompt(audience: AudienceConfig, narrative_instructions: Optional[str] = None) -> str:
    """Prompt for the single master narrative every slot is later derived from."""

    descriptors = _audience_descriptors(audience)
    audience_context = f"Target audience: {', '.join(descriptors)}. " if descriptors else ""
    pain_points = (
        f"\n\nKey pain points to address: {', '.join(audience.pain_points)}." if audience.pain_points else ""
    )
    extra = f"\n**Additional Instructions:**\n{narrative_instructions.strip()}\n" if narrative_instructions and narrative_instructions.strip() else ""

    return f"""You are a professional direct-response copywriter. Your task is to create a comprehensive, cohesive master narrative for a product landing page.

Product Name: {audience.product_name}
Main Keyword/Topic: {audience.main_keyword}
{audience_context}{tone_instruction(audience.tone)}{pain_points}

{psychographic_block(audience.target_regions)}

**CRITICAL REQUIREMENTS:**

1. Create a complete, cohesive narrative that covers:
   - A compelling hook that addresses the main keyword/topic
   - The problem or concern the target audience faces
   - How the product works
   - How this product specifically addresses the problem
   - Common objections and how to address them
   - The value proposition and offer details
   - A strong conclusion that reinforces the main message

2. The narrative must be:
   - Internally consistent (no contradictions)
   - Free of prohibited medical or legal claims
   - Tailored to the target audience ({audience_context.strip() or 'general audience'})
   - Written in the requested tone: {audience.tone}
   - Naturally incorporating the keyword "{audience.main_keyword}" throughout

3. Write this as a complete, flowing article (800-1200 words). It is the source of truth from which all page sections will be derived.
{extra}
Respond with ONLY the narrative text. Do not include headers, titles, or formatting. Write as a continuous, flowing article."""


def _slot_task(field: SlotFieldDefinition) -> str:
    return SLOT_TYPE_INSTRUCTIONS.get(field.semantic_type, DEFAULT_SLOT_INSTRUCTION)


def _length_constraint(field: SlotFieldDefinition) -> str:
    return f"\n**Length Constraint:** Maximum {field.max_length} characters.\n" if field.max_length else ""


def build_single_slot_prompt(narrative: str, field: SlotFieldDefinition, audience: AudienceConfig) -> str:
    instructions = f"\n**Specific Instructions for this Slot:**\n{field.instructions}\n" if field.instructions else ""
    return f"""You are a professional copywriter. Your task is to extract and adapt content from a provided Core Narrative to create a specific page element.

**Core Narrative (Source of Truth):**
{narrative}

**Slot:** {field.id} ({field.semantic_type.value}){f': {field.label}' if field.label else ''}
**Task:** {_slot_task(field)}
{_length_constraint(field)}{instructions}
{_audience_line(audience)}
**Main Keyword:** {audience.main_keyword}
{_psychographic_reminder(audience)}
**CRITICAL REQUIREMENTS:**
1. The content MUST be derived from and consistent with the Core Narrative above.
2. Do NOT introduce new information that contradicts or is not supported by the Core Narrative.
3. Maintain the same tone and messaging as the Core Narrative.
4. Naturally incorporate the keyword "{audience.main_keyword}" if relevant.
5. {PLAIN_TEXT_RULE}

Respond with ONLY the generated content. No explanations, no markdown formatting, just the content text."""


def build_regenerate_prompt(
    narrative: str,
    field: SlotFieldDefinition,
    audience: AudienceConfig,
    regeneration_instructions: Optional[str] = None,
) -> str:
    if regeneration_instructions and regeneration_instructions.strip():
        adjustment = f"**Specific Regeneration Instructions:**\n{regeneration_instructions.strip()}"
    else:
        modifier = TONE_ADJUSTMENTS.get((audience.tone or "").lower(), f"more {audience.tone}")
        adjustment = f"**Tone Adjustment:** Make it {modifier} while maintaining consistency with the core narrative."

    return f"""You are a professional copywriter. Your task is to regenerate a specific page element using the Core Narrative as context.

**Core Narrative (Source of Truth):**
{narrative}

**Slot to Regenerate:**
- Slot ID: {field.id}
- Type: {field.semantic_type.value}
- Task: {_slot_task(field)}
{_length_constraint(field)}
{adjustment}

{_audience_line(audience)}
**Main Keyword:** {audience.main_keyword}
{_psychographic_reminder(audience)}
**CRITICAL REQUIREMENTS:**
1. The content MUST be derived from and consistent with the Core Narrative above.
2. Do NOT introduce new information that contradicts or is not supported by the Core Narrative.
3. Maintain the same overall messaging as the Core Narrative.
4. Naturally incorporate the keyword "{audience.main_keyword}" if relevant.
5. {PLAIN_TEXT_RULE}

Respond with ONLY the regenerated content as plain text. No explanations, no markdown formatting, no HTML tags, just the content text."""


def structure_hint(field: SlotFieldDefinition) -> str:
    """Per-field structure hint: list type first, then label prefix, then type."""

    if field.semantic_type is SemanticType.LIST:
        return _LIST_HINT
    label = field.label.lower()
    for prefix, hint in _LABEL_HINTS:
        if label.startswith(prefix):
            return hint
    return _TYPE_HINTS.get(field.semantic_type, "")


def _is_required(field: SlotFieldDefinition) -> bool:
    return field.semantic_type is SemanticType.LIST or "content block" in field.label.lower()


def _describe_field(field: SlotFieldDefinition) -> str:
    desc = f"- {field.id} ({field.semantic_type.value}): {field.label or field.id}"
    if field.description:
        desc += f" - {field.description}"
    if field.max_length:
        desc += f" [Max {field.max_length} chars]"
    if field.instructions:
        desc += f" [Note: {field.instructions}]"
    hint = structure_hint(field)
    if hint:
        desc += f" {hint}"
    return desc


def build_bulk_map_prompt(
    narrative: str,
    fields: Sequence[SlotFieldDefinition],
    audience: AudienceConfig,
) -> str:
    """Prompt asking for one flat JSON object with exactly one key per field id."""

    count = len(fields)
    descriptions = "\n".join(_describe_field(field) for field in fields)
    required = "\n".join(
        f'{index}. "{field.id}" ({field.semantic_type.value}): {field.label or field.id}'
        + (" (REQUIRED)" if _is_required(field) else "")
        for index, field in enumerate(fields, start=1)
    )
    example_keys = [field.id for field in fields[:3]]
    example = ",\n".join(f'  "{key}": "plain text content"' for key in example_keys)
    if count > len(example_keys):
        example += f',\n  ...\n  "{fields[-1].id}": "plain text content"'

    return f"""You are a professional copywriter. Your task is to extract and distribute content from a Core Narrative into specific template slots while PRESERVING THE STRUCTURE of the original template.

**Core Narrative (Source of Truth):**
{narrative}

**Template Fields to Fill (with structure requirements):**
{descriptions}

**IMPORTANT: You must provide content for ALL {count} slots listed above.**
- Headings = ONE LINE
- Paragraphs = FULL PARAGRAPHS
- Lists = 3-8 key points, ONE ITEM PER LINE (use newlines to separate items)
- Content blocks = MULTIPLE SENTENCES
- **DO NOT skip any slots, especially lists or content blocks**

{_audience_line(audience)}
**Tone:** {audience.tone}
**Main Keyword:** {audience.main_keyword}
{_psychographic_reminder(audience)}
**CRITICAL REQUIREMENTS:**
1. **YOU MUST INCLUDE ALL {count} SLOTS IN YOUR RESPONSE.** Every slot ID listed above must have a value.
2. Extract content from the Core Narrative for each field. Do NOT create content that isn't in the narrative.
3. Maintain consistency: all fields should follow the same narrative thread.
4. Respect length constraints where specified.
5. Use the exact slot IDs provided as keys. Do NOT rename or invent slot IDs.
6. {PLAIN_TEXT_RULE}

**Response Format:**
Respond with ONLY valid JSON in this exact shape (no markdown, no code blocks, no explanations):

{{
{example}
}}

**VERIFICATION CHECKLIST:**
1. Your JSON has exactly {count} keys
2. Every slot ID from the list below appears as a key
3. List slots contain multiple lines, one item per line
4. Content blocks contain substantial content (multiple sentences)
5. Values are plain strings with no HTML tags

**REQUIRED SLOT IDs:**
{required}"""


def build_prompt(request: GenerationRequest) -> str:
    """Dispatch a :data:`GenerationRequest` variant to its prompt builder."""

    if isinstance(request, NarrativeRequest):
        return build_narrative_prompt(request.audience, request.narrative_instructions)
    if isinstance(request, SingleSlotRequest):
        return build_single_slot_prompt(request.narrative, request.field, request.audience)
    if isinstance(request, BulkMapRequest):
        return build_bulk_map_prompt(request.narrative, request.fields, request.audience)
    if isinstance(request, RegenerateRequest):
        return build_regenerate_prompt(
            request.narrative,
            request.field,
            request.audience,
            request.regeneration_instructions,
        )
    raise TypeError(f"Unsupported request type: {type(request).__name__}")


__all__ = [
    "build_bulk_map_prompt",
    "build_narrative_prompt",
    "build_prompt",
    "build_regenerate_prompt",
    "build_single_slot_prompt",
    "psychographic_block",
    "structure_hint",
    "tone_instruction",
]
