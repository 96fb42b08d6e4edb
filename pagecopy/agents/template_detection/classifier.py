"""Pure classification of document nodes into slot kinds.

Everything here works against :class:`NodeView`, so the rules can be exercised
with hand-built fake nodes and no HTML parser at all.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Iterator, Optional, Protocol, Sequence

from pagecopy.config import DetectorSettings
from pagecopy.generation.models import SemanticType


class NodeView(Protocol):
    @property
    def tag(self) -> str:
        ...

    @property
    def parent(self) -> Optional["NodeView"]:
        ...

    def attr(self, name: str) -> Optional[str]:
        ...

    def text(self) -> str:
        """Visible text of the whole subtree, whitespace collapsed."""
        ...

    def direct_text(self) -> str:
        """Untagged text directly inside this node, whitespace collapsed."""
        ...

    def element_children(self) -> Sequence["NodeView"]:
        ...


class SlotKind(str, Enum):
    HEADING = "heading"
    PARAGRAPH = "paragraph"
    LIST = "list"
    IMAGE = "image"
    LINK = "link"
    CONTENT_BLOCK = "content_block"
    EXCLUDED = "excluded"


@dataclass(frozen=True)
class Classification:
    kind: SlotKind
    level: Optional[int] = None


EXCLUDED_TAGS = frozenset({"nav", "header", "footer", "script", "style", "noscript", "template"})
CONTAINER_TAGS = frozenset({"div", "section", "article"})
HEADING_TAGS = {f"h{level}": level for level in range(1, 7)}
BLOCK_TAGS = frozenset(
    {"div", "p", "section", "article", "ul", "ol", "table", "blockquote", "form"} | set(HEADING_TAGS)
)
HEADING_LIKE_TAGS = frozenset({"strong", "b", "span", "div"})
PARAGRAPH_LIKE_TAGS = frozenset({"p", "div", "span"})

_WORD_SPLIT = re.compile(r"[-_]+")

# Matched against whole words of each class or id, split on "-" and "_"
EXCLUDED_TOKENS = frozenset(
    {
        "nav",
        "navbar",
        "navigation",
        "menu",
        "breadcrumb",
        "breadcrumbs",
        "ad",
        "ads",
        "adsbygoogle",
        "advert",
        "advertisement",
        "sponsored",
        "tracking",
        "analytics",
        "pixel",
        "popup",
        "modal",
        "overlay",
    }
)
EXCLUDED_NAMES = frozenset({"cookie-banner", "cookie_banner", "cookiebanner"})


def _names(node: NodeView) -> Iterator[str]:
    for attribute in ("class", "id"):
        value = node.attr(attribute)
        if value:
            yield from value.lower().split()


def has_excluded_marker(node: NodeView) -> bool:
    if node.tag in EXCLUDED_TAGS:
        return True
    for name in _names(node):
        if name in EXCLUDED_NAMES:
            return True
        if any(word in EXCLUDED_TOKENS for word in _WORD_SPLIT.split(name)):
            return True
    return False


def is_excluded(node: NodeView) -> bool:
    """True when ``node`` or any ancestor is structural or non-content."""

    current: Optional[NodeView] = node
    while current is not None:
        if has_excluded_marker(current):
            return True
        current = current.parent
    return False


def _has_block_children(node: NodeView) -> bool:
    return any(child.tag in BLOCK_TAGS for child in node.element_children())


def is_paragraph_like(node: NodeView, settings: DetectorSettings) -> bool:
    return (
        node.tag in PARAGRAPH_LIKE_TAGS
        and not _has_block_children(node)
        and len(node.text()) >= settings.min_paragraph_length
    )


def is_heading_like(node: NodeView, settings: DetectorSettings) -> bool:
    if node.tag not in HEADING_LIKE_TAGS or _has_block_children(node):
        return False
    text = node.text()
    return 0 < len(text) <= settings.max_heading_like_length


def looks_like_content_block(node: NodeView, settings: DetectorSettings) -> bool:
    """Card-like container: heading + 1-3 paragraphs, several paragraphs, or a run of bare text."""

    children = list(node.element_children())
    if len(children) > settings.max_container_children:
        return False

    if len(node.direct_text()) >= settings.min_block_text_length:
        return True

    if len(children) >= 2 and is_heading_like(children[0], settings):
        rest = children[1:]
        if len(rest) <= settings.max_block_paragraphs and all(is_paragraph_like(c, settings) for c in rest):
            return True

    paragraphs = [child for child in children if is_paragraph_like(child, settings)]
    return len(paragraphs) >= 2


def classify(
    node: NodeView,
    settings: Optional[DetectorSettings] = None,
    *,
    is_root: bool = False,
    has_classified_descendant: bool = False,
) -> Optional[Classification]:
    """Classify one node; ``None`` means it is not a slot.

    Containers are only judged as content blocks, so callers evaluate them after
    their subtree and pass ``has_classified_descendant``.
    """

    settings = settings or DetectorSettings()
    if is_excluded(node):
        return Classification(SlotKind.EXCLUDED)

    tag = node.tag
    if tag in HEADING_TAGS:
        return Classification(SlotKind.HEADING, HEADING_TAGS[tag]) if node.text() else None
    if tag == "p":
        return Classification(SlotKind.PARAGRAPH) if len(node.text()) >= settings.min_paragraph_length else None
    if tag in ("ul", "ol"):
        return Classification(SlotKind.LIST) if node.text() else None
    if tag == "img":
        return Classification(SlotKind.IMAGE)
    if tag == "a":
        href = (node.attr("href") or "").strip()
        return Classification(SlotKind.LINK) if href and node.text() else None
    if tag in CONTAINER_TAGS:
        if is_root or has_classified_descendant:
            return None
        return Classification(SlotKind.CONTENT_BLOCK) if looks_like_content_block(node, settings) else None
    return None


def semantic_type_for(classification: Classification) -> SemanticType:
    kind = classification.kind
    if kind is SlotKind.HEADING:
        return SemanticType.HEADLINE if classification.level == 1 else SemanticType.SUBHEADLINE
    if kind is SlotKind.LIST:
        return SemanticType.LIST
    if kind is SlotKind.IMAGE:
        return SemanticType.IMAGE
    if kind is SlotKind.LINK:
        return SemanticType.CTA
    if kind in (SlotKind.PARAGRAPH, SlotKind.CONTENT_BLOCK):
        return SemanticType.PARAGRAPH
    raise ValueError(f"{kind.value} nodes are not slots")


def label_tier(classification: Classification) -> str:
    """Human label tier; every tier keeps its own running counter."""

    kind = classification.kind
    if kind is SlotKind.HEADING:
        level = classification.level or 1
        if level == 1:
            return "Headline"
        if level == 2:
            return "Subheadline"
        if level == 3:
            return "Section Header"
        return "Minor Header"
    return {
        SlotKind.PARAGRAPH: "Paragraph",
        SlotKind.LIST: "List",
        SlotKind.IMAGE: "Image",
        SlotKind.LINK: "Link",
        SlotKind.CONTENT_BLOCK: "Content Block",
    }[kind]


__all__ = [
    "CONTAINER_TAGS",
    "Classification",
    "NodeView",
    "SlotKind",
    "classify",
    "is_excluded",
    "label_tier",
    "looks_like_content_block",
    "semantic_type_for",
]
