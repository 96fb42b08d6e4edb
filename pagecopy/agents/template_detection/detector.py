"""Marks editable regions of an HTML template with a slot attribute."""

from __future__ import annotations

import logging
import re
from collections import defaultdict
from typing import Dict, List, Optional, Sequence, Set, Union

from bs4 import BeautifulSoup, Comment, NavigableString, Tag

from pagecopy.config import DetectorSettings

from .classifier import (
    CONTAINER_TAGS,
    Classification,
    SlotKind,
    classify,
    label_tier,
    semantic_type_for,
)
from .schemas import ContentRegion, DetectionResult

logger = logging.getLogger(__name__)

_SLUG = re.compile(r"[^a-z0-9]+")
_WORD_START = re.compile(r"\b\w")
_WHITESPACE = re.compile(r"\s+")
_PAGE_TAGS = frozenset({"html", "body", "main"})


def _collapse(text: str) -> str:
    return _WHITESPACE.sub(" ", text).strip()


class SoupNode:
    """:class:`NodeView` over a BeautifulSoup ``Tag``."""

    __slots__ = ("element",)

    def __init__(self, element: Tag) -> None:
        self.element = element

    @property
    def tag(self) -> str:
        return (self.element.name or "").lower()

    @property
    def parent(self) -> Optional["SoupNode"]:
        parent = self.element.parent
        if parent is None or isinstance(parent, BeautifulSoup):
            return None
        return SoupNode(parent)

    def attr(self, name: str) -> Optional[str]:
        value = self.element.get(name)
        if isinstance(value, list):
            return " ".join(value)
        return value

    def text(self) -> str:
        return _collapse(self.element.get_text(" "))

    def direct_text(self) -> str:
        pieces = [
            str(child)
            for child in self.element.children
            if isinstance(child, NavigableString) and not isinstance(child, Comment)
        ]
        return _collapse(" ".join(pieces))

    def element_children(self) -> Sequence["SoupNode"]:
        return [SoupNode(child) for child in self.element.children if isinstance(child, Tag)]


def slugify(text: str, max_length: int = 40) -> str:
    return _SLUG.sub("_", text.lower()).strip("_")[:max_length].strip("_")


def capitalize_id(slot_id: str) -> str:
    return _WORD_START.sub(lambda m: m.group(0).upper(), slot_id.replace("_", " "))


def _page_wrappers(root: Union[Tag, BeautifulSoup]) -> List[Tag]:
    """Chain of lone containers below the root; each one spans the whole page."""

    wrappers: List[Tag] = []
    current = root
    while True:
        children = [child for child in current.children if isinstance(child, Tag)]
        if len(children) != 1:
            return wrappers
        name = (children[0].name or "").lower()
        if name not in CONTAINER_TAGS and name not in _PAGE_TAGS:
            return wrappers
        current = children[0]
        if name in CONTAINER_TAGS:
            wrappers.append(current)


class SlotDetector:
    """Single-use walker: construct, call :meth:`detect`, read the result."""

    def __init__(self, settings: Optional[DetectorSettings] = None) -> None:
        self.settings = settings or DetectorSettings()
        self._slots: List[ContentRegion] = []
        self._ids: Set[str] = set()
        self._tier_counts: Dict[str, int] = defaultdict(int)
        self._page_wrappers: List[Tag] = []

    def detect(self, html: str) -> DetectionResult:
        soup = BeautifulSoup(html or "", "html.parser")
        marker = self.settings.marker_attribute
        for marked in soup.find_all(attrs={marker: True}):
            del marked[marker]

        root: Union[Tag, BeautifulSoup] = soup.body or soup
        self._page_wrappers = _page_wrappers(root)
        for child in root.children:
            if isinstance(child, Tag):
                self._visit(child)

        marked_html = soup.body.decode_contents() if soup.body else str(soup)
        logger.info("Detected %d slots", len(self._slots))
        return DetectionResult(marked_html=marked_html, slots=list(self._slots))

    def _visit(self, element: Tag) -> bool:
        """Walk ``element``'s subtree; True when anything in it became a slot."""

        node = SoupNode(element)
        if node.tag in CONTAINER_TAGS:
            found = False
            for child in node.element_children():
                found = self._visit(child.element) or found
            classification = classify(
                node,
                self.settings,
                is_root=any(element is wrapper for wrapper in self._page_wrappers),
                has_classified_descendant=found,
            )
        else:
            classification = classify(node, self.settings)

        if classification is not None and classification.kind is SlotKind.EXCLUDED:
            return False
        if classification is not None:
            self._accept(node, classification)
            # Accepted elements are consumed
            return True
        if node.tag in CONTAINER_TAGS:
            return found

        found = False
        for child in node.element_children():
            found = self._visit(child.element) or found
        return found

    def _slot_id(self, node: SoupNode) -> str:
        seed = node.text()[: self.settings.id_text_length]
        if not seed:
            seed = node.attr("alt") or node.attr("title") or node.attr("href") or ""
        base = slugify(seed, self.settings.max_id_length)
        if not base:
            base = f"{node.tag}_{len(self._slots)}"
        slot_id = base
        suffix = 1
        while slot_id in self._ids:
            slot_id = f"{base}_{suffix}"
            suffix += 1
        return slot_id

    def _accept(self, node: SoupNode, classification: Classification) -> None:
        slot_id = self._slot_id(node)
        tier = label_tier(classification)
        self._tier_counts[tier] += 1
        node.element[self.settings.marker_attribute] = slot_id
        self._ids.add(slot_id)
        self._slots.append(
            ContentRegion(
                id=slot_id,
                semantic_type=semantic_type_for(classification),
                label=f"{tier} {self._tier_counts[tier]}: {capitalize_id(slot_id)}",
            )
        )
        logger.debug("Slot %s (%s) on <%s>", slot_id, classification.kind.value, node.tag)


__all__ = ["SlotDetector", "SoupNode", "capitalize_id", "slugify"]
