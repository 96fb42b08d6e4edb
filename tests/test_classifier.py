from typing import Dict, List, Optional

import pytest

from pagecopy.agents.template_detection.classifier import (
    Classification,
    SlotKind,
    classify,
    is_excluded,
    label_tier,
    looks_like_content_block,
    semantic_type_for,
)
from pagecopy.config import DetectorSettings
from pagecopy.generation.models import SemanticType

SETTINGS = DetectorSettings()


class FakeNode:
    """Hand-built tree node; no HTML parser involved."""

    def __init__(self, tag: str, direct: str = "", *children: "FakeNode", **attrs: str) -> None:
        self.tag = tag
        self.parent: Optional[FakeNode] = None
        self._direct = direct
        self._children: List[FakeNode] = list(children)
        self._attrs: Dict[str, str] = {k.rstrip("_"): v for k, v in attrs.items()}
        for child in self._children:
            child.parent = self

    def attr(self, name: str) -> Optional[str]:
        return self._attrs.get(name)

    def text(self) -> str:
        parts = [self._direct] + [child.text() for child in self._children]
        return " ".join(p for p in parts if p)

    def direct_text(self) -> str:
        return self._direct

    def element_children(self) -> List["FakeNode"]:
        return self._children


@pytest.mark.parametrize("level", range(1, 7))
def test_headings_carry_their_level(level):
    assert classify(FakeNode(f"h{level}", "Title")) == Classification(SlotKind.HEADING, level)


def test_empty_heading_is_not_a_slot():
    assert classify(FakeNode("h2")) is None


def test_paragraph_length_threshold():
    assert classify(FakeNode("p", "x" * 10)) == Classification(SlotKind.PARAGRAPH)
    assert classify(FakeNode("p", "x" * 9)) is None


def test_threshold_is_configurable():
    assert classify(FakeNode("p", "tiny"), DetectorSettings(min_paragraph_length=3)).kind is SlotKind.PARAGRAPH


@pytest.mark.parametrize("tag", ["ul", "ol"])
def test_lists_with_text(tag):
    assert classify(FakeNode(tag, "", FakeNode("li", "one"))).kind is SlotKind.LIST
    assert classify(FakeNode(tag)) is None


def test_images_always_qualify():
    assert classify(FakeNode("img", src="a.png")).kind is SlotKind.IMAGE


def test_links_need_href_and_text():
    assert classify(FakeNode("a", "Buy now", href="/buy")).kind is SlotKind.LINK
    assert classify(FakeNode("a", "Buy now")) is None
    assert classify(FakeNode("a", "", href="/buy")) is None


@pytest.mark.parametrize("tag", ["nav", "header", "footer", "script", "style"])
def test_structural_tags_are_excluded(tag):
    assert classify(FakeNode(tag, "whatever")).kind is SlotKind.EXCLUDED


@pytest.mark.parametrize(
    "attrs",
    [
        {"class_": "ad-banner"},
        {"class_": "main-menu"},
        {"id": "cookie-banner"},
        {"class_": "site-navbar"},
        {"class_": "sponsored box"},
        {"class_": "tracking-pixel"},
        {"class_": "modal"},
    ],
)
def test_non_content_markers_exclude_the_subtree(attrs):
    child = FakeNode("p", "Buy now from our partners")
    FakeNode("div", "", child, **attrs)

    assert is_excluded(child)
    assert classify(child).kind is SlotKind.EXCLUDED


@pytest.mark.parametrize(
    "class_name",
    ["header-image", "loading", "shadow", "download", "bg-navy", "text-navy", "trackpad-demo", "navy-theme"],
)
def test_marker_words_inside_other_words_do_not_exclude(class_name):
    child = FakeNode("p", "Real content paragraph")
    FakeNode("div", "", child, class_=class_name)

    assert not is_excluded(child)


def test_heading_plus_paragraphs_is_a_content_block():
    card = FakeNode(
        "div",
        "",
        FakeNode("strong", "Fast results"),
        FakeNode("span", "Works within two weeks."),
        FakeNode("span", "No sugar crash at all."),
    )

    assert looks_like_content_block(card, SETTINGS)
    assert classify(card) == Classification(SlotKind.CONTENT_BLOCK)


def test_bare_text_container_is_a_content_block():
    node = FakeNode("div", "A run of bare text that is comfortably over forty characters long.")

    assert classify(node).kind is SlotKind.CONTENT_BLOCK


def test_two_paragraph_like_children_make_a_block():
    node = FakeNode("section", "", FakeNode("div", "First paragraph here"), FakeNode("div", "Second paragraph here"))

    assert looks_like_content_block(node, SETTINGS)


def test_too_many_children_is_not_a_block():
    children = [FakeNode("span", "Paragraph-ish text") for _ in range(11)]

    assert not looks_like_content_block(FakeNode("div", "", *children), SETTINGS)


def test_layout_wrapper_is_not_a_block():
    wrapper = FakeNode("div", "", FakeNode("section", "", FakeNode("div", "Inner content here")), FakeNode("img"))

    assert classify(wrapper) is None


def test_containers_are_skipped_when_root_or_already_covered():
    card = FakeNode("div", "A run of bare text that is comfortably over forty characters long.")

    assert classify(card, is_root=True) is None
    assert classify(card, has_classified_descendant=True) is None


@pytest.mark.parametrize(
    "classification, semantic_type, tier",
    [
        (Classification(SlotKind.HEADING, 1), SemanticType.HEADLINE, "Headline"),
        (Classification(SlotKind.HEADING, 2), SemanticType.SUBHEADLINE, "Subheadline"),
        (Classification(SlotKind.HEADING, 3), SemanticType.SUBHEADLINE, "Section Header"),
        (Classification(SlotKind.HEADING, 5), SemanticType.SUBHEADLINE, "Minor Header"),
        (Classification(SlotKind.PARAGRAPH), SemanticType.PARAGRAPH, "Paragraph"),
        (Classification(SlotKind.LIST), SemanticType.LIST, "List"),
        (Classification(SlotKind.IMAGE), SemanticType.IMAGE, "Image"),
        (Classification(SlotKind.LINK), SemanticType.CTA, "Link"),
        (Classification(SlotKind.CONTENT_BLOCK), SemanticType.PARAGRAPH, "Content Block"),
    ],
)
def test_semantic_types_and_label_tiers(classification, semantic_type, tier):
    assert semantic_type_for(classification) is semantic_type
    assert label_tier(classification) == tier


def test_excluded_nodes_have_no_semantic_type():
    with pytest.raises(ValueError):
        semantic_type_for(Classification(SlotKind.EXCLUDED))
