"""Plain-text normalization of HTML fragments returned by the model."""

from __future__ import annotations

import logging
from html.parser import HTMLParser
from typing import List

logger = logging.getLogger(__name__)

_BREAK_BEFORE = ("p", "br", "div", "li")
_BREAK_AFTER = ("p", "li", "div", "ul", "ol", "h1", "h2", "h3", "h4", "h5", "h6")


class _MiniHTMLToText(HTMLParser):
    def __init__(self) -> None:
        super().__init__(convert_charrefs=True)
        self.buf: List[str] = []

    def _break(self) -> None:
        if self.buf and not self.buf[-1].endswith("\n"):
            self.buf.append("\n")

    def handle_starttag(self, tag: str, attrs):
        if tag in _BREAK_BEFORE:
            self._break()

    def handle_startendtag(self, tag: str, attrs):
        if tag == "br":
            self.buf.append("\n")

    def handle_endtag(self, tag: str):
        if tag in _BREAK_AFTER:
            self._break()

    def handle_data(self, data: str):
        if data:
            self.buf.append(data)


def strip_markup(source: str) -> str:
    """Drop tags from model output, turning block tags into line breaks.

    Entities are decoded. Text without ``<`` or ``&`` is returned trimmed.
    """

    if "<" not in source and "&" not in source:
        return source.strip()
    parser = _MiniHTMLToText()
    try:
        parser.feed(source)
        parser.close()
        text = "".join(parser.buf)
    except Exception:
        logger.warning("Could not parse markup in model output; keeping raw text", exc_info=True)
        text = source
    lines = [line.strip() for line in text.splitlines()]
    return "\n".join(line for line in lines if line).strip()


__all__ = ["strip_markup"]
