"""Serialize writer events into an HTML string."""
from __future__ import annotations

import html
from typing import List, Mapping, Optional

BLOCK_TAGS = frozenset(
    {
        "p", "h1", "h2", "h3", "h4", "h5", "h6",
        "ul", "ol", "li", "table", "thead", "tbody", "tr", "td", "th",
        "div", "blockquote", "pre", "dl", "dt", "dd",
    }
)


def _escape_attribute(value: object) -> str:
    return html.escape(str(value), quote=False).replace('"', "&quot;")


def _format_attributes(attributes: Optional[Mapping[str, str]]) -> str:
    if not attributes:
        return ""
    return "".join(f' {name}="{_escape_attribute(value)}"' for name, value in attributes.items())


class HtmlWriter:
    """Write compact HTML, e.g. ``<p>Hello <strong>World</strong></p>``."""

    def __init__(self) -> None:
        self._fragments: List[str] = []

    def open(self, tag_name: str, attributes: Optional[Mapping[str, str]] = None) -> None:
        self._fragments.append(f"<{tag_name}{_format_attributes(attributes)}>")

    def close(self, tag_name: str) -> None:
        self._fragments.append(f"</{tag_name}>")

    def text(self, value: str) -> None:
        self._fragments.append(html.escape(value, quote=False))

    def self_closing(self, tag_name: str, attributes: Optional[Mapping[str, str]] = None) -> None:
        self._fragments.append(f"<{tag_name}{_format_attributes(attributes)} />")

    def as_string(self) -> str:
        return "".join(self._fragments)


class PrettyHtmlWriter(HtmlWriter):
    """Put block elements on their own lines, indented by nesting depth.

    Inline content inside a block is written on one indented line.
    """

    def __init__(self, indent: str = "  ") -> None:
        super().__init__()
        self._indent = indent
        self._depth = 0
        self._inline_open = False

    def _newline(self) -> None:
        if self._fragments:
            self._fragments.append("\n" + self._indent * self._depth)

    def _start_inline(self) -> None:
        if not self._inline_open:
            self._newline()
            self._inline_open = True

    def open(self, tag_name: str, attributes: Optional[Mapping[str, str]] = None) -> None:
        if tag_name in BLOCK_TAGS:
            self._inline_open = False
            self._newline()
            super().open(tag_name, attributes)
            self._depth += 1
        else:
            self._start_inline()
            super().open(tag_name, attributes)

    def close(self, tag_name: str) -> None:
        if tag_name in BLOCK_TAGS:
            self._inline_open = False
            self._depth -= 1
            self._newline()
        super().close(tag_name)

    def text(self, value: str) -> None:
        self._start_inline()
        super().text(value)

    def self_closing(self, tag_name: str, attributes: Optional[Mapping[str, str]] = None) -> None:
        self._start_inline()
        super().self_closing(tag_name, attributes)
