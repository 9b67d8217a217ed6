"""Match document nodes against compiled style-map rules."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Sequence

from docx_markup.model.html import HtmlPath
from docx_markup.model.results import MessageSink

PARAGRAPH = "p"
RUN = "r"
TABLE = "table"
BOLD = "b"
ITALIC = "i"
UNDERLINE = "u"

STYLED_KINDS = (PARAGRAPH, RUN, TABLE)
FORMATTING_KINDS = (BOLD, ITALIC, UNDERLINE)
ELEMENT_KINDS = STYLED_KINDS + FORMATTING_KINDS

KIND_NAMES = {
    PARAGRAPH: "paragraph",
    RUN: "run",
    TABLE: "table",
    BOLD: "bold",
    ITALIC: "italic",
    UNDERLINE: "underline",
}


def has_explicit_style(node: object) -> bool:
    return getattr(node, "style_id", None) is not None or getattr(node, "style_name", None) is not None


@dataclass(frozen=True, slots=True)
class DocumentMatcher:
    """Predicate over a node's kind, style and list membership.

    Without a style or list predicate the matcher only accepts unstyled
    nodes of its kind. Formatting kinds (``b``, ``i``, ``u``) match on kind
    alone.
    """

    element_kind: str
    style_id: Optional[str] = None
    style_name: Optional[str] = None
    list_level: Optional[int] = None
    is_ordered_list: Optional[bool] = None

    @property
    def has_style_predicate(self) -> bool:
        return self.style_id is not None or self.style_name is not None

    @property
    def has_list_predicate(self) -> bool:
        return self.list_level is not None

    def matches(self, element_kind: str, node: object) -> bool:
        if element_kind != self.element_kind:
            return False
        if self.element_kind in FORMATTING_KINDS:
            return True

        if self.has_style_predicate:
            if self.style_id is not None and self.style_id != getattr(node, "style_id", None):
                return False
            if self.style_name is not None and self.style_name != getattr(node, "style_name", None):
                return False
        elif not self.has_list_predicate and has_explicit_style(node):
            return False

        if self.has_list_predicate:
            numbering = getattr(node, "numbering", None)
            if numbering is None:
                return False
            if numbering.level != self.list_level or numbering.is_ordered != self.is_ordered_list:
                return False
        return True


def paragraph(
    style_id: Optional[str] = None,
    style_name: Optional[str] = None,
    list_level: Optional[int] = None,
    is_ordered_list: Optional[bool] = None,
) -> DocumentMatcher:
    return DocumentMatcher(PARAGRAPH, style_id, style_name, list_level, is_ordered_list)


def run(style_id: Optional[str] = None, style_name: Optional[str] = None) -> DocumentMatcher:
    return DocumentMatcher(RUN, style_id, style_name)


def table(style_id: Optional[str] = None, style_name: Optional[str] = None) -> DocumentMatcher:
    return DocumentMatcher(TABLE, style_id, style_name)


def bold() -> DocumentMatcher:
    return DocumentMatcher(BOLD)


def italic() -> DocumentMatcher:
    return DocumentMatcher(ITALIC)


def underline() -> DocumentMatcher:
    return DocumentMatcher(UNDERLINE)


@dataclass(frozen=True, slots=True)
class StyleRule:
    """Compiled ``selector => target`` rule."""

    matcher: DocumentMatcher
    path: HtmlPath

    @property
    def fresh(self) -> bool:
        return self.path.fresh


class StyleMatcher:
    """Ordered rule lookup; the first matching rule wins."""

    def __init__(self, rules: Sequence[StyleRule]) -> None:
        self._rules = tuple(rules)

    @property
    def rules(self) -> Sequence[StyleRule]:
        return self._rules

    def find_path(self, element_kind: str, node: object) -> Optional[HtmlPath]:
        for rule in self._rules:
            if rule.matcher.matches(element_kind, node):
                return rule.path
        return None

    def resolve(self, element_kind: str, node: object, default_path: HtmlPath, messages: MessageSink) -> HtmlPath:
        """Return the mapped path, warning when an explicit style has no rule."""
        path = self.find_path(element_kind, node)
        if path is not None:
            return path
        if has_explicit_style(node):
            style_name = getattr(node, "style_name", None) or ""
            style_id = getattr(node, "style_id", None) or ""
            messages.warning(
                f"Unrecognised {KIND_NAMES[element_kind]} style: '{style_name}' (Style ID: {style_id})"
            )
        return default_path
