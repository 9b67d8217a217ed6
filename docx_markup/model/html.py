"""Abstract markup tree produced by the converter and consumed by writers."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union


@dataclass(slots=True)
class TextNode:
    """Literal text, escaped by the HTML writer."""

    value: str


@dataclass(slots=True)
class ElementNode:
    """Markup element.

    ``fresh`` elements are never merged into an identical preceding sibling
    when the tree is collapsed.
    """

    tag_name: str
    attributes: Dict[str, str] = field(default_factory=dict)
    children: List["HtmlNode"] = field(default_factory=list)
    fresh: bool = False
    self_closing: bool = False

    def matches(self, other: "ElementNode") -> bool:
        return (
            self.tag_name == other.tag_name
            and self.attributes == other.attributes
            and not self.self_closing
            and not other.self_closing
        )


HtmlNode = Union[TextNode, ElementNode]


def text(value: str) -> TextNode:
    return TextNode(value)


def element(
    tag_name: str,
    attributes: Optional[Mapping[str, str]] = None,
    children: Optional[Iterable[HtmlNode]] = None,
    *,
    fresh: bool = False,
) -> ElementNode:
    return ElementNode(
        tag_name=tag_name,
        attributes=dict(attributes or {}),
        children=list(children or []),
        fresh=fresh,
    )


def self_closing_element(tag_name: str, attributes: Optional[Mapping[str, str]] = None) -> ElementNode:
    return ElementNode(tag_name=tag_name, attributes=dict(attributes or {}), self_closing=True)


def has_content(nodes: Iterable[HtmlNode]) -> bool:
    """Return True unless every node is an empty text node."""
    for node in nodes:
        if isinstance(node, ElementNode) or node.value:
            return True
    return False


def collapse(nodes: Iterable[HtmlNode]) -> List[HtmlNode]:
    """Merge adjacent identical elements unless the later one is fresh."""
    collapsed: List[HtmlNode] = []
    for node in nodes:
        _append_collapsed(collapsed, _collapse_node(node))
    return collapsed


def _collapse_node(node: HtmlNode) -> HtmlNode:
    if isinstance(node, ElementNode) and not node.self_closing:
        return ElementNode(
            tag_name=node.tag_name,
            attributes=dict(node.attributes),
            children=collapse(node.children),
            fresh=node.fresh,
        )
    return node


def _append_collapsed(siblings: List[HtmlNode], node: HtmlNode) -> None:
    last = siblings[-1] if siblings else None
    if (
        isinstance(node, ElementNode)
        and isinstance(last, ElementNode)
        and not node.fresh
        and last.matches(node)
    ):
        for child in node.children:
            _append_collapsed(last.children, child)
    else:
        siblings.append(node)


@dataclass(frozen=True, slots=True)
class PathElement:
    """One step of a target path, e.g. ``li:fresh`` or ``div.aside``."""

    tag_name: str
    attributes: Tuple[Tuple[str, str], ...] = ()
    fresh: bool = False

    def wrap(self, children: Sequence[HtmlNode]) -> ElementNode:
        return element(self.tag_name, dict(self.attributes), children, fresh=self.fresh)


@dataclass(frozen=True, slots=True)
class HtmlPath:
    """Sequence of elements, outermost first, that content is wrapped in."""

    elements: Tuple[PathElement, ...] = ()
    ignored: bool = False

    @classmethod
    def empty(cls) -> "HtmlPath":
        return cls()

    @classmethod
    def ignore(cls) -> "HtmlPath":
        return cls(ignored=True)

    @classmethod
    def of(cls, *tag_names: str, fresh: bool = False) -> "HtmlPath":
        """Build a path from bare tag names; ``fresh`` applies to every element."""
        return cls(tuple(PathElement(tag_name, fresh=fresh) for tag_name in tag_names))

    @property
    def fresh(self) -> bool:
        return bool(self.elements) and self.elements[-1].fresh

    def wrap(self, children: Sequence[HtmlNode]) -> List[HtmlNode]:
        if self.ignored:
            return []
        nodes: List[HtmlNode] = list(children)
        for path_element in reversed(self.elements):
            nodes = [path_element.wrap(nodes)]
        return nodes
