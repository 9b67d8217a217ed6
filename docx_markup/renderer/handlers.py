"""Pluggable conversion handlers and the builder handle passed to them.

A handler is any callable ``handler(node, html, messages)`` where ``html`` is
an :class:`ElementBuilder` collecting the replacement markup and
``messages`` the conversion's :class:`MessageSink`. It may be a coroutine
function.
"""
from __future__ import annotations

import base64
import inspect
from typing import Awaitable, Callable, Dict, List, Mapping, Optional, Protocol, Sequence, Union

from docx_markup.model.documents import DocumentNode, Image
from docx_markup.model.html import (
    ElementNode,
    HtmlNode,
    HtmlPath,
    PathElement,
    TextNode,
    element,
    self_closing_element,
)
from docx_markup.model.results import MessageSink

DEFAULT_CONTENT_TYPE = "application/octet-stream"

NodeConverter = Callable[[Sequence[DocumentNode], MessageSink], Awaitable[List[HtmlNode]]]
ImageAttributes = Callable[[Image], Union[Mapping[str, str], Awaitable[Mapping[str, str]]]]


class ElementHandler(Protocol):
    def __call__(
        self, node: DocumentNode, html: "ElementBuilder", messages: MessageSink
    ) -> Optional[Awaitable[None]]: ...


class ElementBuilder:
    """Collects the markup emitted by a handler for one document node.

    ``children`` holds content already converted on the handler's behalf
    (the run content for underline handlers, empty otherwise).
    """

    def __init__(
        self,
        convert: NodeConverter,
        messages: MessageSink,
        children: Optional[Sequence[HtmlNode]] = None,
    ) -> None:
        self._convert = convert
        self._messages = messages
        self.children: List[HtmlNode] = list(children or [])
        self.nodes: List[HtmlNode] = []

    def append(self, node: HtmlNode) -> HtmlNode:
        self.nodes.append(node)
        return node

    def text(self, value: str) -> TextNode:
        node = TextNode(value)
        self.nodes.append(node)
        return node

    def element(
        self,
        tag_name: str,
        attributes: Optional[Mapping[str, str]] = None,
        children: Optional[Sequence[HtmlNode]] = None,
        *,
        fresh: bool = False,
    ) -> ElementNode:
        node = element(tag_name, attributes, children, fresh=fresh)
        self.nodes.append(node)
        return node

    def self_closing(self, tag_name: str, attributes: Optional[Mapping[str, str]] = None) -> ElementNode:
        node = self_closing_element(tag_name, attributes)
        self.nodes.append(node)
        return node

    def wrap(self, path: HtmlPath, children: Sequence[HtmlNode]) -> List[HtmlNode]:
        wrapped = path.wrap(children)
        self.nodes.extend(wrapped)
        return wrapped

    async def convert(self, nodes: Sequence[DocumentNode]) -> List[HtmlNode]:
        """Run the built-in conversion on ``nodes`` without emitting them."""
        return await self._convert(nodes, self._messages)


async def call_handler(
    handler: ElementHandler,
    node: DocumentNode,
    html: ElementBuilder,
    messages: MessageSink,
) -> List[HtmlNode]:
    result = handler(node, html, messages)
    if inspect.isawaitable(result):
        await result
    return html.nodes


def inline(func: ImageAttributes) -> ElementHandler:
    """Build an image handler emitting ``<img>`` with the attributes from ``func``.

    The image's alt text is added unless ``func`` supplies its own ``alt``.
    """

    async def convert_image(image: Image, html: ElementBuilder, messages: MessageSink) -> None:
        attributes = func(image)
        if inspect.isawaitable(attributes):
            attributes = await attributes
        attributes = dict(attributes)
        if image.alt_text and "alt" not in attributes:
            attributes["alt"] = image.alt_text
        html.self_closing("img", attributes)

    return convert_image


async def data_uri(image: Image) -> Dict[str, str]:
    """Return a ``src`` attribute embedding the image as base64."""
    encoded = await image.read("base64")
    if isinstance(encoded, bytes):
        encoded = base64.b64encode(encoded).decode("ascii")
    content_type = image.content_type or DEFAULT_CONTENT_TYPE
    return {"src": f"data:{content_type};base64,{encoded}"}


default_image_handler = inline(data_uri)


def underline_element(tag_name: str, attributes: Optional[Mapping[str, str]] = None) -> ElementHandler:
    """Build an underline handler wrapping the run content in ``tag_name``."""
    path = HtmlPath((PathElement(tag_name, tuple((attributes or {}).items())),))

    def convert_underline(node: DocumentNode, html: ElementBuilder, messages: MessageSink) -> None:
        html.wrap(path, html.children)

    return convert_underline
