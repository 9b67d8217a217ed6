"""Common helpers shared by writer implementations."""
from __future__ import annotations

from typing import Iterable, Mapping, Optional, Protocol

from docx_markup.model.html import ElementNode, HtmlNode
from docx_markup.renderer.html_writer import HtmlWriter, PrettyHtmlWriter
from docx_markup.renderer.markdown_writer import MarkdownWriter

HTML = "html"
MARKDOWN = "markdown"
OUTPUT_FORMATS = (HTML, MARKDOWN)


class Writer(Protocol):
    def open(self, tag_name: str, attributes: Optional[Mapping[str, str]] = None) -> None: ...
    def close(self, tag_name: str) -> None: ...
    def text(self, value: str) -> None: ...
    def self_closing(self, tag_name: str, attributes: Optional[Mapping[str, str]] = None) -> None: ...
    def as_string(self) -> str: ...


def create_writer(output_format: str, *, pretty_print: bool = False) -> Writer:
    if output_format == HTML:
        return PrettyHtmlWriter() if pretty_print else HtmlWriter()
    if output_format == MARKDOWN:
        return MarkdownWriter()
    raise ValueError(f"output format must be one of {', '.join(OUTPUT_FORMATS)}, got {output_format!r}")


def write_nodes(nodes: Iterable[HtmlNode], writer: Writer) -> None:
    """Replay a markup tree as open/close/text/self-closing events."""
    for node in nodes:
        if isinstance(node, ElementNode):
            if node.self_closing:
                writer.self_closing(node.tag_name, node.attributes)
            else:
                writer.open(node.tag_name, node.attributes)
                write_nodes(node.children, writer)
                writer.close(node.tag_name)
        else:
            writer.text(node.value)


def render(nodes: Iterable[HtmlNode], output_format: str, *, pretty_print: bool = False) -> str:
    writer = create_writer(output_format, pretty_print=pretty_print)
    write_nodes(nodes, writer)
    return writer.as_string()
