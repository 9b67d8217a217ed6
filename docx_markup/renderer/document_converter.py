"""Convert document trees into abstract markup trees.

Each call to :meth:`DocumentConverter.convert` runs in two phases. A
reference pass walks the tree with an explicit stack, collecting the
bookmark names that hyperlinks point at and numbering note references in
document order. The conversion pass then dispatches on node type; sibling
subtrees are converted as concurrent coroutines and reassembled by index,
so image reads may complete in any order without reordering the output.
"""
from __future__ import annotations

import asyncio
from dataclasses import replace
from typing import Awaitable, Callable, Dict, Iterable, List, Optional, Sequence, Set, Tuple

from docx_markup.model.documents import (
    NOTE_TYPES,
    BookmarkStart,
    Document,
    DocumentNode,
    Hyperlink,
    Image,
    LineBreak,
    Note,
    NoteReference,
    Notes,
    Paragraph,
    Run,
    Tab,
    Table,
    TableCell,
    TableRow,
    Text,
    VerticalAlignment,
)
from docx_markup.model.html import (
    HtmlNode,
    HtmlPath,
    PathElement,
    collapse,
    element,
    has_content,
    self_closing_element,
    text,
)
from docx_markup.model.options import RAISE, ConversionOptions
from docx_markup.model.results import MessageSink, Result
from docx_markup.parser.document_matchers import (
    BOLD,
    ITALIC,
    PARAGRAPH,
    RUN,
    TABLE,
    UNDERLINE,
    StyleMatcher,
)
from docx_markup.parser.style_map_parser import read_style_map
from docx_markup.renderer.handlers import ElementBuilder, call_handler, default_image_handler
from docx_markup.renderer.utils import HTML, MARKDOWN, render
from docx_markup.utils.logger import get_logger

LOGGER = get_logger(__name__)

DEFAULT_PARAGRAPH_PATH = HtmlPath((PathElement("p", fresh=True),))
DEFAULT_RUN_PATH = HtmlPath.empty()
DEFAULT_TABLE_PATH = HtmlPath((PathElement("table", fresh=True),))
BOLD_PATH = HtmlPath.of("strong")
ITALIC_PATH = HtmlPath.of("em")
SUPERSCRIPT_PATH = HtmlPath.of("sup")
SUBSCRIPT_PATH = HtmlPath.of("sub")
NOTE_BACK_LINK_TEXT = "↑"

NoteKey = Tuple[str, str]


async def _gather_in_order(coroutines: Iterable[Awaitable[List[HtmlNode]]]) -> List[List[HtmlNode]]:
    """Await all coroutines concurrently; results keep the input order.

    The first failure cancels the remaining tasks, waits for them to settle
    and propagates.
    """
    tasks = [asyncio.ensure_future(coroutine) for coroutine in coroutines]
    try:
        return await asyncio.gather(*tasks)
    except BaseException:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        raise


class _ConversionState:
    """Per-call id generation, bookmark targets and note numbering."""

    def __init__(self, notes: Notes, id_prefix: str, uniquifier: str) -> None:
        self.notes = notes
        self._id_prefix = id_prefix
        self._uniquifier = uniquifier
        self.referenced_anchors: Set[str] = set()
        self.note_order: Dict[str, List[str]] = {note_type: [] for note_type in NOTE_TYPES}
        self._ordinals: Dict[NoteKey, int] = {}
        self._first_references: Set[int] = set()

    def html_id(self, suffix: str) -> str:
        return "-".join(part for part in (self._id_prefix, self._uniquifier, suffix) if part)

    def register_note(self, note_type: str, note_id: str) -> int:
        key = (note_type, str(note_id))
        if key not in self._ordinals:
            order = self.note_order.setdefault(note_type, [])
            order.append(key[1])
            self._ordinals[key] = len(order)
        return self._ordinals[key]

    def is_first_reference(self, reference: NoteReference) -> bool:
        return id(reference) in self._first_references

    def scan(self, root: DocumentNode) -> None:
        """Collect hyperlink anchors and number note references in document order."""
        pending: List[NoteKey] = []
        self._scan_nodes([root], pending)
        index = 0
        while index < len(pending):
            note = self.notes.find_note(*pending[index])
            if note is not None:
                self._scan_nodes(note.body, pending)
            index += 1

    def _scan_nodes(self, nodes: Sequence[DocumentNode], pending: List[NoteKey]) -> None:
        stack = list(reversed(nodes))
        while stack:
            node = stack.pop()
            if isinstance(node, Hyperlink) and node.anchor is not None:
                self.referenced_anchors.add(node.anchor)
            elif isinstance(node, NoteReference):
                key = (node.note_type, str(node.note_id))
                if key not in self._ordinals:
                    self._first_references.add(id(node))
                    pending.append(key)
                self.register_note(node.note_type, node.note_id)
            stack.extend(reversed(getattr(node, "children", ())))


class _DocumentConversion:
    """Conversion of one tree; never reused across calls."""

    def __init__(self, options: ConversionOptions, style_matcher: StyleMatcher, state: _ConversionState) -> None:
        self._options = options
        self._style_matcher = style_matcher
        self._state = state
        self._element_handlers = dict(options.element_handlers)
        self._converters: Dict[type, Callable[..., Awaitable[List[HtmlNode]]]] = {
            Document: self._convert_document,
            Paragraph: self._convert_paragraph,
            Run: self._convert_run,
            Text: self._convert_text,
            Table: self._convert_table,
            TableRow: self._convert_table_row,
            TableCell: self._convert_table_cell,
            Hyperlink: self._convert_hyperlink,
            Image: self._convert_image,
            Tab: self._convert_tab,
            LineBreak: self._convert_line_break,
            BookmarkStart: self._convert_bookmark_start,
            NoteReference: self._convert_note_reference,
        }

    async def convert_nodes(self, nodes: Sequence[DocumentNode], messages: MessageSink) -> List[HtmlNode]:
        """Convert siblings concurrently and reassemble them in document order."""
        nodes = list(nodes)
        if not nodes:
            return []
        sinks = [MessageSink() for _ in nodes]
        converted = await _gather_in_order(self.convert_node(node, sink) for node, sink in zip(nodes, sinks))
        result: List[HtmlNode] = []
        for sink, child_nodes in zip(sinks, converted):
            messages.extend(sink.messages)
            result.extend(child_nodes)
        return result

    async def convert_node(self, node: DocumentNode, messages: MessageSink) -> List[HtmlNode]:
        handler = self._element_handlers.get(type(node))
        if handler is not None:
            return await call_handler(handler, node, self._builder(messages), messages)
        converter = self._converters.get(type(node))
        if converter is None:
            raise TypeError(f"Cannot convert document node of type {type(node).__name__}")
        return await converter(node, messages)

    def _builder(self, messages: MessageSink, children: Optional[Sequence[HtmlNode]] = None) -> ElementBuilder:
        return ElementBuilder(self.convert_nodes, messages, children)

    async def _convert_document(self, document: Document, messages: MessageSink) -> List[HtmlNode]:
        body = await self.convert_nodes(document.children, messages)
        return body + await self._convert_notes(messages)

    async def _convert_notes(self, messages: MessageSink) -> List[HtmlNode]:
        note_lists: List[HtmlNode] = []
        for note_type in NOTE_TYPES:
            notes: List[Tuple[Note, int]] = []
            for ordinal, note_id in enumerate(self._state.note_order.get(note_type, []), start=1):
                note = self._state.notes.find_note(note_type, note_id)
                if note is not None:
                    notes.append((note, ordinal))
            if not notes:
                continue
            sinks = [MessageSink() for _ in notes]
            items = await _gather_in_order(
                self._convert_note(note, ordinal, sink) for (note, ordinal), sink in zip(notes, sinks)
            )
            for sink in sinks:
                messages.extend(sink.messages)
            note_lists.append(element("ol", children=[item for group in items for item in group], fresh=True))
        return note_lists

    async def _convert_note(self, note: Note, ordinal: int, messages: MessageSink) -> List[HtmlNode]:
        body = await self.convert_nodes(note.body, messages)
        back_link = element(
            "a",
            {"href": "#" + self._state.html_id(f"{note.note_type}-ref-{ordinal}")},
            [text(NOTE_BACK_LINK_TEXT)],
            fresh=True,
        )
        # Non-fresh, so collapse() folds it into a trailing paragraph.
        body.append(element("p", children=[text(" "), back_link]))
        note_id = self._state.html_id(f"{note.note_type}-{note.note_id}")
        return [element("li", {"id": note_id}, body, fresh=True)]

    async def _convert_paragraph(self, paragraph: Paragraph, messages: MessageSink) -> List[HtmlNode]:
        path = self._style_matcher.resolve(PARAGRAPH, paragraph, DEFAULT_PARAGRAPH_PATH, messages)
        children = await self.convert_nodes(paragraph.children, messages)
        if not has_content(children):
            return []
        return path.wrap(children)

    async def _convert_run(self, run: Run, messages: MessageSink) -> List[HtmlNode]:
        path = self._style_matcher.resolve(RUN, run, DEFAULT_RUN_PATH, messages)
        children = await self.convert_nodes(run.children, messages)
        if not has_content(children):
            return []

        nodes = path.wrap(children)
        if run.is_underline:
            nodes = await self._convert_underline(run, nodes, messages)
        if run.is_italic:
            nodes = self._formatting_path(ITALIC, run, ITALIC_PATH).wrap(nodes)
        if run.is_bold:
            nodes = self._formatting_path(BOLD, run, BOLD_PATH).wrap(nodes)
        if run.vertical_alignment == VerticalAlignment.SUPERSCRIPT:
            nodes = SUPERSCRIPT_PATH.wrap(nodes)
        elif run.vertical_alignment == VerticalAlignment.SUBSCRIPT:
            nodes = SUBSCRIPT_PATH.wrap(nodes)
        return nodes

    def _formatting_path(self, kind: str, run: Run, default_path: HtmlPath) -> HtmlPath:
        path = self._style_matcher.find_path(kind, run)
        return default_path if path is None else path

    async def _convert_underline(self, run: Run, nodes: List[HtmlNode], messages: MessageSink) -> List[HtmlNode]:
        path = self._style_matcher.find_path(UNDERLINE, run)
        if path is not None:
            return path.wrap(nodes)
        handler = self._options.convert_underline
        if handler is None:
            return nodes
        return await call_handler(handler, run, self._builder(messages, nodes), messages)

    async def _convert_text(self, node: Text, messages: MessageSink) -> List[HtmlNode]:
        return [text(node.value)] if node.value else []

    async def _convert_tab(self, node: Tab, messages: MessageSink) -> List[HtmlNode]:
        return [text("\t")]

    async def _convert_line_break(self, node: LineBreak, messages: MessageSink) -> List[HtmlNode]:
        return [self_closing_element("br")]

    async def _convert_table(self, table: Table, messages: MessageSink) -> List[HtmlNode]:
        path = self._style_matcher.resolve(TABLE, table, DEFAULT_TABLE_PATH, messages)
        rows = await self.convert_nodes(table.children, messages)
        return path.wrap(rows)

    async def _convert_table_row(self, row: TableRow, messages: MessageSink) -> List[HtmlNode]:
        return [element("tr", children=await self.convert_nodes(row.children, messages), fresh=True)]

    async def _convert_table_cell(self, cell: TableCell, messages: MessageSink) -> List[HtmlNode]:
        return [element("td", children=await self.convert_nodes(cell.children, messages), fresh=True)]

    async def _convert_hyperlink(self, hyperlink: Hyperlink, messages: MessageSink) -> List[HtmlNode]:
        attributes: Dict[str, str] = {}
        if hyperlink.href is not None:
            attributes["href"] = hyperlink.href
        elif hyperlink.anchor is not None:
            attributes["href"] = "#" + self._state.html_id(hyperlink.anchor)
        children = await self.convert_nodes(hyperlink.children, messages)
        return [element("a", attributes, children, fresh=True)]

    async def _convert_image(self, image: Image, messages: MessageSink) -> List[HtmlNode]:
        handler = self._options.convert_image or default_image_handler
        if self._options.image_error_policy == RAISE:
            return await call_handler(handler, image, self._builder(messages), messages)
        try:
            return await call_handler(handler, image, self._builder(messages), messages)
        except Exception as exc:
            LOGGER.warning("Omitting image that could not be converted: %s", exc)
            messages.warning(f"Image could not be converted and was omitted: {exc}")
            return []

    async def _convert_bookmark_start(self, bookmark: BookmarkStart, messages: MessageSink) -> List[HtmlNode]:
        if bookmark.name not in self._state.referenced_anchors:
            return []
        return [element("span", {"id": self._state.html_id(bookmark.name)}, fresh=True)]

    async def _convert_note_reference(self, reference: NoteReference, messages: MessageSink) -> List[HtmlNode]:
        ordinal = self._state.register_note(reference.note_type, reference.note_id)
        if self._state.notes.find_note(reference.note_type, reference.note_id) is None:
            messages.warning(f"Could not find {reference.note_type} with ID {reference.note_id}")

        attributes = {"href": "#" + self._state.html_id(f"{reference.note_type}-{reference.note_id}")}
        if self._state.is_first_reference(reference):
            attributes["id"] = self._state.html_id(f"{reference.note_type}-ref-{ordinal}")
        link = element("a", attributes, [text(f"[{ordinal}]")], fresh=True)
        return [element("sup", children=[link], fresh=True)]


class DocumentConverter:
    """Convert document trees to markup using a compiled style map.

    The style map is compiled here, so malformed rules raise
    :class:`~docx_markup.parser.style_map_parser.StyleMapError` before any
    document is touched.
    """

    def __init__(self, options: Optional[ConversionOptions] = None, **overrides) -> None:
        options = options or ConversionOptions()
        if overrides:
            options = replace(options, **overrides)
        self._options = options
        self._style_matcher = StyleMatcher(read_style_map(options.style_map_lines()))

    @property
    def options(self) -> ConversionOptions:
        return self._options

    async def convert(self, node: DocumentNode) -> Result[List[HtmlNode]]:
        """Convert ``node`` into a collapsed list of markup nodes."""
        if self._options.transform_document is not None:
            node = self._options.transform_document(node)

        notes = node.notes if isinstance(node, Document) else Notes()
        uniquifier = self._options.generate_uniquifier
        state = _ConversionState(notes, self._options.id_prefix, "" if uniquifier is None else str(uniquifier()))
        state.scan(node)
        LOGGER.debug(
            "Converting %s with %d style rules, %d referenced bookmarks",
            type(node).__name__,
            len(self._style_matcher.rules),
            len(state.referenced_anchors),
        )

        messages = MessageSink()
        conversion = _DocumentConversion(self._options, self._style_matcher, state)
        nodes = await conversion.convert_node(node, messages)
        return Result(collapse(nodes), messages.messages)

    async def convert_to_html(self, node: DocumentNode) -> Result[str]:
        result = await self.convert(node)
        return Result(render(result.value, HTML, pretty_print=self._options.pretty_print), result.messages)

    async def convert_to_markdown(self, node: DocumentNode) -> Result[str]:
        result = await self.convert(node)
        return Result(render(result.value, MARKDOWN), result.messages)
