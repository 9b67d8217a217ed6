"""Tests for converting document trees into markup."""
import asyncio
import base64
import itertools
import unittest
from dataclasses import dataclass

from docx_markup.model.documents import (
    BookmarkStart,
    Document,
    Hyperlink,
    Image,
    LineBreak,
    Note,
    NoteReference,
    Notes,
    NumberingInfo,
    Paragraph,
    Run,
    Tab,
    Table,
    TableCell,
    TableRow,
    Text,
    VerticalAlignment,
)
from docx_markup.model.results import error, warning
from docx_markup.parser.style_map_parser import StyleMapError
from docx_markup.renderer.document_converter import DocumentConverter
from docx_markup.renderer.handlers import inline, underline_element

IMAGE_BYTES = b"Not an image at all!"


def paragraph_of_text(text, style_id=None, style_name=None):
    return Paragraph([run_of_text(text)], style_id=style_id, style_name=style_name)


def run_of_text(text, **properties):
    return Run([Text(text)], **properties)


def footnote(note_id, text):
    return Note("footnote", note_id, [paragraph_of_text(text)])


@dataclass
class Comment:
    text: str


class DocumentConverterTest(unittest.IsolatedAsyncioTestCase):
    """Conversion of individual node kinds to HTML."""

    async def test_empty_document_converts_to_empty_string(self) -> None:
        result = await DocumentConverter().convert_to_html(Document([]))
        self.assertEqual(result.value, "")
        self.assertEqual(result.messages, [])

    async def test_single_paragraph_becomes_p_element(self) -> None:
        result = await DocumentConverter().convert_to_html(Document([paragraph_of_text("Hello.")]))
        self.assertEqual(result.value, "<p>Hello.</p>")

    async def test_multiple_paragraphs_become_multiple_p_elements(self) -> None:
        document = Document([paragraph_of_text("Hello."), paragraph_of_text("Goodbye.")])
        result = await DocumentConverter().convert_to_html(document)
        self.assertEqual(result.value, "<p>Hello.</p><p>Goodbye.</p>")

    async def test_empty_paragraphs_are_ignored(self) -> None:
        document = Document([
            paragraph_of_text(""),
            Paragraph([Run([]), Run([Text("")]), Run([Run([Text("")])], is_bold=True)]),
        ])
        result = await DocumentConverter().convert_to_html(document)
        self.assertEqual(result.value, "")

    async def test_text_is_html_escaped(self) -> None:
        result = await DocumentConverter().convert_to_html(Document([paragraph_of_text("1 < 2")]))
        self.assertEqual(result.value, "<p>1 &lt; 2</p>")

    async def test_style_map_picks_element_for_paragraph(self) -> None:
        document = Document([paragraph_of_text("Hello.", "Heading1", "Heading 1")])
        converter = DocumentConverter(style_map="p[style-name='Heading 1'] => h1")
        result = await converter.convert_to_html(document)
        self.assertEqual(result.value, "<h1>Hello.</h1>")
        self.assertEqual(result.messages, [])

    async def test_style_map_can_match_by_style_id(self) -> None:
        document = Document([paragraph_of_text("Hello.", "Heading1", "Heading 1")])
        converter = DocumentConverter(style_map=["p.Heading1 => h2"])
        result = await converter.convert_to_html(document)
        self.assertEqual(result.value, "<h2>Hello.</h2>")

    async def test_non_default_element_for_unstyled_paragraphs(self) -> None:
        converter = DocumentConverter(style_map="p => h1")
        result = await converter.convert_to_html(Document([paragraph_of_text("Hello.")]))
        self.assertEqual(result.value, "<h1>Hello.</h1>")

    async def test_unstyled_rule_does_not_match_styled_paragraph(self) -> None:
        converter = DocumentConverter(style_map="p => h1")
        result = await converter.convert_to_html(Document([paragraph_of_text("Hello.", "Body", "Body")]))
        self.assertEqual(result.value, "<p>Hello.</p>")

    async def test_warning_emitted_for_unrecognised_paragraph_style(self) -> None:
        document = Document([paragraph_of_text("Hello.", "Heading1", "Heading 1")])
        result = await DocumentConverter().convert_to_html(document)
        self.assertEqual(result.value, "<p>Hello.</p>")
        self.assertEqual(
            result.messages,
            [warning("Unrecognised paragraph style: 'Heading 1' (Style ID: Heading1)")],
        )

    async def test_other_style_names_fall_back_with_one_warning_each(self) -> None:
        converter = DocumentConverter(style_map="p[style-name='Heading 1'] => h1")
        document = Document([
            paragraph_of_text("A", "Heading2", "Heading 2"),
            paragraph_of_text("B", "Heading1", "Heading 1"),
            paragraph_of_text("C", "heading1", "heading 1"),
            paragraph_of_text("D"),
        ])
        result = await converter.convert_to_html(document)
        self.assertEqual(result.value, "<p>A</p><h1>B</h1><p>C</p><p>D</p>")
        self.assertEqual(
            result.messages,
            [
                warning("Unrecognised paragraph style: 'Heading 2' (Style ID: Heading2)"),
                warning("Unrecognised paragraph style: 'heading 1' (Style ID: heading1)"),
            ],
        )

    async def test_stacked_styles_generate_nested_elements(self) -> None:
        converter = DocumentConverter(style_map="p => h1 > span")
        result = await converter.convert_to_html(Document([paragraph_of_text("Hello.")]))
        self.assertEqual(result.value, "<h1><span>Hello.</span></h1>")

    async def test_target_path_attributes_are_written(self) -> None:
        converter = DocumentConverter(style_map="p[style-name='Aside'] => div.aside[data-kind='note'] > p")
        result = await converter.convert_to_html(Document([paragraph_of_text("Hello.", "Aside", "Aside")]))
        self.assertEqual(result.value, '<div data-kind="note" class="aside"><p>Hello.</p></div>')

    async def test_ignored_paragraph_style_drops_content(self) -> None:
        converter = DocumentConverter(style_map="p[style-name='Comment'] => !")
        document = Document([paragraph_of_text("Hidden", "Comment", "Comment"), paragraph_of_text("Shown")])
        result = await converter.convert_to_html(document)
        self.assertEqual(result.value, "<p>Shown</p>")
        self.assertEqual(result.messages, [])

    async def test_non_fresh_elements_are_merged(self) -> None:
        converter = DocumentConverter(style_map="p[style-name='Quote'] => blockquote > p:fresh")
        document = Document([
            paragraph_of_text("One", "Quote", "Quote"),
            paragraph_of_text("Two", "Quote", "Quote"),
        ])
        result = await converter.convert_to_html(document)
        self.assertEqual(result.value, "<blockquote><p>One</p><p>Two</p></blockquote>")

    async def test_fresh_elements_are_not_merged(self) -> None:
        converter = DocumentConverter(style_map="p[style-name='Quote'] => blockquote:fresh > p:fresh")
        document = Document([
            paragraph_of_text("One", "Quote", "Quote"),
            paragraph_of_text("Two", "Quote", "Quote"),
        ])
        result = await converter.convert_to_html(document)
        self.assertEqual(result.value, "<blockquote><p>One</p></blockquote><blockquote><p>Two</p></blockquote>")

    async def test_list_paragraphs_use_list_rules(self) -> None:
        converter = DocumentConverter(style_map="p:unordered-list(1) => ul > li:fresh")
        document = Document([
            Paragraph([run_of_text("Apple")], numbering=NumberingInfo(level=1, is_ordered=False)),
            Paragraph([run_of_text("Banana")], numbering=NumberingInfo(level=1, is_ordered=False)),
        ])
        result = await converter.convert_to_html(document)
        self.assertEqual(result.value, "<ul><li>Apple</li><li>Banana</li></ul>")

    async def test_nested_list_paragraphs_with_default_style_map(self) -> None:
        converter = DocumentConverter(include_default_style_map=True)
        document = Document([
            Paragraph([run_of_text("Apple")], numbering=NumberingInfo(level=1, is_ordered=False)),
            Paragraph([run_of_text("Pip")], numbering=NumberingInfo(level=2, is_ordered=False)),
            Paragraph([run_of_text("Banana")], numbering=NumberingInfo(level=1, is_ordered=False)),
        ])
        result = await converter.convert_to_html(document)
        self.assertEqual(result.value, "<ul><li>Apple<ul><li>Pip</li></ul></li><li>Banana</li></ul>")

    async def test_malformed_style_map_fails_before_conversion(self) -> None:
        with self.assertRaises(StyleMapError):
            DocumentConverter(style_map=["p => h1", "p[style-name='Heading 1' => h1"])

    async def test_unknown_node_type_fails_loudly(self) -> None:
        with self.assertRaises(TypeError):
            await DocumentConverter().convert_to_html(Document([Comment("boo")]))

    async def test_long_documents_keep_order(self) -> None:
        document = Document([paragraph_of_text(f"Paragraph {index}") for index in range(1500)])
        result = await DocumentConverter().convert_to_html(document)
        self.assertTrue(result.value.startswith("<p>Paragraph 0</p><p>Paragraph 1</p>"))
        self.assertTrue(result.value.endswith("<p>Paragraph 1499</p>"))
        self.assertEqual(result.value.count("<p>"), 1500)


class RunConversionTest(unittest.IsolatedAsyncioTestCase):
    """Formatting wrappers applied to runs."""

    async def convert(self, node, **options) -> str:
        result = await DocumentConverter(**options).convert_to_html(node)
        return result.value

    async def test_bold_runs_are_wrapped_in_strong(self) -> None:
        self.assertEqual(await self.convert(run_of_text("Hello.", is_bold=True)), "<strong>Hello.</strong>")

    async def test_bold_runs_inside_paragraph(self) -> None:
        paragraph = Paragraph([run_of_text("Hello.", is_bold=True)])
        self.assertEqual(await self.convert(paragraph), "<p><strong>Hello.</strong></p>")

    async def test_adjacent_bold_runs_are_merged(self) -> None:
        paragraph = Paragraph([run_of_text("Hello ", is_bold=True), run_of_text("world", is_bold=True)])
        self.assertEqual(await self.convert(paragraph), "<p><strong>Hello world</strong></p>")

    async def test_italic_runs_are_wrapped_in_em(self) -> None:
        self.assertEqual(await self.convert(run_of_text("Hello.", is_italic=True)), "<em>Hello.</em>")

    async def test_italic_always_nests_inside_bold(self) -> None:
        expected = {
            (False, False): "Hello.",
            (False, True): "<em>Hello.</em>",
            (True, False): "<strong>Hello.</strong>",
            (True, True): "<strong><em>Hello.</em></strong>",
        }
        for is_bold, is_italic in itertools.product([False, True], repeat=2):
            with self.subTest(is_bold=is_bold, is_italic=is_italic):
                run = run_of_text("Hello.", is_bold=is_bold, is_italic=is_italic)
                self.assertEqual(await self.convert(run), expected[(is_bold, is_italic)])

    async def test_underline_is_ignored_by_default(self) -> None:
        self.assertEqual(await self.convert(run_of_text("Hello.", is_underline=True)), "Hello.")

    async def test_underline_handler_wraps_run(self) -> None:
        run = run_of_text("Hello.", is_underline=True)
        self.assertEqual(await self.convert(run, convert_underline=underline_element("u")), "<u>Hello.</u>")

    async def test_underline_style_rule_takes_precedence(self) -> None:
        run = run_of_text("Hello.", is_underline=True, is_bold=True)
        html = await self.convert(run, style_map="u => ins", convert_underline=underline_element("u"))
        self.assertEqual(html, "<strong><ins>Hello.</ins></strong>")

    async def test_bold_rule_replaces_strong(self) -> None:
        run = run_of_text("Hello.", is_bold=True)
        self.assertEqual(await self.convert(run, style_map="b => b"), "<b>Hello.</b>")

    async def test_superscript_and_subscript(self) -> None:
        superscript = run_of_text("Hello.", vertical_alignment=VerticalAlignment.SUPERSCRIPT)
        subscript = run_of_text("Hello.", vertical_alignment=VerticalAlignment.SUBSCRIPT)
        self.assertEqual(await self.convert(superscript), "<sup>Hello.</sup>")
        self.assertEqual(await self.convert(subscript), "<sub>Hello.</sub>")

    async def test_vertical_alignment_is_outermost(self) -> None:
        run = run_of_text(
            "x", is_bold=True, is_italic=True, vertical_alignment=VerticalAlignment.SUPERSCRIPT
        )
        self.assertEqual(await self.convert(run), "<sup><strong><em>x</em></strong></sup>")

    async def test_run_style_mapping_is_innermost(self) -> None:
        run = run_of_text("x", style_id="Code", style_name="Code", is_italic=True)
        self.assertEqual(await self.convert(run, style_map="r[style-name='Code'] => code"), "<em><code>x</code></em>")

    async def test_warning_emitted_for_unrecognised_run_style(self) -> None:
        run = run_of_text("Hello.", style_id="Heading1Char", style_name="Heading 1 Char")
        result = await DocumentConverter().convert_to_html(run)
        self.assertEqual(result.value, "Hello.")
        self.assertEqual(
            result.messages,
            [warning("Unrecognised run style: 'Heading 1 Char' (Style ID: Heading1Char)")],
        )


class StructureConversionTest(unittest.IsolatedAsyncioTestCase):
    """Hyperlinks, tables, breaks and bookmarks."""

    async def convert(self, node, **options) -> str:
        result = await DocumentConverter(**options).convert_to_html(node)
        return result.value

    async def test_hyperlink_with_href(self) -> None:
        hyperlink = Hyperlink([run_of_text("Hello.")], href="http://www.example.com")
        self.assertEqual(await self.convert(hyperlink), '<a href="http://www.example.com">Hello.</a>')

    async def test_hyperlink_with_anchor(self) -> None:
        hyperlink = Hyperlink([run_of_text("Hello.")], anchor="_Peter")
        self.assertEqual(await self.convert(hyperlink), '<a href="#_Peter">Hello.</a>')

    async def test_tab_becomes_tab_character(self) -> None:
        self.assertEqual(await self.convert(Tab()), "\t")

    async def test_line_break_becomes_br(self) -> None:
        self.assertEqual(await self.convert(LineBreak()), "<br />")

    async def test_table_structure(self) -> None:
        table = Table([
            TableRow([TableCell([paragraph_of_text("Top left")]), TableCell([paragraph_of_text("Top right")])]),
            TableRow([TableCell([paragraph_of_text("Bottom left")]), TableCell([paragraph_of_text("Bottom right")])]),
        ])
        expected = (
            "<table>"
            "<tr><td><p>Top left</p></td><td><p>Top right</p></td></tr>"
            "<tr><td><p>Bottom left</p></td><td><p>Bottom right</p></td></tr>"
            "</table>"
        )
        self.assertEqual(await self.convert(table), expected)

    async def test_empty_cells_are_preserved(self) -> None:
        table = Table([TableRow([TableCell([paragraph_of_text("")]), TableCell([paragraph_of_text("Top right")])])])
        self.assertEqual(await self.convert(table), "<table><tr><td></td><td><p>Top right</p></td></tr></table>")

    async def test_table_style_mapping(self) -> None:
        table = Table([TableRow([TableCell([paragraph_of_text("x")])])], style_id="Grid", style_name="Grid")
        html = await self.convert(table, style_map="table[style-name='Grid'] => table.grid")
        self.assertEqual(html, '<table class="grid"><tr><td><p>x</p></td></tr></table>')

    async def test_referenced_bookmarks_become_anchors(self) -> None:
        document = Document([BookmarkStart("_Peter"), Hyperlink([run_of_text("Hello.")], anchor="_Peter")])
        self.assertEqual(await self.convert(document), '<span id="_Peter"></span><a href="#_Peter">Hello.</a>')

    async def test_bookmark_referenced_later_in_document(self) -> None:
        document = Document([
            Paragraph([BookmarkStart("intro"), run_of_text("Intro")]),
            Paragraph([Hyperlink([run_of_text("Back")], anchor="intro")]),
        ])
        html = await self.convert(document, id_prefix="doc")
        self.assertEqual(html, '<p><span id="doc-intro"></span>Intro</p><p><a href="#doc-intro">Back</a></p>')

    async def test_unreferenced_bookmarks_are_dropped(self) -> None:
        self.assertEqual(await self.convert(BookmarkStart("_Unreferenced")), "")


class NoteConversionTest(unittest.IsolatedAsyncioTestCase):
    """Footnote and endnote numbering and listing."""

    async def test_footnote_reference_is_superscript_link(self) -> None:
        converter = DocumentConverter(id_prefix="doc-42")
        result = await converter.convert_to_html(NoteReference("footnote", "4"))
        self.assertEqual(
            result.value,
            '<sup><a href="#doc-42-footnote-4" id="doc-42-footnote-ref-1">[1]</a></sup>',
        )
        self.assertEqual(result.messages, [warning("Could not find footnote with ID 4")])

    async def test_footnotes_are_included_after_body(self) -> None:
        document = Document(
            [Paragraph([run_of_text("Knock knock"), Run([NoteReference("footnote", "4")])])],
            notes=Notes.of([footnote("4", "Who's there?")]),
        )
        result = await DocumentConverter(id_prefix="doc-42").convert_to_html(document)
        expected = (
            '<p>Knock knock<sup><a href="#doc-42-footnote-4" id="doc-42-footnote-ref-1">[1]</a></sup></p>'
            '<ol><li id="doc-42-footnote-4"><p>Who\'s there? <a href="#doc-42-footnote-ref-1">↑</a></p></li></ol>'
        )
        self.assertEqual(result.value, expected)
        self.assertEqual(result.messages, [])

    async def test_notes_are_numbered_by_first_reference(self) -> None:
        document = Document(
            [Paragraph([Run([NoteReference("footnote", "4")]), Run([NoteReference("footnote", "7")])])],
            notes=Notes.of([footnote("7", "Seven"), footnote("4", "Four")]),
        )
        result = await DocumentConverter().convert_to_html(document)
        expected = (
            '<p><sup><a href="#footnote-4" id="footnote-ref-1">[1]</a></sup>'
            '<sup><a href="#footnote-7" id="footnote-ref-2">[2]</a></sup></p>'
            '<ol><li id="footnote-4"><p>Four <a href="#footnote-ref-1">↑</a></p></li>'
            '<li id="footnote-7"><p>Seven <a href="#footnote-ref-2">↑</a></p></li></ol>'
        )
        self.assertEqual(result.value, expected)

    async def test_repeated_reference_reuses_ordinal(self) -> None:
        document = Document(
            [Paragraph([Run([NoteReference("footnote", "4")]), Run([NoteReference("footnote", "4")])])],
            notes=Notes.of([footnote("4", "Four")]),
        )
        result = await DocumentConverter().convert_to_html(document)
        self.assertEqual(
            result.value,
            '<p><sup><a href="#footnote-4" id="footnote-ref-1">[1]</a></sup>'
            '<sup><a href="#footnote-4">[1]</a></sup></p>'
            '<ol><li id="footnote-4"><p>Four <a href="#footnote-ref-1">↑</a></p></li></ol>',
        )

    async def test_endnotes_are_numbered_separately(self) -> None:
        document = Document(
            [Paragraph([Run([NoteReference("endnote", "2")]), Run([NoteReference("footnote", "1")])])],
            notes=Notes.of([Note("endnote", "2", [paragraph_of_text("End")]), footnote("1", "Foot")]),
        )
        result = await DocumentConverter().convert_to_html(document)
        expected = (
            '<p><sup><a href="#endnote-2" id="endnote-ref-1">[1]</a></sup>'
            '<sup><a href="#footnote-1" id="footnote-ref-1">[1]</a></sup></p>'
            '<ol><li id="footnote-1"><p>Foot <a href="#footnote-ref-1">↑</a></p></li></ol>'
            '<ol><li id="endnote-2"><p>End <a href="#endnote-ref-1">↑</a></p></li></ol>'
        )
        self.assertEqual(result.value, expected)

    async def test_uniquifier_is_embedded_in_ids(self) -> None:
        document = Document(
            [Paragraph([Run([NoteReference("footnote", "1")])])],
            notes=Notes.of([footnote("1", "Fin.")]),
        )
        converter = DocumentConverter(generate_uniquifier=lambda: 42)
        result = await converter.convert_to_html(document)
        self.assertIn('<a href="#42-footnote-1" id="42-footnote-ref-1">[1]</a>', result.value)
        self.assertIn('<li id="42-footnote-1">', result.value)

    async def test_unresolved_reference_warns_and_still_renders(self) -> None:
        document = Document([Paragraph([Run([NoteReference("footnote", "9")])])])
        result = await DocumentConverter().convert_to_html(document)
        self.assertEqual(result.value, '<p><sup><a href="#footnote-9" id="footnote-ref-1">[1]</a></sup></p>')
        self.assertEqual(result.messages, [warning("Could not find footnote with ID 9")])

    async def test_back_link_follows_note_ending_in_table(self) -> None:
        table = Table([TableRow([TableCell([paragraph_of_text("cell")])])])
        document = Document(
            [Paragraph([Run([NoteReference("footnote", "4")])])],
            notes=Notes.of([Note("footnote", "4", [paragraph_of_text("Who"), table])]),
        )
        result = await DocumentConverter().convert_to_html(document)
        self.assertIn(
            '<ol><li id="footnote-4"><p>Who</p><table><tr><td><p>cell</p></td></tr></table>'
            '<p> <a href="#footnote-ref-1">↑</a></p></li></ol>',
            result.value,
        )

    async def test_back_link_follows_note_ending_in_list(self) -> None:
        item = Paragraph([run_of_text("item")], numbering=NumberingInfo(level=1, is_ordered=True))
        document = Document(
            [Paragraph([Run([NoteReference("footnote", "4")])])],
            notes=Notes.of([Note("footnote", "4", [item])]),
        )
        result = await DocumentConverter(include_default_style_map=True).convert_to_html(document)
        self.assertIn(
            '<li id="footnote-4"><ol><li>item</li></ol><p> <a href="#footnote-ref-1">↑</a></p></li>',
            result.value,
        )

    async def test_back_link_joins_final_paragraph_only(self) -> None:
        document = Document(
            [Paragraph([Run([NoteReference("footnote", "4")])])],
            notes=Notes.of([Note("footnote", "4", [paragraph_of_text("One"), paragraph_of_text("Two")])]),
        )
        result = await DocumentConverter().convert_to_html(document)
        self.assertIn(
            '<li id="footnote-4"><p>One</p><p>Two <a href="#footnote-ref-1">↑</a></p></li>',
            result.value,
        )


class ImageConversionTest(unittest.IsolatedAsyncioTestCase):
    """Image embedding and pluggable handlers."""

    async def test_images_use_data_uris(self) -> None:
        image = Image.from_bytes(IMAGE_BYTES, content_type="image/png")
        result = await DocumentConverter().convert_to_html(image)
        encoded = base64.b64encode(IMAGE_BYTES).decode("ascii")
        self.assertEqual(result.value, f'<img src="data:image/png;base64,{encoded}" />')

    async def test_images_have_alt_attribute_if_available(self) -> None:
        image = Image.from_bytes(IMAGE_BYTES, alt_text="It's a hat")
        result = await DocumentConverter().convert_to_html(image)
        self.assertIn('alt="It\'s a hat"', result.value)

    async def test_reader_returning_bytes_is_encoded(self) -> None:
        image = Image(read_image=lambda encoding: IMAGE_BYTES, content_type="image/gif")
        result = await DocumentConverter().convert_to_html(image)
        self.assertIn(base64.b64encode(IMAGE_BYTES).decode("ascii"), result.value)

    async def test_custom_image_handler(self) -> None:
        async def convert_image(image, html, messages):
            alt_text = await image.read("utf-8")
            html.self_closing("img", {"alt": alt_text})

        image = Image.from_bytes(IMAGE_BYTES, content_type="image/png")
        result = await DocumentConverter(convert_image=convert_image).convert_to_html(image)
        self.assertEqual(result.value, '<img alt="Not an image at all!" />')

    async def test_inline_helper_sets_src(self) -> None:
        async def src(image):
            encoded = await image.read("base64")
            return {"src": encoded[:2] + "," + image.content_type}

        image = Image.from_bytes(IMAGE_BYTES, content_type="image/png")
        result = await DocumentConverter(convert_image=inline(src)).convert_to_html(Paragraph([Run([image])]))
        self.assertEqual(result.value, '<p><img src="Tm,image/png" /></p>')

    async def test_output_order_ignores_read_completion_order(self) -> None:
        second_read = asyncio.Event()

        async def read_first(encoding):
            await second_read.wait()
            return "AAAA"

        async def read_second(encoding):
            second_read.set()
            return "BBBB"

        paragraph = Paragraph([Run([
            Image(read_image=read_first, content_type="image/png"),
            Image(read_image=read_second, content_type="image/png"),
        ])])
        result = await DocumentConverter().convert_to_html(paragraph)
        self.assertEqual(
            result.value,
            '<p><img src="data:image/png;base64,AAAA" /><img src="data:image/png;base64,BBBB" /></p>',
        )

    async def test_messages_keep_document_order(self) -> None:
        second_done = asyncio.Event()

        async def convert_image(image, html, messages):
            if image.alt_text == "first":
                await second_done.wait()
            messages.warning(image.alt_text)
            if image.alt_text == "second":
                second_done.set()

        document = Document([
            Paragraph([Run([Image.from_bytes(b"", alt_text="first")])]),
            Paragraph([Run([Image.from_bytes(b"", alt_text="second")])]),
        ])
        result = await DocumentConverter(convert_image=convert_image).convert_to_html(document)
        self.assertEqual(result.messages, [warning("first"), warning("second")])

    async def test_failed_image_read_fails_conversion(self) -> None:
        async def read_image(encoding):
            raise OSError("disk on fire")

        document = Document([
            Paragraph([Run([Image(read_image=read_image, content_type="image/png")])]),
            paragraph_of_text("After"),
        ])
        with self.assertRaises(OSError):
            await DocumentConverter().convert_to_html(document)

    async def test_failed_image_read_can_be_recorded_as_warning(self) -> None:
        async def read_image(encoding):
            raise OSError("disk on fire")

        document = Document([
            Paragraph([run_of_text("Before"), Run([Image(read_image=read_image, content_type="image/png")])]),
        ])
        result = await DocumentConverter(image_error_policy="warn").convert_to_html(document)
        self.assertEqual(result.value, "<p>Before</p>")
        self.assertEqual(result.messages, [warning("Image could not be converted and was omitted: disk on fire")])

    async def test_failure_settles_cancelled_siblings(self) -> None:
        slow_started = asyncio.Event()
        cancelled = []

        async def read_slow(encoding):
            slow_started.set()
            try:
                await asyncio.Event().wait()
            except asyncio.CancelledError:
                cancelled.append(encoding)
                raise

        async def read_failing(encoding):
            await slow_started.wait()
            raise OSError("disk on fire")

        run = Run([
            Image(read_image=read_slow, content_type="image/png"),
            Image(read_image=read_failing, content_type="image/png"),
        ])
        with self.assertRaises(OSError):
            await DocumentConverter().convert_to_html(run)
        self.assertEqual(cancelled, ["base64"])

    async def test_handlers_can_record_errors(self) -> None:
        def convert_image(image, html, messages):
            messages.error(f"Unsupported image type: {image.content_type}")

        document = Document([
            Paragraph([run_of_text("Before"), Run([Image.from_bytes(b"", content_type="image/x-emf")])]),
        ])
        result = await DocumentConverter(convert_image=convert_image).convert_to_html(document)
        self.assertEqual(result.value, "<p>Before</p>")
        self.assertEqual(result.messages, [error("Unsupported image type: image/x-emf")])

    async def test_element_handler_overrides_builtin_conversion(self) -> None:
        async def convert_hyperlink(hyperlink, html, messages):
            children = await html.convert(hyperlink.children)
            html.element("span", {"data-href": hyperlink.href}, children)

        hyperlink = Hyperlink([run_of_text("Hello.", is_bold=True)], href="http://example.com")
        converter = DocumentConverter(element_handlers={Hyperlink: convert_hyperlink})
        result = await converter.convert_to_html(Paragraph([hyperlink]))
        self.assertEqual(result.value, '<p><span data-href="http://example.com"><strong>Hello.</strong></span></p>')

    async def test_failing_element_handler_fails_conversion(self) -> None:
        def convert_tab(tab, html, messages):
            raise RuntimeError("no tabs")

        converter = DocumentConverter(element_handlers={Tab: convert_tab})
        with self.assertRaises(RuntimeError):
            await converter.convert_to_html(Paragraph([Run([Tab()])]))


if __name__ == "__main__":  # pragma: no cover
    unittest.main()
