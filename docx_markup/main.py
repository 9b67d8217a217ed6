"""Entry-points for converting document trees to HTML, Markdown or raw text."""
from __future__ import annotations

from typing import Optional

from docx_markup.model.documents import DocumentNode
from docx_markup.model.options import ConversionOptions
from docx_markup.model.results import Result
from docx_markup.renderer.document_converter import DocumentConverter
from docx_markup.utils.logger import get_logger
from docx_markup.utils.raw_text import extract_text

LOGGER = get_logger(__name__)


async def convert_to_html(
    document: DocumentNode, options: Optional[ConversionOptions] = None, **overrides
) -> Result[str]:
    """Convert a document tree into an HTML string.

    Keyword arguments override fields of ``options``, e.g.
    ``convert_to_html(document, style_map="p => h1", id_prefix="doc")``.
    """
    converter = DocumentConverter(options, **overrides)
    LOGGER.info("Converting %s to HTML", type(document).__name__)
    return await converter.convert_to_html(document)


async def convert_to_markdown(
    document: DocumentNode, options: Optional[ConversionOptions] = None, **overrides
) -> Result[str]:
    """Convert a document tree into a Markdown string."""
    converter = DocumentConverter(options, **overrides)
    LOGGER.info("Converting %s to Markdown", type(document).__name__)
    return await converter.convert_to_markdown(document)


def extract_raw_text(document: DocumentNode) -> Result[str]:
    """Return the document's text with every paragraph followed by a blank line."""
    return Result(extract_text(document), [])
