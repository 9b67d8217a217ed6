"""Plain-text extraction from document trees."""
from __future__ import annotations

from docx_markup.model.documents import DocumentNode, LineBreak, Paragraph, Tab, Text


def extract_text(node: DocumentNode) -> str:
    """Concatenate the text of ``node``; each paragraph is followed by a blank line."""
    if isinstance(node, Text):
        return node.value
    if isinstance(node, Tab):
        return "\t"
    if isinstance(node, LineBreak):
        return "\n"
    content = "".join(extract_text(child) for child in getattr(node, "children", ()))
    if isinstance(node, Paragraph):
        return content + "\n\n"
    return content
