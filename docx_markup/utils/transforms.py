"""Build ``transform_document`` hooks that rewrite nodes of one type."""
from __future__ import annotations

from dataclasses import replace
from typing import Callable, Type, TypeVar

from docx_markup.model.documents import Document, DocumentNode, Notes, Paragraph, Run

N = TypeVar("N")


def elements_of_type(node_type: Type[N], transform: Callable[[N], N]) -> Callable[[DocumentNode], DocumentNode]:
    """Return a hook applying ``transform`` to every ``node_type`` node, children first.

    The input tree is left untouched; rewritten nodes are copies.
    """

    def transform_tree(root: DocumentNode) -> DocumentNode:
        return _transform_node(root, node_type, transform)

    return transform_tree


def paragraph(transform: Callable[[Paragraph], Paragraph]) -> Callable[[DocumentNode], DocumentNode]:
    return elements_of_type(Paragraph, transform)


def run(transform: Callable[[Run], Run]) -> Callable[[DocumentNode], DocumentNode]:
    return elements_of_type(Run, transform)


def _transform_node(node, node_type, transform):
    if hasattr(node, "children"):
        node = replace(node, children=[_transform_node(child, node_type, transform) for child in node.children])
    if isinstance(node, Document):
        notes = [
            replace(note, body=[_transform_node(child, node_type, transform) for child in note.body])
            for note in node.notes.values()
        ]
        node = replace(node, notes=Notes.of(notes))
    if isinstance(node, node_type):
        return transform(node)
    return node
