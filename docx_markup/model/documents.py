"""In-memory representation of a parsed word-processing document."""
from __future__ import annotations

import base64
import inspect
from dataclasses import dataclass, field
from enum import Enum
from typing import Awaitable, Callable, Dict, Iterable, List, Optional, Tuple, Union

FOOTNOTE = "footnote"
ENDNOTE = "endnote"
NOTE_TYPES = (FOOTNOTE, ENDNOTE)

ImageReader = Callable[[Optional[str]], Union[bytes, str, Awaitable[Union[bytes, str]]]]


class VerticalAlignment(str, Enum):
    """Raised or lowered run position."""

    NONE = "none"
    SUPERSCRIPT = "superscript"
    SUBSCRIPT = "subscript"


@dataclass(slots=True)
class Text:
    """Literal text inside a run."""

    value: str


@dataclass(slots=True)
class Tab:
    """Tab character inside a run."""


@dataclass(slots=True)
class LineBreak:
    """Hard line break inside a run."""


@dataclass(slots=True)
class BookmarkStart:
    """Start of a named bookmark that hyperlinks may point at."""

    name: str


@dataclass(slots=True)
class NoteReference:
    """Reference from the body to a footnote or endnote."""

    note_type: str
    note_id: str


@dataclass(slots=True)
class Run:
    """Contiguous inline content sharing the same formatting."""

    children: List["DocumentNode"] = field(default_factory=list)
    style_id: Optional[str] = None
    style_name: Optional[str] = None
    is_bold: bool = False
    is_italic: bool = False
    is_underline: bool = False
    vertical_alignment: VerticalAlignment = VerticalAlignment.NONE


@dataclass(slots=True)
class NumberingInfo:
    """List membership of a paragraph; ``level`` is 1 for top-level items."""

    level: int
    is_ordered: bool


@dataclass(slots=True)
class Paragraph:
    """Block element holding runs, hyperlinks and bookmarks."""

    children: List["DocumentNode"] = field(default_factory=list)
    style_id: Optional[str] = None
    style_name: Optional[str] = None
    numbering: Optional[NumberingInfo] = None


@dataclass(slots=True)
class Hyperlink:
    """Link to an external target (``href``) or an internal bookmark (``anchor``)."""

    children: List["DocumentNode"] = field(default_factory=list)
    href: Optional[str] = None
    anchor: Optional[str] = None


@dataclass(slots=True)
class TableCell:
    """Table cell holding block content."""

    children: List["DocumentNode"] = field(default_factory=list)


@dataclass(slots=True)
class TableRow:
    """Row of table cells."""

    children: List[TableCell] = field(default_factory=list)


@dataclass(slots=True)
class Table:
    """Tabular structure; rows hold cells which hold block content."""

    children: List[TableRow] = field(default_factory=list)
    style_id: Optional[str] = None
    style_name: Optional[str] = None


@dataclass(slots=True)
class Image:
    """Embedded image whose bytes are read lazily.

    ``read_image`` receives the requested encoding (``None`` for raw bytes)
    and may return the data directly or an awaitable resolving to it.
    """

    read_image: ImageReader
    content_type: Optional[str] = None
    alt_text: Optional[str] = None

    async def read(self, encoding: Optional[str] = None) -> Union[bytes, str]:
        data = self.read_image(encoding)
        if inspect.isawaitable(data):
            data = await data
        return data

    @classmethod
    def from_bytes(cls, data: bytes, content_type: Optional[str] = None, alt_text: Optional[str] = None) -> "Image":
        """Build an image backed by an in-memory buffer."""

        def read_image(encoding: Optional[str]) -> Union[bytes, str]:
            if encoding is None:
                return data
            if encoding == "base64":
                return base64.b64encode(data).decode("ascii")
            return data.decode(encoding)

        return cls(read_image=read_image, content_type=content_type, alt_text=alt_text)


@dataclass(slots=True)
class Note:
    """Body of a footnote or endnote."""

    note_type: str
    note_id: str
    body: List["DocumentNode"] = field(default_factory=list)


@dataclass(slots=True)
class Notes:
    """Notes of a document keyed by ``(note_type, note_id)``."""

    notes: Dict[Tuple[str, str], Note] = field(default_factory=dict)

    @classmethod
    def of(cls, notes: Iterable[Note]) -> "Notes":
        return cls({(note.note_type, str(note.note_id)): note for note in notes})

    def find_note(self, note_type: str, note_id: str) -> Optional[Note]:
        return self.notes.get((note_type, str(note_id)))

    def values(self) -> List[Note]:
        return list(self.notes.values())


@dataclass(slots=True)
class Document:
    """Root of the tree: body children plus the notes collection."""

    children: List["DocumentNode"] = field(default_factory=list)
    notes: Notes = field(default_factory=Notes)


DocumentNode = Union[
    Document,
    Paragraph,
    Run,
    Text,
    Table,
    TableRow,
    TableCell,
    Hyperlink,
    Image,
    Tab,
    LineBreak,
    BookmarkStart,
    NoteReference,
]
