"""Conversion options and the built-in style map."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Callable, Dict, Optional, Sequence, Union

if TYPE_CHECKING:
    from docx_markup.model.documents import Document
    from docx_markup.renderer.handlers import ElementHandler

RAISE = "raise"
WARN = "warn"
IMAGE_ERROR_POLICIES = (RAISE, WARN)

DEFAULT_STYLE_MAP = (
    "p[style-name='Heading 1'] => h1:fresh",
    "p[style-name='Heading 2'] => h2:fresh",
    "p[style-name='Heading 3'] => h3:fresh",
    "p[style-name='Heading 4'] => h4:fresh",
    "p[style-name='Heading 5'] => h5:fresh",
    "p[style-name='Heading 6'] => h6:fresh",
    "p[style-name='Title'] => h1:fresh",
    "p:unordered-list(1) => ul > li:fresh",
    "p:unordered-list(2) => ul > li > ul > li:fresh",
    "p:unordered-list(3) => ul > li > ul > li > ul > li:fresh",
    "p:ordered-list(1) => ol > li:fresh",
    "p:ordered-list(2) => ol > li > ol > li:fresh",
    "p:ordered-list(3) => ol > li > ol > li > ol > li:fresh",
    "r[style-name='Strong'] => strong",
    "p[style-name='footnote text'] => p:fresh",
    "p[style-name='endnote text'] => p:fresh",
)


@dataclass(slots=True)
class ConversionOptions:
    """Options for a single converter.

    ``style_map`` rules are tried before ``DEFAULT_STYLE_MAP`` (only used
    when ``include_default_style_map`` is set). ``element_handlers`` maps a
    document node type to a handler replacing its built-in conversion.
    """

    style_map: Union[str, Sequence[str], None] = None
    include_default_style_map: bool = False
    id_prefix: str = ""
    generate_uniquifier: Optional[Callable[[], object]] = None
    convert_image: Optional["ElementHandler"] = None
    convert_underline: Optional["ElementHandler"] = None
    element_handlers: Dict[type, "ElementHandler"] = field(default_factory=dict)
    transform_document: Optional[Callable[["Document"], "Document"]] = None
    image_error_policy: str = RAISE
    pretty_print: bool = False

    def __post_init__(self) -> None:
        if self.image_error_policy not in IMAGE_ERROR_POLICIES:
            allowed = ", ".join(IMAGE_ERROR_POLICIES)
            raise ValueError(f"image_error_policy must be one of {allowed}, got {self.image_error_policy!r}")

    def style_map_lines(self) -> list[str]:
        """Return user rules followed by the default rules when enabled."""
        if self.style_map is None:
            lines: list[str] = []
        elif isinstance(self.style_map, str):
            lines = self.style_map.splitlines()
        else:
            lines = list(self.style_map)
        if self.include_default_style_map:
            lines.extend(DEFAULT_STYLE_MAP)
        return lines
