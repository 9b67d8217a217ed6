"""Serialize writer events into Markdown.

Every open element gets a frame buffering its content; the frame is
rendered into its parent when the element closes. That lets empty
paragraphs and headings vanish without leaving blank lines behind.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional

HEADING_LEVELS = {f"h{level}": level for level in range(1, 7)}
LIST_TAGS = ("ol", "ul")


@dataclass
class _Frame:
    """Buffered content of one open element."""

    tag_name: str
    attributes: Dict[str, str] = field(default_factory=dict)
    parts: List[str] = field(default_factory=list)
    count: int = 0
    prefix: str = ""

    def write(self, value: str) -> None:
        if value:
            self.parts.append(value)

    def content(self) -> str:
        return "".join(self.parts)


class MarkdownWriter:
    """Write Markdown from the same open/close/text events as the HTML writers."""

    def __init__(self) -> None:
        self._frames: List[_Frame] = [_Frame("")]

    @property
    def _current(self) -> _Frame:
        return self._frames[-1]

    def _enclosing(self, tag_names) -> Optional[_Frame]:
        for frame in reversed(self._frames):
            if frame.tag_name in tag_names:
                return frame
        return None

    def _list_depth(self) -> int:
        return sum(1 for frame in self._frames if frame.tag_name in LIST_TAGS)

    def open(self, tag_name: str, attributes: Optional[Mapping[str, str]] = None) -> None:
        frame = _Frame(tag_name, dict(attributes or {}))
        if tag_name == "li":
            parent_list = self._enclosing(LIST_TAGS)
            if parent_list is not None and parent_list.tag_name == "ol":
                parent_list.count += 1
                bullet = f"{parent_list.count}."
            else:
                bullet = "-"
            frame.prefix = "\t" * max(self._list_depth() - 1, 0) + bullet + " "
        self._frames.append(frame)

    def close(self, tag_name: str) -> None:
        if len(self._frames) == 1 or self._current.tag_name != tag_name:
            raise ValueError(f"Cannot close {tag_name!r}: current element is {self._current.tag_name or None!r}")
        frame = self._frames.pop()
        self._current.write(self._render(frame))

    def text(self, value: str) -> None:
        self._current.write(value)

    def self_closing(self, tag_name: str, attributes: Optional[Mapping[str, str]] = None) -> None:
        attributes = attributes or {}
        if tag_name == "br":
            self._current.write("  \n")
        elif tag_name == "img":
            alt = attributes.get("alt")
            src = attributes.get("src")
            if alt or src:
                self._current.write(f"[{alt or ''}]({src or ''})")

    def as_string(self) -> str:
        return self._frames[0].content()

    def _render(self, frame: _Frame) -> str:
        content = frame.content()
        tag_name = frame.tag_name

        if tag_name in HEADING_LEVELS:
            if not content:
                return ""
            return "#" * HEADING_LEVELS[tag_name] + " " + content + "\n\n"
        if tag_name == "p":
            if not content:
                return ""
            item = self._enclosing(("li",))
            if item is None:
                return content + "\n\n"
            if item.content() or self._current.content():
                # Follow-on paragraphs stay in the item: blank line, indented to the marker width.
                indent = "".join(char if char == "\t" else " " for char in item.prefix)
                return "\n" + indent + content + "\n"
            return content + "\n"
        if tag_name == "strong":
            return f"**{content}**" if content else ""
        if tag_name == "em":
            return f"*{content}*" if content else ""
        if tag_name == "a":
            return f"[{content}]({frame.attributes.get('href', '')})"
        if tag_name == "li":
            rendered = frame.prefix + content
            return rendered if rendered.endswith("\n") else rendered + "\n"
        if tag_name in LIST_TAGS:
            if not content:
                return ""
            if self._enclosing(LIST_TAGS) is None:
                return content + "\n"
            preceding = self._current.content()
            if preceding and not preceding.endswith("\n"):
                return "\n" + content
            return content
        return content
