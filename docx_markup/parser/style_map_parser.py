"""Compile textual style-map rules into ordered matcher/path pairs.

A rule reads ``<selector> => <target>``, for example::

    p[style-name='Heading 1'] => h1:fresh
    p.Quote => blockquote > p
    p:unordered-list(1) => ul > li:fresh
    r[style-id='Code'] => code
    b => strong.heavy
    p[style-name='Comment'] => !

Compilation is all-or-nothing: a single malformed rule rejects the map.
"""
from __future__ import annotations

import re
from typing import Dict, Iterable, List, Optional, Sequence, Tuple, Union

from docx_markup.model.html import HtmlPath, PathElement
from docx_markup.parser.document_matchers import (
    ELEMENT_KINDS,
    FORMATTING_KINDS,
    PARAGRAPH,
    DocumentMatcher,
    StyleRule,
)
from docx_markup.utils.logger import get_logger

LOGGER = get_logger(__name__)

StyleMapSource = Union[str, Sequence[str], None]

_IDENTIFIER = re.compile(r"[A-Za-z0-9_\-]+")
_INTEGER = re.compile(r"[0-9]+")
_SELECTOR_ATTRIBUTES = {"style-name": "style_name", "style-id": "style_id"}
_LIST_PSEUDO_CLASSES = {"ordered-list": True, "unordered-list": False}


class StyleMapError(ValueError):
    """Raised when one or more style-map rules cannot be parsed."""

    def __init__(self, errors: Sequence[str]) -> None:
        self.errors = list(errors)
        super().__init__("Invalid style map:\n" + "\n".join(f"  {e}" for e in self.errors))


class _Scanner:
    def __init__(self, source: str) -> None:
        self.source = source
        self.position = 0

    def at_end(self) -> bool:
        return self.position >= len(self.source)

    def peek(self, length: int = 1) -> str:
        return self.source[self.position:self.position + length]

    def advance(self, length: int = 1) -> None:
        self.position += length

    def skip_whitespace(self) -> None:
        while not self.at_end() and self.source[self.position].isspace():
            self.position += 1

    def fail(self, detail: str) -> StyleMapError:
        return StyleMapError([f"{detail} (column {self.position + 1})"])

    def expect(self, token: str, description: Optional[str] = None) -> None:
        if self.peek(len(token)) != token:
            if self.at_end():
                raise self.fail(f"expected {description or repr(token)} but reached end of rule")
            raise self.fail(f"expected {description or repr(token)}, found {self.peek()!r}")
        self.advance(len(token))

    def read_pattern(self, pattern: re.Pattern, description: str) -> str:
        match = pattern.match(self.source, self.position)
        if match is None:
            if self.at_end():
                raise self.fail(f"expected {description} but reached end of rule")
            raise self.fail(f"expected {description}, found {self.peek()!r}")
        self.position = match.end()
        return match.group(0)

    def read_identifier(self, description: str = "identifier") -> str:
        return self.read_pattern(_IDENTIFIER, description)

    def read_string(self) -> str:
        quote = self.peek()
        if quote not in ("'", '"'):
            raise self.fail("expected quoted string")
        self.advance()
        chars: List[str] = []
        while True:
            if self.at_end():
                raise self.fail("unterminated string")
            char = self.peek()
            self.advance()
            if char == "\\" and not self.at_end():
                chars.append(self.peek())
                self.advance()
            elif char == quote:
                return "".join(chars)
            else:
                chars.append(char)

    def read_bracket_attribute(self) -> Tuple[str, str]:
        """Read ``[name='value']`` with the opening bracket already consumed."""
        self.skip_whitespace()
        name = self.read_identifier("attribute name")
        self.skip_whitespace()
        self.expect("=")
        self.skip_whitespace()
        value = self.read_string()
        self.skip_whitespace()
        if self.at_end():
            raise self.fail("unterminated bracket")
        self.expect("]")
        return name, value


def parse_style_rule(rule: str) -> StyleRule:
    """Parse one ``selector => target`` rule."""
    scanner = _Scanner(rule.strip())
    scanner.skip_whitespace()
    matcher = _parse_selector(scanner)
    scanner.skip_whitespace()
    scanner.expect("=>")
    scanner.skip_whitespace()
    path = _parse_target(scanner)
    scanner.skip_whitespace()
    if not scanner.at_end():
        raise scanner.fail(f"unexpected trailing text {scanner.source[scanner.position:]!r}")
    return StyleRule(matcher=matcher, path=path)


def _parse_selector(scanner: _Scanner) -> DocumentMatcher:
    kind = scanner.read_identifier("element kind")
    if kind not in ELEMENT_KINDS:
        raise scanner.fail(f"unknown element kind {kind!r}, expected one of {', '.join(ELEMENT_KINDS)}")

    predicates: Dict[str, str] = {}
    list_level: Optional[int] = None
    is_ordered_list: Optional[bool] = None
    while not scanner.at_end():
        char = scanner.peek()
        if char == ".":
            scanner.advance()
            predicates["style_id"] = scanner.read_identifier("style ID")
        elif char == "[":
            scanner.advance()
            name, value = scanner.read_bracket_attribute()
            if name not in _SELECTOR_ATTRIBUTES:
                raise scanner.fail(f"unknown selector attribute {name!r}")
            predicates[_SELECTOR_ATTRIBUTES[name]] = value
        elif char == ":":
            scanner.advance()
            pseudo_class = scanner.read_identifier("pseudo-class")
            if pseudo_class not in _LIST_PSEUDO_CLASSES:
                raise scanner.fail(f"unknown selector pseudo-class {pseudo_class!r}")
            if kind != PARAGRAPH:
                raise scanner.fail(f"{pseudo_class} only applies to paragraphs")
            scanner.expect("(")
            list_level = int(scanner.read_pattern(_INTEGER, "list level"))
            scanner.expect(")")
            is_ordered_list = _LIST_PSEUDO_CLASSES[pseudo_class]
        else:
            break

    if kind in FORMATTING_KINDS and (predicates or list_level is not None):
        raise scanner.fail(f"{kind!r} selectors do not take predicates")
    return DocumentMatcher(
        kind,
        style_id=predicates.get("style_id"),
        style_name=predicates.get("style_name"),
        list_level=list_level,
        is_ordered_list=is_ordered_list,
    )


def _parse_target(scanner: _Scanner) -> HtmlPath:
    if scanner.at_end():
        raise scanner.fail("empty target")
    if scanner.peek() == "!":
        scanner.advance()
        return HtmlPath.ignore()

    elements = [_parse_path_element(scanner)]
    while True:
        scanner.skip_whitespace()
        if scanner.peek() != ">":
            break
        scanner.advance()
        scanner.skip_whitespace()
        elements.append(_parse_path_element(scanner))
    return HtmlPath(tuple(elements))


def _parse_path_element(scanner: _Scanner) -> PathElement:
    tag_name = scanner.read_identifier("tag name")
    class_names: List[str] = []
    attributes: Dict[str, str] = {}
    fresh = False
    while not scanner.at_end():
        char = scanner.peek()
        if char == ".":
            scanner.advance()
            class_names.append(scanner.read_identifier("class name"))
        elif char == "[":
            scanner.advance()
            name, value = scanner.read_bracket_attribute()
            attributes[name] = value
        elif char == ":":
            scanner.advance()
            option = scanner.read_identifier("element option")
            if option != "fresh":
                raise scanner.fail(f"unknown element option {option!r}")
            fresh = True
        else:
            break
    if class_names:
        attributes["class"] = " ".join(filter(None, [attributes.get("class")] + class_names))
    return PathElement(tag_name, tuple(attributes.items()), fresh)


def _iter_rule_lines(source: StyleMapSource) -> Iterable[Tuple[int, str]]:
    if source is None:
        return []
    lines = source.splitlines() if isinstance(source, str) else list(source)
    return [
        (number, line.strip())
        for number, line in enumerate(lines, start=1)
        if line.strip() and not line.strip().startswith("#")
    ]


def read_style_map(source: StyleMapSource) -> Tuple[StyleRule, ...]:
    """Compile every rule of ``source``; raise ``StyleMapError`` if any is malformed."""
    rules: List[StyleRule] = []
    errors: List[str] = []
    for number, line in _iter_rule_lines(source):
        try:
            rules.append(parse_style_rule(line))
        except StyleMapError as exc:
            errors.extend(f"line {number}: {line!r}: {detail}" for detail in exc.errors)
    if errors:
        raise StyleMapError(errors)
    LOGGER.debug("Compiled %d style-map rules", len(rules))
    return tuple(rules)
