"""Conversion results and the messages collected along the way."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Generic, Iterable, List, TypeVar

from docx_markup.utils.logger import get_logger

LOGGER = get_logger(__name__)

WARNING = "warning"
ERROR = "error"

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class Message:
    """Recoverable problem recorded during conversion."""

    severity: str
    text: str


def warning(text: str) -> Message:
    return Message(WARNING, text)


def error(text: str) -> Message:
    return Message(ERROR, text)


@dataclass(slots=True)
class Result(Generic[T]):
    """Converted value plus every message produced, in encounter order."""

    value: T
    messages: List[Message] = field(default_factory=list)


class MessageSink:
    """Ordered collector for recoverable conversion problems."""

    def __init__(self) -> None:
        self._messages: List[Message] = []

    @property
    def messages(self) -> List[Message]:
        return list(self._messages)

    def warning(self, text: str) -> None:
        LOGGER.debug("Conversion warning: %s", text)
        self._messages.append(warning(text))

    def error(self, text: str) -> None:
        LOGGER.debug("Conversion error: %s", text)
        self._messages.append(error(text))

    def extend(self, messages: Iterable[Message]) -> None:
        self._messages.extend(messages)
