"""Message and context item types shared by the prompt assembler."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum
from typing import Literal

Speaker = Literal["human", "assistant"]


class ContextItemSource(str, Enum):
    """Where a context item came from."""

    EDITOR = "editor"
    SELECTION = "selection"
    USER = "user"
    SEARCH = "search"
    KNOWLEDGE = "knowledge"
    UNIFIED = "unified"
    HISTORY = "history"


@dataclass(frozen=True)
class Message:
    """One prompt turn."""

    speaker: Speaker
    text: str


@dataclass(frozen=True)
class LineRange:
    """Zero-based, inclusive line span inside a context item."""

    start: int
    end: int

    def overlaps(self, other: LineRange) -> bool:
        return self.start <= other.end and other.start <= self.end


@dataclass(frozen=True)
class ContextItem:
    """A unit of auxiliary context offered to the prompt builder.

    ``is_too_large`` is a precomputed hint that the item cannot fit a
    reasonable slice of the budget; the builder ignores such items outright.
    ``relevance`` is supplied by retrieval collaborators, higher is better.
    """

    identity: str
    content: str
    source: ContextItemSource = ContextItemSource.USER
    is_too_large: bool = False
    range: LineRange | None = None
    relevance: float | None = None
    title: str | None = None

    def is_duplicate_of(self, other: ContextItem) -> bool:
        if self.identity != other.identity:
            return False
        if self.range is None or other.range is None:
            return True
        return self.range.overlaps(other.range)


@dataclass(frozen=True)
class ChatMessage(Message):
    """A transcript turn with the context that was attached when it was sent."""

    context_files: tuple[ContextItem, ...] = ()


def render_context_item(item: ContextItem) -> str:
    """Render a context item as the text of a synthetic human turn."""
    location = item.identity
    kind = "file"
    if item.range is not None:
        location = f"{item.identity}:{item.range.start + 1}-{item.range.end + 1}"
        kind = "code snippet"
    return f"Use the following {kind} from `{location}`:\n```\n{item.content}\n```\n"


def rendered_length(messages: Iterable[Message]) -> int:
    """Character cost of messages; the budget proxy for tokens."""
    return sum(len(message.text) for message in messages)
