"""Character-budgeted prompt builder.

The builder owns three regions: a prefix (the preamble), the transcript
accepted newest-first, and context turns anchored in front of the transcript
turn they support. ``build()`` reverses the transcript region back into
chronological order, so recency decides what survives while the output still
reads oldest-first.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field

from prompting.messages import ContextItem, Message, render_context_item, rendered_length

logger = logging.getLogger(__name__)


class PromptConstructionError(RuntimeError):
    """The prompt cannot be assembled from the given inputs."""


class BudgetLedger:
    """Remaining character capacity for one prompt."""

    def __init__(self, capacity_total: int) -> None:
        if capacity_total < 0:
            raise ValueError("capacity_total must not be negative")
        self.capacity_total = capacity_total
        self._remaining = capacity_total

    @property
    def remaining(self) -> int:
        return self._remaining

    def reserve(self, amount: int) -> bool:
        """Take ``amount`` characters from the budget, all or nothing."""
        if amount < 0:
            raise ValueError("amount must not be negative")
        if amount > self._remaining:
            return False
        self._remaining -= amount
        return True

    def release(self, amount: int) -> None:
        self._remaining = min(self.capacity_total, self._remaining + amount)


@dataclass
class ContextAddResult:
    """Outcome of one ``try_add_context`` call."""

    limit_reached: bool = False
    used: list[ContextItem] = field(default_factory=list)
    ignored: list[ContextItem] = field(default_factory=list)
    duplicate: list[ContextItem] = field(default_factory=list)


# Anchor key for context turns that precede every transcript turn.
_AFTER_PREFIX = -1


class PromptBuilder:
    """Assemble a prompt that never exceeds ``char_limit`` rendered characters.

    A builder serves a single assembly: add the prefix, then transcript, then
    context, then call ``build()``.
    """

    def __init__(self, char_limit: int) -> None:
        self._ledger = BudgetLedger(char_limit)
        self._prefix: list[Message] = []
        self._reverse_messages: list[Message] = []
        self._context_turns: dict[int, list[Message]] = {}
        self._context_items: list[ContextItem] = []

    @property
    def remaining(self) -> int:
        return self._ledger.remaining

    def try_add_to_prefix(self, messages: Sequence[Message]) -> bool:
        """Install ``messages`` as the prefix if they fit; replaces any previous prefix."""
        self._ledger.release(rendered_length(self._prefix))
        self._prefix = []
        if not self._ledger.reserve(rendered_length(messages)):
            return False
        self._prefix = list(messages)
        return True

    def try_add_messages(self, reverse_transcript: Sequence[Message]) -> int:
        """Accept transcript messages newest-first until one does not fit.

        Returns how many of the oldest messages were left out. Trailing
        assistant turns (leading in ``reverse_transcript``) are dropped without
        counting against the budget or the returned number.
        """
        skipped = 0
        if not self._reverse_messages:
            while (
                skipped < len(reverse_transcript)
                and reverse_transcript[skipped].speaker == "assistant"
            ):
                skipped += 1
            if skipped:
                logger.debug("Dropped %s trailing assistant message(s)", skipped)

        accepted = 0
        for message in reverse_transcript[skipped:]:
            if self._reverse_messages and self._reverse_messages[-1].speaker == message.speaker:
                raise PromptConstructionError(
                    f"Invalid transcript order: two consecutive {message.speaker!r} messages"
                )
            if not self._ledger.reserve(len(message.text)):
                break
            self._reverse_messages.append(message)
            accepted += 1

        return len(reverse_transcript) - skipped - accepted

    def try_add_context(
        self,
        items: Iterable[ContextItem],
        per_call_limit: int | None = None,
    ) -> ContextAddResult:
        """Offer context items in the given order; each is accepted or rejected whole.

        ``per_call_limit`` caps the characters this call may use even when the
        overall budget has more room.
        """
        result = ContextAddResult()
        call_chars = 0

        for item in items:
            if self._is_duplicate(item):
                result.duplicate.append(item)
                continue
            if item.is_too_large:
                result.ignored.append(item)
                continue

            message = Message(speaker="human", text=render_context_item(item))
            cost = len(message.text)
            if per_call_limit is not None and call_chars + cost > per_call_limit:
                result.ignored.append(item)
                continue
            if not self._ledger.reserve(cost):
                result.ignored.append(item)
                continue

            call_chars += cost
            self._context_items.append(item)
            self._context_turns.setdefault(self._anchor_for(item), []).append(message)
            result.used.append(item)

        result.limit_reached = bool(result.ignored)
        return result

    def build(self) -> list[Message]:
        """Return prefix, then context and transcript turns oldest-first."""
        output: list[Message] = list(self._prefix)
        output.extend(self._context_turns.get(_AFTER_PREFIX, ()))
        for index in range(len(self._reverse_messages) - 1, -1, -1):
            output.extend(self._context_turns.get(index, ()))
            message = self._reverse_messages[index]
            output.append(Message(speaker=message.speaker, text=message.text))

        if output and output[-1].speaker == "assistant":
            output.pop()
        return output

    def _is_duplicate(self, item: ContextItem) -> bool:
        return any(item.is_duplicate_of(existing) for existing in self._context_items)

    def _anchor_for(self, item: ContextItem) -> int:
        # Prefer the newest turn that originally carried this item.
        for index, message in enumerate(self._reverse_messages):
            attached = getattr(message, "context_files", ())
            if any(item.is_duplicate_of(candidate) for candidate in attached):
                return index
        for index, message in enumerate(self._reverse_messages):
            if message.speaker == "human":
                return index
        return _AFTER_PREFIX
