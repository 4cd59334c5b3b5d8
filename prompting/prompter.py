"""Prompt assembly policy: what goes into the prompt, in priority order."""

from __future__ import annotations

import logging
import math
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from typing import Protocol

from prompting.context_sorting import sort_context_items
from prompting.messages import ContextItem, Message
from prompting.preamble import get_simple_preamble
from prompting.prompt_builder import PromptBuilder, PromptConstructionError
from prompting.transcript import ChatTranscript

logger = logging.getLogger(__name__)

# Share of the window that freshly retrieved context may take.
ENHANCED_CONTEXT_ALLOCATION = 0.6

EnhancedContextFetcher = Callable[[str, int], Awaitable[list[ContextItem]]]


class ConfigProvider(Protocol):
    """Read-only access to user preferences."""

    def get_config_value(self, section: str, key: str) -> str | None: ...


@dataclass
class PromptInfo:
    """An assembled prompt plus the context that made it in (or did not)."""

    prompt: list[Message]
    new_context_used: list[ContextItem]
    new_context_ignored: list[ContextItem] | None = None


class DefaultPrompter:
    """Fill a fresh ``PromptBuilder`` stage by stage.

    Priority: preamble, transcript, explicit context, context attached to
    earlier turns, then retrieved context. Each stage runs only if the
    previous one left room.
    """

    def __init__(
        self,
        explicit_context: Sequence[ContextItem],
        get_enhanced_context: EnhancedContextFetcher | None = None,
        *,
        config_provider: ConfigProvider | None = None,
        assistant_name: str = "Pilot",
        enhanced_context_fraction: float = ENHANCED_CONTEXT_ALLOCATION,
    ) -> None:
        self.explicit_context = list(explicit_context)
        self.get_enhanced_context = get_enhanced_context
        self.config_provider = config_provider
        self.assistant_name = assistant_name
        self.enhanced_context_fraction = enhanced_context_fraction

    async def make_prompt(
        self, chat: ChatTranscript, protocol_version: int, char_limit: int
    ) -> PromptInfo:
        enhanced_char_limit = math.floor(char_limit * self.enhanced_context_fraction)
        builder = PromptBuilder(char_limit)
        new_context_used: list[ContextItem] = []

        preamble = get_simple_preamble(
            self.assistant_name, protocol_version, self._pre_instruction()
        )
        if not builder.try_add_to_prefix(preamble):
            raise PromptConstructionError(
                f"Preamble length exceeded context window size {char_limit}"
            )

        reverse_transcript = list(reversed(chat.get_messages()))
        ignored_messages = builder.try_add_messages(reverse_transcript)
        if ignored_messages:
            logger.debug(
                "Ignored %s transcript messages due to context limit", ignored_messages
            )
            return PromptInfo(prompt=builder.build(), new_context_used=new_context_used)

        explicit = builder.try_add_context(self.explicit_context)
        new_context_used.extend(explicit.used)
        if explicit.limit_reached:
            logger.debug(
                "Ignored %s user-specified context items due to context limit",
                len(explicit.ignored),
            )
            return PromptInfo(
                prompt=builder.build(),
                new_context_used=new_context_used,
                new_context_ignored=explicit.ignored,
            )

        prior = builder.try_add_context(
            [item for message in reverse_transcript for item in message.context_files]
        )
        if prior.limit_reached:
            logger.debug("Ignored prior context items due to context limit")
            return PromptInfo(prompt=builder.build(), new_context_used=new_context_used)

        last_message = reverse_transcript[0] if reverse_transcript else None
        if last_message is None or not last_message.text:
            raise PromptConstructionError("No last message or last message text was empty")
        if last_message.speaker == "assistant":
            raise PromptConstructionError(
                'Last message in prompt needs speaker "human", but was "assistant"'
            )

        if self.get_enhanced_context is not None:
            retrieved = await self._fetch_enhanced_context(
                self.get_enhanced_context, last_message.text, enhanced_char_limit
            )
            enhanced = builder.try_add_context(
                sort_context_items(retrieved), enhanced_char_limit
            )
            new_context_used.extend(enhanced.used)
            if enhanced.limit_reached:
                logger.debug(
                    "Ignored %s additional context items due to limit reached",
                    len(enhanced.ignored),
                )

        return PromptInfo(prompt=builder.build(), new_context_used=new_context_used)

    def _pre_instruction(self) -> str | None:
        if self.config_provider is None:
            return None
        return self.config_provider.get_config_value("chat", "preInstruction")

    async def _fetch_enhanced_context(
        self, fetch: EnhancedContextFetcher, query: str, char_limit: int
    ) -> list[ContextItem]:
        try:
            return list(await fetch(query, char_limit))
        except Exception:
            logger.warning("Enhanced context retrieval failed; continuing without it", exc_info=True)
            return []
