"""One chat conversation: transcript, prompt assembly, and the backend call."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator, Sequence
from dataclasses import dataclass, field
from typing import Protocol

from prompting.client import StreamChunk
from prompting.messages import ContextItem, Message
from prompting.prompter import (
    ENHANCED_CONTEXT_ALLOCATION,
    ConfigProvider,
    DefaultPrompter,
    EnhancedContextFetcher,
)
from prompting.transcript import ChatTranscript

logger = logging.getLogger(__name__)


class ChatBackendError(RuntimeError):
    """The backend answered with an error or with no text."""


class PromptConsumer(Protocol):
    """Anything that can stream a reply for an assembled prompt."""

    def send_prompt_streaming(self, messages: Sequence[Message]) -> AsyncIterator[StreamChunk]: ...


@dataclass
class TurnResult:
    """What one ``ChatSession.send`` produced."""

    reply: str
    context_used: list[ContextItem] = field(default_factory=list)
    context_ignored: list[ContextItem] = field(default_factory=list)


class ChatSession:
    """Run chat turns against a backend, assembling a bounded prompt for each."""

    def __init__(
        self,
        agent: PromptConsumer,
        *,
        char_limit: int,
        protocol_version: int = 0,
        model_id: str = "default",
        get_enhanced_context: EnhancedContextFetcher | None = None,
        config_provider: ConfigProvider | None = None,
        assistant_name: str = "Pilot",
        enhanced_context_fraction: float = ENHANCED_CONTEXT_ALLOCATION,
    ) -> None:
        self.agent = agent
        self.char_limit = char_limit
        self.protocol_version = protocol_version
        self.get_enhanced_context = get_enhanced_context
        self.config_provider = config_provider
        self.assistant_name = assistant_name
        self.enhanced_context_fraction = enhanced_context_fraction
        self.transcript = ChatTranscript(model_id)

    async def send(self, text: str, explicit_context: Sequence[ContextItem] = ()) -> TurnResult:
        """Send ``text`` with optional user-attached context and return the reply.

        The human turn is rolled back when the prompt cannot be built, the
        backend fails or returns nothing, or the call is cancelled.
        """
        prompter = DefaultPrompter(
            explicit_context,
            self.get_enhanced_context,
            config_provider=self.config_provider,
            assistant_name=self.assistant_name,
            enhanced_context_fraction=self.enhanced_context_fraction,
        )
        self.transcript.add_human_message(text)
        try:
            info = await prompter.make_prompt(
                self.transcript, self.protocol_version, self.char_limit
            )
            self.transcript.set_last_message_context(info.new_context_used)
            ignored = info.new_context_ignored or []
            if ignored:
                logger.info("%s context item(s) did not fit in the prompt", len(ignored))
            reply = await self._request_reply(info.prompt)
        except BaseException:
            self.transcript.remove_last_human_message()
            raise

        self.transcript.add_bot_message(reply)
        return TurnResult(reply=reply, context_used=info.new_context_used, context_ignored=ignored)

    async def _request_reply(self, prompt: Sequence[Message]) -> str:
        try:
            chunks = [chunk async for chunk in self.agent.send_prompt_streaming(prompt)]
        except Exception:
            logger.exception("Chat request failed")
            raise
        return _collect_reply(chunks)


def _collect_reply(chunks: list[StreamChunk]) -> str:
    parts: list[str] = []
    for chunk in chunks:
        content = chunk.get("content", "")
        if chunk["type"] == "error":
            raise ChatBackendError(content or "Unknown backend error")
        if chunk["type"] in {"text_delta", "text"} and content:
            parts.append(content)
    reply = "".join(parts)
    if not reply.strip():
        raise ChatBackendError("The backend returned an empty reply")
    return reply
