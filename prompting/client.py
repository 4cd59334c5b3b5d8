"""Claude Agent SDK client that sends an assembled prompt and streams the reply."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator, Iterator, Sequence
from pathlib import Path
from typing import Any, Literal, NotRequired, TypedDict

from claude_agent_sdk import (
    AssistantMessage,
    ClaudeAgentOptions,
    ClaudeSDKClient,
    ResultMessage,
    TextBlock,
    ToolUseBlock,
    UserMessage,
)
from claude_agent_sdk.types import StreamEvent, ToolResultBlock
from config.settings import (
    DEFAULT_MODEL,
    DEFAULT_PERMISSION_MODE,
    MCP_CONFIG_PATH,
    SETTING_SOURCES,
    PermissionMode,
)
from prompting.messages import Message
from prompting.providers import to_query_text

logger = logging.getLogger(__name__)


class StreamChunk(TypedDict):
    """Normalized piece of a streamed reply."""

    type: Literal["text_delta", "text", "tool_use", "tool_result", "error", "done"]
    content: NotRequired[str]


class ClaudeChatAgent:
    """Backend consumer of assembled prompts.

    Every call opens its own SDK session and disconnects it once the reply has
    been read. The prompt carries the bounded history.
    """

    def __init__(
        self,
        project_root: Path,
        model: str | None = None,
        permission_mode: PermissionMode | None = None,
    ) -> None:
        self.project_root = project_root
        self.model = model or DEFAULT_MODEL
        self.permission_mode = permission_mode or DEFAULT_PERMISSION_MODE

    def _build_options(self) -> ClaudeAgentOptions:
        mcp_config: dict[str, Any] | str | Path = {}
        if MCP_CONFIG_PATH.exists():
            mcp_config = MCP_CONFIG_PATH
        return ClaudeAgentOptions(
            model=self.model,
            permission_mode=self.permission_mode,
            cwd=str(self.project_root),
            setting_sources=SETTING_SOURCES,
            include_partial_messages=True,
            mcp_servers=mcp_config,
        )

    async def send_prompt_streaming(self, messages: Sequence[Message]) -> AsyncIterator[StreamChunk]:
        """Send ``messages`` as one query and yield reply chunks as they arrive."""
        query = to_query_text(messages)
        if not query:
            raise ValueError("Cannot send an empty prompt")

        client = ClaudeSDKClient(self._build_options())
        await client.connect()
        try:
            await client.query(query)
            emitted_delta = False
            async for sdk_message in client.receive_response():
                for chunk in _chunks_from(sdk_message, emitted_delta=emitted_delta):
                    if chunk["type"] == "text_delta":
                        emitted_delta = True
                    yield chunk
        finally:
            await _disconnect(client)


async def _disconnect(client: ClaudeSDKClient) -> None:
    try:
        await client.disconnect()
    except Exception:
        logger.warning("Claude SDK disconnect failed", exc_info=True)


def _chunks_from(sdk_message: object, *, emitted_delta: bool) -> Iterator[StreamChunk]:
    if isinstance(sdk_message, StreamEvent):
        event = sdk_message.event
        event_type = event.get("type", "")
        if event_type == "content_block_delta":
            delta = event.get("delta", {})
            if delta.get("type") == "text_delta" and delta.get("text"):
                yield {"type": "text_delta", "content": delta["text"]}
        elif event_type == "content_block_start":
            block = event.get("content_block", {})
            if block.get("type") == "tool_use":
                yield {"type": "tool_use", "content": block.get("name", "unknown")}

    elif isinstance(sdk_message, AssistantMessage):
        for block in sdk_message.content:
            if isinstance(block, TextBlock) and block.text and not emitted_delta:
                yield {"type": "text", "content": block.text}
            elif isinstance(block, ToolUseBlock):
                yield {"type": "tool_use", "content": block.name}

    elif isinstance(sdk_message, UserMessage):
        if isinstance(sdk_message.content, list):
            for block in sdk_message.content:
                if isinstance(block, ToolResultBlock):
                    yield {"type": "tool_result", "content": "error" if block.is_error else "success"}

    elif isinstance(sdk_message, ResultMessage):
        if sdk_message.is_error:
            yield {"type": "error", "content": sdk_message.result or "Unknown error"}
        else:
            yield {"type": "done", "content": sdk_message.session_id}

    else:
        logger.debug("Ignored SDK message: %s", type(sdk_message).__name__)
