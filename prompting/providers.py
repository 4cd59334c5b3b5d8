"""Adapters from the generic message list to backend wire formats.

Role renaming and trailing-turn rules live here, one function per backend;
the prompt builder knows nothing about them.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Literal, TypedDict

from prompting.messages import Message


class AnthropicMessage(TypedDict):
    role: Literal["user", "assistant"]
    content: str


class GeminiPart(TypedDict):
    text: str


class GeminiChatMessage(TypedDict):
    role: Literal["user", "model"]
    parts: list[GeminiPart]


def to_anthropic_messages(messages: Sequence[Message]) -> list[AnthropicMessage]:
    """Map to the Messages API: strictly alternating, starting and ending with ``user``.

    Consecutive turns of the same role are merged with a blank line.
    """
    converted: list[AnthropicMessage] = []
    for message in messages:
        role: Literal["user", "assistant"] = "user" if message.speaker == "human" else "assistant"
        if not converted and role == "assistant":
            continue
        if converted and converted[-1]["role"] == role:
            converted[-1]["content"] = f"{converted[-1]['content']}\n\n{message.text}"
            continue
        converted.append({"role": role, "content": message.text})

    if converted and converted[-1]["role"] == "assistant":
        converted.pop()
    return converted


def to_gemini_messages(messages: Sequence[Message]) -> list[GeminiChatMessage]:
    """Map to Gemini chat contents, dropping a trailing ``model`` turn.

    Consecutive turns of the same role become one turn with several parts.
    """
    converted: list[GeminiChatMessage] = []
    for message in messages:
        role: Literal["user", "model"] = "user" if message.speaker == "human" else "model"
        if converted and converted[-1]["role"] == role:
            converted[-1]["parts"].append({"text": message.text})
            continue
        converted.append({"role": role, "parts": [{"text": message.text}]})

    if converted and converted[-1]["role"] == "model":
        converted.pop()
    return converted


def to_query_text(messages: Sequence[Message]) -> str:
    """Flatten the prompt into the single query string the agent SDK accepts."""
    turns = list(messages)
    if turns and turns[-1].speaker == "assistant":
        turns.pop()
    lines = []
    for message in turns:
        label = "Human" if message.speaker == "human" else "Assistant"
        lines.append(f"{label}: {message.text}")
    return "\n\n".join(lines)
