"""In-memory conversation state."""

from __future__ import annotations

from collections.abc import Iterable

from prompting.messages import ChatMessage, ContextItem


class ChatTranscript:
    """Append-only chat history for one conversation."""

    def __init__(self, model_id: str) -> None:
        self.model_id = model_id
        self._messages: list[ChatMessage] = []

    def add_human_message(
        self, text: str, context_files: Iterable[ContextItem] = ()
    ) -> ChatMessage:
        if self._messages and self._messages[-1].speaker == "human":
            raise ValueError("Cannot add a human message right after another human message.")
        message = ChatMessage(speaker="human", text=text, context_files=tuple(context_files))
        self._messages.append(message)
        return message

    def add_bot_message(self, text: str) -> ChatMessage:
        if not self._messages or self._messages[-1].speaker != "human":
            raise ValueError("An assistant message must follow a human message.")
        message = ChatMessage(speaker="assistant", text=text)
        self._messages.append(message)
        return message

    def set_last_message_context(self, context_files: Iterable[ContextItem]) -> None:
        """Record the context that was sent with the latest human turn."""
        if not self._messages or self._messages[-1].speaker != "human":
            raise ValueError("The latest message is not a human message.")
        last = self._messages[-1]
        self._messages[-1] = ChatMessage(
            speaker="human", text=last.text, context_files=tuple(context_files)
        )

    def remove_last_human_message(self) -> None:
        if self._messages and self._messages[-1].speaker == "human":
            self._messages.pop()

    def get_messages(self) -> list[ChatMessage]:
        """Return a snapshot; callers cannot mutate the history through it."""
        return list(self._messages)

    def __len__(self) -> int:
        return len(self._messages)
