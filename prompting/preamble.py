"""System preamble messages."""

from __future__ import annotations

from prompting.messages import Message


def get_simple_preamble(
    assistant_name: str,
    protocol_version: int,
    pre_instruction: str | None = None,
) -> list[Message]:
    """Return the leading instruction turns for a prompt.

    A non-blank ``pre_instruction`` is appended to the instruction after a
    single space. Protocol version 0 backends expect the instruction to be
    acknowledged by an assistant turn; later versions take it alone.
    """
    instruction = f"You are {assistant_name}, an AI coding assistant."
    if pre_instruction and pre_instruction.strip():
        instruction = f"{instruction} {pre_instruction.strip()}"

    messages = [Message(speaker="human", text=instruction)]
    if protocol_version < 1:
        messages.append(
            Message(speaker="assistant", text=f"I am {assistant_name}, an AI coding assistant.")
        )
    return messages
