"""Streamlit chat UI on top of the budgeted prompt assembler."""

from __future__ import annotations

import logging
from collections.abc import Sequence

import streamlit as st
from config.log_setup import configure_logging
from config.settings import (
    APP_LOG_FORMAT,
    APP_LOG_LEVEL,
    ASSISTANT_NAME,
    ATTACHMENTS_ALLOWED_EXTENSIONS,
    ATTACHMENTS_MAX_FILE_BYTES,
    CONTEXT_MAX_CHARS,
    DEFAULT_MODEL,
    ENHANCED_CONTEXT_FRACTION,
    KNOWLEDGE_DIR,
    KNOWLEDGE_ENABLED,
    KNOWLEDGE_MAX_HITS,
    PROJECT_ROOT,
    PROMPT_PROTOCOL_VERSION,
    EnvConfigProvider,
)
from prompting.async_bridge import AsyncBridge
from prompting.attachments import context_items_from_uploads
from prompting.client import ClaudeChatAgent
from prompting.knowledge import KnowledgeContextSource
from prompting.messages import ContextItem
from prompting.prompt_builder import PromptConstructionError
from prompting.session import ChatBackendError, ChatSession

logger = logging.getLogger(__name__)


def build_session() -> ChatSession:
    """Wire a chat session from environment settings."""
    fetcher = None
    if KNOWLEDGE_ENABLED:
        fetcher = KnowledgeContextSource(PROJECT_ROOT, KNOWLEDGE_DIR, max_hits=KNOWLEDGE_MAX_HITS)
    return ChatSession(
        ClaudeChatAgent(project_root=PROJECT_ROOT),
        char_limit=CONTEXT_MAX_CHARS,
        protocol_version=PROMPT_PROTOCOL_VERSION,
        model_id=DEFAULT_MODEL,
        get_enhanced_context=fetcher,
        config_provider=EnvConfigProvider(),
        assistant_name=ASSISTANT_NAME,
        enhanced_context_fraction=ENHANCED_CONTEXT_FRACTION,
    )


def ignored_context_notice(ignored: Sequence[ContextItem]) -> str:
    """User-facing note listing attachments that did not fit in the prompt."""
    if not ignored:
        return ""
    names = ", ".join(f"`{item.title or item.identity}`" for item in ignored)
    return f"Some attachments were left out because the prompt is full: {names}"


def main() -> None:
    configure_logging(APP_LOG_LEVEL, APP_LOG_FORMAT)
    st.set_page_config(page_title=f"{ASSISTANT_NAME} chat", layout="wide")

    if "bridge" not in st.session_state:
        st.session_state.bridge = AsyncBridge()
    if "session" not in st.session_state:
        st.session_state.session = build_session()
    if "history" not in st.session_state:
        st.session_state.history = []

    with st.sidebar:
        st.caption(f"Prompt budget: {CONTEXT_MAX_CHARS} characters")
        uploads = st.file_uploader(
            "Attach files",
            type=list(ATTACHMENTS_ALLOWED_EXTENSIONS),
            accept_multiple_files=True,
        )
        if st.button("Clear chat", use_container_width=True):
            st.session_state.session = build_session()
            st.session_state.history = []
            st.rerun()

    for role, content in st.session_state.history:
        with st.chat_message(role):
            st.markdown(content)

    prompt = st.chat_input("Type your message...")
    if not prompt:
        return

    st.session_state.history.append(("user", prompt))
    with st.chat_message("user"):
        st.markdown(prompt)

    attachments = context_items_from_uploads(
        uploads or [],
        allowed_extensions=ATTACHMENTS_ALLOWED_EXTENSIONS,
        max_file_bytes=ATTACHMENTS_MAX_FILE_BYTES,
        too_large_chars=CONTEXT_MAX_CHARS // 2,
    )
    for warning in attachments.warnings:
        st.warning(warning)

    with st.chat_message("assistant"):
        with st.spinner("Thinking..."):
            try:
                result = st.session_state.bridge.run(
                    st.session_state.session.send(prompt, attachments.items)
                )
            except PromptConstructionError as exc:
                st.session_state.history.pop()
                st.error(f"Could not build the prompt: {exc}")
                return
            except ChatBackendError as exc:
                st.session_state.history.pop()
                st.error(f"The assistant could not answer: {exc}")
                return
            except Exception as exc:
                logger.exception("Chat request failed")
                st.session_state.history.pop()
                st.error(f"Chat request failed: {exc}")
                return
        st.markdown(result.reply)
        notice = ignored_context_notice(result.context_ignored)
        if notice:
            st.info(notice)

    st.session_state.history.append(("assistant", result.reply))


if __name__ == "__main__":
    main()
