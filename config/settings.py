"""Environment-driven settings for the prompt assembler and chat backend."""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Literal, cast

from dotenv import load_dotenv


def _load_dotenv_if_enabled() -> None:
    flag = os.getenv("PYTHON_DOTENV_DISABLED", "").strip().lower()
    if flag in {"1", "true", "yes"}:
        return
    load_dotenv()


_load_dotenv_if_enabled()

PROJECT_ROOT = Path(__file__).resolve().parent.parent
MCP_CONFIG_PATH = PROJECT_ROOT / ".mcp.json"

PermissionMode = Literal["default", "acceptEdits", "plan", "bypassPermissions"]
SettingSource = Literal["user", "project", "local"]
LogFormat = Literal["text", "json"]
LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


def _parse_permission_mode(raw: str) -> PermissionMode:
    if raw in {"default", "acceptEdits", "plan", "bypassPermissions"}:
        return cast(PermissionMode, raw)
    return "default"


def _parse_setting_sources(raw: str) -> list[SettingSource]:
    parsed: list[SettingSource] = []
    for source in raw.split(","):
        normalized = source.strip()
        if normalized in {"user", "project", "local"}:
            parsed.append(cast(SettingSource, normalized))
    return parsed or ["project", "local"]


def _parse_log_format(raw: str) -> LogFormat:
    if raw in {"text", "json"}:
        return cast(LogFormat, raw)
    return "text"


def _parse_log_level(raw: str) -> LogLevel:
    if raw in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
        return cast(LogLevel, raw)
    return "INFO"


def _parse_bool(raw: str, *, default: bool = False) -> bool:
    normalized = raw.strip().lower()
    if normalized in {"1", "true", "yes", "on"}:
        return True
    if normalized in {"0", "false", "no", "off"}:
        return False
    return default


def _parse_int(raw: str, *, default: int, minimum: int = 1) -> int:
    try:
        value = int(raw.strip())
    except ValueError:
        return default
    return value if value >= minimum else default


def _parse_fraction(raw: str, *, default: float) -> float:
    try:
        value = float(raw.strip())
    except ValueError:
        return default
    return value if 0 < value <= 1 else default


def _parse_extensions(raw: str, *, default: tuple[str, ...]) -> tuple[str, ...]:
    parsed: list[str] = []
    for token in raw.split(","):
        ext = token.strip().lower().lstrip(".")
        if ext and ext not in parsed:
            parsed.append(ext)
    return tuple(parsed) or default


DEFAULT_MODEL = os.getenv("CLAUDE_MODEL", "claude-sonnet-4-5-20250929")
DEFAULT_PERMISSION_MODE: PermissionMode = _parse_permission_mode(
    os.getenv("CLAUDE_PERMISSION_MODE", "default").strip()
)
SETTING_SOURCES = _parse_setting_sources(os.getenv("CLAUDE_SETTING_SOURCES", "project,local"))

APP_LOG_FORMAT: LogFormat = _parse_log_format(os.getenv("APP_LOG_FORMAT", "text").strip().lower())
APP_LOG_LEVEL: LogLevel = _parse_log_level(os.getenv("APP_LOG_LEVEL", "INFO").strip().upper())

ASSISTANT_NAME = os.getenv("ASSISTANT_NAME", "").strip() or "Pilot"
CONTEXT_MAX_CHARS = _parse_int(
    os.getenv("CONTEXT_MAX_CHARS", "12000"),
    default=12000,
    minimum=1000,
)
ENHANCED_CONTEXT_FRACTION = _parse_fraction(
    os.getenv("ENHANCED_CONTEXT_FRACTION", "0.6"),
    default=0.6,
)
PROMPT_PROTOCOL_VERSION = _parse_int(
    os.getenv("PROMPT_PROTOCOL_VERSION", "0"),
    default=0,
    minimum=0,
)

ATTACHMENTS_MAX_FILE_MB = _parse_int(os.getenv("ATTACHMENTS_MAX_FILE_MB", "5"), default=5)
ATTACHMENTS_MAX_FILE_BYTES = ATTACHMENTS_MAX_FILE_MB * 1024 * 1024
ATTACHMENTS_ALLOWED_EXTENSIONS = _parse_extensions(
    os.getenv("ATTACHMENTS_ALLOWED_EXT", "txt,md,csv,json,py"),
    default=("txt", "md", "csv", "json", "py"),
)

KNOWLEDGE_ENABLED = _parse_bool(os.getenv("KNOWLEDGE_ENABLED", "1"), default=True)
KNOWLEDGE_DIR = os.getenv("KNOWLEDGE_DIR", "knowledge").strip() or "knowledge"
KNOWLEDGE_MAX_HITS = _parse_int(os.getenv("KNOWLEDGE_MAX_HITS", "8"), default=8)


def config_env_name(section: str, key: str) -> str:
    """Map a ``(section, key)`` preference to its environment variable name."""
    snake_key = re.sub(r"(?<=[a-z0-9])([A-Z])", r"_\1", key)
    return f"{section}_{snake_key}".replace(".", "_").replace("-", "_").upper()


class EnvConfigProvider:
    """User preferences read from the environment, e.g. ``CHAT_PRE_INSTRUCTION``."""

    def get_config_value(self, section: str, key: str) -> str | None:
        value = os.getenv(config_env_name(section, key), "").strip()
        return value or None
