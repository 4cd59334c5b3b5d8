"""Explicit user context: uploaded files and workspace paths."""

from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol

from prompting.messages import ContextItem, ContextItemSource


class UploadedFileLike(Protocol):
    """Minimal interface of an uploaded file object."""

    name: str

    def read(self) -> bytes: ...

    def seek(self, offset: int, whence: int = 0) -> int: ...


@dataclass
class AttachmentContextResult:
    """Context items built from attachments plus non-fatal warnings."""

    items: list[ContextItem] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


def context_items_from_uploads(
    uploaded_files: Iterable[UploadedFileLike],
    *,
    allowed_extensions: tuple[str, ...],
    max_file_bytes: int,
    too_large_chars: int,
) -> AttachmentContextResult:
    """Decode uploads into user context items.

    Files over ``too_large_chars`` characters still become items, flagged
    ``is_too_large`` so the prompt builder reports them as ignored.
    """
    allowed = {ext.lower().lstrip(".") for ext in allowed_extensions}
    result = AttachmentContextResult()

    for uploaded in uploaded_files:
        original_name = Path(getattr(uploaded, "name", "attachment")).name
        safe_name = _sanitize_filename(original_name)
        if Path(safe_name).suffix.lower().lstrip(".") not in allowed:
            result.warnings.append(f"Skipped `{original_name}`: unsupported extension.")
            continue

        payload = _read_bytes(uploaded)
        if len(payload) > max_file_bytes:
            result.warnings.append(f"Skipped `{original_name}`: file size exceeds configured limit.")
            continue

        content = payload.decode("utf-8", errors="replace")
        result.items.append(
            ContextItem(
                identity=f"upload/{safe_name}",
                content=content,
                source=ContextItemSource.USER,
                is_too_large=len(content) > too_large_chars,
                title=original_name,
            )
        )

    return result


def context_items_from_paths(
    paths: Iterable[str], *, project_root: Path, too_large_chars: int
) -> list[ContextItem]:
    """Read workspace files mentioned by the user, ordered by path."""
    root = project_root.resolve()
    items: list[ContextItem] = []
    for raw_path in sorted(set(paths)):
        candidate = Path(raw_path)
        if not candidate.is_absolute():
            candidate = root / candidate
        resolved = candidate.resolve()
        if not (resolved == root or root in resolved.parents):
            raise ValueError(f"Context file must be inside the project root: {raw_path}")
        content = resolved.read_text(encoding="utf-8", errors="replace")
        items.append(
            ContextItem(
                identity=str(resolved.relative_to(root)),
                content=content,
                source=ContextItemSource.USER,
                is_too_large=len(content) > too_large_chars,
            )
        )
    return items


def _read_bytes(uploaded_file: UploadedFileLike) -> bytes:
    """Read bytes and rewind so the same object can be read again."""
    payload = uploaded_file.read()
    try:
        uploaded_file.seek(0)
    except (OSError, ValueError):
        # Some file-like objects cannot rewind.
        pass
    return payload


def _sanitize_filename(name: str) -> str:
    base = Path(name).name.strip()
    safe = re.sub(r"[^A-Za-z0-9._-]", "_", base)
    return safe or "attachment.bin"
