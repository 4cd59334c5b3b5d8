"""Retrieved context from a folder of markdown notes.

``KnowledgeContextSource`` is the enhanced-context collaborator: given the
latest human message and a character budget it returns ranked snippets as
context items. Search runs through ripgrep, with a pure-Python fallback.
"""

from __future__ import annotations

import asyncio
import logging
import re
import subprocess
from dataclasses import dataclass, replace
from pathlib import Path

from prompting.messages import ContextItem, ContextItemSource, LineRange, render_context_item

logger = logging.getLogger(__name__)

_STOPWORDS = frozenset(
    "a an and are at be by can could did do does for from how i in is it me my of on "
    "or please the this to we what when where which who why with would you".split()
)
_MAX_TERMS = 4
_SNIPPET_RADIUS = 2


@dataclass
class KnowledgeHit:
    """One matching line in a knowledge file."""

    path: str
    line: int


def resolve_knowledge_dir(project_root: Path, knowledge_dir: str) -> Path:
    """Resolve the knowledge directory, refusing anything outside the project root."""
    root = project_root.resolve()
    candidate = Path(knowledge_dir)
    if not candidate.is_absolute():
        candidate = root / candidate
    resolved = candidate.resolve()
    if not _is_within(resolved, root):
        raise ValueError("Knowledge directory must be inside the project root.")
    return resolved


def build_search_pattern(query: str) -> str:
    """Turn a chat message into an OR pattern of its meaningful terms."""
    stripped = query.strip()
    terms: list[str] = []
    seen: set[str] = set()
    for token in stripped.split():
        term = token.strip("`'\".,!?():;[]{}")
        lowered = term.lower()
        if not term or lowered in seen:
            continue
        if term.isascii() and (lowered in _STOPWORDS or len(term) < 2):
            continue
        terms.append(term)
        seen.add(lowered)
        if len(terms) >= _MAX_TERMS:
            break
    if not terms and stripped:
        terms = [stripped]
    return "|".join(_pattern_term(term) for term in terms)


def _pattern_term(term: str) -> str:
    escaped = re.escape(term)
    if re.fullmatch(r"[A-Za-z0-9_]+", term):
        return rf"\b{escaped}\b"
    return escaped


def search_knowledge(
    query: str, *, knowledge_dir: Path, project_root: Path, max_hits: int
) -> list[KnowledgeHit]:
    """Return line hits for ``query`` in rank order (first hit ranks highest)."""
    pattern = build_search_pattern(query)
    if not pattern or not knowledge_dir.exists():
        return []

    try:
        output = _run_rg(pattern, knowledge_dir=knowledge_dir, project_root=project_root)
    except FileNotFoundError:
        logger.info("rg is unavailable; searching knowledge files in Python")
        return _python_search(pattern, knowledge_dir=knowledge_dir, project_root=project_root)[
            :max_hits
        ]
    except subprocess.TimeoutExpired:
        logger.warning("rg knowledge search timed out")
        return []
    return _parse_rg_output(output, knowledge_dir=knowledge_dir, project_root=project_root)[
        :max_hits
    ]


def _run_rg(pattern: str, *, knowledge_dir: Path, project_root: Path) -> str:
    result = subprocess.run(
        ["rg", "-n", "--no-heading", "-S", "--sort", "path", "--glob", "*.md", pattern,
         str(knowledge_dir)],
        capture_output=True,
        text=True,
        timeout=5,
        check=False,
        cwd=str(project_root.resolve()),
    )
    # 0 means matches, 1 means none.
    if result.returncode not in {0, 1}:
        logger.warning("rg exited with status %s: %s", result.returncode, result.stderr.strip())
    return result.stdout


def _parse_rg_output(output: str, *, knowledge_dir: Path, project_root: Path) -> list[KnowledgeHit]:
    root = project_root.resolve()
    knowledge_root = knowledge_dir.resolve()
    hits: list[KnowledgeHit] = []
    for raw_line in output.splitlines():
        parts = raw_line.split(":", 2)
        if len(parts) != 3 or not parts[1].isdigit():
            continue
        path = Path(parts[0])
        resolved = path.resolve() if path.is_absolute() else (root / path).resolve()
        if not _is_within(resolved, knowledge_root):
            continue
        hits.append(KnowledgeHit(path=str(resolved.relative_to(root)), line=int(parts[1])))
    return hits


def _python_search(pattern: str, *, knowledge_dir: Path, project_root: Path) -> list[KnowledgeHit]:
    compiled = re.compile(pattern, re.IGNORECASE)
    root = project_root.resolve()
    hits: list[KnowledgeHit] = []
    for path in sorted(knowledge_dir.rglob("*.md")):
        if not path.is_file():
            continue
        rel_path = str(path.resolve().relative_to(root))
        lines = path.read_text(encoding="utf-8", errors="replace").splitlines()
        for number, line in enumerate(lines, 1):
            if compiled.search(line):
                hits.append(KnowledgeHit(path=rel_path, line=number))
    return hits


def hits_to_context_items(
    hits: list[KnowledgeHit], *, project_root: Path, char_limit: int
) -> list[ContextItem]:
    """Expand hits into snippets around each matching line.

    Hits in the same file whose snippets would overlap are folded into the
    first one. Relevance falls with rank.
    """
    root = project_root.resolve()
    file_lines: dict[str, list[str]] = {}
    ranges: dict[str, list[LineRange]] = {}
    items: list[ContextItem] = []

    for rank, hit in enumerate(hits):
        if hit.path not in file_lines:
            text = (root / hit.path).read_text(encoding="utf-8", errors="replace")
            file_lines[hit.path] = text.splitlines()
        lines = file_lines[hit.path]
        index = hit.line - 1
        if not 0 <= index < len(lines):
            continue
        span = LineRange(
            start=max(0, index - _SNIPPET_RADIUS),
            end=min(len(lines) - 1, index + _SNIPPET_RADIUS),
        )
        if any(span.overlaps(taken) for taken in ranges.get(hit.path, [])):
            continue
        ranges.setdefault(hit.path, []).append(span)

        item = ContextItem(
            identity=hit.path,
            content="\n".join(lines[span.start : span.end + 1]),
            source=ContextItemSource.KNOWLEDGE,
            range=span,
            relevance=1.0 / (rank + 1),
        )
        if len(render_context_item(item)) > char_limit:
            item = replace(item, is_too_large=True)
        items.append(item)
    return items


class KnowledgeContextSource:
    """Enhanced-context fetcher backed by the knowledge folder."""

    def __init__(self, project_root: Path, knowledge_dir: str, *, max_hits: int) -> None:
        self.project_root = project_root.resolve()
        self.knowledge_dir = resolve_knowledge_dir(self.project_root, knowledge_dir)
        self.max_hits = max_hits

    async def __call__(self, query: str, char_limit: int) -> list[ContextItem]:
        return await asyncio.to_thread(self._retrieve, query, char_limit)

    def _retrieve(self, query: str, char_limit: int) -> list[ContextItem]:
        hits = search_knowledge(
            query,
            knowledge_dir=self.knowledge_dir,
            project_root=self.project_root,
            max_hits=self.max_hits,
        )
        items = hits_to_context_items(hits, project_root=self.project_root, char_limit=char_limit)
        logger.debug("Knowledge search returned %s hit(s), %s item(s)", len(hits), len(items))
        return items


def _is_within(path: Path, root: Path) -> bool:
    return path == root or root in path.parents
