"""Ordering policy for batches of context items."""

from __future__ import annotations

from collections.abc import Iterable

from prompting.messages import ContextItem, ContextItemSource

_SOURCE_GROUP: dict[ContextItemSource, int] = {
    ContextItemSource.USER: 0,
    ContextItemSource.SELECTION: 0,
    ContextItemSource.EDITOR: 1,
    ContextItemSource.KNOWLEDGE: 2,
    ContextItemSource.SEARCH: 2,
    ContextItemSource.UNIFIED: 2,
    ContextItemSource.HISTORY: 3,
}


def sort_context_items(items: Iterable[ContextItem]) -> list[ContextItem]:
    """Return items in the order the builder should try them.

    Explicit and editor items come before retrieved ones, then higher
    ``relevance`` first. Ties keep their input order, so identical inputs
    always produce identical output.
    """
    return sorted(items, key=_sort_key)


def _sort_key(item: ContextItem) -> tuple[int, int, float]:
    group = _SOURCE_GROUP.get(item.source, 2)
    if item.relevance is None:
        return (group, 1, 0.0)
    return (group, 0, -item.relevance)
