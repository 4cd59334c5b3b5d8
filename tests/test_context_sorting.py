"""Unit tests for context ordering."""

from __future__ import annotations

import unittest

from prompting.context_sorting import sort_context_items
from prompting.messages import ContextItem, ContextItemSource


def _item(identity: str, source: ContextItemSource, relevance: float | None = None) -> ContextItem:
    return ContextItem(identity=identity, content=identity, source=source, relevance=relevance)


class SortContextItemsTests(unittest.TestCase):
    def test_higher_relevance_first(self) -> None:
        items = [
            _item("a", ContextItemSource.SEARCH, 0.2),
            _item("b", ContextItemSource.SEARCH, 0.9),
            _item("c", ContextItemSource.SEARCH, 0.5),
        ]
        self.assertEqual([i.identity for i in sort_context_items(items)], ["b", "c", "a"])

    def test_explicit_sources_precede_retrieved_ones(self) -> None:
        items = [
            _item("history", ContextItemSource.HISTORY),
            _item("search", ContextItemSource.SEARCH, 1.0),
            _item("editor", ContextItemSource.EDITOR),
            _item("user", ContextItemSource.USER),
        ]
        self.assertEqual(
            [i.identity for i in sort_context_items(items)],
            ["user", "editor", "search", "history"],
        )

    def test_ties_keep_input_order(self) -> None:
        items = [_item(name, ContextItemSource.KNOWLEDGE, 0.5) for name in "zyxw"]
        self.assertEqual([i.identity for i in sort_context_items(items)], ["z", "y", "x", "w"])

    def test_unranked_items_follow_ranked_ones(self) -> None:
        items = [_item("none", ContextItemSource.SEARCH), _item("ranked", ContextItemSource.SEARCH, 0.0)]
        self.assertEqual([i.identity for i in sort_context_items(items)], ["ranked", "none"])

    def test_input_is_not_mutated_and_result_is_deterministic(self) -> None:
        items = [_item("a", ContextItemSource.SEARCH, 0.1), _item("b", ContextItemSource.SEARCH, 0.2)]
        snapshot = list(items)
        self.assertEqual(sort_context_items(items), sort_context_items(items))
        self.assertEqual(items, snapshot)


if __name__ == "__main__":
    unittest.main()
