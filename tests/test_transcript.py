"""Unit tests for the chat transcript and message helpers."""

from __future__ import annotations

import unittest

from prompting.messages import ContextItem, LineRange, render_context_item
from prompting.transcript import ChatTranscript


class ChatTranscriptTests(unittest.TestCase):
    def test_messages_alternate(self) -> None:
        chat = ChatTranscript("model")
        chat.add_human_message("hi")
        with self.assertRaises(ValueError):
            chat.add_human_message("again")
        chat.add_bot_message("hello")
        with self.assertRaises(ValueError):
            chat.add_bot_message("twice")
        self.assertEqual([m.speaker for m in chat.get_messages()], ["human", "assistant"])

    def test_snapshot_is_a_copy(self) -> None:
        chat = ChatTranscript("model")
        chat.add_human_message("hi")
        snapshot = chat.get_messages()
        snapshot.clear()
        self.assertEqual(len(chat), 1)

    def test_set_last_message_context(self) -> None:
        item = ContextItem(identity="a.py", content="a")
        chat = ChatTranscript("model")
        chat.add_human_message("hi")
        chat.set_last_message_context([item])
        self.assertEqual(chat.get_messages()[-1].context_files, (item,))
        self.assertEqual(chat.get_messages()[-1].text, "hi")

    def test_remove_last_human_message_only_removes_human(self) -> None:
        chat = ChatTranscript("model")
        chat.add_human_message("hi")
        chat.add_bot_message("hello")
        chat.remove_last_human_message()
        self.assertEqual(len(chat), 2)
        chat.add_human_message("next")
        chat.remove_last_human_message()
        self.assertEqual(len(chat), 2)


class RenderContextItemTests(unittest.TestCase):
    def test_whole_file(self) -> None:
        text = render_context_item(ContextItem(identity="src/a.py", content="x = 1"))
        self.assertEqual(text, "Use the following file from `src/a.py`:\n```\nx = 1\n```\n")

    def test_ranged_snippet_uses_one_based_lines(self) -> None:
        item = ContextItem(identity="src/a.py", content="x", range=LineRange(4, 9))
        self.assertIn("code snippet from `src/a.py:5-10`", render_context_item(item))

    def test_duplicate_rules(self) -> None:
        whole = ContextItem(identity="a.py", content="")
        ranged = ContextItem(identity="a.py", content="", range=LineRange(1, 2))
        other = ContextItem(identity="b.py", content="")
        self.assertTrue(whole.is_duplicate_of(ranged))
        self.assertTrue(ranged.is_duplicate_of(whole))
        self.assertFalse(whole.is_duplicate_of(other))


if __name__ == "__main__":
    unittest.main()
