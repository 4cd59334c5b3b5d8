"""Unit tests for app.py helpers and logging setup."""

from __future__ import annotations

import json
import logging
import sys
import unittest
from unittest.mock import patch

import structlog

import app
from config.log_setup import configure_logging, json_formatter
from prompting.knowledge import KnowledgeContextSource
from prompting.messages import ContextItem


class IgnoredContextNoticeTests(unittest.TestCase):
    def test_empty_when_nothing_ignored(self) -> None:
        self.assertEqual(app.ignored_context_notice([]), "")

    def test_lists_titles_or_identities(self) -> None:
        notice = app.ignored_context_notice(
            [
                ContextItem(identity="upload/a.txt", content="", title="a.txt"),
                ContextItem(identity="src/b.py", content=""),
            ]
        )
        self.assertIn("`a.txt`", notice)
        self.assertIn("`src/b.py`", notice)


class BuildSessionTests(unittest.TestCase):
    def test_knowledge_fetcher_follows_setting(self) -> None:
        with patch.object(app, "KNOWLEDGE_ENABLED", False):
            self.assertIsNone(app.build_session().get_enhanced_context)
        with patch.object(app, "KNOWLEDGE_ENABLED", True):
            self.assertIsInstance(app.build_session().get_enhanced_context, KnowledgeContextSource)


class LoggingSetupTests(unittest.TestCase):
    def tearDown(self) -> None:
        root = logging.getLogger()
        root.handlers.clear()
        root.setLevel(logging.WARNING)

    def test_json_formatter_emits_one_object(self) -> None:
        record = logging.LogRecord("x.y", logging.INFO, __file__, 1, "hello %s", ("world",), None)
        payload = json.loads(json_formatter().format(record))
        self.assertEqual(payload["event"], "hello world")
        self.assertEqual(payload["logger"], "x.y")
        self.assertEqual(payload["level"], "info")
        self.assertIn("timestamp", payload)

    def test_json_formatter_includes_exception(self) -> None:
        try:
            raise ValueError("boom")
        except ValueError:
            record = logging.LogRecord("x", logging.ERROR, __file__, 1, "failed", None, sys.exc_info())
        payload = json.loads(json_formatter().format(record))
        self.assertIn("ValueError: boom", payload["exception"])

    def test_configure_logging_sets_level_and_formatter(self) -> None:
        configure_logging("DEBUG", "json")
        root = logging.getLogger()
        self.assertEqual(root.level, logging.DEBUG)
        self.assertIsInstance(root.handlers[0].formatter, structlog.stdlib.ProcessorFormatter)


if __name__ == "__main__":
    unittest.main()
