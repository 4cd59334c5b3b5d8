"""Unit tests for application settings."""

from __future__ import annotations

import importlib
import os
import unittest
from unittest.mock import patch

import config.settings as settings_module


class SettingsTests(unittest.TestCase):
    """Validates env var parsing."""

    def _reload_settings(self):
        with patch.dict(os.environ, {"PYTHON_DOTENV_DISABLED": "1"}, clear=False):
            return importlib.reload(settings_module)

    def tearDown(self) -> None:
        self._reload_settings()

    def test_defaults(self) -> None:
        with patch.dict(os.environ, {}, clear=True):
            settings = self._reload_settings()

        self.assertEqual(settings.CONTEXT_MAX_CHARS, 12000)
        self.assertEqual(settings.ENHANCED_CONTEXT_FRACTION, 0.6)
        self.assertEqual(settings.PROMPT_PROTOCOL_VERSION, 0)
        self.assertEqual(settings.ASSISTANT_NAME, "Pilot")
        self.assertEqual(settings.DEFAULT_PERMISSION_MODE, "default")
        self.assertEqual(settings.APP_LOG_FORMAT, "text")

    def test_context_budget_below_minimum_falls_back(self) -> None:
        with patch.dict(os.environ, {"CONTEXT_MAX_CHARS": "10"}, clear=True):
            settings = self._reload_settings()
        self.assertEqual(settings.CONTEXT_MAX_CHARS, 12000)

    def test_context_budget_from_env(self) -> None:
        with patch.dict(os.environ, {"CONTEXT_MAX_CHARS": "30000"}, clear=True):
            settings = self._reload_settings()
        self.assertEqual(settings.CONTEXT_MAX_CHARS, 30000)

    def test_enhanced_fraction_out_of_range_falls_back(self) -> None:
        for raw in ("0", "1.5", "abc"):
            with patch.dict(os.environ, {"ENHANCED_CONTEXT_FRACTION": raw}, clear=True):
                settings = self._reload_settings()
            self.assertEqual(settings.ENHANCED_CONTEXT_FRACTION, 0.6, msg=raw)

    def test_enhanced_fraction_from_env(self) -> None:
        with patch.dict(os.environ, {"ENHANCED_CONTEXT_FRACTION": "0.25"}, clear=True):
            settings = self._reload_settings()
        self.assertEqual(settings.ENHANCED_CONTEXT_FRACTION, 0.25)

    def test_setting_sources_are_trimmed(self) -> None:
        with patch.dict(os.environ, {"CLAUDE_SETTING_SOURCES": " project, local ,,user "}, clear=True):
            settings = self._reload_settings()
        self.assertEqual(settings.SETTING_SOURCES, ["project", "local", "user"])

    def test_attachment_extensions_are_normalized(self) -> None:
        with patch.dict(os.environ, {"ATTACHMENTS_ALLOWED_EXT": ".MD, txt,md"}, clear=True):
            settings = self._reload_settings()
        self.assertEqual(settings.ATTACHMENTS_ALLOWED_EXTENSIONS, ("md", "txt"))

    def test_config_env_name(self) -> None:
        self.assertEqual(settings_module.config_env_name("chat", "preInstruction"), "CHAT_PRE_INSTRUCTION")
        self.assertEqual(settings_module.config_env_name("editor.tabs", "size"), "EDITOR_TABS_SIZE")

    def test_env_config_provider(self) -> None:
        provider = settings_module.EnvConfigProvider()
        with patch.dict(os.environ, {"CHAT_PRE_INSTRUCTION": " Be terse "}, clear=True):
            self.assertEqual(provider.get_config_value("chat", "preInstruction"), "Be terse")
        with patch.dict(os.environ, {"CHAT_PRE_INSTRUCTION": "  "}, clear=True):
            self.assertIsNone(provider.get_config_value("chat", "preInstruction"))
        with patch.dict(os.environ, {}, clear=True):
            self.assertIsNone(provider.get_config_value("chat", "preInstruction"))


if __name__ == "__main__":
    unittest.main()
