"""Tests for configuration loading."""

import json
from unittest import TestCase

from dexreader_backup import __version__
from dexreader_backup.config import MANGADEX_SOURCE_ID, BackupConfig, load_config

from tests.factories import TempDirMixin


class TestLoadConfig(TempDirMixin, TestCase):
    """Tests for load_config."""

    def setUp(self):
        self.make_tmp()

    def write(self, content):
        path = self.path("config.json")
        with open(path, "w", encoding="utf-8") as f:
            f.write(content)
        return path

    def test_defaults(self):
        """Test that no config file gives the defaults."""
        config = load_config()

        self.assertEqual(config, BackupConfig())
        self.assertEqual(config.app_version, __version__)
        self.assertEqual(config.mangadex_source_id, MANGADEX_SOURCE_ID)

    def test_missing_file(self):
        """Test that a missing file gives the defaults."""
        self.assertEqual(load_config(self.path("missing.json")), BackupConfig())

    def test_overrides(self):
        """Test that known keys override defaults and unknown keys are ignored."""
        path = self.write(json.dumps({
            "default_language": "ja",
            "mangadex_source_id": "123",
            "telemetry": True,
        }))

        with self.assertLogs("dexreader_backup.config", level="WARNING") as logs:
            config = load_config(path)

        self.assertEqual(config.default_language, "ja")
        self.assertEqual(config.mangadex_source_id, 123)
        self.assertIn("telemetry", logs.output[0])

    def test_invalid_json(self):
        """Test that malformed JSON raises ValueError."""
        with self.assertRaises(ValueError):
            load_config(self.write("{not json"))

    def test_not_an_object(self):
        """Test that a JSON list raises ValueError."""
        with self.assertRaises(ValueError):
            load_config(self.write("[1, 2]"))
