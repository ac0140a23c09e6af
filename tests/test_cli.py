"""Tests for the command line interface."""

import io
import json
import os
from contextlib import redirect_stdout
from unittest import TestCase

from dexreader_backup.cli import detect_format, main
from dexreader_backup.codec import native_codec
from dexreader_backup.store import MemoryLibraryStore

from tests.factories import MANGA_A, MANGA_B, TempDirMixin, populated_store


class TestDetectFormat(TestCase):
    """Tests for backup format detection."""

    def test_detect_by_suffix(self):
        """Test detection from file names."""
        self.assertEqual(detect_format("library.dexreader"), "native")
        self.assertEqual(detect_format("backup.tachibk"), "mihon")
        self.assertEqual(detect_format("backup.proto.gz"), "mihon")

    def test_explicit_format(self):
        """Test that an explicit format wins over the suffix."""
        self.assertEqual(detect_format("backup.bin", "mihon"), "mihon")

    def test_unknown_suffix(self):
        """Test that an unknown suffix without --format raises ValueError."""
        with self.assertRaises(ValueError):
            detect_format("backup.bin")


class TestCli(TempDirMixin, TestCase):
    """Tests for the CLI commands."""

    def setUp(self):
        self.make_tmp()
        self.library = self.path("library.json")
        populated_store().save(self.library)

    def run_cli(self, *argv):
        out = io.StringIO()
        with redirect_stdout(out):
            code = main(list(argv))
        return code, out.getvalue()

    def test_no_command(self):
        """Test that running without a command prints help."""
        code, output = self.run_cli()

        self.assertEqual(code, 2)
        self.assertIn("usage", output)

    def test_export_and_import(self):
        """Test a native backup and restore into another library."""
        backup = self.path("my_library.dexreader")
        restored = self.path("restored.json")

        code, output = self.run_cli("export", "--library", self.library, "--output", backup)
        self.assertEqual(code, 0)
        self.assertIn("Manga:           2", output)
        self.assertTrue(os.path.exists(backup))

        code, output = self.run_cli("import", "--library", restored, "--input", backup)
        self.assertEqual(code, 0)
        self.assertIn("Import completed successfully", output)
        self.assertEqual(MemoryLibraryStore.load(restored).to_dict(), MemoryLibraryStore.load(self.library).to_dict())

    def test_export_without_optional_sections(self):
        """Test the --no-* export flags."""
        backup = self.path("slim.dexreader")

        code, _ = self.run_cli("export", "--library", self.library, "--output", backup,
                               "--no-collections", "--no-progress", "--no-reader-settings")

        self.assertEqual(code, 0)
        message = native_codec().read(backup)
        self.assertFalse(message.HasField("collections"))
        self.assertFalse(message.HasField("progress"))
        self.assertFalse(message.HasField("readerSettings"))

    def test_export_wrong_suffix(self):
        """Test that exporting to a non-.dexreader file fails."""
        code, _ = self.run_cli("export", "--library", self.library, "--output", self.path("library.zip"))

        self.assertEqual(code, 1)

    def test_import_missing_file(self):
        """Test that importing a missing backup fails with exit code 1."""
        code, _ = self.run_cli("import", "--library", self.library, "--input", self.path("missing.dexreader"))

        self.assertEqual(code, 1)

    def test_mihon_export_and_import(self):
        """Test a Mihon export imported into an empty library."""
        backup = self.path("dexreader.tachibk")
        migrated = self.path("migrated.json")

        code, _ = self.run_cli("mihon-export", "--library", self.library, "--output", backup)
        self.assertEqual(code, 0)

        code, output = self.run_cli("mihon-import", "--library", migrated, "--input", backup)
        self.assertEqual(code, 0)
        self.assertIn("Manga imported:       2", output)
        self.assertEqual(sorted(MemoryLibraryStore.load(migrated).manga), sorted([MANGA_A, MANGA_B]))

    def test_decode_and_encode(self):
        """Test converting a backup to JSON and back."""
        backup = self.path("my_library.dexreader")
        decoded = self.path("my_library.json")
        encoded = self.path("edited.dexreader")
        self.run_cli("export", "--library", self.library, "--output", backup)

        code, _ = self.run_cli("decode", "--input", backup, "--output", decoded)
        self.assertEqual(code, 0)
        with open(decoded, encoding="utf-8") as f:
            data = json.load(f)
        self.assertEqual(len(data["library"]["mangaList"]), 2)

        code, _ = self.run_cli("encode", "--input", decoded, "--output", encoded)
        self.assertEqual(code, 0)
        self.assertEqual(native_codec().read(encoded), native_codec().read(backup))

    def test_encode_invalid_json(self):
        """Test that JSON missing required fields is rejected."""
        source = self.path("broken.json")
        with open(source, "w", encoding="utf-8") as f:
            json.dump({"appVersion": "1.0.0"}, f)

        code, _ = self.run_cli("encode", "--input", source, "--output", self.path("broken.dexreader"))

        self.assertEqual(code, 1)
        self.assertFalse(os.path.exists(self.path("broken.dexreader")))

    def test_schema_dump_all(self):
        """Test writing both schema files to the working directory."""
        cwd = os.getcwd()
        os.chdir(self.tmp)
        self.addCleanup(os.chdir, cwd)

        code, output = self.run_cli("schema", "--dump-all")

        self.assertEqual(code, 0)
        self.assertTrue(os.path.exists(self.path("schema-native.proto")))
        self.assertTrue(os.path.exists(self.path("schema-mihon.proto")))
        self.assertIn("schema-mihon.proto", output)
