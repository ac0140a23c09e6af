"""Tests for BackupCodec."""

import gzip
import os
from unittest import TestCase
from unittest.mock import patch

from dexreader_backup.codec import mihon_codec, native_codec
from dexreader_backup.errors import CorruptArchiveError, UnreadableFileError, UnrecognizedSchemaError

from tests.factories import MANGA_A, TempDirMixin, add_mihon_manga, add_native_manga, mihon_backup, native_backup


class TestEncodeDecode(TestCase):
    """Tests for encode/decode of in-memory bytes."""

    def setUp(self):
        self.codec = native_codec()

    def test_round_trip(self):
        """Test that decode(encode(backup)) returns an equal message."""
        backup = native_backup()
        add_native_manga(backup, MANGA_A, "Sousou no Frieren", coverUrl="https://example.org/a.jpg")
        backup.library.mangaList[0].externalLinks["al"] = "118586"

        decoded = self.codec.decode(self.codec.encode(backup))

        self.assertEqual(decoded, backup)
        self.assertEqual(dict(decoded.library.mangaList[0].externalLinks), {"al": "118586"})

    def test_output_is_gzip(self):
        """Test that encoded bytes carry the gzip magic number."""
        self.assertEqual(self.codec.encode(native_backup())[:2], b"\x1f\x8b")

    def test_not_gzip_is_corrupt_archive(self):
        """Test that non-gzip bytes raise CorruptArchiveError."""
        with self.assertRaises(CorruptArchiveError):
            self.codec.decode(b"definitely not a backup")

    def test_truncated_gzip_is_corrupt_archive(self):
        """Test that a truncated gzip stream raises CorruptArchiveError."""
        data = self.codec.encode(native_backup())
        with self.assertRaises(CorruptArchiveError):
            self.codec.decode(data[:-12])

    def test_foreign_payload_is_unrecognized_schema(self):
        """Test that a valid gzip with a Mihon payload is not accepted as native."""
        foreign = mihon_backup()
        add_mihon_manga(foreign, f"/manga/{MANGA_A}", "Frieren")
        data = mihon_codec().encode(foreign)

        with self.assertRaises(UnrecognizedSchemaError):
            self.codec.decode(data)

    def test_native_payload_is_not_a_mihon_backup(self):
        """Test that the Mihon codec rejects a native payload instead of reading it as empty."""
        backup = native_backup()
        add_native_manga(backup, MANGA_A, "Sousou no Frieren")
        data = self.codec.encode(backup)

        with self.assertRaises(UnrecognizedSchemaError) as ctx:
            mihon_codec().decode(data)

        self.assertIn("backupManga", str(ctx.exception))

    def test_mihon_payload_with_unknown_fields_is_accepted(self):
        """Test that fields outside the known Mihon subset are kept rather than rejected."""
        foreign = mihon_backup()
        row = add_mihon_manga(foreign, f"/manga/{MANGA_A}", "Frieren")
        # Backup field 200, varint 1; the known subset stops at 101
        payload = foreign.SerializeToString() + b"\xc0\x0c\x01"

        decoded = mihon_codec().decode(gzip.compress(payload))

        self.assertEqual(decoded.backupManga[0].url, row.url)

    def test_garbage_payload_is_unrecognized_schema(self):
        """Test that gzip-compressed garbage raises UnrecognizedSchemaError."""
        with self.assertRaises(UnrecognizedSchemaError):
            self.codec.decode(gzip.compress(b"hello, this is plain text"))

    def test_empty_payload_is_unrecognized_schema(self):
        """Test that an empty payload misses the required header."""
        with self.assertRaises(UnrecognizedSchemaError):
            self.codec.decode(gzip.compress(b""))

    def test_error_classes_are_distinct(self):
        """Test that corrupt archives and unknown schemas are different errors."""
        self.assertFalse(issubclass(CorruptArchiveError, UnrecognizedSchemaError))
        self.assertFalse(issubclass(UnrecognizedSchemaError, CorruptArchiveError))


class TestFiles(TempDirMixin, TestCase):
    """Tests for reading and writing backup files."""

    def setUp(self):
        self.make_tmp()
        self.codec = native_codec()

    def test_write_then_read(self):
        """Test writing a backup file and reading it back."""
        backup = native_backup()
        add_native_manga(backup, MANGA_A, "Sousou no Frieren")
        path = self.path("library.dexreader")

        self.codec.write(backup, path)

        self.assertEqual(self.codec.read(path), backup)
        self.assertEqual(os.listdir(self.tmp), ["library.dexreader"])

    def test_write_replaces_existing_file(self):
        """Test that writing over an existing backup replaces it."""
        path = self.path("library.dexreader")
        with open(path, "wb") as f:
            f.write(b"old")

        self.codec.write(native_backup(), path)

        self.assertEqual(self.codec.read(path), native_backup())

    def test_failed_write_leaves_nothing_behind(self):
        """Test that a failed replace removes the temporary file."""
        path = self.path("library.dexreader")
        with patch("dexreader_backup.codec.os.replace", side_effect=OSError("disk full")):
            with self.assertRaises(OSError):
                self.codec.write(native_backup(), path)

        self.assertEqual(os.listdir(self.tmp), [])

    def test_missing_file_is_unreadable(self):
        """Test that reading a missing file raises UnreadableFileError."""
        with self.assertRaises(UnreadableFileError) as ctx:
            self.codec.read(self.path("missing.dexreader"))
        self.assertIn("missing.dexreader", str(ctx.exception))

    def test_json_round_trip(self):
        """Test converting a backup to JSON and back."""
        backup = native_backup()
        add_native_manga(backup, MANGA_A, "Sousou no Frieren", year=2020)
        json_path = self.path("library.json")

        self.codec.write_json(backup, json_path)

        self.assertEqual(self.codec.read_json(json_path), backup)

    def test_json_missing_required_fields(self):
        """Test that JSON without the envelope header is rejected."""
        with self.assertRaises(UnrecognizedSchemaError):
            self.codec.from_dict({"library": {}})
