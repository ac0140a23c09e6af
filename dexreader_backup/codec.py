"""Reading and writing gzip-compressed protobuf backup files."""

import gzip
import json
import logging
import os
import tempfile
import zlib
from pathlib import Path

from google.protobuf.json_format import MessageToDict, ParseDict, ParseError
from google.protobuf.message import DecodeError
from google.protobuf.unknown_fields import UnknownFieldSet

from .errors import CorruptArchiveError, UnreadableFileError, UnrecognizedSchemaError
from .schema import MihonBackup, NativeBackup

logger = logging.getLogger(__name__)


class BackupCodec:
    """Encodes and decodes one backup message type as gzip(protobuf).

    Args:
        message_class: Generated protobuf class of the backup root
        label: Name used in log and error messages
    """

    def __init__(self, message_class, label):
        self.message_class = message_class
        self.label = label

    def encode(self, message):
        """Serialize and compress a backup message."""
        return gzip.compress(message.SerializeToString())

    def decode(self, data):
        """Decompress and parse backup bytes.

        Raises:
            CorruptArchiveError: If the bytes are not a valid gzip stream
            UnrecognizedSchemaError: If the payload does not parse as this codec's message type
        """
        try:
            payload = gzip.decompress(data)
        except (OSError, EOFError, zlib.error) as e:
            raise CorruptArchiveError(f"Backup archive is corrupt: {e}") from e

        message = self.message_class()
        try:
            message.ParseFromString(payload)
        except DecodeError as e:
            raise UnrecognizedSchemaError(f"File is not a {self.label} backup: {e}") from e

        mismatched = list(_mismatched_fields(message))
        if mismatched:
            raise UnrecognizedSchemaError(
                f"File is not a {self.label} backup: unexpected wire types for {', '.join(mismatched[:5])}"
            )

        if not message.IsInitialized():
            missing = ', '.join(message.FindInitializationErrors()[:5])
            raise UnrecognizedSchemaError(
                f"File is not a {self.label} backup: missing required fields ({missing})"
            )
        return message

    def read(self, path):
        """Read and decode a backup file."""
        logger.info("Reading %s backup file: %s", self.label, path)
        try:
            with open(path, 'rb') as f:
                data = f.read()
        except OSError as e:
            raise UnreadableFileError(path, e.strerror or str(e)) from e
        return self.decode(data)

    def write(self, message, path):
        """Encode a backup and write it atomically.

        The data goes to a temporary file in the destination directory which
        replaces the destination only once fully written.

        Returns:
            Number of bytes written
        """
        data = self.encode(message)
        destination = Path(path)
        fd, tmp_path = tempfile.mkstemp(
            prefix=f'.{destination.name}.', suffix='.tmp', dir=destination.parent or None
        )
        try:
            with os.fdopen(fd, 'wb') as f:
                f.write(data)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, destination)
        except BaseException:
            try:
                os.unlink(tmp_path)
            except FileNotFoundError:
                pass
            raise
        logger.info("Compressed %s backup written to %s (%d bytes)", self.label, path, len(data))
        return len(data)

    def to_dict(self, message):
        """Convert a backup message to a JSON-compatible dictionary."""
        return MessageToDict(message, preserving_proto_field_name=True)

    def from_dict(self, data):
        """Build a backup message from a dictionary produced by to_dict.

        Raises:
            UnrecognizedSchemaError: If the dictionary does not fit the schema
        """
        try:
            message = ParseDict(data, self.message_class())
        except ParseError as e:
            raise UnrecognizedSchemaError(f"JSON is not a {self.label} backup: {e}") from e
        if not message.IsInitialized():
            missing = ', '.join(message.FindInitializationErrors()[:5])
            raise UnrecognizedSchemaError(f"JSON is not a {self.label} backup: missing required fields ({missing})")
        return message

    def write_json(self, message, output_file):
        logger.info("Writing JSON to: %s", output_file)
        with open(output_file, 'wt', encoding='utf-8') as f:
            json.dump(self.to_dict(message), f, indent=2, ensure_ascii=False)

    def read_json(self, input_file):
        with open(input_file, 'r', encoding='utf-8') as f:
            return self.from_dict(json.load(f))


def _mismatched_fields(message, prefix=''):
    """Yield declared fields that were only parseable as unknown fields.

    The parser keeps a field whose wire type does not match its declaration
    as an unknown field, which means the payload has a different schema.
    """
    declared = message.DESCRIPTOR.fields_by_number
    for unknown in UnknownFieldSet(message):
        if unknown.field_number in declared:
            yield prefix + declared[unknown.field_number].name
    for field, value in message.ListFields():
        if field.message_type is None or field.message_type.GetOptions().map_entry:
            continue
        children = value if field.label == field.LABEL_REPEATED else [value]
        for child in children:
            yield from _mismatched_fields(child, f'{prefix}{field.name}.')


def native_codec():
    return BackupCodec(NativeBackup, 'DexReader')


def mihon_codec():
    return BackupCodec(MihonBackup, 'Tachiyomi/Mihon')
