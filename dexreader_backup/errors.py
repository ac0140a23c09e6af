"""Error types raised by the backup engine.

Only fatal conditions are raised to the caller. Row-level problems are
collected in ImportResult.errors and cancellation is reported through
ImportResult.cancelled.
"""


class BackupError(Exception):
    """Base class for fatal backup errors."""


class UnreadableFileError(BackupError):
    """The backup file could not be opened or read."""

    def __init__(self, path, reason):
        self.path = str(path)
        self.reason = reason
        super().__init__(f"Could not read backup file {self.path}: {reason}")


class CorruptArchiveError(BackupError):
    """The file is not a valid gzip stream. Re-downloading the backup usually helps."""


class UnrecognizedSchemaError(BackupError):
    """The decompressed payload does not match the expected backup schema."""


class IncompatibleSchemaError(BackupError):
    """The backup was written by an incompatible major schema version."""

    def __init__(self, message, report=None):
        self.report = report
        super().__init__(message)


class UnsupportedFileTypeError(BackupError):
    """The file suffix does not belong to the requested backup format."""

    def __init__(self, path, expected):
        self.path = str(path)
        self.expected = tuple(expected)
        super().__init__(
            f"{self.path} isn't a valid backup file (expected {', '.join(self.expected)})"
        )


class OperationCancelled(Exception):
    """Raised inside a pipeline when its cancellation token is signalled.

    Pipelines catch this and turn it into a cancelled result; it never
    reaches the caller.
    """

    def __init__(self, reason):
        self.reason = reason
        super().__init__(reason)
