"""Caller-facing backup service.

BackupService wires the native and Mihon pipelines to one set of store
collaborators and runs every operation under a single-flight
cancellation controller per format: starting an operation supersedes the
one already running for that format.
"""

import logging

from .cancellation import CancellationController
from .config import BackupConfig
from .errors import UnsupportedFileTypeError
from .mihon import MihonExporter, MihonImporter
from .native import NativeExporter, NativeImporter

logger = logging.getLogger(__name__)

NATIVE = 'native'
MIHON = 'mihon'
NATIVE_SUFFIX = '.dexreader'


def _check_native_path(path):
    if not str(path).lower().endswith(NATIVE_SUFFIX):
        raise UnsupportedFileTypeError(path, (NATIVE_SUFFIX,))


class BackupService:
    """Export and import entry points for both backup formats.

    Args:
        manga_store: MangaStore collaborator
        collection_store: CollectionStore collaborator
        progress_store: ProgressStore collaborator
        reader_settings_store: ReaderSettingsStore collaborator
        config: BackupConfig (defaults if omitted)
    """

    def __init__(self, manga_store, collection_store, progress_store, reader_settings_store, config=None):
        self.config = config or BackupConfig()
        self.native_exporter = NativeExporter(
            manga_store, collection_store, progress_store, reader_settings_store, self.config
        )
        self.native_importer = NativeImporter(
            manga_store, collection_store, progress_store, reader_settings_store, self.config
        )
        self.mihon_exporter = MihonExporter(manga_store, collection_store, progress_store, self.config)
        self.mihon_importer = MihonImporter(manga_store, collection_store, progress_store, self.config)
        self.controllers = {
            NATIVE: CancellationController(NATIVE),
            MIHON: CancellationController(MIHON),
        }

    @classmethod
    def from_store(cls, store, config=None):
        """Build a service around one object implementing every store interface."""
        return cls(store, store, store, store, config)

    def export_native(self, path, options=None):
        """Write a .dexreader backup. See NativeExporter.export."""
        _check_native_path(path)
        with self.controllers[NATIVE].operation() as token:
            return self.native_exporter.export(path, options, token)

    def import_native(self, path, progress=None):
        """Restore a .dexreader backup. See NativeImporter.import_backup."""
        _check_native_path(path)
        with self.controllers[NATIVE].operation() as token:
            return self.native_importer.import_backup(path, token, progress)

    def export_mihon(self, path):
        """Write a Tachiyomi/Mihon backup. See MihonExporter.export_backup."""
        with self.controllers[MIHON].operation() as token:
            return self.mihon_exporter.export_backup(path, token)

    def import_mihon(self, path, progress=None):
        """Import a Tachiyomi/Mihon backup. See MihonImporter.import_backup."""
        with self.controllers[MIHON].operation() as token:
            return self.mihon_importer.import_backup(path, token, progress)

    def cancel(self, kind=None):
        """Cancel the running operation of one format, or of both.

        Returns:
            True if any operation was signalled
        """
        kinds = [kind] if kind else list(self.controllers)
        signalled = False
        for name in kinds:
            signalled = self.controllers[name].cancel() or signalled
        return signalled
