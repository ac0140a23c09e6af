"""Native (.dexreader) export pipeline."""

import logging

from ..cancellation import CancellationToken, cancellation_message
from ..codec import native_codec
from ..config import BackupConfig
from ..errors import OperationCancelled
from ..models import now_ms
from ..results import ExportOptions, ExportResult
from ..schema import NativeBackup
from ..version import SCHEMA_MAJOR_VERSION, SCHEMA_MINOR_VERSION
from . import projection

logger = logging.getLogger(__name__)

EMPTY_LIBRARY_MESSAGE = "No manga in Library, nothing to export."


class NativeExporter:
    """Serializes the local library into a .dexreader backup.

    Args:
        manga_store: MangaStore to read the library from
        collection_store: CollectionStore for the collections section
        progress_store: ProgressStore for the progress section
        reader_settings_store: ReaderSettingsStore for reader overrides
        config: BackupConfig (defaults if omitted)
        codec: BackupCodec for the native envelope
    """

    def __init__(self, manga_store, collection_store, progress_store, reader_settings_store,
                 config=None, codec=None):
        self.manga_store = manga_store
        self.collection_store = collection_store
        self.progress_store = progress_store
        self.reader_settings_store = reader_settings_store
        self.config = config or BackupConfig()
        self.codec = codec or native_codec()

    def export(self, destination_path, options=None, token=None) -> ExportResult:
        """Export the library to destination_path.

        Never raises for store or I/O failures; those are reported through
        the result message and leave no file behind.
        """
        options = options or ExportOptions()
        token = token or CancellationToken('native')
        destination_path = str(destination_path)

        try:
            return self._export(destination_path, options, token)
        except OperationCancelled as e:
            logger.info("Native export cancelled (%s)", e.reason)
            return ExportResult(success=False, cancelled=True,
                                message=cancellation_message("Export", e.reason))
        except Exception as e:
            logger.exception("Native export to %s failed", destination_path)
            return ExportResult(success=False, message=f"Export failed: {e}")

    def _export(self, destination_path, options, token):
        manga_rows = self.manga_store.get_favorited_manga_with_metadata()
        if not manga_rows:
            logger.info(EMPTY_LIBRARY_MESSAGE)
            return ExportResult(message=EMPTY_LIBRARY_MESSAGE)

        result = ExportResult(file_path=destination_path)
        backup = NativeBackup()
        manga_ids = self._build_library(backup, manga_rows, token, result)

        if options.include_collections:
            token.raise_if_cancelled()
            self._build_collections(backup, manga_ids, result)
        if options.include_progress:
            token.raise_if_cancelled()
            self._build_progress(backup, manga_ids, result)
        if options.include_reader_settings:
            token.raise_if_cancelled()
            self._build_reader_settings(backup, manga_ids, result)

        backup.schemaVersion = SCHEMA_MAJOR_VERSION
        backup.schemaMinorVersion = SCHEMA_MINOR_VERSION
        backup.exportedAt = now_ms()
        backup.appVersion = self.config.app_version

        token.raise_if_cancelled()
        self.codec.write(backup, destination_path)

        result.message = f"Exported {result.exported_manga_count} manga to {destination_path}"
        logger.info(result.message)
        return result

    def _build_library(self, backup, manga_rows, token, result):
        backup.library.SetInParent()
        manga_ids = []
        for manga in manga_rows:
            token.raise_if_cancelled()
            projection.manga_to_message(manga, backup.library.mangaList.add())
            manga_ids.append(manga.manga_id)

        chapters = self.manga_store.get_chapters_by_manga_ids(manga_ids)
        for chapter in chapters:
            projection.chapter_to_message(chapter, backup.library.chapterList.add())

        result.exported_manga_count = len(manga_ids)
        result.exported_chapters_count = len(chapters)
        logger.info("Library section: %d manga, %d chapters", len(manga_ids), len(chapters))
        return set(manga_ids)

    def _build_collections(self, backup, manga_ids, result):
        backup.collections.SetInParent()
        collections = self.collection_store.get_all_collections()
        for collection in collections:
            projection.collection_to_message(collection, backup.collections.collectionList.add())

        # Dependent sections only carry rows of exported manga
        items = [i for i in self.collection_store.get_all_collection_items() if i.manga_id in manga_ids]
        for item in items:
            projection.collection_item_to_message(item, backup.collections.collectionItems.add())

        result.exported_collections_count = len(collections)
        logger.info("Collections section: %d collections, %d items", len(collections), len(items))

    def _build_progress(self, backup, manga_ids, result):
        backup.progress.SetInParent()
        manga_progress = [p for p in self.progress_store.get_all_manga_progress() if p.manga_id in manga_ids]
        chapter_progress = [p for p in self.progress_store.get_all_chapter_progress() if p.manga_id in manga_ids]
        for progress in manga_progress:
            projection.manga_progress_to_message(progress, backup.progress.mangaProgress.add())
        for progress in chapter_progress:
            projection.chapter_progress_to_message(progress, backup.progress.chapterProgress.add())

        result.exported_progress_count = len(manga_progress) + len(chapter_progress)
        logger.info("Progress section: %d manga, %d chapters", len(manga_progress), len(chapter_progress))

    def _build_reader_settings(self, backup, manga_ids, result):
        backup.readerSettings.SetInParent()
        overrides = [o for o in self.reader_settings_store.get_all_reader_overrides() if o.manga_id in manga_ids]
        for override in overrides:
            projection.reader_override_to_message(override, backup.readerSettings.overrides.add())

        result.exported_reader_settings_count = len(overrides)
        logger.info("Reader settings section: %d overrides", len(overrides))
