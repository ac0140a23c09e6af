"""Native (.dexreader) import pipeline.

Sections are imported in a fixed order so every referenced row exists
before its dependents are committed:

    library (manga, then chapters)
    -> collections (collections, then items)
    -> progress (chapter progress, then manga first-read times)
    -> reader overrides

Within a section all rows are transformed first and committed in one
batch. The cancellation token is checked before every record and again
right before each commit, so a cancelled import never leaves a section
half written.
"""

import dataclasses
import logging
from datetime import datetime

from ..cancellation import CancellationToken, cancellation_message
from ..codec import native_codec
from ..config import BackupConfig
from ..errors import IncompatibleSchemaError, OperationCancelled
from ..results import ImportResult
from ..version import check_schema_compatibility
from . import projection

logger = logging.getLogger(__name__)

SUCCESS_MESSAGE = "Import completed successfully"


def _notify(progress, stage, done, total):
    if progress is not None:
        progress(stage, done, total)


class NativeImporter:
    """Restores a .dexreader backup into the store collaborators.

    Args:
        manga_store: MangaStore receiving manga and chapters
        collection_store: CollectionStore receiving collections
        progress_store: ProgressStore receiving reading progress
        reader_settings_store: ReaderSettingsStore receiving overrides
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

    def import_backup(self, source_path, token=None, progress=None) -> ImportResult:
        """Import a native backup.

        Args:
            source_path: Path of the .dexreader file
            token: CancellationToken for this run
            progress: Optional callback(stage, done, total) called per record

        Returns:
            ImportResult; cancelled runs return the partial result

        Raises:
            UnreadableFileError, CorruptArchiveError, UnrecognizedSchemaError:
                If the file cannot be decoded
            IncompatibleSchemaError: If the backup's major schema version differs
        """
        token = token or CancellationToken('native')
        backup = self.codec.read(source_path)

        report = check_schema_compatibility(backup.schemaVersion, backup.schemaMinorVersion)
        if not report.is_safe_to_import():
            logger.error("Rejecting backup %s:\n%s", source_path, report.summary())
            raise IncompatibleSchemaError(report.errors[0], report)

        result = ImportResult(warnings=list(report.warnings))
        for warning in report.warnings:
            logger.warning(warning)
        exported_at = datetime.fromtimestamp(backup.exportedAt / 1000)
        logger.info("Importing backup written by DexReader %s on %s",
                    backup.appVersion, exported_at.strftime('%Y-%m-%d %H:%M:%S'))

        stages = [('library', self._import_library, backup.library)]
        if backup.HasField('collections'):
            stages.append(('collections', self._import_collections, backup.collections))
        if backup.HasField('progress'):
            stages.append(('progress', self._import_progress, backup.progress))
        if backup.HasField('readerSettings'):
            stages.append(('readerSettings', self._import_reader_overrides, backup.readerSettings))

        try:
            for name, stage, section in stages:
                logger.info("Importing %s section", name)
                stage(section, token, result, progress)
        except OperationCancelled as e:
            result.cancelled = True
            result.message = cancellation_message("Import", e.reason)
            logger.info(result.message)
            return result

        result.message = SUCCESS_MESSAGE
        logger.info("%s: %d manga, %d chapters, %d errors", SUCCESS_MESSAGE,
                    result.imported_manga_count, result.imported_chapters_count, len(result.errors))
        return result

    def _import_library(self, library, token, result, progress):
        total = len(library.mangaList) + len(library.chapterList)
        done = 0

        # Manga are transformed and committed before chapters whatever the file order
        manga_rows = {}
        for message in library.mangaList:
            token.raise_if_cancelled()
            try:
                manga = projection.manga_from_message(message)
            except ValueError as e:
                result.failed_manga_count += 1
                result.add_error('library', message.mangaId, message.title, str(e))
                logger.warning("Skipping manga %s: %s", message.mangaId, e)
            else:
                manga_rows[manga.manga_id] = manga
            done += 1
            _notify(progress, 'library', done, total)

        parents = {message.mangaId for message in library.chapterList} - set(manga_rows)
        known_manga = set(manga_rows) | self.manga_store.get_existing_manga_ids(parents)

        chapter_rows = []
        for message in library.chapterList:
            token.raise_if_cancelled()
            if message.mangaId in known_manga:
                chapter_rows.append(projection.chapter_from_message(message))
            else:
                result.skipped_chapters_count += 1
                result.add_error('library', message.chapterId, message.title,
                                 f"Chapter references unknown manga {message.mangaId}")
            done += 1
            _notify(progress, 'library', done, total)

        token.raise_if_cancelled()
        existing = self.manga_store.get_existing_manga_ids(manga_rows)
        self.manga_store.batch_upsert_manga(list(manga_rows.values()))
        self.manga_store.save_chapters(chapter_rows)

        result.imported_manga_count += len(manga_rows)
        result.updated_manga_count += len(existing)
        result.imported_chapters_count += len(chapter_rows)
        result.imported_manga_ids.extend(manga_rows)
        logger.info("Committed %d manga (%d already present) and %d chapters",
                    len(manga_rows), len(existing), len(chapter_rows))

    def _import_collections(self, section, token, result, progress):
        total = len(section.collectionList) + len(section.collectionItems)
        done = 0

        local_ids = {c.name: c.id for c in self.collection_store.get_all_collections()}
        names_by_backup_id = {}
        to_create = {}
        for message in section.collectionList:
            token.raise_if_cancelled()
            try:
                collection = projection.collection_from_message(message)
            except ValueError as e:
                result.add_error('collections', str(message.id), message.name, str(e))
                collection = None
            if collection is not None:
                names_by_backup_id[collection.id] = collection.name
                # Same-named collections are reused, never duplicated
                if collection.name in local_ids or collection.name in to_create:
                    result.skipped_collections_count += 1
                else:
                    to_create[collection.name] = collection
            done += 1
            _notify(progress, 'collections', done, total)

        known_manga = self.manga_store.get_existing_manga_ids(
            {message.mangaId for message in section.collectionItems}
        )
        staged = []
        for message in section.collectionItems:
            token.raise_if_cancelled()
            item = projection.collection_item_from_message(message)
            name = names_by_backup_id.get(item.collection_id)
            if name is None:
                result.skipped_collection_items_count += 1
                result.add_error('collections', item.manga_id, None,
                                 f"Collection item references unknown collection {item.collection_id}")
            elif item.manga_id not in known_manga:
                result.skipped_collection_items_count += 1
                result.add_error('collections', item.manga_id, name,
                                 f"Collection item references unknown manga {item.manga_id}")
            else:
                staged.append((name, item))
            done += 1
            _notify(progress, 'collections', done, total)

        token.raise_if_cancelled()
        for name, collection in to_create.items():
            local_ids[name] = self.collection_store.create_collection(
                name, collection.description,
                created_at=collection.created_at or None,
                updated_at=collection.updated_at or None,
            )

        existing_items = {item.key for item in self.collection_store.get_all_collection_items()}
        rows = []
        for name, item in staged:
            row = dataclasses.replace(item, collection_id=local_ids[name])
            if row.key in existing_items:
                result.skipped_collection_items_count += 1
                continue
            existing_items.add(row.key)
            rows.append(row)
        self.collection_store.batch_add_to_collection(rows)

        result.imported_collections_count += len(to_create)
        result.imported_collection_items_count += len(rows)
        logger.info("Committed %d collections (%d reused) and %d collection items",
                    len(to_create), result.skipped_collections_count, len(rows))

    def _import_progress(self, section, token, result, progress):
        total = len(section.chapterProgress) + len(section.mangaProgress)
        done = 0
        known_manga = self.manga_store.get_existing_manga_ids(
            {m.mangaId for m in section.chapterProgress} | {m.mangaId for m in section.mangaProgress}
        )

        chapter_rows = []
        for message in section.chapterProgress:
            token.raise_if_cancelled()
            if message.mangaId in known_manga:
                chapter_rows.append(projection.chapter_progress_from_message(message))
            else:
                result.skipped_progress_count += 1
                result.add_error('progress', message.chapterId, None,
                                 f"Chapter progress references unknown manga {message.mangaId}")
            done += 1
            _notify(progress, 'progress', done, total)

        manga_rows = []
        for message in section.mangaProgress:
            token.raise_if_cancelled()
            if message.mangaId in known_manga:
                manga_rows.append(projection.manga_progress_from_message(message))
            else:
                result.skipped_progress_count += 1
                result.add_error('progress', message.mangaId, None,
                                 f"Manga progress references unknown manga {message.mangaId}")
            done += 1
            _notify(progress, 'progress', done, total)

        token.raise_if_cancelled()
        # Chapter upserts first; the manga rows then restore first_read_at,
        # which the generic upsert must not overwrite
        if chapter_rows:
            self.progress_store.save_progress(chapter_rows)
        if manga_rows:
            self.progress_store.update_first_read_at(manga_rows)

        result.imported_chapter_progress_count += len(chapter_rows)
        result.imported_manga_progress_count += len(manga_rows)
        logger.info("Committed progress for %d chapters and %d manga", len(chapter_rows), len(manga_rows))

    def _import_reader_overrides(self, section, token, result, progress):
        total = len(section.overrides)
        known_manga = self.manga_store.get_existing_manga_ids({m.mangaId for m in section.overrides})
        rows = []
        for done, message in enumerate(section.overrides, start=1):
            token.raise_if_cancelled()
            if message.mangaId not in known_manga:
                result.skipped_reader_overrides_count += 1
                result.add_error('readerSettings', message.mangaId, None,
                                 f"Reader override references unknown manga {message.mangaId}")
            else:
                try:
                    rows.append(projection.reader_override_from_message(message))
                except ValueError as e:
                    result.add_error('readerSettings', message.mangaId, None, str(e))
                    logger.warning("Skipping reader override for %s: %s", message.mangaId, e)
            _notify(progress, 'readerSettings', done, total)

        token.raise_if_cancelled()
        self.reader_settings_store.batch_update_overrides(rows)

        result.imported_reader_overrides_count += len(rows)
        logger.info("Committed %d reader overrides", len(rows))
