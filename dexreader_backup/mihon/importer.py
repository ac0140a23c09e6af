"""Import Tachiyomi/Mihon backups into the native library.

Only MangaDex rows in the foreign library are imported. Each row is
transformed and staged in memory; nothing is written until every row has
been processed, then manga and collections are committed, followed by
chapters and reading progress.
"""

import logging

from ..cancellation import CancellationToken, cancellation_message
from ..codec import mihon_codec
from ..config import BackupConfig
from ..errors import UnsupportedFileTypeError
from ..models import Chapter, ChapterProgress, CollectionItem, Manga, MangaProgress, now_ms
from ..results import ImportResult
from . import status as status_codes
from .categories import CategoryReconciler
from .identifiers import extract_chapter_id, extract_manga_id

logger = logging.getLogger(__name__)

FOREIGN_SUFFIXES = ('.tachibk', '.proto.gz')
NO_MANGA_MESSAGE = "No MangaDex manga found in backup"
SUCCESS_MESSAGE = "Import completed successfully"
UNKNOWN_TITLE = "Unknown Title"


def is_foreign_backup(path):
    return str(path).lower().endswith(FOREIGN_SUFFIXES)


def format_chapter_number(value):
    """Format a foreign float chapter number; negative numbers mean unknown."""
    if value < 0:
        return None
    return f'{value:g}'


class _StagedRows:
    """Rows collected from the foreign backup, waiting to be committed."""

    def __init__(self):
        self.manga = []
        self.manga_ids = set()
        self.memberships = []
        self.chapters = []
        self.chapter_progress = []
        self.manga_progress = []

    def add(self, manga, category_names, chapters, chapter_progress, manga_progress):
        self.manga.append(manga)
        self.manga_ids.add(manga.manga_id)
        self.memberships.extend((manga.manga_id, name) for name in category_names)
        self.chapters.extend(chapters)
        self.chapter_progress.extend(chapter_progress)
        if manga_progress is not None:
            self.manga_progress.append(manga_progress)


class MihonImporter:
    """Imports the MangaDex part of a Tachiyomi/Mihon backup.

    Args:
        manga_store: MangaStore receiving manga and chapters
        collection_store: CollectionStore receiving categories as collections
        progress_store: ProgressStore receiving reading progress
        config: BackupConfig (defaults if omitted)
        codec: BackupCodec for the Mihon schema
    """

    def __init__(self, manga_store, collection_store, progress_store, config=None, codec=None):
        self.manga_store = manga_store
        self.collection_store = collection_store
        self.progress_store = progress_store
        self.config = config or BackupConfig()
        self.codec = codec or mihon_codec()

    def import_backup(self, file_path, token=None, progress=None) -> ImportResult:
        """Import a .tachibk / .proto.gz backup.

        Args:
            file_path: Path to the foreign backup
            token: CancellationToken for this run
            progress: Optional callback(stage, done, total) called per manga

        Returns:
            ImportResult

        Raises:
            UnsupportedFileTypeError: If the suffix is not a foreign backup suffix
            UnreadableFileError, CorruptArchiveError, UnrecognizedSchemaError:
                If the file cannot be decoded
        """
        if not is_foreign_backup(file_path):
            raise UnsupportedFileTypeError(file_path, FOREIGN_SUFFIXES)
        token = token or CancellationToken('mihon')
        backup = self.codec.read(file_path)

        rows = [row for row in backup.backupManga if self._in_scope(row)]
        ignored = len(backup.backupManga) - len(rows)
        if ignored:
            logger.info("Ignoring %d manga from other sources or outside the library", ignored)

        result = ImportResult()
        if not rows:
            result.message = NO_MANGA_MESSAGE
            logger.info(NO_MANGA_MESSAGE)
            return result

        reconciler = CategoryReconciler(
            self.collection_store, backup.backupCategories, self.config.imported_collection_description
        )
        candidate_ids = {extract_manga_id(row.url) for row in rows} - {None}
        existing = self.manga_store.get_existing_manga_ids(candidate_ids)

        staged = _StagedRows()
        for index, row in enumerate(rows):
            if token.cancelled:
                return self._cancelled(result, token, len(rows) - index, staged)
            self._stage_row(row, reconciler, existing, staged, result)
            if progress is not None:
                progress('manga', index + 1, len(rows))

        if token.cancelled:
            return self._cancelled(result, token, 0, staged)

        self._commit(staged, reconciler, result)
        result.message = SUCCESS_MESSAGE
        logger.info("%s: %d imported, %d skipped, %d failed", SUCCESS_MESSAGE,
                    result.imported_manga_count, result.skipped_manga_count, result.failed_manga_count)
        return result

    def _in_scope(self, row):
        if row.source != self.config.mangadex_source_id:
            return False
        # Mihon leaves favorite out when it holds the default (true)
        return row.favorite if row.HasField('favorite') else True

    def _cancelled(self, result, token, remaining, staged):
        # Nothing has been written yet, so every staged row counts as skipped too
        result.skipped_manga_count += remaining + len(staged.manga)
        result.cancelled = True
        result.message = cancellation_message("Import", token.reason)
        logger.info("%s, %d manga skipped", result.message, result.skipped_manga_count)
        return result

    def _stage_row(self, row, reconciler, existing, staged, result):
        title = row.title or UNKNOWN_TITLE
        manga_id = extract_manga_id(row.url)
        if manga_id is None:
            result.failed_manga_count += 1
            result.add_error('manga', row.url, title, "Invalid manga URL")
            logger.warning("Invalid manga URL for '%s': %s", title, row.url)
            return
        if manga_id in existing or manga_id in staged.manga_ids:
            result.skipped_manga_count += 1
            logger.debug("Skipping %s, already in library", manga_id)
            return

        try:
            manga = self._to_manga(manga_id, row)
            chapters, chapter_progress = self._flatten_chapters(manga_id, row)
            category_names = reconciler.stage(row.categories)
        except Exception as e:
            result.failed_manga_count += 1
            result.add_error('manga', row.url, title, str(e))
            logger.exception("Failed to convert '%s'", title)
            return

        staged.add(manga, category_names, chapters, chapter_progress,
                   _summarize_progress(manga_id, chapter_progress))

    def _to_manga(self, manga_id, row):
        now = now_ms()
        return Manga(
            manga_id=manga_id,
            title=row.title or UNKNOWN_TITLE,
            description=row.description or None,
            status=status_codes.to_native(row.status),
            cover_url=row.thumbnailUrl or None,
            is_favourite=True,
            added_at=row.dateAdded or now,
            updated_at=now,
            last_accessed_at=now,
            tags=list(row.genre),
            authors=[row.author] if row.author else [],
            artists=[row.artist] if row.artist else [],
        )

    def _flatten_chapters(self, manga_id, row):
        """Split nested foreign chapters and history into native rows.

        Returns:
            Tuple of (chapters, chapter progress rows)
        """
        last_read = {}
        for entry in row.history:
            chapter_id = extract_chapter_id(entry.url)
            if chapter_id:
                last_read[chapter_id] = max(last_read.get(chapter_id, 0), entry.lastRead)

        now = now_ms()
        chapters = []
        progress_rows = []
        for foreign in row.chapters:
            chapter_id = extract_chapter_id(foreign.url)
            if chapter_id is None:
                logger.debug("Dropping chapter with unrecognised URL %s", foreign.url)
                continue

            chapters.append(Chapter(
                chapter_id=chapter_id,
                manga_id=manga_id,
                title=foreign.name or None,
                chapter_number=(format_chapter_number(foreign.chapterNumber)
                                if foreign.HasField('chapterNumber') else None),
                language=self.config.default_language,
                publish_at=foreign.dateUpload,
                created_at=foreign.dateFetch or now,
                updated_at=now,
                scanlation_group=foreign.scanlator or None,
            ))

            if foreign.read or foreign.lastPageRead > 0 or chapter_id in last_read:
                progress_rows.append(ChapterProgress(
                    manga_id=manga_id,
                    chapter_id=chapter_id,
                    current_page=foreign.lastPageRead,
                    completed=foreign.read,
                    last_read_at=last_read.get(chapter_id) or foreign.dateFetch or now,
                ))
        return chapters, progress_rows

    def _commit(self, staged, reconciler, result):
        # Batch 1: manga and their collections
        self.manga_store.batch_upsert_manga(staged.manga)
        collection_ids = reconciler.commit()
        added_at = now_ms()
        items = [
            CollectionItem(collection_id=collection_ids[name], manga_id=manga_id, added_at=added_at)
            for manga_id, name in staged.memberships
        ]
        if items:
            self.collection_store.batch_add_to_collection(items)
        logger.info("Committed %d manga, %d new collections, %d collection items",
                    len(staged.manga), reconciler.created_count, len(items))

        # Batch 2: chapters and reading progress
        self.manga_store.save_chapters(staged.chapters)
        if staged.chapter_progress:
            self.progress_store.save_progress(staged.chapter_progress)
        if staged.manga_progress:
            self.progress_store.update_first_read_at(staged.manga_progress)
        logger.info("Committed %d chapters and %d progress rows",
                    len(staged.chapters), len(staged.chapter_progress))

        result.imported_manga_count += len(staged.manga)
        result.imported_manga_ids.extend(m.manga_id for m in staged.manga)
        result.imported_collections_count += reconciler.created_count
        result.imported_collection_items_count += len(items)
        result.imported_chapters_count += len(staged.chapters)
        result.imported_chapter_progress_count += len(staged.chapter_progress)
        result.imported_manga_progress_count += len(staged.manga_progress)


def _summarize_progress(manga_id, progress_rows):
    """Derive the manga progress summary from its chapter progress rows."""
    if not progress_rows:
        return None
    latest = max(progress_rows, key=lambda p: p.last_read_at)
    return MangaProgress(
        manga_id=manga_id,
        last_chapter_id=latest.chapter_id,
        first_read_at=min(p.last_read_at for p in progress_rows),
        last_read_at=latest.last_read_at,
    )
