"""Export the native library as a Tachiyomi/Mihon backup."""

import logging
from collections import defaultdict

from ..cancellation import CancellationToken, cancellation_message
from ..codec import mihon_codec
from ..config import BackupConfig
from ..errors import OperationCancelled, UnsupportedFileTypeError
from ..native.exporter import EMPTY_LIBRARY_MESSAGE
from ..results import ExportResult
from ..schema import MihonBackup
from . import status as status_codes
from .identifiers import build_chapter_url, build_manga_url
from .importer import FOREIGN_SUFFIXES, is_foreign_backup

logger = logging.getLogger(__name__)


def parse_chapter_number(value):
    """Parse a native chapter number; Mihon uses -1 for unknown."""
    try:
        return float(value)
    except (TypeError, ValueError):
        return -1.0


class MihonExporter:
    """Writes favourited manga and their reading progress to a .tachibk file.

    Only chapters with recorded progress are exported, as chapters and
    history of the foreign format describe reading state, not a cache.

    Args:
        manga_store: MangaStore to read the library from
        collection_store: CollectionStore providing categories
        progress_store: ProgressStore providing chapter progress
        config: BackupConfig (defaults if omitted)
        codec: BackupCodec for the Mihon schema
    """

    def __init__(self, manga_store, collection_store, progress_store, config=None, codec=None):
        self.manga_store = manga_store
        self.collection_store = collection_store
        self.progress_store = progress_store
        self.config = config or BackupConfig()
        self.codec = codec or mihon_codec()

    def export_backup(self, destination_path, token=None) -> ExportResult:
        """Export to destination_path; store and I/O failures end up in the result."""
        if not is_foreign_backup(destination_path):
            raise UnsupportedFileTypeError(destination_path, FOREIGN_SUFFIXES)
        token = token or CancellationToken('mihon')
        destination_path = str(destination_path)

        try:
            return self._export(destination_path, token)
        except OperationCancelled as e:
            logger.info("Mihon export cancelled (%s)", e.reason)
            return ExportResult(success=False, cancelled=True,
                                message=cancellation_message("Export", e.reason))
        except Exception as e:
            logger.exception("Mihon export to %s failed", destination_path)
            return ExportResult(success=False, message=f"Export failed: {e}")

    def _export(self, destination_path, token):
        library = self.manga_store.get_favorited_manga_with_metadata()
        if not library:
            logger.info(EMPTY_LIBRARY_MESSAGE)
            return ExportResult(message=EMPTY_LIBRARY_MESSAGE)

        manga_ids = [manga.manga_id for manga in library]
        chapters = {c.chapter_id: c for c in self.manga_store.get_chapters_by_manga_ids(manga_ids)}
        progress_by_manga = defaultdict(list)
        for progress in self.progress_store.get_all_chapter_progress():
            progress_by_manga[progress.manga_id].append(progress)
        collections_by_manga = defaultdict(list)
        for item in self.collection_store.get_all_collection_items():
            collections_by_manga[item.manga_id].append(item.collection_id)

        result = ExportResult(file_path=destination_path)
        backup = MihonBackup()

        # The collection id doubles as category order, so both id and
        # order based lookups resolve to the same category
        collections = sorted(self.collection_store.get_all_collections(), key=lambda c: c.id)
        for collection in collections:
            backup.backupCategories.add(name=collection.name, order=collection.id, id=collection.id)
        result.exported_collections_count = len(collections)

        for manga in library:
            token.raise_if_cancelled()
            row = backup.backupManga.add()
            self._fill_manga(row, manga, sorted(collections_by_manga[manga.manga_id]))
            for progress in sorted(progress_by_manga[manga.manga_id], key=lambda p: p.last_read_at):
                self._add_chapter(row, progress, chapters.get(progress.chapter_id))
                result.exported_chapters_count += 1
                result.exported_progress_count += 1
            result.exported_manga_count += 1

        backup.backupSources.add(name=self.config.mangadex_source_name,
                                 sourceId=self.config.mangadex_source_id)

        token.raise_if_cancelled()
        self.codec.write(backup, destination_path)
        result.message = f"Exported {result.exported_manga_count} manga to {destination_path}"
        logger.info(result.message)
        return result

    def _fill_manga(self, row, manga, collection_ids):
        row.source = self.config.mangadex_source_id
        row.url = build_manga_url(manga.manga_id)
        row.title = manga.title
        if manga.description:
            row.description = manga.description
        if manga.authors:
            row.author = manga.authors[0]
        if manga.artists:
            row.artist = manga.artists[0]
        row.genre.extend(manga.tags)
        row.status = status_codes.to_foreign(manga.status)
        if manga.cover_url:
            row.thumbnailUrl = manga.cover_url
        row.dateAdded = manga.added_at
        row.favorite = True
        row.categories.extend(collection_ids)

    def _add_chapter(self, row, progress, chapter):
        url = build_chapter_url(progress.chapter_id)
        foreign = row.chapters.add(url=url)
        if chapter is not None:
            foreign.name = chapter.title or f"Chapter {chapter.chapter_number or '?'}"
            foreign.chapterNumber = parse_chapter_number(chapter.chapter_number)
            foreign.dateFetch = chapter.created_at
            foreign.dateUpload = chapter.publish_at
            if chapter.scanlation_group:
                foreign.scanlator = chapter.scanlation_group
        else:
            foreign.name = progress.chapter_id
            foreign.chapterNumber = -1.0
        foreign.read = progress.completed
        foreign.lastPageRead = progress.current_page
        row.history.add(url=url, lastRead=progress.last_read_at)
