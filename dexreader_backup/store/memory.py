"""In-memory implementation of the store interfaces.

Used as the library behind the command line, where it is persisted as a
JSON snapshot, and as the store double in tests.
"""

import copy
import json
import logging
import os
from dataclasses import asdict

from ..models import (
    Chapter,
    ChapterProgress,
    Collection,
    CollectionItem,
    DoublePageMode,
    Manga,
    MangaProgress,
    PublicationStatus,
    ReaderOverride,
    ReadingMode,
    now_ms,
)
from .base import CollectionStore, MangaStore, ProgressStore, ReaderSettingsStore

logger = logging.getLogger(__name__)


class MemoryLibraryStore(MangaStore, CollectionStore, ProgressStore, ReaderSettingsStore):
    """Dictionary-backed library store.

    Rows are copied on the way in and out so callers never share state
    with the store.
    """

    def __init__(self):
        self.manga = {}
        self.chapters = {}
        self.collections = {}
        self.collection_items = {}
        self.manga_progress = {}
        self.chapter_progress = {}
        self.reader_overrides = {}
        self._next_collection_id = 1

    # Manga

    def get_favorited_manga_with_metadata(self):
        return [copy.deepcopy(m) for m in self.manga.values() if m.is_favourite]

    def get_chapters_by_manga_ids(self, manga_ids):
        wanted = set(manga_ids)
        return [copy.deepcopy(c) for c in self.chapters.values() if c.manga_id in wanted]

    def get_existing_manga_ids(self, manga_ids):
        return {manga_id for manga_id in manga_ids if manga_id in self.manga}

    def batch_upsert_manga(self, rows):
        for row in rows:
            self.manga[row.manga_id] = copy.deepcopy(row)

    def save_chapters(self, rows):
        for row in rows:
            self.chapters[row.chapter_id] = copy.deepcopy(row)

    # Collections

    def get_all_collections(self):
        return [copy.deepcopy(c) for c in self.collections.values()]

    def get_all_collection_items(self):
        return [copy.deepcopy(i) for i in self.collection_items.values()]

    def create_collection(self, name, description=None, created_at=None, updated_at=None):
        if any(c.name == name for c in self.collections.values()):
            raise ValueError(f"Collection '{name}' already exists")
        created_at = created_at or now_ms()
        collection = Collection(
            id=self._next_collection_id,
            name=name,
            description=description,
            created_at=created_at,
            updated_at=updated_at or created_at,
        )
        self.collections[collection.id] = collection
        self._next_collection_id += 1
        return collection.id

    def batch_add_to_collection(self, rows):
        for row in rows:
            if row.collection_id not in self.collections:
                raise ValueError(f"Unknown collection id {row.collection_id}")
            self.collection_items.setdefault(row.key, copy.deepcopy(row))

    # Progress

    def get_all_manga_progress(self):
        return [copy.deepcopy(p) for p in self.manga_progress.values()]

    def get_all_chapter_progress(self):
        return [copy.deepcopy(p) for p in self.chapter_progress.values()]

    def save_progress(self, rows):
        for row in rows:
            self.chapter_progress[row.key] = copy.deepcopy(row)
            summary = self.manga_progress.get(row.manga_id)
            if summary is None:
                self.manga_progress[row.manga_id] = MangaProgress(
                    manga_id=row.manga_id,
                    last_chapter_id=row.chapter_id,
                    first_read_at=row.last_read_at,
                    last_read_at=row.last_read_at,
                )
            elif row.last_read_at >= summary.last_read_at:
                summary.last_chapter_id = row.chapter_id
                summary.last_read_at = row.last_read_at

    def update_first_read_at(self, rows):
        for row in rows:
            summary = self.manga_progress.get(row.manga_id)
            if summary is None:
                self.manga_progress[row.manga_id] = copy.deepcopy(row)
                continue
            if row.first_read_at and (not summary.first_read_at or row.first_read_at < summary.first_read_at):
                summary.first_read_at = row.first_read_at
            if row.last_read_at >= summary.last_read_at:
                summary.last_chapter_id = row.last_chapter_id or summary.last_chapter_id
                summary.last_read_at = row.last_read_at

    # Reader settings

    def get_all_reader_overrides(self):
        return [copy.deepcopy(o) for o in self.reader_overrides.values()]

    def batch_update_overrides(self, rows):
        for row in rows:
            self.reader_overrides[row.manga_id] = copy.deepcopy(row)

    # JSON snapshots

    def to_dict(self):
        """Dump the whole store to JSON-compatible data."""
        return {
            'manga': [_manga_to_dict(m) for m in self.manga.values()],
            'chapters': [asdict(c) for c in self.chapters.values()],
            'collections': [asdict(c) for c in self.collections.values()],
            'collectionItems': [asdict(i) for i in self.collection_items.values()],
            'mangaProgress': [asdict(p) for p in self.manga_progress.values()],
            'chapterProgress': [asdict(p) for p in self.chapter_progress.values()],
            'readerOverrides': [_override_to_dict(o) for o in self.reader_overrides.values()],
        }

    @classmethod
    def from_dict(cls, data):
        store = cls()
        for row in data.get('manga', []):
            manga = _manga_from_dict(row)
            store.manga[manga.manga_id] = manga
        for row in data.get('chapters', []):
            chapter = Chapter(**row)
            store.chapters[chapter.chapter_id] = chapter
        for row in data.get('collections', []):
            collection = Collection(**row)
            store.collections[collection.id] = collection
        for row in data.get('collectionItems', []):
            item = CollectionItem(**row)
            store.collection_items[item.key] = item
        for row in data.get('mangaProgress', []):
            progress = MangaProgress(**row)
            store.manga_progress[progress.manga_id] = progress
        for row in data.get('chapterProgress', []):
            progress = ChapterProgress(**row)
            store.chapter_progress[progress.key] = progress
        for row in data.get('readerOverrides', []):
            override = _override_from_dict(row)
            store.reader_overrides[override.manga_id] = override
        store._next_collection_id = max(store.collections, default=0) + 1
        return store

    @classmethod
    def load(cls, path):
        """Load a library snapshot. A missing file gives an empty library."""
        if not os.path.exists(path):
            logger.info("No library found at %s, starting with an empty library", path)
            return cls()
        with open(path, 'r', encoding='utf-8') as f:
            store = cls.from_dict(json.load(f))
        logger.info("Loaded library from %s (%d manga)", path, len(store.manga))
        return store

    def save(self, path):
        with open(path, 'wt', encoding='utf-8') as f:
            json.dump(self.to_dict(), f, indent=2, ensure_ascii=False)
        logger.info("Library saved to %s", path)


def _manga_to_dict(manga):
    data = asdict(manga)
    data['status'] = manga.status.value
    return data


def _manga_from_dict(data):
    data = dict(data)
    data['status'] = PublicationStatus.parse(data.get('status'))
    return Manga(**data)


def _override_to_dict(override):
    data = asdict(override)
    data['reading_mode'] = override.reading_mode.value
    return data


def _override_from_dict(data):
    data = dict(data)
    data['reading_mode'] = ReadingMode.parse(data['reading_mode'])
    if data.get('double_page_mode') is not None:
        data['double_page_mode'] = DoublePageMode(**data['double_page_mode'])
    return ReaderOverride(**data)
