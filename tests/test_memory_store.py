"""Tests for the in-memory library store."""

import json
from unittest import TestCase

from dexreader_backup.models import ChapterProgress, CollectionItem, MangaProgress, ReadingMode
from dexreader_backup.store import MemoryLibraryStore

from tests.factories import CHAPTER_A1, CHAPTER_A2, MANGA_A, MANGA_B, T0, TempDirMixin, make_manga, populated_store


class TestMemoryLibraryStore(TestCase):
    """Tests for store operations used by the pipelines."""

    def setUp(self):
        self.store = MemoryLibraryStore()

    def test_rows_are_copied(self):
        """Test that mutating a returned row does not change the store."""
        self.store.batch_upsert_manga([make_manga(MANGA_A, "Sousou no Frieren")])

        [manga] = self.store.get_favorited_manga_with_metadata()
        manga.title = "Changed"

        self.assertEqual(self.store.manga[MANGA_A].title, "Sousou no Frieren")

    def test_non_favourites_are_not_listed(self):
        """Test that only favourited manga are part of the exported library."""
        self.store.batch_upsert_manga([
            make_manga(MANGA_A, "In Library"),
            make_manga(MANGA_B, "Browsed Only", is_favourite=False),
        ])

        self.assertEqual([m.manga_id for m in self.store.get_favorited_manga_with_metadata()], [MANGA_A])
        self.assertEqual(self.store.get_existing_manga_ids([MANGA_A, MANGA_B, "x"]), {MANGA_A, MANGA_B})

    def test_duplicate_collection_name(self):
        """Test that collection names are unique."""
        self.store.create_collection("Reading")

        with self.assertRaises(ValueError):
            self.store.create_collection("Reading")

    def test_collection_ids_increase(self):
        """Test that new collections get increasing ids and default timestamps."""
        first = self.store.create_collection("Reading", created_at=T0)
        second = self.store.create_collection("Done")

        self.assertEqual((first, second), (1, 2))
        self.assertEqual(self.store.collections[first].updated_at, T0)
        self.assertGreater(self.store.collections[second].created_at, T0)

    def test_membership_is_added_once(self):
        """Test that adding the same membership twice keeps the first row."""
        collection_id = self.store.create_collection("Reading")
        self.store.batch_add_to_collection([CollectionItem(collection_id, MANGA_A, added_at=T0, position=0)])
        self.store.batch_add_to_collection([CollectionItem(collection_id, MANGA_A, added_at=T0 + 1, position=4)])

        self.assertEqual(self.store.collection_items[(collection_id, MANGA_A)].position, 0)

    def test_membership_needs_collection(self):
        """Test that items of an unknown collection are rejected."""
        with self.assertRaises(ValueError):
            self.store.batch_add_to_collection([CollectionItem(42, MANGA_A)])

    def test_save_progress_keeps_first_read_at(self):
        """Test that chapter progress never moves first_read_at."""
        self.store.save_progress([ChapterProgress(MANGA_A, CHAPTER_A1, last_read_at=T0)])
        self.store.save_progress([ChapterProgress(MANGA_A, CHAPTER_A2, last_read_at=T0 + 100)])

        summary = self.store.manga_progress[MANGA_A]
        self.assertEqual(summary.first_read_at, T0)
        self.assertEqual(summary.last_read_at, T0 + 100)
        self.assertEqual(summary.last_chapter_id, CHAPTER_A2)

    def test_older_progress_does_not_move_last_chapter(self):
        """Test that an older chapter read leaves the latest chapter in place."""
        self.store.save_progress([ChapterProgress(MANGA_A, CHAPTER_A2, last_read_at=T0 + 100)])
        self.store.save_progress([ChapterProgress(MANGA_A, CHAPTER_A1, last_read_at=T0)])

        self.assertEqual(self.store.manga_progress[MANGA_A].last_chapter_id, CHAPTER_A2)

    def test_update_first_read_at_only_lowers(self):
        """Test that first_read_at can move earlier but never later."""
        self.store.update_first_read_at([MangaProgress(MANGA_A, CHAPTER_A1, first_read_at=T0, last_read_at=T0)])
        self.store.update_first_read_at([MangaProgress(MANGA_A, CHAPTER_A1, first_read_at=T0 + 50, last_read_at=T0)])
        self.assertEqual(self.store.manga_progress[MANGA_A].first_read_at, T0)

        self.store.update_first_read_at([MangaProgress(MANGA_A, CHAPTER_A1, first_read_at=T0 - 50, last_read_at=T0)])
        self.assertEqual(self.store.manga_progress[MANGA_A].first_read_at, T0 - 50)


class TestLibrarySnapshot(TempDirMixin, TestCase):
    """Tests for saving and loading JSON snapshots."""

    def setUp(self):
        self.make_tmp()

    def test_save_and_load(self):
        """Test that a saved library loads back unchanged."""
        store = populated_store()
        path = self.path("library.json")

        store.save(path)
        loaded = MemoryLibraryStore.load(path)

        self.assertEqual(loaded.to_dict(), store.to_dict())
        self.assertIs(loaded.reader_overrides[MANGA_A].reading_mode, ReadingMode.DOUBLE_PAGE)
        self.assertTrue(loaded.reader_overrides[MANGA_A].double_page_mode.read_right_to_left)

    def test_snapshot_is_plain_json(self):
        """Test that enums are stored by value."""
        path = self.path("library.json")
        populated_store().save(path)

        with open(path, encoding="utf-8") as f:
            data = json.load(f)

        self.assertEqual({m["status"] for m in data["manga"]}, {"ongoing", "completed"})
        self.assertEqual({o["reading_mode"] for o in data["readerOverrides"]}, {"double-page", "vertical-scroll"})

    def test_loaded_store_continues_collection_ids(self):
        """Test that new collections do not reuse ids after loading."""
        path = self.path("library.json")
        populated_store().save(path)

        loaded = MemoryLibraryStore.load(path)

        self.assertEqual(loaded.create_collection("New"), 3)

    def test_missing_snapshot(self):
        """Test that a missing file loads as an empty library."""
        store = MemoryLibraryStore.load(self.path("missing.json"))

        self.assertEqual(store.manga, {})
