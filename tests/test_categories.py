"""Tests for CategoryReconciler."""

from unittest import TestCase

from dexreader_backup.mihon.categories import CategoryReconciler
from dexreader_backup.schema import MihonBackup
from dexreader_backup.store import MemoryLibraryStore

DESCRIPTION = "Import from Tachiyomi/Mihon backup"


def categories(*rows):
    """Build BackupCategory messages from (name, id, order) tuples; id None means anonymous."""
    backup = MihonBackup()
    for name, category_id, order in rows:
        category = backup.backupCategories.add(name=name, order=order)
        if category_id is not None:
            category.id = category_id
    return backup.backupCategories


class TestCategoryReconciler(TestCase):
    """Tests for mapping foreign categories onto collections."""

    def setUp(self):
        self.store = MemoryLibraryStore()

    def test_reuses_existing_collection_by_exact_name(self):
        """Test that a same-named collection is reused instead of created."""
        existing_id = self.store.create_collection("Reading")
        reconciler = CategoryReconciler(self.store, categories(("Reading", 7, 0)), DESCRIPTION)

        self.assertEqual(reconciler.stage([7]), ["Reading"])
        ids = reconciler.commit()

        self.assertEqual(ids["Reading"], existing_id)
        self.assertEqual(reconciler.created_count, 0)
        self.assertEqual(len(self.store.collections), 1)

    def test_name_match_is_case_sensitive(self):
        """Test that names differing only in case get their own collection."""
        self.store.create_collection("reading")
        reconciler = CategoryReconciler(self.store, categories(("Reading", 1, 0)), DESCRIPTION)

        reconciler.stage([1])
        ids = reconciler.commit()

        self.assertEqual(reconciler.created_count, 1)
        self.assertEqual(self.store.collections[ids["Reading"]].description, DESCRIPTION)

    def test_anonymous_categories_get_negative_keys(self):
        """Test that categories without an id get fallback keys -1, -2."""
        reconciler = CategoryReconciler(
            self.store, categories(("First", None, 0), ("Second", None, 1), ("Third", 3, 2)), DESCRIPTION
        )

        self.assertEqual(reconciler.names_by_key, {-1: "First", -2: "Second", 3: "Third"})
        self.assertEqual(reconciler.stage([-2, 3]), ["Second", "Third"])

    def test_duplicate_names_create_one_collection(self):
        """Test that two foreign categories with one name share a collection."""
        reconciler = CategoryReconciler(self.store, categories(("Manga", 1, 0), ("Manga", 2, 1)), DESCRIPTION)

        self.assertEqual(reconciler.stage([1, 2]), ["Manga"])
        ids = reconciler.commit()

        self.assertEqual(reconciler.created_count, 1)
        self.assertEqual(list(ids), ["Manga"])

    def test_falls_back_to_category_order(self):
        """Test that references matching no id resolve through category order."""
        reconciler = CategoryReconciler(self.store, categories(("Reading", 10, 0), ("Done", 11, 1)), DESCRIPTION)

        self.assertEqual(reconciler.stage([1]), ["Done"])
        self.assertEqual(reconciler.stage([10]), ["Reading"])

    def test_unknown_reference_is_ignored(self):
        """Test that references to missing categories resolve to nothing."""
        reconciler = CategoryReconciler(self.store, categories(("Reading", 1, 0)), DESCRIPTION)

        self.assertEqual(reconciler.stage([99]), [])
        self.assertEqual(reconciler.commit(), {})

    def test_stage_does_not_touch_store(self):
        """Test that collections are only created on commit."""
        reconciler = CategoryReconciler(self.store, categories(("New", 1, 0)), DESCRIPTION)

        reconciler.stage([1])
        self.assertEqual(self.store.collections, {})

        reconciler.commit()
        self.assertEqual([c.name for c in self.store.collections.values()], ["New"])

    def test_unreferenced_categories_are_not_created(self):
        """Test that only categories some manga uses become collections."""
        reconciler = CategoryReconciler(self.store, categories(("Used", 1, 0), ("Unused", 2, 1)), DESCRIPTION)

        reconciler.stage([1])
        ids = reconciler.commit()

        self.assertEqual(list(ids), ["Used"])
