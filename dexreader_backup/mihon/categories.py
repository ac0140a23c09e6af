"""Reconcile Tachiyomi/Mihon categories with native collections."""

import logging

logger = logging.getLogger(__name__)


class CategoryReconciler:
    """Maps the category references of foreign manga onto native collections.

    Categories are matched to collections by exact, case-sensitive name.
    A name with no native collection is created on commit, once, however
    many foreign categories share it. Categories without an explicit id
    get fallback keys -1, -2, ... so they can still be referenced within
    one import. References that match no id are tried against category
    order, which is what Mihon writes into BackupManga.categories.

    Args:
        collection_store: CollectionStore to look up and create collections in
        categories: BackupCategory messages from the foreign backup
        description: Description for collections created by this import
    """

    def __init__(self, collection_store, categories, description):
        self.collection_store = collection_store
        self.description = description
        self.names_by_key = {}
        self.names_by_order = {}
        self.created_count = 0

        fallback_key = -1
        for category in categories:
            if category.HasField('id'):
                key = category.id
            else:
                key = fallback_key
                fallback_key -= 1
            self.names_by_key.setdefault(key, category.name)
            self.names_by_order.setdefault(category.order, category.name)

        self.collection_ids = {c.name: c.id for c in collection_store.get_all_collections()}
        self._pending = []

    def resolve(self, foreign_id):
        """Return the category name a foreign reference points to, or None."""
        if foreign_id in self.names_by_key:
            return self.names_by_key[foreign_id]
        return self.names_by_order.get(foreign_id)

    def stage(self, foreign_ids):
        """Resolve a manga's category references without touching the store.

        Returns:
            Distinct category names, in reference order
        """
        names = []
        for foreign_id in foreign_ids:
            name = self.resolve(foreign_id)
            if name is None:
                logger.debug("Ignoring reference to unknown category %s", foreign_id)
                continue
            if name not in names:
                names.append(name)
            if name not in self.collection_ids and name not in self._pending:
                self._pending.append(name)
        return names

    def commit(self):
        """Create the staged collections that do not exist yet.

        Returns:
            Dict of collection name to native collection id
        """
        for name in self._pending:
            self.collection_ids[name] = self.collection_store.create_collection(name, self.description)
            self.created_count += 1
            logger.info("Created collection '%s'", name)
        self._pending = []
        return dict(self.collection_ids)
