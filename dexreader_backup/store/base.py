"""Store interfaces the backup engine reads from and writes to.

The relational store itself lives outside this package. Pipelines only
talk to these four interfaces, and each batch method is expected to be
applied as one transaction.
"""

from abc import ABC, abstractmethod
from typing import Iterable, List, Set

from ..models import (
    Chapter,
    ChapterProgress,
    Collection,
    CollectionItem,
    Manga,
    MangaProgress,
    ReaderOverride,
)


class MangaStore(ABC):
    """Catalogue cache: library manga and their chapters."""

    @abstractmethod
    def get_favorited_manga_with_metadata(self) -> List[Manga]:
        """Return every manga in the user's library."""

    @abstractmethod
    def get_chapters_by_manga_ids(self, manga_ids: Iterable[str]) -> List[Chapter]:
        """Return cached chapters belonging to the given manga."""

    @abstractmethod
    def get_existing_manga_ids(self, manga_ids: Iterable[str]) -> Set[str]:
        """Return the subset of manga_ids already present in the store."""

    @abstractmethod
    def batch_upsert_manga(self, rows: List[Manga]) -> None:
        """Insert or update manga by manga_id."""

    @abstractmethod
    def save_chapters(self, rows: List[Chapter]) -> None:
        """Insert or update chapters by chapter_id."""


class CollectionStore(ABC):

    @abstractmethod
    def get_all_collections(self) -> List[Collection]:
        pass

    @abstractmethod
    def get_all_collection_items(self) -> List[CollectionItem]:
        pass

    @abstractmethod
    def create_collection(self, name: str, description: str = None,
                          created_at: int = None, updated_at: int = None) -> int:
        """Create a collection and return its id.

        Timestamps default to now when not given.

        Raises:
            ValueError: If a collection with that name already exists
        """

    @abstractmethod
    def batch_add_to_collection(self, rows: List[CollectionItem]) -> None:
        """Add memberships, ignoring ones that already exist."""


class ProgressStore(ABC):

    @abstractmethod
    def get_all_manga_progress(self) -> List[MangaProgress]:
        pass

    @abstractmethod
    def get_all_chapter_progress(self) -> List[ChapterProgress]:
        pass

    @abstractmethod
    def save_progress(self, rows: List[ChapterProgress]) -> None:
        """Upsert chapter progress by (manga_id, chapter_id).

        Also keeps each manga's progress summary (last chapter, last read
        time) in step. A missing summary is created with first_read_at set
        to the chapter's last_read_at.
        """

    @abstractmethod
    def update_first_read_at(self, rows: List[MangaProgress]) -> None:
        """Apply manga progress rows.

        first_read_at only ever moves backwards: the stored value is
        replaced only when the row's value is earlier (or nothing is
        stored yet). Missing summaries are created from the row.
        """


class ReaderSettingsStore(ABC):

    @abstractmethod
    def get_all_reader_overrides(self) -> List[ReaderOverride]:
        pass

    @abstractmethod
    def batch_update_overrides(self, rows: List[ReaderOverride]) -> None:
        """Upsert reader overrides by manga_id."""
