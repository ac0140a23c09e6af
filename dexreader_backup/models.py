"""Native library entities read and written by the backup engine.

All timestamps are Unix epoch milliseconds.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional
import time


def now_ms() -> int:
    """Current time in epoch milliseconds."""
    return int(time.time() * 1000)


class PublicationStatus(Enum):
    """Publication status of a manga as reported by the catalogue."""
    ONGOING = "ongoing"
    COMPLETED = "completed"
    HIATUS = "hiatus"
    CANCELLED = "cancelled"

    @classmethod
    def parse(cls, value):
        """Parse a stored status string. Empty values mean ongoing.

        Raises:
            ValueError: If the value is not a known status
        """
        if not value:
            return cls.ONGOING
        try:
            return cls(value.lower())
        except ValueError:
            raise ValueError(f"Unknown publication status '{value}'") from None


class ReadingMode(Enum):
    SINGLE_PAGE = "single-page"
    DOUBLE_PAGE = "double-page"
    VERTICAL_SCROLL = "vertical-scroll"

    @classmethod
    def parse(cls, value):
        try:
            return cls(value)
        except ValueError:
            raise ValueError(f"Unknown reading mode '{value}'") from None


@dataclass
class Manga:
    """A catalogue cache row for one manga in the local library."""
    manga_id: str
    title: str
    description: Optional[str] = None
    status: PublicationStatus = PublicationStatus.ONGOING
    cover_url: Optional[str] = None
    year: Optional[int] = None
    is_favourite: bool = True
    added_at: int = 0
    updated_at: int = 0
    last_accessed_at: int = 0
    external_links: Dict[str, str] = field(default_factory=dict)
    tags: List[str] = field(default_factory=list)
    authors: List[str] = field(default_factory=list)
    artists: List[str] = field(default_factory=list)
    alternative_titles: Dict[str, str] = field(default_factory=dict)
    last_volume: Optional[str] = None
    last_chapter: Optional[str] = None
    last_known_chapter_id: Optional[str] = None
    last_known_chapter_number: Optional[str] = None
    last_check_for_updates: int = 0
    has_new_chapters: bool = False


@dataclass
class Chapter:
    """Cached chapter metadata. References its manga by manga_id."""
    chapter_id: str
    manga_id: str
    title: Optional[str] = None
    chapter_number: Optional[str] = None
    volume: Optional[str] = None
    language: str = "en"
    publish_at: int = 0
    created_at: int = 0
    updated_at: int = 0
    scanlation_group: Optional[str] = None
    external_url: Optional[str] = None


@dataclass
class Collection:
    id: int
    name: str
    description: Optional[str] = None
    created_at: int = 0
    updated_at: int = 0


@dataclass
class CollectionItem:
    """Membership of a manga in a collection, unique per (collection_id, manga_id)."""
    collection_id: int
    manga_id: str
    added_at: int = 0
    position: int = 0

    @property
    def key(self):
        return (self.collection_id, self.manga_id)


@dataclass
class MangaProgress:
    """Per-manga reading summary.

    first_read_at records when the user first opened the manga and is
    never moved forward by an import.
    """
    manga_id: str
    last_chapter_id: Optional[str] = None
    first_read_at: int = 0
    last_read_at: int = 0


@dataclass
class ChapterProgress:
    """Reading position inside one chapter, unique per (manga_id, chapter_id)."""
    manga_id: str
    chapter_id: str
    current_page: int = 0
    completed: bool = False
    last_read_at: int = 0

    @property
    def key(self):
        return (self.manga_id, self.chapter_id)


@dataclass
class DoublePageMode:
    skip_cover_pages: bool = False
    read_right_to_left: bool = False


@dataclass
class ReaderOverride:
    """Per-manga reader settings that replace the global defaults."""
    manga_id: str
    reading_mode: ReadingMode = ReadingMode.SINGLE_PAGE
    double_page_mode: Optional[DoublePageMode] = None
    created_at: int = 0
    updated_at: int = 0
