"""Result objects returned by the export and import pipelines."""

from dataclasses import dataclass, field
from typing import List, Optional


@dataclass
class ExportOptions:
    """Optional sections to include in a native backup.

    The library section is always exported.
    """
    include_collections: bool = True
    include_progress: bool = True
    include_reader_settings: bool = True


@dataclass
class ImportIssue:
    """A row-level problem found while importing.

    Attributes:
        section: Section the row belongs to ("library", "collections", ...)
        identifier: Manga/chapter ID or foreign URL of the offending row
        title: Human-readable title, if the row has one
        reason: What went wrong
    """
    section: str
    identifier: str
    title: str
    reason: str

    def __str__(self):
        return f"[{self.section}] {self.title} ({self.identifier}): {self.reason}"


@dataclass
class ExportResult:
    """Result of a native or Mihon export.

    Attributes:
        file_path: Destination path, None if nothing was written
        success: False when the export failed or was cancelled
        cancelled: Whether the export was cancelled before writing
        message: Human-readable outcome
    """
    file_path: Optional[str] = None
    exported_manga_count: int = 0
    exported_chapters_count: int = 0
    exported_collections_count: int = 0
    exported_progress_count: int = 0
    exported_reader_settings_count: int = 0
    success: bool = True
    cancelled: bool = False
    message: str = ""


@dataclass
class ImportResult:
    """Result of a native or Mihon import.

    Counts accumulate while the pipeline runs, so a cancelled import
    still reports what was committed before the cancellation.

    imported_manga_count counts every upserted manga row;
    updated_manga_count is the subset that already existed locally.
    """
    imported_manga_count: int = 0
    updated_manga_count: int = 0
    imported_chapters_count: int = 0
    imported_collections_count: int = 0
    imported_collection_items_count: int = 0
    imported_manga_progress_count: int = 0
    imported_chapter_progress_count: int = 0
    imported_reader_overrides_count: int = 0
    skipped_manga_count: int = 0
    skipped_chapters_count: int = 0
    skipped_collections_count: int = 0
    skipped_collection_items_count: int = 0
    skipped_progress_count: int = 0
    skipped_reader_overrides_count: int = 0
    failed_manga_count: int = 0
    imported_manga_ids: List[str] = field(default_factory=list)
    errors: List[ImportIssue] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    cancelled: bool = False
    message: str = ""

    def add_error(self, section, identifier, title, reason):
        self.errors.append(ImportIssue(section, identifier or "", title or "Unknown Title", reason))

    @property
    def success(self) -> bool:
        """Whether the import finished without row errors or cancellation."""
        return not self.errors and not self.cancelled

    @property
    def total_processed(self) -> int:
        return self.imported_manga_count + self.skipped_manga_count + self.failed_manga_count
