"""Conversion between native entities and .dexreader envelope messages.

The *_to_message helpers fill a message already added to a repeated
field; the *_from_message helpers build the entity the store expects.
Conversions that can fail on bad data raise ValueError.
"""

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
)

DEFAULT_LANGUAGE = "en"


def _set_optional(message, name, value):
    if value is not None:
        setattr(message, name, value)


def _optional(message, name):
    return getattr(message, name) if message.HasField(name) else None


# Library

def manga_to_message(manga, message):
    message.mangaId = manga.manga_id
    message.title = manga.title
    _set_optional(message, 'description', manga.description)
    message.status = manga.status.value
    _set_optional(message, 'coverUrl', manga.cover_url)
    _set_optional(message, 'year', manga.year)
    message.isFavourite = manga.is_favourite
    message.addedAt = manga.added_at
    message.updatedAt = manga.updated_at
    message.lastAccessedAt = manga.last_accessed_at
    message.externalLinks.update(manga.external_links)
    message.tags.extend(manga.tags)
    message.authors.extend(manga.authors)
    message.artists.extend(manga.artists)
    message.alternativeTitles.update(manga.alternative_titles)
    _set_optional(message, 'lastVolume', manga.last_volume)
    _set_optional(message, 'lastChapter', manga.last_chapter)
    _set_optional(message, 'lastKnownChapterId', manga.last_known_chapter_id)
    _set_optional(message, 'lastKnownChapterNumber', manga.last_known_chapter_number)
    message.lastCheckForUpdates = manga.last_check_for_updates
    message.hasNewChapters = manga.has_new_chapters
    return message


def manga_from_message(message):
    return Manga(
        manga_id=message.mangaId,
        title=message.title,
        description=_optional(message, 'description'),
        status=PublicationStatus.parse(message.status),
        cover_url=_optional(message, 'coverUrl'),
        year=_optional(message, 'year'),
        # Library rows are favourites unless the backup says otherwise
        is_favourite=message.isFavourite if message.HasField('isFavourite') else True,
        added_at=message.addedAt,
        updated_at=message.updatedAt,
        last_accessed_at=message.lastAccessedAt,
        external_links=dict(message.externalLinks),
        tags=list(message.tags),
        authors=list(message.authors),
        artists=list(message.artists),
        alternative_titles=dict(message.alternativeTitles),
        last_volume=_optional(message, 'lastVolume'),
        last_chapter=_optional(message, 'lastChapter'),
        last_known_chapter_id=_optional(message, 'lastKnownChapterId'),
        last_known_chapter_number=_optional(message, 'lastKnownChapterNumber'),
        last_check_for_updates=message.lastCheckForUpdates,
        has_new_chapters=message.hasNewChapters,
    )


def chapter_to_message(chapter, message):
    message.chapterId = chapter.chapter_id
    message.mangaId = chapter.manga_id
    _set_optional(message, 'title', chapter.title)
    _set_optional(message, 'chapterNumber', chapter.chapter_number)
    _set_optional(message, 'volume', chapter.volume)
    message.language = chapter.language
    message.publishAt = chapter.publish_at
    message.createdAt = chapter.created_at
    message.updatedAt = chapter.updated_at
    _set_optional(message, 'scanlationGroup', chapter.scanlation_group)
    _set_optional(message, 'externalUrl', chapter.external_url)
    return message


def chapter_from_message(message):
    return Chapter(
        chapter_id=message.chapterId,
        manga_id=message.mangaId,
        title=_optional(message, 'title'),
        chapter_number=_optional(message, 'chapterNumber'),
        volume=_optional(message, 'volume'),
        language=message.language or DEFAULT_LANGUAGE,
        publish_at=message.publishAt,
        created_at=message.createdAt,
        updated_at=message.updatedAt,
        scanlation_group=_optional(message, 'scanlationGroup'),
        external_url=_optional(message, 'externalUrl'),
    )


# Collections

def collection_to_message(collection, message):
    message.id = collection.id
    message.name = collection.name
    _set_optional(message, 'description', collection.description)
    message.createdAt = collection.created_at
    message.updatedAt = collection.updated_at
    return message


def collection_from_message(message):
    if not message.name.strip():
        raise ValueError("Collection has an empty name")
    return Collection(
        id=message.id,
        name=message.name,
        description=_optional(message, 'description'),
        created_at=message.createdAt,
        updated_at=message.updatedAt,
    )


def collection_item_to_message(item, message):
    message.collectionId = item.collection_id
    message.mangaId = item.manga_id
    message.addedAt = item.added_at
    message.position = item.position
    return message


def collection_item_from_message(message):
    return CollectionItem(
        collection_id=message.collectionId,
        manga_id=message.mangaId,
        added_at=message.addedAt,
        position=message.position,
    )


# Progress

def manga_progress_to_message(progress, message):
    message.mangaId = progress.manga_id
    _set_optional(message, 'lastChapterId', progress.last_chapter_id)
    message.firstReadAt = progress.first_read_at
    message.lastReadAt = progress.last_read_at
    return message


def manga_progress_from_message(message):
    return MangaProgress(
        manga_id=message.mangaId,
        last_chapter_id=_optional(message, 'lastChapterId'),
        first_read_at=message.firstReadAt,
        last_read_at=message.lastReadAt,
    )


def chapter_progress_to_message(progress, message):
    message.mangaId = progress.manga_id
    message.chapterId = progress.chapter_id
    message.currentPage = progress.current_page
    message.completed = progress.completed
    message.lastReadAt = progress.last_read_at
    return message


def chapter_progress_from_message(message):
    return ChapterProgress(
        manga_id=message.mangaId,
        chapter_id=message.chapterId,
        current_page=message.currentPage,
        completed=message.completed,
        last_read_at=message.lastReadAt,
    )


# Reader settings

def reader_override_to_message(override, message):
    message.mangaId = override.manga_id
    message.readingMode = override.reading_mode.value
    if override.double_page_mode is not None:
        message.doublePageMode.skipCoverPages = override.double_page_mode.skip_cover_pages
        message.doublePageMode.readRightToLeft = override.double_page_mode.read_right_to_left
    message.createdAt = override.created_at
    message.updatedAt = override.updated_at
    return message


def reader_override_from_message(message):
    double_page_mode = None
    if message.HasField('doublePageMode'):
        double_page_mode = DoublePageMode(
            skip_cover_pages=message.doublePageMode.skipCoverPages,
            read_right_to_left=message.doublePageMode.readRightToLeft,
        )
    return ReaderOverride(
        manga_id=message.mangaId,
        reading_mode=ReadingMode.parse(message.readingMode),
        double_page_mode=double_page_mode,
        created_at=message.createdAt,
        updated_at=message.updatedAt,
    )
