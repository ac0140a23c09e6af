"""Extract MangaDex IDs from Tachiyomi/Mihon URLs and build URLs from IDs.

The MangaDex extension stores paths such as ``/manga/<uuid>`` or
``/chapter/<uuid>``; older backups and other forks may use ``/title/<uuid>``
or full URLs.
"""

import re

MANGA_URL_RE = re.compile(r'(?:^|/)(?:manga|title)/([a-f0-9-]{36})(?:/|$)', re.IGNORECASE)
CHAPTER_URL_RE = re.compile(r'(?:^|/)chapter/([a-f0-9-]{36})(?:/|$)', re.IGNORECASE)


def extract_manga_id(url):
    """Return the manga ID in a manga URL, or None if there is none.

    Args:
        url: Manga URL or path from a foreign backup
    """
    match = MANGA_URL_RE.search(url or '')
    return match.group(1) if match else None


def extract_chapter_id(url):
    """Return the chapter ID in a chapter URL, or None if there is none."""
    match = CHAPTER_URL_RE.search(url or '')
    return match.group(1) if match else None


def build_manga_url(manga_id):
    return f'/manga/{manga_id}'


def build_chapter_url(chapter_id):
    return f'/chapter/{chapter_id}'
