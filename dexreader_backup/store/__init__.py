from .base import CollectionStore, MangaStore, ProgressStore, ReaderSettingsStore
from .memory import MemoryLibraryStore

__all__ = [
    'CollectionStore',
    'MangaStore',
    'MemoryLibraryStore',
    'ProgressStore',
    'ReaderSettingsStore',
]
