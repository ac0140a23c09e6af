"""DexReader backup engine.

Exports and restores the local manga library as versioned .dexreader
backups, and converts to and from Tachiyomi/Mihon (.tachibk) backups.
"""

__version__ = "1.0.0"
