"""Mapping between Tachiyomi/Mihon status codes and PublicationStatus.

Several foreign codes collapse onto one native status, so the reverse
lookup returns the lowest matching code and a round trip through the
native model is lossy (e.g. PUBLISHING_FINISHED comes back as COMPLETED).
"""

from ..models import PublicationStatus

# SManga status constants used by Tachiyomi extensions
UNKNOWN = 0
ONGOING = 1
COMPLETED = 2
LICENSED = 3
PUBLISHING_FINISHED = 4
CANCELLED = 5
ON_HIATUS = 6

STATUS_CODES = {
    UNKNOWN: PublicationStatus.ONGOING,
    ONGOING: PublicationStatus.ONGOING,
    COMPLETED: PublicationStatus.COMPLETED,
    LICENSED: PublicationStatus.ONGOING,
    PUBLISHING_FINISHED: PublicationStatus.COMPLETED,
    CANCELLED: PublicationStatus.CANCELLED,
    ON_HIATUS: PublicationStatus.HIATUS,
}


def to_native(code):
    """Map a foreign status code. Unknown or missing codes mean ongoing."""
    return STATUS_CODES.get(code, PublicationStatus.ONGOING)


def to_foreign(status):
    """Map a native status to the first foreign code that produces it."""
    for code in sorted(STATUS_CODES):
        if STATUS_CODES[code] is status:
            return code
    return UNKNOWN
