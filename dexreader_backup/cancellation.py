"""Cooperative cancellation for long-running backup operations.

Every export or import receives its own CancellationToken. A
CancellationController hands out tokens for one kind of operation and
makes sure only the newest one is live: starting a new operation signals
the previous token as superseded.
"""

import logging
import threading
from contextlib import contextmanager

from .errors import OperationCancelled

logger = logging.getLogger(__name__)

CANCELLED = "cancelled"
SUPERSEDED = "superseded"


def cancellation_message(action, reason):
    """Result message for an operation that stopped early."""
    if reason == SUPERSEDED:
        return f"{action} superseded by a newer operation"
    return f"{action} cancelled by user"


class CancellationToken:
    """Cancellation handle threaded through every stage of one operation."""

    def __init__(self, kind="operation"):
        self.kind = kind
        self._event = threading.Event()
        self.reason = None

    @property
    def cancelled(self):
        return self._event.is_set()

    def cancel(self, reason=CANCELLED):
        if not self._event.is_set():
            self.reason = reason
            self._event.set()

    def raise_if_cancelled(self):
        """Raise OperationCancelled if the token has been signalled."""
        if self._event.is_set():
            raise OperationCancelled(self.reason)

    def __repr__(self):
        state = f"cancelled:{self.reason}" if self.cancelled else "live"
        return f"<CancellationToken {self.kind} {state}>"


class CancellationController:
    """Single-flight token issuer for one kind of operation.

    Args:
        kind: Operation kind, e.g. "native" or "mihon"
    """

    def __init__(self, kind):
        self.kind = kind
        self._lock = threading.Lock()
        self._current = None

    @property
    def current(self):
        return self._current

    def begin(self):
        """Start a new operation, superseding the one in flight.

        Returns:
            The fresh CancellationToken
        """
        token = CancellationToken(self.kind)
        with self._lock:
            previous, self._current = self._current, token
        if previous is not None:
            logger.info("Superseding in-flight %s operation", self.kind)
            previous.cancel(SUPERSEDED)
        return token

    def finish(self, token):
        """Release a token once its operation has returned."""
        with self._lock:
            if self._current is token:
                self._current = None

    def cancel(self):
        """Cancel the operation in flight, if any.

        Returns:
            True if an operation was signalled
        """
        with self._lock:
            token = self._current
        if token is None:
            return False
        logger.info("Cancelling in-flight %s operation", self.kind)
        token.cancel(CANCELLED)
        return True

    @contextmanager
    def operation(self):
        token = self.begin()
        try:
            yield token
        finally:
            self.finish(token)
