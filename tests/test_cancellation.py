"""Tests for cancellation tokens and the single-flight controller."""

from unittest import TestCase

from dexreader_backup.cancellation import (
    CANCELLED,
    SUPERSEDED,
    CancellationController,
    CancellationToken,
    cancellation_message,
)
from dexreader_backup.errors import OperationCancelled


class TestCancellationToken(TestCase):
    """Tests for CancellationToken."""

    def test_new_token_is_live(self):
        """Test that a fresh token is not cancelled."""
        token = CancellationToken()
        self.assertFalse(token.cancelled)
        token.raise_if_cancelled()

    def test_cancel_raises(self):
        """Test that a cancelled token raises with its reason."""
        token = CancellationToken()
        token.cancel()
        with self.assertRaises(OperationCancelled) as ctx:
            token.raise_if_cancelled()
        self.assertEqual(ctx.exception.reason, CANCELLED)

    def test_first_reason_wins(self):
        """Test that cancelling twice keeps the first reason."""
        token = CancellationToken()
        token.cancel(SUPERSEDED)
        token.cancel(CANCELLED)
        self.assertEqual(token.reason, SUPERSEDED)


class TestCancellationController(TestCase):
    """Tests for CancellationController."""

    def setUp(self):
        self.controller = CancellationController("native")

    def test_begin_supersedes_previous_token(self):
        """Test that starting a new operation signals the old token."""
        first = self.controller.begin()
        second = self.controller.begin()

        self.assertTrue(first.cancelled)
        self.assertEqual(first.reason, SUPERSEDED)
        self.assertFalse(second.cancelled)
        self.assertIs(self.controller.current, second)

    def test_cancel_signals_current(self):
        """Test that cancel() signals the running operation."""
        token = self.controller.begin()
        self.assertTrue(self.controller.cancel())
        self.assertEqual(token.reason, CANCELLED)

    def test_cancel_without_operation(self):
        """Test that cancel() with nothing running reports False."""
        self.assertFalse(self.controller.cancel())

    def test_finish_only_clears_own_token(self):
        """Test that a superseded operation does not clear its successor."""
        first = self.controller.begin()
        second = self.controller.begin()

        self.controller.finish(first)
        self.assertIs(self.controller.current, second)

        self.controller.finish(second)
        self.assertIsNone(self.controller.current)

    def test_operation_context(self):
        """Test the context manager issues and releases a token."""
        with self.controller.operation() as token:
            self.assertIs(self.controller.current, token)
        self.assertIsNone(self.controller.current)


class TestCancellationMessage(TestCase):
    """Tests for cancellation_message."""

    def test_messages(self):
        """Test the user-facing messages for each reason."""
        self.assertEqual(cancellation_message("Import", CANCELLED), "Import cancelled by user")
        self.assertEqual(cancellation_message("Import", SUPERSEDED), "Import superseded by a newer operation")
