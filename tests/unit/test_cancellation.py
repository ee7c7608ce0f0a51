"""Unit tests for CancellationToken."""

import pytest
from unittest.mock import Mock

from ftpsync.ftp.exceptions import OperationCanceled
from ftpsync.utils.cancellation import CancellationToken


class TestCancellationToken:
    """Tests for the one-shot cancellation flag."""

    def test_initial_state(self, token):
        assert token.is_cancelled is False
        token.raise_if_cancelled()

    def test_cancel_sets_flag(self, token):
        token.cancel()

        assert token.is_cancelled is True
        with pytest.raises(OperationCanceled, match="Listing was cancelled"):
            token.raise_if_cancelled("Listing")

    def test_callbacks_run_once(self, token):
        callback = Mock()
        token.register(callback)

        token.cancel()
        token.cancel()

        callback.assert_called_once()

    def test_register_after_cancel_runs_immediately(self, token):
        token.cancel()
        callback = Mock()

        token.register(callback)

        callback.assert_called_once()

    def test_unregistered_callback_does_not_run(self, token):
        callback = Mock()
        registration = token.register(callback)

        registration.unregister()
        token.cancel()

        callback.assert_not_called()

    def test_registration_context_manager(self, token):
        callback = Mock()

        with token.register(callback):
            pass
        token.cancel()

        callback.assert_not_called()

    def test_failing_callback_does_not_stop_others(self, token):
        first = Mock(side_effect=OSError("already closed"))
        second = Mock()
        token.register(first)
        token.register(second)

        token.cancel()

        second.assert_called_once()
