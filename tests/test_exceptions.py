"""Tests for the centralized exception hierarchy."""

import pytest

from pluginkeeper.exceptions import (
    IntegrityError,
    InvalidPluginError,
    OperationTimeoutError,
    PersistenceError,
    PluginKeeperError,
    PluginNotInstalledError,
    RemoteError,
    RollbackError,
    ServerUnavailableError,
)


class TestExceptionHierarchy:
    """Verify the exception class hierarchy is correct."""

    def test_base_exception_exists(self):
        assert issubclass(PluginKeeperError, Exception)

    @pytest.mark.parametrize(
        "exc_cls",
        [
            ServerUnavailableError,
            RemoteError,
            IntegrityError,
            PersistenceError,
            OperationTimeoutError,
            RollbackError,
        ],
    )
    def test_direct_subclasses_of_plugin_keeper_error(self, exc_cls):
        assert issubclass(exc_cls, PluginKeeperError)
        assert exc_cls.__bases__ == (PluginKeeperError,)

    def test_invalid_plugin_is_a_value_error(self):
        assert issubclass(InvalidPluginError, PluginKeeperError)
        assert issubclass(InvalidPluginError, ValueError)

    def test_not_installed_is_invalid_plugin(self):
        assert PluginNotInstalledError.__bases__ == (InvalidPluginError,)

    @pytest.mark.parametrize(
        "exc_cls",
        [
            PluginKeeperError,
            ServerUnavailableError,
            RemoteError,
            IntegrityError,
            PersistenceError,
            InvalidPluginError,
            PluginNotInstalledError,
            OperationTimeoutError,
        ],
    )
    def test_instance_of_plugin_keeper_error(self, exc_cls):
        err = exc_cls("test message")
        assert isinstance(err, PluginKeeperError)
        assert str(err) == "test message"


class TestExceptionAttributes:
    """Extra context carried by some exceptions."""

    def test_remote_error_status_code(self):
        assert RemoteError("boom", status_code=503).status_code == 503
        assert RemoteError("boom").status_code is None

    def test_rollback_error_keeps_both_causes(self):
        original = IntegrityError("bad artifact")
        restore = OSError("disk gone")
        err = RollbackError("update failed", original_error=original, restore_error=restore)
        assert err.original_error is original
        assert err.restore_error is restore
        assert str(err) == "update failed"

    def test_catch_by_base_class(self):
        with pytest.raises(PluginKeeperError):
            raise PluginNotInstalledError("gone")

    def test_does_not_catch_sibling(self):
        with pytest.raises(IntegrityError):
            try:
                raise IntegrityError("bad")
            except RemoteError:
                pytest.fail("RemoteError should not catch IntegrityError")

    def test_top_level_import(self):
        """Exceptions are importable from the pluginkeeper package."""
        from pluginkeeper import PluginKeeperError as TopLevelError

        assert TopLevelError is PluginKeeperError
