# Copyright (c) pluginkeeper Contributors. All rights reserved.
# Licensed under the MIT License.
"""Centralized exception hierarchy for pluginkeeper.

All pluginkeeper exceptions inherit from PluginKeeperError, so a host can
catch every failure of the plugin lifecycle with a single ``except`` clause.
"""

from __future__ import annotations

from typing import Optional


class PluginKeeperError(Exception):
    """Base exception for all pluginkeeper errors."""


class ServerUnavailableError(PluginKeeperError):
    """The plugin server is unreachable or reported an unhealthy state."""


class RemoteError(PluginKeeperError):
    """A request to the plugin server failed or returned a bad response."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class IntegrityError(PluginKeeperError):
    """A downloaded artifact could not be recovered with the server's public key."""


class PersistenceError(PluginKeeperError):
    """Writing or moving a manifest or artifact file failed."""


class InvalidPluginError(PluginKeeperError, ValueError):
    """The plugin passed to an operation is not the variant it requires."""


class PluginNotInstalledError(InvalidPluginError):
    """The plugin's installed artifact is not present on disk."""


class OperationTimeoutError(PluginKeeperError):
    """An install or update exceeded the configured operation timeout."""


class RollbackError(PluginKeeperError):
    """An update failed and restoring the previous artifact failed as well.

    The plugin is left in an undefined state: ``original_error`` is the
    failure that triggered the rollback and ``restore_error`` is the failure
    raised while restoring the backup.
    """

    def __init__(
        self,
        message: str,
        original_error: BaseException,
        restore_error: BaseException,
    ) -> None:
        super().__init__(message)
        self.original_error = original_error
        self.restore_error = restore_error


__all__ = [
    "PluginKeeperError",
    "ServerUnavailableError",
    "RemoteError",
    "IntegrityError",
    "PersistenceError",
    "InvalidPluginError",
    "PluginNotInstalledError",
    "OperationTimeoutError",
    "RollbackError",
]
