"""
Plugin Installer

Download, verify, install, and update plugin artifacts. Updates run as a
rollback transaction: the installed artifact is moved aside, the new version
is installed, and either the backup is deleted (commit) or moved back
(rollback). A plugin is never left half-upgraded.
"""

from __future__ import annotations

import asyncio
import importlib.util
import logging
import os
import time
import zipimport
from pathlib import Path
from types import ModuleType
from typing import Any, Awaitable, Callable, Optional, TypeVar

from pluginkeeper.exceptions import (
    IntegrityError,
    InvalidPluginError,
    OperationTimeoutError,
    PersistenceError,
    PluginKeeperError,
    PluginNotInstalledError,
    RemoteError,
    RollbackError,
)
from pluginkeeper.health import HealthGate
from pluginkeeper.layout import BACKUP_SUFFIX, PluginLayout, write_atomic
from pluginkeeper.metrics import KeeperMetrics
from pluginkeeper.models import InstalledPlugin, Plugin, PluginVersion, UpdateablePlugin
from pluginkeeper.remote import RemoteClient
from pluginkeeper.signing import ArtifactDecoder, ArtifactVerifier, passthrough_decoder

logger = logging.getLogger(__name__)

T = TypeVar("T")

PluginLoader = Callable[[Path], Any]

# Module every zip artifact must provide for the default loader
PLUGIN_ENTRY_MODULE = "plugin"


def load_zip_plugin(path: Path) -> ModuleType:
    """Import the ``plugin`` module from a zip artifact.

    The module is executed but not registered in ``sys.modules``, so several
    plugins may ship a module with the same name.

    Raises:
        PluginKeeperError: If the archive is unreadable or lacks the module.
    """
    try:
        importer = zipimport.zipimporter(str(path))
        spec = importer.find_spec(PLUGIN_ENTRY_MODULE)
    except zipimport.ZipImportError as exc:
        raise PluginKeeperError(f"Cannot open plugin archive {path}: {exc}") from exc
    if spec is None or spec.loader is None:
        raise PluginKeeperError(f"Plugin archive {path} has no '{PLUGIN_ENTRY_MODULE}' module")
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


class PluginInstaller:
    """Install, update, and load plugins from the plugin server.

    Every mutation of one plugin id is serialized through a per-id lock;
    different plugins proceed concurrently.

    Args:
        layout: Canonical artifact paths.
        remote: Client for the plugin server.
        health: Gate checked before remote calls.
        artifact_decoder: Applied to download bodies before authenticity
            recovery.
        loader: Turns a verified artifact path into the plugin's exported
            capability.
        operation_timeout_seconds: Upper bound for the network part of one
            install or update. ``None`` disables it.
        metrics: Optional metrics sink.

    Example:
        >>> installer = PluginInstaller(layout, remote, HealthGate(remote))
        >>> await installer.install(catalog[0])
    """

    def __init__(
        self,
        layout: PluginLayout,
        remote: RemoteClient,
        health: HealthGate,
        *,
        artifact_decoder: ArtifactDecoder = passthrough_decoder,
        loader: PluginLoader = load_zip_plugin,
        operation_timeout_seconds: Optional[float] = None,
        metrics: Optional[KeeperMetrics] = None,
    ) -> None:
        if operation_timeout_seconds is not None and operation_timeout_seconds <= 0:
            raise ValueError(
                f"operation_timeout_seconds must be positive, got: {operation_timeout_seconds}"
            )
        self._layout = layout
        self._remote = remote
        self._health = health
        self._decode = artifact_decoder
        self._loader = loader
        self.operation_timeout_seconds = operation_timeout_seconds
        self._metrics = metrics
        self._locks: dict[str, asyncio.Lock] = {}

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------

    async def fetch_public_key(self) -> str:
        """Return the server's PEM public key.

        Raises:
            ServerUnavailableError: If the health gate fails.
            RemoteError: If the key request fails or is malformed.
        """
        await self._health.require()
        body = await self._remote.get_json("public")
        key = body.get("key") if isinstance(body, dict) else None
        if not isinstance(key, str) or not key.strip():
            raise RemoteError("Malformed public key response")
        return key

    async def install(self, plugin: Plugin) -> Path:
        """Install the newest version of *plugin*.

        The target is the last entry of ``plugin.versions``. The artifact is
        written to its canonical path only after download and authenticity
        recovery succeeded.

        Returns:
            Path of the installed artifact.

        Raises:
            InvalidPluginError: If *plugin* is missing or has no versions.
            ServerUnavailableError: If the health gate fails.
            RemoteError: If a request fails.
            IntegrityError: If the artifact is not authentic.
            PersistenceError: If the artifact cannot be written.
            OperationTimeoutError: If the operation timeout expires.
        """
        if not isinstance(plugin, Plugin):
            raise InvalidPluginError("You must provide a plugin to install")
        if not plugin.versions:
            raise InvalidPluginError(f"Plugin {plugin.id} has no version to download")
        async with self._lock_for(plugin.id):
            try:
                path = await self._install_version(plugin, plugin.versions[-1])
            except Exception:
                self._record_install("error")
                raise
        self._record_install("ok")
        return path

    async def update(self, plugin: UpdateablePlugin) -> Path:
        """Upgrade *plugin* from ``installed_version`` to ``next_version``.

        Either the new version ends up installed and the old artifact is
        gone, or the old artifact is restored unchanged and the original
        error is re-raised.

        Returns:
            Path of the newly installed artifact.

        Raises:
            InvalidPluginError: If *plugin* is not an ``UpdateablePlugin``.
            PersistenceError: If the installed artifact cannot be backed up.
            RollbackError: If the update failed and the backup could not be
                restored.
        """
        if not isinstance(plugin, UpdateablePlugin):
            raise InvalidPluginError(
                "The plugin passed to update must be an UpdateablePlugin from update resolution"
            )
        async with self._lock_for(plugin.id):
            return await self._update_locked(plugin)

    async def load(self, plugin: InstalledPlugin) -> Any:
        """Load the installed artifact of *plugin* with the configured loader.

        Raises:
            InvalidPluginError: If *plugin* is not an ``InstalledPlugin``.
            PluginNotInstalledError: If the artifact is not on disk.
        """
        if not isinstance(plugin, InstalledPlugin):
            raise InvalidPluginError("Only installed plugins can be loaded")
        path = self._layout.artifact_path(plugin, plugin.installed_version)
        async with self._lock_for(plugin.id):
            if not path.is_file():
                raise PluginNotInstalledError(f"Can't load {plugin.id}: {path} is not installed")
            return self._loader(path)

    async def recover_interrupted_updates(self) -> list[Path]:
        """Finish updates that were interrupted between backup and commit.

        Each plugin's backups are handled under that plugin's lock, so an
        update in flight is never disturbed. For every backup:

        * its canonical artifact exists: the backup is stale and deleted;
        * another artifact written after the backup exists: the update
          reached its final rename, so the backup is deleted (commit);
        * otherwise the backup is moved back into place (rollback).

        Returns:
            Paths of the restored artifacts.

        Raises:
            PersistenceError: If a backup cannot be moved or deleted.
        """
        restored: list[Path] = []
        plugin_ids = sorted({backup.parent.name for backup in self._layout.iter_backups()})
        for plugin_id in plugin_ids:
            async with self._lock_for(plugin_id):
                for backup in self._layout.iter_backups(plugin_id):
                    if self._recover_backup(plugin_id, backup):
                        restored.append(backup.with_name(backup.name[: -len(BACKUP_SUFFIX)]))
        return restored

    # ------------------------------------------------------------------
    # Install / update internals
    # ------------------------------------------------------------------

    def _recover_backup(self, plugin_id: str, backup: Path) -> bool:
        """Resolve one leftover backup; return ``True`` if it was restored."""
        original = backup.with_name(backup.name[: -len(BACKUP_SUFFIX)])
        try:
            if original.exists():
                backup.unlink()
                logger.info("Removed stale backup %s", backup)
                return False
            # Artifacts only appear after verification, so one at least as
            # new as the backup means the update got past its final rename.
            backup_mtime = backup.stat().st_mtime_ns
            newer = [
                artifact
                for artifact in self._layout.iter_artifacts(plugin_id)
                if artifact.stat().st_mtime_ns >= backup_mtime
            ]
            if newer:
                backup.unlink()
                logger.warning(
                    "Completed interrupted update of %s to %s, removed backup %s",
                    plugin_id,
                    newer[-1].name,
                    backup,
                )
                return False
            os.replace(backup, original)
        except OSError as exc:
            raise PersistenceError(f"Cannot recover backup {backup}: {exc}") from exc
        logger.warning("Restored %s from an interrupted update", original)
        return True

    async def _install_version(self, plugin: Plugin, version: PluginVersion) -> Path:
        payload = await self._with_timeout(
            self._download_payload(plugin, version),
            f"Installing {plugin.id}@{version.version}",
        )
        # Nothing below awaits, so cancellation cannot interrupt the write.
        target = self._layout.artifact_path(plugin, version)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise PersistenceError(f"Cannot create {target.parent}: {exc}") from exc
        write_atomic(target, payload)
        logger.info("Installed plugin %s@%s to %s", plugin.id, version.version, target)
        return target

    async def _download_payload(self, plugin: Plugin, version: PluginVersion) -> bytes:
        verifier = ArtifactVerifier.from_pem(await self.fetch_public_key())
        self._layout.ensure_root()
        await self._health.require()
        started = time.monotonic()
        raw = await self._remote.get_bytes("plugin", plugin.id, "version", version.hash, "download")
        if self._metrics is not None:
            self._metrics.observe_download(time.monotonic() - started)
        try:
            wrapped = self._decode(raw)
        except (ValueError, TypeError) as exc:
            raise IntegrityError(f"Cannot decode artifact for {plugin.id}@{version.version}") from exc
        payload = verifier.recover(wrapped)
        logger.info("Verified artifact for %s@%s", plugin.id, version.version)
        return payload

    async def _update_locked(self, plugin: UpdateablePlugin) -> Path:
        current = self._layout.artifact_path(plugin, plugin.installed_version)
        backup = self._layout.backup_path(current)
        target = self._layout.artifact_path(plugin, plugin.next_version)

        try:
            os.replace(current, backup)
        except OSError as exc:
            self._record_update("aborted")
            raise PersistenceError(f"Cannot back up {current}: {exc}") from exc

        try:
            await self._install_version(plugin, plugin.next_version)
        except BaseException as exc:
            self._rollback(plugin, current, backup, target, exc)
            raise

        self._record_update("committed")
        try:
            backup.unlink(missing_ok=True)
        except OSError as exc:
            # The new version is in place; recover_interrupted_updates() removes the leftover.
            logger.warning("Updated %s but could not remove backup %s: %s", plugin.id, backup, exc)
        logger.info(
            "Updated plugin %s from %s to %s",
            plugin.id,
            plugin.installed_version.version,
            plugin.next_version.version,
        )
        return target

    def _rollback(
        self,
        plugin: UpdateablePlugin,
        current: Path,
        backup: Path,
        target: Path,
        error: BaseException,
    ) -> None:
        try:
            if target != current:
                target.unlink(missing_ok=True)
            os.replace(backup, current)
        except OSError as restore_exc:
            self._record_update("rollback_failed")
            logger.error("Rollback of %s failed, plugin state is undefined: %s", plugin.id, restore_exc)
            raise RollbackError(
                f"Update of {plugin.id} failed and {current} could not be restored",
                original_error=error,
                restore_error=restore_exc,
            ) from error
        self._record_update("rolled_back")
        logger.warning(
            "Update of %s to %s failed, restored %s: %s",
            plugin.id,
            plugin.next_version.version,
            plugin.installed_version.version,
            error,
        )

    async def _with_timeout(self, awaitable: Awaitable[T], description: str) -> T:
        if self.operation_timeout_seconds is None:
            return await awaitable
        try:
            return await asyncio.wait_for(awaitable, timeout=self.operation_timeout_seconds)
        except asyncio.TimeoutError as exc:
            raise OperationTimeoutError(
                f"{description} exceeded {self.operation_timeout_seconds}s timeout"
            ) from exc

    def _lock_for(self, plugin_id: str) -> asyncio.Lock:
        if plugin_id not in self._locks:
            self._locks[plugin_id] = asyncio.Lock()
        return self._locks[plugin_id]

    def _record_install(self, result: str) -> None:
        if self._metrics is not None:
            self._metrics.record_install(result)

    def _record_update(self, result: str) -> None:
        if self._metrics is not None:
            self._metrics.record_update(result)
