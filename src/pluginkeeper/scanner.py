"""
Installed-State Scanner

Reconstructs which plugin versions are installed from filesystem evidence.
The manifest only supplies the candidate (plugin, version) pairs; a version
counts as installed only if its artifact file exists right now.
"""

from __future__ import annotations

import logging

from pluginkeeper.exceptions import PersistenceError
from pluginkeeper.layout import PluginLayout
from pluginkeeper.manifest import ManifestStore
from pluginkeeper.models import InstalledPlugin, Plugin

logger = logging.getLogger(__name__)


class InstalledScanner:
    """Scan the plugin root for installed artifacts.

    Args:
        layout: Canonical path resolution.
        store: Manifest holding the last known catalog.
    """

    def __init__(self, layout: PluginLayout, store: ManifestStore) -> None:
        self._layout = layout
        self._store = store

    def scan(self) -> list[InstalledPlugin]:
        """Return every manifest plugin with at least one artifact on disk.

        For each plugin the highest version whose artifact exists becomes
        ``installed_version``. A missing or unreadable manifest is treated as
        an empty catalog.
        """
        self._layout.ensure_root()
        installed: list[InstalledPlugin] = []
        for plugin in self._load_manifest():
            if not self._layout.plugin_dir(plugin.id).is_dir():
                continue
            latest = None
            # Versions are ascending, so the last hit is the highest.
            for version in plugin.versions:
                if self._layout.artifact_path(plugin, version).is_file():
                    latest = version
            if latest is None:
                continue
            installed.append(
                InstalledPlugin(**dict(plugin), installed_version=latest)
            )
        logger.debug("Found %d installed plugins", len(installed))
        return installed

    def _load_manifest(self) -> list[Plugin]:
        try:
            plugins = self._store.load()
        except PersistenceError as exc:
            logger.warning("Ignoring unreadable manifest: %s", exc)
            return []
        if plugins is None:
            logger.debug("No manifest yet; nothing is installed")
            return []
        return plugins
