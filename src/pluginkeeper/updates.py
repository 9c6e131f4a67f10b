"""
Update Resolution

Diffs the installed state against the live catalog. For each installed
plugin the upgrade target is the highest catalog version strictly above the
installed one.
"""

from __future__ import annotations

import logging
from typing import Optional, Sequence

from pluginkeeper.catalog import CatalogResolver
from pluginkeeper.models import InstalledPlugin, Plugin, PluginVersion, UpdateablePlugin
from pluginkeeper.scanner import InstalledScanner

logger = logging.getLogger(__name__)


def select_next_version(
    versions: Sequence[PluginVersion],
    installed: PluginVersion,
) -> Optional[PluginVersion]:
    """Pick the highest version strictly newer than *installed*.

    *versions* must be sorted ascending. They are walked from the top down
    and the first newer one is returned, which is the highest available.

    Returns:
        The upgrade target, or ``None`` if nothing newer exists.
    """
    current = installed.semver
    for candidate in reversed(versions):
        if candidate.semver > current:
            return candidate
    return None


def resolve_updates(
    catalog: Sequence[Plugin],
    installed: Sequence[InstalledPlugin],
) -> list[UpdateablePlugin]:
    """Return an ``UpdateablePlugin`` for each installed plugin with a newer version.

    Installed plugins missing from the live catalog are skipped.
    """
    by_id = {plugin.id: plugin for plugin in catalog}
    updates: list[UpdateablePlugin] = []
    for plugin in installed:
        upstream = by_id.get(plugin.id)
        if upstream is None:
            continue
        target = select_next_version(upstream.versions, plugin.installed_version)
        if target is None:
            continue
        logger.info(
            "Update available for %s: %s -> %s",
            plugin.id,
            plugin.installed_version.version,
            target.version,
        )
        updates.append(UpdateablePlugin(**dict(plugin), next_version=target))
    return updates


class UpdateResolver:
    """Compute available updates from a fresh fetch and a disk scan.

    Args:
        catalog: Resolver used for the live catalog fetch.
        scanner: Scanner reporting what is installed.
    """

    def __init__(self, catalog: CatalogResolver, scanner: InstalledScanner) -> None:
        self._catalog = catalog
        self._scanner = scanner

    async def resolve(self) -> list[UpdateablePlugin]:
        """Fetch the catalog, scan the disk, and diff the two.

        The scan runs after the fetch so it sees the manifest the fetch just
        wrote.
        """
        catalog = await self._catalog.fetch()
        installed = self._scanner.scan()
        return resolve_updates(catalog, installed)
