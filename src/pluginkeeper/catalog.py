"""
Plugin Catalog

Fetches the plugin list from the server, normalizes it (semver-sorted,
validated versions only, empty plugins dropped) and persists the result as
the local manifest.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from pydantic import ValidationError

from pluginkeeper.exceptions import PersistenceError, RemoteError
from pluginkeeper.health import HealthGate
from pluginkeeper.manifest import ManifestStore
from pluginkeeper.metrics import KeeperMetrics
from pluginkeeper.models import Plugin
from pluginkeeper.remote import RemoteClient

logger = logging.getLogger(__name__)


def normalize_catalog(raw: Any) -> list[Plugin]:
    """Turn a raw catalog response into normalized plugins.

    Each plugin's versions are sorted ascending by semantic version and
    filtered to validated ones; plugins left without versions are dropped.
    Sorting happens before filtering so the relative order of validated
    versions never depends on where unvalidated ones sat.

    Args:
        raw: Decoded JSON body of ``GET rest/plugin``.

    Returns:
        The normalized catalog, in server order.

    Raises:
        RemoteError: If *raw* is not a list of well-formed plugin objects.
    """
    if not isinstance(raw, list):
        raise RemoteError(f"Malformed catalog: expected a list, got {type(raw).__name__}")
    plugins: list[Plugin] = []
    for entry in raw:
        try:
            plugin = Plugin.model_validate(entry)
        except ValidationError as exc:
            raise RemoteError(f"Malformed catalog entry: {exc}") from exc
        ordered = sorted(plugin.versions, key=lambda v: v.semver)
        validated = [v for v in ordered if v.validated]
        if not validated:
            logger.debug("Dropping plugin %s: no validated versions", plugin.id)
            continue
        plugins.append(plugin.model_copy(update={"versions": validated}))
    return plugins


class CatalogResolver:
    """Fetch, normalize and snapshot the remote plugin catalog.

    Args:
        remote: Client for the plugin server.
        health: Gate checked before the catalog request.
        store: Where the normalized catalog is persisted.
        metrics: Optional metrics sink.
        strict_persistence: Raise ``PersistenceError`` when the manifest
            cannot be written instead of logging it and returning the catalog.
    """

    def __init__(
        self,
        remote: RemoteClient,
        health: HealthGate,
        store: ManifestStore,
        *,
        metrics: Optional[KeeperMetrics] = None,
        strict_persistence: bool = False,
    ) -> None:
        self._remote = remote
        self._health = health
        self._store = store
        self._metrics = metrics
        self._strict_persistence = strict_persistence

    async def fetch(self) -> list[Plugin]:
        """Fetch the live catalog and overwrite the manifest with it.

        Raises:
            ServerUnavailableError: If the health gate fails.
            RemoteError: If the catalog request fails or is malformed.
            PersistenceError: Only with ``strict_persistence`` enabled.
        """
        await self._health.require()
        try:
            plugins = normalize_catalog(await self._remote.get_json("plugin"))
        except RemoteError:
            self._record("error")
            raise

        try:
            self._store.save(plugins)
        except PersistenceError as exc:
            self._record("not_persisted")
            if self._strict_persistence:
                raise
            logger.warning("Catalog fetched but manifest not saved: %s", exc)
            return plugins

        self._record("ok")
        logger.info("Fetched catalog with %d plugins", len(plugins))
        return plugins

    def _record(self, result: str) -> None:
        if self._metrics is not None:
            self._metrics.record_catalog_fetch(result)
