"""
Plugin Keeper

Facade wiring the remote client, health gate, catalog, scanner, update
resolver and installer into the object a host application talks to.

Usage:
    config = KeeperConfig(base_url="https://plugins.example.com", root_dir=user_dir / "plugins")
    async with PluginKeeper.from_config(config) as keeper:
        for plugin in await keeper.resolve_updates():
            await keeper.update(plugin)
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Optional

import httpx

from pluginkeeper.catalog import CatalogResolver
from pluginkeeper.config import KeeperConfig
from pluginkeeper.health import HealthGate
from pluginkeeper.installer import PluginInstaller, PluginLoader, load_zip_plugin
from pluginkeeper.layout import PluginLayout
from pluginkeeper.manifest import FileManifestStore, ManifestStore
from pluginkeeper.metrics import KeeperMetrics
from pluginkeeper.models import InstalledPlugin, Plugin, UpdateablePlugin
from pluginkeeper.remote import RemoteClient
from pluginkeeper.scanner import InstalledScanner
from pluginkeeper.signing import ArtifactDecoder, passthrough_decoder
from pluginkeeper.updates import UpdateResolver


class PluginKeeper:
    """Manage downloadable plugins for a host application.

    Installed state is recomputed from disk on every call; nothing about it
    is cached between calls.
    """

    def __init__(
        self,
        config: KeeperConfig,
        remote: RemoteClient,
        *,
        manifest_store: Optional[ManifestStore] = None,
        artifact_decoder: ArtifactDecoder = passthrough_decoder,
        loader: PluginLoader = load_zip_plugin,
        metrics: Optional[KeeperMetrics] = None,
    ) -> None:
        self.config = config
        self.metrics = metrics if metrics is not None else KeeperMetrics(config.metrics_prefix)
        self.layout = PluginLayout(config.root_dir, config.artifact_extension)
        self.remote = remote
        self.health = HealthGate(remote, self.metrics)
        store = manifest_store if manifest_store is not None else FileManifestStore(config.manifest_path)
        self.catalog = CatalogResolver(
            remote,
            self.health,
            store,
            metrics=self.metrics,
            strict_persistence=config.strict_manifest_writes,
        )
        self.scanner = InstalledScanner(self.layout, store)
        self.updates = UpdateResolver(self.catalog, self.scanner)
        self.installer = PluginInstaller(
            self.layout,
            remote,
            self.health,
            artifact_decoder=artifact_decoder,
            loader=loader,
            operation_timeout_seconds=config.operation_timeout_seconds,
            metrics=self.metrics,
        )

    @classmethod
    def from_config(
        cls,
        config: KeeperConfig,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        **kwargs: Any,
    ) -> "PluginKeeper":
        """Build a keeper with its own HTTP client.

        Args:
            config: Keeper settings.
            transport: Optional httpx transport for the HTTP client.
            **kwargs: Forwarded to the constructor (``manifest_store``,
                ``artifact_decoder``, ``loader``, ``metrics``).
        """
        remote = RemoteClient(
            config.base_url,
            timeout_seconds=config.request_timeout_seconds,
            transport=transport,
        )
        return cls(config, remote, **kwargs)

    @property
    def root_dir(self) -> Path:
        return self.layout.root_dir

    async def check_health(self) -> bool:
        return await self.health.check()

    async def get_public_key(self) -> str:
        return await self.installer.fetch_public_key()

    async def fetch_catalog(self) -> list[Plugin]:
        return await self.catalog.fetch()

    async def scan_installed(self) -> list[InstalledPlugin]:
        return self.scanner.scan()

    async def resolve_updates(self) -> list[UpdateablePlugin]:
        return await self.updates.resolve()

    async def install(self, plugin: Plugin) -> Path:
        return await self.installer.install(plugin)

    async def update(self, plugin: UpdateablePlugin) -> Path:
        return await self.installer.update(plugin)

    async def load(self, plugin: InstalledPlugin) -> Any:
        return await self.installer.load(plugin)

    async def recover_interrupted_updates(self) -> list[Path]:
        return await self.installer.recover_interrupted_updates()

    async def aclose(self) -> None:
        await self.remote.aclose()

    async def __aenter__(self) -> "PluginKeeper":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()
