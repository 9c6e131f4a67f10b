"""Shared fixtures for the pluginkeeper test suite."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Callable, Optional

import pytest
from cryptography.hazmat.primitives.asymmetric import rsa

from plugin_server import BASE_URL, FakePluginServer
from pluginkeeper import KeeperConfig, KeeperMetrics, PluginKeeper


@pytest.fixture(scope="session")
def rsa_private_key() -> rsa.RSAPrivateKey:
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture()
def server(rsa_private_key: rsa.RSAPrivateKey) -> FakePluginServer:
    return FakePluginServer(rsa_private_key)


@pytest.fixture()
def plugin_root(tmp_path: Path) -> Path:
    return tmp_path / "plugins"


@pytest.fixture()
def make_keeper(server: FakePluginServer, plugin_root: Path) -> Callable[..., PluginKeeper]:
    def factory(config: Optional[KeeperConfig] = None, **kwargs: Any) -> PluginKeeper:
        config = config or KeeperConfig(base_url=BASE_URL, root_dir=plugin_root)
        kwargs.setdefault("metrics", KeeperMetrics())
        return PluginKeeper.from_config(config, transport=server.transport(), **kwargs)

    return factory


@pytest.fixture()
def keeper(make_keeper: Callable[..., PluginKeeper]) -> PluginKeeper:
    return make_keeper()
