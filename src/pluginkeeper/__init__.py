"""
pluginkeeper

Discover, install, verify, and update downloadable plugins from a remote
plugin server, with crash-safe rollback of failed updates.
"""

__version__ = "0.1.0"

from pluginkeeper.catalog import CatalogResolver, normalize_catalog
from pluginkeeper.config import KeeperConfig, load_config
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
from pluginkeeper.health import HealthGate
from pluginkeeper.installer import PluginInstaller, load_zip_plugin
from pluginkeeper.keeper import PluginKeeper
from pluginkeeper.layout import PluginLayout
from pluginkeeper.manifest import (
    MANIFEST_FILENAME,
    FileManifestStore,
    ManifestStore,
    MemoryManifestStore,
)
from pluginkeeper.metrics import KeeperMetrics
from pluginkeeper.models import InstalledPlugin, Plugin, PluginVersion, UpdateablePlugin
from pluginkeeper.remote import RemoteClient
from pluginkeeper.scanner import InstalledScanner
from pluginkeeper.signing import ArtifactVerifier, passthrough_decoder
from pluginkeeper.updates import UpdateResolver, resolve_updates, select_next_version
from pluginkeeper.versioning import SemVer, compare_versions, parse_version

__all__ = [
    "__version__",
    # Facade
    "PluginKeeper",
    "KeeperConfig",
    "load_config",
    # Components
    "RemoteClient",
    "HealthGate",
    "CatalogResolver",
    "normalize_catalog",
    "InstalledScanner",
    "UpdateResolver",
    "resolve_updates",
    "select_next_version",
    "PluginInstaller",
    "load_zip_plugin",
    "PluginLayout",
    "ArtifactVerifier",
    "passthrough_decoder",
    "KeeperMetrics",
    # Storage
    "MANIFEST_FILENAME",
    "ManifestStore",
    "FileManifestStore",
    "MemoryManifestStore",
    # Models
    "Plugin",
    "PluginVersion",
    "InstalledPlugin",
    "UpdateablePlugin",
    "SemVer",
    "parse_version",
    "compare_versions",
    # Errors
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
