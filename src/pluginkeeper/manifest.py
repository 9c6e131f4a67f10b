"""
Plugin Manifest Storage

The manifest is the locally persisted snapshot of the last fetched,
normalized catalog. It only tells the scanner which plugins and versions to
look for on disk; it never says what is installed.

Two backends implement ``ManifestStore``:

* ``FileManifestStore``: a JSON file written with write-then-rename.
* ``MemoryManifestStore``: an in-process copy, for tests and embedding.
"""

from __future__ import annotations

import abc
import json
import logging
from pathlib import Path
from typing import Optional

from pydantic import TypeAdapter, ValidationError

from pluginkeeper.exceptions import PersistenceError
from pluginkeeper.layout import write_atomic
from pluginkeeper.models import Plugin

logger = logging.getLogger(__name__)

MANIFEST_FILENAME = "manifest.json"

_catalog_adapter = TypeAdapter(list[Plugin])


class ManifestStore(abc.ABC):
    """Read and write the normalized catalog snapshot."""

    @abc.abstractmethod
    def load(self) -> Optional[list[Plugin]]:
        """Return the stored catalog, or ``None`` if nothing was stored yet.

        Raises:
            PersistenceError: If a stored manifest exists but cannot be read.
        """

    @abc.abstractmethod
    def save(self, plugins: list[Plugin]) -> None:
        """Replace the stored catalog with *plugins*.

        Raises:
            PersistenceError: If the manifest cannot be written.
        """


class FileManifestStore(ManifestStore):
    """Manifest kept as a JSON array in a single file.

    Args:
        path: Location of the manifest file.

    Example:
        >>> store = FileManifestStore(Path("~/.plugins/manifest.json"))
        >>> store.save(catalog)
        >>> store.load() == catalog
        True
    """

    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    def load(self) -> Optional[list[Plugin]]:
        if not self.path.exists():
            return None
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
            return _catalog_adapter.validate_python(data)
        except (OSError, ValueError, ValidationError) as exc:
            raise PersistenceError(f"Failed to load manifest {self.path}: {exc}") from exc

    def save(self, plugins: list[Plugin]) -> None:
        payload = json.dumps([plugin.to_json() for plugin in plugins], indent=2)
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise PersistenceError(f"Cannot create {self.path.parent}: {exc}") from exc
        write_atomic(self.path, payload.encode("utf-8"))
        logger.debug("Saved manifest with %d plugins to %s", len(plugins), self.path)


class MemoryManifestStore(ManifestStore):
    """Manifest kept in memory. Data is lost when the process exits."""

    def __init__(self, plugins: Optional[list[Plugin]] = None) -> None:
        self._plugins = list(plugins) if plugins is not None else None

    def load(self) -> Optional[list[Plugin]]:
        return list(self._plugins) if self._plugins is not None else None

    def save(self, plugins: list[Plugin]) -> None:
        self._plugins = list(plugins)
