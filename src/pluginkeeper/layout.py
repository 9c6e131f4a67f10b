"""On-disk layout of installed plugin artifacts.

Artifacts live at ``{root}/{plugin_id}/{version_hash}.{extension}``; one file
per (plugin, version).
"""

from __future__ import annotations

import os
import tempfile
from pathlib import Path
from typing import Optional

from pluginkeeper.exceptions import PersistenceError
from pluginkeeper.models import Plugin, PluginVersion

BACKUP_SUFFIX = ".bak"


class PluginLayout:
    """Resolve canonical paths under the plugin root directory.

    Args:
        root_dir: Directory holding the manifest and one subdirectory per plugin.
        artifact_extension: File extension of artifacts, without the dot.
    """

    def __init__(self, root_dir: Path, artifact_extension: str = "zip") -> None:
        self.root_dir = Path(root_dir)
        self.artifact_extension = artifact_extension.lstrip(".")

    def plugin_dir(self, plugin_id: str) -> Path:
        return self.root_dir / plugin_id

    def artifact_path(self, plugin: Plugin, version: PluginVersion) -> Path:
        return self.plugin_dir(plugin.id) / f"{version.hash}.{self.artifact_extension}"

    def backup_path(self, artifact: Path) -> Path:
        return artifact.with_name(artifact.name + BACKUP_SUFFIX)

    def iter_backups(self, plugin_id: Optional[str] = None) -> list[Path]:
        """Return update backups left under the root directory.

        Args:
            plugin_id: Only look in this plugin's directory.
        """
        pattern = f"*.{self.artifact_extension}{BACKUP_SUFFIX}"
        if plugin_id is not None:
            directory = self.plugin_dir(plugin_id)
            return sorted(directory.glob(pattern)) if directory.is_dir() else []
        if not self.root_dir.is_dir():
            return []
        return sorted(self.root_dir.glob(f"*/{pattern}"))

    def iter_artifacts(self, plugin_id: str) -> list[Path]:
        """Return the artifacts present in one plugin's directory."""
        directory = self.plugin_dir(plugin_id)
        if not directory.is_dir():
            return []
        return sorted(directory.glob(f"*.{self.artifact_extension}"))

    def ensure_root(self) -> Path:
        """Create the root directory if it does not exist yet."""
        try:
            self.root_dir.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise PersistenceError(
                f"Cannot create plugin directory {self.root_dir}: {exc}"
            ) from exc
        return self.root_dir


def write_atomic(path: Path, data: bytes) -> Path:
    """Write *data* to *path* through a temporary sibling file and a rename.

    Readers observe either the previous content or the complete new content,
    never a partially written file. The temporary file is removed on failure.

    Raises:
        PersistenceError: If writing or renaming fails.
    """
    tmp_name: Optional[str] = None
    try:
        with tempfile.NamedTemporaryFile(
            dir=path.parent, prefix=f"{path.name}.tmp-", delete=False
        ) as tmp:
            tmp_name = tmp.name
            tmp.write(data)
            tmp.flush()
            os.fsync(tmp.fileno())
        os.replace(tmp_name, path)
    except OSError as exc:
        if tmp_name is not None:
            Path(tmp_name).unlink(missing_ok=True)
        raise PersistenceError(f"Failed to write {path}: {exc}") from exc
    return path
