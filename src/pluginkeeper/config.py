"""
Keeper Configuration

Settings for a ``PluginKeeper``. The host application resolves its per-user
storage directory and passes it as ``root_dir``.

Example YAML file::

    base_url: https://plugins.example.com
    root_dir: /home/alice/.config/myapp/plugins
    artifact_extension: zip
    operation_timeout_seconds: 120
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from pluginkeeper.exceptions import PluginKeeperError
from pluginkeeper.manifest import MANIFEST_FILENAME

logger = logging.getLogger(__name__)


class KeeperConfig(BaseModel):
    """Configuration for the plugin lifecycle."""

    base_url: str = Field(..., description="Plugin server root URL")
    root_dir: Path = Field(..., description="Directory holding the manifest and artifacts")
    manifest_filename: str = Field(default=MANIFEST_FILENAME)
    artifact_extension: str = Field(default="zip", description="Artifact file extension")
    request_timeout_seconds: float = Field(default=30.0, gt=0, description="Per-request timeout")
    operation_timeout_seconds: Optional[float] = Field(
        default=300.0, gt=0, description="Timeout for a whole install or update; None disables it"
    )
    strict_manifest_writes: bool = Field(
        default=False, description="Fail catalog fetches when the manifest cannot be saved"
    )
    metrics_prefix: str = Field(default="pluginkeeper")

    @field_validator("base_url")
    @classmethod
    def validate_base_url(cls, v: str) -> str:
        v = v.strip().rstrip("/")
        if not v.startswith(("http://", "https://")):
            raise ValueError(f"base_url must be an http(s) URL: {v!r}")
        return v

    @field_validator("artifact_extension")
    @classmethod
    def validate_extension(cls, v: str) -> str:
        v = v.lstrip(".")
        if not v or "/" in v:
            raise ValueError(f"Invalid artifact extension: {v!r}")
        return v

    @field_validator("manifest_filename")
    @classmethod
    def validate_manifest_filename(cls, v: str) -> str:
        if not v or "/" in v or v in (".", ".."):
            raise ValueError(f"Invalid manifest filename: {v!r}")
        return v

    @property
    def manifest_path(self) -> Path:
        return self.root_dir / self.manifest_filename


def load_config(path: Path) -> KeeperConfig:
    """Load a ``KeeperConfig`` from a YAML file.

    Raises:
        PluginKeeperError: If the file is missing or invalid.
    """
    path = Path(path)
    if not path.exists():
        raise PluginKeeperError(f"Config not found: {path}")
    try:
        with open(path) as f:
            data = yaml.safe_load(f) or {}
        config = KeeperConfig(**data)
    except (OSError, yaml.YAMLError, ValidationError, TypeError) as exc:
        raise PluginKeeperError(f"Failed to load config {path}: {exc}") from exc
    logger.debug("Loaded config from %s", path)
    return config
