"""
Plugin Data Model

Schemas for catalog entries as served by the plugin server and as persisted
in the local manifest. Three distinct variants describe how much is known
about a plugin:

* ``Plugin``: a catalog entry.
* ``InstalledPlugin``: a catalog entry with an artifact present on disk.
* ``UpdateablePlugin``: an installed plugin with a newer catalog version.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from pluginkeeper.versioning import SemVer, parse_version


class PluginVersion(BaseModel):
    """One published version of a plugin.

    Immutable once fetched; identified by the owning plugin id and ``hash``.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    version: str = Field(..., description="Semantic version string")
    hash: str = Field(..., description="Opaque content hash addressing the artifact")
    file_identifier: Optional[str] = Field(None, alias="fileIdentifier")
    publish_date: Optional[datetime] = Field(None, alias="publishDate")
    downloads: int = Field(0, ge=0)
    validated: bool = Field(False, description="Approved for distribution by the server")

    @field_validator("version")
    @classmethod
    def validate_version(cls, v: str) -> str:
        parse_version(v)
        return v

    @field_validator("hash")
    @classmethod
    def validate_hash(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("Version hash must not be empty")
        if "/" in v or "\\" in v or v in (".", ".."):
            raise ValueError(f"Version hash is not a valid file name: {v!r}")
        return v

    @property
    def semver(self) -> SemVer:
        return parse_version(self.version)


class Plugin(BaseModel):
    """A plugin as listed in the catalog.

    After normalization ``versions`` is sorted ascending by semantic version
    and holds validated versions only.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str = Field(..., description="Stable identifier, unique across the catalog")
    author: str = ""
    name: str = ""
    versions: list[PluginVersion] = Field(default_factory=list)

    @field_validator("id")
    @classmethod
    def validate_id(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("Plugin id must not be empty")
        if "/" in v or "\\" in v or v in (".", ".."):
            raise ValueError(f"Plugin id is not a valid directory name: {v!r}")
        return v

    @property
    def latest_version(self) -> Optional[PluginVersion]:
        """Return the last (highest, once normalized) version, if any."""
        return self.versions[-1] if self.versions else None

    def to_json(self) -> dict:  # type: ignore[type-arg]
        """Serialize with the server's camelCase field names."""
        return self.model_dump(mode="json", by_alias=True)


class InstalledPlugin(Plugin):
    """A plugin whose ``installed_version`` artifact was found on disk."""

    installed_version: PluginVersion = Field(..., alias="installedVersion")

    @model_validator(mode="after")
    def _installed_version_is_listed(self) -> "InstalledPlugin":
        if self.installed_version not in self.versions:
            raise ValueError(
                f"Installed version {self.installed_version.version} is not listed for {self.id}"
            )
        return self


class UpdateablePlugin(InstalledPlugin):
    """An installed plugin with a strictly newer ``next_version`` available."""

    next_version: PluginVersion = Field(..., alias="nextVersion")

    @model_validator(mode="after")
    def _next_version_is_newer(self) -> "UpdateablePlugin":
        if not self.next_version.semver > self.installed_version.semver:
            raise ValueError(
                f"Next version {self.next_version.version} is not newer than "
                f"{self.installed_version.version}"
            )
        return self
