from __future__ import annotations

import re
from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class ReleaseAsset:
    """A file attached to a remote release. ``name`` is unique per release."""

    name: str
    download_url: str


@dataclass(frozen=True, slots=True)
class Release:
    """Snapshot of a remote release.

    The host owns the release; this value is only valid as of the request
    that produced it.
    """

    name: str
    url: str
    upload_url: str  # template, see normalize_upload_url
    draft: bool
    assets: tuple[ReleaseAsset, ...] = ()

    @property
    def asset_names(self) -> frozenset[str]:
        return frozenset(a.name for a in self.assets)


@dataclass(frozen=True, slots=True)
class ReleaseTarget:
    """Where to send uploads for a resolved release."""

    url: str
    upload_url: str


@dataclass(frozen=True, slots=True)
class FileDigestEntry:
    algorithm: str
    path: str
    hex_digest: str


@dataclass(frozen=True, slots=True)
class AssetCategory:
    description: str
    content_type: str | None


_PLACEHOLDER = re.compile(r"\{[^}]*\}")


def normalize_upload_url(template: str) -> str:
    """Strip URI-template placeholders such as ``{?name,label}``."""
    return _PLACEHOLDER.sub("", template)


def bare_version(version: str) -> str:
    """``v2.5.0`` and ``2.5.0`` both name version ``2.5.0`` in file names."""
    return version[1:] if version.startswith("v") else version
