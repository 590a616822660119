"""Local release files eligible for upload."""

from __future__ import annotations

import re
from collections.abc import Sequence
from pathlib import Path

from relpub.core.result import Err, Ok, Result
from relpub.release.errors import ReleaseError
from relpub.release.model import bare_version

__all__ = ["STAGING_DIR", "find_candidates", "missing_required"]

# Files staged under this directory name are never uploaded.
STAGING_DIR = "assets"


def _matches(name: str, version: str) -> bool:
    # v2.5.1 must not match v2.5.10.
    return re.search(rf"v{re.escape(bare_version(version))}(?![0-9])", name) is not None


def find_candidates(release_dir: Path, version: str) -> Result[list[Path], ReleaseError]:
    """Find files tagged with ``version`` under ``release_dir``, sorted by name.

    The unversioned manifests (``sha256sums``, ``hashes`` and their
    signatures) are never candidates: whatever sits in the directory may
    belong to an earlier release. A finalize pass uploads the ones it wrote.

    A missing directory yields no candidates. Two files sharing a basename
    are rejected since asset names must be unique within a release.
    """
    if not release_dir.is_dir():
        return Ok([])

    by_name: dict[str, Path] = {}
    for path in sorted(release_dir.rglob("*")):
        rel = path.relative_to(release_dir)
        if STAGING_DIR in rel.parts[:-1]:
            continue
        if not path.is_file() or not _matches(path.name, version):
            continue
        if path.name in by_name:
            return Err(
                ReleaseError(
                    kind="invalid_config",
                    message=f"duplicate asset name for {version}: {path.name}",
                    hint=f"{by_name[path.name]} and {path}",
                )
            )
        by_name[path.name] = path

    return Ok([by_name[n] for n in sorted(by_name, key=lambda n: n.encode("utf-8"))])


def missing_required(
    release_dir: Path,
    templates: Sequence[str],
    *,
    name: str,
    version: str,
) -> list[str]:
    """Required filenames (rendered from templates) absent from ``release_dir``."""
    missing: list[str] = []
    for template in templates:
        filename = template.format(name=name, version=bare_version(version))
        if not (release_dir / filename).is_file():
            missing.append(filename)
    return missing
