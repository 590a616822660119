"""Download a release and check it against its signed manifests.

Verification is fail-closed. A missing manifest, a bad signature, an
unusable signing tool, or a single mismatching digest fails the run. The
only tolerated gap is a digest algorithm this environment cannot compute.
Its check is skipped and reported as skipped, never as passed.
"""

from __future__ import annotations

from collections.abc import Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path
from typing import Literal

from relpub.core.algorithms import PRIMARY_ALGORITHM, lookup_algorithm
from relpub.core.result import Err, Ok, Result
from relpub.hosting.host import ReleaseHost
from relpub.output.console import ConsoleProtocol
from relpub.release.errors import ReleaseError
from relpub.release.model import FileDigestEntry, ReleaseAsset
from relpub.services.release.digests import DEFAULT_CHUNK_SIZE, digest_file
from relpub.services.release.manifest import (
    CHECKSUMS_NAME,
    MANIFEST_NAME,
    SIGNED_SUFFIX,
    parse_checksums,
    parse_manifest,
)
from relpub.services.release.resolver import find_release
from relpub.services.release.signing import Capability, Signer, probe_algorithm

__all__ = [
    "AlgorithmCheck",
    "VerifyReport",
    "check_entries",
    "download_assets",
    "verify_release",
]

PRIMARY_SIGNED = CHECKSUMS_NAME + SIGNED_SUFFIX
SECONDARY_SIGNED = MANIFEST_NAME + SIGNED_SUFFIX


@dataclass(frozen=True, slots=True)
class AlgorithmCheck:
    algorithm: str
    status: Literal["verified", "skipped"]
    files: int


@dataclass(frozen=True, slots=True)
class VerifyReport:
    version: str
    downloaded: tuple[str, ...]
    checks: tuple[AlgorithmCheck, ...]

    @property
    def skipped(self) -> tuple[str, ...]:
        return tuple(c.algorithm for c in self.checks if c.status == "skipped")

    @property
    def verified(self) -> tuple[str, ...]:
        return tuple(c.algorithm for c in self.checks if c.status == "verified")


def _safe_name(name: str) -> bool:
    return name not in ("", ".", "..") and "/" not in name and "\\" not in name


def download_assets(
    host: ReleaseHost,
    assets: Sequence[ReleaseAsset],
    dest: Path,
    *,
    workers: int = 1,
) -> Result[list[Path], ReleaseError]:
    """Download every asset into ``dest`` (and nowhere else)."""
    for asset in assets:
        if not _safe_name(asset.name):
            return Err(
                ReleaseError(
                    kind="remote_api",
                    message=f"refusing to download asset with unsafe name: {asset.name!r}",
                )
            )

    dest.mkdir(parents=True, exist_ok=True)

    def one(asset: ReleaseAsset) -> Result[Path, ReleaseError]:
        return host.download_asset(asset, dest / asset.name)

    with ThreadPoolExecutor(max_workers=max(1, workers)) as ex:
        results = list(ex.map(one, assets))

    out: list[Path] = []
    for result in results:
        if isinstance(result, Err):
            return result
        out.append(result.value)
    return Ok(out)


def check_entries(
    workdir: Path,
    entries: Sequence[FileDigestEntry],
    *,
    available: frozenset[str],
    source: str,
    version: str,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
) -> Result[int, ReleaseError]:
    """Recompute each entry's digest from the downloaded file and compare.

    Returns the number of files checked.
    """
    for entry in entries:
        algorithm = lookup_algorithm(entry.algorithm)
        if algorithm is None:
            return Err(
                ReleaseError(
                    kind="integrity",
                    message=f"{source} uses unknown algorithm {entry.algorithm} ({version})",
                )
            )
        if entry.path not in available:
            return Err(
                ReleaseError(
                    kind="integrity",
                    message=f"{source} lists {entry.path}, which is not attached to {version}",
                )
            )
        if len(entry.hex_digest) != algorithm.hex_length:
            return Err(
                ReleaseError(
                    kind="integrity",
                    message=(
                        f"{source}: {entry.algorithm} digest for {entry.path} has "
                        f"{len(entry.hex_digest)} hex digits, expected {algorithm.hex_length}"
                    ),
                )
            )

        computed = digest_file(workdir / entry.path, [algorithm], chunk_size=chunk_size)
        if isinstance(computed, Err):
            return Err(
                ReleaseError(
                    kind="io",
                    message=f"cannot hash downloaded {entry.path} ({version})",
                    hint=str(computed.error),
                )
            )
        actual = computed.value[0].hex_digest
        if actual != entry.hex_digest:
            return Err(
                ReleaseError(
                    kind="integrity",
                    message=f"{entry.algorithm} mismatch for {entry.path} ({version}, {source})",
                    hint=f"expected {entry.hex_digest}, got {actual}",
                )
            )
    return Ok(len(entries))


def _group_by_algorithm(
    entries: Sequence[FileDigestEntry],
) -> list[tuple[str, list[FileDigestEntry]]]:
    groups: dict[str, list[FileDigestEntry]] = {}
    for entry in entries:
        groups.setdefault(entry.algorithm, []).append(entry)
    return list(groups.items())


def _require_asset(names: frozenset[str], name: str, version: str) -> Result[None, ReleaseError]:
    if name not in names:
        return Err(
            ReleaseError(
                kind="integrity",
                message=f"release {version} has no {name}",
                hint="run with --finalize to produce signed manifests",
            )
        )
    return Ok(None)


def verify_release(
    host: ReleaseHost,
    version: str,
    *,
    workdir: Path,
    signer: Signer,
    console: ConsoleProtocol,
    workers: int = 1,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
) -> Result[VerifyReport, ReleaseError]:
    """Download all assets of ``version`` into ``workdir`` and verify them.

    Args:
        host: Remote release API.
        version: Release name.
        workdir: Empty directory owned by this run.
        signer: Signature verifier for the signed manifests.
        console: Progress output.
        workers: Parallel downloads.
        chunk_size: Read size for hashing.
    """
    capability = signer.probe()
    if capability is not Capability.SUPPORTED:
        return Err(
            ReleaseError(
                kind="tool_missing",
                message=f"signature verification unavailable ({capability.name.lower()})",
                hint="install GnuPG and import the release signing key",
            )
        )

    found = find_release(host, version)
    if isinstance(found, Err):
        return found
    if found.value is None:
        return Err(ReleaseError(kind="no_such_release", message=f"no such release: {version}"))

    listed = host.list_assets(found.value)
    if isinstance(listed, Err):
        return listed
    assets = listed.value
    names = frozenset(a.name for a in assets)

    for required in (PRIMARY_SIGNED, SECONDARY_SIGNED):
        present = _require_asset(names, required, version)
        if isinstance(present, Err):
            return present

    console.info(f"downloading {len(assets)} assets of {version}")
    downloaded = download_assets(host, assets, workdir, workers=workers)
    if isinstance(downloaded, Err):
        return downloaded

    checks: list[AlgorithmCheck] = []

    # Primary manifest: mandatory, single algorithm.
    plaintext = signer.verify(workdir / PRIMARY_SIGNED)
    if isinstance(plaintext, Err):
        return plaintext
    primary = parse_checksums(plaintext.value, algorithm=PRIMARY_ALGORITHM, source=PRIMARY_SIGNED)
    if isinstance(primary, Err):
        return primary
    if not primary.value:
        return Err(
            ReleaseError(kind="integrity", message=f"{PRIMARY_SIGNED} lists no files ({version})")
        )
    counted = check_entries(
        workdir,
        primary.value,
        available=names,
        source=PRIMARY_SIGNED,
        version=version,
        chunk_size=chunk_size,
    )
    if isinstance(counted, Err):
        return counted
    console.success(f"{PRIMARY_SIGNED}: {counted.value} files match")
    checks.append(AlgorithmCheck(PRIMARY_ALGORITHM, "verified", counted.value))

    # Secondary manifest: every algorithm this environment can compute.
    plaintext = signer.verify(workdir / SECONDARY_SIGNED)
    if isinstance(plaintext, Err):
        return plaintext
    secondary = parse_manifest(plaintext.value, source=SECONDARY_SIGNED)
    if isinstance(secondary, Err):
        return secondary

    for algorithm, entries in _group_by_algorithm(secondary.value):
        match probe_algorithm(algorithm):
            case Capability.UNSUPPORTED:
                console.skipped(f"{SECONDARY_SIGNED}: {algorithm} (not available here)")
                checks.append(AlgorithmCheck(algorithm, "skipped", 0))
                continue
            case Capability.ERROR:
                return Err(
                    ReleaseError(
                        kind="tool_missing",
                        message=f"{algorithm} implementation is broken; cannot verify {version}",
                    )
                )
            case Capability.SUPPORTED:
                pass

        counted = check_entries(
            workdir,
            entries,
            available=names,
            source=SECONDARY_SIGNED,
            version=version,
            chunk_size=chunk_size,
        )
        if isinstance(counted, Err):
            return counted
        console.success(f"{SECONDARY_SIGNED}: {algorithm} {counted.value} files match")
        checks.append(AlgorithmCheck(algorithm, "verified", counted.value))

    return Ok(
        VerifyReport(
            version=version,
            downloaded=tuple(sorted(p.name for p in downloaded.value)),
            checks=tuple(checks),
        )
    )
