"""End-to-end publish flow.

A normal run makes sure the draft release exists and uploads whatever
it is missing. A finalize run also hashes the release files, writes
and signs both manifests, replaces the release body, uploads the
manifests, and (unless skipped) downloads everything again to verify it.

All configuration checks happen before the first remote call. After
that, any failure aborts the run and leaves completed uploads in place.
Rerunning the same command converges.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

from relpub.core.algorithms import PRIMARY_ALGORITHM, DigestAlgorithm, lookup_algorithm
from relpub.core.config import Config
from relpub.core.result import Err, Ok, Result
from relpub.hosting.host import ReleaseHost
from relpub.output.console import ConsoleProtocol
from relpub.platform.files import atomic_write_text, scratch_dir
from relpub.release.errors import ReleaseError
from relpub.release.model import FileDigestEntry, ReleaseTarget
from relpub.services.release.body import render_body
from relpub.services.release.candidates import find_candidates, missing_required
from relpub.services.release.changelog import changelog_section
from relpub.services.release.digests import digest_files
from relpub.services.release.manifest import (
    CHECKSUMS_NAME,
    MANIFEST_NAME,
    format_checksums,
    format_manifest,
)
from relpub.services.release.reconcile import ReconcileReport, reconcile
from relpub.services.release.resolver import patch_release, resolve_release
from relpub.services.release.signing import Capability, Signer
from relpub.services.release.verify import VerifyReport, verify_release

__all__ = [
    "InspectHook",
    "PublishOptions",
    "PublishReport",
    "publish",
    "verify_only",
    "write_manifests",
]

# Called with the release directory before finalizing; False aborts.
InspectHook = Callable[[Path], bool]


@dataclass(frozen=True, slots=True)
class PublishOptions:
    version: str
    root: Path
    config: Config
    finalize: bool = False
    skip_verify: bool = False

    @property
    def release_dir(self) -> Path:
        return self.root / self.config.paths.releases

    @property
    def changelog_path(self) -> Path:
        return self.root / self.config.paths.changelog


@dataclass(frozen=True, slots=True)
class PublishReport:
    target: ReleaseTarget
    reconcile: ReconcileReport
    manifests: tuple[Path, ...] = ()
    verify: VerifyReport | None = None


def _hash_algorithms(config: Config) -> tuple[DigestAlgorithm, ...]:
    algorithms = config.digests.resolved()
    if any(a.name == PRIMARY_ALGORITHM for a in algorithms):
        return algorithms
    primary = lookup_algorithm(PRIMARY_ALGORITHM)
    return algorithms + ((primary,) if primary is not None else ())


def write_manifests(
    release_dir: Path,
    payload: list[Path],
    config: Config,
) -> Result[tuple[list[FileDigestEntry], Path, Path], ReleaseError]:
    """Hash ``payload`` and write the unsigned ``sha256sums`` and ``hashes``."""
    hashed = digest_files(
        payload,
        _hash_algorithms(config),
        chunk_size=config.digests.chunk_size,
        workers=config.transfer.workers,
    )
    if isinstance(hashed, Err):
        return Err(
            ReleaseError(
                kind="io",
                message="failed to hash release files",
                hint=str(hashed.error),
            )
        )

    entries = hashed.value
    configured = set(config.digests.algorithms)
    checksums_path = release_dir / CHECKSUMS_NAME
    manifest_path = release_dir / MANIFEST_NAME
    try:
        atomic_write_text(checksums_path, format_checksums(entries, PRIMARY_ALGORITHM))
        atomic_write_text(
            manifest_path,
            format_manifest(
                (e for e in entries if e.algorithm in configured),
                config.digests.algorithms,
            ),
        )
    except OSError as e:
        return Err(ReleaseError(kind="io", message=f"failed to write manifests: {e}"))

    return Ok((entries, checksums_path, manifest_path))


def _preflight(
    options: PublishOptions,
    signer: Signer,
) -> Result[str, ReleaseError]:
    """Local checks; returns the changelog section for the version."""
    cfg = options.config
    if not options.finalize:
        missing = missing_required(
            options.release_dir,
            cfg.publish.required,
            name=cfg.project.name,
            version=options.version,
        )
        if missing:
            return Err(
                ReleaseError(
                    kind="missing_files",
                    message=f"missing release files for {options.version}: {', '.join(missing)}",
                    hint=str(options.release_dir),
                )
            )

    if options.finalize:
        capability = signer.probe()
        if capability is not Capability.SUPPORTED:
            return Err(
                ReleaseError(
                    kind="tool_missing",
                    message=f"cannot sign manifests: signer {capability.name.lower()}",
                    hint="install GnuPG and configure the signing key",
                )
            )

    return changelog_section(options.changelog_path, options.version)


def _finalize(
    options: PublishOptions,
    *,
    host: ReleaseHost,
    signer: Signer,
    console: ConsoleProtocol,
    changelog: str,
) -> Result[tuple[ReleaseTarget, tuple[Path, ...]], ReleaseError]:
    cfg = options.config
    found = find_candidates(options.release_dir, options.version)
    if isinstance(found, Err):
        return found

    payload = found.value
    if not payload:
        return Err(
            ReleaseError(
                kind="missing_files",
                message=f"nothing to finalize for {options.version}",
                hint=str(options.release_dir),
            )
        )

    console.info(f"hashing {len(payload)} files")
    written = write_manifests(options.release_dir, payload, cfg)
    if isinstance(written, Err):
        return written
    entries, checksums_path, manifest_path = written.value

    signed: list[Path] = [checksums_path, manifest_path]
    for path in (checksums_path, manifest_path):
        result = signer.clearsign(path)
        if isinstance(result, Err):
            return result
        signed.append(result.value)
        console.success(f"signed {path.name}")

    body = render_body(changelog, entries, project=cfg.project.name)
    patched = patch_release(host, options.version, body=body)
    if isinstance(patched, Err):
        return patched
    console.success(f"updated release body for {options.version}")
    return Ok((patched.value, tuple(signed)))


def verify_only(
    options: PublishOptions,
    *,
    host: ReleaseHost,
    signer: Signer,
    console: ConsoleProtocol,
) -> Result[VerifyReport, ReleaseError]:
    """Run verification in a private directory removed afterwards."""
    with scratch_dir(prefix=f"relpub-{options.version}-") as workdir:
        return verify_release(
            host,
            options.version,
            workdir=workdir,
            signer=signer,
            console=console,
            workers=options.config.transfer.workers,
            chunk_size=options.config.digests.chunk_size,
        )


def publish(
    options: PublishOptions,
    *,
    host: ReleaseHost,
    signer: Signer,
    console: ConsoleProtocol,
    inspect: InspectHook | None = None,
) -> Result[PublishReport, ReleaseError]:
    """Create or update the release for ``options.version`` and upload assets."""
    cfg = options.config
    version = options.version

    changelog = _preflight(options, signer)
    if isinstance(changelog, Err):
        return changelog

    console.header(f"Release {version}")
    resolved = resolve_release(host, version, body=changelog.value)
    if isinstance(resolved, Err):
        return resolved
    target = resolved.value
    console.print(target.url)

    manifests: tuple[Path, ...] = ()
    if options.finalize:
        if inspect is not None and not inspect(options.release_dir):
            return Err(ReleaseError(kind="aborted", message=f"finalize of {version} aborted"))
        finalized = _finalize(
            options,
            host=host,
            signer=signer,
            console=console,
            changelog=changelog.value,
        )
        if isinstance(finalized, Err):
            return finalized
        target, manifests = finalized.value

    candidates = find_candidates(options.release_dir, version)
    if isinstance(candidates, Err):
        return candidates

    # Manifests go up only from the finalize pass that wrote them.
    console.header("Uploading")
    reconciled = reconcile(
        host,
        version,
        target.upload_url,
        [*candidates.value, *manifests],
        project=cfg.project.name,
        console=console,
        workers=cfg.transfer.workers,
    )
    if isinstance(reconciled, Err):
        return reconciled
    if not reconciled.value.uploaded:
        console.info("nothing to upload")

    report = PublishReport(target=target, reconcile=reconciled.value, manifests=manifests)
    if not options.finalize:
        return Ok(report)

    if options.skip_verify:
        console.skipped("verification (--skip-verify)")
        return Ok(report)

    console.header("Verifying")
    verified = verify_only(options, host=host, signer=signer, console=console)
    if isinstance(verified, Err):
        return verified
    return Ok(
        PublishReport(
            target=target,
            reconcile=reconciled.value,
            manifests=manifests,
            verify=verified.value,
        )
    )
