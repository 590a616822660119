"""Upload the local files a release is still missing.

The set of asset names already on the release is captured once per pass.
Only files absent from that snapshot are uploaded, so rerunning after a
failure (or after success) uploads nothing twice.
"""

from __future__ import annotations

from collections.abc import Collection, Sequence
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path

from relpub.core.result import Err, Ok, Result
from relpub.hosting.host import ReleaseHost
from relpub.output.console import ConsoleProtocol
from relpub.release.errors import ReleaseError
from relpub.release.model import ReleaseAsset
from relpub.services.release.classify import classify
from relpub.services.release.resolver import find_release

__all__ = [
    "ReconcileReport",
    "pending_uploads",
    "percent_encode",
    "reconcile",
    "upload_url_for",
]

_UNRESERVED = frozenset(b"ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789_.-")


@dataclass(frozen=True, slots=True)
class ReconcileReport:
    uploaded: tuple[str, ...]
    already_present: tuple[str, ...]


def percent_encode(value: str) -> str:
    """Escape every UTF-8 byte outside ``[A-Za-z0-9_.-]`` as ``%XX``."""
    return "".join(chr(b) if b in _UNRESERVED else f"%{b:02X}" for b in value.encode("utf-8"))


def upload_url_for(upload_url: str, name: str, label: str) -> str:
    return f"{upload_url}?name={percent_encode(name)}&label={percent_encode(label)}"


def pending_uploads(candidates: Sequence[Path], existing: Collection[str]) -> list[Path]:
    """Candidates whose basename is not in ``existing``, sorted by name.

    An empty ``existing`` subtracts nothing.
    """
    present = frozenset(existing)
    return sorted(
        (p for p in candidates if p.name not in present),
        key=lambda p: p.name.encode("utf-8"),
    )


def reconcile(
    host: ReleaseHost,
    version: str,
    upload_url: str,
    candidates: Sequence[Path],
    *,
    project: str,
    console: ConsoleProtocol,
    workers: int = 1,
) -> Result[ReconcileReport, ReleaseError]:
    """Upload every candidate missing from the release named ``version``.

    Any failed upload fails the pass; uploads that already finished stay on
    the release and are skipped by the next run.
    """
    found = find_release(host, version)
    if isinstance(found, Err):
        return found
    if found.value is None:
        return Err(ReleaseError(kind="no_such_release", message=f"no such release: {version}"))

    listed = host.list_assets(found.value)
    if isinstance(listed, Err):
        return listed
    existing = {a.name for a in listed.value}

    pending = pending_uploads(candidates, existing)
    present = tuple(sorted(p.name for p in candidates if p.name in existing))

    # Classify everything before the first request so an unknown type
    # does not leave a half-uploaded pass behind.
    planned: list[tuple[Path, str, str]] = []
    for path in pending:
        category = classify(path.name, project)
        if category.content_type is None:
            return Err(
                ReleaseError(
                    kind="unknown_content_type",
                    message=f"no content type for {path.name} ({version})",
                    hint="add a known extension or remove the file from the release directory",
                )
            )
        planned.append((path, category.description, category.content_type))

    for name in present:
        console.print(f"{name}: already uploaded")

    def upload(item: tuple[Path, str, str]) -> Result[ReleaseAsset, ReleaseError]:
        path, label, mime = item
        url = upload_url_for(upload_url, path.name, label)
        return host.upload_asset(url, path, content_type=mime)

    uploaded: list[str] = []
    with ThreadPoolExecutor(max_workers=max(1, workers)) as ex:
        futures: list[Future[Result[ReleaseAsset, ReleaseError]]] = [
            ex.submit(upload, item) for item in planned
        ]
        for (path, label, _mime), future in zip(planned, futures, strict=True):
            result = future.result()
            if isinstance(result, Err):
                for pending_future in futures:
                    pending_future.cancel()
                return Err(
                    ReleaseError(
                        kind=result.error.kind,
                        message=f"{result.error.message} ({version})",
                        hint=result.error.hint,
                    )
                )
            uploaded.append(path.name)
            console.success(f"uploaded {path.name} ({label})")

    return Ok(ReconcileReport(uploaded=tuple(uploaded), already_present=present))
