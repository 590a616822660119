"""Manifest rendering and parsing.

Two text formats, both bit-exact:

- checksums (primary, single algorithm): ``<hex>  <name>`` per file, sorted
  by name, as written by ``sha256sum``.
- tagged (secondary, multi algorithm): ``<ALG> (<name>) = <hex>`` per
  (algorithm, file), grouped by the configured algorithm rank and sorted by
  name within a group.

Names sort byte-wise on their UTF-8 encoding, not by locale or code point
collation, so every platform produces the same file.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Sequence

from relpub.core.result import Err, Ok, Result
from relpub.release.errors import ReleaseError
from relpub.release.model import FileDigestEntry

__all__ = [
    "CHECKSUMS_NAME",
    "MANIFEST_NAME",
    "SIGNED_SUFFIX",
    "format_checksums",
    "format_manifest",
    "parse_checksums",
    "parse_manifest",
]

CHECKSUMS_NAME = "sha256sums"
MANIFEST_NAME = "hashes"
SIGNED_SUFFIX = ".asc"

_TAGGED_LINE = re.compile(r"^(?P<alg>[A-Za-z0-9/_-]+) \((?P<path>.+)\) = (?P<hex>[0-9a-fA-F]+)$")
_CHECKSUM_LINE = re.compile(r"^(?P<hex>[0-9a-fA-F]+) [ *](?P<path>.+)$")


def _name_key(path: str) -> bytes:
    return path.encode("utf-8", "surrogateescape")


def format_manifest(entries: Iterable[FileDigestEntry], algorithms: Sequence[str]) -> str:
    """Render the multi-algorithm manifest.

    Args:
        entries: One entry per (algorithm, file).
        algorithms: Algorithm names in rank order.

    Raises:
        ValueError: If an entry uses an algorithm outside ``algorithms``.
    """
    rank = {name: i for i, name in enumerate(algorithms)}
    items = list(entries)
    for entry in items:
        if entry.algorithm not in rank:
            raise ValueError(f"algorithm not configured: {entry.algorithm} ({entry.path})")

    items.sort(key=lambda e: (rank[e.algorithm], _name_key(e.path)))
    return "".join(f"{e.algorithm} ({e.path}) = {e.hex_digest}\n" for e in items)


def format_checksums(entries: Iterable[FileDigestEntry], algorithm: str = "SHA256") -> str:
    """Render the ``sha256sum``-style manifest for one algorithm."""
    items = sorted(
        (e for e in entries if e.algorithm == algorithm),
        key=lambda e: _name_key(e.path),
    )
    return "".join(f"{e.hex_digest}  {e.path}\n" for e in items)


def _malformed(source: str, lineno: int, line: str) -> Err[ReleaseError]:
    return Err(
        ReleaseError(
            kind="integrity",
            message=f"malformed line {lineno} in {source}",
            hint=line[:120],
        )
    )


def _duplicate(source: str, entry: FileDigestEntry) -> Err[ReleaseError]:
    return Err(
        ReleaseError(
            kind="integrity",
            message=f"duplicate {entry.algorithm} entry for {entry.path} in {source}",
        )
    )


def parse_manifest(
    text: str,
    *,
    source: str = MANIFEST_NAME,
) -> Result[list[FileDigestEntry], ReleaseError]:
    """Parse the tagged format.

    Blank lines are ignored; any other line that does not match is an error.
    """
    out: list[FileDigestEntry] = []
    seen: set[tuple[str, str]] = set()
    for lineno, raw in enumerate(text.splitlines(), start=1):
        line = raw.rstrip("\r")
        if not line.strip():
            continue
        m = _TAGGED_LINE.match(line)
        if m is None:
            return _malformed(source, lineno, line)
        entry = FileDigestEntry(
            algorithm=m["alg"],
            path=m["path"],
            hex_digest=m["hex"].lower(),
        )
        key = (entry.algorithm, entry.path)
        if key in seen:
            return _duplicate(source, entry)
        seen.add(key)
        out.append(entry)
    return Ok(out)


def parse_checksums(
    text: str,
    *,
    algorithm: str = "SHA256",
    source: str = CHECKSUMS_NAME,
) -> Result[list[FileDigestEntry], ReleaseError]:
    """Parse the ``<hex>  <name>`` format (``<hex> *<name>`` also accepted)."""
    out: list[FileDigestEntry] = []
    seen: set[str] = set()
    for lineno, raw in enumerate(text.splitlines(), start=1):
        line = raw.rstrip("\r")
        if not line.strip():
            continue
        m = _CHECKSUM_LINE.match(line)
        if m is None:
            return _malformed(source, lineno, line)
        entry = FileDigestEntry(algorithm=algorithm, path=m["path"], hex_digest=m["hex"].lower())
        if entry.path in seen:
            return _duplicate(source, entry)
        seen.add(entry.path)
        out.append(entry)
    return Ok(out)
