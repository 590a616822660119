"""Human-readable release body for a finalized release."""

from __future__ import annotations

from collections.abc import Sequence

from relpub.core.algorithms import PRIMARY_ALGORITHM
from relpub.release.model import FileDigestEntry
from relpub.services.release.classify import describe

__all__ = ["render_body"]


def render_body(
    changelog: str,
    entries: Sequence[FileDigestEntry],
    *,
    project: str,
) -> str:
    """Changelog, a package table, and the SHA-256 of every hashed asset."""
    primary = sorted(
        (e for e in entries if e.algorithm == PRIMARY_ALGORITHM),
        key=lambda e: e.path.encode("utf-8"),
    )

    lines: list[str] = []
    if changelog.strip():
        lines.append(changelog.strip())
        lines.append("")

    lines.append("## Packages")
    lines.append("")
    lines.append("| Package | File |")
    lines.append("| --- | --- |")
    for entry in primary:
        lines.append(f"| {describe(entry.path, project)} | `{entry.path}` |")
    lines.append("")

    lines.append("## SHA-256 hashes")
    lines.append("")
    lines.append("```")
    for entry in primary:
        lines.append(f"{entry.hex_digest}  {entry.path}")
    lines.append("```")
    lines.append("")
    lines.append("Signed hashes for every supported algorithm are attached as `hashes.asc`.")

    return "\n".join(lines) + "\n"
