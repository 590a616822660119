from __future__ import annotations

import re
from pathlib import Path

from relpub.core.result import Err, Ok, Result
from relpub.release.errors import ReleaseError
from relpub.release.model import bare_version

__all__ = ["changelog_section", "extract_section"]

_HEADING = re.compile(r"^##\s+v?(?P<version>\S+)")


def extract_section(text: str, version: str) -> str | None:
    """Return the text under ``## <version>`` (or ``## v<version>``).

    The heading may carry a trailing date, e.g. ``## 2.5.0 (2 Aug 2018)``.
    The section ends at the next ``## `` heading.
    """
    lines = text.splitlines()
    start: int | None = None
    for i, line in enumerate(lines):
        m = _HEADING.match(line)
        if m is None:
            continue
        if start is not None:
            return "\n".join(lines[start:i]).strip()
        if m["version"] == bare_version(version):
            start = i + 1
    if start is None:
        return None
    return "\n".join(lines[start:]).strip()


def changelog_section(path: Path, version: str) -> Result[str, ReleaseError]:
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        return Err(
            ReleaseError(
                kind="missing_files",
                message=f"cannot read changelog: {path}",
                hint=e.strerror or str(e),
            )
        )

    section = extract_section(text, version)
    if section is None:
        return Err(
            ReleaseError(
                kind="missing_files",
                message=f"no changelog entry for {version}",
                hint=f"add a '## {version}' section to {path.name}",
            )
        )
    return Ok(section)
