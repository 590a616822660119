"""Error types for the release bounded context."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

ReleaseErrorKind = Literal[
    # configuration: detected before any network call
    "missing_credentials",
    "missing_files",
    "invalid_config",
    "tool_missing",
    # remote API
    "remote_api",
    "no_such_release",
    "unknown_content_type",
    # integrity
    "integrity",
    "signature",
    # local I/O
    "io",
    "aborted",
]


@dataclass(frozen=True, slots=True)
class ReleaseError:
    """Canonical release error payload.

    Messages carry enough context (version, filename, algorithm) to act on
    without re-running in a debug mode; ``hint`` holds the raw detail.
    """

    kind: ReleaseErrorKind
    message: str
    hint: str | None = None
