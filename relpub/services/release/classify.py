"""Asset descriptions and content types derived from filenames.

Descriptions come from an ordered rule table; the first matching rule
wins. Names that match no explicit rule are decomposed as
``<project>-<os>-<arch>-v<version>.<ext>``.

Examples (project "git-lfs"):
    git-lfs-v2.5.0.tar.gz                  -> Source
    git-lfs-windows-v2.5.0.exe             -> Windows Installer
    git-lfs-linux-amd64-v2.5.0.tar.gz      -> Linux AMD64
    git-lfs-freebsd-ppc64le-v2.5.0.tar.gz  -> FreeBSD Little-endian 64-bit PowerPC
    sha256sums.asc                         -> Signed SHA-256 Hashes
"""

from __future__ import annotations

import re
from collections.abc import Callable
from dataclasses import dataclass

from relpub.release.model import AssetCategory
from relpub.services.release.manifest import CHECKSUMS_NAME, MANIFEST_NAME, SIGNED_SUFFIX

__all__ = [
    "classify",
    "content_type",
    "describe",
    "os_display",
    "arch_display",
]

_VERSION = r"v\d+\.\d+\.\d+[^/]*"

_OS_NAMES = {
    "darwin": "macOS",
    "freebsd": "FreeBSD",
    "netbsd": "NetBSD",
    "openbsd": "OpenBSD",
    "dragonfly": "DragonFly BSD",
}

_ARCH_NAMES = {
    "ppc64le": "Little-endian 64-bit PowerPC",
    "ppc64": "Big-endian 64-bit PowerPC",
    "mips64le": "Little-endian 64-bit MIPS",
    "mips64": "Big-endian 64-bit MIPS",
    "mipsle": "Little-endian MIPS",
    "s390x": "IBM Z",
    "riscv64": "64-bit RISC-V",
    "loong64": "64-bit LoongArch",
    "386": "32-bit x86",
}

# Checked in order: compound extensions before their tails.
_CONTENT_TYPES: tuple[tuple[str, str], ...] = (
    (".tar.gz", "application/gzip"),
    (".tgz", "application/gzip"),
    (".zip", "application/zip"),
    (".exe", "application/octet-stream"),
    (".msi", "application/octet-stream"),
    (SIGNED_SUFFIX, "text/plain"),
    (".txt", "text/plain"),
)

_MANIFEST_NAMES = frozenset(
    {
        CHECKSUMS_NAME,
        CHECKSUMS_NAME + SIGNED_SUFFIX,
        MANIFEST_NAME,
        MANIFEST_NAME + SIGNED_SUFFIX,
    }
)


def os_display(token: str) -> str:
    return _OS_NAMES.get(token, token.capitalize())


def arch_display(token: str) -> str:
    return _ARCH_NAMES.get(token, token.upper())


@dataclass(frozen=True, slots=True)
class _Rule:
    match: Callable[[str, str], re.Match[str] | None]
    describe: Callable[[re.Match[str]], str]


def _regex(template: str) -> Callable[[str, str], re.Match[str] | None]:
    def match(filename: str, project: str) -> re.Match[str] | None:
        pattern = template.format(project=re.escape(project), version=_VERSION)
        return re.fullmatch(pattern, filename)

    return match


_RULES: tuple[_Rule, ...] = (
    _Rule(_regex(r"{project}-{version}\.tar\.gz"), lambda m: "Source"),
    _Rule(
        _regex(r"{project}-(?P<os>[a-z0-9]+)-{version}\.exe"),
        lambda m: f"{os_display(m['os'])} Installer",
    ),
    _Rule(_regex(re.escape(CHECKSUMS_NAME)), lambda m: "Unsigned SHA-256 Hashes"),
    _Rule(
        _regex(re.escape(CHECKSUMS_NAME + SIGNED_SUFFIX)),
        lambda m: "Signed SHA-256 Hashes",
    ),
    _Rule(_regex(re.escape(MANIFEST_NAME)), lambda m: "Unsigned Hashes"),
    _Rule(_regex(re.escape(MANIFEST_NAME + SIGNED_SUFFIX)), lambda m: "Signed Hashes"),
)


def _platform_description(filename: str, project: str) -> str:
    stem = filename
    prefix = f"{project}-"
    if stem.startswith(prefix):
        stem = stem[len(prefix) :]
    stem = re.sub(r"-v\d.*$", "", stem)

    os_token, _, arch_token = stem.partition("-")
    if not arch_token:
        return os_display(os_token)
    return f"{os_display(os_token)} {arch_display(arch_token)}"


def describe(filename: str, project: str = "git-lfs") -> str:
    """Human-readable label for an asset."""
    for rule in _RULES:
        m = rule.match(filename, project)
        if m is not None:
            return rule.describe(m)
    return _platform_description(filename, project)


def content_type(filename: str) -> str | None:
    """MIME type by extension, or None when unrecognized."""
    if filename in _MANIFEST_NAMES:
        return "text/plain"
    for suffix, mime in _CONTENT_TYPES:
        if filename.endswith(suffix):
            return mime
    return None


def classify(filename: str, project: str = "git-lfs") -> AssetCategory:
    return AssetCategory(
        description=describe(filename, project),
        content_type=content_type(filename),
    )
