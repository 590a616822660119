from __future__ import annotations

from relpub.release.model import FileDigestEntry
from relpub.services.release.body import render_body


def test_render_body() -> None:
    entries = [
        FileDigestEntry("SHA256", "git-lfs-windows-v3.4.0.exe", "bb"),
        FileDigestEntry("SHA512", "git-lfs-windows-v3.4.0.exe", "cc"),
        FileDigestEntry("SHA256", "git-lfs-v3.4.0.tar.gz", "aa"),
    ]

    body = render_body("* Add a thing\n", entries, project="git-lfs")

    assert body.startswith("* Add a thing\n\n## Packages\n")
    assert "| Source | `git-lfs-v3.4.0.tar.gz` |" in body
    assert "| Windows Installer | `git-lfs-windows-v3.4.0.exe` |" in body
    assert "aa  git-lfs-v3.4.0.tar.gz\nbb  git-lfs-windows-v3.4.0.exe\n" in body
    assert "cc" not in body
    assert body.endswith("\n")


def test_render_body_without_changelog() -> None:
    body = render_body("  \n", [], project="git-lfs")
    assert body.startswith("## Packages")
