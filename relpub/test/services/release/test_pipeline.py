"""End-to-end publish flow against the in-memory host."""

from __future__ import annotations

import hashlib
from pathlib import Path

from relpub.core.config import Config
from relpub.core.result import Err, Ok
from relpub.hosting.host import MemoryReleaseHost
from relpub.output.console import MockConsole
from relpub.services.release.pipeline import PublishOptions, publish, write_manifests
from relpub.services.release.signing import Capability, MockSigner

VERSION = "v3.4.0"
PAYLOAD = {
    "git-lfs-v3.4.0.tar.gz": b"source",
    "git-lfs-windows-v3.4.0.exe": b"installer",
    "git-lfs-linux-amd64-v3.4.0.tar.gz": b"linux",
}


def _project(tmp_path: Path, payload: dict[str, bytes] = PAYLOAD) -> Path:
    releases = tmp_path / "bin" / "releases"
    releases.mkdir(parents=True)
    for name, data in payload.items():
        (releases / name).write_bytes(data)
    (tmp_path / "CHANGELOG.md").write_text(
        "# Changelog\n\n## 3.4.0\n\n* Add a thing\n", encoding="utf-8"
    )
    return tmp_path


def _options(root: Path, **kwargs: bool) -> PublishOptions:
    return PublishOptions(version=VERSION, root=root, config=Config(), **kwargs)


class TestPublish:
    def test_plain_run_creates_and_uploads(self, tmp_path: Path) -> None:
        host = MemoryReleaseHost()
        root = _project(tmp_path)

        result = publish(_options(root), host=host, signer=MockSigner(), console=MockConsole())

        assert isinstance(result, Ok)
        assert host.created == [VERSION]
        assert host.body_of(VERSION) == "* Add a thing"
        assert sorted(host.uploaded) == sorted(PAYLOAD)
        assert result.value.verify is None

    def test_rerun_is_idempotent(self, tmp_path: Path) -> None:
        host = MemoryReleaseHost()
        root = _project(tmp_path)
        publish(_options(root), host=host, signer=MockSigner(), console=MockConsole())
        console = MockConsole()

        result = publish(_options(root), host=host, signer=MockSigner(), console=console)

        assert isinstance(result, Ok)
        assert host.created == [VERSION]
        assert len(host.uploaded) == len(PAYLOAD)
        assert result.value.reconcile.uploaded == ()
        assert console.find("nothing to upload")

    def test_missing_required_file_before_network(self, tmp_path: Path) -> None:
        host = MemoryReleaseHost()
        root = _project(tmp_path, {"git-lfs-windows-v3.4.0.exe": b"x"})

        result = publish(_options(root), host=host, signer=MockSigner(), console=MockConsole())

        assert isinstance(result, Err)
        assert result.error.kind == "missing_files"
        assert "git-lfs-v3.4.0.tar.gz" in result.error.message
        assert host.releases == []

    def test_finalize_signs_uploads_and_verifies(self, tmp_path: Path) -> None:
        host = MemoryReleaseHost()
        root = _project(tmp_path)

        result = publish(
            _options(root, finalize=True),
            host=host,
            signer=MockSigner(),
            console=MockConsole(),
        )

        assert isinstance(result, Ok)
        for name in ("sha256sums", "sha256sums.asc", "hashes", "hashes.asc"):
            assert name in host.uploaded
        assert host.labels["hashes.asc"] == "Signed Hashes"
        assert host.patched == [VERSION]
        body = host.body_of(VERSION) or ""
        assert "## SHA-256 hashes" in body
        assert hashlib.sha256(b"source").hexdigest() in body
        assert result.value.verify is not None
        assert "SHA256" in result.value.verify.verified
        assert result.value.verify.skipped == ()

    def test_finalize_skip_verify(self, tmp_path: Path) -> None:
        console = MockConsole()
        result = publish(
            _options(_project(tmp_path), finalize=True, skip_verify=True),
            host=MemoryReleaseHost(),
            signer=MockSigner(),
            console=console,
        )

        assert isinstance(result, Ok)
        assert result.value.verify is None
        assert console.find("skipped: verification")

    def test_finalize_requires_signer(self, tmp_path: Path) -> None:
        host = MemoryReleaseHost()
        result = publish(
            _options(_project(tmp_path), finalize=True),
            host=host,
            signer=MockSigner(capability=Capability.UNSUPPORTED),
            console=MockConsole(),
        )

        assert isinstance(result, Err)
        assert result.error.kind == "tool_missing"
        assert host.releases == []

    def test_inspect_can_abort(self, tmp_path: Path) -> None:
        host = MemoryReleaseHost()
        root = _project(tmp_path)
        seen: list[Path] = []

        def inspect(release_dir: Path) -> bool:
            seen.append(release_dir)
            return False

        result = publish(
            _options(root, finalize=True),
            host=host,
            signer=MockSigner(),
            console=MockConsole(),
            inspect=inspect,
        )

        assert isinstance(result, Err)
        assert result.error.kind == "aborted"
        assert seen == [root / "bin" / "releases"]
        assert host.patched == []
        assert host.uploaded == []

    def test_leftover_manifests_from_earlier_release(self, tmp_path: Path) -> None:
        """Manifests left behind by 3.3.0 never reach the 3.4.0 release."""
        host = MemoryReleaseHost()
        root = _project(tmp_path)
        releases = root / "bin" / "releases"
        stale = "0" * 64 + "  git-lfs-v3.3.0.tar.gz\n"
        (releases / "sha256sums").write_text(stale, encoding="utf-8")
        (releases / "sha256sums.asc").write_text(MockSigner.envelope(stale), encoding="utf-8")
        (releases / "hashes").write_text("SHA256 (git-lfs-v3.3.0.tar.gz) = 00\n", encoding="utf-8")
        (releases / "hashes.asc").write_text(MockSigner.envelope("x"), encoding="utf-8")

        plain = publish(_options(root), host=host, signer=MockSigner(), console=MockConsole())

        assert isinstance(plain, Ok)
        assert sorted(host.uploaded) == sorted(PAYLOAD)

        final = publish(
            _options(root, finalize=True),
            host=host,
            signer=MockSigner(),
            console=MockConsole(),
        )

        assert isinstance(final, Ok)
        assert set(final.value.reconcile.uploaded) == {
            "sha256sums",
            "sha256sums.asc",
            "hashes",
            "hashes.asc",
        }
        assert final.value.verify is not None

    def test_missing_changelog_entry(self, tmp_path: Path) -> None:
        root = _project(tmp_path)
        (root / "CHANGELOG.md").write_text("## 3.3.0\n", encoding="utf-8")

        result = publish(
            _options(root), host=MemoryReleaseHost(), signer=MockSigner(), console=MockConsole()
        )

        assert isinstance(result, Err)
        assert result.error.kind == "missing_files"


class TestWriteManifests:
    def test_hashes_only_configured_algorithms(self, tmp_path: Path) -> None:
        path = tmp_path / "git-lfs-v3.4.0.tar.gz"
        path.write_bytes(b"data")
        config = Config.from_dict({"digests": {"algorithms": ["BLAKE2b"]}})

        result = write_manifests(tmp_path, [path], config)

        assert isinstance(result, Ok)
        _entries, checksums, manifest = result.value
        assert checksums.read_text(encoding="utf-8") == (
            f"{hashlib.sha256(b'data').hexdigest()}  git-lfs-v3.4.0.tar.gz\n"
        )
        assert manifest.read_text(encoding="utf-8") == (
            f"BLAKE2b (git-lfs-v3.4.0.tar.gz) = {hashlib.blake2b(b'data').hexdigest()}\n"
        )

    def test_unreadable_payload(self, tmp_path: Path) -> None:
        result = write_manifests(tmp_path, [tmp_path / "gone"], Config())
        assert isinstance(result, Err)
        assert result.error.kind == "io"
