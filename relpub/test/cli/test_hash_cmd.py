from __future__ import annotations

import hashlib
from pathlib import Path

import pytest
import typer

from relpub.cli.context import CLIContext
from relpub.core.config import Config
from relpub.output.console import MockConsole


def _patch_ctx(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> CLIContext:
    import relpub.cli.commands.hash_cmd as hash_cmd

    ctx = CLIContext(root=tmp_path, config=Config(), console=MockConsole())
    monkeypatch.setattr(hash_cmd, "build_context", lambda: ctx)
    return ctx


def test_hash_prints_manifest(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    import relpub.cli.commands.hash_cmd as hash_cmd

    _patch_ctx(tmp_path, monkeypatch)
    path = tmp_path / "a.zip"
    path.write_bytes(b"zip")

    hash_cmd.hash_files(files=[path], algorithm=["SHA256", "SHA512"])

    out = capsys.readouterr().out
    assert out == (
        f"SHA256 (a.zip) = {hashlib.sha256(b'zip').hexdigest()}\n"
        f"SHA512 (a.zip) = {hashlib.sha512(b'zip').hexdigest()}\n"
    )


def test_hash_unknown_algorithm(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    import relpub.cli.commands.hash_cmd as hash_cmd

    ctx = _patch_ctx(tmp_path, monkeypatch)
    with pytest.raises(typer.Exit) as exc:
        hash_cmd.hash_files(files=[tmp_path / "a"], algorithm=["MD5"])

    assert exc.value.exit_code == 2
    assert isinstance(ctx.console, MockConsole)
    assert ctx.console.find("unknown digest algorithm: MD5")


def test_hash_missing_file(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    import relpub.cli.commands.hash_cmd as hash_cmd

    _patch_ctx(tmp_path, monkeypatch)
    with pytest.raises(typer.Exit) as exc:
        hash_cmd.hash_files(files=[tmp_path / "missing"], algorithm=[])
    assert exc.value.exit_code == 2


def test_describe(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    import relpub.cli.commands.hash_cmd as hash_cmd

    _patch_ctx(tmp_path, monkeypatch)

    hash_cmd.describe(files=["git-lfs-linux-amd64-v2.5.0.tar.gz", "notes.deb"])

    assert capsys.readouterr().out == (
        "git-lfs-linux-amd64-v2.5.0.tar.gz\tLinux AMD64\tapplication/gzip\n"
        "notes.deb\tNotes.deb\t-\n"
    )


def test_hash_rejects_duplicate_basenames(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    import relpub.cli.commands.hash_cmd as hash_cmd

    ctx = _patch_ctx(tmp_path, monkeypatch)
    for sub in ("a", "b"):
        (tmp_path / sub).mkdir()
        (tmp_path / sub / "x.tar.gz").write_bytes(sub.encode())

    with pytest.raises(typer.Exit) as exc:
        hash_cmd.hash_files(
            files=[tmp_path / "a" / "x.tar.gz", tmp_path / "b" / "x.tar.gz"], algorithm=[]
        )

    assert exc.value.exit_code == 2
    assert isinstance(ctx.console, MockConsole)
    assert ctx.console.find("duplicate file name: x.tar.gz")
    assert capsys.readouterr().out == ""
