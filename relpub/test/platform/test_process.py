"""Tests for relpub.platform.process module."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

from relpub.core.result import Err, Ok
from relpub.platform.process import ProcessError, run, run_interactive


class TestProcessError:
    def test_str_short_command(self) -> None:
        error = ProcessError(command=("gpg", "--version"), returncode=1, stdout="", stderr="")
        assert str(error) == "gpg --version failed (exit 1)"

    def test_str_long_command_truncated(self) -> None:
        error = ProcessError(
            command=("gpg", "--batch", "--yes", "--armor", "--clearsign", "hashes"),
            returncode=2,
            stdout="",
            stderr="no secret key",
        )
        assert str(error) == "gpg --batch --yes ... failed (exit 2)"

    def test_frozen(self) -> None:
        error = ProcessError(("cmd",), 1, "", "")
        with pytest.raises(AttributeError):
            error.returncode = 2  # type: ignore[misc]


class TestRun:
    def test_success_returns_stdout(self, tmp_path: Path) -> None:
        result = run([sys.executable, "-c", "print('hello')"], cwd=tmp_path)

        assert isinstance(result, Ok)
        assert "hello" in result.value

    def test_failure_returns_error(self, tmp_path: Path) -> None:
        result = run(
            [sys.executable, "-c", "import sys; sys.stderr.write('nope'); sys.exit(42)"],
            cwd=tmp_path,
        )

        assert isinstance(result, Err)
        assert result.error.returncode == 42
        assert "nope" in result.error.stderr

    def test_command_not_found(self, tmp_path: Path) -> None:
        result = run(["nonexistent_command_12345"], cwd=tmp_path)

        assert isinstance(result, Err)
        assert result.error.returncode == -1

    def test_timeout(self, tmp_path: Path) -> None:
        cmd = [sys.executable, "-c", "import time; time.sleep(5)"]
        result = run(cmd, cwd=tmp_path, timeout=0.2)

        assert isinstance(result, Err)
        assert "timed out" in result.error.stderr


class TestRunInteractive:
    def test_exit_code_propagates(self, tmp_path: Path) -> None:
        assert isinstance(run_interactive([sys.executable, "-c", "pass"], cwd=tmp_path), Ok)
        result = run_interactive([sys.executable, "-c", "raise SystemExit(3)"], cwd=tmp_path)
        assert isinstance(result, Err)
        assert result.error.returncode == 3
