"""Clear-signing manifests and verifying signed manifests.

Signing and verification shell out to GnuPG. Whether a tool or digest
algorithm can be used is answered by a capability probe with three
outcomes, so callers can tell "not installed" (skip an optional check)
from "installed but broken" (fail).
"""

from __future__ import annotations

import re
import shutil
from dataclasses import dataclass
from enum import Enum, auto
from pathlib import Path
from typing import Protocol

from relpub.core.algorithms import lookup_algorithm
from relpub.core.result import Err, Ok, Result
from relpub.platform.files import scratch_dir
from relpub.platform.process import run as run_process
from relpub.release.errors import ReleaseError
from relpub.services.release.manifest import SIGNED_SUFFIX

__all__ = [
    "Capability",
    "GpgSigner",
    "MockSigner",
    "Signer",
    "probe_algorithm",
    "probe_tool",
    "signature_problem",
]

GPG_TIMEOUT_SECONDS = 120.0


class Capability(Enum):
    SUPPORTED = auto()
    UNSUPPORTED = auto()
    ERROR = auto()


def probe_tool(name: str, *, cwd: Path) -> Capability:
    """Check that a command-line tool exists and answers ``--version``."""
    if shutil.which(name) is None:
        return Capability.UNSUPPORTED
    result = run_process([name, "--version"], cwd=cwd, timeout=30.0)
    if isinstance(result, Err):
        return Capability.ERROR
    return Capability.SUPPORTED


def probe_algorithm(name: str) -> Capability:
    """Check whether a manifest algorithm can be computed here.

    Unknown names and algorithms the interpreter's hashlib lacks are
    UNSUPPORTED; a known algorithm producing a digest of the wrong length
    is an ERROR.
    """
    algorithm = lookup_algorithm(name)
    if algorithm is None:
        return Capability.UNSUPPORTED
    try:
        h = algorithm.new()
    except ValueError:
        return Capability.UNSUPPORTED
    if h.digest_size != algorithm.digest_size:
        return Capability.ERROR
    return Capability.SUPPORTED


_STATUS_PREFIX = "[GNUPG:] "
_REJECTING_STATUS = frozenset(
    {"BADSIG", "ERRSIG", "NO_PUBKEY", "EXPSIG", "EXPKEYSIG", "REVKEYSIG"}
)
_FINGERPRINT = re.compile(r"[0-9A-F]{8,40}")


def signature_problem(status: str, key: str | None = None) -> str | None:
    """Explain why a gpg status stream does not show a good signature.

    Returns None when at least one VALIDSIG is present and nothing was
    rejected. With ``key`` set, a hex key id must be a suffix of the signing
    (or primary) fingerprint; any other key spec must appear in the GOODSIG
    user id.
    """
    records = [
        line[len(_STATUS_PREFIX) :].split()
        for line in status.splitlines()
        if line.startswith(_STATUS_PREFIX)
    ]
    records = [r for r in records if r]
    for record in records:
        if record[0] in _REJECTING_STATUS:
            return f"gpg reported {record[0]}"

    valid = [r for r in records if r[0] == "VALIDSIG" and len(r) > 1]
    if not valid:
        return "no valid signature found"
    if not key:
        return None

    wanted = key.replace(" ", "").upper().removeprefix("0X")
    if _FINGERPRINT.fullmatch(wanted):
        fingerprints = sorted({f.upper() for r in valid for f in (r[1:2] + r[10:11])})
        if any(f.endswith(wanted) for f in fingerprints):
            return None
        return f"signed by {', '.join(fingerprints)}, expected {key}"

    users = [" ".join(r[2:]) for r in records if r[0] == "GOODSIG"]
    if any(key.lower() in user.lower() for user in users):
        return None
    return f"not signed by {key}"


class Signer(Protocol):
    """Produces and checks clear-signed documents."""

    def probe(self) -> Capability: ...

    def clearsign(self, path: Path) -> Result[Path, ReleaseError]:
        """Write ``<path>.asc`` and return its path."""
        ...

    def verify(self, path: Path) -> Result[str, ReleaseError]:
        """Validate the signature of ``path`` and return the signed plaintext."""
        ...


class GpgSigner:
    """Signer backed by the ``gpg`` executable.

    Trust material (keyrings, agent) is taken from the environment.
    """

    def __init__(self, *, digest_algo: str = "SHA512", key: str | None = None) -> None:
        self.digest_algo = digest_algo
        self.key = key

    def probe(self) -> Capability:
        return probe_tool("gpg", cwd=Path.cwd())

    def clearsign(self, path: Path) -> Result[Path, ReleaseError]:
        out = path.with_name(path.name + SIGNED_SUFFIX)
        cmd = ["gpg", "--batch", "--yes", "--armor", "--digest-algo", self.digest_algo]
        if self.key:
            cmd += ["--local-user", self.key]
        cmd += ["--output", str(out), "--clearsign", str(path)]

        result = run_process(cmd, cwd=path.parent, timeout=GPG_TIMEOUT_SECONDS)
        if isinstance(result, Err):
            return Err(
                ReleaseError(
                    kind="signature",
                    message=f"failed to sign {path.name}",
                    hint=result.error.stderr.strip() or str(result.error),
                )
            )
        return Ok(out)

    def verify(self, path: Path) -> Result[str, ReleaseError]:
        with scratch_dir(prefix="relpub-gpg-") as tmp:
            status_file = tmp / "status"
            result = run_process(
                [
                    "gpg",
                    "--batch",
                    "--status-file",
                    str(status_file),
                    "--output",
                    "-",
                    "--decrypt",
                    str(path),
                ],
                cwd=path.parent,
                timeout=GPG_TIMEOUT_SECONDS,
            )
            status = (
                status_file.read_text(encoding="utf-8", errors="replace")
                if status_file.is_file()
                else ""
            )

        if isinstance(result, Err):
            return Err(
                ReleaseError(
                    kind="signature",
                    message=f"bad or unverifiable signature: {path.name}",
                    hint=result.error.stderr.strip() or str(result.error),
                )
            )
        # gpg also exits 0 for unsigned OpenPGP data; only the status lines tell.
        problem = signature_problem(status, self.key)
        if problem is not None:
            return Err(
                ReleaseError(
                    kind="signature",
                    message=f"bad or unverifiable signature: {path.name}",
                    hint=problem,
                )
            )
        return Ok(result.value)


_MOCK_BEGIN = "-----BEGIN MOCK SIGNED MESSAGE-----\n"
_MOCK_END = "-----END MOCK SIGNATURE-----\n"


@dataclass
class MockSigner:
    """Signer for tests: wraps plaintext in a fixed envelope.

    ``verify`` rejects anything not produced by ``clearsign`` (or by
    :meth:`envelope`), which is enough to exercise fail-closed paths.
    """

    capability: Capability = Capability.SUPPORTED

    @staticmethod
    def envelope(text: str) -> str:
        return f"{_MOCK_BEGIN}{text}{_MOCK_END}"

    def probe(self) -> Capability:
        return self.capability

    def clearsign(self, path: Path) -> Result[Path, ReleaseError]:
        out = path.with_name(path.name + SIGNED_SUFFIX)
        out.write_text(self.envelope(path.read_text(encoding="utf-8")), encoding="utf-8")
        return Ok(out)

    def verify(self, path: Path) -> Result[str, ReleaseError]:
        text = path.read_text(encoding="utf-8")
        if not (text.startswith(_MOCK_BEGIN) and text.endswith(_MOCK_END)):
            return Err(
                ReleaseError(kind="signature", message=f"bad signature: {path.name}")
            )
        return Ok(text[len(_MOCK_BEGIN) : -len(_MOCK_END)])
