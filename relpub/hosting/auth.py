"""Credential lookup for the hosting API.

Two sources, in order: a bearer token in ``GITHUB_TOKEN``, then a
``machine`` entry for the API hostname in the user's netrc file. Lookup
happens before any network call so a missing credential fails fast.
"""

from __future__ import annotations

import base64
import netrc
import os
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from urllib.parse import urlsplit

from relpub.core.result import Err, Ok, Result
from relpub.release.errors import ReleaseError

__all__ = ["Credentials", "TOKEN_ENV_VAR", "resolve_credentials"]

TOKEN_ENV_VAR = "GITHUB_TOKEN"


@dataclass(frozen=True, slots=True)
class Credentials:
    """Resolved credentials.

    Attributes:
        source: Where they came from ("env" or "netrc"), for diagnostics.
        authorization: Value of the Authorization header.
    """

    source: str
    authorization: str

    def headers(self) -> dict[str, str]:
        return {"Authorization": self.authorization}

    def __repr__(self) -> str:
        return f"Credentials(source={self.source!r})"


def _netrc_lookup(host: str, path: Path | None) -> Result[tuple[str, str] | None, ReleaseError]:
    try:
        data = netrc.netrc(str(path) if path is not None else None)
    except FileNotFoundError:
        return Ok(None)
    except netrc.NetrcParseError as e:
        return Err(
            ReleaseError(
                kind="invalid_config",
                message=f"cannot parse netrc file: {e.msg}",
                hint=e.filename,
            )
        )
    except OSError as e:
        return Err(ReleaseError(kind="invalid_config", message=f"cannot read netrc file: {e}"))

    entry = data.authenticators(host)
    if entry is None:
        return Ok(None)
    login, _account, password = entry
    if not login or not password:
        return Ok(None)
    return Ok((login, password))


def resolve_credentials(
    api_url: str,
    *,
    environ: Mapping[str, str] | None = None,
    netrc_path: Path | None = None,
) -> Result[Credentials, ReleaseError]:
    """Find credentials for the API host.

    Args:
        api_url: Base URL of the API; its hostname is the netrc machine.
        environ: Environment to read (defaults to ``os.environ``).
        netrc_path: Explicit netrc file (defaults to ``~/.netrc``).
    """
    env = os.environ if environ is None else environ
    token = env.get(TOKEN_ENV_VAR, "").strip()
    if token:
        return Ok(Credentials(source="env", authorization=f"Bearer {token}"))

    host = urlsplit(api_url).hostname or api_url
    found = _netrc_lookup(host, netrc_path)
    if isinstance(found, Err):
        return found
    if found.value is not None:
        login, password = found.value
        raw = base64.b64encode(f"{login}:{password}".encode()).decode("ascii")
        return Ok(Credentials(source="netrc", authorization=f"Basic {raw}"))

    return Err(
        ReleaseError(
            kind="missing_credentials",
            message=f"no credentials for {host}",
            hint=f"set {TOKEN_ENV_VAR} or add 'machine {host}' to ~/.netrc",
        )
    )
