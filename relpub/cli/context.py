from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

import typer

from relpub import __version__
from relpub.core.config import CONFIG_FILENAME, Config, load_config, load_config_or_default
from relpub.core.errors import ErrorCode
from relpub.core.result import Err
from relpub.hosting.auth import resolve_credentials
from relpub.hosting.host import GitHubReleaseHost, ReleaseHost
from relpub.hosting.http import RealHttpClient
from relpub.output.console import ConsoleProtocol, RichConsole, Style

ROOT_ENV_VAR = "RELPUB_ROOT"
CONFIG_ENV_VAR = "RELPUB_CONFIG"


@dataclass(frozen=True, slots=True)
class CLIContext:
    root: Path
    config: Config
    console: ConsoleProtocol


def _root() -> Path:
    env = os.environ.get(ROOT_ENV_VAR)
    if env:
        return Path(env).expanduser().resolve()
    return Path.cwd().resolve()


def build_context() -> CLIContext:
    console = RichConsole()
    root = _root()
    explicit = os.environ.get(CONFIG_ENV_VAR)
    if explicit:
        result = load_config(Path(explicit))
    else:
        result = load_config_or_default(root / CONFIG_FILENAME)
    if isinstance(result, Err):
        console.error(result.error.message)
        raise typer.Exit(code=int(ErrorCode.ABORTED))

    return CLIContext(root=root, config=result.value, console=console)


def build_host(ctx: CLIContext) -> ReleaseHost:
    """Build the hosting client; exits before any request if unauthenticated."""
    project = ctx.config.project
    creds = resolve_credentials(project.api_url)
    if isinstance(creds, Err):
        ctx.console.error(creds.error.message)
        if creds.error.hint:
            ctx.console.print(f"hint: {creds.error.hint}", Style.DIM)
        raise typer.Exit(code=int(ErrorCode.ABORTED))

    http = RealHttpClient(
        timeout=ctx.config.transfer.timeout,
        user_agent=f"relpub/{__version__}",
        auth_headers=creds.value.headers(),
    )
    return GitHubReleaseHost(http, repo=project.repo, api_url=project.api_url)
