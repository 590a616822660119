from __future__ import annotations

import os
from pathlib import Path

import typer

from relpub.cli.commands._helpers import fail
from relpub.cli.context import CLIContext, build_context, build_host
from relpub.core.result import Err
from relpub.output.console import ConsoleProtocol, Style
from relpub.platform.process import run_interactive
from relpub.services.release.pipeline import InspectHook, PublishOptions
from relpub.services.release.pipeline import publish as publish_release
from relpub.services.release.pipeline import verify_only
from relpub.services.release.signing import GpgSigner, Signer
from relpub.services.release.verify import VerifyReport


def _signer(ctx: CLIContext) -> Signer:
    signing = ctx.config.signing
    return GpgSigner(digest_algo=signing.digest_algo, key=signing.key)


def _inspect_shell(console: ConsoleProtocol) -> InspectHook:
    """Open a shell in the release directory, then ask whether to continue."""

    def hook(release_dir: Path) -> bool:
        shell = os.environ.get("SHELL") or "/bin/sh"
        console.info(f"inspect {release_dir}; exit the shell to continue")
        result = run_interactive([shell], cwd=release_dir)
        if isinstance(result, Err):
            console.warning(f"inspection shell exited: {result.error}")
        return typer.confirm("Finalize this release?", default=False)

    return hook


def _print_verify(ctx: CLIContext, report: VerifyReport) -> None:
    for check in report.checks:
        style = Style.SUCCESS if check.status == "verified" else Style.SKIPPED
        ctx.console.print(f"{check.algorithm}: {check.status} ({check.files} files)", style)


def publish(
    version: str = typer.Argument(..., help="Version to publish, e.g. 3.4.0"),
    finalize: bool = typer.Option(
        False,
        "--finalize",
        help="Hash, sign and attach the manifests, then verify the release.",
    ),
    skip_verify: bool = typer.Option(
        False,
        "--skip-verify",
        help="Skip the download-and-verify step of --finalize.",
    ),
    inspect: bool = typer.Option(
        False,
        "--inspect",
        help="Open a shell in the release directory before finalizing.",
    ),
) -> None:
    """Create or update a draft release and upload its missing assets."""
    ctx = build_context()
    if inspect and not finalize:
        ctx.console.warning("--inspect has no effect without --finalize")

    host = build_host(ctx)
    options = PublishOptions(
        version=version,
        root=ctx.root,
        config=ctx.config,
        finalize=finalize,
        skip_verify=skip_verify,
    )
    result = publish_release(
        options,
        host=host,
        signer=_signer(ctx),
        console=ctx.console,
        inspect=_inspect_shell(ctx.console) if inspect else None,
    )
    if isinstance(result, Err):
        fail(ctx, result.error)

    report = result.value
    if report.verify is not None:
        _print_verify(ctx, report.verify)
    ctx.console.success(
        f"{version}: {len(report.reconcile.uploaded)} uploaded, "
        f"{len(report.reconcile.already_present)} already present"
    )


def verify(
    version: str = typer.Argument(..., help="Version whose release to verify"),
) -> None:
    """Download a release and check its signed manifests."""
    ctx = build_context()
    host = build_host(ctx)
    options = PublishOptions(version=version, root=ctx.root, config=ctx.config)

    result = verify_only(options, host=host, signer=_signer(ctx), console=ctx.console)
    if isinstance(result, Err):
        fail(ctx, result.error)

    _print_verify(ctx, result.value)
    ctx.console.success(f"{version}: verified {len(result.value.downloaded)} assets")
