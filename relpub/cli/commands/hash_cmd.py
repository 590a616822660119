from __future__ import annotations

from pathlib import Path

import typer

from relpub.cli.commands._helpers import fail
from relpub.cli.context import build_context
from relpub.core.algorithms import DigestAlgorithm, lookup_algorithm
from relpub.core.result import Err
from relpub.services.release.classify import classify
from relpub.services.release.digests import digest_files
from relpub.services.release.manifest import format_manifest


def hash_files(
    files: list[Path] = typer.Argument(..., help="Files to hash"),
    algorithm: list[str] = typer.Option(
        [],
        "--algorithm",
        "-a",
        help="Digest algorithm (repeatable; defaults to the configured set).",
    ),
) -> None:
    """Print a tagged digest manifest for local files."""
    ctx = build_context()
    names = tuple(algorithm) or ctx.config.digests.algorithms

    algorithms: list[DigestAlgorithm] = []
    for name in names:
        alg = lookup_algorithm(name)
        if alg is None:
            fail(ctx, f"unknown digest algorithm: {name}")
        algorithms.append(alg)

    # Manifest lines carry basenames only.
    seen: dict[str, Path] = {}
    for path in files:
        if path.name in seen:
            fail(ctx, f"duplicate file name: {path.name} ({seen[path.name]} and {path})")
        seen[path.name] = path

    result = digest_files(
        files,
        algorithms,
        chunk_size=ctx.config.digests.chunk_size,
        workers=ctx.config.transfer.workers,
    )
    if isinstance(result, Err):
        fail(ctx, str(result.error))
    typer.echo(format_manifest(result.value, names), nl=False)


def describe(
    files: list[str] = typer.Argument(..., help="Asset file names"),
) -> None:
    """Show the display label and upload content type for asset names."""
    ctx = build_context()
    project = ctx.config.project.name
    for name in files:
        category = classify(Path(name).name, project)
        typer.echo(f"{Path(name).name}\t{category.description}\t{category.content_type or '-'}")
