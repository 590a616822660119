"""Streaming multi-digest hashing.

A file is read once, in bounded chunks, and every chunk is fed to one
accumulator per configured algorithm. Entries are only produced after the
whole file has been read; a read error yields no entries for that file.
"""

from __future__ import annotations

from collections.abc import Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path

from relpub.core.algorithms import DigestAlgorithm
from relpub.core.result import Err, Ok, Result
from relpub.release.model import FileDigestEntry

__all__ = ["DigestError", "digest_file", "digest_files"]

DEFAULT_CHUNK_SIZE = 1024 * 1024


@dataclass(frozen=True, slots=True)
class DigestError:
    path: Path
    message: str
    algorithm: str | None = None

    def __str__(self) -> str:
        if self.algorithm:
            return f"{self.path}: {self.algorithm}: {self.message}"
        return f"{self.path}: {self.message}"


def digest_file(
    path: Path,
    algorithms: Sequence[DigestAlgorithm],
    *,
    name: str | None = None,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
) -> Result[tuple[FileDigestEntry, ...], DigestError]:
    """Hash ``path`` with every algorithm in a single read pass.

    Args:
        path: File to hash.
        algorithms: Algorithms to compute; entries come back in this order.
        name: Name recorded in the entries (defaults to the basename).
        chunk_size: Read size in bytes.

    Returns:
        One entry per algorithm, or a DigestError.
    """
    accumulators = []
    for algorithm in algorithms:
        try:
            accumulators.append(algorithm.new())
        except ValueError as e:
            return Err(DigestError(path=path, message=str(e), algorithm=algorithm.name))

    try:
        with path.open("rb") as f:
            for chunk in iter(lambda: f.read(chunk_size), b""):
                for h in accumulators:
                    h.update(chunk)
    except OSError as e:
        return Err(DigestError(path=path, message=e.strerror or str(e)))

    recorded = name if name is not None else path.name
    return Ok(
        tuple(
            FileDigestEntry(algorithm=a.name, path=recorded, hex_digest=h.hexdigest())
            for a, h in zip(algorithms, accumulators, strict=True)
        )
    )


def digest_files(
    paths: Sequence[Path],
    algorithms: Sequence[DigestAlgorithm],
    *,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    workers: int = 1,
) -> Result[list[FileDigestEntry], DigestError]:
    """Hash several independent files, optionally in parallel.

    The first failing file (in input order) is reported; entries are
    returned in input order regardless of completion order.
    """

    def one(path: Path) -> Result[tuple[FileDigestEntry, ...], DigestError]:
        return digest_file(path, algorithms, chunk_size=chunk_size)

    if workers <= 1 or len(paths) <= 1:
        results = [one(p) for p in paths]
    else:
        with ThreadPoolExecutor(max_workers=workers) as ex:
            results = list(ex.map(one, paths))

    out: list[FileDigestEntry] = []
    for result in results:
        if isinstance(result, Err):
            return result
        out.extend(result.value)
    return Ok(out)
