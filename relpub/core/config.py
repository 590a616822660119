"""Typed configuration loading and access.

This module maps the optional ``relpub.toml`` file onto frozen dataclasses.
Every field has a default matching the conventional release layout, so a
missing file is not an error; an invalid one is.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import TypeVar

from .algorithms import DEFAULT_ALGORITHMS, DigestAlgorithm, lookup_algorithm
from .result import Err, Ok, Result
from .structured import (
    StrDict,
    as_str_dict,
    get_float,
    get_int,
    get_str,
    get_str_list,
    get_table,
)

__all__ = [
    "Config",
    "ConfigError",
    "DigestsConfig",
    "PathsConfig",
    "ProjectConfig",
    "PublishConfig",
    "SigningConfig",
    "TransferConfig",
    "CONFIG_FILENAME",
    "load_config",
    "load_config_or_default",
]

CONFIG_FILENAME = "relpub.toml"

DEFAULT_CHUNK_SIZE = 1024 * 1024
DEFAULT_WORKERS = 4
DEFAULT_TIMEOUT = 60.0


@dataclass(frozen=True, slots=True)
class ConfigError:
    """Error when config cannot be loaded or parsed."""

    message: str
    path: Path | None = None


@dataclass(frozen=True, slots=True)
class ProjectConfig:
    """Identity of the project being released.

    Attributes:
        name: Asset filename prefix (``<name>-linux-amd64-v1.0.0.tar.gz``).
        repo: Hosting repository in ``owner/name`` form.
        api_url: Base URL of the hosting REST API.
    """

    name: str = "git-lfs"
    repo: str = "git-lfs/git-lfs"
    api_url: str = "https://api.github.com"


@dataclass(frozen=True, slots=True)
class PathsConfig:
    """Paths relative to the project root."""

    releases: str = "bin/releases"
    changelog: str = "CHANGELOG.md"


@dataclass(frozen=True, slots=True)
class DigestsConfig:
    """Digest algorithms, in manifest rank order."""

    algorithms: tuple[str, ...] = DEFAULT_ALGORITHMS
    chunk_size: int = DEFAULT_CHUNK_SIZE

    def resolved(self) -> tuple[DigestAlgorithm, ...]:
        # Names are validated at load time.
        out: list[DigestAlgorithm] = []
        for name in self.algorithms:
            algorithm = lookup_algorithm(name)
            if algorithm is not None:
                out.append(algorithm)
        return tuple(out)


@dataclass(frozen=True, slots=True)
class SigningConfig:
    digest_algo: str = "SHA512"
    key: str | None = None


@dataclass(frozen=True, slots=True)
class TransferConfig:
    workers: int = DEFAULT_WORKERS
    timeout: float = DEFAULT_TIMEOUT


@dataclass(frozen=True, slots=True)
class PublishConfig:
    """Filename templates that must exist before a non-finalize run.

    Templates may reference ``{name}`` and ``{version}``.
    """

    required: tuple[str, ...] = ("{name}-v{version}.tar.gz",)


N = TypeVar("N", int, float)


def _or_default(value: N | None, default: N) -> N:
    return default if value is None else value


@dataclass(frozen=True, slots=True)
class Config:
    """Main configuration container."""

    project: ProjectConfig = field(default_factory=ProjectConfig)
    paths: PathsConfig = field(default_factory=PathsConfig)
    digests: DigestsConfig = field(default_factory=DigestsConfig)
    signing: SigningConfig = field(default_factory=SigningConfig)
    transfer: TransferConfig = field(default_factory=TransferConfig)
    publish: PublishConfig = field(default_factory=PublishConfig)

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> Config:
        """Create Config from a mapping (parsed TOML).

        Raises:
            ValueError: If a value is present but invalid.
        """
        project: StrDict = get_table(data, "project") or {}
        paths: StrDict = get_table(data, "paths") or {}
        digests: StrDict = get_table(data, "digests") or {}
        signing: StrDict = get_table(data, "signing") or {}
        transfer: StrDict = get_table(data, "transfer") or {}
        publish: StrDict = get_table(data, "publish") or {}

        algorithms = get_str_list(digests, "algorithms")
        if "algorithms" in digests and not algorithms:
            raise ValueError("digests.algorithms must be a non-empty list of names")
        if algorithms is not None:
            unknown = [a for a in algorithms if lookup_algorithm(a) is None]
            if unknown:
                raise ValueError(f"unknown digest algorithm(s): {', '.join(unknown)}")
            if len(set(algorithms)) != len(algorithms):
                raise ValueError("digests.algorithms contains duplicates")

        chunk_size = _or_default(get_int(digests, "chunk_size"), DEFAULT_CHUNK_SIZE)
        if chunk_size <= 0:
            raise ValueError("digests.chunk_size must be positive")

        workers = _or_default(get_int(transfer, "workers"), DEFAULT_WORKERS)
        if workers <= 0:
            raise ValueError("transfer.workers must be positive")

        timeout = _or_default(get_float(transfer, "timeout"), DEFAULT_TIMEOUT)
        if timeout <= 0:
            raise ValueError("transfer.timeout must be positive")

        required = get_str_list(publish, "required")

        return cls(
            project=ProjectConfig(
                name=get_str(project, "name") or "git-lfs",
                repo=get_str(project, "repo") or "git-lfs/git-lfs",
                api_url=(get_str(project, "api_url") or "https://api.github.com").rstrip("/"),
            ),
            paths=PathsConfig(
                releases=get_str(paths, "releases") or "bin/releases",
                changelog=get_str(paths, "changelog") or "CHANGELOG.md",
            ),
            digests=DigestsConfig(
                algorithms=tuple(algorithms) if algorithms else DEFAULT_ALGORITHMS,
                chunk_size=chunk_size,
            ),
            signing=SigningConfig(
                digest_algo=get_str(signing, "digest_algo") or "SHA512",
                key=get_str(signing, "key"),
            ),
            transfer=TransferConfig(workers=workers, timeout=timeout),
            publish=PublishConfig(
                required=tuple(required) if required is not None else PublishConfig().required
            ),
        )


def _parse_toml(path: Path) -> Result[StrDict, ConfigError]:
    """Parse a TOML file, handling read and parse errors."""
    import tomllib

    try:
        content = path.read_bytes()
        data_obj: object = tomllib.loads(content.decode("utf-8"))
        data = as_str_dict(data_obj)
        if data is None:
            return Err(ConfigError("Config root must be a TOML table", path=path))
        return Ok(data)
    except FileNotFoundError:
        return Err(ConfigError(f"Config file not found: {path}", path=path))
    except PermissionError:
        return Err(ConfigError(f"Permission denied reading: {path}", path=path))
    except tomllib.TOMLDecodeError as e:
        return Err(ConfigError(f"Invalid TOML syntax: {e}", path=path))
    except UnicodeDecodeError as e:
        return Err(ConfigError(f"Error reading config: {e}", path=path))


def load_config(path: Path) -> Result[Config, ConfigError]:
    """Load and parse configuration from a TOML file.

    Args:
        path: Path to relpub.toml

    Returns:
        Ok(Config) on success, Err(ConfigError) on failure
    """
    result = _parse_toml(path)
    if isinstance(result, Err):
        return result

    try:
        return Ok(Config.from_dict(result.value))
    except (KeyError, TypeError, ValueError) as e:
        return Err(ConfigError(f"Invalid config: {e}", path=path))


def load_config_or_default(path: Path) -> Result[Config, ConfigError]:
    """Load config from file, or defaults if the file does not exist.

    An existing but invalid file is still an error.
    """
    if not path.exists():
        return Ok(Config())
    return load_config(path)
