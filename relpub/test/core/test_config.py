"""Tests for relpub.core.config module."""

from pathlib import Path

import pytest

from relpub.core.algorithms import DEFAULT_ALGORITHMS
from relpub.core.config import Config, load_config, load_config_or_default
from relpub.core.result import Err, Ok


class TestDefaults:
    def test_defaults_match_release_layout(self) -> None:
        config = Config()
        assert config.project.name == "git-lfs"
        assert config.project.repo == "git-lfs/git-lfs"
        assert config.paths.releases == "bin/releases"
        assert config.digests.algorithms == DEFAULT_ALGORITHMS
        assert config.signing.digest_algo == "SHA512"
        assert config.publish.required == ("{name}-v{version}.tar.gz",)

    def test_resolved_algorithms_keep_order(self) -> None:
        config = Config.from_dict({"digests": {"algorithms": ["BLAKE2s", "SHA256"]}})
        assert [a.name for a in config.digests.resolved()] == ["BLAKE2s", "SHA256"]


class TestFromDict:
    def test_empty_dict_gives_defaults(self) -> None:
        assert Config.from_dict({}) == Config()

    def test_overrides(self) -> None:
        config = Config.from_dict(
            {
                "project": {"name": "tool", "repo": "me/tool", "api_url": "https://ghe.local/api/"},
                "transfer": {"workers": 8, "timeout": 5},
                "signing": {"key": "ABCD"},
            }
        )
        assert config.project.name == "tool"
        assert config.project.api_url == "https://ghe.local/api"
        assert config.transfer.workers == 8
        assert config.transfer.timeout == 5.0
        assert config.signing.key == "ABCD"

    def test_unknown_algorithm_rejected(self) -> None:
        with pytest.raises(ValueError, match="unknown digest algorithm"):
            Config.from_dict({"digests": {"algorithms": ["SHA256", "MD5"]}})

    def test_duplicate_algorithm_rejected(self) -> None:
        with pytest.raises(ValueError, match="duplicates"):
            Config.from_dict({"digests": {"algorithms": ["SHA256", "SHA256"]}})

    def test_empty_algorithm_list_rejected(self) -> None:
        with pytest.raises(ValueError, match="non-empty"):
            Config.from_dict({"digests": {"algorithms": []}})

    def test_zero_workers_rejected(self) -> None:
        with pytest.raises(ValueError, match="workers"):
            Config.from_dict({"transfer": {"workers": 0}})

    def test_zero_chunk_size_rejected(self) -> None:
        with pytest.raises(ValueError, match="chunk_size"):
            Config.from_dict({"digests": {"chunk_size": 0}})


class TestLoadConfig:
    def test_missing_file_is_error(self, tmp_path: Path) -> None:
        result = load_config(tmp_path / "relpub.toml")
        assert isinstance(result, Err)
        assert "not found" in result.error.message

    def test_missing_file_gives_defaults(self, tmp_path: Path) -> None:
        assert load_config_or_default(tmp_path / "relpub.toml") == Ok(Config())

    def test_invalid_toml(self, tmp_path: Path) -> None:
        path = tmp_path / "relpub.toml"
        path.write_text("[project\n", encoding="utf-8")
        result = load_config_or_default(path)
        assert isinstance(result, Err)
        assert "Invalid TOML" in result.error.message
        assert result.error.path == path

    def test_invalid_value(self, tmp_path: Path) -> None:
        path = tmp_path / "relpub.toml"
        path.write_text('[digests]\nalgorithms = ["NOPE"]\n', encoding="utf-8")
        result = load_config(path)
        assert isinstance(result, Err)
        assert "Invalid config" in result.error.message

    def test_valid_file(self, tmp_path: Path) -> None:
        path = tmp_path / "relpub.toml"
        path.write_text(
            '[paths]\nreleases = "dist"\n[publish]\nrequired = []\n',
            encoding="utf-8",
        )
        result = load_config(path)
        assert isinstance(result, Ok)
        assert result.value.paths.releases == "dist"
        assert result.value.publish.required == ()
