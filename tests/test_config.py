import logging
from pathlib import Path

import pytest

from srag.config import (
    find_config_path,
    get_chunks_dir,
    get_config_value,
    get_documents_dir,
    get_storage_dir,
    load_config,
    resolve_path,
    setup_logging,
)


class TestLoadConfig:
    def test_loads_sections(self, temp_config: Path) -> None:
        config = load_config(temp_config)

        assert config["llm"]["provider"] == "groq"
        assert config["critic"]["quality_threshold"] == 0.9
        assert config["ingestion"]["chunk_size"] == 200

    def test_env_default_used_when_unset(
        self, temp_config: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.delenv("SRAG_TEST_DOCS", raising=False)
        config = load_config(temp_config)
        assert config["ingestion"]["directory"] == "documents"

    def test_env_value_substituted(
        self, temp_config: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("SRAG_TEST_DOCS", "/data/papers")
        config = load_config(temp_config)
        assert config["ingestion"]["directory"] == "/data/papers"

    def test_missing_var_without_default_is_empty(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.delenv("SRAG_UNSET_VAR", raising=False)
        config_path = tmp_path / "config.toml"
        config_path.write_text('[llm]\napi_key = "${SRAG_UNSET_VAR}"\nstops = ["${SRAG_UNSET_VAR:-x}"]\n')

        config = load_config(config_path)

        assert config["llm"]["api_key"] == ""
        assert config["llm"]["stops"] == ["x"]


class TestConfigValues:
    def test_dot_path_lookup(self) -> None:
        config = {"retrieval": {"num_results": 5}}
        assert get_config_value(config, "retrieval.num_results") == 5

    def test_missing_key_returns_default(self) -> None:
        config = {"retrieval": {"num_results": 5}}
        assert get_config_value(config, "retrieval.threshold", 0.3) == 0.3
        assert get_config_value(config, "critic.strict_mode", True) is True

    def test_non_dict_intermediate_returns_default(self) -> None:
        config = {"retrieval": 5}
        assert get_config_value(config, "retrieval.num_results", 10) == 10


class TestPaths:
    def test_relative_path_resolves_against_config(self, tmp_path: Path) -> None:
        config_path = tmp_path / "config.toml"
        assert resolve_path("storage", config_path) == (tmp_path / "storage").resolve()

    def test_absolute_path_unchanged(self, tmp_path: Path) -> None:
        assert resolve_path(tmp_path / "x", tmp_path / "config.toml") == tmp_path / "x"

    def test_storage_and_chunks_dirs(self, tmp_path: Path) -> None:
        config_path = tmp_path / "config.toml"
        config = {"storage": {"directory": "data"}}

        assert get_storage_dir(config, config_path) == (tmp_path / "data").resolve()
        assert get_chunks_dir(config, config_path) == (tmp_path / "data").resolve() / "chunks"

    def test_explicit_chunks_dir(self, tmp_path: Path) -> None:
        config_path = tmp_path / "config.toml"
        config = {"storage": {"chunks_directory": "processed"}}
        assert get_chunks_dir(config, config_path) == (tmp_path / "processed").resolve()

    def test_documents_dir_default(self, tmp_path: Path) -> None:
        config_path = tmp_path / "config.toml"
        assert get_documents_dir({}, config_path) == (tmp_path / "documents").resolve()

    def test_find_config_prefers_explicit(self, tmp_path: Path) -> None:
        explicit = tmp_path / "custom.toml"
        assert find_config_path(explicit) == explicit


class TestSetupLogging:
    def test_level_from_config(self, monkeypatch: pytest.MonkeyPatch) -> None:
        calls = []
        monkeypatch.setattr(logging, "basicConfig", lambda **kwargs: calls.append(kwargs))

        setup_logging({"logging": {"level": "debug"}})

        assert calls[0]["level"] == logging.DEBUG

    def test_unknown_level_falls_back_to_info(self, monkeypatch: pytest.MonkeyPatch) -> None:
        calls = []
        monkeypatch.setattr(logging, "basicConfig", lambda **kwargs: calls.append(kwargs))

        setup_logging({"logging": {"level": "chatty"}})
        setup_logging(None)

        assert calls[0]["level"] == logging.INFO
        assert calls[1]["level"] == logging.INFO
