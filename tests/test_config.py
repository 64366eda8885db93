"""Tests for context_sherpa.config."""

from __future__ import annotations

from pathlib import Path

import pytest

from context_sherpa.config import (
    DEFAULT_MAX_FILE_SIZE,
    DEFAULT_REGISTRY_URL,
    SherpaSettings,
    load_marker_config,
    load_settings,
)
from context_sherpa.errors import ConfigError, InvalidConfigurationError


def _write_config(tmp_path: Path, text: str) -> Path:
    path = tmp_path / "sgconfig.yml"
    path.write_text(text, encoding="utf-8")
    return path


def test_marker_config_uses_first_rule_dir(tmp_path: Path) -> None:
    path = _write_config(tmp_path, "ruleDirs:\n  - ' custom-rules '\n  - more\n")

    config = load_marker_config(path)

    assert config.rule_dirs == ["custom-rules", "more"]
    assert config.root == tmp_path
    assert config.rule_dir == tmp_path / "custom-rules"


def test_marker_config_rejects_empty_rule_dirs(tmp_path: Path) -> None:
    path = _write_config(tmp_path, "ruleDirs: []\n")

    with pytest.raises(InvalidConfigurationError) as excinfo:
        load_marker_config(path)

    assert "non-empty" in excinfo.value.detail


def test_marker_config_requires_rule_dirs_key(tmp_path: Path) -> None:
    path = _write_config(tmp_path, "utilDirs:\n  - utils\n")

    with pytest.raises(InvalidConfigurationError) as excinfo:
        load_marker_config(path)

    assert "ruleDirs not specified" in str(excinfo.value)


def test_marker_config_rejects_malformed_yaml(tmp_path: Path) -> None:
    path = _write_config(tmp_path, "ruleDirs: [rules\n")

    with pytest.raises(InvalidConfigurationError):
        load_marker_config(path)


def test_marker_config_rejects_blank_entries(tmp_path: Path) -> None:
    path = _write_config(tmp_path, "ruleDirs:\n  - '  '\n")

    with pytest.raises(InvalidConfigurationError) as excinfo:
        load_marker_config(path)

    assert "ruleDirs[0]" in excinfo.value.detail


def test_load_settings_defaults() -> None:
    settings = load_settings(env={})

    assert isinstance(settings, SherpaSettings)
    assert settings.project_root is None
    assert settings.max_file_size == DEFAULT_MAX_FILE_SIZE == 1_048_576
    assert settings.registry_url == DEFAULT_REGISTRY_URL
    assert settings.cache_ttl == pytest.approx(300.0)
    assert settings.ast_grep == "ast-grep"
    assert settings.scan_timeout is None


def test_load_settings_reads_environment(tmp_path: Path) -> None:
    settings = load_settings(
        env={
            "SHERPA_PROJECT_ROOT": str(tmp_path),
            "SHERPA_MAX_FILE_SIZE": "2048",
            "SHERPA_REGISTRY_URL": "https://mirror.example.test/rules/",
            "SHERPA_CACHE_TTL": "60",
            "SHERPA_AST_GREP": "/opt/bin/sg",
            "SHERPA_SCAN_TIMEOUT": "12.5",
        }
    )

    assert settings.project_root == tmp_path
    assert settings.max_file_size == 2048
    assert settings.registry_url == "https://mirror.example.test/rules"
    assert settings.cache_ttl == pytest.approx(60.0)
    assert settings.ast_grep == "/opt/bin/sg"
    assert settings.scan_timeout == pytest.approx(12.5)


def test_overrides_win_over_environment() -> None:
    settings = load_settings(
        env={"SHERPA_MAX_FILE_SIZE": "2048"}, max_file_size=10, cache_ttl=None
    )

    assert settings.max_file_size == 10
    assert settings.cache_ttl == pytest.approx(300.0)


def test_invalid_environment_value_names_variable() -> None:
    with pytest.raises(ConfigError) as excinfo:
        load_settings(env={"SHERPA_MAX_FILE_SIZE": "lots"})

    assert "SHERPA_MAX_FILE_SIZE" in str(excinfo.value)


def test_negative_size_rejected() -> None:
    with pytest.raises(ConfigError):
        load_settings(env={}, max_file_size=-1)
