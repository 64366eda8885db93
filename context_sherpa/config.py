"""Configuration loading for context-sherpa (sgconfig.yml and runtime settings)."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, List, Mapping, Optional

import yaml

from .errors import ConfigError, InvalidConfigurationError

MARKER_FILENAME = "sgconfig.yml"
DEFAULT_RULES_DIRNAME = "rules"
DEFAULT_MARKER_DOCUMENT = f"ruleDirs:\n  - {DEFAULT_RULES_DIRNAME}\n"

DEFAULT_MAX_FILE_SIZE = 1024 * 1024
DEFAULT_REGISTRY_URL = (
    "https://raw.githubusercontent.com/hackafterdark/context-sherpa-community-rules/main"
)
DEFAULT_CACHE_TTL = 300.0
DEFAULT_AST_GREP = "ast-grep"
DEFAULT_REQUEST_TIMEOUT = 30.0


@dataclass(frozen=True)
class MarkerConfig:
    """Parsed view of the marker document that anchors a project root."""

    path: Path
    rule_dirs: List[str] = field(default_factory=list)

    @property
    def root(self) -> Path:
        return self.path.parent

    @property
    def rule_dir(self) -> Path:
        """Return the active rule directory, resolved against the document's directory."""
        return self.root / self.rule_dirs[0]


def load_marker_config(path: Path) -> MarkerConfig:
    """Load and validate sgconfig.yml; re-read on every call."""
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise InvalidConfigurationError(path, f"unreadable: {exc}") from exc

    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise InvalidConfigurationError(path, f"YAML parse error: {exc}") from exc

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise InvalidConfigurationError(path, "document must contain a mapping at the root")

    raw_dirs = data.get("ruleDirs")
    if raw_dirs is None:
        raise InvalidConfigurationError(path, "ruleDirs not specified")
    if isinstance(raw_dirs, str):
        raw_dirs = [raw_dirs]
    if not isinstance(raw_dirs, list) or not raw_dirs:
        raise InvalidConfigurationError(path, "ruleDirs must be a non-empty list")

    rule_dirs: List[str] = []
    for index, entry in enumerate(raw_dirs):
        value = _as_str(entry)
        if value is None or not value.strip():
            raise InvalidConfigurationError(path, f"ruleDirs[{index}] must be a non-empty string")
        rule_dirs.append(value.strip())

    return MarkerConfig(path=path, rule_dirs=rule_dirs)


@dataclass
class SherpaSettings:
    """Runtime knobs shared by the CLI and service mode."""

    project_root: Optional[Path] = None
    max_file_size: int = DEFAULT_MAX_FILE_SIZE
    registry_url: str = DEFAULT_REGISTRY_URL
    cache_ttl: float = DEFAULT_CACHE_TTL
    ast_grep: str = DEFAULT_AST_GREP
    scan_timeout: Optional[float] = None
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT


_ENV_PREFIX = "SHERPA_"


def load_settings(
    env: Mapping[str, str] | None = None, **overrides: Any
) -> SherpaSettings:
    """Build settings from defaults, SHERPA_* environment variables, then overrides."""
    source = os.environ if env is None else env
    settings = SherpaSettings()

    root = _env_value(source, "PROJECT_ROOT")
    if root:
        settings.project_root = Path(root).expanduser()
    size = _env_value(source, "MAX_FILE_SIZE")
    if size:
        settings.max_file_size = _parse_int("SHERPA_MAX_FILE_SIZE", size)
    url = _env_value(source, "REGISTRY_URL")
    if url:
        settings.registry_url = url
    ttl = _env_value(source, "CACHE_TTL")
    if ttl:
        settings.cache_ttl = _parse_float("SHERPA_CACHE_TTL", ttl)
    executable = _env_value(source, "AST_GREP")
    if executable:
        settings.ast_grep = executable
    scan_timeout = _env_value(source, "SCAN_TIMEOUT")
    if scan_timeout:
        settings.scan_timeout = _parse_float("SHERPA_SCAN_TIMEOUT", scan_timeout)
    request_timeout = _env_value(source, "REQUEST_TIMEOUT")
    if request_timeout:
        settings.request_timeout = _parse_float("SHERPA_REQUEST_TIMEOUT", request_timeout)

    for key, value in overrides.items():
        if value is None:
            continue
        if not hasattr(settings, key):
            raise ConfigError(f"Unknown setting: {key}")
        if key == "project_root":
            value = Path(value).expanduser()
        setattr(settings, key, value)

    settings.registry_url = settings.registry_url.rstrip("/")
    _validate(settings)
    return settings


def _validate(settings: SherpaSettings) -> None:
    if settings.max_file_size < 0:
        raise ConfigError("max_file_size must not be negative")
    if settings.cache_ttl < 0:
        raise ConfigError("cache_ttl must not be negative")
    if settings.scan_timeout is not None and settings.scan_timeout <= 0:
        raise ConfigError("scan_timeout must be positive")
    if settings.request_timeout <= 0:
        raise ConfigError("request_timeout must be positive")
    if not settings.registry_url:
        raise ConfigError("registry_url must not be empty")


def _env_value(env: Mapping[str, str], suffix: str) -> Optional[str]:
    value = env.get(f"{_ENV_PREFIX}{suffix}")
    if value is None:
        return None
    value = value.strip()
    return value or None


def _parse_int(name: str, value: str) -> int:
    try:
        return int(value)
    except ValueError as exc:
        raise ConfigError(f"{name} must be an integer, got {value!r}") from exc


def _parse_float(name: str, value: str) -> float:
    try:
        return float(value)
    except ValueError as exc:
        raise ConfigError(f"{name} must be a number, got {value!r}") from exc


def _as_str(value: Any) -> Optional[str]:
    return str(value) if isinstance(value, (str, int, float)) and not isinstance(value, bool) else None


__all__ = [
    "DEFAULT_MARKER_DOCUMENT",
    "MARKER_FILENAME",
    "MarkerConfig",
    "SherpaSettings",
    "load_marker_config",
    "load_settings",
]
