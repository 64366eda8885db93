"""Local rule storage and minimal rule validation."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict

import yaml

from .config import (
    DEFAULT_MARKER_DOCUMENT,
    DEFAULT_RULES_DIRNAME,
    MarkerConfig,
    load_marker_config,
)
from .errors import RuleValidationError
from .logging import get_logger
from .project_root import ProjectRootResolver

RULE_EXTENSION = ".yml"

logger = get_logger("rules")


def validate_rule_document(text: str) -> Dict[str, Any]:
    """Check that ``text`` is a YAML mapping with non-empty ``id`` and ``language``.

    Anything deeper (the ``rule`` body itself) is left for ast-grep to reject
    at scan time.
    """
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise RuleValidationError("document", f"could not parse YAML: {exc}") from exc
    if not isinstance(data, dict):
        raise RuleValidationError("document", "rule document must be a YAML mapping")
    for key in ("id", "language"):
        value = data.get(key)
        if not isinstance(value, str) or not value.strip():
            raise RuleValidationError(key, f"rule '{key}' is missing or empty")
    return data


def validate_rule_filename(name: str) -> str:
    stripped = name.strip()
    if not stripped or stripped in {".", ".."} or "/" in stripped or "\\" in stripped:
        raise RuleValidationError("rule_id", f"invalid rule identifier: {name!r}")
    return stripped


@dataclass(frozen=True)
class InitResult:
    """Outcome of initializing a project for ast-grep."""

    config_path: Path
    rule_dir: Path
    created_config: bool


class RuleStore:
    """Create, overwrite and delete rule documents in the project's rule directory."""

    def __init__(
        self,
        resolver: ProjectRootResolver | None = None,
        *,
        extension: str = RULE_EXTENSION,
    ) -> None:
        self.resolver = resolver or ProjectRootResolver()
        self.extension = extension

    def marker_config(self, start: Path | None = None) -> MarkerConfig:
        return load_marker_config(self.resolver.marker_path(start))

    def rule_dir(self, start: Path | None = None) -> Path:
        return self.marker_config(start).rule_dir

    def rule_path(self, rule_id: str, start: Path | None = None) -> Path:
        return self.rule_dir(start) / f"{validate_rule_filename(rule_id)}{self.extension}"

    def add(self, rule_id: str, document: str, start: Path | None = None) -> Path:
        """Validate and write ``<rule_dir>/<rule_id>.yml``, replacing any existing file."""
        rule_id = validate_rule_filename(rule_id)
        validate_rule_document(document)
        return self._write(f"{rule_id}{self.extension}", document, start)

    def write(self, filename: str, document: str, start: Path | None = None) -> Path:
        """Write an already validated document under an explicit filename."""
        return self._write(validate_rule_filename(filename), document, start)

    def remove(self, rule_id: str, start: Path | None = None) -> bool:
        """Delete a rule file. Returns False when it was already absent."""
        path = self.rule_path(rule_id, start)
        try:
            path.unlink()
        except FileNotFoundError:
            return False
        logger.debug("Removed rule file %s", path)
        return True

    def initialize(self, root: Path) -> InitResult:
        """Create sgconfig.yml and the rules/ directory under ``root``.

        An existing sgconfig.yml is left untouched.
        """
        config_path = root / self.resolver.marker
        created = False
        if config_path.exists():
            rule_dir = load_marker_config(config_path).rule_dir
        else:
            rule_dir = root / DEFAULT_RULES_DIRNAME
            root.mkdir(parents=True, exist_ok=True)
            config_path.write_text(DEFAULT_MARKER_DOCUMENT, encoding="utf-8")
            created = True
        rule_dir.mkdir(parents=True, exist_ok=True)
        return InitResult(config_path=config_path, rule_dir=rule_dir, created_config=created)

    def _write(self, filename: str, document: str, start: Path | None) -> Path:
        rule_dir = self.rule_dir(start)
        rule_dir.mkdir(parents=True, exist_ok=True)
        path = rule_dir / filename
        path.write_text(document, encoding="utf-8")
        logger.debug("Wrote rule file %s", path)
        return path


__all__ = [
    "InitResult",
    "RuleStore",
    "validate_rule_document",
    "validate_rule_filename",
]
