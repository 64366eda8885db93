"""Tests for context_sherpa.rules."""

from __future__ import annotations

from pathlib import Path

import pytest

from context_sherpa.errors import (
    ConfigurationMissingError,
    InvalidConfigurationError,
    RuleValidationError,
)
from context_sherpa.project_root import ProjectRootResolver
from context_sherpa.rules import RuleStore, validate_rule_document, validate_rule_filename
from tests._fixtures.project_builder import GO_SQL_RULE, ProjectBuilder


def _store(project: ProjectBuilder) -> RuleStore:
    return RuleStore(ProjectRootResolver(project.root))


def test_validate_rule_document_accepts_minimal_rule() -> None:
    data = validate_rule_document(GO_SQL_RULE)

    assert data["id"] == "go-sql-injection"
    assert data["language"] == "go"


@pytest.mark.parametrize(
    "text, field",
    [
        ("language: go\nrule:\n  pattern: x\n", "id"),
        ("id: ''\nlanguage: go\n", "id"),
        ("id: no-lang\nrule:\n  pattern: x\n", "language"),
        ("id: x\nlanguage: 3\n", "language"),
        ("- just\n- a list\n", "document"),
        ("id: [unclosed\n", "document"),
    ],
)
def test_validate_rule_document_names_failing_field(text: str, field: str) -> None:
    with pytest.raises(RuleValidationError) as excinfo:
        validate_rule_document(text)

    assert excinfo.value.field == field


@pytest.mark.parametrize("name", ["", "  ", ".", "..", "../evil", "a/b", "a\\b"])
def test_validate_rule_filename_rejects_paths(name: str) -> None:
    with pytest.raises(RuleValidationError):
        validate_rule_filename(name)


def test_rule_dir_resolves_first_entry(project: ProjectBuilder) -> None:
    project.init(rule_dirs=("lint/rules", "vendor/rules"))

    assert _store(project).rule_dir() == project.root.resolve() / "lint" / "rules"


def test_rule_dir_requires_marker(tmp_path: Path) -> None:
    store = RuleStore(ProjectRootResolver(tmp_path, marker="missing-marker-for-tests.yml"))

    with pytest.raises(ConfigurationMissingError):
        store.rule_dir()


def test_rule_dir_rejects_empty_list(project: ProjectBuilder) -> None:
    project.write({"sgconfig.yml": "ruleDirs: []\n"})

    with pytest.raises(InvalidConfigurationError):
        _store(project).rule_dir()


def test_add_creates_and_overwrites(project: ProjectBuilder) -> None:
    project.init()
    store = _store(project)

    path = store.add("go-sql-injection", GO_SQL_RULE)
    assert path == project.root.resolve() / "rules" / "go-sql-injection.yml"
    assert path.read_text(encoding="utf-8") == GO_SQL_RULE

    updated = GO_SQL_RULE.replace("severity: error", "severity: warning")
    store.add("go-sql-injection", updated)
    assert path.read_text(encoding="utf-8") == updated


def test_add_creates_missing_rule_directory(project: ProjectBuilder) -> None:
    project.write({"sgconfig.yml": "ruleDirs:\n  - custom\n"})

    path = _store(project).add("go-sql-injection", GO_SQL_RULE)

    assert path.parent == project.root.resolve() / "custom"
    assert path.exists()


def test_add_rejects_invalid_document_without_writing(project: ProjectBuilder) -> None:
    project.init()

    with pytest.raises(RuleValidationError):
        _store(project).add("broken", "id: broken\n")

    assert list((project.root / "rules").iterdir()) == []


def test_remove_reports_absent_rule(project: ProjectBuilder) -> None:
    project.init()
    store = _store(project)
    store.add("go-sql-injection", GO_SQL_RULE)

    assert store.remove("go-sql-injection") is True
    assert store.remove("go-sql-injection") is False


def test_remove_propagates_other_filesystem_errors(project: ProjectBuilder) -> None:
    project.init()
    (project.root / "rules" / "is-a-dir.yml").mkdir()

    with pytest.raises(OSError):
        _store(project).remove("is-a-dir")


def test_initialize_creates_config_and_rules(tmp_path: Path) -> None:
    store = RuleStore(ProjectRootResolver(tmp_path))

    outcome = store.initialize(tmp_path)

    assert outcome.created_config is True
    assert (tmp_path / "sgconfig.yml").read_text(encoding="utf-8") == "ruleDirs:\n  - rules\n"
    assert (tmp_path / "rules").is_dir()
    assert store.rule_dir() == tmp_path.resolve() / "rules"


def test_initialize_keeps_existing_config(project: ProjectBuilder) -> None:
    project.write({"sgconfig.yml": "ruleDirs:\n  - policies\n"})

    outcome = _store(project).initialize(project.root)

    assert outcome.created_config is False
    assert outcome.rule_dir == project.root / "policies"
    assert outcome.rule_dir.is_dir()
    assert (project.root / "sgconfig.yml").read_text(encoding="utf-8") == "ruleDirs:\n  - policies\n"
