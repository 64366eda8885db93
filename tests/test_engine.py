"""Tests for context_sherpa.engine."""

from __future__ import annotations

import stat
import time
from pathlib import Path
from typing import Sequence

import pytest

from context_sherpa.deadline import Deadline
from context_sherpa.engine import AstGrepEngine, ScanExecutor
from context_sherpa.errors import EngineUnavailableError, ScanTimeoutError
from context_sherpa.models import DiscoveredFile
from tests._fixtures.project_builder import FakeEngine


def _script(tmp_path: Path, body: str) -> Path:
    path = tmp_path / "fake-ast-grep"
    path.write_text("#!/bin/sh\n" + body, encoding="utf-8")
    path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return path


def test_scan_files_builds_engine_arguments(tmp_path: Path, engine: FakeEngine) -> None:
    files = [
        DiscoveredFile(path=tmp_path / "a.go", size=1, language="go"),
        DiscoveredFile(path=tmp_path / "b.go", size=1, language="go"),
    ]

    output = ScanExecutor(engine).scan_files(files, "sgconfig.yml", tmp_path)

    assert output == '[{"ruleId": "no-sprintf"}]'
    call = engine.calls[0]
    assert call["args"] == [
        "scan",
        "--config",
        "sgconfig.yml",
        str(tmp_path / "a.go"),
        str(tmp_path / "b.go"),
        "--json",
    ]
    assert call["cwd"] == tmp_path


def test_empty_batch_returns_empty_array_without_engine(tmp_path: Path, engine: FakeEngine) -> None:
    assert ScanExecutor(engine).scan_files([], "sgconfig.yml", tmp_path) == "[]"
    assert engine.calls == []


def test_nonzero_exit_is_not_an_error(tmp_path: Path) -> None:
    script = _script(
        tmp_path,
        'echo "[{\\"ruleId\\": \\"x\\"}]"\necho "warning: noise" 1>&2\nexit 1\n',
    )

    output = ScanExecutor(AstGrepEngine(str(script))).scan_files(
        [tmp_path / "a.go"], "sgconfig.yml", tmp_path
    )

    assert '[{"ruleId": "x"}]' in output
    assert "warning: noise" in output


def test_undecodable_output_is_returned_with_replacement(tmp_path: Path) -> None:
    script = _script(
        tmp_path,
        r"""printf '[{"text":"caf\351"}]'
printf '\nwarning: bad path \351.go\n' 1>&2
exit 1
""",
    )

    output = ScanExecutor(AstGrepEngine(str(script))).scan_files(
        [tmp_path / "a.go"], "sgconfig.yml", tmp_path
    )

    assert output.startswith('[{"text":"caf�"}]')
    assert "warning: bad path �.go" in output


def test_engine_runs_in_project_root(tmp_path: Path) -> None:
    workdir = tmp_path / "root"
    workdir.mkdir()
    script = _script(tmp_path, "pwd\n")

    result = AstGrepEngine(str(script)).run([], cwd=workdir, deadline=Deadline.none())

    assert result.returncode == 0
    assert Path(result.output.strip()).resolve() == workdir.resolve()


def test_missing_executable_raises_engine_unavailable(tmp_path: Path) -> None:
    engine = AstGrepEngine(str(tmp_path / "no-such-ast-grep"))

    with pytest.raises(EngineUnavailableError) as excinfo:
        engine.run(["scan"], cwd=tmp_path, deadline=Deadline.none())

    assert "no-such-ast-grep" in str(excinfo.value)


def test_deadline_terminates_process_group(tmp_path: Path) -> None:
    script = _script(tmp_path, "sleep 30 &\nwait\n")
    engine = AstGrepEngine(str(script))

    started = time.monotonic()
    with pytest.raises(ScanTimeoutError):
        engine.run(["scan"], cwd=tmp_path, deadline=Deadline(0.5))

    assert time.monotonic() - started < 10


def test_expired_deadline_skips_launch(tmp_path: Path) -> None:
    engine = AstGrepEngine(str(tmp_path / "never-called"))

    with pytest.raises(ScanTimeoutError):
        engine.run(["scan"], cwd=tmp_path, deadline=Deadline(0))


def test_scan_inline_materializes_and_removes_temp_file(tmp_path: Path, engine: FakeEngine) -> None:
    seen: dict[str, object] = {}

    def _inspect(args: Sequence[str]) -> None:
        target = Path(args[3])
        seen["path"] = target
        seen["exists"] = target.exists()
        seen["content"] = target.read_text(encoding="utf-8")

    engine.on_run = _inspect

    output = ScanExecutor(engine).scan_inline("package main\n", "go", "sgconfig.yml", tmp_path)

    assert output == '[{"ruleId": "no-sprintf"}]'
    target = seen["path"]
    assert isinstance(target, Path)
    assert seen["exists"] is True
    assert seen["content"] == "package main\n"
    assert target.name.startswith("ast-grep-scan.")
    assert target.suffix == ".go"
    assert not target.exists()


def test_scan_inline_removes_temp_file_when_engine_fails(tmp_path: Path, engine: FakeEngine) -> None:
    seen: list[Path] = []

    def _explode(args: Sequence[str]) -> None:
        seen.append(Path(args[3]))
        raise EngineUnavailableError("ast-grep", "missing")

    engine.on_run = _explode

    with pytest.raises(EngineUnavailableError):
        ScanExecutor(engine).scan_inline("x = 1\n", "python", "sgconfig.yml", tmp_path)

    assert seen and seen[0].suffix == ".py"
    assert not seen[0].exists()
