"""Adapter around the ast-grep CLI and the scan executor built on it."""

from __future__ import annotations

import os
import signal
import subprocess
import tempfile
from pathlib import Path
from typing import List, Optional, Protocol, Sequence

from .deadline import Deadline
from .errors import EngineUnavailableError, ScanTimeoutError
from .file_discovery import extension_for
from .logging import get_logger
from .models import DiscoveredFile, EngineResult

logger = get_logger("engine")


class ScanEngine(Protocol):
    """Anything that can run one scan invocation and hand back its raw output."""

    def run(self, args: Sequence[str], *, cwd: Path, deadline: Deadline) -> EngineResult:
        ...


class AstGrepEngine:
    """Executes scans using the ast-grep CLI binary."""

    def __init__(self, executable: str | None = None) -> None:
        self.executable = executable or "ast-grep"

    def run(self, args: Sequence[str], *, cwd: Path, deadline: Deadline) -> EngineResult:
        if deadline.expired:
            raise ScanTimeoutError("Scan deadline expired before ast-grep was started")
        command = [self.executable, *args]
        try:
            process = subprocess.Popen(
                command,
                cwd=str(cwd),
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                stdin=subprocess.DEVNULL,
                text=True,
                encoding="utf-8",
                errors="replace",
                start_new_session=True,
            )
        except (FileNotFoundError, PermissionError) as exc:
            raise EngineUnavailableError(self.executable, str(exc)) from exc

        try:
            output, _ = process.communicate(timeout=deadline.remaining())
        except subprocess.TimeoutExpired as exc:
            self._terminate(process)
            raise ScanTimeoutError(
                "ast-grep did not finish before the deadline; process group terminated"
            ) from exc
        except BaseException:
            self._terminate(process)
            raise
        return EngineResult(returncode=process.returncode, output=output or "")

    @staticmethod
    def _terminate(process: subprocess.Popen[str]) -> None:
        try:
            os.killpg(process.pid, signal.SIGKILL)
        except ProcessLookupError:
            pass
        process.communicate()


class ScanExecutor:
    """Runs the engine over a file batch or an inline code sample.

    A nonzero exit status from ast-grep usually means violations were found,
    so the combined output is returned verbatim regardless of the exit code.
    """

    def __init__(self, engine: ScanEngine | None = None) -> None:
        self.engine = engine or AstGrepEngine()

    def scan_files(
        self,
        files: Sequence[DiscoveredFile | Path | str],
        config_ref: str,
        root: Path,
        *,
        deadline: Optional[Deadline] = None,
    ) -> str:
        if not files:
            return "[]"
        targets: List[str] = [
            str(item.path) if isinstance(item, DiscoveredFile) else str(item) for item in files
        ]
        args = ["scan", "--config", config_ref, *targets, "--json"]
        logger.debug("Running ast-grep over %d file(s) from %s", len(targets), root)
        result = self.engine.run(args, cwd=root, deadline=deadline or Deadline.none())
        if result.returncode != 0:
            logger.debug("ast-grep exited with status %d", result.returncode)
        return result.output

    def scan_inline(
        self,
        code: str,
        language: str,
        config_ref: str,
        root: Path,
        *,
        deadline: Optional[Deadline] = None,
    ) -> str:
        handle = tempfile.NamedTemporaryFile(
            mode="w",
            encoding="utf-8",
            prefix="ast-grep-scan.",
            suffix=extension_for(language),
            delete=False,
        )
        temp_path = Path(handle.name)
        try:
            with handle:
                handle.write(code)
            return self.scan_files([temp_path], config_ref, root, deadline=deadline)
        finally:
            temp_path.unlink(missing_ok=True)


__all__ = ["AstGrepEngine", "ScanEngine", "ScanExecutor"]
