"""Resolve path expressions into filtered scan targets."""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Callable, Dict, Iterable, Iterator, List, Optional, Sequence, Set, Tuple

from .config import DEFAULT_MAX_FILE_SIZE
from .errors import DiscoveryError
from .logging import get_logger
from .models import DiscoveredFile, SizeGateResult, SkippedFile

LANGUAGE_EXTENSIONS: Dict[str, Tuple[str, ...]] = {
    "go": (".go",),
    "python": (".py",),
    "javascript": (".js",),
    "typescript": (".ts",),
    "rust": (".rs",),
    "java": (".java",),
    "cpp": (".cpp", ".cc", ".cxx"),
    "c++": (".cpp", ".cc", ".cxx"),
    "c": (".c", ".h"),
}

VCS_DIRS: Tuple[str, ...] = (".git", ".hg", ".svn")

_GLOB_CHARS = re.compile(r"[*?\[]")

logger = get_logger("discovery")


def matches_language(path: Path | str, language: str) -> bool:
    """Return True when the file's extension belongs to ``language``."""
    extensions = LANGUAGE_EXTENSIONS.get(language.lower())
    if not extensions:
        return False
    return os.path.splitext(str(path))[1].lower() in extensions


def detect_language(path: Path | str) -> Optional[str]:
    suffix = os.path.splitext(str(path))[1].lower()
    if not suffix:
        return None
    for language, extensions in LANGUAGE_EXTENSIONS.items():
        if suffix in extensions:
            return language
    return None


def extension_for(language: str) -> str:
    """Return the primary file extension used to materialize inline code."""
    extensions = LANGUAGE_EXTENSIONS.get(language.lower())
    if extensions:
        return extensions[0]
    return f".{language}"


def has_glob(expr: str) -> bool:
    return bool(_GLOB_CHARS.search(expr))


def compile_glob(pattern: str) -> re.Pattern[str]:
    """Translate a shell glob into a regex over POSIX paths.

    ``*``, ``?`` and ``[...]`` never cross a ``/``; a whole ``**`` segment
    matches zero or more directories.
    """
    segments = pattern.replace("\\", "/").split("/")
    parts: List[str] = []
    last = len(segments) - 1
    for index, segment in enumerate(segments):
        if segment == "**":
            parts.append(".*" if index == last else "(?:[^/]*/)*")
            continue
        parts.append(_translate_segment(segment))
        if index != last:
            parts.append("/")
    return re.compile("".join(parts) + r"\Z", re.DOTALL)


def _translate_segment(segment: str) -> str:
    out: List[str] = []
    i = 0
    n = len(segment)
    while i < n:
        char = segment[i]
        i += 1
        if char == "*":
            out.append("[^/]*")
        elif char == "?":
            out.append("[^/]")
        elif char == "[":
            end = i
            if end < n and segment[end] in "!^":
                end += 1
            if end < n and segment[end] == "]":
                end += 1
            while end < n and segment[end] != "]":
                end += 1
            if end >= n:
                out.append(re.escape(char))
                continue
            body = segment[i:end].replace("\\", "\\\\")
            i = end + 1
            if body[:1] in ("!", "^"):
                body = "^" + body[1:]
            out.append(f"[{body}]")
        else:
            out.append(re.escape(char))
    return "".join(out)


class FileDiscovery:
    """Turns a file, directory or glob expression into a list of scan targets."""

    def __init__(
        self,
        base: Path | str | None = None,
        *,
        exclude_dirs: Sequence[str] = VCS_DIRS,
        follow_symlinks: bool = True,
    ) -> None:
        self.base = Path(base).resolve() if base else Path.cwd().resolve()
        self.exclude_dirs = frozenset(exclude_dirs)
        self.follow_symlinks = follow_symlinks

    def discover(self, path_expr: str, language: str | None = None) -> List[DiscoveredFile]:
        language = language.lower() if language else None
        target = Path(path_expr).expanduser()
        if not target.is_absolute():
            target = self.base / target

        if target.exists() and not target.is_dir():
            if language and not matches_language(target, language):
                return []
            return [self._describe(target)]

        if target.is_dir():
            return [
                self._describe(path)
                for path in self._walk(target)
                if not language or matches_language(path, language)
            ]

        if not has_glob(path_expr):
            logger.debug("Path %s does not exist; nothing to discover", path_expr)
            return []

        return self._discover_pattern(path_expr, language)

    def _discover_pattern(self, pattern: str, language: str | None) -> List[DiscoveredFile]:
        expanded = os.path.expanduser(pattern)
        absolute = Path(expanded).is_absolute()
        normalized = expanded.replace("\\", "/")
        if not absolute and normalized.startswith("./"):
            normalized = normalized[2:]
        matcher = compile_glob(normalized)

        files: List[DiscoveredFile] = []
        for path in self._walk(self.base):
            candidate = path.as_posix() if absolute else path.relative_to(self.base).as_posix()
            if not matcher.match(candidate):
                continue
            if language and not matches_language(path, language):
                continue
            files.append(self._describe(path))
        return files

    def _walk(self, root: Path) -> Iterator[Path]:
        def _raise(error: OSError) -> None:
            raise DiscoveryError(error.filename or root, error.strerror or str(error)) from error

        visited: Set[Tuple[int, int]] = set()
        for dirpath, dirnames, filenames in os.walk(
            root, onerror=_raise, followlinks=self.follow_symlinks
        ):
            current = Path(dirpath)
            key = _identity(current)
            if key is not None:
                if key in visited:
                    dirnames[:] = []
                    continue
                visited.add(key)

            dirnames[:] = sorted(name for name in dirnames if name not in self.exclude_dirs)
            for filename in sorted(filenames):
                yield current / filename

    @staticmethod
    def _describe(path: Path) -> DiscoveredFile:
        try:
            size = path.stat().st_size
        except FileNotFoundError:
            size = 0
        except OSError as exc:
            raise DiscoveryError(path, exc.strerror or str(exc)) from exc
        return DiscoveredFile(path=path, size=size, language=detect_language(path))


def _identity(path: Path) -> Optional[Tuple[int, int]]:
    try:
        stat_result = path.stat()
    except OSError:
        return None
    return stat_result.st_dev, stat_result.st_ino


class SizeGate:
    """Splits discovered files into those under the size ceiling and those over it."""

    def __init__(
        self,
        max_bytes: int = DEFAULT_MAX_FILE_SIZE,
        *,
        stat: Callable[[Path], os.stat_result] | None = None,
    ) -> None:
        self.max_bytes = max_bytes
        self._stat = stat or (lambda path: path.stat())

    def partition(self, files: Iterable[DiscoveredFile]) -> SizeGateResult:
        result = SizeGateResult()
        for file in files:
            try:
                size = self._stat(file.path).st_size
            except OSError as exc:
                # Discovery and filtering are not transactional; the file may be gone.
                logger.warning("Could not stat %s: %s", file.path, exc)
                continue
            if size > self.max_bytes:
                logger.info(
                    "Skipping %s (size: %d bytes > %d byte limit)", file.path, size, self.max_bytes
                )
                result.skipped.append(SkippedFile(path=file.path, size=size))
                continue
            result.valid.append(file)
        return result


__all__ = [
    "FileDiscovery",
    "LANGUAGE_EXTENSIONS",
    "SizeGate",
    "compile_glob",
    "detect_language",
    "extension_for",
    "matches_language",
]
