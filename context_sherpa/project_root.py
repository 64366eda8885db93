"""Project root discovery anchored on the sgconfig.yml marker."""

from __future__ import annotations

from pathlib import Path

from .config import MARKER_FILENAME
from .errors import ConfigurationMissingError


class ProjectRootResolver:
    """Walks upward from a start directory until the marker document is found.

    The start directory is, in priority order, the ``start`` argument passed to
    :meth:`resolve`, the configured ``override``, then the process working
    directory. Nothing is cached: every call re-walks the tree.
    """

    def __init__(
        self,
        override: Path | str | None = None,
        *,
        marker: str = MARKER_FILENAME,
    ) -> None:
        self.override = Path(override).expanduser() if override else None
        self.marker = marker

    def resolve(self, start: Path | str | None = None) -> Path:
        origin = self._start_directory(start)
        current = origin
        while True:
            if (current / self.marker).is_file():
                return current
            parent = current.parent
            if parent == current:
                raise ConfigurationMissingError(self.marker, origin)
            current = parent

    def marker_path(self, start: Path | str | None = None) -> Path:
        return self.resolve(start) / self.marker

    def _start_directory(self, start: Path | str | None) -> Path:
        if start:
            return Path(start).expanduser().resolve()
        if self.override is not None:
            return self.override.resolve()
        return Path.cwd().resolve()


__all__ = ["ProjectRootResolver"]
