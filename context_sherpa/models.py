"""Core data models shared across context-sherpa components."""

from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Tuple


@dataclass(frozen=True)
class DiscoveredFile:
    """A candidate scan target found by file discovery."""

    path: Path
    size: int
    language: Optional[str]


@dataclass(frozen=True)
class SkippedFile:
    """A file left out of a scan because it exceeds the size ceiling."""

    path: Path
    size: int


@dataclass
class SizeGateResult:
    """Partition of discovered files into scannable and oversize sets."""

    valid: List[DiscoveredFile] = field(default_factory=list)
    skipped: List[SkippedFile] = field(default_factory=list)


@dataclass(frozen=True)
class EngineResult:
    """Exit status and combined stdout/stderr of one engine invocation."""

    returncode: int
    output: str


@dataclass(frozen=True)
class CommunityRule:
    """One entry of the community rule index."""

    id: str
    path: str
    tool: str = ""
    language: str = ""
    author: str = ""
    tags: Tuple[str, ...] = ()
    description: str = ""

    @property
    def filename(self) -> str:
        return self.path.rstrip("/").split("/")[-1]


@dataclass(frozen=True)
class RegistrySnapshot:
    """Immutable copy of the community index as fetched at one point in time."""

    version: int
    entries: Tuple[CommunityRule, ...]


@dataclass
class ToolResult:
    """Caller-facing outcome of one operation."""

    success: bool
    text: str
    skipped: List[SkippedFile] = field(default_factory=list)
