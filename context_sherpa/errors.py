"""Error types shared across context-sherpa components."""

from __future__ import annotations

from pathlib import Path


class SherpaError(RuntimeError):
    """Base user-facing application error."""


class ConfigError(SherpaError):
    """Raised when runtime settings cannot be parsed."""


class ConfigurationMissingError(SherpaError):
    def __init__(self, marker: str, start: Path, *, walked: bool = True) -> None:
        self.marker = marker
        self.start = start
        where = f"{start} or any parent directory" if walked else str(start)
        super().__init__(
            f"Configuration file '{marker}' not found in {where}. "
            "Please run the 'initialize_project' tool first to set up the project."
        )


class InvalidConfigurationError(SherpaError):
    def __init__(self, path: Path, detail: str) -> None:
        self.path = path
        self.detail = detail
        super().__init__(f"Invalid configuration ({detail}): {path}")


class DiscoveryError(SherpaError):
    def __init__(self, path: Path | str, detail: str) -> None:
        self.path = path
        self.detail = detail
        super().__init__(f"Error discovering files ({detail}): {path}")


class EngineUnavailableError(SherpaError):
    def __init__(self, executable: str, detail: str = "") -> None:
        self.executable = executable
        message = f"Unable to launch scanning engine '{executable}'"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


class ScanTimeoutError(SherpaError):
    """Raised when a scan outlives its deadline."""


class RegistryUnavailableError(SherpaError):
    def __init__(self, url: str, detail: str) -> None:
        self.url = url
        self.detail = detail
        super().__init__(f"Failed to fetch {url}: {detail}")


class RuleValidationError(SherpaError):
    def __init__(self, field: str, message: str) -> None:
        self.field = field
        self.message = message
        super().__init__(message)


class RuleNotFoundError(SherpaError):
    def __init__(self, rule_id: str) -> None:
        self.rule_id = rule_id
        super().__init__(f"Rule '{rule_id}' not found in community repository.")


__all__ = [
    "ConfigError",
    "ConfigurationMissingError",
    "DiscoveryError",
    "EngineUnavailableError",
    "InvalidConfigurationError",
    "RegistryUnavailableError",
    "RuleNotFoundError",
    "RuleValidationError",
    "ScanTimeoutError",
    "SherpaError",
]
