"""Caller-facing operations: scanning, rule management and registry access."""

from __future__ import annotations

from pathlib import Path
from typing import Callable, Optional, Sequence

from .config import MARKER_FILENAME, SherpaSettings, load_settings
from .deadline import Deadline
from .engine import AstGrepEngine, ScanExecutor
from .errors import (
    ConfigurationMissingError,
    DiscoveryError,
    InvalidConfigurationError,
    RegistryUnavailableError,
    RuleNotFoundError,
    RuleValidationError,
    ScanTimeoutError,
)
from .file_discovery import FileDiscovery, SizeGate
from .logging import get_logger
from .models import ToolResult
from .project_root import ProjectRootResolver
from .registry import (
    CommunityRuleIndex,
    IndexCache,
    UrllibFetcher,
    format_rule_details,
    format_search_results,
    parse_tags,
)
from .rules import RuleStore

# Failures that are reported back to the caller instead of raised.
_DOMAIN_ERRORS = (
    ConfigurationMissingError,
    InvalidConfigurationError,
    DiscoveryError,
    ScanTimeoutError,
    RegistryUnavailableError,
    RuleValidationError,
    RuleNotFoundError,
)


class Orchestrator:
    """Coordinates project root discovery, scanning, rule storage and the registry.

    Every operation resolves the project root afresh. Domain failures come back
    as an unsuccessful :class:`ToolResult`; only an engine that cannot be
    launched or a temporary file that cannot be created propagates.
    """

    def __init__(
        self,
        settings: SherpaSettings | None = None,
        *,
        resolver: ProjectRootResolver | None = None,
        discovery_factory: Callable[[Path], FileDiscovery] | None = None,
        executor: ScanExecutor | None = None,
        rule_store: RuleStore | None = None,
        registry: CommunityRuleIndex | None = None,
    ) -> None:
        self.settings = settings or load_settings()
        self.resolver = resolver or ProjectRootResolver(self.settings.project_root)
        self.discovery_factory = discovery_factory or FileDiscovery
        self.size_gate = SizeGate(self.settings.max_file_size)
        self.executor = executor or ScanExecutor(AstGrepEngine(self.settings.ast_grep))
        self.rule_store = rule_store or RuleStore(self.resolver)
        self.registry = registry or CommunityRuleIndex(
            UrllibFetcher(),
            IndexCache(self.settings.cache_ttl),
            base_url=self.settings.registry_url,
            timeout=self.settings.request_timeout,
        )
        self.logger = get_logger("orchestrator")

    # ------------------------------------------------------------------
    # Scanning

    def scan_code(
        self,
        code: str,
        language: str,
        *,
        sgconfig: str | None = None,
        timeout: float | None = None,
    ) -> ToolResult:
        """Scan an inline code sample against the configured rules."""
        if not language.strip():
            return ToolResult(False, "A language is required to scan inline code.")
        try:
            root = self.resolver.resolve()
            config_ref = self._config_ref(root, sgconfig)
            self.logger.debug("scan_code: using config %s", config_ref)
            output = self.executor.scan_inline(
                code,
                language.strip(),
                config_ref,
                root,
                deadline=self._scan_deadline(timeout),
            )
        except _DOMAIN_ERRORS as exc:
            return _failure(exc)
        return ToolResult(True, output)

    def scan_path(
        self,
        path: str,
        *,
        sgconfig: str | None = None,
        language: str | None = None,
        timeout: float | None = None,
    ) -> ToolResult:
        """Scan a file, directory or glob pattern relative to the project root."""
        try:
            root = self.resolver.resolve()
            config_ref = self._config_ref(root, sgconfig)
            self.logger.debug("scan_path: using config %s", config_ref)
            self.logger.debug("scan_path: scanning %s", path)
            if language:
                self.logger.debug("scan_path: language filter %s", language)

            files = self.discovery_factory(root).discover(path, language or None)
            if not files:
                return ToolResult(True, "[]")
            self.logger.debug("scan_path: found %d file(s) to scan", len(files))

            gated = self.size_gate.partition(files)
            self.logger.debug(
                "scan_path: %d file(s) valid for scanning, %d skipped (over %d bytes)",
                len(gated.valid),
                len(gated.skipped),
                self.size_gate.max_bytes,
            )
            if not gated.valid:
                return ToolResult(True, "[]", skipped=gated.skipped)

            output = self.executor.scan_files(
                gated.valid, config_ref, root, deadline=self._scan_deadline(timeout)
            )
        except _DOMAIN_ERRORS as exc:
            return _failure(exc)
        return ToolResult(True, output, skipped=gated.skipped)

    # ------------------------------------------------------------------
    # Local rules

    def add_or_update_rule(self, rule_id: str, rule_yaml: str) -> ToolResult:
        try:
            path = self.rule_store.add(rule_id, rule_yaml)
        except _DOMAIN_ERRORS as exc:
            return _failure(exc)
        except OSError as exc:
            return ToolResult(False, f"Error writing rule file: {exc}")
        self.logger.info("Rule %s written to %s", rule_id, path)
        return ToolResult(True, f"Rule '{rule_id}' was added or updated successfully.")

    def remove_rule(self, rule_id: str) -> ToolResult:
        try:
            removed = self.rule_store.remove(rule_id)
        except _DOMAIN_ERRORS as exc:
            return _failure(exc)
        except OSError as exc:
            return ToolResult(False, f"Error removing rule file: {exc}")
        if not removed:
            return ToolResult(True, f"Rule '{rule_id}' not found.")
        return ToolResult(True, f"Rule '{rule_id}' was removed successfully.")

    def initialize_project(self) -> ToolResult:
        root = (self.resolver.override or Path.cwd()).resolve()
        try:
            outcome = self.rule_store.initialize(root)
        except InvalidConfigurationError as exc:
            return _failure(exc)
        except OSError as exc:
            return ToolResult(False, f"Error initializing project: {exc}")
        if outcome.created_config:
            return ToolResult(
                True,
                f"ast-grep project initialized successfully. Created {outcome.config_path.name} "
                f"and {outcome.rule_dir.name}/ directory.",
            )
        return ToolResult(
            True,
            f"{outcome.config_path.name} already exists in {root}; "
            f"rule directory {outcome.rule_dir} is ready.",
        )

    # ------------------------------------------------------------------
    # Community registry

    def search_community_rules(
        self,
        query: str = "",
        *,
        language: str | None = None,
        tags: Sequence[str] | str | None = None,
        timeout: float | None = None,
    ) -> ToolResult:
        tag_list = parse_tags(tags) if isinstance(tags, str) else list(tags or [])
        try:
            matches = self.registry.search(
                query, language=language, tags=tag_list, deadline=_deadline(timeout)
            )
        except RegistryUnavailableError as exc:
            return ToolResult(False, f"Failed to fetch community rules: {exc}")
        return ToolResult(True, format_search_results(matches))

    def get_community_rule_details(
        self, rule_id: str, *, timeout: float | None = None
    ) -> ToolResult:
        try:
            entry, body = self.registry.details(rule_id, deadline=_deadline(timeout))
        except _DOMAIN_ERRORS as exc:
            return _failure(exc)
        return ToolResult(True, format_rule_details(entry, body))

    def import_community_rule(
        self, rule_id: str, *, timeout: float | None = None
    ) -> ToolResult:
        try:
            self.resolver.resolve()
            path = self.registry.import_rule(
                rule_id, self.rule_store, deadline=_deadline(timeout)
            )
        except RuleValidationError as exc:
            return ToolResult(False, f"Invalid rule file for '{rule_id}': {exc}")
        except _DOMAIN_ERRORS as exc:
            return _failure(exc)
        except OSError as exc:
            return ToolResult(False, f"Error writing rule file: {exc}")
        return ToolResult(
            True,
            f"Rule '{rule_id}' was imported successfully from the community repository to {path}.",
        )

    # ------------------------------------------------------------------
    # Internals

    def _config_ref(self, root: Path, sgconfig: str | None) -> str:
        config_ref = sgconfig or MARKER_FILENAME
        candidate = Path(config_ref).expanduser()
        if not candidate.is_absolute():
            candidate = root / candidate
        if not candidate.is_file():
            raise ConfigurationMissingError(config_ref, root, walked=False)
        return config_ref

    def _scan_deadline(self, timeout: float | None) -> Deadline:
        return _deadline(timeout if timeout is not None else self.settings.scan_timeout)


def _deadline(timeout: Optional[float]) -> Deadline:
    return Deadline(timeout) if timeout is not None else Deadline.none()


def _failure(exc: Exception) -> ToolResult:
    return ToolResult(False, f"Error: {exc}")


__all__ = ["Orchestrator"]
