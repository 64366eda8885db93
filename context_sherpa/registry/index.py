"""Client for the community rule index: fetch, cache, search and import."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Iterable, List, Optional, Sequence

from ..config import DEFAULT_REGISTRY_URL, DEFAULT_REQUEST_TIMEOUT
from ..deadline import Deadline
from ..errors import RegistryUnavailableError, RuleNotFoundError
from ..logging import get_logger
from ..models import CommunityRule, RegistrySnapshot
from ..rules import RuleStore, validate_rule_document
from .cache import IndexCache
from .transport import DocumentFetcher, UrllibFetcher

INDEX_FILENAME = "index.json"

logger = get_logger("registry")


def parse_index(payload: bytes | str, *, url: str = INDEX_FILENAME) -> RegistrySnapshot:
    """Parse ``{"version": int, "rules": [...]}`` into an immutable snapshot."""
    try:
        data = json.loads(payload)
    except (ValueError, UnicodeDecodeError) as exc:
        raise RegistryUnavailableError(url, f"invalid JSON ({exc})") from exc
    if not isinstance(data, dict):
        raise RegistryUnavailableError(url, "index must be a JSON object")

    version = data.get("version")
    if not isinstance(version, int) or isinstance(version, bool):
        raise RegistryUnavailableError(url, "index 'version' must be an integer")
    rules = data.get("rules")
    if not isinstance(rules, list):
        raise RegistryUnavailableError(url, "index 'rules' must be a list")

    entries: List[CommunityRule] = []
    for position, raw in enumerate(rules):
        if not isinstance(raw, dict):
            logger.warning("Skipping community index entry rules[%d]: not an object", position)
            continue
        rule_id = raw.get("id")
        path = raw.get("path")
        if not isinstance(rule_id, str) or not rule_id or not isinstance(path, str) or not path:
            logger.warning("Skipping community index entry rules[%d]: missing id or path", position)
            continue
        tags = raw.get("tags") or []
        entries.append(
            CommunityRule(
                id=rule_id,
                path=path,
                tool=_as_text(raw.get("tool")),
                language=_as_text(raw.get("language")),
                author=_as_text(raw.get("author")),
                tags=tuple(str(tag) for tag in tags if isinstance(tag, str)) if isinstance(tags, list) else (),
                description=_as_text(raw.get("description")),
            )
        )
    return RegistrySnapshot(version=version, entries=tuple(entries))


def filter_rules(
    entries: Iterable[CommunityRule],
    query: str = "",
    *,
    language: Optional[str] = None,
    tags: Optional[Sequence[str]] = None,
) -> List[CommunityRule]:
    """Apply the language, tag and free-text filters in that order.

    Tags must all be present (case-insensitive); the query is a
    case-insensitive substring test over id, description and tags.
    Snapshot order is preserved.
    """
    wanted_language = language.strip().lower() if language and language.strip() else None
    wanted_tags = {tag.strip().lower() for tag in tags or () if tag.strip()}
    needle = query.strip().lower()

    matches: List[CommunityRule] = []
    for entry in entries:
        if wanted_language and entry.language.lower() != wanted_language:
            continue
        if wanted_tags and not wanted_tags <= {tag.lower() for tag in entry.tags}:
            continue
        if needle and not _matches_query(entry, needle):
            continue
        matches.append(entry)
    return matches


def _matches_query(entry: CommunityRule, needle: str) -> bool:
    if needle in entry.id.lower():
        return True
    if needle in entry.description.lower():
        return True
    return any(needle in tag.lower() for tag in entry.tags)


def parse_tags(raw: Optional[str]) -> List[str]:
    """Split a comma-separated tag list, dropping blanks."""
    if not raw:
        return []
    return [tag.strip() for tag in raw.split(",") if tag.strip()]


class CommunityRuleIndex:
    """Remote rule catalog with a TTL cache in front of it."""

    def __init__(
        self,
        fetcher: DocumentFetcher | None = None,
        cache: IndexCache | None = None,
        *,
        base_url: str = DEFAULT_REGISTRY_URL,
        timeout: Optional[float] = DEFAULT_REQUEST_TIMEOUT,
    ) -> None:
        self.fetcher = fetcher or UrllibFetcher()
        self.cache = cache or IndexCache()
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    @property
    def index_url(self) -> str:
        return f"{self.base_url}/{INDEX_FILENAME}"

    def rule_url(self, entry: CommunityRule) -> str:
        return f"{self.base_url}/{entry.path.lstrip('/')}"

    def fetch(
        self, *, deadline: Optional[Deadline] = None, allow_stale: bool = False
    ) -> RegistrySnapshot:
        """Return the cached snapshot while fresh, otherwise refetch the index.

        A failed refresh leaves the cache untouched. With ``allow_stale`` the
        previous snapshot, if any, is returned instead of raising.
        """
        snapshot = self.cache.get_fresh()
        if snapshot is not None:
            logger.debug("Using cached community rule index")
            return snapshot

        with self.cache.lock:
            # Another caller may have refreshed while we waited for the lock.
            snapshot = self.cache.get_fresh()
            if snapshot is not None:
                return snapshot
            try:
                snapshot = self._download_index(deadline)
            except RegistryUnavailableError as exc:
                stale = self.cache.get_any()
                if allow_stale and stale is not None:
                    logger.warning("Serving stale community rule index: %s", exc)
                    return stale
                raise
            self.cache.replace(snapshot)

        logger.info("Loaded %d community rules", len(snapshot.entries))
        return snapshot

    def search(
        self,
        query: str = "",
        *,
        language: Optional[str] = None,
        tags: Optional[Sequence[str]] = None,
        deadline: Optional[Deadline] = None,
    ) -> List[CommunityRule]:
        snapshot = self.fetch(deadline=deadline, allow_stale=True)
        return filter_rules(snapshot.entries, query, language=language, tags=tags)

    def find(self, rule_id: str, *, deadline: Optional[Deadline] = None) -> Optional[CommunityRule]:
        snapshot = self.fetch(deadline=deadline, allow_stale=True)
        for entry in snapshot.entries:
            if entry.id == rule_id:
                return entry
        return None

    def fetch_rule_body(self, entry: CommunityRule, *, deadline: Optional[Deadline] = None) -> str:
        url = self.rule_url(entry)
        raw = self._get(url, deadline)
        try:
            return raw.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise RegistryUnavailableError(url, "rule body is not valid UTF-8") from exc

    def details(
        self, rule_id: str, *, deadline: Optional[Deadline] = None
    ) -> tuple[CommunityRule, str]:
        entry = self.find(rule_id, deadline=deadline)
        if entry is None:
            raise RuleNotFoundError(rule_id)
        return entry, self.fetch_rule_body(entry, deadline=deadline)

    def import_rule(
        self,
        rule_id: str,
        store: RuleStore,
        *,
        start: Optional[Path] = None,
        deadline: Optional[Deadline] = None,
    ) -> Path:
        """Fetch, validate and store a community rule; nothing is written on failure."""
        entry, body = self.details(rule_id, deadline=deadline)
        validate_rule_document(body)
        return store.write(entry.filename, body, start)

    def _download_index(self, deadline: Optional[Deadline]) -> RegistrySnapshot:
        logger.debug("Fetching community rule index from %s", self.index_url)
        raw = self._get(self.index_url, deadline)
        return parse_index(raw, url=self.index_url)

    def _get(self, url: str, deadline: Optional[Deadline]) -> bytes:
        deadline = deadline or Deadline.none()
        if deadline.expired:
            raise RegistryUnavailableError(url, "deadline expired before request")
        return self.fetcher.fetch(url, timeout=deadline.cap(self.timeout))


def _as_text(value: Any) -> str:
    return value if isinstance(value, str) else ""


__all__ = [
    "CommunityRuleIndex",
    "filter_rules",
    "parse_index",
    "parse_tags",
]
