from __future__ import annotations

from pathlib import Path

import pytest

from context_sherpa.config import SherpaSettings
from context_sherpa.engine import ScanExecutor
from context_sherpa.orchestrator import Orchestrator
from context_sherpa.project_root import ProjectRootResolver
from context_sherpa.registry import CommunityRuleIndex, IndexCache
from tests._fixtures.project_builder import (
    REGISTRY_URL,
    FakeClock,
    FakeEngine,
    FakeFetcher,
    ProjectBuilder,
    index_bytes,
)


@pytest.fixture
def project(tmp_path: Path) -> ProjectBuilder:
    """Provide a project builder rooted at the pytest tmp_path."""
    return ProjectBuilder(tmp_path)


@pytest.fixture
def engine() -> FakeEngine:
    return FakeEngine(output='[{"ruleId": "no-sprintf"}]', returncode=1)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def fetcher() -> FakeFetcher:
    return FakeFetcher({f"{REGISTRY_URL}/index.json": index_bytes()})


@pytest.fixture
def registry(fetcher: FakeFetcher, clock: FakeClock) -> CommunityRuleIndex:
    return CommunityRuleIndex(fetcher, IndexCache(300.0, clock=clock), base_url=REGISTRY_URL)


@pytest.fixture
def orchestrator(
    project: ProjectBuilder, engine: FakeEngine, registry: CommunityRuleIndex
) -> Orchestrator:
    settings = SherpaSettings(project_root=project.root, registry_url=REGISTRY_URL)
    return Orchestrator(
        settings,
        resolver=ProjectRootResolver(project.root),
        executor=ScanExecutor(engine),
        registry=registry,
    )
