"""FastAPI application exposing context-sherpa operations to agents."""

from __future__ import annotations

import asyncio
from functools import partial
from typing import Any, Callable, List, Optional

from fastapi import Depends, FastAPI
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from .. import __version__
from ..errors import EngineUnavailableError, SherpaError
from ..models import ToolResult
from ..orchestrator import Orchestrator


class ScanCodeRequest(BaseModel):
    code: str
    language: str
    sgconfig: Optional[str] = None
    timeout: Optional[float] = None


class ScanPathRequest(BaseModel):
    path: str
    sgconfig: Optional[str] = None
    language: Optional[str] = None
    timeout: Optional[float] = None


class RuleRequest(BaseModel):
    rule_yaml: str


class SkippedFileModel(BaseModel):
    path: str
    size: int


class ToolResponse(BaseModel):
    success: bool
    text: str
    skipped: List[SkippedFileModel] = []


class HealthResponse(BaseModel):
    status: str
    version: str


def _to_response(result: ToolResult) -> ToolResponse:
    return ToolResponse(
        success=result.success,
        text=result.text,
        skipped=[SkippedFileModel(path=str(item.path), size=item.size) for item in result.skipped],
    )


async def _run(func: Callable[[], ToolResult]) -> ToolResponse:
    # Operations block on the filesystem, subprocesses and the network.
    loop = asyncio.get_running_loop()
    result = await loop.run_in_executor(None, func)
    return _to_response(result)


def create_app(orchestrator: Orchestrator | None = None) -> FastAPI:
    """Create the FastAPI application; one orchestrator serves every request."""

    app = FastAPI(title="context-sherpa", version=__version__)
    app.state.orchestrator = orchestrator

    def get_orchestrator() -> Orchestrator:
        # Created lazily so importing the app never touches the environment.
        if app.state.orchestrator is None:
            app.state.orchestrator = Orchestrator()
        return app.state.orchestrator

    @app.get("/health", response_model=HealthResponse)
    async def health() -> HealthResponse:
        return HealthResponse(status="ok", version=__version__)

    @app.post("/scan/code", response_model=ToolResponse)
    async def scan_code(
        payload: ScanCodeRequest,
        sherpa: Orchestrator = Depends(get_orchestrator),
    ) -> ToolResponse:
        return await _run(
            partial(
                sherpa.scan_code,
                payload.code,
                payload.language,
                sgconfig=payload.sgconfig,
                timeout=payload.timeout,
            )
        )

    @app.post("/scan/path", response_model=ToolResponse)
    async def scan_path(
        payload: ScanPathRequest,
        sherpa: Orchestrator = Depends(get_orchestrator),
    ) -> ToolResponse:
        return await _run(
            partial(
                sherpa.scan_path,
                payload.path,
                sgconfig=payload.sgconfig,
                language=payload.language,
                timeout=payload.timeout,
            )
        )

    @app.put("/rules/{rule_id}", response_model=ToolResponse)
    async def add_or_update_rule(
        rule_id: str,
        payload: RuleRequest,
        sherpa: Orchestrator = Depends(get_orchestrator),
    ) -> ToolResponse:
        return await _run(partial(sherpa.add_or_update_rule, rule_id, payload.rule_yaml))

    @app.delete("/rules/{rule_id}", response_model=ToolResponse)
    async def remove_rule(
        rule_id: str,
        sherpa: Orchestrator = Depends(get_orchestrator),
    ) -> ToolResponse:
        return await _run(partial(sherpa.remove_rule, rule_id))

    @app.post("/init", response_model=ToolResponse)
    async def initialize_project(
        sherpa: Orchestrator = Depends(get_orchestrator),
    ) -> ToolResponse:
        return await _run(sherpa.initialize_project)

    @app.get("/community/rules", response_model=ToolResponse)
    async def search_community_rules(
        query: str = "",
        language: Optional[str] = None,
        tags: Optional[str] = None,
        sherpa: Orchestrator = Depends(get_orchestrator),
    ) -> ToolResponse:
        return await _run(
            partial(sherpa.search_community_rules, query, language=language, tags=tags)
        )

    @app.get("/community/rules/{rule_id}", response_model=ToolResponse)
    async def get_community_rule_details(
        rule_id: str,
        sherpa: Orchestrator = Depends(get_orchestrator),
    ) -> ToolResponse:
        return await _run(partial(sherpa.get_community_rule_details, rule_id))

    @app.post("/community/rules/{rule_id}/import", response_model=ToolResponse)
    async def import_community_rule(
        rule_id: str,
        sherpa: Orchestrator = Depends(get_orchestrator),
    ) -> ToolResponse:
        return await _run(partial(sherpa.import_community_rule, rule_id))

    @app.exception_handler(EngineUnavailableError)
    async def engine_unavailable_handler(
        _: Any, exc: EngineUnavailableError
    ) -> JSONResponse:
        return JSONResponse(status_code=503, content={"detail": str(exc)})

    @app.exception_handler(SherpaError)
    async def sherpa_error_handler(_: Any, exc: SherpaError) -> JSONResponse:
        return JSONResponse(status_code=400, content={"detail": str(exc)})

    return app


def run_service(
    host: str = "127.0.0.1",
    port: int = 8000,
    orchestrator: Orchestrator | None = None,
) -> None:  # pragma: no cover - integration path
    import uvicorn

    app = create_app(orchestrator)
    uvicorn.run(app, host=host, port=port, log_config=None)


__all__ = ["create_app", "run_service"]
