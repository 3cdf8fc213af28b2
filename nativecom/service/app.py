"""FastAPI application entrypoint for nativecom service mode."""

from __future__ import annotations

import asyncio
from typing import Any, Callable, List, Optional, TypeVar

try:  # pragma: no cover - optional dependency
    from fastapi import Depends, FastAPI
    from fastapi.responses import JSONResponse
    from pydantic import BaseModel

    _FASTAPI_AVAILABLE = True
except ModuleNotFoundError:  # pragma: no cover - service mode optional
    FastAPI = None  # type: ignore[assignment]
    Depends = None  # type: ignore[assignment]
    JSONResponse = None  # type: ignore[assignment]
    BaseModel = object  # type: ignore[assignment]
    _FASTAPI_AVAILABLE = False

from ..diagnostics import Diagnostic
from ..identifiers import IdentifierError
from ..orchestrator import GenerateOutcome, GenerationResult, LookupOutcome, Orchestrator

_T = TypeVar("_T")


class DiagnosticModel(BaseModel):
    code: str
    severity: str
    message: str
    location: Optional[str] = None


class UnitModel(BaseModel):
    name: str
    content: str


class CheckRequest(BaseModel):
    path: str


class CheckResponse(BaseModel):
    status: str
    aborted: bool
    declarations: int
    validated: int
    diagnostics: List[DiagnosticModel]


class GenerateRequest(BaseModel):
    path: str
    output_dir: Optional[str] = None
    emit_entry_points: Optional[bool] = None
    dry_run: bool = True


class GenerateResponse(BaseModel):
    status: str
    aborted: bool
    dry_run: bool
    output_dir: str
    units: List[UnitModel]
    written: List[str]
    unchanged: List[str]
    removed: List[str]
    diagnostics: List[DiagnosticModel]


class LookupRequest(BaseModel):
    path: str
    clsid: str


class LookupResponse(BaseModel):
    identifier: str
    hresult: int
    index: Optional[int] = None
    factory: Optional[str] = None
    target: Optional[str] = None


class HealthResponse(BaseModel):
    status: str


def _default_orchestrator() -> Orchestrator:
    return Orchestrator()


def _diagnostic_model(diagnostic: Diagnostic) -> DiagnosticModel:
    return DiagnosticModel(
        code=diagnostic.code.value,
        severity=diagnostic.severity.value,
        message=diagnostic.message,
        location=str(diagnostic.location) if diagnostic.location is not None else None,
    )


def _status(result: GenerationResult) -> str:
    return "error" if result.has_errors else "ok"


async def _run_blocking(func: Callable[[], _T]) -> _T:
    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:  # pragma: no cover - fallback path when not in async context
        return func()
    return await loop.run_in_executor(None, func)


def create_app(
    orchestrator_factory: Callable[[], Orchestrator] = _default_orchestrator,
) -> FastAPI:
    """Create the FastAPI application exposing nativecom operations."""

    if not _FASTAPI_AVAILABLE:  # pragma: no cover - validated via unit tests
        raise RuntimeError(
            "FastAPI is required for service mode. Install it with `pip install fastapi uvicorn`."
        )

    app = FastAPI(title="NativeCom Service", version="1.0.0")

    async def get_orchestrator() -> Orchestrator:
        return orchestrator_factory()

    @app.get("/health", response_model=HealthResponse)
    async def health() -> HealthResponse:
        return HealthResponse(status="ok")

    @app.post("/check", response_model=CheckResponse)
    async def check_project(
        payload: CheckRequest,
        orchestrator: Orchestrator = Depends(get_orchestrator),
    ) -> CheckResponse:
        result = await _run_blocking(lambda: orchestrator.run_check(payload.path))
        return CheckResponse(
            status=_status(result),
            aborted=result.aborted,
            declarations=len(result.declarations),
            validated=len(result.validated),
            diagnostics=[_diagnostic_model(d) for d in result.diagnostics],
        )

    @app.post("/generate", response_model=GenerateResponse)
    async def generate_project(
        payload: GenerateRequest,
        orchestrator: Orchestrator = Depends(get_orchestrator),
    ) -> GenerateResponse:
        def _run_generate() -> GenerateOutcome:
            return orchestrator.run_generate(
                payload.path,
                output_dir=payload.output_dir,
                dry_run=payload.dry_run,
                emit_entry_points=payload.emit_entry_points,
            )

        outcome = await _run_blocking(_run_generate)
        report = outcome.report
        return GenerateResponse(
            status=_status(outcome.result),
            aborted=outcome.result.aborted,
            dry_run=outcome.dry_run,
            output_dir=str(outcome.output_dir),
            units=[UnitModel(name=unit.name, content=unit.content) for unit in outcome.result.units],
            written=[path.name for path in report.written],
            unchanged=[path.name for path in report.unchanged],
            removed=[path.name for path in report.removed],
            diagnostics=[_diagnostic_model(d) for d in outcome.result.diagnostics],
        )

    @app.post("/lookup", response_model=LookupResponse)
    async def lookup_identifier(
        payload: LookupRequest,
        orchestrator: Orchestrator = Depends(get_orchestrator),
    ) -> LookupResponse:
        found: LookupOutcome = await _run_blocking(
            lambda: orchestrator.lookup(payload.path, payload.clsid)
        )
        return LookupResponse(
            identifier=found.identifier,
            hresult=found.hresult,
            index=found.index,
            factory=found.factory,
            target=found.target,
        )

    @app.exception_handler(FileNotFoundError)
    async def file_not_found_handler(
        _: Any, exc: FileNotFoundError
    ) -> JSONResponse:  # pragma: no cover - simple mapping
        return JSONResponse(status_code=404, content={"detail": str(exc)})

    @app.exception_handler(IdentifierError)
    async def identifier_error_handler(_: Any, exc: IdentifierError) -> JSONResponse:
        return JSONResponse(status_code=400, content={"detail": str(exc)})

    @app.exception_handler(RuntimeError)
    async def runtime_error_handler(
        _: Any, exc: RuntimeError
    ) -> JSONResponse:  # pragma: no cover - simple mapping
        return JSONResponse(status_code=400, content={"detail": str(exc)})

    return app


def run_service(
    host: str = "127.0.0.1", port: int = 8000
) -> None:  # pragma: no cover - integration path
    if not _FASTAPI_AVAILABLE:
        raise RuntimeError(
            "FastAPI is required for service mode. Install it with `pip install fastapi uvicorn`."
        )

    try:
        import uvicorn
    except ModuleNotFoundError as exc:  # pragma: no cover - optional dependency
        raise RuntimeError(
            "uvicorn is required to run the service. Install it with `pip install uvicorn`."
        ) from exc

    app = create_app()
    uvicorn.run(app, host=host, port=port)
