"""FastAPI application entrypoint for sitegen service mode."""

from __future__ import annotations

import asyncio
import json
from contextlib import closing
from dataclasses import asdict
from functools import lru_cache
from typing import Any, Callable, Dict, Iterator, List, Optional, TypeVar

import uvicorn
from fastapi import Depends, FastAPI, Query
from fastapi.responses import HTMLResponse, JSONResponse, Response, StreamingResponse
from pydantic import BaseModel, Field

from ..errors import (
    DeploymentError,
    GenerationError,
    GenerationInProgressError,
    ProjectNotFoundError,
)
from ..orchestrator import Orchestrator
from ..pipeline import fix_image_urls, image_fix_stats, normalize_and_reconcile

T = TypeVar("T")


class ReconcileRequest(BaseModel):
    files: List[Dict[str, Any]]
    fix_images: bool = True


class FilePayload(BaseModel):
    path: str
    content: str
    type: Optional[str] = None
    size: int


class ReconcileResponse(BaseModel):
    files: List[FilePayload]


class FixImagesRequest(BaseModel):
    content: str


class FixImagesResponse(BaseModel):
    content: str
    total_broken: int
    fixed: int
    broken: List[str]


class CreateProjectRequest(BaseModel):
    title: str = Field(min_length=1)
    prompt: str = Field(min_length=1)
    description: Optional[str] = None


class GenerateRequest(BaseModel):
    prompt: str = Field(min_length=1)
    provider: Optional[str] = None
    modify: bool = False
    images: List[str] = Field(default_factory=list)


class UpdateProjectRequest(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None


class UpdateFileRequest(BaseModel):
    content: str


class HealthResponse(BaseModel):
    status: str


@lru_cache(maxsize=1)
def _default_orchestrator() -> Orchestrator:
    # Shared so the per-project generation guard spans requests.
    return Orchestrator()


def create_app(
    orchestrator_factory: Callable[[], Orchestrator] = _default_orchestrator,
) -> FastAPI:
    """Create the FastAPI application exposing sitegen operations."""

    app = FastAPI(title="Sitegen Service", version="1.0.0")

    async def get_orchestrator() -> Orchestrator:
        return orchestrator_factory()

    async def _in_executor(func: Callable[[], T]) -> T:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, func)

    @app.get("/health", response_model=HealthResponse)
    async def health() -> HealthResponse:
        return HealthResponse(status="ok")

    @app.post("/reconcile", response_model=ReconcileResponse)
    async def reconcile(payload: ReconcileRequest) -> ReconcileResponse:
        records = normalize_and_reconcile(payload.files, fix_images=payload.fix_images)
        return ReconcileResponse(files=[FilePayload(**record.to_dict()) for record in records])

    @app.post("/fix-images", response_model=FixImagesResponse)
    async def fix_images(payload: FixImagesRequest) -> FixImagesResponse:
        fixed = fix_image_urls(payload.content)
        stats = image_fix_stats(payload.content, fixed)
        return FixImagesResponse(content=fixed, **asdict(stats))

    @app.post("/projects", status_code=201)
    async def create_project(
        payload: CreateProjectRequest,
        orchestrator: Orchestrator = Depends(get_orchestrator),
    ) -> Dict[str, Any]:
        project = orchestrator.create_project(payload.title, payload.prompt, payload.description)
        return project.to_dict(include_files=False)

    @app.get("/projects")
    async def list_projects(
        orchestrator: Orchestrator = Depends(get_orchestrator),
    ) -> Dict[str, Any]:
        projects = orchestrator.list_projects()
        return {"projects": [project.to_dict(include_files=False) for project in projects]}

    @app.get("/projects/{project_id}")
    async def get_project(
        project_id: str, orchestrator: Orchestrator = Depends(get_orchestrator)
    ) -> Dict[str, Any]:
        return orchestrator.get_project(project_id).to_dict(include_files=True)

    @app.delete("/projects/{project_id}", status_code=204)
    async def delete_project(
        project_id: str, orchestrator: Orchestrator = Depends(get_orchestrator)
    ) -> Response:
        orchestrator.delete_project(project_id)
        return Response(status_code=204)

    @app.put("/projects/{project_id}")
    async def update_project(
        project_id: str,
        payload: UpdateProjectRequest,
        orchestrator: Orchestrator = Depends(get_orchestrator),
    ) -> Dict[str, Any]:
        project = orchestrator.update_project(
            project_id, title=payload.title, description=payload.description
        )
        return project.to_dict(include_files=False)

    @app.put("/projects/{project_id}/files/{file_path:path}")
    async def update_file(
        project_id: str,
        file_path: str,
        payload: UpdateFileRequest,
        orchestrator: Orchestrator = Depends(get_orchestrator),
    ) -> FilePayload:
        record = orchestrator.update_file(project_id, file_path, payload.content)
        return FilePayload(**record.to_dict())

    @app.post("/projects/{project_id}/generate")
    async def generate(
        project_id: str,
        payload: GenerateRequest,
        orchestrator: Orchestrator = Depends(get_orchestrator),
    ) -> Dict[str, Any]:
        def _run() -> Dict[str, Any]:
            run = orchestrator.modify if payload.modify else orchestrator.generate
            return run(
                project_id, payload.prompt, payload.provider, images=payload.images
            ).to_dict()

        return await _in_executor(_run)

    @app.post("/projects/{project_id}/generate/stream")
    async def generate_stream(
        project_id: str,
        payload: GenerateRequest,
        orchestrator: Orchestrator = Depends(get_orchestrator),
    ) -> StreamingResponse:
        orchestrator.get_project(project_id)
        if orchestrator.is_generating(project_id):
            raise GenerationInProgressError(
                f"A generation is already running for project {project_id}"
            )

        def _events() -> Iterator[str]:
            stream = orchestrator.stream_generate(
                project_id,
                payload.prompt,
                payload.provider,
                modify=payload.modify,
                images=payload.images,
            )
            # A disconnect closes the run, which marks it FAILED.
            with closing(stream):
                for event in stream:
                    yield f"data: {json.dumps(event)}\n\n"

        return StreamingResponse(
            _events(),
            media_type="text/event-stream",
            headers={"Cache-Control": "no-cache", "Connection": "keep-alive"},
        )

    @app.get("/projects/{project_id}/preview", response_class=HTMLResponse)
    async def preview(
        project_id: str,
        file: Optional[str] = None,
        orchestrator: Orchestrator = Depends(get_orchestrator),
    ) -> HTMLResponse:
        return HTMLResponse(content=orchestrator.preview(project_id, file))

    @app.get("/projects/{project_id}/export")
    async def export(
        project_id: str,
        export_format: str = Query("zip", alias="format", pattern="^(zip|json)$"),
        orchestrator: Orchestrator = Depends(get_orchestrator),
    ) -> Response:
        if export_format == "json":
            return JSONResponse(
                content={"success": True, "project": orchestrator.export_json(project_id)}
            )
        filename, payload = await _in_executor(lambda: orchestrator.export_zip(project_id))
        return Response(
            content=payload,
            media_type="application/zip",
            headers={"Content-Disposition": f'attachment; filename="{filename}"'},
        )

    @app.post("/projects/{project_id}/deploy")
    async def deploy(
        project_id: str, orchestrator: Orchestrator = Depends(get_orchestrator)
    ) -> Dict[str, Any]:
        deployment = await _in_executor(lambda: orchestrator.deploy(project_id))
        return asdict(deployment)

    @app.get("/projects/{project_id}/deployments/{deployment_id}")
    async def deployment_status(
        project_id: str,
        deployment_id: str,
        refresh: bool = True,
        orchestrator: Orchestrator = Depends(get_orchestrator),
    ) -> Dict[str, Any]:
        deployment = await _in_executor(
            lambda: orchestrator.deployment_status(project_id, deployment_id, refresh=refresh)
        )
        return asdict(deployment)

    @app.get("/projects/{project_id}/history")
    async def history(
        project_id: str, orchestrator: Orchestrator = Depends(get_orchestrator)
    ) -> Dict[str, Any]:
        entries = orchestrator.history(project_id)
        return {"history": [asdict(entry) for entry in entries]}

    @app.exception_handler(ProjectNotFoundError)
    async def not_found_handler(_: Any, exc: ProjectNotFoundError) -> JSONResponse:
        return JSONResponse(status_code=404, content={"detail": str(exc)})

    @app.exception_handler(GenerationInProgressError)
    async def in_progress_handler(_: Any, exc: GenerationInProgressError) -> JSONResponse:
        return JSONResponse(status_code=409, content={"detail": str(exc)})

    @app.exception_handler(GenerationError)
    async def generation_error_handler(_: Any, exc: GenerationError) -> JSONResponse:
        return JSONResponse(status_code=502, content={"detail": str(exc)})

    @app.exception_handler(DeploymentError)
    async def deployment_error_handler(_: Any, exc: DeploymentError) -> JSONResponse:
        return JSONResponse(status_code=502, content={"detail": str(exc)})

    @app.exception_handler(RuntimeError)
    async def runtime_error_handler(_: Any, exc: RuntimeError) -> JSONResponse:
        return JSONResponse(status_code=400, content={"detail": str(exc)})

    return app


def run_service(
    host: str = "0.0.0.0", port: int = 8000
) -> None:  # pragma: no cover - integration path
    app = create_app()
    uvicorn.run(app, host=host, port=port)


__all__ = ["create_app", "run_service"]
