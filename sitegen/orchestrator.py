"""Coordinates generation, modification, preview, export and deployment runs."""

from __future__ import annotations

import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, Generator, Iterator, List, Optional, Sequence, Tuple

from .config import SitegenConfig, load_config
from .deploy.vercel import VercelClient, descriptive_project_name, validate_deployment_url
from .errors import (
    DeploymentError,
    GenerationError,
    GenerationInProgressError,
    RecordNotFoundError,
    SitegenError,
)
from .export import archive_name, export_zip
from .llm import create_runner, parse_generation_response
from .llm.parser import GenerationPayload
from .llm.runner import LLMRunner
from .logging import get_logger
from .models import Deployment, FileRecord, Generation, HistoryEntry, Project
from .pipeline.html import complete_html_record, is_html_record
from .pipeline.images import fix_image_urls
from .pipeline.reconcile import normalize_and_reconcile
from .preview import render_preview
from .prompting.builder import PromptBuilder
from .stores.projects import ProjectStore

Event = Dict[str, Any]
RunnerFactory = Callable[[str], LLMRunner]


@dataclass
class GenerationResult:
    """Outcome of a completed generation or modification."""

    project: Project
    generation: Generation
    files: List[FileRecord] = field(default_factory=list)
    description: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "project": self.project.to_dict(include_files=False),
            "generation_id": self.generation.id,
            "description": self.description,
            "files": [record.to_dict() for record in self.files],
        }


class Orchestrator:
    """Runs the project workflows on top of the store, providers and deployer."""

    def __init__(
        self,
        store: ProjectStore | None = None,
        *,
        runner_factory: RunnerFactory | None = None,
        prompt_builder: PromptBuilder | None = None,
        config: SitegenConfig | None = None,
        deployer: VercelClient | None = None,
    ) -> None:
        self.config = config or load_config(Path.cwd())
        self.store = store or ProjectStore(self.config.storage.data_dir)
        self.prompt_builder = prompt_builder or PromptBuilder(
            self.config.templates_dir,
            file_budget=self.config.pipeline.modification_file_budget,
        )
        self._runner_factory = runner_factory or (
            lambda provider: create_runner(provider, self.config.llm)
        )
        self._deployer = deployer
        self.logger = get_logger("orchestrator")
        self._active: set[str] = set()
        self._active_lock = threading.Lock()

    def create_project(
        self, title: str, prompt: str, description: Optional[str] = None
    ) -> Project:
        project = self.store.create_project(title, prompt, description)
        self.store.add_history(project.id, "CREATED", f"Project '{project.title}' created")
        return self.store.get_project(project.id)

    def get_project(self, project_id: str) -> Project:
        return self.store.get_project(project_id)

    def list_projects(self) -> List[Project]:
        return self.store.list_projects()

    def delete_project(self, project_id: str) -> None:
        self.store.delete_project(project_id)

    def update_project(
        self,
        project_id: str,
        *,
        title: Optional[str] = None,
        description: Optional[str] = None,
    ) -> Project:
        if title is not None and not title.strip():
            raise SitegenError("Project title must not be empty")
        project = self.store.update_project(
            project_id,
            title=title.strip() if title is not None else None,
            description=description,
        )
        self.store.add_history(
            project_id, "UPDATED", f'Project details updated: title is now "{project.title}"'
        )
        return project

    def update_file(self, project_id: str, path: str, content: str) -> FileRecord:
        """Replace one file's content; HTML edits go back through completion and image fixing."""
        if self.is_generating(project_id):
            raise GenerationInProgressError(
                f"A generation is already running for project {project_id}"
            )
        current = self.store.get_project(project_id).file_map().get(path)
        if current is None:
            raise RecordNotFoundError(f"File {path} not found in project {project_id}")
        record = FileRecord(path=path, content=content, type=current.type)
        if is_html_record(record):
            record = complete_html_record(record)
            if self.config.pipeline.fix_images:
                record = record.with_content(fix_image_urls(record.content))
        stored = self.store.update_file(project_id, record)
        self.store.add_history(project_id, "FILE_UPDATED", f"File {path} was updated")
        return stored

    def generate(
        self,
        project_id: str,
        prompt: str,
        provider: Optional[str] = None,
        *,
        images: Optional[Sequence[str]] = None,
    ) -> GenerationResult:
        """Generate a website for the project and upsert the reconciled files."""
        return _drain(
            self._execute(project_id, prompt, provider, modify=False, images=images)
        )

    def modify(
        self,
        project_id: str,
        prompt: str,
        provider: Optional[str] = None,
        *,
        images: Optional[Sequence[str]] = None,
    ) -> GenerationResult:
        """Apply a modification request and replace the project's file set."""
        return _drain(
            self._execute(project_id, prompt, provider, modify=True, images=images)
        )

    def stream_generate(
        self,
        project_id: str,
        prompt: str,
        provider: Optional[str] = None,
        *,
        modify: bool = False,
        images: Optional[Sequence[str]] = None,
    ) -> Iterator[Event]:
        """Yield progress events; failures become a final ``error`` event."""
        try:
            yield from self._execute(
                project_id, prompt, provider, modify=modify, images=images
            )
        except SitegenError as exc:
            self.logger.warning("Streaming generation for %s failed: %s", project_id, exc)
            yield {"type": "error", "data": {"message": str(exc)}}

    def preview(self, project_id: str, target: Optional[str] = None) -> str:
        project = self.store.get_project(project_id)
        return render_preview(project.files, title=project.title, target=target)

    def export_zip(self, project_id: str) -> tuple[str, bytes]:
        project = self.store.get_project(project_id)
        payload = export_zip(project)
        self.store.add_history(project_id, "EXPORTED", f"Exported {len(project.files)} file(s) as zip")
        return archive_name(project.title), payload

    def export_json(self, project_id: str) -> Dict[str, Any]:
        return self.store.get_project(project_id).to_dict(include_files=True)

    def deploy(self, project_id: str) -> Deployment:
        """Deploy the reconciled files to Vercel and record the result."""
        project = self.store.get_project(project_id)
        if not project.files:
            raise DeploymentError(f"Project {project_id} has no files to deploy")
        records = normalize_and_reconcile(
            project.files, fix_images=self.config.pipeline.fix_images
        )
        files = {record.path: record.content for record in records}
        name = descriptive_project_name(project.title, project.id)
        self.logger.info("Deploying project %s as %s", project_id, name)
        try:
            remote = self.deployer.create_deployment(
                name, files, target=self.config.deploy.target
            )
        except DeploymentError as exc:
            self.store.add_history(project_id, "DEPLOY_FAILED", str(exc))
            raise

        fallback = remote.public_url or ""
        if self.config.deploy.preview_base_url:
            base = self.config.deploy.preview_base_url.rstrip("/")
            fallback = f"{base}/projects/{project_id}/preview"
        url = validate_deployment_url(remote.public_url, fallback)
        deployment = self.store.record_deployment(
            project_id,
            url=url,
            status=remote.state,
            provider_deployment_id=remote.id,
        )
        self.store.add_history(project_id, "DEPLOYED", f"Deployed to {url}")
        return deployment

    def deployment_status(
        self, project_id: str, deployment_id: str, *, refresh: bool = True
    ) -> Deployment:
        """Stored deployment record, refreshed from Vercel when it has a remote id."""
        deployment = self.store.get_deployment(project_id, deployment_id)
        if not refresh or not deployment.provider_deployment_id:
            return deployment
        remote = self.deployer.get_deployment(deployment.provider_deployment_id)
        url = validate_deployment_url(remote.public_url, deployment.url)
        if remote.state != deployment.status or url != deployment.url:
            self.logger.info(
                "Deployment %s for project %s is now %s", deployment_id, project_id, remote.state
            )
            deployment = self.store.update_deployment(
                project_id, deployment_id, status=remote.state, url=url
            )
        return deployment

    def history(self, project_id: str) -> List[HistoryEntry]:
        return list(self.store.get_project(project_id).history)

    @property
    def deployer(self) -> VercelClient:
        if self._deployer is None:
            deploy = self.config.deploy
            self._deployer = VercelClient(deploy.token, team_id=deploy.team_id)
        return self._deployer

    def is_generating(self, project_id: str) -> bool:
        with self._active_lock:
            return project_id in self._active

    @contextmanager
    def _claim(self, project_id: str) -> Iterator[None]:
        with self._active_lock:
            if project_id in self._active:
                raise GenerationInProgressError(
                    f"A generation is already running for project {project_id}"
                )
            self._active.add(project_id)
        try:
            yield
        finally:
            with self._active_lock:
                self._active.discard(project_id)

    def _execute(
        self,
        project_id: str,
        prompt: str,
        provider: Optional[str],
        *,
        modify: bool,
        images: Optional[Sequence[str]] = None,
    ) -> Generator[Event, None, GenerationResult]:
        if not prompt or not prompt.strip():
            raise GenerationError("Prompt must not be empty")
        provider_name = (provider or self.config.llm.provider).lower()

        with self._claim(project_id):
            project = self.store.get_project(project_id)
            generation = self.store.record_generation(project_id, prompt, provider_name)
            self.store.update_project(project_id, status="GENERATING")
            self.logger.info(
                "Starting %s for project %s with %s",
                "modification" if modify else "generation",
                project_id,
                provider_name,
            )
            # Until the files are saved, every way out leaves the run FAILED.
            try:
                records, payload, generation = yield from self._run_steps(
                    project, generation, prompt, provider_name, modify=modify, images=images
                )
            except GeneratorExit:
                self._fail(project_id, generation, "Client disconnected before the generation finished")
                raise
            except Exception as exc:
                self._fail(project_id, generation, str(exc))
                if isinstance(exc, GenerationError):
                    raise
                raise GenerationError(f"Generation with {provider_name} failed: {exc}") from exc

            for record in records:
                yield {"type": "file", "data": record.to_dict()}
            yield {
                "type": "complete",
                "data": {
                    "project_id": project_id,
                    "generation_id": generation.id,
                    "description": payload.description,
                    "file_count": len(records),
                },
            }
            return GenerationResult(
                project=self.store.get_project(project_id),
                generation=generation,
                files=records,
                description=payload.description,
            )

    def _run_steps(
        self,
        project: Project,
        generation: Generation,
        prompt: str,
        provider_name: str,
        *,
        modify: bool,
        images: Optional[Sequence[str]],
    ) -> Generator[Event, None, Tuple[List[FileRecord], GenerationPayload, Generation]]:
        project_id = project.id
        yield {
            "type": "project",
            "data": {
                "project_id": project_id,
                "generation_id": generation.id,
                "title": project.title,
                "is_modification": modify,
            },
        }

        yield _status("Preparing prompt", 10)
        if modify:
            request = self.prompt_builder.build_modification(prompt, project.files, images)
        else:
            request = self.prompt_builder.build_generation(prompt, images)

        yield _status(f"Waiting for {provider_name}", 30)
        runner = self._runner_factory(provider_name)
        raw = runner.run(request.user, system=request.system)
        payload = parse_generation_response(raw)

        yield _status("Reconciling files", 70)
        incoming: List[Any] = list(payload.files)
        if modify:
            # Files the provider left out keep their current content.
            returned = {entry["path"] for entry in payload.files}
            incoming = [
                record for record in project.files if record.path not in returned
            ] + incoming
        records = normalize_and_reconcile(
            incoming, fix_images=self.config.pipeline.fix_images
        )
        if not records:
            raise GenerationError(f"Generation with {provider_name} returned no files")

        yield _status("Saving files", 90)
        if modify:
            self.store.replace_files(project_id, records)
        else:
            self.store.upsert_files(project_id, records)
        generation = self.store.update_generation(
            project_id,
            generation.id,
            status="COMPLETED",
            description=payload.description,
        )
        updated = self.store.update_project(
            project_id, status="COMPLETED", description=payload.description
        )
        self.store.add_history(
            project_id,
            "MODIFIED" if modify else "GENERATED",
            f"{len(records)} file(s) via {provider_name}: {payload.description}",
        )
        self.logger.info("Project %s now has %d file(s)", project_id, len(updated.files))
        return records, payload, generation

    def _fail(self, project_id: str, generation: Generation, message: str) -> None:
        self.logger.error("Generation %s for project %s failed: %s", generation.id, project_id, message)
        self.store.update_generation(project_id, generation.id, status="FAILED", error=message)
        self.store.update_project(project_id, status="FAILED")
        self.store.add_history(project_id, "FAILED", message)


def _status(message: str, progress: int) -> Event:
    return {"type": "status", "data": {"message": message, "progress": progress}}


def _drain(events: Generator[Event, None, GenerationResult]) -> GenerationResult:
    while True:
        try:
            next(events)
        except StopIteration as stop:
            return stop.value


__all__ = ["GenerationResult", "Orchestrator"]
