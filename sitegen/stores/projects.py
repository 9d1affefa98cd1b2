"""JSON document store for projects, their files and activity."""

from __future__ import annotations

import json
import os
import re
import tempfile
import threading
import uuid
from dataclasses import asdict
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional

from ..errors import ProjectNotFoundError, RecordNotFoundError
from ..logging import get_logger
from ..models import Deployment, FileRecord, Generation, HistoryEntry, Project
from ..pipeline.filetypes import normalize_type, to_storage_type

_STORE_VERSION = 1
_SAFE_ID = re.compile(r"[A-Za-z0-9_-]+")
_LOGGER = get_logger("stores.projects")


def utc_now() -> str:
    return datetime.now(UTC).isoformat().replace("+00:00", "Z")


def new_id() -> str:
    return uuid.uuid4().hex


class ProjectStore:
    """Keeps one JSON document per project under ``root``."""

    def __init__(self, root: Path) -> None:
        self.root = Path(root)
        self._lock = threading.RLock()

    def create_project(
        self, title: str, prompt: str, description: Optional[str] = None
    ) -> Project:
        timestamp = utc_now()
        project = Project(
            id=new_id(),
            title=title.strip() or "Untitled Project",
            prompt=prompt,
            description=description,
            created_at=timestamp,
            updated_at=timestamp,
        )
        with self._lock:
            self._write(project)
        _LOGGER.info("Created project %s (%s)", project.id, project.title)
        return project

    def get_project(self, project_id: str) -> Project:
        path = self._path(project_id)
        with self._lock:
            if not path.exists():
                raise ProjectNotFoundError(f"Project {project_id} not found")
            payload = json.loads(path.read_text(encoding="utf-8"))
        return _project_from_dict(payload)

    def list_projects(self) -> List[Project]:
        if not self.root.exists():
            return []
        projects: List[Project] = []
        with self._lock:
            for path in self.root.glob("*.json"):
                try:
                    payload = json.loads(path.read_text(encoding="utf-8"))
                except (OSError, json.JSONDecodeError) as exc:
                    _LOGGER.warning("Skipping unreadable project document %s: %s", path.name, exc)
                    continue
                projects.append(_project_from_dict(payload))
        return sorted(projects, key=lambda project: project.updated_at, reverse=True)

    def delete_project(self, project_id: str) -> None:
        path = self._path(project_id)
        with self._lock:
            if not path.exists():
                raise ProjectNotFoundError(f"Project {project_id} not found")
            path.unlink()
        _LOGGER.info("Deleted project %s", project_id)

    def save(self, project: Project) -> Project:
        with self._lock:
            project.updated_at = utc_now()
            self._write(project)
        return project

    def upsert_files(self, project_id: str, records: Iterable[FileRecord]) -> Project:
        """Insert or update files keyed by path, keeping files not mentioned."""
        with self._lock:
            project = self.get_project(project_id)
            current = project.file_map()
            for record in records:
                current[record.path] = _storage_record(record)
            project.files = list(current.values())
            return self.save(project)

    def replace_files(self, project_id: str, records: Iterable[FileRecord]) -> Project:
        with self._lock:
            project = self.get_project(project_id)
            project.files = [_storage_record(record) for record in records]
            return self.save(project)

    def update_file(self, project_id: str, record: FileRecord) -> FileRecord:
        """Overwrite an existing file in place; unknown paths are not created."""
        with self._lock:
            project = self.get_project(project_id)
            stored = _storage_record(record)
            for index, current in enumerate(project.files):
                if current.path == record.path:
                    project.files[index] = stored
                    self.save(project)
                    return stored
        raise RecordNotFoundError(f"File {record.path} not found in project {project_id}")

    def update_project(self, project_id: str, **changes: Any) -> Project:
        with self._lock:
            project = self.get_project(project_id)
            for key in ("title", "prompt", "description", "status"):
                if key in changes and changes[key] is not None:
                    setattr(project, key, changes[key])
            return self.save(project)

    def record_generation(
        self, project_id: str, prompt: str, provider: str
    ) -> Generation:
        generation = Generation(
            id=new_id(),
            project_id=project_id,
            prompt=prompt,
            provider=provider,
            created_at=utc_now(),
        )
        with self._lock:
            project = self.get_project(project_id)
            project.generations.append(generation)
            self.save(project)
        return generation

    def update_generation(
        self,
        project_id: str,
        generation_id: str,
        *,
        status: str,
        error: Optional[str] = None,
        description: Optional[str] = None,
    ) -> Generation:
        with self._lock:
            project = self.get_project(project_id)
            for generation in project.generations:
                if generation.id == generation_id:
                    generation.status = status
                    generation.error = error
                    if description is not None:
                        generation.description = description
                    self.save(project)
                    return generation
        raise RecordNotFoundError(
            f"Generation {generation_id} not found for project {project_id}"
        )

    def add_history(self, project_id: str, action: str, details: str) -> HistoryEntry:
        entry = HistoryEntry(action=action, details=details, created_at=utc_now())
        with self._lock:
            project = self.get_project(project_id)
            project.history.append(entry)
            self.save(project)
        return entry

    def record_deployment(
        self,
        project_id: str,
        *,
        url: str,
        status: str,
        provider_deployment_id: Optional[str] = None,
    ) -> Deployment:
        deployment = Deployment(
            id=new_id(),
            url=url,
            status=status,
            provider_deployment_id=provider_deployment_id,
            created_at=utc_now(),
        )
        with self._lock:
            project = self.get_project(project_id)
            project.deployments.append(deployment)
            self.save(project)
        return deployment

    def get_deployment(self, project_id: str, deployment_id: str) -> Deployment:
        for deployment in self.get_project(project_id).deployments:
            if deployment.id == deployment_id:
                return deployment
        raise RecordNotFoundError(
            f"Deployment {deployment_id} not found for project {project_id}"
        )

    def update_deployment(
        self,
        project_id: str,
        deployment_id: str,
        *,
        status: str,
        url: Optional[str] = None,
    ) -> Deployment:
        with self._lock:
            project = self.get_project(project_id)
            for deployment in project.deployments:
                if deployment.id == deployment_id:
                    deployment.status = status
                    if url:
                        deployment.url = url
                    self.save(project)
                    return deployment
        raise RecordNotFoundError(
            f"Deployment {deployment_id} not found for project {project_id}"
        )

    def _path(self, project_id: str) -> Path:
        # Ids double as file names; anything outside the safe alphabet is unknown.
        if not _SAFE_ID.fullmatch(project_id or ""):
            raise ProjectNotFoundError(f"Project {project_id} not found")
        return self.root / f"{project_id}.json"

    def _write(self, project: Project) -> None:
        self.root.mkdir(parents=True, exist_ok=True)
        payload = {"version": _STORE_VERSION, **_project_to_dict(project)}
        target = self._path(project.id)
        fd, tmp_name = tempfile.mkstemp(dir=self.root, prefix=f".{project.id}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(payload, handle, indent=2, sort_keys=True)
            os.replace(tmp_name, target)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise


def _storage_record(record: FileRecord) -> FileRecord:
    file_type = to_storage_type(normalize_type(record.type, record.path))
    return FileRecord(path=record.path, content=record.content, type=file_type)


def _project_to_dict(project: Project) -> Dict[str, Any]:
    payload = project.to_dict(include_files=True)
    payload.pop("file_count", None)
    payload["generations"] = [asdict(generation) for generation in project.generations]
    payload["history"] = [asdict(entry) for entry in project.history]
    payload["deployments"] = [asdict(deployment) for deployment in project.deployments]
    return payload


def _project_from_dict(payload: Mapping[str, Any]) -> Project:
    files: List[FileRecord] = []
    for entry in payload.get("files") or []:
        if not isinstance(entry, Mapping):
            continue
        record = FileRecord.from_mapping(entry)
        if record is not None:
            files.append(FileRecord(record.path, record.content, normalize_type(record.type, record.path)))
    return Project(
        id=str(payload["id"]),
        title=str(payload.get("title") or ""),
        prompt=str(payload.get("prompt") or ""),
        description=payload.get("description"),
        status=str(payload.get("status") or "DRAFT"),
        files=files,
        generations=[Generation(**entry) for entry in payload.get("generations") or []],
        history=[HistoryEntry(**entry) for entry in payload.get("history") or []],
        deployments=[Deployment(**entry) for entry in payload.get("deployments") or []],
        created_at=str(payload.get("created_at") or ""),
        updated_at=str(payload.get("updated_at") or ""),
    )


__all__ = ["ProjectStore", "new_id", "utc_now"]
