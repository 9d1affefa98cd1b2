"""Core data models shared across sitegen components."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Union


class FileType(str, Enum):
    """Canonical file classification used throughout the pipeline."""

    HTML = "HTML"
    CSS = "CSS"
    JAVASCRIPT = "JAVASCRIPT"
    TYPESCRIPT = "TYPESCRIPT"
    JSON = "JSON"
    MARKDOWN = "MARKDOWN"
    IMAGE = "IMAGE"
    TEXT = "TEXT"
    OTHER = "OTHER"


@dataclass
class FileRecord:
    """A single generated file.

    ``type`` holds a :class:`FileType` once the record has been normalized.
    Before that it may carry whatever hint string the generator emitted, or
    nothing at all.
    """

    path: str
    content: str
    type: Optional[Union[FileType, str]] = None

    @property
    def size(self) -> int:
        return len(self.content)

    def with_content(self, content: str) -> "FileRecord":
        return replace(self, content=content)

    def to_dict(self) -> Dict[str, Any]:
        file_type = self.type.value if isinstance(self.type, FileType) else self.type
        return {
            "path": self.path,
            "content": self.content,
            "type": file_type,
            "size": self.size,
        }

    @classmethod
    def from_mapping(cls, payload: Mapping[str, Any]) -> Optional["FileRecord"]:
        """Build a record from a loose mapping, or ``None`` when it is unusable."""
        path = payload.get("path")
        content = payload.get("content")
        if not isinstance(path, str) or not path.strip():
            return None
        if not isinstance(content, str):
            return None
        hint = payload.get("type")
        return cls(path=path, content=content, type=hint if isinstance(hint, str) else None)


@dataclass
class Generation:
    """One generation or modification request against a project."""

    id: str
    project_id: str
    prompt: str
    provider: str
    status: str = "PROCESSING"
    error: Optional[str] = None
    created_at: str = ""
    description: Optional[str] = None


@dataclass
class HistoryEntry:
    """Audit entry describing an action taken on a project."""

    action: str
    details: str
    created_at: str = ""


@dataclass
class Deployment:
    """Record of a deployment to the hosting provider."""

    id: str
    url: str
    status: str
    provider_deployment_id: Optional[str] = None
    created_at: str = ""


@dataclass
class Project:
    """A user project and its current file set."""

    id: str
    title: str
    prompt: str
    description: Optional[str] = None
    status: str = "DRAFT"
    files: List[FileRecord] = field(default_factory=list)
    generations: List[Generation] = field(default_factory=list)
    history: List[HistoryEntry] = field(default_factory=list)
    deployments: List[Deployment] = field(default_factory=list)
    created_at: str = ""
    updated_at: str = ""

    def file_map(self) -> Dict[str, FileRecord]:
        return {record.path: record for record in self.files}

    def to_dict(self, *, include_files: bool = True) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "id": self.id,
            "title": self.title,
            "prompt": self.prompt,
            "description": self.description,
            "status": self.status,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
            "file_count": len(self.files),
        }
        if include_files:
            payload["files"] = [record.to_dict() for record in self.files]
        return payload


__all__ = [
    "Deployment",
    "FileRecord",
    "FileType",
    "Generation",
    "HistoryEntry",
    "Project",
]
