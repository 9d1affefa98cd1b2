"""Exception hierarchy shared across sitegen components."""

from __future__ import annotations


class SitegenError(RuntimeError):
    """Base class for errors raised by sitegen."""


class ConfigError(SitegenError):
    """Raised when the configuration file cannot be parsed."""


class ProviderError(SitegenError):
    """Raised when an LLM provider call fails or returns an unusable response."""


class ResponseParseError(ProviderError):
    """Raised when a provider response does not contain the expected JSON payload."""


class GenerationError(SitegenError):
    """Raised when a generation or modification run fails."""


class GenerationInProgressError(SitegenError):
    """Raised when a project already has an active generation."""


class ProjectNotFoundError(SitegenError, LookupError):
    """Raised when a project id is unknown to the store."""


class RecordNotFoundError(ProjectNotFoundError):
    """Raised when a file, generation or deployment is unknown within a project."""


class DeploymentError(SitegenError):
    """Raised when the hosting provider rejects or fails a deployment."""

    def __init__(self, message: str, *, status: int | None = None) -> None:
        super().__init__(message)
        self.status = status


__all__ = [
    "ConfigError",
    "DeploymentError",
    "GenerationError",
    "GenerationInProgressError",
    "ProjectNotFoundError",
    "ProviderError",
    "RecordNotFoundError",
    "ResponseParseError",
    "SitegenError",
]
