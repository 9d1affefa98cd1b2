"""Static hosting deployment clients."""

from .vercel import (
    VercelClient,
    VercelDeployment,
    descriptive_project_name,
    sanitize_project_name,
    validate_deployment_url,
)

__all__ = [
    "VercelClient",
    "VercelDeployment",
    "descriptive_project_name",
    "sanitize_project_name",
    "validate_deployment_url",
]
