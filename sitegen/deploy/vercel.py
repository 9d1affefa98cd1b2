"""Minimal Vercel REST client for static deployments."""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from datetime import datetime
from http.client import HTTPException
from typing import Any, Callable, Dict, Mapping, Optional, Tuple
from urllib.error import HTTPError, URLError
from urllib.parse import urlencode
from urllib.request import Request, urlopen

from ..errors import DeploymentError
from ..logging import get_logger

_LOGGER = get_logger("deploy.vercel")

DEFAULT_BASE_URL = "https://api.vercel.com"
MAX_PROJECT_NAME = 100

Transport = Callable[[str, str, Optional[bytes], Dict[str, str], float], Tuple[int, str]]


def sanitize_project_name(name: str) -> str:
    """Return a name accepted by Vercel (lower-case, ``[a-z0-9._-]``, max 100)."""
    cleaned = name.lower()
    cleaned = re.sub(r"\s+", "-", cleaned)
    cleaned = re.sub(r"[^a-z0-9._-]", "", cleaned)
    cleaned = re.sub(r"--+", "-", cleaned)
    cleaned = cleaned.strip("-")
    return cleaned[:MAX_PROJECT_NAME] or "project"


def descriptive_project_name(
    title: str, user_id: str, now: Optional[datetime] = None
) -> str:
    """``<title>-<YYYYMMDDHHMMSS>-<USERID>`` truncated to the Vercel limit."""
    stamp = (now or datetime.now()).strftime("%Y%m%d%H%M%S")
    name = f"{sanitize_project_name(title)}-{stamp}-{user_id[:12].upper()}"
    return name[:MAX_PROJECT_NAME]


def validate_deployment_url(url: Optional[str], fallback: str) -> str:
    """Replace URLs that cannot be opened by a visitor with ``fallback``."""
    if not url:
        return fallback
    if "localhost" in url or "127.0.0.1" in url:
        return fallback
    if not url.startswith(("http://", "https://")):
        return fallback
    return url


@dataclass
class VercelDeployment:
    """Subset of the deployment document returned by Vercel."""

    id: str
    url: Optional[str]
    state: str
    raw: Dict[str, Any]

    @property
    def public_url(self) -> Optional[str]:
        if not self.url:
            return None
        return self.url if self.url.startswith(("http://", "https://")) else f"https://{self.url}"

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "VercelDeployment":
        deployment_id = payload.get("id") or payload.get("uid")
        if not isinstance(deployment_id, str) or not deployment_id:
            raise DeploymentError("Invalid deployment response from Vercel API")
        url = payload.get("url")
        state = payload.get("readyState") or payload.get("state") or "QUEUED"
        return cls(
            id=deployment_id,
            url=url if isinstance(url, str) else None,
            state=str(state),
            raw=dict(payload),
        )


class VercelClient:
    """Creates and inspects deployments through the Vercel REST API."""

    def __init__(
        self,
        token: Optional[str],
        *,
        base_url: str = DEFAULT_BASE_URL,
        team_id: Optional[str] = None,
        timeout: float = 60.0,
        transport: Transport | None = None,
    ) -> None:
        self.token = token
        self.base_url = base_url.rstrip("/")
        self.team_id = team_id
        self.timeout = timeout
        self._transport = transport or _urllib_transport

    def create_deployment(
        self,
        name: str,
        files: Mapping[str, str],
        *,
        target: str = "production",
    ) -> VercelDeployment:
        """Upload ``files`` inline as a static deployment."""
        project_name = sanitize_project_name(name)
        payload = {
            "name": project_name,
            "files": [{"file": path, "data": content} for path, content in files.items()],
            "target": target,
            "public": True,
            "projectSettings": {
                "framework": None,
                "buildCommand": None,
                "installCommand": None,
                "outputDirectory": None,
            },
        }
        _LOGGER.info("Creating Vercel deployment %s with %d file(s)", project_name, len(files))
        response = self._request("POST", "/v13/deployments", payload)
        deployment = VercelDeployment.from_payload(response)
        _LOGGER.info("Vercel deployment %s started (%s)", deployment.id, deployment.state)
        return deployment

    def get_deployment(self, deployment_id: str) -> VercelDeployment:
        response = self._request("GET", f"/v13/deployments/{deployment_id}")
        return VercelDeployment.from_payload(response)

    def _request(
        self, method: str, path: str, payload: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        if not self.token:
            raise DeploymentError("Vercel token is not configured (set VERCEL_TOKEN)")
        url = f"{self.base_url}{path}"
        if self.team_id:
            url = f"{url}?{urlencode({'teamId': self.team_id})}"
        headers = {
            "Authorization": f"Bearer {self.token}",
            "Content-Type": "application/json",
        }
        body = json.dumps(payload).encode("utf-8") if payload is not None else None
        status, text = self._transport(method, url, body, headers, self.timeout)
        if status < 200 or status >= 300:
            _LOGGER.error("Vercel API request %s %s failed with status %d", method, path, status)
            raise DeploymentError(f"Vercel API error: {status} - {text}", status=status)
        try:
            decoded = json.loads(text) if text else {}
        except json.JSONDecodeError as exc:
            raise DeploymentError("Vercel API returned invalid JSON", status=status) from exc
        if not isinstance(decoded, dict):
            raise DeploymentError("Vercel API returned an unexpected payload", status=status)
        return decoded


def _urllib_transport(
    method: str,
    url: str,
    body: Optional[bytes],
    headers: Dict[str, str],
    timeout: float,
) -> Tuple[int, str]:
    request = Request(url, data=body, headers=headers, method=method)
    try:
        with urlopen(request, timeout=timeout) as response:  # type: ignore[arg-type]
            return response.status, response.read().decode("utf-8", errors="replace")
    except HTTPError as exc:  # pragma: no cover - depends on runtime
        detail = exc.read().decode("utf-8", errors="replace") if hasattr(exc, "read") else ""
        return exc.code, detail
    except URLError as exc:  # pragma: no cover - depends on runtime
        raise DeploymentError(f"Vercel API request failed: {exc.reason}") from exc
    except (OSError, HTTPException) as exc:
        raise DeploymentError(f"Vercel API request failed: {exc}") from exc


__all__ = [
    "DEFAULT_BASE_URL",
    "VercelClient",
    "VercelDeployment",
    "descriptive_project_name",
    "sanitize_project_name",
    "validate_deployment_url",
]
