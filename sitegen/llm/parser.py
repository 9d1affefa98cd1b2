"""Extraction of generated file sets from raw provider responses."""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List

from ..errors import ResponseParseError

_FENCE = re.compile(r"```(?:json)?\s*([\s\S]*?)\s*```", re.IGNORECASE)
_OBJECT_SPAN = re.compile(r"\{[\s\S]*\}")

DEFAULT_DESCRIPTION = "Website generated successfully"


@dataclass
class GenerationPayload:
    """Description and raw file entries returned by a provider."""

    description: str
    files: List[Dict[str, Any]] = field(default_factory=list)


def parse_generation_response(text: str) -> GenerationPayload:
    """Parse the JSON document a provider was asked to return."""
    data = _load_json(text)
    if not isinstance(data, dict):
        raise ResponseParseError("Provider response is not a JSON object")

    raw_files = data.get("files")
    files: List[Dict[str, Any]] = []
    if isinstance(raw_files, list):
        for entry in raw_files:
            if not isinstance(entry, dict):
                continue
            path = entry.get("path") if isinstance(entry.get("path"), str) else None
            content = entry.get("content") if isinstance(entry.get("content"), str) else ""
            files.append(
                {
                    "path": path or "index.html",
                    "content": content,
                    "type": entry.get("type") if isinstance(entry.get("type"), str) else None,
                }
            )

    description = data.get("description")
    if not isinstance(description, str) or not description.strip():
        # Modification responses describe the change under "content".
        description = data.get("content")
    if not isinstance(description, str) or not description.strip():
        description = DEFAULT_DESCRIPTION
    return GenerationPayload(description=description.strip(), files=files)


def _load_json(text: str) -> Any:
    candidate = text.strip()
    if "```" in candidate:
        fenced = _FENCE.search(candidate)
        if fenced:
            candidate = fenced.group(1).strip()
    try:
        return json.loads(candidate)
    except json.JSONDecodeError:
        pass

    span = _OBJECT_SPAN.search(text)
    if span is None:
        raise ResponseParseError("Provider response did not contain JSON")
    try:
        return json.loads(span.group(0))
    except json.JSONDecodeError as exc:
        raise ResponseParseError("Provider response contained invalid JSON") from exc


__all__ = ["DEFAULT_DESCRIPTION", "GenerationPayload", "parse_generation_response"]
