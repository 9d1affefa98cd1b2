"""Builds generation and modification prompts from Jinja templates."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence

from jinja2 import ChoiceLoader, Environment, FileSystemLoader, StrictUndefined

from ..models import FileRecord, FileType
from ..pipeline.ordering import sort_by_priority
from .constants import (
    DEFAULT_FILE_BUDGET,
    GENERATION_REQUIREMENTS,
    GENERATION_TEMPLATE,
    MODIFICATION_RULES,
    MODIFICATION_TEMPLATE,
    TRUNCATION_MARKER,
)


@dataclass(frozen=True)
class PromptRequest:
    """System and user messages for a single provider call."""

    system: str
    user: str


class PromptBuilder:
    """Renders provider prompts from bundled (or overridden) templates."""

    def __init__(
        self,
        templates_dir: Path | None = None,
        *,
        file_budget: int = DEFAULT_FILE_BUDGET,
    ) -> None:
        self.bundled_dir = Path(__file__).with_name("templates")
        self.templates_dir = templates_dir or self.bundled_dir
        self.file_budget = max(file_budget, 0)
        self._env = self._create_env(self.templates_dir)

    def build_generation(
        self, prompt: str, images: Optional[Sequence[str]] = None
    ) -> PromptRequest:
        system = self._render(
            GENERATION_TEMPLATE, requirements=list(GENERATION_REQUIREMENTS)
        )
        return PromptRequest(system=system, user=self._with_images(prompt, images))

    def build_modification(
        self,
        prompt: str,
        current_files: Iterable[FileRecord],
        images: Optional[Sequence[str]] = None,
    ) -> PromptRequest:
        files = [self._file_context(record) for record in sort_by_priority(current_files)]
        system = self._render(
            MODIFICATION_TEMPLATE,
            files=files,
            prompt=prompt.strip(),
            rules=list(MODIFICATION_RULES),
        )
        return PromptRequest(system=system, user=self._with_images(prompt, images))

    def _render(self, template_name: str, **context: object) -> str:
        template = self._env.get_template(template_name)
        return template.render(**context).strip() + "\n"

    def _file_context(self, record: FileRecord) -> Dict[str, str]:
        content = record.content
        if self.file_budget and len(content) > self.file_budget:
            content = content[: self.file_budget] + TRUNCATION_MARKER
        file_type = record.type.value if isinstance(record.type, FileType) else (record.type or "TEXT")
        return {"path": record.path, "type": str(file_type), "content": content}

    @staticmethod
    def _with_images(prompt: str, images: Optional[Sequence[str]]) -> str:
        text = prompt.strip()
        references: List[str] = [image for image in images or () if image]
        if not references:
            return text
        lines = [text, "", "Reference images provided by the user:"]
        lines.extend(f"- {reference}" for reference in references)
        lines.append("Use them as visual inspiration for layout, palette and imagery.")
        return "\n".join(lines)

    def _create_env(self, templates_dir: Path) -> Environment:
        # Custom directories only need to ship the templates they override.
        search_paths = [templates_dir]
        if templates_dir != self.bundled_dir:
            search_paths.append(self.bundled_dir)
        return Environment(
            loader=ChoiceLoader([FileSystemLoader(str(path)) for path in search_paths]),
            autoescape=False,
            trim_blocks=False,
            keep_trailing_newline=True,
            undefined=StrictUndefined,
        )


__all__ = ["PromptBuilder", "PromptRequest"]
