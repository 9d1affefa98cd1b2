"""Shared constants for website prompting."""

from __future__ import annotations

GENERATION_TEMPLATE = "generation.j2"
MODIFICATION_TEMPLATE = "modification.j2"

DEFAULT_FILE_BUDGET = 6000
TRUNCATION_MARKER = "\n... [truncated]"

GENERATION_REQUIREMENTS: tuple[str, ...] = (
    "Create a complete, functional website",
    "Use modern HTML5, CSS3 and JavaScript",
    "Make it responsive and mobile-friendly",
    "Include proper semantic HTML",
    "Split styles and scripts into their own files and link them from the HTML pages",
    "Use Flexbox or Grid for layout",
    "Add interactive elements with JavaScript",
    "Reference images by absolute https URLs only, never local image files",
    "Create between 5 and 15 files for a complete project",
)

MODIFICATION_RULES: tuple[str, ...] = (
    "Only modify files that need changes based on the user's request",
    "Include the complete file content for modified files",
    "Do not include files that don't need changes",
    "Preserve the existing structure and styling unless specifically asked to change it",
    "Make minimal, targeted changes",
)
