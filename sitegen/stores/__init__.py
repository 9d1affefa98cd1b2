"""Persistence for sitegen projects."""

from .projects import ProjectStore

__all__ = ["ProjectStore"]
