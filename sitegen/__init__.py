"""AI-assisted static website generation."""

from .models import FileRecord, FileType
from .pipeline import normalize_and_reconcile

__version__ = "0.1.0"

__all__ = ["FileRecord", "FileType", "__version__", "normalize_and_reconcile"]
