"""MIME processing and stored-message materialisation."""

from .content import ProcessedContent, process_content, resolve_charset
from .parser import EmailParser

__all__ = [
    "EmailParser",
    "ProcessedContent",
    "process_content",
    "resolve_charset",
]
