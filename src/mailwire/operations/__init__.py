"""Folder, flag and send operations."""

from .flags import FlagOperations, verify_folder_mode
from .folder import ALL_MESSAGES, FolderOperations
from .send import build_mime_message, send_email

__all__ = [
    "ALL_MESSAGES",
    "FlagOperations",
    "FolderOperations",
    "build_mime_message",
    "send_email",
    "verify_folder_mode",
]
