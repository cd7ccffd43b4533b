"""Flag, delete and expunge operations."""

from __future__ import annotations

import logging
from collections.abc import Sequence

from ..core.errors import InvariantViolation
from ..core.interfaces import FolderMode, MailFolder, RemoteMessage
from ..core.models import EmailFlag

LOGGER = logging.getLogger(__name__)


def verify_folder_mode(folder: MailFolder, mode: FolderMode) -> None:
    """Fail unless ``folder`` is open in ``mode``.

    Raises:
        InvariantViolation: If the folder is closed or open in another mode.
    """
    if not folder.is_open or folder.mode != mode:
        raise InvariantViolation(
            f"Folder [{folder.name}] must be open in mode:[{mode.name}]"
        )


class FlagOperations:
    """Mark and delete vocabulary shared by mailbox sessions."""

    @staticmethod
    def mark_by_id(folder: MailFolder, flag: EmailFlag, uid: int) -> None:
        message = folder.get_message_by_uid(uid)
        FlagOperations.mark_by_message(message, flag)

    @staticmethod
    def mark_by_message(message: RemoteMessage, flag: EmailFlag) -> None:
        """Set ``flag`` on ``message``; its folder must be read-write."""
        verify_folder_mode(message.folder, FolderMode.READ_WRITE)
        LOGGER.debug("Marking message %s as %s", message.number, flag.value)
        message.folder.set_flag(message, flag, True)

    @staticmethod
    def mark_by_messages(messages: Sequence[RemoteMessage], flag: EmailFlag) -> None:
        for message in messages:
            verify_folder_mode(message.folder, FolderMode.READ_WRITE)
        for message in messages:
            FlagOperations.mark_by_message(message, flag)

    @staticmethod
    def delete(message: RemoteMessage) -> None:
        """Mark ``message`` deleted and expunge its folder."""
        FlagOperations.delete_messages([message])

    @staticmethod
    def delete_messages(messages: Sequence[RemoteMessage]) -> None:
        """Mark ``messages`` deleted and expunge every folder they live in."""
        FlagOperations.mark_by_messages(messages, EmailFlag.DELETED)
        folders: list[MailFolder] = []
        for message in messages:
            if not any(folder is message.folder for folder in folders):
                folders.append(message.folder)
        for folder in folders:
            FlagOperations.expunge_folder(folder)

    @staticmethod
    def delete_by_id(folder: MailFolder, uid: int) -> None:
        FlagOperations.delete(folder.get_message_by_uid(uid))

    @staticmethod
    def delete_by_number(folder: MailFolder, number: int) -> None:
        FlagOperations.delete(folder.get_message(number))

    @staticmethod
    def expunge_folder(folder: MailFolder) -> None:
        LOGGER.debug("Expunging folder %s", folder.name)
        folder.expunge()


__all__ = ["FlagOperations", "verify_folder_mode"]
